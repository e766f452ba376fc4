"""
响应体中间件测试
"""

import io

import pytest
import requests

from httpware import Client, Ref
from httpware.middlewares import responsebody


class TestResponseBody:
    """测试响应体读取"""

    @pytest.mark.unit
    def test_json(self, sender_factory):
        """测试把响应体按 JSON 解码写入 ref"""
        # Arrange
        ref = Ref()
        client = Client(http_client=sender_factory(content=b'{"users": [1, 2]}'))

        # Act
        resp = client.request().url("https://api.example.com").use(responsebody.json(ref)).send()

        # Assert
        assert resp.error is None
        assert ref.value == {"users": [1, 2]}

    @pytest.mark.unit
    def test_invalid_json(self, sender_factory):
        """测试无效的 JSON 返回解码异常，响应仍然可用"""
        ref = Ref()
        client = Client(http_client=sender_factory(status_code=200, content=b"<html>"))

        resp = client.request().url("https://api.example.com").use(responsebody.json(ref)).send()

        assert isinstance(resp.error, requests.exceptions.JSONDecodeError)
        assert resp.status_code == 200
        assert ref.value is None

    @pytest.mark.unit
    def test_string(self, sender_factory):
        ref = Ref()
        client = Client(http_client=sender_factory(content="héllo".encode("utf-8")))

        client.request().url("https://api.example.com").use(responsebody.string(ref)).send()

        assert ref.value == "héllo"

    @pytest.mark.unit
    def test_writer(self, sender_factory):
        """测试把响应体分块写入文件对象"""
        # Arrange
        content = b"x" * 20000
        sink = io.BytesIO()
        client = Client(http_client=sender_factory(content=content))

        # Act
        resp = client.request().url("https://api.example.com").use(responsebody.writer(sink, chunk_size=4096)).send()

        # Assert
        assert resp.error is None
        assert sink.getvalue() == content

    @pytest.mark.unit
    def test_writer_to_file(self, sender_factory, tmp_path):
        """测试写入磁盘文件"""
        target = tmp_path / "download.bin"
        client = Client(http_client=sender_factory(content=b"file-content"))

        with open(target, "wb") as fh:
            client.request().url("https://api.example.com").use(responsebody.writer(fh)).send()

        assert target.read_bytes() == b"file-content"

    @pytest.mark.unit
    @pytest.mark.parametrize("factory", [responsebody.json, responsebody.string])
    def test_prior_error_skips_reading(self, sender_factory, factory):
        """测试内层已有异常时不读取响应体"""
        ref = Ref("untouched")
        client = Client(http_client=sender_factory(error=ConnectionError("down")))

        resp = client.request().url("https://api.example.com").use(factory(ref)).send()

        assert isinstance(resp.error, ConnectionError)
        assert ref.value == "untouched"

    @pytest.mark.unit
    def test_response_is_closed(self, sender_factory, mocker):
        """测试读取后关闭响应"""
        # Arrange
        sender = sender_factory(content=b"{}")
        closed = []
        original_send = sender.send

        def send(request):
            response = original_send(request)
            mocker.patch.object(response, "close", side_effect=lambda: closed.append(True))
            return response

        sender.send = send

        # Act
        Client(http_client=sender).request().url("https://api.example.com").use(responsebody.json(Ref())).send()

        # Assert
        assert closed == [True]
