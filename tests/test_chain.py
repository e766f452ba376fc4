"""
中间件链测试

测试 Chain、MiddlewareFunc、RequestProcessor、ResponseProcessor 的行为:
- 折叠顺序
- 父子链关系
- 请求/响应处理器的短路与异常传递
"""

import pytest

from httpware.chain import Chain, Middleware, MiddlewareFunc, RequestProcessor, ResponseProcessor
from httpware.exceptions import ValidationError
from httpware.outgoing import empty_request


def recording(name, events):
    """返回在进入和返回时记录名称的中间件"""

    def wrap(next_handler):
        def handler(request):
            events.append(f"{name}>")
            response = next_handler(request)
            events.append(f"<{name}")
            return response

        return handler

    return MiddlewareFunc(wrap)


class TestChainExec:
    """测试中间件链的折叠"""

    @pytest.mark.unit
    def test_empty_chain_returns_terminal_handler(self):
        """测试空链直接返回终端处理器"""
        # Arrange
        def terminal(request):
            return "done"

        # Act
        handler = Chain().exec(terminal)

        # Assert
        assert handler is terminal

    @pytest.mark.unit
    def test_first_added_is_outermost(self, response_factory):
        """测试先加入的中间件位于最外层"""
        # Arrange
        events = []
        chain = Chain(recording("a", events)).use(recording("b", events))

        def terminal(request):
            events.append("send")
            return response_factory()

        # Act
        chain.exec(terminal)(empty_request())

        # Assert
        assert events == ["a>", "b>", "send", "<b", "<a"]

    @pytest.mark.unit
    def test_exec_is_repeatable(self, response_factory):
        """测试多次物化得到行为一致的处理器"""
        # Arrange
        events = []
        chain = Chain(recording("a", events))
        terminal = lambda request: response_factory()  # noqa: E731

        # Act
        chain.exec(terminal)(empty_request())
        chain.exec(terminal)(empty_request())

        # Assert
        assert events == ["a>", "<a", "a>", "<a"]

    @pytest.mark.unit
    def test_middleware_exec_called_once_per_materialization(self, response_factory):
        """测试中间件的 exec 每次物化只调用一次，返回的处理器可以多次调用"""
        # Arrange
        exec_calls = []

        def wrap(next_handler):
            exec_calls.append(1)
            return next_handler

        chain = Chain(MiddlewareFunc(wrap))

        # Act
        handler = chain.exec(lambda request: response_factory())
        handler(empty_request())
        handler(empty_request())

        # Assert
        assert len(exec_calls) == 1

    @pytest.mark.unit
    def test_nested_chain(self, response_factory):
        """测试链可以作为中间件嵌套到另一条链中"""
        # Arrange
        events = []
        inner = Chain(recording("inner", events))
        outer = Chain(recording("outer", events), inner)

        # Act
        outer.exec(lambda request: response_factory())(empty_request())

        # Assert
        assert events == ["outer>", "inner>", "<inner", "<outer"]


class TestChainParent:
    """测试父子链"""

    @pytest.mark.unit
    def test_child_sees_parent_middlewares_first(self):
        """测试子链的生效列表以父链的中间件开头"""
        # Arrange
        a, b = RequestProcessor(lambda r: None), RequestProcessor(lambda r: None)
        parent = Chain(a)
        child = parent.child_chain().use(b)

        # Act
        middlewares = child.middlewares()

        # Assert
        assert middlewares == [a, b]

    @pytest.mark.unit
    def test_child_sees_late_parent_additions(self):
        """测试子链创建后父链新增的中间件在子链中可见"""
        # Arrange
        parent = Chain()
        child = parent.child_chain()
        late = RequestProcessor(lambda r: None)

        # Act
        parent.use(late)

        # Assert
        assert child.middlewares() == [late]

    @pytest.mark.unit
    def test_child_mutation_does_not_touch_parent(self):
        """测试修改子链不影响父链"""
        # Arrange
        parent = Chain()
        child = parent.child_chain()

        # Act
        child.use(RequestProcessor(lambda r: None))

        # Assert
        assert parent.middlewares() == []

    @pytest.mark.unit
    def test_empty_parent_behaves_like_no_parent(self, response_factory):
        """测试父链为空时与没有父链一致"""
        # Arrange
        events = []
        with_parent = Chain(parent=Chain()).use(recording("a", events))

        # Act
        with_parent.exec(lambda request: response_factory())(empty_request())

        # Assert
        assert events == ["a>", "<a"]


class TestChainUse:
    """测试中间件注册"""

    @pytest.mark.unit
    def test_use_returns_chain(self):
        """测试 use 返回链本身，支持链式调用"""
        chain = Chain()
        assert chain.use(RequestProcessor(lambda r: None)) is chain
        assert chain.use_func(lambda next_handler: next_handler) is chain

    @pytest.mark.unit
    def test_use_rejects_non_middleware(self):
        """测试加入非中间件对象时抛出 ValidationError"""
        with pytest.raises(ValidationError, match="Middleware instance"):
            Chain().use(lambda next_handler: next_handler)

    @pytest.mark.unit
    def test_middleware_is_abstract(self):
        """测试 Middleware 不能直接实例化"""
        with pytest.raises(TypeError):
            Middleware()


class TestRequestProcessor:
    """测试请求处理器"""

    @pytest.mark.unit
    def test_mutates_request_before_next(self, response_factory):
        """测试在调用下一个处理器之前修改请求"""
        # Arrange
        seen = []

        def terminal(request):
            seen.append(request.method)
            return response_factory()

        middleware = RequestProcessor(lambda request: setattr(request, "method", "PUT"))

        # Act
        middleware.exec(terminal)(empty_request())

        # Assert
        assert seen == ["PUT"]

    @pytest.mark.unit
    def test_error_short_circuits(self):
        """测试处理函数抛出异常时不调用下一个处理器"""
        # Arrange
        calls = []

        def fail(request):
            raise ValueError("x")

        handler = RequestProcessor(fail).exec(lambda request: calls.append(1))

        # Act & Assert
        with pytest.raises(ValueError, match="x"):
            handler(empty_request())
        assert calls == []


class TestResponseProcessor:
    """测试响应处理器"""

    @pytest.mark.unit
    def test_sees_response_on_success(self, response_factory):
        """测试成功时处理函数收到响应且 error 为 None"""
        # Arrange
        seen = []
        response = response_factory(201)
        middleware = ResponseProcessor(lambda resp, err: seen.append((resp, err)))

        # Act
        result = middleware.exec(lambda request: response)(empty_request())

        # Assert
        assert result is response
        assert seen == [(response, None)]

    @pytest.mark.unit
    def test_inner_error_is_reraised(self, response_factory):
        """测试内层异常交给处理函数后原样重新抛出"""
        # Arrange
        seen = []
        response = response_factory(502)
        error = RuntimeError("boom")
        error.response = response

        def terminal(request):
            raise error

        middleware = ResponseProcessor(lambda resp, err: seen.append((resp, err)))

        # Act
        with pytest.raises(RuntimeError) as exc_info:
            middleware.exec(terminal)(empty_request())

        # Assert
        assert exc_info.value is error
        assert seen == [(response, error)]

    @pytest.mark.unit
    def test_processor_error_replaces_outcome_and_carries_response(self, response_factory):
        """测试处理函数抛出的异常替换原结果，并附上当前响应"""
        # Arrange
        response = response_factory(200)

        def process(resp, err):
            raise ValueError("bad payload")

        middleware = ResponseProcessor(process)

        # Act
        with pytest.raises(ValueError) as exc_info:
            middleware.exec(lambda request: response)(empty_request())

        # Assert
        assert exc_info.value.response is response
