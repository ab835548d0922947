"""
Unit tests for the handler registry and built-in handlers.
"""

import httpx
import pytest

from related_queue.types.outcome import Failure, Identifier
from related_queue.worker import handlers
from related_queue.worker.handlers import (
    dispatch,
    get_handler,
    handle_echo,
    handle_fail,
    handle_http_request,
    list_handlers,
    load_handler,
    register_handler,
)


def mock_client_factory(responder):
    """Build a replacement for httpx.AsyncClient that answers with responder."""
    real_client = httpx.AsyncClient

    def factory(*args, **kwargs):
        return real_client(transport=httpx.MockTransport(responder))

    return factory


class TestHandlerRegistry:
    """Tests for registering and looking up handlers."""

    def test_list_handlers(self):
        """Test listing registered handlers."""
        kinds = list_handlers()

        assert "echo" in kinds
        assert "fail" in kinds
        assert "http_request" in kinds

    def test_get_handler_exists(self):
        assert get_handler("echo") is handle_echo

    def test_get_handler_not_exists(self):
        assert get_handler("nonexistent") is None

    @pytest.mark.asyncio
    async def test_register_handler(self):
        @register_handler("test_constant")
        async def handle_constant(payload, context):
            return Identifier("constant")

        outcome = await dispatch({"kind": "test_constant"}, None)

        assert outcome == Identifier("constant")
        assert "test_constant" in list_handlers()


class TestLoadHandler:
    """Tests for importing handlers by path."""

    def test_load_dispatch(self):
        assert load_handler("related_queue.worker.handlers:dispatch") is dispatch

    @pytest.mark.parametrize("path", ["", "related_queue.worker.handlers", ":dispatch"])
    def test_malformed_path(self, path):
        with pytest.raises(ValueError, match="module:attribute"):
            load_handler(path)

    def test_not_callable(self):
        with pytest.raises(ValueError, match="not callable"):
            load_handler("related_queue.worker.handlers:_handlers")

    def test_missing_module(self):
        with pytest.raises(ImportError):
            load_handler("related_queue.no_such_module:handler")


class TestBuiltinHandlers:
    """Tests for the built-in handlers."""

    @pytest.mark.asyncio
    async def test_echo_uses_given_id(self):
        outcome = await handle_echo({"kind": "echo", "id": "given"}, None)

        assert outcome == Identifier("given")

    @pytest.mark.asyncio
    async def test_echo_generates_id(self):
        outcome = await handle_echo({"kind": "echo"}, None)

        assert isinstance(outcome, Identifier)
        assert len(outcome.id) == 32

    @pytest.mark.asyncio
    async def test_fail_handler(self):
        outcome = await handle_fail({"kind": "fail"}, None)

        assert outcome == Failure("Intentional failure")

    @pytest.mark.asyncio
    async def test_fail_handler_message(self):
        outcome = await handle_fail({"kind": "fail", "message": "custom"}, None)

        assert outcome == Failure("custom")

    @pytest.mark.asyncio
    async def test_http_request_missing_url(self):
        outcome = await handle_http_request({"kind": "http_request"}, None)

        assert outcome == Failure("Missing 'url' in payload")

    @pytest.mark.asyncio
    async def test_http_request_returns_created_id(self, monkeypatch):
        seen = []

        def responder(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"uid": "remote-7"})

        monkeypatch.setattr(handlers.httpx, "AsyncClient", mock_client_factory(responder))

        outcome = await handle_http_request(
            {
                "url": "http://upstream.test/invoices",
                "body": {"customer_id": "c-1"},
                "id_field": "uid",
            },
            None,
        )

        assert outcome == Identifier("remote-7")
        assert seen[0].method == "POST"
        assert b"c-1" in seen[0].content

    @pytest.mark.asyncio
    async def test_http_request_error_status(self, monkeypatch):
        def responder(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="upstream broke")

        monkeypatch.setattr(handlers.httpx, "AsyncClient", mock_client_factory(responder))

        outcome = await handle_http_request({"url": "http://upstream.test/x"}, None)

        assert isinstance(outcome, Failure)
        assert outcome.error.startswith("HTTP 500")

    @pytest.mark.asyncio
    async def test_http_request_missing_id(self, monkeypatch):
        def responder(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"name": "no id"})

        monkeypatch.setattr(handlers.httpx, "AsyncClient", mock_client_factory(responder))

        outcome = await handle_http_request({"url": "http://upstream.test/x"}, None)

        assert outcome == Failure("Response did not contain 'id'")


class TestDispatch:
    """Tests for routing payloads by kind."""

    @pytest.mark.asyncio
    async def test_dispatch_defaults_to_echo(self):
        outcome = await dispatch({"id": "x"}, None)

        assert outcome == Identifier("x")

    @pytest.mark.asyncio
    async def test_dispatch_unknown_kind(self):
        outcome = await dispatch({"kind": "nonexistent_handler"}, None)

        assert isinstance(outcome, Failure)
        assert "No handler registered" in outcome.error

    @pytest.mark.asyncio
    async def test_dispatch_requires_mapping(self):
        outcome = await dispatch(["not", "a", "mapping"], None)

        assert isinstance(outcome, Failure)
