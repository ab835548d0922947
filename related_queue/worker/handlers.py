"""
Handler registry and built-in handlers.

Handlers are registered per payload kind; ``dispatch`` is the queue handler
that routes each payload to the handler for its ``kind``. Handlers must be
safe to call more than once for the same payload: delivery is at least once.
"""

import importlib
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any
from uuid import uuid4

import httpx

from related_queue.types.outcome import Failure, HandlerOutcome, Identifier

logger = logging.getLogger(__name__)

# Type alias for kind handler functions
KindHandler = Callable[[Mapping[str, Any], Any], Awaitable[HandlerOutcome]]

# Handler registry
_handlers: dict[str, KindHandler] = {}


def register_handler(kind: str) -> Callable[[KindHandler], KindHandler]:
    """
    Decorator to register a handler for a payload kind.

    Args:
        kind: The payload kind this handler processes.

    Returns:
        Decorator function.

    Example:
        @register_handler("create_invoice")
        async def handle_create_invoice(payload, context) -> HandlerOutcome:
            ...
    """
    def decorator(handler: KindHandler) -> KindHandler:
        _handlers[kind] = handler
        logger.info(f"Registered handler for payload kind: {kind}")
        return handler
    return decorator


def get_handler(kind: str) -> KindHandler | None:
    """
    Get the handler for a payload kind.

    Args:
        kind: The payload kind.

    Returns:
        The handler function or None if not found.
    """
    return _handlers.get(kind)


def list_handlers() -> list[str]:
    """List all registered payload kinds."""
    return list(_handlers.keys())


def load_handler(path: str) -> Callable[..., Any]:
    """
    Import a handler from a ``module:attribute`` path.

    Args:
        path: Import path of the handler.

    Returns:
        The handler callable.

    Raises:
        ValueError: If the path is malformed or does not name a callable.
    """
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Handler path must look like 'module:attribute', got {path!r}")

    module = importlib.import_module(module_name)
    handler = getattr(module, attribute, None)
    if not callable(handler):
        raise ValueError(f"Handler {path!r} is not callable")
    return handler


# ============================================================================
# Built-in handlers
# ============================================================================


@register_handler("echo")
async def handle_echo(payload: Mapping[str, Any], context: Any) -> HandlerOutcome:
    """
    Echo handler for testing.

    Assigns a fresh identifier, or the one given in ``payload["id"]``.
    """
    assigned = payload.get("id") or uuid4().hex
    logger.info("Echo entry handled", extra={"id": assigned})
    return Identifier(str(assigned))


@register_handler("fail")
async def handle_fail(payload: Mapping[str, Any], context: Any) -> HandlerOutcome:
    """
    Handler that always fails - for testing error handling and reset.
    """
    return Failure(payload.get("message") or "Intentional failure")


@register_handler("http_request")
async def handle_http_request(payload: Mapping[str, Any], context: Any) -> HandlerOutcome:
    """
    Create a remote resource and report its identifier.

    Payload should contain:
    - url: The URL to send the request to
    - method: HTTP method (default POST)
    - headers: Optional headers
    - body: Optional JSON body; relations usually fill ids in here
    - id_field: Field of the JSON response holding the new id (default "id")
    """
    url = payload.get("url")
    method = str(payload.get("method", "POST")).upper()
    headers = payload.get("headers") or {}
    body = payload.get("body")
    id_field = payload.get("id_field", "id")

    if not url:
        return Failure("Missing 'url' in payload")

    logger.info("HTTP request entry", extra={"method": method, "url": url})

    try:
        async with httpx.AsyncClient() as client:
            response = await client.request(
                method=method,
                url=url,
                headers=headers,
                json=body if method in ["POST", "PUT", "PATCH"] else None,
                timeout=30.0,
            )
    except httpx.HTTPError as e:
        return Failure(f"HTTP request failed: {e}")

    if not response.is_success:
        return Failure(f"HTTP {response.status_code}: {response.text[:200]}")

    try:
        assigned = response.json().get(id_field)
    except (ValueError, AttributeError):
        assigned = None

    if not assigned:
        return Failure(f"Response did not contain '{id_field}'")

    return Identifier(str(assigned))


async def dispatch(payload: Any, context: Any) -> HandlerOutcome:
    """
    Queue handler that routes payloads by their ``kind`` field.

    Args:
        payload: The entry payload; must be a mapping with a ``kind``.
        context: The entry context, passed through.

    Returns:
        The outcome reported by the kind's handler.
    """
    if not isinstance(payload, Mapping):
        return Failure("Payload must be an object with a 'kind' field")

    kind = payload.get("kind", "echo")
    handler = get_handler(kind)

    if handler is None:
        logger.error(f"No handler for payload kind: {kind}")
        return Failure(f"No handler registered for payload kind: {kind}")

    return await handler(payload, context)
