"""
Handler outcome type definitions.

A handler reports exactly one of two things for each payload it is given:
the identifier assigned to it, or the error that prevented that.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from related_queue.exceptions import HandlerContractError


@dataclass(frozen=True)
class Identifier:
    """The payload was processed and given this identifier."""

    id: str

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise HandlerContractError("Identifier outcome requires a non-empty string id")


@dataclass(frozen=True)
class Failure:
    """The payload could not be processed."""

    error: BaseException | str

    def __post_init__(self) -> None:
        if self.error is None or self.error == "":
            raise HandlerContractError("Failure outcome requires an error")


HandlerOutcome = Union[Identifier, Failure]

# Type alias for handler functions; coroutine functions are awaited
HandlerPort = Callable[[Any, Any], "HandlerOutcome | Mapping[str, Any] | None | Awaitable[Any]"]


def outcome_from_mapping(value: Mapping[str, Any]) -> HandlerOutcome:
    """
    Convert a ``{"id": ...}`` or ``{"error": ...}`` mapping into an outcome.

    An id takes precedence over an error.

    Args:
        value: Mapping returned by a handler.

    Returns:
        The matching outcome variant.

    Raises:
        HandlerContractError: If the mapping has neither key set.
    """
    assigned_id = value.get("id")
    error = value.get("error")

    if assigned_id:
        return Identifier(assigned_id)
    if error:
        return Failure(error)
    raise HandlerContractError("Handler returned neither an id nor an error")
