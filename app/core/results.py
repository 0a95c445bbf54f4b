"""Typed results returned across scheduling component boundaries."""

from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from app.core.exceptions import DomainException, ErrorCode

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T
    ok: Literal[True] = True


@dataclass(frozen=True, slots=True)
class Err:
    """Expected business failure with a stable code and a human message."""

    code: ErrorCode
    message: str
    details: dict[str, Any] | None = None
    ok: Literal[False] = False

    def to_exception(self) -> DomainException:
        """Convert into an exception for the HTTP layer."""
        return DomainException(self.code, self.message, self.details)


Result = Ok[T] | Err


def unwrap(result: "Result[T]") -> T:
    """Return the value of an ``Ok`` or raise the ``Err`` as a DomainException."""
    if isinstance(result, Err):
        raise result.to_exception()
    return result.value
