"""Error taxonomy for the gacha engine.

Argument, availability and affordability problems are raised internally as
``GachaError`` subclasses and converted to ``PullError`` records at the public
engine boundary, so callers always receive a structured outcome instead of an
exception.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "invalid_argument"
    INSUFFICIENT_RESOURCES = "insufficient_resources"
    POOL_UNAVAILABLE = "pool_unavailable"
    BUSY = "busy"


class Shortfall(BaseModel):
    """Amount missing per currency when a pull cannot be afforded."""

    primary: int = Field(default=0, ge=0)
    secondary: int = Field(default=0, ge=0)


class PullError(BaseModel):
    kind: ErrorKind
    message: str
    shortfall: Optional[Shortfall] = None

    model_config = {"frozen": True}


class Outcome(BaseModel):
    """Envelope returned by every public engine operation."""

    status: Literal["success", "error"] = "success"
    error: Optional[PullError] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def failure(cls, error: PullError, **kwargs) -> "Outcome":
        return cls(status="error", error=error, **kwargs)


class GachaError(Exception):
    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_error(self) -> PullError:
        return PullError(kind=self.kind, message=self.message)


class InvalidArgument(GachaError):
    kind = ErrorKind.INVALID_ARGUMENT


class PoolUnavailable(GachaError):
    kind = ErrorKind.POOL_UNAVAILABLE


class EngineBusy(GachaError):
    kind = ErrorKind.BUSY


class InsufficientResources(GachaError):
    kind = ErrorKind.INSUFFICIENT_RESOURCES

    def __init__(self, shortfall: Shortfall) -> None:
        super().__init__(
            f"Insufficient resources: need {shortfall.primary} more primary "
            f"and {shortfall.secondary} more secondary currency"
        )
        self.shortfall = shortfall

    def to_error(self) -> PullError:
        return PullError(kind=self.kind, message=self.message, shortfall=self.shortfall)


class CatalogError(ValueError):
    """Raised when static catalog configuration is malformed."""
