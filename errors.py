"""
Classified errors and the Ok/Err result type threaded through request handlers.

Handlers never raise for business failures: they return ``Err(ApiError(...))``
and the pipeline turns it into a JSON error body in one place.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Union


class ErrorKind(Enum):
    VALIDATION = ("validation", 400)
    MALFORMED_BODY = ("malformed_body", 400)
    NOT_FOUND = ("not_found", 404)
    INTERNAL = ("internal", 500)

    def __init__(self, label: str, status_code: int):
        self.label = label
        self.status_code = status_code


@dataclass(frozen=True)
class ApiError:
    kind: ErrorKind
    message: str

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    @classmethod
    def not_found(cls, message: str = "Product not found") -> "ApiError":
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def validation(cls, message: str) -> "ApiError":
        return cls(ErrorKind.VALIDATION, message)

    @classmethod
    def internal(cls) -> "ApiError":
        return cls(ErrorKind.INTERNAL, "Internal Server Error")


@dataclass(frozen=True)
class Ok:
    value: Any

    is_ok = True

    def map(self, fn: Callable[[Any], Any]) -> "Result":
        return Ok(fn(self.value))

    def and_then(self, fn: Callable[[Any], "Result"]) -> "Result":
        return fn(self.value)


@dataclass(frozen=True)
class Err:
    error: ApiError

    is_ok = False

    def map(self, fn: Callable[[Any], Any]) -> "Result":
        return self

    def and_then(self, fn: Callable[[Any], "Result"]) -> "Result":
        return self


Result = Union[Ok, Err]
