# =============================================
# File: storefront/utils/result.py
# Purpose: Tagged Ok/Err result returned by every catalog service call
# =============================================
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    UPSTREAM = "upstream"            # data source unavailable / failed
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[Any], Err]


def upstream_error(message: str) -> Err:
    return Err(ErrorKind.UPSTREAM, message)


def not_found(message: str) -> Err:
    return Err(ErrorKind.NOT_FOUND, message)


def invalid_input(message: str) -> Err:
    return Err(ErrorKind.INVALID_INPUT, message)
