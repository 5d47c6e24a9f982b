#!/usr/bin/env python3
"""
bmp_errors.py

Status codes, exceptions and the last-error register shared by the BMP modules.

Every public operation raises a BMPError subclass on failure and records the
outcome in a process-wide register, so callers can either catch exceptions or
check get_last_error() after the fact.
"""

from __future__ import annotations

import functools
from enum import IntEnum
from typing import Optional


class BMPStatus(IntEnum):
    OK = 0
    GENERAL_ERROR = 1
    OUT_OF_MEMORY = 2
    IO_ERROR = 3
    FILE_NOT_FOUND = 4
    FILE_NOT_SUPPORTED = 5
    FILE_INVALID = 6
    INVALID_ARGUMENT = 7
    TYPE_MISMATCH = 8


ERROR_STRINGS = {
    BMPStatus.OK: "",
    BMPStatus.GENERAL_ERROR: "General error",
    BMPStatus.OUT_OF_MEMORY: "Could not allocate enough memory to complete the operation",
    BMPStatus.IO_ERROR: "File input/output error",
    BMPStatus.FILE_NOT_FOUND: "File not found",
    BMPStatus.FILE_NOT_SUPPORTED: "File is not a supported BMP variant (must be uncompressed 8, 24 or 32 BPP)",
    BMPStatus.FILE_INVALID: "File is not a valid BMP image",
    BMPStatus.INVALID_ARGUMENT: "An argument is invalid or out of range",
    BMPStatus.TYPE_MISMATCH: "The requested action is not compatible with the BMP's type",
}


def describe(status: int) -> str:
    """Static message for a status code (pure lookup, no register access)."""
    try:
        return ERROR_STRINGS[BMPStatus(status)]
    except ValueError:
        raise InvalidArgument(f"unknown BMP status {status!r}") from None


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class BMPError(Exception):
    status = BMPStatus.GENERAL_ERROR

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or ERROR_STRINGS[self.status])


class OutOfMemory(BMPError, MemoryError):
    status = BMPStatus.OUT_OF_MEMORY


class BMPIOError(BMPError, OSError):
    status = BMPStatus.IO_ERROR


class FileNotFound(BMPError, FileNotFoundError):
    status = BMPStatus.FILE_NOT_FOUND


class UnsupportedVariant(BMPError, ValueError):
    status = BMPStatus.FILE_NOT_SUPPORTED


class InvalidFile(BMPError, ValueError):
    status = BMPStatus.FILE_INVALID


class InvalidArgument(BMPError, ValueError):
    status = BMPStatus.INVALID_ARGUMENT


class TypeMismatch(BMPError, TypeError):
    status = BMPStatus.TYPE_MISMATCH


# ---------------------------------------------------------------------------
# Last-error register
# ---------------------------------------------------------------------------

_last_status = BMPStatus.OK


def set_last_error(status: int) -> None:
    global _last_status
    _last_status = BMPStatus(status)


def get_last_error() -> BMPStatus:
    return _last_status


def get_last_error_description() -> Optional[str]:
    """Message for the last recorded status, or None if the last call succeeded."""
    if _last_status == BMPStatus.OK:
        return None
    return ERROR_STRINGS[_last_status]


def records_status(func):
    """
    Decorator for public operations: OK on return, the error's status on raise.

    Exceptions always propagate; anything that is not a BMPError is recorded
    as GENERAL_ERROR.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            result = func(*args, **kwargs)
        except BMPError as e:
            set_last_error(e.status)
            raise
        except Exception:
            set_last_error(BMPStatus.GENERAL_ERROR)
            raise
        set_last_error(BMPStatus.OK)
        return result

    return wrapper
