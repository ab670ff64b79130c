# sandboxfs/errors.py
from __future__ import annotations

import errno
from enum import Enum
from typing import Any, Dict


class ErrorCode(str, Enum):
    CONFINEMENT_VIOLATION = "confinement_violation"
    NOT_FOUND = "not_found"
    NOT_A_FILE = "not_a_file"
    NOT_A_DIRECTORY = "not_a_directory"
    SIZE_LIMIT_EXCEEDED = "size_limit_exceeded"
    DECODE_ERROR = "decode_error"
    INVALID_ARGUMENT = "invalid_argument"
    OPERATION_LIMIT_EXCEEDED = "operation_limit_exceeded"
    EDIT_TARGET_MISSING = "edit_target_missing"
    DESTRUCTIVE_CONFIRMATION_REQUIRED = "destructive_confirmation_required"
    IO_ERROR = "io_error"


class FsToolError(Exception):
    """
    Raised by the filesystem services; converted into a failure result
    at the tool boundary and never surfaced to the agent as an exception.
    """

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


_ERRNO_CODES = {
    errno.ENOENT: ErrorCode.NOT_FOUND,
    errno.ENOTDIR: ErrorCode.NOT_A_DIRECTORY,
    errno.EISDIR: ErrorCode.NOT_A_FILE,
    errno.ELOOP: ErrorCode.CONFINEMENT_VIOLATION,
}


def from_os_error(exc: OSError) -> FsToolError:
    code = _ERRNO_CODES.get(exc.errno, ErrorCode.IO_ERROR)
    # strerror only; filenames are absolute host paths
    return FsToolError(code, exc.strerror or exc.__class__.__name__)


def success(path: str, **payload: Any) -> Dict[str, Any]:
    return {"success": True, "path": path, **payload}


def failure(path: str, code: ErrorCode, message: str) -> Dict[str, Any]:
    return {"success": False, "path": path, "code": code.value, "message": message}
