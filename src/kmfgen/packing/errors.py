"""Error definitions for KMFGen."""

from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional

E_MODEL_COUNT = "E_MODEL_COUNT"
E_TABLE_SIZE = "E_TABLE_SIZE"
E_BLOCK_SIZE = "E_BLOCK_SIZE"
E_VALUE_RANGE = "E_VALUE_RANGE"
E_SIZE_MISMATCH = "E_SIZE_MISMATCH"
E_INDEX_OUT_OF_RANGE = "E_INDEX_OUT_OF_RANGE"
E_SOURCE_ACCESS = "E_SOURCE_ACCESS"
E_TARGET_ACCESS = "E_TARGET_ACCESS"
E_SCENE_EMPTY = "E_SCENE_EMPTY"
E_SCENE_LOAD = "E_SCENE_LOAD"
E_SPEC_TYPE_MISMATCH = "E_SPEC_TYPE_MISMATCH"
E_DECODE = "E_DECODE"
E_WRITE_IO = "E_WRITE_IO"
E_INTERNAL = "E_INTERNAL"


class ImportResult(IntEnum):
    """Outcome of reading a KMF file. Values are part of the format contract."""

    SUCCESS = 0

    # File access
    FILE_NOT_FOUND = 1
    INVALID_EXTENSION = 2
    UNAUTHORIZED_READ = 3
    FILE_LOCKED = 4
    UNKNOWN_READ_ERROR = 5
    FILE_EMPTY = 6

    # Format
    UNSUPPORTED_FILE_SIZE = 7
    INVALID_MAGIC = 8
    INVALID_VERSION = 9
    INVALID_MODEL_HEADER_SIZE = 11
    INVALID_MODEL_TABLE_SIZE = 12
    INVALID_MODEL_BLOCK_SIZE = 13
    INVALID_MODEL_COUNT = 14
    UNEXPECTED_EOF = 15
    INVALID_BLOCK_OFFSET = 16
    INVALID_INDEX = 17


def result_to_string(result: ImportResult | int) -> str:
    try:
        return f"RESULT_{ImportResult(result).name}"
    except ValueError:
        return "RESULT_UNKNOWN"


@dataclass
class KmfError(Exception):
    code: str
    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}" + (
            f" | ctx={self.context}" if self.context else ""
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context or {},
        }


class EncodeError(KmfError):
    pass


class SourceError(KmfError):
    pass


class SceneError(KmfError):
    pass


class DecodeError(KmfError):
    """Raised by the decoder; ``result`` is the classified failure."""

    def __init__(
        self,
        result: ImportResult,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(code=E_DECODE, message=message, context=context)
        self.result = result

    def __str__(self) -> str:  # pragma: no cover
        return f"{result_to_string(self.result)}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        d = KmfError.to_dict(self)
        d["result"] = result_to_string(self.result)
        return d


def encode_error(
    code: str, message: str, context: Optional[Dict[str, Any]] = None
) -> EncodeError:
    return EncodeError(code=code, message=message, context=context)


def internal_error(
    message: str, context: Optional[Dict[str, Any]] = None
) -> KmfError:
    return KmfError(code=E_INTERNAL, message=message, context=context)


__all__ = [
    "ImportResult",
    "result_to_string",
    "KmfError",
    "EncodeError",
    "SourceError",
    "SceneError",
    "DecodeError",
    "encode_error",
    "internal_error",
    "E_MODEL_COUNT",
    "E_TABLE_SIZE",
    "E_BLOCK_SIZE",
    "E_VALUE_RANGE",
    "E_SIZE_MISMATCH",
    "E_INDEX_OUT_OF_RANGE",
    "E_SOURCE_ACCESS",
    "E_TARGET_ACCESS",
    "E_SCENE_EMPTY",
    "E_SCENE_LOAD",
    "E_SPEC_TYPE_MISMATCH",
    "E_DECODE",
    "E_WRITE_IO",
    "E_INTERNAL",
]
