"""Unified error handling for loadcase.

- ErrorCode: Standard error codes for dispatch failures
- DispatchError/LoaderException: Structured errors and exceptions
- BatchContractError/BatchShapeError: Batch function contract violations
- KeyLoadError: Per-key failure carrying a non-exception payload
- Result/Ok/Err: Tagged per-key outcomes
"""

from .errors import (
    BatchContractError,
    BatchShapeError,
    DispatchError,
    ErrorCode,
    KeyLoadError,
    LoaderException,
)
from .result import Err, Ok, Result, as_result, collect_results, sequence

__all__ = [
    # Core errors
    "ErrorCode", "DispatchError", "LoaderException",
    "BatchContractError", "BatchShapeError", "KeyLoadError",
    # Result monad
    "Result", "Ok", "Err", "as_result",
    # Collection ops
    "sequence", "collect_results",
]
