from __future__ import annotations
import json
import time
import uuid
from typing import Any, Optional, TypeVar

from qzshared.errors import ConfigurationError

T = TypeVar("T")

# ========================================
#           PARAMETER HELPERS
# ========================================

def required(name: str, value: Optional[T]) -> T:
    """
    Return value unchanged, or raise ConfigurationError when it was not supplied.

    Only None counts as missing; empty strings are left to the caller.
    """
    if value is None:
        raise ConfigurationError(f"Required parameter '{name}' was not provided.")
    return value


# ========================================
#           WIRE HELPERS
# ========================================

def now_ms() -> int:
    return int(time.time() * 1000)


def new_uid() -> str:
    """Short random id used to pair a request with its reply."""
    return uuid.uuid4().hex[:12]


def stringify(obj: Any) -> str:
    """
    Compact JSON matching what a browser's JSON.stringify would produce:
    no whitespace, insertion-ordered keys, non-ASCII left as is.
    """
    return json.dumps(obj, separators=(',', ':'), ensure_ascii=False)
