"""
Fingerprinting - content-derived identity and change keys.

Key Format:
    thread_key = hash("product|workflow|issue|request")      (date excluded)
    row_hash   = hash("date|product|workflow|issue|request|comment|resolved")

The source sheet has no stable row identifier, so identity is derived from
content. Hashes are short base-36 tokens. They are NOT a security boundary:
the default 32-bit rolling hash has a documented non-zero collision
probability (birthday bound ~1% at ~6,500 distinct keys). A 64-bit
blake2b strategy can be selected without touching the reconciler.

All functions are pure and total: None/empty fields coerce to "".
"""

from __future__ import annotations

import hashlib
from datetime import date, datetime
from typing import Any, Callable

from alerttracker.domain.models import ExternalRecord

DELIMITER = "|"
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(number: int) -> str:
    """Render a non-negative integer in lowercase base 36."""
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def coerce_field(value: Any) -> str:
    """
    Locale-independent string form of a cell value.

    - None -> ""
    - bool -> "TRUE" / "FALSE"
    - datetime at midnight / date -> "YYYY-MM-DD"
    - other datetime -> ISO with space separator
    - integral float -> integer text (Excel stores 3 as 3.0)
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        if value.tzinfo is None and value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# ============================================================================
# Hash strategies
# ============================================================================


def rolling32(text: str) -> str:
    """
    31-multiplier rolling hash over UTF-16 code units, 32-bit signed wrap.

    Returns |h| in base 36.
    """
    data = text.encode("utf-16-le")
    acc = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        acc = (acc * 31 + unit) & 0xFFFFFFFF
    if acc >= 0x80000000:
        acc -= 0x100000000
    return to_base36(abs(acc))


def blake2b64(text: str) -> str:
    """64-bit blake2b digest in base 36."""
    digest = hashlib.blake2b(text.encode("utf-8"), digest_size=8).digest()
    return to_base36(int.from_bytes(digest, "big"))


HASH_STRATEGIES: dict[str, Callable[[str], str]] = {
    "rolling32": rolling32,
    "blake2b64": blake2b64,
}

DEFAULT_ALGORITHM = "rolling32"


def get_strategy(algorithm: str) -> Callable[[str], str]:
    """Look up a hash strategy by name."""
    try:
        return HASH_STRATEGIES[algorithm]
    except KeyError:
        raise ValueError(
            f"Unknown fingerprint algorithm '{algorithm}'. "
            f"Expected one of: {', '.join(sorted(HASH_STRATEGIES))}"
        ) from None


# ============================================================================
# Public API
# ============================================================================


def thread_key_text(record: ExternalRecord) -> str:
    return DELIMITER.join(coerce_field(v) for v in record.identity_fields())


def row_hash_text(record: ExternalRecord) -> str:
    return DELIMITER.join(coerce_field(v) for v in record.all_fields())


def thread_key(record: ExternalRecord, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Identity fingerprint: same logical issue regardless of date or row."""
    return get_strategy(algorithm)(thread_key_text(record))


def row_hash(record: ExternalRecord, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Change-detection fingerprint over all columns including date."""
    return get_strategy(algorithm)(row_hash_text(record))


class Fingerprinter:
    """Binds a hash strategy so callers don't pass the algorithm around."""

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM) -> None:
        self.algorithm = algorithm
        self._hash = get_strategy(algorithm)

    def thread_key(self, record: ExternalRecord) -> str:
        return self._hash(thread_key_text(record))

    def row_hash(self, record: ExternalRecord) -> str:
        return self._hash(row_hash_text(record))
