"""
Deterministic encoding for everything that gets hashed or signed.

Release authorizations, governance messages and snapshot commitments are all
computed as

    SHA256( domain_sep(label, version) || canonical_json(payload) )

so two parties that agree on a payload always agree on its digest, independent
of dict insertion order. Floats are not representable (amounts are integers).
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any


UINT256_MAX = 2**256 - 1

_DOMAIN_PREFIX = b"stakeledger:"
_HEX_RE = re.compile(r"[0-9a-fA-F]+")


def is_strict_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_text(s: str) -> None:
    # Lone surrogates have no UTF-8 encoding; encoders disagree on them.
    if any(0xD800 <= ord(ch) <= 0xDFFF for ch in s):
        raise TypeError("surrogate code points are not allowed in canonical encoding")


def _check_encodable(value: Any) -> None:
    if isinstance(value, float):
        raise TypeError("floats are not allowed in canonical encoding")
    if isinstance(value, str):
        _check_text(value)
    elif isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError("dict keys must be str for canonical encoding")
            _check_text(key)
            _check_encodable(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_encodable(item)


def canonical_json_bytes(value: Any) -> bytes:
    """UTF-8 JSON with sorted keys, no whitespace, no NaN and no floats."""
    _check_encodable(value)
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def domain_sep_bytes(label: str, version: int = 1) -> bytes:
    """`stakeledger:<label>:v<version>\\x00` (ASCII, NUL-terminated)."""
    if not isinstance(label, str) or not label:
        raise TypeError("label must be a non-empty str")
    if "\x00" in label:
        raise ValueError("label must not contain NUL")
    if not label.isascii():
        raise ValueError("label must be ASCII")
    if not is_strict_int(version) or version <= 0:
        raise ValueError("version must be a positive int")
    return _DOMAIN_PREFIX + f"{label}:v{version}".encode("ascii") + b"\x00"


def domain_digest(label: str, payload: Any, *, version: int = 1) -> bytes:
    return hashlib.sha256(domain_sep_bytes(label, version=version) + canonical_json_bytes(payload)).digest()


def _check_hex_body(body: str, *, nbytes: int, name: str) -> None:
    if not is_strict_int(nbytes) or nbytes <= 0:
        raise ValueError("nbytes must be a positive int")
    if len(body) != 2 * nbytes:
        raise ValueError(f"{name} must be {nbytes} bytes (hex length {2 * nbytes})")
    if not _HEX_RE.fullmatch(body):
        raise ValueError(f"{name} must be valid hex")


def hex_to_bytes_fixed(hex_str: str, *, nbytes: int, name: str) -> bytes:
    """Strict decode: `0x` prefix required, exact length."""
    if not isinstance(hex_str, str):
        raise TypeError(f"{name} must be a str")
    if not hex_str.startswith("0x"):
        raise ValueError(f"{name} must be 0x-prefixed")
    _check_hex_body(hex_str[2:], nbytes=nbytes, name=name)
    return bytes.fromhex(hex_str[2:])


def canonical_hex_fixed_allow_0x(hex_str: str, *, nbytes: int, name: str) -> str:
    """Lenient input (prefix optional, any case, surrounding space), canonical lowercase `0x...` output."""
    if not isinstance(hex_str, str):
        raise TypeError(f"{name} must be a str")
    body = hex_str.strip()
    if body[:2] in ("0x", "0X"):
        body = body[2:]
    _check_hex_body(body, nbytes=nbytes, name=name)
    return "0x" + body.lower()


def require_identifier(value: Any, *, name: str, max_len: int = 256) -> str:
    """Account, token and correlation ids: non-empty, trimmed, bounded."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str")
    if not value:
        raise ValueError(f"{name} must be non-empty")
    if value != value.strip():
        raise ValueError(f"{name} must not have surrounding whitespace")
    if len(value) > max_len:
        raise ValueError(f"{name} too long (max {max_len})")
    _check_text(value)
    return value
