"""Stable string hashing for dedup keys and change fingerprints."""

import json

_FNV_OFFSET_32 = 0x811C9DC5
_FNV_PRIME_32 = 0x01000193


def fnv1a_32(text: str) -> str:
    """32-bit FNV-1a over the UTF-8 bytes of ``text``, as 8 hex digits."""
    h = _FNV_OFFSET_32
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * _FNV_PRIME_32) & 0xFFFFFFFF
    return f"{h:08x}"


def canonical_json(value: object) -> str:
    """Serialization that does not depend on dict insertion order."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def schedule_fingerprint(schedule: dict | None) -> str:
    return fnv1a_32(canonical_json(schedule or {}))
