"""Cache key derivation"""
from typing import Any, Dict, Optional
import hashlib
import json


def _normalize_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    # Tagged so that 1 and "1" stay distinct; NUL never appears in real names
    return f"\x00{type(key).__name__}:{key!r}"


def _normalize(value: Any) -> Any:
    if isinstance(value, dict):
        return {_normalize_key(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return value


def canonicalize(params: Optional[Dict[str, Any]]) -> str:
    """
    Serialize parameters so that semantically identical calls match.

    Keys are turned into strings and sorted at every nesting level, so
    mappings with mixed key types serialize too; values that JSON cannot
    represent fall back to ``str``.
    """
    return json.dumps(
        _normalize(params or {}),
        sort_keys=True,
        separators=(",", ":"),
        default=str,
        ensure_ascii=False,
    )


def make_key(tool_id: str, params: Optional[Dict[str, Any]]) -> str:
    """``<tool id>:<sha256 of canonical params>``"""
    digest = hashlib.sha256(canonicalize(params).encode("utf-8")).hexdigest()
    return f"{tool_id}:{digest}"
