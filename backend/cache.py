"""Simple two-layer cache (memory + JSON files) with per-namespace TTL."""

from __future__ import annotations

import hashlib
import json
import time
from pathlib import Path
from typing import Any, Dict

_MEMORY_CACHE: Dict[str, tuple[float, Any]] = {}


def make_key(namespace: str, params: Dict[str, Any]) -> str:
    """Deterministic key; the namespace prefix lets one namespace be cleared alone."""
    payload = json.dumps({"namespace": namespace, "params": params}, sort_keys=True, ensure_ascii=False)
    return f"{namespace}-{hashlib.sha1(payload.encode('utf-8')).hexdigest()}"


def cache_get(cache_dir: str, key: str) -> Any | None:
    """Try to read value from in-memory cache first, then from filesystem."""
    now = time.time()
    memory_entry = _MEMORY_CACHE.get(key)
    if memory_entry:
        expires_at, value = memory_entry
        if expires_at > now:
            print(f"[CACHE] HIT memory {key}")
            return value
        _MEMORY_CACHE.pop(key, None)

    path = _cache_path(cache_dir, key)
    if not path.exists():
        print(f"[CACHE] MISS disk {key}")
        return None
    try:
        with path.open("r", encoding="utf-8") as fp:
            payload = json.load(fp)
    except (json.JSONDecodeError, OSError):
        path.unlink(missing_ok=True)
        print(f"[CACHE] CORRUPT {key}")
        return None

    expires_at = payload.get("expires_at", 0)
    if expires_at <= now:
        path.unlink(missing_ok=True)
        print(f"[CACHE] STALE {key}")
        return None

    value = payload.get("value")
    _MEMORY_CACHE[key] = (expires_at, value)
    print(f"[CACHE] HIT disk {key}")
    return value


def cache_set(cache_dir: str, key: str, value: Any, ttl_seconds: int) -> None:
    """Persist value in memory and disk caches."""
    expires_at = time.time() + ttl_seconds
    _MEMORY_CACHE[key] = (expires_at, value)

    path = _cache_path(cache_dir, key)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"expires_at": expires_at, "value": value}
    tmp_path = path.with_suffix(".tmp")
    with tmp_path.open("w", encoding="utf-8") as fp:
        json.dump(payload, fp, ensure_ascii=False)
    tmp_path.replace(path)
    print(f"[CACHE] STORE {key} ttl={ttl_seconds}s")


def cache_clear(cache_dir: str, namespace: str) -> int:
    """Drop every entry of ``namespace`` from both layers; returns the disk count."""
    prefix = f"{namespace}-"
    for key in [k for k in _MEMORY_CACHE if k.startswith(prefix)]:
        _MEMORY_CACHE.pop(key, None)

    removed = 0
    root = _cache_root(cache_dir)
    if root.exists():
        for path in root.glob(f"{prefix}*.json"):
            path.unlink(missing_ok=True)
            removed += 1
    print(f"[CACHE] CLEAR {namespace} removed={removed}")
    return removed


def cache_info(cache_dir: str, namespace: str) -> dict[str, int]:
    root = _cache_root(cache_dir)
    files = list(root.glob(f"{namespace}-*.json")) if root.exists() else []
    return {
        "entry_count": len(files),
        "size_bytes": sum(p.stat().st_size for p in files),
    }


def _cache_root(cache_dir: str) -> Path:
    return Path(cache_dir).expanduser().resolve()


def _cache_path(cache_dir: str, key: str) -> Path:
    return _cache_root(cache_dir) / f"{key}.json"
