#------------------------------------------------------------
#                      cache_service.py
#       Two-tier response cache: a bounded in-process map
#         in front of a persistent sqlite row store.

import copy
import json
import os
import sqlite3
import sys
import time
from typing import Any, Callable, Dict, List, Optional, Tuple
from ..config import CACHE_TABLE_NAME, DEFAULT_CACHE_TTL_SECONDS, MEMORY_CACHE_MAX_ENTRIES
from ..models import CacheEntry

NULL_DATA_WARNING_TEMPLATE = "WARNING: attempted to cache empty data for {service}.{method}; skipping cache storage"
BACKEND_ERROR_TEMPLATE = "WARNING: persistent cache {operation} failed for {key!r}: {error}"

CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {CACHE_TABLE_NAME} (
    cache_key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    created_at REAL NOT NULL,
    expires_at REAL NOT NULL
)
"""
CREATE_INDEX_SQL = f"CREATE INDEX IF NOT EXISTS idx_{CACHE_TABLE_NAME}_expires ON {CACHE_TABLE_NAME} (expires_at)"

# This function does build the composite cache key for a request.
# Structured params are JSON-encoded with sorted keys.
def generate_key(service: str, method: str, params: Any) -> str:
    if isinstance(params, (dict, list, tuple)):
        param_string = json.dumps(params, sort_keys=True, separators=(",", ":"))
    else:
        param_string = str(params)
    return f"{service}_{method}_{param_string}"

class MemoryTier:

    # This function does initialize an insertion-ordered entry map.
    # A max_entries of None leaves the tier unbounded.
    def __init__(self, max_entries: Optional[int] = MEMORY_CACHE_MAX_ENTRIES, clock: Callable[[], float] = time.time):
        self.max_entries = max_entries
        self.clock = clock
        self.entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self.entries)

    # This function does return a live entry's data or None.
    # Expired entries are removed on read.
    def get(self, key: str) -> Any:
        entry = self.entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self.clock()):
            del self.entries[key]
            return None
        return copy.deepcopy(entry.data)

    # This function does store an entry, evicting the oldest insert.
    # Reads never bump an entry's position.
    def set(self, key: str, data: Any, ttl: float) -> None:
        self.entries.pop(key, None)
        if self.max_entries is not None and len(self.entries) >= self.max_entries:
            oldest_key = next(iter(self.entries))
            del self.entries[oldest_key]

        now = self.clock()
        self.entries[key] = CacheEntry(key=key, data=copy.deepcopy(data), created_at=now, expires_at=now + ttl)

    def delete(self, key: str) -> None:
        self.entries.pop(key, None)

    def delete_matching(self, pattern: str) -> int:
        matches = [key for key in self.entries if pattern in key]
        for key in matches:
            del self.entries[key]
        return len(matches)

    def clear(self) -> None:
        self.entries.clear()

    def cleanup(self) -> int:
        now = self.clock()
        expired = [key for key, entry in self.entries.items() if entry.is_expired(now)]
        for key in expired:
            del self.entries[key]
        return len(expired)

class SqliteCacheBackend:

    # This function does open the sqlite store and ensure its schema.
    # Parent directories are created for file-backed databases.
    def __init__(self, path: str = ":memory:"):
        self.path = path
        if path != ":memory:":
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
        self.connection = sqlite3.connect(path)
        with self.connection:
            self.connection.execute(CREATE_TABLE_SQL)
            self.connection.execute(CREATE_INDEX_SQL)

    def get(self, key: str) -> Optional[Tuple[str, float]]:
        row = self.connection.execute(
            f"SELECT data, expires_at FROM {CACHE_TABLE_NAME} WHERE cache_key = ?",
            (key,),
        ).fetchone()
        return (row[0], row[1]) if row else None

    def upsert(self, key: str, data: str, created_at: float, expires_at: float) -> None:
        with self.connection:
            self.connection.execute(
                f"INSERT INTO {CACHE_TABLE_NAME} (cache_key, data, created_at, expires_at) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(cache_key) DO UPDATE SET data = excluded.data, "
                "created_at = excluded.created_at, expires_at = excluded.expires_at",
                (key, data, created_at, expires_at),
            )

    def delete(self, key: str) -> None:
        with self.connection:
            self.connection.execute(f"DELETE FROM {CACHE_TABLE_NAME} WHERE cache_key = ?", (key,))

    def delete_like(self, pattern: str) -> int:
        escaped = pattern.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        with self.connection:
            cursor = self.connection.execute(
                f"DELETE FROM {CACHE_TABLE_NAME} WHERE cache_key LIKE ? ESCAPE '\\'",
                (f"%{escaped}%",),
            )
        return cursor.rowcount

    def delete_expired(self, now: float) -> int:
        with self.connection:
            cursor = self.connection.execute(f"DELETE FROM {CACHE_TABLE_NAME} WHERE expires_at < ?", (now,))
        return cursor.rowcount

    def delete_all(self) -> None:
        with self.connection:
            self.connection.execute(f"DELETE FROM {CACHE_TABLE_NAME}")

    def expirations(self) -> List[float]:
        return [row[0] for row in self.connection.execute(f"SELECT expires_at FROM {CACHE_TABLE_NAME}")]

    def close(self) -> None:
        self.connection.close()

class CacheStore:

    # This function does wire the memory tier to a persistent backend.
    # Any object with the SqliteCacheBackend methods can stand in.
    def __init__(
        self,
        backend=None,
        default_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        max_memory_entries: int = MEMORY_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ):
        self.backend = backend if backend is not None else SqliteCacheBackend()
        self.default_ttl = default_ttl
        self.clock = clock
        self.memory = MemoryTier(max_memory_entries, clock)
        self.hits = 0
        self.misses = 0

    # This function does read through memory then the persistent tier.
    # Persistent hits are promoted into memory before returning.
    def get(self, service: str, method: str, params: Any) -> Any:
        key = generate_key(service, method, params)

        cached = self.memory.get(key)
        if cached is not None:
            self.hits += 1
            return cached

        row = self._get_persistent(key)
        if row is not None:
            cached, expires_at = row
            self.memory.set(key, cached, min(self.default_ttl, expires_at - self.clock()))
            self.hits += 1
            return cached

        self.misses += 1
        return None

    # This function does write data to both tiers.
    # None payloads are skipped so failures never look like answers.
    def set(self, service: str, method: str, params: Any, data: Any, ttl: Optional[float] = None) -> None:
        if data is None:
            print(NULL_DATA_WARNING_TEMPLATE.format(service=service, method=method), file=sys.stderr)
            return

        key = generate_key(service, method, params)
        ttl = self.default_ttl if ttl is None else ttl
        self.memory.set(key, data, ttl)

        now = self.clock()
        try:
            self.backend.upsert(key, json.dumps(data), now, now + ttl)
        except Exception as error:
            print(BACKEND_ERROR_TEMPLATE.format(operation="write", key=key, error=error), file=sys.stderr)

    def invalidate(self, service: str, method: str, params: Any) -> None:
        key = generate_key(service, method, params)
        self.memory.delete(key)
        self._delete_persistent(key)

    # This function does drop every entry whose key contains pattern.
    # Used to clear all cached data for one username.
    def invalidate_pattern(self, pattern: str) -> None:
        self.memory.delete_matching(pattern)
        try:
            self.backend.delete_like(pattern)
        except Exception as error:
            print(BACKEND_ERROR_TEMPLATE.format(operation="pattern delete", key=pattern, error=error), file=sys.stderr)

    def clear_all(self) -> None:
        self.memory.clear()
        try:
            self.backend.delete_all()
        except Exception as error:
            print(BACKEND_ERROR_TEMPLATE.format(operation="clear", key="*", error=error), file=sys.stderr)

    def cleanup_memory(self) -> int:
        return self.memory.cleanup()

    def cleanup_persistent(self) -> int:
        try:
            return self.backend.delete_expired(self.clock())
        except Exception as error:
            print(BACKEND_ERROR_TEMPLATE.format(operation="cleanup", key="*", error=error), file=sys.stderr)
            return 0

    def memory_stats(self) -> Dict[str, Any]:
        now = self.clock()
        valid = sum(1 for entry in self.memory.entries.values() if not entry.is_expired(now))
        lookups = self.hits + self.misses
        return {
            "total": len(self.memory),
            "valid": valid,
            "expired": len(self.memory) - valid,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / lookups if lookups else 0.0,
        }

    def persistent_stats(self) -> Dict[str, int]:
        try:
            expirations = self.backend.expirations()
        except Exception as error:
            print(BACKEND_ERROR_TEMPLATE.format(operation="stats", key="*", error=error), file=sys.stderr)
            return {"total": 0, "valid": 0, "expired": 0}
        now = self.clock()
        valid = sum(1 for expires_at in expirations if expires_at > now)
        return {"total": len(expirations), "valid": valid, "expired": len(expirations) - valid}

    def export_memory(self) -> Dict[str, Dict[str, Any]]:
        return {key: entry.to_dict() for key, entry in self.memory.entries.items()}

    # This function does list the common lookups not yet cached.
    # Callers can use it to warm the cache before rendering.
    def preload_user_data(self, github_username: str, leetcode_username: str) -> List[Tuple[str, str, str]]:
        tasks = [
            ("github", "profile", github_username),
            ("github", "repositories", f"{github_username}_100"),
            ("github", "languages", github_username),
            ("leetcode", "profile", leetcode_username),
            ("leetcode", "contest", leetcode_username),
            ("leetcode", "problemstats", leetcode_username),
        ]
        return [task for task in tasks if self.get(*task) is None]

    def _get_persistent(self, key: str) -> Any:
        try:
            row = self.backend.get(key)
            if row is None:
                return None
            data, expires_at = row
            if self.clock() >= expires_at:
                self.backend.delete(key)
                return None
            return json.loads(data), expires_at
        except Exception as error:
            print(BACKEND_ERROR_TEMPLATE.format(operation="read", key=key, error=error), file=sys.stderr)
            return None

    def _delete_persistent(self, key: str) -> None:
        try:
            self.backend.delete(key)
        except Exception as error:
            print(BACKEND_ERROR_TEMPLATE.format(operation="delete", key=key, error=error), file=sys.stderr)
