"""Process-wide memoization of computed reports."""

import copy
import hashlib
import json
import logging
import threading
from collections import OrderedDict
from typing import Callable, Hashable, List, Optional, Tuple

from funnel_analytics.core.models import Activity, Contact, ReportConfig

logger = logging.getLogger(__name__)

CacheKey = Tuple[Optional[str], str, str, str]


def _digest(payload) -> str:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def fingerprint_contacts(contacts: List[Contact]) -> str:
    """SHA-256 of the canonical JSON form of the contacts."""
    return _digest([c.model_dump(mode="json") for c in contacts])


def fingerprint_inputs(
    contacts: List[Contact],
    activities: List[Activity],
    config: ReportConfig
) -> str:
    """SHA-256 of the canonical JSON form of the inputs and config."""
    return _digest({
        "contacts": [c.model_dump(mode="json") for c in contacts],
        "activities": [a.model_dump(mode="json") for a in activities],
        "config": config.model_dump(mode="json"),
    })


class ReportCache:
    """
    Thread-safe LRU cache of computed reports.

    Keys are (project_id, kind, granularity, fingerprint). The fingerprint
    changes whenever contacts, activities or config change, so stale entries
    are never served; invalidate() frees them early. Values are copied on
    the way in and out, so callers never share a cached report.
    """

    def __init__(self, max_entries: int = 256):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: "OrderedDict[CacheKey, object]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(
        kind: str,
        contacts: List[Contact],
        activities: List[Activity],
        config: ReportConfig,
        version: Optional[Hashable] = None
    ) -> CacheKey:
        """
        Build a cache key.

        `version` is a caller-supplied activities version; when given it
        replaces the activity part of the fingerprint. Contacts and config
        are always fingerprinted.
        """
        if version is not None:
            fingerprint = (
                f"version:{version}:{fingerprint_contacts(contacts)}:{config.model_dump_json()}"
            )
        else:
            fingerprint = fingerprint_inputs(contacts, activities, config)
        return (config.project_id, kind, config.granularity.value, fingerprint)

    def get(self, key: CacheKey):
        with self._lock:
            if key not in self._entries:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            value = self._entries[key]
        return copy.deepcopy(value)

    def put(self, key: CacheKey, value) -> None:
        stored = copy.deepcopy(value)
        with self._lock:
            self._entries[key] = stored
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def get_or_compute(self, key: CacheKey, compute: Callable[[], object]):
        """
        Return the cached value for key, computing and storing it on a miss.

        The computation runs outside the lock; concurrent misses on the same
        key may compute twice and the last result is kept.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"Report cache hit: {key[:3]}")
            return cached

        logger.debug(f"Report cache miss: {key[:3]}")
        value = compute()
        self.put(key, value)
        return value

    def invalidate(self, project_id: Optional[str]) -> int:
        """Drop every entry for a project. Returns the number removed."""
        with self._lock:
            stale = [key for key in self._entries if key[0] == project_id]
            for key in stale:
                del self._entries[key]
        logger.debug(f"Invalidated {len(stale)} cached report(s) for project {project_id}")
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
