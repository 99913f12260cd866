"""
Pending recommendation store.

Holds the recommendations extracted from each response, keyed by request
id, until the user applies or rejects them, the chat is cleared, or they
expire. Request ids embed their creation time in milliseconds
(``req_<ms>_<suffix>``) so expiry needs no extra bookkeeping.

All methods are synchronous. On a single event loop every mutation
therefore completes within one turn and no caller can observe a
half-updated entry.
"""

import re
import secrets
import string
import time
from typing import Optional

from coderelay import config
from coderelay.tools.base import Recommendation
from coderelay.utils.logging import logger

REQUEST_ID_PATTERN = re.compile(r"^req_(\d+)_")
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def now_ms() -> int:
    return int(time.time() * 1000)


def new_request_id(timestamp_ms: Optional[int] = None) -> str:
    """Create a request id carrying ``timestamp_ms`` (defaults to now)."""
    stamp = now_ms() if timestamp_ms is None else timestamp_ms
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"req_{stamp}_{suffix}"


def request_timestamp(request_id: str) -> Optional[int]:
    """Millisecond timestamp embedded in ``request_id``, or None."""
    match = REQUEST_ID_PATTERN.match(request_id or "")
    return int(match.group(1)) if match else None


class RecommendationStore:
    """
    Maps request id -> ordered, path-unique recommendations.

    Entries are replaced wholesale, never edited in place, and an entry
    that loses its last recommendation is removed entirely.
    """

    def __init__(self):
        self._entries: dict[str, tuple[Recommendation, ...]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, request_id: str) -> bool:
        return request_id in self._entries

    def put(self, request_id: str, recommendations: list[Recommendation]) -> None:
        unique: dict[str, Recommendation] = {}
        for rec in recommendations:
            unique.setdefault(rec.file_path, rec)
        if not unique:
            self._entries.pop(request_id, None)
            return
        self._entries[request_id] = tuple(unique.values())
        logger.info(f"Stored {len(unique)} recommendation(s) for request {request_id}")

    def get(self, request_id: str) -> Optional[list[Recommendation]]:
        """Recommendations for ``request_id`` without consuming them; None if unknown."""
        entry = self._entries.get(request_id)
        return list(entry) if entry else None

    def find(self, request_id: str, file_path: str) -> Optional[Recommendation]:
        for rec in self._entries.get(request_id, ()):
            if rec.file_path == file_path:
                return rec
        return None

    def remove_one(self, request_id: str, file_path: str) -> bool:
        entry = self._entries.get(request_id)
        if not entry:
            return False
        remaining = tuple(rec for rec in entry if rec.file_path != file_path)
        if len(remaining) == len(entry):
            return False
        if remaining:
            self._entries[request_id] = remaining
        else:
            del self._entries[request_id]
        logger.info(f"Removed {file_path} from request {request_id}")
        return True

    def clear(self, request_id: str) -> bool:
        removed = self._entries.pop(request_id, None) is not None
        if removed:
            logger.info(f"Cleared recommendations for request {request_id}")
        return removed

    def clear_all(self) -> int:
        count = len(self._entries)
        self._entries = {}
        if count:
            logger.info(f"Cleared {count} pending recommendation set(s)")
        return count

    def sweep(
        self,
        now: Optional[int] = None,
        max_age_seconds: float = config.RECOMMENDATION_TTL_SECONDS,
    ) -> list[str]:
        """
        Drop entries whose request id is older than ``max_age_seconds``.

        ``now`` is in milliseconds. Ids without an embedded timestamp never
        expire. Returns the evicted request ids.
        """
        current = now_ms() if now is None else now
        max_age_ms = max_age_seconds * 1000
        expired = []
        for request_id in self._entries:
            stamp = request_timestamp(request_id)
            if stamp is not None and current - stamp > max_age_ms:
                expired.append(request_id)

        for request_id in expired:
            del self._entries[request_id]
            logger.info(f"Cleaned up old recommendations for request {request_id}")
        return expired

    def pending(self) -> dict[str, list[Recommendation]]:
        """Snapshot of every pending entry."""
        return {request_id: list(entry) for request_id, entry in self._entries.items()}
