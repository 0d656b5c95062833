"""
Time-windowed record of listing rows the bot has already looked at.

Each row id maps to the last time it was rendered on a listing page. A row
counts as new when it has never been seen or was last seen longer ago than
the TTL, so a flat that drops off the portal and is re-listed later is
treated as fresh even if a request was filed for it before.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

# records older than ttl * PRUNE_FACTOR are dropped on persist
PRUNE_FACTOR = 10


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class SeenStore:
    def __init__(self, path: str | Path, ttl: timedelta | None, clock=utcnow):
        self.path = Path(path)
        self.ttl = ttl
        self.clock = clock
        self._seen: dict[str, datetime] = {}

    def __len__(self):
        return len(self._seen)

    def __contains__(self, item_id):
        return item_id in self._seen

    def last_seen(self, item_id: str) -> datetime | None:
        return self._seen.get(item_id)

    def is_new(self, item_id: str) -> bool:
        if not self.ttl:
            return True
        last = self._seen.get(item_id)
        if last is None:
            return True
        return self.clock() - last > self.ttl

    def mark_seen(self, item_id: str) -> None:
        self._seen[item_id] = self.clock()

    def prune(self, older_than: timedelta) -> int:
        """Forget records last seen before now - older_than. Returns how many."""
        cutoff = self.clock() - older_than
        stale = [k for k, ts in self._seen.items() if ts < cutoff]
        for k in stale:
            del self._seen[k]
        return len(stale)

    def load(self) -> None:
        self._seen = {}
        if not self.path.exists():
            logger.info("No seen store at %s, starting empty", self.path)
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            seen = {}
            for item_id, ts in data.items():
                stamp = datetime.fromisoformat(ts)
                if stamp.tzinfo is None:
                    stamp = stamp.replace(tzinfo=timezone.utc)
                seen[str(item_id)] = stamp
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Seen store %s unreadable, starting empty: %s", self.path, e)
            return
        self._seen = seen
        logger.info("Loaded %d seen rows from %s", len(seen), self.path)

    def persist(self) -> None:
        if self.ttl:
            dropped = self.prune(self.ttl * PRUNE_FACTOR)
            if dropped:
                logger.info("Pruned %d stale seen rows", dropped)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(
                {k: ts.isoformat() for k, ts in sorted(self._seen.items())},
                f,
                ensure_ascii=False,
                indent=2,
            )
        os.replace(tmp_path, self.path)
