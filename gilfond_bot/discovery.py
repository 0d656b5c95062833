"""One pass over every house of the program: file requests for new flats."""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field

from .errors import RowUnavailableError, ScopeUnavailableError
from .models import ListingRow
from .notify import added_flat_message

logger = logging.getLogger(__name__)


def random_delay(max_seconds: float = 3.0):
    """Pause uniformly in [0, max_seconds) between two submissions."""

    def delay():
        time.sleep(random.random() * max_seconds)

    return delay


def no_delay():
    pass


@dataclass
class DiscoveryResult:
    scopes: int = 0
    rows_seen: int = 0
    added: list[ListingRow] = field(default_factory=list)


class DiscoveryRun:
    def __init__(self, portal, seen, notifier, rooms, program, delay=no_delay):
        self.portal = portal
        self.seen = seen
        self.notifier = notifier
        self.rooms = frozenset(rooms)
        self.program = program
        self.delay = delay

    def wanted(self, row: ListingRow) -> bool:
        return row.rooms in self.rooms and self.seen.is_new(row.id)

    def run(self) -> DiscoveryResult:
        result = DiscoveryResult()
        try:
            scopes = self.portal.listing_scopes(self.program)
        except ScopeUnavailableError as e:
            logger.info("Program %r not offered: %s", self.program, e)
            return result

        for scope in scopes:
            result.scopes += 1
            try:
                rows = self.portal.scope_rows(scope)
            except ScopeUnavailableError as e:
                logger.info("House %r has no listing: %s", scope, e)
                continue

            # closed rows stay unseen so they count as new once they open
            rows = [row for row in rows if row.available]
            selected = [row for row in rows if self.wanted(row)]
            logger.info("House %r: %d open rows, %d to add", scope, len(rows), len(selected))
            for row in selected:
                self.notifier.notify(added_flat_message(row))
                try:
                    self.portal.add_to_requests(row)
                except RowUnavailableError as e:
                    logger.warning("Flat %s not added: %s", row.number, e)
                    continue
                self.seen.mark_seen(row.id)
                result.added.append(row)
                self.delay()

            for row in rows:
                self.seen.mark_seen(row.id)
            result.rows_seen += len(rows)

        logger.info(
            "Discovery done: %d houses, %d rows, %d added",
            result.scopes,
            result.rows_seen,
            len(result.added),
        )
        return result
