"""
Priority reconciliation on the requests page.

Every request filed by the bot shows up in red with an empty priority
field. The portal may reject part of a batch save and re-render a different
set of red rows, so each round re-reads the unset fields from the page
instead of trusting a counter, and stops once none is left.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .errors import PriorityNotConvergedError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 20


@dataclass
class ReconcileResult:
    rounds: int = 0
    assigned: list[int] = field(default_factory=list)


class PriorityReconciler:
    """
    page must provide open_requests(), assigned_priorities(),
    unset_priority_fields(), set_priority(field, value) and save_priorities().
    """

    def __init__(self, page, max_rounds: int = DEFAULT_MAX_ROUNDS):
        self.page = page
        self.max_rounds = max_rounds

    def run(self) -> ReconcileResult:
        self.page.open_requests()
        current_max = max(self.page.assigned_priorities(), default=0)
        result = ReconcileResult()
        limit = None

        while True:
            unset = self.page.unset_priority_fields()
            if not unset:
                break
            if limit is None:
                # a save that keeps at least one value needs one round per entry
                limit = max(self.max_rounds, len(unset))
            if result.rounds >= limit:
                raise PriorityNotConvergedError(result.rounds, len(unset))

            result.rounds += 1
            # leave room for values a partially applied save may have kept
            current_max += result.rounds
            logger.info("Priority round %d: %d unset entries", result.rounds, len(unset))
            for entry in unset:
                current_max += 1
                self.page.set_priority(entry, current_max)
                result.assigned.append(current_max)
            self.page.save_priorities()

        if result.rounds:
            logger.info(
                "Priorities set in %d round(s), last value %d",
                result.rounds,
                result.assigned[-1],
            )
        return result
