"""
Health transitions - Decides when a probe result is worth a notification.

Only changes of state notify: the first failure, and the first pass after
a failure. Sustained failures and passes stay quiet.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from endpoint_alerter.health.checks import fingerprint
from endpoint_alerter.health.models import Outcome, Status
from endpoint_alerter.health.store import ResultStore, StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    """What happened to one probe's recorded state."""

    identity: str
    previous: Status
    current: Status
    notified: bool

    @property
    def changed(self) -> bool:
        return self.previous is not self.current


def next_status(previous: Status, observed: Status) -> Optional[Status]:
    """
    Decide which status to record for an observation.

    A pass with no history is not recorded, so a probe that never failed
    leaves no entry in the store.

    Args:
        previous: Stored status before this observation
        observed: Status of the fresh outcome (PASS or FAIL)

    Returns:
        Status to persist, or None when nothing changes (and nobody is told)
    """
    if observed is Status.FAIL:
        return None if previous is Status.FAIL else Status.FAIL
    if observed is Status.PASS:
        return Status.PASS if previous is Status.FAIL else None
    raise ValueError(f"Cannot record an observation of {observed!r}")


class TransitionEngine:
    """
    Applies outcomes to the result store and notifies on transitions.

    The notifier only needs a notify(message) method. Delivery failures are
    logged and never affect the recorded state.
    """

    def __init__(self, store: ResultStore, notifier):
        self.store = store
        self.notifier = notifier

    def process(self, identity: str, outcome: Outcome) -> Transition:
        """
        Record an outcome and notify if the probe changed state.

        Args:
            identity: Probe identity ("<METHOD> <url>")
            outcome: Fresh outcome of the probe

        Returns:
            Transition describing the previous and current status
        """
        key = fingerprint(identity)

        def decide(previous: Status) -> Optional[Status]:
            return next_status(previous, outcome.status)

        try:
            previous = self.store.compare_and_set(key, decide)
        except StoreError as e:
            # A possible duplicate alert beats a lost one
            logger.error("Result store unavailable for %s: %s", identity, e)
            previous = Status.UNKNOWN

        new_status = next_status(previous, outcome.status)
        if new_status is None:
            return Transition(identity, previous, previous, notified=False)

        logger.info(
            "%s changed state: %s -> %s", identity, previous.value, new_status.value
        )
        notified = self._deliver(outcome.message)
        return Transition(identity, previous, new_status, notified=notified)

    def _deliver(self, message: str) -> bool:
        try:
            return bool(self.notifier.notify(message))
        except Exception as e:  # pylint: disable=broad-except
            logger.error("Notification failed: %s", e, exc_info=True)
            return False
