"""
Reconciliation of incoming ratings.

Validates a rating received from a peer, keeps at most one rating per
reviewer in the local received collection, and raises the new-review alert
only when the reviewer had not rated us before.
"""

import math
from collections.abc import Mapping
from typing import Any

from .interfaces import NotificationKind, Notifier
from .logging_config import get_logger
from .models import ReceiveResult, Rating, is_valid_score
from .rating_store import RatingStore

# Module-level logger
logger = get_logger("reconciliation", category="rating")

REJECT_MISSING = "missing rating or sender"
REJECT_NOT_FOR_US = "rating is not addressed to the local participant"
REJECT_SCORE = "score out of range"


def _coerce_timestamp(value: object, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return int(value)


def _coerce_comment(value: object) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


class ReconciliationEngine:
    """Merges ratings from peers into the local received collection."""

    def __init__(self, store: RatingStore, notifier: Notifier | None = None):
        self.store: RatingStore = store
        self.notifier: Notifier | None = notifier

    def receive_rating(self, payload: Mapping[str, Any] | None, sender: str | None) -> ReceiveResult:
        """
        Validate and store a rating sent by a peer.

        Args:
            payload: Rating fields as decoded from the wire
            sender: Identity reported by the transport

        Returns:
            ReceiveResult; rejections are silent apart from debug logging
        """
        if not isinstance(payload, Mapping) or not payload or not sender:
            return self._reject(REJECT_MISSING, sender)

        if payload.get("driver") != self.store.local_identity:
            return self._reject(REJECT_NOT_FOR_US, sender)

        score = payload.get("rating")
        if not is_valid_score(score):
            return self._reject(REJECT_SCORE, sender)

        reviewer = payload.get("reviewer")
        if not isinstance(reviewer, str) or not reviewer:
            reviewer = sender

        self.store.store_reviewer_seen(reviewer)

        driver_name = payload.get("driverName")
        rating = Rating(
            driver=self.store.local_identity,
            reviewer=reviewer,
            rating=score,  # type: ignore[arg-type]
            comment=_coerce_comment(payload.get("comment")),
            driver_name=driver_name if isinstance(driver_name, str) else "",
            timestamp=_coerce_timestamp(payload.get("timestamp"), self.store.now()),
        )

        previous = self.store.replace_received(rating)
        is_new = previous is None
        logger.info(f"{'New' if is_new else 'Updated'} review from {reviewer}: {rating.rating} stars")

        if self.notifier is not None:
            if is_new:
                self.notifier.alert_new_review(rating)
            self.notifier.notify("New driver review received!", NotificationKind.SUCCESS)

        return ReceiveResult(accepted=True, is_new=is_new, rating=rating)

    def _reject(self, reason: str, sender: str | None) -> ReceiveResult:
        logger.debug(f"Rejected review from {sender!r}: {reason}")
        return ReceiveResult.rejected(reason)
