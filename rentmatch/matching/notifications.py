from __future__ import annotations

import logging
from typing import Iterable, Protocol

from .errors import ExternalResolutionError
from .models import MatchNotification, NotificationKind, Property

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Delivery transport for match notifications.

    Implementations raise ``ExternalResolutionError`` when delivery fails.
    """

    def notify(
        self,
        user_id: str,
        property: Property,
        score: float,
        reasons: list[str],
        kind: NotificationKind,
    ) -> None: ...


class LoggingNotifier:
    """Writes each match notification to the log; delivery happens elsewhere."""

    def notify(
        self,
        user_id: str,
        property: Property,
        score: float,
        reasons: list[str],
        kind: NotificationKind,
    ) -> None:
        logger.info(
            "%s match for user %s: property=%s score=%.2f reasons=%s",
            kind,
            user_id,
            property.id,
            score,
            "; ".join(reasons),
        )


def notify_batch(notifier: Notifier, notifications: Iterable[MatchNotification]) -> int:
    """Send every notification; failures are logged and dropped.

    Returns the number delivered without error.
    """
    sent = 0
    for n in notifications:
        try:
            notifier.notify(n.user_id, n.property, n.match_score, n.reasons, n.kind)
        except ExternalResolutionError:
            logger.warning(
                "Failed to notify user %s about property %s",
                n.user_id,
                n.property.id,
                exc_info=True,
            )
            continue
        except Exception:
            logger.exception("Notifier crashed for user %s", n.user_id)
            continue
        sent += 1
    if sent:
        logger.info("Sent %d match notifications", sent)
    return sent
