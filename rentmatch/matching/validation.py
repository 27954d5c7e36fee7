from __future__ import annotations

import logging

from .errors import InvalidPreferenceStateError
from .models import Preferences

logger = logging.getLogger(__name__)

_RANGES: tuple[tuple[str, str, str], ...] = (
    ("price", "min_price", "max_price"),
    ("property", "min_bedrooms", "max_bedrooms"),
    ("property", "min_bathrooms", "max_bathrooms"),
)


def validate_preferences(preferences: Preferences) -> list[InvalidPreferenceStateError]:
    """Return every malformed range in *preferences* (empty when all are usable)."""
    issues: list[InvalidPreferenceStateError] = []
    for category, low_field, high_field in _RANGES:
        low = getattr(preferences, low_field)
        high = getattr(preferences, high_field)
        if low is not None and high is not None and low > high:
            issues.append(
                InvalidPreferenceStateError(
                    category, low_field, f"{low_field}={low} exceeds {high_field}={high}"
                )
            )
    if (
        preferences.move_in_date is not None
        and preferences.move_out_date is not None
        and preferences.move_out_date < preferences.move_in_date
    ):
        issues.append(
            InvalidPreferenceStateError(
                "availability", "move_out_date", "move-out date precedes move-in date"
            )
        )
    return issues


def invalid_fields(preferences: Preferences) -> set[str]:
    """Field names of the lower bound (or date) of each malformed range."""
    issues = validate_preferences(preferences)
    for issue in issues:
        logger.warning("Skipping malformed preference for user %s: %s", preferences.user_id, issue)
    return {issue.field for issue in issues}


def invalid_categories(preferences: Preferences) -> set[str]:
    """Scoring categories that must be skipped for *preferences*.

    Only the price range and the move dates disqualify a whole category; a
    malformed bedroom or bathroom range just drops that factor.
    """
    return {
        issue.category
        for issue in validate_preferences(preferences)
        if issue.category in ("price", "availability")
    }
