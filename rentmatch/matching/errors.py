from __future__ import annotations


class MatchingError(Exception):
    """Base class for matching failures surfaced by the service layer."""


class NotFoundError(MatchingError):
    pass


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"Unknown user: {user_id!r}")
        self.user_id = user_id


class PropertyNotFoundError(NotFoundError):
    def __init__(self, property_id: str) -> None:
        super().__init__(f"Unknown property: {property_id!r}")
        self.property_id = property_id


class InvalidPreferenceStateError(MatchingError):
    """A preference range that cannot be applied, e.g. ``min_price > max_price``.

    Never raised inside the scoring path; ``validate_preferences`` returns
    instances so callers can skip the affected category.
    """

    def __init__(self, category: str, field: str, detail: str) -> None:
        super().__init__(f"{field}: {detail}")
        self.category = category
        self.field = field
        self.detail = detail


class ExternalResolutionError(MatchingError):
    """Media or notification collaborator failure."""
