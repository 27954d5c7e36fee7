from __future__ import annotations

from dataclasses import dataclass

from .models import CategoryScores


@dataclass(frozen=True)
class PerfectMatchPolicy:
    """Rule deciding when a scored candidate counts as a "perfect match".

    Default: at least two of the required categories (price, property) score
    ``>= required_min_score``, some category scores ``>= any_category_min_score``
    and the weighted score itself is at least ``min_weighted_score``. Pass a
    different instance to the scoring engine to change the rule.
    """

    required_categories: tuple[str, ...] = ("price", "property")
    required_min_score: float = 90.0
    min_required_hits: int = 2
    any_category_min_score: float = 80.0
    min_weighted_score: float = 80.0

    def is_perfect(self, scores: CategoryScores, weighted_score: float) -> bool:
        values = scores.as_dict()
        hits = sum(
            1 for c in self.required_categories if values.get(c, 0.0) >= self.required_min_score
        )
        return (
            hits >= self.min_required_hits
            and any(v >= self.any_category_min_score for v in values.values())
            and weighted_score >= self.min_weighted_score
        )


DEFAULT_PERFECT_MATCH_POLICY = PerfectMatchPolicy()
