"""
Request-level matching operations.

``MatchingService`` wires the hard filter, scoring engine, ranking, cache,
media resolver and notifier together. Collaborators are injected so the host
application decides where properties and preferences come from.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from itertools import islice
from typing import Callable, Iterable, Iterator

from ..insights.aggregator import (
    compute_insights,
    compute_property_statistics,
    empty_insights,
)
from .cache import MatchCache, make_key
from .config import DEFAULT_MATCHING_CONFIG, MatchingConfig
from .data_store import PreferenceSource, PropertySource
from .errors import UserNotFoundError
from .filters import FilterSpec, apply_filters, build_filter_spec, passes_hard_filter
from .media import (
    DirectUrlResolver,
    MediaResolver,
    primary_media_url,
    resolve_many,
    resolve_property_media,
)
from .models import (
    MatchingInsights,
    MatchNotification,
    MatchResult,
    Preferences,
    Property,
    PropertyStatistics,
    RegenerationSummary,
    ScoredCandidate,
)
from .notifications import LoggingNotifier, Notifier, notify_batch
from .ranking import (
    SortBy,
    SortOrder,
    clamp_limit,
    clamp_threshold,
    high_score_matches,
    perfect_matches,
    rank_candidates,
    sort_candidates,
)
from .scoring import ScoringEngine, neutral_candidate

logger = logging.getLogger(__name__)


def _chunked(items: Iterable, size: int) -> Iterator[list]:
    it = iter(items)
    while True:
        chunk = list(islice(it, size))
        if not chunk:
            return
        yield chunk


class MatchingService:
    def __init__(
        self,
        properties: PropertySource,
        preferences: PreferenceSource,
        engine: ScoringEngine | None = None,
        cache: MatchCache | None = None,
        media: MediaResolver | None = None,
        notifier: Notifier | None = None,
        config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.properties = properties
        self.preferences = preferences
        self.engine = engine or ScoringEngine()
        self.cache = cache or MatchCache(ttl=config.cache_ttl_seconds)
        self.media = media or DirectUrlResolver(config)
        self.notifier = notifier or LoggingNotifier()
        self.config = config
        self._now = now or (lambda: datetime.now(timezone.utc))

    # ── helpers ──────────────────────────────────────────────────────────

    def _require_user(self, user_id: str) -> Preferences | None:
        """Preferences of *user_id* (``None`` when unset); unknown users raise."""
        if not user_id or not user_id.strip() or not self.preferences.user_exists(user_id):
            raise UserNotFoundError(user_id)
        return self.preferences.get_preferences(user_id)

    def _score_pool(self, prefs: Preferences, pool: int) -> list[ScoredCandidate]:
        spec = build_filter_spec(prefs)
        candidates = self.properties.list_candidates(spec, pool)
        logger.info("User %s: %d candidates after hard filter", prefs.user_id, len(candidates))
        return rank_candidates(self.engine.score_many(candidates, prefs, self._now()))

    def _ranked(self, user_id: str, prefs: Preferences | None) -> list[ScoredCandidate]:
        """Ranked candidate pool, shared by every per-user query."""
        pool = self.config.candidate_pool
        key = make_key("ranked", user_id, pool=pool)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        if prefs is None:
            logger.info("User %s has no preferences, returning most recent properties", user_id)
            recent = self.properties.list_candidates(FilterSpec(), pool)
            ranked = [neutral_candidate(p) for p in recent]
        else:
            ranked = self._score_pool(prefs, pool)
            if ranked:
                top = ranked[0]
                logger.debug(
                    "Top match for %s: %s (%.2f)", user_id, top.property.id, top.weighted_score
                )

        self.cache.set(key, ranked)
        return ranked

    def _results(self, scored: Iterable[ScoredCandidate]) -> list[MatchResult]:
        results = []
        for s in scored:
            result = MatchResult.from_candidate(s)
            result.property = resolve_property_media(s.property, self.media, self.config)
            result.primary_image_url = primary_media_url(result.property)
            results.append(result)
        return results

    # ── operations ───────────────────────────────────────────────────────

    def find_matches(self, user_id: str, limit: int | None = None) -> list[Property]:
        prefs = self._require_user(user_id)
        limit = clamp_limit(limit, self.config.default_limit, self.config.max_limit)

        key = make_key("matches", user_id, limit=limit)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Returning cached matches for user %s", user_id)
            return cached

        ranked = self._ranked(user_id, prefs)
        props = resolve_many((s.property for s in ranked[:limit]), self.media, self.config)
        self.cache.set(key, props)
        return props

    def detailed_matches(
        self,
        user_id: str,
        limit: int | None = None,
        include_insights: bool = False,
    ) -> list[MatchResult]:
        prefs = self._require_user(user_id)
        limit = clamp_limit(limit, self.config.default_detailed_limit, self.config.max_limit)

        key = make_key("detailed", user_id, limit=limit, insights=include_insights)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        results = self._results(self._ranked(user_id, prefs)[:limit])
        if include_insights:
            insights = self.insights(user_id)
            for r in results:
                r.insights = insights

        self.cache.set(key, results)
        return results

    def perfect_matches(self, user_id: str) -> list[Property]:
        prefs = self._require_user(user_id)
        key = make_key("perfect", user_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        perfect = perfect_matches(self._ranked(user_id, prefs))
        props = resolve_many((s.property for s in perfect), self.media, self.config)
        logger.info("User %s: %d perfect matches", user_id, len(props))
        self.cache.set(key, props)
        return props

    def high_score_matches(
        self,
        user_id: str,
        threshold: float | None = None,
        limit: int | None = None,
    ) -> list[MatchResult]:
        prefs = self._require_user(user_id)
        threshold = clamp_threshold(threshold, self.config.default_threshold)
        limit = clamp_limit(limit, self.config.default_limit, self.config.max_limit)

        key = make_key("high-score", user_id, threshold=threshold, limit=limit)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        hits = high_score_matches(self._ranked(user_id, prefs), threshold)
        results = self._results(hits[:limit])
        self.cache.set(key, results)
        return results

    def recommendations(self, user_id: str, limit: int | None = None) -> list[MatchResult]:
        """Top scored listings from a wider candidate pool.

        Users without preferences get no recommendations.
        """
        prefs = self._require_user(user_id)
        if prefs is None:
            return []
        limit = clamp_limit(limit, self.config.default_recommendations_limit, self.config.max_limit)

        key = make_key("recommendations", user_id, pool=self.config.recommendations_pool, limit=limit)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        ranked = self._score_pool(prefs, self.config.recommendations_pool)
        results = self._results(ranked[:limit])
        logger.info("User %s: %d personalized recommendations", user_id, len(results))
        self.cache.set(key, results)
        return results

    def search(
        self,
        user_id: str,
        filters: FilterSpec,
        sort_by: SortBy = "score",
        sort_order: SortOrder = "desc",
        limit: int | None = None,
    ) -> list[MatchResult]:
        """Ranked matches narrowed by explicit *filters* and re-sorted."""
        prefs = self._require_user(user_id)
        limit = clamp_limit(limit, self.config.default_limit, self.config.max_limit)

        key = make_key(
            "search", user_id, filters=repr(filters), sort_by=sort_by, order=sort_order, limit=limit
        )
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        ranked = self._ranked(user_id, prefs)
        keep = {p.id for p in apply_filters([s.property for s in ranked], filters)}
        narrowed = [s for s in ranked if s.property.id in keep]
        ordered = sort_candidates(narrowed, sort_by, sort_order, now=self._now())
        results = self._results(ordered[:limit])
        self.cache.set(key, results)
        return results

    def insights(self, user_id: str) -> MatchingInsights:
        prefs = self._require_user(user_id)
        if prefs is None:
            return empty_insights()

        key = make_key("insights", user_id, pool=self.config.insights_pool)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        insights = compute_insights(self._score_pool(prefs, self.config.insights_pool))
        insights.property_statistics = self.property_statistics()
        self.cache.set(key, insights)
        return insights

    def property_statistics(self) -> PropertyStatistics:
        listings = self.properties.list_candidates(FilterSpec(), self.config.statistics_pool)
        return compute_property_statistics(listings)

    def regenerate_for_property(self, property_id: str) -> RegenerationSummary:
        """Score one property against every stored profile and notify good fits."""
        prop = self.properties.get_property(property_id)
        if prop is None:
            logger.warning("Cannot regenerate matches: property %s not found", property_id)
            return RegenerationSummary(property_id=property_id, found=False)

        summary = RegenerationSummary(property_id=property_id)
        affected: set[str] = set()
        now = self._now()
        threshold = self.config.default_threshold

        for chunk in _chunked(self.preferences.iter_preferences(), self.config.regenerate_chunk_size):
            notifications: list[MatchNotification] = []
            for prefs in chunk:
                summary.users_checked += 1
                try:
                    if not passes_hard_filter(prop, build_filter_spec(prefs)):
                        continue
                    scored = self.engine.score(prop, prefs, now)
                except Exception:
                    summary.users_failed += 1
                    logger.warning(
                        "Skipping user %s while regenerating %s", prefs.user_id, property_id,
                        exc_info=True,
                    )
                    continue

                if scored.perfect_match:
                    kind = "perfect"
                    summary.perfect_matches += 1
                elif scored.weighted_score >= threshold:
                    kind = "high-score"
                    summary.high_score_matches += 1
                else:
                    continue

                notifications.append(
                    MatchNotification(
                        user_id=prefs.user_id,
                        property=prop,
                        match_score=round(scored.weighted_score, 2),
                        reasons=scored.reasons,
                        kind=kind,
                        category_scores=scored.category_scores,
                    )
                )
                affected.add(prefs.user_id)

            summary.notifications_sent += notify_batch(self.notifier, notifications)

        for user_id in affected:
            self.cache.invalidate_user(user_id)
        self.cache.invalidate_property(property_id)

        logger.info(
            "Regenerated matches for %s: checked=%d perfect=%d high=%d sent=%d",
            property_id,
            summary.users_checked,
            summary.perfect_matches,
            summary.high_score_matches,
            summary.notifications_sent,
        )
        return summary

    def preferences_updated(self, user_id: str) -> int:
        return self.cache.invalidate_user(user_id)

    def property_updated(self, property_id: str) -> None:
        self.cache.invalidate_property(property_id)

    def cache_stats(self) -> dict:
        return self.cache.stats()
