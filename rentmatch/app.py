from __future__ import annotations

from datetime import date

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .auth.dependencies import require_user
from .logging_config import get_logger
from .matching.config import DEFAULT_MATCHING_CONFIG
from .matching.data_store import InMemoryPreferenceSource, InMemoryPropertySource
from .matching.errors import NotFoundError, PropertyNotFoundError
from .matching.filters import custom_filter_spec
from .matching.models import (
    MatchingInsights,
    MatchResult,
    Property,
    RegenerationSummary,
)
from .matching.ranking import SortBy, SortOrder
from .matching.service import MatchingService

logger = get_logger(__name__)

app = FastAPI(title="RentMatch Matching API", version="1.0.0")

_service: MatchingService | None = None


def get_matching_service() -> MatchingService:
    """Process-wide service over the seed data directory, built on first use."""
    global _service
    if _service is None:
        _service = MatchingService(
            properties=InMemoryPropertySource.from_config(DEFAULT_MATCHING_CONFIG),
            preferences=InMemoryPreferenceSource.from_config(DEFAULT_MATCHING_CONFIG),
            config=DEFAULT_MATCHING_CONFIG,
        )
    return _service


@app.exception_handler(NotFoundError)
def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# ── Matching endpoints ───────────────────────────────────────────────────


@app.get("/matching/matches", response_model=list[Property])
def matches(
    limit: int | None = None,
    user_id: str = Depends(require_user),
    service: MatchingService = Depends(get_matching_service),
) -> list[Property]:
    return service.find_matches(user_id, limit)


@app.get("/matching/detailed-matches", response_model=list[MatchResult])
def detailed_matches(
    limit: int | None = None,
    include_insights: bool = False,
    user_id: str = Depends(require_user),
    service: MatchingService = Depends(get_matching_service),
) -> list[MatchResult]:
    return service.detailed_matches(user_id, limit, include_insights)


@app.get("/matching/perfect-matches", response_model=list[Property])
def perfect_matches(
    user_id: str = Depends(require_user),
    service: MatchingService = Depends(get_matching_service),
) -> list[Property]:
    return service.perfect_matches(user_id)


@app.get("/matching/high-score-matches", response_model=list[MatchResult])
def high_score_matches(
    threshold: float | None = None,
    limit: int | None = None,
    user_id: str = Depends(require_user),
    service: MatchingService = Depends(get_matching_service),
) -> list[MatchResult]:
    return service.high_score_matches(user_id, threshold, limit)


@app.get("/matching/recommendations", response_model=list[MatchResult])
def recommendations(
    limit: int | None = None,
    user_id: str = Depends(require_user),
    service: MatchingService = Depends(get_matching_service),
) -> list[MatchResult]:
    return service.recommendations(user_id, limit)


@app.get("/matching/search", response_model=list[MatchResult])
def search(
    min_price: float | None = None,
    max_price: float | None = None,
    min_bedrooms: int | None = None,
    max_bedrooms: int | None = None,
    property_types: list[str] = Query(default=[]),
    furnishing: str | None = None,
    features: list[str] = Query(default=[]),
    available_from: date | None = None,
    available_to: date | None = None,
    is_btr: bool | None = None,
    has_coordinates: bool = False,
    sort_by: SortBy = "score",
    sort_order: SortOrder = "desc",
    limit: int | None = None,
    user_id: str = Depends(require_user),
    service: MatchingService = Depends(get_matching_service),
) -> list[MatchResult]:
    filters = custom_filter_spec(
        min_price=min_price,
        max_price=max_price,
        min_bedrooms=min_bedrooms,
        max_bedrooms=max_bedrooms,
        property_types=property_types,
        furnishing=furnishing,
        features=features,
        available_from=available_from,
        available_to=available_to,
        is_btr=is_btr,
        has_coordinates=has_coordinates,
    )
    return service.search(user_id, filters, sort_by, sort_order, limit)


@app.get("/matching/insights", response_model=MatchingInsights)
def insights(
    user_id: str = Depends(require_user),
    service: MatchingService = Depends(get_matching_service),
) -> MatchingInsights:
    return service.insights(user_id)


@app.post("/matching/generate-matches/{property_id}", response_model=RegenerationSummary)
def generate_matches(
    property_id: str,
    user_id: str = Depends(require_user),
    service: MatchingService = Depends(get_matching_service),
) -> RegenerationSummary:
    logger.info("User %s requested match regeneration for %s", user_id, property_id)
    summary = service.regenerate_for_property(property_id)
    if not summary.found:
        raise PropertyNotFoundError(property_id)
    return summary


@app.get("/matching/cache/stats")
def cache_stats(
    user_id: str = Depends(require_user),
    service: MatchingService = Depends(get_matching_service),
) -> dict:
    return service.cache_stats()
