from __future__ import annotations

import logging
from typing import Callable, Iterable, Protocol

from .config import DEFAULT_MATCHING_CONFIG, MatchingConfig
from .models import Property

logger = logging.getLogger(__name__)


class MediaResolver(Protocol):
    def resolve_url(self, media_key: str) -> str:
        """Return a fetchable URL for *media_key*.

        Errors are caught by ``resolve_property_media``, which falls back to
        the direct bucket URL.
        """
        ...


def direct_url(media_key: str, bucket: str, region: str) -> str:
    return f"https://{bucket}.s3.{region}.amazonaws.com/{media_key}"


class DirectUrlResolver:
    """Public bucket URLs with no signing."""

    def __init__(self, config: MatchingConfig = DEFAULT_MATCHING_CONFIG) -> None:
        self.bucket = config.media_bucket
        self.region = config.media_region

    def resolve_url(self, media_key: str) -> str:
        return direct_url(media_key, self.bucket, self.region)


class PresignedUrlResolver:
    """Signs media keys with *presign*, falling back to the direct bucket URL.

    *presign* is any callable taking a storage key and returning a URL, e.g.
    a bound ``generate_presigned_url`` wrapper from the host's storage client.
    """

    def __init__(
        self,
        presign: Callable[[str], str],
        config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
    ) -> None:
        self.presign = presign
        self.fallback = DirectUrlResolver(config)

    def resolve_url(self, media_key: str) -> str:
        try:
            return self.presign(media_key)
        except Exception:
            logger.warning(
                "Presigning failed for media %s, using direct URL", media_key, exc_info=True
            )
            return self.fallback.resolve_url(media_key)


def _safe_url(
    resolver: MediaResolver, media_key: str, fallback: str | None, config: MatchingConfig
) -> str | None:
    try:
        return resolver.resolve_url(media_key)
    except Exception:
        logger.warning(
            "Media resolver failed for %s, keeping fallback URL", media_key, exc_info=True
        )
        if fallback:
            return fallback
        return direct_url(media_key, config.media_bucket, config.media_region)


def resolve_property_media(
    prop: Property,
    resolver: MediaResolver,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
) -> Property:
    """Copy of *prop* with every media url resolved; *prop* itself is untouched.

    A resolver that raises never aborts the request: the existing url, or the
    direct bucket url, is used instead.
    """
    if not prop.media:
        return prop
    media = [
        m.model_copy(update={"url": _safe_url(resolver, m.s3_key, m.url, config)}) for m in prop.media
    ]
    return prop.model_copy(update={"media": media})


def resolve_many(
    properties: Iterable[Property],
    resolver: MediaResolver,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
) -> list[Property]:
    return [resolve_property_media(p, resolver, config) for p in properties]


def primary_media_url(prop: Property) -> str | None:
    """URL of the first media item by ``order_index``, if it has one."""
    if not prop.media:
        return None
    first = min(prop.media, key=lambda m: m.order_index)
    return first.url
