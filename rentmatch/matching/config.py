from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class MatchingConfig:
    """
    Configuration for the matching pipeline and its cache.
    """

    cache_ttl_seconds: float = float(os.getenv("MATCHING_CACHE_TTL", "300"))
    candidate_pool: int = int(os.getenv("MATCHING_CANDIDATE_POOL", "100"))
    insights_pool: int = int(os.getenv("MATCHING_INSIGHTS_POOL", "200"))
    recommendations_pool: int = int(os.getenv("MATCHING_RECOMMENDATIONS_POOL", "200"))
    statistics_pool: int = int(os.getenv("MATCHING_STATISTICS_POOL", "1000"))
    max_limit: int = 200
    default_limit: int = 20
    default_detailed_limit: int = 10
    default_recommendations_limit: int = 10
    default_threshold: float = 80.0
    regenerate_chunk_size: int = int(os.getenv("MATCHING_REGENERATE_CHUNK", "500"))
    media_bucket: str = os.getenv("AWS_S3_BUCKET_NAME", "rentmatch-media")
    media_region: str = os.getenv("AWS_REGION", "eu-west-2")
    data_dir: Path = Path(
        os.getenv(
            "MATCHING_DATA_DIR",
            str(Path(__file__).resolve().parent.parent / "data"),
        )
    )

    @property
    def properties_path(self) -> Path:
        return self.data_dir / "properties.json"

    @property
    def preferences_path(self) -> Path:
        return self.data_dir / "preferences.json"


DEFAULT_MATCHING_CONFIG = MatchingConfig()
