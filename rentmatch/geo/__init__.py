"""
Geographic helpers for location scoring.

Responsibilities:
- Compute great-circle distances between coordinates (haversine).
- Hold the fixed table of named-area coordinates used as neighbourhood proxies.
- Resolve a coordinate to its nearest named area for explanations.
"""
