"""
Property matching engine.

Responsibilities:
- Accept a tenant's stored preference profile.
- Hard-filter the property pool to candidates that satisfy non-negotiable constraints.
- Score candidates across six categories and combine them with dynamic weights.
- Rank, classify (perfect / high-score) and cache the results for API serialisation.
"""
