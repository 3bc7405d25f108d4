"""
Pydantic schemas for data validation and serialization.

This package defines Pydantic models used between the provider clients,
the loader, the orchestrator and the diagnostics API:

Schemas:
    market_data: Normalized provider records (rents, demographics, employment)
    sync: Sync requests, per-run parameters and results
    api: Diagnostics API response models

Usage:
    from schemas.market_data import EmploymentRecord
    from schemas.sync import SyncRequest, SyncResult
    from schemas.api import HealthCheckResponse

Example:
    result = SyncResult(source="BLS LAUS", successful=120, failed=1)
    for line in result.summary_lines():
        print(line)
"""

__all__ = [
    "api",
    "market_data",
    "sync",
]
