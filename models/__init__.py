"""
SQLAlchemy ORM models for database tables.

This package defines the database schema using SQLAlchemy ORM models:

Models:
    base: Base declarative class and shared enums (SourceType, CheckpointStatus)
    checkpoint: Sync checkpoints for resume-after-rate-limit
    market_data: HUD fair market rents, Census demographics, BLS employment

Database Schema:
    All models inherit from the Base declarative class. Market data tables
    carry a unique index on their natural key so that repeated syncs upsert
    in place instead of duplicating rows.

Usage:
    from models.checkpoint import SyncCheckpoint
    from models.market_data import HUDFairMarketRent, CensusDemographic, BLSEmployment
    from models.base import SourceType, CheckpointStatus

Natural keys:
    - HUDFairMarketRent → (entity_code, fiscal_year)
    - CensusDemographic → (geo_id, survey_year)
    - BLSEmployment → (area_code, year, month)
    - SyncCheckpoint → sync_session_id
"""

__all__ = [
    "base",
    "checkpoint",
    "market_data",
]
