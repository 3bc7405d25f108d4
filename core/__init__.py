"""
Core utilities and configuration for the market data sync service.

This package provides foundational components used throughout the sync:

Modules:
    config: Application configuration and environment variable management
    database: Async engine, shared connection pool and session factory
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import RateLimitError, NetworkError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Get database session
    async with async_session_maker() as session:
        # Perform database operations
        pass
"""

__all__ = [
    "config",
    "database",
    "exceptions",
    "logging",
]
