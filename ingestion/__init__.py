"""
Sync pipeline components for market data ingestion.

This package contains everything between the upstream providers and the
database:

Modules:
    base: Abstract base class for provider clients (httpx lifecycle, error mapping)
    work_items: Static, versioned county list and work-item construction
    runner: Bounded-concurrency batch runner with fatal abort and cancellation
    retry: Exponential-backoff retry policy for transient failures
    checkpoint: Durable checkpoints and the settled-prefix progress watermark
    cancellation: Cancel-aware waits shared by the runner and the retry policy
    orchestrator: Per-source syncs (HUD, Census, BLS) and multi-source batches

Subpackages:
    extractors: Provider clients (HUD FMR, Census ACS, BLS LAUS)
    loaders: Database loader with idempotent upsert operations

Architecture:
    Each source enumerates its work items up front and runs them through
    the ConcurrencyRunner. Every task fetches, persists and (for BLS)
    advances the checkpoint for its own item, then reports one outcome.
    Outcomes are merged once the batch ends:

    1. Fetch - Provider client call, retried with backoff where configured
    2. Load - Upsert on the natural key, so re-runs never duplicate rows
    3. Checkpoint - Advanced only after the item's records are persisted

    A BLS rate limit aborts the batch and leaves a resumable checkpoint.

Usage:
    from ingestion.orchestrator import SyncOrchestrator
    from ingestion.checkpoint import CheckpointManager
    from ingestion.loaders.postgres_loader import PostgresLoader

Example:
    loader = PostgresLoader(async_session_maker)
    checkpoints = CheckpointManager(async_session_maker)

    async with HUDExtractor() as hud, CensusExtractor() as census, BLSExtractor() as bls:
        orchestrator = SyncOrchestrator(loader, checkpoints, hud, census, bls)
        result = await orchestrator.sync_bls()

    print(f"Synced {result.successful} records ({result.status.value})")

Error Handling:
    All components raise exceptions from core.exceptions. Item-level
    failures are collected into SyncResult.errors; hard failures raise
    SourceSyncError from multi-source runs.
"""

__all__ = [
    "base",
    "cancellation",
    "checkpoint",
    "orchestrator",
    "retry",
    "runner",
    "work_items",
]
