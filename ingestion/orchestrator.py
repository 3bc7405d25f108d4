# ============================================================================
# File: ingestion/orchestrator.py
# Description: Composes provider clients, runner, retry and checkpoints per source
# ============================================================================
"""
Sync Orchestrator - runs the HUD, Census and BLS syncs.

Sources:
- HUD FMR: one state-wide fetch, records fanned out to the loader
- Census ACS: one fetch per county, no checkpoint (a re-run is cheap)
- BLS LAUS: one fetch per county with retries, checkpointed and resumable
  after the daily rate limit stops it

Every source returns a SyncResult. Hard failures raise; a BLS run stopped
by the rate limit returns a partial result whose first error carries the
session id to resume with.
"""

from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple
import asyncio
import logging
import time

from core.config import settings
from core.exceptions import (
    CheckpointError,
    DataSyncError,
    FatalSyncError,
    LoadError,
    RateLimitError,
    SourceSyncError,
    SyncCancelledError,
    UnresolvableCheckpointError,
    error_message,
)
from ingestion.cancellation import is_cancelled, wait_or_cancel
from ingestion.checkpoint import CheckpointManager, ProgressWatermark
from ingestion.extractors.bls_extractor import BLSExtractor
from ingestion.extractors.census_extractor import CensusExtractor
from ingestion.extractors.hud_extractor import HUDExtractor
from ingestion.loaders.postgres_loader import PostgresLoader
from ingestion.runner import BatchOutcome, ConcurrencyRunner
from ingestion.work_items import (
    COUNTY_LIST_VERSION,
    TEXAS_COUNTIES,
    County,
    WorkItem,
    county_work_items,
    resume_index,
)
from models.base import CheckpointStatus, SourceType
from models.checkpoint import SyncCheckpoint
from schemas.sync import SyncRequest, SyncResult, SyncRun, SyncStatus

logger = logging.getLogger(__name__)


def new_session_id(source: SourceType = SourceType.BLS) -> str:
    """Timestamp-derived session id, e.g. ``bls_1736936400``."""
    return f"{source.value}_{int(time.time())}"


def resume_hint(session_id: str) -> str:
    return (
        f"BLS API daily rate limit reached - sync stopped early. "
        f"Resume with: --resume={session_id}"
    )


class SyncOrchestrator:
    """
    Orchestrates per-source syncs and multi-source batches.

    Attributes:
        max_concurrent: Work items in flight per source (default: 1)
        max_retries: Retries per BLS county after the first attempt
        dry_run: Fetch and count, but never persist or checkpoint
        cancel_event: Shared signal that stops every wait and call in flight
    """

    def __init__(
        self,
        loader: PostgresLoader,
        checkpoints: CheckpointManager,
        hud: HUDExtractor,
        census: CensusExtractor,
        bls: BLSExtractor,
        max_concurrent: Optional[int] = None,
        max_retries: Optional[int] = None,
        dry_run: Optional[bool] = None,
        cancel_event: Optional[asyncio.Event] = None,
        retry_base_delay: Optional[float] = None,
        counties: Sequence[County] = TEXAS_COUNTIES,
        county_list_version: str = COUNTY_LIST_VERSION
    ):
        self.loader = loader
        self.checkpoints = checkpoints
        self.hud = hud
        self.census = census
        self.bls = bls
        self.max_concurrent = max_concurrent if max_concurrent is not None else settings.MAX_CONCURRENT
        self.max_retries = max_retries if max_retries is not None else settings.MAX_RETRIES
        self.dry_run = dry_run if dry_run is not None else settings.DRY_RUN
        self.cancel_event = cancel_event
        self.retry_base_delay = (
            retry_base_delay if retry_base_delay is not None else settings.RETRY_BASE_DELAY
        )
        self.counties = tuple(counties)
        self.county_list_version = county_list_version

        if self.max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {self.max_concurrent}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _new_run(self, source: SourceType, **kwargs) -> SyncRun:
        return SyncRun(
            source=source.value,
            max_concurrent=self.max_concurrent,
            dry_run=self.dry_run,
            **kwargs
        )

    async def _run_batch(
        self,
        items: List[WorkItem],
        op: Callable[[WorkItem], Awaitable[int]]
    ) -> BatchOutcome:
        runner = ConcurrencyRunner(self.max_concurrent, self.cancel_event)
        return await runner.run(items, op)

    @staticmethod
    def _describe_failure(item: WorkItem, error: BaseException) -> str:
        if isinstance(error, LoadError):
            return f"{item.label} DB: {error_message(error)}"
        return f"{item.label}: {error_message(error)}"

    def _tally(self, result: SyncResult, batch: BatchOutcome) -> None:
        """Fold a batch into the result. Each successful op returns its record count."""
        for outcome in batch.succeeded:
            result.successful += outcome.value
        for outcome in batch.failed:
            message = self._describe_failure(outcome.item, outcome.error)
            result.failed += 1
            result.errors.append(message)
            logger.warning(f"{result.source} failed: {message}")
        result.skipped += len(batch.not_run)
        if batch.cancelled:
            result.status = SyncStatus.CANCELLED

    @staticmethod
    def _finish(result: SyncResult, run: SyncRun) -> SyncResult:
        result.duration_seconds = (datetime.utcnow() - run.started_at).total_seconds()
        logger.info(
            f"Finished {result.source} sync: status={result.status.value}, "
            f"successful={result.successful}, failed={result.failed}, "
            f"skipped={result.skipped}, duration={result.duration_seconds:.1f}s"
        )
        return result

    # ------------------------------------------------------------------
    # HUD FMR
    # ------------------------------------------------------------------

    async def sync_hud(self, state_code: Optional[str] = None) -> SyncResult:
        """
        Fetch every FMR record for the state once and upsert them.

        Raises:
            ExtractionError: The state-wide fetch failed
        """
        state_code = (state_code or settings.DEFAULT_STATE_CODE).upper()
        run = self._new_run(SourceType.HUD)
        result = SyncResult(source=SourceType.HUD.display_name)
        logger.info(f"Starting HUD FMR sync for {state_code} (dry_run={self.dry_run})")

        try:
            records = await wait_or_cancel(
                self.hud.get_fmr_records_for_state(state_code), self.cancel_event
            )
        except SyncCancelledError:
            result.status = SyncStatus.CANCELLED
            return self._finish(result, run)

        logger.info(f"Fetched {len(records)} HUD FMR records")

        if self.dry_run:
            result.successful = len(records)
            logger.info(f"Dry run: skipping upserts of {len(records)} HUD FMR records")
            return self._finish(result, run)

        items = [
            WorkItem(index=i, key="/".join(str(part) for part in record.natural_key()),
                     label=record.label, payload=record)
            for i, record in enumerate(records)
        ]

        async def store(item: WorkItem) -> int:
            await self.loader.upsert(item.payload)
            return 1

        batch = await self._run_batch(items, store)
        self._tally(result, batch)
        if batch.fatal_error is not None:
            raise batch.fatal_error
        return self._finish(result, run)

    # ------------------------------------------------------------------
    # Census ACS
    # ------------------------------------------------------------------

    async def sync_census(self, year: Optional[int] = None) -> SyncResult:
        """
        Fetch and upsert ACS demographics for every county.

        ``successful`` counts counties. Defaults to the previous calendar year,
        the latest the 5-year ACS is published for.
        """
        if not year:
            year = datetime.utcnow().year - 1

        run = self._new_run(SourceType.CENSUS)
        result = SyncResult(source=SourceType.CENSUS.display_name)
        items = county_work_items(self.counties)
        logger.info(f"Starting Census ACS sync: {len(items)} counties, year {year}")

        async def fetch_and_store(item: WorkItem) -> int:
            record = await self.census.get_county_demographics(item.key, year)
            if not self.dry_run:
                await self.loader.upsert(record)
            return 1

        batch = await self._run_batch(items, fetch_and_store)
        self._tally(result, batch)
        if batch.fatal_error is not None:
            raise batch.fatal_error
        return self._finish(result, run)

    # ------------------------------------------------------------------
    # BLS LAUS
    # ------------------------------------------------------------------

    async def sync_bls(
        self,
        start_year: Optional[int] = None,
        end_year: Optional[int] = None,
        resume_session_id: Optional[str] = None
    ) -> SyncResult:
        """
        Fetch and upsert monthly employment for every county, with checkpoints.

        Args:
            start_year: First year (default: end_year - 2)
            end_year: Last year (default: current year)
            resume_session_id: Continue a previous session after its last
                persisted county

        Returns:
            SyncResult; ``partial`` when the BLS daily limit stopped the run

        Raises:
            CheckpointError: The session cannot be created, found or resumed
            DataSyncError: Any fatal error other than the rate limit
        """
        end_year = end_year or datetime.utcnow().year
        start_year = start_year or end_year - 2

        start_index = 0
        checkpoint = None
        if resume_session_id:
            session_id = resume_session_id
            checkpoint, start_index = await self._load_for_resume(session_id)
            logger.info(
                f"Resuming BLS LAUS sync {session_id} after {checkpoint.last_completed_entity!r}: "
                f"{len(self.counties) - start_index} counties remaining"
            )
        else:
            session_id = new_session_id(SourceType.BLS)
            if not self.dry_run:
                checkpoint = await self.checkpoints.create(
                    session_id, SourceType.BLS, work_list_version=self.county_list_version
                )
            logger.info(
                f"Starting BLS LAUS sync {session_id}: {len(self.counties)} counties, "
                f"{start_year}-{end_year}"
            )

        # Dry runs never write progress, even when resuming
        track_progress = checkpoint is not None and not self.dry_run

        run = self._new_run(SourceType.BLS, session_id=session_id, resume_session_id=resume_session_id)
        result = SyncResult(source=SourceType.BLS.display_name, session_id=session_id)
        items = county_work_items(self.counties, start_index)
        watermark = ProgressWatermark(items)
        checkpoint_lock = asyncio.Lock()

        async def settle(item: WorkItem, record_count: int, succeeded: bool = True) -> None:
            if not track_progress:
                return
            async with checkpoint_lock:
                key = watermark.settle(item, succeeded)
                if key is None and record_count == 0:
                    return
                try:
                    await self.checkpoints.advance(session_id, key, record_count)
                except CheckpointError as e:
                    logger.warning(f"Failed to update checkpoint after {item.label}: {error_message(e)}")

        async def fetch_and_store(item: WorkItem) -> int:
            county = item.payload
            try:
                records = await self.bls.get_county_employment_with_retry(
                    county.fips,
                    county.name,
                    start_year,
                    end_year,
                    self.max_retries,
                    cancel_event=self.cancel_event,
                    base_delay=self.retry_base_delay
                )
                if not self.dry_run:
                    await self.loader.upsert_batch(records)
            except (FatalSyncError, SyncCancelledError):
                raise
            except Exception:
                # Lets later counties move the watermark; a resume still retries this one
                await settle(item, 0, succeeded=False)
                raise

            await settle(item, len(records))
            return len(records)

        batch = await self._run_batch(items, fetch_and_store)
        self._tally(result, batch)

        if batch.cancelled:
            # The checkpoint stays in progress; reopen accepts it on resume
            if track_progress:
                result.errors.insert(0, f"Sync cancelled. Resume with: --resume={session_id}")
            return self._finish(result, run)

        if isinstance(batch.fatal_error, RateLimitError):
            logger.warning(
                f"BLS LAUS sync {session_id} stopped early by the daily rate limit "
                f"({result.successful} records, {result.failed} failed counties)"
            )
            await self._finalize(session_id, CheckpointStatus.RATE_LIMITED, track_progress)
            result.status = SyncStatus.PARTIAL
            result.errors.insert(0, resume_hint(session_id))
            return self._finish(result, run)

        if batch.fatal_error is not None:
            await self._finalize(session_id, CheckpointStatus.FAILED, track_progress)
            raise batch.fatal_error

        await self._finalize(session_id, CheckpointStatus.COMPLETED, track_progress)
        return self._finish(result, run)

    async def _load_for_resume(self, session_id: str) -> Tuple[SyncCheckpoint, int]:
        """
        Validate a stored BLS session and reopen it.

        Nothing is written until the stored county resolves against the
        current list.

        Returns:
            The checkpoint and the index of the first county still to sync
        """
        checkpoint = await self.checkpoints.load_by_session(session_id)

        if SourceType(checkpoint.source) is not SourceType.BLS:
            raise CheckpointError(
                f"Session {session_id} belongs to {SourceType(checkpoint.source).value}, not bls",
                context={"session_id": session_id, "operation": "resume"}
            )
        if checkpoint.work_list_version and checkpoint.work_list_version != self.county_list_version:
            raise UnresolvableCheckpointError(
                f"Session {session_id} was recorded against county list "
                f"{checkpoint.work_list_version}, current list is {self.county_list_version}",
                context={"session_id": session_id, "operation": "resume"}
            )

        start_index = resume_index(self.counties, checkpoint.last_completed_entity)

        if self.dry_run:
            return checkpoint, start_index
        return await self.checkpoints.reopen(session_id), start_index

    async def _finalize(self, session_id: str, status: CheckpointStatus, track_progress: bool) -> None:
        if not track_progress:
            return
        try:
            await self.checkpoints.finalize(session_id, status)
        except CheckpointError as e:
            logger.warning(f"Failed to mark checkpoint {session_id} as {status.value}: {error_message(e)}")

    # ------------------------------------------------------------------
    # Multi-source
    # ------------------------------------------------------------------

    async def sync_all(
        self,
        state_code: Optional[str] = None,
        census_year: Optional[int] = None,
        bls_start_year: Optional[int] = None,
        bls_end_year: Optional[int] = None,
        resume_session_id: Optional[str] = None
    ) -> List[SyncResult]:
        """
        HUD, then Census, then BLS.

        Raises:
            SourceSyncError: A source failed hard; carries the earlier results
        """
        return await self._run_sources(
            ["hud", "census", "bls"],
            state_code=state_code,
            census_year=census_year,
            bls_start_year=bls_start_year,
            bls_end_year=bls_end_year,
            resume_session_id=resume_session_id
        )

    async def run(self, request: SyncRequest) -> List[SyncResult]:
        """
        Run the sources a caller selected, one result per source.

        Request-level cap, retry and dry-run values override this
        orchestrator's defaults for the call.
        """
        orchestrator = self._with_overrides(request)
        sources = ["hud", "census", "bls"] if "all" in request.sources else request.sources
        return await orchestrator._run_sources(
            sources,
            state_code=request.state_code,
            census_year=request.census_year,
            bls_start_year=request.bls_start_year,
            bls_end_year=request.bls_end_year,
            resume_session_id=request.resume_session_id
        )

    def _with_overrides(self, request: SyncRequest) -> "SyncOrchestrator":
        if request.max_concurrent is None and request.max_retries is None and request.dry_run is None:
            return self
        return SyncOrchestrator(
            self.loader,
            self.checkpoints,
            self.hud,
            self.census,
            self.bls,
            max_concurrent=request.max_concurrent or self.max_concurrent,
            max_retries=request.max_retries if request.max_retries is not None else self.max_retries,
            dry_run=request.dry_run if request.dry_run is not None else self.dry_run,
            cancel_event=self.cancel_event,
            retry_base_delay=self.retry_base_delay,
            counties=self.counties,
            county_list_version=self.county_list_version
        )

    async def _run_sources(
        self,
        sources: Sequence[str],
        state_code: Optional[str],
        census_year: Optional[int],
        bls_start_year: Optional[int],
        bls_end_year: Optional[int],
        resume_session_id: Optional[str]
    ) -> List[SyncResult]:
        steps = {
            "hud": lambda: self.sync_hud(state_code),
            "census": lambda: self.sync_census(census_year),
            "bls": lambda: self.sync_bls(bls_start_year, bls_end_year, resume_session_id),
        }
        results: List[SyncResult] = []

        for source in sources:
            if is_cancelled(self.cancel_event):
                logger.info(f"Sync cancelled before {source}")
                break

            try:
                result = await steps[source]()
            except DataSyncError as e:
                display_name = SourceType(source).display_name
                logger.error(f"{display_name} sync failed: {error_message(e)}")
                raise SourceSyncError(
                    f"{display_name} sync failed: {error_message(e)}",
                    source=display_name,
                    results=results,
                    original_exception=e
                )

            results.append(result)
            if result.status is SyncStatus.CANCELLED:
                break

        return results
