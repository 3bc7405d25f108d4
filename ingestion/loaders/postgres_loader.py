"""
Load normalized provider records into PostgreSQL with upsert logic (idempotency)
"""

from typing import Dict, List, Sequence, Tuple, Type
from datetime import datetime
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from models.base import Base
from models.market_data import HUDFairMarketRent, CensusDemographic, BLSEmployment
from schemas.market_data import (
    MarketDataRecord,
    FairMarketRentRecord,
    CensusDemographicRecord,
    EmploymentRecord,
)
from core.exceptions import UpsertError
import logging

logger = logging.getLogger(__name__)

# Record type -> (table model, natural key columns)
UPSERT_TARGETS: Dict[Type[MarketDataRecord], Tuple[Type[Base], Tuple[str, ...]]] = {
    FairMarketRentRecord: (HUDFairMarketRent, ("entity_code", "fiscal_year")),
    CensusDemographicRecord: (CensusDemographic, ("geo_id", "survey_year")),
    EmploymentRecord: (BLSEmployment, ("area_code", "year", "month")),
}


class PostgresLoader:
    """
    Load records into PostgreSQL with idempotent upsert operations.

    Ensures:
    - No duplicate rows on repeated runs (INSERT ... ON CONFLICT DO UPDATE
      on each table's natural key)
    - Only the fields a record sets are rewritten on conflict
    - One transaction per call; each call opens its own session so that
      concurrent tasks never share one
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def upsert(self, record: MarketDataRecord) -> None:
        """Insert or update a single record."""
        await self.upsert_batch([record])

    async def upsert_batch(self, records: Sequence[MarketDataRecord]) -> int:
        """
        Upsert records in one transaction.

        Args:
            records: Validated records; types may be mixed

        Returns:
            Number of records written

        Raises:
            UpsertError: If any statement fails (the whole batch is rolled back)
        """
        if not records:
            return 0

        async with self.session_factory() as db:
            for index, record in enumerate(records):
                model, conflict_fields = self._target(record)
                try:
                    await self._upsert_one(db, model, conflict_fields, record)
                except SQLAlchemyError as e:
                    await db.rollback()
                    raise UpsertError(
                        f"upsert into {model.__tablename__} failed: {e.__class__.__name__}",
                        context={
                            "table_name": model.__tablename__,
                            "conflict_fields": ",".join(conflict_fields),
                            "natural_key": record.natural_key(),
                            "batch_index": index,
                        },
                        original_exception=e
                    )

            try:
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                raise UpsertError(
                    f"commit failed after {len(records)} upserts",
                    context={"record_count": len(records)},
                    original_exception=e
                )

        logger.debug(f"Upserted {len(records)} records")
        return len(records)

    @staticmethod
    def _target(record: MarketDataRecord) -> Tuple[Type[Base], Tuple[str, ...]]:
        try:
            return UPSERT_TARGETS[type(record)]
        except KeyError:
            raise UpsertError(
                f"no table for record type {type(record).__name__}",
                context={"record_type": type(record).__name__}
            )

    @staticmethod
    async def _upsert_one(
        db: AsyncSession,
        model: Type[Base],
        conflict_fields: Tuple[str, ...],
        record: MarketDataRecord
    ) -> None:
        now = datetime.utcnow()
        values = record.model_dump()
        values.update(source_updated_at=now, updated_at=now)

        stmt = insert(model).values(**values)

        updated: List[str] = [
            name for name in record.model_fields_set if name not in conflict_fields
        ]
        set_ = {name: stmt.excluded[name] for name in updated}
        set_["source_updated_at"] = stmt.excluded.source_updated_at
        set_["updated_at"] = stmt.excluded.updated_at

        stmt = stmt.on_conflict_do_update(index_elements=list(conflict_fields), set_=set_)
        await db.execute(stmt)
