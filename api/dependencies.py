"""
FastAPI dependencies
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession
from core.database import async_session_maker
from ingestion.checkpoint import CheckpointManager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


def get_checkpoint_manager() -> CheckpointManager:
    return CheckpointManager(async_session_maker)
