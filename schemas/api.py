"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime
from models.base import SourceType, CheckpointStatus


# ============================================================================
# Checkpoint Schemas
# ============================================================================

class CheckpointInfo(BaseModel):
    """Sync checkpoint as exposed by the diagnostics API"""
    sync_session_id: str
    source: SourceType
    status: CheckpointStatus
    last_completed_entity: Optional[str] = None
    total_records_synced: int = 0
    work_list_version: Optional[str] = None
    started_at: datetime
    last_updated_at: datetime

    class Config:
        from_attributes = True
        use_enum_values = True


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    database_connected: bool
    latest_checkpoints: List[CheckpointInfo] = Field(default_factory=list)
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    @validator("status", pre=True, always=True)
    def determine_status(cls, v, values):
        """Determine overall health status"""
        if not values.get("database_connected", False):
            return "unhealthy"

        stalled = [
            c for c in values.get("latest_checkpoints", [])
            if c.status in (CheckpointStatus.FAILED.value, CheckpointStatus.RATE_LIMITED.value)
        ]
        return "degraded" if stalled else "healthy"

    class Config:
        json_schema_extra = {
            "example": {
                "status": "degraded",
                "timestamp": "2025-01-15T10:30:00Z",
                "database_connected": True,
                "latest_checkpoints": [
                    {
                        "sync_session_id": "bls_1736936400",
                        "source": "bls",
                        "status": "rate_limited",
                        "last_completed_entity": "201",
                        "total_records_synced": 3600,
                        "work_list_version": "tx-counties-2020",
                        "started_at": "2025-01-15T10:00:00Z",
                        "last_updated_at": "2025-01-15T10:20:00Z"
                    }
                ]
            }
        }
