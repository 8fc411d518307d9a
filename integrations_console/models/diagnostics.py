"""Connection test and health models."""

from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field
from enum import Enum


class CheckStatus(str, Enum):
    """Result of one diagnostic check."""
    PASSED = "passed"
    FAILED = "failed"
    WARNING = "warning"
    PENDING = "pending"


class Verdict(str, Enum):
    """Overall outcome of a diagnostic run."""
    SUCCESS = "success"
    FAILURE = "failure"
    WARNINGS = "warnings"


class CheckResult(BaseModel):
    """One named check."""
    test: str
    status: CheckStatus = CheckStatus.PENDING
    message: str
    details: Optional[str] = None


class ConnectionTestReport(BaseModel):
    """Three checks produced by one diagnostic round trip."""
    checks: List[CheckResult]
    raw_response: Any = None
    verdict: Optional[Verdict] = None
    tested_at: datetime = Field(default_factory=datetime.utcnow)


class HealthScore(str, Enum):
    """Connection health grades reported by the backend."""
    EXCELLENT = "excellent"
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


class ConnectionHealth(BaseModel):
    """Per-connection health as computed by the backend."""
    connection_id: str
    integration_type: Optional[str] = None
    connection_name: Optional[str] = None
    status: Optional[str] = None
    last_sync_at: Optional[datetime] = None
    recent_syncs_24h: int = 0
    recent_errors_24h: int = 0
    health_score: HealthScore


class SystemHealth(BaseModel):
    """Aggregate of connection health across active connections."""
    total_connections: int = 0
    healthy_connections: int = 0
    warning_connections: int = 0
    critical_connections: int = 0
    average_health_score: float = 0.0
    last_updated: datetime = Field(default_factory=datetime.utcnow)


class StatusSnapshot(BaseModel):
    """Summary-card counts and per-integration webhook success rates."""
    total: int = 0
    active: int = 0
    error: int = 0
    inactive: int = 0
    pending: int = 0
    webhook_success_rates: Dict[str, float] = Field(default_factory=dict)
    taken_at: datetime = Field(default_factory=datetime.utcnow)
