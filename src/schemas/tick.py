"""Response schema of the periodic trigger endpoints (camelCase on the wire)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class TickResponse(BaseModel):
    """Summary of one engine tick."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    skipped: bool = False
    checked: int
    escalated: int
    sent: int
    failed: int
    deferred: int
    by_trigger_type: dict[str, int]
    escalations_last_hour: int
    duration_ms: int
    timestamp: datetime
