from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CallRecord(BaseModel):
    """Snapshot of one ledger row, serialized with camelCase keys."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    caller_id: str
    callee_id: str
    duration: int = Field(default=0, ge=0)
    status: str
    created_at: datetime


class StatusResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    connected_users: int
    server_status: str = "running"
