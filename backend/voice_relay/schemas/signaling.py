from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageType(str, Enum):
    offer = "offer"
    answer = "answer"
    ice_candidate = "ice-candidate"
    call_request = "call-request"
    call_response = "call-response"
    call_end = "call-end"
    register = "register"
    error = "error"


class SignalingMessage(BaseModel):
    """One frame exchanged over a signaling channel.

    ``data`` is the opaque negotiation payload (SDP, ICE candidate, call
    metadata). The relay validates the envelope only and never looks
    inside ``data``.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: MessageType
    from_user: str = Field(..., alias="from", min_length=1)
    to_user: Optional[str] = Field(default=None, alias="to")
    data: Optional[Any] = None
    message: Optional[str] = None
    target_user: Optional[str] = Field(default=None, alias="targetUser")


class RelayError(BaseModel):
    """Error frame the relay sends back to the originating channel."""

    model_config = ConfigDict(populate_by_name=True)

    type: MessageType = MessageType.error
    message: str
    target_user: Optional[str] = Field(default=None, alias="targetUser")

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


INVALID_FORMAT = "Invalid message format"
TARGET_NOT_CONNECTED = "Target user not connected"
