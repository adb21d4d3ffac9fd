import logging
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from voice_relay.core.relay import SignalingRelay
from voice_relay.routes.deps import get_relay
from voice_relay.schemas.call import CallRecord, StatusResponse

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/calls/{user_id}", response_model=List[CallRecord])
async def get_calls(user_id: str, relay: SignalingRelay = Depends(get_relay)):
    """
    Recent calls for a user, most recent first
    """
    try:
        return relay.query.get_calls_by_user(user_id)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching calls: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch calls"})

@router.get("/status", response_model=StatusResponse)
async def get_status(relay: SignalingRelay = Depends(get_relay)):
    """
    Number of identities currently reachable
    """
    return StatusResponse(connected_users=relay.query.get_live_count())
