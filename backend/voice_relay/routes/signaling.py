from fastapi import APIRouter, WebSocket, Depends

from voice_relay.core.relay import SignalingRelay
from voice_relay.routes.deps import get_ws_relay


async def signaling_endpoint(
    websocket: WebSocket,
    relay: SignalingRelay = Depends(get_ws_relay)
):
    """WebSocket endpoint for call signaling.

    No handshake: the first frame carrying ``from`` (or an explicit
    ``register``) binds the connection to an identity.
    """
    await relay.lifecycle.serve(websocket)


def build_router(path: str = "/ws") -> APIRouter:
    router = APIRouter()
    router.add_api_websocket_route(path, signaling_endpoint)
    return router
