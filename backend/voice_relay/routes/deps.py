from fastapi import Request, WebSocket

from voice_relay.core.relay import SignalingRelay


def get_relay(request: Request) -> SignalingRelay:
    return request.app.state.relay


def get_ws_relay(websocket: WebSocket) -> SignalingRelay:
    return websocket.app.state.relay
