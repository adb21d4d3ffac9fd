from voice_relay.models.call import Call

__all__ = [
    "Call",
]
