from voice_relay.core.config import settings
from voice_relay.main import app

# Run uvicorn server when file is executed directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "voice_relay.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
