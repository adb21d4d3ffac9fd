from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    DATABASE_URL: str = Field(default="sqlite://", description="Call ledger database (in-memory by default, nothing survives a restart)")
    HOST: str = Field(default="0.0.0.0", description="Interface uvicorn binds to")
    PORT: int = Field(default=5000, description="Port uvicorn listens on")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5000", "http://localhost:5173"],
        description="Origins allowed to call the HTTP API",
    )
    CALL_HISTORY_LIMIT: int = Field(default=10, ge=1, description="Maximum call records returned per user")
    OUTBOX_SIZE: int = Field(default=256, ge=1, description="Pending outbound frames per channel before sends fail")
    WEBSOCKET_PATH: str = Field(default="/ws", description="Path of the signaling WebSocket")
    API_PREFIX: str = Field(default="/api", description="Prefix of the query endpoints")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
