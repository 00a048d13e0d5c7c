from typing import Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Completion API
    API_BASE_URL: str = "https://openrouter.ai/api/v1"
    API_KEY: Optional[str] = None
    CHAT_MODEL: str = "meta-llama/llama-3.3-70b-instruct:free"
    APP_TITLE: str = "Chatbot Platform"
    APP_REFERER: str = "http://localhost"
    HTTP_TIMEOUT_SECONDS: float = 60.0

    # Persistent store
    DATABASE_URL: str = "sqlite:///./chatbot_platform.db"

    # Session / credentials
    SESSION_SECRET_KEY: str = "chatbot-platform-local-session"
    SESSION_ALGORITHM: str = "HS256"
    PASSWORD_HASH_ROUNDS: int = 12
    MIN_PASSWORD_LENGTH: int = 6

    # Streaming reveal cadence
    STREAM_INTERVAL_MS: int = 120

    class Config:
        env_file = ".env"

settings = Settings()
