import os
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "VoiceFlow - Voice Productivity Assistant"
    LOG_LEVEL: str = "INFO"

    # Groq (LLM + Whisper)
    GROQ_API_KEY: str | None = None
    GROQ_MODEL: str = "llama-3.3-70b-versatile"
    GROQ_TRANSCRIPTION_MODEL: str = "whisper-large-v3"
    AI_TEMPERATURE: float = 0.1
    AI_TIMEOUT_SECONDS: float = 30.0

    # User's local timezone, used to localize naive times and render messages
    TIMEZONE: str = "UTC"

    # Reminders
    REMINDER_LEAD_MINUTES: int = 60
    EVENT_REMINDER_MINUTES: int = 30
    UPCOMING_WINDOW_HOURS: int = 24

    # Database
    POSTGRES_SERVER: str = os.getenv("POSTGRES_SERVER", "localhost")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "postgres")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "voiceflow_db")
    DATABASE_URL: str | None = None

    # Push notifications
    FIREBASE_CREDENTIALS: str = "firebase-service-account.json"
    FIREBASE_SERVICE_ACCOUNT: str | None = None

    model_config = SettingsConfigDict(env_file=os.path.join(os.path.dirname(__file__), "..", "..", ".env"), case_sensitive=True, extra="ignore")

    def __init__(self, **data):
        super().__init__(**data)
        if not self.DATABASE_URL:
             self.DATABASE_URL = f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}/{self.POSTGRES_DB}"

settings = Settings()
