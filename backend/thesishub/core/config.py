from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Any
import json


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "ThesisHub"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str = "CHANGE_ME"
    API_PREFIX: str = "/api"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 5000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./thesishub.db"
    DB_ECHO: bool = False

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET_KEY: str = "CHANGE_ME"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    CLEAR_ALL_CONFIRM_MINUTES: int = 5
    BCRYPT_ROUNDS: int = 12  # 4 for dev (fast), 12 for prod (secure)

    # Bootstrap admin account (created at startup when both are set)
    DEFAULT_ADMIN_USERNAME: str = ""
    DEFAULT_ADMIN_PASSWORD: str = ""
    DEFAULT_ADMIN_EMAIL: str = ""

    # ==========================================
    # AI proposal assistant (Claude)
    # ==========================================
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_BASE_URL: str = ""  # Empty means use default Anthropic URL
    USE_MOCK_AI: bool = False
    AI_MODEL: str = "claude-3-5-haiku-20241022"
    AI_MAX_TOKENS: int = 1000
    AI_TEMPERATURE: float = 0.7
    AI_REQUEST_TIMEOUT: int = 60  # seconds
    AI_CONNECT_TIMEOUT: int = 15  # seconds
    AI_MAX_RETRIES: int = 3
    AI_RETRY_BASE_DELAY: float = 1.0  # seconds
    AI_RETRY_MAX_DELAY: float = 10.0  # seconds

    # ==========================================
    # Supervision rules
    # ==========================================
    MAX_GROUP_MEMBERS: int = 3
    DEFAULT_MAX_STUDENTS: int = 10
    NEUTRAL_MATCH_SCORE: int = 50

    # ==========================================
    # CORS / Logging
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:5173,http://localhost:3000"

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    @property
    def ai_enabled(self) -> bool:
        """Real AI calls need a key and must not be forced into mock mode"""
        return bool(self.ANTHROPIC_API_KEY.strip()) and not self.USE_MOCK_AI


# Create settings instance
settings = Settings()
