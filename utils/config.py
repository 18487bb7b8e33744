import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from utils.errors import MissingCredentialError

DEFAULT_MODEL = "gemini-2.5-flash"

# Fixed sampling temperature for consistent grading (not configurable)
TEMPERATURE = 0.2

DEFAULT_ORIGINS = [
    "http://localhost:8501",  # Local Streamlit
    "http://localhost:3000",  # Local dev
]

# Settings field -> environment variable, for error messages
ENV_NAMES = {
    "api_key": "GOOGLE_API_KEY",
    "model": "GEMINI_MODEL",
    "allowed_origins": "ALLOWED_ORIGINS",
    "max_upload_mb": "MAX_UPLOAD_MB",
    "log_level": "LOG_LEVEL",
}


class Settings(BaseModel):
    """
    Runtime configuration, read once from the environment and injected into
    the orchestrator. Nothing else reads the API key from os.environ.
    """

    api_key: str = ""
    model: str = DEFAULT_MODEL
    allowed_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_ORIGINS))
    max_upload_mb: int = Field(default=20, ge=1)
    log_level: str = "INFO"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    def require_api_key(self) -> str:
        if not self.api_key or not self.api_key.strip():
            raise MissingCredentialError(
                "GOOGLE_API_KEY is not set. Add it to the environment or .env file."
            )
        return self.api_key

    @classmethod
    def from_env(cls, require_credential: bool = True) -> "Settings":
        """
        Build settings from the process environment (after loading .env).
        Raises MissingCredentialError when no key is configured, unless
        require_credential is False.
        """
        load_dotenv()

        origins = [
            origin.strip()
            for origin in os.getenv("ALLOWED_ORIGINS", "").split(",")
            if origin.strip()
        ]

        try:
            settings = cls(
                api_key=os.getenv("GOOGLE_API_KEY") or os.getenv("API_KEY") or "",
                model=os.getenv("GEMINI_MODEL") or DEFAULT_MODEL,
                allowed_origins=origins or list(DEFAULT_ORIGINS),
                max_upload_mb=os.getenv("MAX_UPLOAD_MB", "20"),
                log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            )
        except ValidationError as e:
            fields = {str(err["loc"][0]) for err in e.errors()}
            names = sorted(ENV_NAMES.get(field, field) for field in fields)
            raise ValueError(f"Invalid configuration for {', '.join(names)}: {e}") from e

        if require_credential:
            settings.require_api_key()

        return settings
