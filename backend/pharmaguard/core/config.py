"""
Application settings.
Loads environment variables (optionally from a .env file) into a typed settings object.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv, find_dotenv
from pydantic import BaseModel, Field

# Load .env file (walks up directories to find it)
load_dotenv(find_dotenv())

MAX_VCF_BYTES = 5 * 1024 * 1024


def size_limit_message(max_bytes: int) -> str:
    return f"File exceeds {max_bytes / (1024 * 1024):g} MB size limit"


class Settings(BaseModel):
    """Process-wide settings, read from the environment at first access."""

    app_name: str = Field(default="PharmaGuard API")
    analysis_version: str = Field(default="PharmaGuard v1.0")
    log_level: str = Field(default="INFO")

    max_upload_bytes: int = Field(default=MAX_VCF_BYTES, gt=0)

    # Explanation enrichment: "auto" uses the LLM only when an API key is configured
    explanation_provider: str = Field(default="auto", description="auto | llm | template")
    groq_api_key: str = Field(default="")
    groq_api_url: str = Field(default="https://api.groq.com/openai/v1/chat/completions")
    groq_model: str = Field(default="llama-3.3-70b-versatile")
    llm_timeout_seconds: float = Field(default=15.0, gt=0)
    llm_max_tries: int = Field(default=2, ge=1, le=3)

    @classmethod
    def from_env(cls) -> "Settings":
        env = {
            "app_name": os.environ.get("APP_NAME"),
            "analysis_version": os.environ.get("ANALYSIS_VERSION"),
            "log_level": os.environ.get("LOG_LEVEL"),
            "max_upload_bytes": os.environ.get("MAX_UPLOAD_BYTES"),
            "explanation_provider": os.environ.get("EXPLANATION_PROVIDER"),
            "groq_api_key": os.environ.get("GROQ_API_KEY"),
            "groq_api_url": os.environ.get("GROQ_API_URL"),
            "groq_model": os.environ.get("GROQ_MODEL"),
            "llm_timeout_seconds": os.environ.get("LLM_TIMEOUT_SECONDS"),
            "llm_max_tries": os.environ.get("LLM_MAX_TRIES"),
        }
        return cls(**{k: v for k, v in env.items() if v not in (None, "")})

    @property
    def upload_limit_message(self) -> str:
        return size_limit_message(self.max_upload_bytes)

    @property
    def llm_configured(self) -> bool:
        return bool(self.groq_api_key) and self.groq_api_key != "your_groq_api_key_here"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings.from_env()
