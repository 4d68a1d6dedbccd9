"""Host-side configuration read from the environment (and a local .env file).

The core never reads the environment; the CLI turns these values into an
AIConfig and a GenerationClientConfig and passes them in.

Environment variables:
- MOCKEXAM_AI_ENABLED: "true"/"false", defaults to true.
- MOCKEXAM_API_KEY: credential forwarded to the generation backend.
- MOCKEXAM_MODEL: model identifier, e.g. gemini-1.5-flash or gpt-4o-mini.
- MOCKEXAM_BASE_URL: origin serving the /api/*-generate-mock routes.
- MOCKEXAM_TIMEOUT: request timeout in seconds.
- MOCKEXAM_LOG_LEVEL: logging level name for the CLI.
"""

import os

from dotenv import load_dotenv

from .clients.generation_client import DEFAULT_TIMEOUT, GenerationClientConfig
from .types import AIConfig

load_dotenv()

DEFAULT_BASE_URL = "http://localhost:3000"
LOG_LEVEL = os.getenv("MOCKEXAM_LOG_LEVEL", "WARNING").upper()


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_ai_config() -> AIConfig:
    return AIConfig(
        enabled=_env_flag("MOCKEXAM_AI_ENABLED", True),
        credential=os.getenv("MOCKEXAM_API_KEY") or None,
        model=os.getenv("MOCKEXAM_MODEL") or None,
    )


def load_client_config() -> GenerationClientConfig:
    return GenerationClientConfig(
        base_url=os.getenv("MOCKEXAM_BASE_URL", DEFAULT_BASE_URL),
        timeout=float(os.getenv("MOCKEXAM_TIMEOUT", str(DEFAULT_TIMEOUT))),
    )
