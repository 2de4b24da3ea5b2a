import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv, find_dotenv

# Load shared .env (prefer the working directory) without overriding existing env
_ENV_PATH = find_dotenv(usecwd=True)
if _ENV_PATH:
    load_dotenv(_ENV_PATH, override=False)

logger = logging.getLogger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_PRIMARY_MODEL = "mistralai/mistral-small-24b-instruct-2501:free"
DEFAULT_FALLBACK_MODEL = "openai/gpt-4o-mini"


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid {name}={os.getenv(name)!r}; using {default}")
        return default


def _env_models() -> List[str]:
    raw = os.getenv("OPENROUTER_MODELS", "").strip()
    if raw:
        return [m.strip() for m in raw.split(",") if m.strip()]
    primary = os.getenv("OPENROUTER_MODEL_PRIMARY", DEFAULT_PRIMARY_MODEL)
    fallback = os.getenv("OPENROUTER_MODEL_FALLBACK", DEFAULT_FALLBACK_MODEL)
    return [m for m in (primary, fallback) if m]


@dataclass
class Settings:
    data_dir: Path
    namespace: str = "wordquiz"
    api_key: Optional[str] = None
    api_url: str = OPENROUTER_URL
    models: List[str] = field(default_factory=list)
    request_timeout: float = 15.0
    batch_delay: float = 2.0
    rate_limit_cooldown: float = 8.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the environment, falling back to defaults on bad values."""
        data_dir = Path(os.getenv("WORDQUIZ_DATA_DIR", "~/.wordquiz")).expanduser()
        return cls(
            data_dir=data_dir,
            namespace=os.getenv("WORDQUIZ_NAMESPACE", "wordquiz").strip() or "wordquiz",
            api_key=(os.getenv("OPENROUTER_API_KEY") or "").strip() or None,
            api_url=os.getenv("OPENROUTER_URL", OPENROUTER_URL),
            models=_env_models(),
            request_timeout=_env_float("ENRICH_TIMEOUT_S", 15.0),
            batch_delay=_env_float("ENRICH_BATCH_DELAY_S", 2.0),
            rate_limit_cooldown=_env_float("OPENROUTER_429_COOLDOWN_S", 8.0),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )
