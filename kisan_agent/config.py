import os
from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_VISION_MODEL = "meta-llama/llama-4-scout-17b-16e-instruct"
DEFAULT_TEXT_MODEL = "llama-3.3-70b-versatile"


def _env_bool(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() not in {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ModelSpec:
    """A configured model and what it can take as input."""

    name: str
    supports_vision: bool = False


@dataclass
class Settings:
    groq_api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    vision_model: ModelSpec = field(default_factory=lambda: ModelSpec(DEFAULT_VISION_MODEL, supports_vision=True))
    narrative_model: ModelSpec = field(default_factory=lambda: ModelSpec(DEFAULT_TEXT_MODEL))
    chat_model: ModelSpec = field(default_factory=lambda: ModelSpec(DEFAULT_TEXT_MODEL))
    allowed_origins: List[str] = field(default_factory=list)
    log_level: str = "INFO"

    @property
    def has_credential(self) -> bool:
        return bool(self.groq_api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        key = (os.getenv("GROQ_API_KEY") or "").strip() or None
        origins_env = os.getenv("ALLOWED_ORIGINS", "")
        origins = [o.strip() for o in origins_env.split(",") if o.strip()]
        return cls(
            groq_api_key=key,
            base_url=os.getenv("GROQ_BASE_URL", DEFAULT_BASE_URL),
            vision_model=ModelSpec(
                os.getenv("VISION_MODEL", DEFAULT_VISION_MODEL),
                supports_vision=_env_bool("VISION_MODEL_SUPPORTS_IMAGES", True),
            ),
            narrative_model=ModelSpec(os.getenv("NARRATIVE_MODEL", DEFAULT_TEXT_MODEL)),
            chat_model=ModelSpec(os.getenv("CHAT_MODEL", DEFAULT_TEXT_MODEL)),
            allowed_origins=origins,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
