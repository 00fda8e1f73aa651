"""Configuration constants and helpers for xivoice."""

import os

from pydantic import BaseModel, ConfigDict


def _parse_timeout(raw: str | None) -> float | None:
    """Return *raw* as seconds, or ``None`` when unset or unparseable."""
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


# --- ElevenLabs API configuration ---

ELEVENLABS_API_KEY: str = os.environ.get("XIVOICE_API_KEY", "")
ELEVENLABS_BASE_URL: str = os.environ.get(
    "XIVOICE_BASE_URL", "https://api.elevenlabs.io"
)
REQUEST_TIMEOUT: float | None = _parse_timeout(os.environ.get("XIVOICE_TIMEOUT"))


# --- Streaming synthesis defaults ---

DEFAULT_STREAM_MODEL: str = os.environ.get(
    "XIVOICE_STREAM_MODEL", "eleven_multilingual_v2"
)
DEFAULT_STREAM_OUTPUT_FORMAT: str = "mp3_44100_128"


class ClientConfig(BaseModel):
    """Connection settings for a VoiceClient."""

    model_config = ConfigDict(frozen=True)

    api_key: str | None = None
    base_url: str = ELEVENLABS_BASE_URL
    timeout: float | None = REQUEST_TIMEOUT


_default_config: ClientConfig | None = None


def configure(
    api_key: str | None = None,
    base_url: str | None = None,
    timeout: float | None = None,
) -> ClientConfig:
    """Set the process-wide default configuration.

    Fields left as ``None`` fall back to the environment constants. Clients
    built without an explicit key pick the default up at construction time.
    """
    global _default_config
    _default_config = ClientConfig(
        api_key=api_key if api_key is not None else ELEVENLABS_API_KEY,
        base_url=base_url or ELEVENLABS_BASE_URL,
        timeout=timeout if timeout is not None else REQUEST_TIMEOUT,
    )
    return _default_config


def get_default_config() -> ClientConfig:
    """Return the configured default, or one built from the environment."""
    if _default_config is not None:
        return _default_config
    return ClientConfig(
        api_key=ELEVENLABS_API_KEY,
        base_url=ELEVENLABS_BASE_URL,
        timeout=REQUEST_TIMEOUT,
    )


def reset_default_config() -> None:
    """Forget any default set by ``configure()``."""
    global _default_config
    _default_config = None
