"""xivoice: async client for the ElevenLabs text-to-speech API."""

from xivoice.client import VoiceClient
from xivoice.config import ClientConfig, configure, get_default_config, reset_default_config
from xivoice.errors import ErrorKind, XIVoiceError
from xivoice.types import SynthesisRequest, VoiceDesignRequest, VoiceSettings

__version__ = "0.1.0"

__all__ = [
    "ClientConfig",
    "ErrorKind",
    "SynthesisRequest",
    "VoiceClient",
    "VoiceDesignRequest",
    "VoiceSettings",
    "XIVoiceError",
    "configure",
    "get_default_config",
    "reset_default_config",
]
