"""Pydantic request models for the ElevenLabs API."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class VoiceSettings(BaseModel):
    """Voice tuning parameters, passed through to the API as given.

    Keys the model does not know about are kept so that newer API settings
    work without a library release. Values are validated strictly and never
    coerced.
    """

    model_config = ConfigDict(extra="allow", strict=True)

    stability: float | None = None
    similarity_boost: float | None = None
    style: float | None = None
    use_speaker_boost: bool | None = None
    speed: float | None = None


class SynthesisRequest(BaseModel):
    """One text-to-speech request. The voice id goes in the URL, not the body."""

    model_config = ConfigDict(frozen=True)

    voice_id: str = Field(min_length=1, exclude=True)
    text: str = Field(min_length=1)
    model_id: str | None = None
    # A plain mapping is sent exactly as given.
    voice_settings: dict[str, Any] | VoiceSettings | None = Field(
        default=None, union_mode="left_to_right"
    )

    def payload(self) -> dict[str, Any]:
        """Return the JSON body, without unset fields."""
        return self.model_dump(exclude_none=True)


class VoiceDesignRequest(BaseModel):
    """Parameters for POST /v1/text-to-voice/design."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    voice_description: str = Field(min_length=1)
    output_format: str | None = None
    model_id: str | None = None
    text: str | None = None
    auto_generate_text: bool | None = None
    loudness: float | None = None
    seed: int | None = None
    guidance_scale: float | None = None
    stream_previews: bool | None = None
    remixing_session_id: str | None = None
    remixing_session_iteration_id: str | None = None
    quality: float | None = None
    reference_audio_base64: str | None = None
    prompt_strength: float | None = None

    def payload(self) -> dict[str, Any]:
        """Return the JSON body, without unset fields."""
        return self.model_dump(exclude_none=True)
