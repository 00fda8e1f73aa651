"""ElevenLabs HTTP API client.

Wraps a single ``httpx.AsyncClient``. Each public method issues exactly one
request against one API endpoint and returns the parsed JSON or the raw
audio bytes. Non-success statuses and transport failures are translated into
``XIVoiceError`` at this boundary and never retried.

Streaming synthesis is exposed two ways: ``stream_text_to_speech()`` is an
async context manager that yields an async iterator of audio chunks, and
``text_to_speech_stream()`` drives a per-chunk callback on top of it.
"""

import asyncio
import inspect
import logging
import mimetypes
from contextlib import asynccontextmanager
from os import PathLike
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, Mapping

import httpx

from xivoice.config import (
    DEFAULT_STREAM_MODEL,
    DEFAULT_STREAM_OUTPUT_FORMAT,
    ClientConfig,
    get_default_config,
)
from xivoice.errors import ErrorKind, XIVoiceError
from xivoice.types import SynthesisRequest, VoiceDesignRequest, VoiceSettings

logger = logging.getLogger(__name__)

ChunkHandler = Callable[[bytes], Awaitable[None] | None]
SamplePath = str | PathLike[str]
VoiceSettingsInput = VoiceSettings | Mapping[str, Any] | None

_DEFAULT_SAMPLE_MIME = "audio/mpeg"


def _mask(api_key: str) -> str:
    """Return a log-safe rendering of *api_key*."""
    if len(api_key) <= 4:
        return "****"
    return f"****{api_key[-4:]}"


def _sample_files(
    field: str, samples: Iterable[SamplePath]
) -> list[tuple[str, tuple[str, bytes, str]]]:
    """Build httpx multipart file entries for audio sample paths."""
    files = []
    for sample in samples:
        path = Path(sample)
        mime, _ = mimetypes.guess_type(path.name)
        files.append((field, (path.name, path.read_bytes(), mime or _DEFAULT_SAMPLE_MIME)))
    return files


def _form_fields(**fields: str) -> list[tuple[str, tuple[None, str]]]:
    """Build multipart entries for plain text fields.

    Sending text fields through ``files=`` keeps the body multipart even when
    there are no audio samples to attach.
    """
    return [(name, (None, value)) for name, value in fields.items()]


async def _read_next(chunks: AsyncIterator[bytes]) -> bytes | None:
    """Return the next chunk, or ``None`` once the stream is exhausted."""
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return None


async def _read_next_unless_cancelled(
    chunks: AsyncIterator[bytes], cancel: asyncio.Event
) -> bytes | None:
    """Race the next chunk against *cancel*; ``None`` if cancel wins or the stream ends.

    A read still pending when *cancel* fires is cancelled, so a stalled
    connection does not hold the caller.
    """
    if cancel.is_set():
        return None
    read = asyncio.create_task(_read_next(chunks))
    waiter = asyncio.create_task(cancel.wait())
    try:
        await asyncio.wait({read, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        pending = {task for task in (read, waiter) if not task.done()}
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)
    if read.cancelled():
        return None
    return read.result()


class VoiceClient:
    """Async client for the ElevenLabs voice and text-to-speech API.

    The credential is resolved once, at construction: the explicit
    *api_key*, then the process-wide default from ``xivoice.configure()``,
    then ``XIVOICE_API_KEY``. Use as an async context manager, or call
    ``start()`` / ``stop()`` explicitly.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        config: ClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or get_default_config()
        self._api_key: str = api_key or self._config.api_key or ""
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "VoiceClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def start(self) -> None:
        """Create the underlying HTTP client."""
        self._ensure_client()

    async def stop(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def has_credential(self) -> bool:
        """Whether requests will carry an ``xi-api-key`` header."""
        return bool(self._api_key)

    @property
    def base_url(self) -> str:
        return self._config.base_url

    # ------------------------------------------------------------------
    # Voices
    # ------------------------------------------------------------------

    async def list_voices(self) -> dict[str, Any]:
        """Return all voices on the account (GET /v1/voices)."""
        return await self._request_json("GET", "/v1/voices")

    async def get_voice(self, voice_id: str) -> dict[str, Any]:
        """Return details for one voice (GET /v1/voices/{voice_id})."""
        return await self._request_json("GET", f"/v1/voices/{voice_id}")

    async def create_voice(
        self,
        name: str,
        samples: Iterable[SamplePath],
        description: str = "",
    ) -> dict[str, Any]:
        """Create a cloned voice from audio sample files.

        Sends a multipart form with ``name``, ``description`` and one
        ``files`` part per sample. At least one sample is required.
        """
        files = _sample_files("files", samples)
        if not files:
            raise ValueError("create_voice requires at least one audio sample")
        return await self._request_json(
            "POST",
            "/v1/voices/add",
            files=_form_fields(name=name, description=description) + files,
        )

    async def edit_voice(
        self,
        voice_id: str,
        name: str,
        samples: Iterable[SamplePath] = (),
        description: str = "",
    ) -> dict[str, Any]:
        """Update a voice's name, description and samples.

        New samples are sent as repeated ``files[]`` parts.
        """
        return await self._request_json(
            "POST",
            f"/v1/voices/{voice_id}/edit",
            files=_form_fields(name=name, description=description)
            + _sample_files("files[]", samples),
        )

    async def delete_voice(self, voice_id: str) -> dict[str, Any]:
        """Delete a voice from the account (DELETE /v1/voices/{voice_id})."""
        return await self._request_json("DELETE", f"/v1/voices/{voice_id}")

    async def is_banned(self, voice_id: str) -> bool:
        """Whether the voice's safety control is set to ``BAN``."""
        voice = await self.get_voice(voice_id)
        return voice.get("safety_control") == "BAN"

    async def is_active(self, voice_id: str) -> bool:
        """Whether *voice_id* is among the account's listed voices."""
        listing = await self.list_voices()
        return voice_id in {voice.get("voice_id") for voice in listing.get("voices", [])}

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    async def list_models(self) -> list[dict[str, Any]]:
        """Return the synthesis models available to the account."""
        return await self._request_json("GET", "/v1/models")

    # ------------------------------------------------------------------
    # Text to speech
    # ------------------------------------------------------------------

    async def text_to_speech(
        self,
        voice_id: str,
        text: str,
        model_id: str | None = None,
        voice_settings: VoiceSettingsInput = None,
    ) -> bytes:
        """Synthesize *text* and return the complete encoded audio."""
        request = SynthesisRequest(
            voice_id=voice_id,
            text=text,
            model_id=model_id,
            voice_settings=voice_settings,
        )
        response = await self._request(
            "POST",
            f"/v1/text-to-speech/{request.voice_id}",
            json=request.payload(),
        )
        return response.content

    @asynccontextmanager
    async def stream_text_to_speech(
        self,
        voice_id: str,
        text: str,
        model_id: str | None = None,
        voice_settings: VoiceSettingsInput = None,
        output_format: str = DEFAULT_STREAM_OUTPUT_FORMAT,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a streaming synthesis request and yield its audio chunks.

        The status is checked before the context body runs: a non-success
        response raises ``XIVoiceError`` without yielding any chunk. Chunks
        arrive in network order and are not frame-aligned; their
        concatenation is the full audio. A connection dropped mid-stream
        raises a ``TRANSPORT`` error from the iterator after the chunks
        already received. Leaving the block early closes the connection
        without draining it::

            async with client.stream_text_to_speech(voice_id, text) as chunks:
                async for chunk in chunks:
                    out.write(chunk)
        """
        request = SynthesisRequest(
            voice_id=voice_id,
            text=text,
            model_id=model_id or DEFAULT_STREAM_MODEL,
            voice_settings=voice_settings,
        )
        path = f"/v1/text-to-speech/{request.voice_id}/stream"
        client = self._ensure_client()
        logger.debug("POST %s (streaming, format=%s)", path, output_format)

        try:
            async with client.stream(
                "POST",
                path,
                params={"output_format": output_format},
                json=request.payload(),
                headers={"Accept": "audio/mpeg"},
            ) as response:
                if not response.is_success:
                    await response.aread()
                    logger.warning(
                        "ElevenLabs POST %s returned status %d",
                        path,
                        response.status_code,
                    )
                    raise XIVoiceError.from_response(response)

                chunks = self._iter_chunks(response)
                try:
                    yield chunks
                finally:
                    await chunks.aclose()
        except httpx.RequestError as exc:
            logger.warning("ElevenLabs stream %s failed: %s", path, exc)
            raise XIVoiceError.from_transport(exc) from exc

    async def text_to_speech_stream(
        self,
        voice_id: str,
        text: str,
        on_chunk: ChunkHandler,
        model_id: str | None = None,
        voice_settings: VoiceSettingsInput = None,
        output_format: str = DEFAULT_STREAM_OUTPUT_FORMAT,
        cancel: asyncio.Event | None = None,
    ) -> None:
        """Stream synthesized audio into *on_chunk*, one call per chunk.

        *on_chunk* may be a plain function or a coroutine function; each call
        finishes before the next chunk is read. Returns once the stream ends.
        Setting *cancel* stops delivery: no handler runs after it is seen set
        and the connection is closed.
        """
        delivered = 0
        async with self.stream_text_to_speech(
            voice_id,
            text,
            model_id=model_id,
            voice_settings=voice_settings,
            output_format=output_format,
        ) as chunks:
            while True:
                if cancel is None:
                    chunk = await _read_next(chunks)
                else:
                    chunk = await _read_next_unless_cancelled(chunks, cancel)
                if chunk is None:
                    break
                if cancel is not None and cancel.is_set():
                    logger.debug("Stream cancelled after %d chunks", delivered)
                    break
                result = on_chunk(chunk)
                if inspect.isawaitable(result):
                    await result
                delivered += 1

    # ------------------------------------------------------------------
    # Voice design
    # ------------------------------------------------------------------

    async def design_voice(self, voice_description: str, **options: Any) -> dict[str, Any]:
        """Generate voice previews from a text description.

        *options* are the optional design fields (``model_id``, ``text``,
        ``auto_generate_text``, ``loudness``, ``seed``, ``guidance_scale``
        and so on). Unknown names raise ``pydantic.ValidationError``.
        """
        request = VoiceDesignRequest(voice_description=voice_description, **options)
        return await self._request_json(
            "POST", "/v1/text-to-voice/design", json=request.payload()
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"xi-api-key": self._api_key} if self._api_key else {}
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=self._config.timeout,
                headers=headers,
                transport=self._transport,
            )
            if self._api_key:
                logger.info(
                    "ElevenLabs client ready at %s (key: %s)",
                    self._config.base_url,
                    _mask(self._api_key),
                )
            else:
                logger.warning(
                    "No ElevenLabs API key configured; requests will be unauthenticated"
                )
        return self._client

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send one request and raise ``XIVoiceError`` unless it succeeded."""
        client = self._ensure_client()
        logger.debug("%s %s", method, path)
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("ElevenLabs %s %s failed: %s", method, path, exc)
            raise XIVoiceError.from_transport(exc) from exc

        if not response.is_success:
            logger.warning(
                "ElevenLabs %s %s returned status %d",
                method,
                path,
                response.status_code,
            )
            raise XIVoiceError.from_response(response)
        return response

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send one request and parse its JSON body.

        A success status with a body that is not valid JSON is reported as
        an ``API`` error carrying that status.
        """
        response = await self._request(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise XIVoiceError(
                ErrorKind.API,
                f"Malformed JSON in response to {method} {path}: {exc}",
                status_code=response.status_code,
            ) from exc

    @staticmethod
    async def _iter_chunks(response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.RequestError as exc:
            logger.warning("ElevenLabs stream interrupted: %s", exc)
            raise XIVoiceError.from_transport(exc) from exc
