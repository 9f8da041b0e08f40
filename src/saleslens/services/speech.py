"""ElevenLabs text-to-speech client for spoken coaching clips.

Uses httpx.AsyncClient against the ElevenLabs REST API and returns the
MP3 bytes as-is. No retries: a failed synthesis surfaces to the caller.
"""

from __future__ import annotations

import httpx
import structlog

from src.saleslens.config import Settings, get_settings
from src.saleslens.core.errors import UpstreamConfigurationError, UpstreamServiceError

logger = structlog.get_logger(__name__)

MAX_SPEECH_TEXT_LENGTH = 5_000


class ElevenLabsTTS:
    """Synthesizes speech with a fixed voice and model.

    Args:
        api_key: ElevenLabs API key. Empty means speech is unavailable.
        voice_id: Voice to render with.
        model_id: Synthesis model.
    """

    BASE_URL = "https://api.elevenlabs.io/v1"
    TIMEOUT = 60.0

    def __init__(
        self,
        api_key: str,
        voice_id: str,
        model_id: str = "eleven_flash_v2_5",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._voice_id = voice_id
        self._model_id = model_id
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ElevenLabsTTS:
        settings = settings or get_settings()
        return cls(
            api_key=settings.ELEVENLABS_API_KEY,
            voice_id=settings.ELEVENLABS_VOICE_ID,
            model_id=settings.ELEVENLABS_MODEL_ID,
        )

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _headers(self) -> dict[str, str]:
        return {
            "xi-api-key": self._api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }

    async def synthesize(self, text: str) -> bytes:
        """Render ``text`` to MP3 audio.

        Raises:
            UpstreamConfigurationError: If no API key is configured.
            UpstreamServiceError: On a non-2xx answer or transport failure.
        """
        if not self._api_key:
            raise UpstreamConfigurationError("ELEVENLABS_API_KEY is not configured.")

        payload = {
            "text": text,
            "model_id": self._model_id,
            "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
        }

        try:
            async with httpx.AsyncClient(timeout=self.TIMEOUT, transport=self._transport) as client:
                response = await client.post(
                    f"{self.BASE_URL}/text-to-speech/{self._voice_id}",
                    headers=self._headers(),
                    json=payload,
                )
        except httpx.HTTPError as exc:
            logger.error("speech.request_failed", error=str(exc))
            raise UpstreamServiceError("Failed to generate voice coaching audio.") from exc

        if response.is_error:
            logger.error(
                "speech.provider_error",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise UpstreamServiceError("Failed to generate voice coaching audio.")

        logger.info("speech.synthesized", text_length=len(text), audio_bytes=len(response.content))
        return response.content
