"""OpenAI Whisper transcription over httpx."""

import os
from pathlib import PurePosixPath

import httpx
import structlog

from artifacts.blobs import BlobStore

from .base import Transcriber, TranscriptionError, TranscriptionResult

logger = structlog.get_logger()

DEFAULT_BASE_URL = "https://api.openai.com"


class WhisperTranscriber(Transcriber):
    """Posts the audio blob to `/v1/audio/transcriptions` and reads `verbose_json`."""

    def __init__(
        self,
        blobs: BlobStore,
        api_key: str | None = None,
        model: str = "whisper-1",
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 300.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.blobs = blobs
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def transcribe(self, artifact_id: str, blob_ref: str) -> TranscriptionResult:
        if not self.api_key:
            raise TranscriptionError("No transcription API key configured (OPENAI_API_KEY)")
        if not blob_ref:
            raise TranscriptionError(f"Artifact {artifact_id} has no audio reference")

        try:
            audio = self.blobs.read(blob_ref)
        except (OSError, ValueError) as e:
            raise TranscriptionError(f"Audio blob unavailable: {blob_ref}") from e

        filename = PurePosixPath(blob_ref).name
        try:
            response = await self._get_client().post(
                f"{self.base_url}/v1/audio/transcriptions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                data={"model": self.model, "response_format": "verbose_json"},
                files={"file": (filename, audio, "application/octet-stream")},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "transcription.http_error",
                artifact_id=artifact_id,
                status=e.response.status_code,
            )
            raise TranscriptionError(
                f"Transcription service returned HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise TranscriptionError(f"Transcription request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise TranscriptionError("Transcription response is not JSON") from e

        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            raise TranscriptionError("Transcription response has no text")

        duration = payload.get("duration")
        return TranscriptionResult(
            text=text.strip(),
            duration=round(duration) if isinstance(duration, (int, float)) else None,
        )
