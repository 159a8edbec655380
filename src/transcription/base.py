"""Extraction worker interface: audio blob in, text and duration out."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from errors import UpstreamServiceError


class TranscriptionError(UpstreamServiceError):
    """Transcription service failed or returned an unusable answer."""

    code = "TRANSCRIPTION_FAILED"


@dataclass(frozen=True)
class TranscriptionResult:
    text: str
    duration: int | None = None


class Transcriber(ABC):
    """Stateless worker. Safe to call concurrently for independent artifacts."""

    @abstractmethod
    async def transcribe(self, artifact_id: str, blob_ref: str) -> TranscriptionResult:
        """Transcribe the blob. Raises TranscriptionError on any failure."""
        ...
