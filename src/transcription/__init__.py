"""Extraction stage workers."""

from .base import Transcriber, TranscriptionError, TranscriptionResult

__all__ = ["Transcriber", "TranscriptionError", "TranscriptionResult"]
