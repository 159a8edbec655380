"""Shared CLI utilities."""

import os

import structlog
from rich.console import Console

console = Console()
logger = structlog.get_logger()


def default_user_id() -> str:
    """Local single-user identity for CLI use."""
    return os.getenv("CULTIVATE_USER", "local")


def get_components(config_model=None) -> dict:
    """Build stores, workers and the pipeline from config.

    The LLM provider is created lazily by the generator on first use, so
    commands that never reach the AI stage work without an API key.
    """
    from artifacts.blobs import BlobStore
    from artifacts.guard import DeletionGuard
    from artifacts.store import ArtifactStore
    from cli.config import load_config_model
    from contacts.store import ContactStore
    from pipeline import ArtifactPipeline, TaskScheduler
    from suggestions.generator import LLMSuggestionGenerator
    from suggestions.reconcile import ReconciliationEngine
    from suggestions.store import SuggestionStore
    from transcription.whisper import WhisperTranscriber

    config = config_model or load_config_model()
    db_path = config.paths.db

    artifacts = ArtifactStore(db_path)
    contacts = ContactStore(db_path)
    suggestions = SuggestionStore(db_path)
    blobs = BlobStore(config.paths.blobs_dir)

    provider = None
    if config.llm.api_key or config.llm.provider != "auto":
        from llm import create_llm_provider

        provider = create_llm_provider(
            provider=config.llm.provider,
            api_key=config.llm.api_key or None,
            model=config.llm.model,
            timeout=config.llm.timeout,
        )
    generator = LLMSuggestionGenerator(
        provider=provider,
        max_suggestions=config.suggestions.max_suggestions,
        min_confidence=config.suggestions.min_confidence,
        max_content_chars=config.suggestions.max_content_chars,
        max_tokens=config.llm.max_tokens,
    )
    transcriber = WhisperTranscriber(
        blobs,
        api_key=config.transcription.api_key or None,
        model=config.transcription.model,
        base_url=config.transcription.base_url,
        timeout=config.pipeline.extraction_timeout,
    )

    scheduler = TaskScheduler()
    pipeline = ArtifactPipeline(
        artifacts,
        contacts,
        suggestions,
        transcriber=transcriber,
        generator=generator,
        scheduler=scheduler,
        extraction_timeout=config.pipeline.extraction_timeout,
        ai_timeout=config.pipeline.ai_timeout,
        max_attempts=config.pipeline.max_attempts,
        retry_min_wait=config.pipeline.retry_min_wait,
        retry_max_wait=config.pipeline.retry_max_wait,
    )

    return {
        "config_model": config,
        "artifacts": artifacts,
        "contacts": contacts,
        "suggestions": suggestions,
        "blobs": blobs,
        "transcriber": transcriber,
        "generator": generator,
        "scheduler": scheduler,
        "pipeline": pipeline,
        "reconciler": ReconciliationEngine(suggestions, contacts, artifacts),
        "guard": DeletionGuard(artifacts, contacts, suggestions, blobs),
    }
