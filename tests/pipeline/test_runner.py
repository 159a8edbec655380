"""Tests for the two-stage artifact pipeline."""

import asyncio
import threading

import pytest

from artifacts.guard import DeletionGuard
from artifacts.state import ProcessingStateMachine
from contacts.models import Contact
from errors import AuthorizationError, NotFoundError, UpstreamServiceError, ValidationError
from pipeline.runner import ArtifactPipeline
from pipeline.scheduler import TaskScheduler
from shared_types import ArtifactType, ReviewStatus, Stage, StageStatus, SuggestionAction
from suggestions.models import Suggestion
from transcription.base import Transcriber, TranscriptionError, TranscriptionResult


class FakeTranscriber(Transcriber):
    def __init__(self, text="Dana is training for a marathon.", duration=12, errors=(), delay=0.0):
        self.text = text
        self.duration = duration
        self.errors = list(errors)
        self.delay = delay
        self.calls = 0

    async def transcribe(self, artifact_id, blob_ref):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.errors:
            raise self.errors.pop(0)
        return TranscriptionResult(text=self.text, duration=self.duration)


class GatedTranscriber(Transcriber):
    """First call blocks until released; later calls answer immediately."""

    def __init__(self):
        self.gate = asyncio.Event()
        self.calls = 0

    async def transcribe(self, artifact_id, blob_ref):
        self.calls += 1
        if self.calls == 1:
            await self.gate.wait()
            return TranscriptionResult(text="first")
        return TranscriptionResult(text="second")


class FakeGenerator:
    def __init__(self, suggestions=None, error=None):
        self.suggestions = suggestions if suggestions is not None else [
            Suggestion(
                field_path="personal_context.hobbies",
                action=SuggestionAction.ADD,
                suggested_value="Marathon running",
                confidence=0.9,
            )
        ]
        self.error = error
        self.calls = []

    def generate(self, artifact, contact):
        self.calls.append((artifact.id, contact.id))
        if self.error:
            raise self.error
        return list(self.suggestions)


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def make_pipeline(artifact_store, contact_store, suggestion_store, transcriber, generator):
    def _make(**kwargs):
        kwargs.setdefault("transcriber", transcriber)
        kwargs.setdefault("generator", generator)
        return ArtifactPipeline(
            artifact_store,
            contact_store,
            suggestion_store,
            scheduler=TaskScheduler(),
            **kwargs,
        )

    return _make


@pytest.fixture
def pipeline(make_pipeline):
    return make_pipeline()


def _voice_memo(pipeline, contact_id="contact-1"):
    return pipeline.ingest(
        "user-1", "voice_memo", contact_id=contact_id, audio_file_path="user-1/memo.m4a"
    )


class TestIngest:
    def test_outside_event_loop(self, pipeline, contact):
        artifact = pipeline.ingest("user-1", "note", contact_id="contact-1", content="hello")
        assert artifact.extraction_status == StageStatus.COMPLETED
        assert artifact.ai_status == StageStatus.PENDING
        assert pipeline.scheduler.pending == 0

    def test_voice_memo_starts_pending(self, pipeline, contact):
        artifact = _voice_memo(pipeline)
        assert artifact.type == ArtifactType.VOICE_MEMO
        assert artifact.extraction_status == StageStatus.PENDING
        assert artifact.ai_status == StageStatus.PENDING

    def test_unknown_type(self, pipeline):
        with pytest.raises(ValidationError):
            pipeline.ingest("user-1", "fax", content="x")

    def test_voice_memo_needs_audio(self, pipeline, contact):
        with pytest.raises(ValidationError):
            pipeline.ingest("user-1", "voice_memo", contact_id="contact-1")

    def test_missing_user(self, pipeline):
        with pytest.raises(ValidationError):
            pipeline.ingest("", "note", content="x")

    def test_missing_contact(self, pipeline):
        with pytest.raises(NotFoundError):
            pipeline.ingest("user-1", "note", contact_id="ghost", content="x")

    def test_contact_of_other_user(self, pipeline, contact_store):
        contact_store.create(Contact(id="c-2", user_id="user-2", name="Sam"))
        with pytest.raises(AuthorizationError):
            pipeline.ingest("user-1", "note", contact_id="c-2", content="x")


class TestChain:
    @pytest.mark.asyncio
    async def test_voice_memo_full_chain(self, pipeline, contact, artifact_store, suggestion_store, generator):
        artifact = _voice_memo(pipeline)
        await pipeline.scheduler.drain(timeout=5)

        stored = artifact_store.get(artifact.id)
        assert stored.extraction_status == StageStatus.COMPLETED
        assert stored.ai_status == StageStatus.COMPLETED
        assert stored.transcription == "Dana is training for a marathon."
        assert stored.duration_seconds == 12
        assert stored.ai_completed_at is not None

        batches = suggestion_store.list_for_artifact(artifact.id)
        assert len(batches) == 1
        assert batches[0].status == ReviewStatus.PENDING
        assert batches[0].contact_id == "contact-1"
        assert batches[0].field_paths == ["personal_context.hobbies"]
        assert generator.calls == [(artifact.id, "contact-1")]

    @pytest.mark.asyncio
    async def test_note_skips_extraction(self, pipeline, contact, artifact_store, suggestion_store, transcriber):
        artifact = pipeline.ingest("user-1", "note", contact_id="contact-1", content="Dana runs marathons")
        await pipeline.scheduler.drain(timeout=5)

        assert transcriber.calls == 0
        assert artifact_store.get(artifact.id).ai_status == StageStatus.COMPLETED
        assert len(suggestion_store.list_for_artifact(artifact.id)) == 1

    @pytest.mark.asyncio
    async def test_empty_suggestion_list_still_completes(
        self, make_pipeline, contact, artifact_store, suggestion_store
    ):
        pipeline = make_pipeline(generator=FakeGenerator(suggestions=[]))
        artifact = pipeline.ingest("user-1", "meeting", contact_id="contact-1", content="small talk")
        await pipeline.scheduler.drain(timeout=5)

        assert artifact_store.get(artifact.id).ai_status == StageStatus.COMPLETED
        assert suggestion_store.list_for_artifact(artifact.id)[0].suggestions == ()

    @pytest.mark.asyncio
    async def test_pog_never_reaches_ai(self, pipeline, contact, artifact_store, generator):
        artifact = pipeline.ingest("user-1", "pog", contact_id="contact-1", content="sent intro")
        await pipeline.scheduler.drain(timeout=5)

        stored = artifact_store.get(artifact.id)
        assert stored.extraction_status == StageStatus.COMPLETED
        assert stored.ai_status == StageStatus.PENDING
        assert generator.calls == []


class TestFailures:
    @pytest.mark.asyncio
    async def test_extraction_error_blocks_ai(self, make_pipeline, contact, artifact_store, generator):
        pipeline = make_pipeline(transcriber=FakeTranscriber(errors=[TranscriptionError("HTTP 500")]))
        artifact = _voice_memo(pipeline)
        await pipeline.scheduler.drain(timeout=5)

        stored = artifact_store.get(artifact.id)
        assert stored.extraction_status == StageStatus.FAILED
        assert stored.stage_error(Stage.EXTRACTION) == "HTTP 500"
        assert stored.ai_status == StageStatus.PENDING
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_extraction_timeout(self, make_pipeline, contact, artifact_store):
        pipeline = make_pipeline(transcriber=FakeTranscriber(delay=1.0), extraction_timeout=0.05)
        artifact = _voice_memo(pipeline)
        await pipeline.scheduler.drain(timeout=5)

        stored = artifact_store.get(artifact.id)
        assert stored.extraction_status == StageStatus.FAILED
        assert "timed out" in stored.stage_error(Stage.EXTRACTION)

    @pytest.mark.asyncio
    async def test_ai_error_recorded(self, make_pipeline, contact, artifact_store, suggestion_store):
        pipeline = make_pipeline(generator=FakeGenerator(error=UpstreamServiceError("provider down")))
        artifact = pipeline.ingest("user-1", "note", contact_id="contact-1", content="hello")
        await pipeline.scheduler.drain(timeout=5)

        stored = artifact_store.get(artifact.id)
        assert stored.ai_status == StageStatus.FAILED
        assert stored.stage_error(Stage.AI) == "provider down"
        assert suggestion_store.list_for_artifact(artifact.id) == []

    @pytest.mark.asyncio
    async def test_unexpected_error_absorbed(self, make_pipeline, contact, artifact_store):
        pipeline = make_pipeline(generator=FakeGenerator(error=KeyError("boom")))
        artifact = pipeline.ingest("user-1", "note", contact_id="contact-1", content="hello")
        await pipeline.scheduler.drain(timeout=5)

        stored = artifact_store.get(artifact.id)
        assert stored.ai_status == StageStatus.FAILED
        assert stored.stage_error(Stage.AI).startswith("KeyError")

    @pytest.mark.asyncio
    async def test_missing_content(self, pipeline, contact, artifact_store, generator):
        artifact = pipeline.ingest("user-1", "email", contact_id="contact-1", content="  ")
        await pipeline.scheduler.drain(timeout=5)

        stored = artifact_store.get(artifact.id)
        assert stored.ai_status == StageStatus.FAILED
        assert stored.stage_error(Stage.AI) == "email has no content"
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_unlinked_artifact(self, pipeline, artifact_store):
        artifact = pipeline.ingest("user-1", "note", content="hello")
        await pipeline.scheduler.drain(timeout=5)
        assert "not linked" in artifact_store.get(artifact.id).stage_error(Stage.AI)

    @pytest.mark.asyncio
    async def test_retry_then_success(self, make_pipeline, contact, artifact_store):
        transcriber = FakeTranscriber(errors=[TranscriptionError("flaky")])
        pipeline = make_pipeline(
            transcriber=transcriber, max_attempts=2, retry_min_wait=0, retry_max_wait=0
        )
        artifact = _voice_memo(pipeline)
        await pipeline.scheduler.drain(timeout=5)

        assert transcriber.calls == 2
        stored = artifact_store.get(artifact.id)
        assert stored.extraction_status == StageStatus.COMPLETED
        assert stored.ai_status == StageStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_no_retry_by_default(self, make_pipeline, contact, artifact_store):
        transcriber = FakeTranscriber(errors=[TranscriptionError("flaky")])
        pipeline = make_pipeline(transcriber=transcriber)
        artifact = _voice_memo(pipeline)
        await pipeline.scheduler.drain(timeout=5)

        assert transcriber.calls == 1
        assert artifact_store.get(artifact.id).extraction_status == StageStatus.FAILED


class TestReprocess:
    @pytest.mark.asyncio
    async def test_failed_stage_recovers(self, make_pipeline, contact, artifact_store):
        pipeline = make_pipeline(transcriber=FakeTranscriber(errors=[TranscriptionError("down")]))
        artifact = _voice_memo(pipeline)
        await pipeline.scheduler.drain(timeout=5)
        assert artifact_store.get(artifact.id).extraction_status == StageStatus.FAILED

        reset = pipeline.reprocess(artifact.id, "user-1")
        assert reset.extraction_status == StageStatus.PENDING
        assert reset.stage_error(Stage.EXTRACTION) is None
        await pipeline.scheduler.drain(timeout=5)

        stored = artifact_store.get(artifact.id)
        assert stored.extraction_status == StageStatus.COMPLETED
        assert stored.ai_status == StageStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_new_batch_supersedes_pending(self, pipeline, contact, suggestion_store):
        artifact = pipeline.ingest("user-1", "note", contact_id="contact-1", content="hello")
        await pipeline.scheduler.drain(timeout=5)
        pipeline.reprocess(artifact.id, "user-1", stage="ai")
        await pipeline.scheduler.drain(timeout=5)

        batches = suggestion_store.list_for_contact("contact-1", include_superseded=True)
        assert len(batches) == 2
        assert sum(1 for b in batches if b.superseded_by is None) == 1

    @pytest.mark.asyncio
    async def test_stale_run_ignored(self, make_pipeline, contact, artifact_store):
        transcriber = GatedTranscriber()
        pipeline = make_pipeline(transcriber=transcriber)
        artifact = _voice_memo(pipeline)

        while transcriber.calls == 0:
            await asyncio.sleep(0.01)
        assert artifact_store.get(artifact.id).extraction_status == StageStatus.PROCESSING

        pipeline.reprocess(artifact.id, "user-1", stage=Stage.EXTRACTION)
        while transcriber.calls < 2:
            await asyncio.sleep(0.01)
        transcriber.gate.set()
        await pipeline.scheduler.drain(timeout=5)

        stored = artifact_store.get(artifact.id)
        assert stored.transcription == "second"
        assert stored.extraction_status == StageStatus.COMPLETED
        assert stored.ai_status == StageStatus.COMPLETED

    def test_validation(self, pipeline, contact):
        note = pipeline.ingest("user-1", "note", contact_id="contact-1", content="hello")
        pog = pipeline.ingest("user-1", "pog", contact_id="contact-1", content="intro")

        with pytest.raises(ValidationError):
            pipeline.reprocess("", "user-1")
        with pytest.raises(NotFoundError):
            pipeline.reprocess("ghost", "user-1")
        with pytest.raises(AuthorizationError):
            pipeline.reprocess(note.id, "user-2")
        with pytest.raises(ValidationError):
            pipeline.reprocess(note.id, "user-1", stage="bogus")
        with pytest.raises(ValidationError):
            pipeline.reprocess(note.id, "user-1", stage="extraction")
        with pytest.raises(ValidationError):
            pipeline.reprocess(pog.id, "user-1")


def test_recover_interrupted(pipeline, contact, artifact_store):
    artifact = _voice_memo(pipeline)
    ProcessingStateMachine(artifact_store).begin(artifact.id, Stage.EXTRACTION)

    assert pipeline.recover_interrupted() == 1

    stored = artifact_store.get(artifact.id)
    assert stored.extraction_status == StageStatus.FAILED
    assert stored.stage_error(Stage.EXTRACTION) == "interrupted before completion"
    assert pipeline.recover_interrupted() == 0


class RecordingScheduler(TaskScheduler):
    def __init__(self):
        super().__init__()
        self.spawned = []

    def spawn(self, coro, name=None):
        task = super().spawn(coro, name=name)
        self.spawned.append(task)
        return task


class GatedGenerator(FakeGenerator):
    """Blocks inside generate() until released; runs on the worker thread."""

    def __init__(self):
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def generate(self, artifact, contact):
        self.started.set()
        self.release.wait(timeout=5)
        return super().generate(artifact, contact)


class TestDeletedMidRun:
    def _pipeline(self, artifact_store, contact_store, suggestion_store, **kwargs):
        kwargs.setdefault("transcriber", FakeTranscriber())
        kwargs.setdefault("generator", FakeGenerator())
        return ArtifactPipeline(
            artifact_store,
            contact_store,
            suggestion_store,
            scheduler=RecordingScheduler(),
            **kwargs,
        )

    @pytest.mark.asyncio
    async def test_during_extraction(self, contact, artifact_store, contact_store, suggestion_store):
        transcriber = GatedTranscriber()
        generator = FakeGenerator()
        pipeline = self._pipeline(
            artifact_store, contact_store, suggestion_store, transcriber=transcriber, generator=generator
        )
        guard = DeletionGuard(artifact_store, contact_store, suggestion_store)
        artifact = _voice_memo(pipeline)

        while transcriber.calls == 0:
            await asyncio.sleep(0.01)
        guard.delete(artifact.id, "user-1")
        transcriber.gate.set()
        await pipeline.scheduler.drain(timeout=5)

        assert all(t.exception() is None for t in pipeline.scheduler.spawned)
        assert artifact_store.get(artifact.id) is None
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_during_ai(self, contact, artifact_store, contact_store, suggestion_store):
        generator = GatedGenerator()
        pipeline = self._pipeline(artifact_store, contact_store, suggestion_store, generator=generator)
        guard = DeletionGuard(artifact_store, contact_store, suggestion_store)
        artifact = pipeline.ingest("user-1", "note", contact_id="contact-1", content="Dana runs marathons.")

        while not generator.started.is_set():
            await asyncio.sleep(0.01)
        guard.delete(artifact.id, "user-1")
        generator.release.set()
        await pipeline.scheduler.drain(timeout=5)

        assert all(t.exception() is None for t in pipeline.scheduler.spawned)
        assert artifact_store.get(artifact.id) is None
        assert suggestion_store.list_for_contact("contact-1", include_superseded=True) == []
