"""Tests for the analysis orchestrator."""

import asyncio

import pytest
from conftest import FakeAnalysisService, make_photo

from photo_culling.collection.store import PhotoStore
from photo_culling.errors import ExternalServiceError, PreconditionError, ValidationError
from photo_culling.models import CullingMode, WorkflowStage
from photo_culling.orchestrator import AnalysisOrchestrator
from photo_culling.workflow import WorkflowController


def _setup(service, count=3, mode="fast", follow_up_delay=0.0):
    store = PhotoStore([make_photo(f"p{i}") for i in range(count)])
    workflow = WorkflowController()
    workflow.transition(WorkflowStage.CONFIGURE)
    workflow.configure(mode, "wedding")
    orchestrator = AnalysisOrchestrator(
        store,
        workflow,
        {CullingMode.FAST: service, CullingMode.DEEP: service},
        follow_up_delay=follow_up_delay,
    )
    return store, workflow, orchestrator


def test_successful_batch_replaces_store():
    service = FakeAnalysisService(scores={"p0.jpg": 8.0, "p1.jpg": 3.0})
    store, workflow, orchestrator = _setup(service)
    snapshots = []

    result = asyncio.run(
        orchestrator.run("u", on_progress=lambda progress: snapshots.append(progress.processed))
    )

    assert workflow.stage == WorkflowStage.REVIEW
    assert [p.ai_score for p in store.photos()] == [8.0, 3.0, 6.0]
    assert [p.id for p in result] == ["p0", "p1", "p2"]
    assert snapshots == [1, 2, 3]
    assert orchestrator.progress.processed == orchestrator.progress.total == 3
    assert service.calls[0]["concurrency"] == 2
    assert service.calls[0]["event_type"] == "wedding"


def test_follow_up_runs_after_completion():
    service = FakeAnalysisService()
    store, _, orchestrator = _setup(service)
    seen = []

    async def go():
        await orchestrator.run("u", on_complete=lambda: seen.append(store.photos()[0].ai_score))
        assert seen == []
        await orchestrator.follow_up

    asyncio.run(go())
    assert seen == [6.0]


def test_failed_batch_keeps_merged_updates():
    service = FakeAnalysisService(scores={f"p{i}.jpg": 9.0 for i in range(10)}, fail_after=6)
    store, workflow, orchestrator = _setup(service, count=10)
    completed = []

    with pytest.raises(ExternalServiceError):
        asyncio.run(orchestrator.run("u", on_complete=lambda: completed.append(True)))

    assert workflow.stage == WorkflowStage.UPLOAD
    assert sum(1 for p in store.photos() if p.ai_score == 9.0) == 6
    assert len(store) == 10
    assert orchestrator.progress.processed == 6
    assert orchestrator.follow_up is None
    assert completed == []


def test_unexpected_errors_are_wrapped():
    service = FakeAnalysisService(fail_after=0, error=KeyError("ai_score"))
    _, workflow, orchestrator = _setup(service)
    with pytest.raises(ExternalServiceError, match="Analysis failed"):
        asyncio.run(orchestrator.run("u"))
    assert workflow.stage == WorkflowStage.UPLOAD


def test_empty_store_is_precondition_error():
    service = FakeAnalysisService()
    _, workflow, orchestrator = _setup(service, count=0)
    with pytest.raises(PreconditionError):
        asyncio.run(orchestrator.run("u"))
    assert workflow.stage == WorkflowStage.CONFIGURE
    assert service.calls == []


def test_missing_user_is_validation_error():
    service = FakeAnalysisService()
    _, workflow, orchestrator = _setup(service)
    with pytest.raises(ValidationError):
        asyncio.run(orchestrator.run(""))
    assert workflow.stage == WorkflowStage.CONFIGURE


def test_manual_mode_has_no_service():
    _, workflow, orchestrator = _setup(FakeAnalysisService(), mode="manual")
    with pytest.raises(ValidationError):
        asyncio.run(orchestrator.run("u"))
    assert workflow.stage == WorkflowStage.CONFIGURE


def test_reset_during_batch_discards_results():
    holder = {}

    def on_photo(processed):
        if processed == 1:
            holder["orchestrator"].reset()
            holder["store"].clear()
            holder["workflow"].reset()

    service = FakeAnalysisService(scores={"p1.jpg": 9.0}, on_photo=on_photo)
    store, workflow, orchestrator = _setup(service)
    holder.update(orchestrator=orchestrator, store=store, workflow=workflow)

    result = asyncio.run(orchestrator.run("u"))

    assert result == []
    assert len(store) == 0
    assert workflow.stage == WorkflowStage.UPLOAD
    assert orchestrator.progress.total == 0


def test_failing_progress_callback_stops_the_batch():
    completed = []
    service = FakeAnalysisService(on_photo=completed.append)
    store, workflow, orchestrator = _setup(service, count=5)

    def on_progress(progress):
        raise RuntimeError("display closed")

    async def go():
        with pytest.raises(ExternalServiceError, match="display closed"):
            await orchestrator.run("u", on_progress=on_progress)
        for _ in range(10):
            await asyncio.sleep(0)

    asyncio.run(go())
    assert workflow.stage == WorkflowStage.UPLOAD
    assert len(completed) < 5
    assert store.get("p0").ai_score == 6.0
