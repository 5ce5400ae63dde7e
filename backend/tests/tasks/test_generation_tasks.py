"""
Tests for the Celery entry point. Tasks run eagerly with .apply(), so these
tests are synchronous and own their event loops.
"""

import asyncio

import pytest

from genstudio.core.config import settings
from genstudio.schemas.job import JobStatus
from genstudio.services.job_tracking.reader import StatusReader
from genstudio.services.job_tracking.recorder import JobRecorder
from genstudio.services.job_tracking.store import MemoryStore
from genstudio.tasks.generation_tasks import run_generation_job


@pytest.fixture
def task_store(mocker, monkeypatch):
    store = MemoryStore(list_ttl_seconds=3600)
    mocker.patch("genstudio.tasks.generation_tasks.get_job_store", return_value=store)
    monkeypatch.setattr(settings, "VIDEO_POLL_INTERVAL_SECONDS", 0)
    return store


class TestGenerationTasks:
    """Test the generation.run_job task."""

    @pytest.mark.celery
    def test_task_is_registered_by_name(self):
        assert run_generation_job.name == "generation.run_job"

    @pytest.mark.celery
    def test_runs_job_to_completion(self, task_store):
        asyncio.run(JobRecorder(task_store, "job1").create("video"))

        result = run_generation_job.apply(args=["video", "job1", {"provider": "mock", "prompt": "a cat"}])

        assert result.successful()
        assert result.get() == "job1"
        record = asyncio.run(StatusReader(task_store).get_status("job1"))
        assert record.status == JobStatus.COMPLETED
        assert record.result["provider"] == "mock"

    @pytest.mark.celery
    def test_vendor_failure_is_recorded_not_raised(self, task_store):
        asyncio.run(JobRecorder(task_store, "job2").create("video"))

        result = run_generation_job.apply(
            args=["video", "job2", {"provider": "runway", "prompt": "x", "image": "https://img.example/1.png"}]
        )

        assert result.successful()
        record = asyncio.run(StatusReader(task_store).get_status("job2"))
        assert record.status == JobStatus.FAILED
        assert record.error == "Server configuration error: Missing API key."
