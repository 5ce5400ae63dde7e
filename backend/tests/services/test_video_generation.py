"""
Tests for the video vendor adapters and the video generation worker.
"""

import base64
import json

import pytest

from genstudio.core.exceptions import ValidationError, VendorError, VendorTransportError
from genstudio.schemas.job import JobRecord, JobStatus
from genstudio.services.job_tracking import keys
from genstudio.services.video_generation.base_provider import BaseVideoProvider, PollResult, SubmitResult
from genstudio.services.video_generation.pipeline import VideoGenerationWorker
from genstudio.services.video_generation.providers import (
    CreatomateProvider,
    MockVideoProvider,
    RunwayVideoProvider,
    StabilityVideoProvider,
    load_image_bytes,
)


class ScriptedProvider(BaseVideoProvider):
    """Provider that replays a fixed list of poll outcomes"""

    def __init__(self, outcomes, result=None):
        super().__init__("test-key", "https://vendor.example")
        self.outcomes = list(outcomes)
        self.result = result
        self.polls = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    @classmethod
    def validate(cls, params):
        return None

    async def submit(self, params):
        return SubmitResult(external_ref="ext-1", result=self.result)

    async def poll(self, external_ref):
        self.polls += 1
        outcome = self.outcomes.pop(0) if self.outcomes else PollResult(done=False)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


async def run_video_job(store, recorder_factory, worker, params, job_id="job1"):
    await recorder_factory(job_id).create("video")
    await worker.run(job_id, worker.validate(params))
    return JobRecord.model_validate_json(await store.get(keys.record_key(job_id)))


class TestVideoGenerationWorker:
    """Test the video worker end to end against scripted vendors."""

    @pytest.mark.unit
    async def test_mock_provider_completes(self, store, recorder_factory, fake_sleep):
        worker = VideoGenerationWorker(store, sleep=fake_sleep, poll_interval=10)

        record = await run_video_job(store, recorder_factory, worker, {"provider": "mock", "prompt": "a cat surfing"})

        assert record.status == JobStatus.COMPLETED
        assert record.result["provider"] == "mock"
        assert record.result["externalRef"].startswith("mock_")
        assert record.result["videoUrl"].endswith(".mp4")
        assert record.external_ref == record.result["externalRef"]
        assert fake_sleep.calls == [10, 10]

        log = await store.lrange(keys.status_key("job1"), 0, -1)
        assert log[0] == "Submitting video request to Mock..."
        assert log[-1] == "Video generation finished!"

    @pytest.mark.unit
    async def test_vendor_not_found_fails_without_more_polls(self, store, recorder_factory, fake_sleep):
        provider = ScriptedProvider([
            PollResult(done=False, stage="rendering"),
            PollResult(done=True, error="Vendor generation ext-1 was not found or expired."),
        ])
        worker = VideoGenerationWorker(store, sleep=fake_sleep, provider_factory=lambda name: provider, max_attempts=90)

        record = await run_video_job(store, recorder_factory, worker, {"provider": "mock", "prompt": "x"})

        assert record.status == JobStatus.FAILED
        assert record.error == "Vendor generation ext-1 was not found or expired."
        assert provider.polls == 2

    @pytest.mark.unit
    async def test_polling_budget_is_exact(self, store, recorder_factory, fake_sleep):
        provider = ScriptedProvider([])
        worker = VideoGenerationWorker(
            store, sleep=fake_sleep, provider_factory=lambda name: provider, poll_interval=10, max_attempts=4
        )

        record = await run_video_job(store, recorder_factory, worker, {"provider": "mock", "prompt": "x"})

        assert record.status == JobStatus.FAILED
        assert record.error == "Video generation timed out after maximum polling attempts."
        assert provider.polls == 4
        assert fake_sleep.calls == [10, 10, 10]

    @pytest.mark.unit
    async def test_zero_polling_budget_is_respected(self, store, recorder_factory, fake_sleep):
        provider = ScriptedProvider([PollResult(done=True, result={"videoUrl": "https://cdn.example/v.mp4"})])
        worker = VideoGenerationWorker(store, sleep=fake_sleep, provider_factory=lambda name: provider, max_attempts=0)

        record = await run_video_job(store, recorder_factory, worker, {"provider": "mock", "prompt": "x"})

        assert worker.max_attempts == 0
        assert record.status == JobStatus.FAILED
        assert record.error == "Video generation timed out after maximum polling attempts."
        assert provider.polls == 0

    @pytest.mark.unit
    async def test_transient_poll_errors_are_retried(self, store, recorder_factory, fake_sleep):
        provider = ScriptedProvider([
            VendorTransportError(),
            PollResult(done=True, result={"videoUrl": "https://cdn.example/v.mp4"}),
        ])
        worker = VideoGenerationWorker(store, sleep=fake_sleep, provider_factory=lambda name: provider)

        record = await run_video_job(store, recorder_factory, worker, {"provider": "mock", "prompt": "x"})

        assert record.status == JobStatus.COMPLETED
        assert record.result["videoUrl"] == "https://cdn.example/v.mp4"

    @pytest.mark.unit
    async def test_immediate_result_skips_polling(self, store, recorder_factory, fake_sleep):
        provider = ScriptedProvider([], result={"videoUrl": "https://cdn.example/ready.mp4"})
        worker = VideoGenerationWorker(store, sleep=fake_sleep, provider_factory=lambda name: provider)

        record = await run_video_job(store, recorder_factory, worker, {"provider": "mock", "prompt": "x"})

        assert record.status == JobStatus.COMPLETED
        assert provider.polls == 0

    @pytest.mark.unit
    async def test_missing_api_key_fails_job(self, store, recorder_factory, fake_sleep):
        worker = VideoGenerationWorker(store, sleep=fake_sleep)

        record = await run_video_job(
            store, recorder_factory, worker, {"provider": "stability", "image": "data:image/png;base64,AAAA"}
        )

        assert record.status == JobStatus.FAILED
        assert record.error == "Server configuration error: Missing API key."

    @pytest.mark.unit
    def test_validate_rejects_bad_requests(self):
        with pytest.raises(ValidationError, match="Unknown video provider"):
            VideoGenerationWorker.validate({"provider": "sora", "prompt": "x"})
        with pytest.raises(ValidationError, match="image is required"):
            VideoGenerationWorker.validate({"provider": "stability"})
        with pytest.raises(ValidationError):
            VideoGenerationWorker.validate({"provider": "runway", "prompt": "x"})
        with pytest.raises(ValidationError, match="Unknown Creatomate template"):
            VideoGenerationWorker.validate(
                {"provider": "creatomate", "template": "nope", "modifications": {"Text-1": "hi"}}
            )
        with pytest.raises(ValidationError, match="Invalid video request"):
            VideoGenerationWorker.validate({"prompt": "no provider"})

    @pytest.mark.unit
    def test_validate_normalizes_provider(self):
        params = VideoGenerationWorker.validate({"provider": " Mock ", "prompt": "x"})
        assert params["provider"] == "mock"


class TestStabilityProvider:
    """Test Stability submit and poll handling."""

    @pytest.mark.unit
    async def test_poll_statuses(self, mocker):
        provider = StabilityVideoProvider(api_key="k")
        get = mocker.patch.object(provider, "_get", new_callable=mocker.AsyncMock)

        get.return_value = (200, b"videobytes", "video/mp4")
        done = await provider.poll("gen1")
        assert done.done
        assert done.result["videoUrl"] == "data:video/mp4;base64," + base64.b64encode(b"videobytes").decode()
        get.assert_awaited_with("/image-to-video/result/gen1", accept="video/*")

        get.return_value = (202, b"", "application/json")
        assert not (await provider.poll("gen1")).done

        get.return_value = (404, b"", "application/json")
        missing = await provider.poll("gen1")
        assert missing.done and "not found or expired" in missing.error

        get.return_value = (503, b"", "text/plain")
        with pytest.raises(VendorTransportError):
            await provider.poll("gen1")

        get.return_value = (400, json.dumps({"errors": ["bad seed"]}).encode(), "application/json")
        rejected = await provider.poll("gen1")
        assert rejected.done and rejected.error == "Stability API error (400): bad seed"

    @pytest.mark.unit
    async def test_submit_sends_image(self, mocker):
        provider = StabilityVideoProvider(api_key="k")
        request = mocker.patch.object(provider, "_request", new_callable=mocker.AsyncMock, return_value={"id": "gen1"})
        image = "data:image/png;base64," + base64.b64encode(b"png").decode()

        submitted = await provider.submit({"image": image, "params": {"seed": 7}})

        assert submitted.external_ref == "gen1"
        method, endpoint = request.await_args.args
        assert (method, endpoint) == ("POST", "/image-to-video")
        assert request.await_args.kwargs["form"] is not None

    @pytest.mark.unit
    async def test_submit_without_id(self, mocker):
        provider = StabilityVideoProvider(api_key="k")
        mocker.patch.object(provider, "_request", new_callable=mocker.AsyncMock, return_value={})

        with pytest.raises(VendorError, match="No generation ID"):
            await provider.submit({"image": "data:image/png;base64,AAAA"})


class TestRunwayProvider:
    """Test Runway polling."""

    @pytest.mark.unit
    async def test_poll(self, mocker):
        provider = RunwayVideoProvider(api_key="k")
        get = mocker.patch.object(provider, "_get", new_callable=mocker.AsyncMock)

        get.return_value = (200, json.dumps({"video_url": "https://runway.example/v.mp4"}).encode(), "application/json")
        assert (await provider.poll("r1")).result == {"videoUrl": "https://runway.example/v.mp4"}

        get.return_value = (200, b"{}", "application/json")
        assert (await provider.poll("r1")).error == "Runway finished without returning a video."

        get.return_value = (202, b"{}", "application/json")
        assert (await provider.poll("r1")).done is False


class TestCreatomateProvider:
    """Test Creatomate render tracking."""

    @pytest.mark.unit
    @pytest.mark.parametrize("status,progress", [
        ("planned", 0.1),
        ("waiting", 0.3),
        ("transcribing", 0.4),
        ("rendering", 0.6),
        ("queued", 0.2),
    ])
    async def test_progress_mapping(self, mocker, status, progress):
        provider = CreatomateProvider(api_key="k")
        mocker.patch.object(
            provider, "_get", new_callable=mocker.AsyncMock,
            return_value=(200, json.dumps({"id": "r1", "status": status}).encode(), "application/json")
        )

        outcome = await provider.poll("r1")

        assert outcome.done is False
        assert outcome.progress == progress
        assert outcome.stage == status

    @pytest.mark.unit
    async def test_terminal_renders(self, mocker):
        provider = CreatomateProvider(api_key="k")
        get = mocker.patch.object(provider, "_get", new_callable=mocker.AsyncMock)

        get.return_value = (200, json.dumps({"status": "succeeded", "url": "https://cdn.example/r1.mp4"}).encode(), "")
        assert (await provider.poll("r1")).result == {"videoUrl": "https://cdn.example/r1.mp4"}

        get.return_value = (200, json.dumps({"status": "failed", "error_message": "Bad source"}).encode(), "")
        assert (await provider.poll("r1")).error == "Bad source"

    @pytest.mark.unit
    async def test_succeeded_without_url_is_an_error(self, mocker):
        provider = CreatomateProvider(api_key="k")
        mocker.patch.object(
            provider, "_get", new_callable=mocker.AsyncMock,
            return_value=(200, json.dumps({"id": "r1", "status": "succeeded"}).encode(), "")
        )

        outcome = await provider.poll("r1")

        assert outcome.done is True
        assert outcome.result is None
        assert outcome.error == "Creatomate finished without returning a video."

    @pytest.mark.unit
    async def test_submit_uses_named_template(self, mocker):
        provider = CreatomateProvider(api_key="k")
        make_request = mocker.patch.object(
            provider, "_make_request", new_callable=mocker.AsyncMock,
            return_value=[{"id": "r1", "status": "planned"}]
        )

        submitted = await provider.submit({"template": "social-reel", "modifications": {"Text-1": "Hello"}})

        assert submitted.external_ref == "r1"
        assert submitted.result is None
        make_request.assert_awaited_once_with(
            "POST", "/renders",
            {"template_id": "543a4dfc-2286-45f1-acf5-86070a961708", "modifications": {"Text-1": "Hello"}}
        )

    @pytest.mark.unit
    async def test_submit_already_rendered(self, mocker):
        provider = CreatomateProvider(api_key="k")
        mocker.patch.object(
            provider, "_make_request", new_callable=mocker.AsyncMock,
            return_value={"id": "r2", "status": "succeeded", "url": "https://cdn.example/r2.mp4"}
        )

        submitted = await provider.submit({"params": {"template_id": "tpl"}, "modifications": {"a": "b"}})

        assert submitted.result == {"videoUrl": "https://cdn.example/r2.mp4"}


class TestHelpers:
    """Test provider helpers."""

    @pytest.mark.unit
    async def test_load_image_bytes_from_data_uri(self):
        raw, mime = await load_image_bytes("data:image/jpeg;base64," + base64.b64encode(b"jpeg").decode())
        assert raw == b"jpeg"
        assert mime == "image/jpeg"

    @pytest.mark.unit
    async def test_provider_without_session(self):
        with pytest.raises(RuntimeError):
            await RunwayVideoProvider(api_key="k")._get("/video/1")

    @pytest.mark.unit
    async def test_mock_provider_progress(self):
        async with MockVideoProvider(polls_to_complete=2) as provider:
            submitted = await provider.submit({"prompt": "x"})
            first = await provider.poll(submitted.external_ref)
            second = await provider.poll(submitted.external_ref)

        assert first.done is False and first.progress == 0.5
        assert second.done is True
