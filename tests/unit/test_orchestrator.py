# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Tests for RecordingOrchestrator driven by a fake page and encoder."""

import asyncio
import os
from unittest.mock import AsyncMock, patch

import pytest

from replaycast.config import RecordingConfig
from replaycast.core.bridge import ERROR_MARKER, FINISH_BINDING, START_BINDING
from replaycast.core.encoder import EncoderSignal
from replaycast.core.latch import ResultLatch
from replaycast.core.orchestrator import RecordingOrchestrator, transform_to_video
from replaycast.core.state import LifecycleState
from replaycast.exceptions import (
    BrowserError,
    ProcessError,
    RecordingTimeoutError,
    RenderError,
    ReplayCastError,
    SetupError,
    StreamError,
    TraceError,
)
from tests.fakes import EncoderFactory, FakeEncoder, FakeHost, FakePage, SlowStopHost

RUN_TIMEOUT = 5.0


def _orchestrator(config, page, encoders=None, host_cls=FakeHost, **host_kwargs):
    host = host_cls(page, **host_kwargs)
    encoders = encoders if encoders is not None else EncoderFactory()
    orchestrator = RecordingOrchestrator(config, host_factory=host, encoder_factory=encoders)
    return orchestrator, host, encoders


async def _run(orchestrator):
    return await asyncio.wait_for(orchestrator.run(), timeout=RUN_TIMEOUT)


class TestSuccessfulRecording:
    """Tests for the start -> frames -> finish path."""

    @pytest.mark.asyncio
    async def test_records_trace_to_output(self, trace_file, tmp_path, monkeypatch):
        """Test a full run produces the absolute output path."""
        monkeypatch.chdir(tmp_path)
        journal = []
        frames_before_finish = []

        async def replay(page):
            await asyncio.sleep(0.01)
            page.call(START_BINDING)
            await asyncio.sleep(0.35)
            frames_before_finish.append(journal.count("frame"))
            journal.append("finish")
            page.call(FINISH_BINDING)

        config = RecordingConfig(input=trace_file, output="out.mp4", fps=10)
        orchestrator, host, encoders = _orchestrator(
            config, FakePage(replay), EncoderFactory(journal=journal)
        )

        result = await _run(orchestrator)

        assert result == os.path.abspath("out.mp4")
        encoder = encoders.encoder
        assert encoder.fps == 10
        assert encoder.output_path == os.path.join(str(tmp_path), "out.mp4")
        assert frames_before_finish[0] >= 1
        assert encoder.close_calls == 1
        assert journal.index("finish") < journal.index("close")
        assert orchestrator.state is LifecycleState.CLOSED
        assert host.stop_calls == 1

    @pytest.mark.asyncio
    async def test_payload_and_bindings_installed_before_load(self, trace_file):
        """Test the page gets both bindings, the console tap and the trace."""
        seen = {}

        async def replay(page):
            seen["bindings"] = sorted(page.bindings)
            seen["console"] = len(page.console_handlers)
            page.call(START_BINDING)
            await asyncio.sleep(0.1)
            page.call(FINISH_BINDING)

        page = FakePage(replay)
        orchestrator, host, _ = _orchestrator(
            RecordingConfig(input=trace_file, start_delay_ms=250), page
        )

        await _run(orchestrator)

        assert seen["bindings"] == [FINISH_BINDING, START_BINDING]
        assert seen["console"] == 1
        assert "const startDelay = 250;" in page.html
        assert '"href": "https://example.com"' in page.html
        assert host.kwargs == {"headless": True, "browser_type": "chromium"}

    @pytest.mark.asyncio
    async def test_capture_region_follows_player_size(self, trace_file):
        """Test the whole player is captured when its size is fixed."""
        async def replay(page):
            page.call(START_BINDING)
            await asyncio.sleep(0.1)
            page.call(FINISH_BINDING)

        page = FakePage(replay)
        config = RecordingConfig(input=trace_file, player={"width": 800, "height": 600})
        orchestrator, _, _ = _orchestrator(config, page)

        await _run(orchestrator)

        assert page.selectors == [".rr-player"]

    @pytest.mark.asyncio
    async def test_duplicate_start_is_ignored(self, trace_file):
        """Test a second start spawns no second encoder."""
        async def replay(page):
            page.call(START_BINDING)
            page.call(START_BINDING)
            await asyncio.sleep(0.1)
            page.call(FINISH_BINDING)

        orchestrator, _, encoders = _orchestrator(
            RecordingConfig(input=trace_file), FakePage(replay)
        )

        await _run(orchestrator)

        assert len(encoders.created) == 1

    @pytest.mark.asyncio
    async def test_run_only_once(self, trace_file):
        """Test an orchestrator cannot be reused."""
        async def replay(page):
            page.call(START_BINDING)
            await asyncio.sleep(0.1)
            page.call(FINISH_BINDING)

        orchestrator, _, _ = _orchestrator(RecordingConfig(input=trace_file), FakePage(replay))
        await _run(orchestrator)

        with pytest.raises(ReplayCastError, match="only be called once"):
            await orchestrator.run()


class TestRenderErrors:
    """Tests for errors reported by the page."""

    @pytest.mark.asyncio
    async def test_empty_trace_rejected_by_player(self, empty_trace_file):
        """Test a trace the player cannot replay fails as RenderError, not SetupError."""
        async def replay(page):
            page.console("error", f"{ERROR_MARKER}Cannot read properties of undefined")

        page = FakePage(replay)
        orchestrator, host, encoders = _orchestrator(
            RecordingConfig(input=empty_trace_file), page
        )

        with pytest.raises(RenderError) as exc_info:
            await _run(orchestrator)

        assert not isinstance(exc_info.value, SetupError)
        assert exc_info.value.detail == "Cannot read properties of undefined"
        assert "const events = [];" in page.html
        assert encoders.created == []
        assert host.stop_calls == 1
        assert orchestrator.state is LifecycleState.CLOSED

    @pytest.mark.asyncio
    async def test_error_while_recording(self, trace_file):
        """Test a console error mid-recording stops everything without closing input."""
        async def replay(page):
            page.call(START_BINDING)
            await asyncio.sleep(0.15)
            page.console("error", f"{ERROR_MARKER}replayer crashed")

        orchestrator, host, encoders = _orchestrator(
            RecordingConfig(input=trace_file, fps=20), FakePage(replay)
        )

        with pytest.raises(RenderError, match="replayer crashed"):
            await _run(orchestrator)

        encoder = encoders.encoder
        assert encoder.close_calls == 0
        assert encoder.terminated is True
        assert orchestrator.capture.running is False
        assert host.stop_calls == 1

    @pytest.mark.asyncio
    async def test_error_preempts_pending_success(self, trace_file):
        """Test a console error right after finish wins over the clean exit."""
        async def replay(page):
            page.call(START_BINDING)
            await asyncio.sleep(0.1)
            page.call(FINISH_BINDING)
            page.console("error", f"{ERROR_MARKER}late failure")

        orchestrator, _, encoders = _orchestrator(
            RecordingConfig(input=trace_file, fps=20),
            FakePage(replay),
            EncoderFactory(exit_delay=0.05),
        )

        with pytest.raises(RenderError, match="late failure"):
            await _run(orchestrator)

        assert encoders.encoder.close_calls == 0

    @pytest.mark.asyncio
    async def test_unmarked_console_errors_ignored(self, trace_file):
        """Test ordinary page errors do not fail the run."""
        async def replay(page):
            page.console("error", "Failed to load resource: net::ERR_FAILED")
            page.console("warning", f"{ERROR_MARKER}just a warning")
            page.call(START_BINDING)
            await asyncio.sleep(0.1)
            page.call(FINISH_BINDING)

        orchestrator, _, _ = _orchestrator(RecordingConfig(input=trace_file), FakePage(replay))

        assert await _run(orchestrator) == RecordingConfig(input=trace_file).output_path

    @pytest.mark.asyncio
    async def test_finish_before_start(self, trace_file):
        """Test a finish without a prior start is a render failure."""
        async def replay(page):
            page.call(FINISH_BINDING)

        orchestrator, _, encoders = _orchestrator(
            RecordingConfig(input=trace_file), FakePage(replay)
        )

        with pytest.raises(RenderError, match="before recording started"):
            await _run(orchestrator)

        assert encoders.created == []

    @pytest.mark.asyncio
    async def test_missing_capture_region(self, trace_file):
        """Test a page without the replay region fails instead of hanging."""
        async def replay(page):
            page.call(START_BINDING)

        orchestrator, _, encoders = _orchestrator(
            RecordingConfig(input=trace_file), FakePage(replay, has_region=False)
        )

        with pytest.raises(RenderError, match="failed to get replayer element"):
            await _run(orchestrator)

        assert encoders.created == []


class FailingSpawnEncoder(FakeEncoder):
    """Encoder whose binary cannot be started."""

    async def start(self):
        self.failed = True
        self.on_complete(EncoderSignal.PROCESS_ERROR, ProcessError("FFmpeg not found (ffmpeg)"))
        return False


class DoubleFaultEncoder(FakeEncoder):
    """Encoder that reports two failures in the same loop iteration."""

    async def start(self):
        asyncio.get_running_loop().call_soon(self._double_fault)
        return True

    def _double_fault(self):
        self.failed = True
        self.on_complete(EncoderSignal.PROCESS_ERROR, ProcessError("FFmpeg exited with code 1"))
        self.on_complete(EncoderSignal.STREAM_ERROR, StreamError("Broken pipe"))


class TestEncoderFailures:
    """Tests for failures coming from the encoder."""

    @pytest.mark.asyncio
    async def test_spawn_failure(self, trace_file):
        """Test a missing ffmpeg fails the run with ProcessError."""
        async def replay(page):
            page.call(START_BINDING)

        orchestrator, host, encoders = _orchestrator(
            RecordingConfig(input=trace_file),
            FakePage(replay),
            EncoderFactory(FailingSpawnEncoder),
        )

        with pytest.raises(ProcessError, match="FFmpeg not found"):
            await _run(orchestrator)

        assert orchestrator.capture is None
        assert host.stop_calls == 1

    @pytest.mark.asyncio
    async def test_simultaneous_failures_resolve_once(self, trace_file):
        """Test two failures in one tick produce exactly one outcome."""
        async def replay(page):
            page.call(START_BINDING)

        orchestrator, _, _ = _orchestrator(
            RecordingConfig(input=trace_file),
            FakePage(replay),
            EncoderFactory(DoubleFaultEncoder),
        )

        with pytest.raises(ProcessError, match="code 1"):
            await _run(orchestrator)

        assert orchestrator.latch.discarded == 1


class TestSetupFailures:
    """Tests for failures before recording starts."""

    @pytest.mark.asyncio
    async def test_missing_trace(self, tmp_path):
        """Test a missing trace fails before any browser is launched."""
        page = FakePage()
        orchestrator, host, encoders = _orchestrator(
            RecordingConfig(input=str(tmp_path / "missing.json")), page
        )

        with pytest.raises(TraceError):
            await _run(orchestrator)

        assert host.started is False
        assert encoders.created == []
        assert orchestrator.state is LifecycleState.CLOSED

    @pytest.mark.asyncio
    async def test_invalid_json_trace(self, tmp_path):
        """Test malformed JSON is a setup failure."""
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        orchestrator, host, _ = _orchestrator(RecordingConfig(input=str(path)), FakePage())

        with pytest.raises(SetupError, match="not valid JSON"):
            await _run(orchestrator)

        assert host.started is False

    @pytest.mark.asyncio
    async def test_browser_launch_failure(self, trace_file):
        """Test a browser that cannot start is a setup failure."""
        orchestrator, _, encoders = _orchestrator(
            RecordingConfig(input=trace_file), FakePage(), fail_start=True
        )

        with pytest.raises(BrowserError, match="Failed to start browser"):
            await _run(orchestrator)

        assert encoders.created == []


class TestTimeout:
    """Tests for the optional overall deadline."""

    @pytest.mark.asyncio
    async def test_timeout_expires(self, trace_file):
        """Test a replay that never starts is aborted after the timeout."""
        orchestrator, host, _ = _orchestrator(
            RecordingConfig(input=trace_file, timeout=0.2), FakePage()
        )

        with pytest.raises(RecordingTimeoutError, match="0.2"):
            await _run(orchestrator)

        assert host.stop_calls == 1
        assert orchestrator.state is LifecycleState.CLOSED

    @pytest.mark.asyncio
    async def test_timeout_while_recording_terminates_encoder(self, trace_file):
        """Test a stuck replay terminates ffmpeg on timeout."""
        async def replay(page):
            page.call(START_BINDING)

        orchestrator, _, encoders = _orchestrator(
            RecordingConfig(input=trace_file, timeout=0.3), FakePage(replay)
        )

        with pytest.raises(RecordingTimeoutError):
            await _run(orchestrator)

        assert encoders.encoder.terminated is True
        assert encoders.encoder.close_calls == 0


class TestSurfaceRelease:
    """Tests for releasing the browser while the outcome is being decided."""

    @pytest.mark.asyncio
    async def test_slow_stop_completes_after_render_error(self, trace_file):
        """Test a render error does not cut the browser shutdown short."""
        async def replay(page):
            page.console("error", f"{ERROR_MARKER}Cannot read properties of undefined")

        orchestrator, host, _ = _orchestrator(
            RecordingConfig(input=trace_file), FakePage(replay), host_cls=SlowStopHost
        )

        with pytest.raises(RenderError):
            await _run(orchestrator)

        assert host.stop_calls == 1
        assert host.fully_stopped is True

    @pytest.mark.asyncio
    async def test_slow_stop_completes_after_success(self, trace_file):
        """Test ffmpeg finishing during browser shutdown still waits for it."""
        async def replay(page):
            page.call(START_BINDING)
            await asyncio.sleep(0.2)
            page.call(FINISH_BINDING)

        orchestrator, host, encoders = _orchestrator(
            RecordingConfig(input=trace_file, fps=20), FakePage(replay), host_cls=SlowStopHost
        )

        await _run(orchestrator)

        assert encoders.encoder.close_calls == 1
        assert host.stop_calls == 1
        assert host.fully_stopped is True

    @pytest.mark.asyncio
    async def test_late_control_loop_failure_is_logged(self, caplog):
        """Test an error raised after the outcome is reported at teardown."""
        orchestrator = RecordingOrchestrator(RecordingConfig(input="session.json"))
        orchestrator._latch = ResultLatch()
        orchestrator._latch.resolve("/videos/out.mp4")

        async def broken():
            raise RuntimeError("dispatch blew up")

        task = asyncio.create_task(broken())
        await asyncio.wait([task])
        orchestrator._control_task = task

        await orchestrator._teardown()

        assert "Control loop failed after the outcome" in caplog.text
        assert "dispatch blew up" in caplog.text


class TestTransformToVideo:
    """Tests for the transform_to_video() entry point."""

    @pytest.mark.asyncio
    async def test_accepts_mapping_and_overrides(self):
        """Test camelCase mappings and keyword overrides build the config."""
        with patch("replaycast.core.orchestrator.RecordingOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run = AsyncMock(return_value="/videos/out.mp4")

            result = await transform_to_video(
                {"input": "session.json", "rrwebPlayer": {"speed": 2}}, fps=30
            )

        assert result == "/videos/out.mp4"
        config = orchestrator_cls.call_args.args[0]
        assert config.input == "session.json"
        assert config.fps == 30
        assert config.player.speed == 2

    @pytest.mark.asyncio
    async def test_keyword_only(self):
        """Test a config built purely from keywords."""
        with patch("replaycast.core.orchestrator.RecordingOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run = AsyncMock(return_value="/videos/out.mp4")

            await transform_to_video(input="session.json", output="demo.mp4")

        config = orchestrator_cls.call_args.args[0]
        assert config.output == "demo.mp4"
        assert config.fps == 15
