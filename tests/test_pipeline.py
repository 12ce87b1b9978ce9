#!/usr/bin/env python3

"""
Pipeline orchestration tests against a recording fake media engine.
"""

# Standard Library
import io
import os
import sys
import tempfile
import threading
import time

# PIP3 modules
import pytest
from rich.console import Console

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
from avsynclib.core import aligner
from avsynclib.core import config
from avsynclib.core import silence
from avsynclib.core.errors import PipelineError
from avsynclib.core.errors import SegmentError
from avsynclib.core.pipeline import SyncPipeline
from avsynclib.core.reporter import CommandReporter

#============================================

class FakeEngine():
	"""
	Stands in for MediaEngine; writes placeholder files and records calls.
	"""
	durations = {}
	events = []
	fail_on = None
	slow_first_chunk = False

	def __init__(self, workspace, settings: dict, reporter=None):
		self.workspace = workspace
		self.settings = settings
		self.reporter = reporter
		self.calls = []
		self.lock = threading.Lock()
		FakeEngine.instances.append(self)

	#============================
	def _record(self, name: str, *args) -> None:
		with self.lock:
			self.calls.append((name,) + args)
		if FakeEngine.fail_on == name:
			raise SegmentError(f"{name} broke", diagnostics="fake stderr")

	#============================
	def _touch(self, filename: str) -> str:
		path = self.workspace.make_path(filename)
		with open(path, 'w', encoding='utf-8') as handle:
			handle.write(filename)
		return path

	#============================
	def probe_duration(self, media_file: str) -> float:
		self._record('probe_duration', media_file)
		return FakeEngine.durations[media_file]

	#============================
	def detect_silence(self, audio_file: str) -> list:
		self._record('detect_silence', audio_file)
		return list(FakeEngine.events)

	#============================
	def generate_silence(self, seconds: float, filename: str = None) -> str:
		self._record('generate_silence', seconds, filename)
		return self._touch(filename)

	#============================
	def extract_segment(self, audio_file: str, start_seconds: float,
		duration: float, filename: str = None) -> str:
		if FakeEngine.slow_first_chunk and start_seconds == 0.0:
			time.sleep(0.2)
		self._record('extract_segment', audio_file, start_seconds, duration, filename)
		return self._touch(filename)

	#============================
	def concatenate(self, input_files: list, filename: str = None) -> str:
		self._record('concatenate', list(input_files), filename)
		return self._touch(filename)

	#============================
	def loop_and_trim(self, video_file: str, loop_count: int,
		trim_seconds: float, filename: str = None) -> str:
		self._record('loop_and_trim', video_file, loop_count, trim_seconds, filename)
		return self._touch(filename)

	#============================
	def mux(self, video_file: str, audio_file: str, filename: str = None) -> str:
		self._record('mux', video_file, audio_file, filename)
		return self._touch(filename)

FakeEngine.instances = []

#============================================

@pytest.fixture
def fake_engine():
	FakeEngine.durations = {}
	FakeEngine.events = []
	FakeEngine.fail_on = None
	FakeEngine.slow_first_chunk = False
	FakeEngine.instances = []
	yield FakeEngine

#============================================

def _quiet_reporter() -> CommandReporter:
	return CommandReporter(console=Console(file=io.StringIO()), quiet=True)

#============================================

def _make_pipeline(tmp_dir: str, video: float, audio: float, **kwargs) -> SyncPipeline:
	video_file = os.path.join(tmp_dir, "clip.mp4")
	audio_file = os.path.join(tmp_dir, "voice.wav")
	FakeEngine.durations = {video_file: video, audio_file: audio}
	settings = kwargs.pop('settings', config.build_settings())
	reporter = kwargs.pop('reporter', _quiet_reporter())
	engine_factory = kwargs.pop('engine_factory', FakeEngine)
	return SyncPipeline(video_file, audio_file,
		output_file=os.path.join(tmp_dir, "out", "final.mp4"),
		settings=settings, reporter=reporter,
		temp_dir=os.path.join(tmp_dir, "work"),
		engine_factory=engine_factory, check_tools=False, **kwargs)

#============================================

def _call_names(engine: FakeEngine) -> list:
	return [call[0] for call in engine.calls]

#============================================

def test_matching_durations_only_mux(fake_engine) -> None:
	with tempfile.TemporaryDirectory() as tmp_dir:
		pipeline = _make_pipeline(tmp_dir, 10.0, 10.0)
		result = pipeline.run()
		engine = fake_engine.instances[0]
		assert _call_names(engine) == ['probe_duration', 'probe_duration', 'mux']
		mux_call = engine.calls[-1]
		assert mux_call[1] == pipeline.video_file
		assert mux_call[2] == pipeline.audio_file
		assert result == os.path.join(tmp_dir, "out", "final.mp4")
		assert os.path.isfile(result)
		assert pipeline.plan['mode'] == aligner.MODE_NO_CHANGE
		assert pipeline.states == [
			'start', 'probe', 'decide', 'plan', 'skip', 'mux', 'finalize',
			'cleanup', 'done',
		]
		# workspace removed after a successful run
		assert not os.path.exists(pipeline.workspace.path)

#============================================

def test_longer_audio_loops_video(fake_engine) -> None:
	with tempfile.TemporaryDirectory() as tmp_dir:
		pipeline = _make_pipeline(tmp_dir, 5.0, 12.0)
		pipeline.run()
		engine = fake_engine.instances[0]
		assert _call_names(engine) == [
			'probe_duration', 'probe_duration', 'loop_and_trim', 'mux',
		]
		loop_call = engine.calls[2]
		assert loop_call[2] == 3
		assert loop_call[3] == 12.0
		mux_call = engine.calls[3]
		assert os.path.basename(mux_call[1]) == "looped-video.mp4"
		assert mux_call[2] == pipeline.audio_file
		assert 'detect_silence' not in _call_names(engine)

#============================================

def test_chunked_padding_keeps_track_order(fake_engine) -> None:
	"""
	Concatenation order follows the plan even when chunk 0 finishes last.
	"""
	fake_engine.events = [
		silence.make_event('start', 2.0), silence.make_event('end', 4.0),
		silence.make_event('start', 9.0), silence.make_event('end', 9.5),
	]
	fake_engine.slow_first_chunk = True
	with tempfile.TemporaryDirectory() as tmp_dir:
		pipeline = _make_pipeline(tmp_dir, 14.0, 10.0)
		pipeline.run()
		engine = fake_engine.instances[0]
		names = _call_names(engine)
		assert names[:3] == ['probe_duration', 'probe_duration', 'detect_silence']
		assert names.count('extract_segment') == 3
		assert names.count('generate_silence') == 3
		# the slow first chunk is recorded after the others
		extract_calls = [call for call in engine.calls if call[0] == 'extract_segment']
		assert extract_calls[-1][2] == 0.0
		concat_call = [call for call in engine.calls if call[0] == 'concatenate'][0]
		assert [os.path.basename(path) for path in concat_call[1]] == [
			"chunk-000.wav", "silence-000.wav",
			"chunk-001.wav", "silence-001.wav",
			"chunk-002.wav", "silence-002.wav",
		]
		mux_call = engine.calls[-1]
		assert os.path.basename(mux_call[2]) == "extended-audio.wav"
		assert 'analyze' in pipeline.states
		assert 'pad_audio' in pipeline.states

#============================================

def test_simple_padding_appends_one_block(fake_engine) -> None:
	fake_engine.events = [silence.make_event('start', 1.0), silence.make_event('end', 2.0)]
	settings = config.apply_overrides(config.build_settings(),
		{'strategy': 'simple'})
	with tempfile.TemporaryDirectory() as tmp_dir:
		pipeline = _make_pipeline(tmp_dir, 10.0, 8.0, settings=settings)
		pipeline.run()
		engine = fake_engine.instances[0]
		silence_calls = [call for call in engine.calls if call[0] == 'generate_silence']
		assert len(silence_calls) == 1
		assert silence_calls[0][1] == 5.0
		concat_call = [call for call in engine.calls if call[0] == 'concatenate'][0]
		assert concat_call[1][0] == pipeline.audio_file
		assert 'extract_segment' not in _call_names(engine)

#============================================

def test_all_silent_audio_gets_trailing_block(fake_engine) -> None:
	fake_engine.events = [silence.make_event('start', 0.0)]
	with tempfile.TemporaryDirectory() as tmp_dir:
		pipeline = _make_pipeline(tmp_dir, 20.0, 4.0)
		pipeline.run()
		engine = fake_engine.instances[0]
		silence_calls = [call for call in engine.calls if call[0] == 'generate_silence']
		assert len(silence_calls) == 1
		assert silence_calls[0][1] == pytest.approx(16.0)
		assert pipeline.plan['strategy'] == aligner.PAD_TRAILING

#============================================

def test_segment_failure_stops_run_and_cleans_up(fake_engine) -> None:
	fake_engine.events = [silence.make_event('start', 2.0), silence.make_event('end', 4.0)]
	fake_engine.fail_on = 'generate_silence'
	with tempfile.TemporaryDirectory() as tmp_dir:
		pipeline = _make_pipeline(tmp_dir, 14.0, 10.0)
		with pytest.raises(PipelineError) as exc_info:
			pipeline.run()
		assert exc_info.value.stage == 'pad_audio'
		assert isinstance(exc_info.value.cause, SegmentError)
		assert exc_info.value.diagnostics == "fake stderr"
		assert pipeline.state == 'failed'
		engine = fake_engine.instances[0]
		assert 'concatenate' not in _call_names(engine)
		assert 'mux' not in _call_names(engine)
		assert not os.path.exists(pipeline.workspace.path)
		assert not os.path.exists(pipeline.output_file)

#============================================

def test_mux_failure_names_stage(fake_engine) -> None:
	fake_engine.fail_on = 'mux'
	with tempfile.TemporaryDirectory() as tmp_dir:
		pipeline = _make_pipeline(tmp_dir, 10.0, 10.0)
		with pytest.raises(PipelineError) as exc_info:
			pipeline.run()
		assert exc_info.value.stage == 'mux'
		assert str(exc_info.value).startswith("mux failed: mux broke")

#============================================

def test_keep_temp_leaves_workspace(fake_engine) -> None:
	with tempfile.TemporaryDirectory() as tmp_dir:
		pipeline = _make_pipeline(tmp_dir, 5.0, 12.0, keep_temp=True)
		pipeline.run()
		looped = os.path.join(pipeline.workspace.path, "looped-video.mp4")
		assert os.path.isfile(looped)

#============================================

def test_dry_run_plans_without_media(fake_engine) -> None:
	fake_engine.events = [silence.make_event('start', 3.0), silence.make_event('end', 4.0)]
	with tempfile.TemporaryDirectory() as tmp_dir:
		pipeline = _make_pipeline(tmp_dir, 40.0, 8.0, dry_run=True)
		result = pipeline.run()
		assert result is None
		assert pipeline.plan['mode'] == aligner.MODE_PAD_AUDIO
		assert pipeline.plan['gap_count'] == 2
		engine = fake_engine.instances[0]
		assert _call_names(engine) == [
			'probe_duration', 'probe_duration', 'detect_silence',
		]
		assert not os.path.exists(pipeline.output_file)
		assert pipeline.states[-1] == 'done'

#============================================

def test_missing_tool_fails_at_start(monkeypatch) -> None:
	monkeypatch.setattr("shutil.which", lambda name: None)
	pipeline = SyncPipeline("clip.mp4", "voice.wav", reporter=_quiet_reporter())
	with pytest.raises(PipelineError) as exc_info:
		pipeline.run()
	assert exc_info.value.stage == 'start'
	assert pipeline.states == ['start', 'failed']

#============================================

def test_default_output_path() -> None:
	pipeline = SyncPipeline("/videos/clip.mov", "voice.wav",
		reporter=_quiet_reporter(), check_tools=False)
	assert pipeline.output_file == "/videos/clip.synced.mp4"

#============================================

class BrokenSilenceEngine(FakeEngine):
	def detect_silence(self, audio_file: str) -> list:
		self._record('detect_silence', audio_file)
		raise ValueError("bad silence data")

#============================================

def test_unexpected_error_fails_with_stage(fake_engine) -> None:
	with tempfile.TemporaryDirectory() as tmp_dir:
		pipeline = _make_pipeline(tmp_dir, 14.0, 10.0,
			engine_factory=BrokenSilenceEngine)
		with pytest.raises(PipelineError) as exc_info:
			pipeline.run()
		assert exc_info.value.stage == 'analyze'
		assert isinstance(exc_info.value.cause, ValueError)
		assert str(exc_info.value) == "analyze failed: bad silence data"
		assert pipeline.state == 'failed'
		assert pipeline.states[-2:] == ['analyze', 'failed']
		assert not os.path.exists(pipeline.workspace.path)

#============================================

def test_unknown_strategy_in_settings_fails_at_plan(fake_engine) -> None:
	settings = dict(config.build_settings())
	settings['strategy'] = 'stretch'
	with tempfile.TemporaryDirectory() as tmp_dir:
		pipeline = _make_pipeline(tmp_dir, 14.0, 10.0, settings=settings)
		with pytest.raises(PipelineError) as exc_info:
			pipeline.run()
		assert exc_info.value.stage == 'plan'
		assert pipeline.state == 'failed'

#============================================

def _capturing_reporter() -> tuple:
	buffer = io.StringIO()
	console = Console(file=buffer, width=200, color_system=None)
	return CommandReporter(console=console), buffer

#============================================

def test_overshoot_warning_wording(fake_engine) -> None:
	fake_engine.events = [silence.make_event('start', 1.0), silence.make_event('end', 2.0)]
	settings = config.apply_overrides(config.build_settings(),
		{'strategy': 'simple'})
	reporter, buffer = _capturing_reporter()
	with tempfile.TemporaryDirectory() as tmp_dir:
		pipeline = _make_pipeline(tmp_dir, 10.0, 8.0, settings=settings,
			reporter=reporter, dry_run=True)
		pipeline.run()
	text = buffer.getvalue()
	assert "overshoots the 10.000s video by 3.000s" in text
	assert "uncompensated" not in text

#============================================

def test_shortfall_warning_wording(fake_engine) -> None:
	fake_engine.events = [silence.make_event('start', 3.0), silence.make_event('end', 4.0)]
	reporter, buffer = _capturing_reporter()
	with tempfile.TemporaryDirectory() as tmp_dir:
		pipeline = _make_pipeline(tmp_dir, 40.0, 8.0, reporter=reporter,
			dry_run=True)
		pipeline.run()
	text = buffer.getvalue()
	assert "23.000s left uncompensated" in text
	assert "overshoots" not in text
