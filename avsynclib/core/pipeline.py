#!/usr/bin/env python3

import os
import shutil
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import as_completed
from tqdm import tqdm
from avsynclib.core import aligner
from avsynclib.core import config
from avsynclib.core import silence
from avsynclib.core import utils
from avsynclib.core.errors import AvSyncError
from avsynclib.core.errors import PipelineError
from avsynclib.core.reporter import CommandReporter
from avsynclib.core.workspace import TempWorkspace
from avsynclib.media.engine import MediaEngine

#============================================

REQUIRED_TOOLS = ("ffmpeg", "ffprobe")

#============================================

class SyncPipeline():
	def __init__(self, video_file: str, audio_file: str, output_file: str = None,
		settings: dict = None, reporter: CommandReporter = None,
		keep_temp: bool = False, temp_dir: str = None, dry_run: bool = False,
		engine_factory=MediaEngine, check_tools: bool = True):
		self.video_file = video_file
		self.audio_file = audio_file
		if output_file is None:
			output_file = utils.default_output_path(video_file)
		self.output_file = output_file
		if settings is None:
			settings = config.build_settings()
		self.settings = settings
		if reporter is None:
			reporter = CommandReporter()
		self.reporter = reporter
		self.keep_temp = keep_temp
		self.temp_dir = temp_dir
		self.dry_run = dry_run
		self.engine_factory = engine_factory
		self.check_tools = check_tools
		self.state = None
		self.states = []
		self.plan = None
		self.analysis = None
		self.workspace = None

	#============================
	def run(self) -> str:
		"""
		Align both tracks and mux them; returns the output path.

		In dry-run mode the plan is computed and stored on self.plan, no media
		is written and None is returned.
		"""
		self._set_state('start')
		if self.check_tools:
			try:
				for tool in REQUIRED_TOOLS:
					utils.check_dependency(tool)
			except AvSyncError as exc:
				self._set_state('failed')
				raise PipelineError('start', exc) from exc
		self.workspace = TempWorkspace(parent_dir=self.temp_dir,
			keep_temp=self.keep_temp, reporter=self.reporter)
		try:
			with self.workspace:
				engine = self.engine_factory(self.workspace, self.settings,
					self.reporter)
				result = self._run_stages(engine)
				self._set_state('cleanup')
		except PipelineError:
			self._set_state('failed')
			raise
		except AvSyncError as exc:
			self._set_state('failed')
			raise PipelineError('workspace', exc) from exc
		except Exception as exc:
			stage = self.state
			self._set_state('failed')
			raise PipelineError(stage, exc) from exc
		self._set_state('done')
		if result is not None:
			self.reporter.info(f"output: {result}")
		return result

	#============================
	def _run_stages(self, engine):
		self._set_state('probe')
		video_duration = self._stage('probe', engine.probe_duration, self.video_file)
		audio_duration = self._stage('probe', engine.probe_duration, self.audio_file)
		self.reporter.info(
			f"video {video_duration:.3f}s, audio {audio_duration:.3f}s"
		)
		self._set_state('decide')
		mode = aligner.decide_mode(video_duration, audio_duration,
			self.settings['epsilon'])
		if mode == aligner.MODE_PAD_AUDIO:
			self._set_state('analyze')
			events = self._stage('analyze', engine.detect_silence, self.audio_file)
			self.analysis = silence.analyze_silence(events, audio_duration)
			self._report_analysis(self.analysis)
		self._set_state('plan')
		self.plan = aligner.plan_alignment(video_duration, audio_duration,
			analysis=self.analysis, strategy=self.settings['strategy'],
			max_gap_silence=self.settings['max_gap_silence'],
			epsilon=self.settings['epsilon'])
		self.reporter.info(f"plan: {aligner.describe_plan(self.plan)}")
		if self.plan['mode'] == aligner.MODE_PAD_AUDIO:
			if aligner.has_shortfall(self.plan, self.settings['epsilon']):
				self._report_shortfall(self.plan)
		if self.dry_run:
			return None
		video_track = self.video_file
		audio_track = self.audio_file
		if self.plan['mode'] == aligner.MODE_LOOP_VIDEO:
			self._set_state('loop_video')
			video_track = self._stage('loop_video', engine.loop_and_trim,
				self.video_file, self.plan['loop_count'], audio_duration,
				"looped-video.mp4")
		elif self.plan['mode'] == aligner.MODE_PAD_AUDIO:
			self._set_state('pad_audio')
			audio_track = self._stage('pad_audio', self._pad_audio, engine,
				self.plan)
		else:
			self._set_state('skip')
		self._set_state('mux')
		extension = os.path.splitext(self.output_file)[1] or ".mp4"
		muxed = self._stage('mux', engine.mux, video_track, audio_track,
			f"muxed{extension}")
		self._set_state('finalize')
		return self._stage('finalize', self._finalize_output, muxed)

	#============================
	def _pad_audio(self, engine, plan: dict) -> str:
		if plan['strategy'] == aligner.PAD_CHUNKED:
			return self._pad_chunked(engine, plan)
		if plan['trailing_silence'] is None or plan['trailing_silence'] <= 0:
			self.reporter.info("no silence to append, audio unchanged")
			return self.audio_file
		silence_file = engine.generate_silence(plan['trailing_silence'],
			"silence-trailing.wav")
		return engine.concatenate([self.audio_file, silence_file],
			"extended-audio.wav")

	#============================
	def _pad_chunked(self, engine, plan: dict) -> str:
		tasks = []
		for chunk in plan['chunks']:
			index = chunk['index']
			tasks.append((('chunk', index), engine.extract_segment,
				(self.audio_file, chunk['start'], chunk['duration'],
				f"chunk-{index:03d}.wav")))
			tasks.append((('silence', index), engine.generate_silence,
				(chunk['silence'], f"silence-{index:03d}.wav")))
		results = self._run_parallel(tasks)
		ordered_files = []
		for chunk in plan['chunks']:
			ordered_files.append(results[('chunk', chunk['index'])])
			ordered_files.append(results[('silence', chunk['index'])])
		return engine.concatenate(ordered_files, "extended-audio.wav")

	#============================
	def _run_parallel(self, tasks: list) -> dict:
		results = {}
		failure = None
		progress = tqdm(total=len(tasks), desc="segments", unit="file",
			disable=self.reporter.quiet, leave=False)
		executor = ThreadPoolExecutor(max_workers=self.settings['workers'])
		try:
			futures = {}
			for key, func, args in tasks:
				futures[executor.submit(func, *args)] = key
			for future in as_completed(futures):
				error = future.exception()
				if error is not None:
					failure = error
					break
				results[futures[future]] = future.result()
				progress.update(1)
		finally:
			# queued tasks are dropped, running ones finish before cleanup
			executor.shutdown(wait=True, cancel_futures=True)
			progress.close()
		if failure is not None:
			raise failure
		return results

	#============================
	def _finalize_output(self, muxed_file: str) -> str:
		output_dir = os.path.dirname(os.path.abspath(self.output_file))
		os.makedirs(output_dir, exist_ok=True)
		shutil.move(muxed_file, self.output_file)
		utils.ensure_file_exists(self.output_file)
		return self.output_file

	#============================
	def _report_analysis(self, analysis: dict) -> None:
		self.reporter.info(
			f"{len(analysis['segments'])} audio segments, "
			f"{analysis['total_silence']:.3f}s detected silence"
		)
		for segment in analysis['segments']:
			self.reporter.debug(
				f"segment {utils.format_timestamp(segment['start'])} - "
				f"{utils.format_timestamp(segment['end'])}"
			)
		if analysis['unmatched_start'] is not None:
			self.reporter.warning(
				f"silence starting at {analysis['unmatched_start']:.3f}s never ends, "
				"treating the rest of the track as silence"
			)

	#============================
	def _report_shortfall(self, plan: dict) -> None:
		expected = plan['expected_audio_duration']
		video_duration = plan['video_duration']
		shortfall = plan['shortfall']
		if shortfall < 0:
			self.reporter.warning(
				f"padded audio will be {expected:.3f}s, overshoots the "
				f"{video_duration:.3f}s video by {-shortfall:.3f}s"
			)
			return
		self.reporter.warning(
			f"padded audio will be {expected:.3f}s for a {video_duration:.3f}s "
			f"video, {shortfall:.3f}s left uncompensated"
		)

	#============================
	def _stage(self, stage: str, func, *args):
		try:
			return func(*args)
		except PipelineError:
			raise
		except (AvSyncError, OSError) as exc:
			raise PipelineError(stage, exc) from exc

	#============================
	def _set_state(self, state: str) -> None:
		self.state = state
		self.states.append(state)
		if state in ('start', 'done', 'failed'):
			self.reporter.debug(f"pipeline {state}")
			return
		self.reporter.stage(state)
