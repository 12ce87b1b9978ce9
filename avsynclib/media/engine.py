#!/usr/bin/env python3

import os
from avsynclib.media import ffmpeg

#============================================

class MediaEngine():
	"""
	ffmpeg-backed media operations writing their results into a workspace.

	Every operation that produces a file takes an optional pre-assigned file
	name; without one a name is generated from a per-engine counter.
	"""
	def __init__(self, workspace, settings: dict, reporter=None):
		self.workspace = workspace
		self.settings = settings
		self.reporter = reporter
		self.file_counter = 0

	#============================
	def probe_duration(self, media_file: str) -> float:
		duration = ffmpeg.probe_duration(media_file, reporter=self.reporter)
		if self.reporter is not None:
			self.reporter.debug(f"duration {os.path.basename(media_file)}: {duration:.3f}s")
		return duration

	#============================
	def detect_silence(self, audio_file: str, threshold_db: float = None,
		min_silence: float = None) -> list:
		if threshold_db is None:
			threshold_db = self.settings['threshold_db']
		if min_silence is None:
			min_silence = self.settings['min_silence']
		return ffmpeg.detect_silence(audio_file, threshold_db=threshold_db,
			min_silence=min_silence, reporter=self.reporter)

	#============================
	def generate_silence(self, seconds: float, filename: str = None) -> str:
		out_file = self._reserve(filename, "silence", ".wav")
		return ffmpeg.make_silence(out_file, seconds,
			sample_rate=self.settings['sample_rate'],
			channel_layout=self.settings['channel_layout'],
			reporter=self.reporter)

	#============================
	def extract_segment(self, audio_file: str, start_seconds: float,
		duration: float, filename: str = None) -> str:
		out_file = self._reserve(filename, "chunk", ".wav")
		return ffmpeg.extract_segment(audio_file, out_file, start_seconds,
			duration, sample_rate=self.settings['sample_rate'],
			channel_layout=self.settings['channel_layout'],
			reporter=self.reporter)

	#============================
	def concatenate(self, input_files: list, filename: str = None) -> str:
		out_file = self._reserve(filename, "merged", ".wav")
		return ffmpeg.concatenate_audio(list(input_files), out_file,
			sample_rate=self.settings['sample_rate'],
			channel_layout=self.settings['channel_layout'],
			reporter=self.reporter)

	#============================
	def loop_and_trim(self, video_file: str, loop_count: int,
		trim_seconds: float, filename: str = None) -> str:
		out_file = self._reserve(filename, "looped-video", ".mp4")
		return ffmpeg.loop_video(video_file, out_file, loop_count, trim_seconds,
			video_codec=self.settings['video_codec'], crf=self.settings['crf'],
			preset=self.settings['preset'], reporter=self.reporter)

	#============================
	def mux(self, video_file: str, audio_file: str, filename: str = None) -> str:
		out_file = self._reserve(filename, "muxed", ".mp4")
		return ffmpeg.mux_tracks(video_file, audio_file, out_file,
			audio_codec=self.settings['audio_codec'],
			audio_bitrate=self.settings['audio_bitrate'],
			reporter=self.reporter)

	#============================
	def _reserve(self, filename: str, stem: str, extension: str) -> str:
		if filename is None:
			self.file_counter += 1
			filename = f"{stem}-{self.file_counter:04d}{extension}"
		return self.workspace.make_path(filename)
