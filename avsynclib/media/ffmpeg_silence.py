#!/usr/bin/env python3

import os
import re
from avsynclib.core import silence
from avsynclib.core import utils
from avsynclib.core.errors import AnalysisError

#============================================

NUMBER_PATTERN = r"(-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)"
SILENCE_START_RE = re.compile(r"silence_start:\s*" + NUMBER_PATTERN)
SILENCE_END_RE = re.compile(r"silence_end:\s*" + NUMBER_PATTERN)

#============================================

def detect_silence(audio_file: str, threshold_db: float = -50.0,
	min_silence: float = 0.5, reporter=None) -> list:
	"""
	Run the ffmpeg silencedetect filter and return silence events.

	Args:
		audio_file: Audio file path.
		threshold_db: Noise floor in dBFS below which audio counts as silent.
		min_silence: Minimum silence duration in seconds.
		reporter: CommandReporter for the ffmpeg call.

	Returns:
		list: Silence events in emission order.
	"""
	if not os.path.isfile(audio_file):
		raise AnalysisError(f"file not found: {audio_file}")
	cmd = [
		"ffmpeg", "-hide_banner", "-nostats",
		"-i", audio_file,
		"-vn", "-sn",
		"-af", f"silencedetect=n={threshold_db:g}dB:d={min_silence:g}",
		"-f", "null", "-",
	]
	proc = utils.run_process(cmd, reporter=reporter, error_class=AnalysisError,
		failure_message=f"silence detection failed for {audio_file}")
	events = parse_silence_log(proc.stderr)
	if reporter is not None:
		for event in events:
			reporter.debug(f"silence {event['kind']}: {event['time']:.3f}s")
	return events

#============================================

def parse_silence_log(log_text: str) -> list:
	"""
	Scan silencedetect diagnostic text for start/end events.

	Args:
		log_text: ffmpeg stderr text.

	Returns:
		list: Silence events in emission order.
	"""
	if log_text is None:
		raise AnalysisError("no diagnostic output from silence detection")
	events = []
	for line in log_text.splitlines():
		if 'silence_' not in line:
			continue
		matches = []
		for match in SILENCE_START_RE.finditer(line):
			matches.append((match.start(), silence.SILENCE_START, match.group(1)))
		for match in SILENCE_END_RE.finditer(line):
			matches.append((match.start(), silence.SILENCE_END, match.group(1)))
		matches.sort()
		for _, kind, raw_value in matches:
			try:
				value = float(raw_value)
			except ValueError as exc:
				raise AnalysisError(f"unparsable silence timestamp: {raw_value}",
					diagnostics=line) from exc
			events.append(silence.make_event(kind, value))
	return events
