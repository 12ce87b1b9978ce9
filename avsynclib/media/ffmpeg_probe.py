#!/usr/bin/env python3

import json
import os
from avsynclib.core import utils
from avsynclib.core.errors import ProbeError

#============================================

def probe_duration(media_file: str, reporter=None) -> float:
	"""
	Read the container duration of a media file with ffprobe.

	Args:
		media_file: Audio or video file path.
		reporter: CommandReporter for the ffprobe call.

	Returns:
		float: Duration in seconds.
	"""
	if not os.path.isfile(media_file):
		raise ProbeError(f"file not found: {media_file}")
	cmd = [
		"ffprobe", "-v", "error",
		"-show_entries", "format=duration",
		"-of", "json",
		media_file,
	]
	proc = utils.run_process(cmd, reporter=reporter, error_class=ProbeError,
		failure_message=f"could not probe {media_file}")
	return parse_probe_duration(proc.stdout, media_file)

#============================================

def parse_probe_duration(payload: str, media_file: str = "<input>") -> float:
	try:
		data = json.loads(payload)
	except (TypeError, ValueError) as exc:
		raise ProbeError(f"unreadable ffprobe output for {media_file}",
			diagnostics=str(payload)) from exc
	if not isinstance(data, dict):
		raise ProbeError(f"unreadable ffprobe output for {media_file}")
	raw_duration = data.get('format', {}).get('duration')
	if raw_duration is None or raw_duration == "N/A":
		raise ProbeError(f"no duration metadata in {media_file}")
	try:
		duration = float(raw_duration)
	except ValueError as exc:
		raise ProbeError(f"invalid duration '{raw_duration}' in {media_file}") from exc
	if duration <= 0:
		raise ProbeError(f"non-positive duration {duration} in {media_file}")
	return duration
