#!/usr/bin/env python3

import decimal
import os
import shlex
import shutil
import subprocess
import time
from avsynclib.core import errors

#============================================

DIAGNOSTIC_TAIL_LINES = 20

#============================================

def run_process(cmd: list, reporter=None, error_class=errors.AvSyncError,
	failure_message: str = None) -> subprocess.CompletedProcess:
	"""
	Run an external command, reporting it and raising on a non-zero exit.

	Args:
		cmd: Command list to execute.
		reporter: CommandReporter receiving start/end events, or None.
		error_class: Error type raised on failure.
		failure_message: Message for the raised error.

	Returns:
		subprocess.CompletedProcess: The completed process with text output.
	"""
	showcmd = shlex.join(cmd)
	index = None
	if reporter is not None:
		index = reporter.command_start(showcmd)
	t0 = time.time()
	try:
		proc = subprocess.run(cmd, capture_output=True, text=True,
			encoding='utf-8', errors='replace')
	except OSError as exc:
		if reporter is not None:
			reporter.command_end(index, showcmd, -1, time.time() - t0)
		message = failure_message or f"command failed: {showcmd}"
		raise error_class(message, diagnostics=str(exc)) from exc
	if reporter is not None:
		reporter.command_end(index, showcmd, proc.returncode, time.time() - t0)
	if proc.returncode != 0:
		message = failure_message or f"command failed: {showcmd}"
		raise error_class(message, diagnostics=tail_text(proc.stderr))
	return proc

#============================================

def tail_text(text: str, line_count: int = DIAGNOSTIC_TAIL_LINES) -> str:
	if text is None:
		return ""
	lines = text.strip().splitlines()
	return "\n".join(lines[-line_count:])

#============================================

def check_dependency(cmd_name: str) -> None:
	if shutil.which(cmd_name) is None:
		raise errors.DependencyError(f"missing dependency: {cmd_name}")
	return

#============================================

def ensure_file_exists(filepath: str, error_class=errors.AvSyncError) -> None:
	if not os.path.isfile(filepath):
		raise error_class(f"file not found: {filepath}")
	return

#============================================

def seconds_to_millis(seconds: float) -> int:
	value = decimal.Decimal(str(seconds))
	millis = value * decimal.Decimal(1000)
	millis = millis.quantize(decimal.Decimal("1"), rounding=decimal.ROUND_HALF_UP)
	result = int(millis)
	if result < 0:
		result = 0
	return result

#============================================

def format_timestamp(seconds: float) -> str:
	"""
	Format seconds as HH:MM:SS.mmm.
	"""
	total_millis = seconds_to_millis(seconds)
	hours = total_millis // 3600000
	remainder = total_millis % 3600000
	minutes = remainder // 60000
	remainder = remainder % 60000
	seconds_part = remainder // 1000
	millis_part = remainder % 1000
	return f"{hours:02d}:{minutes:02d}:{seconds_part:02d}.{millis_part:03d}"

#============================================

def format_seconds(seconds: float) -> str:
	# ffmpeg time arguments, millisecond precision
	return f"{seconds:.3f}"

#============================================

def default_output_path(video_file: str) -> str:
	base, _ = os.path.splitext(video_file)
	return f"{base}.synced.mp4"
