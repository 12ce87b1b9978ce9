#!/usr/bin/env python3

"""
Console reporting for avsync runs.
"""

# Standard Library
import re
import threading
import time

# PIP3 modules
from rich.console import Console
from rich.text import Text

#============================================

NORD_COLORS = {
	'foreground': "#D8DEE9",
	'dim': "#4C566A",
	'header': "#88C0D0",
	'command': "#ECEFF4",
	'flags': "#81A1C1",
	'numbers': "#B48EAD",
	'paths': "#A3BE8C",
	'strings': "#EBCB8B",
	'warning': "#D08770",
	'error': "#BF616A",
}

#============================================

class CommandReporter():
	"""
	Receives pipeline messages and external command events.

	One reporter is created per run and handed to the pipeline and the media
	engine. Command events may arrive from worker threads, so all writes are
	serialized with a lock.
	"""
	def __init__(self, console: Console = None, quiet: bool = False,
		debug: bool = False, log_path: str = None):
		if console is None:
			console = Console(highlight=False)
		self.console = console
		self.quiet = quiet
		self.debug_mode = debug
		self.log_path = log_path
		self.command_count = 0
		self.failed_count = 0
		self.command_durations = []
		self.lock = threading.Lock()
		self.command_styles = self._build_command_styles()
		if self.log_path is not None:
			self._reset_log()

	#============================
	def info(self, message: str) -> None:
		self._write_log(f"info: {message}")
		if self.quiet:
			return
		with self.lock:
			self.console.print(Text(message, style=NORD_COLORS['foreground']))

	#============================
	def debug(self, message: str) -> None:
		self._write_log(f"debug: {message}")
		if self.quiet or not self.debug_mode:
			return
		with self.lock:
			self.console.print(Text(message, style=NORD_COLORS['dim']))

	#============================
	def warning(self, message: str) -> None:
		self._write_log(f"warning: {message}")
		if self.quiet:
			return
		with self.lock:
			self.console.print(
				Text(f"warning: {message}", style=f"bold {NORD_COLORS['warning']}")
			)

	#============================
	def error(self, message: str, diagnostics: str = None) -> None:
		self._write_log(f"error: {message}")
		if diagnostics:
			self._write_log(diagnostics)
		with self.lock:
			self.console.print(
				Text(f"error: {message}", style=f"bold {NORD_COLORS['error']}")
			)
			if diagnostics:
				self.console.print(Text(diagnostics, style=NORD_COLORS['dim']))

	#============================
	def stage(self, name: str) -> None:
		self._write_log(f"stage: {name}")
		if self.quiet:
			return
		with self.lock:
			self.console.print(Text(f"== {name}", style=f"bold {NORD_COLORS['header']}"))

	#============================
	def command_start(self, command: str) -> int:
		with self.lock:
			self.command_count += 1
			index = self.command_count
		self._write_log(f"start [{index}]: {command}")
		if not self.quiet:
			line = Text(f"[{index}] ", style=NORD_COLORS['dim'])
			line.append_text(Text("CMD: ", style=NORD_COLORS['header']))
			line.append_text(self.highlight_command(command))
			with self.lock:
				self.console.print(line)
		return index

	#============================
	def command_end(self, index: int, command: str, returncode: int,
		seconds: float) -> None:
		with self.lock:
			self.command_durations.append(seconds)
			if returncode != 0:
				self.failed_count += 1
		if returncode != 0:
			self._write_log(f"error ({returncode}) [{index}]: {command}")
			if not self.quiet:
				with self.lock:
					self.console.print(
						Text(f"[{index}] exit code {returncode}",
							style=f"bold {NORD_COLORS['error']}")
					)
			return
		self._write_log(f"end [{index}] ({seconds:.3f}s): {command}")
		if self.debug_mode and not self.quiet:
			with self.lock:
				self.console.print(
					Text(f"[{index}] done in {seconds:.2f}s", style=NORD_COLORS['dim'])
				)

	#============================
	def highlight_command(self, command: str) -> Text:
		if command is None or command == "":
			return Text("")
		text = Text(command, style=f"bold {NORD_COLORS['command']}")
		for pattern, style in self.command_styles:
			for match in pattern.finditer(command):
				text.stylize(style, match.start(), match.end())
		return text

	#============================
	def total_command_seconds(self) -> float:
		with self.lock:
			return sum(self.command_durations)

	#============================
	def _build_command_styles(self) -> list:
		return [
			(re.compile(r"\bpcm_s16le\b|\blibx264\b|\blibx265\b|\baac\b|\blibmp3lame\b"),
				NORD_COLORS['foreground']),
			(re.compile(r"--?[A-Za-z][A-Za-z0-9_:-]*"), NORD_COLORS['flags']),
			(re.compile(r"\b\d+\.\d+\b"), NORD_COLORS['numbers']),
			(re.compile(r"\b\d+\b(?!\.\d)"), NORD_COLORS['numbers']),
			(re.compile(r"'[^']*'|\"[^\"]*\""), NORD_COLORS['strings']),
			(re.compile(r"(?:/|~|\./|\.\./)[^\s'\"`]+"), NORD_COLORS['paths']),
		]

	#============================
	def _write_log(self, message: str) -> None:
		if self.log_path is None:
			return
		timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
		line = f"[{timestamp}] {message}\n"
		with self.lock:
			with open(self.log_path, "a", encoding="utf-8") as handle:
				handle.write(line)

	#============================
	def _reset_log(self) -> None:
		with self.lock:
			with open(self.log_path, "w", encoding="utf-8"):
				return
