#!/usr/bin/env python3

import os
import shutil
import tempfile
import threading
from avsynclib.core.errors import WorkspaceError

#============================================

class TempWorkspace():
	"""
	Temporary directory owned by one pipeline run.

	Used as a context manager: the directory is created on entry and removed
	on exit whether or not the run failed, unless keep_temp is set.
	"""
	def __init__(self, parent_dir: str = None, keep_temp: bool = False,
		reporter=None, prefix: str = "avsync-run-"):
		self.parent_dir = parent_dir
		self.keep_temp = keep_temp
		self.reporter = reporter
		self.prefix = prefix
		self.path = None
		self._names = set()
		self._lock = threading.Lock()

	#============================
	def __enter__(self):
		self.create()
		return self

	#============================
	def __exit__(self, exc_type, exc_value, traceback) -> bool:
		try:
			self.cleanup()
		except WorkspaceError:
			# a cleanup failure must not hide the error that ended the run
			if exc_type is None:
				raise
			if self.reporter is not None:
				self.reporter.warning(f"could not remove workspace {self.path}")
		return False

	#============================
	def create(self) -> str:
		if self.path is not None:
			raise WorkspaceError(f"workspace already created: {self.path}")
		try:
			if self.parent_dir is not None:
				os.makedirs(self.parent_dir, exist_ok=True)
			self.path = tempfile.mkdtemp(prefix=self.prefix, dir=self.parent_dir)
		except OSError as exc:
			raise WorkspaceError("could not create workspace",
				diagnostics=str(exc)) from exc
		if self.reporter is not None:
			self.reporter.debug(f"workspace: {self.path}")
		return self.path

	#============================
	def make_path(self, filename: str) -> str:
		"""
		Reserve a file name inside the workspace; each name is handed out once.
		"""
		if self.path is None:
			raise WorkspaceError("workspace has not been created")
		if os.path.basename(filename) != filename or filename in ('', '.', '..'):
			raise WorkspaceError(f"invalid workspace file name: {filename}")
		with self._lock:
			if filename in self._names:
				raise WorkspaceError(f"workspace file name already used: {filename}")
			self._names.add(filename)
		return os.path.join(self.path, filename)

	#============================
	def cleanup(self) -> None:
		if self.path is None:
			return
		if self.keep_temp:
			if self.reporter is not None:
				self.reporter.info(f"keeping workspace: {self.path}")
			return
		if os.path.exists(self.path):
			try:
				shutil.rmtree(self.path)
			except OSError as exc:
				raise WorkspaceError(f"could not remove workspace: {self.path}",
					diagnostics=str(exc)) from exc
		if self.reporter is not None:
			self.reporter.debug(f"removed workspace: {self.path}")
