#!/usr/bin/env python3

#============================================

class AvSyncError(RuntimeError):
	def __init__(self, message: str, diagnostics: str = None):
		super().__init__(message)
		self.message = message
		self.diagnostics = diagnostics

	#============================
	def __str__(self) -> str:
		if self.diagnostics:
			return f"{self.message}\n{self.diagnostics}"
		return self.message

#============================================

class DependencyError(AvSyncError):
	pass

#============================================

class ConfigError(AvSyncError):
	pass

#============================================

class ProbeError(AvSyncError):
	pass

#============================================

class AnalysisError(AvSyncError):
	pass

#============================================

class SegmentError(AvSyncError):
	pass

#============================================

class MuxError(AvSyncError):
	pass

#============================================

class WorkspaceError(AvSyncError):
	pass

#============================================

class PipelineError(AvSyncError):
	"""
	A single failure surfaced by the pipeline, tagged with the stage that failed.
	"""
	def __init__(self, stage: str, cause: Exception):
		message = f"{stage} failed: {getattr(cause, 'message', str(cause))}"
		diagnostics = getattr(cause, 'diagnostics', None)
		super().__init__(message, diagnostics=diagnostics)
		self.stage = stage
		self.cause = cause
