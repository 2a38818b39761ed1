#!/usr/bin/env python3

"""
Exception types raised by the slideshow pipeline.

Every error is a RuntimeError so callers that only guard against
RuntimeError keep working.
"""

#============================================

class ReelError(RuntimeError):
	pass

#============================================

class ConfigError(ReelError):
	pass

#============================================

class MissingSlideError(ReelError):
	def __init__(self, index: int, directory: str, reason: str = "no image found"):
		self.index = index
		self.directory = directory
		self.reason = reason
		super().__init__(
			f"slide {index} (file number {index + 1}) in {directory}: {reason}"
		)

#============================================

class NormalizationError(ReelError):
	def __init__(self, path: str, detail: str, returncode: int = None):
		self.path = path
		self.detail = detail
		self.returncode = returncode
		message = f"cannot normalize {path}: {detail}"
		if returncode is not None:
			message += f" (exit code {returncode})"
		super().__init__(message)

#============================================

class TimelineInconsistencyError(ReelError):
	pass

#============================================

class CompositionFailedError(ReelError):
	def __init__(self, output: str, detail: str, returncode: int = None):
		self.output = output
		self.detail = detail
		self.returncode = returncode
		message = f"composition of {output} failed: {detail}"
		if returncode is not None:
			message += f" (exit code {returncode})"
		super().__init__(message)

#============================================

class CompositionTimeoutError(CompositionFailedError):
	def __init__(self, output: str, timeout: float):
		self.timeout = timeout
		super().__init__(output, f"encoder exceeded {timeout:.1f}s and was terminated")

#============================================

class CompositionCancelledError(ReelError):
	pass

#============================================

class ManifestError(ReelError):
	pass
