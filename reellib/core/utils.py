#!/usr/bin/env python3

import os
import shlex
import subprocess
import threading
import time
from decimal import Decimal
from fractions import Fraction

#============================================

_QUIET_MODE = False
_COMMAND_REPORTER = None
_COMMAND_TOTAL = None
_COMMAND_COUNT = 0
_COMMAND_LOCK = threading.Lock()

#============================================

def set_quiet_mode(quiet: bool) -> None:
	global _QUIET_MODE
	_QUIET_MODE = bool(quiet)

#============================================

def is_quiet_mode() -> bool:
	return _QUIET_MODE

#============================================

def set_command_reporter(reporter) -> None:
	global _COMMAND_REPORTER
	_COMMAND_REPORTER = reporter

#============================================

def clear_command_reporter() -> None:
	global _COMMAND_REPORTER, _COMMAND_COUNT, _COMMAND_TOTAL
	_COMMAND_REPORTER = None
	_COMMAND_COUNT = 0
	_COMMAND_TOTAL = None

#============================================

def set_command_total(total) -> None:
	global _COMMAND_TOTAL
	_COMMAND_TOTAL = total

#============================================

def command_prefix(index: int, total) -> str:
	if index is None or index <= 0:
		return ""
	if total:
		return f"[{index}/{total}]"
	return f"[{index}]"

#============================================

def format_command(cmd: list) -> str:
	return " ".join(shlex.quote(str(part)) for part in cmd)

#============================================

def _report(event: dict) -> None:
	reporter = _COMMAND_REPORTER
	if reporter is not None:
		reporter(event)

#============================================

def runCmd(cmd: list, timeout: float = None, cancel_event=None,
	poll_seconds: float = 0.25) -> tuple:
	"""
	Run an external command given as an argument list.

	Returns (returncode, stderr_text). Raises subprocess.TimeoutExpired
	after killing the process when the timeout elapses, and
	InterruptedError after killing it when cancel_event is set.
	"""
	global _COMMAND_COUNT
	showcmd = format_command(cmd)
	with _COMMAND_LOCK:
		_COMMAND_COUNT += 1
		index = _COMMAND_COUNT
	if not is_quiet_mode():
		print(f"CMD: '{showcmd}'")
	_report({'event': 'start', 'command': showcmd, 'index': index,
		'total': _COMMAND_TOTAL})
	t0 = time.time()
	proc = subprocess.Popen([str(part) for part in cmd],
		stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)
	deadline = None
	if timeout is not None:
		deadline = t0 + timeout
	while True:
		try:
			(_, stderr) = proc.communicate(timeout=poll_seconds)
			break
		except subprocess.TimeoutExpired:
			if cancel_event is not None and cancel_event.is_set():
				proc.kill()
				proc.communicate()
				_report({'event': 'end', 'command': showcmd, 'index': index,
					'returncode': proc.returncode, 'seconds': time.time() - t0})
				raise InterruptedError(f"command cancelled: {showcmd}")
			if deadline is not None and time.time() >= deadline:
				proc.kill()
				proc.communicate()
				_report({'event': 'end', 'command': showcmd, 'index': index,
					'returncode': proc.returncode, 'seconds': time.time() - t0})
				raise subprocess.TimeoutExpired(showcmd, timeout)
	seconds = time.time() - t0
	_report({'event': 'end', 'command': showcmd, 'index': index,
		'returncode': proc.returncode, 'seconds': seconds})
	stderr_text = ""
	if stderr:
		stderr_text = stderr.decode("utf-8", errors="replace")
	return (proc.returncode, stderr_text)

#============================================

def tail_text(text: str, lines: int = 20) -> str:
	if not text:
		return ""
	return "\n".join(text.strip().splitlines()[-lines:])

#============================================

def parse_fps(raw_fps) -> Fraction:
	if raw_fps is None:
		raise RuntimeError("profile.fps is required")
	if isinstance(raw_fps, bool):
		raise RuntimeError("profile.fps must be int, float, or fraction string")
	if isinstance(raw_fps, int):
		return Fraction(raw_fps, 1)
	if isinstance(raw_fps, float):
		return Fraction(str(raw_fps))
	if isinstance(raw_fps, str):
		if '/' in raw_fps:
			parts = raw_fps.split('/')
			return Fraction(int(parts[0]), int(parts[1]))
		return Fraction(raw_fps)
	raise RuntimeError("profile.fps must be int, float, or fraction string")

#============================================

def parse_seconds(raw_time) -> Decimal:
	if raw_time is None:
		raise RuntimeError("time value is required")
	if isinstance(raw_time, int):
		return Decimal(raw_time)
	if isinstance(raw_time, float):
		return Decimal(str(raw_time))
	if isinstance(raw_time, str):
		value = raw_time.strip()
		if ':' not in value:
			return Decimal(value)
		parts = value.split(':')
		seconds = Decimal(parts.pop())
		minutes = Decimal(parts.pop())
		hours = Decimal(0)
		if len(parts) > 0:
			hours = Decimal(parts.pop())
		return hours * Decimal(3600) + minutes * Decimal(60) + seconds
	raise RuntimeError("time values must be int, float, or timecode string")

#============================================

def file_has_data(filepath: str) -> bool:
	return os.path.isfile(filepath) and os.path.getsize(filepath) > 0

#============================================

def remove_quietly(filepath: str) -> None:
	if filepath and os.path.exists(filepath):
		os.remove(filepath)

