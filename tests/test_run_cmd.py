#!/usr/bin/env python3

"""
Unit tests for the external command runner.
"""

# Standard Library
import os
import subprocess
import sys
import threading

import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

from reellib.core import utils

#============================================

SLEEPER = [sys.executable, "-c", "import time; time.sleep(30)"]

#============================================

@pytest.fixture(autouse=True)
def quiet_reporter():
	events = []
	utils.clear_command_reporter()
	utils.set_quiet_mode(True)
	utils.set_command_reporter(events.append)
	utils.set_command_total(3)
	yield events
	utils.clear_command_reporter()
	utils.set_quiet_mode(False)

#============================================

def test_reporter_sees_start_and_end(quiet_reporter) -> None:
	"""
	Ensure one start and one end event are reported per command.
	"""
	cmd = [sys.executable, "-c", "import sys; sys.stderr.write('oops'); sys.exit(3)"]
	(returncode, stderr) = utils.runCmd(cmd)
	assert returncode == 3
	assert stderr == "oops"
	assert [event['event'] for event in quiet_reporter] == ['start', 'end']
	assert quiet_reporter[0]['index'] == 1
	assert quiet_reporter[0]['total'] == 3
	assert quiet_reporter[1]['returncode'] == 3
	assert utils.command_prefix(1, 3) == "[1/3]"

#============================================

def test_timeout_kills_process(quiet_reporter) -> None:
	"""
	Ensure a timeout kills the command and reports its end.
	"""
	with pytest.raises(subprocess.TimeoutExpired):
		utils.runCmd(SLEEPER, timeout=0.5, poll_seconds=0.1)
	assert quiet_reporter[-1]['event'] == 'end'
	assert quiet_reporter[-1]['returncode'] != 0

#============================================

def test_cancel_kills_process(quiet_reporter) -> None:
	"""
	Ensure setting the cancel event kills the command.
	"""
	cancel = threading.Event()
	timer = threading.Timer(0.3, cancel.set)
	timer.start()
	try:
		with pytest.raises(InterruptedError):
			utils.runCmd(SLEEPER, cancel_event=cancel, poll_seconds=0.1)
	finally:
		timer.cancel()

#============================================

def test_format_command_quotes() -> None:
	"""
	Ensure commands are shell quoted and prefixes formatted.
	"""
	assert utils.format_command(["ffmpeg", "-i", "my slide.png"]) == "ffmpeg -i 'my slide.png'"
	assert utils.command_prefix(2, None) == "[2]"
	assert utils.command_prefix(0, 5) == ""
