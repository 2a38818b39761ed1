"""
Pytest coverage for full slideshow runs with the encoder faked out.
"""

# Standard Library
import json
import os
import sys
import threading

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

TESTS_DIR = os.path.abspath(os.path.dirname(__file__))
if TESTS_DIR not in sys.path:
	sys.path.insert(0, TESTS_DIR)
from media_utils import fake_duration
from media_utils import write_fake_clip
from media_utils import write_slide

# local repo modules
import reel_cli
from reellib.core import project
from reellib.core import resolver
from reellib.core import utils
from reellib.core.errors import CompositionCancelledError
from reellib.core.errors import MissingSlideError
from reellib.core.loader import ConfigLoader

#============================================

class FakeEncoder():
	def __init__(self):
		self.commands = []
		self.lock = threading.Lock()

	def __call__(self, cmd: list, timeout: float = None, cancel_event=None) -> tuple:
		with self.lock:
			self.commands.append(cmd)
		with open(cmd[-1], "wb") as handle:
			handle.write(b"encoded")
		return (0, "")

#============================================

@pytest.fixture(autouse=True)
def quiet_mode():
	utils.set_quiet_mode(True)
	yield
	utils.set_quiet_mode(False)

#============================================

@pytest.fixture
def encoder(monkeypatch):
	fake = FakeEncoder()
	monkeypatch.setattr(utils, "runCmd", fake)
	monkeypatch.setattr(resolver.ffprobe, "getDuration", fake_duration(1.5))
	return fake

#============================================

def _make_inputs(tmp_path, slide_numbers: tuple, transitions: tuple = ()) -> str:
	input_dir = tmp_path / "in"
	input_dir.mkdir()
	for number in slide_numbers:
		write_slide(str(input_dir), number)
	for name in transitions:
		write_fake_clip(str(input_dir), name)
	return str(input_dir)

#============================================

def _config(tmp_path, input_dir: str, slide_count: int, **run):
	overrides = {
		'input.directory': input_dir,
		'input.slide_count': slide_count,
		'output.directory': str(tmp_path / "out"),
	}
	for key, value in run.items():
		overrides[f"run.{key}"] = value
	return ConfigLoader(overrides=overrides).load()

#============================================

def test_full_run_publishes_video_and_manifest(tmp_path, encoder) -> None:
	"""
	Ensure a full run writes the video, the cache and the manifest.
	"""
	input_dir = _make_inputs(tmp_path, (1, 2, 3), ("transition_1_2.mp4",))
	config = _config(tmp_path, input_dir, 3)
	artifact = project.ReelProject(config).run()
	assert artifact.path == config.output_file
	assert artifact.duration == pytest.approx(7.5)
	assert os.path.getsize(config.output_file) > 0
	out_dir = tmp_path / "out"
	assert sorted(os.listdir(out_dir)) == ["manifest.json", "normalized", "slideshow.mp4"]
	# three stills, one transition, one concat
	assert len(encoder.commands) == 5
	with open(out_dir / "manifest.json", "r", encoding="utf-8") as handle:
		data = json.load(handle)
	assert [entry['type'] for entry in data['segments']] == [
		'static', 'transition', 'static', 'static']
	assert data['artifact']['path'] == config.output_file
	assert all(entry['normalized'] for entry in data['segments'])

#============================================

def test_missing_slide_stops_before_building(tmp_path, encoder, monkeypatch) -> None:
	"""
	Ensure a missing slide aborts before any timeline or encode work.
	"""
	def fail(*args, **kwargs):
		raise AssertionError("should not be called")

	monkeypatch.setattr(project, "build_timeline", fail)
	monkeypatch.setattr(project, "Composer", fail)
	input_dir = _make_inputs(tmp_path, (1, 2, 4, 5))
	config = _config(tmp_path, input_dir, 5)
	with pytest.raises(MissingSlideError) as excinfo:
		project.ReelProject(config).run()
	assert excinfo.value.index == 2
	assert encoder.commands == []
	assert not os.path.exists(config.output_file)

#============================================

def test_dry_run_encodes_nothing(tmp_path, encoder) -> None:
	"""
	Ensure a dry run plans without encoding or writing.
	"""
	input_dir = _make_inputs(tmp_path, (1, 2))
	config = _config(tmp_path, input_dir, 2)
	reel = project.ReelProject(config, dry_run=True)
	assert reel.run() is None
	assert reel.timeline.describe() == ["Static(0)", "Static(1)"]
	assert encoder.commands == []
	assert not os.path.exists(tmp_path / "out")

#============================================

def test_cancelled_run_encodes_nothing(tmp_path, encoder) -> None:
	"""
	Ensure a cancelled run never starts the encoder.
	"""
	input_dir = _make_inputs(tmp_path, (1, 2))
	config = _config(tmp_path, input_dir, 2)
	cancel = threading.Event()
	cancel.set()
	with pytest.raises(CompositionCancelledError):
		project.ReelProject(config, cancel_event=cancel).run()
	assert encoder.commands == []

#============================================

def test_keep_temp_keeps_concat_list(tmp_path, encoder) -> None:
	"""
	Ensure keep_temp leaves the work dir with its concat list.
	"""
	input_dir = _make_inputs(tmp_path, (1, 2))
	config = _config(tmp_path, input_dir, 2, keep_temp=True)
	project.ReelProject(config).run()
	work_dirs = [name for name in os.listdir(tmp_path / "out")
		if name.startswith("reel-run-")]
	assert len(work_dirs) == 1
	assert os.listdir(tmp_path / "out" / work_dirs[0]) == ["slideshow.ffconcat"]

#============================================

def test_cli_reports_missing_slide(tmp_path, encoder, capsys) -> None:
	"""
	Ensure the CLI reports a missing slide and exits 1.
	"""
	input_dir = _make_inputs(tmp_path, (1, 3))
	code = reel_cli.main(["-i", input_dir, "-s", "3", "-o",
		str(tmp_path / "out" / "reel.mp4"), "--quiet"])
	assert code == 1
	assert "slide 1" in capsys.readouterr().err
	assert encoder.commands == []

#============================================

def test_cli_dump_plan(tmp_path, encoder, capsys) -> None:
	"""
	Ensure the CLI prints the plan as YAML without encoding.
	"""
	input_dir = _make_inputs(tmp_path, (1, 2), ("transition-1-2.mov",))
	code = reel_cli.main(["-i", input_dir, "-s", "2", "-o",
		str(tmp_path / "out" / "reel.mp4"), "-p", "--quiet"])
	assert code == 0
	out = capsys.readouterr().out
	assert "manifest_version: 1" in out
	assert "type: transition" in out
	assert encoder.commands == []

#============================================

def test_cli_reports_missing_encoder(tmp_path, monkeypatch, capsys) -> None:
	"""
	Ensure a run without an ffmpeg binary exits with an error, not a traceback.
	"""
	monkeypatch.chdir(tmp_path)
	input_dir = _make_inputs(tmp_path, (1, 2))
	empty_bin = tmp_path / "nobin"
	empty_bin.mkdir()
	monkeypatch.setenv("PATH", str(empty_bin))
	code = reel_cli.main(["-i", input_dir, "-s", "2", "-o",
		str(tmp_path / "out" / "reel.mp4"), "--quiet"])
	assert code == 1
	assert "cannot run encoder" in capsys.readouterr().err
	assert not os.path.exists(tmp_path / "out" / "reel.mp4")
