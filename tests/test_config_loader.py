"""
Pytest coverage for the YAML run file loader.
"""

# Standard Library
import os
import sys
from fractions import Fraction

# PIP3 modules
import pytest
import yaml

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
import reel_cli
from reellib.core.errors import ConfigError
from reellib.core.loader import ConfigLoader

#============================================

def _write_yaml(tmp_path, data: dict) -> str:
	path = tmp_path / "reel.yaml"
	path.write_text(yaml.safe_dump(data), encoding="utf-8")
	return str(path)

#============================================

def _minimal() -> dict:
	return {'reel': 1, 'input': {'directory': 'slides', 'slide_count': 4}}

#============================================

def test_defaults(tmp_path) -> None:
	"""
	Ensure a minimal run file fills in every default.
	"""
	config = ConfigLoader(_write_yaml(tmp_path, _minimal())).load()
	assert config.input_dir == os.path.join(str(tmp_path), "slides")
	assert config.slide_count == 4
	assert config.profile.resolution == (1920, 1080)
	assert config.profile.fps == Fraction(24, 1)
	assert config.profile.hold_seconds == 2.0
	assert config.codec.video_codec == "libx264"
	assert config.codec.crf == 23
	assert config.output_dir == os.path.join(str(tmp_path), "output")
	assert config.output_file == os.path.join(str(tmp_path), "output", "slideshow.mp4")
	assert config.concurrency == 4
	assert config.timeout is None
	assert config.cache_dir is None
	assert config.keep_temp is False

#============================================

def test_full_file(tmp_path) -> None:
	"""
	Ensure every section of a full run file is parsed.
	"""
	data = _minimal()
	data['profile'] = {'resolution': [1280, 720], 'fps': '30000/1001', 'hold': '0:03.5'}
	data['output'] = {'directory': 'build', 'file': 'talk.mkv', 'crf': 18,
		'preset': 'slow'}
	data['run'] = {'concurrency': 2, 'timeout': 600, 'cache_dir': 'cache',
		'keep_temp': True}
	config = ConfigLoader(_write_yaml(tmp_path, data)).load()
	assert config.profile.resolution == (1280, 720)
	assert config.profile.fps == Fraction(30000, 1001)
	assert config.profile.hold_seconds == 3.5
	assert config.output_file == os.path.join(str(tmp_path), "build", "talk.mkv")
	assert config.codec.crf == 18
	assert config.codec.preset == "slow"
	assert config.concurrency == 2
	assert config.timeout == 600.0
	assert config.cache_dir == os.path.join(str(tmp_path), "cache")
	assert config.keep_temp is True
	assert config.to_dict()['profile']['fps'] == "30000/1001"

#============================================

def test_overrides_win(tmp_path) -> None:
	"""
	Ensure command line overrides replace file values.
	"""
	overrides = {
		'input.slide_count': 7,
		'profile.resolution': [640, 480],
		'output.crf': 30,
		'run.timeout': None,
	}
	config = ConfigLoader(_write_yaml(tmp_path, _minimal()), overrides=overrides).load()
	assert config.slide_count == 7
	assert config.profile.resolution == (640, 480)
	assert config.codec.crf == 30
	assert config.timeout is None

#============================================

def test_overrides_without_file(tmp_path, monkeypatch) -> None:
	"""
	Ensure overrides alone resolve paths against the working directory.
	"""
	monkeypatch.chdir(tmp_path)
	overrides = {'input.directory': 'in', 'input.slide_count': 2}
	config = ConfigLoader(overrides=overrides).load()
	assert config.input_dir == os.path.join(str(tmp_path), "in")
	assert config.output_dir == os.path.join(str(tmp_path), "output")

#============================================

@pytest.mark.parametrize("changes", [
	{'reel': 2},
	{'input': {'slide_count': 3}},
	{'input': {'directory': 'slides'}},
	{'input': {'directory': 'slides', 'slide_count': 0}},
	{'profile': {'resolution': [1921, 1080]}},
	{'profile': {'resolution': [1920]}},
	{'profile': {'fps': 0}},
	{'profile': {'fps': 'fast'}},
	{'profile': {'hold': -1}},
	{'output': {'crf': 64}},
	{'run': {'concurrency': 0}},
	{'run': {'timeout': 0}},
	{'run': 'fast'},
	{'input': {'directory': 'slides', 'slide_count': 'three'}},
	{'input': {'directory': 'slides', 'slide_count': True}},
	{'profile': {'resolution': ['wide', 1080]}},
	{'profile': {'hold': 'long'}},
	{'output': {'crf': 'high'}},
	{'run': {'concurrency': [2]}},
	{'run': {'timeout': 'soon'}},
])
def test_invalid_values(tmp_path, changes) -> None:
	"""
	Ensure each bad value raises ConfigError.
	"""
	data = _minimal()
	data.update(changes)
	with pytest.raises(ConfigError):
		ConfigLoader(_write_yaml(tmp_path, data)).load()

#============================================

def test_not_a_mapping(tmp_path) -> None:
	"""
	Ensure a top-level list is rejected.
	"""
	path = tmp_path / "reel.yaml"
	path.write_text("- just\n- a list\n", encoding="utf-8")
	with pytest.raises(ConfigError):
		ConfigLoader(str(path)).load()

#============================================

def test_missing_file(tmp_path) -> None:
	"""
	Ensure a missing run file raises ConfigError.
	"""
	with pytest.raises(ConfigError):
		ConfigLoader(str(tmp_path / "nope.yaml")).load()

#============================================

def test_cli_reports_bad_value(tmp_path, capsys) -> None:
	"""
	Ensure a non-numeric config value is reported by key instead of crashing.
	"""
	data = _minimal()
	data['output'] = {'crf': 'high'}
	code = reel_cli.main(["-y", _write_yaml(tmp_path, data), "--quiet"])
	assert code == 1
	assert "output.crf" in capsys.readouterr().err

#============================================

def test_absolute_output_file_sets_directory(tmp_path) -> None:
	"""
	Ensure an absolute output file without a directory keeps its outputs together.
	"""
	target = str(tmp_path / "renders" / "talk.mp4")
	overrides = {'output.file': target}
	config = ConfigLoader(_write_yaml(tmp_path, _minimal()), overrides=overrides).load()
	assert config.output_file == target
	assert config.output_dir == str(tmp_path / "renders")
