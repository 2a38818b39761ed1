#!/usr/bin/env python3

import os
import yaml
from reellib.core import utils
from reellib.core.errors import ConfigError
from reellib.core.profile import CodecProfile
from reellib.core.profile import TargetProfile

#============================================

DEFAULT_PROFILE = TargetProfile()
DEFAULT_CODEC = CodecProfile()
DEFAULT_CONCURRENCY = 4

#============================================

def _as_int(value, key: str) -> int:
	if isinstance(value, bool):
		raise ConfigError(f"{key} must be an integer")
	try:
		return int(value)
	except (TypeError, ValueError) as exc:
		raise ConfigError(f"{key} must be an integer, got {value!r}") from exc

#============================================

def _as_float(value, key: str) -> float:
	if isinstance(value, bool):
		raise ConfigError(f"{key} must be a number")
	try:
		return float(value)
	except (TypeError, ValueError) as exc:
		raise ConfigError(f"{key} must be a number, got {value!r}") from exc

#============================================

class RunConfig():
	def __init__(self):
		self.config_file = None
		self.input_dir = None
		self.slide_count = None
		self.profile = DEFAULT_PROFILE
		self.codec = DEFAULT_CODEC
		self.output_dir = None
		self.output_file = None
		self.concurrency = DEFAULT_CONCURRENCY
		self.timeout = None
		self.cache_dir = None
		self.keep_temp = False

	#============================
	def to_dict(self) -> dict:
		return {
			'input': {
				'directory': self.input_dir,
				'slide_count': self.slide_count,
			},
			'profile': self.profile.to_dict(),
			'output': dict(self.codec.to_dict(), directory=self.output_dir,
				file=self.output_file),
			'run': {
				'concurrency': self.concurrency,
				'timeout': self.timeout,
				'cache_dir': self.cache_dir,
				'keep_temp': self.keep_temp,
			},
		}

#============================================

class ConfigLoader():
	"""
	Read a `reel: 1` YAML run file and apply command line overrides.
	"""
	def __init__(self, yaml_file: str = None, overrides: dict = None):
		self.yaml_file = yaml_file
		self.overrides = overrides or {}

	#============================
	def load(self) -> RunConfig:
		data = {}
		if self.yaml_file is not None:
			data = self._load_yaml()
		data = self._apply_overrides(data)
		config = RunConfig()
		config.config_file = self.yaml_file
		base_dir = os.getcwd()
		if self.yaml_file is not None:
			base_dir = os.path.dirname(os.path.abspath(self.yaml_file))
		self._parse_input(config, data.get('input', {}), base_dir)
		config.profile = self._parse_profile(data.get('profile', {}))
		self._parse_output(config, data.get('output', {}), base_dir)
		self._parse_run(config, data.get('run', {}), base_dir)
		return config

	#============================
	def _load_yaml(self) -> dict:
		if not os.path.isfile(self.yaml_file):
			raise ConfigError(f"config file not found: {self.yaml_file}")
		file_size = os.path.getsize(self.yaml_file)
		if file_size > 10 ** 6:
			raise ConfigError("config file is larger than 1MB")
		with open(self.yaml_file, 'r') as data_file:
			try:
				data = yaml.safe_load(data_file)
			except yaml.YAMLError as exc:
				raise ConfigError(f"invalid yaml in {self.yaml_file}: {exc}") from exc
		if not isinstance(data, dict):
			raise ConfigError("config must be a mapping at the top level")
		if data.get('reel') != 1:
			raise ConfigError("reel must be set to 1")
		for key in ('input', 'profile', 'output', 'run'):
			if data.get(key) is not None and not isinstance(data.get(key), dict):
				raise ConfigError(f"{key} must be a mapping")
		return data

	#============================
	def _apply_overrides(self, data: dict) -> dict:
		merged = {}
		for key in ('input', 'profile', 'output', 'run'):
			merged[key] = dict(data.get(key) or {})
		for dotted, value in self.overrides.items():
			if value is None:
				continue
			(section, key) = dotted.split('.', 1)
			merged[section][key] = value
		return merged

	#============================
	def _parse_input(self, config: RunConfig, section: dict, base_dir: str) -> None:
		directory = section.get('directory')
		if directory is None:
			raise ConfigError("input.directory is required")
		config.input_dir = os.path.join(base_dir, str(directory))
		slide_count = section.get('slide_count')
		if slide_count is None:
			raise ConfigError("input.slide_count is required")
		slide_count = _as_int(slide_count, "input.slide_count")
		if slide_count < 1:
			raise ConfigError("input.slide_count must be at least 1")
		config.slide_count = slide_count

	#============================
	def _parse_profile(self, section: dict) -> TargetProfile:
		resolution = section.get('resolution', list(DEFAULT_PROFILE.resolution))
		if not isinstance(resolution, (list, tuple)) or len(resolution) != 2:
			raise ConfigError("profile.resolution must be [width, height]")
		width = _as_int(resolution[0], "profile.resolution width")
		height = _as_int(resolution[1], "profile.resolution height")
		if width <= 0 or height <= 0:
			raise ConfigError("profile.resolution must be positive")
		if width % 2 != 0 or height % 2 != 0:
			raise ConfigError("profile.resolution must use even numbers")
		try:
			fps = utils.parse_fps(section.get('fps', DEFAULT_PROFILE.rate_text))
		except (RuntimeError, ValueError, ZeroDivisionError) as exc:
			raise ConfigError(f"profile.fps is invalid: {exc}") from exc
		if fps <= 0:
			raise ConfigError("profile.fps must be positive")
		try:
			hold = float(utils.parse_seconds(section.get('hold',
				DEFAULT_PROFILE.hold_seconds)))
		except (RuntimeError, ArithmeticError) as exc:
			raise ConfigError(f"profile.hold is invalid: {exc}") from exc
		if hold <= 0:
			raise ConfigError("profile.hold must be positive")
		return TargetProfile(
			width=width,
			height=height,
			fps=fps,
			hold_seconds=hold,
			pixel_format=str(section.get('pixel_format', DEFAULT_PROFILE.pixel_format)),
			pad_color=str(section.get('pad_color', DEFAULT_PROFILE.pad_color)),
		)

	#============================
	def _parse_output(self, config: RunConfig, section: dict, base_dir: str) -> None:
		output_dir = os.path.join(base_dir, str(section.get('directory', 'output')))
		output_file = str(section.get('file', 'slideshow.mp4'))
		if not os.path.isabs(output_file):
			output_file = os.path.join(output_dir, output_file)
		elif section.get('directory') is None:
			# cache and manifest go next to an explicit output file
			output_dir = os.path.dirname(output_file)
		config.output_dir = output_dir
		config.output_file = output_file
		crf = _as_int(section.get('crf', DEFAULT_CODEC.crf), "output.crf")
		if not 0 <= crf <= 63:
			raise ConfigError("output.crf must be between 0 and 63")
		config.codec = CodecProfile(
			video_codec=str(section.get('video_codec', DEFAULT_CODEC.video_codec)),
			crf=crf,
			preset=str(section.get('preset', DEFAULT_CODEC.preset)),
		)

	#============================
	def _parse_run(self, config: RunConfig, section: dict, base_dir: str) -> None:
		concurrency = _as_int(section.get('concurrency', DEFAULT_CONCURRENCY),
			"run.concurrency")
		if concurrency < 1:
			raise ConfigError("run.concurrency must be at least 1")
		config.concurrency = concurrency
		timeout = section.get('timeout')
		if timeout is not None:
			timeout = _as_float(timeout, "run.timeout")
			if timeout <= 0:
				raise ConfigError("run.timeout must be positive")
		config.timeout = timeout
		cache_dir = section.get('cache_dir')
		if cache_dir is not None:
			cache_dir = os.path.join(base_dir, str(cache_dir))
		config.cache_dir = cache_dir
		config.keep_temp = bool(section.get('keep_temp', False))
