#!/usr/bin/env python3

from dataclasses import dataclass
from fractions import Fraction

#============================================

@dataclass(frozen=True)
class TargetProfile:
	"""
	Uniform video representation every asset is normalized to.
	"""
	width: int = 1920
	height: int = 1080
	fps: Fraction = Fraction(24, 1)
	hold_seconds: float = 2.0
	pixel_format: str = 'yuv420p'
	pad_color: str = 'black'

	#============================
	@property
	def rate_text(self) -> str:
		return f"{self.fps.numerator}/{self.fps.denominator}"

	#============================
	@property
	def resolution(self) -> tuple:
		return (self.width, self.height)

	#============================
	def cache_token(self) -> str:
		return (f"{self.width}x{self.height}@{self.rate_text}"
			f":{self.hold_seconds:.6f}:{self.pixel_format}:{self.pad_color}")

	#============================
	def to_dict(self) -> dict:
		return {
			'resolution': [self.width, self.height],
			'fps': self.rate_text,
			'hold': self.hold_seconds,
			'pixel_format': self.pixel_format,
			'pad_color': self.pad_color,
		}

#============================================

@dataclass(frozen=True)
class CodecProfile:
	video_codec: str = 'libx264'
	crf: int = 23
	preset: str = 'medium'

	#============================
	def describe(self) -> str:
		return f"{self.video_codec} crf={self.crf} preset={self.preset}"

	#============================
	def to_dict(self) -> dict:
		return {
			'video_codec': self.video_codec,
			'crf': self.crf,
			'preset': self.preset,
		}
