#!/usr/bin/env python3

from dataclasses import dataclass
from dataclasses import field
from typing import Optional

#============================================

@dataclass(frozen=True)
class Slide:
	index: int
	image_path: str
	hold_seconds: float

	#============================
	@property
	def duration(self) -> float:
		return self.hold_seconds

#============================================

@dataclass(frozen=True)
class TransitionClip:
	from_index: int
	to_index: int
	path: str
	duration: float

	#============================
	@property
	def pair(self) -> tuple:
		return (self.from_index, self.to_index)

#============================================

@dataclass(frozen=True)
class ResolvedAssets:
	"""
	Result of scanning one input directory: every slide in index order,
	the transition clips that exist keyed by (i, i + 1), and the
	optional preview clip.
	"""
	directory: str
	slides: tuple
	transitions: dict = field(default_factory=dict)
	preview_clip: Optional[str] = None

	#============================
	@property
	def slide_count(self) -> int:
		return len(self.slides)

	#============================
	def transition_for(self, index: int) -> Optional[TransitionClip]:
		return self.transitions.get((index, index + 1))
