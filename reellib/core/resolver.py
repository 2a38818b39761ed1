#!/usr/bin/env python3

import os
import re
import concurrent.futures
from reellib.core import utils
from reellib.core.assets import ResolvedAssets
from reellib.core.assets import Slide
from reellib.core.assets import TransitionClip
from reellib.core.errors import MissingSlideError
from reellib.media import ffprobe

#============================================

IMAGE_EXTENSIONS = ('png', 'jpg', 'jpeg', 'webp', 'bmp')
CLIP_EXTENSIONS = ('mp4', 'mov', 'mkv', 'webm')

SLIDE_PATTERN = re.compile(
	r"^slide[_-]?(\d+)\.(" + "|".join(IMAGE_EXTENSIONS) + r")$", re.IGNORECASE)
TRANSITION_PATTERN = re.compile(
	r"^transition[_-]?(\d+)[_-](\d+)\.(" + "|".join(CLIP_EXTENSIONS) + r")$",
	re.IGNORECASE)
PREVIEW_PATTERN = re.compile(
	r"^preview\.(" + "|".join(CLIP_EXTENSIONS) + r")$", re.IGNORECASE)

#============================================

class AssetResolver():
	"""
	Scan an input directory for numbered slide images, pair-named
	transition clips and an optional preview clip.

	File numbers are 1-based (slide_1.png, transition_1_2.mp4); indexes
	on the returned objects are 0-based.
	"""
	def __init__(self, directory: str, slide_count: int,
		hold_seconds: float = 2.0, concurrency: int = 4):
		if slide_count is None or int(slide_count) < 1:
			raise ValueError("slide_count must be at least 1")
		if concurrency < 1:
			raise ValueError("concurrency must be at least 1")
		self.directory = directory
		self.slide_count = int(slide_count)
		self.hold_seconds = float(hold_seconds)
		self.concurrency = concurrency

	#============================
	def resolve(self) -> ResolvedAssets:
		if not os.path.isdir(self.directory):
			raise MissingSlideError(0, self.directory, "input directory not found")
		names = sorted(os.listdir(self.directory))
		slides = self._resolve_slides(names)
		candidates = self._find_transition_candidates(names)
		transitions = self._probe_transitions(candidates)
		preview_clip = self._find_preview(names)
		if not utils.is_quiet_mode():
			print(f"resolved {len(slides)} slides, "
				f"{len(transitions)} of {self.slide_count - 1} transitions")
		return ResolvedAssets(
			directory=self.directory,
			slides=tuple(slides),
			transitions=transitions,
			preview_clip=preview_clip,
		)

	#============================
	def _resolve_slides(self, names: list) -> list:
		found = {}
		for name in names:
			match = SLIDE_PATTERN.match(name)
			if match is None:
				continue
			path = os.path.join(self.directory, name)
			if not os.path.isfile(path):
				continue
			index = int(match.group(1)) - 1
			if index < 0 or index >= self.slide_count:
				if not utils.is_quiet_mode():
					print(f"warning: ignoring {name}, outside 1..{self.slide_count}")
				continue
			found.setdefault(index, []).append(path)
		slides = []
		for index in range(self.slide_count):
			paths = found.get(index, [])
			if len(paths) == 0:
				raise MissingSlideError(index, self.directory)
			if len(paths) > 1:
				listing = ", ".join(os.path.basename(path) for path in paths)
				raise MissingSlideError(index, self.directory,
					f"ambiguous, several images match: {listing}")
			slides.append(Slide(index=index, image_path=paths[0],
				hold_seconds=self.hold_seconds))
		return slides

	#============================
	def _find_transition_candidates(self, names: list) -> dict:
		candidates = {}
		for name in names:
			match = TRANSITION_PATTERN.match(name)
			if match is None:
				continue
			from_index = int(match.group(1)) - 1
			to_index = int(match.group(2)) - 1
			if to_index != from_index + 1:
				if not utils.is_quiet_mode():
					print(f"warning: ignoring {name}, slides are not adjacent")
				continue
			if from_index < 0 or to_index >= self.slide_count:
				if not utils.is_quiet_mode():
					print(f"warning: ignoring {name}, outside 1..{self.slide_count}")
				continue
			pair = (from_index, to_index)
			if pair in candidates:
				if not utils.is_quiet_mode():
					print(f"warning: ignoring {name}, pair already has "
						f"{os.path.basename(candidates[pair])}")
				continue
			candidates[pair] = os.path.join(self.directory, name)
		return candidates

	#============================
	def _probe_transitions(self, candidates: dict) -> dict:
		if len(candidates) == 0:
			return {}
		durations = {}
		workers = min(self.concurrency, len(candidates))
		with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
			future_to_pair = {
				pool.submit(ffprobe.getDuration, path): pair
				for pair, path in candidates.items()
			}
			for future in concurrent.futures.as_completed(future_to_pair):
				pair = future_to_pair[future]
				try:
					durations[pair] = future.result()
				except (RuntimeError, ValueError, OSError) as exc:
					if not utils.is_quiet_mode():
						print(f"warning: treating transition {pair[0] + 1}->{pair[1] + 1} "
							f"as absent: {exc}")
		transitions = {}
		for pair in sorted(durations.keys()):
			transitions[pair] = TransitionClip(from_index=pair[0], to_index=pair[1],
				path=candidates[pair], duration=durations[pair])
		return transitions

	#============================
	def _find_preview(self, names: list):
		for name in names:
			if PREVIEW_PATTERN.match(name):
				path = os.path.join(self.directory, name)
				if os.path.isfile(path):
					return path
		return None
