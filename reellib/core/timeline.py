#!/usr/bin/env python3

from dataclasses import dataclass
from reellib.core import utils
from reellib.core.assets import Slide
from reellib.core.assets import TransitionClip
from reellib.core.errors import TimelineInconsistencyError

#============================================

STATIC = 'static'
TRANSITION = 'transition'

#============================================

@dataclass(frozen=True)
class StaticSegment:
	slide: Slide
	kind = STATIC

	#============================
	@property
	def duration(self) -> float:
		return self.slide.hold_seconds

	#============================
	@property
	def source(self) -> str:
		return self.slide.image_path

	#============================
	@property
	def key(self) -> tuple:
		return (STATIC, self.slide.index)

#============================================

@dataclass(frozen=True)
class TransitionSegment:
	clip: TransitionClip
	kind = TRANSITION

	#============================
	@property
	def duration(self) -> float:
		return self.clip.duration

	#============================
	@property
	def source(self) -> str:
		return self.clip.path

	#============================
	@property
	def key(self) -> tuple:
		return (TRANSITION, self.clip.from_index, self.clip.to_index)

#============================================

@dataclass(frozen=True)
class Timeline:
	segments: tuple
	total_duration: float

	#============================
	@property
	def slide_count(self) -> int:
		return sum(1 for segment in self.segments if segment.kind == STATIC)

	#============================
	@property
	def transition_pairs(self) -> frozenset:
		return frozenset(
			(segment.clip.from_index, segment.clip.to_index)
			for segment in self.segments if segment.kind == TRANSITION
		)

	#============================
	def describe(self) -> list:
		rows = []
		for segment in self.segments:
			if segment.kind == STATIC:
				rows.append(f"Static({segment.slide.index})")
			else:
				rows.append(
					f"Transition({segment.clip.from_index},{segment.clip.to_index})"
				)
		return rows

#============================================

def build_timeline(slides, transitions: dict) -> Timeline:
	"""
	Interleave one static segment per slide with the transition clips
	that exist for adjacent pairs. A missing clip adds nothing.
	"""
	slides = tuple(slides)
	slide_count = len(slides)
	if slide_count == 0:
		raise TimelineInconsistencyError("timeline requires at least one slide")
	for position, slide in enumerate(slides):
		if slide.index != position:
			raise TimelineInconsistencyError(
				f"slide at position {position} has index {slide.index}"
			)
	for pair, clip in transitions.items():
		(from_index, to_index) = pair
		if to_index != from_index + 1 or from_index < 0 or to_index >= slide_count:
			raise TimelineInconsistencyError(
				f"transition key {pair} is not an adjacent pair of {slide_count} slides"
			)
		if clip.pair != pair:
			raise TimelineInconsistencyError(
				f"transition stored under {pair} references {clip.pair}"
			)
	segments = []
	for index in range(slide_count):
		segments.append(StaticSegment(slides[index]))
		if index < slide_count - 1:
			clip = transitions.get((index, index + 1))
			if clip is not None:
				segments.append(TransitionSegment(clip))
	total_duration = sum(segment.duration for segment in segments)
	timeline = Timeline(segments=tuple(segments), total_duration=total_duration)
	validate_timeline(timeline, slide_count, len(transitions))
	if not utils.is_quiet_mode():
		print(f"timeline: {len(segments)} segments, {total_duration:.2f} seconds")
	return timeline

#============================================

def validate_timeline(timeline: Timeline, slide_count: int,
	transition_count: int) -> None:
	segments = timeline.segments
	if len(segments) != slide_count + transition_count:
		raise TimelineInconsistencyError(
			f"expected {slide_count + transition_count} segments, found {len(segments)}"
		)
	expected_total = sum(segment.duration for segment in segments)
	if abs(expected_total - timeline.total_duration) > 1e-9:
		raise TimelineInconsistencyError("total duration does not match segment sum")
	next_static = 0
	previous = None
	seen_pairs = set()
	for segment in segments:
		if segment.kind == STATIC:
			if segment.slide.index != next_static:
				raise TimelineInconsistencyError(
					f"static segment {segment.slide.index} out of order"
				)
			next_static += 1
		else:
			pair = segment.clip.pair
			if previous is None or previous.kind != STATIC:
				raise TimelineInconsistencyError(
					f"transition {pair} does not follow a static segment"
				)
			if pair != (previous.slide.index, previous.slide.index + 1):
				raise TimelineInconsistencyError(
					f"transition {pair} placed after slide {previous.slide.index}"
				)
			if pair in seen_pairs:
				raise TimelineInconsistencyError(f"transition {pair} appears twice")
			seen_pairs.add(pair)
		previous = segment
	if next_static != slide_count:
		raise TimelineInconsistencyError(
			f"expected {slide_count} static segments, found {next_static}"
		)
	if previous is None or previous.kind != STATIC:
		raise TimelineInconsistencyError("timeline must end on a static segment")
