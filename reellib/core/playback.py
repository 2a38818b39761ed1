#!/usr/bin/env python3

"""
Interactive replay of a slideshow timeline.

The machine is single threaded and event driven. Events are queued and
handled one at a time; a listener that posts new events while a change
is being delivered has them handled after the current one completes.
Moving backward is always an instant jump, transitions only play forward.
"""

import collections
from dataclasses import dataclass
from reellib.core.timeline import STATIC
from reellib.core.timeline import Timeline

#============================================

PREVIEW = 'preview'
TRANSITION_PLAYING = 'transition_playing'
STATIC_DISPLAY = 'static_display'

ADVANCE = 'advance'
RETREAT = 'retreat'
MEDIA_END = 'media_end'
JUMP = 'jump'

#============================================

@dataclass(frozen=True)
class Preview:
	mode = PREVIEW

	#============================
	@property
	def slide_index(self) -> int:
		return 0

#============================================

@dataclass(frozen=True)
class TransitionPlaying:
	from_index: int
	to_index: int
	generation: int
	mode = TRANSITION_PLAYING

	#============================
	@property
	def slide_index(self) -> int:
		return self.from_index

#============================================

@dataclass(frozen=True)
class StaticDisplay:
	index: int
	mode = STATIC_DISPLAY

	#============================
	@property
	def slide_index(self) -> int:
		return self.index

#============================================

@dataclass(frozen=True)
class PlaybackEvent:
	kind: str
	target: int = None
	generation: int = None

#============================================

class PlaybackStateMachine():
	def __init__(self, slide_count: int, transitions=None, preview_clip: str = None,
		timeline: Timeline = None):
		if slide_count < 1:
			raise ValueError("slide_count must be at least 1")
		self.slide_count = slide_count
		self.transitions = {}
		for pair, clip in dict(transitions or {}).items():
			self.transitions[tuple(pair)] = clip
		self.preview_clip = preview_clip
		self.timeline = timeline
		self._state = Preview()
		self._generation = 0
		self._queue = collections.deque()
		self._dispatching = False
		self._listeners = []

	#============================
	@classmethod
	def from_timeline(cls, timeline: Timeline, preview_clip: str = None):
		transitions = {}
		for segment in timeline.segments:
			if segment.kind != STATIC:
				transitions[segment.clip.pair] = segment.clip
		return cls(timeline.slide_count, transitions, preview_clip=preview_clip,
			timeline=timeline)

	#============================
	@classmethod
	def from_manifest(cls, manifest):
		return cls.from_timeline(manifest.timeline, preview_clip=manifest.preview_clip)

	#============================
	@property
	def state(self):
		return self._state

	#============================
	@property
	def mode(self) -> str:
		return self._state.mode

	#============================
	@property
	def current_slide_index(self) -> int:
		return self._state.slide_index

	#============================
	@property
	def is_transitioning(self) -> bool:
		return self._state.mode == TRANSITION_PLAYING

	#============================
	def snapshot(self) -> dict:
		return {
			'current_slide_index': self.current_slide_index,
			'mode': self.mode,
			'is_transitioning': self.is_transitioning,
		}

	#============================
	def has_transition(self, from_index: int) -> bool:
		return (from_index, from_index + 1) in self.transitions

	#============================
	def add_listener(self, callback) -> None:
		"""
		Register callback(old_state, new_state), called after each change.
		"""
		self._listeners.append(callback)

	#============================
	def advance(self) -> None:
		self.post(PlaybackEvent(ADVANCE))

	#============================
	def retreat(self) -> None:
		self.post(PlaybackEvent(RETREAT))

	#============================
	def jump_to(self, index: int) -> None:
		self.post(PlaybackEvent(JUMP, target=index))

	#============================
	def media_ended(self, generation: int = None) -> None:
		self.post(PlaybackEvent(MEDIA_END, generation=generation))

	#============================
	def post(self, event: PlaybackEvent) -> None:
		self._queue.append(event)
		if self._dispatching:
			return
		self._dispatching = True
		try:
			while len(self._queue) > 0:
				self._handle(self._queue.popleft())
		finally:
			self._dispatching = False

	#============================
	def current_media(self) -> dict:
		"""
		Describe what the host should be showing for the current state.
		"""
		state = self._state
		if state.mode == PREVIEW:
			if self.preview_clip is None:
				return self._still_media(0)
			return {'kind': 'preview', 'path': self.preview_clip, 'loop': True,
				'duration': None}
		if state.mode == TRANSITION_PLAYING:
			clip = self.transitions[(state.from_index, state.to_index)]
			return {'kind': 'transition', 'path': getattr(clip, 'path', None),
				'loop': False, 'duration': getattr(clip, 'duration', None),
				'generation': state.generation}
		return self._still_media(state.index)

	#============================
	def _still_media(self, index: int) -> dict:
		path = None
		duration = None
		if self.timeline is not None:
			for segment in self.timeline.segments:
				if segment.kind == STATIC and segment.slide.index == index:
					path = segment.source
					duration = segment.duration
					break
		return {'kind': 'still', 'path': path, 'loop': False, 'duration': duration,
			'index': index}

	#============================
	def _handle(self, event: PlaybackEvent) -> None:
		old_state = self._state
		new_state = self._next_state(old_state, event)
		if new_state is None or new_state == old_state:
			return
		self._state = new_state
		for callback in list(self._listeners):
			callback(old_state, new_state)

	#============================
	def _next_state(self, state, event: PlaybackEvent):
		if event.kind == JUMP:
			return self._jump(event.target)
		if state.mode == PREVIEW:
			if event.kind == ADVANCE:
				if self.slide_count == 1:
					return StaticDisplay(0)
				return self._step_forward(0)
			return None
		if state.mode == TRANSITION_PLAYING:
			if event.kind == MEDIA_END:
				if event.generation is not None and event.generation != state.generation:
					return None
				return StaticDisplay(state.to_index)
			if event.kind == ADVANCE:
				return StaticDisplay(state.to_index)
			if event.kind == RETREAT:
				return StaticDisplay(max(state.from_index - 1, 0))
			return None
		if event.kind == ADVANCE:
			return self._step_forward(state.index)
		if event.kind == RETREAT:
			if state.index > 0:
				return StaticDisplay(state.index - 1)
			return None
		return None

	#============================
	def _step_forward(self, index: int):
		if index + 1 >= self.slide_count:
			return None
		if self.has_transition(index):
			self._generation += 1
			return TransitionPlaying(index, index + 1, self._generation)
		return StaticDisplay(index + 1)

	#============================
	def _jump(self, target):
		if target is None:
			return None
		if target < 0 or target >= self.slide_count:
			return None
		return StaticDisplay(int(target))
