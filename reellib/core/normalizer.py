#!/usr/bin/env python3

import hashlib
import os
import subprocess
import threading
import concurrent.futures
from dataclasses import dataclass
from dataclasses import field
from typing import Optional
import PIL.Image
from tqdm import tqdm
from reellib.core import utils
from reellib.core.assets import ResolvedAssets
from reellib.core.assets import Slide
from reellib.core.assets import TransitionClip
from reellib.core.errors import NormalizationError
from reellib.core.profile import CodecProfile
from reellib.core.profile import TargetProfile
from reellib.core.timeline import STATIC
from reellib.media import ffmpeg

#============================================

# near-lossless intermediate, the composer does the final encode
INTERMEDIATE_CODEC = CodecProfile(video_codec='libx264', crf=16, preset='veryfast')
NORMALIZED_SUFFIX = '.mkv'

#============================================

@dataclass(frozen=True)
class NormalizedAssets:
	slides: dict
	transitions: dict = field(default_factory=dict)
	preview_clip: Optional[str] = None

	#============================
	def path_for(self, segment):
		if segment.kind == STATIC:
			return self.slides.get(segment.slide.index)
		return self.transitions.get(segment.clip.pair)

#============================================

class NormalizedCache():
	"""
	Directory of normalized clips keyed by source and profile.

	get_or_create() runs the factory at most once per key in this
	process; concurrent callers for the same key wait for the first one.
	Entries are published by rename so a failed encode leaves nothing.
	"""
	def __init__(self, cache_dir: str):
		if not os.path.isdir(cache_dir):
			os.makedirs(cache_dir)
		self.cache_dir = cache_dir
		self._lock = threading.Lock()
		self._entries = {}
		self._pending = {}

	#============================
	def key_for(self, source: str, kind: str, profile: TargetProfile,
		codec: CodecProfile, hold_seconds: float = None) -> str:
		source_path = os.path.abspath(source)
		stat = os.stat(source_path)
		parts = [
			kind,
			source_path,
			str(stat.st_size),
			str(stat.st_mtime_ns),
			profile.cache_token(),
			codec.describe(),
		]
		if hold_seconds is not None:
			parts.append(f"hold={hold_seconds:.6f}")
		digest = hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()
		return f"{kind}-{digest[:20]}"

	#============================
	def entry_path(self, key: str) -> str:
		return os.path.join(self.cache_dir, key + NORMALIZED_SUFFIX)

	#============================
	def get_or_create(self, key: str, source: str, factory) -> str:
		final_path = self.entry_path(key)
		with self._lock:
			if key in self._entries:
				return self._entries[key]
			event = self._pending.get(key)
			owner = event is None
			if owner:
				if utils.file_has_data(final_path):
					self._entries[key] = final_path
					return final_path
				event = threading.Event()
				self._pending[key] = event
		if not owner:
			event.wait()
			with self._lock:
				path = self._entries.get(key)
			if path is None:
				raise NormalizationError(source, "concurrent normalization failed")
			return path
		partial_path = os.path.join(self.cache_dir,
			f".{key}.partial{NORMALIZED_SUFFIX}")
		published = False
		try:
			factory(partial_path)
			os.replace(partial_path, final_path)
			published = True
		finally:
			if not published:
				utils.remove_quietly(partial_path)
			with self._lock:
				if published:
					self._entries[key] = final_path
				self._pending.pop(key).set()
		return final_path

	#============================
	def __contains__(self, key: str) -> bool:
		with self._lock:
			return key in self._entries

#============================================

class Normalizer():
	def __init__(self, profile: TargetProfile, cache: NormalizedCache,
		codec: CodecProfile = INTERMEDIATE_CODEC, concurrency: int = 4,
		timeout: float = None):
		if concurrency < 1:
			raise ValueError("concurrency must be at least 1")
		self.profile = profile
		self.cache = cache
		self.codec = codec
		self.concurrency = concurrency
		self.timeout = timeout

	#============================
	def normalize_slide(self, slide: Slide) -> str:
		source = slide.image_path
		self._verify_image(source)
		hold = slide.hold_seconds
		key = self.cache.key_for(source, 'slide', self.profile, self.codec,
			hold_seconds=hold)
		return self.cache.get_or_create(key, source,
			lambda out_file: self._encode(source,
				ffmpeg.still_to_video_args(source, out_file, self.profile, self.codec,
					hold_seconds=hold),
				out_file))

	#============================
	def normalize_clip(self, source: str, kind: str = 'clip') -> str:
		if not utils.file_has_data(source):
			raise NormalizationError(source, "file is missing or empty")
		key = self.cache.key_for(source, kind, self.profile, self.codec)
		return self.cache.get_or_create(key, source,
			lambda out_file: self._encode(source,
				ffmpeg.clip_to_video_args(source, out_file, self.profile, self.codec),
				out_file))

	#============================
	def normalize_transition(self, clip: TransitionClip) -> str:
		return self.normalize_clip(clip.path, kind='transition')

	#============================
	def normalize_all(self, assets: ResolvedAssets) -> NormalizedAssets:
		jobs = []
		for slide in assets.slides:
			jobs.append((('slide', slide.index), self.normalize_slide, slide))
		for pair in sorted(assets.transitions.keys()):
			jobs.append((('transition', pair), self.normalize_transition,
				assets.transitions[pair]))
		if assets.preview_clip is not None:
			jobs.append((('preview', None), self.normalize_clip, assets.preview_clip))
		results = {}
		first_error = None
		workers = min(self.concurrency, len(jobs))
		with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
			future_to_job = {
				pool.submit(func, arg): job_id for (job_id, func, arg) in jobs
			}
			completed = concurrent.futures.as_completed(future_to_job)
			if not utils.is_quiet_mode():
				completed = tqdm(completed, total=len(jobs), desc="normalize")
			for future in completed:
				if future.cancelled():
					continue
				try:
					results[future_to_job[future]] = future.result()
				except NormalizationError as exc:
					if first_error is None:
						first_error = exc
						for pending in future_to_job:
							pending.cancel()
		if first_error is not None:
			raise first_error
		slides = {}
		transitions = {}
		preview_clip = None
		for (kind, ident), path in results.items():
			if kind == 'slide':
				slides[ident] = path
			elif kind == 'transition':
				transitions[ident] = path
			else:
				preview_clip = path
		return NormalizedAssets(
			slides=dict(sorted(slides.items())),
			transitions=dict(sorted(transitions.items())),
			preview_clip=preview_clip,
		)

	#============================
	def _verify_image(self, image_file: str) -> None:
		try:
			with PIL.Image.open(image_file) as image:
				image.verify()
		except (OSError, SyntaxError, ValueError) as exc:
			raise NormalizationError(image_file, f"unreadable image: {exc}") from exc

	#============================
	def _encode(self, source: str, cmd: list, out_file: str) -> None:
		try:
			(returncode, stderr) = utils.runCmd(cmd, timeout=self.timeout)
		except subprocess.TimeoutExpired as exc:
			raise NormalizationError(source,
				f"encoder exceeded {self.timeout}s") from exc
		except OSError as exc:
			raise NormalizationError(source, f"cannot run encoder: {exc}") from exc
		if returncode != 0:
			raise NormalizationError(source, utils.tail_text(stderr) or "ffmpeg failed",
				returncode)
		if not utils.file_has_data(out_file):
			raise NormalizationError(source, f"encoder wrote no data to {out_file}",
				returncode)
