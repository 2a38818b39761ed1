#!/usr/bin/env python3

import os
import shutil
import tempfile
from reellib.core import utils
from reellib.core.composer import Composer
from reellib.core.errors import CompositionCancelledError
from reellib.core.loader import RunConfig
from reellib.core.manifest import MANIFEST_NAME
from reellib.core.manifest import manifest_data
from reellib.core.manifest import write_manifest
from reellib.core.normalizer import NormalizedCache
from reellib.core.normalizer import Normalizer
from reellib.core.resolver import AssetResolver
from reellib.core.timeline import build_timeline

#============================================

class ReelProject():
	"""
	One slideshow run: resolve inputs, normalize them, build the
	timeline, compose the video and write the playback manifest.
	"""
	def __init__(self, config: RunConfig, dry_run: bool = False,
		cancel_event=None):
		self.config = config
		self.dry_run = dry_run
		self.cancel_event = cancel_event
		self.assets = None
		self.timeline = None
		self.normalized = None
		self.artifact = None
		self.manifest_file = os.path.join(config.output_dir, MANIFEST_NAME)

	#============================
	def plan(self):
		resolver = AssetResolver(self.config.input_dir, self.config.slide_count,
			hold_seconds=self.config.profile.hold_seconds,
			concurrency=self.config.concurrency)
		self.assets = resolver.resolve()
		self.timeline = build_timeline(self.assets.slides, self.assets.transitions)
		return self.timeline

	#============================
	def run(self):
		if self.timeline is None:
			self.plan()
		if self.dry_run:
			if not utils.is_quiet_mode():
				print("dry run: validation complete")
			return None
		self._check_cancelled("before normalization")
		planned = len(self.assets.slides) + len(self.assets.transitions) + 1
		if self.assets.preview_clip is not None:
			planned += 1
		# cache hits skip their command, so this is an upper bound
		utils.set_command_total(planned)
		cache_dir = self.config.cache_dir
		if cache_dir is None:
			cache_dir = os.path.join(self.config.output_dir, 'normalized')
		normalizer = Normalizer(self.config.profile, NormalizedCache(cache_dir),
			concurrency=self.config.concurrency, timeout=self.config.timeout)
		self.normalized = normalizer.normalize_all(self.assets)
		self._check_cancelled("before composition")
		if not os.path.isdir(self.config.output_dir):
			os.makedirs(self.config.output_dir)
		work_dir = tempfile.mkdtemp(prefix="reel-run-", dir=self.config.output_dir)
		try:
			composer = Composer(self.config.profile, self.config.codec, work_dir,
				keep_temp=self.config.keep_temp)
			self.artifact = composer.compose(self.timeline, self.normalized,
				self.config.output_file, timeout=self.config.timeout,
				cancel_event=self.cancel_event)
		finally:
			if not self.config.keep_temp:
				shutil.rmtree(work_dir, ignore_errors=True)
		self.write_manifest()
		return self.artifact

	#============================
	def plan_data(self) -> dict:
		return manifest_data(self.timeline, self.config.profile,
			preview_clip=self.assets.preview_clip, normalized=self.normalized,
			artifact=self.artifact)

	#============================
	def write_manifest(self) -> str:
		write_manifest(self.manifest_file, self.plan_data())
		if not utils.is_quiet_mode():
			print(f"manifest: {self.manifest_file}")
		return self.manifest_file

	#============================
	def _check_cancelled(self, stage: str) -> None:
		if self.cancel_event is not None and self.cancel_event.is_set():
			raise CompositionCancelledError(f"run cancelled {stage}")
