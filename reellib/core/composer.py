#!/usr/bin/env python3

import os
import subprocess
import tempfile
import time
from dataclasses import dataclass
from reellib.core import utils
from reellib.core.errors import CompositionCancelledError
from reellib.core.errors import CompositionFailedError
from reellib.core.errors import CompositionTimeoutError
from reellib.core.normalizer import NormalizedAssets
from reellib.core.profile import CodecProfile
from reellib.core.profile import TargetProfile
from reellib.core.timeline import Timeline
from reellib.media import ffmpeg

#============================================

@dataclass(frozen=True)
class CompositionArtifact:
	path: str
	resolution: tuple
	frame_rate: str
	codec_profile: CodecProfile
	duration: float

	#============================
	def to_dict(self) -> dict:
		return {
			'path': self.path,
			'resolution': list(self.resolution),
			'frame_rate': self.frame_rate,
			'codec_profile': self.codec_profile.to_dict(),
			'duration': self.duration,
		}

#============================================

class Composer():
	"""
	Concatenate normalized segments into one file with a single ffmpeg run.

	The encoder writes to a hidden partial file next to the output and
	the result is renamed into place only after it is verified, so a
	failed run never leaves anything at the output path.
	"""
	def __init__(self, profile: TargetProfile, codec: CodecProfile,
		work_dir: str, keep_temp: bool = False):
		self.profile = profile
		self.codec = codec
		self.work_dir = work_dir
		self.keep_temp = keep_temp

	#============================
	def compose(self, timeline: Timeline, normalized: NormalizedAssets,
		output_file: str, timeout: float = None,
		cancel_event=None) -> CompositionArtifact:
		segment_files = self.materialize(timeline, normalized, output_file)
		list_file = self._write_concat_list(segment_files, output_file)
		try:
			if cancel_event is not None and cancel_event.is_set():
				raise CompositionCancelledError(
					f"composition of {output_file} cancelled before encoding")
			self._encode(list_file, output_file, timeout, cancel_event)
		finally:
			if not self.keep_temp:
				utils.remove_quietly(list_file)
		if not utils.is_quiet_mode():
			print(f"composed {output_file} ({timeline.total_duration:.2f} seconds)")
		return CompositionArtifact(
			path=output_file,
			resolution=self.profile.resolution,
			frame_rate=self.profile.rate_text,
			codec_profile=self.codec,
			duration=timeline.total_duration,
		)

	#============================
	def materialize(self, timeline: Timeline, normalized: NormalizedAssets,
		output_file: str) -> list:
		segment_files = []
		for position, segment in enumerate(timeline.segments):
			path = normalized.path_for(segment)
			if path is None:
				raise CompositionFailedError(output_file,
					f"segment {position} {segment.key} has no normalized clip")
			if not utils.file_has_data(path):
				raise CompositionFailedError(output_file,
					f"normalized clip for segment {position} is missing or empty: {path}")
			segment_files.append(os.path.abspath(path))
		if len(segment_files) == 0:
			raise CompositionFailedError(output_file, "timeline has no segments")
		return segment_files

	#============================
	def build_command(self, list_file: str, partial_file: str) -> list:
		return ffmpeg.concat_args(list_file, partial_file, self.profile, self.codec)

	#============================
	def _write_concat_list(self, segment_files: list, output_file: str) -> str:
		if not os.path.isdir(self.work_dir):
			os.makedirs(self.work_dir)
		stem = os.path.splitext(os.path.basename(output_file))[0]
		list_file = os.path.join(self.work_dir, f"{stem}.ffconcat")
		with open(list_file, "w", encoding="utf-8") as handle:
			handle.write(ffmpeg.concat_list_text(segment_files))
		return list_file

	#============================
	def _make_partial_path(self, output_file: str) -> str:
		output_dir = os.path.dirname(os.path.abspath(output_file))
		if not os.path.isdir(output_dir):
			os.makedirs(output_dir)
		(stem, ext) = os.path.splitext(os.path.basename(output_file))
		(handle, partial_file) = tempfile.mkstemp(prefix=f".{stem}.partial-",
			suffix=ext, dir=output_dir)
		os.close(handle)
		return partial_file

	#============================
	def _encode(self, list_file: str, output_file: str, timeout: float,
		cancel_event) -> None:
		partial_file = self._make_partial_path(output_file)
		cmd = self.build_command(list_file, partial_file)
		t0 = time.time()
		published = False
		try:
			try:
				(returncode, stderr) = utils.runCmd(cmd, timeout=timeout,
					cancel_event=cancel_event)
			except subprocess.TimeoutExpired as exc:
				raise CompositionTimeoutError(output_file, timeout) from exc
			except InterruptedError as exc:
				raise CompositionCancelledError(
					f"composition of {output_file} cancelled during encoding") from exc
			except OSError as exc:
				raise CompositionFailedError(output_file,
					f"cannot run encoder: {exc}") from exc
			if returncode != 0:
				raise CompositionFailedError(output_file,
					utils.tail_text(stderr) or "ffmpeg failed", returncode)
			if not utils.file_has_data(partial_file):
				raise CompositionFailedError(output_file,
					"encoder exited cleanly but wrote no data", returncode)
			os.replace(partial_file, output_file)
			published = True
		finally:
			if not published:
				utils.remove_quietly(partial_file)
		if not utils.is_quiet_mode():
			print(f"Complete in {int(time.time() - t0)} seconds")
