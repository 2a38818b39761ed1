#!/usr/bin/env python3

"""
ffmpeg argument builders. Each function returns a full argument list so
the same inputs always produce the same command.
"""

from reellib.core.profile import CodecProfile
from reellib.core.profile import TargetProfile

#============================================

CONCAT_HEADER = "ffconcat version 1.0"

#============================================

def _base_args() -> list:
	return ["ffmpeg", "-y", "-hide_banner", "-nostdin", "-loglevel", "error"]

#============================================

def _encode_args(profile: TargetProfile, codec: CodecProfile) -> list:
	args = []
	args += ["-an", "-sn", "-map_metadata", "-1", "-map_chapters", "-1"]
	args += ["-codec:v", codec.video_codec, "-crf", str(codec.crf)]
	args += ["-preset", codec.preset]
	args += ["-pix_fmt", profile.pixel_format, "-r", profile.rate_text]
	args += ["-fflags", "+bitexact", "-flags:v", "+bitexact"]
	return args

#============================================

def fit_filter(profile: TargetProfile) -> str:
	"""
	Scale into the target box keeping aspect ratio, then pad to fill it.
	"""
	width = profile.width
	height = profile.height
	chain = [
		f"scale={width}:{height}:force_original_aspect_ratio=decrease",
		f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:color={profile.pad_color}",
		"setsar=1",
		f"fps={profile.rate_text}",
		f"format={profile.pixel_format}",
	]
	return ",".join(chain)

#============================================

def still_to_video_args(image_file: str, out_file: str, profile: TargetProfile,
	codec: CodecProfile, hold_seconds: float = None) -> list:
	if hold_seconds is None:
		hold_seconds = profile.hold_seconds
	args = _base_args()
	args += ["-loop", "1", "-framerate", profile.rate_text, "-i", image_file]
	args += ["-t", f"{hold_seconds:.3f}"]
	args += ["-vf", fit_filter(profile)]
	args += _encode_args(profile, codec)
	args += [out_file]
	return args

#============================================

def clip_to_video_args(clip_file: str, out_file: str, profile: TargetProfile,
	codec: CodecProfile) -> list:
	args = _base_args()
	args += ["-i", clip_file]
	args += ["-vf", fit_filter(profile)]
	args += _encode_args(profile, codec)
	args += [out_file]
	return args

#============================================

def concat_list_text(segment_files: list) -> str:
	lines = [CONCAT_HEADER]
	for segment_file in segment_files:
		escaped = segment_file.replace("'", "'\\''")
		lines.append(f"file '{escaped}'")
	return "\n".join(lines) + "\n"

#============================================

def concat_args(list_file: str, out_file: str, profile: TargetProfile,
	codec: CodecProfile) -> list:
	args = _base_args()
	args += ["-f", "concat", "-safe", "0", "-i", list_file]
	args += _encode_args(profile, codec)
	if out_file.lower().endswith(('.mp4', '.mov', '.m4v')):
		args += ["-movflags", "+faststart"]
	args += [out_file]
	return args
