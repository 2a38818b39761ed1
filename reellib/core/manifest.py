#!/usr/bin/env python3

"""
Playback manifest: the ordered segment list written next to the composed
video so a player can replay the slideshow without rescanning inputs.
"""

import json
import os
from dataclasses import dataclass
from typing import Optional
from reellib.core.assets import Slide
from reellib.core.assets import TransitionClip
from reellib.core.errors import ManifestError
from reellib.core.errors import TimelineInconsistencyError
from reellib.core.timeline import STATIC
from reellib.core.timeline import TRANSITION
from reellib.core.timeline import Timeline
from reellib.core.timeline import build_timeline

#============================================

MANIFEST_VERSION = 1
MANIFEST_NAME = 'manifest.json'

#============================================

@dataclass(frozen=True)
class PlaybackManifest:
	timeline: Timeline
	preview_clip: Optional[str]
	normalized: dict
	profile: dict
	artifact: Optional[dict]

	#============================
	@property
	def slide_count(self) -> int:
		return self.timeline.slide_count

#============================================

def segment_descriptor(segment, normalized=None) -> dict:
	normalized_path = None
	if normalized is not None:
		normalized_path = normalized.path_for(segment)
	if segment.kind == STATIC:
		return {
			'type': STATIC,
			'index': segment.slide.index,
			'source': segment.source,
			'normalized': normalized_path,
			'duration': segment.duration,
		}
	return {
		'type': TRANSITION,
		'from': segment.clip.from_index,
		'to': segment.clip.to_index,
		'source': segment.source,
		'normalized': normalized_path,
		'duration': segment.duration,
	}

#============================================

def manifest_data(timeline: Timeline, profile, preview_clip=None,
	normalized=None, artifact=None) -> dict:
	preview_normalized = None
	if normalized is not None:
		preview_normalized = normalized.preview_clip
	return {
		'manifest_version': MANIFEST_VERSION,
		'profile': profile.to_dict(),
		'slide_count': timeline.slide_count,
		'total_duration': timeline.total_duration,
		'preview': {
			'source': preview_clip,
			'normalized': preview_normalized,
		},
		'segments': [segment_descriptor(segment, normalized)
			for segment in timeline.segments],
		'artifact': artifact.to_dict() if artifact is not None else None,
	}

#============================================

def write_manifest(manifest_file: str, data: dict) -> str:
	"""
	Write the manifest through a temporary file and rename it into place.
	"""
	manifest_dir = os.path.dirname(os.path.abspath(manifest_file))
	if not os.path.isdir(manifest_dir):
		os.makedirs(manifest_dir)
	partial_file = manifest_file + ".partial"
	with open(partial_file, "w", encoding="utf-8") as handle:
		json.dump(data, handle, indent=2)
		handle.write("\n")
	os.replace(partial_file, manifest_file)
	return manifest_file

#============================================

def load_manifest(manifest_file: str) -> PlaybackManifest:
	try:
		with open(manifest_file, "r", encoding="utf-8") as handle:
			data = json.load(handle)
	except (OSError, ValueError) as exc:
		raise ManifestError(f"cannot read manifest {manifest_file}: {exc}") from exc
	if not isinstance(data, dict):
		raise ManifestError("manifest must be a JSON object")
	if data.get('manifest_version') != MANIFEST_VERSION:
		raise ManifestError(
			f"unsupported manifest_version {data.get('manifest_version')}")
	segments = data.get('segments')
	if not isinstance(segments, list) or len(segments) == 0:
		raise ManifestError("manifest.segments must be a non-empty list")
	slides = []
	transitions = {}
	normalized = {}
	for position, entry in enumerate(segments):
		if not isinstance(entry, dict):
			raise ManifestError(f"segment {position} must be an object")
		try:
			if entry['type'] == STATIC:
				slide = Slide(index=int(entry['index']), image_path=entry['source'],
					hold_seconds=float(entry['duration']))
				slides.append(slide)
				normalized[(STATIC, slide.index)] = entry.get('normalized')
			elif entry['type'] == TRANSITION:
				clip = TransitionClip(from_index=int(entry['from']),
					to_index=int(entry['to']), path=entry['source'],
					duration=float(entry['duration']))
				if clip.pair in transitions:
					raise ManifestError(f"transition {clip.pair} listed twice")
				transitions[clip.pair] = clip
				normalized[(TRANSITION, clip.from_index, clip.to_index)] = entry.get(
					'normalized')
			else:
				raise ManifestError(f"segment {position} has unknown type {entry['type']}")
		except (KeyError, TypeError, ValueError) as exc:
			raise ManifestError(f"segment {position} is malformed: {exc}") from exc
	try:
		timeline = build_timeline(slides, transitions)
	except TimelineInconsistencyError as exc:
		raise ManifestError(f"manifest segments are inconsistent: {exc}") from exc
	if timeline.describe() != _describe_entries(segments):
		raise ManifestError("manifest segments are not in timeline order")
	if data.get('slide_count') not in (None, timeline.slide_count):
		raise ManifestError("manifest slide_count does not match its segments")
	preview = data.get('preview') or {}
	if not isinstance(preview, dict):
		raise ManifestError("manifest.preview must be an object")
	preview_clip = preview.get('normalized') or preview.get('source')
	return PlaybackManifest(
		timeline=timeline,
		preview_clip=preview_clip,
		normalized=normalized,
		profile=data.get('profile', {}),
		artifact=data.get('artifact'),
	)

#============================================

def _describe_entries(segments: list) -> list:
	rows = []
	for entry in segments:
		if entry['type'] == STATIC:
			rows.append(f"Static({int(entry['index'])})")
		else:
			rows.append(f"Transition({int(entry['from'])},{int(entry['to'])})")
	return rows
