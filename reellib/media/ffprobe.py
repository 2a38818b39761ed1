#!/usr/bin/env python3

#python wrapper for ffprobe

import json
import subprocess

#===============================
def getMediaInfo(mediafile: str) -> dict:
	cmd = [
		"ffprobe", "-v", "error",
		"-show_entries", "format=duration:stream=codec_type,width,height,duration",
		"-of", "json", mediafile,
	]
	proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
	if proc.returncode != 0:
		detail = proc.stderr.decode("utf-8", errors="replace").strip()
		raise RuntimeError(f"ffprobe failed for {mediafile}: {detail}")
	return json.loads(proc.stdout.decode("utf-8"))

#===============================
def getDuration(mediafile: str) -> float:
	data = getMediaInfo(mediafile)
	duration = data.get('format', {}).get('duration')
	if duration is None:
		for stream in data.get('streams', []):
			if stream.get('codec_type') == 'video' and stream.get('duration'):
				duration = stream.get('duration')
				break
	if duration is None:
		raise RuntimeError(f"no duration reported for {mediafile}")
	duration = float(duration)
	if duration <= 0:
		raise RuntimeError(f"non-positive duration reported for {mediafile}")
	return duration

#===============================
def getVideoDimensions(mediafile: str):
	data = getMediaInfo(mediafile)
	videotrack = None
	for stream in data.get('streams', []):
		if stream.get('codec_type') == 'video':
			videotrack = stream
			break
	if videotrack is None:
		return None
	return (int(videotrack['width']), int(videotrack['height']))
