#!/usr/bin/env python3

import argparse
import os
import sys
import yaml
from reellib.core import utils
from reellib.core.errors import ReelError
from reellib.core.loader import ConfigLoader
from reellib.core.project import ReelProject

#============================================

def parse_args(argv=None):
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="Slideshow to video composer")
	parser.add_argument('-y', '--yaml', dest='yamlfile',
		help='run file describing inputs, profile and output')
	parser.add_argument('-i', '--input', dest='input_dir',
		help='directory holding slide images and transition clips')
	parser.add_argument('-s', '--slides', dest='slide_count', type=int,
		help='expected number of slides')
	parser.add_argument('-o', '--output', dest='output_file',
		help='override output video file')
	parser.add_argument('-r', '--resolution', dest='resolution',
		help='target resolution as WIDTHxHEIGHT')
	parser.add_argument('-f', '--fps', dest='fps',
		help='target frame rate, e.g. 24 or 30000/1001')
	parser.add_argument('-t', '--hold', dest='hold', type=float,
		help='seconds each still slide is shown')
	parser.add_argument('-q', '--crf', dest='crf', type=int,
		help='output quality (crf)')
	parser.add_argument('-j', '--jobs', dest='concurrency', type=int,
		help='parallel normalization workers')
	parser.add_argument('-T', '--timeout', dest='timeout', type=float,
		help='maximum seconds for each encoder run')
	parser.add_argument('-c', '--cache-dir', dest='cache_dir',
		help='directory for normalized clips')
	parser.add_argument('-k', '--keep-temp', dest='keep_temp',
		help='keep temporary render files', action='store_true', default=None)
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='resolve and plan only, do not encode')
	parser.add_argument('-p', '--dump-plan', dest='dump_plan', action='store_true',
		help='print the planned timeline and exit')
	parser.add_argument('--quiet', dest='quiet', action='store_true',
		help='suppress progress output')
	args = parser.parse_args(argv)
	return args

#============================================

def _absolute(path):
	if path is None:
		return None
	return os.path.abspath(path)

#============================================

def build_overrides(args) -> dict:
	resolution = None
	if args.resolution is not None:
		parts = args.resolution.lower().split('x')
		if len(parts) != 2:
			raise SystemExit("resolution must look like 1920x1080")
		resolution = [int(parts[0]), int(parts[1])]
	return {
		'input.directory': _absolute(args.input_dir),
		'input.slide_count': args.slide_count,
		'profile.resolution': resolution,
		'profile.fps': args.fps,
		'profile.hold': args.hold,
		'output.file': _absolute(args.output_file),
		'output.crf': args.crf,
		'run.concurrency': args.concurrency,
		'run.timeout': args.timeout,
		'run.cache_dir': _absolute(args.cache_dir),
		'run.keep_temp': args.keep_temp,
	}

#============================================

def print_command_event(event: dict) -> None:
	if event.get('event') != 'end':
		return
	prefix = utils.command_prefix(event.get('index'), event.get('total'))
	print(f"{prefix} exit {event.get('returncode')} in {event.get('seconds', 0.0):.1f}s")

#============================================

def main(argv=None) -> int:
	args = parse_args(argv)
	utils.set_quiet_mode(args.quiet)
	if not args.quiet:
		utils.set_command_reporter(print_command_event)
	try:
		config = ConfigLoader(args.yamlfile, overrides=build_overrides(args)).load()
		project = ReelProject(config, dry_run=args.dry_run)
		if args.dump_plan:
			project.plan()
			print(yaml.safe_dump(project.plan_data(), sort_keys=False))
			return 0
		artifact = project.run()
	except ReelError as exc:
		print(f"error: {exc}", file=sys.stderr)
		return 1
	finally:
		utils.clear_command_reporter()
	if artifact is not None and not utils.is_quiet_mode():
		print(f"mpv {artifact.path}")
	return 0


if __name__ == '__main__':
	sys.exit(main())
