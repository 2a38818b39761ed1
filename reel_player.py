#!/usr/bin/env python3

"""
Textual TUI that replays a composed slideshow from its manifest.
"""

# Standard Library
import argparse
import os
import sys

# PIP3 modules
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import RichLog, Static
from rich.text import Text

# local repo modules
from reellib.core.errors import ReelError
from reellib.core.manifest import load_manifest
from reellib.core.playback import PREVIEW
from reellib.core.playback import TRANSITION_PLAYING
from reellib.core.playback import PlaybackStateMachine

#============================================

NORD_COLORS = {
	'foreground': "#D8DEE9",
	'dim': "#4C566A",
	'header': "#88C0D0",
	'numbers': "#B48EAD",
	'paths': "#A3BE8C",
	'strings': "#EBCB8B",
	'error': "#BF616A",
}

#============================================

def parse_args():
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="slideshow manifest player")
	parser.add_argument('-m', '--manifest', dest='manifest_file', required=True,
		help='manifest.json written by reel_cli.py')
	args = parser.parse_args()
	return args

#============================================

def describe_state(machine: PlaybackStateMachine) -> str:
	state = machine.state
	total = machine.slide_count
	if state.mode == PREVIEW:
		return f"preview (slide 1/{total} next)"
	if state.mode == TRANSITION_PLAYING:
		return (f"transition {state.from_index + 1} -> {state.to_index + 1}"
			f" of {total}")
	return f"slide {state.index + 1}/{total}"

#============================================

class ReelPlayerApp(App):
	BINDINGS = [
		("right", "advance", "Next"),
		("space", "advance", "Next"),
		("left", "retreat", "Back"),
		("home", "jump_first", "First"),
		("end", "jump_last", "Last"),
		("q", "quit", "Quit"),
	]

	CSS = """
	#status {
		height: 3;
		border: solid gray;
	}

	#media {
		height: 3;
		color: #A3BE8C;
	}

	#log {
		height: 1fr;
		border: solid gray;
	}
	"""

	def __init__(self, machine: PlaybackStateMachine, title: str = ""):
		super().__init__()
		self.machine = machine
		self.title_text = title
		self.status_widget = None
		self.media_widget = None
		self.log_widget = None
		self.media_timer = None
		self.machine.add_listener(self._on_state_change)

	#============================
	def compose(self) -> ComposeResult:
		yield Static(f"REEL PLAYER {self.title_text}", id="header")
		with Vertical():
			yield Static("", id="status")
			yield Static("", id="media")
			yield RichLog(id="log", wrap=True, highlight=False)

	#============================
	def on_mount(self) -> None:
		self.status_widget = self.query_one("#status", Static)
		self.media_widget = self.query_one("#media", Static)
		self.log_widget = self.query_one(RichLog)
		self._refresh()

	#============================
	def action_advance(self) -> None:
		self.machine.advance()

	#============================
	def action_retreat(self) -> None:
		self.machine.retreat()

	#============================
	def action_jump_first(self) -> None:
		self.machine.jump_to(0)

	#============================
	def action_jump_last(self) -> None:
		self.machine.jump_to(self.machine.slide_count - 1)

	#============================
	def _on_state_change(self, old_state, new_state) -> None:
		if self.media_timer is not None:
			self.media_timer.stop()
			self.media_timer = None
		if new_state.mode == TRANSITION_PLAYING:
			media = self.machine.current_media()
			duration = media.get('duration') or 0.0
			generation = new_state.generation
			self.media_timer = self.set_timer(duration,
				lambda: self.machine.media_ended(generation))
		if self.log_widget is not None:
			self.log_widget.write(
				Text(f"{old_state.mode} -> {describe_state(self.machine)}",
					style=NORD_COLORS['foreground'])
			)
		self._refresh()

	#============================
	def _refresh(self) -> None:
		if self.status_widget is None:
			return
		status = Text()
		status.append("State: ", style=NORD_COLORS['dim'])
		status.append(describe_state(self.machine), style=NORD_COLORS['header'])
		status.append("\n")
		status.append("Transitioning: ", style=NORD_COLORS['dim'])
		status.append("yes" if self.machine.is_transitioning else "no",
			style=NORD_COLORS['numbers'])
		self.status_widget.update(status)
		media = self.machine.current_media()
		media_text = Text()
		media_text.append(f"{media['kind']}: ", style=NORD_COLORS['dim'])
		media_text.append(str(media.get('path') or "N/A"), style=NORD_COLORS['paths'])
		if media.get('loop'):
			media_text.append(" (loop)", style=NORD_COLORS['strings'])
		self.media_widget.update(media_text)

#============================================

def main():
	args = parse_args()
	try:
		manifest = load_manifest(args.manifest_file)
	except ReelError as exc:
		print(f"error: {exc}", file=sys.stderr)
		sys.exit(1)
	machine = PlaybackStateMachine.from_manifest(manifest)
	app = ReelPlayerApp(machine, title=os.path.basename(args.manifest_file))
	app.run()

#============================================

if __name__ == '__main__':
	main()
