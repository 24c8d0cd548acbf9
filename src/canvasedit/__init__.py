"""canvasedit - streaming edits and transcripts for Obsidian canvases."""

__version__ = "0.1.0"
