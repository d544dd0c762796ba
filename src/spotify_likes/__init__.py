"""Command-line client for Spotify artist search and liked-songs export."""

__version__ = "0.1.0"
