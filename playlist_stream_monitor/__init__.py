"""Playlist Stream Monitor: daily stream reports for artist.tools playlists."""

__version__ = "0.1.0"
