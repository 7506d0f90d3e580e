"""Utility modules for CDJ Playlist."""
