"""Command line interface for CDJ Playlist."""
