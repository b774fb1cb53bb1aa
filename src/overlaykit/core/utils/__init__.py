"""Shared utilities (I/O, merging, paths)."""
