"""Filesystem traversal and signal handling."""
