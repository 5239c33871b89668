"""Duplicate-group index, path keys and the duplicate report reader."""
