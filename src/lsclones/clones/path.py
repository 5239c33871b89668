"""Hashed absolute path keys for fast subtree membership tests."""

import os

import mmh3

from ..errors import PathResolutionError


def normalize_path(path: str | os.PathLike, base_dir: str | os.PathLike | None = None) -> str:
    """Turn a path into a normalized absolute path string.

    Relative paths are resolved against base_dir (or the current working directory).
    Symlinks are not followed: os.path.normpath() only removes . and .. components.

    Raises:
        PathResolutionError: If the path is empty or cannot be represented
    """
    try:
        path_str = os.fspath(path)
    except TypeError as e:
        raise PathResolutionError(f"not a path: {path!r}", path=repr(path)) from e

    if not path_str:
        raise PathResolutionError("empty path", path=path_str)
    if '\0' in path_str:
        raise PathResolutionError(f"path contains a NUL byte: {path_str!r}", path=path_str)

    if not os.path.isabs(path_str):
        base = os.fspath(base_dir) if base_dir is not None else os.getcwd()
        path_str = os.path.join(base, path_str)

    return os.path.normpath(path_str)


def hash_path(path: str) -> int:
    """Compute the 128-bit Murmur3 hash of a normalized path string."""
    return mmh3.hash128(path.encode('utf-8', 'surrogateescape'), signed=False)


def path_depth(path: str) -> int:
    """Number of components below the filesystem root ('/' has depth 0)."""
    return len([part for part in path.split(os.sep) if part])


def is_within(path: str, directory: str) -> bool:
    """Whether path is directory itself or lies anywhere below it."""
    if path == directory:
        return True
    prefix = directory if directory.endswith(os.sep) else directory + os.sep
    return path.startswith(prefix)


class PathKey:
    """A normalized absolute path with precomputed hashes of itself and its ancestors.

    The ancestor hashes let the index answer "is this path inside that directory"
    with a set lookup; a string prefix comparison confirms the hit so that a hash
    collision can never produce a wrong answer.
    """

    __slots__ = ('path', 'hash', 'parent', '_ancestor_hashes')

    def __init__(self, path: str):
        self.path: str = path
        self.hash: int = hash_path(path)
        parent = os.path.dirname(path)
        self.parent: str | None = parent if parent != path else None

        ancestor_hashes = set()
        current = path
        while True:
            ancestor = os.path.dirname(current)
            if ancestor == current:
                break
            ancestor_hashes.add(hash_path(ancestor))
            current = ancestor
        self._ancestor_hashes: frozenset[int] = frozenset(ancestor_hashes)

    @classmethod
    def from_path(cls, path: str | os.PathLike, base_dir: str | os.PathLike | None = None) -> "PathKey":
        return cls(normalize_path(path, base_dir))

    def is_within(self, directory: "PathKey | str") -> bool:
        """Whether this path is the directory itself or lies in its subtree."""
        if not isinstance(directory, PathKey):
            directory = PathKey(directory)
        if directory.hash == self.hash:
            return directory.path == self.path
        if directory.hash not in self._ancestor_hashes:
            return False
        return is_within(self.path, directory.path)

    def parent_is(self, directory: "PathKey | str") -> bool:
        """Whether this path is a direct child of the directory."""
        directory_path = directory.path if isinstance(directory, PathKey) else directory
        return self.parent == directory_path

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathKey):
            return NotImplemented
        return self.path == other.path

    def __lt__(self, other: "PathKey") -> bool:
        return self.path < other.path

    def __hash__(self) -> int:
        return self.hash

    def __str__(self) -> str:
        return self.path

    def __repr__(self) -> str:
        return f"PathKey({self.path!r})"

    def __fspath__(self) -> str:
        return self.path
