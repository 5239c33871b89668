"""Compare a clone directory with one of the locations holding copies of its files."""

import logging
import os
from collections.abc import Callable, Iterable
from typing import NamedTuple

from .mapping import CloneDirectory
from ..clones.index import CloneGroupIndex
from ..clones.path import PathKey, is_within, normalize_path
from ..utils.walker import list_files

logger = logging.getLogger(__name__)

FileLister = Callable[[str], Iterable[str]]


class LocationDiff(NamedTuple):
    """Membership difference between a clone directory and a reference location.

    Attributes:
        location: The reference location
        missing: Files of the clone directory without a copy inside the location,
            relative to the clone directory
        extra: Files inside the location whose content is absent from the clone
            directory, relative to the location
    """
    location: str
    missing: tuple[str, ...]
    extra: tuple[str, ...]

    @property
    def identical(self) -> bool:
        return not self.missing and not self.extra


class DirectoryDiffer:
    """Compute LocationDiff for clone directories.

    Files of the clone directory are matched by content through the clone index,
    so renamed copies still count as present. The location's own contents come
    from the file lister, which defaults to a filesystem walk.
    """

    def __init__(self, index: CloneGroupIndex, lister: FileLister | None = None):
        self._index = index
        self._lister: FileLister = lister if lister is not None else list_files

    def diff(self, clone_dir: CloneDirectory, location: str) -> LocationDiff:
        location_key = PathKey(normalize_path(location))

        missing = []
        represented: set[str] = set()
        for path in clone_dir.files:
            group = self._index.group_of(path)
            members = group.files if group is not None else ()
            represented.update(member.path for member in members)
            if not any(member.is_within(location_key) for member in members if member.path != path):
                missing.append(os.path.relpath(path, clone_dir.path))

        extra = []
        for path in self._lister(location_key.path):
            path = normalize_path(path)
            if path in represented or is_within(path, clone_dir.path):
                continue
            extra.append(os.path.relpath(path, location_key.path))

        logger.debug(
            "Compared %s with %s: %d missing, %d extra",
            clone_dir.path, location_key.path, len(missing), len(extra))
        return LocationDiff(location_key.path, tuple(sorted(missing)), tuple(sorted(extra)))

    def diff_all(self, clone_dir: CloneDirectory) -> list[LocationDiff]:
        """Compare the clone directory with each of its reference locations."""
        return [self.diff(clone_dir, location) for location in clone_dir.locations()]
