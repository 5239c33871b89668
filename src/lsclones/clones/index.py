"""Clone group index: lookup from path to duplicate group and back."""

import logging
import os
from collections.abc import Iterable, Iterator

from .path import PathKey, path_depth
from ..errors import DataIntegrityError

logger = logging.getLogger(__name__)


GroupRef = int
"""Identity of a group inside a CloneGroupIndex (its position in the index)."""


class CloneGroup:
    """A set of two or more paths that are mutual content duplicates.

    Attributes:
        files: Member paths, sorted lexicographically
        file_size: Size in bytes of each member, if reported
    """

    def __init__(self, files: Iterable[PathKey | str], file_size: int | None = None):
        keys = {file if isinstance(file, PathKey) else PathKey.from_path(file) for file in files}
        self.files: tuple[PathKey, ...] = tuple(sorted(keys))
        self.file_size: int | None = file_size

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self) -> Iterator[PathKey]:
        return iter(self.files)

    def __contains__(self, path: object) -> bool:
        if isinstance(path, str):
            path = PathKey(path)
        return path in self.files

    def __repr__(self) -> str:
        return f"CloneGroup({[file.path for file in self.files]!r}, file_size={self.file_size!r})"

    @property
    def total_size(self) -> int | None:
        if self.file_size is None:
            return None
        return len(self.files) * self.file_size

    @property
    def reclaimable_count(self) -> int:
        """Number of members that could be removed while keeping one copy."""
        return max(len(self.files) - 1, 0)

    @property
    def reclaimable_size(self) -> int | None:
        if self.file_size is None:
            return None
        return self.reclaimable_count * self.file_size

    def common_root(self) -> str:
        """Deepest directory containing every member of the group."""
        return os.path.commonpath([file.path for file in self.files])


class CloneGroupIndex:
    """Immutable index over a collection of disjoint clone groups.

    Maps every member path to its group and each group to its members. Clone-ness is
    never absolute: siblings_outside() evaluates a path's duplicates against an
    arbitrary directory boundary.

    Raises:
        DataIntegrityError: On construction, if a group has fewer than two distinct
            paths or a path belongs to two different groups
    """

    def __init__(self, groups: Iterable[CloneGroup], scanned_paths: Iterable[PathKey] | None = None):
        self._groups: list[CloneGroup] = []
        self._scanned_paths: tuple[PathKey, ...] | None = None if scanned_paths is None else tuple(scanned_paths)
        self._path_groups: dict[str, GroupRef] = {}
        self._common_root_depths: list[int] = []

        for position, group in enumerate(groups):
            if len(group) < 2:
                raise DataIntegrityError(
                    f"clone group #{position} has fewer than two distinct paths: "
                    f"{[file.path for file in group]}",
                    group=position)

            group_ref = len(self._groups)
            for file in group:
                previous = self._path_groups.get(file.path)
                if previous is not None:
                    raise DataIntegrityError(
                        f"path {file.path} belongs to clone groups #{previous} and #{position}",
                        group=position, path=file.path)
                self._path_groups[file.path] = group_ref

            self._groups.append(group)
            self._common_root_depths.append(path_depth(group.common_root()))

        logger.debug("Indexed %d clone groups with %d files", len(self._groups), len(self._path_groups))

    def covers(self, path: PathKey | str) -> bool:
        """Whether the duplicate finder scanned the path, i.e. the index can know all copies below it.

        Always true when the report did not list its scanned paths.
        """
        if self._scanned_paths is None:
            return True
        if not isinstance(path, PathKey):
            path = PathKey(path)
        return any(path.is_within(scanned) for scanned in self._scanned_paths)

    @property
    def group_count(self) -> int:
        return len(self._groups)

    @property
    def file_count(self) -> int:
        return len(self._path_groups)

    def __iter__(self) -> Iterator[CloneGroup]:
        return iter(self._groups)

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, path: object) -> bool:
        return _path_str(path) in self._path_groups

    def group_ref(self, path: PathKey | str) -> GroupRef | None:
        return self._path_groups.get(_path_str(path))

    def group(self, group_ref: GroupRef) -> CloneGroup:
        return self._groups[group_ref]

    def group_of(self, path: PathKey | str) -> CloneGroup | None:
        """Return the group the path belongs to, or None."""
        group_ref = self._path_groups.get(_path_str(path))
        if group_ref is None:
            return None
        return self._groups[group_ref]

    def siblings(self, path: PathKey | str) -> tuple[PathKey, ...]:
        """All other members of the path's group."""
        path_str = _path_str(path)
        group = self.group_of(path_str)
        if group is None:
            return ()
        return tuple(file for file in group if file.path != path_str)

    def siblings_outside(self, path: PathKey | str, subtree_root: PathKey | str) -> tuple[PathKey, ...]:
        """Members of the path's group that do not lie within subtree_root.

        A member lies within the subtree when it is subtree_root itself or is prefixed by
        subtree_root and a separator.
        """
        path_str = _path_str(path)
        group = self.group_of(path_str)
        if group is None:
            return ()
        if not isinstance(subtree_root, PathKey):
            subtree_root = PathKey(subtree_root)
        return tuple(
            file for file in group
            if file.path != path_str and not file.is_within(subtree_root))

    def common_root(self, path: PathKey | str) -> str | None:
        """Deepest directory containing every member of the path's group."""
        group = self.group_of(path)
        if group is None:
            return None
        return group.common_root()

    def common_root_depth(self, path: PathKey | str) -> int | None:
        """Depth of common_root(path), precomputed at construction."""
        group_ref = self._path_groups.get(_path_str(path))
        if group_ref is None:
            return None
        return self._common_root_depths[group_ref]


def _path_str(path: object) -> str:
    if isinstance(path, PathKey):
        return path.path
    if isinstance(path, str):
        return path
    return os.fspath(path)  # type: ignore[arg-type]
