"""Clone groups seen from a directory, and groups of identical clone directories."""

import logging
import os
from collections.abc import Iterable
from typing import Any

import msgpack

from .diff import DirectoryDiffer, LocationDiff
from .listing import directory_size
from .mapping import CloneDirectory
from .report import PATH_ERRORS
from ..clones.index import CloneGroupIndex, GroupRef
from ..clones.path import PathKey, normalize_path
from ..tree.node import DirectoryTree
from ..utils.interrupt import CancellationToken

logger = logging.getLogger(__name__)


class PartitionedGroup:
    """One clone group split by a directory into the members inside and outside it.

    Attributes:
        group_ref: Identity of the group in the index
        file_size: Size of each member, None if unknown
        inside: Members inside the directory, sorted
        outside: All other members, sorted
    """

    def __init__(self, group_ref: GroupRef, file_size: int | None, inside: tuple[str, ...], outside: tuple[str, ...]):
        self.group_ref = group_ref
        self.file_size = file_size
        self.inside = inside
        self.outside = outside

    def __repr__(self) -> str:
        return f"PartitionedGroup({self.inside!r} => {self.outside!r})"

    @property
    def has_inside_duplicates(self) -> bool:
        return len(self.inside) > 1

    @property
    def inside_reclaimable_count(self) -> int:
        """Inside members that can go: all of them when a copy survives outside, else all but one."""
        if self.outside:
            return len(self.inside)
        return max(len(self.inside) - 1, 0)

    @property
    def inside_reclaimable_size(self) -> int | None:
        if self.file_size is None:
            return None
        return self.inside_reclaimable_count * self.file_size


def partition_groups(
        index: CloneGroupIndex,
        directory: str | os.PathLike,
        *,
        recursive: bool = True) -> list[PartitionedGroup]:
    """Split every group with a member in the directory, sorted by first inside member.

    Non-recursive partitions only count the direct children of the directory as
    inside; members in its subdirectories are outside.
    """
    boundary = PathKey(normalize_path(directory))
    partitions = []
    for group_ref, group in enumerate(index):
        inside = []
        outside = []
        for file in group:
            within = file.is_within(boundary) if recursive else file.parent_is(boundary)
            (inside if within else outside).append(file.path)
        if inside:
            partitions.append(PartitionedGroup(group_ref, group.file_size, tuple(inside), tuple(outside)))

    partitions.sort(key=lambda partition: partition.inside[0])
    logger.debug("Partitioned %d clone groups by %s", len(partitions), boundary.path)
    return partitions


class CloneDirectoryGroup:
    """Clone directories holding the same content: every file of the first has a copy
    in each of the others, and the others hold nothing else.

    Attributes:
        directories: Member clone directories, the first being the one the group was built from
        size: Size of the first directory, None if unknown
    """

    def __init__(self, directories: list[CloneDirectory], size: int | None = None):
        self.directories = directories
        self.size = size

    def __len__(self) -> int:
        return len(self.directories)

    @property
    def paths(self) -> tuple[str, ...]:
        return tuple(clone_dir.path for clone_dir in self.directories)

    def reference_directories(self) -> tuple[str, ...]:
        """Directories holding copies of the first directory's files, outside every member, sorted."""
        members = [PathKey(path) for path in self.paths]
        references = set()
        for clones in self.directories[0].files.values():
            for sibling in clones.siblings:
                key = PathKey(sibling)
                if not any(key.is_within(member) for member in members):
                    references.add(os.path.dirname(sibling))
        return tuple(sorted(references))

    @property
    def minimum_reclaimable_size(self) -> int | None:
        """Size freed by keeping a single member, ignoring copies outside the group."""
        if self.size is None:
            return None
        return (len(self.directories) - 1) * self.size


def _holds_copies(index: CloneGroupIndex, clone_dir: CloneDirectory, other: PathKey) -> bool:
    for path in clone_dir.files:
        group = index.group_of(path)
        if group is None or not any(member.is_within(other) for member in group):
            return False
    return True


def group_clone_directories(
        tree: DirectoryTree,
        index: CloneGroupIndex,
        clone_dirs: Iterable[CloneDirectory]) -> list[CloneDirectoryGroup]:
    """Group clone directories from one tree whose contents are copies of each other.

    Each directory joins the first group it qualifies for, so groups are disjoint.
    """
    clone_dirs = list(clone_dirs)
    selected: set[str] = set()
    groups = []
    for clone_dir in clone_dirs:
        if clone_dir.path in selected:
            continue
        copies = {sibling for clones in clone_dir.files.values() for sibling in clones.siblings}

        members = [clone_dir]
        for other in clone_dirs:
            if other is clone_dir or other.path in selected:
                continue
            if not _holds_copies(index, clone_dir, PathKey(other.path)):
                continue
            if all(leaf.path in copies for leaf in tree.leaves(tree.node(other.path))):
                members.append(other)

        selected.update(member.path for member in members)
        groups.append(CloneDirectoryGroup(members, directory_size(tree, tree.node(clone_dir.path))))

    logger.debug("Grouped %d clone directories into %d groups", len(clone_dirs), len(groups))
    return groups


class ReportGroup:
    """One group of a grouped report.

    Attributes:
        members: Inside files, or identical clone directories
        references: Outside copies, or directories holding copies of the members
        size: Size of each member, None if unknown
        reclaimable_count: Members that can be removed
        reclaimable_size: Size of those members, None if unknown
        diffs: Membership differences against each reference directory
    """

    def __init__(
            self,
            members: tuple[str, ...],
            references: tuple[str, ...] = (),
            size: int | None = None,
            reclaimable_count: int = 0,
            reclaimable_size: int | None = 0,
            diffs: list[LocationDiff] | None = None):
        self.members = members
        self.references = references
        self.size = size
        self.reclaimable_count = reclaimable_count
        self.reclaimable_size = reclaimable_size
        self.diffs = diffs

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReportGroup):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"ReportGroup({self.members!r} => {self.references!r})"

    @property
    def total_size(self) -> int | None:
        if self.size is None:
            return None
        return len(self.members) * self.size

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            'members': list(self.members),
            'references': list(self.references),
            'size': self.size,
            'reclaimable_count': self.reclaimable_count,
            'reclaimable_size': self.reclaimable_size,
        }
        if self.diffs is not None:
            result['diffs'] = [
                {'location': diff.location, 'missing': list(diff.missing), 'extra': list(diff.extra)}
                for diff in self.diffs
            ]
        return result

    def to_msgpack(self) -> bytes:
        """Serialize as [members, references, size, reclaimable_count, reclaimable_size, diffs]."""
        diffs = None
        if self.diffs is not None:
            diffs = [[diff.location, list(diff.missing), list(diff.extra)] for diff in self.diffs]
        result = msgpack.dumps([
            list(self.members), list(self.references), self.size,
            self.reclaimable_count, self.reclaimable_size, diffs], unicode_errors=PATH_ERRORS)
        assert isinstance(result, bytes)
        return result

    @classmethod
    def from_msgpack(cls, data: bytes) -> "ReportGroup":
        decoded = msgpack.loads(data, unicode_errors=PATH_ERRORS)
        assert isinstance(decoded, list)
        members, references, size, reclaimable_count, reclaimable_size, diffs_data = decoded

        diffs = None
        if diffs_data is not None:
            diffs = [LocationDiff(location, tuple(missing), tuple(extra)) for location, missing, extra in diffs_data]
        return cls(tuple(members), tuple(references), size, reclaimable_count, reclaimable_size, diffs)


class GroupStats:
    """Totals over the members of a grouped report.

    Attributes:
        group_count: Number of groups
        count: Number of members
        total_size: Sum of the member sizes, None if any is unknown
        reclaimable_count: Members that can be removed
        reclaimable_size: Size of those members, None if any is unknown
    """

    def __init__(self) -> None:
        self.group_count: int = 0
        self.count: int = 0
        self.total_size: int | None = 0
        self.reclaimable_count: int = 0
        self.reclaimable_size: int | None = 0

    def aggregate(self, group: ReportGroup) -> None:
        self.group_count += 1
        self.count += len(group.members)
        self.reclaimable_count += group.reclaimable_count

        total_size = group.total_size
        if total_size is None:
            self.total_size = None
        elif self.total_size is not None:
            self.total_size += total_size

        if group.reclaimable_size is None:
            self.reclaimable_size = None
        elif self.reclaimable_size is not None:
            self.reclaimable_size += group.reclaimable_size

    def to_dict(self) -> dict[str, Any]:
        return {
            'group_count': self.group_count,
            'count': self.count,
            'total_size': self.total_size,
            'reclaimable_count': self.reclaimable_count,
            'reclaimable_size': self.reclaimable_size,
        }


class GroupReport:
    """Ordered groups of one grouped query over one or more directories.

    Attributes:
        query: 'files' or 'dirs'
        grouped: False when only the members are to be listed, one per line
        groups: The groups, in the order their directories were given
    """

    def __init__(self, query: str, grouped: bool = True, groups: list[ReportGroup] | None = None):
        self.query = query
        self.grouped = grouped
        self.groups: list[ReportGroup] = groups or []

    def __iter__(self):
        return iter(self.groups)

    def __len__(self) -> int:
        return len(self.groups)

    def extend(self, other: "GroupReport") -> None:
        """Append the groups of another report, skipping groups whose members are all listed already."""
        listed = {member for group in self.groups for member in group.members}
        for group in other.groups:
            if not all(member in listed for member in group.members):
                self.groups.append(group)
                listed.update(group.members)

    def members(self) -> list[str]:
        """Every member once, sorted."""
        return sorted({member for group in self.groups for member in group.members})

    @property
    def stats(self) -> GroupStats:
        stats = GroupStats()
        for group in self.groups:
            stats.aggregate(group)
        return stats

    def to_dict(self, include_stats: bool = False) -> dict[str, Any]:
        result: dict[str, Any] = {
            'query': self.query,
            'groups': [group.to_dict() for group in self.groups],
        }
        if include_stats:
            result['stats'] = self.stats.to_dict()
        return result

    def to_msgpack(self) -> bytes:
        """Serialize as [query, [group bytes...]]."""
        result = msgpack.dumps(
            [self.query, [group.to_msgpack() for group in self.groups]], unicode_errors=PATH_ERRORS)
        assert isinstance(result, bytes)
        return result


class GroupReportGenerator:
    """Generate grouped file and directory reports.

    File groups come from the index alone. Directory groups need the classified
    tree the clone directories were found in.
    """

    def __init__(
            self,
            index: CloneGroupIndex,
            token: CancellationToken | None = None,
            differ: DirectoryDiffer | None = None):
        self._index = index
        self._token = token
        self._differ = differ if differ is not None else DirectoryDiffer(index)

    def _check(self) -> None:
        if self._token is not None:
            self._token.check()

    def file_groups(
            self,
            directory: str | os.PathLike,
            *,
            recursive: bool = True,
            inside: bool = False,
            inside_only: bool = False,
            outside: bool = False,
            grouped: bool = True) -> GroupReport:
        """Report the clone groups with members in the directory.

        Args:
            inside: Keep only groups with at least two members inside the directory
            inside_only: Like inside, and leave the outside members out
            outside: Keep only groups with at least one member outside the directory
            grouped: Whether the report is rendered as groups or as a flat list of members
        """
        report = GroupReport('files', grouped)
        for partition in partition_groups(self._index, directory, recursive=recursive):
            self._check()
            if (inside or inside_only) and not partition.has_inside_duplicates:
                continue
            if outside and not partition.outside:
                continue

            if inside_only:
                references: tuple[str, ...] = ()
                reclaimable_count = max(len(partition.inside) - 1, 0)
                reclaimable_size = None if partition.file_size is None else reclaimable_count * partition.file_size
            else:
                references = partition.outside
                reclaimable_count = partition.inside_reclaimable_count
                reclaimable_size = partition.inside_reclaimable_size
            report.groups.append(ReportGroup(
                partition.inside, references, partition.file_size, reclaimable_count, reclaimable_size))
        return report

    def directory_groups(
            self,
            tree: DirectoryTree,
            clone_dirs: Iterable[CloneDirectory],
            *,
            show_references: bool = False,
            show_diff: bool = False) -> GroupReport:
        """Report groups of identical clone directories, with reference directories and diffs on request."""
        report = GroupReport('dirs')
        for clone_dir_group in group_clone_directories(tree, self._index, clone_dirs):
            self._check()
            references: tuple[str, ...] = ()
            diffs = None
            if show_references or show_diff:
                references = clone_dir_group.reference_directories()
            if show_diff:
                first = clone_dir_group.directories[0]
                diffs = [self._differ.diff(first, reference) for reference in references]
            report.groups.append(ReportGroup(
                clone_dir_group.paths, references, clone_dir_group.size,
                len(clone_dir_group) - 1, clone_dir_group.minimum_reclaimable_size, diffs))
        return report
