"""Structured reports handed to the renderers."""

import logging
from dataclasses import dataclass
from typing import Any

import msgpack

from .diff import DirectoryDiffer, FileLister, LocationDiff
from .listing import DirectoryListing, FileListing, resolve_directory
from .mapping import CloneDirectory, FileClones
from ..clones.index import CloneGroupIndex
from ..clones.path import PathKey
from ..tree.node import Classification, DirectoryTree, NodeKind, TreeNode
from ..utils.interrupt import CancellationToken

logger = logging.getLogger(__name__)

# undecodable file names come from os.fsdecode() and must survive encoding
PATH_ERRORS = 'surrogateescape'


@dataclass
class ReportOptions:
    """What a report shows."""
    recursive: bool = False
    """Descend into subdirectories"""

    unique_only: bool = False
    """Report unique entries instead of clone entries"""

    show_map: bool = False
    """Attach the locations holding copies of each clone entry"""

    show_sources: bool = False
    """Expand the locations into the individual copies"""

    show_diff: bool = False
    """Compare each clone directory with every location (directory reports only)"""

    show_groups: bool = False
    """Report clone groups (files) or groups of identical clone directories (dirs)"""

    inside: bool = False
    """Only files with a duplicate inside the reported directory (file reports only)"""

    inside_only: bool = False
    """Like inside, leaving the outside copies out (file groups only)"""

    outside: bool = False
    """Only files with a copy outside the reported directory (file reports only)"""

    def validate(self, directories: bool) -> None:
        """Reject option combinations that cannot be honored.

        Raises:
            ValueError: If mapping or grouping is requested for unique entries, sources
                or diff without mapping, diff for a file report, or inside/outside
                filters for a directory report
        """
        if self.unique_only and (self.show_map or self.show_groups):
            raise ValueError("clone locations cannot be shown for unique entries")
        if self.unique_only and (self.inside or self.inside_only or self.outside):
            raise ValueError("inside and outside filters do not apply to unique entries")
        if self.show_sources and not self.show_map:
            raise ValueError("showing sources requires the clone location map")
        if self.show_sources and self.show_groups:
            raise ValueError("sources are not shown for clone groups")
        if self.show_diff and not self.show_map:
            raise ValueError("showing differences requires the clone location map")
        if self.show_diff and not directories:
            raise ValueError("differences are only available for directories")
        if directories and (self.inside or self.inside_only or self.outside):
            raise ValueError("inside and outside filters are only available for files")
        if self.inside_only and not self.show_groups:
            raise ValueError("showing only inside copies requires clone groups")
        if self.show_groups and self.show_map and not directories:
            raise ValueError("clone groups already show the outside copies of files")

    @property
    def grouped_files(self) -> bool:
        """Whether a file report is built from the partitioned clone groups."""
        return self.show_groups or self.inside or self.inside_only

    @property
    def wanted(self) -> Classification:
        return Classification.UNIQUE if self.unique_only else Classification.CLONE


class ReportEntry:
    """One reported file or directory with its optional mapping and diff payload.

    Attributes:
        path: Absolute path of the entry
        kind: Node kind
        classification: Label relative to the reported directory
        size: Total size in bytes, None if unknown
        locations: Directories outside the reported directory holding copies, sorted
        sources: Copies in each location, only when sources were requested
        deep_path: Deepest single-directory chain below a clone directory, if any
        diffs: Membership differences against each location
    """

    def __init__(
            self,
            path: str,
            kind: NodeKind,
            classification: Classification,
            size: int | None = None,
            locations: tuple[str, ...] = (),
            sources: dict[str, tuple[str, ...]] | None = None,
            deep_path: str | None = None,
            diffs: list[LocationDiff] | None = None):
        self.path = path
        self.kind = kind
        self.classification = classification
        self.size = size
        self.locations = locations
        self.sources = sources
        self.deep_path = deep_path
        self.diffs = diffs

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReportEntry):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"ReportEntry({self.path!r}, {self.kind!s}, {self.classification!s})"

    def to_dict(self) -> dict[str, Any]:
        """Plain representation suitable for JSON output; optional parts are omitted when absent."""
        result: dict[str, Any] = {
            'path': self.path,
            'kind': str(self.kind),
            'classification': str(self.classification),
            'size': self.size,
        }
        if self.locations:
            result['locations'] = list(self.locations)
        if self.sources is not None:
            result['sources'] = {location: list(paths) for location, paths in self.sources.items()}
        if self.deep_path is not None:
            result['deep_path'] = self.deep_path
        if self.diffs is not None:
            result['diffs'] = [
                {'location': diff.location, 'missing': list(diff.missing), 'extra': list(diff.extra)}
                for diff in self.diffs
            ]
        return result

    def to_msgpack(self) -> bytes:
        """Serialize to msgpack.

        Returns:
            Msgpack-encoded bytes containing [path, kind, classification, size, locations,
            sources, deep_path, diffs] where sources is a list of [location, paths] or nil
            and diffs is a list of [location, missing, extra] or nil
        """
        sources = None
        if self.sources is not None:
            sources = [[location, list(paths)] for location, paths in self.sources.items()]
        diffs = None
        if self.diffs is not None:
            diffs = [[diff.location, list(diff.missing), list(diff.extra)] for diff in self.diffs]

        result = msgpack.dumps([
            self.path, str(self.kind), str(self.classification), self.size,
            list(self.locations), sources, self.deep_path, diffs], unicode_errors=PATH_ERRORS)
        assert isinstance(result, bytes)
        return result

    @classmethod
    def from_msgpack(cls, data: bytes) -> "ReportEntry":
        decoded = msgpack.loads(data, unicode_errors=PATH_ERRORS)
        assert isinstance(decoded, list)
        path, kind, classification, size, locations, sources_data, deep_path, diffs_data = decoded

        sources = None
        if sources_data is not None:
            sources = {location: tuple(paths) for location, paths in sources_data}
        diffs = None
        if diffs_data is not None:
            diffs = [LocationDiff(location, tuple(missing), tuple(extra)) for location, missing, extra in diffs_data]

        return cls(
            path, NodeKind(kind), Classification(classification), size,
            tuple(locations), sources, deep_path, diffs)


class ReportStats:
    """Totals over the entries of a report.

    Attributes:
        count: Number of entries
        total_size: Sum of the entry sizes, None if any size is unknown
        reclaimable_size: Sum of the sizes of clone entries, None if any is unknown
    """

    def __init__(self) -> None:
        self.count: int = 0
        self.total_size: int | None = 0
        self.reclaimable_size: int | None = 0

    def aggregate(self, entry: ReportEntry) -> None:
        self.count += 1
        if entry.size is None:
            self.total_size = None
        elif self.total_size is not None:
            self.total_size += entry.size

        if entry.classification is Classification.CLONE:
            if entry.size is None:
                self.reclaimable_size = None
            elif self.reclaimable_size is not None:
                self.reclaimable_size += entry.size

    def to_dict(self) -> dict[str, Any]:
        return {'count': self.count, 'total_size': self.total_size, 'reclaimable_size': self.reclaimable_size}


class Report:
    """Ordered entries of one query over one or more directories."""

    def __init__(self, query: str, options: ReportOptions, entries: list[ReportEntry] | None = None):
        self.query = query
        self.options = options
        self.entries: list[ReportEntry] = entries or []

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def extend(self, other: "Report") -> None:
        """Merge the entries of another report, keeping entries sorted by path.

        A path already listed keeps its first entry, so overlapping directories are
        reported once.
        """
        listed = {entry.path for entry in self.entries}
        merged = self.entries + [entry for entry in other.entries if entry.path not in listed]
        self.entries = sorted(merged, key=lambda entry: entry.path)

    @property
    def stats(self) -> ReportStats:
        stats = ReportStats()
        for entry in self.entries:
            stats.aggregate(entry)
        return stats

    def to_dict(self, include_stats: bool = False) -> dict[str, Any]:
        result: dict[str, Any] = {
            'query': self.query,
            'entries': [entry.to_dict() for entry in self.entries],
        }
        if include_stats:
            result['stats'] = self.stats.to_dict()
        return result

    def to_msgpack(self) -> bytes:
        """Serialize as [query, [entry bytes...]]."""
        result = msgpack.dumps(
            [self.query, [entry.to_msgpack() for entry in self.entries]], unicode_errors=PATH_ERRORS)
        assert isinstance(result, bytes)
        return result


class ReportGenerator:
    """Generate file and directory reports from a classified tree.

    Every report entry is one atomic step: the cancellation token is checked before
    each, and an interrupted generation raises instead of returning partial output.
    """

    def __init__(
            self,
            tree: DirectoryTree,
            index: CloneGroupIndex,
            options: ReportOptions,
            token: CancellationToken | None = None,
            lister: FileLister | None = None):
        self._tree = tree
        self._index = index
        self._options = options
        self._token = token
        self._differ = DirectoryDiffer(index, lister)

    def _check(self) -> None:
        if self._token is not None:
            self._token.check()

    def files(self, directory: TreeNode | str | None = None) -> Report:
        self._options.validate(directories=False)
        directory = resolve_directory(self._tree, directory)
        boundary = PathKey(directory.path)

        report = Report('files', self._options)
        listing = FileListing(
            self._tree, self._index, directory, recursive=self._options.recursive, only=self._options.wanted)
        for item in listing:
            self._check()
            entry = ReportEntry(item.path, item.kind, item.classification, item.size)
            if self._options.show_map:
                clones = FileClones.resolve(self._index, item.path, boundary)
                sources = clones.sources()
                entry.locations = tuple(sources)
                if self._options.show_sources:
                    entry.sources = sources
            report.entries.append(entry)

        report.entries.sort(key=lambda entry: entry.path)
        logger.debug("Generated file report for %s with %d entries", directory.path, len(report))
        return report

    def directories(self, directory: TreeNode | str | None = None) -> Report:
        self._options.validate(directories=True)
        directory = resolve_directory(self._tree, directory)

        report = Report('dirs', self._options)
        listing = DirectoryListing(
            self._tree, directory, recursive=self._options.recursive, only=self._options.wanted)
        for item in listing:
            self._check()
            entry = ReportEntry(item.path, item.kind, item.classification, item.size)
            if self._options.show_map:
                clone_dir = CloneDirectory.resolve(self._tree, self._index, self._tree.node(item.path))
                sources = clone_dir.sources()
                entry.locations = tuple(sources)
                entry.deep_path = clone_dir.deep_path
                if self._options.show_sources:
                    entry.sources = sources
                if self._options.show_diff:
                    entry.diffs = self._differ.diff_all(clone_dir)
            report.entries.append(entry)

        report.entries.sort(key=lambda entry: entry.path)
        logger.debug("Generated directory report for %s with %d entries", directory.path, len(report))
        return report
