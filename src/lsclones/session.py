"""One run: scan directories, classify them and report on them."""

import logging
import os
from collections.abc import Iterable

from .clones.index import CloneGroupIndex
from .clones.path import is_within, normalize_path
from .tree.builder import build_tree
from .tree.classifier import classify_tree
from .tree.node import Classification, DirectoryTree
from .utils.interrupt import CancellationToken
from .utils.walker import ErrorBehavior, WalkPolicy, walk_with_policy
from .views.diff import DirectoryDiffer, FileLister
from .views.groups import GroupReport, GroupReportGenerator
from .views.mapping import clone_directories
from .views.report import Report, ReportGenerator, ReportOptions

logger = logging.getLogger(__name__)


class ScanSession:
    """Orchestrates tree building, classification and reporting against one clone index.

    Trees are built on demand and reused: a path inside an already scanned directory
    is reported from the existing tree, since every label a report shows is computed
    relative to the reported directory rather than to the scan root.
    """

    def __init__(
            self,
            index: CloneGroupIndex,
            *,
            error_behavior: ErrorBehavior = ErrorBehavior.STOP,
            token: CancellationToken | None = None,
            lister: FileLister | None = None):
        self._index = index
        self._error_behavior = error_behavior
        self._token = token
        self._lister = lister
        self._trees: dict[str, DirectoryTree] = {}

    @property
    def index(self) -> CloneGroupIndex:
        return self._index

    def _check(self) -> None:
        if self._token is not None:
            self._token.check()

    def tree_for(self, directory: str | os.PathLike) -> DirectoryTree:
        """Return a classified tree containing the directory, scanning it if needed."""
        path = normalize_path(directory)
        for root, tree in self._trees.items():
            if is_within(path, root):
                return tree

        self._check()
        self._warn_if_not_covered(path)
        logger.info("Scanning %s", path)
        policy = WalkPolicy(error_behavior=self._error_behavior, yield_root=True)
        tree = build_tree(path, walk_with_policy(path, policy), self._token)
        counts = classify_tree(tree, self._index, self._token)
        logger.info(
            "Scanned %s: %d nodes (%d clone, %d mixed, %d unique)",
            path, len(tree), counts[Classification.CLONE], counts[Classification.MIXED], counts[Classification.UNIQUE])

        # a new root may enclose earlier ones, which are then superseded
        for root in [root for root in self._trees if is_within(root, path)]:
            del self._trees[root]
        self._trees[path] = tree
        return tree

    def _warn_if_not_covered(self, path: str) -> None:
        if not self._index.covers(path):
            logger.warning("%s is outside the paths searched for duplicates, clones below it may be missed", path)

    def _generator(self, tree: DirectoryTree, options: ReportOptions) -> ReportGenerator:
        return ReportGenerator(tree, self._index, options, self._token, self._lister)

    def files_report(self, paths: Iterable[str | os.PathLike], options: ReportOptions) -> Report:
        """Report files below each directory, or single files, merged and sorted by path.

        A single file is classified relative to its parent directory.
        """
        report = Report('files', options)
        for path in paths:
            path = normalize_path(path)
            if os.path.isdir(path):
                tree = self.tree_for(path)
                report.extend(self._generator(tree, options).files(path))
            else:
                parent = os.path.dirname(path)
                tree = self.tree_for(parent)
                if path not in tree:
                    raise FileNotFoundError(f"no such file: {path}")
                single_level = ReportOptions(
                    recursive=False,
                    unique_only=options.unique_only,
                    show_map=options.show_map,
                    show_sources=options.show_sources)
                siblings = self._generator(tree, single_level).files(parent)
                report.extend(Report('files', options, [entry for entry in siblings if entry.path == path]))
        return report

    def directories_report(self, paths: Iterable[str | os.PathLike], options: ReportOptions) -> Report:
        """Report directories below each given directory, merged and sorted by path.

        Raises:
            NotADirectoryError: If a path is not a directory
        """
        report = Report('dirs', options)
        for path in paths:
            path = normalize_path(path)
            if not os.path.isdir(path):
                raise NotADirectoryError(f"not a directory: {path}")
            tree = self.tree_for(path)
            report.extend(self._generator(tree, options).directories(path))
        return report

    def file_groups_report(self, paths: Iterable[str | os.PathLike], options: ReportOptions) -> GroupReport:
        """Report the clone groups with members in each directory, split into inside and outside.

        Only the index is consulted. A path that is not a directory holds no group and
        is skipped.
        """
        generator = GroupReportGenerator(self._index, self._token)
        report = GroupReport('files', options.show_groups)
        for path in paths:
            path = normalize_path(path)
            if not os.path.isdir(path):
                logger.warning("Skipping %s: clone groups are only listed for directories", path)
                continue
            self._warn_if_not_covered(path)
            report.extend(generator.file_groups(
                path,
                recursive=options.recursive,
                inside=options.inside,
                inside_only=options.inside_only,
                outside=options.outside,
                grouped=options.show_groups))
        return report

    def directory_groups_report(self, paths: Iterable[str | os.PathLike], options: ReportOptions) -> GroupReport:
        """Report groups of identical clone directories below each given directory.

        Raises:
            NotADirectoryError: If a path is not a directory
        """
        generator = GroupReportGenerator(self._index, self._token, DirectoryDiffer(self._index, self._lister))
        report = GroupReport('dirs')
        for path in paths:
            path = normalize_path(path)
            if not os.path.isdir(path):
                raise NotADirectoryError(f"not a directory: {path}")
            tree = self.tree_for(path)
            clone_dirs = clone_directories(tree, self._index, path, recursive=options.recursive)
            report.extend(generator.directory_groups(
                tree, clone_dirs, show_references=options.show_map, show_diff=options.show_diff))
        return report
