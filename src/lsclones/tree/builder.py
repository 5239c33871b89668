"""Build a DirectoryTree from the entries reported by a traversal."""

import logging
import os
from collections.abc import Iterable

from .node import DirectoryTree, NodeKind, TreeNode
from ..clones.path import is_within, normalize_path
from ..errors import PathResolutionError, StructuralGapError
from ..utils.interrupt import CancellationToken
from ..utils.walker import TraversalEntry

logger = logging.getLogger(__name__)


class TreeBuilder:
    """Attach traversal entries one by one under a root directory.

    Entries must arrive parent first (pre-order), as the walker yields them. A
    StructuralGapError aborts the build; no partial tree is ever handed out.
    """

    def __init__(self, root: str | os.PathLike):
        root_path = normalize_path(root)
        self._root_path = root_path
        self._tree = DirectoryTree(TreeNode(root_path, NodeKind.DIRECTORY))

    @property
    def root_path(self) -> str:
        return self._root_path

    def add(self, entry: TraversalEntry) -> TreeNode | None:
        """Attach one entry to the tree.

        Returns:
            The new node, or None if the entry was skipped

        Raises:
            StructuralGapError: If the entry lies outside the root, repeats a path, or its
                parent directory has not been attached
        """
        try:
            path = normalize_path(entry.path)
        except PathResolutionError as e:
            logger.warning("Skipping entry: %s", e)
            return None

        if path == self._root_path:
            if entry.kind is not NodeKind.DIRECTORY:
                raise StructuralGapError(f"scan root is not a directory: {path}", path=path)
            self._tree.root.size = entry.size
            return None

        if not is_within(path, self._root_path):
            raise StructuralGapError(f"path {path} is not under the scan root {self._root_path}", path=path)

        if path in self._tree:
            raise StructuralGapError(f"path {path} was reported twice", path=path)

        parent_path = os.path.dirname(path)
        parent = self._tree.get(parent_path)
        if parent is None:
            raise StructuralGapError(f"parent directory of {path} was never reported", path=path)
        if not parent.is_directory:
            raise StructuralGapError(f"parent of {path} is not a directory: {parent_path}", path=path)

        node = TreeNode(path, entry.kind, parent_path, entry.size)
        self._tree.attach(node)
        return node

    def build(self, entries: Iterable[TraversalEntry], token: CancellationToken | None = None) -> DirectoryTree:
        """Attach every entry and return the finished tree."""
        count = 0
        for entry in entries:
            if token is not None:
                token.check()
            if self.add(entry) is not None:
                count += 1
        logger.debug("Built tree for %s with %d entries", self._root_path, count)
        return self._tree


def build_tree(
        root: str | os.PathLike,
        entries: Iterable[TraversalEntry],
        token: CancellationToken | None = None) -> DirectoryTree:
    """Build the tree for a scan root from its traversal entries."""
    return TreeBuilder(root).build(entries, token)
