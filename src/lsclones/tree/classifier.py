"""Bottom-up classification of tree nodes as unique, clone or mixed."""

import logging
from collections import Counter

from .node import Classification, DirectoryTree, TreeNode
from ..clones.index import CloneGroupIndex
from ..clones.path import PathKey, path_depth
from ..utils.interrupt import CancellationToken

logger = logging.getLogger(__name__)


class DirectorySummary:
    """Stateful reducer over the files below a directory.

    For every grouped file it keeps the depth of the group's common root: the file has
    a duplicate outside an ancestor directory d exactly when d lies deeper than that
    common root. Keeping only the minimum and maximum depths is enough to tell whether
    the files below d are uniformly clone, uniformly unique, or neither, relative to d
    or to any directory between d and the common roots.

    Attributes:
        file_count: Files (leaf nodes) below the directory
        ungrouped_count: Files that belong to no clone group
        min_root_depth: Smallest common-root depth among grouped files, None if none
        max_root_depth: Largest common-root depth among grouped files, None if none
    """

    __slots__ = ('file_count', 'ungrouped_count', 'min_root_depth', 'max_root_depth')

    def __init__(self) -> None:
        self.file_count: int = 0
        self.ungrouped_count: int = 0
        self.min_root_depth: int | None = None
        self.max_root_depth: int | None = None

    def aggregate_file(self, root_depth: int | None) -> None:
        """Account for one file whose group common root has the given depth (None: no group)."""
        self.file_count += 1
        if root_depth is None:
            self.ungrouped_count += 1
            return
        if self.min_root_depth is None or root_depth < self.min_root_depth:
            self.min_root_depth = root_depth
        if self.max_root_depth is None or root_depth > self.max_root_depth:
            self.max_root_depth = root_depth

    def aggregate_from_summary(self, other: "DirectorySummary") -> None:
        self.file_count += other.file_count
        self.ungrouped_count += other.ungrouped_count
        if other.min_root_depth is not None:
            if self.min_root_depth is None or other.min_root_depth < self.min_root_depth:
                self.min_root_depth = other.min_root_depth
        if other.max_root_depth is not None:
            if self.max_root_depth is None or other.max_root_depth > self.max_root_depth:
                self.max_root_depth = other.max_root_depth

    def classification_at(self, depth: int) -> Classification:
        """Classify the summarized files relative to an enclosing directory at depth."""
        if self.file_count == 0:
            return Classification.UNIQUE

        has_clone = self.min_root_depth is not None and self.min_root_depth < depth
        has_unique = self.ungrouped_count > 0 or (self.max_root_depth is not None and self.max_root_depth >= depth)

        result = None
        if has_clone:
            result = Classification.CLONE
        if has_unique:
            result = Classification.UNIQUE if result is None else result.merge(Classification.UNIQUE)
        assert result is not None
        return result


class NodeClassifier:
    """Label every node of a tree relative to the right directory.

    - A file is labelled relative to the scan root (the tree root): CLONE when at
      least one member of its group lies outside the root, UNIQUE otherwise.
    - A directory is labelled relative to itself: each descendant file is evaluated
      against the directory and the labels are merged. A directory without files is
      UNIQUE.

    The pass is pure: classifying an unchanged tree against an unchanged index always
    produces the same labels.
    """

    def __init__(self, index: CloneGroupIndex):
        self._index = index

    def classify_file(self, path: PathKey | str, root: PathKey | str) -> Classification:
        """Classify a file relative to an arbitrary root directory."""
        if self._index.group_of(path) is None:
            return Classification.UNIQUE
        if self._index.siblings_outside(path, root):
            return Classification.CLONE
        return Classification.UNIQUE

    def summarize_file(self, node: TreeNode) -> DirectorySummary:
        summary = DirectorySummary()
        summary.aggregate_file(self._index.common_root_depth(node.path))
        return summary

    def classify(self, tree: DirectoryTree, token: CancellationToken | None = None) -> Counter[Classification]:
        """Run the post-order pass over the whole tree.

        Returns:
            Number of nodes per label
        """
        counts: Counter[Classification] = Counter()
        root_key = PathKey(tree.root.path)
        # children are summarized before their parent and dropped once merged
        summaries: dict[str, DirectorySummary] = {}

        for node in tree.post_order():
            if node.is_leaf:
                summaries[node.path] = self.summarize_file(node)
                node.classification = self.classify_file(node.path, root_key)
            else:
                if token is not None:
                    token.check()
                summary = DirectorySummary()
                for child in node.children:
                    summary.aggregate_from_summary(summaries.pop(child.path))
                summaries[node.path] = summary
                node.classification = summary.classification_at(path_depth(node.path))
            counts[node.classification] += 1

        logger.debug("Classified %s: %s", tree.root.path, dict(counts))
        return counts


def classify_tree(
        tree: DirectoryTree,
        index: CloneGroupIndex,
        token: CancellationToken | None = None) -> Counter[Classification]:
    """Classify every node of the tree against the clone index."""
    return NodeClassifier(index).classify(tree, token)
