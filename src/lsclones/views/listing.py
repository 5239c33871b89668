"""Flat listings of classified files and directories."""

from typing import Iterator, NamedTuple

from ..clones.index import CloneGroupIndex
from ..clones.path import PathKey, normalize_path
from ..tree.classifier import NodeClassifier
from ..tree.node import Classification, DirectoryTree, NodeKind, TreeNode


class ClassifiedPath(NamedTuple):
    """A listed node with its classification relative to the listed directory."""
    path: str
    kind: NodeKind
    classification: Classification
    size: int | None = None


def resolve_directory(tree: DirectoryTree, directory: TreeNode | str | None) -> TreeNode:
    """Find the directory node a view is generated for (default: the tree root).

    Raises:
        KeyError: If the directory is not part of the tree
        NotADirectoryError: If the path designates a file
    """
    if directory is None:
        return tree.root
    if isinstance(directory, TreeNode):
        node = directory
    else:
        path = normalize_path(directory)
        node = tree.get(path)
        if node is None:
            raise KeyError(f"path {path} is not part of the tree rooted at {tree.root.path}")
    if not node.is_directory:
        raise NotADirectoryError(f"not a directory: {node.path}")
    return node


def _require_classified(tree: DirectoryTree) -> None:
    if tree.root.classification is None:
        raise ValueError(f"tree {tree.root.path} has not been classified")


class FileListing:
    """Files below a directory with their classification relative to that directory.

    Iterating is lazy and can be repeated; every iteration walks the tree again.
    """

    def __init__(
            self,
            tree: DirectoryTree,
            index: CloneGroupIndex,
            directory: TreeNode | str | None = None,
            *,
            recursive: bool = True,
            only: Classification | None = None):
        _require_classified(tree)
        self._tree = tree
        self._classifier = NodeClassifier(index)
        self.directory = resolve_directory(tree, directory)
        self._recursive = recursive
        self._only = only

    def __iter__(self) -> Iterator[ClassifiedPath]:
        directory_key = PathKey(self.directory.path)
        for node in self._tree.leaves(self.directory, self._recursive):
            classification = self._classifier.classify_file(node.path, directory_key)
            if self._only is None or classification is self._only:
                yield ClassifiedPath(node.path, node.kind, classification, node.size)


class DirectoryListing:
    """Directories at or below a directory with their own classification.

    A directory is always classified relative to itself, so the labels come straight
    from the classification pass.

    Non-recursive listings cover the immediate subdirectories. Recursive listings
    walk the directory and its descendants in pre-order; with topmost=True (the
    default) a directory matching the filter is reported without descending into it.
    """

    def __init__(
            self,
            tree: DirectoryTree,
            directory: TreeNode | str | None = None,
            *,
            recursive: bool = True,
            only: Classification | None = None,
            topmost: bool = True):
        _require_classified(tree)
        self._tree = tree
        self.directory = resolve_directory(tree, directory)
        self._recursive = recursive
        self._only = only
        self._topmost = topmost

    def _matches(self, node: TreeNode) -> bool:
        return self._only is None or node.classification is self._only

    def __iter__(self) -> Iterator[ClassifiedPath]:
        if not self._recursive:
            for node in self.directory.children:
                if node.is_directory and self._matches(node):
                    yield self._entry(node)
            return

        stack = [self.directory]
        while stack:
            node = stack.pop()
            if self._matches(node):
                yield self._entry(node)
                if self._topmost and self._only is not None:
                    continue
            stack.extend(child for child in reversed(node.children) if child.is_directory)

    def _entry(self, node: TreeNode) -> ClassifiedPath:
        assert node.classification is not None
        return ClassifiedPath(node.path, node.kind, node.classification, directory_size(self._tree, node))


def directory_size(tree: DirectoryTree, node: TreeNode) -> int | None:
    """Sum of the sizes of the files below the node, None if any size is unknown."""
    total = 0
    for leaf in tree.leaves(node):
        if leaf.size is None:
            return None
        total += leaf.size
    return total
