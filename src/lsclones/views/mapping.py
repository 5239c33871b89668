"""Where the surviving copies of clone files and directories live."""

import os
from collections.abc import Iterable

from .listing import DirectoryListing, resolve_directory
from ..clones.index import CloneGroupIndex
from ..clones.path import PathKey
from ..tree.node import Classification, DirectoryTree, TreeNode


def group_by_location(paths: Iterable[str]) -> dict[str, tuple[str, ...]]:
    """Group paths by parent directory; locations and their paths sorted lexicographically."""
    locations: dict[str, set[str]] = {}
    for path in paths:
        locations.setdefault(os.path.dirname(path), set()).add(path)
    return {location: tuple(sorted(locations[location])) for location in sorted(locations)}


class FileClones:
    """Outside copies of one file, relative to a boundary directory."""

    def __init__(self, path: str, siblings: tuple[str, ...]):
        self.path = path
        self.siblings = siblings

    @classmethod
    def resolve(cls, index: CloneGroupIndex, path: str, boundary: PathKey | str) -> "FileClones":
        siblings = index.siblings_outside(path, boundary)
        return cls(path, tuple(sorted(sibling.path for sibling in siblings)))

    def sources(self) -> dict[str, tuple[str, ...]]:
        """Outside copies grouped by the directory holding them."""
        return group_by_location(self.siblings)

    def locations(self) -> tuple[str, ...]:
        return tuple(self.sources())


class CloneDirectory:
    """A clone directory and the outside copies of every file it contains.

    Attributes:
        path: Directory path
        deep_path: Deepest directory reached by following single-subdirectory chains
            from path, None if path has no such chain
        files: Outside copies for each file below the directory, keyed by file path
    """

    def __init__(self, path: str, files: dict[str, FileClones], deep_path: str | None = None):
        self.path = path
        self.files = files
        self.deep_path = deep_path

    @classmethod
    def resolve(cls, tree: DirectoryTree, index: CloneGroupIndex, node: TreeNode) -> "CloneDirectory":
        boundary = PathKey(node.path)
        files = {
            leaf.path: FileClones.resolve(index, leaf.path, boundary)
            for leaf in sorted(tree.leaves(node), key=lambda leaf: leaf.path)
        }
        return cls(node.path, files, find_deep_path(node))

    def sources(self) -> dict[str, tuple[str, ...]]:
        """Union of the outside copies of every contained file, grouped by directory."""
        return group_by_location(sibling for clones in self.files.values() for sibling in clones.siblings)

    def locations(self) -> tuple[str, ...]:
        """Directories outside this one holding copies of its files, sorted."""
        return tuple(self.sources())


def find_deep_path(node: TreeNode) -> str | None:
    """Follow a chain of directories that each contain a single non-empty directory."""
    current = node
    while len(current.children) == 1:
        child = current.children[0]
        if not child.is_directory or not child.children:
            break
        current = child
    if current is node:
        return None
    return current.path


def clone_directories(
        tree: DirectoryTree,
        index: CloneGroupIndex,
        directory: TreeNode | str | None = None,
        *,
        recursive: bool = True) -> list[CloneDirectory]:
    """Resolve the outside copies for every topmost clone directory at or below directory."""
    directory = resolve_directory(tree, directory)
    listing = DirectoryListing(tree, directory, recursive=recursive, only=Classification.CLONE)
    return [CloneDirectory.resolve(tree, index, tree.node(entry.path)) for entry in listing]
