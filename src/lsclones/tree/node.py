"""In-memory directory tree mirroring a scanned subtree."""

import os
from collections.abc import Iterator
from enum import StrEnum


class NodeKind(StrEnum):
    """Kind of filesystem entry held by a tree node."""
    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"  # Symlinks, sockets, devices: opaque leaves classified like files

    @property
    def is_leaf(self) -> bool:
        return self is not NodeKind.DIRECTORY


class Classification(StrEnum):
    """Clone status of a node relative to the directory it is evaluated against.

    UNIQUE: removing the node would lose content not available outside of it.
    CLONE: the node's entire content is reconstructable from outside of it.
    MIXED: a directory holding both unique and clone content relative to itself.
    """
    UNIQUE = "unique"
    CLONE = "clone"
    MIXED = "mixed"

    def merge(self, other: "Classification") -> "Classification":
        """Aggregate two labels evaluated against the same directory.

        Uniform labels propagate; any disagreement, or a MIXED operand, gives MIXED.
        """
        if self is other:
            return self
        return Classification.MIXED


class TreeNode:
    """One file or directory inside a DirectoryTree.

    The parent is recorded by path only and resolved through the owning tree, so
    nodes never hold references upward.

    Attributes:
        path: Normalized absolute path
        kind: Entry kind
        size: Size in bytes reported by the traversal, if known
        parent_path: Path of the parent node, None for the tree root
        children: Child nodes in traversal order (directories only)
        classification: Result of the last classification pass, None until computed
    """

    __slots__ = ('path', 'kind', 'size', 'parent_path', 'children', 'classification')

    def __init__(self, path: str, kind: NodeKind, parent_path: str | None = None, size: int | None = None):
        self.path: str = path
        self.kind: NodeKind = kind
        self.size: int | None = size
        self.parent_path: str | None = parent_path
        self.children: list[TreeNode] = []
        self.classification: Classification | None = None

    @property
    def name(self) -> str:
        return os.path.basename(self.path) or self.path

    @property
    def is_directory(self) -> bool:
        return self.kind is NodeKind.DIRECTORY

    @property
    def is_leaf(self) -> bool:
        return self.kind.is_leaf

    def __repr__(self) -> str:
        return f"TreeNode({self.path!r}, {self.kind.value}, {self.classification})"


class DirectoryTree:
    """Tree of nodes rooted at a scan root, with lookup by path.

    The tree owns its nodes top-down; `_nodes` is the arena used to resolve paths,
    including parent back-references.
    """

    def __init__(self, root: TreeNode):
        if not root.is_directory:
            raise ValueError(f"tree root must be a directory: {root.path}")
        self.root: TreeNode = root
        self._nodes: dict[str, TreeNode] = {root.path: root}

    def attach(self, node: TreeNode) -> None:
        """Link a node under its (already attached) parent."""
        parent = self._nodes[node.parent_path]  # type: ignore[index]
        parent.children.append(node)
        self._nodes[node.path] = node

    def __contains__(self, path: object) -> bool:
        return path in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, path: str) -> TreeNode:
        """Look up a node by normalized absolute path.

        Raises:
            KeyError: If the path is not part of the tree
        """
        return self._nodes[path]

    def get(self, path: str) -> TreeNode | None:
        return self._nodes.get(path)

    def parent_of(self, node: TreeNode) -> TreeNode | None:
        if node.parent_path is None:
            return None
        return self._nodes[node.parent_path]

    def ancestors(self, node: TreeNode) -> Iterator[TreeNode]:
        """Ancestors of the node, nearest first."""
        parent = self.parent_of(node)
        while parent is not None:
            yield parent
            parent = self.parent_of(parent)

    def depth(self, node: TreeNode) -> int:
        """Depth of the node below the tree root (the root has depth 0)."""
        return sum(1 for _ in self.ancestors(node))

    def pre_order(self, start: TreeNode | None = None) -> Iterator[TreeNode]:
        """Nodes of the subtree at start (default: root), parents before children."""
        stack = [start or self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def post_order(self, start: TreeNode | None = None) -> Iterator[TreeNode]:
        """Nodes of the subtree at start (default: root), children before parents."""
        stack: list[tuple[TreeNode, bool]] = [(start or self.root, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded or not node.children:
                yield node
                continue
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.children))

    def leaves(self, start: TreeNode | None = None, recursive: bool = True) -> Iterator[TreeNode]:
        """File-like nodes in the subtree at start, or only its direct children."""
        start = start or self.root
        nodes = self.pre_order(start) if recursive else iter(start.children)
        return (node for node in nodes if node.is_leaf)

    def directories(self, start: TreeNode | None = None, recursive: bool = True) -> Iterator[TreeNode]:
        """Directory nodes below start (excluding start itself)."""
        start = start or self.root
        if recursive:
            nodes = self.pre_order(start)
            next(nodes)
        else:
            nodes = iter(start.children)
        return (node for node in nodes if node.is_directory)

    def file_count(self, start: TreeNode | None = None) -> int:
        return sum(1 for _ in self.leaves(start))
