import logging
import os
import stat
from enum import StrEnum
from pathlib import Path
from typing import Iterator, NamedTuple

from ..errors import TraversalError
from ..tree.node import NodeKind

logger = logging.getLogger(__name__)


class ErrorBehavior(StrEnum):
    """What to do when an entry cannot be listed or stat'ed during traversal."""
    IGNORE = "ignore"
    DISPLAY = "display"
    STOP = "stop"


class TraversalEntry(NamedTuple):
    """One entry reported by the traversal.

    Attributes:
        path: Absolute, normalized path of the entry
        kind: Entry kind; symlinks are never followed and are reported as OTHER
        size: Size in bytes from lstat(), None when unknown
    """
    path: str
    kind: NodeKind
    size: int | None = None


class WalkPolicy(NamedTuple):
    """Policy controlling filesystem traversal behavior.

    Attributes:
        excluded_paths: Set of paths relative to the walked root to skip (with their subtrees)
        error_behavior: Handling of unreadable directories and entries
        recursive: Whether to descend into subdirectories
        yield_root: Whether to yield the root directory itself before walking its children
    """
    excluded_paths: frozenset[Path] = frozenset()
    error_behavior: ErrorBehavior = ErrorBehavior.STOP
    recursive: bool = True
    yield_root: bool = False


def kind_from_mode(mode: int) -> NodeKind:
    if stat.S_ISDIR(mode):
        return NodeKind.DIRECTORY
    if stat.S_ISREG(mode):
        return NodeKind.FILE
    return NodeKind.OTHER


def _handle_error(policy: WalkPolicy, message: str, path: Path) -> None:
    if policy.error_behavior is ErrorBehavior.STOP:
        raise TraversalError(message, path=str(path))
    if policy.error_behavior is ErrorBehavior.DISPLAY:
        logger.warning("%s", message)
    else:
        logger.debug("%s", message)


def walk(path: Path, policy: WalkPolicy, relative: Path | None = None) -> Iterator[TraversalEntry]:
    """Recursively traverse a directory, parents before children.

    Children are visited in name order so that repeated runs over an unchanged tree
    yield identical sequences.
    """
    try:
        children = sorted(path.iterdir(), key=lambda child: child.name)
    except OSError as e:
        _handle_error(policy, f"failed reading `{path}`: {e}", path)
        return

    for child in children:
        child_relative = Path(child.name) if relative is None else relative / child.name
        if child_relative in policy.excluded_paths:
            continue

        try:
            st = child.stat(follow_symlinks=False)
        except OSError as e:
            _handle_error(policy, f"failed to get file type of `{child}`: {e}", child)
            continue

        kind = kind_from_mode(st.st_mode)
        yield TraversalEntry(str(child), kind, st.st_size if kind is not NodeKind.DIRECTORY else None)

        if kind is NodeKind.DIRECTORY and policy.recursive:
            yield from walk(child, policy, child_relative)


def walk_with_policy(path: str | os.PathLike, policy: WalkPolicy) -> Iterator[TraversalEntry]:
    """Walk the filesystem tree below path using the provided policy.

    The root is normalized without following symlinks; every yielded path is a
    descendant of the normalized root.

    Example:
        policy = WalkPolicy(error_behavior=ErrorBehavior.DISPLAY, yield_root=True)
        for entry in walk_with_policy('/home/user/photos', policy):
            builder.add(entry)
    """
    root = Path(os.path.normpath(os.path.abspath(path)))

    if policy.yield_root:
        try:
            st = root.stat(follow_symlinks=False)
        except OSError as e:
            raise TraversalError(f"failed reading `{root}`: {e}", path=str(root)) from e
        yield TraversalEntry(str(root), kind_from_mode(st.st_mode))

    yield from walk(root, policy)


def list_files(location: str | os.PathLike, error_behavior: ErrorBehavior = ErrorBehavior.DISPLAY) -> list[str]:
    """All non-directory entries below location, recursively."""
    policy = WalkPolicy(error_behavior=error_behavior)
    return [entry.path for entry in walk_with_policy(location, policy) if entry.kind.is_leaf]
