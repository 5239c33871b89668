"""Error taxonomy for clone classification runs."""


class LsClonesError(Exception):
    """Base class for all errors raised by lsclones."""


class DataIntegrityError(LsClonesError, ValueError):
    """Duplicate groups violate the disjointness or minimum-size invariants.

    Attributes:
        group: Position of the offending group in the input, if known
        path: Offending path, if the violation concerns a single path
    """

    def __init__(self, message: str, *, group: int | None = None, path: str | None = None):
        super().__init__(message)
        self.group = group
        self.path = path


class StructuralGapError(LsClonesError, ValueError):
    """A traversal entry cannot be attached to the directory tree."""

    def __init__(self, message: str, *, path: str):
        super().__init__(message)
        self.path = path


class PathResolutionError(LsClonesError, ValueError):
    """A path cannot be normalized into an absolute path."""

    def __init__(self, message: str, *, path: str):
        super().__init__(message)
        self.path = path


class ReportFormatError(LsClonesError, ValueError):
    """The duplicate report file is not in the expected format."""


class TraversalError(LsClonesError, OSError):
    """A directory could not be listed while walking a scan root."""

    def __init__(self, message: str, *, path: str):
        super().__init__(message)
        self.path = path


class Interrupted(LsClonesError):
    """The run was cancelled by a termination signal."""


class ConfigurationError(LsClonesError, ValueError):
    """The settings file cannot be read or holds a value of the wrong type."""
