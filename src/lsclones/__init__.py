from .errors import (
    LsClonesError, DataIntegrityError, StructuralGapError, PathResolutionError, ReportFormatError, TraversalError,
    Interrupted, ConfigurationError)
from .clones.path import PathKey, normalize_path
from .clones.index import CloneGroup, CloneGroupIndex, GroupRef
from .clones.report import DuplicateReport, load_clone_index
from .tree.node import Classification, DirectoryTree, NodeKind, TreeNode
from .tree.builder import TreeBuilder, build_tree
from .tree.classifier import NodeClassifier, classify_tree
from .utils.interrupt import CancellationToken
from .utils.walker import ErrorBehavior, TraversalEntry, WalkPolicy, walk_with_policy
from .views.listing import ClassifiedPath, DirectoryListing, FileListing
from .views.mapping import CloneDirectory, FileClones, clone_directories
from .views.diff import DirectoryDiffer, LocationDiff
from .views.report import Report, ReportEntry, ReportGenerator, ReportOptions, ReportStats
from .views.groups import (
    CloneDirectoryGroup, GroupReport, GroupReportGenerator, PartitionedGroup, ReportGroup, group_clone_directories,
    partition_groups)
from .settings import Settings
from .session import ScanSession
