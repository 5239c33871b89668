"""Reader for duplicate-group reports written by `fclones group --format json`."""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .index import CloneGroup, CloneGroupIndex
from .path import PathKey
from ..errors import PathResolutionError, ReportFormatError

logger = logging.getLogger(__name__)


class DuplicateReport:
    """Parsed content of a duplicate report file.

    Expected layout:
        {
          "header": {"base_dir": "/home/user", "paths": ["Documents", ...], ...},
          "groups": [{"file_len": 1024, "files": ["/home/user/a", "/home/user/b"]}, ...]
        }

    Relative paths in the report are resolved against header.base_dir.
    """

    def __init__(self, path: Path, content: dict[str, Any]):
        self.path = path
        self._content = content

    @classmethod
    def open(cls, path: str | os.PathLike) -> "DuplicateReport":
        path = Path(path)
        logger.info("Loading clones list file: %s", path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                content = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ReportFormatError(f"failed parsing clones file {path}: {e}") from e

        if not isinstance(content, dict):
            raise ReportFormatError(f"clones file {path} does not contain a JSON object")
        return cls(path, content)

    def _missing_item(self, section: str) -> ReportFormatError:
        return ReportFormatError(f"could not find {section} section in clones file: {self.path}")

    @property
    def header(self) -> dict[str, Any]:
        header = self._content.get('header')
        if not isinstance(header, dict):
            raise self._missing_item('header')
        return header

    @property
    def base_dir(self) -> str:
        base_dir = self.header.get('base_dir')
        if not isinstance(base_dir, str):
            raise self._missing_item('header/base_dir')
        return base_dir

    def scanned_paths(self) -> list[PathKey] | None:
        """Paths given to the duplicate finder, or None if the header does not list them."""
        paths = self.header.get('paths')
        if not isinstance(paths, list):
            return None

        base_dir = self.base_dir
        scanned = []
        for path in paths:
            if not isinstance(path, str):
                raise ReportFormatError(f"bad value type in header/paths: {path!r}")
            try:
                scanned.append(PathKey.from_path(path, base_dir))
            except PathResolutionError as e:
                logger.warning("Skipping scanned path: %s", e)
        return scanned

    def clone_groups(self, prune: bool = False) -> list[CloneGroup]:
        """Build clone groups from the report.

        Args:
            prune: Drop members which are no longer regular files, and groups left with
                fewer than two members

        Returns:
            Groups in report order. Without prune, groups with fewer than two distinct
            members are returned as-is so that the index can reject them.
        """
        json_groups = self._content.get('groups')
        if not isinstance(json_groups, list):
            raise self._missing_item('groups')

        base_dir = self.base_dir
        groups = []
        pruned_files = 0
        pruned_groups = 0

        for json_group in json_groups:
            if not isinstance(json_group, dict):
                raise ReportFormatError(f"bad value type in groups: {json_group!r}")

            file_len = json_group.get('file_len')
            if file_len is None:
                raise self._missing_item('group/file_len')
            if not isinstance(file_len, int) or isinstance(file_len, bool) or file_len < 0:
                raise ReportFormatError(f"bad group/file_len value: {file_len!r}")

            files = json_group.get('files')
            if not isinstance(files, list):
                raise self._missing_item('group/files')

            members = []
            for file in files:
                if not isinstance(file, str):
                    raise ReportFormatError(f"bad value type in clone file group: {file!r}")
                try:
                    key = PathKey.from_path(file, base_dir)
                except PathResolutionError as e:
                    logger.warning("Skipping clone file: %s", e)
                    continue
                if prune and not os.path.isfile(key.path):
                    pruned_files += 1
                    continue
                members.append(key)

            group = CloneGroup(members, file_len)
            if len(group) < 2:
                if prune:
                    pruned_groups += 1
                    continue
                logger.warning("Found group with less than 2 files in %s", self.path)
            groups.append(group)

        if prune:
            logger.info("Pruned %d missing files and %d groups from %s", pruned_files, pruned_groups, self.path)

        return groups


def load_clone_index(path: str | os.PathLike, prune: bool = False) -> CloneGroupIndex:
    """Read a duplicate report and build the clone group index from it."""
    report = DuplicateReport.open(path)
    index = CloneGroupIndex(report.clone_groups(prune=prune), report.scanned_paths())
    logger.info("Loaded %d clone groups (%d files)", index.group_count, index.file_count)
    return index
