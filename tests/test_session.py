import tempfile
import unittest
from pathlib import Path

from lsclones.clones.report import load_clone_index
from lsclones.session import ScanSession
from lsclones.tree.node import Classification
from lsclones.views.report import ReportOptions

from .test_utils import write_clones_list, write_files


class ScanSessionTest(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self._tmpdir.name)
        write_files(self.root, {
            'A/x': 'x', 'A/y': 'y', 'A/u': 'u',
            'B/x': 'x', 'B/extra': 'e',
            'C/y': 'y',
        })
        clones_list = write_clones_list(
            self.root / 'clones.json', self.root, [['A/x', 'B/x'], ['A/y', 'C/y']])
        self.session = ScanSession(load_clone_index(clones_list))

    def tearDown(self):
        self._tmpdir.cleanup()

    def path(self, relative: str) -> str:
        return str(self.root / relative)

    def test_files_report(self):
        report = self.session.files_report([self.root / 'A'], ReportOptions(recursive=True))
        self.assertEqual([self.path('A/x'), self.path('A/y')], [entry.path for entry in report])

    def test_single_file_is_evaluated_against_parent(self):
        report = self.session.files_report([self.root / 'A' / 'x'], ReportOptions(show_map=True))
        self.assertEqual([self.path('A/x')], [entry.path for entry in report])
        self.assertEqual((self.path('B'),), report.entries[0].locations)

        report = self.session.files_report([self.root / 'A' / 'u'], ReportOptions())
        self.assertEqual([], report.entries)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            self.session.files_report([self.root / 'A' / 'missing'], ReportOptions())

    def test_directories_report_with_diff(self):
        report = self.session.directories_report(
            [self.root], ReportOptions(recursive=True, show_map=True, show_diff=True))

        self.assertEqual([self.path('C')], [entry.path for entry in report])
        diff = report.entries[0].diffs[0]
        self.assertEqual(self.path('A'), diff.location)
        self.assertEqual((), diff.missing)
        self.assertEqual(('u', 'x'), diff.extra)

    def test_multiple_roots_are_merged(self):
        report = self.session.directories_report(
            [self.root / 'C', self.root / 'A'], ReportOptions(recursive=True, unique_only=True))
        self.assertEqual([], report.entries)

        report = self.session.directories_report([self.root / 'C', self.root / 'B'], ReportOptions(recursive=True))
        self.assertEqual([self.path('C')], [entry.path for entry in report])

    def test_trees_are_reused(self):
        inner = self.session.tree_for(self.root / 'A')
        outer = self.session.tree_for(self.root)
        self.assertIsNot(inner, outer)
        self.assertIs(outer, self.session.tree_for(self.root / 'B'))
        self.assertIs(Classification.MIXED, outer.node(self.path('A')).classification)

    def test_directories_report_requires_directory(self):
        with self.assertRaises(NotADirectoryError):
            self.session.directories_report([self.root / 'A' / 'x'], ReportOptions())

    def test_file_groups_report(self):
        options = ReportOptions(recursive=True, show_groups=True)
        report = self.session.file_groups_report([self.root / 'A', self.root / 'A' / 'x'], options)

        self.assertEqual([(self.path('A/x'),), (self.path('A/y'),)], [group.members for group in report])
        self.assertEqual([(self.path('B/x'),), (self.path('C/y'),)], [group.references for group in report])
        self.assertEqual(2, report.stats.reclaimable_count)

    def test_directory_groups_report(self):
        options = ReportOptions(recursive=True, show_groups=True, show_map=True, show_diff=True)
        report = self.session.directory_groups_report([self.root], options)

        self.assertEqual([(self.path('C'),)], [group.members for group in report])
        self.assertEqual((self.path('A'),), report.groups[0].references)
        self.assertEqual(('u', 'x'), report.groups[0].diffs[0].extra)

    def test_directory_groups_report_requires_directory(self):
        with self.assertRaises(NotADirectoryError):
            self.session.directory_groups_report([self.root / 'A' / 'x'], ReportOptions(show_groups=True))

    def test_directory_outside_scanned_paths_is_reported(self):
        with tempfile.TemporaryDirectory() as elsewhere:
            with self.assertLogs('lsclones.session', level='WARNING') as cm:
                self.session.tree_for(elsewhere)
        self.assertIn('outside the paths searched for duplicates', cm.output[0])


class OverlappingPathsTest(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self._tmpdir.name)
        write_files(self.root, {'A/sub/x': 'x', 'A/u': 'u', 'B/x': 'x'})
        clones_list = write_clones_list(self.root / 'clones.json', self.root, [['A/sub/x', 'B/x']])
        self.session = ScanSession(load_clone_index(clones_list))

    def tearDown(self):
        self._tmpdir.cleanup()

    def test_files_listed_once(self):
        report = self.session.files_report([self.root / 'A', self.root / 'A' / 'sub'], ReportOptions(recursive=True))

        self.assertEqual([str(self.root / 'A' / 'sub' / 'x')], [entry.path for entry in report])
        self.assertEqual(1, report.stats.count)
        self.assertEqual(1, report.stats.reclaimable_size)

    def test_directories_listed_once(self):
        report = self.session.directories_report(
            [self.root / 'A' / 'sub', self.root / 'A'], ReportOptions(recursive=True))
        self.assertEqual([str(self.root / 'A' / 'sub')], [entry.path for entry in report])

    def test_groups_listed_once(self):
        report = self.session.file_groups_report(
            [self.root / 'A', self.root / 'A' / 'sub'], ReportOptions(recursive=True, show_groups=True))
        self.assertEqual(1, len(report))


if __name__ == '__main__':
    unittest.main()
