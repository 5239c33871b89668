import json
import os
import unittest

import msgpack

from lsclones.errors import Interrupted
from lsclones.utils.interrupt import CancellationToken
from lsclones.views.diff import DirectoryDiffer, LocationDiff
from lsclones.views.groups import (
    GroupReport, GroupReportGenerator, PartitionedGroup, ReportGroup, group_clone_directories, partition_groups)
from lsclones.views.mapping import clone_directories

from ..test_utils import make_index, make_tree


def file_index():
    return make_index(
        ['/d/A/x', '/d/A/x2', '/d/B/x'],
        ['/d/A/sub/y', '/d/C/y'],
        ['/d/A/sub/w', '/d/A/w'],
        ['/d/B/z', '/d/C/z'],
        file_size=10)


class PartitionGroupsTest(unittest.TestCase):
    def test_recursive(self):
        partitions = partition_groups(file_index(), '/d/A')

        self.assertEqual(
            [('/d/A/sub/w', '/d/A/w'), ('/d/A/sub/y',), ('/d/A/x', '/d/A/x2')],
            [partition.inside for partition in partitions])
        self.assertEqual([(), ('/d/C/y',), ('/d/B/x',)], [partition.outside for partition in partitions])
        self.assertEqual([2, 1, 0], [partition.group_ref for partition in partitions])

    def test_non_recursive_counts_direct_children_only(self):
        partitions = partition_groups(file_index(), '/d/A', recursive=False)

        self.assertEqual([('/d/A/w',), ('/d/A/x', '/d/A/x2')], [partition.inside for partition in partitions])
        self.assertEqual(('/d/A/sub/w',), partitions[0].outside)

    def test_inside_reclaimable(self):
        with_outside = PartitionedGroup(0, 10, ('/d/A/x', '/d/A/x2'), ('/d/B/x',))
        self.assertTrue(with_outside.has_inside_duplicates)
        self.assertEqual(2, with_outside.inside_reclaimable_count)
        self.assertEqual(20, with_outside.inside_reclaimable_size)

        inside_only = PartitionedGroup(0, 10, ('/d/A/w', '/d/A/sub/w'), ())
        self.assertEqual(1, inside_only.inside_reclaimable_count)
        self.assertEqual(10, inside_only.inside_reclaimable_size)

        unknown_size = PartitionedGroup(0, None, ('/d/A/y',), ('/d/C/y',))
        self.assertFalse(unknown_size.has_inside_duplicates)
        self.assertIsNone(unknown_size.inside_reclaimable_size)


class FileGroupsTest(unittest.TestCase):
    def setUp(self):
        self.generator = GroupReportGenerator(file_index())

    def test_all_groups(self):
        report = self.generator.file_groups('/d/A')

        self.assertEqual(3, len(report))
        self.assertEqual(('/d/C/y',), report.groups[1].references)
        stats = report.stats
        self.assertEqual(3, stats.group_count)
        self.assertEqual(5, stats.count)
        self.assertEqual(50, stats.total_size)
        self.assertEqual(4, stats.reclaimable_count)
        self.assertEqual(40, stats.reclaimable_size)

    def test_inside(self):
        report = self.generator.file_groups('/d/A', inside=True)

        self.assertEqual([('/d/A/sub/w', '/d/A/w'), ('/d/A/x', '/d/A/x2')], [group.members for group in report])
        self.assertEqual([(), ('/d/B/x',)], [group.references for group in report])

    def test_inside_only_drops_outside_copies(self):
        report = self.generator.file_groups('/d/A', inside_only=True)

        self.assertEqual([(), ()], [group.references for group in report])
        self.assertEqual([1, 1], [group.reclaimable_count for group in report])
        self.assertEqual(20, report.stats.reclaimable_size)

    def test_outside(self):
        report = self.generator.file_groups('/d/A', outside=True)
        self.assertEqual([('/d/A/sub/y',), ('/d/A/x', '/d/A/x2')], [group.members for group in report])

    def test_flat_listing(self):
        report = self.generator.file_groups('/d/A', inside=True, grouped=False)

        self.assertFalse(report.grouped)
        self.assertEqual(['/d/A/sub/w', '/d/A/w', '/d/A/x', '/d/A/x2'], report.members())

    def test_overlapping_directories_list_groups_once(self):
        report = self.generator.file_groups('/d/A')
        report.extend(self.generator.file_groups('/d/A/sub'))
        report.extend(self.generator.file_groups('/d/C'))

        self.assertEqual(
            [('/d/A/sub/w', '/d/A/w'), ('/d/A/sub/y',), ('/d/A/x', '/d/A/x2'), ('/d/C/y',), ('/d/C/z',)],
            [group.members for group in report])

    def test_cancelled_report_raises(self):
        token = CancellationToken()
        token.cancel()
        with self.assertRaises(Interrupted):
            GroupReportGenerator(file_index(), token).file_groups('/d/A')


class CloneDirectoryGroupsTest(unittest.TestCase):
    def setUp(self):
        self.index = make_index(['/d/A/x', '/d/B/x', '/d/C/x'], ['/d/A/y', '/d/B/y'])
        self.tree = make_tree('/d', ['A/x', 'A/y', 'B/x', 'B/y', 'C/x'], self.index)
        self.clone_dirs = clone_directories(self.tree, self.index, '/d')

    def test_identical_directories_are_grouped(self):
        groups = group_clone_directories(self.tree, self.index, self.clone_dirs)

        self.assertEqual([('/d/A', '/d/B'), ('/d/C',)], [group.paths for group in groups])
        self.assertEqual([2, 1], [group.size for group in groups])
        self.assertEqual([2, 0], [group.minimum_reclaimable_size for group in groups])

    def test_reference_directories_exclude_members(self):
        groups = group_clone_directories(self.tree, self.index, self.clone_dirs)

        self.assertEqual(('/d/C',), groups[0].reference_directories())
        self.assertEqual(('/d/A', '/d/B'), groups[1].reference_directories())

    def test_directory_with_more_content_is_not_grouped(self):
        index = make_index(['/d/A/x', '/d/B/x', '/d/C/x'], ['/d/A/y', '/d/B/y'], ['/d/B/z', '/d/E/z'])
        tree = make_tree('/d', ['A/x', 'A/y', 'B/x', 'B/y', 'B/z', 'C/x'], index)

        groups = group_clone_directories(tree, index, clone_directories(tree, index, '/d'))

        self.assertEqual([('/d/A',), ('/d/B',), ('/d/C',)], [group.paths for group in groups])

    def test_directory_groups_report(self):
        listings = {
            '/d/A': ['/d/A/x', '/d/A/y'],
            '/d/B': ['/d/B/x', '/d/B/y'],
            '/d/C': ['/d/C/x'],
        }
        differ = DirectoryDiffer(self.index, listings.__getitem__)
        generator = GroupReportGenerator(self.index, differ=differ)

        report = generator.directory_groups(self.tree, self.clone_dirs, show_diff=True)

        first = report.groups[0]
        self.assertEqual(('/d/A', '/d/B'), first.members)
        self.assertEqual(('/d/C',), first.references)
        self.assertEqual([LocationDiff('/d/C', ('y',), ())], first.diffs)
        stats = report.stats
        self.assertEqual(3, stats.count)
        self.assertEqual(5, stats.total_size)
        self.assertEqual(2, stats.reclaimable_size)

    def test_references_only_on_request(self):
        report = GroupReportGenerator(self.index).directory_groups(self.tree, self.clone_dirs)
        self.assertEqual([(), ()], [group.references for group in report])
        self.assertEqual([None, None], [group.diffs for group in report])


class GroupSerializationTest(unittest.TestCase):
    def make_group(self) -> ReportGroup:
        return ReportGroup(
            ('/d/' + os.fsdecode(b'bad\xffname'), '/d/A/x'), ('/d/B/x',), 3, 2, 6,
            diffs=[LocationDiff('/d/B', ('y',), ('z',))])

    def test_msgpack(self):
        group = self.make_group()
        self.assertEqual(group, ReportGroup.from_msgpack(group.to_msgpack()))

    def test_report(self):
        report = GroupReport('files', groups=[self.make_group()])

        data = report.to_dict(include_stats=True)
        self.assertEqual({'location': '/d/B', 'missing': ['y'], 'extra': ['z']}, data['groups'][0]['diffs'][0])
        self.assertEqual(6, data['stats']['reclaimable_size'])
        json.dumps(data)

        query, groups = msgpack.loads(report.to_msgpack(), unicode_errors='surrogateescape')
        self.assertEqual('files', query)
        self.assertEqual(self.make_group(), ReportGroup.from_msgpack(groups[0]))


if __name__ == '__main__':
    unittest.main()
