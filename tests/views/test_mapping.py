import unittest

from lsclones.views.mapping import CloneDirectory, FileClones, clone_directories, find_deep_path, group_by_location

from ..test_utils import make_index, make_tree


class GroupByLocationTest(unittest.TestCase):
    def test_sorted_by_location_and_path(self):
        result = group_by_location(['/b/2', '/a/1', '/b/1'])
        self.assertEqual(['/a', '/b'], list(result))
        self.assertEqual(('/b/1', '/b/2'), result['/b'])


class FileClonesTest(unittest.TestCase):
    def test_outside_copies(self):
        index = make_index(['/data/A/x', '/data/A/x2', '/data/B/x', '/mnt/backup/x'])
        clones = FileClones.resolve(index, '/data/A/x', '/data/A')

        self.assertEqual(('/data/B/x', '/mnt/backup/x'), clones.siblings)
        self.assertEqual(('/data/B', '/mnt/backup'), clones.locations())

    def test_ungrouped_file_has_no_copies(self):
        index = make_index(['/data/A/x', '/data/B/x'])
        self.assertEqual((), FileClones.resolve(index, '/data/A/u', '/data/A').siblings)


class CloneDirectoryTest(unittest.TestCase):
    def setUp(self):
        self.index = make_index(['/data/A/x', '/data/B/x'], ['/data/A/y', '/data/C/y', '/data/C/y2'])
        self.tree = make_tree('/data', ['A/x', 'A/y', 'B/x', 'C/y', 'C/y2'], self.index)

    def test_union_of_file_locations(self):
        clone_dir = CloneDirectory.resolve(self.tree, self.index, self.tree.node('/data/A'))

        self.assertEqual(['/data/A/x', '/data/A/y'], list(clone_dir.files))
        self.assertEqual(('/data/B', '/data/C'), clone_dir.locations())
        self.assertEqual(('/data/C/y', '/data/C/y2'), clone_dir.sources()['/data/C'])
        self.assertIsNone(clone_dir.deep_path)

    def test_clone_directories(self):
        result = clone_directories(self.tree, self.index, recursive=False)
        self.assertEqual(['/data/A', '/data/B', '/data/C'], [clone_dir.path for clone_dir in result])
        self.assertEqual(('/data/A',), result[1].locations())


class DeepPathTest(unittest.TestCase):
    def test_single_directory_chain(self):
        tree = make_tree('/data', ['P/Q/R/x', 'P/Q/R/y'])
        self.assertEqual('/data/P/Q/R', find_deep_path(tree.node('/data/P')))

    def test_no_chain(self):
        tree = make_tree('/data', ['P/x', 'P/Q/y', 'S/T/'])
        self.assertIsNone(find_deep_path(tree.node('/data/P')))
        self.assertIsNone(find_deep_path(tree.node('/data/S')))

    def test_clone_directory_deep_path(self):
        index = make_index(['/data/P/Q/x', '/backup/x'])
        tree = make_tree('/data', ['P/Q/x'], index)
        clone_dir = CloneDirectory.resolve(tree, index, tree.node('/data/P'))
        self.assertEqual('/data/P/Q', clone_dir.deep_path)


if __name__ == '__main__':
    unittest.main()
