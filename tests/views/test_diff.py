import unittest

from lsclones.tree.node import Classification
from lsclones.views.diff import DirectoryDiffer, LocationDiff
from lsclones.views.mapping import CloneDirectory

from ..test_utils import make_index, make_tree


class DirectoryDifferTest(unittest.TestCase):
    def setUp(self):
        self.index = make_index(['/data/A/x', '/data/B/x'], ['/data/A/y', '/data/C/y'])
        self.tree = make_tree('/data', ['A/x', 'A/y', 'B/x', 'B/extra', 'C/y', 'u'], self.index)
        self.listings = {
            '/data/B': ['/data/B/extra', '/data/B/x'],
            '/data/C': ['/data/C/y'],
            '/data': ['/data/A/x', '/data/A/y', '/data/B/extra', '/data/B/x', '/data/C/y', '/data/u'],
        }
        self.differ = DirectoryDiffer(self.index, self.listings.__getitem__)
        self.clone_dir = CloneDirectory.resolve(self.tree, self.index, self.tree.node('/data/A'))

    def test_directory_is_clone(self):
        self.assertIs(Classification.CLONE, self.tree.node('/data/A').classification)

    def test_missing_and_extra(self):
        self.assertEqual(LocationDiff('/data/B', ('y',), ('extra',)), self.differ.diff(self.clone_dir, '/data/B'))
        self.assertEqual(LocationDiff('/data/C', ('x',), ()), self.differ.diff(self.clone_dir, '/data/C'))

    def test_diff_all_locations(self):
        diffs = self.differ.diff_all(self.clone_dir)
        self.assertEqual(['/data/B', '/data/C'], [diff.location for diff in diffs])
        self.assertFalse(any(diff.identical for diff in diffs))

    def test_enclosing_location_skips_directory_itself(self):
        diff = self.differ.diff(self.clone_dir, '/data')
        self.assertEqual((), diff.missing)
        self.assertEqual(('B/extra', 'u'), diff.extra)

    def test_identical_copy(self):
        index = make_index(['/data/A/x', '/data/B/x'])
        tree = make_tree('/data', ['A/x', 'B/x'], index)
        differ = DirectoryDiffer(index, lambda location: ['/data/B/x'])
        clone_dir = CloneDirectory.resolve(tree, index, tree.node('/data/A'))

        diff = differ.diff(clone_dir, '/data/B')

        self.assertTrue(diff.identical)


if __name__ == '__main__':
    unittest.main()
