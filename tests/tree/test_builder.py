import unittest

from lsclones.errors import Interrupted, StructuralGapError
from lsclones.tree.builder import TreeBuilder, build_tree
from lsclones.tree.node import NodeKind
from lsclones.utils.interrupt import CancellationToken
from lsclones.utils.walker import TraversalEntry

from ..test_utils import make_entries


class TreeBuilderTest(unittest.TestCase):
    def test_build(self):
        tree = build_tree('/data', make_entries('/data', ['A/x', 'A/link', 'B/'], size=3))

        self.assertEqual('/data', tree.root.path)
        self.assertEqual(['/data/A', '/data/B'], [child.path for child in tree.root.children])
        self.assertEqual(3, tree.node('/data/A/x').size)
        self.assertEqual([], tree.node('/data/B').children)

    def test_non_regular_entries_are_leaves(self):
        entries = [
            TraversalEntry('/data', NodeKind.DIRECTORY),
            TraversalEntry('/data/link', NodeKind.OTHER),
        ]
        tree = build_tree('/data', entries)
        self.assertTrue(tree.node('/data/link').is_leaf)
        self.assertEqual(1, tree.file_count())

    def test_child_before_parent_is_a_gap(self):
        entries = [
            TraversalEntry('/data', NodeKind.DIRECTORY),
            TraversalEntry('/data/A/x', NodeKind.FILE),
            TraversalEntry('/data/A', NodeKind.DIRECTORY),
        ]
        with self.assertRaises(StructuralGapError) as cm:
            build_tree('/data', entries)
        self.assertEqual('/data/A/x', cm.exception.path)

    def test_entry_outside_root_is_a_gap(self):
        with self.assertRaises(StructuralGapError):
            build_tree('/data', [TraversalEntry('/other/x', NodeKind.FILE)])

    def test_child_of_file_is_a_gap(self):
        entries = [
            TraversalEntry('/data/x', NodeKind.FILE),
            TraversalEntry('/data/x/y', NodeKind.FILE),
        ]
        with self.assertRaises(StructuralGapError):
            build_tree('/data', entries)

    def test_duplicate_entry_is_a_gap(self):
        entries = [
            TraversalEntry('/data/x', NodeKind.FILE),
            TraversalEntry('/data/./x', NodeKind.FILE),
        ]
        with self.assertRaises(StructuralGapError):
            build_tree('/data', entries)

    def test_root_must_be_directory(self):
        with self.assertRaises(StructuralGapError):
            build_tree('/data', [TraversalEntry('/data', NodeKind.FILE)])

    def test_unresolvable_entry_is_skipped(self):
        builder = TreeBuilder('/data')
        with self.assertLogs('lsclones.tree.builder', level='WARNING'):
            self.assertIsNone(builder.add(TraversalEntry('/data/bad\0name', NodeKind.FILE)))
        tree = builder.build([TraversalEntry('/data/x', NodeKind.FILE)])
        self.assertEqual(2, len(tree))

    def test_cancelled_build_raises(self):
        token = CancellationToken()
        token.cancel()
        with self.assertRaises(Interrupted):
            build_tree('/data', make_entries('/data', ['x']), token)


if __name__ == '__main__':
    unittest.main()
