"""
Test cases for the full and fast content comparison.
"""
import io
import pathlib as pl
import tempfile
import unittest
from unittest import TestCase

from package_diff.content_comparator import ContentComparator
from package_diff.diff_data import ComparisonIncomplete, DifferentBoolean, DifferentReport, \
    Identical
from package_diff.errors import ComparisonToolError
from package_diff.file_comparison import DifflibDiffTool, GnuDiffTool
from package_diff.manifest import pair_paths


class CountingDiffTool(DifflibDiffTool):
    """
    Diff tool recording the relative paths of its quiet comparisons.
    """

    def __init__(self):
        super().__init__()
        self.compared = []

    def same(self, new_path, old_path):
        self.compared.append(new_path.name)
        return super().same(new_path, old_path)


class ContentComparatorTestCase(TestCase):
    """
    Creates two trees whose files are named after their content state.
    """

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = pl.Path(self._tmp.name)
        self.new_root = self.tmp / 'new'
        self.old_root = self.tmp / 'old'
        self.new_root.mkdir()
        self.old_root.mkdir()
        self.tool = CountingDiffTool()
        self.comparator = ContentComparator(self.tool, max_workers=2)

    def tearDown(self):
        self._tmp.cleanup()

    def files(self, **states):
        """
        Writes one file per keyword: ``'same'``, ``'differs'``, ``'added'`` or ``'removed'``.
        :return: Pairs of the written files in keyword order.
        """
        for name, state in states.items():
            if state != 'removed':
                (self.new_root / name).write_text(f'{name}\nnew\n' if state == 'differs'
                                                  else f'{name}\n')
            if state != 'added':
                (self.old_root / name).write_text(f'{name}\n')

        new_manifest = [name for name, state in states.items() if state != 'removed']
        old_manifest = [name for name, state in states.items() if state != 'added']
        return pair_paths(self.new_root, self.old_root, new_manifest, old_manifest)


class TestFastCheck(ContentComparatorTestCase):
    """
    Tests the fast mode scan and its hooks.
    """

    def test_empty(self):
        """
        No pairs are identical and no hook is called.
        """
        calls = []
        outcome = self.comparator.fast_check((), before_all=calls.append,
                                             on_failure=calls.append)

        self.assertEqual(Identical(), outcome)
        self.assertIs(True, outcome.value)
        self.assertEqual([], calls)

    def test_identical(self):
        """
        All pairs identical.
        """
        pairs = self.files(a='same', b='same')

        outcome = self.comparator.fast_check(pairs)

        self.assertTrue(outcome.identical)
        self.assertEqual(['a', 'b'], self.tool.compared)

    def test_stops_at_first_difference(self):
        """
        Without hook the scan stops at the first differing pair.
        """
        pairs = self.files(a='same', b='differs', c='differs')

        outcome = self.comparator.fast_check(pairs)

        self.assertIsInstance(outcome, ComparisonIncomplete)
        self.assertIs(False, outcome.value)
        self.assertEqual(1, outcome.index)
        self.assertEqual('b', outcome.pair.relpath)
        self.assertEqual(['a', 'b'], self.tool.compared)

    def test_skip_resumes_after_failure(self):
        """
        A skipped failure resumes the scan at the next pair, not at the start.
        """
        pairs = self.files(a='same', b='differs', c='same')
        failures = []

        def on_failure(pair):
            failures.append(pair.relpath)
            return pair.relpath == 'b'

        outcome = self.comparator.fast_check(pairs, on_failure=on_failure)

        self.assertTrue(outcome.identical)
        self.assertEqual(['b'], failures)
        self.assertEqual(['a', 'b', 'c'], self.tool.compared)

    def test_skip_then_unskipped_failure(self):
        """
        The verdict reflects the pairs after the skipped one.
        """
        pairs = self.files(a='same', b='differs', c='differs')
        failures = []

        def on_failure(pair):
            failures.append(pair.relpath)
            return pair.relpath == 'b'

        outcome = self.comparator.fast_check(pairs, on_failure=on_failure)

        self.assertFalse(outcome.identical)
        self.assertEqual(2, outcome.index)
        self.assertEqual(['b', 'c'], failures)

    def test_chain_of_skips(self):
        """
        Many skipped failures are drained without recursion.
        """
        names = {f'f{i:04d}': 'differs' for i in range(1500)}
        pairs = self.files(**names)
        failures = []

        def on_failure(pair):
            failures.append(pair.relpath)
            return True

        outcome = self.comparator.fast_check(pairs, on_failure=on_failure)

        self.assertTrue(outcome.identical)
        self.assertEqual(sorted(names), failures)

    def test_before_all_veto(self):
        """
        A veto reports a difference without scanning.
        """
        pairs = self.files(a='same', b='differs')
        seen = []
        failures = []

        def before_all(all_pairs):
            seen.append(all_pairs)
            return False

        outcome = self.comparator.fast_check(pairs, before_all=before_all,
                                             on_failure=failures.append)

        self.assertIsInstance(outcome, DifferentBoolean)
        self.assertNotIsInstance(outcome, ComparisonIncomplete)
        self.assertFalse(outcome.value)
        self.assertEqual([pairs], seen)
        self.assertEqual([], failures)
        self.assertEqual([], self.tool.compared)

    def test_before_all_proceed(self):
        """
        Returning True from the veto hook scans as usual.
        """
        pairs = self.files(a='same')

        outcome = self.comparator.fast_check(pairs, before_all=lambda all_pairs: True)

        self.assertTrue(outcome.identical)

    def test_added_and_removed_differ(self):
        """
        A file present on one side only is a difference.
        """
        for state in ['added', 'removed']:
            with self.subTest(state=state):
                pairs = self.files(**{state: state})
                self.assertFalse(self.comparator.fast_check(pairs).identical)

    def test_tool_error_propagates(self):
        """
        Tool failures are not reported as differences.
        """
        (self.new_root / 'a').mkdir()
        (self.old_root / 'a').write_text('a')
        pairs = pair_paths(self.new_root, self.old_root, ['a'], ['a'])

        with self.assertRaises(ComparisonToolError):
            self.comparator.fast_check(pairs, on_failure=lambda pair: True)


class TestFullDiff(ContentComparatorTestCase):
    """
    Tests the full mode report.
    """

    def test_identical(self):
        """
        Identical pairs give an empty report.
        """
        outcome = self.comparator.full_diff(self.files(a='same', b='same'))

        self.assertEqual(Identical(full=True), outcome)
        self.assertEqual('', outcome.value)

    def test_report_in_pair_order(self):
        """
        The report concatenates the per-pair diffs in pair order.
        """
        pairs = self.files(z='differs', a='added', m='same', b='removed')

        outcome = self.comparator.full_diff(pairs)

        self.assertIsInstance(outcome, DifferentReport)
        report = outcome.value
        positions = [report.index(f'+++ {self.new_root / name}') for name in ['z', 'a', 'b']]
        self.assertEqual(sorted(positions), positions)
        self.assertNotIn(str(self.new_root / 'm'), report)
        self.assertIn('+a\n', report)
        self.assertIn('-b\n', report)

    def test_stream(self):
        """
        Streamed reports are written to the stream and not buffered.
        """
        pairs = self.files(a='differs', b='same')
        stream = io.StringIO()

        outcome = self.comparator.full_diff(pairs, to_stdout=True, stream=stream)

        self.assertEqual(DifferentReport('', streamed=True), outcome)
        self.assertIn('+new\n', stream.getvalue())

    def test_stream_identical(self):
        """
        Nothing is written for identical pairs.
        """
        stream = io.StringIO()

        outcome = self.comparator.full_diff(self.files(a='same'), to_stdout=True, stream=stream)

        self.assertTrue(outcome.identical)
        self.assertEqual('', stream.getvalue())

    def test_tool_error_propagates(self):
        """
        Tool failures surface instead of being reported as differences.
        """
        pairs = self.files(a='same')
        (self.new_root / 'b').mkdir()
        pairs += pair_paths(self.new_root, self.old_root, ['b'], [])

        with self.assertRaises(ComparisonToolError):
            self.comparator.full_diff(pairs)

    def test_worker_kind(self):
        """
        Python diff tools run in worker processes, external programs in threads.
        """
        self.assertTrue(ContentComparator().use_processes)
        self.assertTrue(self.comparator.use_processes)
        self.assertFalse(ContentComparator(GnuDiffTool()).use_processes)
        self.assertFalse(ContentComparator(use_processes=False).use_processes)

    def test_processes_and_threads_agree(self):
        """
        The report does not depend on the kind of workers.
        """
        pairs = self.files(z='differs', a='added', m='same', b='removed')
        threaded = ContentComparator(self.tool, max_workers=2, use_processes=False)

        self.assertEqual(threaded.full_diff(pairs).value, self.comparator.full_diff(pairs).value)

    def test_modes_agree(self):
        """
        Fast mode without hooks is identical exactly when the full report is empty.
        """
        for states in [dict(a='same'), dict(a='same', b='differs'), dict(a='added'),
                       dict(a='removed', b='same')]:
            with self.subTest(states=states):
                pairs = self.files(**states)
                full = self.comparator.full_diff(pairs)
                fast = self.comparator.fast_check(pairs)
                self.assertEqual(full.value == '', fast.value)
            for path in list(self.new_root.iterdir()) + list(self.old_root.iterdir()):
                path.unlink()


if __name__ == '__main__':
    unittest.main()
