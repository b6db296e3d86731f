"""
Test cases for the line diff tools.
"""
import io
import os
import pathlib as pl
import shutil
import tempfile
import unittest
from unittest import TestCase

from package_diff.errors import ComparisonToolError
from package_diff.file_comparison import DifflibDiffTool, FileHasher, GnuDiffTool


class TestFileHasher(TestCase):
    """
    Tests the stream hashing.
    """

    def test_compute_hash(self):
        """
        Small buffers give the same hash as a single read.
        """
        data = b'0123456789' * 100
        small = FileHasher('sha256', hash_buffer_size=7).compute_hash(io.BytesIO(data))
        large = FileHasher('sha256').compute_hash(io.BytesIO(data))

        self.assertEqual(large, small)
        self.assertEqual(64, len(small))


class DiffToolTestMixin:
    """
    Behavior shared by all diff tools.
    """

    def create_tool(self):
        raise NotImplementedError()

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = pl.Path(self._tmp.name)
        self.tool = self.create_tool()

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, name, contents):
        path = self.tmp / name
        path.write_text(contents)
        return path

    def test_identical(self):
        """
        Identical files have an empty diff.
        """
        new = self.write('new.txt', 'a\nb\n')
        old = self.write('old.txt', 'a\nb\n')

        self.assertTrue(self.tool.same(new, old))
        self.assertEqual('', self.tool.unified_diff(new, old))

    def test_changed(self):
        """
        The old file is the ``---`` side of the diff.
        """
        new = self.write('new.txt', 'a\nc\n')
        old = self.write('old.txt', 'a\nb\n')

        self.assertFalse(self.tool.same(new, old))
        diff = self.tool.unified_diff(new, old)
        self.assertIn(f'--- {old}', diff)
        self.assertIn(f'+++ {new}', diff)
        self.assertIn('-b\n', diff)
        self.assertIn('+c\n', diff)

    def test_form_feed_inside_line(self):
        """
        Only newlines end a line, other line separators are part of the line.
        """
        new = self.write('new.txt', 'x\x0cy\nz\n')
        old = self.write('old.txt', 'x\x0cy\nw\n')

        diff = self.tool.unified_diff(new, old)

        self.assertIn('@@ -1,2 +1,2 @@\n x\x0cy\n-w\n+z\n', diff)
        self.assertNotIn('No newline at end of file', diff)

    def test_same_size_changed(self):
        """
        Files of equal size with different contents differ.
        """
        self.assertFalse(self.tool.same(self.write('new.txt', 'ab'), self.write('old.txt', 'ba')))

    def test_added_file(self):
        """
        A missing old file is compared as empty file.
        """
        new = self.write('new.txt', 'x\ny\n')
        old = self.tmp / 'missing.txt'

        self.assertFalse(self.tool.same(new, old))
        diff = self.tool.unified_diff(new, old)
        self.assertIn('+x\n', diff)
        self.assertIn('+y\n', diff)
        self.assertNotIn('\n-', diff)

    def test_removed_file(self):
        """
        A missing new file is compared as empty file.
        """
        new = self.tmp / 'missing.txt'
        old = self.write('old.txt', 'x\n')

        self.assertFalse(self.tool.same(new, old))
        self.assertIn('-x\n', self.tool.unified_diff(new, old))

    def test_directory_is_error(self):
        """
        Comparing a directory is a tool failure and not a difference.
        """
        new = self.tmp / 'dir'
        new.mkdir()
        old = self.write('old.txt', 'x\n')

        with self.assertRaises(ComparisonToolError):
            self.tool.same(new, old)
        with self.assertRaises(ComparisonToolError):
            self.tool.unified_diff(new, old)


class TestDifflibDiffTool(DiffToolTestMixin, TestCase):
    """
    Tests the in-process diff tool.
    """

    def create_tool(self):
        return DifflibDiffTool()

    def test_missing_newline(self):
        """
        A missing newline at the end of the file is marked like GNU diff does.
        """
        diff = self.tool.unified_diff(self.write('new.txt', 'a\nc'), self.write('old.txt', 'a\nb'))

        self.assertIn('+c\n\\ No newline at end of file\n', diff)

    def test_binary(self):
        """
        Binary files are only reported as differing.
        """
        new = self.tmp / 'new.bin'
        new.write_bytes(b'\xff\xfe\x00')
        old = self.tmp / 'old.bin'
        old.write_bytes(b'\xff\xfe\x01')

        self.assertEqual(f'Binary files {old} and {new} differ\n',
                         self.tool.unified_diff(new, old))

    def test_added_empty_file(self):
        """
        An added empty file still shows up in the diff.
        """
        new = self.write('empty.txt', '')
        old = self.tmp / 'missing.txt'

        self.assertFalse(self.tool.same(new, old))
        self.assertEqual(f'--- {old}\n+++ {new}\n', self.tool.unified_diff(new, old))


@unittest.skipIf(shutil.which('diff') is None or os.name == 'nt',
                 'diff is not installed.')
class TestGnuDiffTool(DiffToolTestMixin, TestCase):
    """
    Tests the external diff tool.
    """

    def create_tool(self):
        return GnuDiffTool()

    def test_missing_executable(self):
        """
        A missing diff program is a tool failure.
        """
        tool = GnuDiffTool(executable='package-diff-no-such-diff')
        new = self.write('new.txt', 'a\n')
        old = self.write('old.txt', 'b\n')

        with self.assertRaises(ComparisonToolError):
            tool.unified_diff(new, old)
        with self.assertRaises(ComparisonToolError):
            tool.same(new, old)


if __name__ == '__main__':
    unittest.main()
