"""
Content comparison of paired files, either as a full unified diff or as a fast check that stops at
the first difference.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from functools import partial
from typing import Callable, Optional, Sequence, TextIO, Tuple

from package_diff.diff_data import ComparisonIncomplete, ComparisonOutcome, DifferentBoolean, \
    DifferentReport, Identical, PathPair
from package_diff.file_comparison import DifflibDiffTool, LineDiffTool

BeforeAllHook = Callable[[Tuple[PathPair, ...]], bool]
OnFailureHook = Callable[[PathPair], bool]


def _unified_diff(diff_tool: LineDiffTool, pair: PathPair) -> str:
    return diff_tool.unified_diff(pair.new_path, pair.old_path)


class ContentComparator:
    """
    Compares the contents of file pairs with a line diff tool.
    """

    def __init__(self, diff_tool: Optional[LineDiffTool] = None,
                 max_workers: Optional[int] = None,
                 logger: Optional[logging.Logger] = None,
                 use_processes: Optional[bool] = None):
        """
        :param diff_tool: Line diff capability, `DifflibDiffTool` by default.
        :param max_workers: Size of the full mode worker pool, number of CPUs by default.
        :param logger: Logger receiving progress messages.
        :param use_processes: True to diff in worker processes, False to diff in threads. By
            default tools computing diffs in Python run in processes and tools starting an
            external program run in threads.
        """
        self.diff_tool = diff_tool if diff_tool is not None else DifflibDiffTool()
        self.max_workers = max_workers or os.cpu_count() or 1
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        if use_processes is None:
            use_processes = self.diff_tool.in_process
        self.use_processes = use_processes

    def _executor(self, task_count: int):
        if self.use_processes and task_count > 1:
            return ProcessPoolExecutor(max_workers=min(self.max_workers, task_count))
        return ThreadPoolExecutor(max_workers=self.max_workers)

    def full_diff(self, pairs: Sequence[PathPair], to_stdout: bool = False,
                  stream: Optional[TextIO] = None) -> ComparisonOutcome:
        """
        Computes the unified diff of every pair. The per-pair diffs are concatenated in pair order.

        :param pairs: Pairs to compare.
        :param to_stdout: True to write the diffs to `stream` as they become available instead of
            buffering the report.
        :param stream: Output for `to_stdout`, standard output by default.
        :raises ComparisonToolError: If the diff tool failed for any pair.
        :return: `Identical` or a `DifferentReport`.
        """
        if to_stdout and stream is None:
            stream = sys.stdout

        self.logger.info('diffing content...')
        start = time.perf_counter()

        chunks = []
        found_difference = False
        pairs = tuple(pairs)
        with self._executor(len(pairs)) as executor:
            results = executor.map(partial(_unified_diff, self.diff_tool), pairs)
            for chunk in results:
                if not chunk:
                    continue
                found_difference = True
                if to_stdout:
                    stream.write(chunk)
                else:
                    chunks.append(chunk)

        if to_stdout:
            stream.flush()
        self.logger.info('diffing content... %.3fs', time.perf_counter() - start)

        if not found_difference:
            return Identical(full=True)
        if to_stdout:
            return DifferentReport('', streamed=True)
        return DifferentReport(''.join(chunks))

    def fast_check(self, pairs: Sequence[PathPair], before_all: Optional[BeforeAllHook] = None,
                   on_failure: Optional[OnFailureHook] = None) -> ComparisonOutcome:
        """
        Checks whether any pair differs, stopping at the first difference. If `on_failure` returns
        True for a differing pair, the scan continues with the next pair, so a chain of skipped
        failures is drained before the verdict is produced.

        :param pairs: Pairs to compare, scanned in order.
        :param before_all: Called once with all pairs before scanning. Returning False reports a
            difference without scanning.
        :param on_failure: Called with each differing pair. Returning True skips the pair.
        :raises ComparisonToolError: If the diff tool failed.
        :return: `Identical`, `DifferentBoolean` or `ComparisonIncomplete`.
        """
        pairs = tuple(pairs)
        if not pairs:
            return Identical()

        if before_all is not None and not before_all(pairs):
            self.logger.debug('comparison vetoed before scanning %d pairs', len(pairs))
            return DifferentBoolean('vetoed before scanning')

        self.logger.info('diffing content...')
        start = time.perf_counter()

        cursor = 0
        while True:
            index = self._find_difference(pairs, cursor)
            if index is None:
                self.logger.info('diffing content... %.3fs', time.perf_counter() - start)
                return Identical()

            pair = pairs[index]
            if on_failure is None or not on_failure(pair):
                self.logger.info('diffing content... %.3fs', time.perf_counter() - start)
                return ComparisonIncomplete(f'{pair.relpath} differs', index, pair)

            self.logger.debug('skipping differing file %s', pair.relpath)
            cursor = index + 1

    def _find_difference(self, pairs: Tuple[PathPair, ...], start: int) -> Optional[int]:
        """
        :return: Index of the first differing pair at or after `start`, None if there is none.
        """
        for index in range(start, len(pairs)):
            pair = pairs[index]
            if not self.diff_tool.same(pair.new_path, pair.old_path):
                return index
        return None
