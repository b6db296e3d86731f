"""
Helper to display comparison reports on the command line in various formats.
"""

import io
import json
import math
import re
import sys
from typing import List, Optional

from package_diff.diff_data import DiffState, FileDiff, ReportDiff

_HUNK_HEADER = re.compile(r'^@@ -\d+(?:,(\d+))? \+\d+(?:,(\d+))? @@')
_BINARY = re.compile(r'^Binary files (.+) and (.+) differ$')


def _header_path(line: str) -> str:
    # GNU diff appends a tab and the modification time.
    return line[4:].rstrip('\n').split('\t')[0]


def parse_unified_diff(text: str) -> ReportDiff:
    """
    Summarizes a unified diff of many files.

    :param text: Concatenated unified diffs, as produced by a full comparison.
    :return: One `FileDiff` per file in the report, in report order.
    """
    files: List[FileDiff] = []
    lines = text.splitlines()
    hunk_sides = []

    i = 0
    while i < len(lines):
        line = lines[i]
        binary = _BINARY.match(line)
        if binary:
            _finish(files, hunk_sides)
            hunk_sides = []
            files.append(FileDiff(binary.group(1), binary.group(2), binary=True))
            i += 1
            continue

        if line.startswith('--- ') and i + 1 < len(lines) and lines[i + 1].startswith('+++ '):
            _finish(files, hunk_sides)
            files.append(FileDiff(_header_path(line), _header_path(lines[i + 1])))
            hunk_sides = []
            i += 2
            continue

        hunk = _HUNK_HEADER.match(line)
        if hunk and files:
            old_count = int(hunk.group(1)) if hunk.group(1) is not None else 1
            new_count = int(hunk.group(2)) if hunk.group(2) is not None else 1
            hunk_sides.append((old_count, new_count))
            record = files[-1]
            i += 1
            # Consume exactly the lines announced by the hunk header.
            while (old_count > 0 or new_count > 0) and i < len(lines):
                body = lines[i]
                if body.startswith('-'):
                    record.removed_lines += 1
                    old_count -= 1
                elif body.startswith('+'):
                    record.added_lines += 1
                    new_count -= 1
                elif body.startswith('\\'):
                    pass
                else:
                    old_count -= 1
                    new_count -= 1
                i += 1
            continue

        i += 1

    _finish(files, hunk_sides)
    return ReportDiff(files)


def _finish(files: List[FileDiff], hunk_sides) -> None:
    """
    Derives the state of the last parsed file from its hunks. A file whose hunks only have lines on
    the new side was added, one with only old lines was removed.
    """
    if not files or files[-1].binary or not hunk_sides:
        return
    record = files[-1]
    if all(old == 0 for old, _ in hunk_sides):
        record.state = DiffState.ADDED
    elif all(new == 0 for _, new in hunk_sides):
        record.state = DiffState.REMOVED


class ReportPrinter:
    """
    Utility to print comparison reports in various formats
    """

    formats = ('diff', 'summary', 'json')

    def __init__(self, output_format='diff', output=sys.stdout):
        """
        :param output_format: One of `formats`.
        :param output: Output stream to write to.
        """
        if output_format not in self.formats:
            raise ValueError(f'Unknown output format: {output_format}')
        self.output_format = output_format
        self.output = output

        self._state_to_name = {
            DiffState.DIFFERENT: 'Different',
            DiffState.ADDED: 'Added',
            DiffState.REMOVED: 'Removed',
        }
        self._divider = '*' * 80

    def line(self, *args):
        """
        Prints a line to the configured output stream.
        :param args: line contents
        """
        print(*args, file=self.output)

    def format(self, report: str) -> str:
        """
        Renders the report in the configured output format.
        :param report: Unified diff report.
        """
        if self.output_format == 'diff':
            return report
        if self.output_format == 'json':
            return self.to_json(parse_unified_diff(report))

        buffer = io.StringIO()
        ReportPrinter('summary', output=buffer).print_summary(parse_unified_diff(report))
        return buffer.getvalue()

    def print_report(self, report: str):
        """
        Prints the given report in the configured output format.
        :param report: Unified diff report.
        """
        if self.output_format == 'summary':
            self.print_summary(parse_unified_diff(report))
        elif self.output_format == 'json':
            self.line(self.format(report))
        else:
            self.output.write(report)

    @staticmethod
    def to_json(report_diff: ReportDiff) -> str:
        return json.dumps([
            {
                'oldPath': record.old_path,
                'newPath': record.new_path,
                'state': record.state.name.lower(),
                'addedLines': record.added_lines,
                'deletedLines': record.removed_lines,
                'isBinary': record.binary,
            }
            for record in report_diff.files
        ], indent=4)

    def print_summary(self, report_diff: ReportDiff):
        """
        Prints one line per changed file followed by the number of files per state.
        :param report_diff: Parsed report to print.
        """
        state_to_symbol = {
            DiffState.DIFFERENT: '|',
            DiffState.ADDED: '>',
            DiffState.REMOVED: '<',
        }
        self.line(self._divider)

        if report_diff.files:
            longest_path = max(len(r.relpath) for r in report_diff.files)
            record_template = f'{{rel_path:{longest_path}s}} {{state_sym:s}} {{state_name:s}}' \
                              f' {{changes:s}}'
            for record in report_diff.files:
                changes = 'binary' if record.binary else \
                    f'+{record.added_lines} -{record.removed_lines}'
                self.line(record_template.format(
                    rel_path=record.relpath,
                    state_sym=state_to_symbol[record.state],
                    state_name=self._state_to_name[record.state],
                    changes=changes))
            self.line(self._divider)

        counts_per_state = report_diff.stats()
        max_count = max(1, int(math.ceil(math.log10(max(counts_per_state.values()) + 1))))
        pattern = f'{{state_name:10s}} {{state_count:{max_count:d}d}}'
        for state in DiffState:
            self.line(pattern.format(state_name=self._state_to_name[state] + ':',
                                     state_count=counts_per_state[state]))

        self.line(self._divider)


def print_report(report: str, output_format='diff', output: Optional[object] = None) -> None:
    """
    Prints the report in a human-readable format to the standard output.

    :param report: Unified diff report.
    :param output_format: One of `ReportPrinter.formats`.
    """
    printer = ReportPrinter(output_format, output=output if output is not None else sys.stdout)
    printer.print_report(report)
