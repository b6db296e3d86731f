"""
Command-line interface to the package-diff module.
"""

import argparse
import logging
import os
import pathlib as pl
import sys

from package_diff import __description__
from package_diff.cli_output import ReportPrinter
from package_diff.config import REGISTRY_ENV_VAR, CompareOptions
from package_diff.errors import PackageDiffError
from package_diff.file_comparison import GnuDiffTool
from package_diff.package_diff import compare

logger = logging.getLogger('package_diff')


def build_parser() -> argparse.ArgumentParser:
    """
    Creates the argument parser of the command line interface.
    """
    parser = argparse.ArgumentParser('package-diff', description=__description__)
    parser.add_argument('new_package',
                        metavar='NEW_PACKAGE',
                        help='New package: archive path, name@version or a bare version.')
    parser.add_argument('old_package',
                        metavar='OLD_PACKAGE',
                        help='Old package: archive path, name@version or a bare version that'
                             ' takes the name of the new package.')
    parser.add_argument('--exclude', '-x',
                        metavar='PATTERN',
                        help='Glob or regular expression of files to leave out of the'
                             ' comparison. Globs match any file or directory name, or the end of'
                             ' the path.')
    parser.add_argument('--format', '-f',
                        choices=ReportPrinter.formats,
                        default='diff',
                        help='Output format of the report.')
    parser.add_argument('--output', '-o',
                        type=pl.Path,
                        help='Writes the report to this file instead of the standard output.')
    parser.add_argument('--no-exit-code', '-c',
                        action='store_true',
                        help='Exits with status 0 even if differences were found.')
    parser.add_argument('--quiet', '-q',
                        action='store_true',
                        help='Turns off progress messages.')
    parser.add_argument('--verbose', '-v',
                        action='store_true',
                        help='Prints debug messages.')
    parser.add_argument('--fast-check',
                        action='store_true',
                        help='Stops at the first difference and only reports whether the packages'
                             ' are equal.')
    parser.add_argument('--registry',
                        default=os.environ.get(REGISTRY_ENV_VAR),
                        help=f'Registry URL used for downloads. Defaults to ${REGISTRY_ENV_VAR}.')
    parser.add_argument('--prefer-offline',
                        action='store_true',
                        help='Prefers cached registry data over network requests.')
    parser.add_argument('--strip-prefix',
                        action='store_true',
                        help='Ignores the root directory shared by all files of an archive.')
    parser.add_argument('--gnu-diff',
                        action='store_true',
                        help='Uses the external diff program instead of the built-in diff.')
    return parser


def main(argv=None) -> int:
    """
    Main method that handles the command line interface of package-diff
    """
    args = build_parser().parse_args(argv)

    level = logging.INFO
    if args.quiet:
        level = logging.WARNING
    if args.verbose:
        level = logging.DEBUG
    logging.basicConfig(level=level, format='%(message)s', stream=sys.stderr)
    logger.setLevel(level)

    options = CompareOptions(
        full=not args.fast_check,
        exclude=args.exclude,
        # A raw diff without output file is streamed instead of buffered.
        to_stdout=not args.fast_check and args.format == 'diff' and args.output is None,
        registry_url=args.registry,
        prefer_offline=args.prefer_offline,
        strip_prefix=args.strip_prefix,
        diff_tool=GnuDiffTool() if args.gnu_diff else None,
        logger=logger,
    )

    try:
        outcome = compare(args.new_package, args.old_package, options)
    except PackageDiffError as error:
        print(f'package-diff: {error}', file=sys.stderr)
        return 2

    if args.fast_check:
        logger.info('Packages are equal' if outcome.identical else 'Packages are different')
    elif not options.to_stdout:
        printer = ReportPrinter(args.format, output=sys.stdout)
        if args.output is not None:
            resolved = args.output.resolve()
            resolved.write_text(printer.format(outcome.value), encoding='utf8')
            logger.info('Saved to: %s', resolved)
        else:
            printer.print_report(outcome.value)

    if args.no_exit_code or outcome.identical:
        return 0
    return 1


if __name__ == '__main__':
    sys.exit(main())
