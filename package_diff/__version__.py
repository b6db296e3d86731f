"""
Package metadata.
"""

__title__ = 'package-diff'
__description__ = 'Compares the file structure and contents of two package archives.'
__url__ = 'https://github.com/package-diff/package-diff'
__version__ = '0.3.0'
__author__ = 'package-diff contributors'
__author_email__ = 'package-diff@users.noreply.github.com'
__license__ = 'MIT'
__copyright__ = 'Copyright 2026 package-diff contributors'
