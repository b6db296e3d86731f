"""
Utility functions.
"""

import os
from typing import List


def path_parts(path: str) -> List[str]:
    """
    Splits a path into its parts. Empty and ``.`` segments are dropped, so ``./a//b`` and ``a/b``
    yield the same parts.
    :param path: Input path.
    :return: parts of the path
    """

    parts = []
    while True:
        rest, part = os.path.split(path)
        if part and part != '.':
            parts.append(part)

        if path == rest:
            break
        path = rest

    parts.reverse()

    return parts
