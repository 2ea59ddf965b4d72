"""
Catalog path helpers.

Report server paths are forward-slash separated and rooted at "/".
Paths typed on Windows shells often use backslashes, so everything
passed to the server goes through normalize_path first.
"""

import re
from typing import Tuple

ROOT = "/"

_SLASHES = re.compile(r'/+')


def normalize_path(path: str) -> str:
    """
    Normalize a catalog path.

    Backslashes become forward slashes, repeated slashes collapse,
    a single leading slash is enforced and any trailing slash removed.
    Empty input is the root folder.

    Example:
        >>> normalize_path('Sales\\\\Reports\\\\')
        '/Sales/Reports'
    """
    if path is None:
        return ROOT
    path = path.strip().replace('\\', '/')
    path = _SLASHES.sub('/', path).strip('/')
    return ROOT + path


def split_path(path: str) -> Tuple[str, str]:
    """
    Split a catalog path into (parent folder, item name).

    Example:
        >>> split_path('/Sales/Monthly')
        ('/Sales', 'Monthly')
        >>> split_path('/Monthly')
        ('/', 'Monthly')
    """
    path = normalize_path(path)
    if path == ROOT:
        return ROOT, ''
    parent, _, name = path.rpartition('/')
    return parent or ROOT, name


def join_path(folder: str, name: str) -> str:
    """Join a folder and an item name into a normalized path."""
    return normalize_path(f"{normalize_path(folder)}/{name}")


def is_root(path: str) -> bool:
    return normalize_path(path) == ROOT
