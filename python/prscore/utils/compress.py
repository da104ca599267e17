"""Utility functions for reading plain or gzip-compressed text inputs."""

import gzip
from typing import IO

GZIP_SUFFIXES = (".gz", ".bgz")


def is_gzipped(path: str) -> bool:
    return path.endswith(GZIP_SUFFIXES)


def open_text(path: str) -> IO[str]:
    """
    Open a text file for reading, decompressing it if the path has a gzip suffix.

    bgzip output is valid gzip, so block-compressed files are read the same way.

    Args:
        path (str): The file path.

    Returns:
        IO[str]: A text handle, to be closed by the caller.
    """
    if is_gzipped(path):
        return gzip.open(path, "rt", encoding="utf-8")
    return open(path, encoding="utf-8")
