"""
Image discovery for the batch resizer.

Walks an input tree with an explicit stack and returns every file whose
extension is supported. The filesystem sits behind a small interface so the
walk can be exercised without touching disk.
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Set, Union

from loguru import logger

from resize_settings import SUPPORTED_EXTENSIONS
from square_errors import ScanError

PathLike = Union[str, Path]


class FileSystem(ABC):
    """Read-only view of a directory tree used by the scanner."""

    @abstractmethod
    def list_entries(self, directory: Path) -> List[Path]:
        raise NotImplementedError

    @abstractmethod
    def is_dir(self, path: Path) -> bool:
        raise NotImplementedError

    @abstractmethod
    def is_file(self, path: Path) -> bool:
        raise NotImplementedError

    def real_path(self, path: Path) -> str:
        """Identity of a directory, used to detect symlink cycles."""
        return str(path)


class LocalFileSystem(FileSystem):
    def list_entries(self, directory: Path) -> List[Path]:
        with os.scandir(directory) as it:
            return [directory / entry.name for entry in it]

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def is_file(self, path: Path) -> bool:
        return path.is_file()

    def real_path(self, path: Path) -> str:
        return os.path.realpath(path)


LOCAL_FS = LocalFileSystem()


def is_supported(path: Path, extensions: FrozenSet[str] = SUPPORTED_EXTENSIONS) -> bool:
    return path.suffix.lower() in extensions


def scan_images(root: PathLike,
                extensions: Iterable[str] = SUPPORTED_EXTENSIONS,
                fs: Optional[FileSystem] = None) -> List[Path]:
    """
    Recursively collect supported image files under `root`.

    Entries are visited in name order, so the result is stable for a given
    tree. Symlinked directories are followed; a directory whose real path was
    already visited is skipped. Raises ScanError if any directory cannot be
    listed.
    """
    fs = fs or LOCAL_FS
    exts = frozenset(e.lower() for e in extensions)
    root = Path(root)

    files: List[Path] = []
    visited: Set[str] = set()
    stack: List[Path] = [root]

    while stack:
        current = stack.pop()
        identity = fs.real_path(current)
        if identity in visited:
            logger.warning(f"Skipping already visited directory (symlink loop?): {current}")
            continue
        visited.add(identity)

        try:
            entries = sorted(fs.list_entries(current), key=lambda p: p.name)
        except OSError as e:
            raise ScanError(current, e.strerror or str(e)) from e

        subdirs: List[Path] = []
        for entry in entries:
            if fs.is_dir(entry):
                subdirs.append(entry)
            elif fs.is_file(entry):
                if is_supported(entry, exts):
                    files.append(entry)
                else:
                    logger.debug(f"Skipping unsupported file: {entry}")
            else:
                logger.debug(f"Skipping non-regular entry: {entry}")

        # Reversed so the alphabetically first subdirectory is popped next
        stack.extend(reversed(subdirs))

    return files


def ensure_directory(path: PathLike) -> bool:
    """
    Make sure `path` exists as a directory, creating parents as needed.

    Returns True when the directory was created by this call. An existing
    directory is never an error, even if another process creates it first.
    """
    path = Path(path)
    if path.is_dir():
        return False
    path.mkdir(parents=True, exist_ok=True)
    logger.info(f"Created folder: {path}")
    return True
