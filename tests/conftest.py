from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest
from loguru import logger
from PIL import Image

from image_scanner import FileSystem
from image_transformer import PillowCodec
from square_errors import DecodeError


@pytest.fixture
def make_image():
    """Write a solid-color image of `size` to `path` and return the path."""
    def _make(path: Path, size=(64, 48), mode: str = "RGB", fmt: Optional[str] = None,
              color="red") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new(mode, size, color).save(path, fmt)
        return path
    return _make


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during a test."""
    messages: List[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


class InMemoryFileSystem(FileSystem):
    """Directory tree described by a list of file paths, for scanner tests."""

    def __init__(self, files: Iterable[str], unreadable: Iterable[str] = ()):
        self.files = {Path(f) for f in files}
        self.dirs = set()
        for f in self.files:
            self.dirs.update(f.parents)
        self.unreadable = {Path(d) for d in unreadable}
        self.listed: List[Path] = []

    def list_entries(self, directory: Path) -> List[Path]:
        self.listed.append(directory)
        if directory in self.unreadable:
            raise PermissionError(13, "Permission denied", str(directory))
        if directory not in self.dirs:
            raise FileNotFoundError(2, "No such file or directory", str(directory))
        children = {p for p in self.files | self.dirs if p.parent == directory and p != directory}
        return list(children)

    def is_dir(self, path: Path) -> bool:
        return path in self.dirs

    def is_file(self, path: Path) -> bool:
        return path in self.files


@pytest.fixture
def memory_fs():
    return InMemoryFileSystem


class FailingCodec(PillowCodec):
    """Pillow codec that refuses to decode the given file names."""

    def __init__(self, fail_names: Iterable[str] = ()):
        super().__init__()
        self.fail_names = set(fail_names)
        self.decoded: List[str] = []

    def decode(self, path: Path) -> Image.Image:
        self.decoded.append(Path(path).name)
        if Path(path).name in self.fail_names:
            raise DecodeError(f"forced failure for {path}")
        return super().decode(path)


@pytest.fixture
def failing_codec():
    return FailingCodec
