"""
Settings for the square image batch resizer.

Target size, quality and the extension set are fixed; only the input/output
roots and the log level may come from the environment (or a `.env` file).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, Optional

from dotenv import load_dotenv

INPUT_DIR = Path('./input')     # Folder with source images
OUTPUT_DIR = Path('./output')   # Folder for processed images
TARGET_SIZE = 1024
COMPRESSION_QUALITY = 80        # Compression quality (1-100)
SUPPORTED_EXTENSIONS = frozenset({'.jpg', '.jpeg', '.png', '.webp', '.tiff', '.gif'})
LOG_DIR = Path('logs')


def normalize_extensions(extensions: Iterable[str]) -> FrozenSet[str]:
    """Lowercase extensions and make sure each starts with a dot."""
    normalized = set()
    for ext in extensions:
        ext = ext.strip().lower()
        if not ext:
            continue
        normalized.add(ext if ext.startswith('.') else f'.{ext}')
    return frozenset(normalized)


@dataclass(frozen=True)
class ResizeSettings:
    """Immutable run configuration handed to the orchestrator."""
    input_dir: Path = INPUT_DIR
    output_dir: Path = OUTPUT_DIR
    target_size: int = TARGET_SIZE
    quality: int = COMPRESSION_QUALITY
    supported_extensions: FrozenSet[str] = SUPPORTED_EXTENSIONS
    log_level: str = 'INFO'

    def __post_init__(self):
        if self.target_size <= 0:
            raise ValueError(f"target_size must be positive, got {self.target_size}")
        if not 1 <= self.quality <= 100:
            raise ValueError(f"quality must be in 1-100, got {self.quality}")
        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, 'input_dir', Path(self.input_dir))
        object.__setattr__(self, 'output_dir', Path(self.output_dir))
        object.__setattr__(self, 'supported_extensions',
                           normalize_extensions(self.supported_extensions))
        object.__setattr__(self, 'log_level', self.log_level.upper())


def load_settings(env_file: Optional[str] = None) -> ResizeSettings:
    """Build settings, letting INPUT_DIR / OUTPUT_DIR / LOG_LEVEL override the defaults."""
    load_dotenv(env_file)
    return ResizeSettings(
        input_dir=Path(os.getenv('INPUT_DIR', str(INPUT_DIR))),
        output_dir=Path(os.getenv('OUTPUT_DIR', str(OUTPUT_DIR))),
        log_level=os.getenv('LOG_LEVEL', 'INFO'),
    )
