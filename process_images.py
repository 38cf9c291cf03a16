#!/usr/bin/env python3
"""
Batch square-crop and resize every image under INPUT_DIR into OUTPUT_DIR.

Each image is cropped to a centered square, scaled down to the target size
(never up), re-encoded in its own format and written to the same relative
path under the output folder. One bad file never stops the batch.

Usage:
    python process_images.py
    INPUT_DIR=photos OUTPUT_DIR=squares python process_images.py
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from loguru import logger
from tqdm import tqdm

from image_scanner import FileSystem, ensure_directory, scan_images
from image_transformer import Failure, ImageTransformer, ProcessingOutcome
from resize_settings import LOG_DIR, ResizeSettings, load_settings
from square_errors import FatalSetupError, SquareImagesError


@dataclass(frozen=True)
class RunSummary:
    discovered: int
    succeeded: int
    failed: int
    output_root: Optional[Path] = None


def configure_logging(level: str = "INFO", log_dir: Optional[Path] = LOG_DIR) -> None:
    """Console sink through tqdm so progress bars stay intact, plus a rotating debug log."""
    logger.remove()
    logger.add(lambda msg: tqdm.write(msg, end=""), level=level, colorize=True,
               format="<level>{message}</level>")
    if log_dir is not None:
        logger.add(Path(log_dir) / "square_images_{time}.log", rotation="10 MB", level="DEBUG")


def output_path_for(input_path: Path, input_root: Path, output_root: Path) -> Path:
    """Mirror `input_path`'s position under `input_root` onto `output_root`."""
    return output_root / input_path.relative_to(input_root)


def log_outcome(outcome: ProcessingOutcome) -> None:
    if outcome.ok:
        logger.success(
            f"✓ Processed: {outcome.input_path.name} -> {outcome.output_path.name} "
            f"({outcome.size_kb:.2f} KB)"
        )
    else:
        logger.error(f"✗ Error processing {outcome.input_path}: {outcome.error}")


def process_one(transformer: ImageTransformer, input_path: Path,
                input_root: Path, output_root: Path) -> ProcessingOutcome:
    """Prepare the output folder for one file and transform it."""
    output_path = output_path_for(input_path, input_root, output_root)
    try:
        ensure_directory(output_path.parent)
    except OSError as e:
        return Failure(input_path=input_path, error=f"Cannot create {output_path.parent}: {e}")
    return transformer.transform(input_path, output_path)


def run(input_root: Union[str, Path],
        output_root: Union[str, Path],
        settings: Optional[ResizeSettings] = None,
        transformer: Optional[ImageTransformer] = None,
        fs: Optional[FileSystem] = None) -> RunSummary:
    """
    Process every supported image under `input_root` into `output_root`.

    Raises FatalSetupError if either root cannot be created and ScanError if
    the input tree cannot be read; in both cases no file is processed.
    Per-file errors are logged and counted, never raised.
    """
    settings = settings or ResizeSettings()
    transformer = transformer or ImageTransformer(settings=settings)
    input_root = Path(input_root)
    output_root = Path(output_root)

    # Make sure both folders exist
    for root in (input_root, output_root):
        try:
            ensure_directory(root)
        except OSError as e:
            raise FatalSetupError(f"Cannot prepare folder {root}: {e}") from e

    logger.info("🔍 Searching for images...")
    image_files = scan_images(input_root, settings.supported_extensions, fs=fs)

    if not image_files:
        logger.warning(f"❌ No images found in {input_root}")
        return RunSummary(discovered=0, succeeded=0, failed=0, output_root=output_root)

    logger.info(f"📁 Found {len(image_files)} images")
    logger.info("⏳ Processing...")

    succeeded = 0
    failed = 0
    for input_path in tqdm(image_files, desc="Processing", unit="img", leave=False):
        outcome = process_one(transformer, input_path, input_root, output_root)
        log_outcome(outcome)
        if outcome.ok:
            succeeded += 1
        else:
            failed += 1

    summary = RunSummary(
        discovered=len(image_files),
        succeeded=succeeded,
        failed=failed,
        output_root=output_root,
    )
    logger.info(
        f"Run finished: {summary.succeeded}/{summary.discovered} succeeded, "
        f"{summary.failed} failed"
    )
    return summary


def print_summary(summary: RunSummary) -> None:
    print("\n" + "=" * 60)
    print("✅ PROCESSING COMPLETE")
    print("=" * 60)
    print(f"Images found: {summary.discovered}")
    print(f"✓ Succeeded: {summary.succeeded}")
    print(f"✗ Failed: {summary.failed}")
    print(f"📁 Results saved to: {summary.output_root}")
    print("=" * 60)


def main() -> int:
    settings = load_settings()
    configure_logging(settings.log_level)

    print("\n" + "=" * 60)
    print("SQUARE IMAGE BATCH RESIZE")
    print(f"Target: {settings.target_size}x{settings.target_size}px, quality={settings.quality}")
    print("=" * 60)

    try:
        summary = run(settings.input_dir, settings.output_dir, settings=settings)
    except SquareImagesError as e:
        logger.critical(f"❌ Critical error: {e}")
        return 1

    if summary.discovered:
        print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
