"""
Single image transform: centered square crop, resize, re-encode, write.

Pixel work goes through an ImageCodec (Pillow by default) so the pipeline can
be tested with a codec that fails on demand. `transform` never raises; every
error becomes a Failure outcome carrying the original message.
"""

import os
from abc import ABC, abstractmethod
from contextlib import closing
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from resize_settings import ResizeSettings
from square_errors import DecodeError

JPEG_MODES = ('RGB', 'L', 'CMYK')
PNG_MODES = ('1', 'L', 'LA', 'I', 'I;16', 'P', 'RGB', 'RGBA')
PNG_COMPRESS_LEVEL = 9


@dataclass(frozen=True)
class CropRegion:
    left: int
    top: int
    width: int
    height: int

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """(left, upper, right, lower) as Pillow's crop() expects."""
        return (self.left, self.top, self.left + self.width, self.top + self.height)


def compute_crop_region(width: int, height: int) -> CropRegion:
    """Largest square centered in a width x height image."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    side = min(width, height)
    left = (width - side) // 2
    top = (height - side) // 2
    return CropRegion(left=left, top=top, width=side, height=side)


def resize_side(side: int, target_size: int) -> int:
    """Output side for a square crop: the target, but never larger than the crop."""
    return min(side, target_size)


# ---------- Encoder options ----------

@dataclass(frozen=True)
class JpegOptions:
    quality: int
    optimize: bool = True
    progressive: bool = True
    format: ClassVar[str] = 'JPEG'

    def save_params(self) -> Dict[str, Any]:
        return {'quality': self.quality, 'optimize': self.optimize, 'progressive': self.progressive}


@dataclass(frozen=True)
class PngOptions:
    compress_level: int = PNG_COMPRESS_LEVEL
    optimize: bool = True
    # Pillow writes PNG losslessly only, so the quality hint is not passed on
    quality: Optional[int] = None
    format: ClassVar[str] = 'PNG'

    def save_params(self) -> Dict[str, Any]:
        return {'compress_level': self.compress_level, 'optimize': self.optimize}


@dataclass(frozen=True)
class WebpOptions:
    quality: int
    format: ClassVar[str] = 'WEBP'

    def save_params(self) -> Dict[str, Any]:
        return {'quality': self.quality}


@dataclass(frozen=True)
class DefaultOptions:
    """Container defaults (TIFF, GIF): no quality override."""
    format: str

    def save_params(self) -> Dict[str, Any]:
        return {}


EncoderOptions = Union[JpegOptions, PngOptions, WebpOptions, DefaultOptions]


def encoder_options_for(path: Union[str, Path], quality: int) -> EncoderOptions:
    """Pick encoder settings from the input file's extension."""
    ext = Path(path).suffix.lower()
    if ext in ('.jpg', '.jpeg'):
        return JpegOptions(quality=quality)
    if ext == '.png':
        return PngOptions(quality=quality)
    if ext == '.webp':
        return WebpOptions(quality=quality)

    fmt = Image.registered_extensions().get(ext)
    if fmt is None:
        raise ValueError(f"No encoder registered for extension '{ext}'")
    return DefaultOptions(format=fmt)


# ---------- Codec ----------

class ImageCodec(ABC):
    """Pixel operations the transformer depends on."""

    @abstractmethod
    def decode(self, path: Path) -> Image.Image:
        raise NotImplementedError

    @abstractmethod
    def extract(self, image: Image.Image, region: CropRegion) -> Image.Image:
        raise NotImplementedError

    @abstractmethod
    def resize(self, image: Image.Image, side: int) -> Image.Image:
        raise NotImplementedError

    @abstractmethod
    def encode(self, image: Image.Image, options: EncoderOptions) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def write_file(self, path: Path, data: bytes) -> None:
        raise NotImplementedError


class PillowCodec(ImageCodec):
    def __init__(self, resample: int = Image.Resampling.LANCZOS):
        self.resample = resample

    def decode(self, path: Path) -> Image.Image:
        """Open and fully load an image so corrupt data fails here."""
        img = None
        try:
            img = Image.open(path)
            img.load()
            return img
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            if img is not None:
                img.close()
            raise DecodeError(f"Cannot decode {path}: {e}") from e

    def extract(self, image: Image.Image, region: CropRegion) -> Image.Image:
        return image.crop(region.box)

    def resize(self, image: Image.Image, side: int) -> Image.Image:
        return image.resize((side, side), self.resample)

    def encode(self, image: Image.Image, options: EncoderOptions) -> bytes:
        converted = None
        if isinstance(options, JpegOptions) and image.mode not in JPEG_MODES:
            converted = image = image.convert('RGB')
        elif isinstance(options, PngOptions) and image.mode not in PNG_MODES:
            # CMYK, YCbCr, LAB and friends
            converted = image = image.convert('RGBA' if 'A' in image.getbands() else 'RGB')
        try:
            buffer = BytesIO()
            image.save(buffer, options.format, **options.save_params())
            return buffer.getvalue()
        finally:
            if converted is not None:
                converted.close()

    def write_file(self, path: Path, data: bytes) -> None:
        Path(path).write_bytes(data)


# ---------- Outcomes ----------

@dataclass(frozen=True)
class Success:
    input_path: Path
    output_path: Path
    size_bytes: int
    ok: ClassVar[bool] = True

    @property
    def size_kb(self) -> float:
        return self.size_bytes / 1024


@dataclass(frozen=True)
class Failure:
    input_path: Path
    error: str
    ok: ClassVar[bool] = False


ProcessingOutcome = Union[Success, Failure]


def error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


@dataclass
class ImageTransformer:
    """Crops, resizes and re-encodes one image at a time."""
    settings: ResizeSettings = field(default_factory=ResizeSettings)
    codec: ImageCodec = field(default_factory=PillowCodec)

    def transform(self, input_path: Union[str, Path], output_path: Union[str, Path]) -> ProcessingOutcome:
        input_path = Path(input_path)
        output_path = Path(output_path)
        try:
            options = encoder_options_for(input_path, self.settings.quality)
            with closing(self.codec.decode(input_path)) as image:
                width, height = image.size
                region = compute_crop_region(width, height)
                with closing(self.codec.extract(image, region)) as square:
                    data = self._resize_and_encode(square, region.width, options)

            size_bytes = self._write_atomically(output_path, data)
        except Exception as e:
            return Failure(input_path=input_path, error=error_message(e))

        return Success(input_path=input_path, output_path=output_path, size_bytes=size_bytes)

    def _write_atomically(self, output_path: Path, data: bytes) -> int:
        """
        Write through a temp file beside `output_path` and swap it in.

        A failed write leaves no partial file behind and keeps any previous
        output untouched. Returns the written size in bytes.
        """
        tmp_path = output_path.with_name(f'.{output_path.name}.tmp')
        try:
            self.codec.write_file(tmp_path, data)
            size_bytes = tmp_path.stat().st_size
            os.replace(tmp_path, output_path)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise
        return size_bytes

    def _resize_and_encode(self, square: Image.Image, side: int, options: EncoderOptions) -> bytes:
        new_side = resize_side(side, self.settings.target_size)
        if new_side == side:
            return self.codec.encode(square, options)
        with closing(self.codec.resize(square, new_side)) as resized:
            return self.codec.encode(resized, options)
