"""Exceptions raised by the square image resizer."""


class SquareImagesError(Exception):
    """Base class for resizer errors"""


class FatalSetupError(SquareImagesError):
    """Input or output root could not be created or read"""


class ScanError(SquareImagesError):
    """A directory could not be read while scanning for images"""

    def __init__(self, path, message: str):
        self.path = path
        super().__init__(f"Cannot read directory {path}: {message}")


class DecodeError(SquareImagesError):
    """A file is not a readable image"""
