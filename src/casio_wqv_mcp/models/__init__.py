"""Data models for downloaded photos."""

from .image import ImageBlob, parse_image_blob
