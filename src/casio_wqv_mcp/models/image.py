"""Image blob model: the 7229-byte payload of a photo download.

Layout::

    +-----------+------+-------+-----+------+--------+---------------------+
    | Name      | Year | Month | Day | Hour | Minute | Pixels              |
    | 24 bytes  | 1 B  | 1 B   | 1 B | 1 B  | 1 B    | 7200 bytes          |
    +-----------+------+-------+-----+------+--------+---------------------+

- Name: space-padded text.
- Year: offset from 2000.
- Hour and minute are stored in this order; the public protocol notes
  list them the other way round, which is wrong.
- Pixels: 120x120, one nibble per pixel, left packed.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime, timezone

from ..errors import DataError

NAME_SIZE = 24
HEADER_FORMAT = f"<{NAME_SIZE}s5B"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)  # 29

WIDTH = 120
HEIGHT = 120
BITS_PER_PIXEL = 4
PIXEL_DATA_SIZE = WIDTH * HEIGHT * BITS_PER_PIXEL // 8  # 7200
BLOB_SIZE = HEADER_SIZE + PIXEL_DATA_SIZE  # 7229


@dataclass(frozen=True)
class ImageBlob:
    """A photo as stored on the watch."""

    name: str
    timestamp: datetime
    pixels: bytes

    def __repr__(self) -> str:
        return (
            f"ImageBlob(name={self.name!r}, timestamp={self.timestamp.isoformat()}, "
            f"pixels={len(self.pixels)} bytes)"
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "timestamp": self.timestamp.isoformat(),
            "width": WIDTH,
            "height": HEIGHT,
            "bits_per_pixel": BITS_PER_PIXEL,
            "pixel_bytes": len(self.pixels),
        }

    @classmethod
    def from_bytes(cls, data: bytes) -> ImageBlob:
        return parse_image_blob(data)


def parse_image_blob(data: bytes) -> ImageBlob:
    """Decode a downloaded image payload.

    Raises:
        DataError: If the payload has the wrong size, the name is not
            valid text, or the date fields are not a real date.
    """
    if len(data) != BLOB_SIZE:
        raise DataError(
            f"Image data must be exactly {BLOB_SIZE} bytes, "
            f"but {len(data)} bytes given"
        )

    raw_name, year, month, day, hour, minute = struct.unpack_from(HEADER_FORMAT, data)

    try:
        name = raw_name.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise DataError(f"Invalid text in image name: {e}") from e

    try:
        timestamp = datetime(2000 + year, month, day, hour, minute, 0, tzinfo=timezone.utc)
    except ValueError as e:
        raise DataError(
            f"Invalid image date {2000 + year:04d}-{month:02d}-{day:02d} "
            f"{hour:02d}:{minute:02d}: {e}"
        ) from e

    return ImageBlob(name=name, timestamp=timestamp, pixels=bytes(data[HEADER_SIZE:]))
