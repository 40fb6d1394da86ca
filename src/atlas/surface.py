#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Pixel surfaces that receive the images placed in an atlas.

The atlas itself only deals in rectangles. A surface receives a copy
request for every successful insert and is flushed when the atlas
commits, so many inserts can be batched into a single flush.
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Tuple

from PIL import Image

from packers.packer_types import (
    InvalidFrameSizeError,
    Number,
    PackerErrorCode,
    Rect,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageSource:
    """A named image, ready for `DynamicAtlas.insert_image`.

    Attributes:
        name: Identifier recorded for the placement.
        image: Pixels copied into the atlas.
    """

    name: str
    image: Image.Image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


def _pixels(source: Any) -> Image.Image:
    # Accept bare Pillow images as well as wrappers carrying one in `image`.
    return getattr(source, "image", source)


class AtlasSurface(ABC):
    """Destination for the pixels of placed images."""

    def check_source(self, width: Number, height: Number, source: Any) -> None:
        """Reject `source` before anything is placed for it.

        The atlas calls this ahead of packing, so a refused source leaves
        the atlas untouched. The default accepts everything.

        Raises:
            InvalidFrameSizeError: If `source` cannot fill a `width` x
                `height` rect.
        """

    @abstractmethod
    def copy_pixels_into(self, rect: Rect, source: Any) -> None:
        """Queue or perform a copy of `source` into `rect`.

        Args:
            rect: Destination rectangle, same size as the source.
            source: Opaque image handle understood by the surface.
        """

    @abstractmethod
    def apply(self) -> None:
        """Make every previous copy visible on the surface."""


class PillowSurface(AtlasSurface):
    """Surface backed by a Pillow image.

    Copies are buffered and pasted in insertion order when `apply` runs.

    Attributes:
        image: Backing image holding all applied copies.
    """

    def __init__(self, width: int, height: int, mode: str = "RGBA") -> None:
        self.image = Image.new(mode, (width, height), 0)
        self._pending: List[Tuple[Rect, Image.Image]] = []

    @classmethod
    def from_image(cls, image: Image.Image) -> "PillowSurface":
        surface = cls.__new__(cls)
        surface.image = image
        surface._pending = []
        return surface

    @classmethod
    def from_png_bytes(cls, data: bytes) -> "PillowSurface":
        """Decode a PNG payload into a surface."""
        with Image.open(io.BytesIO(data)) as image:
            return cls.from_image(image.convert("RGBA"))

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def check_source(self, width: Number, height: Number, source: Any) -> None:
        size = _pixels(source).size
        if size != (int(width), int(height)):
            raise InvalidFrameSizeError(
                PackerErrorCode.INVALID_FRAME_SIZE,
                f"Source image is {size[0]}x{size[1]} but the "
                f"target rect is {width}x{height}",
                details={"source_size": size, "target_size": (width, height)},
            )

    def copy_pixels_into(self, rect: Rect, source: Any) -> None:
        """Queue `source`, a Pillow image or an `ImageSource`, for `rect`."""
        self.check_source(rect.width, rect.height, source)
        self._pending.append((rect, _pixels(source)))

    def apply(self) -> None:
        if not self._pending:
            return
        logger.debug("Applying %d pending copies", len(self._pending))
        for rect, source in self._pending:
            if source.mode != self.image.mode:
                source = source.convert(self.image.mode)
            self.image.paste(source, (int(rect.x), int(rect.y)))
        self._pending.clear()

    def crop(self, rect: Rect) -> Image.Image:
        """Return a copy of the region covered by `rect`."""
        return self.image.crop(
            (int(rect.x), int(rect.y), int(rect.right), int(rect.bottom))
        )

    def to_png_bytes(self) -> bytes:
        """Encode the applied image as PNG. Pending copies are not included."""
        buffer = io.BytesIO()
        self.image.save(buffer, format="PNG")
        return buffer.getvalue()


__all__ = ["AtlasSurface", "ImageSource", "PillowSurface"]
