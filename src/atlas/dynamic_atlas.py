#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Runtime texture atlas that packs images one at a time.

A `DynamicAtlas` owns one MaxRects bin and an ordered ledger of the
identifiers placed in it. Inserts only record geometry and queue pixel
copies on the optional surface; the surface is synchronized by `commit`,
which every read runs first. Callers can therefore batch many inserts
and pay for the flush once, on the first read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple, Union

from atlas.atlas_options import AtlasOptions
from atlas.surface import AtlasSurface
from packers.maxrects_packer import MaxRectsBinPacker
from packers.packer_types import (
    AtlasIndexError,
    MaxRectsHeuristic,
    PackerErrorCode,
    Rect,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacementRecord:
    """Where one image landed in the atlas.

    Attributes:
        identifier: Caller-supplied image name.
        rect: Region of the atlas holding the image.
    """

    identifier: str
    rect: Rect


class DynamicAtlas:
    """Named atlas of fixed size filled by successive inserts.

    Attributes:
        name: Atlas name.
        surface: Optional pixel surface receiving placed images.
    """

    def __init__(
        self,
        width: int,
        height: int,
        name: str,
        heuristic: Union[str, MaxRectsHeuristic] = MaxRectsHeuristic.BSSF,
        surface: Optional[AtlasSurface] = None,
    ) -> None:
        options = AtlasOptions(width=width, height=height, name=name, heuristic=heuristic)
        options.validate()

        self.name = options.name
        self.surface = surface
        self._method: MaxRectsHeuristic = options.heuristic
        self._packer = MaxRectsBinPacker(width, height, self._method)
        self._identifiers: List[str] = []
        self._applied = True

    @classmethod
    def square(
        cls,
        size: int,
        name: str,
        heuristic: Union[str, MaxRectsHeuristic] = MaxRectsHeuristic.BSSF,
        surface: Optional[AtlasSurface] = None,
    ) -> "DynamicAtlas":
        return cls(size, size, name, heuristic, surface)

    @classmethod
    def from_options(
        cls,
        options: AtlasOptions,
        surface: Optional[AtlasSurface] = None,
    ) -> "DynamicAtlas":
        return cls(options.width, options.height, options.name, options.heuristic, surface)

    @classmethod
    def _restore(
        cls,
        name: str,
        packer: MaxRectsBinPacker,
        identifiers: Iterable[str],
        surface: Optional[AtlasSurface] = None,
    ) -> "DynamicAtlas":
        """Build an applied atlas around an already populated packer."""
        atlas = cls.__new__(cls)
        atlas.name = name
        atlas.surface = surface
        atlas._method = packer.heuristic
        atlas._packer = packer
        atlas._identifiers = list(identifiers)
        atlas._applied = True
        return atlas

    @property
    def heuristic(self) -> MaxRectsHeuristic:
        return self._method

    @property
    def width(self) -> int:
        return self._packer.bin_width

    @property
    def height(self) -> int:
        return self._packer.bin_height

    @property
    def bin_rect(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    @property
    def is_applied(self) -> bool:
        return self._applied

    @property
    def identifiers(self) -> Tuple[str, ...]:
        return tuple(self._identifiers)

    @property
    def free_rects(self) -> Tuple[Rect, ...]:
        return self._packer.free_rects

    @property
    def used_rects(self) -> Tuple[Rect, ...]:
        return self._packer.used_rects

    @property
    def count(self) -> int:
        return len(self._identifiers)

    def __len__(self) -> int:
        return len(self._identifiers)

    def occupancy(self) -> float:
        return self._packer.occupancy()

    # Write

    def insert(
        self,
        identifier: str,
        width: int,
        height: int,
        source: Any = None,
    ) -> bool:
        """Place an image of the given size in the atlas.

        Args:
            identifier: Name recorded for the placement.
            width: Image width.
            height: Image height.
            source: Optional image handle passed to the surface for copying.

        Returns:
            True if the image was placed, False if the atlas has no room.

        Raises:
            InvalidFrameSizeError: If the size is not positive or the surface
                refuses `source`. The atlas is left unchanged.
        """
        if self.surface is not None and source is not None:
            self.surface.check_source(width, height, source)

        rect = self._packer.insert(width, height, self._method)
        if rect.is_empty:
            logger.info(
                "Atlas '%s' has no room for '%s' (%sx%s), occupancy %.3f",
                self.name,
                identifier,
                width,
                height,
                self.occupancy(),
            )
            return False

        self._identifiers.append(identifier)
        if self.surface is not None and source is not None:
            self.surface.copy_pixels_into(rect, source)
        self._applied = False
        logger.debug("Atlas '%s' inserted '%s' at %s", self.name, identifier, rect)
        return True

    def insert_image(self, source: Any) -> bool:
        """Insert an image handle exposing `name`, `width` and `height`.

        `atlas.surface.ImageSource` is such a handle and is understood by
        `PillowSurface`.
        """
        return self.insert(source.name, source.width, source.height, source)

    def commit(self) -> None:
        """Synchronize the surface with every previous insert."""
        if self._applied:
            return
        if self.surface is not None:
            self.surface.apply()
        self._applied = True
        logger.debug("Atlas '%s' committed %d placements", self.name, len(self))

    # Read

    def _ensure_committed(self) -> None:
        if not self._applied:
            self.commit()

    def get(self, identifier: str) -> Optional[PlacementRecord]:
        """Return the first placement recorded under `identifier`.

        Commits pending inserts first.

        Returns:
            The placement, or None if no image has that identifier.
        """
        self._ensure_committed()
        try:
            index = self._identifiers.index(identifier)
        except ValueError:
            return None
        return self._record(index)

    def get_at(self, index: int) -> PlacementRecord:
        """Return the placement at `index` in insertion order.

        Commits pending inserts first.

        Raises:
            AtlasIndexError: If `index` is not in ``range(len(self))``.
        """
        self._ensure_committed()
        if not 0 <= index < len(self._identifiers):
            raise AtlasIndexError(
                PackerErrorCode.INDEX_OUT_OF_RANGE,
                f"Placement index {index} out of range for atlas '{self.name}' "
                f"with {len(self._identifiers)} placements",
                details={"index": index, "count": len(self._identifiers)},
            )
        return self._record(index)

    def placements(self) -> Tuple[PlacementRecord, ...]:
        """Return every placement in insertion order. Commits first."""
        self._ensure_committed()
        return tuple(
            PlacementRecord(identifier, rect)
            for identifier, rect in zip(self._identifiers, self._packer.used_rects)
        )

    def _record(self, index: int) -> PlacementRecord:
        return PlacementRecord(self._identifiers[index], self._packer.used_rects[index])


__all__ = ["DynamicAtlas", "PlacementRecord"]
