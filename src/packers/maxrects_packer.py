#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""MaxRects bin packing algorithm with multiple placement heuristics.

Maintains maximal free rectangles and splits/prunes them as rectangles are
placed, one at a time, into a single fixed-size bin.

Based on Jukka Jylänki's paper "A Thousand Ways to Pack the Bin" and
reference implementation: https://github.com/juj/RectangleBinPack
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional, Tuple, Union

from packers.free_rects import FreeRectSet
from packers.heuristics import find_position
from packers.packer_types import (
    InvalidFrameSizeError,
    InvalidOptionsError,
    MaxRectsHeuristic,
    Number,
    PackerErrorCode,
    Rect,
)

logger = logging.getLogger(__name__)


class MaxRectsBinPacker:
    """Online MaxRects packer for a single bin.

    Rectangles are inserted one by one; the bin never grows. When nothing
    fits, `insert` returns the empty sentinel rect and leaves the bin
    unchanged.

    The default heuristic is fixed at construction; `insert` accepts a
    different one for a single call.
    """

    def __init__(
        self,
        width: Number,
        height: Number,
        heuristic: Union[str, MaxRectsHeuristic] = MaxRectsHeuristic.BSSF,
    ) -> None:
        if not (0 < width < math.inf and 0 < height < math.inf):
            raise InvalidOptionsError(
                PackerErrorCode.INVALID_OPTIONS,
                f"Bin dimensions must be positive and finite, got {width}x{height}",
                details={"width": width, "height": height},
            )
        self._heuristic = MaxRectsHeuristic.from_key(heuristic)
        self._rects = FreeRectSet(width, height)

    @classmethod
    def from_state(
        cls,
        width: Number,
        height: Number,
        heuristic: Union[str, MaxRectsHeuristic],
        free_rects: Iterable[Rect],
        used_rects: Iterable[Rect],
    ) -> "MaxRectsBinPacker":
        """Restore a packer from captured free and used rectangles.

        No placement is re-run; the rectangles are taken as given.
        """
        packer = cls(width, height, heuristic)
        packer._rects = FreeRectSet.from_rects(width, height, free_rects, used_rects)
        return packer

    @property
    def heuristic(self) -> MaxRectsHeuristic:
        return self._heuristic

    @property
    def bin_width(self) -> Number:
        return self._rects.bin_width

    @property
    def bin_height(self) -> Number:
        return self._rects.bin_height

    @property
    def free_rects(self) -> Tuple[Rect, ...]:
        return self._rects.free_rects

    @property
    def used_rects(self) -> Tuple[Rect, ...]:
        return self._rects.used_rects

    def insert(
        self,
        width: Number,
        height: Number,
        heuristic: Optional[Union[str, MaxRectsHeuristic]] = None,
    ) -> Rect:
        """Place a rectangle of the given size.

        Args:
            width: Requested width, must be positive.
            height: Requested height, must be positive.
            heuristic: Heuristic for this call only; defaults to the
                packer's heuristic.

        Returns:
            The placed rectangle, or `Rect.empty()` (height 0) if no free
            rectangle can hold the request.

        Raises:
            InvalidFrameSizeError: If a dimension is zero or negative.
        """
        if width <= 0 or height <= 0:
            raise InvalidFrameSizeError(
                PackerErrorCode.INVALID_FRAME_SIZE,
                f"Requested size must be positive, got {width}x{height}",
                details={"width": width, "height": height},
            )

        method = (
            self._heuristic
            if heuristic is None
            else MaxRectsHeuristic.from_key(heuristic)
        )
        found = find_position(self._rects, width, height, method)
        if found is None:
            logger.debug(
                "No free rect fits %sx%s (%d free rects)",
                width,
                height,
                len(self._rects),
            )
            return Rect.empty()

        _, placed = found
        self._rects.place(placed)
        logger.debug(
            "Placed %sx%s at (%s, %s) using %s, %d free rects",
            width,
            height,
            placed.x,
            placed.y,
            method.value,
            len(self._rects),
        )
        return placed

    def occupancy(self) -> float:
        """Return the ratio of used area to total bin area."""

        total_area = self.bin_width * self.bin_height
        return self._rects.used_area() / total_area if total_area > 0 else 0.0


__all__ = ["MaxRectsBinPacker"]
