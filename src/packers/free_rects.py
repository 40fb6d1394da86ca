#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Free space bookkeeping for a single atlas bin.

The bin's unused area is kept as a list of maximal free rectangles, which
may overlap one another. Each placement carves the placed rectangle out of
every free rectangle it touches and then drops leftovers that another free
rectangle already covers.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

import numpy as np

from packers.packer_types import Number, Rect

# Above this many free rectangles pruning switches to the NumPy path.
NUMPY_PRUNE_THRESHOLD = 20


def redundant_mask(rects: Sequence[Rect]) -> np.ndarray:
    """Flag rectangles that another rectangle in the list already covers.

    A rectangle is redundant when a different one contains it. Of several
    identical rectangles, all but the last are redundant.

    Args:
        rects: Rectangles to test against each other.

    Returns:
        Boolean array, True where the rectangle can be dropped.
    """
    if not rects:
        return np.zeros(0, dtype=bool)

    edges = np.array(
        [(r.x, r.y, r.right, r.bottom) for r in rects], dtype=np.float64
    )
    left, top, right, bottom = (edges[:, k] for k in range(4))

    # covers[i, j]: rect j contains rect i
    covers = (
        (left[None, :] <= left[:, None])
        & (top[None, :] <= top[:, None])
        & (right[None, :] >= right[:, None])
        & (bottom[None, :] >= bottom[:, None])
    )
    same = np.all(edges[:, None, :] == edges[None, :, :], axis=2)
    later = np.triu(np.ones((len(rects), len(rects)), dtype=bool), k=1)

    return np.any(covers & (~same | later), axis=1)


class FreeRectSet:
    """Free and used rectangles of one fixed-size bin.

    Attributes:
        bin_width: Width of the bin.
        bin_height: Height of the bin.
    """

    def __init__(self, bin_width: Number, bin_height: Number) -> None:
        self.bin_width = bin_width
        self.bin_height = bin_height
        self._free: List[Rect] = [Rect(0, 0, bin_width, bin_height)]
        self._used: List[Rect] = []

    @classmethod
    def from_rects(
        cls,
        bin_width: Number,
        bin_height: Number,
        free_rects: Iterable[Rect],
        used_rects: Iterable[Rect],
    ) -> "FreeRectSet":
        """Rebuild a set from previously captured rectangles, verbatim."""
        rect_set = cls(bin_width, bin_height)
        rect_set._free = list(free_rects)
        rect_set._used = list(used_rects)
        return rect_set

    @property
    def free_rects(self) -> Tuple[Rect, ...]:
        return tuple(self._free)

    @property
    def used_rects(self) -> Tuple[Rect, ...]:
        return tuple(self._used)

    def __len__(self) -> int:
        return len(self._free)

    def place(self, rect: Rect) -> None:
        """Mark `rect` as used and carve it out of the free space.

        `rect` must lie inside a single free rectangle, as returned by
        `heuristics.find_position`.
        """
        self._used.append(rect)
        self.split(rect)
        self.prune_redundant()

    def split(self, placed: Rect) -> None:
        """Replace every free rectangle that overlaps `placed` by its leftovers.

        Untouched free rectangles keep their position in the list, and the
        leftovers of a split rectangle take its place.
        """
        remaining: List[Rect] = []
        for free_rect in self._free:
            if free_rect.intersects(placed):
                remaining.extend(self._leftovers(free_rect, placed))
            else:
                remaining.append(free_rect)
        self._free = remaining

    @staticmethod
    def _leftovers(free_rect: Rect, placed: Rect) -> List[Rect]:
        """Return the bands of `free_rect` left, right, above and below `placed`.

        Each band spans the whole free rectangle along the other axis, so
        bands overlap at the corners. Empty bands are dropped.
        """
        bands = (
            Rect(free_rect.x, free_rect.y, placed.x - free_rect.x, free_rect.height),
            Rect(placed.right, free_rect.y, free_rect.right - placed.right, free_rect.height),
            Rect(free_rect.x, free_rect.y, free_rect.width, placed.y - free_rect.y),
            Rect(free_rect.x, placed.bottom, free_rect.width, free_rect.bottom - placed.bottom),
        )
        return [band for band in bands if band.width > 0 and band.height > 0]

    def prune_redundant(self) -> None:
        """Drop free rectangles covered by another free rectangle.

        Every pair is compared, so one call leaves the list maximal. Short
        lists use a plain scan; longer ones the vectorized `redundant_mask`.
        Both keep the same rectangles in the same order.
        """
        if len(self._free) <= 1:
            return

        if len(self._free) > NUMPY_PRUNE_THRESHOLD:
            self._prune_numpy()
        else:
            self._prune_simple()

    def _prune_simple(self) -> None:
        free = self._free
        self._free = [
            rect
            for i, rect in enumerate(free)
            if not any(
                other.contains(rect) and (other != rect or j > i)
                for j, other in enumerate(free)
                if j != i
            )
        ]

    def _prune_numpy(self) -> None:
        drop = redundant_mask(self._free)
        self._free = [rect for rect, dropped in zip(self._free, drop) if not dropped]

    def used_area(self) -> Number:
        return sum(r.area for r in self._used)


__all__ = ["FreeRectSet", "NUMPY_PRUNE_THRESHOLD", "redundant_mask"]
