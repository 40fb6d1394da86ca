#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Placement heuristics for the MaxRects packer.

Each heuristic scores a candidate free rectangle with a (primary, secondary)
tuple where lower is better. Candidates are compared lexicographically and
only a strictly better score replaces the current best, so the first free
rectangle in list order wins ties.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Tuple

from packers.free_rects import FreeRectSet
from packers.packer_types import MaxRectsHeuristic, Number, Rect

Score = Tuple[float, float]
ScoreFunction = Callable[[FreeRectSet, Rect, Number, Number], Score]


def _score_bssf(rect_set: FreeRectSet, rect: Rect, width: Number, height: Number) -> Score:
    leftover_w = rect.width - width
    leftover_h = rect.height - height
    return (float(min(leftover_w, leftover_h)), float(max(leftover_w, leftover_h)))


def _score_blsf(rect_set: FreeRectSet, rect: Rect, width: Number, height: Number) -> Score:
    leftover_w = rect.width - width
    leftover_h = rect.height - height
    return (float(max(leftover_w, leftover_h)), float(min(leftover_w, leftover_h)))


def _score_baf(rect_set: FreeRectSet, rect: Rect, width: Number, height: Number) -> Score:
    leftover_area = rect.width * rect.height - width * height
    short_side = min(rect.width - width, rect.height - height)
    return (float(leftover_area), float(short_side))


def _score_bl(rect_set: FreeRectSet, rect: Rect, width: Number, height: Number) -> Score:
    top_side_y = rect.y + height
    return (float(top_side_y), float(rect.x))


def _score_cp(rect_set: FreeRectSet, rect: Rect, width: Number, height: Number) -> Score:
    contact = contact_score(rect_set, rect.x, rect.y, width, height)
    return (-float(contact), 0.0)


SCORE_FUNCTIONS: Dict[MaxRectsHeuristic, ScoreFunction] = {
    MaxRectsHeuristic.BSSF: _score_bssf,
    MaxRectsHeuristic.BLSF: _score_blsf,
    MaxRectsHeuristic.BAF: _score_baf,
    MaxRectsHeuristic.BL: _score_bl,
    MaxRectsHeuristic.CP: _score_cp,
}


def _shared_length(start_a: Number, end_a: Number, start_b: Number, end_b: Number) -> Number:
    """Length of the overlap of two intervals on one axis, 0 if disjoint."""
    return max(0, min(end_a, end_b) - max(start_a, start_b))


def contact_score(
    rect_set: FreeRectSet,
    x: Number,
    y: Number,
    width: Number,
    height: Number,
) -> Number:
    """Measure how much of a candidate's outline touches something solid.

    The bin border and every used rectangle count. Each bin side the
    candidate lies on adds its full edge length, so a rectangle spanning
    the whole bin touches all four sides.

    Returns:
        Total contact length; higher means a tighter fit.
    """
    right = x + width
    bottom = y + height

    on_border = (
        (x == 0, height),
        (y == 0, width),
        (right == rect_set.bin_width, height),
        (bottom == rect_set.bin_height, width),
    )
    contact: Number = sum(length for touching, length in on_border if touching)

    for used in rect_set.used_rects:
        if x == used.right or right == used.x:
            contact += _shared_length(y, bottom, used.y, used.bottom)
        if y == used.bottom or bottom == used.y:
            contact += _shared_length(x, right, used.x, used.right)

    return contact


def find_position(
    rect_set: FreeRectSet,
    width: Number,
    height: Number,
    heuristic: MaxRectsHeuristic,
) -> Optional[Tuple[int, Rect]]:
    """Find the best free rectangle for a rectangle of the given size.

    Args:
        rect_set: Free/used rectangles of the bin.
        width: Requested width.
        height: Requested height.
        heuristic: Heuristic used to rank candidate free rectangles.

    Returns:
        (index of the chosen free rectangle, placement rect), or None if
        no free rectangle is large enough.
    """
    score_fn = SCORE_FUNCTIONS[heuristic]
    best_score: Score = (float("inf"), float("inf"))
    best: Optional[Tuple[int, Rect]] = None

    for index, rect in enumerate(rect_set.free_rects):
        if width <= rect.width and height <= rect.height:
            score = score_fn(rect_set, rect, width, height)
            if best is None or score < best_score:
                best_score = score
                best = (index, Rect(rect.x, rect.y, width, height))

    return best


__all__ = [
    "SCORE_FUNCTIONS",
    "Score",
    "contact_score",
    "find_position",
]
