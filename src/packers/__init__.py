"""MaxRects packing engine for runtime texture atlases."""

from packers.free_rects import FreeRectSet
from packers.heuristics import find_position
from packers.maxrects_packer import MaxRectsBinPacker
from packers.packer_types import (
    AtlasIndexError,
    CorruptRecordError,
    InvalidFrameSizeError,
    InvalidOptionsError,
    MaxRectsHeuristic,
    PackerError,
    PackerErrorCode,
    RecordFormatError,
    Rect,
    UnknownHeuristicError,
)

__all__ = [
    "AtlasIndexError",
    "CorruptRecordError",
    "FreeRectSet",
    "InvalidFrameSizeError",
    "InvalidOptionsError",
    "MaxRectsBinPacker",
    "MaxRectsHeuristic",
    "PackerError",
    "PackerErrorCode",
    "RecordFormatError",
    "Rect",
    "UnknownHeuristicError",
    "find_position",
]
