#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Shared types for the MaxRects atlas packer.

Holds the rectangle value type, the placement heuristic enum, and the
error hierarchy used by the packer, the atlas ledger, and the codec.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

Number = Union[int, float]


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle.

    A height of zero is the "no rectangle" sentinel returned when a
    placement fails.

    Attributes:
        x: Left edge.
        y: Top edge.
        width: Horizontal extent.
        height: Vertical extent.
    """

    x: Number
    y: Number
    width: Number
    height: Number

    @classmethod
    def empty(cls) -> "Rect":
        """Return the placement failure sentinel."""
        return cls(0, 0, 0, 0)

    @property
    def is_empty(self) -> bool:
        return self.height == 0

    @property
    def right(self) -> Number:
        return self.x + self.width

    @property
    def bottom(self) -> Number:
        return self.y + self.height

    @property
    def area(self) -> Number:
        return self.width * self.height

    def intersects(self, other: "Rect") -> bool:
        """Return True if the two rectangles overlap with positive area."""
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )

    def intersection_area(self, other: "Rect") -> Number:
        overlap_w = min(self.right, other.right) - max(self.x, other.x)
        overlap_h = min(self.bottom, other.bottom) - max(self.y, other.y)
        if overlap_w <= 0 or overlap_h <= 0:
            return 0
        return overlap_w * overlap_h

    def contains(self, other: "Rect") -> bool:
        """Return True if `other` lies fully inside this rectangle.

        Edges are allowed to coincide, so a rectangle contains itself.
        """
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )

    def to_dict(self) -> Dict[str, Number]:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rect":
        return cls(data["x"], data["y"], data["width"], data["height"])


class MaxRectsHeuristic(Enum):
    """Free rectangle choice heuristics for the MaxRects packer.

    Values are the stable keys used in configuration and saved layouts.
    """

    BSSF = "bssf"
    BLSF = "blsf"
    BAF = "baf"
    BL = "bl"
    CP = "cp"

    @property
    def display_name(self) -> str:
        return HEURISTIC_DISPLAY_NAMES[self]

    @classmethod
    def from_key(cls, key: Union[str, "MaxRectsHeuristic"]) -> "MaxRectsHeuristic":
        """Resolve a heuristic from its key.

        Args:
            key: Heuristic key such as 'bssf' (case-insensitive), or an
                existing enum member.

        Returns:
            The matching heuristic.

        Raises:
            UnknownHeuristicError: If the key names no heuristic.
        """
        if isinstance(key, cls):
            return key
        if isinstance(key, str):
            try:
                return cls(key.lower())
            except ValueError:
                pass
        raise UnknownHeuristicError(
            PackerErrorCode.UNKNOWN_HEURISTIC,
            f"Unknown heuristic '{key}'",
            details={"supported": [h.value for h in cls]},
        )


HEURISTIC_DISPLAY_NAMES = {
    MaxRectsHeuristic.BSSF: "Best Short Side Fit (BSSF)",
    MaxRectsHeuristic.BLSF: "Best Long Side Fit (BLSF)",
    MaxRectsHeuristic.BAF: "Best Area Fit (BAF)",
    MaxRectsHeuristic.BL: "Bottom-Left (BL)",
    MaxRectsHeuristic.CP: "Contact Point (CP)",
}


class PackerErrorCode(Enum):
    """Error categories reported by the packer and atlas layers."""

    INVALID_OPTIONS = "invalid_options"
    INVALID_FRAME_SIZE = "invalid_frame_size"
    UNKNOWN_HEURISTIC = "unknown_heuristic"
    INDEX_OUT_OF_RANGE = "index_out_of_range"
    INVALID_RECORD = "invalid_record"
    CORRUPT_RECORD = "corrupt_record"


class PackerError(Exception):
    """Base error for packing and atlas operations.

    Attributes:
        code: Machine-readable error category.
        message: Human-readable description.
        details: Optional extra context for diagnostics.
    """

    def __init__(
        self,
        code: PackerErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


class InvalidOptionsError(PackerError, ValueError):
    """Raised when construction or storage options are invalid."""


class InvalidFrameSizeError(PackerError, ValueError):
    """Raised when a requested size cannot describe a real frame."""


class UnknownHeuristicError(PackerError, ValueError):
    """Raised when a heuristic key is not recognized."""


class AtlasIndexError(PackerError, IndexError):
    """Raised when a placement index is outside the ledger."""


class RecordFormatError(PackerError, ValueError):
    """Raised when a saved layout is structurally malformed."""


class CorruptRecordError(PackerError):
    """Raised when a saved layout parses but its geometry is inconsistent."""


__all__ = [
    "AtlasIndexError",
    "CorruptRecordError",
    "HEURISTIC_DISPLAY_NAMES",
    "InvalidFrameSizeError",
    "InvalidOptionsError",
    "MaxRectsHeuristic",
    "Number",
    "PackerError",
    "PackerErrorCode",
    "RecordFormatError",
    "Rect",
    "UnknownHeuristicError",
]
