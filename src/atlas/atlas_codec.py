#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Save and restore atlas layouts without re-running the packer.

An `AtlasRecord` captures the bin size, the heuristic, both the free and
used rectangle lists, and the identifiers of a `DynamicAtlas`. The free
list is part of the record so a restored atlas can keep accepting
inserts exactly as the original would have.

Records are plain data; `record_to_json` / `record_from_json` provide a
JSON transport. Restoring validates the geometry and reports an
inconsistent layout with `CorruptRecordError`, separately from
`RecordFormatError` for documents that are malformed.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from atlas.dynamic_atlas import DynamicAtlas
from atlas.surface import AtlasSurface
from packers.free_rects import redundant_mask
from packers.maxrects_packer import MaxRectsBinPacker
from packers.packer_types import (
    CorruptRecordError,
    MaxRectsHeuristic,
    Number,
    PackerErrorCode,
    RecordFormatError,
    Rect,
    UnknownHeuristicError,
)

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


@dataclass
class AtlasRecord:
    """Transport-neutral snapshot of an atlas layout.

    Attributes:
        name: Atlas name.
        bin_width: Bin width.
        bin_height: Bin height.
        heuristic: Heuristic key, e.g. 'bssf'.
        free_rects: Free rectangles in packer order.
        used_rects: Placed rectangles in insertion order.
        identifiers: Identifier of each placed rectangle.
        format_version: Layout format revision.
    """

    name: str
    bin_width: Number
    bin_height: Number
    heuristic: str
    free_rects: List[Rect] = field(default_factory=list)
    used_rects: List[Rect] = field(default_factory=list)
    identifiers: List[str] = field(default_factory=list)
    format_version: int = FORMAT_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format_version": self.format_version,
            "name": self.name,
            "bin_width": self.bin_width,
            "bin_height": self.bin_height,
            "heuristic": self.heuristic,
            "free_rects": [r.to_dict() for r in self.free_rects],
            "used_rects": [r.to_dict() for r in self.used_rects],
            "identifiers": list(self.identifiers),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "AtlasRecord":
        """Build a record from parsed data, checking its structure.

        Raises:
            RecordFormatError: If fields are missing or have the wrong type.
        """
        if not isinstance(data, dict):
            raise _format_error("Atlas record must be an object")

        for key in (
            "format_version",
            "name",
            "bin_width",
            "bin_height",
            "heuristic",
            "free_rects",
            "used_rects",
            "identifiers",
        ):
            if key not in data:
                raise _format_error(f"Atlas record is missing '{key}'", field=key)

        version = data["format_version"]
        if version != FORMAT_VERSION:
            raise _format_error(
                f"Unsupported atlas record version {version!r}",
                field="format_version",
            )

        name = data["name"]
        if not isinstance(name, str):
            raise _format_error("'name' must be a string", field="name")

        identifiers = data["identifiers"]
        if not isinstance(identifiers, list) or not all(
            isinstance(i, str) for i in identifiers
        ):
            raise _format_error(
                "'identifiers' must be a list of strings", field="identifiers"
            )

        heuristic = data["heuristic"]
        if not isinstance(heuristic, str):
            raise _format_error("'heuristic' must be a string", field="heuristic")

        return cls(
            name=name,
            bin_width=_number(data["bin_width"], "bin_width"),
            bin_height=_number(data["bin_height"], "bin_height"),
            heuristic=heuristic,
            free_rects=_rect_list(data["free_rects"], "free_rects"),
            used_rects=_rect_list(data["used_rects"], "used_rects"),
            identifiers=list(identifiers),
            format_version=version,
        )


def _format_error(message: str, **details: Any) -> RecordFormatError:
    return RecordFormatError(PackerErrorCode.INVALID_RECORD, message, details=details)


def _corrupt_error(message: str, **details: Any) -> CorruptRecordError:
    return CorruptRecordError(PackerErrorCode.CORRUPT_RECORD, message, details=details)


def _number(value: Any, name: str) -> Number:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise _format_error(f"'{name}' must be a number", field=name)
    if not math.isfinite(value):
        raise _format_error(f"'{name}' must be finite, got {value!r}", field=name)
    return value


def _rect_list(value: Any, name: str) -> List[Rect]:
    if not isinstance(value, list):
        raise _format_error(f"'{name}' must be a list", field=name)
    rects: List[Rect] = []
    for index, item in enumerate(value):
        if not isinstance(item, dict):
            raise _format_error(f"{name}[{index}] must be an object", field=name)
        try:
            rects.append(
                Rect(
                    _number(item["x"], f"{name}[{index}].x"),
                    _number(item["y"], f"{name}[{index}].y"),
                    _number(item["width"], f"{name}[{index}].width"),
                    _number(item["height"], f"{name}[{index}].height"),
                )
            )
        except KeyError as e:
            raise _format_error(
                f"{name}[{index}] is missing {e.args[0]!r}", field=name
            ) from e
    return rects


def _edges(rects: Sequence[Rect]) -> np.ndarray:
    return np.array(
        [(r.x, r.y, r.right, r.bottom) for r in rects], dtype=np.float64
    ).reshape(-1, 4)


def _overlap_matrix(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Return a boolean matrix, True where a[i] and b[j] overlap with area."""
    overlap_w = np.minimum(a[:, None, 2], b[None, :, 2]) - np.maximum(
        a[:, None, 0], b[None, :, 0]
    )
    overlap_h = np.minimum(a[:, None, 3], b[None, :, 3]) - np.maximum(
        a[:, None, 1], b[None, :, 1]
    )
    return (overlap_w > 0) & (overlap_h > 0)


def _check_inside_bin(edges: np.ndarray, width: Number, height: Number, name: str) -> None:
    if edges.size == 0:
        return
    degenerate = (edges[:, 2] <= edges[:, 0]) | (edges[:, 3] <= edges[:, 1])
    if np.any(degenerate):
        index = int(np.argmax(degenerate))
        raise _corrupt_error(
            f"{name}[{index}] has zero or negative size", field=name, index=index
        )
    outside = (
        (edges[:, 0] < 0)
        | (edges[:, 1] < 0)
        | (edges[:, 2] > width)
        | (edges[:, 3] > height)
    )
    if np.any(outside):
        index = int(np.argmax(outside))
        raise _corrupt_error(
            f"{name}[{index}] lies outside the {width}x{height} bin",
            field=name,
            index=index,
        )


def _uncovered_cell(
    rects: np.ndarray, width: Number, height: Number
) -> Optional[Tuple[float, float]]:
    """Find a spot of the bin that no rectangle in `rects` covers.

    The bin is cut into cells along every rectangle edge, so each cell is
    either fully inside a rectangle or fully outside it.

    Returns:
        The (x, y) corner of an uncovered cell, or None if the bin is covered.
    """
    xs = np.unique(np.concatenate(([0.0, width], rects[:, 0], rects[:, 2])))
    ys = np.unique(np.concatenate(([0.0, height], rects[:, 1], rects[:, 3])))
    xs = xs[(xs >= 0) & (xs <= width)]
    ys = ys[(ys >= 0) & (ys <= height)]

    covered = np.zeros((len(ys) - 1, len(xs) - 1), dtype=bool)
    for left, top, right, bottom in rects:
        x0, x1 = np.searchsorted(xs, (left, right))
        y0, y1 = np.searchsorted(ys, (top, bottom))
        covered[y0:y1, x0:x1] = True

    if covered.all():
        return None
    row, col = (int(v) for v in np.argwhere(~covered)[0])
    return float(xs[col]), float(ys[row])


def validate_record(record: AtlasRecord) -> MaxRectsHeuristic:
    """Check a record for structural and geometric consistency.

    Returns:
        The record's heuristic.

    Raises:
        RecordFormatError: If the record is structurally malformed.
        CorruptRecordError: If the record's geometry is inconsistent.
    """
    try:
        heuristic = MaxRectsHeuristic.from_key(record.heuristic)
    except UnknownHeuristicError as e:
        raise _format_error(e.message, field="heuristic") from e

    if len(record.identifiers) != len(record.used_rects):
        raise _format_error(
            f"Record has {len(record.identifiers)} identifiers for "
            f"{len(record.used_rects)} used rects",
            field="identifiers",
        )

    width, height = record.bin_width, record.bin_height
    if not (0 < width < math.inf and 0 < height < math.inf):
        raise _corrupt_error(
            f"Bin dimensions must be positive and finite, got {width}x{height}",
            field="bin_width",
        )

    used = _edges(record.used_rects)
    free = _edges(record.free_rects)
    for edges, name in ((used, "used_rects"), (free, "free_rects")):
        finite = np.isfinite(edges).all(axis=1)
        if not finite.all():
            index = int(np.argmin(finite))
            raise _corrupt_error(
                f"{name}[{index}] has a non-finite coordinate", field=name, index=index
            )
    _check_inside_bin(used, width, height, "used_rects")
    _check_inside_bin(free, width, height, "free_rects")

    used_area = sum(r.area for r in record.used_rects)
    if used_area > width * height:
        raise _corrupt_error(
            f"Used area {used_area} exceeds bin area {width * height}",
            field="used_rects",
        )

    if len(used) > 1:
        overlaps = np.triu(_overlap_matrix(used, used), k=1)
        if np.any(overlaps):
            i, j = (int(v) for v in np.argwhere(overlaps)[0])
            raise _corrupt_error(
                f"used_rects[{i}] overlaps used_rects[{j}]", field="used_rects", index=i
            )

    if len(used) and len(free):
        overlaps = _overlap_matrix(free, used)
        if np.any(overlaps):
            i, j = (int(v) for v in np.argwhere(overlaps)[0])
            raise _corrupt_error(
                f"free_rects[{i}] overlaps used_rects[{j}]", field="free_rects", index=i
            )

    redundant = redundant_mask(record.free_rects)
    if np.any(redundant):
        index = int(np.argmax(redundant))
        raise _corrupt_error(
            f"free_rects[{index}] is covered by another free rect",
            field="free_rects",
            index=index,
        )

    hole = _uncovered_cell(np.concatenate((used, free)), width, height)
    if hole is not None:
        raise _corrupt_error(
            f"Point {hole} of the bin is neither free nor used",
            field="free_rects",
            point=hole,
        )

    return heuristic


def serialize_atlas(atlas: DynamicAtlas) -> AtlasRecord:
    """Capture the layout of `atlas`, committing pending inserts first."""
    atlas.commit()
    return AtlasRecord(
        name=atlas.name,
        bin_width=atlas.width,
        bin_height=atlas.height,
        heuristic=atlas.heuristic.value,
        free_rects=list(atlas.free_rects),
        used_rects=list(atlas.used_rects),
        identifiers=list(atlas.identifiers),
    )


def deserialize_atlas(
    record: AtlasRecord,
    surface: Optional[AtlasSurface] = None,
) -> DynamicAtlas:
    """Rebuild an atlas from a record, verbatim.

    Args:
        record: Layout to restore.
        surface: Optional surface already holding the matching pixels.

    Returns:
        A new, applied atlas.

    Raises:
        RecordFormatError: If the record is structurally malformed.
        CorruptRecordError: If the record's geometry is inconsistent.
    """
    heuristic = validate_record(record)
    packer = MaxRectsBinPacker.from_state(
        record.bin_width,
        record.bin_height,
        heuristic,
        record.free_rects,
        record.used_rects,
    )
    logger.debug(
        "Restored atlas '%s' with %d placements and %d free rects",
        record.name,
        len(record.used_rects),
        len(record.free_rects),
    )
    return DynamicAtlas._restore(record.name, packer, record.identifiers, surface)


def record_to_json(record: AtlasRecord, indent: Optional[int] = 2) -> str:
    return json.dumps(record.to_dict(), indent=indent, allow_nan=False)


def record_from_json(text: str) -> AtlasRecord:
    """Parse a JSON document into a record.

    Raises:
        RecordFormatError: If the text is not valid JSON or not a record.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise _format_error(f"Atlas record is not valid JSON: {e}") from e
    return AtlasRecord.from_dict(data)


__all__ = [
    "AtlasRecord",
    "FORMAT_VERSION",
    "deserialize_atlas",
    "record_from_json",
    "record_to_json",
    "serialize_atlas",
    "validate_record",
]
