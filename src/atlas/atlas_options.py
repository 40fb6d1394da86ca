#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Construction options for dynamic atlases."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Union

from packers.packer_types import (
    InvalidOptionsError,
    MaxRectsHeuristic,
    PackerErrorCode,
)


@dataclass
class AtlasOptions:
    """Size, name and placement heuristic of a dynamic atlas.

    Attributes:
        width: Atlas width in pixels.
        height: Atlas height in pixels.
        name: Atlas name, also the default file name when saved.
        heuristic: Placement heuristic, given as enum member or key.
    """

    width: int
    height: int
    name: str = "atlas"
    heuristic: Union[str, MaxRectsHeuristic] = field(
        default=MaxRectsHeuristic.BSSF
    )

    def validate(self) -> None:
        """Check the options and normalize the heuristic to an enum member.

        Raises:
            InvalidOptionsError: If a dimension is not positive or the
                name is empty.
            UnknownHeuristicError: If the heuristic key is not recognized.
        """
        if not (0 < self.width < math.inf and 0 < self.height < math.inf):
            raise InvalidOptionsError(
                PackerErrorCode.INVALID_OPTIONS,
                f"Atlas dimensions must be positive and finite, got {self.width}x{self.height}",
                details={"width": self.width, "height": self.height},
            )
        if not self.name:
            raise InvalidOptionsError(
                PackerErrorCode.INVALID_OPTIONS,
                "Atlas name must not be empty",
            )
        self.heuristic = MaxRectsHeuristic.from_key(self.heuristic)


__all__ = ["AtlasOptions"]
