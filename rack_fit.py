from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping


class Orientation(str, Enum):
    STANDARD = "standard"
    SIDEWAYS = "sideways"


class SizingMode(str, Enum):
    MAX = "max"
    MANUAL = "manual"


class ToteType(str, Enum):
    HDX27 = "hdx27"
    CUSTOM = "custom"


class RackFitError(ValueError):
    pass


# Wall input bounds (inches).
WALL_WIDTH_RANGE_IN = (24.0, 360.0)
WALL_HEIGHT_RANGE_IN = (24.0, 180.0)

# Brute-force probe ceiling for both axes.
MAX_PROBE = 20
# 8' vertical framing limit.
MAX_ROWS = 5

_FIT_EPSILON_IN = 1e-9


def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def _is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _validate_positive(name: str, value: object) -> None:
    if not _is_number(value) or value <= 0:  # type: ignore[operator]
        raise RackFitError(f"{name} must be a positive number (got {value!r})")


def _coerce_inches(value: object) -> float:
    try:
        f = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(f):
        return 0.0
    return f


def _coerce_count(value: object, default: int) -> int:
    try:
        f = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if not math.isfinite(f):
        return default
    return int(f)


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass(frozen=True)
class ToteSpec:
    width_standard_in: float
    width_sideways_in: float
    height_in: float

    def __post_init__(self) -> None:
        for name in ("width_standard_in", "width_sideways_in", "height_in"):
            _validate_positive(name, getattr(self, name))

    def width_along_wall(self, orientation: Orientation) -> float:
        if Orientation(orientation) == Orientation.SIDEWAYS:
            return self.width_sideways_in
        return self.width_standard_in


@dataclass(frozen=True)
class StructureConstants:
    post_width_in: float
    shelf_height_in: float
    gap_width_in: float
    gap_height_in: float

    def __post_init__(self) -> None:
        for name in ("post_width_in", "shelf_height_in", "gap_width_in", "gap_height_in"):
            value = getattr(self, name)
            if not _is_number(value) or value < 0:
                raise RackFitError(f"{name} must be a non-negative number (got {value!r})")


@dataclass(frozen=True)
class WallDimensions:
    width_in: float
    height_in: float

    def clamped(self) -> "WallDimensions":
        return WallDimensions(
            width_in=clamp(_coerce_inches(self.width_in), *WALL_WIDTH_RANGE_IN),
            height_in=clamp(_coerce_inches(self.height_in), *WALL_HEIGHT_RANGE_IN),
        )


@dataclass(frozen=True)
class FitResult:
    cols: int
    rows: int
    tote_width_in: float
    tote_height_in: float

    @property
    def fits(self) -> bool:
        return self.cols > 0 and self.rows > 0


@dataclass(frozen=True)
class BaySelection:
    """
    Authoritative bay grid for display and pricing.

    `fits` mirrors the solver result. In manual mode the counts are clamped to at least 1 even
    when nothing fits, so callers must check `fits` (or use `priced_bays`) before pricing.
    """

    cols: int
    rows: int
    fits: bool

    @property
    def total_bays(self) -> int:
        return self.cols * self.rows

    @property
    def priced_bays(self) -> int:
        return self.total_bays if self.fits else 0


@dataclass(frozen=True)
class RackDimensions:
    width_in: int
    height_in: int


# Catalog: HDX 27-gallon; "custom" uses the same numbers until the customer's tote is measured.
TOTE_CATALOG: Mapping[ToteType, ToteSpec] = {
    ToteType.HDX27: ToteSpec(width_standard_in=19.6, width_sideways_in=28.5, height_in=15.2),
    ToteType.CUSTOM: ToteSpec(width_standard_in=19.6, width_sideways_in=28.5, height_in=15.2),
}

TOTE_LABELS: Mapping[ToteType, str] = {
    ToteType.HDX27: "HDX 27-gallon totes",
    ToteType.CUSTOM: "Custom size / brand",
}

# Depth of the rack for each orientation, shown next to the orientation picker.
ORIENTATION_DEPTH_IN: Mapping[Orientation, int] = {
    Orientation.STANDARD: 30,
    Orientation.SIDEWAYS: 20,
}

DEFAULT_STRUCTURE = StructureConstants(
    post_width_in=1.5,
    shelf_height_in=1.5,
    gap_width_in=1.0,
    gap_height_in=2.0,
)


def needed_width_in(cols: int, tote_width_in: float, structure: StructureConstants) -> float:
    return (
        cols * tote_width_in
        + (cols - 1) * structure.gap_width_in
        + (cols + 1) * structure.post_width_in
    )


def needed_height_in(rows: int, tote_height_in: float, structure: StructureConstants) -> float:
    return (
        rows * tote_height_in
        + rows * structure.shelf_height_in
        + (rows + 1) * structure.gap_height_in
    )


def _best_count(*, usable_in: float, needed: Callable[[int], float]) -> int:
    best = 0
    for n in range(1, MAX_PROBE + 1):
        if needed(n) <= usable_in + _FIT_EPSILON_IN:
            best = n
    return best


def solve(
    wall: WallDimensions,
    tote: ToteSpec,
    orientation: Orientation,
    structure: StructureConstants,
) -> FitResult:
    """
    Find the largest tote grid that fits the (clamped) wall.

    Both axes are a linear scan over 1..MAX_PROBE; rows are then capped at MAX_ROWS. A zero on
    either axis is a valid "does not fit" result.
    """
    usable = wall.clamped()
    tote_w = tote.width_along_wall(orientation)
    tote_h = tote.height_in

    best_cols = _best_count(
        usable_in=usable.width_in,
        needed=lambda n: needed_width_in(n, tote_w, structure),
    )
    best_rows = _best_count(
        usable_in=usable.height_in,
        needed=lambda n: needed_height_in(n, tote_h, structure),
    )
    return FitResult(
        cols=best_cols,
        rows=min(best_rows, MAX_ROWS),
        tote_width_in=tote_w,
        tote_height_in=tote_h,
    )


def resolve(
    mode: SizingMode,
    manual_cols: object,
    manual_rows: object,
    fit: FitResult,
) -> BaySelection:
    if SizingMode(mode) == SizingMode.MAX:
        return BaySelection(cols=fit.cols, rows=fit.rows, fits=fit.fits)

    cols = int(clamp(_coerce_count(manual_cols, 1), 1, max(fit.cols, 1)))
    rows = int(clamp(_coerce_count(manual_rows, 1), 1, max(fit.rows, 1)))
    return BaySelection(cols=cols, rows=rows, fits=fit.fits)


def project(
    cols: int,
    rows: int,
    tote: ToteSpec,
    orientation: Orientation,
    structure: StructureConstants,
) -> RackDimensions:
    """
    Outer rack size for display. Not used in any further calculation.
    """
    if cols <= 0 or rows <= 0:
        return RackDimensions(width_in=0, height_in=0)
    width = needed_width_in(cols, tote.width_along_wall(orientation), structure)
    height = needed_height_in(rows, tote.height_in, structure)
    return RackDimensions(width_in=_round_half_away(width), height_in=_round_half_away(height))

