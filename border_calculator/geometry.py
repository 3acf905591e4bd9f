from __future__ import annotations

import math
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Optional, Tuple

from .models import (
    DEFAULT_CONFIG,
    BladePositions,
    BladeReadings,
    CalculatorConfig,
    Dimensions,
    EaselFit,
    GeometryResult,
    ResolvedDimensions,
)
from .sizes import DEFAULT_TABLES, EaselSize, SizeTables

EPSILON = 1e-9
QUARTER_INCH = 0.25


@dataclass(frozen=True)
class OffsetPlacement:
    half_w: float
    half_h: float
    h: float
    v: float
    max_h: float
    max_v: float


def compute_print_size(paper: Dimensions, ratio: Dimensions, border: float) -> Dimensions:
    """Largest ratio-locked rectangle inside the paper inset by ``border``."""
    if ratio.w <= 0 or ratio.h <= 0 or paper.w <= 0 or paper.h <= 0 or border < 0:
        return Dimensions(0.0, 0.0)
    usable_w = paper.w - 2 * border
    usable_h = paper.h - 2 * border
    if usable_w <= 0 or usable_h <= 0:
        return Dimensions(0.0, 0.0)
    candidate_w = usable_h * ratio.w / ratio.h
    if candidate_w <= usable_w:
        return Dimensions(candidate_w, usable_h)
    return Dimensions(usable_w, usable_w * ratio.h / ratio.w)


def clamp_offsets(
    paper: Dimensions,
    print_size: Dimensions,
    border: float,
    horizontal: float,
    vertical: float,
) -> OffsetPlacement:
    half_w = (paper.w - print_size.w) / 2
    half_h = (paper.h - print_size.h) / 2
    max_h = max(half_w - border, 0.0)
    max_v = max(half_h - border, 0.0)
    return OffsetPlacement(
        half_w=half_w,
        half_h=half_h,
        h=max(-max_h, min(max_h, horizontal)),
        v=max(-max_v, min(max_v, vertical)),
        max_h=max_h,
        max_v=max_v,
    )


def blades_from_gaps(half_w: float, half_h: float, offset_h: float, offset_v: float) -> BladePositions:
    return BladePositions(
        left=half_w - offset_h,
        right=half_w + offset_h,
        top=half_h + offset_v,
        bottom=half_h - offset_v,
    )


def blade_readings(print_size: Dimensions, shift_x: float, shift_y: float) -> BladeReadings:
    return BladeReadings(
        left=print_size.w - 2 * shift_x,
        right=print_size.w + 2 * shift_x,
        top=print_size.h - 2 * shift_y,
        bottom=print_size.h + 2 * shift_y,
    )


@lru_cache(maxsize=50)
def fit_easel(paper_w: float, paper_h: float, landscape: bool, tables: SizeTables = DEFAULT_TABLES) -> EaselFit:
    """Find the easel slot the paper sits in.

    Standard sizes match an easel exactly. Anything else goes into the easel
    that fits it with the least wasted area; paper larger than every easel is
    its own slot.
    """
    oriented = Dimensions(paper_h, paper_w) if landscape else Dimensions(paper_w, paper_h)
    for easel in tables.easels:
        if (easel.width, easel.height) in ((paper_w, paper_h), (paper_h, paper_w)):
            size = Dimensions(easel.width, easel.height)
            return EaselFit(size, size, is_non_standard=False, label=easel.label)

    best: Optional[Tuple[EaselSize, Dimensions]] = None
    min_waste = math.inf
    for easel in sorted(tables.easels, key=lambda item: item.width * item.height):
        fits = easel.width >= oriented.w and easel.height >= oriented.h
        fits_rotated = easel.height >= oriented.w and easel.width >= oriented.h
        if not fits and not fits_rotated:
            continue
        waste = easel.width * easel.height - oriented.w * oriented.h
        if waste < min_waste:
            min_waste = waste
            slot = Dimensions(easel.width, easel.height) if fits else Dimensions(easel.height, easel.width)
            best = (easel, slot)
            if waste == 0:
                break

    if best is None:
        label = f"{oriented.w:g}x{oriented.h:g}"
        return EaselFit(oriented, oriented, is_non_standard=True, label=label)
    easel, slot = best
    return EaselFit(Dimensions(easel.width, easel.height), slot, is_non_standard=True, label=easel.label)


def paper_shift(paper: Dimensions, fit: EaselFit) -> Tuple[float, float]:
    if not fit.is_non_standard:
        return 0.0, 0.0
    return (paper.w - fit.effective_slot.w) / 2, (paper.h - fit.effective_slot.h) / 2


def _slack(result: GeometryResult, thickness: float) -> float:
    """Margin by which the aperture between opposite blades exceeds the blade thickness."""
    return min(result.print_size.w, result.print_size.h) - thickness


def _place(
    resolved: ResolvedDimensions,
    border: float,
    requested_offset: Tuple[float, float],
    tables: SizeTables,
) -> GeometryResult:
    paper = resolved.paper
    print_size = compute_print_size(paper, resolved.ratio, border)
    easel = fit_easel(resolved.base_paper.w, resolved.base_paper.h, resolved.is_landscape, tables)

    if print_size.w <= 0 or print_size.h <= 0:
        half_w, half_h = paper.w / 2, paper.h / 2
        return GeometryResult(
            paper=paper,
            print_size=Dimensions(0.0, 0.0),
            blades=BladePositions(half_w, half_w, half_h, half_h),
            offset=(0.0, 0.0),
            requested_offset=requested_offset,
            max_offset=(0.0, 0.0),
            requested_border=border,
            effective_border=border,
            easel=easel,
            readings=BladeReadings(0.0, 0.0, 0.0, 0.0),
            degenerate=True,
        )

    placement = clamp_offsets(paper, print_size, border, *requested_offset)
    shift_x, shift_y = paper_shift(paper, easel)
    return GeometryResult(
        paper=paper,
        print_size=print_size,
        blades=blades_from_gaps(placement.half_w, placement.half_h, placement.h, placement.v),
        offset=(placement.h, placement.v),
        requested_offset=requested_offset,
        max_offset=(placement.max_h, placement.max_v),
        requested_border=border,
        effective_border=border,
        easel=easel,
        readings=blade_readings(print_size, shift_x + placement.h, shift_y + placement.v),
    )


@lru_cache(maxsize=50)
def solve_geometry(
    resolved: ResolvedDimensions,
    min_border: float,
    enable_offset: bool = False,
    horizontal_offset: float = 0.0,
    vertical_offset: float = 0.0,
    ignore_min_border: bool = False,
    config: CalculatorConfig = DEFAULT_CONFIG,
    tables: SizeTables = DEFAULT_TABLES,
) -> GeometryResult:
    """Place the print on the paper and derive the blade positions.

    When opposite blades would sit closer together than the blade
    thickness, the border is widened in ``config.search_step_in`` increments
    up to ``config.search_span_in``. An exhausted search returns the candidate
    with the most slack and sets ``search_exhausted``.
    """
    border = 0.0 if ignore_min_border else min_border
    requested_offset = (horizontal_offset, vertical_offset) if enable_offset else (0.0, 0.0)
    thickness = config.blade_thickness_in

    result = _place(resolved, border, requested_offset, tables)
    if result.degenerate or _slack(result, thickness) >= -EPSILON:
        return result
    if ignore_min_border:
        return replace(result, blade_conflict=True)

    best = result
    best_slack = _slack(result, thickness)
    step = config.search_step_in
    steps = int(math.floor(config.search_span_in / step + EPSILON))
    for index in range(1, steps + 1):
        trial = border + index * step
        if trial >= resolved.max_border:
            break
        candidate = _place(resolved, trial, requested_offset, tables)
        if candidate.degenerate:
            break
        slack = _slack(candidate, thickness)
        if slack >= -EPSILON:
            return replace(candidate, requested_border=border, search_used=True)
        if slack > best_slack:
            best, best_slack = candidate, slack

    return replace(
        best,
        requested_border=border,
        search_used=True,
        search_exhausted=True,
        blade_conflict=True,
    )


def suggest_quarter_inch_border(
    paper: Dimensions,
    ratio: Dimensions,
    print_size: Dimensions,
) -> Optional[float]:
    """Border that lands both print sides on quarter-inch marks, if one helps."""
    if min(paper.w, paper.h, ratio.w, ratio.h, print_size.w, print_size.h) <= 0:
        return None

    def aligned(value: float) -> bool:
        scaled = value / QUARTER_INCH
        return abs(scaled - round(scaled)) < 0.001

    if aligned(print_size.w) and aligned(print_size.h):
        return None

    unit_w = ratio.w * QUARTER_INCH
    unit_h = ratio.h * QUARTER_INCH
    multiplier = min(
        math.floor((print_size.w + 0.0001) / unit_w),
        math.floor((print_size.h + 0.0001) / unit_h),
    )
    while multiplier > 0:
        target_w = unit_w * multiplier
        target_h = unit_h * multiplier
        border = min((paper.w - target_w) / 2, (paper.h - target_h) / 2)
        if border >= 0 and border < paper.shorter / 2:
            fitted = compute_print_size(paper, ratio, border)
            if aligned(fitted.w) and aligned(fitted.h):
                return round(border, 4)
        multiplier -= 1
    return None
