from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .models import (
    DEFAULT_CONFIG,
    DEFAULT_MIN_BORDER,
    CalculatorConfig,
    Dimensions,
    GeometryResult,
    NumericField,
    ResolvedDimensions,
    Warnings,
)
from .sizes import DEFAULT_TABLES, SizeTables
from .utils import format_inches, try_number


@dataclass(frozen=True)
class MinBorderCheck:
    border: float
    warning: Optional[str]
    last_valid: float


def _usable_border(candidates: List[float], max_border: float) -> float:
    for candidate in candidates:
        if 0 <= candidate < max_border:
            return candidate
    return 0.0


def _fallback_message(problem: str, border: float, last_valid: float) -> str:
    if border == last_valid:
        return f"{problem}; using last valid value {format_inches(border)} in."
    return f"{problem}; last valid value no longer fits, using {format_inches(border)} in."


def check_min_border(raw: NumericField, last_valid: float, paper: Dimensions) -> MinBorderCheck:
    """Validate the requested border against the oriented paper.

    Partial text keeps the last valid border in effect. A negative or
    oversized border is replaced by the last valid one (or the default, or 0
    when that no longer fits the paper either).
    """
    max_border = paper.shorter / 2
    requested = try_number(raw)
    value = last_valid if requested is None else requested

    if value < 0:
        border = _usable_border([last_valid, DEFAULT_MIN_BORDER], max_border)
        return MinBorderCheck(border, _fallback_message("Border cannot be negative", border, last_valid), border)
    if max_border > 0 and value >= max_border:
        border = _usable_border([last_valid, DEFAULT_MIN_BORDER], max_border)
        return MinBorderCheck(
            border,
            _fallback_message("Minimum border too large for this paper", border, last_valid),
            border,
        )
    return MinBorderCheck(value, None, value)


def paper_size_warning(resolved: ResolvedDimensions, tables: SizeTables = DEFAULT_TABLES) -> Optional[str]:
    if not resolved.is_custom_paper:
        return None
    paper = resolved.base_paper
    if max(paper.w, paper.h) <= tables.max_easel_dimension:
        return None
    easel = tables.largest_easel
    return (
        f"Custom paper ({format_inches(paper.w)}×{format_inches(paper.h)}) exceeds largest "
        f'standard easel ({format_inches(easel.height)}×{format_inches(easel.width)}").'
    )


def offset_warning(geometry: GeometryResult, ignore_min_border: bool) -> Optional[str]:
    if geometry.degenerate:
        return None
    if geometry.offset_clamped:
        if ignore_min_border:
            return "Offset adjusted to keep print on paper."
        return "Offset adjusted to honour min-border."
    if geometry.offset_at_limit:
        return "Offset is at the edge of the usable area."
    return None


def blade_warning(geometry: GeometryResult, config: CalculatorConfig = DEFAULT_CONFIG) -> Optional[str]:
    if geometry.degenerate:
        return None
    thickness = format_inches(config.blade_thickness_in)
    messages: List[str] = []
    if geometry.search_exhausted:
        messages.append(
            f"No border within {format_inches(config.search_span_in)} in of "
            f"{format_inches(geometry.requested_border)} in clears the {thickness} in blades; "
            f"best effort uses {format_inches(geometry.effective_border)} in."
        )
    elif geometry.search_used:
        messages.append(
            f"Border widened to {format_inches(geometry.effective_border)} in so the blades "
            "clear each other."
        )
    elif geometry.blade_conflict:
        messages.append(f"Print aperture is narrower than the {thickness} in easel blades.")

    readings = geometry.readings.as_tuple()
    if any(value < 0 for value in readings):
        messages.append("Negative blade reading – use opposite side of scale.")
    if any(value != 0 and abs(value) < config.scale_marking_min_in for value in readings):
        messages.append(
            f"Many easels have no markings below about {format_inches(config.scale_marking_min_in)} in."
        )
    return "\n".join(messages) or None


def evaluate_warnings(
    resolved: ResolvedDimensions,
    border_check: MinBorderCheck,
    geometry: GeometryResult,
    ignore_min_border: bool = False,
    config: CalculatorConfig = DEFAULT_CONFIG,
    tables: SizeTables = DEFAULT_TABLES,
) -> Warnings:
    min_border = border_check.warning
    if min_border is None and geometry.degenerate:
        min_border = "Border leaves no printable area on this paper."
    return Warnings(
        min_border=min_border,
        paper_size=paper_size_warning(resolved, tables),
        offset=offset_warning(geometry, ignore_min_border),
        blade=blade_warning(geometry, config),
    )
