"""Resolve paper and ratio selections into oriented dimensions (inches)."""

from __future__ import annotations

from functools import lru_cache

from .models import CalculatorState, Dimensions, ResolvedDimensions
from .sizes import CUSTOM, DEFAULT_TABLES, EVEN_BORDERS, SizeTables


def resolve_paper(paper_size: str, custom_w: float, custom_h: float, tables: SizeTables) -> Dimensions:
    if paper_size == CUSTOM:
        return Dimensions(custom_w, custom_h)
    entry = tables.paper(paper_size)
    return Dimensions(entry.width, entry.height)


def resolve_ratio(aspect_ratio: str, paper: Dimensions, custom_w: float, custom_h: float, tables: SizeTables) -> Dimensions:
    if aspect_ratio == EVEN_BORDERS:
        return Dimensions(paper.w if paper.w > 0 else 1.0, paper.h if paper.h > 0 else 1.0)
    if aspect_ratio == CUSTOM:
        return Dimensions(custom_w, custom_h)
    entry = tables.ratio(aspect_ratio)
    return Dimensions(entry.width or 1.0, entry.height or 1.0)


@lru_cache(maxsize=50)
def _resolve(
    paper_size: str,
    aspect_ratio: str,
    custom_paper: Dimensions,
    custom_ratio: Dimensions,
    is_landscape: bool,
    is_ratio_flipped: bool,
    tables: SizeTables,
) -> ResolvedDimensions:
    base_paper = resolve_paper(paper_size, custom_paper.w, custom_paper.h, tables)
    base_ratio = resolve_ratio(aspect_ratio, base_paper, custom_ratio.w, custom_ratio.h, tables)

    paper = base_paper.swapped() if is_landscape else base_paper
    if aspect_ratio == EVEN_BORDERS:
        ratio = Dimensions(paper.w if paper.w > 0 else 1.0, paper.h if paper.h > 0 else 1.0)
    elif is_ratio_flipped:
        ratio = base_ratio.swapped()
    else:
        ratio = base_ratio

    return ResolvedDimensions(
        paper=paper,
        ratio=ratio,
        base_paper=base_paper,
        is_landscape=is_landscape,
        is_custom_paper=paper_size == CUSTOM,
    )


def resolve_dimensions(state: CalculatorState, tables: SizeTables = DEFAULT_TABLES) -> ResolvedDimensions:
    """Oriented paper and ratio for a state snapshot.

    Custom sizes always come from the last-known-good shadows, never from the
    live text fields, so a half-typed value cannot reach the solver.
    """
    return _resolve(
        state.paper_size,
        state.aspect_ratio,
        Dimensions(state.last_valid_custom_paper_width, state.last_valid_custom_paper_height),
        Dimensions(state.last_valid_custom_aspect_width, state.last_valid_custom_aspect_height),
        state.is_landscape,
        state.is_ratio_flipped,
        tables,
    )
