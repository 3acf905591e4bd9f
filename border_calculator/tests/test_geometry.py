from dataclasses import replace

import pytest

from border_calculator.dimensions import resolve_dimensions
from border_calculator.geometry import (
    compute_print_size,
    fit_easel,
    paper_shift,
    solve_geometry,
    suggest_quarter_inch_border,
)
from border_calculator.models import CalculatorConfig, CalculatorState, Dimensions
from border_calculator.sizes import CUSTOM


def test_portrait_8x10_at_3_2_with_half_inch_border(portrait_8x10):
    result = solve_geometry(portrait_8x10, 0.5)
    assert result.print_size.w == pytest.approx(7)
    assert result.print_size.h == pytest.approx(4.667, abs=1e-3)
    assert result.blades.left == pytest.approx(0.5)
    assert result.blades.right == pytest.approx(0.5)
    assert result.blades.top == pytest.approx(2.667, abs=1e-3)
    assert result.blades.bottom == pytest.approx(2.667, abs=1e-3)
    assert not result.search_used
    assert not result.blade_conflict


@pytest.mark.parametrize(
    "paper, ratio, border",
    [
        (Dimensions(10, 8), Dimensions(3, 2), 0.5),
        (Dimensions(8, 10), Dimensions(1, 1), 1.0),
        (Dimensions(14, 11), Dimensions(65, 24), 0.25),
        (Dimensions(5, 7), Dimensions(2.39, 1), 0.75),
    ],
)
def test_print_keeps_ratio_inside_usable_area(paper, ratio, border):
    size = compute_print_size(paper, ratio, border)
    assert size.w / size.h == pytest.approx(ratio.w / ratio.h)
    assert size.w <= paper.w - 2 * border + 1e-9
    assert size.h <= paper.h - 2 * border + 1e-9
    assert size.w == pytest.approx(paper.w - 2 * border) or size.h == pytest.approx(paper.h - 2 * border)


def test_compute_print_size_degenerate_inputs():
    assert compute_print_size(Dimensions(8, 10), Dimensions(0, 2), 0.5) == Dimensions(0, 0)
    assert compute_print_size(Dimensions(8, 10), Dimensions(3, 2), 4) == Dimensions(0, 0)


def test_offset_is_clamped_to_min_border(portrait_8x10):
    result = solve_geometry(portrait_8x10, 0.5, enable_offset=True, horizontal_offset=10, vertical_offset=10)
    max_h, max_v = result.max_offset
    assert max_h == pytest.approx(0)
    assert max_v == pytest.approx((10 - 14 / 3) / 2 - 0.5)
    assert result.offset == (pytest.approx(0), pytest.approx(max_v))
    assert result.offset_clamped
    assert result.blades.bottom == pytest.approx(0.5)
    assert result.blades.top + result.blades.bottom == pytest.approx(10 - result.print_size.h)


def test_offsets_ignored_when_disabled(portrait_8x10):
    result = solve_geometry(portrait_8x10, 0.5, enable_offset=False, horizontal_offset=1, vertical_offset=1)
    assert result.offset == (0.0, 0.0)
    assert not result.offset_clamped


def test_small_border_keeps_letterbox_fit(portrait_8x10):
    result = solve_geometry(portrait_8x10, 0.0)
    assert not result.search_used
    assert not result.blade_conflict
    assert result.effective_border == 0.0
    assert result.print_size.w == pytest.approx(8)
    assert result.print_size.h == pytest.approx(16 / 3)
    assert result.blades.left == 0.0
    assert result.blades.right == 0.0


def test_exhausted_search_returns_best_candidate(portrait_8x10):
    config = CalculatorConfig(blade_thickness_in=6.0)
    result = solve_geometry(portrait_8x10, 0.0, config=config)
    assert result.search_used
    assert result.search_exhausted
    assert result.blade_conflict
    assert result.requested_border == 0.0
    assert result.effective_border == 0.0
    assert result.print_size.h == pytest.approx(16 / 3)


def test_ignore_min_border_skips_search(portrait_8x10):
    result = solve_geometry(portrait_8x10, 0.5, ignore_min_border=True)
    assert result.effective_border == 0.0
    assert not result.blade_conflict
    assert not result.search_used

    narrow = solve_geometry(
        portrait_8x10, 0.5, ignore_min_border=True, config=CalculatorConfig(blade_thickness_in=6.0)
    )
    assert narrow.blade_conflict
    assert not narrow.search_used


def test_offset_clamp_without_min_border_keeps_print_on_paper(portrait_8x10):
    result = solve_geometry(
        portrait_8x10,
        0.5,
        enable_offset=True,
        horizontal_offset=10,
        vertical_offset=10,
        ignore_min_border=True,
    )
    assert result.max_offset == (pytest.approx(0.0), pytest.approx(7 / 3))
    assert result.offset == (pytest.approx(0.0), pytest.approx(7 / 3))
    assert result.offset_clamped
    assert result.blades.bottom == pytest.approx(0.0)
    assert result.blades.top == pytest.approx(14 / 3)


def test_border_too_large_is_degenerate(portrait_8x10):
    result = solve_geometry(portrait_8x10, 4.0)
    assert result.degenerate
    assert result.print_size == Dimensions(0, 0)


def test_fit_easel_standard_size():
    fit = fit_easel(8, 10, True)
    assert not fit.is_non_standard
    assert fit.label == "8x10"
    assert paper_shift(Dimensions(10, 8), fit) == (0.0, 0.0)


def test_fit_easel_non_standard_paper_uses_smallest_fitting_easel():
    fit = fit_easel(9, 12, False)
    assert fit.is_non_standard
    assert fit.label == "11x14"
    assert fit.effective_slot == Dimensions(11, 14)
    assert paper_shift(Dimensions(9, 12), fit) == (-1.0, -1.0)


def test_readings_account_for_paper_shift():
    state = CalculatorState(
        paper_size=CUSTOM,
        is_landscape=False,
        last_valid_custom_paper_width=9.0,
        last_valid_custom_paper_height=12.0,
    )
    result = solve_geometry(resolve_dimensions(state), 0.5)
    assert result.readings.left == pytest.approx(result.print_size.w + 2)
    assert result.readings.right == pytest.approx(result.print_size.w - 2)
    assert result.readings.top == pytest.approx(result.print_size.h + 2)


def test_oversized_custom_paper_is_its_own_slot():
    state = CalculatorState(
        paper_size=CUSTOM,
        is_landscape=False,
        last_valid_custom_paper_width=30.0,
        last_valid_custom_paper_height=40.0,
    )
    result = solve_geometry(resolve_dimensions(state), 0.5)
    assert not result.degenerate
    assert result.easel.is_non_standard
    assert result.easel.easel_size == Dimensions(30, 40)
    assert result.readings.left == pytest.approx(result.print_size.w)


def test_quarter_inch_suggestion(portrait_8x10):
    result = solve_geometry(portrait_8x10, 0.5)
    assert suggest_quarter_inch_border(result.paper, portrait_8x10.ratio, result.print_size) == 0.625


def test_quarter_inch_suggestion_none_when_aligned():
    resolved = resolve_dimensions(CalculatorState())
    result = solve_geometry(resolved, 0.5)
    assert result.print_size == Dimensions(9, 6)
    assert suggest_quarter_inch_border(result.paper, resolved.ratio, result.print_size) is None


def test_solver_results_are_immutable(portrait_8x10):
    result = solve_geometry(portrait_8x10, 0.5)
    with pytest.raises(Exception):
        result.effective_border = 1.0  # type: ignore[misc]
    assert replace(result, effective_border=1.0).effective_border == 1.0
