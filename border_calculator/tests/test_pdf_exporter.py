from dataclasses import replace

import fitz

from border_calculator.geometry import solve_geometry
from border_calculator.models import CalculatorState
from border_calculator.pdf_exporter import SetupSheetBuilder, summary_lines
from border_calculator.state import BorderCalculator


def test_summary_lines_cover_geometry_and_warnings():
    calculator = BorderCalculator(CalculatorState(is_landscape=False, enable_offset=True, show_blade_readings=True))
    calculator.set_numeric_input("horizontal_offset", "10")
    lines = summary_lines(calculator.calculation)
    assert "Print: 7 x 4.667 in" in lines
    assert any(line.startswith("Easel readings:") for line in lines)
    assert "! Offset adjusted to honour min-border." in lines


def test_setup_sheet_is_true_paper_size(tmp_path):
    calculator = BorderCalculator()
    output = tmp_path / "sheets" / "setup.pdf"
    progress = []
    path = SetupSheetBuilder(calculator.calculation, str(output), title="Contact").generate_pdf(
        lambda value, message: progress.append(value)
    )
    assert path == str(output)
    assert progress == [5, 50, 100]
    with fitz.open(str(output)) as doc:
        assert doc.page_count == 1
        page = doc[0]
        assert round(page.rect.width) == 720
        assert round(page.rect.height) == 576
        text = page.get_text()
    assert "Contact" in text
    assert "Print: 9 x 6 in" in text


def test_degenerate_setup_sheet_still_renders(tmp_path):
    calculator = BorderCalculator()
    geometry = solve_geometry(calculator.resolved, 4.0)
    assert geometry.degenerate
    output = tmp_path / "degenerate.pdf"
    SetupSheetBuilder(replace(calculator.calculation, geometry=geometry), str(output)).generate_pdf()
    assert output.exists()
