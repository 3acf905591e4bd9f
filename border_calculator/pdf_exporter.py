from __future__ import annotations

import logging
import os
from typing import Callable, List, Optional, Tuple

import fitz

from .models import GeometryResult, Warnings
from .state import Calculation
from .utils import ensure_directory, format_inches, inch_to_pt

logger = logging.getLogger(__name__)

ProgressCallback = Optional[Callable[[int, str], None]]

OUTLINE_COLOR: Tuple[float, float, float] = (0.0, 0.0, 0.0)
PRINT_COLOR: Tuple[float, float, float] = (0.15, 0.35, 0.75)
BLADE_COLOR: Tuple[float, float, float] = (0.8, 0.2, 0.2)
TEXT_COLOR: Tuple[float, float, float] = (0.1, 0.1, 0.1)


def _print_rect(geometry: GeometryResult) -> fitz.Rect:
    left = inch_to_pt(geometry.blades.left)
    top = inch_to_pt(geometry.blades.top)
    return fitz.Rect(
        left,
        top,
        left + inch_to_pt(geometry.print_size.w),
        top + inch_to_pt(geometry.print_size.h),
    )


def summary_lines(calculation: Calculation) -> List[str]:
    """Plain-text description of a calculation, shared by the sheet and the CLI."""
    geometry = calculation.geometry
    paper = geometry.paper
    blades = geometry.blades
    readings = geometry.readings
    lines = [
        f"Paper: {format_inches(paper.w)} x {format_inches(paper.h)} in",
        f"Print: {format_inches(geometry.print_size.w)} x {format_inches(geometry.print_size.h)} in",
        f"Border: {format_inches(geometry.effective_border)} in",
        f"Easel: {geometry.easel.label}" + (" (non-standard paper)" if geometry.easel.is_non_standard else ""),
        (
            f"Blades from edge: L {format_inches(blades.left)}  R {format_inches(blades.right)}  "
            f"T {format_inches(blades.top)}  B {format_inches(blades.bottom)}"
        ),
    ]
    if calculation.state.show_blade_readings:
        lines.append(
            f"Easel readings: L {format_inches(readings.left)}  R {format_inches(readings.right)}  "
            f"T {format_inches(readings.top)}  B {format_inches(readings.bottom)}"
        )
    if any(geometry.offset):
        h, v = geometry.offset
        lines.append(f"Offset: H {format_inches(h)}  V {format_inches(v)} in")
    lines.extend(_warning_lines(calculation.warnings))
    return lines


def _warning_lines(warnings: Warnings) -> List[str]:
    lines: List[str] = []
    for item in warnings.active():
        for message in item.message.splitlines():
            lines.append(f"! {message}")
    return lines


class SetupSheetBuilder:
    """One-page PDF at true paper size showing where to set the easel blades."""

    def __init__(self, calculation: Calculation, output_path: str, title: Optional[str] = None) -> None:
        self.calculation = calculation
        self.output_path = output_path
        self.title = title

    def generate_pdf(self, progress: ProgressCallback = None) -> str:
        geometry = self.calculation.geometry
        if progress:
            progress(5, "Preparing setup sheet")
        ensure_directory(os.path.dirname(os.path.abspath(self.output_path)))
        doc = fitz.open()
        try:
            page = doc.new_page(width=inch_to_pt(geometry.paper.w), height=inch_to_pt(geometry.paper.h))
            page.draw_rect(page.rect, color=OUTLINE_COLOR, width=1)
            if not geometry.degenerate:
                self._draw_print(page, geometry)
            if progress:
                progress(50, "Writing annotations")
            self._draw_text(page, geometry)
            doc.save(self.output_path, deflate=True, garbage=4)
        finally:
            doc.close()
        logger.info("Wrote setup sheet to %s", self.output_path)
        if progress:
            progress(100, "Finished")
        return self.output_path

    def _draw_print(self, page: fitz.Page, geometry: GeometryResult) -> None:
        rect = _print_rect(geometry)
        page.draw_rect(rect, color=PRINT_COLOR, width=0.75, dashes="[4 2] 0")
        paper = page.rect
        # blade edges extended across the sheet
        for x in (rect.x0, rect.x1):
            page.draw_line(fitz.Point(x, paper.y0), fitz.Point(x, paper.y1), color=BLADE_COLOR, width=0.5)
        for y in (rect.y0, rect.y1):
            page.draw_line(fitz.Point(paper.x0, y), fitz.Point(paper.x1, y), color=BLADE_COLOR, width=0.5)

        blades = geometry.blades
        fontsize = 7
        page.insert_text(
            fitz.Point(rect.x0 / 2 - fontsize, rect.y0 + rect.height / 2),
            format_inches(blades.left),
            fontsize=fontsize,
            color=BLADE_COLOR,
        )
        page.insert_text(
            fitz.Point(rect.x1 + (paper.x1 - rect.x1) / 2 - fontsize, rect.y0 + rect.height / 2),
            format_inches(blades.right),
            fontsize=fontsize,
            color=BLADE_COLOR,
        )
        page.insert_text(
            fitz.Point(rect.x0 + rect.width / 2, rect.y0 / 2 + fontsize / 2),
            format_inches(blades.top),
            fontsize=fontsize,
            color=BLADE_COLOR,
        )
        page.insert_text(
            fitz.Point(rect.x0 + rect.width / 2, rect.y1 + (paper.y1 - rect.y1) / 2 + fontsize / 2),
            format_inches(blades.bottom),
            fontsize=fontsize,
            color=BLADE_COLOR,
        )

    def _draw_text(self, page: fitz.Page, geometry: GeometryResult) -> None:
        lines = summary_lines(self.calculation)
        if self.title:
            lines.insert(0, self.title)
        box = page.rect if geometry.degenerate else _print_rect(geometry)
        box = fitz.Rect(box.x0 + 6, box.y0 + 6, box.x1 - 6, box.y1 - 6)
        if box.is_empty:
            logger.warning("No room for the summary text on the setup sheet")
            return
        overflow = page.insert_textbox(box, "\n".join(lines), fontsize=8, color=TEXT_COLOR)
        if overflow < 0:
            logger.warning("Setup sheet summary was truncated to fit the print area")
