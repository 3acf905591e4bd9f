from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

CUSTOM = "custom"
EVEN_BORDERS = "even-borders"


@dataclass(frozen=True)
class PaperSize:
    label: str
    value: str
    width: float
    height: float


@dataclass(frozen=True)
class AspectRatio:
    label: str
    value: str
    width: Optional[float] = None
    height: Optional[float] = None


@dataclass(frozen=True)
class EaselSize:
    label: str
    value: str
    width: float
    height: float


PAPER_SIZES: Tuple[PaperSize, ...] = (
    PaperSize("5x7", "5x7", 5, 7),
    PaperSize("3⅞x5⅞ (postcard)", "3.875x5.875", 3.875, 5.875),
    PaperSize("8x10", "8x10", 8, 10),
    PaperSize("11x14", "11x14", 11, 14),
    PaperSize("16x20", "16x20", 16, 20),
    PaperSize("20x24", "20x24", 20, 24),
    PaperSize("Custom Paper Size", CUSTOM, 0, 0),
)

ASPECT_RATIOS: Tuple[AspectRatio, ...] = (
    AspectRatio("35mm standard frame, 6x9 (3:2)", "3:2", 3, 2),
    AspectRatio("Even borders (match paper)", EVEN_BORDERS),
    AspectRatio("XPan Pano (65:24)", "65:24", 65, 24),
    AspectRatio("6x4.5/6x8/35mm Half Frame (4:3)", "4:3", 4, 3),
    AspectRatio("6x6/Square (1:1)", "1:1", 1, 1),
    AspectRatio("6x7", "7:6", 7, 6),
    AspectRatio("4x5", "5:4", 5, 4),
    AspectRatio("5x7", "7:5", 7, 5),
    AspectRatio("HDTV (16:9)", "16:9", 16, 9),
    AspectRatio("Academy Ratio (1.37:1)", "1.37:1", 1.37, 1),
    AspectRatio("Widescreen (1.85:1)", "1.85:1", 1.85, 1),
    AspectRatio("Univisium (2:1)", "2:1", 2, 1),
    AspectRatio("CinemaScope (2.39:1)", "2.39:1", 2.39, 1),
    AspectRatio("Ultra Panavision (2.76:1)", "2.76:1", 2.76, 1),
    AspectRatio("Custom Ratio", CUSTOM, 0, 0),
)

# Easels are listed landscape, the way their scales read.
EASEL_SIZES: Tuple[EaselSize, ...] = (
    EaselSize("5x7", "7x5", 7, 5),
    EaselSize("8x10", "10x8", 10, 8),
    EaselSize("11x14", "14x11", 14, 11),
    EaselSize("16x20", "20x16", 20, 16),
    EaselSize("20x24", "24x20", 24, 20),
)

FALLBACK_PAPER = PaperSize("8x10", "8x10", 8, 10)
FALLBACK_RATIO = AspectRatio("35mm standard frame, 6x9 (3:2)", "3:2", 3, 2)

DEFAULT_PAPER_VALUE = "8x10"
DEFAULT_RATIO_VALUE = "3:2"


@dataclass(frozen=True)
class SizeTables:
    """Immutable lookup tables handed to the resolver and the codecs."""

    papers: Tuple[PaperSize, ...] = PAPER_SIZES
    ratios: Tuple[AspectRatio, ...] = ASPECT_RATIOS
    easels: Tuple[EaselSize, ...] = EASEL_SIZES

    def paper(self, value: str) -> PaperSize:
        for entry in self.papers:
            if entry.value == value:
                return entry
        logger.warning("Unknown paper size %r, falling back to %s", value, FALLBACK_PAPER.label)
        return FALLBACK_PAPER

    def ratio(self, value: str) -> AspectRatio:
        for entry in self.ratios:
            if entry.value == value:
                return entry
        logger.warning("Unknown aspect ratio %r, falling back to %s", value, FALLBACK_RATIO.value)
        return FALLBACK_RATIO

    def has_paper(self, value: str) -> bool:
        return any(entry.value == value for entry in self.papers)

    def has_ratio(self, value: str) -> bool:
        return any(entry.value == value for entry in self.ratios)

    def paper_values(self) -> Tuple[str, ...]:
        return tuple(entry.value for entry in self.papers)

    def ratio_values(self) -> Tuple[str, ...]:
        return tuple(entry.value for entry in self.ratios)

    @property
    def largest_easel(self) -> EaselSize:
        return max(self.easels, key=lambda easel: easel.width * easel.height)

    @property
    def max_easel_dimension(self) -> float:
        return max(max(easel.width, easel.height) for easel in self.easels)


DEFAULT_TABLES = SizeTables()
