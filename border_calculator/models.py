from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from .sizes import DEFAULT_PAPER_VALUE, DEFAULT_RATIO_VALUE

NumericField = Union[float, str]

DEFAULT_MIN_BORDER = 0.5
DEFAULT_CUSTOM_PAPER_WIDTH = 13.0
DEFAULT_CUSTOM_PAPER_HEIGHT = 10.0
DEFAULT_CUSTOM_ASPECT_WIDTH = 2.0
DEFAULT_CUSTOM_ASPECT_HEIGHT = 3.0


@dataclass(frozen=True)
class CalculatorConfig:
    """Tunables for the solver and the persistence layer."""

    blade_thickness_in: float = 0.125
    search_step_in: float = 0.0625
    search_span_in: float = 2.0
    scale_marking_min_in: float = 3.0
    persist_delay_ms: int = 500
    storage_key: str = "borderCalculatorState_v2"
    document_version: int = 2
    share_version: int = 1
    state_directory: str = field(
        default_factory=lambda: os.path.join(os.path.expanduser("~"), ".border_calculator")
    )

    @property
    def state_path(self) -> str:
        return os.path.join(self.state_directory, f"{self.storage_key}.json")

    @property
    def presets_path(self) -> str:
        return os.path.join(self.state_directory, "presets.json")


DEFAULT_CONFIG = CalculatorConfig()


@dataclass(frozen=True)
class CalculatorState:
    """The single calculator document. Numeric text fields may hold partial input."""

    aspect_ratio: str = DEFAULT_RATIO_VALUE
    paper_size: str = DEFAULT_PAPER_VALUE

    custom_aspect_width: NumericField = DEFAULT_CUSTOM_ASPECT_WIDTH
    custom_aspect_height: NumericField = DEFAULT_CUSTOM_ASPECT_HEIGHT
    custom_paper_width: NumericField = DEFAULT_CUSTOM_PAPER_WIDTH
    custom_paper_height: NumericField = DEFAULT_CUSTOM_PAPER_HEIGHT

    last_valid_custom_aspect_width: float = DEFAULT_CUSTOM_ASPECT_WIDTH
    last_valid_custom_aspect_height: float = DEFAULT_CUSTOM_ASPECT_HEIGHT
    last_valid_custom_paper_width: float = DEFAULT_CUSTOM_PAPER_WIDTH
    last_valid_custom_paper_height: float = DEFAULT_CUSTOM_PAPER_HEIGHT

    min_border: NumericField = DEFAULT_MIN_BORDER
    last_valid_min_border: float = DEFAULT_MIN_BORDER

    enable_offset: bool = False
    ignore_min_border: bool = False
    horizontal_offset: NumericField = 0.0
    vertical_offset: NumericField = 0.0
    last_valid_horizontal_offset: float = 0.0
    last_valid_vertical_offset: float = 0.0

    show_blades: bool = False
    show_blade_readings: bool = False
    is_landscape: bool = True
    is_ratio_flipped: bool = False
    has_manually_flipped_paper: bool = False

    # Image placement, carried for the preview only.
    selected_image_uri: Optional[str] = None
    image_dimensions: Tuple[float, float] = (0.0, 0.0)
    is_cropping: bool = False
    crop_offset: Tuple[float, float] = (0.0, 0.0)
    crop_scale: float = 1.0

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(item.name for item in fields(cls))


IMAGE_FIELDS: Tuple[str, ...] = (
    "selected_image_uri",
    "image_dimensions",
    "is_cropping",
    "crop_offset",
    "crop_scale",
)

PERSISTED_FIELDS: Tuple[str, ...] = tuple(
    name for name in CalculatorState.field_names() if name not in IMAGE_FIELDS
)

PRESET_FIELDS: Tuple[str, ...] = (
    "aspect_ratio",
    "paper_size",
    "custom_aspect_width",
    "custom_aspect_height",
    "custom_paper_width",
    "custom_paper_height",
    "min_border",
    "enable_offset",
    "ignore_min_border",
    "horizontal_offset",
    "vertical_offset",
    "show_blades",
    "show_blade_readings",
    "is_landscape",
    "is_ratio_flipped",
    "has_manually_flipped_paper",
)

# live text field -> last-known-good shadow
SHADOW_FIELDS: Dict[str, str] = {
    "custom_aspect_width": "last_valid_custom_aspect_width",
    "custom_aspect_height": "last_valid_custom_aspect_height",
    "custom_paper_width": "last_valid_custom_paper_width",
    "custom_paper_height": "last_valid_custom_paper_height",
    "min_border": "last_valid_min_border",
    "horizontal_offset": "last_valid_horizontal_offset",
    "vertical_offset": "last_valid_vertical_offset",
}

POSITIVE_FIELDS = frozenset(
    {
        "custom_aspect_width",
        "custom_aspect_height",
        "custom_paper_width",
        "custom_paper_height",
    }
)


@dataclass(frozen=True)
class Dimensions:
    w: float
    h: float

    def swapped(self) -> "Dimensions":
        return Dimensions(self.h, self.w)

    @property
    def shorter(self) -> float:
        return min(self.w, self.h)


@dataclass(frozen=True)
class ResolvedDimensions:
    paper: Dimensions
    ratio: Dimensions
    base_paper: Dimensions
    is_landscape: bool
    is_custom_paper: bool

    @property
    def max_border(self) -> float:
        return self.paper.shorter / 2


@dataclass(frozen=True)
class BladePositions:
    """Distance from each paper edge inward to the print edge, in inches."""

    left: float
    right: float
    top: float
    bottom: float

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return self.left, self.right, self.top, self.bottom


@dataclass(frozen=True)
class BladeReadings:
    """Numbers read off the easel scale for each blade."""

    left: float
    right: float
    top: float
    bottom: float

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return self.left, self.right, self.top, self.bottom


@dataclass(frozen=True)
class EaselFit:
    easel_size: Dimensions
    effective_slot: Dimensions
    is_non_standard: bool
    label: str


@dataclass(frozen=True)
class GeometryResult:
    paper: Dimensions
    print_size: Dimensions
    blades: BladePositions
    offset: Tuple[float, float]
    requested_offset: Tuple[float, float]
    max_offset: Tuple[float, float]
    requested_border: float
    effective_border: float
    easel: EaselFit
    readings: BladeReadings
    search_used: bool = False
    search_exhausted: bool = False
    blade_conflict: bool = False
    degenerate: bool = False

    @property
    def offset_clamped(self) -> bool:
        return self.offset != self.requested_offset

    @property
    def offset_at_limit(self) -> bool:
        h, v = self.offset
        max_h, max_v = self.max_offset
        return (h != 0 and abs(h) >= max_h - 1e-9) or (v != 0 and abs(v) >= max_v - 1e-9)


class WarningCategory(str, Enum):
    MIN_BORDER = "min-border"
    PAPER_SIZE = "paper-size"
    OFFSET = "offset"
    BLADE = "blade"


@dataclass(frozen=True)
class WarningMessage:
    category: WarningCategory
    message: Optional[str]


@dataclass(frozen=True)
class Warnings:
    min_border: Optional[str] = None
    paper_size: Optional[str] = None
    offset: Optional[str] = None
    blade: Optional[str] = None

    def get(self, category: WarningCategory) -> Optional[str]:
        return getattr(self, category.name.lower())

    def all(self) -> List[WarningMessage]:
        return [WarningMessage(category, self.get(category)) for category in WarningCategory]

    def active(self) -> List[WarningMessage]:
        return [item for item in self.all() if item.message is not None]

    def __bool__(self) -> bool:
        return bool(self.active())
