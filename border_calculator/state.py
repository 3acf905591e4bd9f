from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .dimensions import resolve_dimensions
from .geometry import solve_geometry
from .models import (
    DEFAULT_CONFIG,
    IMAGE_FIELDS,
    PERSISTED_FIELDS,
    POSITIVE_FIELDS,
    SHADOW_FIELDS,
    CalculatorConfig,
    CalculatorState,
    GeometryResult,
    ResolvedDimensions,
    Warnings,
)
from .sizes import CUSTOM, DEFAULT_TABLES, SizeTables
from .utils import ValidationError, effective_number, is_number_prefix, try_number
from .validation import MinBorderCheck, check_min_border, evaluate_warnings

logger = logging.getLogger(__name__)

Listener = Callable[[CalculatorState], None]

_FIELD_NAMES = frozenset(CalculatorState.field_names())
_INTERNAL_FIELDS = frozenset({"last_valid_min_border"})


class TransitionType(str, Enum):
    SET_FIELD = "SET_FIELD"
    SET_PAPER_SIZE = "SET_PAPER_SIZE"
    SET_ASPECT_RATIO = "SET_ASPECT_RATIO"
    BATCH_UPDATE = "BATCH_UPDATE"
    RESET = "RESET"
    SET_IMAGE_FIELD = "SET_IMAGE_FIELD"
    SET_IMAGE_DIMENSIONS = "SET_IMAGE_DIMENSIONS"
    SET_CROP_OFFSET = "SET_CROP_OFFSET"
    SET_IMAGE_CROP_DATA = "SET_IMAGE_CROP_DATA"
    INTERNAL_UPDATE = "INTERNAL_UPDATE"


@dataclass(frozen=True)
class Transition:
    type: TransitionType
    key: Optional[str] = None
    value: Any = None
    payload: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def set_field(cls, key: str, value: Any) -> "Transition":
        return cls(TransitionType.SET_FIELD, key=key, value=value)

    @classmethod
    def set_paper_size(cls, value: str) -> "Transition":
        return cls(TransitionType.SET_PAPER_SIZE, value=value)

    @classmethod
    def set_aspect_ratio(cls, value: str) -> "Transition":
        return cls(TransitionType.SET_ASPECT_RATIO, value=value)

    @classmethod
    def batch_update(cls, payload: Mapping[str, Any]) -> "Transition":
        return cls(TransitionType.BATCH_UPDATE, payload=dict(payload))

    @classmethod
    def reset(cls) -> "Transition":
        return cls(TransitionType.RESET)


def _check_keys(keys, allowed, transition: TransitionType) -> None:
    unknown = sorted(set(keys) - allowed, key=str)
    if unknown:
        raise ValidationError(transition.value, f"unknown field(s): {', '.join(str(key) for key in unknown)}")


def reduce(state: CalculatorState, transition: Transition) -> CalculatorState:
    """Apply one transition. Raises ``ValidationError`` before touching anything."""
    kind = transition.type

    if kind is TransitionType.SET_FIELD:
        _check_keys([transition.key], _FIELD_NAMES, kind)
        return replace(state, **{transition.key: transition.value})

    if kind is TransitionType.SET_PAPER_SIZE:
        return replace(
            state,
            paper_size=transition.value,
            is_landscape=transition.value != CUSTOM,
            is_ratio_flipped=False,
        )

    if kind is TransitionType.SET_ASPECT_RATIO:
        return replace(state, aspect_ratio=transition.value, is_ratio_flipped=False)

    if kind is TransitionType.BATCH_UPDATE:
        _check_keys(transition.payload, _FIELD_NAMES, kind)
        return replace(state, **transition.payload)

    if kind is TransitionType.RESET:
        return CalculatorState()

    if kind is TransitionType.SET_IMAGE_FIELD:
        _check_keys([transition.key], frozenset(IMAGE_FIELDS), kind)
        return replace(state, **{transition.key: transition.value})

    if kind is TransitionType.SET_IMAGE_DIMENSIONS:
        return replace(state, image_dimensions=tuple(transition.value))

    if kind is TransitionType.SET_CROP_OFFSET:
        return replace(state, crop_offset=tuple(transition.value))

    if kind is TransitionType.SET_IMAGE_CROP_DATA:
        _check_keys(transition.payload, frozenset(IMAGE_FIELDS), kind)
        return replace(state, **transition.payload)

    if kind is TransitionType.INTERNAL_UPDATE:
        _check_keys(transition.payload, _INTERNAL_FIELDS, kind)
        return replace(state, **transition.payload)

    raise ValidationError("transition", f"unsupported transition {kind!r}")


@dataclass(frozen=True)
class Calculation:
    state: CalculatorState
    resolved: ResolvedDimensions
    border: MinBorderCheck
    geometry: GeometryResult
    warnings: Warnings


def calculate(
    state: CalculatorState,
    config: CalculatorConfig = DEFAULT_CONFIG,
    tables: SizeTables = DEFAULT_TABLES,
) -> Calculation:
    """Resolve, solve and validate one snapshot."""
    resolved = resolve_dimensions(state, tables)
    border = check_min_border(state.min_border, state.last_valid_min_border, resolved.paper)
    geometry = solve_geometry(
        resolved,
        border.border,
        state.enable_offset,
        effective_number(state.horizontal_offset, state.last_valid_horizontal_offset),
        effective_number(state.vertical_offset, state.last_valid_vertical_offset),
        state.ignore_min_border,
        config,
        tables,
    )
    warnings = evaluate_warnings(resolved, border, geometry, state.ignore_min_border, config, tables)
    return Calculation(state, resolved, border, geometry, warnings)


def settings_to_updates(settings: Mapping[str, Any]) -> Dict[str, Any]:
    """Expand preset settings so every committed custom value also updates its shadow."""
    updates = {key: value for key, value in settings.items() if key in _FIELD_NAMES}
    for key, shadow in SHADOW_FIELDS.items():
        if key not in updates or key == "min_border":
            continue
        number = try_number(updates[key])
        if number is None or (key in POSITIVE_FIELDS and number <= 0):
            continue
        updates[shadow] = number
    return updates


class BorderCalculator:
    """Owns the live calculator document; every change goes through ``dispatch``."""

    def __init__(
        self,
        state: Optional[CalculatorState] = None,
        config: CalculatorConfig = DEFAULT_CONFIG,
        tables: SizeTables = DEFAULT_TABLES,
    ) -> None:
        self.config = config
        self.tables = tables
        self._state = state or CalculatorState()
        self._listeners: List[Listener] = []
        self._derivation_key: Optional[Tuple[Any, ...]] = None
        self._calculation: Optional[Calculation] = None
        self._recompute()

    @property
    def state(self) -> CalculatorState:
        return self._state

    @property
    def calculation(self) -> Calculation:
        assert self._calculation is not None
        return self._calculation

    @property
    def resolved(self) -> ResolvedDimensions:
        return self.calculation.resolved

    @property
    def geometry(self) -> GeometryResult:
        return self.calculation.geometry

    @property
    def warnings(self) -> Warnings:
        return self.calculation.warnings

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, transition: Transition) -> CalculatorState:
        self._state = reduce(self._state, transition)
        self._recompute()
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def _recompute(self) -> None:
        key = tuple(getattr(self._state, name) for name in PERSISTED_FIELDS)
        if key == self._derivation_key and self._calculation is not None:
            self._calculation = replace(self._calculation, state=self._state)
            return
        calculation = calculate(self._state, self.config, self.tables)
        if calculation.border.last_valid != self._state.last_valid_min_border:
            self._state = reduce(
                self._state,
                Transition(
                    TransitionType.INTERNAL_UPDATE,
                    payload={"last_valid_min_border": calculation.border.last_valid},
                ),
            )
            calculation = replace(calculation, state=self._state)
        self._calculation = calculation
        self._derivation_key = tuple(getattr(self._state, name) for name in PERSISTED_FIELDS)

    # Input handlers

    def set_field(self, key: str, value: Any) -> CalculatorState:
        return self.dispatch(Transition.set_field(key, value))

    def set_paper_size(self, value: str) -> CalculatorState:
        if not self.tables.has_paper(value):
            logger.warning("Ignoring unknown paper size %r", value)
            return self._state
        return self.dispatch(Transition.set_paper_size(value))

    def set_aspect_ratio(self, value: str) -> CalculatorState:
        if not self.tables.has_ratio(value):
            logger.warning("Ignoring unknown aspect ratio %r", value)
            return self._state
        return self.dispatch(Transition.set_aspect_ratio(value))

    def batch_update(self, payload: Mapping[str, Any]) -> CalculatorState:
        return self.dispatch(Transition.batch_update(payload))

    def apply_settings(self, settings: Mapping[str, Any]) -> CalculatorState:
        return self.batch_update(settings_to_updates(settings))

    def reset_to_defaults(self) -> CalculatorState:
        return self.dispatch(Transition.reset())

    def set_numeric_input(self, key: str, value: Union[str, float]) -> CalculatorState:
        """Accept a text edit or slider value for a numeric field.

        Complete numbers are committed together with their shadow (custom sizes
        only when positive); partial text is echoed into the live field and the
        shadow stays in effect; anything else is ignored.
        """
        if key not in SHADOW_FIELDS:
            raise ValidationError(key, "is not a numeric input field")
        number = try_number(value)
        if number is not None:
            updates: Dict[str, Any] = {key: number}
            if key in POSITIVE_FIELDS:
                if number > 0:
                    updates[SHADOW_FIELDS[key]] = number
            elif key != "min_border":
                updates[SHADOW_FIELDS[key]] = number
            return self.batch_update(updates)
        if isinstance(value, str) and is_number_prefix(value):
            return self.set_field(key, value)
        logger.debug("Ignoring non-numeric input %r for %s", value, key)
        return self._state

    def toggle_landscape(self) -> CalculatorState:
        return self.batch_update(
            {"is_landscape": not self._state.is_landscape, "has_manually_flipped_paper": True}
        )

    def toggle_ratio_flip(self) -> CalculatorState:
        return self.set_field("is_ratio_flipped", not self._state.is_ratio_flipped)

    def set_image_field(self, key: str, value: Any) -> CalculatorState:
        return self.dispatch(Transition(TransitionType.SET_IMAGE_FIELD, key=key, value=value))

    def set_image_dimensions(self, width: float, height: float) -> CalculatorState:
        return self.dispatch(Transition(TransitionType.SET_IMAGE_DIMENSIONS, value=(width, height)))

    def set_crop_offset(self, x: float, y: float) -> CalculatorState:
        return self.dispatch(Transition(TransitionType.SET_CROP_OFFSET, value=(x, y)))

    def set_image_crop_data(self, payload: Mapping[str, Any]) -> CalculatorState:
        return self.dispatch(Transition(TransitionType.SET_IMAGE_CROP_DATA, payload=dict(payload)))
