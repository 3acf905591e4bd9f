"""Print size and easel blade calculator for darkroom enlarging easels."""

from .models import CalculatorConfig, CalculatorState, GeometryResult, Warnings
from .persistence import CalculatorSession, JsonFileStorage, decode_state, encode_state
from .presets import PresetCollection, SharedPreset, apply_preset
from .sharing import decode_preset, encode_preset
from .state import BorderCalculator, Transition, TransitionType
from .utils import ValidationError

__all__ = [
    "BorderCalculator",
    "CalculatorConfig",
    "CalculatorSession",
    "CalculatorState",
    "GeometryResult",
    "JsonFileStorage",
    "PresetCollection",
    "SharedPreset",
    "Transition",
    "TransitionType",
    "ValidationError",
    "Warnings",
    "apply_preset",
    "decode_preset",
    "decode_state",
    "encode_preset",
    "encode_state",
]
