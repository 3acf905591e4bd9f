from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import jsonschema

from .models import DEFAULT_CONFIG, PRESET_FIELDS, SHADOW_FIELDS, CalculatorConfig, CalculatorState
from .persistence import CAMEL_KEYS, JsonFileStorage, document_schema, load_json
from .sizes import DEFAULT_TABLES, SizeTables
from .state import BorderCalculator
from .utils import ValidationError, effective_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SharedPreset:
    id: str
    name: str
    settings: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "settings", MappingProxyType(dict(self.settings)))


DEFAULT_PRESETS: Tuple[SharedPreset, ...] = (
    SharedPreset(
        id="default-8x10",
        name="35mm on 8x10, 6x9in",
        settings={
            "aspect_ratio": "3:2",
            "paper_size": "8x10",
            "min_border": 0.5,
            "enable_offset": False,
            "ignore_min_border": False,
            "horizontal_offset": 0.0,
            "vertical_offset": 0.0,
            "show_blades": False,
            "show_blade_readings": False,
            "is_landscape": True,
            "is_ratio_flipped": False,
            "has_manually_flipped_paper": False,
        },
    ),
)


def settings_from_state(state: CalculatorState) -> Dict[str, Any]:
    """Preset fields of ``state``, with partial text replaced by its shadow."""
    settings: Dict[str, Any] = {}
    for name in PRESET_FIELDS:
        value = getattr(state, name)
        if name in SHADOW_FIELDS:
            value = effective_number(value, getattr(state, SHADOW_FIELDS[name]))
        settings[name] = value
    return settings


def apply_preset(calculator: BorderCalculator, preset: SharedPreset) -> CalculatorState:
    logger.debug("Applying preset %s (%s)", preset.id, preset.name)
    return calculator.apply_settings(preset.settings)


def _collection_schema(config: CalculatorConfig, tables: SizeTables) -> Dict[str, Any]:
    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "array",
        "items": {
            "type": "object",
            "required": ["id", "name", "settings"],
            "properties": {
                "id": {"type": "string", "minLength": 1},
                "name": {"type": "string", "minLength": 1},
                "settings": document_schema(config, tables),
            },
        },
    }


class PresetCollection:
    """User presets stored as one JSON file, listed ahead of the built-in ones."""

    def __init__(
        self,
        storage: Optional[JsonFileStorage] = None,
        defaults: Tuple[SharedPreset, ...] = DEFAULT_PRESETS,
        config: CalculatorConfig = DEFAULT_CONFIG,
        tables: SizeTables = DEFAULT_TABLES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.storage = storage or JsonFileStorage(config.presets_path)
        self.defaults = defaults
        self.config = config
        self.tables = tables
        self._clock = clock
        self._user: List[SharedPreset] = []

    def load(self) -> List[SharedPreset]:
        self._user = []
        text = self.storage.read()
        if not text:
            return self.items()
        try:
            entries = load_json(text)
            jsonschema.validate(entries, _collection_schema(self.config, self.tables), cls=jsonschema.Draft7Validator)
        except ValueError as exc:
            logger.warning("Ignoring preset file that is not JSON: %s", exc)
            return self.items()
        except jsonschema.ValidationError as exc:
            logger.warning("Ignoring malformed preset file: %s", exc.message)
            return self.items()
        snake_keys = {camel: name for name, camel in CAMEL_KEYS.items()}
        for entry in entries:
            settings = {
                snake_keys[key]: value
                for key, value in entry["settings"].items()
                if snake_keys.get(key) in PRESET_FIELDS
            }
            self._user.append(SharedPreset(entry["id"], entry["name"], settings))
        return self.items()

    def save(self) -> None:
        entries = [
            {
                "id": preset.id,
                "name": preset.name,
                "settings": {CAMEL_KEYS[key]: value for key, value in preset.settings.items()},
            }
            for preset in self._user
        ]
        self.storage.write(json.dumps(entries, indent=2))

    def items(self) -> List[SharedPreset]:
        return list(self._user) + list(self.defaults)

    def get(self, preset_id: str) -> Optional[SharedPreset]:
        for preset in self.items():
            if preset.id == preset_id:
                return preset
        logger.debug("No preset with id %s", preset_id)
        return None

    def _new_id(self) -> str:
        millis = int(self._clock() * 1000)
        taken = {preset.id for preset in self.items()}
        while f"user-{millis}" in taken:
            millis += 1
        return f"user-{millis}"

    def add(self, name: str, state: CalculatorState) -> SharedPreset:
        name = name.strip()
        if not name:
            raise ValidationError("name", "Preset name cannot be blank.")
        preset = SharedPreset(self._new_id(), name, settings_from_state(state))
        self._user.insert(0, preset)
        return preset

    def update(
        self,
        preset_id: str,
        name: Optional[str] = None,
        state: Optional[CalculatorState] = None,
    ) -> SharedPreset:
        for index, preset in enumerate(self._user):
            if preset.id != preset_id:
                continue
            new_name = preset.name if name is None else name.strip()
            if not new_name:
                raise ValidationError("name", "Preset name cannot be blank.")
            settings = preset.settings if state is None else settings_from_state(state)
            updated = SharedPreset(preset.id, new_name, settings)
            self._user[index] = updated
            return updated
        raise ValidationError("id", f"No user preset with id {preset_id!r}.")

    def remove(self, preset_id: str) -> bool:
        for index, preset in enumerate(self._user):
            if preset.id == preset_id:
                del self._user[index]
                return True
        return False
