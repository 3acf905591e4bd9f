from __future__ import annotations

import json
import logging
import math
import os
import threading
from dataclasses import replace
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Protocol

import jsonschema

from .models import (
    DEFAULT_CONFIG,
    PERSISTED_FIELDS,
    POSITIVE_FIELDS,
    SHADOW_FIELDS,
    CalculatorConfig,
    CalculatorState,
)
from .sizes import DEFAULT_TABLES, SizeTables
from .state import BorderCalculator
from .utils import ensure_directory, try_number

if TYPE_CHECKING:
    import tkinter as tk

logger = logging.getLogger(__name__)

_BOOLEAN_FIELDS = frozenset(
    name for name in PERSISTED_FIELDS if isinstance(getattr(CalculatorState(), name), bool)
)
_SELECTION_FIELDS = ("aspect_ratio", "paper_size")


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


CAMEL_KEYS: Dict[str, str] = {name: to_camel(name) for name in PERSISTED_FIELDS}


@lru_cache(maxsize=8)
def document_schema(config: CalculatorConfig = DEFAULT_CONFIG, tables: SizeTables = DEFAULT_TABLES) -> Dict[str, Any]:
    properties: Dict[str, Any] = {
        "version": {"type": "integer", "minimum": 1, "maximum": config.document_version},
        CAMEL_KEYS["aspect_ratio"]: {"type": "string", "enum": list(tables.ratio_values())},
        CAMEL_KEYS["paper_size"]: {"type": "string", "enum": list(tables.paper_values())},
    }
    for name in PERSISTED_FIELDS:
        if name in _SELECTION_FIELDS:
            continue
        if name in _BOOLEAN_FIELDS:
            properties[CAMEL_KEYS[name]] = {"type": "boolean"}
        else:
            properties[CAMEL_KEYS[name]] = {"type": "number"}
    for live, shadow in SHADOW_FIELDS.items():
        if live in POSITIVE_FIELDS:
            properties[CAMEL_KEYS[shadow]]["exclusiveMinimum"] = 0
    properties[CAMEL_KEYS["last_valid_min_border"]]["minimum"] = 0
    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "properties": properties,
        "additionalProperties": True,
    }


def to_document(state: CalculatorState, config: CalculatorConfig = DEFAULT_CONFIG) -> Dict[str, Any]:
    """Persistable subset of ``state`` keyed by camelCase names."""
    document: Dict[str, Any] = {"version": config.document_version}
    for name in PERSISTED_FIELDS:
        value = getattr(state, name)
        if name in SHADOW_FIELDS and try_number(value) is None:
            value = getattr(state, SHADOW_FIELDS[name])
        document[CAMEL_KEYS[name]] = value
    return document


def from_document(document: Dict[str, Any]) -> Dict[str, Any]:
    return {name: document[camel] for name, camel in CAMEL_KEYS.items() if camel in document}


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not allowed")


def _finite_float(text: str) -> float:
    number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"number {text} is out of range")
    return number


def load_json(text: str) -> Any:
    """``json.loads`` that refuses ``NaN``, ``Infinity`` and overflowing floats."""
    return json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)


def encode_state(state: CalculatorState, config: CalculatorConfig = DEFAULT_CONFIG) -> str:
    return json.dumps(to_document(state, config), sort_keys=True)


def decode_state(
    text: str,
    config: CalculatorConfig = DEFAULT_CONFIG,
    tables: SizeTables = DEFAULT_TABLES,
) -> Optional[Dict[str, Any]]:
    """Field updates from a stored document, or ``None`` when it is unusable."""
    try:
        document = load_json(text)
    except (TypeError, ValueError) as exc:
        logger.warning("Ignoring persisted state that is not JSON: %s", exc)
        return None
    try:
        jsonschema.validate(document, document_schema(config, tables), cls=jsonschema.Draft7Validator)
    except jsonschema.ValidationError as exc:
        logger.warning("Ignoring persisted state: %s", exc.message)
        return None
    return from_document(document)


def restore_state(
    text: str,
    config: CalculatorConfig = DEFAULT_CONFIG,
    tables: SizeTables = DEFAULT_TABLES,
) -> Optional[CalculatorState]:
    updates = decode_state(text, config, tables)
    if updates is None:
        return None
    return replace(CalculatorState(), **updates)


class Scheduler(Protocol):
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


class ThreadingScheduler:
    """Runs callbacks on daemon timer threads."""

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay_ms / 1000.0, callback)
        timer.daemon = True
        timer.start()
        return timer

    def cancel(self, handle: threading.Timer) -> None:
        handle.cancel()


class TkScheduler:
    """Runs callbacks on the Tk event loop of ``widget``."""

    def __init__(self, widget: "tk.Misc") -> None:
        self.widget = widget

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> str:
        return self.widget.after(delay_ms, callback)

    def cancel(self, handle: str) -> None:
        self.widget.after_cancel(handle)


class DebouncedWriter:
    """Coalesces bursts of writes into one write ``delay_ms`` after the last."""

    def __init__(
        self,
        write: Callable[[str], None],
        scheduler: Scheduler,
        delay_ms: int = DEFAULT_CONFIG.persist_delay_ms,
    ) -> None:
        self._write = write
        self._scheduler = scheduler
        self._delay_ms = delay_ms
        self._lock = threading.Lock()
        self._handle: Any = None
        self._payload: Optional[str] = None

    @property
    def pending(self) -> bool:
        return self._payload is not None

    def schedule(self, payload: str) -> None:
        with self._lock:
            self._cancel_timer()
            self._payload = payload
            self._handle = self._scheduler.call_later(self._delay_ms, self._fire)

    def flush(self) -> None:
        with self._lock:
            self._cancel_timer()
            payload, self._payload = self._payload, None
        if payload is not None:
            self._write(payload)

    def cancel(self) -> None:
        with self._lock:
            self._cancel_timer()
            self._payload = None

    def _fire(self) -> None:
        with self._lock:
            self._handle = None
            payload, self._payload = self._payload, None
        if payload is not None:
            self._write(payload)

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
            self._handle = None


class JsonFileStorage:
    """A single JSON text file. I/O failures are logged, never raised."""

    def __init__(self, path: str) -> None:
        self.path = path

    def read(self) -> Optional[str]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                return handle.read()
        except OSError as exc:
            logger.warning("Could not read %s: %s", self.path, exc)
            return None

    def write(self, text: str) -> None:
        temp_path = f"{self.path}.tmp"
        try:
            ensure_directory(os.path.dirname(self.path) or ".")
            with open(temp_path, "w", encoding="utf-8") as handle:
                handle.write(text)
            os.replace(temp_path, self.path)
        except OSError as exc:
            logger.warning("Could not write %s: %s", self.path, exc)

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove %s: %s", self.path, exc)


class CalculatorSession:
    """A calculator whose state is restored from and saved to ``storage``.

    Stored state is read once, synchronously, before any transition. Each
    transition after that reschedules one debounced write; ``close`` drops
    any write still pending and ``flush`` performs it immediately.
    """

    def __init__(
        self,
        storage: Optional[JsonFileStorage] = None,
        scheduler: Optional[Scheduler] = None,
        config: CalculatorConfig = DEFAULT_CONFIG,
        tables: SizeTables = DEFAULT_TABLES,
    ) -> None:
        self.config = config
        self.storage = storage or JsonFileStorage(config.state_path)
        self.calculator = BorderCalculator(config=config, tables=tables)
        self.restored = self._restore(tables)
        self._writer = DebouncedWriter(self.storage.write, scheduler or ThreadingScheduler(), config.persist_delay_ms)
        self._unsubscribe: Optional[Callable[[], None]] = self.calculator.subscribe(self._on_change)

    def _restore(self, tables: SizeTables) -> bool:
        text = self.storage.read()
        if not text:
            return False
        updates = decode_state(text, self.config, tables)
        if not updates:
            return False
        self.calculator.batch_update(updates)
        logger.debug("Restored calculator state from %s", self.storage.path)
        return True

    def _on_change(self, state: CalculatorState) -> None:
        self._writer.schedule(encode_state(state, self.config))

    @property
    def pending(self) -> bool:
        return self._writer.pending

    def flush(self) -> None:
        self._writer.flush()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._writer.cancel()

    def __enter__(self) -> "CalculatorSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
