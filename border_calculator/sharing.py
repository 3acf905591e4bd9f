"""Compact URL-safe tokens for sharing presets.

A token is the unpadded base64url form of dash-separated fields::

    name-version-ratio-paper-border-hoffset-voffset-flags[-ratioW-ratioH][-paperW-paperH]-crc32

The name is percent-encoded. Sizes are hundredths of an inch and offsets are
biased by 10000 so every numeric field is a non-negative integer. The trailing
CRC32 covers everything before it.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import zlib
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import parse_qs, quote, unquote, urlencode, urlsplit, urlunsplit

from .models import DEFAULT_CONFIG, CalculatorConfig
from .presets import SharedPreset
from .sizes import CUSTOM, DEFAULT_TABLES, SizeTables

logger = logging.getLogger(__name__)

QUERY_PARAM = "preset"
OFFSET_BIAS = 10000
SCALE = 100

FLAG_BITS = (
    ("enable_offset", 1),
    ("ignore_min_border", 2),
    ("show_blades", 4),
    ("is_landscape", 8),
    ("is_ratio_flipped", 16),
    ("show_blade_readings", 32),
)
MAX_MASK = sum(bit for _, bit in FLAG_BITS)

_TOKEN_CHARS = re.compile(r"^[A-Za-z0-9_-]+$")
_DIGITS = re.compile(r"^\d+$")


class CodecError(ValueError):
    pass


def _scaled(value: Any, name: str, bias: int = 0) -> int:
    try:
        scaled = int(round(float(value) * SCALE)) + bias
    except (TypeError, ValueError):
        raise CodecError(f"{name} is not a number: {value!r}") from None
    if scaled < 0:
        raise CodecError(f"{name} is out of range: {value!r}")
    return scaled


def _index_of(values, value: str, name: str) -> int:
    try:
        return list(values).index(value)
    except ValueError:
        raise CodecError(f"unknown {name} {value!r}") from None


def _flags_to_mask(settings: Mapping[str, Any]) -> int:
    mask = 0
    for key, bit in FLAG_BITS:
        if settings.get(key):
            mask |= bit
    return mask


def _pack(
    name: str,
    settings: Mapping[str, Any],
    config: CalculatorConfig,
    tables: SizeTables,
) -> str:
    if not name.strip():
        raise CodecError("preset name is blank")
    aspect_ratio = settings.get("aspect_ratio")
    paper_size = settings.get("paper_size")
    parts: List[str] = [
        quote(name.strip(), safe="").replace("-", "%2D"),
        str(config.share_version),
        str(_index_of(tables.ratio_values(), aspect_ratio, "aspect ratio")),
        str(_index_of(tables.paper_values(), paper_size, "paper size")),
        str(_scaled(settings.get("min_border", 0), "min_border")),
        str(_scaled(settings.get("horizontal_offset", 0), "horizontal_offset", OFFSET_BIAS)),
        str(_scaled(settings.get("vertical_offset", 0), "vertical_offset", OFFSET_BIAS)),
        str(_flags_to_mask(settings)),
    ]
    if aspect_ratio == CUSTOM:
        parts.append(str(_scaled(settings.get("custom_aspect_width"), "custom_aspect_width")))
        parts.append(str(_scaled(settings.get("custom_aspect_height"), "custom_aspect_height")))
    if paper_size == CUSTOM:
        parts.append(str(_scaled(settings.get("custom_paper_width"), "custom_paper_width")))
        parts.append(str(_scaled(settings.get("custom_paper_height"), "custom_paper_height")))
    return "-".join(parts)


def _checksum(raw: str) -> int:
    return zlib.crc32(raw.encode("ascii")) & 0xFFFFFFFF


def encode_preset(
    name: str,
    settings: Mapping[str, Any],
    config: CalculatorConfig = DEFAULT_CONFIG,
    tables: SizeTables = DEFAULT_TABLES,
) -> Optional[str]:
    """Token for ``settings`` under ``name``, or ``None`` if they cannot be shared."""
    try:
        raw = _pack(name, settings, config, tables)
    except CodecError as exc:
        logger.warning("Cannot share preset %r: %s", name, exc)
        return None
    payload = f"{raw}-{_checksum(raw)}"
    return base64.urlsafe_b64encode(payload.encode("ascii")).decode("ascii").rstrip("=")


def _unpack(token: str, config: CalculatorConfig, tables: SizeTables) -> SharedPreset:
    if not token or not _TOKEN_CHARS.match(token):
        raise CodecError("token has characters outside base64url")
    padded = token + "=" * (-len(token) % 4)
    try:
        payload = base64.urlsafe_b64decode(padded.encode("ascii")).decode("ascii")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise CodecError(f"token is not base64url text: {exc}") from None

    raw, _, checksum = payload.rpartition("-")
    if not raw or not _DIGITS.match(checksum):
        raise CodecError("token has no checksum")
    if int(checksum) != _checksum(raw):
        raise CodecError("checksum mismatch")

    name_part, *fields = raw.split("-")
    if len(fields) < 7 or not all(_DIGITS.match(item) for item in fields):
        raise CodecError("malformed numeric fields")
    numbers = [int(item) for item in fields]
    version, ratio_index, paper_index, border, h_offset, v_offset, mask = numbers[:7]
    extra = numbers[7:]

    if version != config.share_version:
        raise CodecError(f"unsupported version {version}")
    ratios, papers = tables.ratio_values(), tables.paper_values()
    if ratio_index >= len(ratios) or paper_index >= len(papers):
        raise CodecError("selection index out of range")
    if mask > MAX_MASK:
        raise CodecError("flag mask out of range")

    aspect_ratio, paper_size = ratios[ratio_index], papers[paper_index]
    expected = (2 if aspect_ratio == CUSTOM else 0) + (2 if paper_size == CUSTOM else 0)
    if len(extra) != expected:
        raise CodecError("wrong number of custom dimension fields")
    if any(value <= 0 for value in extra):
        raise CodecError("custom dimensions must be positive")

    name = unquote(name_part).strip()
    if not name:
        raise CodecError("preset name is blank")

    settings: Dict[str, Any] = {
        "aspect_ratio": aspect_ratio,
        "paper_size": paper_size,
        "min_border": border / SCALE,
        "horizontal_offset": (h_offset - OFFSET_BIAS) / SCALE,
        "vertical_offset": (v_offset - OFFSET_BIAS) / SCALE,
    }
    for key, bit in FLAG_BITS:
        settings[key] = bool(mask & bit)
    if aspect_ratio == CUSTOM:
        settings["custom_aspect_width"] = extra.pop(0) / SCALE
        settings["custom_aspect_height"] = extra.pop(0) / SCALE
    if paper_size == CUSTOM:
        settings["custom_paper_width"] = extra.pop(0) / SCALE
        settings["custom_paper_height"] = extra.pop(0) / SCALE
    return SharedPreset(id=f"shared-{int(checksum):08x}", name=name, settings=settings)


def decode_preset(
    token: str,
    config: CalculatorConfig = DEFAULT_CONFIG,
    tables: SizeTables = DEFAULT_TABLES,
) -> Optional[SharedPreset]:
    try:
        return _unpack(token, config, tables)
    except CodecError as exc:
        logger.warning("Rejecting shared preset token: %s", exc)
        return None


def is_valid_token(token: str, config: CalculatorConfig = DEFAULT_CONFIG, tables: SizeTables = DEFAULT_TABLES) -> bool:
    try:
        _unpack(token, config, tables)
    except CodecError:
        return False
    return True


def build_share_url(base_url: str, token: str) -> str:
    parts = urlsplit(base_url)
    query = parse_qs(parts.query, keep_blank_values=True)
    query[QUERY_PARAM] = [token]
    return urlunsplit(parts._replace(query=urlencode(query, doseq=True)))


def token_from_url(url: str) -> Optional[str]:
    values = parse_qs(urlsplit(url).query).get(QUERY_PARAM)
    return values[0] if values else None
