import base64
import zlib

import pytest

from border_calculator.presets import DEFAULT_PRESETS
from border_calculator.sharing import (
    build_share_url,
    decode_preset,
    encode_preset,
    is_valid_token,
    token_from_url,
)
from border_calculator.sizes import CUSTOM


def make_token(raw):
    payload = f"{raw}-{zlib.crc32(raw.encode('ascii'))}"
    return base64.urlsafe_b64encode(payload.encode("ascii")).decode("ascii").rstrip("=")


def test_default_preset_round_trip():
    preset = DEFAULT_PRESETS[0]
    token = encode_preset(preset.name, preset.settings)
    assert token is not None
    assert "=" not in token
    decoded = decode_preset(token)
    assert decoded.name == preset.name
    for key, value in preset.settings.items():
        if key != "has_manually_flipped_paper":
            assert decoded.settings[key] == value
    assert decoded.id.startswith("shared-")


def test_custom_sizes_and_negative_offsets_round_trip():
    settings = {
        "aspect_ratio": CUSTOM,
        "paper_size": CUSTOM,
        "custom_aspect_width": 4.5,
        "custom_aspect_height": 6.0,
        "custom_paper_width": 12.0,
        "custom_paper_height": 15.75,
        "min_border": 0.63,
        "horizontal_offset": -1.25,
        "vertical_offset": -0.5,
        "enable_offset": True,
        "show_blade_readings": True,
        "is_landscape": False,
    }
    decoded = decode_preset(encode_preset("Split-grade 12x16", settings))
    assert decoded.name == "Split-grade 12x16"
    assert decoded.settings["horizontal_offset"] == -1.25
    assert decoded.settings["vertical_offset"] == -0.5
    assert decoded.settings["custom_paper_height"] == 15.75
    assert decoded.settings["custom_aspect_width"] == 4.5
    assert decoded.settings["min_border"] == 0.63
    assert decoded.settings["enable_offset"] is True
    assert decoded.settings["ignore_min_border"] is False
    assert decoded.settings["is_landscape"] is False


def test_values_carry_hundredths():
    settings = dict(DEFAULT_PRESETS[0].settings, min_border=0.333)
    decoded = decode_preset(encode_preset("Thirds", settings))
    assert decoded.settings["min_border"] == 0.33


def test_unicode_name_survives():
    token = encode_preset("Ilford MG — 5×7", DEFAULT_PRESETS[0].settings)
    assert decode_preset(token).name == "Ilford MG — 5×7"


@pytest.mark.parametrize(
    "settings",
    [
        {"aspect_ratio": "9:7", "paper_size": "8x10"},
        {"aspect_ratio": "3:2", "paper_size": "8x10", "min_border": -1},
        {"aspect_ratio": "3:2", "paper_size": CUSTOM, "custom_paper_width": "wide", "custom_paper_height": 10},
    ],
)
def test_unshareable_settings_encode_to_none(settings):
    assert encode_preset("Bad", settings) is None


def test_blank_name_is_not_shareable():
    assert encode_preset("   ", DEFAULT_PRESETS[0].settings) is None


def test_valid_hand_built_token_decodes():
    preset = decode_preset(make_token("Test-1-0-2-50-10000-10000-8"))
    assert preset.settings["paper_size"] == "8x10"
    assert preset.settings["is_landscape"] is True


@pytest.mark.parametrize(
    "token",
    [
        "",
        "abc$def",
        "QQ",
        make_token("Test-1-0-2-50-10000-10000-8")[:-3],
        make_token("Test-2-0-2-50-10000-10000-8"),
        make_token("Test-1-99-2-50-10000-10000-8"),
        make_token("Test-1-0-2-50-10000-10000-64"),
        make_token("Test-1-0-2-50-10000-10000"),
        make_token("Test-1-0-6-50-10000-10000-8"),
        make_token("Test-1-0-6-50-10000-10000-8-0-900"),
        make_token("Test-1-0-2-50-10000-10000-8-100"),
        make_token("-1-0-2-50-10000-10000-8"),
        make_token("Test-1-0-2-x-10000-10000-8"),
    ],
)
def test_bad_tokens_fail_closed(token):
    assert decode_preset(token) is None
    assert not is_valid_token(token)


def test_checksum_catches_tampering():
    raw = "Test-1-0-2-50-10000-10000-8"
    forged = f"{raw.replace('-50-', '-75-')}-{zlib.crc32(raw.encode('ascii'))}"
    token = base64.urlsafe_b64encode(forged.encode("ascii")).decode("ascii").rstrip("=")
    assert decode_preset(token) is None


def test_share_url_round_trip():
    token = encode_preset("Contact sheet", DEFAULT_PRESETS[0].settings)
    url = build_share_url("https://darkroom.example/border?units=in", token)
    assert url.startswith("https://darkroom.example/border?")
    assert "units=in" in url
    assert token_from_url(url) == token
    assert token_from_url("https://darkroom.example/border") is None
