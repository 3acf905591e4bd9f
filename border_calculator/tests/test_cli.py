import json

from border_calculator.cli import build_parser, main
from border_calculator.sharing import decode_preset, encode_preset
from border_calculator.presets import DEFAULT_PRESETS


def test_portrait_example(capsys):
    assert main(["--paper", "8x10", "--ratio", "3:2", "--portrait", "--border", "0.5"]) == 0
    out = capsys.readouterr().out
    assert "Paper: 8 x 10 in" in out
    assert "Print: 7 x 4.667 in" in out
    assert "Blades from edge: L 0.5  R 0.5  T 2.667  B 2.667" in out


def test_custom_paper_advisory(capsys):
    assert main(["--paper", "custom", "--paper-width", "30", "--paper-height", "40"]) == 0
    out = capsys.readouterr().out
    assert "! Custom paper (30×40) exceeds largest standard easel" in out


def test_offset_warning_and_suggestion(capsys):
    assert main(["--portrait", "--offset", "10", "0", "--suggest"]) == 0
    out = capsys.readouterr().out
    assert "! Offset adjusted to honour min-border." in out
    assert "Quarter-inch border: 0.625 in" in out


def test_bad_custom_size_is_an_error(capsys):
    assert main(["--paper", "custom", "--paper-width", "0"]) == 2
    assert "--paper-width" in capsys.readouterr().err


def test_non_finite_border_is_an_error(capsys):
    assert main(["--border", "nan"]) == 2
    assert "--border" in capsys.readouterr().err


def test_share_and_load_token(capsys):
    assert main(["--paper", "11x14", "--share", "Big prints"]) == 0
    token = capsys.readouterr().out.strip().splitlines()[-1]
    preset = decode_preset(token)
    assert preset.name == "Big prints"
    assert preset.settings["paper_size"] == "11x14"

    assert main(["--from-token", f"https://darkroom.example/?preset={token}"]) == 0
    out = capsys.readouterr().out
    assert "Loaded preset: Big prints" in out
    assert "Paper: 14 x 11 in" in out


def test_invalid_token_is_an_error(capsys):
    assert main(["--from-token", "not-a-token"]) == 2
    assert "--from-token" in capsys.readouterr().err


def test_state_file_persists_between_runs(tmp_path, capsys):
    state_file = tmp_path / "state.json"
    assert main(["--state-file", str(state_file), "--paper", "16x20", "--border", "1"]) == 0
    stored = json.loads(state_file.read_text(encoding="utf-8"))
    assert stored["paperSize"] == "16x20"
    assert stored["lastValidMinBorder"] == 1.0

    capsys.readouterr()
    assert main(["--state-file", str(state_file)]) == 0
    assert "Paper: 20 x 16 in" in capsys.readouterr().out


def test_pdf_option(tmp_path, capsys):
    output = tmp_path / "sheet.pdf"
    token = encode_preset("Default", DEFAULT_PRESETS[0].settings)
    assert main(["--from-token", token, "--pdf", str(output)]) == 0
    assert output.exists()
    assert f"Setup sheet: {output}" in capsys.readouterr().out


def test_parser_choices_come_from_tables():
    parser = build_parser()
    args = parser.parse_args(["--paper", "20x24", "--ratio", "even-borders", "--landscape"])
    assert args.paper == "20x24"
    assert args.landscape is True
    assert parser.parse_args([]).landscape is None


def test_pdf_into_directory_uses_share_name(tmp_path, capsys):
    assert main(["--share", "Contact Sheet #2", "--pdf", str(tmp_path)]) == 0
    assert (tmp_path / "contact_sheet_2.pdf").exists()
