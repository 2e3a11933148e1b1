"""CLI parser and entrypoint behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from manualgen.cli import _build_parser, main


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "html"])
    assert args.verbose is True
    assert args.command == "html"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["manpages", "--verbose"])
    assert args.verbose is True
    assert args.command == "manpages"


def test_cli_accepts_output_override() -> None:
    parser = _build_parser()
    args = parser.parse_args(["-c", "conf", "all", "--output", "out"])
    assert args.config == "conf"
    assert args.output == "out"


def test_cli_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args([])


def test_options_command_writes_documents(tmp_path: Path, capsys) -> None:
    (tmp_path / "main.yml").write_text(
        "options:\n  a.b:\n    type: int\n    description: A value.\n", encoding="utf-8"
    )
    (tmp_path / ".manualgen.yml").write_text(
        "module_sets:\n"
        "  main:\n"
        "    primary: true\n"
        "    modules: [main.yml]\n"
        "    document_type: none\n"
        "    variablelist_id: options-list\n"
        "    option_id_prefix: opt-\n",
        encoding="utf-8",
    )

    main(["-c", str(tmp_path), "options", "-o", str(tmp_path / "out")])

    assert (tmp_path / "out" / "options" / "main" / "share" / "doc" / "nixos" / "options.json").exists()
    output_dir = (tmp_path / "out").resolve()
    out = capsys.readouterr().out
    assert f"Output: {output_dir}" in out
    assert "  main: options/main/share/doc/nixos/options.json" in out


def test_failures_exit_with_status_one(tmp_path: Path, capsys) -> None:
    (tmp_path / ".manualgen.yml").write_text("- not a mapping\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["-c", str(tmp_path), "html"])

    assert excinfo.value.code == 1
    assert "manualgen html failed" in capsys.readouterr().err


def test_unserializable_option_values_exit_with_status_one(tmp_path: Path, capsys) -> None:
    (tmp_path / "main.yml").write_text(
        "options:\n  release.date:\n    type: string\n    description: Date.\n    default: 2024-01-01\n",
        encoding="utf-8",
    )
    (tmp_path / ".manualgen.yml").write_text(
        "module_sets:\n"
        "  main:\n"
        "    primary: true\n"
        "    modules: [main.yml]\n"
        "    document_type: none\n"
        "    variablelist_id: options-list\n"
        "    option_id_prefix: opt-\n",
        encoding="utf-8",
    )

    with pytest.raises(SystemExit) as excinfo:
        main(["-c", str(tmp_path), "options", "-o", str(tmp_path / "out")])

    assert excinfo.value.code == 1
    assert "cannot be written as JSON" in capsys.readouterr().err
