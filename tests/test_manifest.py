"""Tests for the build product manifest."""

from __future__ import annotations

from pathlib import Path

import pytest

from manualgen.manifest import BuildProductManifest


def test_records_are_appended_in_order(tmp_path: Path) -> None:
    manifest = BuildProductManifest(tmp_path)
    manifest.record("nix-build", "out", tmp_path)
    manifest.record("doc", "manual", tmp_path / "share" / "doc" / "nixos")

    again = BuildProductManifest(tmp_path)
    again.record("doc-epub", "manual", tmp_path / "manual.epub")

    text = (tmp_path / "nix-support" / "hydra-build-products").read_text(encoding="utf-8")
    assert text.splitlines() == [
        f"nix-build out {tmp_path}",
        f"doc manual {tmp_path / 'share' / 'doc' / 'nixos'}",
        f"doc-epub manual {tmp_path / 'manual.epub'}",
    ]
    assert [entry.kind for entry in again.entries()] == ["nix-build", "doc", "doc-epub"]


def test_paths_with_spaces_survive_reading(tmp_path: Path) -> None:
    manifest = BuildProductManifest(tmp_path)
    manifest.record("file", "json", "/some dir/options.json")

    assert manifest.entries()[0].path == "/some dir/options.json"


def test_kind_and_label_must_be_single_words(tmp_path: Path) -> None:
    manifest = BuildProductManifest(tmp_path)
    with pytest.raises(ValueError):
        manifest.record("doc epub", "manual", "/x")
    with pytest.raises(ValueError):
        manifest.record("doc", "", "/x")


def test_missing_manifest_has_no_entries(tmp_path: Path) -> None:
    assert BuildProductManifest(tmp_path).entries() == []
