"""Helper utilities for constructing manual source trees in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

import yaml


class ManualSourceBuilder:
    """Writes Markdown sources and YAML modules into a throwaway source tree."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "src"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries relative to the source root."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def module(self, relative: str, data: Mapping[str, object]) -> Path:
        """Write a YAML module and return its absolute path."""
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(dict(data), sort_keys=False), encoding="utf-8")
        return path

    def path(self, relative: str = "") -> Path:
        return self.root / relative if relative else self.root


__all__ = ["ManualSourceBuilder"]
