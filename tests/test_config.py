"""Tests for manualgen.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from manualgen.config import ManualGenConfig, default_slots, load_config, slot_values
from manualgen.errors import ConfigurationError
from manualgen.manual.template import SlotKind
from manualgen.models import ModuleSet


def test_load_config_returns_defaults_when_missing(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("MANUALGEN_VERSION", raising=False)
    monkeypatch.delenv("MANUALGEN_REVISION", raising=False)

    config = load_config(tmp_path)

    assert isinstance(config, ManualGenConfig)
    assert config.root == tmp_path.resolve()
    assert config.version == "unstable"
    assert config.module_sets == []
    assert config.strip_roots == []
    assert config.public_source is None
    assert config.warnings_are_errors is True
    assert config.output_dir == tmp_path.resolve() / "result"


def test_load_config_parses_expected_fields(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("MANUALGEN_VERSION", raising=False)
    monkeypatch.delenv("MANUALGEN_REVISION", raising=False)
    config_file = tmp_path / ".manualgen.yml"
    config_file.write_text(
        """
version: "24.05"
revision: "0123abcd"
prefix: "."
extra_sources:
  - /nix/store/abc-custom-modules
public_source:
  url_template: "https://example.org/src/{sub}"
warnings_are_errors: false
output: build
manual:
  markdown_root: nixos/doc/manual
  manpage_urls: doc/manpage-urls.json
  static_manpages: nixos/doc/manual/manpages
  module_docs: [nixos/modules/a.md, nixos/modules/b.md]
  stylesheets: [doc/style.css, doc/overrides.css]
  highlighter: pkgs/highlighter
  epub_stylesheet: /xsl/epub/docbook.xsl
  jobs: 8
module_sets:
  nixos:
    primary: true
    modules: [nixos/modules/module-list.yml]
    document_type: appendix
    variablelist_id: configuration-variable-list
    option_id_prefix: opt-
  test:
    link_declarations: true
    modules:
      - nixos/lib/testing.yml
      - options:
          node.type:
            type: deferred module
            description: The node type.
  noLegacyPkgs:
    link_declarations: true
    modules: nixos/modules/misc/nixpkgs/no-legacy.yml
""",
        encoding="utf-8",
    )

    config = load_config(config_file)
    root = tmp_path.resolve()

    assert config.version == "24.05"
    assert config.revision == "0123abcd"
    assert config.strip_roots == [str(root), "/nix/store/abc-custom-modules"]
    assert config.public_source is not None
    assert config.public_source.root == str(root)
    assert config.public_source.url_template("a.nix") == "https://example.org/src/a.nix"
    assert config.warnings_are_errors is False
    assert config.output_dir == root / "build"
    assert config.markdown_root == root / "nixos" / "doc" / "manual"
    assert config.module_docs == [root / "nixos/modules/a.md", root / "nixos/modules/b.md"]
    assert config.assets.stylesheets == [root / "doc/style.css", root / "doc/overrides.css"]
    assert config.epub_stylesheet == Path("/xsl/epub/docbook.xsl")
    assert config.jobs == 8

    names = [module_set.name for module_set in config.module_sets]
    assert names == ["nixos", "test", "noLegacyPkgs"]
    nixos, test, no_legacy = config.module_sets
    assert nixos.primary and nixos.option_id_prefix == "opt-"
    assert nixos.modules == (root / "nixos/modules/module-list.yml",)
    assert test.link_declarations
    assert isinstance(test.modules[1], dict)
    assert no_legacy.modules == (root / "nixos/modules/misc/nixpkgs/no-legacy.yml",)

    slots = {slot_config.slot.name: slot_config.source for slot_config in config.slots}
    assert slots == {
        "NIXOS_VERSION": "version",
        "MODULE_CHAPTERS": "module_docs",
        "NIXOS_OPTIONS_JSON": "options_json:nixos",
        "NIXOS_TEST_OPTIONS_JSON": "options_json:test",
        "OPTIONS_JSON_noLegacyPkgs": "options_json:noLegacyPkgs",
    }


def test_explicit_placeholders_replace_defaults(tmp_path: Path) -> None:
    (tmp_path / ".manualgen.yml").write_text(
        """
module_sets:
  main:
    primary: true
    modules: [main.yml]
manual:
  placeholders:
    - name: PRODUCT_VERSION
      file: index.md
      source: version
    - name: MAIN_OPTIONS
      file: options.md
      kind: path
      source: "options_json:main"
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    assert [(c.slot.name, c.slot.kind) for c in config.slots] == [
        ("PRODUCT_VERSION", SlotKind.TEXT),
        ("MAIN_OPTIONS", SlotKind.PATH),
    ]


@pytest.mark.parametrize(
    "body, message",
    [
        ("- just\n- a list\n", "mapping at the root"),
        ("public_source:\n  root: /src\n  url_template: 'https://x/{path}'\n", "URL template"),
        ("module_sets:\n  main:\n    primary: true\n", "non-empty modules"),
        (
            "module_sets:\n  main:\n    primary: true\n    modules: [a.yml]\n"
            "manual:\n  placeholders:\n    - {name: X, file: a.md, source: 'options_json:other'}\n",
            "unknown module set",
        ),
        (
            "manual:\n  placeholders:\n    - {name: X, file: a.md, source: version, kind: number}\n",
            "Unknown placeholder kind",
        ),
        ("version: [unclosed\n", "Failed to parse"),
        ("version: 23.10\n", "version must be a quoted string"),
        ("revision: 20240101\n", "revision must be a quoted string"),
    ],
)
def test_invalid_configuration_is_rejected(tmp_path: Path, body: str, message: str) -> None:
    (tmp_path / ".manualgen.yml").write_text(body, encoding="utf-8")

    with pytest.raises(ConfigurationError, match=message):
        load_config(tmp_path)


def test_environment_overrides_version_and_revision(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / ".manualgen.yml").write_text('version: "1.0"\nrevision: "abc"\n', encoding="utf-8")
    monkeypatch.setenv("MANUALGEN_VERSION", "2.0")
    monkeypatch.setenv("MANUALGEN_REVISION", "def")

    config = load_config(tmp_path / ".manualgen.yml")

    assert config.version == "2.0"
    assert config.revision == "def"


def test_slot_values_resolve_from_written_documents(tmp_path: Path) -> None:
    config = ManualGenConfig(root=tmp_path, version="24.05", module_docs=[tmp_path / "a.md"])
    config.module_sets = [ModuleSet(name="nixos", modules=[{}], primary=True)]
    config.slots = default_slots(config.module_sets)

    values = slot_values(config, {"nixos": tmp_path / "options.json"})

    assert values == {
        "NIXOS_VERSION": "24.05",
        "MODULE_CHAPTERS": [tmp_path / "a.md"],
        "NIXOS_OPTIONS_JSON": tmp_path / "options.json",
    }


def test_quoted_release_versions_keep_their_text(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("MANUALGEN_VERSION", raising=False)
    monkeypatch.delenv("MANUALGEN_REVISION", raising=False)
    (tmp_path / ".manualgen.yml").write_text(
        'version: "23.10"\nrevision: "20240101"\n', encoding="utf-8"
    )

    config = load_config(tmp_path)

    assert config.version == "23.10"
    assert config.revision == "20240101"
