"""Tests for option document renderers."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from manualgen.errors import ConfigurationError, EvaluationError
from manualgen.models import LinkedDeclaration, Option
from manualgen.options.render import (
    literal_text,
    option_id,
    option_to_json,
    options_to_json,
    render_commonmark,
    render_docbook,
)

DOCBOOK_NS = "{http://docbook.org/ns/docbook}"


def _document() -> dict:
    return options_to_json(
        [
            Option(
                name="services.<name>.enable",
                type="boolean",
                description="Enable <name> & friends.",
                declarations=(
                    "nixos/modules/a.nix",
                    LinkedDeclaration(url="https://host/b.nix", name="b.nix"),
                ),
                default=False,
                example={"_type": "literalExpression", "text": "true"},
            ),
            Option(name="internal.thing", type="int", description="x", internal=True),
        ]
    )


def test_option_json_omits_absent_default_and_example() -> None:
    entry = option_to_json(Option(name="a.b", type="int", description="A."))
    assert entry == {
        "declarations": [],
        "description": "A.",
        "loc": ["a", "b"],
        "readOnly": False,
        "type": "int",
    }


def test_options_json_skips_internal_options() -> None:
    assert list(_document()) == ["services.<name>.enable"]


def test_linked_declarations_serialize_as_url_name_pairs() -> None:
    entry = _document()["services.<name>.enable"]
    assert entry["declarations"] == [
        "nixos/modules/a.nix",
        {"url": "https://host/b.nix", "name": "b.nix"},
    ]


def test_commonmark_escapes_names_and_prints_literals() -> None:
    markdown = render_commonmark(_document())

    assert "## services.&lt;name&gt;.enable" in markdown
    assert "*_Type_*:\nboolean" in markdown
    assert "*_Default_*\n```\nfalse\n```" in markdown
    assert "*_Example_*\n```\ntrue\n```" in markdown
    assert "- [b.nix](https://host/b.nix)" in markdown
    assert "- `nixos/modules/a.nix`" in markdown


def test_docbook_is_well_formed_and_escaped() -> None:
    xml = render_docbook(
        _document(),
        document_type="appendix",
        variablelist_id="configuration-variable-list",
        option_id_prefix="opt-",
    )

    root = ET.fromstring(xml.encode("utf-8"))
    assert root.tag == f"{DOCBOOK_NS}appendix"
    variablelist = root.find(f"{DOCBOOK_NS}variablelist")
    assert variablelist is not None
    term = variablelist.find(f"{DOCBOOK_NS}varlistentry/{DOCBOOK_NS}term")
    assert term is not None
    assert term.get("{http://www.w3.org/XML/1998/namespace}id") == "opt-services._name_.enable"
    assert "Enable &lt;name&gt; &amp; friends." in xml
    assert 'xlink:href="https://host/b.nix"' in xml


def test_docbook_without_wrapper_has_variablelist_root() -> None:
    xml = render_docbook(_document(), document_type="none", variablelist_id="test-options-list", option_id_prefix="test-opt-")
    root = ET.fromstring(xml.encode("utf-8"))
    assert root.tag == f"{DOCBOOK_NS}variablelist"


def test_docbook_rejects_unknown_document_type() -> None:
    with pytest.raises(ConfigurationError):
        render_docbook(_document(), document_type="chapter", variablelist_id="v", option_id_prefix="o-")


def test_option_id_replaces_unsafe_characters() -> None:
    assert option_id("opt-", "users.users.<name>.extraGroups.*") == "opt-users.users._name_.extraGroups._"


def test_literal_text_handles_typed_values() -> None:
    assert literal_text({"_type": "literalMD", "text": "`pkgs`"}) == "`pkgs`"
    assert literal_text({"_type": "derivation", "name": "hello-2.12"}) == "hello-2.12"
    assert literal_text(["a", 1]) == '["a",1]'
    with pytest.raises(EvaluationError):
        literal_text({"_type": "mystery"})


@pytest.mark.parametrize(
    "value",
    [{"_type": "literalExpression"}, {"_type": "literalMD"}, {"_type": "derivation"}],
)
def test_literal_text_requires_the_display_key(value: dict) -> None:
    with pytest.raises(EvaluationError, match="has no"):
        literal_text(value)
