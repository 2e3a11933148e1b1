"""Serialization of option collections to JSON, DocBook and CommonMark."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..errors import ConfigurationError, EvaluationError
from ..models import LinkedDeclaration, Option
from ..templates import render_template

_DOCUMENT_TYPES = {"appendix", "none"}
_ID_REPLACEMENTS = str.maketrans({char: "_" for char in "*<> []"})


def option_to_json(option: Option) -> Dict[str, Any]:
    """Return the JSON object describing one option."""
    entry: Dict[str, Any] = {
        "declarations": [_declaration_to_json(site) for site in option.declarations],
        "description": option.description,
        "loc": option.loc,
        "readOnly": option.read_only,
        "type": option.type,
    }
    if option.has_default:
        entry["default"] = option.default
    if option.has_example:
        entry["example"] = option.example
    return entry


def options_to_json(options: Iterable[Option]) -> Dict[str, Dict[str, Any]]:
    """Map dotted option names to their JSON objects, skipping hidden options."""
    return {
        option.name: option_to_json(option)
        for option in sorted(options, key=lambda item: item.name)
        if option.documented
    }


def dumps_options(document: Mapping[str, Any]) -> str:
    return json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def option_id(prefix: str, name: str) -> str:
    """Return the DocBook anchor for an option."""
    return prefix + name.translate(_ID_REPLACEMENTS)


def render_docbook(
    document: Mapping[str, Mapping[str, Any]],
    *,
    document_type: Optional[str],
    variablelist_id: Optional[str],
    option_id_prefix: Optional[str],
) -> str:
    """Render the legacy DocBook variable list for the primary option set."""
    missing = [
        name
        for name, value in (
            ("document_type", document_type),
            ("variablelist_id", variablelist_id),
            ("option_id_prefix", option_id_prefix),
        )
        if value is None
    ]
    if missing:
        raise ConfigurationError(f"DocBook output requires {', '.join(missing)} to be set")
    if document_type not in _DOCUMENT_TYPES:
        raise ConfigurationError(
            f"Unsupported DocBook document type {document_type!r}; "
            f"expected one of {sorted(_DOCUMENT_TYPES)}"
        )

    entries = []
    for name, entry in document.items():
        entries.append(
            {
                "id": option_id(option_id_prefix or "", name),
                "name": name,
                "description": entry.get("description") or "",
                "type": entry.get("type") or "unspecified",
                "read_only": bool(entry.get("readOnly")),
                "default": literal_text(entry["default"]) if "default" in entry else None,
                "example": literal_text(entry["example"]) if "example" in entry else None,
                "declarations": [_declaration_for_docbook(site) for site in entry.get("declarations", [])],
            }
        )
    return render_template(
        "options-docbook.xml.j2",
        document_type=document_type,
        variablelist_id=variablelist_id,
        entries=entries,
    )


def render_commonmark(document: Mapping[str, Mapping[str, Any]]) -> str:
    """Render a CommonMark option reference."""
    lines: List[str] = []
    for name, entry in document.items():
        lines.append("## " + name.replace("<", "&lt;").replace(">", "&gt;"))
        lines.append("")
        lines.append(entry.get("description") or "")
        lines.append("")
        if entry.get("type"):
            lines.append("*_Type_*:")
            lines.append(str(entry["type"]))
            lines.append("")
        if "default" in entry:
            lines.extend(["*_Default_*", "```", literal_text(entry["default"]), "```", ""])
        if "example" in entry:
            lines.extend(["*_Example_*", "```", literal_text(entry["example"]), "```", ""])
        if entry.get("declarations"):
            lines.append("*_Declared by_*:")
            for site in entry["declarations"]:
                if isinstance(site, Mapping):
                    lines.append(f"- [{site['name']}]({site['url']})")
                else:
                    lines.append(f"- `{site}`")
            lines.append("")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n" if lines else ""


def literal_text(value: Any) -> str:
    """Return the display text for a default or example value."""
    if isinstance(value, Mapping) and "_type" in value:
        kind = value["_type"]
        if kind in {"literalExpression", "literalDocBook", "literalMD"}:
            key = "text"
        elif kind == "derivation":
            key = "name"
        else:
            raise EvaluationError(f'Unknown type "{kind}" in {json.dumps(value)}')
        if key not in value:
            raise EvaluationError(f'Value of type "{kind}" has no "{key}" in {json.dumps(value)}')
        return str(value[key])
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _declaration_to_json(site: object) -> object:
    if isinstance(site, LinkedDeclaration):
        return site.to_dict()
    return str(site)


def _declaration_for_docbook(site: object) -> Dict[str, Optional[str]]:
    if isinstance(site, Mapping):
        return {"href": str(site.get("url")), "name": str(site.get("name"))}
    return {"href": None, "name": str(site)}


__all__ = [
    "dumps_options",
    "literal_text",
    "option_id",
    "option_to_json",
    "options_to_json",
    "render_commonmark",
    "render_docbook",
]
