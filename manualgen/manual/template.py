"""Typed placeholder slots for the Markdown manual sources.

Placeholders are plain ``@NAME@`` markers. Every marker found in the sources
must belong to a registered :class:`Slot`, every slot must appear in its file,
and every slot must receive a value of its kind. All of this is checked before
any file is rewritten.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..errors import ConfigurationError, SubstitutionError

PLACEHOLDER_PATTERN = re.compile(r"@([A-Z][A-Za-z0-9_]*)@")


class SlotKind(str, Enum):
    TEXT = "text"
    PATH = "path"
    PATHS = "paths"


@dataclass(frozen=True)
class Slot:
    """A named placeholder expected in exactly one Markdown file."""

    name: str
    file: str
    kind: SlotKind = SlotKind.TEXT

    @property
    def token(self) -> str:
        return f"@{self.name}@"


@dataclass(frozen=True)
class Substitution:
    slot: Slot
    text: str


def nixos_manual_slots(
    optional_sets: Iterable[str] = (), *, test_options: bool = True
) -> List[Slot]:
    """Slots used by the NixOS manual sources."""
    slots = [
        Slot("NIXOS_VERSION", "manual.md", SlotKind.TEXT),
        Slot("MODULE_CHAPTERS", "configuration/configuration.md", SlotKind.PATHS),
        Slot("NIXOS_OPTIONS_JSON", "nixos-options.md", SlotKind.PATH),
    ]
    if test_options:
        slots.append(
            Slot(
                "NIXOS_TEST_OPTIONS_JSON",
                "development/writing-nixos-tests.section.md",
                SlotKind.PATH,
            )
        )
    for name in optional_sets:
        slots.append(Slot(f"OPTIONS_JSON_{name}", "nixos-optional-modules.md", SlotKind.PATH))
    return slots


class ManualTemplate:
    """The set of slots a manual source tree is expected to use."""

    def __init__(self, slots: Sequence[Slot]) -> None:
        self.slots: Dict[str, Slot] = {}
        for slot in slots:
            if not PLACEHOLDER_PATTERN.fullmatch(slot.token):
                raise ConfigurationError(f"Invalid placeholder name {slot.name!r}")
            if slot.name in self.slots:
                raise ConfigurationError(f"Placeholder {slot.token} registered twice")
            self.slots[slot.name] = slot

    def plan(self, root: Path, values: Mapping[str, object]) -> List[Substitution]:
        """Validate ``values`` against the slots and the sources under ``root``."""
        errors: List[str] = []

        for name in sorted(set(self.slots) - set(values)):
            errors.append(f"no value supplied for placeholder {self.slots[name].token}")
        for name in sorted(set(values) - set(self.slots)):
            errors.append(f"value supplied for unregistered placeholder @{name}@")

        substitutions: List[Substitution] = []
        for name, slot in self.slots.items():
            if name not in values:
                continue
            try:
                substitutions.append(Substitution(slot, _format_value(slot, values[name])))
            except SubstitutionError as exc:
                errors.append(str(exc))

        texts: Dict[str, Optional[str]] = {}
        for path in sorted(root.rglob("*.md")):
            relative = path.relative_to(root).as_posix()
            text = texts[relative] = _read_source(path, relative, errors)
            if text is None:
                continue
            for match in PLACEHOLDER_PATTERN.finditer(text):
                slot = self.slots.get(match.group(1))
                if slot is None:
                    errors.append(f"{relative}: unregistered placeholder {match.group(0)}")
                elif slot.file != relative:
                    errors.append(
                        f"{relative}: placeholder {match.group(0)} belongs in {slot.file}"
                    )

        for slot in self.slots.values():
            target = root / slot.file
            if not target.is_file():
                errors.append(f"{slot.file}: file for placeholder {slot.token} does not exist")
                continue
            if slot.file in texts:
                text = texts[slot.file]
            else:
                text = _read_source(target, slot.file, errors)
            if text is not None and slot.token not in text:
                errors.append(f"{slot.file}: placeholder {slot.token} does not appear")

        if errors:
            raise SubstitutionError(
                "Manual placeholder substitution failed:\n"
                + "\n".join(f"- {error}" for error in errors)
            )
        return substitutions

    def apply(self, root: Path, substitutions: Sequence[Substitution]) -> List[Path]:
        """Rewrite the sources in place. Call :meth:`plan` first."""
        by_file: Dict[str, List[Substitution]] = {}
        for substitution in substitutions:
            by_file.setdefault(substitution.slot.file, []).append(substitution)

        changed: List[Path] = []
        for relative, items in sorted(by_file.items()):
            path = root / relative
            text = path.read_text(encoding="utf-8")
            for item in items:
                text = text.replace(item.slot.token, item.text)
            path.write_text(text, encoding="utf-8")
            changed.append(path)
        return changed

    def substitute(self, root: Path, values: Mapping[str, object]) -> List[Path]:
        return self.apply(root, self.plan(root, values))


def _format_value(slot: Slot, value: object) -> str:
    if slot.kind is SlotKind.TEXT:
        if not isinstance(value, str):
            raise SubstitutionError(
                f"placeholder {slot.token} expects text, got {type(value).__name__}"
            )
        return value
    if slot.kind is SlotKind.PATH:
        return str(_existing_path(slot, value))
    if isinstance(value, (str, Path)) or not isinstance(value, Iterable):
        raise SubstitutionError(
            f"placeholder {slot.token} expects a list of paths, got {type(value).__name__}"
        )
    return "\n".join(str(_existing_path(slot, item)) for item in value)


def _existing_path(slot: Slot, value: object) -> Path:
    if not isinstance(value, (str, Path)):
        raise SubstitutionError(
            f"placeholder {slot.token} expects a path, got {type(value).__name__}"
        )
    path = Path(value)
    if not path.exists():
        raise SubstitutionError(f"placeholder {slot.token} references missing file {path}")
    return path


def _read_source(path: Path, relative: str, errors: List[str]) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        errors.append(f"{relative}: cannot be read: {exc}")
        return None


__all__ = [
    "ManualTemplate",
    "PLACEHOLDER_PATTERN",
    "Slot",
    "SlotKind",
    "Substitution",
    "nixos_manual_slots",
]
