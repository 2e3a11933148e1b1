"""Evaluation of module sets into option collections.

Each module set gets its own :class:`EvaluationContext`. Contexts are created
per call and passed explicitly, so nothing declared while evaluating one set is
visible to another.

A module is a YAML mapping (or an inline mapping from the configuration file)::

    imports:
      - ./other.yml
    options:
      services.foo.enable:
        type: boolean
        default: false
        description: Whether to enable foo.
    config:
      services.foo.enable: true
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

import yaml

from ..errors import EvaluationError
from ..logging import get_logger
from ..models import MISSING, ModuleSet, ModuleSource, Option

UNKNOWN_FILE = "<unknown-file>"

_MODULE_KEYS = {"_file", "imports", "options", "config"}
_OPTION_ATTRIBUTES = {
    "type",
    "default",
    "example",
    "description",
    "readOnly",
    "internal",
    "visible",
}


@dataclass
class _Declaration:
    name: str
    type: Optional[str]
    description: Optional[str]
    default: Any = MISSING
    example: Any = MISSING
    read_only: bool = False
    internal: bool = False
    visible: bool = True
    files: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class _Definition:
    name: str
    value: Any
    file: str


class EvaluationContext:
    """Mutable state for evaluating exactly one module set."""

    def __init__(self, set_name: str) -> None:
        self.set_name = set_name
        self.logger = get_logger("evaluate")
        self._declarations: Dict[str, _Declaration] = {}
        self._definitions: List[_Definition] = []
        self._visited: Set[Path] = set()
        self._declare(
            "_module.args",
            {"internal": True, "type": "lazy attribute set of raw value"},
            UNKNOWN_FILE,
        )

    def load(self, source: ModuleSource) -> None:
        """Load a module file or inline mapping, following its imports."""
        if isinstance(source, Mapping):
            file = str(source.get("_file") or UNKNOWN_FILE)
            self._load_mapping(source, file=file, base=None)
            return
        path = Path(source).expanduser().resolve()
        if path in self._visited:
            return
        self._visited.add(path)
        self.logger.debug("[%s] loading module %s", self.set_name, path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise EvaluationError(f"Cannot read module {path}: {exc}") from exc
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise EvaluationError(f"Failed to parse module {path}: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise EvaluationError(f"Module {path} must contain a mapping at the root")
        self._load_mapping(data, file=str(path), base=path.parent)

    def options(self) -> List[Option]:
        """Check definitions against declarations and return options sorted by name."""
        self._check_definitions()
        options = []
        for name in sorted(self._declarations):
            decl = self._declarations[name]
            options.append(
                Option(
                    name=decl.name,
                    type=decl.type,
                    description=decl.description,
                    declarations=tuple(decl.files),
                    default=decl.default,
                    example=decl.example,
                    read_only=decl.read_only,
                    internal=decl.internal,
                    visible=decl.visible,
                )
            )
        return options

    # ------------------------------------------------------------------
    # Internal helpers

    def _load_mapping(self, data: Mapping[str, Any], *, file: str, base: Optional[Path]) -> None:
        unknown = sorted(str(key) for key in data if key not in _MODULE_KEYS)
        if unknown:
            raise EvaluationError(
                f"Module `{file}' has unsupported top-level keys: {', '.join(unknown)}"
            )

        imports = data.get("imports") or []
        if not isinstance(imports, list):
            raise EvaluationError(f"Module `{file}': imports must be a list")
        for entry in imports:
            if isinstance(entry, Mapping):
                self.load(entry)
                continue
            if not isinstance(entry, str):
                raise EvaluationError(f"Module `{file}': unsupported import {entry!r}")
            target = Path(entry)
            if not target.is_absolute():
                if base is None:
                    raise EvaluationError(
                        f"Module `{file}': relative import {entry!r} needs a module file"
                    )
                target = base / target
            self.load(target)

        options = data.get("options") or {}
        if not isinstance(options, Mapping):
            raise EvaluationError(f"Module `{file}': options must be a mapping")
        for name, attrs in options.items():
            if not isinstance(attrs, Mapping):
                raise EvaluationError(
                    f"Module `{file}': option `{name}' must be a mapping of attributes"
                )
            self._declare(str(name), attrs, file)

        config = data.get("config") or {}
        if not isinstance(config, Mapping):
            raise EvaluationError(f"Module `{file}': config must be a mapping")
        for name, value in config.items():
            self._definitions.append(_Definition(name=str(name), value=value, file=file))

    def _declare(self, name: str, attrs: Mapping[str, Any], file: str) -> None:
        unknown = sorted(str(key) for key in attrs if key not in _OPTION_ATTRIBUTES)
        if unknown:
            raise EvaluationError(
                f"Option `{name}' in `{file}' has unsupported attributes: {', '.join(unknown)}"
            )
        type_name = _as_optional_str(attrs.get("type"))
        existing = self._declarations.get(name)
        if existing is None:
            self._declarations[name] = _Declaration(
                name=name,
                type=type_name,
                description=_as_optional_str(attrs.get("description")),
                default=attrs.get("default", MISSING),
                example=attrs.get("example", MISSING),
                read_only=bool(attrs.get("readOnly", False)),
                internal=bool(attrs.get("internal", False)),
                visible=bool(attrs.get("visible", True)),
                files=[file],
            )
            return

        if type_name is not None and existing.type is not None and type_name != existing.type:
            raise EvaluationError(
                f"The option `{name}' in `{file}' is already declared in "
                f"{_quote_files(existing.files)} with type `{existing.type}'"
            )
        if existing.type is None:
            existing.type = type_name
        if existing.description is None:
            existing.description = _as_optional_str(attrs.get("description"))
        if existing.default is MISSING and "default" in attrs:
            existing.default = attrs["default"]
        if existing.example is MISSING and "example" in attrs:
            existing.example = attrs["example"]
        if file not in existing.files:
            existing.files.append(file)

    def _check_definitions(self) -> None:
        seen: Dict[str, List[str]] = {}
        for definition in self._definitions:
            declaration = self._declarations.get(definition.name)
            if declaration is None:
                raise EvaluationError(
                    f"The option `{definition.name}' does not exist. "
                    f"Definition values:\n- In `{definition.file}': {definition.value!r}"
                )
            files = seen.setdefault(definition.name, [])
            files.append(definition.file)
            if declaration.read_only and len(files) > 1:
                raise EvaluationError(
                    f"The option `{definition.name}' is read-only, but it's set multiple "
                    f"times. Definition values in {_quote_files(files)}"
                )


def evaluate_module_set(module_set: ModuleSet) -> Tuple[Option, ...]:
    """Evaluate ``module_set`` in a fresh context and return its options."""
    context = EvaluationContext(module_set.name)
    try:
        for source in module_set.modules:
            context.load(source)
        return tuple(context.options())
    except EvaluationError as exc:
        raise EvaluationError(
            f"Evaluating module set {module_set.name!r} failed: {exc}",
            failed_sets=[module_set.name],
        ) from exc


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def _quote_files(files: List[str]) -> str:
    return ", ".join(f"`{file}'" for file in files)


__all__ = ["EvaluationContext", "UNKNOWN_FILE", "evaluate_module_set"]
