"""Configuration loading for manualgen (.manualgen.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .errors import ConfigurationError
from .manual.template import Slot, SlotKind, nixos_manual_slots
from .models import ModuleSet, ModuleSource
from .options.locations import DEFAULT_URL_TEMPLATE, UrlTemplate

CONFIG_FILENAME = ".manualgen.yml"
TEST_SET_NAME = "test"

VERSION_ENV = "MANUALGEN_VERSION"
REVISION_ENV = "MANUALGEN_REVISION"


@dataclass
class PublicSourceConfig:
    """Source tree that declaration links point into."""

    root: str
    url_template: UrlTemplate = field(default_factory=lambda: UrlTemplate(DEFAULT_URL_TEMPLATE))


@dataclass
class AssetsConfig:
    """Static files shipped with the HTML manual."""

    stylesheets: List[Path] = field(default_factory=list)
    highlighter: Optional[Path] = None


@dataclass
class SlotConfig:
    """A manual placeholder and where its value comes from.

    ``source`` is ``version``, ``module_docs`` or ``options_json:<set>``.
    """

    slot: Slot
    source: str


@dataclass
class ManualGenConfig:
    """Represents the settings defined in .manualgen.yml."""

    root: Path
    version: str = "unstable"
    revision: str = "master"
    prefix: Optional[str] = None
    extra_sources: List[str] = field(default_factory=list)
    public_source: Optional[PublicSourceConfig] = None
    warnings_are_errors: bool = True
    base_options_json: Optional[Path] = None
    output: Optional[Path] = None
    markdown_root: Optional[Path] = None
    manpage_urls: Optional[Path] = None
    static_manpages: Optional[Path] = None
    module_docs: List[Path] = field(default_factory=list)
    epub_stylesheet: Optional[Path] = None
    docbook_rng: Optional[Path] = None
    jobs: Optional[int] = None
    assets: AssetsConfig = field(default_factory=AssetsConfig)
    module_sets: List[ModuleSet] = field(default_factory=list)
    slots: List[SlotConfig] = field(default_factory=list)

    @property
    def strip_roots(self) -> List[str]:
        """Prefixes removed from declaration sites: the source tree plus extra sources."""
        roots = [self.prefix] if self.prefix else []
        return roots + list(self.extra_sources)

    @property
    def output_dir(self) -> Path:
        return self.output or (self.root / "result")

    @property
    def primary_set(self) -> Optional[ModuleSet]:
        for module_set in self.module_sets:
            if module_set.primary:
                return module_set
        return None


def load_config(config_path: Path) -> ManualGenConfig:
    """Load configuration from disk, then apply environment overrides."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        config = ManualGenConfig(root=root)
        _apply_env(config)
        return config

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = ManualGenConfig(root=root)
    config.version = _as_text(data, "version") or config.version
    config.revision = _as_text(data, "revision") or config.revision
    prefix = _as_str(data.get("prefix"))
    config.prefix = str(_resolve(root, prefix)) if prefix else None
    config.extra_sources = [str(_resolve(root, item)) for item in _as_str_list(data.get("extra_sources"))]
    config.warnings_are_errors = _as_bool(data.get("warnings_are_errors"), default=True)
    config.base_options_json = _as_path(root, data.get("base_options_json"))
    config.output = _as_path(root, data.get("output"))

    public_data = _as_dict(data.get("public_source"))
    if public_data:
        public_root = _as_str(public_data.get("root")) or config.prefix
        if not public_root:
            raise ConfigurationError("public_source.root is required when no prefix is set")
        config.public_source = PublicSourceConfig(
            root=str(_resolve(root, public_root)),
            url_template=UrlTemplate(
                _as_str(public_data.get("url_template")) or DEFAULT_URL_TEMPLATE
            ),
        )

    manual_data = _as_dict(data.get("manual"))
    if manual_data:
        config.markdown_root = _as_path(root, manual_data.get("markdown_root"))
        config.manpage_urls = _as_path(root, manual_data.get("manpage_urls"))
        config.static_manpages = _as_path(root, manual_data.get("static_manpages"))
        config.module_docs = [root / item for item in _as_str_list(manual_data.get("module_docs"))]
        config.epub_stylesheet = _as_path(root, manual_data.get("epub_stylesheet"))
        config.docbook_rng = _as_path(root, manual_data.get("docbook_rng"))
        config.jobs = _as_int(manual_data.get("jobs"))
        config.assets = AssetsConfig(
            stylesheets=[root / item for item in _as_str_list(manual_data.get("stylesheets"))],
            highlighter=_as_path(root, manual_data.get("highlighter")),
        )

    config.module_sets = _parse_module_sets(root, data.get("module_sets"))

    slots_data = manual_data.get("placeholders") if manual_data else None
    if slots_data is None:
        config.slots = default_slots(config.module_sets)
    else:
        config.slots = _parse_slots(slots_data)
    _check_slot_sources(config)

    _apply_env(config)
    return config


def default_slots(module_sets: Sequence[ModuleSet]) -> List[SlotConfig]:
    """Placeholders of the NixOS manual, wired to the configured module sets."""
    primary = next((item.name for item in module_sets if item.primary), None)
    names = [item.name for item in module_sets]
    optional = [name for name in names if name != primary and name != TEST_SET_NAME]
    sources = {
        "NIXOS_VERSION": "version",
        "MODULE_CHAPTERS": "module_docs",
        "NIXOS_OPTIONS_JSON": f"options_json:{primary}",
        "NIXOS_TEST_OPTIONS_JSON": f"options_json:{TEST_SET_NAME}",
    }
    for name in optional:
        sources[f"OPTIONS_JSON_{name}"] = f"options_json:{name}"
    slots = nixos_manual_slots(optional, test_options=TEST_SET_NAME in names)
    if primary is None:
        slots = [slot for slot in slots if slot.name != "NIXOS_OPTIONS_JSON"]
    return [SlotConfig(slot=slot, source=sources[slot.name]) for slot in slots]


def slot_values(config: ManualGenConfig, options_json: Mapping[str, Path]) -> Dict[str, object]:
    """Resolve each placeholder's value from the config and the written options files."""
    values: Dict[str, object] = {}
    for slot_config in config.slots:
        source = slot_config.source
        if source == "version":
            values[slot_config.slot.name] = config.version
        elif source == "module_docs":
            values[slot_config.slot.name] = list(config.module_docs)
        else:
            set_name = source.split(":", 1)[1]
            if set_name in options_json:
                values[slot_config.slot.name] = options_json[set_name]
    return values


def _parse_module_sets(root: Path, value: Any) -> List[ModuleSet]:
    if value is None:
        return []
    if not isinstance(value, dict):
        raise ConfigurationError("module_sets must be a mapping of set name to settings")
    module_sets: List[ModuleSet] = []
    for name, raw in value.items():
        settings = _as_dict(raw)
        modules_raw = settings.get("modules")
        if isinstance(modules_raw, (str, dict)):
            modules_raw = [modules_raw]
        if not isinstance(modules_raw, list) or not modules_raw:
            raise ConfigurationError(f"Module set {name!r} needs a non-empty modules list")
        modules: List[ModuleSource] = []
        for item in modules_raw:
            if isinstance(item, dict):
                modules.append(item)
            elif isinstance(item, str):
                modules.append(root / item)
            else:
                raise ConfigurationError(f"Module set {name!r} has an unsupported module entry {item!r}")
        module_sets.append(
            ModuleSet(
                name=str(name),
                modules=tuple(modules),
                primary=_as_bool(settings.get("primary"), default=False),
                link_declarations=_as_bool(settings.get("link_declarations"), default=False),
                document_type=_as_str(settings.get("document_type")),
                variablelist_id=_as_str(settings.get("variablelist_id")),
                option_id_prefix=_as_str(settings.get("option_id_prefix")),
            )
        )
    return module_sets


def _parse_slots(value: Any) -> List[SlotConfig]:
    if not isinstance(value, list):
        raise ConfigurationError("manual.placeholders must be a list")
    slots: List[SlotConfig] = []
    for entry in value:
        data = _as_dict(entry)
        name = _as_str(data.get("name"))
        file = _as_str(data.get("file"))
        source = _as_str(data.get("source"))
        if not name or not file or not source:
            raise ConfigurationError(f"Placeholder entry {entry!r} needs name, file and source")
        kind_value = _as_str(data.get("kind")) or SlotKind.TEXT.value
        try:
            kind = SlotKind(kind_value)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown placeholder kind {kind_value!r} for {name}") from exc
        slots.append(SlotConfig(slot=Slot(name=name, file=file, kind=kind), source=source))
    return slots


def _check_slot_sources(config: ManualGenConfig) -> None:
    set_names = {module_set.name for module_set in config.module_sets}
    for slot_config in config.slots:
        source = slot_config.source
        if source in {"version", "module_docs"}:
            continue
        if source.startswith("options_json:"):
            set_name = source.split(":", 1)[1]
            if set_name in set_names:
                continue
            raise ConfigurationError(
                f"Placeholder @{slot_config.slot.name}@ refers to unknown module set {set_name!r}"
            )
        raise ConfigurationError(
            f"Placeholder @{slot_config.slot.name}@ has unknown source {source!r}"
        )


def _apply_env(config: ManualGenConfig) -> None:
    version = os.environ.get(VERSION_ENV)
    if version:
        config.version = version
    revision = os.environ.get(REVISION_ENV)
    if revision:
        config.revision = revision


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _resolve(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = root / path
    return Path(os.path.normpath(path))


def _as_path(root: Path, value: Any) -> Optional[Path]:
    text = _as_str(value)
    return _resolve(root, text) if text else None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_text(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None or isinstance(value, str):
        return value
    raise ConfigurationError(
        f"{key} must be a quoted string in {CONFIG_FILENAME}, got {value!r}"
    )


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return str(value).lower()
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return default


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []

