"""Aggregation of independently evaluated module sets into options documents."""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors import ConfigurationError, EvaluationError
from ..logging import get_logger
from ..manifest import BuildProductManifest
from ..models import ModuleSet, Option
from .evaluate import evaluate_module_set
from .locations import PathNormalizer, UrlTemplate
from .render import dumps_options, options_to_json, render_commonmark, render_docbook

DOC_RELATIVE_DIR = Path("share") / "doc" / "nixos"

Evaluator = Callable[[ModuleSet], Sequence[Option]]


@dataclass
class OptionsDocument:
    """Serialized options of one module set and where they were written."""

    name: str
    root: Path
    options: Tuple[Option, ...]
    document: Dict[str, Dict[str, Any]]
    json_path: Path
    docbook_path: Optional[Path] = None
    commonmark_path: Optional[Path] = None
    primary: bool = False


class OptionsAggregator:
    """Evaluates module sets one at a time and writes their options documents."""

    def __init__(
        self,
        *,
        strip_roots: Sequence[str] = (),
        public_root: Optional[str] = None,
        url_template: UrlTemplate | str | None = None,
        warnings_are_errors: bool = True,
        base_options_json: Optional[Path] = None,
        evaluator: Evaluator | None = None,
    ) -> None:
        self.strip_normalizer = PathNormalizer(strip_roots)
        self.link_normalizer = (
            PathNormalizer(strip_roots, public_root=public_root, url_template=url_template)
            if public_root
            else None
        )
        self.warnings_are_errors = warnings_are_errors
        self.base_options_json = base_options_json
        self._evaluate = evaluator or evaluate_module_set
        self.logger = get_logger("aggregate")

    def aggregate(
        self, module_sets: Iterable[ModuleSet], output_root: Path
    ) -> Dict[str, OptionsDocument]:
        """Build every set; raise once at the end if any of them failed."""
        sets = list(module_sets)
        self._check_sets(sets)

        documents: Dict[str, OptionsDocument] = {}
        failures: Dict[str, EvaluationError] = {}
        for module_set in sets:
            try:
                documents[module_set.name] = self.build(module_set, output_root)
            except EvaluationError as exc:
                self.logger.error("Module set %s failed: %s", module_set.name, exc)
                failures[module_set.name] = exc

        if failures:
            details = "\n".join(f"- {name}: {exc}" for name, exc in failures.items())
            raise EvaluationError(
                f"{len(failures)} module set(s) failed to evaluate:\n{details}",
                failed_sets=list(failures),
                documents=documents,
            )
        return documents

    def build(self, module_set: ModuleSet, output_root: Path) -> OptionsDocument:
        """Evaluate, normalize and write the options of a single set."""
        self.logger.info("Evaluating module set %s", module_set.name)
        raw_options = self._evaluate(module_set)
        normalizer = self._normalizer_for(module_set)
        options = tuple(
            replace(option, declarations=tuple(normalizer.normalize_all(option.declarations)))
            for option in raw_options
        )
        self._check_warnings(module_set.name, options)

        document: Dict[str, Dict[str, Any]] = {}
        if module_set.primary and self.base_options_json is not None:
            document.update(self._load_base_options())
        document.update(options_to_json(options))
        document = dict(sorted(document.items()))

        docbook = None
        commonmark = None
        try:
            json_text = dumps_options(document)
            if module_set.primary:
                docbook = render_docbook(
                    document,
                    document_type=module_set.document_type,
                    variablelist_id=module_set.variablelist_id,
                    option_id_prefix=module_set.option_id_prefix,
                )
                commonmark = render_commonmark(document)
        except (TypeError, ValueError) as exc:
            raise EvaluationError(
                f"Module set {module_set.name!r} has option values that cannot be "
                f"written as JSON: {exc}",
                failed_sets=[module_set.name],
            ) from exc

        root = Path(output_root) / module_set.name
        doc_dir = root / DOC_RELATIVE_DIR
        doc_dir.mkdir(parents=True, exist_ok=True)
        json_path = doc_dir / "options.json"
        json_path.write_text(json_text, encoding="utf-8")
        manifest = BuildProductManifest(root)
        manifest.record("file", "json", json_path)

        result = OptionsDocument(
            name=module_set.name,
            root=root,
            options=options,
            document=document,
            json_path=json_path,
            primary=module_set.primary,
        )
        if docbook is not None:
            result.docbook_path = doc_dir / "options.xml"
            result.docbook_path.write_text(docbook, encoding="utf-8")
        if commonmark is not None:
            result.commonmark_path = doc_dir / "options.md"
            result.commonmark_path.write_text(commonmark, encoding="utf-8")
        self.logger.debug(
            "Wrote %d options for %s to %s", len(document), module_set.name, json_path
        )
        return result

    # ------------------------------------------------------------------
    # Helpers

    def _check_sets(self, sets: List[ModuleSet]) -> None:
        names = [module_set.name for module_set in sets]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate module set names: {', '.join(duplicates)}")
        primaries = [module_set.name for module_set in sets if module_set.primary]
        if len(primaries) != 1:
            raise ConfigurationError(
                f"Exactly one module set must be primary, found {len(primaries)}"
                + (f" ({', '.join(primaries)})" if primaries else "")
            )
        for module_set in sets:
            if module_set.link_declarations and self.link_normalizer is None:
                raise ConfigurationError(
                    f"Module set {module_set.name!r} links declarations but no public source root is configured"
                )

    def _normalizer_for(self, module_set: ModuleSet) -> PathNormalizer:
        if module_set.link_declarations and self.link_normalizer is not None:
            return self.link_normalizer
        return self.strip_normalizer

    def _check_warnings(self, set_name: str, options: Iterable[Option]) -> None:
        warnings: List[str] = []
        for option in options:
            if not option.documented:
                continue
            if not option.description:
                warnings.append(f"option `{option.name}' has no description")
            if not option.type:
                warnings.append(f"option `{option.name}' has no type")
        for warning in warnings:
            self.logger.warning("[%s] %s", set_name, warning)
        if warnings and self.warnings_are_errors:
            raise EvaluationError(
                f"Module set {set_name!r} has {len(warnings)} documentation warning(s):\n"
                + "\n".join(f"- {warning}" for warning in warnings),
                failed_sets=[set_name],
            )

    def _load_base_options(self) -> Mapping[str, Dict[str, Any]]:
        path = self.base_options_json
        assert path is not None
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Cannot load base options from {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Base options file {path} must contain a JSON object")
        return data


def aggregate(
    module_sets: Iterable[ModuleSet], output_root: Path, **kwargs: Any
) -> Dict[str, OptionsDocument]:
    """Convenience wrapper around :class:`OptionsAggregator`."""
    return OptionsAggregator(**kwargs).aggregate(module_sets, output_root)


__all__ = ["DOC_RELATIVE_DIR", "OptionsAggregator", "OptionsDocument", "aggregate"]
