"""Pipeline orchestration for option documents and manual artifacts."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from .config import ManualGenConfig, load_config, slot_values
from .errors import ConfigurationError
from .logging import get_logger
from .manual.assembler import ManualAssembler, ManualAssets
from .manual.template import ManualTemplate
from .manual.toolchain import Renderer, ToolchainRenderer, XmlLinter
from .models import ArtifactPaths, OutputMode
from .options.aggregate import OptionsAggregator, OptionsDocument

OPTIONS_DIR = "options"
ARTIFACT_DIRS = {
    OutputMode.HTML: "manual-html",
    OutputMode.EPUB: "manual-epub",
    OutputMode.MANPAGE: "manpages",
}


@dataclass
class BuildOutcome:
    """Everything produced by one pipeline run."""

    options: Dict[str, OptionsDocument] = field(default_factory=dict)
    artifacts: Dict[OutputMode, ArtifactPaths] = field(default_factory=dict)


class ManualPipeline:
    """Coordinates option aggregation and manual assembly for a configuration."""

    def __init__(
        self,
        config: ManualGenConfig,
        *,
        renderer: Renderer | None = None,
        aggregator: OptionsAggregator | None = None,
        linter: XmlLinter | None = None,
    ) -> None:
        self.config = config
        self.renderer = renderer or ToolchainRenderer(
            epub_stylesheet=config.epub_stylesheet,
            jobs=config.jobs,
        )
        public = config.public_source
        self.aggregator = aggregator or OptionsAggregator(
            strip_roots=config.strip_roots,
            public_root=public.root if public else None,
            url_template=public.url_template if public else None,
            warnings_are_errors=config.warnings_are_errors,
            base_options_json=config.base_options_json,
        )
        if linter is None and config.docbook_rng is not None:
            linter = XmlLinter(config.docbook_rng)
        self.linter = linter
        self.logger = get_logger("pipeline")

    @classmethod
    def from_path(cls, path: Path, **kwargs: object) -> "ManualPipeline":
        return cls(load_config(path), **kwargs)  # type: ignore[arg-type]

    @property
    def output_dir(self) -> Path:
        return self.config.output_dir

    def build_options(self) -> Dict[str, OptionsDocument]:
        """Aggregate every configured module set into the options output directory."""
        if not self.config.module_sets:
            raise ConfigurationError("No module sets configured")
        return self.aggregator.aggregate(self.config.module_sets, self.output_dir / OPTIONS_DIR)

    def build(self, modes: Iterable[OutputMode | str]) -> BuildOutcome:
        """Build the requested artifacts, aggregating options first when they need them."""
        requested = _ordered_modes(modes)
        outcome = BuildOutcome()
        if any(mode is not OutputMode.EPUB for mode in requested):
            outcome.options = self.build_options()

        assembler = self.assembler(outcome.options)
        values = slot_values(
            self.config,
            {name: document.json_path for name, document in outcome.options.items()},
        )
        for mode in requested:
            placeholders = values if mode is OutputMode.HTML else {}
            destination = self.output_dir / ARTIFACT_DIRS[mode]
            outcome.artifacts[mode] = assembler.assemble(mode, placeholders, destination)
            self.logger.info("Built %s: %s", mode.value, outcome.artifacts[mode].primary)
        return outcome

    def assembler(self, documents: Dict[str, OptionsDocument]) -> ManualAssembler:
        config = self.config
        primary = next((doc for doc in documents.values() if doc.primary), None)
        markdown_root = config.markdown_root or (config.root / "manual")
        return ManualAssembler(
            markdown_root,
            ManualTemplate([slot_config.slot for slot_config in config.slots]),
            self.renderer,
            version=config.version,
            revision=config.revision,
            assets=ManualAssets(
                stylesheets=list(config.assets.stylesheets),
                highlighter=config.assets.highlighter,
            ),
            manpage_urls=config.manpage_urls,
            static_manpages=config.static_manpages,
            options_json=primary.json_path if primary else None,
            linter=self.linter,
        )


def _ordered_modes(modes: Iterable[OutputMode | str]) -> List[OutputMode]:
    requested = {OutputMode(mode) for mode in modes}
    return [mode for mode in OutputMode if mode in requested]


__all__ = ["ARTIFACT_DIRS", "BuildOutcome", "ManualPipeline", "OPTIONS_DIR"]
