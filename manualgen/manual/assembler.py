"""Assembly of the HTML, EPUB and man page artifacts of the manual."""

from __future__ import annotations

import re
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Mapping, Optional, Sequence

from ..errors import ConfigurationError, SubstitutionError
from ..logging import get_logger
from ..manifest import BuildProductManifest
from ..models import ArtifactPaths, BuildProduct, OutputMode
from .epub import package_epub, placeholder_book
from .template import ManualTemplate
from .toolchain import Renderer, RenderRequest, XmlLinter

DOC_DIR = Path("share") / "doc" / "nixos"
MAN_DIR = Path("share") / "man"
MANUAL_ENTRYPOINT = "manual.md"
OPTIONS_MANPAGE = Path("man5") / "configuration.nix.5"
EPUB_NAME = "nixos-manual.epub"

_MANPAGE_SECTION = re.compile(r"\.(\d)[a-z]*$")


@dataclass
class ManualAssets:
    """Static files copied next to the rendered HTML."""

    stylesheets: Sequence[Path] = ()
    highlighter: Optional[Path] = None
    highlighter_stylesheet: str = "highlightjs/mono-blue.css"
    highlighter_scripts: Sequence[str] = field(
        default_factory=lambda: ("./highlightjs/highlight.pack.js", "./highlightjs/loader.js")
    )


class ManualAssembler:
    """Builds one manual artifact per call into its own output directory."""

    def __init__(
        self,
        markdown_root: Path,
        template: ManualTemplate,
        renderer: Renderer,
        *,
        version: str,
        revision: str,
        generator: str | None = None,
        assets: ManualAssets | None = None,
        manpage_urls: Path | None = None,
        static_manpages: Path | None = None,
        options_json: Path | None = None,
        linter: XmlLinter | None = None,
    ) -> None:
        self.markdown_root = Path(markdown_root)
        self.template = template
        self.renderer = renderer
        self.version = version
        self.revision = revision
        self.generator = generator or f"nixos-render-docs {version}"
        self.assets = assets or ManualAssets()
        self.manpage_urls = manpage_urls
        self.static_manpages = static_manpages
        self.options_json = options_json
        self.linter = linter
        self.logger = get_logger("assembler")

    def assemble(
        self,
        mode: OutputMode | str,
        placeholders: Mapping[str, object],
        output: Path,
    ) -> ArtifactPaths:
        """Build ``mode`` into ``output``; nothing is left behind on failure."""
        mode = OutputMode(mode)
        output = Path(output).absolute()
        self.logger.info("Assembling %s manual into %s", mode.value, output)
        builders = {
            OutputMode.HTML: self._build_html,
            OutputMode.EPUB: self._build_epub,
            OutputMode.MANPAGE: self._build_manpages,
        }
        with _staged_output(output) as staging:
            manifest = BuildProductManifest(staging)
            primary, products = builders[mode](staging, output, placeholders, manifest)
            files = [
                output / path.relative_to(staging)
                for path in sorted(staging.rglob("*"))
                if path.is_file()
            ]
        return ArtifactPaths(
            mode=mode,
            root=output,
            primary=output / primary.relative_to(staging),
            files=files,
            products=products,
        )

    # ------------------------------------------------------------------
    # Modes

    def _build_html(
        self,
        staging: Path,
        output: Path,
        placeholders: Mapping[str, object],
        manifest: BuildProductManifest,
    ) -> tuple[Path, List[BuildProduct]]:
        with tempfile.TemporaryDirectory(prefix="manualgen-src-") as tmp:
            sources = Path(tmp)
            self._copy_markdown(sources)
            entrypoint = sources / MANUAL_ENTRYPOINT
            if not entrypoint.is_file():
                raise ConfigurationError(
                    f"{self.markdown_root} has no {MANUAL_ENTRYPOINT} entry point"
                )
            substitutions = self.template.plan(sources, placeholders)
            self.template.apply(sources, substitutions)

            dst = staging / DOC_DIR
            dst.mkdir(parents=True, exist_ok=True)
            stylesheets, scripts = self._copy_assets(dst)

            index = dst / "index.html"
            self.renderer.render(
                OutputMode.HTML,
                RenderRequest(
                    source=entrypoint,
                    destination=index,
                    revision=self.revision,
                    generator=self.generator,
                    stylesheets=stylesheets,
                    scripts=scripts,
                    manpage_urls=self.manpage_urls,
                    cwd=sources,
                ),
            )

        products = [
            manifest.record("nix-build", "out", output),
            manifest.record("doc", "manual", output / DOC_DIR),
        ]
        return index, products

    def _build_epub(
        self,
        staging: Path,
        output: Path,
        placeholders: Mapping[str, object],
        manifest: BuildProductManifest,
    ) -> tuple[Path, List[BuildProduct]]:
        if placeholders:
            self.logger.debug("EPUB output ignores manual sources and placeholders")
        with tempfile.TemporaryDirectory(prefix="manualgen-epub-") as tmp:
            work = Path(tmp)
            doc = work / "manual.xml"
            doc.write_text(placeholder_book(self.version), encoding="utf-8")
            if self.linter is not None:
                self.linter.lint(doc)
            content = work / "epub"
            self.renderer.render(
                OutputMode.EPUB,
                RenderRequest(source=doc, destination=content, revision=self.revision, cwd=work),
            )
            epub = staging / DOC_DIR / EPUB_NAME
            package_epub(content, epub)

        products = [manifest.record("doc-epub", "manual", output / DOC_DIR / EPUB_NAME)]
        return epub, products

    def _build_manpages(
        self,
        staging: Path,
        output: Path,
        placeholders: Mapping[str, object],
        manifest: BuildProductManifest,
    ) -> tuple[Path, List[BuildProduct]]:
        if self.options_json is None:
            raise ConfigurationError("Man page output needs the primary options JSON")
        if not self.options_json.is_file():
            raise SubstitutionError(f"Options JSON {self.options_json} does not exist")

        man_root = staging / MAN_DIR
        if self.static_manpages is not None:
            self._install_manpages(self.static_manpages, man_root)
        destination = man_root / OPTIONS_MANPAGE
        self.renderer.render(
            OutputMode.MANPAGE,
            RenderRequest(
                source=self.options_json,
                destination=destination,
                revision=self.revision,
            ),
        )
        return destination, []

    # ------------------------------------------------------------------
    # Helpers

    def _copy_markdown(self, destination: Path) -> None:
        if not self.markdown_root.is_dir():
            raise ConfigurationError(f"Markdown root {self.markdown_root} is not a directory")
        for path in sorted(self.markdown_root.rglob("*.md")):
            target = destination / path.relative_to(self.markdown_root)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(path, target)

    def _copy_assets(self, dst: Path) -> tuple[List[str], List[str]]:
        stylesheets: List[str] = []
        for stylesheet in self.assets.stylesheets:
            if not stylesheet.is_file():
                raise ConfigurationError(f"Stylesheet {stylesheet} does not exist")
            shutil.copyfile(stylesheet, dst / stylesheet.name)
            stylesheets.append(stylesheet.name)
        scripts: List[str] = []
        if self.assets.highlighter is not None:
            if not self.assets.highlighter.is_dir():
                raise ConfigurationError(
                    f"Syntax highlighter directory {self.assets.highlighter} does not exist"
                )
            shutil.copytree(self.assets.highlighter, dst / "highlightjs")
            stylesheets.append(self.assets.highlighter_stylesheet)
            scripts.extend(self.assets.highlighter_scripts)
        return stylesheets, scripts

    @staticmethod
    def _install_manpages(source: Path, man_root: Path) -> List[Path]:
        installed: List[Path] = []
        for page in sorted(source.iterdir()):
            if not page.is_file():
                continue
            match = _MANPAGE_SECTION.search(page.name)
            if match is None:
                raise ConfigurationError(f"Cannot tell the man section of {page.name}")
            target = man_root / f"man{match.group(1)}" / page.name
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(page, target)
            installed.append(target)
        return installed


@contextmanager
def _staged_output(output: Path) -> Iterator[Path]:
    output.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{output.name}-", dir=output.parent))
    try:
        yield staging
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise
    if output.exists():
        shutil.rmtree(output)
    staging.rename(output)


__all__ = ["ManualAssembler", "ManualAssets"]
