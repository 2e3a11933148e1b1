"""External renderer toolchain behind a small capability interface."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol, Sequence

from ..errors import ConfigurationError, ExternalToolError
from ..logging import get_logger
from ..models import OutputMode

Runner = Callable[..., str]


@dataclass
class RenderRequest:
    """Inputs handed to a renderer for one artifact."""

    source: Path
    destination: Path
    revision: str = ""
    generator: str = ""
    stylesheets: Sequence[str] = ()
    scripts: Sequence[str] = ()
    manpage_urls: Optional[Path] = None
    toc_depth: int = 1
    chunk_toc_depth: int = 1
    cwd: Optional[Path] = None


class Renderer(Protocol):
    def render(self, mode: OutputMode, request: RenderRequest) -> List[Path]:
        """Produce the artifact for ``mode`` and return the written paths."""


def run_tool(args: Iterable[str], *, cwd: Path | None = None) -> str:
    """Run an external tool, raising ExternalToolError with its diagnostics on failure."""
    argv = [str(arg) for arg in args]
    try:
        completed = subprocess.run(
            argv,
            cwd=str(cwd) if cwd is not None else None,
            check=False,
            text=True,
            capture_output=True,
        )
    except FileNotFoundError as exc:
        raise ExternalToolError(argv[0], 127, str(exc)) from exc
    if completed.returncode != 0:
        raise ExternalToolError(argv[0], completed.returncode, completed.stderr or completed.stdout)
    return completed.stdout


class ToolchainRenderer:
    """Renders manual artifacts with nixos-render-docs and xsltproc."""

    def __init__(
        self,
        *,
        render_docs: str = "nixos-render-docs",
        xsltproc: str = "xsltproc",
        epub_stylesheet: Path | str | None = None,
        jobs: int | None = None,
        runner: Runner | None = None,
    ) -> None:
        self.render_docs = render_docs
        self.xsltproc = xsltproc
        self.epub_stylesheet = epub_stylesheet
        self.jobs = jobs
        self._runner = runner or run_tool
        self.logger = get_logger("toolchain")

    def render(self, mode: OutputMode, request: RenderRequest) -> List[Path]:
        if mode is OutputMode.HTML:
            args = self.html_args(request)
        elif mode is OutputMode.MANPAGE:
            args = self.manpage_args(request)
        elif mode is OutputMode.EPUB:
            args = self.epub_args(request)
        else:  # pragma: no cover - enum is exhaustive
            raise ConfigurationError(f"Unsupported output mode {mode!r}")

        request.destination.parent.mkdir(parents=True, exist_ok=True)
        self.logger.debug("Running %s", " ".join(args))
        self._runner(args, cwd=request.cwd)

        if mode is OutputMode.EPUB:
            return sorted(path for path in request.destination.rglob("*") if path.is_file())
        return [request.destination]

    def html_args(self, request: RenderRequest) -> List[str]:
        args = [self.render_docs, *self._jobs_args(), "manual", "html"]
        if request.manpage_urls is not None:
            args += ["--manpage-urls", str(request.manpage_urls)]
        args += ["--revision", request.revision, "--generator", request.generator]
        for stylesheet in request.stylesheets:
            args += ["--stylesheet", stylesheet]
        for script in request.scripts:
            args += ["--script", script]
        args += [
            "--toc-depth",
            str(request.toc_depth),
            "--chunk-toc-depth",
            str(request.chunk_toc_depth),
            str(request.source),
            str(request.destination),
        ]
        return args

    def manpage_args(self, request: RenderRequest) -> List[str]:
        return [
            self.render_docs,
            *self._jobs_args(),
            "options",
            "manpage",
            "--revision",
            request.revision,
            str(request.source),
            str(request.destination),
        ]

    def epub_args(self, request: RenderRequest) -> List[str]:
        if self.epub_stylesheet is None:
            raise ConfigurationError("EPUB rendering needs the DocBook EPUB stylesheet path")
        return [
            self.xsltproc,
            "--param",
            "chapter.autolabel",
            "0",
            "--nonet",
            "--xinclude",
            "--output",
            f"{request.destination}/",
            str(self.epub_stylesheet),
            str(request.source),
        ]

    def _jobs_args(self) -> List[str]:
        return ["-j", str(self.jobs)] if self.jobs else []


class XmlLinter:
    """Validates DocBook documents against a RELAX NG schema with xmllint."""

    CONTEXT_BEFORE = 4
    CONTEXT_LENGTH = 6

    def __init__(self, schema: Path | str, *, xmllint: str = "xmllint", runner: Runner | None = None) -> None:
        self.schema = schema
        self.xmllint = xmllint
        self._runner = runner or run_tool

    def lint(self, path: Path) -> None:
        args = [self.xmllint, "--noout", "--nonet", "--relaxng", str(self.schema), str(path)]
        try:
            self._runner(args, cwd=None)
        except ExternalToolError as exc:
            raise ExternalToolError(exc.tool, exc.returncode, self.context(exc.output)) from exc

    def context(self, output: str) -> str:
        """Expand ``file:line: message`` diagnostics with the offending source lines."""
        blocks: List[str] = []
        for raw in output.splitlines():
            parts = raw.split(":", 2)
            if len(parts) == 3 and parts[1].isdigit():
                file, line, rest = parts
                blocks.append(f"{file}:{line}:{rest}")
                blocks.extend(self._numbered_lines(Path(file), int(line)))
            else:
                blocks.append(raw)
        return "\n".join(blocks)

    def _numbered_lines(self, path: Path, line: int) -> List[str]:
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError:
            return []
        start = max(line - self.CONTEXT_BEFORE, 1)
        end = start + self.CONTEXT_LENGTH
        return [f"{number:6d}\t{lines[number - 1]}" for number in range(start, min(end, len(lines)) + 1)]


__all__ = ["RenderRequest", "Renderer", "ToolchainRenderer", "XmlLinter", "run_tool"]
