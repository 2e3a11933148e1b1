"""Core data models shared across manualgen components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

_MISSING = object()


@dataclass(frozen=True)
class LinkedDeclaration:
    """Declaration site pointing at a hosted copy of the source file."""

    url: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "name": self.name}


DeclarationSite = Union[str, LinkedDeclaration]


@dataclass(frozen=True)
class Option:
    """A single configurable setting produced by evaluating a module set."""

    name: str
    type: Optional[str]
    description: Optional[str]
    declarations: Tuple[DeclarationSite, ...] = ()
    default: Any = _MISSING
    example: Any = _MISSING
    read_only: bool = False
    internal: bool = False
    visible: bool = True

    @property
    def loc(self) -> List[str]:
        return self.name.split(".")

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING

    @property
    def has_example(self) -> bool:
        return self.example is not _MISSING

    @property
    def documented(self) -> bool:
        """True when the option belongs in generated documentation."""
        return self.visible and not self.internal


ModuleSource = Union[Path, Mapping[str, Any]]


@dataclass(frozen=True)
class ModuleSet:
    """A named collection of modules evaluated in isolation from every other set."""

    name: str
    modules: Sequence[ModuleSource]
    primary: bool = False
    link_declarations: bool = False
    document_type: Optional[str] = None
    variablelist_id: Optional[str] = None
    option_id_prefix: Optional[str] = None


class OutputMode(str, Enum):
    """Artifact kinds the manual assembler can produce."""

    HTML = "html"
    EPUB = "epub"
    MANPAGE = "manpage"


@dataclass(frozen=True)
class BuildProduct:
    """One record of the build product manifest."""

    kind: str
    label: str
    path: str

    def to_line(self) -> str:
        return f"{self.kind} {self.label} {self.path}"


@dataclass
class ArtifactPaths:
    """Files produced by one assembly run."""

    mode: OutputMode
    root: Path
    primary: Path
    files: List[Path] = field(default_factory=list)
    products: List[BuildProduct] = field(default_factory=list)


MISSING = _MISSING
