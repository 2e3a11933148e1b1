"""Declaration-site cleanup so generated docs do not leak local source layout."""

from __future__ import annotations

from string import Formatter
from typing import Iterable, List, Optional, Sequence

from ..errors import ConfigurationError
from ..models import DeclarationSite, LinkedDeclaration

DEFAULT_URL_TEMPLATE = "https://github.com/NixOS/nixpkgs/blob/master/{sub}"


class UrlTemplate:
    """URL pattern with a single ``{sub}`` field for the source sub-path."""

    FIELD = "sub"

    def __init__(self, template: str) -> None:
        self.template = template
        fields = self._fields(template)
        if fields != [self.FIELD]:
            raise ConfigurationError(
                f"URL template {template!r} must contain exactly one {{{self.FIELD}}} field"
            )

    def __call__(self, subpath: str) -> str:
        return self.template.format(**{self.FIELD: subpath})

    def __repr__(self) -> str:
        return f"UrlTemplate({self.template!r})"

    @staticmethod
    def _fields(template: str) -> List[str]:
        try:
            parsed = list(Formatter().parse(template))
        except ValueError as exc:
            raise ConfigurationError(f"Malformed URL template {template!r}: {exc}") from exc
        fields: List[str] = []
        for _, field_name, format_spec, conversion in parsed:
            if field_name is None:
                continue
            if format_spec or conversion:
                raise ConfigurationError(
                    f"URL template {template!r} may not use format specs or conversions"
                )
            fields.append(field_name)
        return fields


def as_root(path: str) -> str:
    """Return ``path`` as a directory prefix ending in exactly one slash."""
    text = str(path)
    if not text:
        raise ConfigurationError("Source roots may not be empty")
    return text.rstrip("/") + "/"


def strip_any_prefixes(path: str, roots: Iterable[str]) -> str:
    """Remove the first root in ``roots`` that ``path`` starts with."""
    for root in roots:
        if path.startswith(root):
            return path[len(root):]
    return path


class PathNormalizer:
    """Rewrites option declaration sites relative to known source roots."""

    def __init__(
        self,
        strip_roots: Sequence[str] = (),
        *,
        public_root: Optional[str] = None,
        url_template: UrlTemplate | str | None = None,
    ) -> None:
        self.strip_roots = [as_root(root) for root in strip_roots]
        self.public_root = as_root(public_root) if public_root else None
        if self.public_root is not None and url_template is None:
            url_template = DEFAULT_URL_TEMPLATE
        if isinstance(url_template, str):
            url_template = UrlTemplate(url_template)
        self.url_template = url_template

    def normalize(self, path: DeclarationSite) -> DeclarationSite:
        """Return the documentation form of a single declaration site."""
        if isinstance(path, LinkedDeclaration):
            return path
        text = str(path)
        linked = self.link(text)
        if linked is not None:
            return linked
        return strip_any_prefixes(text, self.strip_roots)

    def link(self, path: str) -> Optional[LinkedDeclaration]:
        """Return a hosted-source link when ``path`` is under the public root."""
        if self.public_root is None or self.url_template is None:
            return None
        if not path.startswith(self.public_root):
            return None
        subpath = path[len(self.public_root):].lstrip("/")
        return LinkedDeclaration(url=self.url_template(subpath), name=subpath)

    def normalize_all(self, paths: Iterable[DeclarationSite]) -> List[DeclarationSite]:
        return [self.normalize(path) for path in paths]


__all__ = [
    "DEFAULT_URL_TEMPLATE",
    "PathNormalizer",
    "UrlTemplate",
    "as_root",
    "strip_any_prefixes",
]
