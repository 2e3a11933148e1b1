"""Build product manifest consumed by the surrounding build system."""

from __future__ import annotations

from pathlib import Path
from typing import List

from .models import BuildProduct

MANIFEST_RELATIVE_PATH = Path("nix-support") / "hydra-build-products"


class BuildProductManifest:
    """Append-only list of ``kind label path`` records under an output root."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.path = self.root / MANIFEST_RELATIVE_PATH

    def record(self, kind: str, label: str, path: Path | str) -> BuildProduct:
        for value, what in ((kind, "kind"), (label, "label")):
            if not value or any(char.isspace() for char in value):
                raise ValueError(f"Build product {what} must be a single word, got {value!r}")
        product = BuildProduct(kind=kind, label=label, path=str(path))
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(product.to_line() + "\n")
        return product

    def entries(self) -> List[BuildProduct]:
        if not self.path.exists():
            return []
        products: List[BuildProduct] = []
        for line in self.path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            kind, label, path = line.split(" ", 2)
            products.append(BuildProduct(kind=kind, label=label, path=path))
        return products


__all__ = ["BuildProductManifest", "MANIFEST_RELATIVE_PATH"]
