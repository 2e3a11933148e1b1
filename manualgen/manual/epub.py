"""EPUB container packaging and the placeholder EPUB book."""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import List

from ..templates import render_template

MIMETYPE = "application/epub+zip"
HTML_MANUAL_URL = "https://nixos.org/nixos/manual"
FEEDBACK_URL = "https://github.com/NixOS/nixpkgs/issues/237234"


def placeholder_book(version: str) -> str:
    """DocBook source rendered in place of the real manual for EPUB output."""
    return render_template(
        "epub-placeholder.xml.j2",
        version=version,
        html_manual_url=HTML_MANUAL_URL,
        feedback_url=FEEDBACK_URL,
    )


def package_epub(content_dir: Path, destination: Path) -> List[str]:
    """Zip ``content_dir`` into an EPUB container and return the entry names.

    ``mimetype`` must be the first entry and stored uncompressed.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    names = ["mimetype"]
    with zipfile.ZipFile(destination, "w") as archive:
        info = zipfile.ZipInfo("mimetype", date_time=(1980, 1, 1, 0, 0, 0))
        info.compress_type = zipfile.ZIP_STORED
        archive.writestr(info, MIMETYPE)
        for path in sorted(content_dir.rglob("*")):
            if not path.is_file():
                continue
            arcname = path.relative_to(content_dir).as_posix()
            if arcname == "mimetype":
                continue
            archive.write(
                path,
                arcname=arcname,
                compress_type=zipfile.ZIP_DEFLATED,
                compresslevel=9,
            )
            names.append(arcname)
    return names


__all__ = ["FEEDBACK_URL", "HTML_MANUAL_URL", "MIMETYPE", "package_epub", "placeholder_book"]
