"""Shared fixtures for tests."""

from __future__ import annotations

import io
import os
import zipfile
from pathlib import Path
from typing import Callable, Optional

import pytest

from quire.config import AppConfig
from quire.library.database import Database

QUIRE_ENV = ("QUIRE_DATA_DIR", "QUIRE_PAGE_WORDS", "QUIRE_VIEW_MODE", "QUIRE_STORAGE_KEY")

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

OPF_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="bookid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
{metadata}
  </metadata>
  <manifest>
{manifest}
  </manifest>
  <spine{toc_attr}>
{spine}
  </spine>
</package>
"""

NCX_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <navMap>
{points}
  </navMap>
</ncx>
"""

NAV_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops">
<head><title>Contents</title></head>
<body>
  <nav epub:type="toc"><ol>
{items}
  </ol></nav>
</body>
</html>
"""


def xhtml(body: str, title: str = "") -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<!DOCTYPE html>\n"
        '<html xmlns="http://www.w3.org/1999/xhtml">\n'
        f"<head><title>{title}</title></head>\n"
        f"<body>{body}</body>\n"
        "</html>\n"
    )


def words_body(word_count: int, per_paragraph: int = 100, prefix: str = "w") -> str:
    """Paragraph markup holding exactly ``word_count`` words."""
    paragraphs = []
    for start in range(0, word_count, per_paragraph):
        end = min(start + per_paragraph, word_count)
        words = " ".join(f"{prefix}{i}" for i in range(start, end))
        paragraphs.append(f"<p>{words}</p>")
    return "\n".join(paragraphs)


def build_zip(files: dict[str, str | bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
        for name, data in files.items():
            zf.writestr(name, data, compress_type=zipfile.ZIP_DEFLATED)
    return buf.getvalue()


def build_epub(
    chapters: list[str],
    *,
    opf_path: str = "OEBPS/content.opf",
    metadata: Optional[dict[str, str]] = None,
    ncx_labels: Optional[list[str]] = None,
    nav_labels: Optional[list[str]] = None,
    extra_files: Optional[dict[str, str | bytes]] = None,
    extra_items: str = "",
    extra_spine: str = "",
) -> bytes:
    """Build an EPUB whose spine lists ``chapters`` (full XHTML documents) in order."""
    base = opf_path.rsplit("/", 1)[0] + "/" if "/" in opf_path else ""
    if metadata is None:
        metadata = {"title": "Sample Book", "creator": "Sample Author", "language": "en"}

    files: dict[str, str | bytes] = {
        "META-INF/container.xml": CONTAINER_XML.format(opf_path=opf_path)
    }
    manifest = []
    spine = []
    for i, content in enumerate(chapters, start=1):
        href = f"text/ch{i}.xhtml"
        manifest.append(
            f'    <item id="ch{i}" href="{href}" media-type="application/xhtml+xml"/>'
        )
        spine.append(f'    <itemref idref="ch{i}"/>')
        files[base + href] = content

    toc_attr = ""
    if ncx_labels is not None:
        manifest.append(
            '    <item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>'
        )
        toc_attr = ' toc="ncx"'
        points = "\n".join(
            f'    <navPoint id="np{i}" playOrder="{i}"><navLabel><text>{label}</text></navLabel>'
            f'<content src="text/ch{i}.xhtml"/></navPoint>'
            for i, label in enumerate(ncx_labels, start=1)
        )
        files[base + "toc.ncx"] = NCX_TEMPLATE.format(points=points)

    if nav_labels is not None:
        manifest.append(
            '    <item id="nav" href="nav.xhtml" media-type="application/xhtml+xml" properties="nav"/>'
        )
        items = "\n".join(
            f'    <li><a href="text/ch{i}.xhtml">{label}</a></li>'
            for i, label in enumerate(nav_labels, start=1)
        )
        files[base + "nav.xhtml"] = NAV_TEMPLATE.format(items=items)

    meta_lines = "\n".join(
        f"    <dc:{key}>{value}</dc:{key}>" for key, value in metadata.items()
    )
    files[opf_path] = OPF_TEMPLATE.format(
        metadata=meta_lines,
        manifest="\n".join(manifest) + extra_items,
        spine="\n".join(spine) + extra_spine,
        toc_attr=toc_attr,
    )
    files.update(extra_files or {})
    return build_zip(files)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    for var in QUIRE_ENV:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    monkeypatch.chdir(tmp_path)
    yield
    # load_dotenv writes straight into os.environ
    for var in QUIRE_ENV:
        os.environ.pop(var, None)


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def db(tmp_path: Path) -> Database:
    db_path = tmp_path / "test.db"
    database = Database(db_path)
    yield database
    database.close()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        data_dir=tmp_path / "data",
        config_dir=tmp_path / "config",
    )


@pytest.fixture
def make_epub() -> Callable[..., bytes]:
    return build_epub
