"""Local folder file source.

Lists the exports dropped into a report folder as ``CsvFile`` values, the
same shape a hosted document store would hand over.  Only CSV content is
read; other files are listed with empty content so they can be reported
but never parsed.
"""

import logging
import mimetypes
from pathlib import Path

from ..errors import ConfigurationError
from ..processor.ingestion import CSV_MIME_TYPE, read_csv_rows
from ..schema.models import CsvFile

logger = logging.getLogger(__name__)


def detect_encoding(path):
    """Detect whether a file is UTF-16 (with BOM) or UTF-8."""
    with open(path, "rb") as f:
        raw = f.read(4)
    if raw[:2] in (b"\xff\xfe", b"\xfe\xff"):
        return "utf-16"
    return "utf-8-sig"


def guess_mime_type(path) -> str:
    path = Path(path)
    if path.suffix.lower() == ".csv":
        return CSV_MIME_TYPE
    mime, _ = mimetypes.guess_type(path.name)
    return mime or "application/octet-stream"


def read_text(path) -> str:
    """Read a text export, tolerating BOMs and stray undecodable bytes."""
    encoding = detect_encoding(path)
    with open(path, encoding=encoding, errors="replace", newline="") as f:
        return f.read()


def load_file(path) -> CsvFile:
    path = Path(path)
    mime_type = guess_mime_type(path)
    content = read_text(path) if mime_type == CSV_MIME_TYPE else ""
    return CsvFile(name=path.name, mime_type=mime_type, content=content)


def list_folder(folder) -> list[CsvFile]:
    """All regular files directly inside *folder*, sorted by name."""
    folder = Path(folder)
    if not folder.is_dir():
        raise ConfigurationError(f"Input folder not found: {folder}")
    files = [load_file(p) for p in sorted(folder.iterdir()) if p.is_file()]
    logger.info("Found %d file(s) in %s", len(files), folder)
    return files


def read_table_csv(path) -> list[list[str]]:
    """Read a local CSV (e.g. an exported region tab) as a header-first table."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Region table not found: {path}")
    header, rows = read_csv_rows(read_text(path))
    table = [header] if header else []
    table.extend([str(c) for c in row] for row in rows)
    return table
