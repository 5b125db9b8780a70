"""File discovery and text extraction."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path

from textdigest.models import DiscoveredFile, ExtractedDocument

log = logging.getLogger(__name__)


def _read_text(path: Path) -> tuple[str, str]:
    raw = path.read_bytes()
    try:
        return raw.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        log.warning("%s is not valid UTF-8; decoding as latin-1.", path)
        return raw.decode("latin-1"), "latin-1"


def discover_files(folder: str | Path, days: int | None = None) -> list[DiscoveredFile]:
    """Supported files under ``folder`` modified in the last ``days`` days, newest first."""
    from textdigest.config import DEFAULT_DAYS_BACK, MAX_FILE_SIZE_MB, SUPPORTED_EXTENSIONS

    root = Path(folder).expanduser().resolve()
    if not root.is_dir():
        raise FileNotFoundError(f"Folder not found: {root}")

    window = days if days is not None else DEFAULT_DAYS_BACK
    cutoff = datetime.now(UTC) - timedelta(days=window)
    max_bytes = MAX_FILE_SIZE_MB * 1024 * 1024

    found: list[DiscoveredFile] = []
    skipped = 0
    for path in root.rglob("*"):
        if not path.is_file() or path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            continue
        relative = path.relative_to(root)
        if any(part.startswith(".") for part in relative.parts):
            continue
        stat = path.stat()
        if stat.st_size > max_bytes:
            log.warning("Skipping %s: %d bytes exceeds the %d MB limit.", relative, stat.st_size, MAX_FILE_SIZE_MB)
            skipped += 1
            continue
        modified = datetime.fromtimestamp(stat.st_mtime, tz=UTC)
        if modified < cutoff:
            continue
        found.append(
            DiscoveredFile(
                path=relative.as_posix(),
                absolute_path=str(path),
                size=stat.st_size,
                modified_at=modified,
                doc_type=path.suffix.lower().lstrip("."),
            )
        )

    found.sort(key=lambda item: item.modified_at, reverse=True)
    log.info("Discovered %d files in %s (last %d days, %d skipped).", len(found), root, window, skipped)
    if not found:
        log.warning("No files found in %s modified since %s.", root, cutoff.isoformat())
    return found


def extract_contents(files: list[DiscoveredFile]) -> list[ExtractedDocument]:
    """Read every discovered file; files that cannot be read are logged and dropped."""
    documents: list[ExtractedDocument] = []
    for item in files:
        try:
            content, encoding = _read_text(Path(item.absolute_path))
        except OSError as exc:
            log.warning("Could not read %s: %s", item.path, exc)
            continue
        documents.append(
            ExtractedDocument(
                path=item.path,
                content=content,
                size=item.size,
                modified_at=item.modified_at,
                doc_type=item.doc_type,
                line_count=len(content.splitlines()),
                word_count=len(content.split()),
                encoding=encoding,
            )
        )
    log.info("Extracted %d of %d files.", len(documents), len(files))
    return documents
