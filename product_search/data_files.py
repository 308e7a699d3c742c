"""Local catalog file helpers."""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from urllib.error import URLError
from urllib.request import urlopen

logger = logging.getLogger(__name__)

LFS_POINTER_PREFIX = "version https://git-lfs.github.com/spec/v1"


def is_lfs_pointer(path: Path) -> bool:
    """True when ``path`` holds a Git LFS placeholder instead of real data."""
    with path.open("r", encoding="utf-8") as fh:
        return fh.readline().startswith(LFS_POINTER_PREFIX)


def ensure_data_file(path: str | Path, source_url: str | None = None, timeout: float = 30.0) -> Path:
    """Return ``path``, downloading it first from ``source_url`` when it is missing."""
    file_path = Path(path)
    if file_path.exists():
        return file_path
    if not source_url:
        raise FileNotFoundError(f"Catalog file missing and no download URL configured: {file_path}")
    logger.info("Downloading catalog %s from %s", file_path, source_url)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with urlopen(source_url, timeout=timeout) as response, file_path.open("wb") as handle:
            shutil.copyfileobj(response, handle)
    except (OSError, URLError) as exc:
        file_path.unlink(missing_ok=True)
        raise RuntimeError(f"Failed to download {source_url} -> {file_path}") from exc
    return file_path
