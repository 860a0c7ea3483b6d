from fastapi import HTTPException, UploadFile, status
from dotenv import load_dotenv
from pathlib import Path
import time
from typing import Optional, Tuple
import logging
import os
import re

load_dotenv()

logger = logging.getLogger(__name__)

UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "uploads"))
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "100"))
PUBLIC_PREFIX = "/uploads/"

CHUNK_SIZE = 1024 * 1024


def max_upload_bytes() -> int:
    return MAX_UPLOAD_MB * 1024 * 1024


def safe_filename(original: str) -> str:
    """Replace everything outside [A-Za-z0-9_.-] with underscores."""
    return re.sub(r"[^a-zA-Z0-9_.-]", "_", original or "file")


def stored_filename(original: str) -> str:
    ts = int(time.time() * 1000)
    return f"{ts}_{safe_filename(original)}"


def save_upload(upload: UploadFile, upload_dir: Optional[Path] = None) -> Tuple[str, str]:
    """Write `upload` to the upload directory.

    Returns (public path, original file name). Raises 413 when the file is
    larger than MAX_UPLOAD_MB, removing whatever was written.
    """
    target_dir = Path(upload_dir or UPLOAD_DIR)
    target_dir.mkdir(parents=True, exist_ok=True)
    file_name = stored_filename(upload.filename)
    file_path = target_dir / file_name
    limit = max_upload_bytes()
    written = 0
    with open(file_path, "wb") as buffer:
        while True:
            chunk = upload.file.read(CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > limit:
                break
            buffer.write(chunk)
    if written > limit:
        file_path.unlink(missing_ok=True)
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Limit is {MAX_UPLOAD_MB} MB.",
        )
    logger.info("Stored upload %s (%d bytes)", file_name, written)
    return f"{PUBLIC_PREFIX}{file_name}", upload.filename


def delete_upload(public_path: Optional[str], upload_dir: Optional[Path] = None) -> bool:
    """Remove a stored file by its public path. Only names inside the upload directory are touched."""
    if not public_path:
        return False
    target_dir = Path(upload_dir or UPLOAD_DIR).resolve()
    file_path = (target_dir / os.path.basename(public_path)).resolve()
    if file_path.parent != target_dir or not file_path.is_file():
        return False
    try:
        file_path.unlink()
    except OSError:
        logger.warning("Could not delete upload %s", file_path, exc_info=True)
        return False
    return True
