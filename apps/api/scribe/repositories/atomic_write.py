"""Crash-safe single-file persistence."""

from __future__ import annotations

from contextlib import suppress
import os
from pathlib import Path
import secrets


def write_file_atomic(path: str | Path, content: str | bytes, encoding: str = "utf-8") -> None:
    """Replace ``path`` with ``content`` so readers never observe a partial write.

    The temporary file lives in the same directory as the target because
    ``os.replace`` is only atomic within one filesystem. On any failure the
    temporary file is removed and the original exception propagates; the target
    is not touched before the final rename.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    data = content.encode(encoding) if isinstance(content, str) else content
    tmp_path = target.with_name(f".{target.name}.tmp-{secrets.token_hex(6)}")

    try:
        with open(tmp_path, "xb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, target)
    except BaseException:
        with suppress(OSError):
            tmp_path.unlink(missing_ok=True)
        raise


def create_file_exclusive(path: str | Path, content: str | bytes, encoding: str = "utf-8") -> bool:
    """Publish ``content`` at ``path`` only if nothing exists there yet.

    The content is written to a temporary file first and then hard-linked into
    place, so the target appears fully written or not at all. Returns False when
    ``path`` already exists; the existing file is left untouched.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    data = content.encode(encoding) if isinstance(content, str) else content
    tmp_path = target.with_name(f".{target.name}.tmp-{secrets.token_hex(6)}")

    try:
        with open(tmp_path, "xb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.link(tmp_path, target)
    except FileExistsError:
        return False
    finally:
        with suppress(OSError):
            tmp_path.unlink(missing_ok=True)
    return True
