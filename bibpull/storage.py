"""Local storage for pulled attachments."""

from pathlib import Path
from typing import Union
import logging
import os
import tempfile

from .item import AttachmentKind, sanitize_filename

logger = logging.getLogger(__name__)


class AttachmentStore:
    """Writes attachments to a local directory.

    Files are named ``<item key>.<extension>``, so one Item has at most one
    file per attachment kind. Writing the same name again replaces the file.

    Example:
        ```python
        store = AttachmentStore("./attachments")
        path = store.save("10.1000_abc", AttachmentKind.PDF, pdf_bytes)
        ```

    Args:
        base_dir: Output directory. Created if it doesn't exist.
        create_if_missing: Create base_dir if it doesn't exist (default: True)
    """

    def __init__(self, base_dir: Union[str, Path], create_if_missing: bool = True):
        """
        Raises:
            ValueError: If base_dir doesn't exist and create_if_missing=False,
                        or is not a directory
        """
        self.base_dir = Path(base_dir).expanduser().resolve()

        if not self.base_dir.exists():
            if create_if_missing:
                self.base_dir.mkdir(parents=True, exist_ok=True)
            else:
                raise ValueError(f"Output directory does not exist: {self.base_dir}")

        if not self.base_dir.is_dir():
            raise ValueError(f"Output path is not a directory: {self.base_dir}")

    def filename(self, key: str, kind: AttachmentKind) -> str:
        return f"{sanitize_filename(key) or 'untitled'}.{kind.extension}"

    def path_for(self, key: str, kind: AttachmentKind) -> Path:
        """Resolve the destination path for an attachment.

        Raises:
            ValueError: If the name resolves outside base_dir
        """
        path = (self.base_dir / self.filename(key, kind)).resolve()

        # Security check: ensure path is within base_dir
        try:
            path.relative_to(self.base_dir)
        except ValueError:
            raise ValueError(f"Invalid key: '{key}' resolves outside output directory")

        return path

    def save(self, key: str, kind: AttachmentKind, content: bytes) -> Path:
        """Write an attachment atomically and return its path.

        Raises:
            OSError: If the write fails
        """
        path = self.path_for(key, kind)

        fd, tmp_name = tempfile.mkstemp(dir=self.base_dir, prefix=f".{path.name}.", suffix=".part")
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Saved {len(content)} bytes to {path}")
        return path

    def exists(self, key: str, kind: AttachmentKind) -> bool:
        try:
            return self.path_for(key, kind).is_file()
        except (ValueError, OSError):
            return False
