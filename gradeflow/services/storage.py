import logging
import secrets
import time
from pathlib import Path

from gradeflow.core.config import STORAGE_DIR, STORAGE_PUBLIC_URL
from gradeflow.services.errors import UploadError

logger = logging.getLogger(__name__)


def build_object_path(owner_id: int, folder: str, extension: str) -> str:
    """
    ``<owner>/<folder>/<ms timestamp>-<random>.<ext>``

    The random suffix keeps a re-upload of the same file name from
    overwriting the earlier object.
    """
    suffix = secrets.token_hex(4)
    name = f"{int(time.time() * 1000)}-{suffix}"
    if extension:
        name = f"{name}.{extension}"
    return f"{owner_id}/{folder}/{name}"


class LocalObjectStore:
    """Object store backed by a local directory, served under ``/files``."""

    def __init__(self, root: Path | None = None, public_url: str | None = None):
        self.root = Path(root) if root is not None else STORAGE_DIR
        self.public_url = (public_url or STORAGE_PUBLIC_URL).rstrip("/")

    def upload(self, data: bytes, path: str) -> str:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise UploadError(f"Invalid storage path: {path}")
        if target.exists():
            raise UploadError(f"Object already exists: {path}")

        logger.info("Uploading %s (%d bytes)", path, len(data))
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error("Upload of %s failed: %s", path, e)
            raise UploadError(f"Upload failed: {e}") from e

        return f"{self.public_url}/{path}"

    def delete(self, path: str) -> None:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise UploadError(f"Invalid storage path: {path}")

        logger.info("Deleting %s", path)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Delete of %s failed: %s", path, e)
            raise UploadError(f"Delete failed: {e}") from e
