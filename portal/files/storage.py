import logging
import secrets
from pathlib import Path

from portal.config import settings
from portal.errors import NotFound, StorageUnavailable

logger = logging.getLogger(__name__)


class FileStorage:
    """Keeps uploaded file content on local disk under ``root``.

    Content is addressed by a reference string (the file name inside ``root``)
    that is stored on the file record.
    """

    def __init__(self, root: str):
        self.root = Path(root)

    def new_ref(self, file_id: str) -> str:
        return f"{file_id}-{secrets.token_hex(4)}"

    def path_for(self, ref: str) -> Path:
        path = (self.root / ref).resolve()
        if path.parent != self.root.resolve():
            raise NotFound("File content not found")
        return path

    def save(self, ref: str, data: bytes) -> str:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self.path_for(ref).write_bytes(data)
        except OSError as e:
            logger.error(f"Error saving file content {ref}: {str(e)}")
            raise StorageUnavailable("Could not store file content") from e
        logger.info(f"File content saved: {ref} ({len(data)} bytes)")
        return ref

    def delete(self, ref: str) -> bool:
        """Remove stored content. Returns False when nothing was removed."""
        try:
            path = self.path_for(ref)
            if path.exists():
                path.unlink()
                logger.info(f"File content deleted: {ref}")
                return True
            logger.warning(f"File content not found for deletion: {ref}")
            return False
        except OSError as e:
            logger.error(f"Error deleting file content {ref}: {str(e)}")
            return False


def get_storage() -> FileStorage:
    return FileStorage(settings.upload_dir)
