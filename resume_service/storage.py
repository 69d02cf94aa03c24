from pathlib import Path

from resume_service.errors import ValidationError
from resume_service.logger import get_logger

logger = get_logger(__name__)

_FORBIDDEN_NAMES = {"", ".", ".."}
_FORBIDDEN_CHARS = ("/", "\\", "\x00")


class LocalUploadStorage:
    """Flat directory of uploaded files, one file per name.

    Writes go straight to the target path, so concurrent uploads with the same
    name race and the last write wins.
    """

    def __init__(self, root_dir: str):
        self.root = Path(root_dir)

    def init(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def resolve(self, filename: str) -> Path:
        if filename in _FORBIDDEN_NAMES or any(char in filename for char in _FORBIDDEN_CHARS):
            raise ValidationError("Invalid filename", details=f"{filename!r} is not a plain file name")

        root = self.root.resolve()
        target = (root / filename).resolve()
        if target.parent != root:
            raise ValidationError("Invalid filename", details=f"{filename!r} escapes the uploads directory")
        return target

    def save_bytes(self, filename: str, data: bytes) -> tuple[Path, int]:
        target = self.resolve(filename)
        self.init()
        with target.open("wb") as f:
            f.write(data)
        logger.debug("Wrote %d bytes to %s", len(data), target)
        return target, len(data)
