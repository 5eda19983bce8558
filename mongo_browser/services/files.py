import logging
import re
from pathlib import Path
from typing import Union

from ..schemas import SaveResult

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class DirectoryFileSaver:
    """Saves export content under a fixed directory, never outside it."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)

    def save_file(self, default_filename: str, content: str) -> SaveResult:
        name = _UNSAFE.sub("_", Path(default_filename).name).strip("._")
        if not name:
            return SaveResult(success=False)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path = self.directory / name
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.error("Failed to save %s: %s", default_filename, e)
            return SaveResult(success=False, error=f"Failed to save file: {e}")
        logger.info("Saved export to %s", path)
        return SaveResult(success=True, filePath=str(path))
