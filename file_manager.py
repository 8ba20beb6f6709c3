import logging
import os

from errors import ProgramFileError

logger = logging.getLogger(__name__)

EXTENSION = '.bas'


class FileManager:
    """Reads and writes TinyBasic programs stored as *.bas text files."""

    def __init__(self, base_dir=None):
        self.base_dir = base_dir

    @staticmethod
    def is_valid_path(filename):
        return bool(filename) and filename.endswith(EXTENSION) and len(filename) > len(EXTENSION)

    def _get_path(self, filename):
        filename = filename.strip().strip('"')
        if not self.is_valid_path(filename):
            raise ProgramFileError(f"Invalid *.bas path: {filename}")
        if self.base_dir and not os.path.isabs(filename):
            return os.path.join(self.base_dir, filename)
        return filename

    def read(self, filename):
        """Returns the file text, or None when the file does not exist."""
        path = self._get_path(filename)
        if not os.path.exists(path):
            return None
        with open(path, 'r') as f:
            return f.read()

    def save(self, filename, lines, overwrite=False):
        path = self._get_path(filename)
        if os.path.exists(path) and not overwrite:
            raise ProgramFileError(f"File {filename} already exists. Use -o to overwrite it")
        with open(path, 'w') as f:
            for line in lines:
                f.write(line + "\n")
        logger.info("Saved %d lines to %s", len(lines), path)
        return path
