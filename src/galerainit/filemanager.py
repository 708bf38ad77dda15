"""Module: galerainit.filemanager

Purpose: Access to MariaDB config and state files on the Pod volumes.

Key Components:
- FileManager: Read/write config files, check/delete state files

Architecture:
Config files live under the config dir (mounted into /etc/mysql/mariadb.conf.d).
State files live under the state dir (the MariaDB datadir).
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class FileManager:
    """Local state store scoped to a config root and a state root."""

    def __init__(self, config_dir: str | Path, state_dir: str | Path) -> None:
        self.config_dir = Path(config_dir)
        self.state_dir = Path(state_dir)

    def __repr__(self) -> str:
        return f'FileManager(config_dir={str(self.config_dir)!r}, state_dir={str(self.state_dir)!r})'

    def config_path(self, name: str) -> Path:
        return self.config_dir / name

    def state_path(self, name: str) -> Path:
        return self.state_dir / name

    def config_file_exists(self, name: str) -> bool:
        return self.config_path(name).exists()

    def read_config_file(self, name: str) -> bytes:
        """Read a config file.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        return self.config_path(name).read_bytes()

    def write_config_file(self, name: str, content: bytes) -> None:
        """Write a config file, creating the config dir if needed."""
        path = self.config_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        logger.debug('galera-init: wrote config file %s', path, extra={'file': str(path)})

    def state_file_exists(self, name: str) -> bool:
        return self.state_path(name).exists()

    def delete_state_file(self, name: str) -> None:
        """Delete a state file. A missing file is not an error."""
        self.state_path(name).unlink(missing_ok=True)
