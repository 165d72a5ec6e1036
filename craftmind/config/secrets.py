"""Loading of reasoner API keys from a dotenv file.

The file is only read when it is a regular file owned by the current user
and closed to group and other users.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_FILE_VARIABLE = "CRAFTMIND_ENV_FILE"


def _check_env_file(path: Path) -> None:
    """Raise unless ``path`` is a private regular file of the current user."""
    info = path.lstat()
    if stat.S_ISLNK(info.st_mode):
        raise PermissionError(f"Refusing to load dotenv symlink: {path}")
    if not stat.S_ISREG(info.st_mode):
        raise ValueError(f"Dotenv path is not a regular file: {path}")
    if os.name == "nt":
        return
    if info.st_uid != os.getuid():
        raise PermissionError(f"Dotenv file {path} belongs to another user")
    if info.st_mode & (stat.S_IRWXG | stat.S_IRWXO):
        raise PermissionError(f"Dotenv file {path} is readable by others; run chmod 600")


def load_environment_secrets(
    env_file: str | Path | None = None,
    *,
    override: bool = False,
    strict: bool = True,
    start_dir: Path | None = None,
) -> Path | None:
    """Load API keys from a dotenv file into the process environment.

    Without ``env_file`` the path comes from ``CRAFTMIND_ENV_FILE``, or else
    ``.env`` in ``start_dir`` (the working directory by default) is used if
    it exists. Relative paths are taken from ``start_dir``.

    Returns:
        The loaded dotenv path, or None when there was nothing to load.

    Raises:
        FileNotFoundError: If a named file is missing and ``strict``.
        PermissionError: If the file is a symlink, foreign-owned or not private.
        ValueError: If the path is not a regular file.
    """
    base_dir = (start_dir or Path.cwd()).resolve()
    named = env_file or os.environ.get(ENV_FILE_VARIABLE)

    if not named:
        path = base_dir / ".env"
        if not path.exists():
            return None
    else:
        path = Path(named).expanduser()
        if not path.is_absolute():
            path = base_dir / path
        if not path.exists() and not path.is_symlink():
            if strict:
                raise FileNotFoundError(f"Dotenv file not found: {path}")
            return None

    _check_env_file(path)
    load_dotenv(dotenv_path=path, override=override)
    logger.debug(f"Loaded secrets from {path}")
    return path
