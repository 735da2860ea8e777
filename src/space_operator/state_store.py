"""JSON state file owned by the command line host.

The reconciler never persists anything; the CLI loads the last observed
state before a pass and writes the returned state afterwards. Writes go to a
temporary sibling first and are renamed into place so a crash cannot leave a
half-written file behind.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from .config import MAX_STATE_FILE_SIZE_BYTES
from .models import ObservedState

logger = logging.getLogger(__name__)

STATE_FILE_MODE = 0o600


class StateFileError(Exception):
    """Raised when the state file cannot be read or written."""

    pass


def load_state(path: Path) -> ObservedState | None:
    """Load observed state, or None when the space is not tracked yet."""
    if not path.exists():
        return None

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise StateFileError(f"Failed to stat state file {path}: {e}") from e

    if file_size > MAX_STATE_FILE_SIZE_BYTES:
        raise StateFileError(
            f"State file exceeds maximum size of {MAX_STATE_FILE_SIZE_BYTES} bytes: {path}"
        )

    try:
        return ObservedState.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise StateFileError(f"Failed to read state file {path}: {e}") from e
    except ValidationError as e:
        raise StateFileError(f"Invalid state file {path}: {e}") from e


def save_state(path: Path, state: ObservedState) -> None:
    """Atomically replace the state file with ``state``."""
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # SECURITY: state holds secret values, the file is never readable by others
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, STATE_FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            os.fchmod(f.fileno(), STATE_FILE_MODE)
            f.write(state.model_dump_json(indent=2))
        os.replace(tmp_path, path)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise StateFileError(f"Failed to write state file {path}: {e}") from e
    logger.debug("State saved", extra={"path": str(path), "space_id": state.id})


def remove_state(path: Path) -> bool:
    """Stop tracking a space.

    Returns:
        True if a state file was removed.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise StateFileError(f"Failed to remove state file {path}: {e}") from e
    logger.debug("State removed", extra={"path": str(path)})
    return True
