from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from prompt_evolution.core.errors import PersistenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackupHandle:
    round_number: int
    path: Path


class BackupManager:
    """Whole-directory snapshots of the working template set.

    Snapshots live under ``backup_root/round-NNN`` and are kept for the life of
    the run. A snapshot is staged under a temporary name and renamed into
    place, so an existing ``round-NNN`` directory is always complete.
    """

    def __init__(self, working_dir: Path, backup_root: Path) -> None:
        self.working_dir = working_dir
        self.backup_root = backup_root
        self.backup_root.mkdir(parents=True, exist_ok=True)

    def path_for(self, round_number: int) -> Path:
        return self.backup_root / f"round-{round_number:03d}"

    def snapshot(self, round_number: int) -> BackupHandle:
        dest = self.path_for(round_number)
        staging = self.backup_root / f".{dest.name}.tmp"
        try:
            _remove(staging)
            shutil.copytree(self.working_dir, staging)
            _remove(dest)
            staging.rename(dest)
        except OSError as e:
            raise PersistenceError(f"Could not snapshot working set for round {round_number}: {e}") from e
        logger.debug("Snapshot for round %d written to %s", round_number, dest)
        return BackupHandle(round_number=round_number, path=dest)

    def find(self, round_number: int) -> BackupHandle | None:
        path = self.path_for(round_number)
        if path.is_dir():
            return BackupHandle(round_number=round_number, path=path)
        return None

    def list_snapshots(self) -> list[BackupHandle]:
        handles = []
        for path in sorted(self.backup_root.glob("round-*")):
            if path.is_dir():
                handles.append(BackupHandle(round_number=int(path.name.split("-")[-1]), path=path))
        return handles

    def restore(self, handle: BackupHandle) -> None:
        """Replace the working set with the snapshot, byte for byte.

        The snapshot is copied beside the working directory first and swapped
        in with renames. Safe to call repeatedly and when nothing changed.
        """
        parent = self.working_dir.parent
        staging = parent / f".{self.working_dir.name}.restore"
        retired = parent / f".{self.working_dir.name}.old"
        try:
            _remove(staging)
            shutil.copytree(handle.path, staging)
            _remove(retired)
            if self.working_dir.exists():
                self.working_dir.rename(retired)
            staging.rename(self.working_dir)
            _remove(retired)
        except OSError as e:
            raise PersistenceError(
                f"Could not restore working set from {handle.path}: {e}"
            ) from e
        logger.debug("Working set restored from %s", handle.path)


def _remove(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path)
    elif path.exists():
        path.unlink()
