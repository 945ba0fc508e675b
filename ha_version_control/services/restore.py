"""Safe single-file restore for network-mounted config directories.

CIFS/SMB mounts can reject git checkout's atomic replace with "unable to
create file: File exists". Instead of a checkout, the blob is read with
``git show <rev>:<path>`` and written over the file in place. The write is not
atomic, so the previous content is kept in memory and written back if the
fetch or the write fails.

Each restore is a RestoreTransaction moving through::

    ATTEMPTING -> COMMITTED      new content written
    ATTEMPTING -> ROLLED_BACK    failed, previous content written back
    ATTEMPTING -> CORRUPTED      failed, and writing the backup failed too

Concurrent restores of the same path are not serialized here.
"""
import logging
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Awaitable, Callable, Optional

from ha_version_control.errors import RestoreFailed, RestoreRolledBack
from ha_version_control.services.git_runner import GitRunner, check_revision

logger = logging.getLogger('ha_version_control')

Writer = Callable[[Path, bytes], None]


class RestoreState(str, Enum):
    ATTEMPTING = 'attempting'
    COMMITTED = 'committed'
    ROLLED_BACK = 'rolled_back'
    CORRUPTED = 'corrupted'


def write_in_place(target: Path, content: bytes) -> None:
    """Plain overwrite, never rename/replace"""
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, 'wb') as handle:
        handle.write(content)


def normalize_path(path: str) -> str:
    """Repo-relative POSIX form of ``path``, refusing escapes from the root"""
    relative = PurePosixPath(path.replace('\\', '/'))
    if relative.is_absolute() or '..' in relative.parts or not relative.parts:
        raise ValueError(f"Path must be relative to the config root: {path!r}")
    return relative.as_posix()


def resolve_target(root: Path, path: str) -> Path:
    """Map a repo-relative path onto the working tree"""
    return Path(root).joinpath(*PurePosixPath(normalize_path(path)).parts)


class RestoreTransaction:
    """Backup, write and rollback of one file"""

    def __init__(self, target: Path, path: str, revision: str, writer: Writer = write_in_place):
        self.target = target
        self.path = path
        self.revision = revision
        self.writer = writer
        self.state = RestoreState.ATTEMPTING
        self.backup: Optional[bytes] = None

    def capture_backup(self) -> None:
        try:
            self.backup = self.target.read_bytes()
        except FileNotFoundError:
            # Restoring a file that was deleted locally
            self.backup = None

    def commit(self, content: bytes) -> None:
        self.writer(self.target, content)
        self.state = RestoreState.COMMITTED

    def fail(self, error: BaseException) -> None:
        """Roll back after ``error`` and raise the matching failure"""
        logger.error(f"Restore failed for {self.path} at {self.revision}: {error}")

        if self.backup is None:
            raise error

        try:
            self.writer(self.target, self.backup)
        except Exception as rollback_error:
            self.state = RestoreState.CORRUPTED
            logger.critical(
                f"CRITICAL: Restore failed AND could not restore backup of {self.path}: {rollback_error}"
            )
            raise RestoreFailed(self.path, self.revision, error, rollback_error) from rollback_error

        self.state = RestoreState.ROLLED_BACK
        logger.warning(f"Restored backup after failed restore: {self.path}")
        raise RestoreRolledBack(self.path, self.revision, error) from error

    async def run(self, fetch: Callable[[], Awaitable[bytes]]) -> None:
        self.capture_backup()
        try:
            content = await fetch()
            self.commit(content)
        except Exception as error:
            self.fail(error)


class SafeRestoreEngine:
    """Restores files of the working tree at ``root`` to a given revision"""

    def __init__(self, runner: GitRunner, root: Path, writer: Writer = write_in_place):
        self.runner = runner
        self.root = Path(root)
        self.writer = writer

    async def fetch_blob(self, revision: str, path: str) -> bytes:
        check_revision(revision)
        result = await self.runner.run(['show', f'{revision}:{normalize_path(path)}'])
        return result.stdout_bytes

    def transaction(self, revision: str, path: str) -> RestoreTransaction:
        check_revision(revision)
        target = resolve_target(self.root, path)
        return RestoreTransaction(target, normalize_path(path), revision, writer=self.writer)

    async def restore(self, revision: str, path: str) -> None:
        """Write ``path`` as it was at ``revision``.

        Raises RestoreRolledBack when the restore failed but the file is
        unchanged, RestoreFailed when the file could not be put back, and the
        original error when there was no previous file to put back.
        """
        transaction = self.transaction(revision, path)
        await transaction.run(lambda: self.fetch_blob(revision, transaction.path))
        logger.info(f"Restored {path} from {revision}")
