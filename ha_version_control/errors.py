"""Error types for version-control operations"""
from typing import List, Optional


class VersionControlError(Exception):
    """Base class for every error raised by this package"""


class ExternalToolError(VersionControlError):
    """git exited with a nonzero status"""

    def __init__(self, args: List[str], exit_code: int, stderr: str):
        self.command = list(args)
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(
            f"git {' '.join(self.command)} failed with exit code {exit_code}: {stderr.strip()}"
        )


class CommandTimeoutError(VersionControlError, TimeoutError):
    """git did not finish within the configured timeout"""

    def __init__(self, args: List[str], timeout: float):
        self.command = list(args)
        self.timeout = timeout
        super().__init__(f"git {' '.join(self.command)} timed out after {timeout}s")


class OutputTooLargeError(VersionControlError):
    """git produced more output than the configured cap"""

    def __init__(self, args: List[str], limit: int):
        self.command = list(args)
        self.limit = limit
        super().__init__(f"git {' '.join(self.command)} exceeded output limit of {limit} bytes")


class RestoreRolledBack(VersionControlError):
    """Restore failed but the previous file content was written back.

    The file is unchanged; ``original`` holds the fetch or write failure.
    """

    def __init__(self, path: str, revision: str, original: BaseException):
        self.path = path
        self.revision = revision
        self.original = original
        super().__init__(
            f"Restore of {path} at {revision} failed and was rolled back: {original}"
        )


class RestoreFailed(VersionControlError):
    """Restore failed AND the rollback write failed.

    The file may be partially written or missing. Never recoverable here.
    """

    critical = True

    def __init__(
        self,
        path: str,
        revision: str,
        original: BaseException,
        rollback_error: Optional[BaseException] = None,
    ):
        self.path = path
        self.revision = revision
        self.original = original
        self.rollback_error = rollback_error
        super().__init__(
            f"CRITICAL: restore of {path} at {revision} failed ({original}) "
            f"and the backup could not be written back ({rollback_error}); "
            f"file state is indeterminate"
        )
