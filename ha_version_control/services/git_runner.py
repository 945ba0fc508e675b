"""Async git command runner bound to one working tree"""
import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from ha_version_control.config import DEFAULT_MAX_OUTPUT_BYTES, DEFAULT_TIMEOUT
from ha_version_control.errors import CommandTimeoutError, ExternalToolError, OutputTooLargeError

logger = logging.getLogger('ha_version_control')

READ_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class CommandResult:
    """Raw output of a successful git command"""
    stdout_bytes: bytes
    stderr_bytes: bytes

    @property
    def stdout(self) -> str:
        return self.stdout_bytes.decode('utf-8', errors='replace')

    @property
    def stderr(self) -> str:
        return self.stderr_bytes.decode('utf-8', errors='replace')


def check_revision(revision: str) -> str:
    """Refuse revisions git would parse as an option (e.g. ``--output=...``)"""
    if not revision or not revision.strip():
        raise ValueError("Revision must not be empty")
    if revision.startswith('-'):
        raise ValueError(f"Invalid revision: {revision!r}")
    return revision


class _OutputCapExceeded(Exception):
    pass


class GitRunner:
    """Runs ``git <args>`` inside a fixed root with a timeout and an output cap.

    Every call spawns one process; nothing is shared between calls. A nonzero
    exit raises ExternalToolError, a timeout kills the child and raises
    CommandTimeoutError, and output beyond ``max_output_bytes`` kills the child
    and raises OutputTooLargeError. Nothing is retried.
    """

    def __init__(
        self,
        root: Path,
        timeout: float = DEFAULT_TIMEOUT,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
        git_binary: str = 'git',
    ):
        self.root = Path(root)
        self.timeout = timeout
        self.max_output_bytes = max_output_bytes
        self.git_binary = git_binary

    async def run(self, args: List[str], env: Optional[Dict[str, str]] = None) -> CommandResult:
        """Run git with ``args`` and return its raw output"""
        logger.debug(f"Running git {' '.join(args)} in {self.root}")
        process = await asyncio.create_subprocess_exec(
            self.git_binary,
            *args,
            cwd=str(self.root),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )

        try:
            stdout, stderr = await asyncio.wait_for(self._communicate(process), timeout=self.timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            raise CommandTimeoutError(args, self.timeout)
        except _OutputCapExceeded:
            await self._kill(process)
            raise OutputTooLargeError(args, self.max_output_bytes)

        if process.returncode != 0:
            raise ExternalToolError(args, process.returncode, stderr.decode('utf-8', errors='replace'))

        return CommandResult(stdout_bytes=stdout, stderr_bytes=stderr)

    async def _communicate(self, process: asyncio.subprocess.Process):
        stdout, stderr = await asyncio.gather(
            self._read_capped(process.stdout),
            self._read_capped(process.stderr),
        )
        await process.wait()
        return stdout, stderr

    async def _read_capped(self, stream: asyncio.StreamReader) -> bytes:
        data = bytearray()
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                return bytes(data)
            data.extend(chunk)
            if len(data) > self.max_output_bytes:
                raise _OutputCapExceeded()

    async def _kill(self, process: asyncio.subprocess.Process):
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()
