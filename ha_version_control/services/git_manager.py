"""Git versioning manager for the Home Assistant config directory"""
import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Union

import git

from ha_version_control.config import Settings
from ha_version_control.errors import ExternalToolError
from ha_version_control.models.schemas import (
    BranchList,
    CommitRecord,
    HistoryResult,
    LightweightCommitRecord,
    WorkingTreeStatus,
)
from ha_version_control.services import history
from ha_version_control.services.git_runner import GitRunner, check_revision
from ha_version_control.services.restore import SafeRestoreEngine
from ha_version_control.services.status import parse_branch_output, parse_status_output

logger = logging.getLogger('ha_version_control')


class GitManager:
    """All git operations against one config directory.

    The root comes from Settings and is fixed for the lifetime of the
    instance; every command runs there.
    """

    def __init__(self, settings: Settings, runner: Optional[GitRunner] = None):
        self.settings = settings
        self.config_path = Path(settings.config_path)
        self.runner = runner or GitRunner(
            self.config_path,
            timeout=settings.git_timeout,
            max_output_bytes=settings.max_output_bytes,
            git_binary=settings.git_binary,
        )
        self.restorer = SafeRestoreEngine(self.runner, self.config_path)
        logger.info(
            f"GitManager initialized: config_path={self.config_path}, "
            f"timeout={settings.git_timeout}s, max_output={settings.max_output_bytes}"
        )

    # History

    async def log(self, max_count: int = history.DEFAULT_MAX_COUNT,
                  file: Optional[str] = None) -> HistoryResult[CommitRecord]:
        return await history.get_log(self.runner, max_count=max_count, file=file)

    async def lightweight_log(self) -> HistoryResult[LightweightCommitRecord]:
        return await history.get_lightweight_log(self.runner)

    async def status(self) -> WorkingTreeStatus:
        result = await self.runner.run(['status', '--porcelain=v1', '-z', '--branch'])
        return parse_status_output(result.stdout)

    async def show_file_at_commit(self, commit_hash: str, file_path: str) -> str:
        # argument vector, no quoting needed for spaces
        check_revision(commit_hash)
        result = await self.runner.run(['show', f'{commit_hash}:{file_path}'])
        return result.stdout

    async def commit_details(self, commit_hash: str) -> str:
        check_revision(commit_hash)
        result = await self.runner.run(['show', '--name-status', '--oneline', commit_hash])
        return result.stdout

    async def diff(self, args: Optional[List[str]] = None) -> str:
        result = await self.runner.run(['diff', *(args or [])])
        return result.stdout

    async def diff_revisions(self, commit1: Optional[str] = None, commit2: Optional[str] = None,
                             path: Optional[str] = None) -> str:
        """Diff of the working tree (or ``commit2``) against ``commit1``, HEAD by default"""
        args = [check_revision(commit1 or 'HEAD')]
        if commit2:
            args.append(check_revision(commit2))
        if path:
            args.extend(['--', path])
        return await self.diff(args)

    # Restore

    async def restore_file(self, commit_hash: str, file_path: str) -> None:
        """Restore one file without git checkout (safe on CIFS/SMB mounts)"""
        await self.restorer.restore(commit_hash, file_path)

    async def checkout(self, args: List[str]) -> None:
        await self.runner.run(['checkout', *args])

    # Repository

    async def init(self) -> None:
        """Initialize the repository and set the committer identity"""
        await asyncio.to_thread(self._init_repo)

    def _init_repo(self):
        with git.Repo.init(self.config_path) as repo, repo.config_writer() as writer:
            writer.set_value("user", "name", self.settings.git_user_name)
            writer.set_value("user", "email", self.settings.git_user_email)
        logger.info(f"Git repository initialized in {self.config_path}")

    async def check_is_repo(self) -> bool:
        return await asyncio.to_thread(self._is_repo)

    def _is_repo(self) -> bool:
        # a nested CONFIG_PATH inside a larger working tree counts
        try:
            with git.Repo(self.config_path, search_parent_directories=True):
                return True
        except (git.InvalidGitRepositoryError, git.NoSuchPathError):
            return False

    async def add(self, files: Union[str, List[str]]) -> None:
        file_list = [files] if isinstance(files, str) else list(files)
        await self.runner.run(['add', *file_list])

    async def commit(self, message: str) -> None:
        await self.runner.run(['commit', '-m', message])

    async def raw(self, args: List[str]) -> str:
        result = await self.runner.run(list(args))
        return result.stdout

    async def branch(self, args: Optional[List[str]] = None) -> Optional[BranchList]:
        """List branches, or pass ``args`` through to `git branch`"""
        if args:
            await self.runner.run(['branch', *args])
            return None
        result = await self.runner.run(['branch'])
        return parse_branch_output(result.stdout)

    async def rev_parse(self, args: List[str]) -> str:
        result = await self.runner.run(['rev-parse', *args])
        return result.stdout.strip()

    async def rm_cached(self, path: str) -> bool:
        try:
            await self.runner.run(['rm', '--cached', '-f', path])
            return True
        except ExternalToolError as e:
            logger.debug(f"git rm --cached skipped for {path}: {e.stderr.strip()}")
            return False

    async def reset_head(self, path: str) -> bool:
        try:
            await self.runner.run(['reset', 'HEAD', '--', path])
            return True
        except ExternalToolError as e:
            logger.debug(f"git reset HEAD skipped for {path}: {e.stderr.strip()}")
            return False
