"""Shared fixtures: a scripted runner and a throwaway git repository"""
import subprocess
from pathlib import Path

import pytest

from ha_version_control.errors import ExternalToolError
from ha_version_control.services.git_runner import CommandResult, GitRunner


class FakeRunner:
    """Answers run() from a table keyed by the argument vector"""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def add(self, args, response):
        self.responses[tuple(args)] = response

    async def run(self, args, env=None):
        self.calls.append(list(args))
        response = self.responses.get(tuple(args))
        if response is None:
            raise ExternalToolError(args, 128, f"fatal: no scripted response for {args}")
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, str):
            response = response.encode("utf-8")
        return CommandResult(stdout_bytes=response, stderr_bytes=b"")


@pytest.fixture
def fake_runner():
    return FakeRunner()


def _git(repo: Path, *args: str) -> str:
    return subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True
    ).stdout


@pytest.fixture
def git_repo(tmp_path):
    """Empty repository with a committer identity"""
    repo = tmp_path / "config"
    repo.mkdir()
    _git(repo, "init", "-q")
    _git(repo, "config", "user.name", "Test User")
    _git(repo, "config", "user.email", "test@example.com")
    _git(repo, "config", "commit.gpgsign", "false")
    return repo


@pytest.fixture
def commit_file(git_repo):
    """Write a file and commit it, returning the new HEAD hash"""
    def _commit(path: str, content: str, message: str) -> str:
        target = git_repo / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
        _git(git_repo, "add", "--", path)
        _git(git_repo, "commit", "-q", "-m", message)
        return _git(git_repo, "rev-parse", "HEAD").strip()
    return _commit


@pytest.fixture
def git_runner(git_repo):
    return GitRunner(git_repo, timeout=30)
