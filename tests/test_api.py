"""Tests for the HTTP API"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from ha_version_control.config import Settings
from ha_version_control.errors import (
    CommandTimeoutError,
    ExternalToolError,
    OutputTooLargeError,
    RestoreFailed,
    RestoreRolledBack,
)
from ha_version_control.main import create_app
from ha_version_control.models.schemas import (
    BranchList,
    CommitRecord,
    FileStatus,
    HistoryResult,
    WorkingTreeStatus,
)
from ha_version_control.services.git_manager import GitManager
from ha_version_control.utils.logger import clear_logs


@pytest.fixture
def manager():
    return AsyncMock(spec=GitManager)


@pytest.fixture
def client(tmp_path, manager):
    app = create_app(Settings(config_path=tmp_path), git_manager=manager)
    return TestClient(app)


@pytest.fixture
def scripted_client(tmp_path, fake_runner):
    """App backed by a real GitManager whose git calls are scripted"""
    settings = Settings(config_path=tmp_path)
    app = create_app(settings, git_manager=GitManager(settings, runner=fake_runner))
    return TestClient(app)


def sample_commit():
    return CommitRecord(
        hash="a" * 40,
        short="aaaaaaa",
        author_name="Jane Doe",
        author_email="jane@example.com",
        date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        message="Update automations",
        body="",
        status=FileStatus.MODIFIED,
    )


def test_health_without_auth(tmp_path, manager):
    app = create_app(Settings(config_path=tmp_path, api_token="secret"), git_manager=manager)
    response = TestClient(app).get("/api/health")
    assert response.status_code == 200
    assert response.json()["auth_enabled"] is True


def test_token_required_when_configured(tmp_path, manager):
    client = TestClient(create_app(Settings(config_path=tmp_path, api_token="secret"), git_manager=manager))
    manager.status.return_value = WorkingTreeStatus()

    assert client.get("/api/history/status").status_code == 401
    assert client.get("/api/history/status", headers={"Authorization": "Bearer wrong"}).status_code == 401
    assert client.get("/api/history/status", headers={"Authorization": "Bearer secret"}).status_code == 200


def test_log(client, manager):
    manager.log.return_value = HistoryResult[CommitRecord].from_records([sample_commit()])

    response = client.get("/api/history/log", params={"max_count": 5, "file": "automations.yaml"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["latest"]["status"] == "modified"
    assert body["all"][0]["hash"] == "a" * 40
    manager.log.assert_awaited_once_with(max_count=5, file="automations.yaml")


def test_log_rejects_zero_max_count(client):
    assert client.get("/api/history/log", params={"max_count": 0}).status_code == 422


def test_empty_log(client, manager):
    manager.log.return_value = HistoryResult[CommitRecord]()
    body = client.get("/api/history/log").json()
    assert body == {"all": [], "latest": None, "total": 0}


def test_status_includes_is_clean(client, manager):
    manager.status.return_value = WorkingTreeStatus(current="main")
    body = client.get("/api/history/status").json()
    assert body["current"] == "main"
    assert body["is_clean"] is True


def test_branches(client, manager):
    manager.branch.return_value = BranchList(all=("main", "backup"), current="main")
    assert client.get("/api/history/branches").json() == {"all": ["main", "backup"], "current": "main"}


def test_diff_arguments(client, manager):
    manager.diff_revisions.return_value = "diff --git a/a.yaml b/a.yaml"
    response = client.get("/api/history/diff", params={"commit1": "abc", "commit2": "def", "path": "a.yaml"})
    assert response.json()["diff"].startswith("diff --git")
    manager.diff_revisions.assert_awaited_once_with("abc", "def", "a.yaml")


def test_diff_defaults_to_head(scripted_client, fake_runner):
    fake_runner.add(["diff", "HEAD"], "")
    assert scripted_client.get("/api/history/diff").status_code == 200
    assert fake_runner.calls == [["diff", "HEAD"]]


def test_show_file(client, manager):
    manager.show_file_at_commit.return_value = "homeassistant:\n"
    response = client.get("/api/history/show/abc", params={"path": "configuration.yaml"})
    assert response.json()["content"] == "homeassistant:\n"


def test_restore_success(client, manager):
    response = client.post("/api/history/restore", json={"commit_hash": "abc", "path": "a.yaml"})
    assert response.status_code == 200
    assert response.json()["success"] is True
    manager.restore_file.assert_awaited_once_with("abc", "a.yaml")


@pytest.mark.parametrize("error,status", [
    (RestoreRolledBack("a.yaml", "abc", OSError("disk full")), 409),
    (RestoreFailed("a.yaml", "abc", OSError("disk full"), OSError("still full")), 500),
    (ExternalToolError(["show", "abc:a.yaml"], 128, "fatal: bad revision"), 400),
    (CommandTimeoutError(["show"], 30), 504),
    (OutputTooLargeError(["show"], 1024), 413),
    (ValueError("Path must be relative"), 422),
])
def test_restore_error_mapping(client, manager, error, status):
    manager.restore_file.side_effect = error
    response = client.post("/api/history/restore", json={"commit_hash": "abc", "path": "a.yaml"})
    assert response.status_code == status


def test_restore_failed_marked_critical(client, manager):
    manager.restore_file.side_effect = RestoreFailed("a.yaml", "abc", OSError("x"), OSError("y"))
    detail = client.post("/api/history/restore", json={"commit_hash": "abc", "path": "a.yaml"}).json()["detail"]
    assert detail["critical"] is True


def test_tool_error_exposes_stderr(client, manager):
    manager.commit_details.side_effect = ExternalToolError(["show"], 128, "fatal: bad object")
    response = client.get("/api/history/commits/zzz")
    assert response.status_code == 400
    assert response.json()["detail"]["stderr"] == "fatal: bad object"


def test_logs_endpoint(client, manager):
    clear_logs()
    manager.restore_file.side_effect = RestoreFailed("a.yaml", "abc", OSError("x"), OSError("y"))
    client.post("/api/history/restore", json={"commit_hash": "abc", "path": "a.yaml"})

    body = client.get("/api/logs/", params={"level": "critical"}).json()

    assert body["count"] >= 1
    assert all(entry["level"] == "CRITICAL" for entry in body["logs"])


class TestOptionLikeRevisions:
    """Revisions starting with '-' never reach git"""

    REVISION = "--output=configuration.yaml"

    def test_restore(self, scripted_client, fake_runner, tmp_path):
        (tmp_path / "configuration.yaml").write_text("homeassistant:\n")
        response = scripted_client.post(
            "/api/history/restore", json={"commit_hash": self.REVISION, "path": "configuration.yaml"}
        )
        assert response.status_code == 422
        assert fake_runner.calls == []
        assert (tmp_path / "configuration.yaml").read_text() == "homeassistant:\n"

    def test_commit_details(self, scripted_client, fake_runner):
        assert scripted_client.get(f"/api/history/commits/{self.REVISION}").status_code == 422
        assert fake_runner.calls == []

    def test_show(self, scripted_client, fake_runner):
        response = scripted_client.get(f"/api/history/show/{self.REVISION}", params={"path": "a.yaml"})
        assert response.status_code == 422
        assert fake_runner.calls == []

    def test_diff(self, scripted_client, fake_runner):
        for params in ({"commit1": self.REVISION}, {"commit1": "HEAD", "commit2": "-p"}):
            assert scripted_client.get("/api/history/diff", params=params).status_code == 422
        assert fake_runner.calls == []
