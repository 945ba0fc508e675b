"""Version history and restore API endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import Optional
import logging

from ha_version_control.errors import (
    CommandTimeoutError,
    ExternalToolError,
    OutputTooLargeError,
    RestoreFailed,
    RestoreRolledBack,
)
from ha_version_control.models.schemas import (
    BranchList,
    CommitRecord,
    HistoryResult,
    LightweightCommitRecord,
    RestoreRequest,
    Response,
    WorkingTreeStatus,
)
from ha_version_control.services.git_manager import GitManager

router = APIRouter()
logger = logging.getLogger('ha_version_control')


def get_git_manager(request: Request) -> GitManager:
    return request.app.state.git_manager


def to_http_error(e: Exception, action: str) -> HTTPException:
    """Map a version-control failure onto an HTTP status"""
    if isinstance(e, RestoreFailed):
        logger.critical(f"Failed to {action}: {e}")
        return HTTPException(status_code=500, detail={"message": str(e), "critical": True})
    if isinstance(e, RestoreRolledBack):
        return HTTPException(status_code=409, detail={"message": str(e), "rolled_back": True})
    if isinstance(e, ExternalToolError):
        logger.error(f"Failed to {action}: {e}")
        return HTTPException(status_code=400, detail={"message": f"git exited with {e.exit_code}", "stderr": e.stderr})
    if isinstance(e, CommandTimeoutError):
        logger.error(f"Failed to {action}: {e}")
        return HTTPException(status_code=504, detail=str(e))
    if isinstance(e, OutputTooLargeError):
        logger.error(f"Failed to {action}: {e}")
        return HTTPException(status_code=413, detail=str(e))
    if isinstance(e, ValueError):
        return HTTPException(status_code=422, detail=str(e))
    logger.error(f"Failed to {action}: {e}")
    return HTTPException(status_code=500, detail=str(e))


@router.get("/log", response_model=HistoryResult[CommitRecord])
async def get_log(
    max_count: int = Query(500, ge=1, description="Maximum number of commits"),
    file: Optional[str] = Query(None, description="Only commits touching this path, with per-commit status"),
    manager: GitManager = Depends(get_git_manager),
):
    """
    Get commit history, newest first

    **Examples:**
    - `/api/history/log?max_count=20`
    - `/api/history/log?file=automations.yaml` - history of one file with A/M/D status
    """
    try:
        return await manager.log(max_count=max_count, file=file)
    except Exception as e:
        raise to_http_error(e, "get history")


@router.get("/log/lightweight", response_model=HistoryResult[LightweightCommitRecord])
async def get_lightweight_log(manager: GitManager = Depends(get_git_manager)):
    """Hash, parents, ISO date and subject of every commit, by commit date"""
    try:
        return await manager.lightweight_log()
    except Exception as e:
        raise to_http_error(e, "get lightweight history")


@router.get("/status", response_model=WorkingTreeStatus)
async def get_status(manager: GitManager = Depends(get_git_manager)):
    """Current branch and changed files of the working tree"""
    try:
        return await manager.status()
    except Exception as e:
        raise to_http_error(e, "get status")


@router.get("/diff")
async def get_diff(
    commit1: Optional[str] = None,
    commit2: Optional[str] = None,
    path: Optional[str] = None,
    manager: GitManager = Depends(get_git_manager),
):
    """
    Get diff between commits or current changes

    **Examples:**
    - `/api/history/diff` - Current uncommitted changes
    - `/api/history/diff?commit1=a1b2c3d4` - Changes since commit
    - `/api/history/diff?commit1=a1b2c3d4&commit2=e5f6g7h8&path=scripts.yaml` - One file between two commits
    """
    try:
        diff = await manager.diff_revisions(commit1, commit2, path)
    except Exception as e:
        raise to_http_error(e, "get diff")
    return {"success": True, "diff": diff}


@router.get("/show/{commit_hash}")
async def show_file(
    commit_hash: str,
    path: str = Query(..., min_length=1, description="Relative path from the config root"),
    manager: GitManager = Depends(get_git_manager),
):
    """File content as of a commit"""
    try:
        content = await manager.show_file_at_commit(commit_hash, path)
    except Exception as e:
        raise to_http_error(e, f"show {path} at {commit_hash}")
    return {"success": True, "commit": commit_hash, "path": path, "content": content}


@router.get("/commits/{commit_hash}")
async def get_commit_details(commit_hash: str, manager: GitManager = Depends(get_git_manager)):
    """Subject and changed files of one commit"""
    try:
        details = await manager.commit_details(commit_hash)
    except Exception as e:
        raise to_http_error(e, f"get commit {commit_hash}")
    return {"success": True, "commit": commit_hash, "details": details}


@router.get("/branches", response_model=BranchList)
async def get_branches(manager: GitManager = Depends(get_git_manager)):
    """Local branches"""
    try:
        return await manager.branch()
    except Exception as e:
        raise to_http_error(e, "list branches")


@router.post("/restore", response_model=Response)
async def restore_file(restore: RestoreRequest, manager: GitManager = Depends(get_git_manager)):
    """
    Restore one file to its content at a commit

    **⚠️ WARNING: This overwrites the current file!**

    If the restore fails the previous content is written back and 409 is
    returned. 500 with `critical` means the file could not be put back.

    **Example:**
    ```json
    {
      "commit_hash": "a1b2c3d4",
      "path": "automations.yaml"
    }
    ```
    """
    try:
        await manager.restore_file(restore.commit_hash, restore.path)
    except Exception as e:
        raise to_http_error(e, f"restore {restore.path}")

    logger.warning(f"Restored {restore.path} to {restore.commit_hash}")
    return Response(
        success=True,
        message=f"Restored {restore.path} from {restore.commit_hash}",
        data={"commit_hash": restore.commit_hash, "path": restore.path}
    )
