"""Pydantic models for history records and API payloads"""
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Optional, Sequence, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field


class FileStatus(str, Enum):
    """Per-file status of a commit when the log was filtered to one path"""
    ADDED = 'added'
    MODIFIED = 'modified'
    DELETED = 'deleted'
    UNKNOWN = 'unknown'

    @classmethod
    def from_code(cls, code: str) -> "FileStatus":
        return {'A': cls.ADDED, 'M': cls.MODIFIED, 'D': cls.DELETED}.get(code, cls.UNKNOWN)


class CommitRecord(BaseModel):
    """One commit from the full log"""
    model_config = ConfigDict(frozen=True)

    hash: str
    short: str
    author_name: str
    author_email: str
    date: datetime
    message: str = Field(..., description="Subject line")
    body: str
    status: FileStatus = FileStatus.UNKNOWN


class LightweightCommitRecord(BaseModel):
    """One commit from the graph-oriented log"""
    model_config = ConfigDict(frozen=True)

    hash: str
    parents: Tuple[str, ...] = Field(..., description="Parent hashes, first parent first")
    date: str = Field(..., description="ISO-8601 author date exactly as git printed it")
    message: str


RecordT = TypeVar('RecordT')


class HistoryResult(BaseModel, Generic[RecordT]):
    """Ordered history, newest first"""
    model_config = ConfigDict(frozen=True)

    all: Tuple[RecordT, ...] = ()
    latest: Optional[RecordT] = None
    total: int = 0

    @classmethod
    def from_records(cls, records: Sequence[RecordT]) -> "HistoryResult[RecordT]":
        records = tuple(records)
        return cls(all=records, latest=records[0] if records else None, total=len(records))


class FileChange(BaseModel):
    """Entry of `git status --porcelain`"""
    model_config = ConfigDict(frozen=True)

    path: str
    index: str
    working_dir: str
    old_path: Optional[str] = None


class WorkingTreeStatus(BaseModel):
    """Parsed `git status --porcelain --branch`"""
    model_config = ConfigDict(frozen=True)

    current: str = 'master'
    files: Tuple[FileChange, ...] = ()
    conflicted: Tuple[str, ...] = ()

    @computed_field
    @property
    def is_clean(self) -> bool:
        return not self.files


class BranchList(BaseModel):
    """Local branches"""
    model_config = ConfigDict(frozen=True)

    all: Tuple[str, ...] = ()
    current: Optional[str] = None


class RestoreRequest(BaseModel):
    """Restore one file to its content at a commit"""
    commit_hash: str = Field(..., min_length=1, description="Revision to restore from")
    path: str = Field(..., min_length=1, description="Relative path from the config root")


class Response(BaseModel):
    """Generic response model"""
    success: bool
    message: Optional[str] = None
    data: Optional[Any] = None
