"""Commit history parsing.

git is asked for a custom pretty-format framed by two sentinel tokens, and the
text is cut back into records here. The sentinels are assumed never to occur
in real commit text; nothing in this module raises on malformed output,
missing fields simply come back empty.

Known ambiguity: when the log is filtered to one file, git appends the
``--name-status`` line to the commit body without any separator. The last line
of the body is taken as the status line when it looks like ``M<whitespace>...``,
so a commit message whose own last line has that shape is misread as a status.
"""
import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

from ha_version_control.models.schemas import (
    CommitRecord,
    FileStatus,
    HistoryResult,
    LightweightCommitRecord,
)
from ha_version_control.services.git_runner import GitRunner

logger = logging.getLogger('ha_version_control')

FIELD_DELIMITER = '§§§§'
COMMIT_DELIMITER = '±±±±'
DEFAULT_MAX_COUNT = 500

FULL_LOG_FIELDS = 7
STATUS_LINE = re.compile(r'^[AMD]\s+')

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def build_log_args(max_count: int = DEFAULT_MAX_COUNT, file: Optional[str] = None) -> List[str]:
    """Arguments for the full log, record delimiter placed BEFORE each record"""
    if max_count < 1:
        raise ValueError(f"max_count must be a positive integer, got {max_count}")

    fields = FIELD_DELIMITER.join(['%H', '%h', '%an', '%ae', '%at', '%s', '%b'])
    args = [
        'log',
        f'--max-count={max_count}',
        '--date=iso',
        f'--pretty=format:{COMMIT_DELIMITER}{fields}',
    ]
    if file:
        args.extend(['--name-status', '--', file])
    return args


def build_lightweight_log_args() -> List[str]:
    """Arguments for the graph log, record delimiter placed AFTER each record"""
    fields = FIELD_DELIMITER.join(['%H', '%P', '%aI', '%s'])
    return ['log', f'--pretty=format:{fields}{COMMIT_DELIMITER}', '--date-order']


def _split_records(output: str) -> List[str]:
    return [raw for raw in output.split(COMMIT_DELIMITER) if raw.strip()]


def _field(parts: List[str], index: int) -> str:
    return parts[index].strip() if index < len(parts) else ''


def _parse_timestamp(value: str) -> datetime:
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        logger.debug(f"Unparseable commit timestamp {value!r}, using epoch")
        return EPOCH


def _split_body_and_status(blob: str, file_requested: bool):
    """Separate the commit body from a trailing ``--name-status`` line"""
    if not file_requested:
        return blob.strip(), FileStatus.UNKNOWN

    lines = blob.strip().split('\n')
    last_line = lines[-1]
    if last_line and STATUS_LINE.match(last_line):
        return '\n'.join(lines[:-1]).strip(), FileStatus.from_code(last_line[0])
    return blob.strip(), FileStatus.UNKNOWN


def parse_commit(raw: str, file_requested: bool = False) -> CommitRecord:
    """Parse one record of the full log"""
    # maxsplit keeps any delimiter inside the body in the last field
    parts = raw.split(FIELD_DELIMITER, FULL_LOG_FIELDS - 1)
    blob = parts[FULL_LOG_FIELDS - 1] if len(parts) == FULL_LOG_FIELDS else ''
    body, status = _split_body_and_status(blob, file_requested)

    return CommitRecord(
        hash=_field(parts, 0),
        short=_field(parts, 1),
        author_name=_field(parts, 2),
        author_email=_field(parts, 3),
        date=_parse_timestamp(_field(parts, 4)),
        message=_field(parts, 5),
        body=body,
        status=status,
    )


def parse_log_output(output: str, file_requested: bool = False) -> HistoryResult[CommitRecord]:
    """Turn full-log output into records, keeping git's newest-first order"""
    if not output.strip():
        return HistoryResult[CommitRecord]()

    commits = [parse_commit(raw, file_requested) for raw in _split_records(output)]
    return HistoryResult[CommitRecord].from_records(commits)


def parse_lightweight_commit(raw: str) -> LightweightCommitRecord:
    """Parse one record of the graph log"""
    parts = raw.split(FIELD_DELIMITER)
    return LightweightCommitRecord(
        hash=_field(parts, 0),
        parents=tuple(_field(parts, 1).split()),
        date=_field(parts, 2),
        message=_field(parts, 3),
    )


def parse_lightweight_log_output(output: str) -> HistoryResult[LightweightCommitRecord]:
    """Turn graph-log output into records"""
    if not output.strip():
        return HistoryResult[LightweightCommitRecord]()

    commits = [parse_lightweight_commit(raw) for raw in _split_records(output)]
    return HistoryResult[LightweightCommitRecord].from_records(commits)


async def get_log(
    runner: GitRunner,
    max_count: int = DEFAULT_MAX_COUNT,
    file: Optional[str] = None,
) -> HistoryResult[CommitRecord]:
    """Full history, optionally restricted to one file with per-commit status"""
    result = await runner.run(build_log_args(max_count, file))
    return parse_log_output(result.stdout, file_requested=bool(file))


async def get_lightweight_log(runner: GitRunner) -> HistoryResult[LightweightCommitRecord]:
    """Hash, parents, ISO date and subject of every commit, by commit date"""
    result = await runner.run(build_lightweight_log_args())
    return parse_lightweight_log_output(result.stdout)
