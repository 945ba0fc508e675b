"""Parsing of `git status --porcelain=v1 -z --branch` and `git branch`"""
from typing import List, Optional

from ha_version_control.models.schemas import BranchList, FileChange, WorkingTreeStatus

DEFAULT_BRANCH = 'master'
NO_COMMITS_PREFIX = 'No commits yet on '


def _parse_branch_header(header: str) -> Optional[str]:
    # "## main...origin/main [ahead 1]", "## No commits yet on main", "## HEAD (no branch)"
    text = header[2:].strip()
    if text.startswith(NO_COMMITS_PREFIX):
        return text[len(NO_COMMITS_PREFIX):].strip() or None
    name = text.split(' ')[0].split('...')[0]
    return name or None


def parse_status_output(output: str) -> WorkingTreeStatus:
    """Parse NUL-separated porcelain v1 output.

    Paths are printed verbatim (no C-style quoting). Renames and copies carry
    a second entry holding the source path: ``R  new<NUL>old<NUL>``.
    """
    current = DEFAULT_BRANCH
    files: List[FileChange] = []

    entries = output.split('\0')
    i = 0
    while i < len(entries):
        entry = entries[i]
        i += 1
        if entry.startswith('##'):
            current = _parse_branch_header(entry) or current
            continue
        if len(entry) < 4:
            continue

        code = entry[:2]
        old_path = None
        if code[0] in ('R', 'C') and i < len(entries):
            old_path = entries[i]
            i += 1

        files.append(FileChange(path=entry[3:], index=code[0], working_dir=code[1], old_path=old_path))

    conflicted = tuple(f.path for f in files if f.index == 'C' or f.working_dir == 'C')
    return WorkingTreeStatus(current=current, files=tuple(files), conflicted=conflicted)


def parse_branch_output(output: str) -> BranchList:
    branches = []
    current = None
    for line in output.split('\n'):
        name = line.strip()
        if not name:
            continue
        if name.startswith('* '):
            name = name[2:]
            current = name
        branches.append(name)
    return BranchList(all=tuple(branches), current=current)
