"""Extract file operations from raw completion text.

Two block vocabularies are recognised because the codegen call sites ask for
different formats::

    <page><path>app/page.tsx</path><content>...</content></page>
    <file><path>app/page.tsx</path>...</file>

plus ``remove(path)`` directives. Anything else in the text is prose and is
ignored. Blocks are collected first, in order of appearance, then removals.
"""

from __future__ import annotations

import re

from athena.models.changes import FileChange

_BLOCK_PATTERN = re.compile(
    r"<page>\s*<path>(?P<page_path>.*?)</path>\s*<content>(?P<page_content>.*?)</content>\s*</page>"
    r"|<file>\s*<path>(?P<file_path>.*?)</path>(?P<file_content>.*?)</file>",
    re.DOTALL,
)
_REMOVE_PATTERN = re.compile(r"remove\((?P<path>.*?)\)")


def normalize_path(raw: str) -> str:
    """Trim and drop one leading slash; the commit API rejects absolute paths."""
    path = raw.strip()
    if path.startswith("/"):
        path = path[1:]
    return path


def parse_file_changes(text: str) -> list[FileChange]:
    changes: list[FileChange] = []
    prose: list[str] = []
    cursor = 0

    for match in _BLOCK_PATTERN.finditer(text):
        prose.append(text[cursor : match.start()])
        cursor = match.end()
        if match.group("page_path") is not None:
            raw_path, content = match.group("page_path"), match.group("page_content")
        else:
            raw_path, content = match.group("file_path"), match.group("file_content")
        path = normalize_path(raw_path)
        if path:
            changes.append(FileChange(path=path, content=content.strip()))
    prose.append(text[cursor:])

    # Directives inside block bodies are code, not instructions.
    for chunk in prose:
        for match in _REMOVE_PATTERN.finditer(chunk):
            path = normalize_path(match.group("path"))
            if path:
                changes.append(FileChange(path=path, remove=True))

    return changes
