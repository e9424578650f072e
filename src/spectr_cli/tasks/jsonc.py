"""Comment stripping for JSONC task files.

Task files are JSON with ``//`` comments tolerated. Comments are removed
line by line before the content is handed to :func:`json.loads`; a ``//``
that sits inside a string literal is left untouched.
"""

from __future__ import annotations

COMMENT_MARKER = "//"


def _comment_start(line: str) -> int:
    """Return the index of the first ``//`` outside a string literal, or -1."""
    in_string = False
    escaped = False
    for idx, char in enumerate(line):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif line.startswith(COMMENT_MARKER, idx):
            return idx
    return -1


def strip_line_comment(line: str) -> str:
    """Remove a full-line or trailing ``//`` comment from a single line."""
    if line.lstrip().startswith(COMMENT_MARKER):
        return ""
    idx = _comment_start(line)
    if idx == -1:
        return line
    return line[:idx].rstrip(" \t")


def strip_jsonc_comments(text: str) -> str:
    """Strip ``//`` comments and drop lines left blank.

    The result is plain JSON text ready for :func:`json.loads`.
    """
    cleaned: list[str] = []
    for line in text.split("\n"):
        stripped = strip_line_comment(line)
        if stripped.strip():
            cleaned.append(stripped)
    return "\n".join(cleaned)
