"""
Code-block recommendation extractor.

Runs once over a completed model response and turns its fenced code blocks
into Recommendations: (target path, code) pairs the user can later apply.

Target inference is a fallback chain, first match wins:
1. the fence header is itself a path (optionally behind a comment marker)
2. the fence header carries a complete or truncated tool-call tag
3. one of the first body lines is a comment naming a path
4. substantive code whose extension matches a path named by a tool call
   elsewhere in the response
5. a synthesized ``code<N>.<ext>`` name

Blocks that resolve to an already-claimed path, shell blocks that only echo
tool-call markup, and bodies that are a single tag are dropped.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from coderelay import config
from coderelay.tools.base import TOOL_TAG_NAMES, Recommendation
from coderelay.tools.paths import is_valid_path
from coderelay.utils.logging import logger

_TAGS = "|".join(TOOL_TAG_NAMES)

# The language tag must stand alone, so "```main.go" keeps its path in the header
FENCE_PATTERN = re.compile(r"```(?:([\w+#-]+)(?=[ \t\n]))?[ \t]*([^\n]*)\n(.*?)```", re.DOTALL)

# Tool calls anywhere in the response; only the first token of the body is the path
TOOL_CALL_PATH_PATTERN = re.compile(rf"<(?:{_TAGS})>([^<\s]+)[^<]*</(?:{_TAGS})>")
HEADER_TOOL_CALL_PATTERN = re.compile(rf"<(?:{_TAGS})>([^<]+)</(?:{_TAGS})>")
HEADER_PARTIAL_TOOL_CALL_PATTERN = re.compile(rf"<(?:{_TAGS})>([^<\s]+)")

HEADER_COMMENT_PREFIX = re.compile(r"^[#/\s]+")
LINE_NUMBER_PATTERN = re.compile(r"(?:/{2}\s*)?Line\s+(\d+(?:-\d+)?):", re.IGNORECASE)
BARE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

COMMENT_MARKERS = ("//", "#", "<!--", "/*")

SHELL_LANGUAGES = frozenset({"bash", "sh", "shell", "zsh", "console"})

CODE_KEYWORDS = (
    "def ", "class ", "function ", "import ", "from ", "package ", "func ",
    "public ", "private ", "const ", "let ", "var ", "if ", "for ", "while ",
)
CODE_SYMBOLS = ("{", "}", "(", ")", "=", "+", "-", "*", "/")
MARKDOWN_HEADINGS = ("# ", "## ", "### ")

LANGUAGE_EXTENSIONS = {
    "javascript": ".js",
    "js": ".js",
    "typescript": ".ts",
    "ts": ".ts",
    "python": ".py",
    "py": ".py",
    "go": ".go",
    "golang": ".go",
    "java": ".java",
    "cpp": ".cpp",
    "c": ".c",
    "csharp": ".cs",
    "cs": ".cs",
    "php": ".php",
    "ruby": ".rb",
    "rb": ".rb",
    "rust": ".rs",
    "rs": ".rs",
    "swift": ".swift",
    "kotlin": ".kt",
    "kt": ".kt",
    "scala": ".scala",
    "dart": ".dart",
    "html": ".html",
    "css": ".css",
    "json": ".json",
    "yaml": ".yaml",
    "yml": ".yml",
    "markdown": ".md",
    "md": ".md",
    "bash": ".sh",
    "shell": ".sh",
    "sh": ".sh",
    "powershell": ".ps1",
    "ps1": ".ps1",
    "sql": ".sql",
    "dockerfile": ".dockerfile",
    "gitignore": ".gitignore",
    "gitattributes": ".gitattributes",
}


def expected_extension(language: Optional[str]) -> str:
    """Map a fence language tag to a file extension, ``.txt`` when unknown."""
    return LANGUAGE_EXTENSIONS.get((language or "").lower(), ".txt")


@dataclass
class FencedBlock:
    """One fenced block as written in the response."""
    index: int  # 1-based position among all fenced blocks
    language: str
    header: str
    body: str

    @property
    def code(self) -> str:
        return self.body[:-1] if self.body.endswith("\n") else self.body


def iter_fenced_blocks(text: str) -> Iterable[FencedBlock]:
    for index, match in enumerate(FENCE_PATTERN.finditer(text), start=1):
        yield FencedBlock(
            index=index,
            language=match.group(1) or "",
            header=match.group(2) or "",
            body=match.group(3),
        )


def collect_tool_call_paths(text: str) -> dict[str, None]:
    """Valid paths named by tool calls anywhere in ``text``, in first-seen order."""
    paths: dict[str, None] = {}
    for match in TOOL_CALL_PATH_PATTERN.finditer(text):
        path = match.group(1).strip()
        if is_valid_path(path):
            paths.setdefault(path, None)
    return paths


def extract_line_numbers(code: str) -> Optional[list[str]]:
    """Collect ``Line 15:`` / ``// Line 15-18:`` hints from the block body."""
    numbers = []
    for line in code.split("\n"):
        match = LINE_NUMBER_PATTERN.search(line.strip())
        if match:
            numbers.append(match.group(1))
    return numbers or None


# ─────────────────────────────────────────────────────────
# RESOLUTION RULES
# ─────────────────────────────────────────────────────────

def path_from_header(header: str) -> Optional[str]:
    """Header is itself a path, as written or behind a leading comment marker."""
    if not header:
        return None
    if is_valid_path(header):
        return header.strip()
    cleaned = HEADER_COMMENT_PREFIX.sub("", header).strip()
    if cleaned and is_valid_path(cleaned):
        return cleaned
    return None


def path_from_header_tool_call(header: str) -> Optional[str]:
    """Header embeds a tool-call tag, closed or cut off after the path."""
    if not header:
        return None
    match = HEADER_TOOL_CALL_PATTERN.search(header)
    if match:
        path = match.group(1).strip()
        if is_valid_path(path):
            return path
    match = HEADER_PARTIAL_TOOL_CALL_PATTERN.search(header)
    if match:
        path = match.group(1).strip()
        if is_valid_path(path):
            return path
    return None


def _comment_text(line: str) -> Optional[str]:
    if line.startswith("//"):
        return line[2:].strip()
    if line.startswith("#"):
        return line[1:].strip()
    if line.startswith("<!--"):
        end = line.rfind("-->")
        return (line[4:end] if end >= 4 else line[4:]).strip()
    return None


def path_from_body_comments(code: str, max_lines: int = config.BODY_COMMENT_SCAN_LINES) -> Optional[str]:
    """First valid path named by a single-line comment near the top of the body."""
    for line in code.split("\n")[:max_lines]:
        comment = _comment_text(line.strip())
        if not comment:
            continue
        if comment.startswith(COMMENT_MARKERS):
            # comment inside a comment, e.g. "// # notes.md"
            continue
        if "." not in comment and not BARE_NAME_PATTERN.match(comment):
            continue
        if is_valid_path(comment):
            return comment
    return None


def has_code_structure(code: str) -> bool:
    return any(token in code for token in CODE_KEYWORDS) or any(
        symbol in code for symbol in CODE_SYMBOLS
    )


def is_only_markdown(code: str) -> bool:
    return any(heading in code for heading in MARKDOWN_HEADINGS) and not has_code_structure(code)


def looks_like_code(code: str, min_length: int = config.MIN_CODE_LENGTH) -> bool:
    """Substantive code: long enough, structured, and not just markdown prose."""
    return (
        len(code.strip()) > min_length
        and has_code_structure(code)
        and not is_only_markdown(code)
    )


def path_from_known_tool_calls(language: str, known_paths: Iterable[str]) -> Optional[str]:
    """Adopt the first tool-call path whose extension matches the block language."""
    extension = expected_extension(language)
    for path in known_paths:
        if path.endswith(extension):
            return path
    return None


def default_file_name(language: str, index: int) -> str:
    return f"code{index}{expected_extension(language)}"


# ─────────────────────────────────────────────────────────
# FILTERS
# ─────────────────────────────────────────────────────────

def is_tool_call_echo(language: str, code: str) -> bool:
    """Shell block that only shows tool-call markup."""
    if language.lower() not in SHELL_LANGUAGES:
        return False
    return any(f"<{name}>" in code for name in TOOL_TAG_NAMES)


def is_wrapped_in_angle_brackets(code: str) -> bool:
    stripped = code.strip()
    return stripped.startswith("<") and stripped.endswith(">")


class RecommendationExtractor:
    """
    Extracts deduplicated, order-preserving recommendations from a response.

    Stateless apart from configuration: extracting twice from the same text
    yields the same list.
    """

    def __init__(
        self,
        comment_scan_lines: int = config.BODY_COMMENT_SCAN_LINES,
        min_code_length: int = config.MIN_CODE_LENGTH,
    ):
        self.comment_scan_lines = comment_scan_lines
        self.min_code_length = min_code_length

    def resolve_path(self, block: FencedBlock, known_paths: dict[str, None]) -> Optional[str]:
        """Run the fallback chain for one block. None means skip the block."""
        path = path_from_header(block.header)
        if path:
            logger.debug(f"Block {block.index}: path from header {path!r}")
            return path

        path = path_from_header_tool_call(block.header)
        if path:
            logger.debug(f"Block {block.index}: path from header tool call {path!r}")
            return path

        path = path_from_body_comments(block.code, self.comment_scan_lines)
        if path:
            logger.debug(f"Block {block.index}: path from body comment {path!r}")
            return path

        if not block.language or not looks_like_code(block.code, self.min_code_length):
            logger.debug(f"Block {block.index}: no path and not substantive code, skipping")
            return None

        path = path_from_known_tool_calls(block.language, known_paths)
        if path:
            logger.debug(f"Block {block.index}: associated with tool call path {path!r}")
            return path

        path = default_file_name(block.language, block.index)
        logger.debug(f"Block {block.index}: generated default path {path!r}")
        return path

    def extract(self, text: str) -> list[Recommendation]:
        if not text or "```" not in text:
            return []

        known_paths = collect_tool_call_paths(text)
        if known_paths:
            logger.debug(f"Tool call paths in response: {list(known_paths)}")

        candidates: list[Recommendation] = []
        for block in iter_fenced_blocks(text):
            code = block.code
            if not code.strip():
                logger.debug(f"Block {block.index}: empty body, skipping")
                continue

            path = self.resolve_path(block, known_paths)
            if not path:
                continue
            if not is_valid_path(path):
                logger.debug(f"Block {block.index}: resolved path {path!r} failed validation, skipping")
                continue

            candidates.append(
                Recommendation(
                    file_path=path,
                    code=code,
                    language=block.language or None,
                    line_numbers=extract_line_numbers(code),
                )
            )

        return self._deduplicate(candidates)

    @staticmethod
    def _deduplicate(candidates: list[Recommendation]) -> list[Recommendation]:
        unique: list[Recommendation] = []
        seen: set[str] = set()
        for rec in candidates:
            if rec.file_path in seen:
                logger.debug(f"Skipping duplicate file path: {rec.file_path}")
                continue
            if is_tool_call_echo(rec.language or "", rec.code):
                logger.debug(f"Skipping tool call block for: {rec.file_path}")
                continue
            if is_wrapped_in_angle_brackets(rec.code):
                logger.debug(f"Skipping pure tag content for: {rec.file_path}")
                continue
            seen.add(rec.file_path)
            unique.append(rec)

        logger.info(f"Extracted {len(unique)} recommendation(s) from {len(candidates)} candidate block(s)")
        return unique


def extract_recommendations(text: str) -> list[Recommendation]:
    """Module-level shortcut with default settings."""
    return RecommendationExtractor().extract(text)
