"""
PathClassifier: decides whether a string is a usable file target.

Model output is full of things that look a little like paths: prose
fragments, shell commands, URLs, half-written tool tags. Only strings that
survive every rejection rule and then match one acceptance rule may be used
as a write target.

Each rule is its own predicate so it can be tested and tuned in isolation.
"""

import re

from coderelay.tools.base import TOOL_TAG_NAMES
from coderelay.utils.logging import logger


class PathClassifier:
    """Pure, deterministic path plausibility checks."""

    COMMENT_PREFIXES = ("//", "#")

    # First token of a shell command, never the first segment of a target
    COMMAND_WORDS = frozenset({
        "python", "node", "npm", "yarn", "go", "rustc", "cargo", "java", "javac",
        "gcc", "g++", "clang", "clang++", "php", "ruby", "perl", "bash", "sh",
        "zsh", "fish", "powershell", "cmd",
    })

    # Words that show up in descriptions of code, not in file names
    PROSE_WORDS = frozenset({
        "creates", "checks", "user", "required", "permission", "middleware",
        "function", "validates", "authenticates", "authorizes", "run", "execute",
        "command", "terminal", "shell",
    })

    URL_MARKERS = ("http://", "https://", "curl", "localhost")

    COMMAND_LINE_MARKERS = (
        "python ", "node ", "go ", "npm ", "yarn ", "cargo ", "java ", "gcc ", "g++ ",
    )

    VALID_EXTENSIONS = (
        # JavaScript/TypeScript
        ".js", ".ts", ".jsx", ".tsx",
        # Python
        ".py", ".pyw", ".pyi",
        # JVM
        ".java", ".kt", ".groovy", ".scala", ".sbt",
        # C family
        ".cpp", ".c", ".h", ".hpp", ".cc", ".cxx", ".m", ".mm",
        ".cs", ".csproj", ".sln",
        # Go / Rust
        ".go", ".mod", ".sum", ".rs", ".toml",
        # PHP / Ruby / Swift / Dart
        ".php", ".phtml", ".rb", ".erb", ".gemspec", ".swift", ".playground", ".dart",
        # Web
        ".html", ".htm", ".css", ".scss", ".sass", ".less", ".vue", ".svelte",
        # Data/Config
        ".json", ".xml", ".yaml", ".yml", ".ini", ".cfg", ".conf",
        # Documentation
        ".md", ".rst", ".txt",
        # Shell/Script
        ".sh", ".bash", ".zsh", ".fish", ".ps1", ".bat", ".cmd",
        # SQL
        ".sql", ".db", ".sqlite",
        # Docker / Git
        ".dockerfile", ".dockerignore", ".gitignore", ".gitattributes",
        # Well-known bare filenames
        "package.json", "requirements.txt", "Pipfile", "Gemfile", "composer.json", "pubspec.yaml",
    )

    _TOKEN_SPLIT = re.compile(r"[\s/\\.]")
    _BARE_FILENAME = re.compile(r"[a-zA-Z0-9_-]+(\.[a-zA-Z0-9_-]+)*")
    _ABSOLUTE = re.compile(r"^(/|[A-Za-z]:)")

    # ─────────────────────────────────────────────────────────
    # REJECTION RULES
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def is_blank(path: str) -> bool:
        return not path or not path.strip()

    @classmethod
    def starts_with_comment(cls, path: str) -> bool:
        return path.startswith(cls.COMMENT_PREFIXES)

    @staticmethod
    def has_markup(path: str) -> bool:
        if "<" in path or ">" in path:
            return True
        return any(f"<{name}>" in path or f"</{name}>" in path for name in TOOL_TAG_NAMES)

    @staticmethod
    def has_bad_spacing(path: str) -> bool:
        return "  " in path or path != path.strip()

    @classmethod
    def starts_with_command(cls, path: str) -> bool:
        first = cls._TOKEN_SPLIT.split(path)[0].lower()
        return first in cls.COMMAND_WORDS

    @classmethod
    def has_prose_words(cls, path: str) -> bool:
        words = cls._TOKEN_SPLIT.split(path.lower())
        return any(len(word) > 3 and word in cls.PROSE_WORDS for word in words)

    @classmethod
    def has_url(cls, path: str) -> bool:
        return any(marker in path for marker in cls.URL_MARKERS)

    @classmethod
    def looks_like_command_line(cls, path: str) -> bool:
        return any(marker in path for marker in cls.COMMAND_LINE_MARKERS)

    # ─────────────────────────────────────────────────────────
    # ACCEPTANCE RULES
    # ─────────────────────────────────────────────────────────

    @classmethod
    def has_valid_extension(cls, path: str) -> bool:
        return path.endswith(cls.VALID_EXTENSIONS)

    @staticmethod
    def has_separator(path: str) -> bool:
        return ("/" in path or "\\" in path) and len(path) > 3

    @classmethod
    def is_bare_filename(cls, path: str) -> bool:
        return bool(cls._BARE_FILENAME.fullmatch(path)) and len(path) > 2

    @classmethod
    def is_absolute_with_extension(cls, path: str) -> bool:
        return bool(cls._ABSOLUTE.match(path)) and cls.has_valid_extension(path)

    # ─────────────────────────────────────────────────────────
    # COMBINED
    # ─────────────────────────────────────────────────────────

    REJECTIONS = (
        ("empty", "is_blank"),
        ("starts with comment marker", "starts_with_comment"),
        ("contains markup or tool-call tags", "has_markup"),
        ("leading/trailing whitespace or double spaces", "has_bad_spacing"),
        ("starts with command word", "starts_with_command"),
        ("contains descriptive words", "has_prose_words"),
        ("contains URL or network command", "has_url"),
        ("looks like a command line", "looks_like_command_line"),
    )

    ACCEPTANCES = (
        "has_valid_extension",
        "has_separator",
        "is_bare_filename",
        "is_absolute_with_extension",
    )

    @classmethod
    def rejection_reason(cls, path: str) -> str | None:
        """Return the first rejection rule ``path`` trips, or None."""
        if not isinstance(path, str):
            return "not a string"
        for reason, rule in cls.REJECTIONS:
            if getattr(cls, rule)(path):
                return reason
        if not any(getattr(cls, rule)(path) for rule in cls.ACCEPTANCES):
            return "no valid extension, path separator, or filename shape"
        return None

    @classmethod
    def is_valid(cls, path: str) -> bool:
        reason = cls.rejection_reason(path)
        if reason:
            logger.debug(f"Invalid path ({reason}): {path!r}")
            return False
        return True


def is_valid_path(candidate: str) -> bool:
    """Convenience wrapper for PathClassifier.is_valid."""
    return PathClassifier.is_valid(candidate)
