"""Static traverse/skip/analyze decision table for repository paths."""

from __future__ import annotations

import enum
import posixpath


class PathDecision(enum.Enum):
    SKIP = "skip"
    DESCEND = "descend"
    ANALYZE = "analyze"


# Dependency, build output and VCS directories.
SKIP_SEGMENTS: frozenset[str] = frozenset(
    {
        "node_modules",
        "dist",
        "build",
        ".git",
        "vendor",
        "packages",
        "target",
        "bin",
        "obj",
    }
)

ANALYZE_EXTENSIONS: frozenset[str] = frozenset(
    {
        # JavaScript / TypeScript
        ".js", ".jsx", ".ts", ".tsx",
        # Python
        ".py",
        # JVM / .NET
        ".java", ".cs",
        # C / C++
        ".c", ".cpp", ".h", ".hpp",
        # Scripting
        ".php", ".rb", ".sh", ".bash",
        # Systems
        ".go", ".rs", ".swift",
        # Configuration
        ".json", ".yml", ".yaml", ".xml", ".toml",
        # Web
        ".html", ".css", ".scss", ".less",
        # SQL
        ".sql",
    }
)


def file_extension(name: str) -> str:
    """Return the lowercase extension of *name* including the dot, or ``""``."""
    return posixpath.splitext(posixpath.basename(name))[1].lower()


def is_skipped(path: str) -> bool:
    """True if any segment of *path* is a denylisted directory name."""
    return any(segment in SKIP_SEGMENTS for segment in path.split("/"))


def decide(path: str, *, is_dir: bool = False) -> PathDecision:
    """Classify a repository entry.

    Denylisted paths are skipped whatever their extension; surviving
    directories are always descended; surviving files are analyzed only
    when their extension is allowlisted.
    """
    if is_skipped(path):
        return PathDecision.SKIP
    if is_dir:
        return PathDecision.DESCEND
    if file_extension(path) in ANALYZE_EXTENSIONS:
        return PathDecision.ANALYZE
    return PathDecision.SKIP


def language_hint(name: str, fallback: str) -> str:
    """Language hint for the analyzer: the bare extension, else *fallback*."""
    ext = file_extension(name)
    return ext[1:] if ext else fallback
