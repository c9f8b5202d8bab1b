"""Finding translatable literals in Python sources."""
import ast
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

from tqdm import tqdm

from src.logging_config import LOGGER_NAME

DEFAULT_FUNCTIONS = ("t", "tr")
DEFAULT_EXCLUDE_DIRS = (
    "__pycache__", ".git", ".hg", ".tox", ".venv", "venv", "env",
    "node_modules", "build", "dist", ".mypy_cache", ".pytest_cache",
)

logger = logging.getLogger(LOGGER_NAME)


@dataclass(frozen=True)
class SourceLocation:
    """Where a literal was found. Never part of a key's identity."""
    file: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass
class FileScanResult:
    """Literals found in one file, in source order."""
    path: str
    literals: List[Tuple[str, SourceLocation]] = field(default_factory=list)
    error: Optional[str] = None


class LiteralCallExtractor(ast.NodeVisitor):
    """Collects the string literal passed first to ``t(...)``-style calls."""

    def __init__(self, file_path: str, functions: Sequence[str]):
        self.file_path = file_path
        self.functions = set(functions)
        self.literals: List[Tuple[str, SourceLocation]] = []

    def visit_Call(self, node: ast.Call):
        if self._get_call_name(node) in self.functions and node.args:
            first = node.args[0]
            if isinstance(first, ast.Constant) and isinstance(first.value, str):
                location = SourceLocation(self.file_path, first.lineno, first.col_offset + 1)
                self.literals.append((first.value, location))
        self.generic_visit(node)

    @staticmethod
    def _get_call_name(node: ast.Call) -> str:
        """``t(...)`` and ``i18n.t(...)`` both resolve to ``t``."""
        if isinstance(node.func, ast.Name):
            return node.func.id
        if isinstance(node.func, ast.Attribute):
            return node.func.attr
        return ""


def extract_literals(path: str, source: str,
                     functions: Sequence[str] = DEFAULT_FUNCTIONS) -> List[Tuple[str, SourceLocation]]:
    """
    Find translatable literals in one Python source file.

    Args:
        path: File identifier recorded in each location.
        source: The file's text.
        functions: Names of the translation functions to look for.

    Returns:
        List of ``(text, location)`` pairs in source order.

    Raises:
        SyntaxError: If ``source`` is not valid Python.
    """
    tree = ast.parse(source, filename=path)
    extractor = LiteralCallExtractor(path, functions)
    extractor.visit(tree)
    # ast.NodeVisitor visits nested calls after their parent
    return sorted(extractor.literals, key=lambda item: (item[1].line, item[1].column))


def iter_source_files(root: str, exclude_dirs: Sequence[str] = DEFAULT_EXCLUDE_DIRS) -> Iterator[str]:
    """Yield the Python files under ``root`` in sorted order."""
    root_path = Path(root)
    for path in sorted(root_path.rglob("*.py")):
        parts = path.relative_to(root_path).parts[:-1]
        if any(part in exclude_dirs for part in parts):
            continue
        if path.is_file():
            yield str(path)


def scan_file(root: str, path: str, functions: Sequence[str] = DEFAULT_FUNCTIONS) -> FileScanResult:
    """Read and extract a single file. Unreadable or invalid files are reported, not raised."""
    rel_path = Path(os.path.relpath(path, root)).as_posix()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()
        return FileScanResult(rel_path, extract_literals(rel_path, source, functions))
    except SyntaxError as e:
        return FileScanResult(rel_path, error=f"syntax error on line {e.lineno}: {e.msg}")
    except (OSError, UnicodeDecodeError) as e:
        return FileScanResult(rel_path, error=f"could not read file: {e}")


def scan_sources(root: str, functions: Sequence[str] = DEFAULT_FUNCTIONS,
                 exclude_dirs: Sequence[str] = DEFAULT_EXCLUDE_DIRS,
                 workers: Optional[int] = None, show_progress: bool = True) -> List[FileScanResult]:
    """
    Scan every Python file under ``root``.

    Files are processed in a thread pool. The results come back ordered by
    file path, so the outcome does not depend on which file finishes first.

    Args:
        root: Source tree to scan.
        functions: Names of the translation functions to look for.
        exclude_dirs: Directory names that are skipped.
        workers: Maximum number of threads, ``None`` for the executor default.
        show_progress: Whether to display a progress bar.

    Returns:
        List[FileScanResult]: One result per file, sorted by path.
    """
    paths = list(iter_source_files(root, exclude_dirs))
    logger.info("Scanning %d source file(s) under '%s'", len(paths), root)

    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(tqdm(
            executor.map(lambda p: scan_file(root, p, functions), paths),
            total=len(paths),
            desc="Scanning",
            unit="file",
            disable=not show_progress,
        ))

    for result in results:
        if result.error:
            logger.warning("Skipping '%s': %s", result.path, result.error)
    return sorted(results, key=lambda r: r.path)
