"""Unit tests for literal extraction from Python sources."""
import unittest

import pytest

from src.extractor import SourceLocation, extract_literals, iter_source_files, scan_file, scan_sources

SOURCE = "\n".join([
    "from app.i18n import t, i18n",          # 1
    "",                                      # 2
    "def greet(name):",                      # 3
    "    print(t(\"Hello\"))",               # 4
    "    return i18n.t(\"Welcome, %{name}\", name=name)",  # 5
    "",                                      # 6
    "label = tr(\"Hello\")",                 # 7
    "other = gettext(\"Ignored\")",          # 8
    "dynamic = t(message)",                  # 9
    "number = t(42)",                        # 10
    "nested = t(\"Outer\", extra=t(\"Inner\"))",  # 11
    "",
])


class TestExtractLiterals(unittest.TestCase):
    def test_finds_first_argument_literals_in_source_order(self):
        literals = extract_literals("app/main.py", SOURCE)
        self.assertEqual(
            [(text, loc.line) for text, loc in literals],
            [("Hello", 4), ("Welcome, %{name}", 5), ("Hello", 7), ("Outer", 11), ("Inner", 11)],
        )

    def test_records_one_based_columns(self):
        literals = extract_literals("app/main.py", SOURCE)
        self.assertEqual(literals[2][1], SourceLocation("app/main.py", 7, 12))
        self.assertEqual(str(literals[2][1]), "app/main.py:7:12")

    def test_custom_function_names(self):
        literals = extract_literals("app/main.py", SOURCE, functions=("gettext",))
        self.assertEqual([text for text, _ in literals], ["Ignored"])

    def test_syntax_error_is_raised(self):
        with self.assertRaises(SyntaxError):
            extract_literals("broken.py", "def broken(:\n")


@pytest.fixture
def source_tree(tmp_path):
    files = {
        "b.py": 't("from b")\n',
        "a.py": 't("from a")\n',
        "sub/c.py": 'tr("from c")\n',
        "broken.py": "def broken(:\n",
        ".venv/lib.py": 't("vendored")\n',
        "pkg/__pycache__/cached.py": 't("cached")\n',
        "README.md": 't("not python")\n',
    }
    for name, content in files.items():
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
    return tmp_path


def test_iter_source_files_skips_excluded_dirs(source_tree):
    found = [p[len(str(source_tree)) + 1:].replace("\\", "/") for p in iter_source_files(str(source_tree))]
    assert found == ["a.py", "b.py", "broken.py", "sub/c.py"]


def test_scan_file_reports_syntax_errors(source_tree):
    result = scan_file(str(source_tree), str(source_tree / "broken.py"))
    assert result.path == "broken.py"
    assert result.literals == []
    assert "syntax error" in result.error


def test_scan_sources_orders_results_by_path(source_tree):
    results = scan_sources(str(source_tree), workers=4, show_progress=False)

    assert [r.path for r in results] == ["a.py", "b.py", "broken.py", "sub/c.py"]
    assert [text for r in results for text, _ in r.literals] == ["from a", "from b", "from c"]
    assert results[3].literals[0][1] == SourceLocation("sub/c.py", 1, 4)


def test_scan_sources_logs_skipped_files(source_tree):
    with unittest.TestCase().assertLogs("i18n_tools", level="WARNING") as logs:
        scan_sources(str(source_tree), show_progress=False)
    assert any("broken.py" in line for line in logs.output)
