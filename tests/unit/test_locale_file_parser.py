"""Unit tests for reading and writing locale files."""
import json
import os
import tomllib
from unittest.mock import patch

import pytest
import yaml

from src.errors import FormatError
from src.locale_file_parser import (
    file_extension,
    find_locale_files,
    load_keyed_locale_file,
    load_locale_file,
    load_locales,
    locale_from_filename,
    render_translations,
    write_text_atomic,
)


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding='utf-8')
    return str(path)


class TestFileNames:
    def test_file_extension(self):
        assert file_extension("locales/app.zh-CN.YML") == "yml"
        assert file_extension("exported") == ""

    def test_locale_from_filename(self):
        assert locale_from_filename("locales/app.zh-CN.yml") == "zh-CN"
        assert locale_from_filename("locales/en.json") == "en"


class TestLoadLocaleFile:
    """Both file layouts load into locale -> key -> text."""

    def test_v2_yaml_with_nested_groups(self, tmp_path):
        path = _write(tmp_path / "app.yml", (
            "_version: 2\n"
            "hello:\n"
            "  en: Hello\n"
            "  zh-CN: 你好\n"
            "messages:\n"
            "  welcome:\n"
            "    en: Welcome\n"
        ))
        assert load_locale_file(path) == {
            "en": {"hello": "Hello", "messages.welcome": "Welcome"},
            "zh-CN": {"hello": "你好"},
        }

    def test_v1_json_takes_locale_from_filename(self, tmp_path):
        path = _write(tmp_path / "app.fr.json", json.dumps({
            "greeting": {"morning": "Bonjour"},
            "count": 3,
            "enabled": True,
        }))
        assert load_locale_file(path) == {
            "fr": {"greeting.morning": "Bonjour", "count": "3", "enabled": "true"},
        }

    def test_v2_toml(self, tmp_path):
        path = _write(tmp_path / "app.toml", '_version = 2\n\n[hello]\nen = "Hello"\nde = "Hallo"\n')
        assert load_locale_file(path) == {"en": {"hello": "Hello"}, "de": {"hello": "Hallo"}}

    def test_empty_file(self, tmp_path):
        assert load_locale_file(_write(tmp_path / "en.yml", "")) == {}

    def test_keyed_load_keeps_file_order(self, tmp_path):
        path = _write(tmp_path / "TODO.yml", "_version: 2\nzeta:\n  en: Z\nalpha:\n  en: A\n")
        assert list(load_keyed_locale_file(path)) == ["zeta", "alpha"]

    @pytest.mark.parametrize("name, content", [
        ("en.yml", "- a\n- b\n"),
        ("en.yml", "hello: [a, b]\n"),
        ("app.yml", "_version: 2\nhello: Hi\n"),
        ("app.yml", "_version: 3\nhello:\n  en: Hi\n"),
        ("en.yml", "hello: 'unterminated\n"),
        ("en.json", "{\"hello\": "),
        ("en.toml", "hello = \n"),
    ])
    def test_malformed_files(self, tmp_path, name, content):
        with pytest.raises(FormatError) as excinfo:
            load_locale_file(_write(tmp_path / name, content))
        assert name in str(excinfo.value)

    def test_unknown_extension(self, tmp_path):
        with pytest.raises(FormatError):
            load_locale_file(_write(tmp_path / "en.ini", "hello=Hello\n"))


class TestLoadLocales:
    def test_find_locale_files_is_sorted_and_recursive(self, tmp_path):
        _write(tmp_path / "b.yml", "")
        _write(tmp_path / "nested" / "a.json", "{}")
        _write(tmp_path / "a.toml", "")
        _write(tmp_path / "notes.txt", "")
        found = [os.path.relpath(p, tmp_path) for p in find_locale_files(str(tmp_path))]
        assert found == ["a.toml", "b.yml", os.path.join("nested", "a.json")]

    def test_later_files_override_earlier_ones(self, tmp_path):
        _write(tmp_path / "a.yml", "_version: 2\nhello:\n  en: A\nonly_a:\n  en: kept\n")
        _write(tmp_path / "b.yml", "_version: 2\nhello:\n  en: B\n")
        assert load_locales(str(tmp_path)) == {"en": {"hello": "B", "only_a": "kept"}}

    def test_ignore_predicate(self, tmp_path):
        _write(tmp_path / "en.yml", "hello: Hello\n")
        _write(tmp_path / "en-sorted.yml", "_version: 2\nhello:\n  en: Sorted\n")
        store = load_locales(str(tmp_path), ignore=lambda p: "-sorted" in p)
        assert store == {"en": {"hello": "Hello"}}


class TestRenderTranslations:
    TABLE = {
        "hello": {"en": "Hello", "es": "Hola"},
        "bye": {"en": "Bye, \"friend\"", "es": "Adiós"},
    }

    def test_csv(self):
        assert render_translations(self.TABLE, "csv") == (
            'key,en,es\n'
            'hello,Hello,Hola\n'
            'bye,"Bye, ""friend""",Adiós\n'
        )

    def test_yaml_starts_with_version(self):
        text = render_translations({"hello": {"en": "Hello"}}, "yml")
        assert text == "_version: 2\nhello:\n  en: Hello\n"

    def test_yaml_keeps_unicode(self):
        assert "Adiós" in render_translations(self.TABLE, "yaml")

    def test_json(self):
        text = render_translations(self.TABLE, "json")
        assert text.endswith("\n")
        assert "Adiós" in text
        assert json.loads(text) == {"_version": 2, **self.TABLE}

    def test_toml(self):
        assert tomllib.loads(render_translations(self.TABLE, "toml")) == {"_version": 2, **self.TABLE}

    def test_written_files_load_back(self, tmp_path):
        for ext in ("yml", "json", "toml"):
            path = _write(tmp_path / f"out.{ext}", render_translations(self.TABLE, ext))
            assert load_locale_file(path) == {
                "en": {"hello": "Hello", "bye": "Bye, \"friend\""},
                "es": {"hello": "Hola", "bye": "Adiós"},
            }

    def test_yaml_output_is_valid_yaml_with_order(self):
        loaded = yaml.safe_load(render_translations(self.TABLE, "yml"))
        assert list(loaded) == ["_version", "hello", "bye"]

    def test_unknown_extension(self):
        with pytest.raises(FormatError):
            render_translations(self.TABLE, "ini")

    @pytest.mark.parametrize("ext", ["yml", "json", "toml"])
    def test_version_marker_cannot_be_a_key(self, ext):
        with pytest.raises(FormatError):
            render_translations({"_version": {"en": "_version"}, **self.TABLE}, ext)


class TestWriteTextAtomic:
    def test_creates_missing_directories(self, tmp_path):
        target = tmp_path / "a" / "b" / "out.yml"
        write_text_atomic(str(target), "content\n")
        assert target.read_text(encoding='utf-8') == "content\n"
        assert os.listdir(target.parent) == ["out.yml"]

    def test_failed_replace_leaves_target_untouched(self, tmp_path):
        target = tmp_path / "en.yml"
        target.write_text("original\n", encoding='utf-8')

        with patch("src.locale_file_parser.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                write_text_atomic(str(target), "new\n")

        assert target.read_text(encoding='utf-8') == "original\n"
        assert os.listdir(tmp_path) == ["en.yml"]

    def test_keeps_file_mode(self, tmp_path):
        target = tmp_path / "en.yml"
        target.write_text("original\n", encoding='utf-8')
        os.chmod(target, 0o600)
        write_text_atomic(str(target), "new\n")
        assert os.stat(target).st_mode & 0o777 == 0o600
