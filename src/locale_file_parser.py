"""Reading and writing locale files.

Two layouts are understood:

* version 2 (``_version: 2``): ``key -> {locale -> text}``, groups may nest and
  are flattened with ``.``.
* version 1: one locale per file, named after the last ``.`` part of the file
  stem (``app.zh-CN.yml`` holds ``zh-CN``), nested keys flattened with ``.``.

Everything written by this module uses the version 2 layout.
"""
import csv
import io
import json
import logging
import os
import shutil
import tempfile
import tomllib
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import jsonschema
import tomli_w
import yaml

from src.errors import EncodingError, FormatError
from src.logging_config import LOGGER_NAME

# locale -> key -> text
Translations = Dict[str, Dict[str, str]]
# key -> locale -> text
KeyedTranslations = Dict[str, Dict[str, str]]

STORE_EXTENSIONS = ('yml', 'yaml', 'json', 'toml')
EXPORT_EXTENSIONS = ('csv',) + STORE_EXTENSIONS
VERSION_FIELD = '_version'
CURRENT_VERSION = 2

# Leaves must be scalars; nested mappings are groups.
LOCALE_FILE_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        VERSION_FIELD: {"type": "integer", "enum": [1, 2]}
    },
    "additionalProperties": {"$ref": "#/$defs/node"},
    "$defs": {
        "node": {
            "anyOf": [
                {"type": ["string", "number", "boolean", "null"]},
                {"type": "object", "additionalProperties": {"$ref": "#/$defs/node"}}
            ]
        }
    }
}

logger = logging.getLogger(LOGGER_NAME)


def file_extension(path: str) -> str:
    """Return the lower-case extension of ``path`` without the dot."""
    return os.path.splitext(str(path))[1].lstrip('.').lower()


def locale_from_filename(path: str) -> str:
    """``locales/app.zh-CN.yml`` -> ``zh-CN``."""
    stem = Path(path).stem
    return stem.split('.')[-1]


def _read_document(path: str) -> Any:
    ext = file_extension(path)
    if ext not in STORE_EXTENSIONS:
        raise FormatError(f"unexpected file format: {ext or '(none)'}", path=path)
    try:
        if ext == 'toml':
            with open(path, 'rb') as f:
                return tomllib.load(f)
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
        if ext == 'json':
            return json.loads(content)
        return yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError) as e:
        raise FormatError(f"could not parse locale file: {e}", path=path) from e
    except UnicodeDecodeError as e:
        raise FormatError("locale file is not valid UTF-8", path=path) from e
    except OSError as e:
        raise FormatError(f"could not read locale file: {e}", path=path) from e


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def _flatten_v1(prefix: str, data: Dict[Any, Any], out: Dict[str, str]) -> None:
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            _flatten_v1(full_key, value, out)
        elif value is not None:
            out[full_key] = _stringify(value)


def _parse_v2(key: str, entry: Dict[Any, Any], out: KeyedTranslations) -> None:
    # scalars are locale texts, mappings are nested keys
    for name, value in entry.items():
        if isinstance(value, dict):
            _parse_v2(f"{key}.{name}", value, out)
        elif value is not None:
            out.setdefault(key, {})[str(name)] = _stringify(value)


def parse_keyed_document(data: Any, path: str) -> KeyedTranslations:
    """
    Convert a decoded locale file into ``key -> locale -> text``, keeping the
    order in which keys appear in the file.

    Args:
        data: The decoded YAML/JSON/TOML document.
        path: The file the document came from, used for the v1 locale name
            and for error messages.

    Returns:
        KeyedTranslations: The file's translations grouped by key.
    """
    if data is None:
        return {}
    try:
        jsonschema.validate(instance=data, schema=LOCALE_FILE_SCHEMA)
    except jsonschema.ValidationError as e:
        raise FormatError(f"malformed locale file: {e.message}", path=path) from e

    version = data.get(VERSION_FIELD, 1)
    body = {k: v for k, v in data.items() if k != VERSION_FIELD}
    keyed: KeyedTranslations = {}
    if version != CURRENT_VERSION:
        flat: Dict[str, str] = {}
        _flatten_v1('', body, flat)
        locale = locale_from_filename(path)
        for key, text in flat.items():
            keyed[key] = {locale: text}
        return keyed

    for key, value in body.items():
        if not isinstance(value, dict):
            raise FormatError(f"key '{key}' must map locales to texts", path=path)
        _parse_v2(str(key), value, keyed)
    return keyed


def by_locale(keyed: KeyedTranslations) -> Translations:
    """``key -> locale -> text`` to ``locale -> key -> text``."""
    translations: Translations = {}
    for key, row in keyed.items():
        for locale, text in row.items():
            translations.setdefault(locale, {})[key] = text
    return translations


def parse_locale_document(data: Any, path: str) -> Translations:
    """Convert a decoded locale file into ``locale -> key -> text``."""
    return by_locale(parse_keyed_document(data, path))


def load_keyed_locale_file(path: str) -> KeyedTranslations:
    """Load a single locale file grouped by key, in file order."""
    return parse_keyed_document(_read_document(path), str(path))


def load_locale_file(path: str) -> Translations:
    """Load a single locale file."""
    return by_locale(load_keyed_locale_file(path))


def find_locale_files(load_path: str) -> List[str]:
    """All locale files below ``load_path``, sorted by path."""
    files = [
        str(p) for p in Path(load_path).rglob('*')
        if p.is_file() and file_extension(p.name) in STORE_EXTENSIONS
    ]
    return sorted(files)


def load_locales(load_path: str, ignore: Optional[Callable[[str], bool]] = None) -> Translations:
    """
    Load and merge every locale file under ``load_path``.

    Files are read in sorted path order; a later file overrides the texts of
    an earlier one key by key.

    Args:
        load_path: Directory holding the locale files.
        ignore: Optional predicate; files it returns True for are skipped.

    Returns:
        Translations: The merged store.
    """
    store: Translations = {}
    for path in find_locale_files(load_path):
        if ignore and ignore(path):
            continue
        translations = load_locale_file(path)
        for locale, table in translations.items():
            store.setdefault(locale, {}).update(table)
        logger.debug("Loaded %d locale(s) from '%s'", len(translations), path)
    return store


def _render_csv(trs: KeyedTranslations) -> str:
    header = ['key']
    for row in trs.values():
        for locale in row:
            if locale not in header[1:]:
                header.append(locale)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerow(header)
    for key, row in trs.items():
        writer.writerow([key] + [row.get(locale, '') for locale in header[1:]])
    return buffer.getvalue()


def render_translations(trs: KeyedTranslations, ext: str) -> str:
    """
    Serialize ``key -> locale -> text`` in the format named by ``ext``.

    Args:
        trs: The ordered translation table.
        ext: One of csv, json, yaml, yml, toml.

    Returns:
        str: The file content.
    """
    ext = ext.lower().lstrip('.')
    if ext == 'csv':
        return _render_csv(trs)
    if ext not in STORE_EXTENSIONS:
        raise FormatError(f"unexpected file format: {ext or '(none)'}")

    if VERSION_FIELD in trs:
        raise FormatError(f"'{VERSION_FIELD}' is reserved and cannot be used as a translation key")

    document: Dict[str, Any] = {VERSION_FIELD: CURRENT_VERSION}
    for key, row in trs.items():
        document[key] = dict(row)

    try:
        if ext == 'json':
            return json.dumps(document, ensure_ascii=False, indent=2) + '\n'
        if ext == 'toml':
            return tomli_w.dumps(document)
        return yaml.safe_dump(document, allow_unicode=True, sort_keys=False, default_flow_style=False)
    except (TypeError, ValueError, yaml.YAMLError) as e:
        raise EncodingError(f"could not serialize translations as {ext}: {e}") from e


def write_text_atomic(path: str, text: str) -> None:
    """
    Replace ``path`` with ``text``.

    The content is written to a temporary file next to the target and moved
    into place, so the target is either fully rewritten or left untouched.
    """
    path = os.path.abspath(path)
    directory = os.path.dirname(path)
    os.makedirs(directory, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(prefix=f".{os.path.basename(path)}.", suffix='.tmp', dir=directory)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8', newline='') as f:
            f.write(text)
        if os.path.exists(path):
            shutil.copymode(path, temp_path)
        else:
            os.chmod(temp_path, 0o644)
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise
