"""Exporting the locale store to a single CSV/JSON/YAML/TOML file."""
import enum
import logging
from typing import Iterable, List, Sequence, Set

from src.app_config import I18nConfig
from src.errors import FormatError
from src.locale_file_parser import (
    EXPORT_EXTENSIONS,
    KeyedTranslations,
    Translations,
    file_extension,
    load_locales,
    render_translations,
    write_text_atomic,
)
from src.logging_config import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


class MissedBehavior(enum.Enum):
    """What to write when a locale has no translation for a key."""
    DEFAULT = 'default'
    EMPTY = 'empty'


def split_locale_tokens(tokens: Iterable[str]) -> List[str]:
    """Flatten ``["en,+es", "!fr"]`` into ``["en", "+es", "!fr"]``."""
    result = []
    for token in tokens:
        for part in token.split(','):
            part = part.strip()
            if part:
                result.append(part)
    return result


def filter_locales(available: Iterable[str], tokens: Iterable[str]) -> List[str]:
    """
    Apply a locale filter expression.

    Bare locales keep only the available locales that are listed; listed
    locales that are not available are ignored. ``+locale`` then adds
    a locale even if nothing is known about it, and ``!locale`` finally removes
    one.

    Args:
        available: Candidate locales.
        tokens: Filter tokens, optionally comma separated.

    Returns:
        List[str]: The selected locales, sorted.
    """
    tokens = split_locale_tokens(tokens)
    locales: Set[str] = set(available)

    explicit = [t for t in tokens if not t.startswith(('+', '!'))]
    if explicit:
        locales = {locale for locale in locales if locale in explicit}

    for token in tokens:
        if token.startswith('+') and token[1:]:
            locales.add(token[1:])
    for token in tokens:
        if token.startswith('!'):
            locales.discard(token[1:])
    return sorted(locales)


def collect_locales(config: I18nConfig, store: Translations) -> List[str]:
    """Declared locales plus every locale seen in the store."""
    return sorted(set(config.available_locales) | set(store.keys()))


def collect_keys(store: Translations) -> List[str]:
    keys: Set[str] = set()
    for table in store.values():
        keys.update(table.keys())
    return sorted(keys)


def build_export_table(store: Translations, locales: Sequence[str], default_locale: str,
                       missed: MissedBehavior = MissedBehavior.DEFAULT) -> KeyedTranslations:
    """
    Build the key x locale matrix.

    Rows are all keys of the store, sorted; every row has one cell per locale
    in ``locales``. A missing cell takes the default locale's text (or ``""``)
    under ``MissedBehavior.DEFAULT`` and ``""`` under ``MissedBehavior.EMPTY``.
    """
    default_table = store.get(default_locale, {})
    table: KeyedTranslations = {}
    for key in collect_keys(store):
        row = {}
        for locale in locales:
            text = store.get(locale, {}).get(key)
            if text is None:
                text = default_table.get(key, '') if missed is MissedBehavior.DEFAULT else ''
            row[locale] = text
        table[key] = row
    return table


def export_translations(config: I18nConfig, output: str, locale_tokens: Sequence[str] = (),
                        missed: MissedBehavior = MissedBehavior.DEFAULT) -> str:
    """
    Export the whole locale store of a project into ``output``.

    The format is chosen by the output file's extension.

    Returns:
        str: The output path.
    """
    ext = file_extension(output)
    if ext not in EXPORT_EXTENSIONS:
        raise FormatError(f"unexpected file format: {ext or '(none)'}", path=output, operation="export")

    load_path = config.find_load_path()
    logger.info("Loading locales from '%s' ...", load_path)
    store = load_locales(load_path)
    for locale in sorted(store):
        logger.info("Loaded %d translation(s) for %s", len(store[locale]), locale)

    locales = filter_locales(collect_locales(config, store), locale_tokens)
    logger.info("Exporting locales: %s", ', '.join(locales))

    table = build_export_table(store, locales, config.default_locale, missed)
    write_text_atomic(output, render_translations(table, ext))
    logger.info("Exported %d key(s) to '%s'", len(table), output)
    return output
