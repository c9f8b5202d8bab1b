"""Rewriting locale files with sorted locales and keys."""
import logging
import os
from typing import Iterable, List

from src.app_config import I18nConfig
from src.export import collect_keys
from src.locale_file_parser import (
    KeyedTranslations,
    Translations,
    file_extension,
    find_locale_files,
    load_locale_file,
    render_translations,
    write_text_atomic,
)
from src.logging_config import LOGGER_NAME

SORTED_SUFFIX = '-sorted'

logger = logging.getLogger(LOGGER_NAME)


def sort_translations(store: Translations, available_locales: Iterable[str],
                      reverse: bool = False) -> KeyedTranslations:
    """
    Rebuild ``store`` as ``key -> locale -> text`` in sorted order.

    Only cells present in ``store`` are kept; ``available_locales`` merely
    takes part in the locale ordering.
    """
    locales = sorted(set(available_locales) | set(store.keys()), reverse=reverse)
    keys = collect_keys(store)
    if reverse:
        keys.reverse()

    table: KeyedTranslations = {}
    for key in keys:
        row = {}
        for locale in locales:
            text = store.get(locale, {}).get(key)
            if text is not None:
                row[locale] = text
        table[key] = row
    return table


def sorted_output_path(path: str) -> str:
    """``locales/app.yml`` -> ``locales/app-sorted.yml``."""
    stem, ext = os.path.splitext(path)
    return f"{stem}{SORTED_SUFFIX}{ext}"


def sort_locale_file(path: str, config: I18nConfig, inplace: bool = False, reverse: bool = False) -> str:
    """Sort one locale file and write the result; returns the path written."""
    logger.info("Loading '%s' ...", path)
    table = sort_translations(load_locale_file(path), config.available_locales, reverse)
    new_path = path if inplace else sorted_output_path(path)
    write_text_atomic(new_path, render_translations(table, file_extension(path)))
    logger.info("Sorted to '%s'", new_path)
    return new_path


def sort_locale_files(config: I18nConfig, inplace: bool = False, reverse: bool = False) -> List[str]:
    """
    Sort every locale file under the project's load path.

    Files that already carry the ``-sorted`` suffix are skipped unless
    ``inplace`` is set. A malformed file stops the run; files written before
    it are complete.

    Returns:
        List[str]: The paths written.
    """
    load_path = config.find_load_path()
    written = []
    for path in find_locale_files(load_path):
        if not inplace and SORTED_SUFFIX in os.path.basename(path):
            continue
        written.append(sort_locale_file(path, config, inplace, reverse))
    return written
