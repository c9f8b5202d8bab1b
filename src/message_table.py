"""Collecting extracted texts and merging them into the locale store."""
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from src.app_config import I18nConfig
from src.extractor import FileScanResult, SourceLocation
from src.locale_file_parser import (
    VERSION_FIELD,
    Translations,
    load_keyed_locale_file,
    load_locales,
    render_translations,
    write_text_atomic,
)
from src.logging_config import LOGGER_NAME
from src.minify import MinifyOptions

TODO_FILENAME = 'TODO.yml'

logger = logging.getLogger(LOGGER_NAME)


@dataclass
class Message:
    """
    One distinct translatable text.

    ``key`` is the lookup identifier (the text itself or its minified form),
    ``value`` the literal found in source and ``index`` the order of first
    discovery, which is the only order messages are ever written in.
    """
    key: str
    value: str
    index: int
    minified: bool = False
    locations: List[SourceLocation] = field(default_factory=list)


@dataclass(frozen=True)
class KeyCollision:
    key: str
    kept_text: str
    dropped_text: str


class MessageTable:
    """Ordered, de-duplicated collection of extracted messages."""

    def __init__(self, minify: Optional[MinifyOptions] = None):
        self.minify = minify or MinifyOptions()
        self._messages: Dict[str, Message] = {}
        self._sources: Dict[str, str] = {}
        self.collisions: List[KeyCollision] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, key: str) -> bool:
        return key in self._messages

    def get(self, key: str) -> Optional[Message]:
        return self._messages.get(key)

    def add(self, text: str, location: Optional[SourceLocation] = None,
            value: Optional[str] = None) -> Message:
        """
        Record one occurrence of ``text``.

        A text seen before keeps its key, value and index; only the location is
        appended. New texts are indexed after everything already in the table.

        Args:
            text: The source text the key is derived from.
            location: Where it was found, if known.
            value: Seed translation, defaults to ``text``.

        Returns:
            Message: The message now holding ``text``.
        """
        key = self.minify.key_for(text)
        message = self._messages.get(key)
        if message is None:
            message = Message(
                key=key,
                value=text if value is None else value,
                index=len(self._messages),
                minified=key != text,
            )
            self._messages[key] = message
            self._sources[key] = text
        elif self._sources[key] != text:
            collision = KeyCollision(key, self._sources[key], text)
            self.collisions.append(collision)
            logger.warning(
                "Minified key '%s' collides: keeping %r, ignoring %r",
                key, collision.kept_text, collision.dropped_text
            )
            return message

        if location is not None:
            message.locations.append(location)
        return message

    def extend(self, results: Iterable[FileScanResult]) -> None:
        """Add the literals of scanned files, in the order given."""
        for result in results:
            for text, location in result.literals:
                self.add(text, location)

    def add_translations(self, pairs: Iterable[Tuple[str, str]]) -> None:
        """Add manually supplied ``(text, translation)`` pairs after the scanned messages."""
        for text, translation in pairs:
            self.add(text, value=translation)

    def messages(self) -> List[Message]:
        """All messages ordered by discovery index."""
        return sorted(self._messages.values(), key=lambda m: m.index)


def _strip_quotes(text: str) -> str:
    if text.startswith('"'):
        text = text[1:]
    if text.endswith('"'):
        text = text[:-1]
    return text


def parse_translate_arg(arg: str) -> Tuple[str, str]:
    """
    Parse a ``"text => translation"`` command line value.

    Whitespace around both sides and one surrounding double quote on each
    end are removed. Without ``=>`` the text is its own translation.
    """
    if '=>' in arg:
        text, translation = arg.split('=>', 1)
        return _strip_quotes(text.strip()), _strip_quotes(translation.strip())
    text = _strip_quotes(arg.strip())
    return text, text


def merge_messages(store: Translations, messages: Iterable[Message], default_locale: str) -> Dict[str, str]:
    """
    Work out which messages are new to the store.

    Keys that already have a default-locale translation keep it untouched;
    keys only present in the store are never removed. The file format marker
    ``_version`` cannot be a key and is skipped with a warning.

    Returns:
        Dict[str, str]: New keys mapped to their default-locale seed value,
        in message order.
    """
    default_table = store.get(default_locale, {})
    additions: Dict[str, str] = {}
    for message in messages:
        if message.key == VERSION_FIELD:
            logger.warning("Skipping '%s': it is reserved for the locale file version", message.key)
            continue
        if message.key in default_table or message.key in additions:
            continue
        additions[message.key] = message.value
    return additions


def write_todo_file(load_path: str, config: I18nConfig, messages: List[Message]) -> Optional[str]:
    """
    Merge new messages into ``TODO.yml`` under ``load_path``.

    Entries already in the file stay as they are, in their order; new keys are
    appended in message order with the default locale seeded from the source
    literal.

    Returns:
        Optional[str]: The file written, or None when there was nothing new.
    """
    todo_path = os.path.join(load_path, TODO_FILENAME)
    store = load_locales(load_path) if os.path.isdir(load_path) else {}
    additions = merge_messages(store, messages, config.default_locale)
    if not additions:
        logger.info("All texts are already in the locale store.")
        return None

    todo = load_keyed_locale_file(todo_path) if os.path.exists(todo_path) else {}
    for key, value in additions.items():
        todo.setdefault(key, {})[config.default_locale] = value

    logger.info("Found %d new text(s) to translate.", len(additions))
    write_text_atomic(todo_path, render_translations(todo, 'yml'))
    logger.info("Wrote '%s'", todo_path)
    return todo_path
