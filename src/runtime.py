"""Runtime translation lookups.

Tables are built once and frozen; lookups afterwards take no locks. A process
normally holds one ``I18n`` behind a ``LazyI18n`` so the first caller builds it
and everybody else waits for that build to finish. Tests build their own
``I18n`` instances.
"""
import json
import logging
import re
import threading
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from src.app_config import I18nConfig
from src.errors import FormatError
from src.locale_file_parser import Translations, load_locales, write_text_atomic
from src.locale_resolver import fallback_chain
from src.logging_config import LOGGER_NAME
from src.minify import MinifyOptions

BUNDLE_VERSION = 2
PLACEHOLDER_PATTERN = re.compile(r'%\{(\w+)\}')

logger = logging.getLogger(LOGGER_NAME)


class Backend:
    """Source of translations for exact ``(locale, key)`` pairs."""

    def available_locales(self) -> List[str]:
        raise NotImplementedError

    def translate(self, locale: str, key: str) -> Optional[str]:
        raise NotImplementedError

    def freeze(self) -> "Backend":
        """Make the tables read-only. Backends without writable state do nothing."""
        return self

    def extend(self, extra: "Backend") -> "CombinedBackend":
        """Layer ``extra`` on top of this backend."""
        return CombinedBackend(self, extra)


class StaticBackend(Backend):
    """In-memory tables, writable until ``freeze()``."""

    def __init__(self, translations: Optional[Translations] = None):
        self._translations: Dict[str, Dict[str, str]] = {}
        self._frozen = False
        for locale, table in (translations or {}).items():
            self.add_translations(locale, table)

    def add_translations(self, locale: str, table: Mapping[str, str]) -> None:
        if self._frozen:
            raise RuntimeError("cannot add translations to a frozen backend")
        self._translations.setdefault(locale, {}).update(table)

    def freeze(self) -> "StaticBackend":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def available_locales(self) -> List[str]:
        return sorted(self._translations)

    def translate(self, locale: str, key: str) -> Optional[str]:
        return self._translations.get(locale, {}).get(key)


class CombinedBackend(Backend):
    """Looks in ``extra`` first, then in ``primary``."""

    def __init__(self, primary: Backend, extra: Backend):
        self.primary = primary
        self.extra = extra

    def freeze(self) -> "CombinedBackend":
        self.primary.freeze()
        self.extra.freeze()
        return self

    def available_locales(self) -> List[str]:
        return sorted(set(self.primary.available_locales()) | set(self.extra.available_locales()))

    def translate(self, locale: str, key: str) -> Optional[str]:
        text = self.extra.translate(locale, key)
        if text is None:
            text = self.primary.translate(locale, key)
        return text


def interpolate(text: str, args: Mapping[str, object]) -> str:
    """Replace ``%{name}`` placeholders; unknown names are left as they are."""
    if not args:
        return text

    def replace(match):
        name = match.group(1)
        return str(args[name]) if name in args else match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, text)


class I18n:
    """
    Answers ``(locale, key)`` queries, walking the locale fallback chain.

    Args:
        backend: Translation tables, frozen on construction (layered
            backends included).
        default_locale: Locale used when none is given.
        fallback: Locales tried after the structural fallbacks.
        minify: Key minification applied to the literals passed to ``t`` and ``tr``.
    """

    def __init__(self, backend: Backend, default_locale: str = 'en',
                 fallback: Iterable[str] = (), minify: Optional[MinifyOptions] = None):
        self.backend = backend.freeze()
        self.default_locale = default_locale
        self.fallback = tuple(fallback)
        self.minify = minify or MinifyOptions()
        self._locale = default_locale
        self._locale_lock = threading.Lock()
        self._chains: Dict[str, List[str]] = {}

    @classmethod
    def from_translations(cls, translations: Translations, **kwargs) -> "I18n":
        return cls(StaticBackend(translations), **kwargs)

    @classmethod
    def from_load_path(cls, load_path: str, **kwargs) -> "I18n":
        return cls.from_translations(load_locales(load_path), **kwargs)

    @classmethod
    def from_config(cls, config: I18nConfig) -> "I18n":
        return cls.from_load_path(
            config.find_load_path(),
            default_locale=config.default_locale,
            fallback=config.fallback,
            minify=MinifyOptions.from_config(config),
        )

    @classmethod
    def from_bundle(cls, path: str) -> "I18n":
        bundle = load_bundle(path)
        minify = bundle.get('minify', {})
        return cls.from_translations(
            bundle['translations'],
            default_locale=bundle.get('default_locale', 'en'),
            fallback=bundle.get('fallback', []),
            minify=MinifyOptions(**minify),
        )

    @property
    def locale(self) -> str:
        return self._locale

    def set_locale(self, locale: str) -> None:
        with self._locale_lock:
            self._locale = locale

    def available_locales(self) -> List[str]:
        return self.backend.available_locales()

    def fallback_chain(self, locale: str) -> List[str]:
        chain = self._chains.get(locale)
        if chain is None:
            chain = fallback_chain(locale, self.fallback)
            # racing threads compute the same list, last write wins
            self._chains[locale] = chain
        return chain

    def translate(self, locale: str, key: str) -> Optional[str]:
        """The first translation found along ``locale``'s fallback chain, or None."""
        for candidate in self.fallback_chain(locale):
            text = self.backend.translate(candidate, key)
            if text is not None:
                return text
        return None

    def translate_or_default(self, locale: str, key: str) -> str:
        """Like ``translate`` but renders ``locale.key`` (or ``key``) on a miss."""
        text = self.translate(locale, key)
        if text is not None:
            return text
        logger.debug("Missing translation for '%s' in '%s'", key, locale)
        return f"{locale}.{key}" if locale else key

    def _translate_literal(self, text: str, locale: str) -> str:
        translated = self.translate(locale, self.minify.key_for(text))
        if translated is None:
            logger.debug("Missing translation for %r in '%s'", text, locale)
            return text
        return translated

    def t(self, key: str, locale: Optional[str] = None, **args) -> str:
        """
        Translate ``key`` into ``locale`` (the current locale by default).

        With minification enabled ``key`` is the literal the extractor saw, so
        it is minified the same way before the lookup and a miss yields the
        literal itself.
        """
        locale = self._locale if locale is None else locale
        if self.minify.enabled:
            return interpolate(self._translate_literal(key, locale), args)
        return interpolate(self.translate_or_default(locale, key), args)

    def tr(self, text: str, locale: Optional[str] = None, **args) -> str:
        """
        Translate a source literal.

        With minification enabled the literal is turned into its key first and
        a miss yields the literal itself; otherwise this is ``t``.
        """
        return self.t(text, locale, **args)


class LazyI18n:
    """Builds an ``I18n`` on first use, exactly once."""

    def __init__(self, factory: Callable[[], I18n]):
        self._factory = factory
        self._instance: Optional[I18n] = None
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._instance is not None

    def get(self) -> I18n:
        instance = self._instance
        if instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = self._factory()
                instance = self._instance
        return instance

    def t(self, key: str, locale: Optional[str] = None, **args) -> str:
        return self.get().t(key, locale, **args)

    def tr(self, text: str, locale: Optional[str] = None, **args) -> str:
        return self.get().tr(text, locale, **args)


def build_bundle(config: I18nConfig, output: str) -> str:
    """
    Write every translation of the project into one JSON resource for
    ``I18n.from_bundle``.
    """
    store = load_locales(config.find_load_path())
    bundle = {
        '_version': BUNDLE_VERSION,
        'default_locale': config.default_locale,
        'fallback': list(config.fallback),
        'minify': MinifyOptions.from_config(config).to_dict(),
        'translations': {locale: dict(sorted(store[locale].items())) for locale in sorted(store)},
    }
    write_text_atomic(output, json.dumps(bundle, ensure_ascii=False, indent=2) + '\n')
    logger.info("Wrote %d locale(s) to '%s'", len(store), output)
    return output


def load_bundle(path: str) -> dict:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            bundle = json.load(f)
    except json.JSONDecodeError as e:
        raise FormatError(f"could not parse bundle: {e}", path=path) from e
    except OSError as e:
        raise FormatError(f"could not read bundle: {e}", path=path) from e

    if not isinstance(bundle, dict) or bundle.get('_version') != BUNDLE_VERSION:
        raise FormatError("unsupported bundle version", path=path)
    if not isinstance(bundle.get('translations'), dict):
        raise FormatError("bundle has no translations", path=path)
    return bundle
