"""Project configuration for the i18n extract/export/sort tooling."""
import logging
import os
import tomllib
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Tuple

import yaml
from dotenv import load_dotenv

from src.errors import ConfigError, PathError
from src.logging_config import LOGGER_NAME, setup_logger
from src.minify import (
    DEFAULT_MINIFY_KEY,
    DEFAULT_MINIFY_KEY_LEN,
    DEFAULT_MINIFY_KEY_PREFIX,
    DEFAULT_MINIFY_KEY_THRESH,
    MAX_MINIFY_KEY_LEN,
)

CONFIG_FILE_ENV = 'I18N_CONFIG_FILE'
LOG_LEVEL_ENV = 'I18N_LOG_LEVEL'
DEFAULT_CONFIG_FILENAME = 'i18n.yaml'
PYPROJECT_FILENAME = 'pyproject.toml'

DEFAULT_LOAD_PATH = './locales'
DEFAULT_LOCALE = 'en'

logger = logging.getLogger(LOGGER_NAME)


@dataclass(frozen=True)
class LoggingSettings:
    log_level: str = 'INFO'
    log_file_path: Optional[str] = None
    log_to_console: bool = True


@dataclass(frozen=True)
class I18nConfig:
    """Settings for one tool invocation. Immutable once loaded."""
    project_root: str = '.'
    load_path: str = DEFAULT_LOAD_PATH
    default_locale: str = DEFAULT_LOCALE
    available_locales: Tuple[str, ...] = (DEFAULT_LOCALE,)
    fallback: Tuple[str, ...] = ()
    minify_key: bool = DEFAULT_MINIFY_KEY
    minify_key_len: int = DEFAULT_MINIFY_KEY_LEN
    minify_key_prefix: str = DEFAULT_MINIFY_KEY_PREFIX
    minify_key_thresh: int = DEFAULT_MINIFY_KEY_THRESH
    logging_settings: LoggingSettings = field(default_factory=LoggingSettings)

    def resolve_load_path(self) -> str:
        """Return the load path, joined onto the project root when relative."""
        if os.path.isabs(self.load_path):
            return os.path.normpath(self.load_path)
        return os.path.normpath(os.path.join(self.project_root, self.load_path))

    def find_load_path(self) -> str:
        """Return the resolved load path, which must exist."""
        load_path = self.resolve_load_path()
        if not os.path.isdir(load_path):
            raise PathError("missing load path", path=load_path)
        return load_path


def _load_dotenv_files(project_root: str) -> Optional[str]:
    """Load a .env file from the project root, if any."""
    dotenv_path = os.path.join(project_root, '.env')
    if os.path.exists(dotenv_path):
        load_dotenv(dotenv_path)
        return dotenv_path
    return None


def _find_config_file(project_root: str) -> Optional[str]:
    config_file = os.environ.get(CONFIG_FILE_ENV)
    if config_file:
        if not os.path.isabs(config_file):
            config_file = os.path.join(project_root, config_file)
        if not os.path.exists(config_file):
            raise ConfigError(f"configuration file set in {CONFIG_FILE_ENV} not found", path=config_file)
        return config_file

    for candidate in (DEFAULT_CONFIG_FILENAME, PYPROJECT_FILENAME):
        path = os.path.join(project_root, candidate)
        if os.path.exists(path):
            return path
    return None


def _load_yaml_config(config_file: str) -> Dict[str, Any]:
    """Read the ``i18n`` and ``logging`` sections of a YAML settings file."""
    try:
        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}", path=config_file) from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"could not read configuration file: {e}", path=config_file) from e

    if loaded_config is None:
        return {}
    if not isinstance(loaded_config, dict):
        raise ConfigError("configuration file must contain a mapping", path=config_file)
    return loaded_config


def _load_pyproject_config(config_file: str) -> Dict[str, Any]:
    """Read ``[tool.i18n]`` from a pyproject.toml file."""
    try:
        with open(config_file, 'rb') as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid TOML: {e}", path=config_file) from e
    except OSError as e:
        raise ConfigError(f"could not read configuration file: {e}", path=config_file) from e

    tool = data.get('tool', {})
    if not isinstance(tool, dict):
        raise ConfigError("'tool' must be a table", path=config_file)
    tool_i18n = tool.get('i18n')
    if tool_i18n is None:
        return {}
    logging_section = tool_i18n.get('logging', {}) if isinstance(tool_i18n, dict) else {}
    return {'i18n': tool_i18n, 'logging': logging_section}


def _normalize_keys(section: Dict[str, Any]) -> Dict[str, Any]:
    return {str(k).replace('-', '_'): v for k, v in section.items()}


def _expect(section: Dict[str, Any], name: str, kind, default, config_file: Optional[str]):
    value = section.get(name, default)
    # bool is a subclass of int, reject it for numeric settings
    if kind is int and isinstance(value, bool):
        raise ConfigError(f"'{name}' must be an integer", path=config_file)
    if not isinstance(value, kind):
        raise ConfigError(f"'{name}' has an invalid type: {type(value).__name__}", path=config_file)
    return value


def _string_list(value: Any, name: str, config_file: Optional[str]) -> List[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    raise ConfigError(f"'{name}' must be a string or a list of strings", path=config_file)


def _build_available_locales(default_locale: str, locales: List[str]) -> Tuple[str, ...]:
    """Deduplicate the declared locales, making sure the default locale is present."""
    result: List[str] = []
    for locale in locales:
        if locale and locale not in result:
            result.append(locale)
    if default_locale not in result:
        result.insert(0, default_locale)
    return tuple(result)


def _parse_logging_settings(section: Any, config_file: Optional[str]) -> LoggingSettings:
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise ConfigError("'logging' section must be a mapping", path=config_file)
    section = _normalize_keys(section)
    log_level = os.environ.get(LOG_LEVEL_ENV) or _expect(section, 'log_level', str, 'INFO', config_file)
    log_file_path = section.get('log_file_path')
    if log_file_path is not None and not isinstance(log_file_path, str):
        raise ConfigError("'log_file_path' must be a string", path=config_file)
    return LoggingSettings(
        log_level=log_level.upper(),
        log_file_path=log_file_path,
        log_to_console=_expect(section, 'log_to_console', bool, True, config_file),
    )


def parse_i18n_config(project_root: str, config: Dict[str, Any], config_file: Optional[str] = None) -> I18nConfig:
    """
    Validate raw settings and build an I18nConfig.

    Args:
        project_root: Directory the settings belong to.
        config: Mapping with optional ``i18n`` and ``logging`` sections.
        config_file: Source of the settings, used in error messages.

    Returns:
        I18nConfig: The validated configuration.
    """
    section = config.get('i18n', {})
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise ConfigError("'i18n' section must be a mapping", path=config_file)
    section = _normalize_keys(section)

    default_locale = _expect(section, 'default_locale', str, DEFAULT_LOCALE, config_file)
    if not default_locale:
        raise ConfigError("'default_locale' must not be empty", path=config_file)
    available_locales = _string_list(section.get('available_locales', [default_locale]),
                                     'available_locales', config_file)
    fallback = _string_list(section.get('fallback', []), 'fallback', config_file)

    minify_key_len = _expect(section, 'minify_key_len', int, DEFAULT_MINIFY_KEY_LEN, config_file)
    if not 0 <= minify_key_len <= MAX_MINIFY_KEY_LEN:
        raise ConfigError(f"'minify_key_len' must be between 0 and {MAX_MINIFY_KEY_LEN}", path=config_file)
    minify_key_thresh = _expect(section, 'minify_key_thresh', int, DEFAULT_MINIFY_KEY_THRESH, config_file)
    if minify_key_thresh < 0:
        raise ConfigError("'minify_key_thresh' must not be negative", path=config_file)

    return I18nConfig(
        project_root=os.path.abspath(project_root),
        load_path=_expect(section, 'load_path', str, DEFAULT_LOAD_PATH, config_file),
        default_locale=default_locale,
        available_locales=_build_available_locales(default_locale, available_locales),
        fallback=tuple(fallback),
        minify_key=_expect(section, 'minify_key', bool, DEFAULT_MINIFY_KEY, config_file),
        minify_key_len=minify_key_len,
        minify_key_prefix=_expect(section, 'minify_key_prefix', str, DEFAULT_MINIFY_KEY_PREFIX, config_file),
        minify_key_thresh=minify_key_thresh,
        logging_settings=_parse_logging_settings(config.get('logging'), config_file),
    )


def load_i18n_config(project_root: str) -> I18nConfig:
    """
    Load project settings from ``i18n.yaml``, ``pyproject.toml`` or the
    file named by ``I18N_CONFIG_FILE``.

    Returns:
        I18nConfig: The loaded configuration. Defaults are used when the
        project has no settings file.
    """
    if not os.path.isdir(project_root):
        raise ConfigError("project root is not a directory", path=project_root)

    dotenv_path = _load_dotenv_files(project_root)
    config_file = _find_config_file(project_root)

    if config_file is None:
        raw_config: Dict[str, Any] = {}
    elif config_file.endswith('.toml'):
        raw_config = _load_pyproject_config(config_file)
    else:
        raw_config = _load_yaml_config(config_file)

    config = parse_i18n_config(project_root, raw_config, config_file)

    if dotenv_path:
        logger.debug("Loaded environment variables from: %s", dotenv_path)
    if config_file is None:
        logger.info("No settings file found in '%s'. Using default configuration.", project_root)
    else:
        logger.debug("Loaded configuration from: %s", config_file)
    return config


def setup_logger_from_config(config: I18nConfig, verbose: bool = False) -> logging.Logger:
    """Set up the tool logger based on configuration."""
    log_level = 'DEBUG' if verbose else config.logging_settings.log_level
    return setup_logger(log_level, config.logging_settings.log_file_path, config.logging_settings.log_to_console)
