import os
import textwrap
from pathlib import Path

import pytest


def write_file(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip(), encoding='utf-8')
    return path


@pytest.fixture(autouse=True)
def clean_i18n_environment(monkeypatch):
    """Keep settings from the developer's shell out of the tests."""
    for name in ('I18N_CONFIG_FILE', 'I18N_LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sample_project(tmp_path):
    """
    A small project: settings, two locale files and one source module.

    locales/en.yml holds ``hello`` and ``legacy``, locales/app.fr.yml only
    ``hello``; app/main.py uses ``hello`` and ``Goodbye``.
    """
    project = tmp_path / 'project'
    write_file(project / 'i18n.yaml', """
        i18n:
          default_locale: en
          available_locales: [en, fr]
          fallback: [en]
        logging:
          log_to_console: false
    """)
    write_file(project / 'locales' / 'en.yml', """
        hello: Hello
        legacy: Old text
    """)
    write_file(project / 'locales' / 'app.fr.yml', """
        hello: Bonjour
    """)
    write_file(project / 'app' / 'main.py', """
        from app.i18n import t, tr


        def greet():
            print(t("hello"))
            print(t("Goodbye"))
            return tr("Goodbye")
    """)
    return project


@pytest.fixture
def read_text():
    def _read(path) -> str:
        with open(os.fspath(path), 'r', encoding='utf-8') as f:
            return f.read()
    return _read
