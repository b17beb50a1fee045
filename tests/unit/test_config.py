"""
Unit tests for configuration loading.
"""

import json
import logging

import pytest

from chaindb.config import (
    DEFAULT_DATABASE_URL,
    configure_logger,
    get_config,
    load_config,
    normalize_database_url,
)


@pytest.fixture(autouse=True)
def clear_database_env(monkeypatch):
    monkeypatch.delenv('CHAINDB_DATABASE_URL', raising=False)


def write_json(tmp_path, conf):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps(conf))
    return str(path)


class TestNormalizeDatabaseUrl:
    """Test driver normalization."""

    @pytest.mark.parametrize('url, expected', [
        ('sqlite:///chain.db', 'sqlite+aiosqlite:///chain.db'),
        ('postgresql://u:p@host/chain', 'postgresql+asyncpg://u:p@host/chain'),
        ('postgres://u:p@host/chain', 'postgresql+asyncpg://u:p@host/chain'),
        ('postgresql+asyncpg://u:p@host/chain', 'postgresql+asyncpg://u:p@host/chain'),
        ('chain.db', 'chain.db'),
    ])
    def test_normalize(self, url, expected):
        assert normalize_database_url(url) == expected


class TestLoadConfig:
    """Test reading config files."""

    def test_json(self, tmp_path):
        assert load_config(write_json(tmp_path, {'database': 'x.db'})) == {'database': 'x.db'}

    def test_yaml(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("database_url: sqlite:///chain.db\nlogging:\n  level: debug\n")

        conf = load_config(str(path))
        assert conf == {'database_url': 'sqlite:///chain.db', 'logging': {'level': 'debug'}}

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / 'config.yml'
        path.write_text("")

        assert load_config(str(path)) == {}

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / 'missing.json'))


class TestGetConfig:
    """Test database URL resolution and logging setup."""

    def test_default_database(self, tmp_path):
        _, kwargs = get_config(write_json(tmp_path, {}))
        assert kwargs['database_url'] == DEFAULT_DATABASE_URL

    def test_database_url_field(self, tmp_path):
        conf, kwargs = get_config(write_json(tmp_path, {'database_url': 'postgresql://h/chain'}))

        assert conf['database_url'] == 'postgresql://h/chain'
        assert kwargs['database_url'] == 'postgresql+asyncpg://h/chain'

    def test_database_field(self, tmp_path):
        _, kwargs = get_config(write_json(tmp_path, {'database': 'chain.db'}))
        assert kwargs['database_url'] == 'chain.db'

    def test_database_url_preferred_over_database(self, tmp_path):
        _, kwargs = get_config(write_json(tmp_path, {
            'database_url': 'sqlite:///a.db',
            'database': 'b.db',
        }))
        assert kwargs['database_url'] == 'sqlite+aiosqlite:///a.db'

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv('CHAINDB_DATABASE_URL', 'postgres://env/chain')

        _, kwargs = get_config(write_json(tmp_path, {'database_url': 'sqlite:///a.db'}))
        assert kwargs['database_url'] == 'postgresql+asyncpg://env/chain'

    def test_unknown_log_level(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown log level"):
            get_config(write_json(tmp_path, {'logging': {'level': 'chatty'}}))

    def test_log_file(self, tmp_path):
        log_file = tmp_path / 'upgrade.log'
        logger = logging.getLogger('chaindb')
        handlers_before = list(logger.handlers)

        try:
            get_config(write_json(tmp_path, {'logging': {'level': 'info', 'file': str(log_file)}}))
            logging.getLogger('chaindb.migrations').info('hello upgrade')
            for handler in logger.handlers:
                handler.flush()

            assert 'hello upgrade' in log_file.read_text()
        finally:
            for handler in list(logger.handlers):
                if handler not in handlers_before:
                    logger.removeHandler(handler)
                    handler.close()


class TestConfigureLogger:
    """Test configure_logger."""

    def test_by_name(self):
        logger = configure_logger('chaindb.test.by_name', log_level=logging.DEBUG)
        try:
            assert logger.name == 'chaindb.test.by_name'
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 1
        finally:
            logger.handlers.clear()

    def test_stream(self, tmp_path):
        path = tmp_path / 'out.log'
        with open(path, 'w') as stream:
            logger = configure_logger('chaindb.test.stream', log_file=stream, log_format='%(message)s')
            try:
                logger.info('written')
            finally:
                logger.handlers.clear()

        assert path.read_text() == 'written\n'
