#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import json
import logging
import os

import yaml

DEFAULT_DATABASE_URL = 'sqlite+aiosqlite:///chain.db'
DEFAULT_LOG_FORMAT = '[%(asctime).19s] [%(name)s] [%(levelname)s] %(message)s'


def configure_logger(logger,
                     log_file=None,
                     log_format=None,
                     log_level=logging.INFO):
    """Configure a logger with a file or stream handler

    Args:
        logger: Logger instance or logger name string
        log_file: File path string or file-like object (None for stderr)
        log_format: Format string for log messages
        log_level: Logging level (e.g., logging.INFO, logging.DEBUG)

    Returns:
        Configured logger instance
    """
    if isinstance(log_file, str):
        handler = logging.FileHandler(
            log_file,
            mode='a',
            encoding='utf-8',
            errors='replace'
        )
    else:
        handler = logging.StreamHandler(log_file)  # Default to stderr if None

    handler.setFormatter(logging.Formatter(log_format or DEFAULT_LOG_FORMAT))

    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    logger.addHandler(handler)
    logger.setLevel(log_level)

    return logger


def normalize_database_url(url):
    """Ensure a database URL names an async driver

    Args:
        url: SQLAlchemy URL, possibly using a sync driver

    Returns:
        URL using aiosqlite or asyncpg
    """
    if url.startswith('sqlite:///'):
        return url.replace('sqlite:///', 'sqlite+aiosqlite:///', 1)
    if url.startswith('postgresql://'):
        return url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    if url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql+asyncpg://', 1)
    return url


def load_config(config_file):
    """Read a JSON or YAML configuration file

    Args:
        config_file: Path to the configuration file

    Returns:
        Configuration dictionary (empty if the file is empty)

    Raises:
        ValueError: If the file does not contain a mapping
    """
    with open(config_file, 'r', encoding='utf-8') as fp:
        if config_file.endswith(('.yaml', '.yml')):
            conf = yaml.safe_load(fp)
        else:
            conf = json.load(fp)

    if conf is None:
        return {}
    if not isinstance(conf, dict):
        raise ValueError(f'Configuration in {config_file} must be a mapping')
    return conf


def get_config(config_file):
    """Load configuration and set up logging

    Database URL is taken from (in order):
    1. CHAINDB_DATABASE_URL environment variable
    2. database_url field in the config file
    3. database field (plain SQLite path)
    4. Default SQLite (chain.db)

    Args:
        config_file: Path to a JSON or YAML configuration file

    Returns:
        Tuple of (conf, kwargs) where:
            conf: Full configuration dictionary from config file
            kwargs: ChainDatabase initialization parameters
    """
    conf = load_config(config_file)

    if 'CHAINDB_DATABASE_URL' in os.environ:
        database_url = os.environ['CHAINDB_DATABASE_URL']
    elif 'database_url' in conf:
        database_url = conf['database_url']
    elif 'database' in conf:
        database_url = conf['database']
    else:
        database_url = DEFAULT_DATABASE_URL

    logging_config = conf.get('logging', {})
    log_level_str = logging_config.get('level', conf.get('log_level', 'info'))
    log_level = getattr(logging, str(log_level_str).upper(), None)
    if not isinstance(log_level, int):
        raise ValueError(f'Unknown log level: {log_level_str}')

    logging.basicConfig(level=log_level, format=DEFAULT_LOG_FORMAT)

    log_file = logging_config.get('file')
    if log_file:
        configure_logger('chaindb', log_file=log_file, log_level=log_level)

    return conf, {
        'database_url': normalize_database_url(database_url),
    }
