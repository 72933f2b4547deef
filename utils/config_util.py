"""
Cookie rewrite configuration loading.

Sources, in order of precedence (highest last):
    1. Defaults from create_default_config()
    2. YAML/JSON file (path argument or COOKIE_REWRITE_CONFIG_FILE)
    3. Environment overrides:
        COOKIE_REWRITE_MATCH_DOMAINS='*.local,api.test'
        COOKIE_REWRITE_REPLACEMENTS='oreilly.review=oreilly.local,a.com=a.local'

Usage:
    from utils.config_util import load_config

    config = load_config('cookie_rewrite.yaml')
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from models.cookie_rewrite_config_model import CookieRewriteConfigModel, create_default_config
from utils.error_codes import ConfigurationError, ErrorCode

logger = logging.getLogger('cookie_rewrite.config')

CONFIG_FILE_ENV = 'COOKIE_REWRITE_CONFIG_FILE'
MATCH_DOMAINS_ENV = 'COOKIE_REWRITE_MATCH_DOMAINS'
REPLACEMENTS_ENV = 'COOKIE_REWRITE_REPLACEMENTS'

# Plugin-style files may nest the block under this key
PLUGIN_KEY = 'cookieDomainRewrite'


def _load_from_file(filepath: str) -> dict[str, Any]:
    """Load a raw configuration mapping from a YAML or JSON file"""
    path = Path(filepath)
    if path.suffix not in ('.yaml', '.yml', '.json'):
        raise ConfigurationError(
            f'Unsupported config file format: {path.suffix or "<none>"}',
            error_code=ErrorCode.CFG_UNSUPPORTED_FORMAT,
            source=filepath,
        )
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            if path.suffix == '.json':
                file_config = json.load(f)
            else:
                file_config = yaml.safe_load(f) or {}
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f'Failed to load config file: {e}',
            error_code=ErrorCode.CFG_INVALID_FILE,
            source=filepath,
        ) from e

    if not isinstance(file_config, dict):
        raise ConfigurationError(
            'Config file must contain a mapping',
            error_code=ErrorCode.CFG_INVALID_FILE,
            source=filepath,
        )
    if isinstance(file_config.get(PLUGIN_KEY), dict):
        file_config = file_config[PLUGIN_KEY]
    return file_config


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


def _parse_replacements(value: str) -> list[dict[str, str]]:
    """Parse 'from=to,from2=to2' into replacement mappings."""
    replacements = []
    for pair in _split_csv(value):
        if '=' not in pair:
            raise ConfigurationError(
                f"Invalid replacement '{pair}', expected from=to",
                error_code=ErrorCode.CFG_INVALID_FILE,
                source=REPLACEMENTS_ENV,
            )
        src, dst = pair.split('=', 1)
        replacements.append({'from': src.strip(), 'to': dst.strip()})
    return replacements


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    domains_env = os.getenv(MATCH_DOMAINS_ENV)
    if domains_env is not None:
        overrides['matchDomains'] = _split_csv(domains_env)
    replacements_env = os.getenv(REPLACEMENTS_ENV)
    if replacements_env is not None:
        overrides['replacements'] = _parse_replacements(replacements_env)
    return overrides


def config_from_mapping(data: dict[str, Any], source: str | None = None) -> CookieRewriteConfigModel:
    """Validate a raw mapping (camelCase or snake_case keys) into a config model."""
    try:
        return CookieRewriteConfigModel(**data)
    except ValidationError as e:
        raise ConfigurationError(
            f'Invalid configuration: {e}',
            error_code=ErrorCode.CFG_INVALID_FILE,
            source=source,
        ) from e


def load_config(path: str | None = None) -> CookieRewriteConfigModel:
    """
    Build the effective configuration.

    Keys missing from the file and environment keep their default values.
    """
    merged = create_default_config().dict(by_alias=True)
    config_file = path or os.getenv(CONFIG_FILE_ENV)
    source = None

    if config_file:
        file_config = _load_from_file(config_file)
        for key in ('match_domains', 'matchDomains'):
            if key in file_config:
                merged['matchDomains'] = file_config[key]
        if 'replacements' in file_config:
            merged['replacements'] = file_config['replacements']
        source = config_file
        logger.info(f'Loaded cookie rewrite configuration from {config_file}')

    overrides = _env_overrides()
    if overrides:
        merged.update(overrides)
        logger.info(f'Applied environment overrides: {", ".join(sorted(overrides))}')

    return config_from_mapping(merged, source)
