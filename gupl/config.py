#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

import yaml

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("gupl")


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. GUPL_CONFIG environment variable
    2. ~/.gupl/ directory
    """
    if 'GUPL_CONFIG' in os.environ:
        path = Path(os.environ['GUPL_CONFIG'])
        if path.exists():
            return path

    gupl_dir = Path.home() / '.gupl'
    for filename in ['config.json', 'config.toml', 'config.yaml', 'config.yml']:
        path = gupl_dir / filename
        if path.exists() and path.stat().st_size > 10:  # Not empty/trivial
            return path

    # If no file exists, return default path
    return gupl_dir / 'config.json'


def load_config():
    """Load configuration from file."""
    config_path = get_config_path()

    # Start with default config
    config = get_default_config()

    if config_path.exists():
        try:
            if config_path.suffix.lower() in ['.toml']:
                with open(config_path, 'rb') as f:
                    file_config = tomllib.load(f)
            elif config_path.suffix.lower() in ['.yaml', '.yml']:
                with open(config_path, 'r') as f:
                    file_config = yaml.safe_load(f) or {}
            else:
                with open(config_path, 'r') as f:
                    file_config = json.load(f)

            config = merge_configs(config, file_config)
        except Exception as e:
            logger.error(f"Error loading config from {config_path}: {e}")

    return apply_env_overrides(config)


def get_default_config():
    """Get default configuration."""
    return {
        "server": {
            "host": "0.0.0.0",
            "port": 8080
        },
        "storage": {
            "root": "."  # Repositories live under {root}/tuple/{n}
        },
        "public": {
            "host": "pkg.golang.fail",  # Also the go.mod module prefix
            "scheme": "https"
        },
        "git": {
            "binary": "git"
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s"
        }
    }


def configure_logging(config, debug=False):
    """Apply the logging section of config to the gupl logger."""
    log_config = config.get("logging", {})
    level = logging.DEBUG if debug else getattr(
        logging, str(log_config.get("level", "INFO")).upper(), logging.INFO
    )
    logger.setLevel(level)
    fmt = log_config.get("format")
    if fmt:
        for handler in logging.getLogger().handlers:
            handler.setFormatter(logging.Formatter(fmt))


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: GUPL_SECTION_KEY
    For example: GUPL_SERVER_PORT=9000
    """
    env_prefix = "GUPL_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix):
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        # Convert value
        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts_from_key = config_key.split('_')
                if key_parts[i : i + len(config_key_parts_from_key)] == config_key_parts_from_key:
                    if len(config_key_parts_from_key) > best_match_len:
                        best_match_len = len(config_key_parts_from_key)
                        matched_key = config_key

            if matched_key:
                if i + best_match_len == len(key_parts):
                    current_level[matched_key] = typed_value
                    break

                if isinstance(current_level[matched_key], dict):
                    current_level = current_level[matched_key]
                    i += best_match_len
                else:
                    # Path conflict, e.g., env var is longer but we found a non-dict value
                    break
            else:
                break

    return config
