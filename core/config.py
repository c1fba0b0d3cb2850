"""
Bot configuration loading and validation.

Configuration comes from environment variables (``.env`` is loaded by
``main.py`` before anything reads them). Values are merged over
``DEFAULT_CONFIG`` and validated against ``CONFIG_SCHEMA``; every problem is
collected and reported together in a single ``ConfigError``.
"""
from __future__ import annotations

import os
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .constants import K
from .paths import DEFAULT_DATA_FILE
from .utils import is_int, is_valid_id, safe_int

DEFAULT_CONFIG: Dict[str, Any] = {
    K.TOKEN: None,
    K.CLIENT_ID: None,
    K.GUILD_ID: 0,
    K.LEAGUE_ROLE_ID: 0,
    K.ACTIVE_ROLE_ID: 0,
    K.INACTIVE_ROLE_ID: 0,
    K.AUTO_ASSIGN_ROLE_ID: None,
    K.WELCOME_CHANNEL_ID: None,
    K.RULES_CHANNEL_ID: None,
    K.TEAMS_CHANNEL_ID: None,
    K.LEAGUE_CHANNEL_ID: None,
    K.NFL_NEWS_CHANNEL_ID: None,
    K.MADDEN_NEWS_CHANNEL_ID: None,
    K.NFL_RSS_URL: None,
    K.MADDEN_RSS_URL: None,
    K.NEWS_POLL_INTERVAL_SECONDS: 600,
    K.WELCOME_EMBEDS_ENABLED: True,
    K.INACTIVE_HOURS: 26.0,
    K.ACTIVITY_CHECK_INTERVAL_SECONDS: 1800,
    K.AUTO_SAVE_INTERVAL_SECONDS: 600,
    K.RETENTION_DAYS: 30.0,
    K.RETENTION_SWEEP_INTERVAL_SECONDS: 86400,
    K.ACTIVITY_LOG_SAMPLE_RATE: 0.01,
    K.DATA_FILE: DEFAULT_DATA_FILE,
}

CONFIG_SCHEMA: Dict[str, Tuple[str, bool]] = {
    K.TOKEN: ("str_or_none", False),
    K.CLIENT_ID: ("int_or_none", False),
    K.GUILD_ID: ("int", True),
    K.LEAGUE_ROLE_ID: ("int", True),
    K.ACTIVE_ROLE_ID: ("int", True),
    K.INACTIVE_ROLE_ID: ("int", True),
    K.AUTO_ASSIGN_ROLE_ID: ("int_or_none", False),
    K.WELCOME_CHANNEL_ID: ("int_or_none", False),
    K.RULES_CHANNEL_ID: ("int_or_none", False),
    K.TEAMS_CHANNEL_ID: ("int_or_none", False),
    K.LEAGUE_CHANNEL_ID: ("int_or_none", False),
    K.NFL_NEWS_CHANNEL_ID: ("int_or_none", False),
    K.MADDEN_NEWS_CHANNEL_ID: ("int_or_none", False),
    K.NFL_RSS_URL: ("url_or_none", False),
    K.MADDEN_RSS_URL: ("url_or_none", False),
    K.NEWS_POLL_INTERVAL_SECONDS: ("pos_int", True),
    K.WELCOME_EMBEDS_ENABLED: ("bool", True),
    K.INACTIVE_HOURS: ("pos_float", True),
    K.ACTIVITY_CHECK_INTERVAL_SECONDS: ("pos_int", True),
    K.AUTO_SAVE_INTERVAL_SECONDS: ("pos_int", True),
    K.RETENTION_DAYS: ("pos_float", True),
    K.RETENTION_SWEEP_INTERVAL_SECONDS: ("pos_int", True),
    K.ACTIVITY_LOG_SAMPLE_RATE: ("rate", True),
    K.DATA_FILE: ("str", True),
}

# Environment variable names for each key; the first one that is set wins.
ENV_KEYS: Dict[str, Tuple[str, ...]] = {
    K.TOKEN: ("DISCORD_TOKEN", "DISCORD_BOT_TOKEN", "BOT_TOKEN"),
    K.CLIENT_ID: ("CLIENT_ID", "DISCORD_CLIENT_ID"),
    K.GUILD_ID: ("GUILD_ID", "DISCORD_GUILD_ID"),
    K.LEAGUE_ROLE_ID: ("LEAGUE_ROLE_ID", "MADDEN_LEAGUE_ROLE_ID"),
    K.ACTIVE_ROLE_ID: ("ACTIVE_ROLE_ID",),
    K.INACTIVE_ROLE_ID: ("INACTIVE_ROLE_ID",),
    K.AUTO_ASSIGN_ROLE_ID: ("AUTO_ASSIGN_ROLE_ID",),
    K.WELCOME_CHANNEL_ID: ("WELCOME_CHANNEL_ID",),
    K.RULES_CHANNEL_ID: ("RULES_CHANNEL_ID",),
    K.TEAMS_CHANNEL_ID: ("TEAMS_CHANNEL_ID",),
    K.LEAGUE_CHANNEL_ID: ("LEAGUE_CHANNEL_ID",),
    K.NFL_NEWS_CHANNEL_ID: ("NFL_NEWS_CHANNEL_ID",),
    K.MADDEN_NEWS_CHANNEL_ID: ("MADDEN_NEWS_CHANNEL_ID",),
    K.NFL_RSS_URL: ("NFL_RSS_URL",),
    K.MADDEN_RSS_URL: ("MADDEN_RSS_URL",),
    K.NEWS_POLL_INTERVAL_SECONDS: ("NEWS_POLL_INTERVAL_SECONDS",),
    K.WELCOME_EMBEDS_ENABLED: ("WELCOME_EMBEDS_ENABLED",),
    K.INACTIVE_HOURS: ("INACTIVE_HOURS",),
    K.ACTIVITY_CHECK_INTERVAL_SECONDS: ("ACTIVITY_CHECK_INTERVAL_SECONDS",),
    K.AUTO_SAVE_INTERVAL_SECONDS: ("AUTO_SAVE_INTERVAL_SECONDS",),
    K.RETENTION_DAYS: ("RETENTION_DAYS",),
    K.RETENTION_SWEEP_INTERVAL_SECONDS: ("RETENTION_SWEEP_INTERVAL_SECONDS",),
    K.ACTIVITY_LOG_SAMPLE_RATE: ("ACTIVITY_LOG_SAMPLE_RATE",),
    K.DATA_FILE: ("DATA_FILE",),
}

TRUE_STRINGS = {"1", "true", "yes", "on"}
FALSE_STRINGS = {"0", "false", "no", "off"}


class ConfigError(RuntimeError):
    pass


def _as_int(value: Any) -> Optional[int]:
    if is_int(value):
        return value
    return safe_int(value)


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    return None


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_and_normalize_config(data: Dict[str, Any]) -> Dict[str, Any]:
    errors: List[str] = []
    normalized: Dict[str, Any] = {}

    for key, (type_name, required) in CONFIG_SCHEMA.items():
        value = data.get(key)
        if _blank(value):
            if required and DEFAULT_CONFIG.get(key) in (None, 0, ""):
                errors.append(f"Missing required config key: {key}")
            else:
                normalized[key] = DEFAULT_CONFIG.get(key)
            continue

        if type_name == "int":
            parsed = _as_int(value)
            if not is_valid_id(parsed):
                errors.append(f"{key} must be an integer ID")
                continue
            normalized[key] = parsed
        elif type_name == "int_or_none":
            parsed = _as_int(value)
            if not is_valid_id(parsed):
                errors.append(f"{key} must be an integer ID or empty")
                continue
            normalized[key] = parsed
        elif type_name == "pos_int":
            parsed = _as_int(value)
            if parsed is None or parsed <= 0:
                errors.append(f"{key} must be a positive integer")
                continue
            normalized[key] = parsed
        elif type_name == "pos_float":
            parsed_f = _as_float(value)
            if parsed_f is None or parsed_f <= 0:
                errors.append(f"{key} must be a positive number")
                continue
            normalized[key] = parsed_f
        elif type_name == "rate":
            parsed_f = _as_float(value)
            if parsed_f is None or not 0.0 <= parsed_f <= 1.0:
                errors.append(f"{key} must be a number between 0 and 1")
                continue
            normalized[key] = parsed_f
        elif type_name == "bool":
            parsed_b = _as_bool(value)
            if parsed_b is None:
                errors.append(f"{key} must be a boolean")
                continue
            normalized[key] = parsed_b
        elif type_name in ("str", "str_or_none"):
            if not isinstance(value, str):
                errors.append(f"{key} must be a string")
                continue
            normalized[key] = value.strip()
        elif type_name == "url_or_none":
            if not isinstance(value, str) or not value.strip().lower().startswith(("http://", "https://")):
                errors.append(f"{key} must be an http(s) URL")
                continue
            normalized[key] = value.strip()
        else:
            errors.append(f"Unknown config type for {key}")

    if errors:
        raise ConfigError("; ".join(errors))

    role_ids = [normalized[K.LEAGUE_ROLE_ID], normalized[K.ACTIVE_ROLE_ID], normalized[K.INACTIVE_ROLE_ID]]
    if len(set(role_ids)) != len(role_ids):
        raise ConfigError("league, active and inactive role IDs must be distinct")

    return normalized


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Collect raw (unvalidated) values for every known key from the environment."""
    env = os.environ if environ is None else environ
    raw: Dict[str, Any] = {}
    for key, names in ENV_KEYS.items():
        for name in names:
            value = env.get(name)
            if value is not None and value.strip():
                raw[key] = value
                break
    return raw


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    merged = dict(DEFAULT_CONFIG)
    merged.update(config_from_env(environ))
    if overrides:
        merged.update(overrides)
    return validate_and_normalize_config(merged)
