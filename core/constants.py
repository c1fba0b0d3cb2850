"""
Configuration key constants and shared enums.

Using constants instead of string literals keeps key names in one place
and turns typos into import-time errors.
"""
from __future__ import annotations


class ConfigKey:
    """All configuration keys understood by the bot."""

    # Identity
    TOKEN = "token"
    CLIENT_ID = "client_id"
    GUILD_ID = "guild_id"

    # Roles
    LEAGUE_ROLE_ID = "league_role_id"
    ACTIVE_ROLE_ID = "active_role_id"
    INACTIVE_ROLE_ID = "inactive_role_id"
    AUTO_ASSIGN_ROLE_ID = "auto_assign_role_id"

    # Channels
    WELCOME_CHANNEL_ID = "welcome_channel_id"
    RULES_CHANNEL_ID = "rules_channel_id"
    TEAMS_CHANNEL_ID = "teams_channel_id"
    LEAGUE_CHANNEL_ID = "league_channel_id"
    NFL_NEWS_CHANNEL_ID = "nfl_news_channel_id"
    MADDEN_NEWS_CHANNEL_ID = "madden_news_channel_id"

    # Feeds
    NFL_RSS_URL = "nfl_rss_url"
    MADDEN_RSS_URL = "madden_rss_url"
    NEWS_POLL_INTERVAL_SECONDS = "news_poll_interval_seconds"

    # Welcome
    WELCOME_EMBEDS_ENABLED = "welcome_embeds_enabled"

    # Activity tracking
    INACTIVE_HOURS = "inactive_hours"
    ACTIVITY_CHECK_INTERVAL_SECONDS = "activity_check_interval_seconds"
    AUTO_SAVE_INTERVAL_SECONDS = "auto_save_interval_seconds"
    RETENTION_DAYS = "retention_days"
    RETENTION_SWEEP_INTERVAL_SECONDS = "retention_sweep_interval_seconds"
    ACTIVITY_LOG_SAMPLE_RATE = "activity_log_sample_rate"
    DATA_FILE = "data_file"


# Short alias used throughout the code base.
K = ConfigKey


class RoleState:
    """Activity role state of a league member, recomputed every cycle."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    UNASSIGNED = "unassigned"
    # Both markers held at once; repaired on the next cycle.
    CONFLICTED = "conflicted"


class FeedKey:
    """Identifiers of the news feeds the bot relays."""
    NFL = "nfl"
    MADDEN = "madden"


BRAND_NAME = "Gridiron Fantasy League"
BRAND_ICON_URL = "https://i.imgur.com/hU7ulOM.png"
FOOTER_TEXT = f"{BRAND_NAME} Bot"

COLOR_ACTIVE = 0x10B981
COLOR_INACTIVE = 0xFF6B35
COLOR_INFO = 0x1E40AF
COLOR_NFL = 0x013369
COLOR_MADDEN = 0xEA580C

EMBED_FIELD_LIMIT = 1024
EMBED_TITLE_LIMIT = 256
