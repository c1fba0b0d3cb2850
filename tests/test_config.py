from __future__ import annotations

import unittest

from core.config import ConfigError, load_config
from core.constants import K
from core.paths import DEFAULT_DATA_FILE

BASE_ENV = {
    "DISCORD_TOKEN": "abc",
    "GUILD_ID": "900",
    "LEAGUE_ROLE_ID": "10",
    "ACTIVE_ROLE_ID": "11",
    "INACTIVE_ROLE_ID": "12",
}


class LoadConfigTests(unittest.TestCase):
    def test_defaults_fill_optional_keys(self):
        config = load_config(environ=BASE_ENV)
        self.assertEqual(config[K.TOKEN], "abc")
        self.assertEqual(config[K.GUILD_ID], 900)
        self.assertEqual(config[K.INACTIVE_HOURS], 26.0)
        self.assertEqual(config[K.ACTIVITY_CHECK_INTERVAL_SECONDS], 1800)
        self.assertEqual(config[K.AUTO_SAVE_INTERVAL_SECONDS], 600)
        self.assertEqual(config[K.RETENTION_DAYS], 30.0)
        self.assertEqual(config[K.DATA_FILE], DEFAULT_DATA_FILE)
        self.assertTrue(config[K.WELCOME_EMBEDS_ENABLED])
        self.assertIsNone(config[K.WELCOME_CHANNEL_ID])

    def test_alternate_env_names(self):
        env = dict(BASE_ENV)
        del env["LEAGUE_ROLE_ID"]
        env["MADDEN_LEAGUE_ROLE_ID"] = "20"
        self.assertEqual(load_config(environ=env)[K.LEAGUE_ROLE_ID], 20)

    def test_values_are_coerced(self):
        env = dict(
            BASE_ENV,
            INACTIVE_HOURS="12.5",
            WELCOME_EMBEDS_ENABLED="off",
            NFL_RSS_URL="https://example.com/rss",
            NFL_NEWS_CHANNEL_ID="555",
        )
        config = load_config(environ=env)
        self.assertEqual(config[K.INACTIVE_HOURS], 12.5)
        self.assertFalse(config[K.WELCOME_EMBEDS_ENABLED])
        self.assertEqual(config[K.NFL_RSS_URL], "https://example.com/rss")
        self.assertEqual(config[K.NFL_NEWS_CHANNEL_ID], 555)

    def test_blank_values_fall_back_to_defaults(self):
        config = load_config(environ=dict(BASE_ENV, INACTIVE_HOURS="  "))
        self.assertEqual(config[K.INACTIVE_HOURS], 26.0)

    def test_missing_roles_are_reported_together(self):
        env = {"GUILD_ID": "900"}
        with self.assertRaises(ConfigError) as ctx:
            load_config(environ=env)
        message = str(ctx.exception)
        for key in (K.LEAGUE_ROLE_ID, K.ACTIVE_ROLE_ID, K.INACTIVE_ROLE_ID):
            self.assertIn(key, message)

    def test_invalid_values_are_rejected(self):
        bad = [
            {"INACTIVE_HOURS": "-1"},
            {"ACTIVITY_CHECK_INTERVAL_SECONDS": "soon"},
            {"WELCOME_EMBEDS_ENABLED": "maybe"},
            {"ACTIVITY_LOG_SAMPLE_RATE": "2"},
            {"MADDEN_RSS_URL": "ftp://example.com"},
            {"GUILD_ID": "abc"},
        ]
        for extra in bad:
            with self.subTest(extra=extra):
                with self.assertRaises(ConfigError):
                    load_config(environ=dict(BASE_ENV, **extra))

    def test_role_ids_must_be_distinct(self):
        with self.assertRaises(ConfigError):
            load_config(environ=dict(BASE_ENV, INACTIVE_ROLE_ID="11"))

    def test_overrides_win_over_environment(self):
        config = load_config(environ=BASE_ENV, overrides={K.INACTIVE_HOURS: 48})
        self.assertEqual(config[K.INACTIVE_HOURS], 48.0)


if __name__ == "__main__":
    unittest.main()
