from __future__ import annotations

import unittest
from types import SimpleNamespace

import discord

from core.constants import K
from services.welcome import WELCOME_REACTION, WelcomeService
from tests.fakes import FakeGuild, FakeMember

AUTO_ROLE = 30
WELCOME_CHANNEL = 40


def _http_error(cls=discord.HTTPException, status=500):
    return cls(SimpleNamespace(status=status, reason="error"), "failed")


class _Message:
    def __init__(self) -> None:
        self.reactions = []

    async def add_reaction(self, emoji):
        self.reactions.append(emoji)


class _Channel:
    def __init__(self) -> None:
        self.sent = []
        self.message = _Message()

    async def send(self, content=None, embed=None, allowed_mentions=None):
        self.sent.append((content, embed))
        return self.message


class WelcomeServiceTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.guild = FakeGuild(role_ids=(AUTO_ROLE,))
        self.channel = _Channel()
        self.guild.channels[WELCOME_CHANNEL] = self.channel
        self.member = FakeMember(1, name="rookie")
        self.guild.add(self.member)
        self.config = {
            K.AUTO_ASSIGN_ROLE_ID: AUTO_ROLE,
            K.WELCOME_CHANNEL_ID: WELCOME_CHANNEL,
            K.RULES_CHANNEL_ID: 41,
            K.TEAMS_CHANNEL_ID: None,
            K.LEAGUE_CHANNEL_ID: None,
            K.WELCOME_EMBEDS_ENABLED: True,
        }
        self.service = WelcomeService(SimpleNamespace(), self.config)

    async def test_join_assigns_auto_role(self):
        self.assertTrue(await self.service.handle_member_join(self.member))
        self.assertEqual(self.member.added, [AUTO_ROLE])

    async def test_join_without_auto_role_configured(self):
        self.config[K.AUTO_ASSIGN_ROLE_ID] = None
        self.assertFalse(await self.service.handle_member_join(self.member))
        self.assertEqual(self.member.added, [])

    async def test_join_with_unknown_role_logs_warning(self):
        self.config[K.AUTO_ASSIGN_ROLE_ID] = 99
        with self.assertLogs("gridiron.welcome", level="WARNING"):
            self.assertFalse(await self.service.handle_member_join(self.member))

    async def test_welcome_message_posts_reacts_and_dms(self):
        self.assertTrue(await self.service.send_welcome_message(self.member))

        content, embed = self.channel.sent[0]
        self.assertIn(self.member.mention, content)
        self.assertIn("rookie", embed.description)
        self.assertIn("<#41>", embed.fields[0].value)
        self.assertIn("the teams channel", embed.fields[0].value)
        self.assertEqual(self.channel.message.reactions, [WELCOME_REACTION])
        self.assertEqual(len(self.member.sent), 1)

    async def test_missing_welcome_channel(self):
        self.config[K.WELCOME_CHANNEL_ID] = 12345
        with self.assertLogs("gridiron.welcome", level="ERROR"):
            self.assertFalse(await self.service.send_welcome_message(self.member))
        self.assertEqual(self.member.sent, [])

    async def test_closed_dms_are_tolerated(self):
        async def refuse(content=None, embed=None):
            raise _http_error(discord.Forbidden, 403)

        self.member.send = refuse
        with self.assertLogs("gridiron.welcome", level="WARNING"):
            self.assertTrue(await self.service.send_welcome_message(self.member))

    def test_embeds_enabled_flag(self):
        self.assertTrue(self.service.embeds_enabled)
        self.config[K.WELCOME_EMBEDS_ENABLED] = False
        self.assertFalse(self.service.embeds_enabled)


if __name__ == "__main__":
    unittest.main()
