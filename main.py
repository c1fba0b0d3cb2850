"""
Main entry point for the league bot.

Loads configuration from the environment and starts the bot.
"""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from discord.errors import LoginFailure, PrivilegedIntentsRequired

# Load environment variables from .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path)

# Import bot after .env is loaded so modules can read env vars at import time.
from bot import GridironBot, install_signal_handlers
from core.config import ConfigError, load_config
from core.constants import K

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("gridiron")

# Suppress verbose third-party library logs unless LOG_LEVEL is DEBUG
if LOG_LEVEL.upper() != "DEBUG":
    logging.getLogger("discord").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

if not env_path.exists():
    logger.warning(".env file not found at %s", env_path)


async def main() -> int:
    try:
        config = load_config()
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    token = config.get(K.TOKEN)
    if not token:
        logger.error("Missing bot token. Set DISCORD_TOKEN in .env or environment.")
        return 1

    bot = GridironBot(config)
    install_signal_handlers(bot)
    try:
        await bot.start(token)
    except PrivilegedIntentsRequired:
        logger.error(
            "Privileged intents required. Enable MESSAGE CONTENT and SERVER MEMBERS intents "
            "in the Discord developer portal."
        )
        await bot.close()
        return 1
    except LoginFailure:
        logger.error("Token is invalid. Reset it in the Discord developer portal and update DISCORD_TOKEN.")
        await bot.close()
        return 1
    finally:
        if not bot.is_closed():
            await bot.close()
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass
