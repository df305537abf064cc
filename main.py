"""
Scaffold Discord Bot - Main Entry Point.

A Discord bot that creates channels, categories, voice channels, roles and
threads on request through slash commands.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

import discord
import yaml
from discord import app_commands, Interaction
from discord.ext import commands

from handlers import CommandHandlers
from invocation import CommandRequest
from options import PRESET_ROLE_COLORS

# ============================================================================
# Configuration Loading
# ============================================================================


def load_config(config_path: str = "config.yml") -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the configuration file.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        yaml.YAMLError: If config file is invalid.
        ValueError: If the Discord token is missing.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\n"
            "Please create a config.yml file based on config.yml.example"
        )

    with open(path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    # Validate required fields
    if not config.get("discord", {}).get("token"):
        raise ValueError("Discord token not found in config.yml")

    return config


# ============================================================================
# Logging Setup
# ============================================================================


def setup_logging(config: dict[str, Any]) -> logging.Logger:
    """
    Set up logging based on configuration.

    Args:
        config: Configuration dictionary.

    Returns:
        Configured logger instance.
    """
    log_config = config.get("logging", {})
    log_level = getattr(logging, log_config.get("level", "INFO").upper())
    log_file = log_config.get("file", "logs/scaffold.log")
    log_format = log_config.get(
        "format",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    max_size = log_config.get("max_size_mb", 10) * 1024 * 1024
    backup_count = log_config.get("backup_count", 5)

    # Create logs directory if needed
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("scaffold")
    logger.setLevel(log_level)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(console_handler)

    # File handler with rotation
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(file_handler)

    return logger


# ============================================================================
# Bot
# ============================================================================


class ScaffoldBot(commands.Bot):
    """The Scaffold Discord bot for creating server resources on request."""

    def __init__(self, config: dict[str, Any]):
        """
        Initialize the Scaffold bot.

        Args:
            config: Configuration dictionary loaded from config.yml.
        """
        intents = discord.Intents.default()
        intents.guilds = True

        # Slash commands only; mentions are the unused text-command prefix
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
        )

        self.config = config
        self.logger = logging.getLogger("scaffold.bot")
        self.handlers = CommandHandlers()

    @property
    def sync_guild(self) -> Optional[discord.Object]:
        """Guild to sync commands to during development, if configured."""
        guild_id = self.config.get("discord", {}).get("sync_guild_id")
        return discord.Object(id=int(guild_id)) if guild_id else None

    async def setup_hook(self) -> None:
        """Set up the bot before it starts."""
        self.logger.info("Setting up Scaffold bot...")

        # Sync slash commands
        try:
            guild = self.sync_guild
            if guild:
                self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            scope = f"guild {guild.id}" if guild else "all guilds"
            self.logger.info(f"Synced {len(synced)} slash commands to {scope}")
        except discord.HTTPException as e:
            self.logger.error(f"Failed to sync commands: {e}")

    async def on_ready(self) -> None:
        """Handle bot ready event."""
        self.logger.info(f"Logged in as {self.user} (ID: {self.user.id})")
        self.logger.info(f"Connected to {len(self.guilds)} guilds")

        await self.change_presence(
            activity=discord.Activity(
                type=discord.ActivityType.watching,
                name="for /create commands",
            )
        )


# ============================================================================
# Slash Commands
# ============================================================================


ROLE_COLOR_CHOICES = [
    app_commands.Choice(name=name, value=value)
    for name, value in PRESET_ROLE_COLORS.items()
]


def setup_commands(bot: ScaffoldBot) -> None:
    """
    Set up slash commands for the bot.

    Every command is guild-only and hidden from members without the
    matching permission by default.

    Args:
        bot: The ScaffoldBot instance.
    """

    @bot.tree.command(
        name="createchannel",
        description="Creates a new text channel",
    )
    @app_commands.describe(channelname="Choose the name to give to the channel")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_channels=True)
    async def createchannel_command(
        interaction: Interaction,
        channelname: app_commands.Range[str, 1, 25],
    ) -> None:
        """Create a loose text channel."""
        request = CommandRequest.from_interaction(interaction, channelname=channelname)
        await bot.handlers.create_channel(interaction, request)

    @bot.tree.command(
        name="createnewchannel",
        description='Creates a text channel called "new"',
    )
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_channels=True)
    async def createnewchannel_command(interaction: Interaction) -> None:
        """Create a text channel with the fixed name "new"."""
        request = CommandRequest.from_interaction(interaction)
        await bot.handlers.create_default_channel(interaction, request)

    @bot.tree.command(
        name="createcategory",
        description="Creates a new category",
    )
    @app_commands.describe(categoryname="Choose the name to give to the category")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_channels=True)
    async def createcategory_command(
        interaction: Interaction,
        categoryname: app_commands.Range[str, 1, 25],
    ) -> None:
        """Create a category at the top of the channel list."""
        request = CommandRequest.from_interaction(interaction, categoryname=categoryname)
        await bot.handlers.create_category(interaction, request)

    @bot.tree.command(
        name="createvoicechannel",
        description="Creates a new voice channel",
    )
    @app_commands.describe(voicechannelname="Choose the name to give to the voice channel")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_channels=True)
    async def createvoicechannel_command(
        interaction: Interaction,
        voicechannelname: app_commands.Range[str, 1, 25],
    ) -> None:
        """Create a voice channel next to the channel the command was used in."""
        request = CommandRequest.from_interaction(
            interaction, voicechannelname=voicechannelname
        )
        await bot.handlers.create_voice_channel(interaction, request)

    @bot.tree.command(
        name="createrole",
        description="Creates a new role",
    )
    @app_commands.describe(
        rolename="Choose the name to give to the role",
        rolecolor="Select a color for your role (using Discord defaults)",
        customrolecolor='Select a custom color for your role (hex code only, overrides "rolecolor")',
    )
    @app_commands.choices(rolecolor=ROLE_COLOR_CHOICES)
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_roles=True)
    async def createrole_command(
        interaction: Interaction,
        rolename: app_commands.Range[str, 1, 100],
        rolecolor: Optional[app_commands.Choice[str]] = None,
        customrolecolor: Optional[app_commands.Range[str, 8, 8]] = None,
    ) -> None:
        """Create a role."""
        request = CommandRequest.from_interaction(
            interaction,
            rolename=rolename,
            rolecolor=rolecolor.value if rolecolor else None,
            customrolecolor=customrolecolor,
        )
        await bot.handlers.create_role(interaction, request)

    @bot.tree.command(
        name="createandgrantrole",
        description="Creates a new role and then grants it to a member",
    )
    @app_commands.describe(
        rolename="Choose the name to give to the role",
        membertoreceiverole="The user you want to give the newly created role to",
        rolecolor="Select a color for your role (using Discord defaults)",
        customrolecolor='Select a custom color for your role (hex code only, overrides "rolecolor")',
        grantroletocommanduser="Choose if you should be granted the role after creation",
    )
    @app_commands.choices(rolecolor=ROLE_COLOR_CHOICES)
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_roles=True)
    async def createandgrantrole_command(
        interaction: Interaction,
        rolename: app_commands.Range[str, 1, 100],
        membertoreceiverole: discord.Member,
        rolecolor: Optional[app_commands.Choice[str]] = None,
        customrolecolor: Optional[app_commands.Range[str, 8, 8]] = None,
        grantroletocommanduser: Optional[bool] = None,
    ) -> None:
        """Create a role and hand it out."""
        request = CommandRequest.from_interaction(
            interaction,
            rolename=rolename,
            rolecolor=rolecolor.value if rolecolor else None,
            customrolecolor=customrolecolor,
            membertoreceiverole=membertoreceiverole,
            grantroletocommanduser=grantroletocommanduser,
        )
        await bot.handlers.create_and_grant_role(interaction, request)

    @bot.tree.command(
        name="createthread",
        description="Creates a new thread",
    )
    @app_commands.describe(
        threadname="Choose the name to give to the thread",
        messageparent="Choose if this thread should use the initial message as parent",
    )
    @app_commands.guild_only()
    @app_commands.default_permissions(create_public_threads=True)
    async def createthread_command(
        interaction: Interaction,
        threadname: app_commands.Range[str, 1, 100],
        messageparent: bool,
    ) -> None:
        """Create a thread on the reply message or directly in the channel."""
        request = CommandRequest.from_interaction(
            interaction, threadname=threadname, messageparent=messageparent
        )
        await bot.handlers.create_thread(interaction, request)

    # Error handler
    @bot.tree.error
    async def on_app_command_error(
        interaction: Interaction,
        error: app_commands.AppCommandError,
    ) -> None:
        """Handle errors raised before a command handler takes over."""
        if isinstance(error, app_commands.NoPrivateMessage):
            message = "❌ This command can only be used in a server."
        elif isinstance(error, app_commands.MissingPermissions):
            message = "❌ You don't have permission to use this command."
        elif isinstance(error, app_commands.CheckFailure):
            message = "❌ You can't use this command here."
        else:
            bot.logger.error(f"Command error in /{interaction.command.name if interaction.command else '?'}: {error}")
            message = f"❌ An error occurred: {str(error)}"

        if not interaction.response.is_done():
            await interaction.response.send_message(message, ephemeral=True)


# ============================================================================
# Main Entry Point
# ============================================================================


async def main() -> None:
    """Main entry point for the Scaffold bot."""
    # Load configuration
    try:
        config = load_config()
    except FileNotFoundError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"Error parsing config.yml: {e}")
        sys.exit(1)
    except ValueError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    # Setup logging
    logger = setup_logging(config)
    logger.info("Starting Scaffold bot...")

    # Create and run bot
    bot = ScaffoldBot(config)
    setup_commands(bot)

    token = config["discord"]["token"]

    try:
        async with bot:
            await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid Discord token. Please check your config.yml")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
