"""Shared fakes for discord.py objects."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from invocation import CommandRequest


def make_http_error(
    cls: type[discord.HTTPException] = discord.Forbidden,
    status: int = 403,
    code: int = 50013,
    text: str = "Missing Permissions",
) -> discord.HTTPException:
    """Build a discord.py HTTP error the way the library raises it."""
    response = MagicMock(status=status, reason=text)
    return cls(response, {"code": code, "message": text})


def make_member(member_id: int, name: str) -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.id = member_id
    member.display_name = name
    member.mention = f"<@{member_id}>"
    member.add_roles = AsyncMock()
    return member


def make_category(name: str = "General", category_id: int = 500) -> MagicMock:
    category = MagicMock(spec=discord.CategoryChannel)
    category.id = category_id
    category.name = name
    category.permissions_for = MagicMock(return_value=discord.Permissions.all())
    return category


def make_text_channel(category=None, channel_id: int = 300) -> MagicMock:
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = channel_id
    channel.name = "lobby"
    channel.category = category
    channel.permissions_for = MagicMock(return_value=discord.Permissions.all())
    thread = MagicMock(spec=discord.Thread)
    thread.id = 700
    thread.name = "created-thread"
    channel.create_thread = AsyncMock(return_value=thread)
    return channel


def make_thread_channel(category=None) -> MagicMock:
    channel = MagicMock(spec=discord.Thread)
    channel.id = 301
    channel.name = "existing-thread"
    channel.category = category
    channel.create_thread = AsyncMock()
    return channel


def make_message(has_thread: bool = False) -> MagicMock:
    message = MagicMock()
    message.id = 900
    message.flags.has_thread = has_thread
    message.thread = MagicMock() if has_thread else None
    thread = MagicMock(spec=discord.Thread)
    thread.id = 701
    thread.name = "anchored-thread"
    message.create_thread = AsyncMock(return_value=thread)
    return message


def _created(name: str, object_id: int) -> MagicMock:
    obj = MagicMock()
    obj.id = object_id
    obj.name = name
    return obj


@pytest.fixture
def requester():
    return make_member(1001, "requester")


@pytest.fixture
def other_member():
    return make_member(1002, "other")


@pytest.fixture
def guild():
    guild = MagicMock(spec=discord.Guild)
    guild.id = 42
    guild.me = MagicMock()
    guild.me.guild_permissions = discord.Permissions.all()
    guild.create_category = AsyncMock(side_effect=lambda name, **kw: _created(name, 501))
    guild.create_text_channel = AsyncMock(side_effect=lambda name, **kw: _created(name, 601))
    guild.create_voice_channel = AsyncMock(side_effect=lambda name, **kw: _created(name, 602))
    guild.create_role = AsyncMock(side_effect=lambda name, **kw: _created(name, 801))
    return guild


@pytest.fixture
def make_interaction(guild, requester):
    """Factory for interactions invoked in a given channel."""

    def _make(command_name: str, channel=None, message=None):
        interaction = MagicMock()
        interaction.command.name = command_name
        interaction.guild = guild
        interaction.guild_id = guild.id
        interaction.channel = channel if channel is not None else make_text_channel()
        interaction.channel_id = interaction.channel.id
        interaction.user = requester
        interaction.response.is_done = MagicMock(return_value=False)
        interaction.response.send_message = AsyncMock()
        interaction.original_response = AsyncMock(
            return_value=message if message is not None else make_message()
        )
        interaction.edit_original_response = AsyncMock()
        return interaction

    return _make


@pytest.fixture
def make_request():
    """Factory for CommandRequest snapshots built from an interaction."""

    def _make(interaction, **options):
        return CommandRequest.from_interaction(interaction, **options)

    return _make


def final_content(interaction) -> str:
    """The content of the single terminal edit made on an interaction."""
    interaction.edit_original_response.assert_awaited_once()
    return interaction.edit_original_response.await_args.kwargs["content"]


def make_role(name: str = "Scout", role_id: int = 801) -> MagicMock:
    role = MagicMock(spec=discord.Role)
    role.id = role_id
    role.name = name
    return role
