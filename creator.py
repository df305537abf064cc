"""
Resource Creator for Scaffold bot.

Wraps the Discord API calls that create categories, channels, roles and
threads, plus the role-add call used for grants. Each call either returns
the object Discord created or raises a ScaffoldError; discord.py exceptions
never leave this module.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import discord
from discord import (
    CategoryChannel,
    Forbidden,
    Guild,
    HTTPException,
    Role,
    TextChannel,
    Thread,
    VoiceChannel,
)

from errors import GrantFailure, ResourceCreationError
from options import CategorySpec, ChannelSpec, ResourceKind, RoleSpec, ThreadSpec

logger = logging.getLogger("scaffold.creator")

# Permission the bot needs for each resource kind, checked against the
# channel or category the resource goes into when there is one
REQUIRED_PERMISSIONS: dict[ResourceKind, str] = {
    ResourceKind.CATEGORY: "manage_channels",
    ResourceKind.TEXT_CHANNEL: "manage_channels",
    ResourceKind.VOICE_CHANNEL: "manage_channels",
    ResourceKind.ROLE: "manage_roles",
    ResourceKind.THREAD: "create_public_threads",
}


class ResourceCreator:
    """
    Creates Discord resources for a single invocation.

    One instance is built per invocation from the invoking guild and holds
    no state beyond it.
    """

    def __init__(self, guild: Guild, reason: Optional[str] = None):
        """
        Initialize the creator.

        Args:
            guild: The Discord guild to create resources in.
            reason: Audit log reason attached to every call.
        """
        self.guild = guild
        self.reason = reason

    @property
    def bot_member(self) -> Optional[discord.Member]:
        """Get the bot's member object in the guild."""
        return self.guild.me

    def _log_action(self, message: str, success: bool = True) -> None:
        """Log an action for tracking."""
        logger.info(f"[{'SUCCESS' if success else 'FAILED'}] {message}")

    def _check_permissions(
        self,
        *required: str,
        scope: Optional[discord.abc.GuildChannel] = None,
    ) -> tuple[bool, str]:
        """
        Check if the bot has the required permissions.

        Args:
            required: Permission names to check.
            scope: Channel or category whose overwrites apply, or None to
                check guild-level permissions.

        Returns:
            Tuple of (has_permissions, error_message).
        """
        if not self.bot_member:
            return False, "Bot member not found in guild"

        if scope is not None:
            permissions = scope.permissions_for(self.bot_member)
        else:
            permissions = self.bot_member.guild_permissions

        missing = [perm for perm in required if not getattr(permissions, perm, False)]
        if missing:
            return False, f"Missing permissions: {', '.join(missing)}"

        return True, ""

    def _require(
        self,
        kind: ResourceKind,
        description: str,
        scope: Optional[discord.abc.GuildChannel] = None,
    ) -> None:
        has_perms, error = self._check_permissions(REQUIRED_PERMISSIONS[kind], scope=scope)
        if not has_perms:
            self._log_action(f"{description}: {error}", False)
            raise ResourceCreationError(kind.value, message=error)

    def _wrap(self, kind: ResourceKind, description: str, error: HTTPException) -> ResourceCreationError:
        if isinstance(error, Forbidden):
            detail = f"Bot lacks permission to create the {kind.value}"
        else:
            detail = f"Discord API error: {error.text}"
        self._log_action(f"{description}: {detail}", False)
        return ResourceCreationError(kind.value, error, detail)

    # ========================================================================
    # Creation Calls
    # ========================================================================

    async def create_category(self, spec: CategorySpec) -> CategoryChannel:
        """
        Create a category. Discord places it at the top of the channel list.

        Raises:
            ResourceCreationError: If Discord rejects the call.
        """
        description = f"Creating category '{spec.name}'"
        self._require(spec.kind, description)

        try:
            category = await self.guild.create_category(name=spec.name, reason=self.reason)
        except HTTPException as e:
            raise self._wrap(spec.kind, description, e) from e

        self._log_action(f"Created category '{category.name}' (ID: {category.id})")
        return category

    async def create_channel(
        self,
        spec: ChannelSpec,
        parent: Optional[CategoryChannel] = None,
    ) -> TextChannel | VoiceChannel:
        """
        Create a text or voice channel, loose or nested under a category.

        Args:
            spec: Validated channel parameters.
            parent: Category to create the channel in, or None for top level.

        Returns:
            The created channel.

        Raises:
            ResourceCreationError: If Discord rejects the call.
        """
        location = f" in '{parent.name}'" if parent else ""
        description = f"Creating {spec.kind.value} '{spec.name}'{location}"
        self._require(spec.kind, description, scope=parent)

        try:
            if spec.kind is ResourceKind.VOICE_CHANNEL:
                channel = await self.guild.create_voice_channel(
                    name=spec.name,
                    category=parent,
                    reason=self.reason,
                )
            else:
                channel = await self.guild.create_text_channel(
                    name=spec.name,
                    category=parent,
                    reason=self.reason,
                )
        except HTTPException as e:
            raise self._wrap(spec.kind, description, e) from e

        self._log_action(f"Created {spec.kind.value} '{channel.name}'{location} (ID: {channel.id})")
        return channel

    async def create_role(self, spec: RoleSpec) -> Role:
        """
        Create a role, colored if a color was chosen.

        Raises:
            ResourceCreationError: If Discord rejects the call.
        """
        description = f"Creating role '{spec.name}'"
        self._require(spec.kind, description)

        kwargs: dict[str, Any] = {"name": spec.name, "reason": self.reason}
        if spec.color is not None:
            kwargs["colour"] = discord.Colour(spec.color)

        try:
            role = await self.guild.create_role(**kwargs)
        except HTTPException as e:
            raise self._wrap(spec.kind, description, e) from e

        self._log_action(f"Created role '{role.name}' (ID: {role.id})")
        return role

    async def create_thread(
        self,
        spec: ThreadSpec,
        channel: TextChannel,
        anchor: Optional[discord.Message] = None,
    ) -> Thread:
        """
        Create a thread on a message, or directly in a channel.

        Args:
            spec: Validated thread parameters.
            channel: Channel the thread belongs to.
            anchor: Message to start the thread from, or None for a thread
                without a parent message.

        Returns:
            The created thread.

        Raises:
            ResourceCreationError: If Discord rejects the call.
        """
        where = "on message" if anchor is not None else f"in #{channel.name}"
        description = f"Creating thread '{spec.name}' {where}"
        self._require(spec.kind, description, scope=channel)

        try:
            if anchor is not None:
                thread = await anchor.create_thread(name=spec.name, reason=self.reason)
            else:
                thread = await channel.create_thread(
                    name=spec.name,
                    type=discord.ChannelType.public_thread,
                    reason=self.reason,
                )
        except HTTPException as e:
            raise self._wrap(spec.kind, description, e) from e

        self._log_action(f"Created thread '{thread.name}' {where} (ID: {thread.id})")
        return thread

    async def add_role(self, member: discord.Member, role: Role) -> None:
        """
        Add a role to a member.

        Raises:
            GrantFailure: If Discord rejects the call.
        """
        try:
            await member.add_roles(role, reason=self.reason)
        except HTTPException as e:
            self._log_action(f"Assigning role '{role.name}' to '{member.display_name}': {e}", False)
            raise GrantFailure(member, e) from e

        self._log_action(f"Assigned role '{role.name}' to '{member.display_name}'")
