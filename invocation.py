"""
Invocation lifecycle for Scaffold bot.

Holds the per-invocation snapshot types, the acknowledgment gate and the
single-use response handle through which every invocation is finalized.

An invocation moves through Unacknowledged -> Acknowledged -> Created ->
Finalized. Finalization is allowed exactly once, from either of the two
middle states.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

import discord
from discord import Interaction

from errors import InteractionStateError, ProtocolTimeoutError, ScaffoldError

logger = logging.getLogger("scaffold.invocation")

ACKNOWLEDGMENT_TEXT = "Fetched all input and working on your request!"

# Discord error code for an interaction whose response window has passed
UNKNOWN_INTERACTION = 10062


class InvocationState(str, Enum):
    """Lifecycle states of a single invocation."""
    UNACKNOWLEDGED = "unacknowledged"
    ACKNOWLEDGED = "acknowledged"
    CREATED = "created"
    FINALIZED = "finalized"


class Outcome(str, Enum):
    """Outcome of one step of an invocation."""
    SUCCESS = "success"
    NOTICE = "notice"
    WARNING = "warning"
    FAILURE = "failure"


# ============================================================================
# Snapshot Types
# ============================================================================


@dataclass(frozen=True)
class CommandRequest:
    """Immutable snapshot of a single slash-command invocation."""
    command_name: str
    options: Mapping[str, Any]
    requester_id: int
    guild_id: Optional[int]
    channel_id: Optional[int]

    @classmethod
    def from_interaction(cls, interaction: Interaction, **options: Any) -> "CommandRequest":
        """
        Snapshot an interaction and the option values discord.py resolved for it.

        Args:
            interaction: The Discord interaction.
            options: Option name -> value, in declaration order.

        Returns:
            The frozen request.
        """
        command = interaction.command
        return cls(
            command_name=command.name if command else "unknown",
            options=MappingProxyType(dict(options)),
            requester_id=interaction.user.id,
            guild_id=interaction.guild_id,
            channel_id=interaction.channel_id,
        )

    def get_string(self, name: str) -> Optional[str]:
        value = self.options.get(name)
        return value if isinstance(value, str) else None

    def get_boolean(self, name: str, default: bool = False) -> bool:
        value = self.options.get(name)
        return value if isinstance(value, bool) else default

    def get_member(self, name: str) -> Optional[Any]:
        return self.options.get(name)


@dataclass(frozen=True)
class ContextFlags:
    """Read-only observations about where a command was invoked."""
    channel_is_thread: bool
    channel_supports_threads: bool
    parent_category: Optional[discord.CategoryChannel]

    @classmethod
    def from_channel(cls, channel: Any) -> "ContextFlags":
        is_thread = isinstance(channel, discord.Thread)
        return cls(
            channel_is_thread=is_thread,
            channel_supports_threads=isinstance(channel, discord.TextChannel),
            parent_category=getattr(channel, "category", None),
        )


@dataclass(frozen=True)
class InvocationContext:
    """
    Explicit handles a handler needs, read once from the interaction.

    Handlers never reach back into the interaction for guild, channel or
    member objects; everything they use is in here.
    """
    guild: discord.Guild
    channel: Any
    requester: discord.Member
    flags: ContextFlags

    @classmethod
    def from_interaction(cls, interaction: Interaction) -> "InvocationContext":
        return cls(
            guild=interaction.guild,
            channel=interaction.channel,
            requester=interaction.user,
            flags=ContextFlags.from_channel(interaction.channel),
        )

    def is_requester(self, member: Any) -> bool:
        return member is not None and member.id == self.requester.id


# ============================================================================
# Results
# ============================================================================


@dataclass
class ActionResult:
    """Result of one step (creation or follow-up) of an invocation."""
    outcome: Outcome
    message: str
    error: Optional[ScaffoldError] = None

    @classmethod
    def success(cls, message: str) -> "ActionResult":
        return cls(Outcome.SUCCESS, message)

    @classmethod
    def notice(cls, message: str) -> "ActionResult":
        return cls(Outcome.NOTICE, message)

    @classmethod
    def warning(cls, message: str, error: Optional[ScaffoldError] = None) -> "ActionResult":
        return cls(Outcome.WARNING, message, error)

    @classmethod
    def failure(cls, message: str, error: Optional[ScaffoldError] = None) -> "ActionResult":
        return cls(Outcome.FAILURE, message, error)


@dataclass
class InvocationReport:
    """The primary result of an invocation plus any follow-up results."""
    primary: ActionResult
    follow_ups: list[ActionResult] = field(default_factory=list)

    @property
    def outcome(self) -> Outcome:
        if self.primary.outcome is Outcome.FAILURE:
            return Outcome.FAILURE
        if any(r.outcome is Outcome.WARNING for r in self.follow_ups):
            return Outcome.WARNING
        return Outcome.SUCCESS

    def render(self) -> str:
        """Build the terminal message shown to the requester."""
        lines = [self.primary.message]
        for result in self.follow_ups:
            if result.outcome is Outcome.WARNING:
                lines.append(f"⚠️ {result.message}")
            elif result.outcome is Outcome.NOTICE:
                lines.append(f"ℹ️ {result.message}")
            elif result.outcome is Outcome.SUCCESS:
                lines.append(f"✅ {result.message}")
        return "\n".join(lines)


# ============================================================================
# Acknowledgment Gate / Result Finalizer
# ============================================================================


class AcknowledgedResponse:
    """
    Handle to the initial reply of an invocation.

    Only `acknowledge()` constructs one, and `finalize()` may be called on it
    exactly once.
    """

    def __init__(self, interaction: Interaction, message: Optional[discord.InteractionMessage]):
        self._interaction = interaction
        self.message = message
        self._state = InvocationState.ACKNOWLEDGED

    @property
    def state(self) -> InvocationState:
        return self._state

    @property
    def is_finalized(self) -> bool:
        return self._state is InvocationState.FINALIZED

    def mark_created(self) -> None:
        """Record that the resource creation call succeeded."""
        if self._state is not InvocationState.ACKNOWLEDGED:
            raise InteractionStateError(
                f"Cannot mark invocation as created from state '{self._state.value}'"
            )
        self._state = InvocationState.CREATED

    async def finalize(self, report: InvocationReport) -> None:
        """
        Edit the initial reply with the terminal outcome.

        Args:
            report: The outcome to render.

        Raises:
            InteractionStateError: If the invocation was already finalized.
        """
        if self._state is InvocationState.FINALIZED:
            raise InteractionStateError("Invocation was already finalized")
        self._state = InvocationState.FINALIZED

        content = report.render()
        try:
            await self._interaction.edit_original_response(content=content)
            logger.debug(f"Finalized invocation ({report.outcome.value}): {content!r}")
        except discord.HTTPException as e:
            # The reply is gone or the token expired; nothing else can be sent.
            logger.error(f"Failed to finalize invocation: {e}")


async def acknowledge(interaction: Interaction) -> AcknowledgedResponse:
    """
    Send the initial "working on it" reply for an invocation.

    Args:
        interaction: The Discord interaction.

    Returns:
        The handle used to finalize the invocation.

    Raises:
        InteractionStateError: If the interaction was already acknowledged.
        ProtocolTimeoutError: If Discord reports the response window elapsed.
    """
    if interaction.response.is_done():
        raise InteractionStateError("Interaction was already acknowledged")

    try:
        await interaction.response.send_message(ACKNOWLEDGMENT_TEXT)
    except discord.InteractionResponded as e:
        raise InteractionStateError("Interaction was already acknowledged") from e
    except discord.NotFound as e:
        if e.code == UNKNOWN_INTERACTION:
            raise ProtocolTimeoutError(
                "Acknowledgment window elapsed before the initial reply was sent"
            ) from e
        raise

    message = None
    try:
        message = await interaction.original_response()
    except discord.HTTPException as e:
        # Edits go through the interaction token, so finalizing still works.
        logger.warning(f"Could not fetch the initial reply message: {e}")

    return AcknowledgedResponse(interaction, message)
