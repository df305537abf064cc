"""
Post-creation decisions for Scaffold bot.

Each resource kind with a conditional step has its decision tree here:
role grants after a role is created, where a thread may be created and
on what, and which category a new voice channel lands in.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import discord

from creator import ResourceCreator
from errors import AlreadyExistsError, GrantFailure, StructuralConstraintError
from invocation import ActionResult, InvocationContext
from options import GrantSpec, ResourceKind

logger = logging.getLogger("scaffold.resolver")

SELF_GRANT_FAILED = (
    "Failed to give you the new role. Do you have any roles with higher priority than me?"
)
TARGET_GRANT_FAILED = (
    "Failed to give the new role to the member. Do they have any roles with higher priority than me?"
)
ALREADY_GRANTED = "You were already granted the role!"
THREAD_IN_THREAD = (
    "It's impossible to create a thread within another thread. Try again inside a text channel!"
)
THREAD_UNSUPPORTED_CHANNEL = (
    "Threads can only be created inside text channels. Try again inside a text channel!"
)
MESSAGE_HAS_THREAD = (
    "It was not possible to create a thread in this message because it already has one."
)


# ============================================================================
# Role Grants
# ============================================================================


async def _grant(
    creator: ResourceCreator,
    member: discord.Member,
    role: discord.Role,
    success_message: str,
    failure_message: str,
) -> ActionResult:
    try:
        await creator.add_role(member, role)
    except GrantFailure as e:
        logger.warning(
            f"Grant of role '{role.name}' to {member} failed: {e}",
            extra={
                "error_kind": e.kind,
                "resource_type": ResourceKind.ROLE.value,
                "member_id": member.id,
            },
        )
        return ActionResult.warning(failure_message, e)
    return ActionResult.success(success_message)


async def resolve_role_grants(
    creator: ResourceCreator,
    context: InvocationContext,
    role: discord.Role,
    grant: GrantSpec,
) -> list[ActionResult]:
    """
    Hand a freshly created role to the requester and/or a named member.

    Grant failures come back as warnings; the role itself is never rolled
    back. When the named member is the requester and a self-grant was
    requested, no second add call is made.

    Args:
        creator: Creator bound to the invocation's guild.
        context: The invocation context.
        role: The role that was just created.
        grant: Who should receive it.

    Returns:
        One result per grant decision, in evaluation order.
    """
    results: list[ActionResult] = []
    requester = context.requester

    if grant.grant_to_requester:
        results.append(
            await _grant(
                creator,
                requester,
                role,
                "You were granted the new role.",
                SELF_GRANT_FAILED,
            )
        )

    target = grant.target_member
    if target is not None:
        if context.is_requester(target) and grant.grant_to_requester:
            results.append(ActionResult.notice(ALREADY_GRANTED))
        else:
            results.append(
                await _grant(
                    creator,
                    target,
                    role,
                    f"{target.mention} received the new role.",
                    TARGET_GRANT_FAILED,
                )
            )

    return results


# ============================================================================
# Threads
# ============================================================================


def check_thread_location(context: InvocationContext) -> None:
    """
    Make sure a thread can be created in the invoking channel at all.

    Raises:
        StructuralConstraintError: If the channel is a thread itself or
            cannot hold threads.
    """
    if context.flags.channel_is_thread:
        raise StructuralConstraintError(THREAD_IN_THREAD)
    if not context.flags.channel_supports_threads:
        raise StructuralConstraintError(THREAD_UNSUPPORTED_CHANNEL)


def message_has_thread(message: Any) -> bool:
    """Whether a message already has a thread attached."""
    if message is None:
        return False
    return bool(message.flags.has_thread) or message.thread is not None


def resolve_thread_anchor(
    context: InvocationContext,
    anchor_to_message: bool,
    message: Optional[discord.Message],
) -> Optional[discord.Message]:
    """
    Decide what a new thread hangs off.

    Args:
        context: The invocation context.
        anchor_to_message: Whether the requester asked for the command's
            reply message to be the thread parent.
        message: The command's reply message.

    Returns:
        The message to start the thread from, or None for a thread directly
        in the channel.

    Raises:
        StructuralConstraintError: If no thread can be created here.
        AlreadyExistsError: If the anchor message already has a thread.
    """
    check_thread_location(context)

    if not anchor_to_message:
        return None

    if message is None:
        raise StructuralConstraintError(
            "The reply message could not be found, so it cannot parent a thread."
        )
    if message_has_thread(message):
        raise AlreadyExistsError(MESSAGE_HAS_THREAD)
    return message


# ============================================================================
# Voice Channels
# ============================================================================


def resolve_voice_parent(context: InvocationContext) -> Optional[discord.CategoryChannel]:
    """
    Pick the category for a new voice channel.

    A channel created from a stray channel stays at top level; one created
    from inside a category lands in that same category.
    """
    parent = context.flags.parent_category
    if parent is None:
        logger.debug("Invoking channel is stray; voice channel goes to top level")
    else:
        logger.debug(f"Nesting voice channel under category '{parent.name}'")
    return parent
