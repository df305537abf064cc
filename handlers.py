"""
Command handlers for Scaffold bot.

Every resource-creation command runs through `CommandHandlers._run`:
acknowledge, validate options, create, resolve follow-ups, finalize. Any
error raised after the acknowledgment is turned into a terminal reply by
the FailureRecorder, so each invocation gets exactly one initial reply and
one edit.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

import discord
from discord import Interaction

from creator import ResourceCreator
from errors import (
    AlreadyExistsError,
    ProtocolTimeoutError,
    ResourceCreationError,
    ScaffoldError,
    StructuralConstraintError,
    ValidationError,
)
from invocation import (
    AcknowledgedResponse,
    ActionResult,
    CommandRequest,
    InvocationContext,
    InvocationReport,
    acknowledge,
)
from options import (
    ResourceKind,
    validate_category,
    validate_default_channel,
    validate_grant,
    validate_role,
    validate_text_channel,
    validate_thread,
    validate_voice_channel,
)
from resolver import resolve_role_grants, resolve_thread_anchor, resolve_voice_parent

logger = logging.getLogger("scaffold.handlers")

CHANNEL_CREATED = "Your channel was successfully created!"
CATEGORY_CREATED = "Your category was successfully created!"
VOICE_CHANNEL_CREATED = "Your voice channel was successfully created!"
VOICE_CHANNEL_CREATED_IN_CATEGORY = "Your voice channel was successfully created in the same category!"
ROLE_CREATED = "Your role was created successfully!"
THREAD_CREATED_ON_MESSAGE = "Your thread was successfully created on this message!"
THREAD_CREATED_IN_CHANNEL = "Your thread was successfully created in this channel!"

CREATION_FAILED = (
    "Your {resource} could not be created! Please check if the bot has the necessary permissions!"
)
INVALID_OPTIONS = "Your {resource} could not be created! {detail}"
UNEXPECTED_FAILURE = (
    "Something went wrong while creating your {resource}. Please try again later."
)

Operation = Callable[
    [CommandRequest, InvocationContext, ResourceCreator, AcknowledgedResponse],
    Awaitable[InvocationReport],
]


# ============================================================================
# Failure Recorder
# ============================================================================


class FailureRecorder:
    """
    Logs errors from an invocation and turns them into a terminal reply.

    The reply never carries Discord error details; the error kind and
    resource type go to the log instead.
    """

    def record(
        self,
        error: BaseException,
        resource: ResourceKind,
        request: CommandRequest,
    ) -> ActionResult:
        """
        Record an error and build the failure result shown to the requester.

        Args:
            error: The error that ended the invocation.
            resource: The kind of resource the command was creating.
            request: The invocation's request snapshot.

        Returns:
            A failure ActionResult.
        """
        kind = error.kind if isinstance(error, ScaffoldError) else "unexpected"
        extra = {
            "error_kind": kind,
            "resource_type": resource.value,
            "command": request.command_name,
            "guild_id": request.guild_id,
        }
        summary = (
            f"/{request.command_name} failed [{kind}] creating {resource.value} "
            f"in guild {request.guild_id}: {error}"
        )

        if isinstance(error, ValidationError):
            logger.info(summary, extra=extra)
            message = INVALID_OPTIONS.format(resource=resource.value, detail=error)
        elif isinstance(error, (StructuralConstraintError, AlreadyExistsError)):
            logger.info(summary, extra=extra)
            message = str(error)
        elif isinstance(error, ResourceCreationError):
            logger.error(summary, extra=extra)
            message = CREATION_FAILED.format(resource=resource.value)
        elif isinstance(error, ScaffoldError):
            logger.error(summary, extra=extra)
            message = UNEXPECTED_FAILURE.format(resource=resource.value)
        else:
            logger.exception(summary, extra=extra)
            message = UNEXPECTED_FAILURE.format(resource=resource.value)

        return ActionResult.failure(
            message,
            error if isinstance(error, ScaffoldError) else None,
        )


# ============================================================================
# Command Handlers
# ============================================================================


class CommandHandlers:
    """Entry points for the resource-creation slash commands."""

    def __init__(self, recorder: Optional[FailureRecorder] = None):
        self.recorder = recorder or FailureRecorder()

    async def _run(
        self,
        interaction: Interaction,
        request: CommandRequest,
        resource: ResourceKind,
        operation: Operation,
    ) -> Optional[InvocationReport]:
        """
        Drive one invocation from acknowledgment to finalization.

        Returns:
            The finalized report, or None if the invocation could not be
            acknowledged.
        """
        try:
            response = await acknowledge(interaction)
        except ProtocolTimeoutError as e:
            logger.warning(f"/{request.command_name} skipped [{e.kind}]: {e}")
            return None
        except (ScaffoldError, discord.HTTPException) as e:
            logger.error(f"/{request.command_name} could not be acknowledged: {e}")
            return None

        try:
            context = InvocationContext.from_interaction(interaction)
            creator = ResourceCreator(
                context.guild,
                reason=f"/{request.command_name} used by {context.requester}",
            )
            report = await operation(request, context, creator, response)
        except Exception as e:
            report = InvocationReport(self.recorder.record(e, resource, request))

        await response.finalize(report)
        return report

    # ========================================================================
    # Public Commands
    # ========================================================================

    async def create_channel(self, interaction: Interaction, request: CommandRequest):
        return await self._run(interaction, request, ResourceKind.TEXT_CHANNEL, self._text_channel)

    async def create_default_channel(self, interaction: Interaction, request: CommandRequest):
        return await self._run(interaction, request, ResourceKind.TEXT_CHANNEL, self._default_channel)

    async def create_category(self, interaction: Interaction, request: CommandRequest):
        return await self._run(interaction, request, ResourceKind.CATEGORY, self._category)

    async def create_voice_channel(self, interaction: Interaction, request: CommandRequest):
        return await self._run(interaction, request, ResourceKind.VOICE_CHANNEL, self._voice_channel)

    async def create_role(self, interaction: Interaction, request: CommandRequest):
        return await self._run(interaction, request, ResourceKind.ROLE, self._role)

    async def create_and_grant_role(self, interaction: Interaction, request: CommandRequest):
        return await self._run(interaction, request, ResourceKind.ROLE, self._role)

    async def create_thread(self, interaction: Interaction, request: CommandRequest):
        return await self._run(interaction, request, ResourceKind.THREAD, self._thread)

    # ========================================================================
    # Operations
    # ========================================================================

    async def _text_channel(self, request, context, creator, response) -> InvocationReport:
        spec = validate_text_channel(request)
        await creator.create_channel(spec)
        response.mark_created()
        return InvocationReport(ActionResult.success(CHANNEL_CREATED))

    async def _default_channel(self, request, context, creator, response) -> InvocationReport:
        spec = validate_default_channel(request)
        await creator.create_channel(spec)
        response.mark_created()
        return InvocationReport(ActionResult.success(CHANNEL_CREATED))

    async def _category(self, request, context, creator, response) -> InvocationReport:
        spec = validate_category(request)
        await creator.create_category(spec)
        response.mark_created()
        return InvocationReport(ActionResult.success(CATEGORY_CREATED))

    async def _voice_channel(self, request, context, creator, response) -> InvocationReport:
        spec = validate_voice_channel(request)
        parent = resolve_voice_parent(context)
        await creator.create_channel(spec, parent=parent)
        response.mark_created()
        message = VOICE_CHANNEL_CREATED_IN_CATEGORY if parent else VOICE_CHANNEL_CREATED
        return InvocationReport(ActionResult.success(message))

    async def _role(self, request, context, creator, response) -> InvocationReport:
        spec = validate_role(request)
        grant = validate_grant(request)
        role = await creator.create_role(spec)
        response.mark_created()
        follow_ups = await resolve_role_grants(creator, context, role, grant)
        return InvocationReport(ActionResult.success(ROLE_CREATED), follow_ups)

    async def _thread(self, request, context, creator, response) -> InvocationReport:
        spec = validate_thread(request)
        anchor = resolve_thread_anchor(context, spec.anchor_to_message, response.message)
        await creator.create_thread(spec, context.channel, anchor)
        response.mark_created()
        message = THREAD_CREATED_ON_MESSAGE if anchor is not None else THREAD_CREATED_IN_CHANNEL
        return InvocationReport(ActionResult.success(message))
