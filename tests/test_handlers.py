"""End-to-end tests for the command handlers."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, patch

import discord
import pytest

from conftest import (
    final_content,
    make_category,
    make_http_error,
    make_message,
    make_text_channel,
    make_thread_channel,
)
from errors import ResourceCreationError, ValidationError
from handlers import (
    CATEGORY_CREATED,
    CHANNEL_CREATED,
    ROLE_CREATED,
    THREAD_CREATED_IN_CHANNEL,
    THREAD_CREATED_ON_MESSAGE,
    VOICE_CHANNEL_CREATED,
    VOICE_CHANNEL_CREATED_IN_CATEGORY,
    CommandHandlers,
    FailureRecorder,
)
from invocation import ACKNOWLEDGMENT_TEXT, Outcome
from options import ResourceKind
from resolver import ALREADY_GRANTED, MESSAGE_HAS_THREAD, SELF_GRANT_FAILED, THREAD_IN_THREAD


@pytest.fixture
def handlers():
    return CommandHandlers()


def assert_single_reply(interaction) -> None:
    interaction.response.send_message.assert_awaited_once_with(ACKNOWLEDGMENT_TEXT)
    interaction.edit_original_response.assert_awaited_once()


class TestChannelCommands:
    """Tests for /createchannel, /createnewchannel and /createcategory."""

    @pytest.mark.asyncio
    async def test_create_channel(self, handlers, guild, make_interaction, make_request):
        interaction = make_interaction("createchannel")

        report = await handlers.create_channel(
            interaction, make_request(interaction, channelname="general")
        )

        assert report.outcome is Outcome.SUCCESS
        assert final_content(interaction) == CHANNEL_CREATED
        guild.create_text_channel.assert_awaited_once()
        assert guild.create_text_channel.await_args.kwargs["category"] is None
        assert_single_reply(interaction)

    @pytest.mark.asyncio
    async def test_create_new_channel_uses_fixed_name(self, handlers, guild, make_interaction, make_request):
        interaction = make_interaction("createnewchannel")

        await handlers.create_default_channel(interaction, make_request(interaction))

        assert guild.create_text_channel.await_args.kwargs["name"] == "new"
        assert final_content(interaction) == CHANNEL_CREATED

    @pytest.mark.asyncio
    async def test_create_category(self, handlers, guild, make_interaction, make_request):
        interaction = make_interaction("createcategory")

        await handlers.create_category(
            interaction, make_request(interaction, categoryname="Games")
        )

        guild.create_category.assert_awaited_once()
        assert final_content(interaction) == CATEGORY_CREATED

    @pytest.mark.asyncio
    async def test_missing_permission_is_reported(self, handlers, guild, make_interaction, make_request):
        """A Forbidden creation call ends in the permissions message, not a crash."""
        guild.create_text_channel.side_effect = make_http_error()
        interaction = make_interaction("createchannel")

        report = await handlers.create_channel(
            interaction, make_request(interaction, channelname="general")
        )

        assert report.outcome is Outcome.FAILURE
        assert isinstance(report.primary.error, ResourceCreationError)
        assert final_content(interaction) == (
            "Your channel could not be created! "
            "Please check if the bot has the necessary permissions!"
        )
        assert_single_reply(interaction)

    @pytest.mark.asyncio
    async def test_invalid_name_skips_remote_call(self, handlers, guild, make_interaction, make_request):
        interaction = make_interaction("createcategory")

        report = await handlers.create_category(
            interaction, make_request(interaction, categoryname="   ")
        )

        assert isinstance(report.primary.error, ValidationError)
        guild.create_category.assert_not_awaited()
        assert "cannot be empty" in final_content(interaction)


class TestVoiceChannelCommand:
    """Tests for /createvoicechannel placement."""

    @pytest.mark.asyncio
    async def test_stray_channel_creates_top_level_voice_channel(
        self, handlers, guild, make_interaction, make_request
    ):
        interaction = make_interaction("createvoicechannel", channel=make_text_channel(category=None))

        await handlers.create_voice_channel(
            interaction, make_request(interaction, voicechannelname="Hangout")
        )

        assert guild.create_voice_channel.await_args.kwargs["category"] is None
        assert final_content(interaction) == VOICE_CHANNEL_CREATED

    @pytest.mark.asyncio
    async def test_nested_channel_creates_sibling_voice_channel(
        self, handlers, guild, make_interaction, make_request
    ):
        category = make_category("Gaming")
        interaction = make_interaction("createvoicechannel", channel=make_text_channel(category=category))

        await handlers.create_voice_channel(
            interaction, make_request(interaction, voicechannelname="Hangout")
        )

        assert guild.create_voice_channel.await_args.kwargs["category"] is category
        assert final_content(interaction) == VOICE_CHANNEL_CREATED_IN_CATEGORY


class TestRoleCommands:
    """Tests for /createrole and /createandgrantrole."""

    @pytest.mark.asyncio
    async def test_create_role_without_grants(self, handlers, guild, requester, make_interaction, make_request):
        interaction = make_interaction("createrole")

        await handlers.create_role(interaction, make_request(interaction, rolename="Scout"))

        assert guild.create_role.await_args.kwargs["name"] == "Scout"
        assert final_content(interaction) == ROLE_CREATED
        requester.add_roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_grant_to_self_as_target(self, handlers, requester, make_interaction, make_request):
        interaction = make_interaction("createandgrantrole")
        request = make_request(
            interaction,
            rolename="Scout",
            membertoreceiverole=requester,
            grantroletocommanduser=True,
        )

        report = await handlers.create_and_grant_role(interaction, request)

        assert requester.add_roles.await_count == 1
        content = final_content(interaction)
        assert content.startswith(ROLE_CREATED)
        assert content.count(ALREADY_GRANTED) == 1
        assert report.outcome is Outcome.SUCCESS

    @pytest.mark.asyncio
    async def test_failed_self_grant_keeps_role(
        self, handlers, guild, requester, other_member, make_interaction, make_request
    ):
        requester.add_roles.side_effect = make_http_error()
        interaction = make_interaction("createandgrantrole")
        request = make_request(
            interaction,
            rolename="Scout",
            membertoreceiverole=other_member,
            grantroletocommanduser=True,
        )

        report = await handlers.create_and_grant_role(interaction, request)

        assert report.outcome is Outcome.WARNING
        guild.create_role.assert_awaited_once()
        other_member.add_roles.assert_awaited_once()
        content = final_content(interaction)
        assert ROLE_CREATED in content
        assert SELF_GRANT_FAILED in content

    @pytest.mark.asyncio
    async def test_role_creation_failure_skips_grants(
        self, handlers, guild, requester, make_interaction, make_request
    ):
        guild.create_role.side_effect = make_http_error()
        interaction = make_interaction("createandgrantrole")
        request = make_request(
            interaction,
            rolename="Scout",
            membertoreceiverole=requester,
            grantroletocommanduser=True,
        )

        report = await handlers.create_and_grant_role(interaction, request)

        assert report.outcome is Outcome.FAILURE
        requester.add_roles.assert_not_awaited()
        assert final_content(interaction).startswith("Your role could not be created!")

    @pytest.mark.asyncio
    async def test_invalid_custom_color_skips_remote_call(self, handlers, guild, make_interaction, make_request):
        interaction = make_interaction("createrole")

        await handlers.create_role(
            interaction, make_request(interaction, rolename="Scout", customrolecolor="zzzzzzzz")
        )

        guild.create_role.assert_not_awaited()
        assert "not a valid color" in final_content(interaction)


class TestThreadCommand:
    """Tests for /createthread."""

    @pytest.mark.asyncio
    async def test_thread_inside_thread_is_refused(self, handlers, make_interaction, make_request):
        channel = make_thread_channel()
        message = make_message()
        interaction = make_interaction("createthread", channel=channel, message=message)

        await handlers.create_thread(
            interaction, make_request(interaction, threadname="help", messageparent=True)
        )

        channel.create_thread.assert_not_awaited()
        message.create_thread.assert_not_awaited()
        assert final_content(interaction) == THREAD_IN_THREAD

    @pytest.mark.asyncio
    async def test_message_with_thread_is_refused(self, handlers, make_interaction, make_request):
        channel = make_text_channel()
        message = make_message(has_thread=True)
        interaction = make_interaction("createthread", channel=channel, message=message)

        await handlers.create_thread(
            interaction, make_request(interaction, threadname="help", messageparent=True)
        )

        channel.create_thread.assert_not_awaited()
        message.create_thread.assert_not_awaited()
        assert final_content(interaction) == MESSAGE_HAS_THREAD

    @pytest.mark.asyncio
    async def test_thread_on_reply_message(self, handlers, make_interaction, make_request):
        channel = make_text_channel()
        message = make_message()
        interaction = make_interaction("createthread", channel=channel, message=message)

        await handlers.create_thread(
            interaction, make_request(interaction, threadname="help", messageparent=True)
        )

        message.create_thread.assert_awaited_once()
        channel.create_thread.assert_not_awaited()
        assert final_content(interaction) == THREAD_CREATED_ON_MESSAGE

    @pytest.mark.asyncio
    async def test_thread_without_parent_message(self, handlers, make_interaction, make_request):
        channel = make_text_channel()
        message = make_message(has_thread=True)
        interaction = make_interaction("createthread", channel=channel, message=message)

        await handlers.create_thread(
            interaction, make_request(interaction, threadname="help", messageparent=False)
        )

        channel.create_thread.assert_awaited_once()
        message.create_thread.assert_not_awaited()
        assert final_content(interaction) == THREAD_CREATED_IN_CHANNEL


class TestLifecycle:
    """Tests for the acknowledgment and failure paths shared by all commands."""

    @pytest.mark.asyncio
    async def test_expired_interaction_stops_everything(self, handlers, guild, make_interaction, make_request):
        interaction = make_interaction("createchannel")
        interaction.response.send_message.side_effect = make_http_error(
            discord.NotFound, status=404, code=10062, text="Unknown interaction"
        )

        report = await handlers.create_channel(
            interaction, make_request(interaction, channelname="general")
        )

        assert report is None
        guild.create_text_channel.assert_not_awaited()
        interaction.edit_original_response.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_error_is_finalized(self, handlers, guild, make_interaction, make_request):
        guild.create_category = AsyncMock(side_effect=RuntimeError("boom"))
        interaction = make_interaction("createcategory")

        report = await handlers.create_category(
            interaction, make_request(interaction, categoryname="Games")
        )

        assert report.outcome is Outcome.FAILURE
        content = final_content(interaction)
        assert "boom" not in content
        assert content.startswith("Something went wrong")

    @pytest.mark.asyncio
    async def test_setup_error_after_acknowledgment_is_finalized(
        self, handlers, guild, make_interaction, make_request
    ):
        interaction = make_interaction("createcategory")

        with patch("handlers.ResourceCreator", side_effect=RuntimeError("boom")):
            report = await handlers.create_category(
                interaction, make_request(interaction, categoryname="Games")
            )

        assert report.outcome is Outcome.FAILURE
        guild.create_category.assert_not_awaited()
        assert final_content(interaction).startswith("Something went wrong")
        assert_single_reply(interaction)


class TestFailureRecorder:
    """Tests for FailureRecorder logging."""

    def test_logs_kind_and_resource(self, make_interaction, make_request, caplog):
        interaction = make_interaction("createchannel")
        request = make_request(interaction, channelname="general")
        error = ResourceCreationError("channel", make_http_error())

        with caplog.at_level(logging.ERROR, logger="scaffold.handlers"):
            result = FailureRecorder().record(error, ResourceKind.TEXT_CHANNEL, request)

        assert result.outcome is Outcome.FAILURE
        assert "Missing Permissions" not in result.message
        record = caplog.records[-1]
        assert record.error_kind == "resource_creation"
        assert record.resource_type == "channel"
