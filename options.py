"""
Option validation for Scaffold bot.

Turns the raw slash-command options of a CommandRequest into validated,
resource-specific specs. Nothing in this module talks to Discord.
"""

from __future__ import annotations

import re
import unicodedata
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError


class ResourceKind(str, Enum):
    """Resource types the bot can create."""
    CATEGORY = "category"
    TEXT_CHANNEL = "channel"
    VOICE_CHANNEL = "voice channel"
    ROLE = "role"
    THREAD = "thread"


# (min, max) name length per resource kind. Discord cuts channel and
# category names off visually past ~25 characters; roles and threads are
# hard-limited to 100.
NAME_LIMITS: dict[ResourceKind, tuple[int, int]] = {
    ResourceKind.CATEGORY: (1, 25),
    ResourceKind.TEXT_CHANNEL: (1, 25),
    ResourceKind.VOICE_CHANNEL: (1, 25),
    ResourceKind.ROLE: (1, 100),
    ResourceKind.THREAD: (1, 100),
}

DEFAULT_CHANNEL_NAME = "new"

# Discord's default role palette, offered as choices on the role commands.
PRESET_ROLE_COLORS: dict[str, str] = {
    "Aqua": "0x1abc9c",
    "Green": "0x57f287",
    "Blue": "0x3498db",
    "Yellow": "0xfee75c",
    "LuminousVividPink": "0xe91e63",
    "Fuchsia": "0xeb459e",
    "Gold": "0xf1c40f",
    "Orange": "0xe67e22",
    "Red": "0xed4245",
    "Grey": "0x95a5a6",
    "Navy": "0x34495e",
    "DarkAqua": "0x11806a",
    "DarkGreen": "0x1f8b4c",
    "DarkBlue": "0x206694",
    "DarkPurple": "0x71368a",
    "DarkVividPink": "0xad1457",
    "DarkGold": "0xc27c0e",
    "DarkOrange": "0xa84300",
    "DarkRed": "0x992d22",
    "DarkerGrey": "0x7f8c8d",
    "LightGrey": "0xbcc0c0",
    "DarkNavy": "0x2c3e50",
    "Blurple": "0x5865f2",
    "Greyple": "0x99aab5",
    "DarkButNotBlack": "0x2c2f33",
}

HEX_COLOR_PATTERN = re.compile(r"^0[xX][0-9a-fA-F]{6}$")


# ============================================================================
# Pydantic Models for Resource Specs
# ============================================================================


class ResourceSpec(BaseModel):
    """Validated payload for a single creation call."""
    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    name: str = Field(description="Name of the resource to create")

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @model_validator(mode="after")
    def _check_name(self) -> "ResourceSpec":
        label = self.kind.value
        if not self.name:
            raise ValueError(f"The {label} name cannot be empty.")
        if any(unicodedata.category(ch) == "Cc" for ch in self.name):
            raise ValueError(f"The {label} name cannot contain control characters or line breaks.")
        min_len, max_len = NAME_LIMITS[self.kind]
        if not min_len <= len(self.name) <= max_len:
            raise ValueError(
                f"The {label} name must be between {min_len} and {max_len} characters long."
            )
        return self


class CategorySpec(ResourceSpec):
    """Parameters for creating a category."""
    kind: ResourceKind = ResourceKind.CATEGORY


class ChannelSpec(ResourceSpec):
    """Parameters for creating a text or voice channel."""
    kind: ResourceKind = ResourceKind.TEXT_CHANNEL

    @field_validator("kind")
    @classmethod
    def _channel_kinds_only(cls, value: ResourceKind) -> ResourceKind:
        if value not in (ResourceKind.TEXT_CHANNEL, ResourceKind.VOICE_CHANNEL):
            raise ValueError(f"{value.value} is not a channel kind")
        return value


class RoleSpec(ResourceSpec):
    """Parameters for creating a role."""
    kind: ResourceKind = ResourceKind.ROLE
    color: Optional[int] = Field(
        default=None,
        description="RGB color value, or None for Discord's default",
    )


class ThreadSpec(ResourceSpec):
    """Parameters for creating a thread."""
    kind: ResourceKind = ResourceKind.THREAD
    anchor_to_message: bool = Field(
        default=False,
        description="Use the command's reply message as the thread parent",
    )


class GrantSpec(BaseModel):
    """Who should receive a freshly created role."""
    model_config = ConfigDict(frozen=True)

    grant_to_requester: bool = False
    target_member: Optional[Any] = None


# ============================================================================
# Validators
# ============================================================================


def _build(model: type[ResourceSpec], **fields: Any) -> Any:
    """Instantiate a spec model, converting pydantic errors to ValidationError."""
    try:
        return model(**fields)
    except PydanticValidationError as e:
        # Our own validators raise ValueError with a user-facing message
        first = e.errors()[0] if e.errors() else {}
        ctx_error = first.get("ctx", {}).get("error")
        message = str(ctx_error) if ctx_error else first.get("msg", str(e))
        raise ValidationError(message) from e


def parse_hex_color(value: str) -> int:
    """Parse a ``0xRRGGBB`` (or ``0XRRGGBB``) string into an integer color."""
    value = value.strip()
    if not HEX_COLOR_PATTERN.match(value):
        raise ValidationError(
            f"'{value}' is not a valid color. Use a hex code such as 0x1abc9c."
        )
    return int(value, 16)


def resolve_role_color(
    custom_color: Optional[str],
    preset_color: Optional[str],
) -> Optional[int]:
    """
    Resolve the role color: custom hex overrides the preset, else no color.

    Args:
        custom_color: Free-form ``customrolecolor`` option value.
        preset_color: Value of the ``rolecolor`` choice option.

    Returns:
        Integer RGB value, or None to keep Discord's default.

    Raises:
        ValidationError: If the chosen value is not a valid color.
    """
    if custom_color:
        return parse_hex_color(custom_color)
    if preset_color:
        if preset_color not in PRESET_ROLE_COLORS.values():
            raise ValidationError(f"'{preset_color}' is not one of the preset role colors.")
        return int(preset_color, 16)
    return None


def validate_category(request) -> CategorySpec:
    return _build(CategorySpec, name=request.get_string("categoryname"))


def validate_text_channel(request) -> ChannelSpec:
    return _build(
        ChannelSpec,
        name=request.get_string("channelname"),
        kind=ResourceKind.TEXT_CHANNEL,
    )


def validate_default_channel(request) -> ChannelSpec:
    """Spec for the fixed-name channel command, which takes no options."""
    return _build(ChannelSpec, name=DEFAULT_CHANNEL_NAME, kind=ResourceKind.TEXT_CHANNEL)


def validate_voice_channel(request) -> ChannelSpec:
    return _build(
        ChannelSpec,
        name=request.get_string("voicechannelname"),
        kind=ResourceKind.VOICE_CHANNEL,
    )


def validate_role(request) -> RoleSpec:
    color = resolve_role_color(
        request.get_string("customrolecolor"),
        request.get_string("rolecolor"),
    )
    return _build(RoleSpec, name=request.get_string("rolename"), color=color)


def validate_grant(request) -> GrantSpec:
    """Read the grant options; an unset boolean means no self-grant."""
    return GrantSpec(
        grant_to_requester=request.get_boolean("grantroletocommanduser"),
        target_member=request.get_member("membertoreceiverole"),
    )


def validate_thread(request) -> ThreadSpec:
    return _build(
        ThreadSpec,
        name=request.get_string("threadname"),
        anchor_to_message=request.get_boolean("messageparent"),
    )
