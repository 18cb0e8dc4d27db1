"""Command payloads accepted from seats."""

from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .roles import Action, Role


class CommandBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    sequence_id: int = Field(alias="sequenceId", description="State token the seat last saw.")


class PlayActionCommand(CommandBase):
    command: Literal["play-action"] = "play-action"
    action: Action
    target: Optional[int] = None


class ChallengeCommand(CommandBase):
    command: Literal["challenge"] = "challenge"


class BlockCommand(CommandBase):
    command: Literal["block"] = "block"
    role: Role


class AllowCommand(CommandBase):
    command: Literal["allow"] = "allow"


class RevealCommand(CommandBase):
    command: Literal["reveal"] = "reveal"
    role: Role


class ExchangeCommand(CommandBase):
    command: Literal["exchange"] = "exchange"
    roles: List[Role]


Command = Annotated[
    Union[
        PlayActionCommand,
        ChallengeCommand,
        BlockCommand,
        AllowCommand,
        RevealCommand,
        ExchangeCommand,
    ],
    Field(discriminator="command"),
]

_COMMAND_ADAPTER: TypeAdapter[Any] = TypeAdapter(Command)


def parse_command(payload: Any) -> Command:
    """Validate a raw payload into a command model.

    Raises:
        pydantic.ValidationError: the payload is not a well-formed command.
    """
    if isinstance(payload, CommandBase):
        return payload
    return _COMMAND_ADAPTER.validate_python(payload)
