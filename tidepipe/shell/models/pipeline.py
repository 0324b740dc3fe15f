"""Pipeline data models: invocations, approval requests, continuations.

A pipeline is an immutable tuple of ``Invocation`` values.  Items flowing
between stages are plain JSON values, with one distinguished variant:
``ApprovalRequest``, which makes the engine halt instead of completing.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

Item = Any
"""A JSON-representable value (or an ``ApprovalRequest``)."""

ArgValue = str | list[str]
"""Argument value as handed to a command (a private, mutable copy)."""

FrozenArgValue = str | tuple[str, ...]
"""Argument value as stored on a parsed ``Invocation``."""

POSITIONAL_KEY = "_"
"""Key under which bare (non-flag) tokens are collected."""

TOKEN_VERSION = 1


class Invocation(BaseModel):
    """A single stage of a pipeline: command name plus raw string arguments.

    ``args`` is a read-only mapping whose repeated-flag and positional
    values are tuples, so a parsed pipeline cannot be altered through it.
    Commands receive a mutable copy from :meth:`args_dict`.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    args: Mapping[str, FrozenArgValue] = Field(
        default_factory=lambda: {POSITIONAL_KEY: ()},
        validate_default=True,
    )

    @field_validator("args", mode="after")
    @classmethod
    def _freeze_args(cls, value: Mapping[str, FrozenArgValue]) -> Mapping[str, FrozenArgValue]:
        return MappingProxyType({key: v if isinstance(v, str) else tuple(v) for key, v in value.items()})

    @field_serializer("args")
    def _serialize_args(self, value: Mapping[str, FrozenArgValue]) -> dict[str, ArgValue]:
        return self.args_dict()

    @property
    def positional(self) -> list[str]:
        value = self.args.get(POSITIONAL_KEY, ())
        return [value] if isinstance(value, str) else list(value)

    def args_dict(self) -> dict[str, ArgValue]:
        """Return a fresh, mutable copy of the arguments."""
        return {key: value if isinstance(value, str) else list(value) for key, value in self.args.items()}


Pipeline = tuple[Invocation, ...]


# -- Approval ----------------------------------------------------------------


class ApprovalRequest(BaseModel):
    """Item signalling that the pipeline must stop and wait for a human."""

    model_config = ConfigDict(frozen=True)

    type: Literal["approval_request"] = "approval_request"
    items: list[Item] = Field(default_factory=list)
    prompt: str = ""


def as_approval_request(item: Item) -> ApprovalRequest | None:
    """Return the item as an ``ApprovalRequest`` if it has that shape.

    Commands may emit either the model itself or a mapping with
    ``type="approval_request"``, ``items`` and ``prompt``.  Anything else
    is an ordinary value.
    """
    match item:
        case ApprovalRequest():
            return item
        case Mapping() if item.get("type") == "approval_request":
            items = item.get("items")
            prompt = item.get("prompt")
            if isinstance(items, list) and isinstance(prompt, str):
                return ApprovalRequest(items=items, prompt=prompt)
            return None
        case _:
            return None


# -- Continuation ------------------------------------------------------------


class ResumeContinuation(BaseModel):
    """Serializable capture of a halted pipeline.

    ``pipeline`` is the pipeline as it was run; execution resumes at
    ``resume_at_index`` with ``items`` replayed as that stage's input.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: Literal[1] = TOKEN_VERSION
    pipeline: tuple[Invocation, ...]
    resume_at_index: int = Field(alias="resumeAtIndex", ge=0)
    items: list[Item] = Field(default_factory=list)
    prompt: str = ""

    @model_validator(mode="after")
    def _validate_index(self) -> ResumeContinuation:
        if self.resume_at_index > len(self.pipeline):
            msg = f"resumeAtIndex {self.resume_at_index} is past the end of a {len(self.pipeline)}-stage pipeline"
            raise ValueError(msg)
        return self

    @property
    def remaining(self) -> Pipeline:
        return self.pipeline[self.resume_at_index :]
