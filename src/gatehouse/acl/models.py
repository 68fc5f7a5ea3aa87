"""Argument normalization, compact grant models, and engine errors."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# A scalar identifier or any collection of them. Numbers are user ids.
Names = Union[str, int, Iterable[Union[str, int]]]

WILDCARD = "*"


class InvalidArgumentError(ValueError):
    """A mutation was asked to write an identifier the store cannot hold."""

    def __init__(self, argument: str, value: object, reason: str) -> None:
        self.argument = argument
        self.value = value
        super().__init__(f"Invalid {argument} {value!r}: {reason}")


class Verdict(str, Enum):
    """Terminal states of a permission check."""

    allowed = "allowed"
    denied = "denied"


def as_set(value: Names | None) -> set[str]:
    """Normalize a scalar or collection of identifiers to a set of strings."""
    if value is None:
        return set()
    if isinstance(value, (str, int)):
        return {str(value)}
    return {str(v) for v in value}


def validate_names(argument: str, values: Iterable[str], reserved: Iterable[str]) -> None:
    """Reject identifiers that are empty or collide with a reserved store key."""
    reserved = set(reserved)
    for value in values:
        if value == "":
            raise InvalidArgumentError(argument, value, "identifier must be a non-empty string")
        if value in reserved:
            raise InvalidArgumentError(argument, value, "name is reserved by the store")


def _listify(v: object) -> object:
    """Scalar or collection of identifiers -> list of strings, as :func:`as_set` does."""
    if isinstance(v, (str, int)):
        return [str(v)]
    if isinstance(v, (list, tuple, set, frozenset)):
        return [str(x) if isinstance(x, int) else x for x in v]
    return v


class Grant(BaseModel):
    """Permissions over one or more resources."""

    model_config = ConfigDict(frozen=True)

    resources: list[str] = Field(min_length=1)
    permissions: list[str] = Field(min_length=1)

    @field_validator("resources", "permissions", mode="before")
    @classmethod
    def listify(cls, v: object) -> object:
        return _listify(v)


class AllowRule(BaseModel):
    """Compact bulk grant: every role gets every grant in ``allows``."""

    model_config = ConfigDict(frozen=True)

    roles: list[str] = Field(min_length=1)
    allows: list[Grant] = Field(default_factory=list)

    @field_validator("roles", mode="before")
    @classmethod
    def listify(cls, v: object) -> object:
        return _listify(v)
