"""Pydantic models for the persisted registry aggregates."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class Section(str, Enum):
    """Independent identity spaces of the registry."""

    classes = "classes"
    vendors = "vendors"


class DescendantEntity(BaseModel):
    """Leaf entity: programming interface or subdevice.

    ``aux`` carries the subvendor id on subdevice lines and is None for
    programming interfaces.
    """

    id: str = Field(min_length=1)
    name: str
    aux: str | None = None


class ChildEntity(BaseModel):
    """Second-level entity: subclass or device."""

    id: str = Field(min_length=1)
    name: str
    descendants: list[DescendantEntity] = Field(default_factory=list)


class RootEntity(BaseModel):
    """Top-level entity: device class or vendor.

    A root and its whole subtree form one aggregate, the unit of persistence.
    ``hash`` is empty until the tree has been hashed.
    """

    id: str = Field(min_length=1)
    name: str
    children: list[ChildEntity] = Field(default_factory=list)
    hash: str = ""

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("id cannot be empty or whitespace")
        return v


class RepositoryMarker(BaseModel):
    """Singleton record of the last successfully processed registry version."""

    version: date
    last_update: datetime
