"""Environment and synchronization result models."""

from typing import Any

from pydantic import BaseModel, Field


class PropertySource(BaseModel):
    """A named set of flattened configuration properties."""

    name: str
    source: dict[str, Any] = Field(default_factory=dict)


class Environment(BaseModel):
    """The resolved configuration for an application, profiles and label.

    Property sources are ordered by precedence: a consumer reading the list
    takes the first value it finds for a key.
    """

    name: str
    profiles: list[str] = Field(default_factory=list)
    label: str | None = None
    version: str | None = None
    state: str | None = None
    property_sources: list[PropertySource] = Field(
        default_factory=list, alias="propertySources"
    )

    class Config:
        populate_by_name = True

    def add(self, property_source: PropertySource) -> None:
        self.property_sources.append(property_source)

    def add_all(self, property_sources: list[PropertySource]) -> None:
        self.property_sources.extend(property_sources)


class SyncResult(BaseModel):
    """The on-disk state of a working copy after a sync."""

    revision: str
    label: str
    search_paths: list[str] = Field(default_factory=list)

    class Config:
        frozen = True
