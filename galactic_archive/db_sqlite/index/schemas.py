"""Pydantic read models for index records."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DirectoryRead(BaseModel):
    """Schema for reading a directory record.

    Attributes:
        path: Canonical absolute path (natural key)
        name: Leaf name
        parent_path: Containing directory's path, empty for a root
        last_indexed: When the indexer last wrote this record
    """

    path: str = Field(examples=["/srv/archive/photos"], description="Canonical absolute path")
    name: str = Field(examples=["photos"], description="Leaf name")
    parent_path: str = Field(examples=["/srv/archive"], description="Containing directory")
    last_indexed: datetime = Field(
        examples=["2025-01-15T10:30:00Z"],
        description="When the indexer last wrote this record",
    )

    model_config = ConfigDict(from_attributes=True)


class FileRead(BaseModel):
    """Schema for reading a file record.

    Attributes:
        path: Canonical absolute path (natural key)
        name: Leaf name
        parent_path: Containing directory's path
        size: Size in bytes, None if it could not be read
        last_indexed: When the indexer last wrote this record
    """

    path: str = Field(examples=["/srv/archive/photos/a.jpg"], description="Canonical absolute path")
    name: str = Field(examples=["a.jpg"], description="Leaf name")
    parent_path: str = Field(examples=["/srv/archive/photos"], description="Containing directory")
    size: int | None = Field(examples=[52731], description="Size in bytes")
    last_indexed: datetime = Field(
        examples=["2025-01-15T10:30:00Z"],
        description="When the indexer last wrote this record",
    )

    model_config = ConfigDict(from_attributes=True)
