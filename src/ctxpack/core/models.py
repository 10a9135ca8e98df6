"""Context package data model.

Every value here is a frozen snapshot built fresh for one request:
    - FileFragment: a document's path, text, language and optional cursor
    - EditRecord: one observed save/edit
    - ProjectSummary: a capped flat list of source files
    - ContextPackage: the bundle handed between aggregator and allocator
    - ContextOptions: what a single gather() call should include
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

MAX_SOURCE_FILES = 50


class CursorPosition(BaseModel):
    """Zero-based cursor location inside a document."""

    line: int = Field(ge=0)
    column: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)


class FileFragment(BaseModel):
    """Immutable snapshot of one document's content."""

    path: str
    content: str
    language: str = "plaintext"
    cursor: CursorPosition | None = None

    model_config = ConfigDict(frozen=True)


class EditRecord(BaseModel):
    """A single save/edit event, timestamped in milliseconds since the epoch."""

    file_path: str
    description: str
    timestamp_ms: int

    model_config = ConfigDict(frozen=True)


class ProjectSummary(BaseModel):
    root_path: str
    project_name: str
    source_files: tuple[str, ...] = Field(default=(), max_length=MAX_SOURCE_FILES)

    model_config = ConfigDict(frozen=True)


class ContextPackage(BaseModel):
    """Everything assembled for one AI request.

    Partially populated packages are valid; absent sources are ``None`` or
    empty tuples, never errors.
    """

    current_file: FileFragment | None = None
    other_open_files: tuple[FileFragment, ...] = ()
    recent_edits: tuple[EditRecord, ...] = ()
    project_summary: ProjectSummary | None = None

    model_config = ConfigDict(frozen=True)

    def is_empty(self) -> bool:
        return (
            self.current_file is None
            and not self.other_open_files
            and not self.recent_edits
            and self.project_summary is None
        )


class ContextOptions(BaseModel):
    """Options recognised by ``ContextAggregator.gather``.

    ``max_tokens`` of ``None`` means the configured default (4000 unless
    overridden).
    """

    max_tokens: int | None = Field(default=None, ge=0)
    include_open_files: bool = True
    include_recent_edits: bool = True
    include_project_structure: bool = False

    model_config = ConfigDict(frozen=True)


__all__ = [
    "MAX_SOURCE_FILES",
    "ContextOptions",
    "ContextPackage",
    "CursorPosition",
    "EditRecord",
    "FileFragment",
    "ProjectSummary",
]
