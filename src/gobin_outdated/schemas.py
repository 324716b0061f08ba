"""Pydantic schemas for external data boundaries.

Purpose
-------
Define Pydantic models for data that leaves the program: the JSON objects
written by ``--json`` output. Internal business logic uses the lightweight
dataclasses in models.py.

Data Flow Pattern
-----------------
Dataclass (domain) -> Pydantic (serialize) -> JSON lines on stdout
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .models import Result


class ResultSchema(BaseModel):
    """Pydantic schema for serializing a check result to JSON."""

    model_config = ConfigDict(frozen=True)

    file: str = Field(description="Path of the checked file")
    installed: str = Field(default="", description="Installed module version")
    available: str = Field(default="", description="Highest published version")
    main_module: str = Field(default="", description="Module path of the binary")
    main_package: str = Field(default="", description="Package path of the binary")
    command: str = Field(default="", description="Suggested upgrade command")
    error: str | None = Field(default=None, description="Failure description")

    @classmethod
    def from_result(cls, result: Result) -> ResultSchema:
        return cls(
            file=result.file,
            installed=result.installed,
            available=result.available,
            main_module=result.main_module,
            main_package=result.main_package,
            command=result.command,
            error=result.error,
        )

    def to_json(self) -> str:
        """Render as indented JSON, omitting ``error`` when unset."""
        exclude = {"error"} if self.error is None else None
        return self.model_dump_json(indent=2, exclude=exclude)


__all__ = [
    "ResultSchema",
]
