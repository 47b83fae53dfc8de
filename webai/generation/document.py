"""
Terminal parse of a finished generation.

The relay streams raw fragments while they arrive; only after the upstream
stream ends is the concatenated text parsed into a `GeneratedProject`.
Parsing returns a tagged result instead of raising so the relay can decide
which single terminal event to emit.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

PARSE_FAILED = "Failed to parse AI response"
INVALID_FILE_STRUCTURE = "AI did not return valid file structure"

DEFAULT_BOT_NAME = "My Bot"
DEFAULT_SLUG = "my-bot"
DEFAULT_CHANGE_SUMMARY = "Changes applied"


class ProjectFile(BaseModel):
    """One file of a generated project. Unknown keys are kept as given."""
    model_config = ConfigDict(extra="allow")

    path: str
    content: str


class GeneratedProject(BaseModel):
    name: str
    description: str = ""
    system_prompt: str = ""
    suggested_slug: str = ""
    change_summary: str | None = None
    files: list[ProjectFile] = Field(min_length=1)

    def file_paths(self) -> list[str]:
        return [file.path for file in self.files]


@dataclass(frozen=True)
class ParsedDocument:
    project: GeneratedProject
    raw_files: list[Any]


@dataclass(frozen=True)
class ParseFailure:
    reason: str


ParseResult = ParsedDocument | ParseFailure


@dataclass(frozen=True)
class MetadataDefaults:
    """Fallbacks used when the model leaves metadata empty."""
    name: str = DEFAULT_BOT_NAME
    description: str = ""
    suggested_slug: str = DEFAULT_SLUG
    change_summary: str | None = None

    @classmethod
    def for_generation(cls) -> MetadataDefaults:
        return cls()

    @classmethod
    def for_refinement(
        cls, bot_name: str | None = None, bot_description: str | None = None
    ) -> MetadataDefaults:
        return cls(
            name=bot_name or DEFAULT_BOT_NAME,
            description=bot_description or "",
            suggested_slug="",
            change_summary=DEFAULT_CHANGE_SUMMARY,
        )


def parse_project_document(
    text: str, defaults: MetadataDefaults | None = None
) -> ParseResult:
    """
    Parse the full model output.

    Returns `ParseFailure(PARSE_FAILED)` when the text is not a JSON object
    and `ParseFailure(INVALID_FILE_STRUCTURE)` when `files` is missing, empty
    or not a list of {path, content} objects.
    """
    defaults = defaults or MetadataDefaults.for_generation()
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return ParseFailure(PARSE_FAILED)
    if not isinstance(data, dict):
        return ParseFailure(PARSE_FAILED)

    raw_files = data.get("files")
    if not isinstance(raw_files, list) or not raw_files:
        return ParseFailure(INVALID_FILE_STRUCTURE)

    try:
        project = GeneratedProject(
            name=_text(data.get("name")) or defaults.name,
            description=_text(data.get("description")) or defaults.description,
            system_prompt=_text(data.get("system_prompt")),
            suggested_slug=_text(data.get("suggested_slug")) or defaults.suggested_slug,
            change_summary=(
                _text(data.get("change_summary")) or defaults.change_summary
                if defaults.change_summary is not None
                else None
            ),
            files=raw_files,
        )
    except ValidationError:
        return ParseFailure(INVALID_FILE_STRUCTURE)

    return ParsedDocument(project=project, raw_files=raw_files)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""
