#!/usr/bin/env python3
"""
Tests for the terminal parse of generated project documents.
"""

import json

import pytest

from webai.generation.document import (
    INVALID_FILE_STRUCTURE,
    PARSE_FAILED,
    MetadataDefaults,
    ParsedDocument,
    ParseFailure,
    parse_project_document,
)


def document(**overrides) -> str:
    data = {
        "name": "Quiz Bot",
        "description": "Asks questions",
        "system_prompt": "You are a quiz host.",
        "suggested_slug": "quiz-bot",
        "files": [{"path": "app.py", "content": "print('hi')\n"}],
    }
    data.update(overrides)
    return json.dumps(data)


class TestParseProjectDocument:
    def test_valid_document(self):
        result = parse_project_document(document())
        assert isinstance(result, ParsedDocument)
        assert result.project.name == "Quiz Bot"
        assert result.project.file_paths() == ["app.py"]
        assert result.project.change_summary is None

    def test_raw_files_are_returned_untouched(self):
        files = [
            {"path": "a.py", "content": "x = 1", "language": "python"},
            {"path": "b.md", "content": ""},
        ]
        result = parse_project_document(document(files=files))
        assert isinstance(result, ParsedDocument)
        assert result.raw_files == files
        assert result.project.files[0].model_extra == {"language": "python"}

    @pytest.mark.parametrize("text", [
        "",
        "not json",
        '{"name": "cut off',
        "[1, 2, 3]",
        '"just a string"',
    ])
    def test_unparseable_text(self, text):
        assert parse_project_document(text) == ParseFailure(PARSE_FAILED)

    @pytest.mark.parametrize("files", [
        None,
        [],
        "app.py",
        [{"path": "app.py"}],
        [{"content": "x"}],
        [{"path": 1, "content": "x"}],
        ["app.py"],
    ])
    def test_bad_file_structure(self, files):
        text = document(files=files) if files is not None else json.dumps({"name": "x"})
        assert parse_project_document(text) == ParseFailure(INVALID_FILE_STRUCTURE)

    def test_generation_defaults_fill_missing_metadata(self):
        text = json.dumps({"files": [{"path": "app.py", "content": ""}]})
        result = parse_project_document(text, MetadataDefaults.for_generation())
        assert isinstance(result, ParsedDocument)
        assert result.project.name == "My Bot"
        assert result.project.suggested_slug == "my-bot"
        assert result.project.description == ""

    def test_refinement_defaults_keep_bot_identity(self):
        text = json.dumps({"files": [{"path": "app.py", "content": ""}]})
        defaults = MetadataDefaults.for_refinement("Trivia", "Quiz game")
        result = parse_project_document(text, defaults)
        assert isinstance(result, ParsedDocument)
        assert result.project.name == "Trivia"
        assert result.project.description == "Quiz game"
        assert result.project.suggested_slug == ""
        assert result.project.change_summary == "Changes applied"

    def test_refinement_uses_model_change_summary(self):
        defaults = MetadataDefaults.for_refinement()
        result = parse_project_document(
            document(change_summary="Added a timer"), defaults
        )
        assert result.project.change_summary == "Added a timer"

    def test_non_string_metadata_falls_back(self):
        result = parse_project_document(document(name=42, description=["x"]))
        assert result.project.name == "My Bot"
        assert result.project.description == ""
