"""Tests for payload validation."""

import pytest

from tool_catalog.domain.errors import ValidationFailed
from tool_catalog.domain.tools import Example, Screenshot, ToolRelations
from tool_catalog.services.validation import (
    validate_field_changes,
    validate_new_fields,
    validate_rating,
    validate_relations,
)


def test_validate_new_fields_normalizes_blank_optionals() -> None:
    fields = validate_new_fields(
        {
            "name": "Foo",
            "url": "https://foo.example.com",
            "description": "Formats things",
            "how_to_use": "",
            "documentation_url": "",
        }
    )

    assert fields.name == "Foo"
    assert fields.how_to_use is None
    assert fields.documentation_url is None


def test_validate_new_fields_checks_lengths_and_urls() -> None:
    with pytest.raises(ValidationFailed) as excinfo:
        validate_new_fields(
            {
                "name": "x" * 256,
                "url": "https://example.com/" + "a" * 500,
                "description": "d",
                "documentation_url": "not a url",
            }
        )

    assert set(excinfo.value.fields) == {"name", "url", "documentation_url"}


def test_validate_field_changes_is_partial() -> None:
    assert validate_field_changes({"description": "New"}) == {"description": "New"}
    assert validate_field_changes({}) == {}


def test_validate_field_changes_rejects_clearing_required() -> None:
    with pytest.raises(ValidationFailed) as excinfo:
        validate_field_changes({"name": None, "url": "", "status": "approved"})

    assert excinfo.value.fields == {
        "name": "is required",
        "url": "is required",
        "status": "unknown field",
    }


def test_validate_relations_accepts_limits() -> None:
    validate_relations(
        ToolRelations(
            tags=["python"],
            roles=["owner", "pm"],
            screenshots=[Screenshot(url=f"https://img/{i}.png") for i in range(5)],
            examples=[Example(title=f"Example {i}") for i in range(5)],
        )
    )


def test_validate_relations_reports_each_problem() -> None:
    with pytest.raises(ValidationFailed) as excinfo:
        validate_relations(
            ToolRelations(
                tags=["ok", " ", "t" * 51],
                roles=["qa", "manager"],
                screenshots=[
                    Screenshot(url="file:///etc/passwd"),
                    Screenshot(url="https://img/ok.png", caption="c" * 256),
                ],
                examples=[Example(title=""), Example(title="x", url="nope")],
            )
        )

    assert excinfo.value.fields == {
        "tags.1": "is required",
        "tags.2": "must be at most 50 characters",
        "roles": "unknown roles: manager",
        "screenshots.0.url": "must be an http(s) URL",
        "screenshots.1.caption": "must be at most 255 characters",
        "examples.0.title": "is required",
        "examples.1.url": "must be an http(s) URL",
    }


def test_validate_relations_rejects_tags_without_a_slug() -> None:
    with pytest.raises(ValidationFailed) as excinfo:
        validate_relations(ToolRelations(tags=["Тестване", "Café", "!!!"]))

    assert excinfo.value.fields == {
        "tags.0": "must contain latin letters or digits",
        "tags.2": "must contain latin letters or digits",
    }


def test_validate_relations_limits_sub_records() -> None:
    with pytest.raises(ValidationFailed) as excinfo:
        validate_relations(
            ToolRelations(
                screenshots=[Screenshot(url="https://img/a.png")] * 6,
                examples=[Example(title="e")] * 6,
            )
        )

    assert excinfo.value.fields["screenshots"] == "at most 5 allowed"
    assert excinfo.value.fields["examples"] == "at most 5 allowed"


@pytest.mark.parametrize("rating", [1, 3, 5])
def test_validate_rating_accepts_range(rating: int) -> None:
    assert validate_rating(rating) == rating
