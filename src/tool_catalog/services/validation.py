"""Input validation for tool payloads."""

import re
import unicodedata
from urllib.parse import urlparse

from tool_catalog.domain.errors import ValidationFailed
from tool_catalog.domain.roles import Role
from tool_catalog.domain.tools import (
    TRACKED_FIELDS,
    Example,
    Screenshot,
    ToolFields,
    ToolRelations,
)

MAX_NAME_LENGTH = 255
MAX_URL_LENGTH = 500
MAX_TAG_LENGTH = 50
MAX_CAPTION_LENGTH = 255
MAX_SUB_RECORDS = 5
MIN_RATING = 1
MAX_RATING = 5

_REQUIRED_FIELDS = ("name", "url", "description")
_URL_FIELDS = ("url", "documentation_url")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Lowercase ASCII slug with runs of other characters collapsed to '-'."""
    ascii_value = (
        unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    )
    return _NON_ALNUM.sub("-", ascii_value.lower()).strip("-")


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _check_url(errors: dict[str, str], key: str, value: object) -> None:
    if not isinstance(value, str) or not _is_http_url(value):
        errors[key] = "must be an http(s) URL"
    elif len(value) > MAX_URL_LENGTH:
        errors[key] = f"must be at most {MAX_URL_LENGTH} characters"


def _normalize(payload: dict[str, object]) -> dict[str, object]:
    """Blank optional fields are stored as missing values."""
    return {
        key: None if key not in _REQUIRED_FIELDS and value == "" else value
        for key, value in payload.items()
    }


def _check_fields(payload: dict[str, object], errors: dict[str, str]) -> None:
    for key, value in payload.items():
        if key not in TRACKED_FIELDS:
            errors[key] = "unknown field"
            continue
        if value is None:
            if key in _REQUIRED_FIELDS:
                errors[key] = "is required"
            continue
        if not isinstance(value, str):
            errors[key] = "must be a string"
            continue
        if key in _REQUIRED_FIELDS and not value.strip():
            errors[key] = "is required"
        elif key == "name" and len(value) > MAX_NAME_LENGTH:
            errors[key] = f"must be at most {MAX_NAME_LENGTH} characters"
        elif key in _URL_FIELDS:
            _check_url(errors, key, value)


def validate_new_fields(payload: dict[str, object]) -> ToolFields:
    """Validate a complete field set for a new tool."""
    payload = _normalize(payload)
    errors: dict[str, str] = {}
    for key in _REQUIRED_FIELDS:
        if payload.get(key) is None:
            errors[key] = "is required"
    _check_fields(payload, errors)
    if errors:
        raise ValidationFailed(errors)
    return ToolFields(
        name=str(payload["name"]),
        url=str(payload["url"]),
        description=str(payload["description"]),
        how_to_use=payload.get("how_to_use"),  # type: ignore[arg-type]
        documentation_url=payload.get("documentation_url"),  # type: ignore[arg-type]
    )


def validate_field_changes(payload: dict[str, object]) -> dict[str, str | None]:
    """Validate a partial field set for an update."""
    payload = _normalize(payload)
    errors: dict[str, str] = {}
    _check_fields(payload, errors)
    if errors:
        raise ValidationFailed(errors)
    return dict(payload)  # type: ignore[arg-type]


def validate_relations(relations: ToolRelations) -> None:
    """Validate relation collections that were supplied."""
    errors: dict[str, str] = {}
    if relations.roles is not None:
        allowed = {role.value for role in Role}
        unknown = [role for role in relations.roles if role not in allowed]
        if unknown:
            errors["roles"] = f"unknown roles: {', '.join(unknown)}"
    if relations.tags is not None:
        for index, tag in enumerate(relations.tags):
            if not tag.strip():
                errors[f"tags.{index}"] = "is required"
            elif len(tag) > MAX_TAG_LENGTH:
                errors[f"tags.{index}"] = (
                    f"must be at most {MAX_TAG_LENGTH} characters"
                )
            elif not slugify(tag):
                errors[f"tags.{index}"] = "must contain latin letters or digits"
    if relations.screenshots is not None:
        _check_screenshots(relations.screenshots, errors)
    if relations.examples is not None:
        _check_examples(relations.examples, errors)
    if errors:
        raise ValidationFailed(errors)


def _check_screenshots(screenshots: list[Screenshot], errors: dict[str, str]) -> None:
    if len(screenshots) > MAX_SUB_RECORDS:
        errors["screenshots"] = f"at most {MAX_SUB_RECORDS} allowed"
    for index, shot in enumerate(screenshots):
        _check_url(errors, f"screenshots.{index}.url", shot.url)
        if shot.caption and len(shot.caption) > MAX_CAPTION_LENGTH:
            errors[f"screenshots.{index}.caption"] = (
                f"must be at most {MAX_CAPTION_LENGTH} characters"
            )


def _check_examples(examples: list[Example], errors: dict[str, str]) -> None:
    if len(examples) > MAX_SUB_RECORDS:
        errors["examples"] = f"at most {MAX_SUB_RECORDS} allowed"
    for index, example in enumerate(examples):
        if not example.title.strip():
            errors[f"examples.{index}.title"] = "is required"
        elif len(example.title) > MAX_NAME_LENGTH:
            errors[f"examples.{index}.title"] = (
                f"must be at most {MAX_NAME_LENGTH} characters"
            )
        if example.url is not None:
            _check_url(errors, f"examples.{index}.url", example.url)


def validate_rating(rating: object) -> int:
    """Ratings are whole numbers from 1 to 5."""
    if (
        isinstance(rating, bool)
        or not isinstance(rating, int)
        or not MIN_RATING <= rating <= MAX_RATING
    ):
        raise ValidationFailed(
            {"rating": f"must be an integer between {MIN_RATING} and {MAX_RATING}"}
        )
    return rating
