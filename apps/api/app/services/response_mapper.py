"""Mapping between the nested checklist form and stored response/image rows.

Forward: form -> (responses, images). Inverse: rows -> form.
Both directions resolve questions through question_catalog only.
Unresolvable input is reported as a MappingGap and dropped, never raised.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping
from uuid import UUID

from app.db.enums import QuestionKind, ResponseValue
from app.services import question_catalog
from app.services.question_catalog import SECTION_NUMBERS, section_key, section_title

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MappedResponse:
    section_number: int
    section_title: str
    question_number: int
    question_text: str
    response: str
    text_value: str | None = None

    @property
    def slot(self) -> tuple[int, int]:
        return (self.section_number, self.question_number)

    def as_row(self, inspection_id: UUID) -> dict[str, Any]:
        return {
            "inspection_id": inspection_id,
            "section_number": self.section_number,
            "section_title": self.section_title,
            "question_number": self.question_number,
            "question_text": self.question_text,
            "response": self.response,
            "text_value": self.text_value,
        }


@dataclass(frozen=True)
class MappedImage:
    url: str
    caption: str | None
    type: str
    section_number: int
    position: int
    uploaded_by: UUID | None = None

    def as_row(self, inspection_id: UUID) -> dict[str, Any]:
        return {
            "inspection_id": inspection_id,
            "url": self.url,
            "caption": self.caption,
            "type": self.type,
            "section_number": self.section_number,
            "position": self.position,
            "uploaded_by": self.uploaded_by,
        }


@dataclass(frozen=True)
class MappingGap:
    """A form key or stored row that could not be resolved through the catalog."""

    location: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"location": self.location, "reason": self.reason}


@dataclass
class ForwardMapping:
    responses: list[MappedResponse] = field(default_factory=list)
    images: list[MappedImage] = field(default_factory=list)
    gaps: list[MappingGap] = field(default_factory=list)


@dataclass
class InverseMapping:
    form_data: dict[str, dict[str, Any]] = field(default_factory=dict)
    gaps: list[MappingGap] = field(default_factory=list)


def normalize_choice(value: Any) -> str:
    """Upper-case a choice answer; anything outside the known values becomes NA."""
    candidate = str(value).strip().upper()
    if ResponseValue.has_value(candidate):
        return candidate
    return ResponseValue.NA.value


def parse_decimal(value: Any) -> float | None:
    """Read a measurement typed as 2.5, "2.5" or "2,5"; None when it is not a finite number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _gap(gaps: list[MappingGap], location: str, reason: str) -> None:
    logger.warning(f"Checklist mapping gap at {location}: {reason}")
    gaps.append(MappingGap(location=location, reason=reason))


# =============================================================================
# Forward mapping (form -> rows)
# =============================================================================


def map_form_to_records(
    form_data: Mapping[str, Any],
    user_id: UUID | None = None,
) -> ForwardMapping:
    """
    Flatten a nested form submission into response and image rows.

    Sections are read in order section1..section9; keys keep their form order
    inside a section. Null and empty-string values are skipped. Unknown keys
    and keys placed in the wrong section are reported as gaps.
    """
    result = ForwardMapping()

    for section_number in SECTION_NUMBERS:
        name = section_key(section_number)
        section = form_data.get(name)
        if section is None:
            continue
        if not isinstance(section, Mapping):
            _gap(result.gaps, name, "section is not an object")
            continue

        for key, value in section.items():
            location = f"{name}.{key}"
            question = question_catalog.get_question(key)
            if question is None:
                _gap(result.gaps, location, "unknown question key")
                continue
            if question.section_number != section_number:
                _gap(
                    result.gaps,
                    location,
                    f"question belongs to {question.section_key}",
                )
                continue

            if question.kind == QuestionKind.PHOTO_ARRAY:
                _map_photos(question, value, user_id, result)
                continue

            if value is None or value == "":
                continue

            if question.kind == QuestionKind.FREE_TEXT:
                text_value = str(value)
                if question.numeric:
                    number = parse_decimal(value)
                    if number is None:
                        _gap(result.gaps, location, f"non-numeric value for {question.key}")
                        continue
                    text_value = str(number)
                result.responses.append(
                    MappedResponse(
                        section_number=section_number,
                        section_title=section_title(section_number),
                        question_number=question.question_number,
                        question_text=question.label,
                        response=ResponseValue.NA.value,
                        text_value=text_value,
                    )
                )
            else:
                result.responses.append(
                    MappedResponse(
                        section_number=section_number,
                        section_title=section_title(section_number),
                        question_number=question.question_number,
                        question_text=question.label,
                        response=normalize_choice(value),
                    )
                )

    return result


def _map_photos(question, value: Any, user_id: UUID | None, result: ForwardMapping) -> None:
    if value is None or value == "":
        return
    if isinstance(value, str) or not isinstance(value, Iterable):
        _gap(result.gaps, question.field_path, "photo field is not a list")
        return

    position = 0
    for url in value:
        if not url:
            continue
        result.images.append(
            MappedImage(
                url=str(url),
                caption=question.caption,
                type=question.image_type.value,
                section_number=question.section_number,
                position=position,
                uploaded_by=user_id,
            )
        )
        position += 1


def deduplicate_responses(responses: Iterable[MappedResponse]) -> list[MappedResponse]:
    """
    Keep one response per (section_number, question_number).

    The last occurrence wins; slots keep the order in which they were first seen.
    """
    by_slot: dict[tuple[int, int], MappedResponse] = {}
    for response in responses:
        by_slot[response.slot] = response
    return list(by_slot.values())


# =============================================================================
# Inverse mapping (rows -> form)
# =============================================================================


def map_records_to_form(responses: Iterable[Any], images: Iterable[Any]) -> InverseMapping:
    """
    Rebuild the nested form from stored rows.

    Accepts ORM rows or anything exposing the same attributes. Responses are
    resolved by (section_number, question_number) plus the catalog question
    kind. Images are grouped by type alone and keep their stored order.
    """
    result = InverseMapping()

    for row in responses:
        section_number = row.section_number
        question_number = row.question_number
        text_value = getattr(row, "text_value", None)
        location = f"response({section_number},{question_number})"

        question = question_catalog.get_question_by_slot(section_number, question_number)
        if question is not None and question.kind == QuestionKind.CHOICE and text_value:
            # Older rows kept free text in the parent choice slot.
            sibling = question_catalog.get_free_text_sibling(section_number, question_number)
            if sibling is not None:
                question = sibling
        if question is None:
            _gap(result.gaps, location, "no catalog question for this slot")
            continue

        section = result.form_data.setdefault(question.section_key, {})
        if question.kind == QuestionKind.FREE_TEXT:
            if text_value is None:
                _gap(result.gaps, location, "free-text row has no text value")
                continue
            if question.numeric:
                number = parse_decimal(text_value)
                if number is None:
                    # Returned as stored so the inspector can correct it.
                    _gap(result.gaps, location, f"non-numeric value for {question.key}")
                    section[question.key] = text_value
                else:
                    section[question.key] = number
                continue
            section[question.key] = text_value
        else:
            section[question.key] = row.response

    for image in sorted(images, key=lambda img: getattr(img, "position", 0) or 0):
        question = question_catalog.get_photo_question(image.type)
        if question is None:
            _gap(result.gaps, f"image({image.type})", "no photo field for this image type")
            continue
        section = result.form_data.setdefault(question.section_key, {})
        section.setdefault(question.key, []).append(image.url)

    # Drop sections emptied by gaps so hydration never yields {}.
    result.form_data = {name: fields for name, fields in result.form_data.items() if fields}
    return result
