"""Full-form validation for submitted inspections.

Section models are generated from the question catalog, so adding a question
to the catalog is enough to have it validated on submit. Drafts never pass
through here.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, Literal, Mapping, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, create_model

from app.db.enums import QuestionKind, ResponseValue
from app.services import question_catalog
from app.services.question_catalog import SECTION_NUMBERS, QuestionDefinition, section_key


class _SectionForm(BaseModel):
    # Unknown keys are reported by the mapper as gaps, not rejected here.
    model_config = ConfigDict(extra="ignore")


def _upper(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _decimal(value: Any) -> Any:
    value = _blank_to_none(value)
    if isinstance(value, str):
        return value.strip().replace(",", ".")
    return value


def _stringify(value: Any) -> Any:
    value = _blank_to_none(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _field_for(question: QuestionDefinition) -> tuple[Any, Any]:
    if question.kind == QuestionKind.CHOICE:
        annotation = Annotated[Literal[question.choices], BeforeValidator(_upper)]
        if question.required:
            return (annotation, ...)
        return (Optional[annotation], None)

    if question.kind == QuestionKind.PHOTO_ARRAY:
        if question.required:
            return (Annotated[list[str], Field(min_length=1)], ...)
        return (Optional[list[str]], None)

    if question.numeric:
        return (Annotated[Optional[float], BeforeValidator(_decimal)], None)
    return (Annotated[Optional[str], BeforeValidator(_stringify)], None)


@lru_cache
def section_model(section_number: int) -> type[BaseModel]:
    """Pydantic model for one checklist section, built from the catalog."""
    fields = {
        question.key: _field_for(question)
        for question in question_catalog.questions_for_section(section_number)
    }
    return create_model(
        f"Section{section_number}Form",
        __base__=_SectionForm,
        **fields,
    )


def _message(error: dict, question: QuestionDefinition | None) -> str:
    if error["type"] == "missing":
        return "Field required"
    if error["type"] == "too_short" and question is not None:
        return f"At least one photo is required: {question.caption}"
    return error["msg"]


def _conditional_errors(section_number: int, section: Mapping[str, Any]) -> list[dict[str, str]]:
    errors = []
    for question in question_catalog.questions_for_section(section_number):
        if question.kind != QuestionKind.CHOICE or not question.conditional_on:
            continue
        parent_value = _upper(section.get(question.conditional_on))
        if parent_value != ResponseValue.YES.value:
            continue
        value = section.get(question.key)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(
                {
                    "field": question.field_path,
                    "message": f"Required when {question.conditional_on} is YES",
                }
            )
    return errors


def collect_validation_errors(form_data: Mapping[str, Any]) -> list[dict[str, str]]:
    """Return every field-level problem in a submitted form (empty if valid)."""
    errors: list[dict[str, str]] = []

    for section_number in SECTION_NUMBERS:
        name = section_key(section_number)
        section = form_data.get(name)
        if section is None:
            section = {}
        if not isinstance(section, Mapping):
            errors.append({"field": name, "message": "Section must be an object"})
            continue

        try:
            section_model(section_number).model_validate(dict(section))
        except ValidationError as exc:
            for error in exc.errors():
                loc = [str(part) for part in error["loc"]]
                question = question_catalog.get_question(loc[0]) if loc else None
                errors.append(
                    {
                        "field": ".".join([name, *loc]),
                        "message": _message(error, question),
                    }
                )

        errors.extend(_conditional_errors(section_number, section))

    return errors


def validate_submission(form_data: Mapping[str, Any]) -> None:
    """
    Validate a form being submitted.

    Raises:
        InspectionValidationError: with every collected field error
    """
    # Import here to avoid circular imports
    from app.services.inspection_service import InspectionValidationError

    errors = collect_validation_errors(form_data)
    if errors:
        raise InspectionValidationError(errors)
