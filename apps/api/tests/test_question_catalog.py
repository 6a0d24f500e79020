"""Tests for the checklist question catalog."""

import pytest

from app.db.enums import ImageType, QuestionKind
from app.services import question_catalog
from app.services.question_catalog import (
    QUESTIONS,
    SECTION_NUMBERS,
    QuestionCatalog,
    QuestionDefinition,
    extract_question_number,
)


@pytest.mark.parametrize(
    "key,expected",
    [
        ("q1_equipe_integrada", 1),
        ("q14_usa_equipamentos", 14),
        ("q14_1_inspecionados", 141),
        ("q25_2_escadas_acesso", 252),
        ("fotos_gerais", 0),
    ],
)
def test_extract_question_number(key, expected):
    assert extract_question_number(key) == expected


def test_sections_are_one_through_nine():
    assert SECTION_NUMBERS == tuple(range(1, 10))
    for number in SECTION_NUMBERS:
        assert question_catalog.questions_for_section(number), f"section{number} is empty"


def test_keys_and_slots_are_unique():
    keys = [q.key for q in QUESTIONS]
    assert len(keys) == len(set(keys))

    slots = [(q.section_number, q.question_number) for q in QUESTIONS if q.occupies_slot]
    assert len(slots) == len(set(slots))


def test_free_text_questions_have_dedicated_slot():
    lista = question_catalog.get_question("q14_equipamentos_lista")
    parent = question_catalog.get_question("q14_usa_equipamentos")

    assert lista.kind == QuestionKind.FREE_TEXT
    assert lista.question_number == 149
    assert parent.question_number == 14
    assert question_catalog.get_free_text_sibling(3, 14) is lista


def test_depth_is_numeric_free_text():
    depth = question_catalog.get_question("q25_profundidade")
    assert depth.kind == QuestionKind.FREE_TEXT
    assert depth.numeric is True
    assert depth.conditional_on == "q25_escavacao_profunda"


def test_get_question_by_slot():
    question = question_catalog.get_question_by_slot(2, 11)
    assert question.key == "q11_pt_emitida"
    assert question_catalog.get_question_by_slot(1, 999) is None


def test_photo_fields_resolve_by_image_type():
    assert question_catalog.get_photo_question(ImageType.PDST_FRONT).key == "q11_foto_pdst"
    assert question_catalog.get_photo_question("PT_FRONT").key == "q13_foto_pt"
    assert question_catalog.get_photo_question("GENERAL").key == "fotos_gerais"
    assert question_catalog.get_photo_question("SELFIE") is None


def test_required_flags():
    assert question_catalog.get_question("q1_equipe_integrada").required is True
    # Conditional sub-questions are validated only when the parent is YES
    assert question_catalog.get_question("q14_1_inspecionados").required is False
    assert question_catalog.get_question("q11_foto_pdst").required is True
    assert question_catalog.get_question("q13_foto_pt").required is False


def test_parecer_question_accepts_partial():
    question = question_catalog.get_question("q27_equipe_consciente")
    assert "PARTIAL" in question.choices
    assert "NA" not in question.choices


def test_field_path():
    assert question_catalog.get_question("q11_foto_pdst").field_path == "section1.q11_foto_pdst"


def _q(key, section, number, kind=QuestionKind.CHOICE, **kwargs):
    return QuestionDefinition(
        key=key,
        section_number=section,
        question_number=number,
        label=key,
        kind=kind,
        **kwargs,
    )


def test_catalog_rejects_duplicate_key():
    with pytest.raises(ValueError, match="Duplicate question key"):
        QuestionCatalog((_q("q1_a", 1, 1), _q("q1_a", 2, 1)))


def test_catalog_rejects_shared_slot():
    with pytest.raises(ValueError, match="share slot"):
        QuestionCatalog((_q("q1_a", 1, 1), _q("q1_b", 1, 1)))


def test_catalog_rejects_unknown_parent():
    with pytest.raises(ValueError, match="unknown question"):
        QuestionCatalog((_q("q1_a", 1, 1, conditional_on="q0_missing"),))


def test_catalog_rejects_duplicate_photo_type():
    with pytest.raises(ValueError, match="Duplicate photo field"):
        QuestionCatalog(
            (
                _q("fotos_a", 9, 0, QuestionKind.PHOTO_ARRAY, image_type=ImageType.GENERAL),
                _q("fotos_b", 9, 0, QuestionKind.PHOTO_ARRAY, image_type=ImageType.GENERAL),
            )
        )
