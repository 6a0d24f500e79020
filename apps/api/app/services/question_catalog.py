"""Question catalog for the field safety checklist.

Single registry of every question in the nine-section checklist. The forward
mapper, the inverse mapper and submission validation all read from here, so a
question is added or relabelled in exactly one place.

Numbering:
- choice and photo questions take their number from the key
  (``q14_usa_equipamentos`` -> 14, ``q14_1_inspecionados`` -> 141)
- free-text questions own a dedicated slot ``base * 10 + 9`` so they never
  share a (section, question) slot with their parent choice question
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from app.db.enums import ImageType, QuestionKind, ResponseValue


DEFAULT_CHOICES: tuple[str, ...] = (
    ResponseValue.YES.value,
    ResponseValue.NO.value,
    ResponseValue.NA.value,
)
PARECER_CHOICES: tuple[str, ...] = (
    ResponseValue.YES.value,
    ResponseValue.NO.value,
    ResponseValue.PARTIAL.value,
)

SECTION_TITLES: dict[int, str] = {
    1: "PLANEJAMENTO E INTEGRAÇÃO DA EQUIPE",
    2: "PERMISSÃO DE TRABALHO",
    3: "MÁQUINAS E EQUIPAMENTOS",
    4: "MOVIMENTAÇÃO DE CARGAS",
    5: "EPIs",
    6: "SINALIZAÇÃO",
    7: "ESCAVAÇÕES",
    8: "PARECER FINAL",
    9: "REGISTRO FOTOGRÁFICO",
}

SECTION_NUMBERS: tuple[int, ...] = tuple(sorted(SECTION_TITLES))

_SUB_QUESTION_RE = re.compile(r"^q(\d+)_(\d+)_")
_QUESTION_RE = re.compile(r"^q(\d+)")


def extract_question_number(key: str) -> int:
    """
    Derive the numeric question id from a form key.

    q14_1_inspecionados -> 141, q14_usa_equipamentos -> 14, fotos_gerais -> 0
    """
    match = _SUB_QUESTION_RE.match(key)
    if match:
        return int(match.group(1)) * 10 + int(match.group(2))
    match = _QUESTION_RE.match(key)
    if match:
        return int(match.group(1))
    return 0


def section_key(section_number: int) -> str:
    return f"section{section_number}"


@dataclass(frozen=True)
class QuestionDefinition:
    """One checklist question."""

    key: str
    section_number: int
    question_number: int
    label: str
    kind: QuestionKind
    conditional_on: str | None = None
    required: bool = False
    choices: tuple[str, ...] = ()
    numeric: bool = False
    image_type: ImageType | None = None
    caption: str | None = None

    @property
    def section_key(self) -> str:
        return section_key(self.section_number)

    @property
    def field_path(self) -> str:
        """Dotted path used in validation errors, e.g. section1.q11_foto_pdst."""
        return f"{self.section_key}.{self.key}"

    @property
    def occupies_slot(self) -> bool:
        """Photo arrays are stored as images, not response rows."""
        return self.kind != QuestionKind.PHOTO_ARRAY


def _choice(
    key: str,
    section: int,
    label: str,
    *,
    conditional_on: str | None = None,
    choices: tuple[str, ...] = DEFAULT_CHOICES,
) -> QuestionDefinition:
    # Conditional sub-questions are only required when their parent is YES.
    return QuestionDefinition(
        key=key,
        section_number=section,
        question_number=extract_question_number(key),
        label=label,
        kind=QuestionKind.CHOICE,
        conditional_on=conditional_on,
        required=conditional_on is None,
        choices=choices,
    )


def _free_text(
    key: str,
    section: int,
    label: str,
    *,
    conditional_on: str | None = None,
    numeric: bool = False,
) -> QuestionDefinition:
    return QuestionDefinition(
        key=key,
        section_number=section,
        question_number=extract_question_number(key) * 10 + 9,
        label=label,
        kind=QuestionKind.FREE_TEXT,
        conditional_on=conditional_on,
        numeric=numeric,
    )


def _photos(
    key: str,
    section: int,
    label: str,
    *,
    image_type: ImageType,
    required: bool,
) -> QuestionDefinition:
    return QuestionDefinition(
        key=key,
        section_number=section,
        question_number=extract_question_number(key),
        label=label,
        kind=QuestionKind.PHOTO_ARRAY,
        required=required,
        image_type=image_type,
        caption=label,
    )


QUESTIONS: tuple[QuestionDefinition, ...] = (
    # Section 1 - Planejamento e integração da equipe
    _choice("q1_equipe_integrada", 1, "A equipe presente na frente de serviço foi integrada?"),
    _choice("q2_cracha_visivel", 1, "Todos os funcionários possuem crachá visível com nome e foto?"),
    _choice("q3_lider_presente", 1, "O líder da equipe está presente na frente de serviço?"),
    _choice(
        "q4_pdst_elaborado", 1,
        "O PDST foi elaborado no local da atividade com a participação de todos?",
    ),
    _choice(
        "q5_pdst_passos_adequados", 1,
        "O PDST possui número adequado de passos cobrindo toda as atividades?",
    ),
    _choice(
        "q6_riscos_condizentes", 1,
        "Os Riscos ALTOS e MÉDIOS identificados estão condizentes com os passos?",
    ),
    _choice(
        "q7_barreiras_controle", 1,
        "Para riscos altos, há barreiras de controle listadas (Exceto para deslocamento)?",
    ),
    _choice("q8_pdst_assinado", 1, "O formulário do PDST está datado e assinado pela equipe?"),
    _choice("q9_lider_identificado", 1, "O líder da equipe está identificado no PDST?"),
    _choice(
        "q10_reuniao_pretrab", 1,
        "A Reunião de Pré-Trabalho foi conduzida com linguagem clara e envolvimento da equipe?",
    ),
    _photos("q11_foto_pdst", 1, "Foto do PDST", image_type=ImageType.PDST_FRONT, required=True),
    # Section 2 - Permissão de trabalho
    _choice(
        "q11_pt_emitida", 2,
        "Foi emitida PT antes do início da atividade para as atividades críticas?",
    ),
    _choice(
        "q12_emitente_treinado", 2,
        "O emitente está treinado e com cadastro válido? (2 anos BRK / 1 ano terceiros)",
    ),
    _photos(
        "q13_foto_pt", 2, "Foto da Permissão de Trabalho",
        image_type=ImageType.PT_FRONT, required=False,
    ),
    # Section 3 - Máquinas e equipamentos
    _choice(
        "q14_usa_equipamentos", 3,
        "A equipe utiliza equipamentos manuais (serra cliper; policorte; compactador)?",
    ),
    _free_text(
        "q14_equipamentos_lista", 3, "Quais equipamentos?",
        conditional_on="q14_usa_equipamentos",
    ),
    _choice(
        "q14_1_inspecionados", 3,
        "Os equipamentos foram inspecionados e liberadas pela área de Segurança do Trabalho?",
        conditional_on="q14_usa_equipamentos",
    ),
    _choice(
        "q14_2_operador_treinado", 3,
        "O operador do equipamento possui treinamento específico e dentro do prazo de validade?",
        conditional_on="q14_usa_equipamentos",
    ),
    _choice(
        "q14_4_checklist_preuso", 3,
        "Foi aplicado checklist de pré-uso do equipamento?",
        conditional_on="q14_usa_equipamentos",
    ),
    _choice(
        "q14_5_combustivel_certificado", 3,
        "O combustível utilizado é transportado em containers certificados pelo INMETRO?",
        conditional_on="q14_usa_equipamentos",
    ),
    _choice(
        "q14_6_fds_disponivel", 3,
        "A Ficha de Dados de Segurança (FDS) do produto químico está disponível na frente de serviço?",
        conditional_on="q14_usa_equipamentos",
    ),
    _choice(
        "q14_7_transporte_seguro", 3,
        "Os equipamentos são transportados em local seguro e bem amarrado, sem risco de queda?",
        conditional_on="q14_usa_equipamentos",
    ),
    # Section 4 - Movimentação de cargas
    _choice(
        "q15_usa_maquinas", 4,
        "A equipe utiliza máquinas para movimentação de materiais (retroescavadeira; munck)?",
    ),
    _free_text(
        "q15_maquinas_lista", 4, "Quais máquinas?",
        conditional_on="q15_usa_maquinas",
    ),
    _choice(
        "q15_1_maquina_inspecionada", 4,
        "A máquina foi inspecionada e liberada pela área de Segurança do Trabalho?",
        conditional_on="q15_usa_maquinas",
    ),
    _choice(
        "q15_2_operador_treinado", 4,
        "O operador de máquina possui treinamento específico e dentro do prazo de validade?",
        conditional_on="q15_usa_maquinas",
    ),
    _choice(
        "q15_3_operador_cracha", 4,
        "O operador de máquina possui crachá de identificação constando a data de validade do ASO válido?",
        conditional_on="q15_usa_maquinas",
    ),
    _choice(
        "q15_4_checklist_maquina", 4,
        "Foi aplicado checklist de pré-uso da máquina?",
        conditional_on="q15_usa_maquinas",
    ),
    _choice(
        "q15_5_area_isolada", 4,
        "A área de movimentação de carga está isolada e livre do acesso de pessoas?",
        conditional_on="q15_usa_maquinas",
    ),
    _choice(
        "q15_6_acessorios_inspecionados", 4,
        "Acessórios de içamento foram inspecionados (FR.049)?",
        conditional_on="q15_usa_maquinas",
    ),
    _choice(
        "q15_7_cargas_guiadas", 4,
        "Cargas estão sendo guiadas com cordas/cabos (sem uso das mãos)?",
        conditional_on="q15_usa_maquinas",
    ),
    _choice(
        "q16_cunhas_disponiveis", 4,
        "Cunhas separadoras disponíveis para materiais com risco de prensamento?",
    ),
    _choice("q17_caminhoes_calcos", 4, "Caminhões/veículos pesados possuem 4 calços em uso?"),
    # Section 5 - EPIs
    _choice("q18_uso_epi", 5, "Funcionário faz uso de todos os EPI, conforme risco da atividade?"),
    _choice("q19_epi_adequado", 5, "EPIs adequados ao risco, em bom estado de conservação?"),
    _choice(
        "q20_bolsa_epi", 5,
        "O funcionário possui bolsa ou local adequado para transporte de EPI?",
    ),
    _choice(
        "q21_lanterna_noturna", 5,
        "Funcionário possui lanterna de cabeça para atividades noturnas?",
    ),
    # Section 6 - Sinalização
    _choice(
        "q22_local_sinalizado", 6,
        "O local está bem sinalizado com Placas, cones, fitas zebradas etc., conforme PR.004.COR.TCR?",
    ),
    _choice("q23_veiculos_barreira", 6, "Veículos barreira posicionados corretamente?"),
    _choice(
        "q24_dispositivos_luminosos", 6,
        "Para atividades noturnas: dispositivos luminosos instalados?",
    ),
    # Section 7 - Escavações
    _choice("q25_escavacao_profunda", 7, "A escavação >1,25m de profundidade?"),
    _free_text(
        "q25_profundidade", 7, "Profundidade da escavação (m)",
        conditional_on="q25_escavacao_profunda", numeric=True,
    ),
    _choice(
        "q25_1_escoramento", 7, "Escoramento ou rampa de 45°?",
        conditional_on="q25_escavacao_profunda",
    ),
    _choice(
        "q25_2_escadas_acesso", 7, "Escadas ou rampas de acesso?",
        conditional_on="q25_escavacao_profunda",
    ),
    _choice("q26_materiais_distantes", 7, "Materiais distantes ≥1m das bordas?"),
    # Section 8 - Parecer final
    _choice(
        "q27_equipe_consciente", 8,
        "Equipe consciente dos riscos e atendendo às diretrizes de segurança?",
        choices=PARECER_CHOICES,
    ),
    _choice("q28_fortalecer_realizado", 8, "Foi realizado o FORTALECER com a equipe em campo?"),
    _free_text(
        "q28_temas", 8, "Quais temas foram abordados no FORTALECER?",
        conditional_on="q28_fortalecer_realizado",
    ),
    _choice(
        "q29_indicacao_fortalecer", 8,
        "Indicação de funcionários para participação no FORTALECER em sala?",
    ),
    _free_text(
        "q29_nomes", 8, "Indicar nomes dos funcionários",
        conditional_on="q29_indicacao_fortalecer",
    ),
    _choice("q30_paralisacao", 8, "Houve necessidade de paralização da atividade?"),
    _choice("q31_nc_pendentes", 8, "Ficou não conformidades pendentes de correção?"),
    _free_text(
        "q31_descricao_nc", 8, "Descrever não conformidades pendentes",
        conditional_on="q31_nc_pendentes",
    ),
    # Section 9 - Registro fotográfico
    _photos(
        "fotos_gerais", 9, "Registro fotográfico geral",
        image_type=ImageType.GENERAL, required=True,
    ),
)


class QuestionCatalog:
    """
    Indexed, read-only view over a set of question definitions.

    Raises ValueError on construction if two questions share a key or a
    (section, question_number) response slot.
    """

    def __init__(self, questions: tuple[QuestionDefinition, ...]):
        self._questions = questions
        self._by_key: dict[str, QuestionDefinition] = {}
        self._by_slot: dict[tuple[int, int], QuestionDefinition] = {}
        self._by_image_type: dict[ImageType, QuestionDefinition] = {}
        self._by_section: dict[int, list[QuestionDefinition]] = {}

        for question in questions:
            if question.section_number not in SECTION_TITLES:
                raise ValueError(
                    f"Question {question.key} has unknown section {question.section_number}"
                )
            if question.key in self._by_key:
                raise ValueError(f"Duplicate question key: {question.key}")
            self._by_key[question.key] = question
            self._by_section.setdefault(question.section_number, []).append(question)

            if question.kind == QuestionKind.PHOTO_ARRAY:
                if question.image_type is None:
                    raise ValueError(f"Photo question {question.key} has no image type")
                if question.image_type in self._by_image_type:
                    raise ValueError(f"Duplicate photo field for image type {question.image_type.value}")
                self._by_image_type[question.image_type] = question
                continue

            slot = (question.section_number, question.question_number)
            if slot in self._by_slot:
                raise ValueError(
                    f"Questions {self._by_slot[slot].key} and {question.key} share slot {slot}"
                )
            self._by_slot[slot] = question

        for question in questions:
            if question.conditional_on and question.conditional_on not in self._by_key:
                raise ValueError(
                    f"Question {question.key} depends on unknown question {question.conditional_on}"
                )

    def __iter__(self):
        return iter(self._questions)

    def __len__(self) -> int:
        return len(self._questions)

    def get_question(self, key: str) -> QuestionDefinition | None:
        return self._by_key.get(key)

    def get_question_by_slot(
        self, section_number: int, question_number: int
    ) -> QuestionDefinition | None:
        return self._by_slot.get((section_number, question_number))

    def get_photo_question(self, image_type: ImageType | str) -> QuestionDefinition | None:
        try:
            return self._by_image_type.get(ImageType(image_type))
        except ValueError:
            return None

    def get_free_text_sibling(
        self, section_number: int, question_number: int
    ) -> QuestionDefinition | None:
        """
        Free-text question attached to the choice question at this slot.

        Rows written before free text had its own slot stored the text under
        the parent's number (e.g. q14_equipamentos_lista at 14).
        """
        return self._by_slot.get((section_number, question_number * 10 + 9))

    def questions_for_section(self, section_number: int) -> list[QuestionDefinition]:
        return list(self._by_section.get(section_number, []))

    @property
    def photo_questions(self) -> list[QuestionDefinition]:
        return list(self._by_image_type.values())


def section_title(section_number: int) -> str:
    return SECTION_TITLES.get(section_number, f"Seção {section_number}")


catalog = QuestionCatalog(QUESTIONS)


def get_question(key: str) -> QuestionDefinition | None:
    """Look up a question by its form key."""
    return catalog.get_question(key)


def get_question_by_slot(section_number: int, question_number: int) -> QuestionDefinition | None:
    """Look up the choice or free-text question stored at a response slot."""
    return catalog.get_question_by_slot(section_number, question_number)


def get_photo_question(image_type: ImageType | str) -> QuestionDefinition | None:
    """Look up the photo field that owns images of this type."""
    return catalog.get_photo_question(image_type)


def get_free_text_sibling(section_number: int, question_number: int) -> QuestionDefinition | None:
    return catalog.get_free_text_sibling(section_number, question_number)


def questions_for_section(section_number: int) -> list[QuestionDefinition]:
    return catalog.questions_for_section(section_number)
