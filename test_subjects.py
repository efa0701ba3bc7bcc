"""Subject normalization rules."""
import pytest

from simulado.subjects import (
    DIREITO,
    HISTORIA_GEOGRAFIA,
    INFORMATICA,
    LEGISLACAO,
    OUTROS,
    PORTUGUES,
    RLM,
    normalize_subject,
    subject_weight,
)


@pytest.mark.parametrize(
    "label,expected",
    [
        ("Português", PORTUGUES),
        ("Língua Portuguesa", PORTUGUES),
        ("  LÍNGUA PORTUGUESA  ", PORTUGUES),
        ("Raciocínio Lógico", RLM),
        ("Raciocinio Logico", RLM),
        ("Matemática", RLM),
        ("RLM - lógica", RLM),
        ("Informática", INFORMATICA),
        ("noções de informática", INFORMATICA),
        ("História do Paraná", HISTORIA_GEOGRAFIA),
        ("Geografia", HISTORIA_GEOGRAFIA),
        ("Noções de Direito Constitucional", DIREITO),
        ("Direito Penal", DIREITO),
        ("Legislação Específica", LEGISLACAO),
        ("legislação municipal", LEGISLACAO),
    ],
)
def test_known_labels(label, expected):
    assert normalize_subject(label) == expected


def test_first_rule_wins():
    # mentions both "direito" and "legislação"; the law rule comes first
    assert normalize_subject("Legislação e Direito Administrativo") == DIREITO


def test_unknown_label_passes_through_unchanged():
    assert normalize_subject("Atualidades") == "Atualidades"
    assert normalize_subject("  Ética  ") == "  Ética  "


@pytest.mark.parametrize("label", ["", None, "   "])
def test_empty_label_is_outros(label):
    assert normalize_subject(label) == OUTROS


def test_weights():
    assert subject_weight(PORTUGUES) == 1.5
    assert subject_weight(DIREITO) == 3.5
    assert subject_weight(LEGISLACAO) == 3.5
    assert subject_weight("Atualidades") == 1.0
