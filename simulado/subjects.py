"""
Subject normalization: maps free-text subject labels from the different
question banks onto the six canonical subjects used for quotas and weights.
"""
import unicodedata

PORTUGUES = "Português"
RLM = "RLM"
INFORMATICA = "Informática"
HISTORIA_GEOGRAFIA = "História e Geografia"
DIREITO = "Noções de Direito"
LEGISLACAO = "Legislação"
OUTROS = "Outros"

CANONICAL_SUBJECTS = (PORTUGUES, RLM, INFORMATICA, HISTORIA_GEOGRAFIA, DIREITO, LEGISLACAO)

# First match wins. Fragments are compared against the accent-folded,
# lower-cased label.
SUBJECT_RULES = (
    (("portugu", "lingua"), PORTUGUES),
    (("logic", "raciocinio", "matemat"), RLM),
    (("informat",), INFORMATICA),
    (("historia", "geografia"), HISTORIA_GEOGRAFIA),
    (("direito",), DIREITO),
    (("legisla",), LEGISLACAO),
)

# Scoring weight per canonical subject
SUBJECT_WEIGHTS = {
    PORTUGUES: 1.5,
    RLM: 1.5,
    INFORMATICA: 1.5,
    HISTORIA_GEOGRAFIA: 1.5,
    DIREITO: 3.5,
    LEGISLACAO: 3.5,
}
DEFAULT_WEIGHT = 1.0

# Mock exam composition, in presentation order (40 questions)
SIMULATION_QUOTAS = (
    (PORTUGUES, 5),
    (RLM, 5),
    (INFORMATICA, 5),
    (HISTORIA_GEOGRAFIA, 5),
    (DIREITO, 10),
    (LEGISLACAO, 10),
)


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).lower().strip()


def normalize_subject(label: str | None) -> str:
    """
    Map a raw subject label to its canonical subject.

    Empty or missing labels map to "Outros". Labels no rule recognizes are
    returned unchanged so uncatalogued subjects stay visible.
    """
    if not label or not label.strip():
        return OUTROS
    folded = _fold(label)
    for fragments, canonical in SUBJECT_RULES:
        if any(f in folded for f in fragments):
            return canonical
    return label


def subject_weight(subject: str) -> float:
    return SUBJECT_WEIGHTS.get(subject, DEFAULT_WEIGHT)
