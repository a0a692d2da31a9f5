"""Model-spec matcher: link yachts to yacht models by fuzzy scoring.

When the provider does not say which model a yacht is, the matcher scores
every known model against the yacht and picks the best one above a
threshold. It is a heuristic: a wrong or missing match only leaves specs
incomplete, and a matched model only fills yacht fields that are unset.

Scoring (per candidate model):
    +100  names equal (case-insensitive, trimmed)
    +50   one name contains the other
    +10   per cross pair of words (longer than 2 chars) where one contains
          the other, only when neither rule above matched
    +20   equal cabin counts, both present
    +20   equal water-closet counts, both present

The strictly highest score wins; ties keep the first model encountered.
A candidate is accepted only with a score of at least MATCH_THRESHOLD.
"""

from dataclasses import dataclass, field
from typing import Iterable

from .normalizers import english_text
from .records import Yacht, YachtModel

MATCH_THRESHOLD = 30

EXACT_NAME_SCORE = 100
CONTAINED_NAME_SCORE = 50
WORD_OVERLAP_SCORE = 10
CABINS_SCORE = 20
WC_SCORE = 20
MIN_WORD_LENGTH = 3

# (yacht field, model field) pairs back-filled from a matched model
SPEC_FIELDS = (
    ("length", "loa"),
    ("beam", "beam"),
    ("draft", "draft"),
    ("fuel_capacity", "fuel_tank"),
    ("water_capacity", "water_tank"),
)


@dataclass
class ModelMatch:
    """The selected model and the score it was selected with."""

    model: YachtModel
    score: int


@dataclass
class SpecBackfill:
    """Outcome of applying a model's specs to one yacht."""

    yacht: Yacht
    model: YachtModel
    filled: dict[str, float] = field(default_factory=dict)
    linked: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.filled) or self.linked


def _clean(name: str | None) -> str:
    return (name or "").strip().lower()


def score_model(
    yacht_name: str | None,
    yacht_cabins: int | None,
    yacht_wc: int | None,
    model: YachtModel,
) -> int:
    """Score one candidate model against a yacht's name and layout."""
    score = 0
    yacht_clean = _clean(yacht_name)
    model_clean = _clean(english_text(model.name))

    if yacht_clean and model_clean:
        if yacht_clean == model_clean:
            score += EXACT_NAME_SCORE
        elif yacht_clean in model_clean or model_clean in yacht_clean:
            score += CONTAINED_NAME_SCORE
        else:
            for yacht_word in yacht_clean.split():
                if len(yacht_word) < MIN_WORD_LENGTH:
                    continue
                for model_word in model_clean.split():
                    if len(model_word) < MIN_WORD_LENGTH:
                        continue
                    if yacht_word in model_word or model_word in yacht_word:
                        score += WORD_OVERLAP_SCORE

    if yacht_cabins is not None and model.cabins is not None and yacht_cabins == model.cabins:
        score += CABINS_SCORE
    if yacht_wc is not None and model.wc is not None and yacht_wc == model.wc:
        score += WC_SCORE

    return score


def find_best_model(yacht: Yacht, models: Iterable[YachtModel]) -> ModelMatch | None:
    """Select the best-scoring model for ``yacht``, or ``None`` below threshold."""
    yacht_name = english_text(yacht.name)
    best: ModelMatch | None = None

    for model in models:
        score = score_model(yacht_name, yacht.cabins, yacht.wc, model)
        if best is None or score > best.score:
            best = ModelMatch(model=model, score=score)

    if best is None or best.score < MATCH_THRESHOLD:
        return None
    return best


def apply_model_specs(yacht: Yacht, model: YachtModel) -> dict[str, float]:
    """Fill the yacht's unset spec fields from ``model``.

    Fields that already hold a truthy value are never overwritten. The yacht
    is updated in place.

    Returns:
        The fields that were filled, keyed by yacht field name
    """
    filled = {}
    for yacht_field, model_field in SPEC_FIELDS:
        if getattr(yacht, yacht_field):
            continue
        value = getattr(model, model_field)
        if value is None:
            continue
        setattr(yacht, yacht_field, value)
        filled[yacht_field] = value
    return filled


def resolve_model(
    yacht: Yacht,
    models_by_id: dict[int, YachtModel],
    models: list[YachtModel],
) -> YachtModel | None:
    """Explicit model linkage first, otherwise the fuzzy matcher."""
    if yacht.model_id is not None:
        return models_by_id.get(yacht.model_id)
    match = find_best_model(yacht, models)
    return match.model if match else None


def backfill_yacht(
    yacht: Yacht,
    models_by_id: dict[int, YachtModel],
    models: list[YachtModel],
) -> SpecBackfill | None:
    """Resolve a model for ``yacht``, link it if inferred, and back-fill specs."""
    model = resolve_model(yacht, models_by_id, models)
    if model is None:
        return None

    result = SpecBackfill(yacht=yacht, model=model)
    if yacht.model_id is None:
        yacht.model_id = model.id
        result.linked = True
    if yacht.builder_id is None and model.builder_id is not None:
        yacht.builder_id = model.builder_id
        result.linked = True
    result.filled = apply_model_specs(yacht, model)
    return result


def lacks_specs(yacht: Yacht) -> bool:
    """True when any back-fillable spec field is still unset."""
    return any(not getattr(yacht, yacht_field) for yacht_field, _ in SPEC_FIELDS)


__all__ = [
    "MATCH_THRESHOLD",
    "SPEC_FIELDS",
    "ModelMatch",
    "SpecBackfill",
    "score_model",
    "find_best_model",
    "apply_model_specs",
    "resolve_model",
    "backfill_yacht",
    "lacks_specs",
]
