"""Shape validation of model output.

The model is asked for strict JSON; what comes back is validated against
the pydantic schema in strict mode (no "72" -> 72 coercion, no score
clamping). The outcome is a tagged result so callers can report exactly
which fields were wrong:

    outcome = validate_analysis(raw)
    if isinstance(outcome, ShapeError):
        ...outcome.fields...
    else:
        ...outcome.value...

The one place scores are clamped instead of rejected is
``summarize_for_coaching``, which only cross-references an analysis the
client already holds.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from src.saleslens.schemas.analysis import AnalysisResult, CoachingContext, CoachingScript

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

_FENCE_RE = re.compile(r"```(?:json)?\s*")

ROOT_FIELD = "(root)"
MAX_COACHING_RISK_LENGTH = 20
MAX_COACHING_SUMMARY_LENGTH = 1_000


@dataclass(frozen=True)
class ValidShape(Generic[M]):
    value: M


@dataclass(frozen=True)
class ShapeError:
    reason: str
    fields: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.reason == "invalid_json":
            return "AI returned invalid JSON. Please try again."
        return "AI response is missing required fields. Please try again."


def strip_code_fences(raw_text: str) -> str:
    """Remove markdown code fences the model sometimes wraps JSON in."""
    return _FENCE_RE.sub("", raw_text or "").strip()


def _error_path(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc) or ROOT_FIELD


def violated_fields(exc: ValidationError) -> list[str]:
    """Dotted paths of every field the validation error names, in order, deduplicated."""
    paths: list[str] = []
    for error in exc.errors():
        path = _error_path(error["loc"])
        if path not in paths:
            paths.append(path)
    return paths


def _validate(raw_text: str, model: type[M]) -> ValidShape[M] | ShapeError:
    cleaned = strip_code_fences(raw_text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("analysis.invalid_json", model=model.__name__, length=len(cleaned))
        return ShapeError(reason="invalid_json")

    try:
        return ValidShape(model.model_validate(data, strict=True))
    except ValidationError as exc:
        fields = violated_fields(exc)
        logger.warning("analysis.shape_rejected", model=model.__name__, fields=fields)
        return ShapeError(reason="schema", fields=fields)


def validate_analysis(raw_text: str) -> ValidShape[AnalysisResult] | ShapeError:
    return _validate(raw_text, AnalysisResult)


def validate_coaching_script(raw_text: str) -> ValidShape[CoachingScript] | ShapeError:
    return _validate(raw_text, CoachingScript)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _clamp_score(value: float) -> float:
    return min(100.0, max(0.0, float(value)))


def summarize_for_coaching(raw: Any) -> CoachingContext | None:
    """Reduce a client-supplied analysis to the fields the coach cites.

    Returns None when any of leadScore, closeForecast (numbers),
    worthChasing (bool), dealRisk or coachingSummary (strings) is missing
    or mistyped. Scores are clamped to [0, 100] and the strings truncated.
    """
    if not isinstance(raw, dict):
        return None
    lead_score = raw.get("leadScore")
    close_forecast = raw.get("closeForecast")
    worth_chasing = raw.get("worthChasing")
    deal_risk = raw.get("dealRisk")
    coaching_summary = raw.get("coachingSummary")

    if not (_is_number(lead_score) and _is_number(close_forecast)):
        return None
    if not isinstance(worth_chasing, bool):
        return None
    if not (isinstance(deal_risk, str) and isinstance(coaching_summary, str)):
        return None

    return CoachingContext(
        lead_score=_clamp_score(lead_score),
        worth_chasing=worth_chasing,
        deal_risk=deal_risk[:MAX_COACHING_RISK_LENGTH],
        close_forecast=_clamp_score(close_forecast),
        coaching_summary=coaching_summary[:MAX_COACHING_SUMMARY_LENGTH],
    )
