"""
6C Scoring Engine — weighted category averages, personality label, description.

Pure functions only: no I/O, inputs are never mutated, identical responses
always produce identical output. Invalid or missing answers degrade to the
scale midpoint instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from assessment_config import (
    CATEGORIES,
    DEFAULT_CONFIG,
    PREFERENCE_QUESTIONS,
    SCALE_MAX,
    SCALE_MIN,
    ScoringConfig,
)

STRENGTH_THRESHOLD = 4.0
GROWTH_THRESHOLD = 3.0


@dataclass
class ScoringResult:
    scores: dict[str, float]
    personality_label: str
    description: str
    strengths: list[str] = field(default_factory=list)
    growth_areas: list[str] = field(default_factory=list)
    preferences: dict[str, Any] = field(default_factory=dict)


def normalize_responses(responses: Mapping[Any, Any] | None) -> dict[int, Any]:
    """Return a copy keyed by int question id. Keys that aren't ids are dropped."""
    normalized: dict[int, Any] = {}
    for key, value in (responses or {}).items():
        try:
            qid = int(key)
        except (TypeError, ValueError):
            continue
        normalized[qid] = value
    return normalized


def likert_value(answer: Any, midpoint: int = DEFAULT_CONFIG.midpoint) -> float:
    """Coerce one answer onto the 1-5 scale, or the midpoint when unusable."""
    if isinstance(answer, bool):
        return float(midpoint)
    if isinstance(answer, str):
        try:
            answer = float(answer.strip())
        except ValueError:
            return float(midpoint)
    if isinstance(answer, (int, float)) and SCALE_MIN <= answer <= SCALE_MAX:
        return float(answer)
    return float(midpoint)


def calculate_scores(
    responses: Mapping[Any, Any] | None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> dict[str, float]:
    """Weighted mean per category, rounded to 2 dp and kept within [1.0, 5.0]."""
    answers = normalize_responses(responses)
    scores: dict[str, float] = {}
    for category in config.categories:
        weighted = config.questions_for(category)
        total_weight = sum(w for _, w in weighted)
        if not weighted or total_weight <= 0:
            scores[category] = float(config.midpoint)
            continue
        total = sum(likert_value(answers.get(qid), config.midpoint) * w for qid, w in weighted)
        average = total / total_weight
        scores[category] = round(min(float(SCALE_MAX), max(float(SCALE_MIN), average)), 2)
    return scores


def rank_categories(
    scores: Mapping[str, float],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> list[str]:
    """Categories by descending score; equal scores keep the fixed category order."""
    order = {c: i for i, c in enumerate(config.categories)}
    known = [c for c in scores if c in order]
    return sorted(known, key=lambda c: (-scores[c], order[c]))


def get_personality_label(
    scores: Mapping[str, float],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> str:
    ranked = rank_categories(scores, config)
    if len(ranked) < 2:
        return config.fallback_label
    primary, secondary = ranked[0], ranked[1]
    return (
        config.labels.get(f"{primary}-{secondary}")
        or config.labels.get(f"{secondary}-{primary}")
        or config.fallback_label
    )


def generate_description(
    scores: Mapping[str, float],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> str:
    """Join the label summary with the top-two category sentences."""
    ranked = rank_categories(scores, config)
    if not ranked:
        return config.fallback_description

    label = get_personality_label(scores, config)
    parts = [
        config.label_summaries.get(label, ""),
        config.primary_descriptions.get(ranked[0], config.fallback_description),
    ]
    if len(ranked) > 1:
        parts.append(config.secondary_descriptions.get(ranked[1], ""))
    return " ".join(p for p in parts if p)


def strengths_and_growth(
    scores: Mapping[str, float],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> tuple[list[str], list[str]]:
    """Strengths score >= 4.0 and growth areas < 3.0.

    Without any clear strength, fall back to the top two and bottom two
    ranked categories.
    """
    ranked = rank_categories(scores, config)
    strengths = [c for c in ranked if scores[c] >= STRENGTH_THRESHOLD]
    growth = [c for c in ranked if scores[c] < GROWTH_THRESHOLD]
    if not strengths:
        return ranked[:2], ranked[-2:]
    return strengths, growth


def extract_preferences(responses: Mapping[Any, Any] | None) -> dict[str, Any]:
    """Unscored preference answers, with unknown options dropped."""
    answers = normalize_responses(responses)
    preferences: dict[str, Any] = {}
    for question in PREFERENCE_QUESTIONS:
        raw = answers.get(question.id)
        if isinstance(raw, str) and raw in question.options:
            preferences[question.key] = [raw] if question.multi_select else raw
        elif isinstance(raw, (list, tuple)):
            valid = [v for v in raw if isinstance(v, str) and v in question.options]
            if valid:
                preferences[question.key] = valid if question.multi_select else valid[0]
    return preferences


def consolidate_scores(
    sources: Iterable[tuple[Mapping[str, float], float]],
    categories: Iterable[str] = CATEGORIES,
) -> dict[str, float]:
    """Weighted mean of several score sets; categories with no weight stay at 3.0."""
    sources = list(sources)
    consolidated: dict[str, float] = {}
    for category in categories:
        weighted_sum = 0.0
        total_weight = 0.0
        for scores, weight in sources:
            value = scores.get(category)
            if isinstance(value, (int, float)) and not isinstance(value, bool) and weight > 0:
                weighted_sum += value * weight
                total_weight += weight
        if total_weight > 0:
            consolidated[category] = round(weighted_sum / total_weight, 2)
        else:
            consolidated[category] = 3.0
    return consolidated


def describe_scores(
    scores: Mapping[str, float],
    config: ScoringConfig = DEFAULT_CONFIG,
    preferences: dict[str, Any] | None = None,
) -> ScoringResult:
    """Label, description and strengths for an already computed score set."""
    strengths, growth = strengths_and_growth(scores, config)
    return ScoringResult(
        scores=dict(scores),
        personality_label=get_personality_label(scores, config),
        description=generate_description(scores, config),
        strengths=strengths,
        growth_areas=growth,
        preferences=dict(preferences or {}),
    )


def score_responses(
    responses: Mapping[Any, Any] | None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> ScoringResult:
    """Full scoring pass over one Response Set."""
    scores = calculate_scores(responses, config)
    return describe_scores(scores, config, extract_preferences(responses))
