"""Eligibility filter and additive scoring of stack components.

A component is eligible only if it overlaps the requirements on every
list-valued axis, supports the exact scalar levels asked for, fits the
budget tier and covers all required compliance regimes. Eligible
components are then scored out of 100:

    language fit       20  (share of requested languages supported)
    use-case fit       25  (share of requested use cases supported)
    maturity           15
    learning curve     10
    popularity         10
    latency profile     5
    throughput profile  5
    integration         5
    budget fit          5
"""

import logging

from aicalc.stack.models import (
    BUDGET_ORDER,
    BudgetRange,
    ComponentRecommendation,
    DeploymentTarget,
    IntegrationComplexity,
    LearningCurve,
    MaturityLevel,
    ProjectRequirements,
    StackComponent,
)

logger = logging.getLogger(__name__)

MAX_SCORE = 100
LANGUAGE_WEIGHT = 20
USE_CASE_WEIGHT = 25
PROFILE_MATCH_POINTS = 5

MATURITY_POINTS = {
    MaturityLevel.EXPERIMENTAL: 3,
    MaturityLevel.BETA: 8,
    MaturityLevel.STABLE: 12,
    MaturityLevel.MATURE: 15,
}

LEARNING_CURVE_POINTS = {
    LearningCurve.EASY: 10,
    LearningCurve.MODERATE: 7,
    LearningCurve.STEEP: 4,
    LearningCurve.EXPERT: 2,
}

INTEGRATION_POINTS = {
    IntegrationComplexity.SIMPLE: 5,
    IntegrationComplexity.MODERATE: 3,
    IntegrationComplexity.COMPLEX: 2,
    IntegrationComplexity.EXPERT: 1,
}

RECOMMENDED_PER_CATEGORY = 3
ALTERNATIVES_PER_CATEGORY = 3


# ---------------------------------------------------------------------------
# Eligibility
# ---------------------------------------------------------------------------


def _overlaps(wanted, supported) -> bool:
    return any(item in supported for item in wanted)


def budget_compatible(component_min: BudgetRange, available: BudgetRange) -> bool:
    return BUDGET_ORDER.index(component_min) <= BUDGET_ORDER.index(available)


def is_eligible(component: StackComponent, requirements: ProjectRequirements) -> bool:
    return (
        _overlaps(requirements.programming_languages, component.supported_languages)
        and _overlaps(requirements.use_cases, component.supported_use_cases)
        and requirements.scalability in component.scalability_support
        and _overlaps(requirements.deployment_targets, component.deployment_targets)
        and budget_compatible(component.min_budget, requirements.budget)
        and _overlaps(requirements.data_types, component.supported_data_types)
        and requirements.data_size in component.supported_data_sizes
        and all(c in component.compliance_support for c in requirements.compliance)
        and requirements.security_level in component.security_features
    )


def filter_components(
    components: list[StackComponent],
    requirements: ProjectRequirements,
) -> list[StackComponent]:
    eligible = [c for c in components if is_eligible(c, requirements)]
    logger.debug("%d of %d components eligible", len(eligible), len(components))
    return eligible


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def _fraction_supported(wanted, supported) -> float:
    if not wanted:
        return 0.0
    return sum(1 for item in wanted if item in supported) / len(wanted)


def _join(values) -> str:
    return ", ".join(v.value for v in values)


def budget_points(component_min: BudgetRange, available: BudgetRange) -> int:
    """5 within budget, 3 one tier above it, 1 otherwise."""
    gap = BUDGET_ORDER.index(component_min) - BUDGET_ORDER.index(available)
    if gap <= 0:
        return 5
    if gap == 1:
        return 3
    return 1


def integration_notes(component: StackComponent, requirements: ProjectRequirements) -> str | None:
    notes = []
    if component.dependencies:
        notes.append(f"Requires: {', '.join(component.dependencies)}")
    if component.integration_complexity is IntegrationComplexity.EXPERT:
        notes.append("Consider hiring specialists or using managed services")
    if (
        DeploymentTarget.EDGE in requirements.deployment_targets
        and DeploymentTarget.EDGE not in component.deployment_targets
    ):
        notes.append("May need additional optimization for edge deployment")
    return ". ".join(notes) if notes else None


def score_component(
    component: StackComponent,
    requirements: ProjectRequirements,
) -> ComponentRecommendation:
    score = 0.0
    reasons: list[str] = []
    concerns: list[str] = []

    language = _fraction_supported(
        requirements.programming_languages, component.supported_languages
    ) * LANGUAGE_WEIGHT
    score += language
    if language > 15:
        reasons.append(
            f"Excellent language support for {_join(requirements.programming_languages)}"
        )

    use_case = _fraction_supported(
        requirements.use_cases, component.supported_use_cases
    ) * USE_CASE_WEIGHT
    score += use_case
    if use_case > 20:
        reasons.append(f"Specifically designed for {_join(requirements.use_cases)}")

    maturity = MATURITY_POINTS[component.maturity]
    score += maturity
    if maturity > 12:
        reasons.append(f"Mature and stable ({component.maturity.value})")
    elif maturity < 8:
        concerns.append(f"Still in {component.maturity.value} stage")

    learning = LEARNING_CURVE_POINTS[component.learning_curve]
    score += learning
    if learning < 5:
        concerns.append(f"Steep learning curve ({component.learning_curve.value})")

    score += component.popularity_score
    if component.popularity_score > 8:
        reasons.append("Strong community support and popularity")

    if requirements.latency in component.latency_profile:
        score += PROFILE_MATCH_POINTS
    if requirements.throughput in component.throughput_profile:
        score += PROFILE_MATCH_POINTS

    integration = INTEGRATION_POINTS[component.integration_complexity]
    score += integration
    if integration < 2:
        concerns.append("Complex integration required")

    budget = budget_points(component.min_budget, requirements.budget)
    score += budget
    if budget < 3:
        concerns.append("May exceed budget constraints")

    return ComponentRecommendation(
        component=component,
        score=min(score, MAX_SCORE),
        match_reasons=reasons,
        concerns=concerns,
        integration_notes=integration_notes(component, requirements),
    )


def rank_category(
    components: list[StackComponent],
    requirements: ProjectRequirements,
) -> tuple[list[ComponentRecommendation], list[ComponentRecommendation]]:
    """Score and split into (recommended, alternatives); ties keep catalog order."""
    scored = sorted(
        (score_component(c, requirements) for c in components),
        key=lambda r: r.score,
        reverse=True,
    )
    cut = RECOMMENDED_PER_CATEGORY
    return scored[:cut], scored[cut:cut + ALTERNATIVES_PER_CATEGORY]
