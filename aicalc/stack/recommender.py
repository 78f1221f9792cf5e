"""Turn project requirements and a component catalog into a stack suggestion."""

import logging
import math

from aicalc.catalogs.loader import load_stack_components
from aicalc.stack.models import (
    ProjectRequirements,
    StackCategory,
    StackComponent,
    StackRecommendation,
    StackSuggestion,
)
from aicalc.stack.planning import (
    assess_risks,
    category_priorities,
    category_reasoning,
    create_timeline,
    determine_architecture,
    estimate_costs,
    next_steps,
)
from aicalc.stack.scoring import filter_components, rank_category

logger = logging.getLogger(__name__)

# Priority for a category missing from the priority table
DEFAULT_CATEGORY_PRIORITY = 10


def group_by_category(
    components: list[StackComponent],
) -> dict[StackCategory, list[StackComponent]]:
    """Group preserving first-seen category order and catalog order within each."""
    grouped: dict[StackCategory, list[StackComponent]] = {}
    for component in components:
        grouped.setdefault(component.category, []).append(component)
    return grouped


def recommend_categories(
    components: list[StackComponent],
    requirements: ProjectRequirements,
) -> list[StackRecommendation]:
    """Rank eligible components per category, most important category first."""
    recommendations = []
    for category, members in group_by_category(components).items():
        recommended, alternatives = rank_category(members, requirements)
        recommendations.append(StackRecommendation(
            category=category,
            recommended=recommended,
            alternatives=alternatives,
            reasoning=category_reasoning(category, requirements),
        ))

    priorities = category_priorities(requirements)
    recommendations.sort(
        key=lambda rec: priorities.get(rec.category, DEFAULT_CATEGORY_PRIORITY)
    )
    return recommendations


def overall_score(recommendations: list[StackRecommendation]) -> int:
    """Mean over categories of the mean recommended score, rounded; 0 if empty."""
    if not recommendations:
        return 0
    category_means = [
        sum(r.score for r in rec.recommended) / len(rec.recommended)
        for rec in recommendations
    ]
    return math.floor(sum(category_means) / len(category_means) + 0.5)


def generate_recommendations(
    requirements: ProjectRequirements,
    catalog: list[StackComponent] | None = None,
) -> StackSuggestion:
    """Filter, score and rank *catalog* against *requirements*.

    *catalog* defaults to the bundled stack component catalog. An empty
    result is valid: no categories and an overall score of 0.
    """
    if catalog is None:
        catalog = load_stack_components()

    eligible = filter_components(catalog, requirements)
    recommendations = recommend_categories(eligible, requirements)
    score = overall_score(recommendations)

    logger.info(
        "Stack suggestion: %d eligible components in %d categories, score %d",
        len(eligible), len(recommendations), score,
    )

    return StackSuggestion(
        overall_score=score,
        recommendations=recommendations,
        architecture=determine_architecture(requirements),
        estimated_cost=estimate_costs(requirements, recommendations),
        implementation_timeline=create_timeline(requirements),
        risk_assessment=assess_risks(requirements, recommendations),
        next_steps=next_steps(requirements, recommendations),
    )
