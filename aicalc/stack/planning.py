"""Derived planning outputs: architecture, cost, timeline, risks, next steps."""

import math

from aicalc.stack.models import (
    ArchitecturePattern,
    BudgetRange,
    CostBreakdown,
    CostEstimate,
    DeploymentTarget,
    IntegrationComplexity,
    ProjectRequirements,
    ProjectType,
    Risk,
    RiskAssessment,
    RiskLevel,
    RiskType,
    ScalabilityLevel,
    SecurityLevel,
    StackCategory,
    StackRecommendation,
    TeamSize,
    TimelineEstimate,
    TimelinePhase,
)

# ---------------------------------------------------------------------------
# Category ordering and reasoning
# ---------------------------------------------------------------------------

BASE_CATEGORY_PRIORITIES: dict[StackCategory, int] = {
    StackCategory.ML_FRAMEWORK: 1,
    StackCategory.DATA_PROCESSING: 2,
    StackCategory.DATA_STORAGE: 3,
    StackCategory.MODEL_TRAINING: 4,
    StackCategory.MODEL_SERVING: 5,
    StackCategory.DEPLOYMENT: 6,
    StackCategory.MONITORING: 7,
    StackCategory.EXPERIMENT_TRACKING: 8,
    StackCategory.ORCHESTRATION: 9,
    StackCategory.INFRASTRUCTURE: 10,
    StackCategory.SECURITY: 11,
    StackCategory.FEATURE_STORE: 12,
    StackCategory.MODEL_REGISTRY: 13,
    StackCategory.DATA_INGESTION: 14,
    StackCategory.VISUALIZATION: 15,
}

PRIORITY_OVERRIDES: dict[ProjectType, dict[StackCategory, int]] = {
    ProjectType.RESEARCH: {
        StackCategory.EXPERIMENT_TRACKING: 3,
        StackCategory.VISUALIZATION: 4,
    },
    ProjectType.PRODUCTION: {
        StackCategory.MONITORING: 3,
        StackCategory.SECURITY: 4,
        StackCategory.DEPLOYMENT: 2,
    },
}


def category_priorities(requirements: ProjectRequirements) -> dict[StackCategory, int]:
    """Lower is shown first. Ties keep the order categories were found in."""
    priorities = dict(BASE_CATEGORY_PRIORITIES)
    priorities.update(PRIORITY_OVERRIDES.get(requirements.project_type, {}))
    return priorities


def _join(values) -> str:
    return ", ".join(v.value for v in values)


def category_reasoning(category: StackCategory, r: ProjectRequirements) -> str:
    templates = {
        StackCategory.ML_FRAMEWORK: (
            f"Based on your {_join(r.use_cases)} use case and "
            f"{_join(r.programming_languages)} language preference"
        ),
        StackCategory.MODEL_SERVING: (
            f"For {r.latency.value} latency requirements and "
            f"{_join(r.deployment_targets)} deployment"
        ),
        StackCategory.DATA_STORAGE: (
            f"Considering your {r.data_size.value} dataset size and "
            f"{_join(r.data_types)} data types"
        ),
        StackCategory.DATA_PROCESSING: (
            f"For handling {r.data_size.value} datasets with "
            f"{r.scalability.value} scalability needs"
        ),
        StackCategory.MONITORING: (
            f"Essential for {r.project_type.value} projects with "
            f"{r.security_level.value} security requirements"
        ),
        StackCategory.DEPLOYMENT: (
            f"Optimized for {_join(r.deployment_targets)} deployment targets"
        ),
        StackCategory.ORCHESTRATION: (
            f"Required for {r.scalability.value} scalability with "
            f"{r.team_size.value} team size"
        ),
        StackCategory.EXPERIMENT_TRACKING: (
            f"Important for {r.project_type.value} projects with "
            f"{r.timeline_weeks}-week timeline"
        ),
        StackCategory.DATA_INGESTION: (
            f"For processing {_join(r.data_types)} data types at "
            f"{r.throughput.value} throughput"
        ),
        StackCategory.MODEL_TRAINING: (
            f"Suitable for {_join(r.use_cases)} with {r.budget.value} budget constraints"
        ),
        StackCategory.FEATURE_STORE: (
            f"Recommended for {r.scalability.value} architecture with "
            f"{r.data_size.value} data volume"
        ),
        StackCategory.MODEL_REGISTRY: (
            f"Essential for {r.project_type.value} projects with team collaboration needs"
        ),
        StackCategory.INFRASTRUCTURE: (
            f"Supporting {_join(r.deployment_targets)} deployment with "
            f"{r.security_level.value} security"
        ),
        StackCategory.SECURITY: (
            f"Meeting {_join(r.compliance)} compliance and "
            f"{r.security_level.value} security level"
        ),
        StackCategory.VISUALIZATION: (
            f"For monitoring and analysis of {_join(r.use_cases)} workflows"
        ),
    }
    return templates.get(category, "Recommended based on your project requirements")


# ---------------------------------------------------------------------------
# Architecture
# ---------------------------------------------------------------------------


def determine_architecture(requirements: ProjectRequirements) -> ArchitecturePattern:
    targets = requirements.deployment_targets
    if DeploymentTarget.EDGE in targets or DeploymentTarget.MOBILE in targets:
        return ArchitecturePattern.EDGE_CLOUD
    if requirements.scalability is ScalabilityLevel.CLOUD_NATIVE:
        return ArchitecturePattern.SERVERLESS
    if (
        requirements.scalability is ScalabilityLevel.DISTRIBUTED
        or requirements.team_size is TeamSize.LARGE_TEAM
    ):
        return ArchitecturePattern.MICROSERVICES
    if requirements.project_type is ProjectType.ENTERPRISE:
        return ArchitecturePattern.HYBRID
    return ArchitecturePattern.MONOLITHIC


# ---------------------------------------------------------------------------
# Cost
# ---------------------------------------------------------------------------

# Total project budget per tier (USD)
BUDGET_RANGES: dict[BudgetRange, tuple[int, int]] = {
    BudgetRange.MINIMAL: (0, 1_000),
    BudgetRange.SMALL: (1_000, 10_000),
    BudgetRange.MEDIUM: (10_000, 50_000),
    BudgetRange.LARGE: (50_000, 200_000),
    BudgetRange.ENTERPRISE: (200_000, 1_000_000),
}

MONTHLY_SHARE = 0.1

COST_BREAKDOWN = [
    CostBreakdown(category="Infrastructure", percentage=40,
                  description="Cloud services, compute, storage"),
    CostBreakdown(category="Software Licenses", percentage=20,
                  description="Commercial tools and services"),
    CostBreakdown(category="Development", percentage=30,
                  description="Development and integration effort"),
    CostBreakdown(category="Operations", percentage=10,
                  description="Monitoring, maintenance, support"),
]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def complexity_multiplier(
    requirements: ProjectRequirements,
    recommendations: list[StackRecommendation],
) -> float:
    multiplier = 1.0
    if requirements.scalability is ScalabilityLevel.DISTRIBUTED:
        multiplier += 0.5
    if len(requirements.compliance) > 1:
        multiplier += 0.3
    if requirements.security_level is SecurityLevel.CRITICAL:
        multiplier += 0.4
    if len(recommendations) > 8:
        multiplier += 0.2
    return multiplier


def estimate_costs(
    requirements: ProjectRequirements,
    recommendations: list[StackRecommendation],
) -> CostEstimate:
    low, high = BUDGET_RANGES[requirements.budget]
    multiplier = complexity_multiplier(requirements, recommendations)
    return CostEstimate(
        budget=requirements.budget,
        monthly_min=_round_half_up(low * multiplier * MONTHLY_SHARE),
        monthly_max=_round_half_up(high * multiplier * MONTHLY_SHARE),
        breakdown=COST_BREAKDOWN,
    )


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------

MIN_TIMELINE_WEEKS = 8

# (name, share of the timeline, description); each phase depends on the previous
TIMELINE_PHASES = [
    ("Planning & Setup", 0.15,
     "Environment setup, tool selection, architecture design"),
    ("Data Infrastructure", 0.25,
     "Data storage, processing pipeline, feature engineering"),
    ("Model Development", 0.35,
     "Model training, experimentation, validation"),
    ("Deployment & Integration", 0.20,
     "Model serving, API development, system integration"),
    ("Testing & Optimization", 0.05,
     "Performance testing, monitoring setup, optimization"),
]


def create_timeline(requirements: ProjectRequirements) -> TimelineEstimate:
    base_weeks = max(MIN_TIMELINE_WEEKS, requirements.timeline_weeks)
    phases = []
    previous = None
    for name, share, description in TIMELINE_PHASES:
        phases.append(TimelinePhase(
            name=name,
            weeks=math.ceil(base_weeks * share),
            description=description,
            dependencies=[previous] if previous else [],
        ))
        previous = name
    return TimelineEstimate(total_weeks=sum(p.weeks for p in phases), phases=phases)


# ---------------------------------------------------------------------------
# Risks
# ---------------------------------------------------------------------------

MITIGATIONS = [
    "Start with MVP and iterate incrementally",
    "Invest in team training for complex technologies",
    "Consider managed services to reduce operational complexity",
    "Plan for compliance requirements early in the design phase",
]


def assess_risks(
    requirements: ProjectRequirements,
    recommendations: list[StackRecommendation],
) -> RiskAssessment:
    risks = []

    has_expert_component = any(
        rec.component.integration_complexity is IntegrationComplexity.EXPERT
        for category in recommendations
        for rec in category.recommended
    )
    if has_expert_component:
        risks.append(Risk(
            type=RiskType.TECHNICAL,
            level=RiskLevel.HIGH,
            description="Complex integration requirements for expert-level components",
            impact="May cause delays and require specialized expertise",
            probability=0.7,
        ))

    if (
        requirements.scalability is ScalabilityLevel.DISTRIBUTED
        and requirements.team_size is TeamSize.INDIVIDUAL
    ):
        risks.append(Risk(
            type=RiskType.SCALABILITY,
            level=RiskLevel.MEDIUM,
            description="Distributed architecture with small team",
            impact="May be challenging to implement and maintain",
            probability=0.6,
        ))

    if (
        requirements.budget is BudgetRange.MINIMAL
        and requirements.project_type is ProjectType.PRODUCTION
    ):
        risks.append(Risk(
            type=RiskType.BUDGET,
            level=RiskLevel.HIGH,
            description="Minimal budget for production deployment",
            impact="May limit tool choices and infrastructure options",
            probability=0.8,
        ))

    if len(requirements.compliance) > 2:
        risks.append(Risk(
            type=RiskType.COMPLIANCE,
            level=RiskLevel.MEDIUM,
            description="Multiple compliance requirements",
            impact="Additional implementation complexity and audit requirements",
            probability=0.5,
        ))

    if len(risks) > 2:
        overall = RiskLevel.HIGH
    elif risks:
        overall = RiskLevel.MEDIUM
    else:
        overall = RiskLevel.LOW

    return RiskAssessment(overall_risk=overall, risks=risks, mitigations=MITIGATIONS)


# ---------------------------------------------------------------------------
# Next steps
# ---------------------------------------------------------------------------


def next_steps(
    requirements: ProjectRequirements,
    recommendations: list[StackRecommendation],
) -> list[str]:
    categories = {rec.category for rec in recommendations}
    steps = ["Define detailed project requirements and success metrics"]

    if categories & {StackCategory.DEPLOYMENT, StackCategory.ORCHESTRATION}:
        steps.append("Set up development and staging environments")
    if categories & {StackCategory.DATA_STORAGE, StackCategory.DATA_PROCESSING}:
        steps.append("Prepare and validate your datasets")

    for rec in recommendations:
        if rec.category is StackCategory.ML_FRAMEWORK and rec.recommended:
            steps.append(f"Start with {rec.recommended[0].component.name} for initial prototyping")
            break

    if categories & {StackCategory.MONITORING, StackCategory.EXPERIMENT_TRACKING}:
        steps.append("Implement experiment tracking and monitoring early")
    if requirements.team_size is not TeamSize.INDIVIDUAL:
        steps.append("Establish development workflows and collaboration practices")

    steps.append("Build a minimal viable product (MVP) first")
    steps.append("Plan for iterative improvements and scaling")
    return steps
