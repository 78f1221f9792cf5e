"""Data model for AI stack requirements, catalog components and suggestions."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Requirement vocabularies
# ---------------------------------------------------------------------------


class ProjectType(str, Enum):
    RESEARCH = "research"
    PROTOTYPE = "prototype"
    PRODUCTION = "production"
    ENTERPRISE = "enterprise"


class UseCase(str, Enum):
    NLP = "natural-language-processing"
    COMPUTER_VISION = "computer-vision"
    SPEECH_RECOGNITION = "speech-recognition"
    RECOMMENDATION_SYSTEMS = "recommendation-systems"
    TIME_SERIES_FORECASTING = "time-series-forecasting"
    GENERATIVE_AI = "generative-ai"
    ROBOTICS = "robotics"
    AUTONOMOUS_SYSTEMS = "autonomous-systems"
    FRAUD_DETECTION = "fraud-detection"
    PREDICTIVE_MAINTENANCE = "predictive-maintenance"
    CONTENT_MODERATION = "content-moderation"
    SEARCH_RANKING = "search-ranking"


class ProgrammingLanguage(str, Enum):
    PYTHON = "python"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    JAVA = "java"
    CPP = "cpp"
    RUST = "rust"
    GO = "go"
    R = "r"
    JULIA = "julia"
    SWIFT = "swift"
    KOTLIN = "kotlin"


class ScalabilityLevel(str, Enum):
    SINGLE_MACHINE = "single-machine"
    MULTI_MACHINE = "multi-machine"
    DISTRIBUTED = "distributed"
    CLOUD_NATIVE = "cloud-native"


class DeploymentTarget(str, Enum):
    CLOUD = "cloud"
    ON_PREMISE = "on-premise"
    EDGE = "edge"
    MOBILE = "mobile"
    EMBEDDED = "embedded"
    HYBRID = "hybrid"


class BudgetRange(str, Enum):
    MINIMAL = "minimal"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    ENTERPRISE = "enterprise"


# Cheapest first
BUDGET_ORDER = list(BudgetRange)


class TeamSize(str, Enum):
    INDIVIDUAL = "individual"
    SMALL_TEAM = "small-team"
    MEDIUM_TEAM = "medium-team"
    LARGE_TEAM = "large-team"


class LatencyRequirement(str, Enum):
    REAL_TIME = "real-time"
    NEAR_REAL_TIME = "near-real-time"
    BATCH = "batch"
    FLEXIBLE = "flexible"


class ThroughputRequirement(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very-high"


class DataSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    VERY_LARGE = "very-large"


class DataType(str, Enum):
    TEXT = "text"
    IMAGES = "images"
    AUDIO = "audio"
    VIDEO = "video"
    TABULAR = "tabular"
    TIME_SERIES = "time-series"
    GRAPH = "graph"
    MULTIMODAL = "multimodal"


class ComplianceRequirement(str, Enum):
    GDPR = "gdpr"
    HIPAA = "hipaa"
    SOX = "sox"
    PCI_DSS = "pci-dss"
    ISO_27001 = "iso-27001"
    NONE = "none"


class SecurityLevel(str, Enum):
    BASIC = "basic"
    STANDARD = "standard"
    HIGH = "high"
    CRITICAL = "critical"


# ---------------------------------------------------------------------------
# Component vocabularies
# ---------------------------------------------------------------------------


class StackCategory(str, Enum):
    DATA_INGESTION = "data-ingestion"
    DATA_PROCESSING = "data-processing"
    DATA_STORAGE = "data-storage"
    ML_FRAMEWORK = "ml-framework"
    MODEL_TRAINING = "model-training"
    MODEL_SERVING = "model-serving"
    MONITORING = "monitoring"
    ORCHESTRATION = "orchestration"
    FEATURE_STORE = "feature-store"
    EXPERIMENT_TRACKING = "experiment-tracking"
    MODEL_REGISTRY = "model-registry"
    DEPLOYMENT = "deployment"
    INFRASTRUCTURE = "infrastructure"
    SECURITY = "security"
    VISUALIZATION = "visualization"


class LearningCurve(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    STEEP = "steep"
    EXPERT = "expert"


class MaturityLevel(str, Enum):
    EXPERIMENTAL = "experimental"
    BETA = "beta"
    STABLE = "stable"
    MATURE = "mature"


class LicenseType(str, Enum):
    OPEN_SOURCE = "open-source"
    COMMERCIAL = "commercial"
    FREEMIUM = "freemium"
    ENTERPRISE = "enterprise"


class IntegrationComplexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"
    EXPERT = "expert"


class CommunitySize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    VERY_LARGE = "very-large"


class ArchitecturePattern(str, Enum):
    MONOLITHIC = "monolithic"
    MICROSERVICES = "microservices"
    SERVERLESS = "serverless"
    HYBRID = "hybrid"
    EDGE_CLOUD = "edge-cloud"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskType(str, Enum):
    TECHNICAL = "technical"
    INTEGRATION = "integration"
    SCALABILITY = "scalability"
    SECURITY = "security"
    COMPLIANCE = "compliance"
    VENDOR_LOCK_IN = "vendor-lock-in"
    SKILL_GAP = "skill-gap"
    BUDGET = "budget"
    TIMELINE = "timeline"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class ProjectRequirements(BaseModel):
    """What the project needs; defaults describe a small Python NLP prototype."""

    model_config = ConfigDict(frozen=True)

    project_type: ProjectType = ProjectType.PROTOTYPE
    use_cases: list[UseCase] = Field(default_factory=lambda: [UseCase.NLP])
    programming_languages: list[ProgrammingLanguage] = Field(
        default_factory=lambda: [ProgrammingLanguage.PYTHON]
    )
    scalability: ScalabilityLevel = ScalabilityLevel.SINGLE_MACHINE
    deployment_targets: list[DeploymentTarget] = Field(
        default_factory=lambda: [DeploymentTarget.CLOUD]
    )
    budget: BudgetRange = BudgetRange.SMALL
    team_size: TeamSize = TeamSize.SMALL_TEAM
    timeline_weeks: int = Field(12, ge=1)
    latency: LatencyRequirement = LatencyRequirement.FLEXIBLE
    throughput: ThroughputRequirement = ThroughputRequirement.MEDIUM
    data_size: DataSize = DataSize.MEDIUM
    data_types: list[DataType] = Field(default_factory=lambda: [DataType.TEXT])
    compliance: list[ComplianceRequirement] = Field(
        default_factory=lambda: [ComplianceRequirement.NONE]
    )
    security_level: SecurityLevel = SecurityLevel.STANDARD


class StackComponent(BaseModel):
    """A catalog entry: one tool or service and what it supports."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: StackCategory
    description: str

    supported_languages: list[ProgrammingLanguage]
    supported_use_cases: list[UseCase]
    scalability_support: list[ScalabilityLevel]
    deployment_targets: list[DeploymentTarget]

    min_budget: BudgetRange
    learning_curve: LearningCurve
    maturity: MaturityLevel

    latency_profile: list[LatencyRequirement]
    throughput_profile: list[ThroughputRequirement]

    supported_data_types: list[DataType]
    supported_data_sizes: list[DataSize]

    compliance_support: list[ComplianceRequirement]
    security_features: list[SecurityLevel]

    vendor: str
    license: LicenseType
    website_url: str
    documentation_url: str | None = None
    github_url: str | None = None

    integration_complexity: IntegrationComplexity
    dependencies: list[str] = Field(default_factory=list)
    alternatives: list[str] = Field(default_factory=list)

    popularity_score: float = Field(..., ge=0, le=10)
    community_size: CommunitySize
    last_updated: str | None = None


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


class ComponentRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    component: StackComponent
    score: float = Field(..., ge=0, le=100)
    match_reasons: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    integration_notes: str | None = None


class StackRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: StackCategory
    recommended: list[ComponentRecommendation]
    alternatives: list[ComponentRecommendation] = Field(default_factory=list)
    reasoning: str


class CostBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    percentage: int
    description: str


class CostEstimate(BaseModel):
    model_config = ConfigDict(frozen=True)

    budget: BudgetRange
    monthly_min: int
    monthly_max: int
    currency: str = "USD"
    breakdown: list[CostBreakdown]


class TimelinePhase(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    weeks: int
    description: str
    dependencies: list[str] = Field(default_factory=list)


class TimelineEstimate(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_weeks: int
    phases: list[TimelinePhase]


class Risk(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: RiskType
    level: RiskLevel
    description: str
    impact: str
    probability: float = Field(..., ge=0, le=1)


class RiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_risk: RiskLevel
    risks: list[Risk]
    mitigations: list[str]


class StackSuggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_score: int
    recommendations: list[StackRecommendation]
    architecture: ArchitecturePattern
    estimated_cost: CostEstimate
    implementation_timeline: TimelineEstimate
    risk_assessment: RiskAssessment
    next_steps: list[str]
