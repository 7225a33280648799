"""
Agent profiles.

An agent's instructions are classified once into a profile carrying scoring
weights. The ranking step uses the profile's vocabulary_alignment weight to
reward chunks that both search legs agree on.

Dependencies: pydantic
System role: Per-agent ranking configuration
"""

import enum

from pydantic import BaseModel, Field, model_validator


class AgentProfileKind(str, enum.Enum):
    """Agent categories."""

    PROCEDURAL = "procedural"
    TECHNICAL = "technical"
    RESEARCH = "research"
    NARRATIVE = "narrative"
    DOMAIN_EXPERT = "domain_expert"
    GENERAL = "general"


class ScoringWeights(BaseModel):
    """Five weights summing to 1.0."""

    semantic_relevance: float = Field(ge=0, le=1)
    concept_coverage: float = Field(ge=0, le=1)
    procedural_match: float = Field(ge=0, le=1)
    vocabulary_alignment: float = Field(ge=0, le=1)
    bibliographic_match: float = Field(ge=0, le=1)

    @model_validator(mode="after")
    def _check_total(self) -> "ScoringWeights":
        total = (
            self.semantic_relevance
            + self.concept_coverage
            + self.procedural_match
            + self.vocabulary_alignment
            + self.bibliographic_match
        )
        if abs(total - 1.0) > 0.001:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.3f}")
        return self


class AgentProfile(BaseModel):
    """Resolved profile of one agent."""

    kind: AgentProfileKind
    weights: ScoringWeights


PROFILE_WEIGHTS: dict[AgentProfileKind, ScoringWeights] = {
    AgentProfileKind.PROCEDURAL: ScoringWeights(
        semantic_relevance=0.20,
        concept_coverage=0.20,
        procedural_match=0.35,
        vocabulary_alignment=0.15,
        bibliographic_match=0.10,
    ),
    AgentProfileKind.TECHNICAL: ScoringWeights(
        semantic_relevance=0.20,
        concept_coverage=0.20,
        procedural_match=0.30,
        vocabulary_alignment=0.25,
        bibliographic_match=0.05,
    ),
    AgentProfileKind.RESEARCH: ScoringWeights(
        semantic_relevance=0.15,
        concept_coverage=0.30,
        procedural_match=0.10,
        vocabulary_alignment=0.20,
        bibliographic_match=0.25,
    ),
    AgentProfileKind.NARRATIVE: ScoringWeights(
        semantic_relevance=0.35,
        concept_coverage=0.15,
        procedural_match=0.05,
        vocabulary_alignment=0.20,
        bibliographic_match=0.25,
    ),
    AgentProfileKind.DOMAIN_EXPERT: ScoringWeights(
        semantic_relevance=0.20,
        concept_coverage=0.30,
        procedural_match=0.20,
        vocabulary_alignment=0.20,
        bibliographic_match=0.10,
    ),
    AgentProfileKind.GENERAL: ScoringWeights(
        semantic_relevance=0.25,
        concept_coverage=0.25,
        procedural_match=0.20,
        vocabulary_alignment=0.20,
        bibliographic_match=0.10,
    ),
}

# Checked in order; more specific categories first
PROFILE_KEYWORDS: tuple[tuple[AgentProfileKind, tuple[str, ...]], ...] = (
    (
        AgentProfileKind.NARRATIVE,
        ("biography", "biographical", "vita", "life of", "story", "narrative", "creative writing"),
    ),
    (
        AgentProfileKind.DOMAIN_EXPERT,
        (
            "diagnose", "medical", "health", "patient", "clinical", "treatment",
            "legal", "contract", "compliance", "law", "regulation",
        ),
    ),
    (
        AgentProfileKind.RESEARCH,
        ("research", "academic", "paper", "scholar", "scientific", "analysis"),
    ),
    (
        AgentProfileKind.TECHNICAL,
        ("code", "technical", "engineer", "develop", "programming", "software"),
    ),
    (
        AgentProfileKind.PROCEDURAL,
        ("support", "help", "guide", "assist", "workflow", "procedure", "how-to", "operations"),
    ),
)


def detect_profile_kind(instructions: str) -> AgentProfileKind:
    """Classify agent instructions by ordered keyword detection."""
    lowered = instructions.lower()
    for kind, keywords in PROFILE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return kind
    return AgentProfileKind.GENERAL


def resolve_agent_profile(instructions: str | None) -> AgentProfile:
    """
    Resolve an agent's profile from its instructions.

    Args:
        instructions: Agent system prompt (None resolves to general)

    Returns:
        AgentProfile: Kind and weights
    """
    kind = detect_profile_kind(instructions or "")
    return AgentProfile(kind=kind, weights=PROFILE_WEIGHTS[kind])
