"""
Test suite for agent profile resolution.

System role: Verification of keyword-based agent classification and scoring weights
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from knowledge_backend.core.retrieval.agent_profiles import (
    PROFILE_WEIGHTS,
    AgentProfileKind,
    ScoringWeights,
    detect_profile_kind,
    resolve_agent_profile,
)


class TestDetectProfileKind:
    """Test suite for detect_profile_kind()."""

    @pytest.mark.parametrize(
        "instructions, expected",
        [
            ("Write the biography of our founder", AgentProfileKind.NARRATIVE),
            ("Answer questions about clinical treatment guidelines", AgentProfileKind.DOMAIN_EXPERT),
            ("Summarise academic papers", AgentProfileKind.RESEARCH),
            ("Review Python code for bugs", AgentProfileKind.TECHNICAL),
            ("Guide customers through the refund workflow", AgentProfileKind.PROCEDURAL),
            ("Be friendly", AgentProfileKind.GENERAL),
        ],
    )
    def test_instructions_should_map_to_kind(self, instructions: str, expected: AgentProfileKind) -> None:
        """Test representative instructions for every kind."""
        # Act
        kind = detect_profile_kind(instructions)

        # Assert
        assert kind == expected

    def test_narrative_should_win_over_research(self) -> None:
        """Test categories are checked in order, most specific first."""
        # Act
        kind = detect_profile_kind("Research and write a narrative history of the firm")

        # Assert
        assert kind == AgentProfileKind.NARRATIVE

    def test_detection_should_ignore_case(self) -> None:
        """Test keywords match regardless of case."""
        # Assert
        assert detect_profile_kind("SOFTWARE DEVELOPER HELPER") == AgentProfileKind.TECHNICAL


class TestResolveAgentProfile:
    """Test suite for resolve_agent_profile()."""

    def test_missing_instructions_should_resolve_to_general(self) -> None:
        """Test None instructions."""
        # Act
        profile = resolve_agent_profile(None)

        # Assert
        assert profile.kind == AgentProfileKind.GENERAL
        assert profile.weights == PROFILE_WEIGHTS[AgentProfileKind.GENERAL]

    def test_profile_should_carry_kind_weights(self) -> None:
        """Test the technical profile weights vocabulary alignment highest of all."""
        # Act
        profile = resolve_agent_profile("You are a technical support engineer")

        # Assert
        assert profile.kind == AgentProfileKind.TECHNICAL
        assert profile.weights.vocabulary_alignment == 0.25


class TestScoringWeights:
    """Test suite for ScoringWeights validation."""

    @pytest.mark.parametrize("kind", list(AgentProfileKind))
    def test_builtin_weights_should_sum_to_one(self, kind: AgentProfileKind) -> None:
        """Test every built-in profile is normalised."""
        # Arrange
        weights = PROFILE_WEIGHTS[kind]

        # Act
        total = sum(weights.model_dump().values())

        # Assert
        assert total == pytest.approx(1.0)

    def test_weights_not_summing_to_one_should_raise(self) -> None:
        """Test unnormalised weights are rejected."""
        # Act / Assert
        with pytest.raises(PydanticValidationError):
            ScoringWeights(
                semantic_relevance=0.5,
                concept_coverage=0.5,
                procedural_match=0.5,
                vocabulary_alignment=0.0,
                bibliographic_match=0.0,
            )
