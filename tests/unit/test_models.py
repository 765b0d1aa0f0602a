"""Tests for core data models."""

import pytest

from feature_swarm.models import (
    Feature,
    FeatureResult,
    GateResult,
    Gate,
    SwarmState,
    compute_global_score,
)
from tests.fakes import make_spec


def _result(score, success=True):
    return FeatureResult(feature_id="f", success=success, iterations=1, review_score=score)


class TestComputeGlobalScore:
    """Tests for compute_global_score."""

    def test_empty_is_zero(self):
        assert compute_global_score([]) == 0

    def test_mean_of_two(self):
        assert compute_global_score([_result(90), _result(70)]) == 80

    def test_failed_features_count(self):
        assert compute_global_score([_result(90), _result(0, success=False)]) == 45

    @pytest.mark.parametrize("scores,expected", [
        ([85, 86], 86),
        ([84.4], 84),
        ([84.5], 85),
        ([100, 100, 99], 100),
    ])
    def test_rounds_half_up(self, scores, expected):
        assert compute_global_score([_result(s) for s in scores]) == expected


class TestSwarmState:
    def test_terminal_states(self):
        assert SwarmState.DONE.is_terminal
        assert SwarmState.FAILED.is_terminal
        assert not SwarmState.FEATURE_LOOP.is_terminal


class TestFeature:
    """Tests for Feature serialization."""

    def test_from_dict_defaults(self):
        feature = Feature.from_dict({"id": "auth"})
        assert feature.name == "auth"
        assert feature.priority == "medium"
        assert feature.dependencies == ()
        assert feature.acceptance_criteria == ()

    def test_to_dict_from_dict(self):
        feature = Feature(
            id="auth",
            name="Auth",
            description="Login",
            priority="high",
            dependencies=("db",),
            acceptance_criteria=("user can log in",),
        )
        assert Feature.from_dict(feature.to_dict()) == feature

    def test_features_are_immutable(self):
        feature = Feature(id="a", name="A")
        with pytest.raises(AttributeError):
            feature.name = "B"


class TestFeatureResult:
    def test_from_dict_keeps_notes(self):
        result = FeatureResult("f-1", False, 3, 72, ("Iteration 1: tests failed",))
        restored = FeatureResult.from_dict(result.to_dict())
        assert restored == result


class TestGateResult:
    def test_to_dict(self):
        gate = GateResult(gate=Gate.COVERAGE, passed=False, reason="Coverage: 50%")
        assert gate.to_dict() == {
            "gate": "coverage",
            "passed": False,
            "reason": "Coverage: 50%",
            "details": None,
        }


class TestSwarmSpec:
    def test_summary_lists_features(self):
        summary = make_spec().summary()
        assert summary["project_name"] == "todo-api"
        assert summary["feature_count"] == 2
        assert summary["features"][1]["dependencies"] == ["f-1"]
        assert summary["tech_stack"]["framework"] == "fastapi"
