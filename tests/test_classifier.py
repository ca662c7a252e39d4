"""Tests for the expression-parameter classifier."""

import pytest

from puppet_expressions.model.classifier import (
    categorize,
    classify,
    is_expression_parameter,
    search,
    statistics,
)


class TestIsExpressionParameter:
    """Pattern matching on ids and display names."""

    @pytest.mark.parametrize("text", [
        "ParamMouthOpenY",
        "ParamEyeLOpen",
        "ParamEyeRClose",
        "Smile",
        "BLUSH",
        "ParamFaceShadow",
        "ParamSpecialEffect",
    ])
    def test_matches(self, text):
        assert is_expression_parameter(text) is True

    @pytest.mark.parametrize("text", ["ParamAngleX", "ParamBodyAngleZ", "ParamBreath", "ParamHairFront"])
    def test_non_matches(self, text):
        assert is_expression_parameter(text) is False


class TestClassify:
    """Tests for classify."""

    def test_partition_keeps_order(self, catalogue):
        result = classify(catalogue)
        assert result.expression_ids == [
            "ParamEyeLOpen",
            "ParamMouthOpenY",
            "ParamMouthForm",
            "ParamCheek",  # matched by its display name "Blush"
        ]
        assert [p.id for p in result.other_parameters] == [
            "ParamAngleX",
            "ParamBodyAngleX",
            "ParamBreath",
        ]


class TestCategorize:
    """Tests for categorize."""

    def test_groups(self, catalogue):
        groups = categorize(catalogue)
        assert list(groups) == ["Expression", "Pose", "Movement", "Idle"]
        assert [p.id for p in groups["Movement"]] == ["ParamAngleX"]
        assert [p.id for p in groups["Pose"]] == ["ParamBodyAngleX"]
        assert [p.id for p in groups["Idle"]] == ["ParamBreath"]

    def test_empty_groups_dropped(self, catalogue):
        assert "Other" not in categorize(catalogue)


class TestSearch:
    """Tests for search."""

    def test_case_insensitive(self, catalogue):
        assert [p.id for p in search(catalogue, "MOUTH")] == ["ParamMouthOpenY", "ParamMouthForm"]

    def test_matches_category(self, catalogue):
        assert [p.id for p in search(catalogue, "idle")] == ["ParamBreath"]

    def test_no_match(self, catalogue):
        assert search(catalogue, "tail") == []


class TestStatistics:
    """Tests for statistics."""

    def test_counts(self, catalogue):
        stats = statistics(catalogue)
        assert stats["total"] == 7
        assert stats["expression_related"] == 4
        assert stats["by_range"] == {"zero_to_one": 4, "negative_to_positive": 3, "other": 0}
        assert stats["by_type"] == {"continuous": 2, "discrete": 5}
        assert stats["by_category"] == {"Expression": 4, "Pose": 1, "Movement": 1, "Idle": 1}
