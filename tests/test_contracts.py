"""Tests for pillar, report, overview and suggestion contracts."""

import pytest
from pydantic import ValidationError

from contracts import (
    DEFAULT_RATIONALE,
    DEFAULT_SECTION_SUMMARY,
    PILLAR_WEIGHTS,
    PillarId,
    PillarScore,
    PillarWeakness,
    ProductOverview,
    Recommendation,
    ReportStatus,
    RunAllResult,
    SectionFailure,
    SectionId,
    SectionResult,
    SuggestionDraft,
    ValidationReport,
    build_pillar_scores,
    clamp_score,
    diff_overviews,
    estimated_impact_for,
    normalize_pillar,
    recommendation_for,
    round_half_up,
    weighted_confidence,
)

from support import EXAMPLE_SCORES, OWNER_ID, PROJECT_ID, overview_payload, succeeded_report


class TestPillarNormalization:
    """Labels, ids and aliases all resolve to the same pillar."""

    @pytest.mark.parametrize("raw", ["Audience Fit", "audience_fit", "audienceFit", "AUDIENCE-FIT", "audience"])
    def test_audience_spellings(self, raw):
        assert normalize_pillar(raw) == PillarId.AUDIENCE_FIT

    def test_monetisation_aliases_map_to_pricing(self):
        assert normalize_pillar("Monetization") == PillarId.PRICING_POTENTIAL
        assert normalize_pillar("pricing potential") == PillarId.PRICING_POTENTIAL

    def test_unknown_values(self):
        assert normalize_pillar("virality") is None
        assert normalize_pillar(42) is None
        assert normalize_pillar(None) is None

    def test_weights_sum_to_one(self):
        assert sum(PILLAR_WEIGHTS.values()) == pytest.approx(1.0)


class TestRounding:
    """Scores round half up and clamp into 0-100."""

    def test_half_rounds_up(self):
        assert round_half_up(58.5) == 59
        assert round_half_up(0.5) == 1

    def test_below_half_rounds_down(self):
        assert round_half_up(58.49) == 58

    def test_clamp(self):
        assert clamp_score(120) == 100
        assert clamp_score(-5) == 0
        assert clamp_score(64.5) == 65


class TestPillarScore:
    """PillarScore normalisation."""

    def test_weight_filled_from_table(self):
        entry = PillarScore(pillar="Market Demand", score=80, rationale="Strong demand")
        assert entry.pillar == PillarId.MARKET_DEMAND
        assert entry.weight == 0.25
        assert entry.label == "Market Demand"

    def test_caller_weight_replaced_by_table(self):
        assert PillarScore(pillar="competition", score=40, weight=0.9).weight == 0.2

    def test_numeric_score_is_clamped(self):
        assert PillarScore(pillar="feasibility", score=104.6).score == 100
        assert PillarScore(pillar="feasibility", score=-3).score == 0

    def test_blank_rationale_gets_default(self):
        assert PillarScore(pillar="competition", score=40, rationale="   ").rationale == DEFAULT_RATIONALE

    def test_unknown_pillar_rejected(self):
        with pytest.raises(ValidationError):
            PillarScore(pillar="virality", score=50)

    def test_build_pillar_scores_uses_table_order(self):
        entries = build_pillar_scores(EXAMPLE_SCORES)
        assert [entry.pillar for entry in entries] == [
            PillarId.AUDIENCE_FIT,
            PillarId.COMPETITION,
            PillarId.MARKET_DEMAND,
            PillarId.FEASIBILITY,
            PillarId.PRICING_POTENTIAL,
        ]
        assert all(entry.rationale == DEFAULT_RATIONALE for entry in entries)

    def test_weakness_drops_blank_notes(self):
        weakness = PillarWeakness(pillar="pricing", score=40, rationale=" Unclear pricing ", weaknesses=["", " tiers "])
        assert weakness.rationale == "Unclear pricing"
        assert weakness.weaknesses == ["tiers"]


class TestConfidence:
    """Weighted confidence and recommendation thresholds."""

    def test_example_scores(self):
        assert weighted_confidence(EXAMPLE_SCORES) == 59
        assert recommendation_for(59) == Recommendation.REVISE

    def test_missing_pillar_raises(self):
        scores = dict(EXAMPLE_SCORES)
        del scores[PillarId.FEASIBILITY]
        with pytest.raises(ValueError, match="Feasibility"):
            weighted_confidence(scores)

    @pytest.mark.parametrize(
        "confidence, expected",
        [
            (100, Recommendation.BUILD),
            (70, Recommendation.BUILD),
            (69, Recommendation.REVISE),
            (40, Recommendation.REVISE),
            (39, Recommendation.DROP),
            (0, Recommendation.DROP),
        ],
    )
    def test_thresholds(self, confidence, expected):
        assert recommendation_for(confidence) == expected


class TestValidationReport:
    """Terminal-state invariants of the report record."""

    def test_new_report_is_queued(self):
        report = ValidationReport(project_id=PROJECT_ID, owner_id=OWNER_ID, idea_title="Pantry Planner")
        assert report.status == ReportStatus.QUEUED
        assert report.scores is None
        assert not report.is_terminal

    def test_succeeded_report_is_consistent(self):
        report = succeeded_report()
        assert report.overall_confidence == 59
        assert report.recommendation == Recommendation.REVISE
        assert report.strong_count == 2
        assert report.is_terminal

    def test_succeeded_requires_scores(self):
        with pytest.raises(ValidationError):
            ValidationReport(
                project_id=PROJECT_ID, owner_id=OWNER_ID, idea_title="x", status=ReportStatus.SUCCEEDED
            )

    def test_succeeded_rejects_wrong_confidence(self):
        with pytest.raises(ValidationError, match="does not match"):
            succeeded_report(overall_confidence=75, recommendation=Recommendation.BUILD)

    def test_succeeded_rejects_wrong_recommendation(self):
        with pytest.raises(ValidationError, match="inconsistent"):
            succeeded_report(recommendation=Recommendation.BUILD)

    def test_failed_requires_error(self):
        with pytest.raises(ValidationError):
            ValidationReport(project_id=PROJECT_ID, owner_id=OWNER_ID, idea_title="x", status=ReportStatus.FAILED)
        report = ValidationReport(
            project_id=PROJECT_ID, owner_id=OWNER_ID, idea_title="x", status=ReportStatus.FAILED, error="boom"
        )
        assert report.error == "boom"

    def test_pillar_keys_are_normalized(self):
        scores = {"Audience Fit": 60, "competition": 30, "market_demand": 80, "Feasibility": 70, "pricing": 50}
        report = succeeded_report()
        raw = ValidationReport.model_validate({**report.model_dump(), "scores": scores})
        assert raw.scores == EXAMPLE_SCORES

    def test_idea_round_trip(self):
        report = ValidationReport(
            project_id=PROJECT_ID, owner_id=OWNER_ID, idea_title="Pantry Planner", prior_review="Too broad"
        )
        idea = report.idea()
        assert idea.title == "Pantry Planner"
        assert "Prior review notes: Too broad" in idea.describe()


class TestSectionResult:
    """Section normalisation."""

    def test_score_clamped_and_summary_defaulted(self):
        result = SectionResult(section=SectionId.MARKET, score=130, summary="  ")
        assert result.score == 100
        assert result.summary == DEFAULT_SECTION_SUMMARY

    def test_action_lookup(self):
        result = SectionResult(section=SectionId.MARKET, score=50, actions=[{"text": "Survey buyers"}])
        assert result.action("Survey buyers").completed is False
        assert result.action("Unknown") is None


class TestRunAllResult:
    """Multi-status reporting."""

    def test_status_codes(self):
        assert RunAllResult(report_id="r").status_code == 200
        failed = RunAllResult(report_id="r", failures=[SectionFailure(section=SectionId.MARKET, error="timeout")])
        assert failed.status_code == 207
        assert not failed.ok


class TestProductOverview:
    """Overview snapshots, rendering and diffs."""

    def test_requires_at_least_one_persona(self):
        with pytest.raises(ValidationError):
            ProductOverview.model_validate(overview_payload(personas=[]))

    def test_blank_features_dropped(self):
        overview = ProductOverview.model_validate(overview_payload(core_features=["Scan", " ", "Match"]))
        assert overview.core_features == ["Scan", "Match"]

    def test_snapshots_are_immutable(self, overview):
        with pytest.raises(ValidationError):
            overview.solution = "Something else"

    def test_section_text_rendering(self, overview):
        assert overview.section_text("personas").startswith("Dana (Working parent)\nSummary:")
        assert overview.section_text("core_features") == "1. Receipt scanning\n\n2. Recipe matching"
        assert "Mitigation: Let users correct items quickly" in overview.section_text("risks")
        assert overview.section_text("monetisation") == (
            "Subscription: Monthly plan for families (Notes: $6/month)"
        )

    def test_unknown_section_raises(self, overview):
        with pytest.raises(KeyError):
            overview.section_text("nonsense")

    def test_to_text_contains_every_title(self, overview):
        text = overview.to_text()
        assert text.startswith("Refined Elevator Pitch:")
        assert "Build Notes:" in text

    def test_diff_lists_only_changed_sections(self, overview):
        changed = overview.model_copy(update={"competition": "Recipe apps only."})
        diffs = diff_overviews(overview, changed)
        assert [diff.section for diff in diffs] == ["Competition Summary"]
        assert diffs[0].after == "Recipe apps only."
        assert diff_overviews(overview, overview) == []


class TestSuggestionContracts:
    """Suggestion impact and draft normalisation."""

    @pytest.mark.parametrize("score, impact", [(30, 55), (0, 85), (84.4, 1), (90, 1), (74.5, 10)])
    def test_estimated_impact(self, score, impact):
        assert estimated_impact_for(score) == impact

    def test_draft_accepts_pillar_label(self):
        draft = SuggestionDraft(
            pillar="Pricing Potential",
            issue="No price anchor",
            rationale="Willingness to pay is unproven",
            suggestion="Test a $6 monthly plan with ten families",
        )
        assert draft.pillar == PillarId.PRICING_POTENTIAL

    def test_draft_rejects_short_suggestion(self):
        with pytest.raises(ValidationError):
            SuggestionDraft(pillar="pricing", issue="None", rationale="Nope", suggestion="Do it")
