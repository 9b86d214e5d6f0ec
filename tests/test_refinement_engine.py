"""Tests for RefinementEngine: target selection, merge rules and the auto-improve loop."""

from unittest.mock import MagicMock

import pytest

from agents import RefinementEngine, merge_overview, weakest_pillar
from contracts import (
    AIResponseError,
    MissingInputError,
    PillarId,
    PillarScore,
    SchemaValidationError,
)

from support import overview_payload, scripted_provider


def _reply(delta=12, pillar="competition", **changes):
    return {
        "improved_overview": overview_payload(**changes),
        "differences": [],
        "score_delta": delta,
        "pillar_impacted": pillar,
    }


def _engine(replies):
    provider = scripted_provider(replies)
    return RefinementEngine(llm_provider=provider), provider


def _score_of(scores, pillar):
    return next(entry.score for entry in scores if entry.pillar == pillar)


class TestWeakestPillar:
    """Target selection."""

    def test_lowest_score(self, pillar_scores):
        assert weakest_pillar(pillar_scores).pillar == PillarId.COMPETITION

    def test_ties_go_to_first_seen(self):
        scores = [
            PillarScore(pillar="pricing", score=40),
            PillarScore(pillar="audience", score=40),
        ]
        assert weakest_pillar(scores).pillar == PillarId.PRICING_POTENTIAL

    def test_empty_scores(self):
        with pytest.raises(MissingInputError):
            weakest_pillar([])


class TestMergeOverview:
    """Snapshot merge rules."""

    def test_omitted_and_null_fields_kept(self, overview):
        merged = merge_overview(overview, {"solution": "A new solution.", "market_size": None})
        assert merged.solution == "A new solution."
        assert merged.market_size == overview.market_size
        assert merged.competition == overview.competition

    def test_refined_pitch_locked(self, overview):
        merged = merge_overview(overview, {"refined_pitch": "Something else entirely."})
        assert merged.refined_pitch == overview.refined_pitch

    def test_unknown_keys_ignored(self, overview):
        assert merge_overview(overview, {"mood": "great"}) == overview

    def test_invalid_result_rejected(self, overview):
        with pytest.raises(SchemaValidationError, match="personas"):
            merge_overview(overview, {"personas": []})


class TestImprove:
    """A single refinement."""

    def test_targets_weakest_pillar(self, overview, pillar_scores):
        engine, provider = _engine([_reply(competition="Recipe apps, meal kits and grocery apps; none start from stock.")])
        result = engine.improve(overview, pillar_scores)

        assert result.pillar_impacted == PillarId.COMPETITION
        assert result.score_delta == 12
        assert _score_of(result.updated_scores, PillarId.COMPETITION) == 42
        assert _score_of(result.updated_scores, PillarId.MARKET_DEMAND) == 80
        assert [diff.section for diff in result.differences] == ["Competition Summary"]
        assert "Recipe apps and meal-kit services." in result.before_text
        assert "none start from stock" in result.after_text

        message = provider.complete.call_args.kwargs["user_message"]
        assert "Target Pillar: Competition (30/100)" in message
        assert "### Competition Summary" in message
        assert provider.complete.call_args.kwargs["temperature"] == 0.35

    def test_input_snapshot_untouched(self, overview, pillar_scores):
        engine, _ = _engine([_reply(competition="Changed.")])
        engine.improve(overview, pillar_scores)
        assert overview.competition == "Recipe apps and meal-kit services."
        assert _score_of(pillar_scores, PillarId.COMPETITION) == 30

    def test_explicit_target(self, overview, pillar_scores):
        engine, provider = _engine([_reply(delta=8, pillar="pricingPotential", build_notes="Ship a paid beta.")])
        result = engine.improve(overview, pillar_scores, target_pillar="Pricing Potential")
        assert result.pillar_impacted == PillarId.PRICING_POTENTIAL
        assert _score_of(result.updated_scores, PillarId.PRICING_POTENTIAL) == 58

    def test_diagnostics_included(self, overview):
        scores = [PillarScore(pillar="feasibility", score=40, strength="Small scope", weakness="OCR is hard")]
        engine, provider = _engine([_reply(build_notes="Use a hosted OCR API.")])
        engine.improve(overview, scores)
        message = provider.complete.call_args.kwargs["user_message"]
        assert "Strength: Small scope" in message
        assert "Weakness: OCR is hard" in message

    def test_camel_case_reply(self, overview, pillar_scores):
        reply = {
            "improvedOverview": {"uniqueValue": "The only planner that starts from your receipts."},
            "scoreDelta": 5.5,
        }
        engine, _ = _engine([reply])
        result = engine.improve(overview, pillar_scores)
        assert result.improved_overview.unique_value == "The only planner that starts from your receipts."
        assert result.score_delta == 6

    def test_pitch_change_is_discarded(self, overview, pillar_scores):
        engine, _ = _engine([_reply(refined_pitch="A totally new pitch.", competition="Meal kits mostly.")])
        result = engine.improve(overview, pillar_scores)
        assert result.improved_overview.refined_pitch == overview.refined_pitch
        assert [diff.section for diff in result.differences] == ["Competition Summary"]

    def test_score_clamped_and_delta_reported_as_applied(self, overview, pillar_scores):
        engine, _ = _engine([_reply(delta=200, competition="Changed.")])
        result = engine.improve(overview, pillar_scores)
        assert _score_of(result.updated_scores, PillarId.COMPETITION) == 100
        assert result.score_delta == 70

    def test_negative_delta_clamped_at_zero(self, overview, pillar_scores):
        engine, _ = _engine([_reply(delta=-45, competition="Changed.")])
        result = engine.improve(overview, pillar_scores)
        assert _score_of(result.updated_scores, PillarId.COMPETITION) == 0
        assert result.score_delta == -30

    def test_no_change_rejected(self, overview, pillar_scores):
        engine, _ = _engine([_reply(refined_pitch="Only the pitch changed.")])
        with pytest.raises(SchemaValidationError, match="did not change"):
            engine.improve(overview, pillar_scores)

    def test_missing_delta_rejected(self, overview, pillar_scores):
        reply = _reply(competition="Changed.")
        del reply["score_delta"]
        engine, _ = _engine([reply])
        with pytest.raises(SchemaValidationError):
            engine.improve(overview, pillar_scores)

    @pytest.mark.parametrize("delta", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_delta_rejected(self, overview, pillar_scores, delta):
        engine, _ = _engine([_reply(delta=delta, competition="Changed.")])
        with pytest.raises(SchemaValidationError, match="score_delta"):
            engine.improve(overview, pillar_scores)

    def test_non_json_reply(self, overview, pillar_scores):
        engine, _ = _engine(["I improved it for you!"])
        with pytest.raises(AIResponseError):
            engine.improve(overview, pillar_scores)

    def test_target_without_score(self, overview):
        scores = [PillarScore(pillar="audience", score=60)]
        engine, provider = _engine([])
        with pytest.raises(MissingInputError):
            engine.improve(overview, scores, target_pillar="pricing")
        provider.complete.assert_not_called()

    def test_no_scores(self, overview):
        engine, _ = _engine([])
        with pytest.raises(MissingInputError):
            engine.improve(overview, [])


class TestAutoImprove:
    """The weakest-first refinement loop."""

    def test_already_at_target(self, overview):
        scores = [PillarScore(pillar=pillar, score=95) for pillar in PillarId]
        engine, provider = _engine([])
        outcome = engine.auto_improve(overview, scores, target_score=90)
        assert outcome.iterations == []
        assert outcome.reached_target
        assert outcome.final_overview == overview
        provider.complete.assert_not_called()

    def test_improves_weakest_until_target(self, overview, pillar_scores):
        first = _reply(delta=40, competition="Meal kits only.")
        second = _reply(delta=15, pillar="pricingPotential", competition="Meal kits only.", build_notes="Paid beta.")
        engine, provider = _engine([first, second])
        seen = MagicMock()

        outcome = engine.auto_improve(overview, pillar_scores, target_score=60, max_loops=4, on_iteration=seen)

        assert [it.pillar_impacted for it in outcome.iterations] == [PillarId.COMPETITION, PillarId.PRICING_POTENTIAL]
        assert outcome.reached_target
        assert outcome.error is None
        assert _score_of(outcome.final_scores, PillarId.COMPETITION) == 70
        assert _score_of(outcome.final_scores, PillarId.PRICING_POTENTIAL) == 65
        assert outcome.final_overview.build_notes == "Paid beta."
        assert seen.call_count == 2
        assert provider.complete.call_count == 2

    def test_second_iteration_builds_on_first(self, overview, pillar_scores):
        first = _reply(delta=40, competition="Meal kits only.")
        second = _reply(delta=15, pillar="pricingPotential", competition="Meal kits only.", build_notes="Paid beta.")
        engine, _ = _engine([first, second])
        outcome = engine.auto_improve(overview, pillar_scores, target_score=60)
        assert [diff.section for diff in outcome.iterations[1].differences] == ["Build Notes"]
        assert outcome.iterations[1].before_text == outcome.iterations[0].after_text

    def test_failure_keeps_earlier_iterations(self, overview, pillar_scores):
        engine, _ = _engine([_reply(delta=40, competition="Meal kits only."), "not json"])
        outcome = engine.auto_improve(overview, pillar_scores, target_score=90, max_loops=4)
        assert len(outcome.iterations) == 1
        assert outcome.error is not None
        assert not outcome.reached_target
        assert outcome.final_overview.competition == "Meal kits only."

    def test_non_finite_delta_halts_but_keeps_earlier_iterations(self, overview, pillar_scores):
        replies = [
            _reply(delta=40, competition="Meal kits only."),
            _reply(delta=float("nan"), pillar="pricingPotential", build_notes="Paid beta."),
        ]
        engine, _ = _engine(replies)
        outcome = engine.auto_improve(overview, pillar_scores, target_score=90, max_loops=4)
        assert len(outcome.iterations) == 1
        assert "score_delta" in outcome.error
        assert _score_of(outcome.final_scores, PillarId.COMPETITION) == 70
        assert outcome.final_overview.build_notes == overview.build_notes

    def test_loop_budget(self, overview, pillar_scores):
        engine, provider = _engine([_reply(delta=5, competition="Meal kits only.")])
        outcome = engine.auto_improve(overview, pillar_scores, target_score=90, max_loops=1)
        assert len(outcome.iterations) == 1
        assert not outcome.reached_target
        assert provider.complete.call_count == 1

    def test_zero_loops(self, overview, pillar_scores):
        engine, provider = _engine([])
        outcome = engine.auto_improve(overview, pillar_scores, target_score=90, max_loops=0)
        assert outcome.iterations == []
        assert not outcome.reached_target

    def test_empty_scores(self, overview):
        engine, _ = _engine([])
        with pytest.raises(MissingInputError):
            engine.auto_improve(overview, [])
