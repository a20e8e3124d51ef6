"""Unit tests for round resolution and scoring."""

import unittest
from dataclasses import replace

from crisis_engine.errors import IllegalTransitionError, NoActiveScenarioError
from crisis_engine.metrics import MetricKind, MetricState, initial_metrics
from crisis_engine.rules_engine import compute_outcome, format_change, resolve, round_half_up, select_timeout_choice
from crisis_engine.settings import ENHANCED, Difficulty
from crisis_engine.state import GameStatus, HistoryEntry, SessionState
from crisis_engine.templates import build_scenario

M = MetricKind.MORALE
F = MetricKind.FINANCES
S = MetricKind.SUPPLY_CHAIN
P = MetricKind.PUBLIC_IMAGE


def make_scenario(*choices):
    return build_scenario(
        {
            "id": "test-scenario",
            "title": "Test Crisis",
            "description": "Something went wrong.",
            "category": "Test",
            "choices": list(choices),
        }
    )


def choice(choice_id, impacts, risk="Medium"):
    return {"id": choice_id, "text": f"Do {choice_id}", "risk": risk, "impacts": impacts}


def playing_state(scenario, value=6.0, difficulty=Difficulty.EASY, ruleset="enhanced", **overrides):
    metrics = {k: MetricState(k, float(value)) for k in MetricKind}
    start = HistoryEntry(round=0, metrics={k: 6.0 for k in MetricKind}, event_title="Game Start", choice_selected="N/A")
    state = SessionState(
        status=GameStatus.PLAYING,
        difficulty=difficulty,
        ruleset=ruleset,
        metrics=metrics,
        history=(start,),
        current_scenario=scenario,
        deck=(scenario,),
    )
    return replace(state, **overrides)


class TestCriticalFailure(unittest.TestCase):
    def test_normal_difficulty_finance_collapse(self):
        """-5 finances at volatility 1.2 drops 6 to 0 and ends the game."""
        scenario = make_scenario(choice("fire-sale", {"Finances": -5}))
        state = playing_state(scenario, difficulty=Difficulty.NORMAL)

        new_state, feedback = resolve(state, scenario.choices[0])

        self.assertEqual(new_state.metrics[F].value, 0)
        self.assertEqual(new_state.status, GameStatus.GAME_OVER)
        self.assertIn("Finances", new_state.game_over_reason)
        self.assertEqual(new_state.round, 1)
        self.assertEqual(new_state.resilience_score, 0)
        self.assertEqual(len(new_state.history), 2)
        self.assertEqual(new_state.history[-1].round, 1)
        self.assertIn("Finances -6", feedback.impacts)
        self.assertEqual(new_state.last_round_feedback, feedback)

    def test_reason_lists_every_failing_metric(self):
        scenario = make_scenario(choice("x", {"Morale": -5, "Public Image": -5}))
        new_state, _ = resolve(playing_state(scenario), scenario.choices[0])
        self.assertEqual(new_state.game_over_reason, "Critical failure in: Morale, Public Image")

    def test_exactly_two_survives(self):
        scenario = make_scenario(choice("x", {"Morale": -4}))
        new_state, _ = resolve(playing_state(scenario), scenario.choices[0])
        self.assertEqual(new_state.metrics[M].value, 2)
        self.assertEqual(new_state.status, GameStatus.ROUND_FEEDBACK)


class TestScoring(unittest.TestCase):
    def test_stability_bonus(self):
        """All metrics at 5, Morale +1 on Easy: +10 gain plus +20 stability."""
        scenario = make_scenario(choice("rally", {"Morale": 1}))
        state = playing_state(scenario, value=5.0)

        new_state, feedback = resolve(state, scenario.choices[0])

        self.assertEqual(new_state.metrics[M].value, 6)
        self.assertEqual(new_state.resilience_score, 30)
        self.assertEqual(new_state.status, GameStatus.ROUND_FEEDBACK)
        self.assertEqual(new_state.round, 2)
        self.assertIsNone(new_state.current_scenario)
        self.assertEqual(feedback.impacts, ("Morale +1",))

    def test_no_stability_bonus_below_four(self):
        scenario = make_scenario(choice("cut", {"Morale": -3}))
        new_state, _ = resolve(playing_state(scenario), scenario.choices[0])
        self.assertEqual(new_state.metrics[M].value, 3)
        self.assertEqual(new_state.resilience_score, -15)

    def test_round_trip_is_net_positive(self):
        """Up by 2 then down by 2 nets +10 before stability bonuses."""
        scenario = make_scenario(choice("up", {"Morale": 2}), choice("down", {"Morale": -2}))
        state = playing_state(scenario, ruleset="baseline")

        after_up, _ = resolve(state, scenario.choices[0])
        replayed = replace(after_up, status=GameStatus.PLAYING, current_scenario=scenario)
        after_down, _ = resolve(replayed, scenario.choices[1])

        self.assertEqual(after_down.metrics[M].value, 6)
        self.assertEqual(after_down.resilience_score, (20 + 20) + (-10 + 20))

    def test_score_rounds_to_integer(self):
        scenario = make_scenario(choice("x", {"Morale": 1}))
        state = playing_state(scenario, difficulty=Difficulty.NORMAL)
        new_state, _ = resolve(state, scenario.choices[0])
        self.assertAlmostEqual(new_state.metrics[M].value, 7.2)
        self.assertEqual(new_state.resilience_score, 32)
        self.assertIsInstance(new_state.resilience_score, int)

    def test_half_point_score_rounds_up(self):
        scenario = make_scenario(choice("x", {"Morale": 1}))
        state = playing_state(scenario, round=2)

        new_state, feedback = resolve(state, scenario.choices[0])

        self.assertEqual(new_state.metrics[M].value, 7.25)
        self.assertEqual(new_state.resilience_score, 33)
        self.assertEqual(feedback.impacts, ("Morale +1.3", "Exp. Bonus: +0.25"))

    def test_round_half_up_on_negative_halves(self):
        self.assertEqual(round_half_up(-2.5), -2)
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(-2.6), -3)

    def test_upper_clamp_limits_score(self):
        scenario = make_scenario(choice("x", {"Morale": 3}))
        state = playing_state(scenario, value=9.5)
        new_state, feedback = resolve(state, scenario.choices[0])
        self.assertEqual(new_state.metrics[M].value, 10)
        self.assertEqual(new_state.resilience_score, 25)
        self.assertEqual(feedback.impacts, ("Morale +0.5",))

    def test_untouched_metrics_unchanged(self):
        scenario = make_scenario(choice("x", {"Morale": 1}))
        new_state, _ = resolve(playing_state(scenario), scenario.choices[0])
        for kind in (F, S, P):
            self.assertEqual(new_state.metrics[kind].value, 6)
            self.assertEqual(new_state.metrics[kind].last_delta, 0)


class TestMomentum(unittest.TestCase):
    def test_enhanced_adds_momentum(self):
        scenario = make_scenario(choice("x", {"Morale": 1}))
        state = playing_state(scenario, value=5.0, round=3)

        new_state, feedback = resolve(state, scenario.choices[0])

        self.assertEqual(new_state.metrics[M].value, 6.5)
        self.assertEqual(feedback.impacts, ("Morale +1.5", "Exp. Bonus: +0.50"))
        self.assertEqual(new_state.resilience_score, 35)

    def test_baseline_has_no_momentum(self):
        scenario = make_scenario(choice("x", {"Morale": 1}))
        state = playing_state(scenario, value=5.0, round=3, ruleset="baseline")
        new_state, feedback = resolve(state, scenario.choices[0])
        self.assertEqual(new_state.metrics[M].value, 6)
        self.assertEqual(feedback.impacts, ("Morale +1",))

    def test_no_bonus_line_in_round_one(self):
        scenario = make_scenario(choice("x", {"Morale": 1}))
        _, feedback = resolve(playing_state(scenario), scenario.choices[0])
        self.assertFalse(any(line.startswith("Exp. Bonus") for line in feedback.impacts))


class TestFeedbackFormat(unittest.TestCase):
    def test_baseline_truncates_to_whole_numbers(self):
        scenario = make_scenario(choice("x", {"Morale": 1, "Finances": -1}))
        state = playing_state(scenario, difficulty=Difficulty.NORMAL, ruleset="baseline")
        _, feedback = resolve(state, scenario.choices[0])
        self.assertEqual(feedback.impacts, ("Morale +1", "Finances -1"))

    def test_baseline_hides_sub_unit_changes(self):
        scenario = make_scenario(choice("x", {"Morale": 0.5}))
        _, feedback = resolve(playing_state(scenario, ruleset="baseline"), scenario.choices[0])
        self.assertEqual(feedback.impacts, ())

    def test_enhanced_shows_one_decimal(self):
        scenario = make_scenario(choice("x", {"Finances": -1}))
        state = playing_state(scenario, difficulty=Difficulty.HARD)
        _, feedback = resolve(state, scenario.choices[0])
        self.assertEqual(feedback.impacts, ("Finances -1.5",))

    def test_enhanced_rounds_half_tenths_away_from_zero(self):
        self.assertEqual(format_change(M, 1.25, ENHANCED), "Morale +1.3")
        self.assertEqual(format_change(F, -1.25, ENHANCED), "Finances -1.3")
        self.assertEqual(format_change(F, 1.2, ENHANCED), "Finances +1.2")


class TestInvestorDebuff(unittest.TestCase):
    def test_positive_finance_frozen(self):
        scenario = make_scenario(choice("x", {"Finances": 2, "Morale": 1}))
        state = playing_state(scenario, investor_debuff_rounds=2)

        new_state, feedback = resolve(state, scenario.choices[0])

        self.assertEqual(new_state.metrics[F].value, 6)
        self.assertEqual(new_state.metrics[M].value, 7)
        self.assertIn("Finances frozen by Investors", feedback.impacts)
        self.assertEqual(new_state.investor_debuff_rounds, 1)

    def test_negative_finance_still_applies(self):
        scenario = make_scenario(choice("x", {"Finances": -1}))
        new_state, feedback = resolve(playing_state(scenario, investor_debuff_rounds=1), scenario.choices[0])
        self.assertEqual(new_state.metrics[F].value, 5)
        self.assertNotIn("Finances frozen by Investors", feedback.impacts)
        self.assertEqual(new_state.investor_debuff_rounds, 0)

    def test_repeated_gains_never_raise_finances(self):
        scenario = make_scenario(choice("x", {"Finances": 3}))
        state = playing_state(scenario, investor_debuff_rounds=5)
        for _ in range(3):
            state, _ = resolve(state, scenario.choices[0])
            self.assertEqual(state.metrics[F].value, 6)
            state = replace(state, status=GameStatus.PLAYING, current_scenario=scenario)

    def test_debuff_then_timeout_goes_negative(self):
        scenario = make_scenario(choice("x", {"Finances": 2}, risk="Low"))
        new_state, _ = resolve(playing_state(scenario, investor_debuff_rounds=1), scenario.choices[0], is_timeout=True)
        self.assertEqual(new_state.metrics[F].value, 5)


class TestTimeout(unittest.TestCase):
    def test_timeout_choice_prefers_low_risk(self):
        scenario = make_scenario(
            choice("bold", {"Morale": 2}, risk="High"),
            choice("safe", {"Morale": 1}, risk="Low"),
        )
        self.assertEqual(select_timeout_choice(scenario).id, "safe")

    def test_timeout_choice_falls_back_to_first(self):
        scenario = make_scenario(choice("a", {"Morale": 1}, risk="High"), choice("b", {"Morale": 1}))
        self.assertEqual(select_timeout_choice(scenario).id, "a")

    def test_timeout_penalty_per_metric(self):
        scenario = make_scenario(choice("safe", {"Finances": -2, "Supply Chain": 2}, risk="Low"))
        new_state, feedback = resolve(playing_state(scenario), scenario.choices[0], is_timeout=True)

        self.assertEqual(new_state.metrics[F].value, 3)
        self.assertEqual(new_state.metrics[S].value, 7)
        self.assertEqual(new_state.resilience_score, -5)
        self.assertTrue(feedback.is_timeout)
        self.assertEqual(feedback.impacts[-1], "Timeout Penalty (-1 All)")
        self.assertEqual(new_state.history[-1].choice_selected, "TIMEOUT")

    def test_timeout_suppresses_bonus_line(self):
        scenario = make_scenario(choice("safe", {"Morale": 1}, risk="Low"))
        state = playing_state(scenario, round=5)
        _, feedback = resolve(state, scenario.choices[0], is_timeout=True)
        self.assertFalse(any(line.startswith("Exp. Bonus") for line in feedback.impacts))


class TestPreconditions(unittest.TestCase):
    def test_requires_active_scenario(self):
        scenario = make_scenario(choice("x", {"Morale": 1}))
        state = playing_state(scenario, current_scenario=None)
        with self.assertRaises(NoActiveScenarioError):
            resolve(state, scenario.choices[0])

    def test_requires_playing_status(self):
        scenario = make_scenario(choice("x", {"Morale": 1}))
        state = playing_state(scenario, status=GameStatus.ROUND_FEEDBACK)
        with self.assertRaises(IllegalTransitionError):
            resolve(state, scenario.choices[0])


class TestOutcome(unittest.TestCase):
    def _finished(self, status, final_value, **overrides):
        history = (
            HistoryEntry(0, {k: 6.0 for k in MetricKind}, "Game Start", "N/A"),
            HistoryEntry(1, {k: final_value for k in MetricKind}, "Test Crisis", "Do x"),
        )
        return replace(SessionState(status=status, history=history, resilience_score=120), **overrides)

    def test_victory_tiers(self):
        self.assertEqual(
            compute_outcome(self._finished(GameStatus.VICTORY, 6.0))["tier"],
            "Legendary CEO (All Metrics Strong)",
        )
        self.assertEqual(
            compute_outcome(self._finished(GameStatus.VICTORY, 5.5))["tier"],
            "Stable Leadership (Solid)",
        )
        self.assertEqual(
            compute_outcome(self._finished(GameStatus.VICTORY, 4.9))["tier"],
            "Survivalist (Barely Made It)",
        )

    def test_game_over_outcome(self):
        state = self._finished(GameStatus.GAME_OVER, 1.0, game_over_reason="Critical failure in: Morale")
        outcome = compute_outcome(state, relief_unlocked=True)
        self.assertEqual(outcome["title"], "Bankruptcy Declared")
        self.assertEqual(outcome["subtitle"], "Critical failure in: Morale")
        self.assertIsNone(outcome["tier"])
        self.assertTrue(outcome["can_rescue"])
        self.assertEqual(outcome["final_score"], 120)
        self.assertEqual(outcome["rounds_played"], 1)

    def test_rescue_not_offered_twice_or_when_locked(self):
        state = self._finished(GameStatus.GAME_OVER, 1.0, final_bailout_used=True)
        self.assertFalse(compute_outcome(state, relief_unlocked=True)["can_rescue"])
        fresh = self._finished(GameStatus.GAME_OVER, 1.0)
        self.assertFalse(compute_outcome(fresh, relief_unlocked=False)["can_rescue"])

    def test_trend_series(self):
        outcome = compute_outcome(self._finished(GameStatus.VICTORY, 7.0))
        self.assertEqual(outcome["trend"]["Morale"], [(0, 6.0), (1, 7.0)])


if __name__ == "__main__":
    unittest.main()
