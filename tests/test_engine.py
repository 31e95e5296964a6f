"""
Karma Ledger Engine Test Suite

Pure transition tests: no store, no signatures, no clock.

Critical invariants tested:
    0 <= energy <= ENERGY_PER_SUNRISE for every snapshot
    both parties' karma moves by the same signed amount
    sunrise sets energy to exactly ENERGY_PER_SUNRISE
"""

import unittest

from karma.constants import ENERGY_PER_INTERACTION, ENERGY_PER_SUNRISE, SECONDS_PER_DAY
from karma.engine import Direction, Outcome, interact, new_soul, renew
from karma.errors import InvalidInteraction
from karma.soul import Soul, SoulState, state_of


class TestNewSoul(unittest.TestCase):

    def test_scenario_a_create_at_zero(self):
        a = new_soul("A", 0)
        self.assertEqual(a.karma, 0)
        self.assertEqual(a.energy, 2400)
        self.assertEqual(a.last_sunrise, 0)
        self.assertEqual(a.authority, "A")

    def test_energy_bounds_enforced_on_construction(self):
        with self.assertRaises(ValueError):
            Soul(authority="A", karma=0, energy=-1, last_sunrise=0)
        with self.assertRaises(ValueError):
            Soul(authority="A", karma=0, energy=ENERGY_PER_SUNRISE + 1, last_sunrise=0)

    def test_karma_unbounded(self):
        s = Soul(authority="A", karma=-10**30, energy=0, last_sunrise=0)
        self.assertEqual(s.karma, -10**30)


class TestInteract(unittest.TestCase):

    def setUp(self):
        self.a = new_soul("A", 0)
        self.b = new_soul("B", 0)

    def test_scenario_b_praise(self):
        result = interact(Direction.PRAISE, self.a, self.b, 10)
        self.assertEqual(result.outcome, Outcome.APPLIED)
        self.assertEqual(result.actor.karma, 1)
        self.assertEqual(result.actor.energy, 2300)
        self.assertEqual(result.target.karma, 1)

    def test_accuse_moves_both_down(self):
        result = interact("accuse", self.a, self.b, 10)
        self.assertEqual(result.actor.karma, -1)
        self.assertEqual(result.target.karma, -1)

    def test_target_energy_and_timer_untouched(self):
        b = self.b.evolve(energy=500, last_sunrise=7)
        result = interact("praise", self.a, b, 10)
        self.assertEqual(result.target.energy, 500)
        self.assertEqual(result.target.last_sunrise, 7)

    def test_target_gates_never_checked(self):
        exhausted = self.b.evolve(energy=0)
        lapsed = new_soul("B", 0)
        actor = new_soul("A", 200000)
        for target in (exhausted, lapsed):
            result = interact("praise", actor, target, 200010)
            self.assertTrue(result.applied)
            self.assertEqual(result.target.karma, target.karma + 1)
            self.assertEqual(result.target.energy, target.energy)
            self.assertEqual(result.target.last_sunrise, target.last_sunrise)

    def test_symmetric_karma_delta(self):
        for direction in Direction:
            result = interact(direction, self.a, self.b, 10)
            d_actor = result.actor.karma - self.a.karma
            d_target = result.target.karma - self.b.karma
            self.assertEqual(d_actor, d_target)
            self.assertEqual(d_actor, direction.delta)

    def test_scenario_c_exhausts_after_24(self):
        a, b = self.a, self.b
        for _ in range(24):
            result = interact("praise", a, b, 10)
            self.assertTrue(result.applied)
            a, b = result.actor, result.target
        self.assertEqual(a.energy, 0)
        self.assertEqual(a.karma, 24)

        result = interact("praise", a, b, 10)
        self.assertEqual(result.outcome, Outcome.SKIPPED_NO_ENERGY)
        self.assertEqual(result.actor, a)
        self.assertEqual(result.target, b)

    def test_cooldown_lapsed_is_noop(self):
        result = interact("praise", self.a, self.b, SECONDS_PER_DAY + 1)
        self.assertEqual(result.outcome, Outcome.SKIPPED_COOLDOWN)
        self.assertEqual(result.actor, self.a)
        self.assertEqual(result.target, self.b)

    def test_exactly_one_day_still_acts(self):
        result = interact("praise", self.a, self.b, SECONDS_PER_DAY)
        self.assertTrue(result.applied)

    def test_no_energy_checked_before_cooldown(self):
        a = self.a.evolve(energy=0)
        result = interact("praise", a, self.b, SECONDS_PER_DAY + 1)
        self.assertEqual(result.outcome, Outcome.SKIPPED_NO_ENERGY)

    def test_partial_energy_clamps_to_zero(self):
        a = self.a.evolve(energy=ENERGY_PER_INTERACTION // 2)
        result = interact("praise", a, self.b, 10)
        self.assertTrue(result.applied)
        self.assertEqual(result.actor.energy, 0)
        self.assertEqual(result.actor.karma, 1)

    def test_self_interaction_rejected(self):
        with self.assertRaises(InvalidInteraction):
            interact("praise", self.a, self.a, 10)

    def test_unknown_direction_rejected(self):
        with self.assertRaises(InvalidInteraction):
            interact("shrug", self.a, self.b, 10)

    def test_inputs_not_mutated(self):
        interact("praise", self.a, self.b, 10)
        self.assertEqual(self.a.energy, ENERGY_PER_SUNRISE)
        self.assertEqual(self.b.karma, 0)


class TestRenew(unittest.TestCase):

    def test_scenario_d_too_early(self):
        a = new_soul("A", 0)
        result = renew(a, 100)
        self.assertEqual(result.outcome, Outcome.SKIPPED_TOO_EARLY)
        self.assertEqual(result.soul.last_sunrise, 0)

    def test_scenario_e_after_a_day(self):
        for leftover in (0, 100, 2300, ENERGY_PER_SUNRISE):
            a = new_soul("A", 0).evolve(energy=leftover)
            result = renew(a, 90000)
            self.assertTrue(result.applied)
            self.assertEqual(result.soul.energy, ENERGY_PER_SUNRISE)
            self.assertEqual(result.soul.last_sunrise, 90000)

    def test_exactly_one_day_renews(self):
        result = renew(new_soul("A", 0), SECONDS_PER_DAY)
        self.assertTrue(result.applied)

    def test_second_renew_same_window_is_noop(self):
        first = renew(new_soul("A", 0), 90000)
        second = renew(first.soul, 90000 + 5000)
        self.assertEqual(second.outcome, Outcome.SKIPPED_TOO_EARLY)
        self.assertEqual(second.soul, first.soul)

    def test_clock_going_backwards_never_rewinds_sunrise(self):
        a = new_soul("A", 1000)
        result = renew(a, 10)
        self.assertFalse(result.applied)
        self.assertEqual(result.soul.last_sunrise, 1000)

    def test_scenario_f_stale_actor_cannot_interact(self):
        a = renew(new_soul("A", 0), 90000).soul
        b = new_soul("B", 0)
        self.assertTrue(interact("praise", a, b, 90001).applied)

        result = interact("praise", a, b, 176401)
        self.assertEqual(result.outcome, Outcome.SKIPPED_COOLDOWN)
        self.assertEqual(result.actor, a)


class TestSoulState(unittest.TestCase):

    def test_states(self):
        a = new_soul("A", 0)
        self.assertEqual(state_of(a, 10), SoulState.RESTED)
        self.assertEqual(state_of(a.evolve(energy=0), 10), SoulState.EXHAUSTED)
        self.assertEqual(state_of(a, SECONDS_PER_DAY), SoulState.STALE)
        self.assertEqual(state_of(a.evolve(energy=0), SECONDS_PER_DAY + 1), SoulState.STALE)

    def test_boundary_second_is_stale_but_can_act(self):
        a = new_soul("A", 0)
        self.assertEqual(state_of(a, SECONDS_PER_DAY), SoulState.STALE)
        self.assertTrue(interact("praise", a, new_soul("B", 0), SECONDS_PER_DAY).applied)
        self.assertTrue(renew(a, SECONDS_PER_DAY).applied)

    def test_round_trip_dict(self):
        a = Soul(authority="A", karma=-3, energy=1200, last_sunrise=99)
        self.assertEqual(Soul.from_dict(a.to_dict()), a)


if __name__ == "__main__":
    unittest.main()
