import random
from dataclasses import replace
from datetime import timedelta

import pytest

from cadence.application.scheduler import apply_outcome, review, transition
from cadence.domain.errors import UnknownCardStateError
from cadence.domain.models import CardState, Grade, LeechOutcome, ReviewOutcome
from cadence.domain.parameters import ParameterSet


class TestNewCards:
    @pytest.mark.parametrize("grade", list(Grade))
    def test_any_grade_enters_learning_at_step_zero(self, make_card, params, now, grade):
        card = make_card()

        updated = transition(card, params, grade, now)

        assert updated.state == CardState.LEARNING
        assert updated.step_index == 0
        assert updated.due_at == now + timedelta(minutes=1)
        assert updated.last_reviewed_at == now


class TestLearning:
    def test_good_walks_the_steps_then_graduates(self, make_card, params, now):
        card = make_card(state=CardState.LEARNING, step_index=0)

        first = transition(card, params, Grade.GOOD, now)
        assert first.state == CardState.LEARNING
        assert first.step_index == 1
        assert first.due_at == now + timedelta(minutes=10)

        second = transition(first, params, Grade.GOOD, now)
        assert second.state == CardState.REVIEW
        assert second.interval_days == 1.0
        assert second.due_at == now + timedelta(days=1)
        assert second.repetitions == 1

    def test_full_path_from_new(self, make_card, params, now):
        card = make_card()
        for _ in range(3):
            card = transition(card, params, Grade.GOOD, now)

        assert card.state == CardState.REVIEW
        assert card.interval_days == params.graduating_interval

    def test_again_restarts_steps(self, make_card, params, now):
        card = make_card(state=CardState.LEARNING, step_index=1)

        updated = transition(card, params, Grade.AGAIN, now)

        assert updated.state == CardState.LEARNING
        assert updated.step_index == 0
        assert updated.due_at == now + timedelta(minutes=1)

    def test_hard_repeats_current_step(self, make_card, params, now):
        card = make_card(state=CardState.LEARNING, step_index=1)

        updated = transition(card, params, Grade.HARD, now)

        assert updated.step_index == 1
        assert updated.due_at == now + timedelta(minutes=10)

    def test_easy_graduates_with_easy_interval(self, make_card, params, now):
        card = make_card(state=CardState.LEARNING, step_index=0)

        updated = transition(card, params, Grade.EASY, now)

        assert updated.state == CardState.REVIEW
        assert updated.interval_days == 4.0
        assert updated.due_at == now + timedelta(days=4)

    def test_single_step_graduates_on_first_good(self, make_card, now):
        params = ParameterSet(learning_steps=[5])
        card = transition(make_card(), params, Grade.GOOD, now)
        assert card.due_at == now + timedelta(minutes=5)

        graduated = transition(card, params, Grade.GOOD, now)

        assert graduated.state == CardState.REVIEW

    def test_step_index_out_of_range_is_rejected(self, make_card, params, now):
        card = make_card(state=CardState.LEARNING, step_index=5)

        with pytest.raises(UnknownCardStateError) as exc_info:
            transition(card, params, Grade.GOOD, now)

        assert exc_info.value.card_id == "c1"


class TestReview:
    def test_good_multiplies_by_ease(self, make_card, params, now):
        card = make_card(state=CardState.REVIEW, interval_days=10.0, ease_factor=2.5)

        updated = transition(card, params, Grade.GOOD, now)

        assert updated.state == CardState.REVIEW
        assert updated.interval_days == 25.0
        assert updated.ease_factor == 2.5
        assert updated.due_at == now + timedelta(days=25)
        assert updated.repetitions == 1

    def test_hard_grows_by_at_least_one_day(self, make_card, params, now):
        card = make_card(state=CardState.REVIEW, interval_days=10.0)

        updated = transition(card, params, Grade.HARD, now)

        assert updated.interval_days == 11.0
        assert updated.due_at == now + timedelta(days=11)
        assert updated.ease_factor == 2.5

    def test_easy_applies_bonus_and_raises_ease(self, make_card, params, now):
        card = make_card(state=CardState.REVIEW, interval_days=10.0, ease_factor=2.5)

        updated = transition(card, params, Grade.EASY, now)

        assert updated.interval_days == pytest.approx(32.5)
        assert updated.ease_factor == pytest.approx(2.65)
        # Due dates round half-up to whole days.
        assert updated.due_at == now + timedelta(days=33)

    def test_interval_modifier_scales_growth(self, make_card, now):
        params = ParameterSet(interval_modifier=0.8)
        card = make_card(state=CardState.REVIEW, interval_days=10.0, ease_factor=2.5)

        updated = transition(card, params, Grade.GOOD, now)

        assert updated.interval_days == pytest.approx(20.0)

    @pytest.mark.parametrize(
        "grade,interval",
        [(Grade.HARD, 36499.5), (Grade.GOOD, 30000.0), (Grade.EASY, 30000.0)],
    )
    def test_intervals_are_capped(self, make_card, params, now, grade, interval):
        card = make_card(state=CardState.REVIEW, interval_days=interval)

        assert transition(card, params, grade, now).interval_days == 36500.0

    def test_hard_below_the_cap_grows_by_one_day(self, make_card, params, now):
        card = make_card(state=CardState.REVIEW, interval_days=30000.0)

        assert transition(card, params, Grade.HARD, now).interval_days == 30001.0

    def test_lapse_lifts_burial(self, make_card, params, now):
        card = make_card(state=CardState.REVIEW, sibling_group_id="g", is_buried=True)

        updated = transition(card, params, Grade.AGAIN, now)

        assert updated.state == CardState.RELEARNING
        assert not updated.is_buried

    def test_again_lapses_into_relearning(self, make_card, params, now):
        card = make_card(state=CardState.REVIEW, interval_days=10.0, ease_factor=2.5)

        result = review(card, params, Grade.AGAIN, now)

        assert result.lapsed
        assert result.card.state == CardState.RELEARNING
        assert result.card.step_index == 0
        assert result.card.lapse_count == 1
        assert result.card.ease_factor == pytest.approx(2.3)
        assert result.card.interval_days == 10.0
        assert result.card.due_at == now + timedelta(minutes=10)
        assert result.leech.action_taken == LeechOutcome.NONE

    def test_ease_never_drops_below_minimum(self, make_card, params, now):
        card = make_card(state=CardState.REVIEW, ease_factor=1.4)

        updated = transition(card, params, Grade.AGAIN, now)

        assert updated.ease_factor == params.minimum_ease

    def test_non_positive_interval_is_rejected(self, make_card, params, now):
        card = make_card(state=CardState.REVIEW, interval_days=0.0)

        with pytest.raises(UnknownCardStateError):
            transition(card, params, Grade.GOOD, now)


class TestRelearning:
    def test_steps_then_regraduation(self, make_card, params, now):
        card = make_card(state=CardState.REVIEW, interval_days=10.0)
        card = transition(card, params, Grade.AGAIN, now)

        stepped = transition(card, params, Grade.GOOD, now)
        assert stepped.state == CardState.RELEARNING
        assert stepped.step_index == 1
        assert stepped.due_at == now + timedelta(minutes=1440)

        back = transition(stepped, params, Grade.GOOD, now)
        assert back.state == CardState.REVIEW
        assert back.interval_days == pytest.approx(2.0)
        assert back.due_at == now + timedelta(days=2)
        assert back.lapse_count == 1

    def test_easy_regraduates_immediately(self, make_card, params, now):
        card = make_card(state=CardState.RELEARNING, interval_days=10.0, step_index=0)

        updated = transition(card, params, Grade.EASY, now)

        assert updated.state == CardState.REVIEW
        assert updated.interval_days == pytest.approx(2.0)

    def test_regraduation_is_at_least_one_day(self, make_card, params, now):
        card = make_card(state=CardState.RELEARNING, interval_days=2.0, step_index=1)

        updated = transition(card, params, Grade.GOOD, now)

        assert updated.interval_days == 1.0

    def test_again_returns_to_first_step(self, make_card, params, now):
        card = make_card(state=CardState.RELEARNING, step_index=1)

        updated = transition(card, params, Grade.AGAIN, now)

        assert updated.step_index == 0
        assert updated.due_at == now + timedelta(minutes=10)
        assert updated.lapse_count == card.lapse_count

    def test_hard_repeats_current_step(self, make_card, params, now):
        card = make_card(state=CardState.RELEARNING, step_index=1)

        updated = transition(card, params, Grade.HARD, now)

        assert updated.step_index == 1
        assert updated.due_at == now + timedelta(minutes=1440)


class TestLeeches:
    def test_threshold_lapse_suspends(self, make_card, params, now):
        card = make_card(state=CardState.REVIEW, lapse_count=7)

        result = review(card, params, Grade.AGAIN, now)

        assert result.card.state == CardState.SUSPENDED
        assert result.card.lapse_count == 8
        assert result.card.is_leech
        assert result.leech.action_taken == LeechOutcome.SUSPENDED

    def test_tag_keeps_relearning(self, make_card, now):
        tagging = ParameterSet(leech_action="tag", leech_threshold=2)
        lenient = ParameterSet(leech_action="tag", leech_threshold=100)
        card = make_card(state=CardState.REVIEW, lapse_count=1)

        tagged = transition(card, tagging, Grade.AGAIN, now)
        plain = transition(card, lenient, Grade.AGAIN, now)

        assert tagged.state == CardState.RELEARNING
        assert tagged.is_leech
        assert replace(tagged, is_leech=False) == plain

    def test_leech_refires_on_multiples(self, make_card, params, now):
        card = make_card(state=CardState.REVIEW, lapse_count=15)

        result = review(card, params, Grade.AGAIN, now)

        assert result.leech.action_taken == LeechOutcome.SUSPENDED
        assert result.card.lapse_count == 16

    def test_leech_flag_is_sticky_between_multiples(self, make_card, now):
        params = ParameterSet(leech_action="tag")
        card = make_card(state=CardState.REVIEW, lapse_count=8, is_leech=True)

        result = review(card, params, Grade.AGAIN, now)

        assert result.leech.action_taken == LeechOutcome.NONE
        assert result.card.is_leech


class TestSuspended:
    @pytest.mark.parametrize("grade", list(Grade))
    def test_grades_are_ignored(self, make_card, params, now, grade):
        card = make_card(state=CardState.SUSPENDED, interval_days=10.0)

        assert transition(card, params, grade, now) == card


def test_apply_outcome_uses_the_outcome_timestamp(make_card, params, now):
    card = make_card(state=CardState.REVIEW)
    later = now + timedelta(days=3)

    result = apply_outcome(card, params, ReviewOutcome(Grade.GOOD, later))

    assert result.card.last_reviewed_at == later
    assert result.card.due_at == later + timedelta(days=25)


def test_integer_grades_are_accepted(make_card, params, now):
    card = make_card(state=CardState.REVIEW)

    assert transition(card, params, 2, now) == transition(card, params, Grade.GOOD, now)


def test_transition_is_deterministic(make_card, params, now):
    card = make_card(state=CardState.REVIEW, interval_days=7.3, ease_factor=2.1)

    assert transition(card, params, Grade.EASY, now) == transition(card, params, Grade.EASY, now)


def test_input_card_is_not_mutated(make_card, params, now):
    card = make_card(state=CardState.REVIEW)
    before = replace(card)

    transition(card, params, Grade.AGAIN, now)

    assert card == before


@pytest.mark.parametrize("seed", range(5))
def test_random_sessions_respect_bounds(make_card, now, seed):
    params = ParameterSet(leech_action="tag", max_interval=400)
    rng = random.Random(seed)
    card = make_card()
    when = now

    for _ in range(300):
        grade = rng.choice(list(Grade))
        previous = card
        card = transition(card, params, grade, when)

        assert card.ease_factor >= params.minimum_ease
        assert card.interval_days <= params.max_interval
        if previous.state == CardState.REVIEW and grade != Grade.AGAIN:
            assert card.due_at >= previous.due_at
            assert card.interval_days >= previous.interval_days

        when = max(when, card.due_at)


def test_naive_now_is_taken_as_utc(make_card, params, now):
    card = make_card(state=CardState.REVIEW)

    updated = transition(card, params, Grade.GOOD, now.replace(tzinfo=None))

    assert updated.due_at == now + timedelta(days=25)
    assert updated.due_at.tzinfo is not None
