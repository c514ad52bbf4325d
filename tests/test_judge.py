"""Press judgement, scoring and combo, plus note scheduling."""

import pytest

from gameplay_models import Chart, InputEvent, JudgementKind, NoteEvent
from judge import JudgeEngine, JudgementWindows, JudgmentState, ScoringRules, judge_press
from note_scheduler import NoteScheduler


def _single_note_chart(time_seconds=10.0, lane=0):
    return Chart(notes=(NoteEvent(time_seconds=time_seconds, lane=lane),), duration_seconds=20.0, bpm=120.0)


def _press(scheduler, time_seconds, lane=0, state=None):
    return judge_press(
        state if state is not None else JudgmentState(),
        InputEvent(time_seconds=time_seconds, lane=lane),
        scheduler,
        JudgementWindows(),
        ScoringRules(),
    )


@pytest.mark.parametrize(
    "press_time, expected",
    [
        (10.0, JudgementKind.PERFECT),
        (10.08, JudgementKind.PERFECT),
        (9.92, JudgementKind.PERFECT),
        (10.0801, JudgementKind.GOOD),
        (10.18, JudgementKind.GOOD),
        (9.82, JudgementKind.GOOD),
    ],
)
def test_window_boundaries_are_inclusive(press_time, expected):
    scheduler = NoteScheduler(_single_note_chart())
    _state, result = _press(scheduler, press_time)
    assert result.kind is expected
    assert result.note == NoteEvent(time_seconds=10.0, lane=0)
    assert result.delta_seconds == pytest.approx(press_time - 10.0)
    assert scheduler.remaining_notes() == tuple()


def test_press_between_good_and_miss_window_leaves_note():
    scheduler = NoteScheduler(_single_note_chart())
    state, result = _press(scheduler, 10.1801)
    assert result.kind is JudgementKind.MISS
    assert result.note is not None
    assert state.combo == 0
    assert len(scheduler.remaining_notes()) == 1

    # The note can still be hit by a later, closer press.
    _state, retry = _press(scheduler, 10.05, state=state)
    assert retry.kind is JudgementKind.PERFECT


def test_press_with_no_candidate_is_a_stray_miss():
    scheduler = NoteScheduler(_single_note_chart())
    state, result = _press(scheduler, 10.31)
    assert result.kind is JudgementKind.MISS
    assert result.note is None
    assert result.delta_seconds is None
    assert state.miss_count == 1
    assert len(scheduler.remaining_notes()) == 1


def test_press_in_wrong_lane_does_not_touch_note():
    scheduler = NoteScheduler(_single_note_chart(lane=2))
    _state, result = _press(scheduler, 10.0, lane=1)
    assert result.kind is JudgementKind.MISS
    assert result.note is None
    assert len(scheduler.remaining_notes()) == 1


def test_combo_and_score_then_repeat_press():
    scheduler = NoteScheduler(_single_note_chart())
    start = JudgmentState(score=2500, combo=5, max_combo=5)

    state, result = _press(scheduler, 10.01, state=start)
    assert result.kind is JudgementKind.PERFECT
    assert state.combo == 6
    assert state.max_combo == 6
    assert state.score == 3500

    state, repeat = _press(scheduler, 10.01, state=state)
    assert repeat.kind is JudgementKind.MISS
    assert repeat.note is None
    assert state.combo == 0
    assert state.max_combo == 6
    assert state.score == 3500


def test_good_scores_half():
    scheduler = NoteScheduler(_single_note_chart())
    state, _result = _press(scheduler, 10.1)
    assert state.score == 500
    assert state.good_count == 1


def test_nearest_note_wins_and_ties_keep_earlier():
    chart = Chart(
        notes=(NoteEvent(time_seconds=1.0, lane=0), NoteEvent(time_seconds=1.5, lane=0)),
        duration_seconds=2.0,
        bpm=120.0,
    )
    scheduler = NoteScheduler(chart)
    _state, result = _press(scheduler, 1.4)
    assert result.note.time_seconds == 1.5

    scheduler.reset()
    found = scheduler.find_nearest_unjudged_note(lane=0, target_time_seconds=1.25, max_window_seconds=0.3)
    assert found.note_event.time_seconds == 1.0


def test_engine_ages_out_expired_notes(simple_chart):
    engine = JudgeEngine(NoteScheduler(simple_chart), JudgementWindows())

    assert engine.update_for_time(1.3) == []
    misses = engine.update_for_time(1.31)
    assert [(m.note.time_seconds, m.note.lane) for m in misses] == [(1.0, 0)]
    assert misses[0].delta_seconds == pytest.approx(0.31)

    misses = engine.update_for_time(5.0)
    assert [(m.note.time_seconds, m.note.lane) for m in misses] == [(1.5, 1), (2.0, 0), (2.0, 2)]
    assert engine.state().miss_count == 4
    assert engine.state().cursor == 4
    assert len(engine.recent_judgements()) == 4


def test_engine_without_auto_miss_keeps_notes(simple_chart):
    scheduler = NoteScheduler(simple_chart)
    engine = JudgeEngine(scheduler, JudgementWindows(), auto_miss_expired=False)
    assert engine.update_for_time(10.0) == []
    assert len(scheduler.remaining_notes()) == 4


def test_engine_reset_restores_all_notes(simple_chart):
    scheduler = NoteScheduler(simple_chart)
    engine = JudgeEngine(scheduler, JudgementWindows())
    engine.on_input_event(InputEvent(time_seconds=1.0, lane=0))
    engine.update_for_time(10.0)
    engine.reset()
    assert engine.state() == JudgmentState()
    assert scheduler.remaining_notes() == simple_chart.notes
    assert engine.recent_judgements() == []


def test_scheduler_orders_by_time_then_lane():
    chart = Chart(
        notes=(NoteEvent(time_seconds=1.0, lane=3), NoteEvent(time_seconds=0.5, lane=1), NoteEvent(time_seconds=1.0, lane=0)),
        duration_seconds=2.0,
        bpm=120.0,
    )
    scheduler = NoteScheduler(chart)
    visible = scheduler.visible_notes(song_time_seconds=0.9, lookback_seconds=0.2, lookahead_seconds=0.2)
    assert [(n.note_event.time_seconds, n.note_event.lane) for n in visible] == [(1.0, 0), (1.0, 3)]
    assert [(n.time_seconds, n.lane) for n in scheduler.remaining_notes()] == [(0.5, 1), (1.0, 0), (1.0, 3)]


def test_windows_from_config_respect_custom_values():
    from config import JudgementConfig

    windows = JudgementWindows.from_config(JudgementConfig(perfect_seconds=0.05, good_seconds=0.1, miss_seconds=0.2))
    assert windows.classify_delta(0.06) is JudgementKind.GOOD
    assert windows.classify_delta(-0.15) is JudgementKind.MISS
    assert windows.classify_delta(0.25) is None
