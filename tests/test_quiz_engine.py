import asyncio
import random
from unittest.mock import AsyncMock, Mock, patch

import pytest

from wordquiz.errors import StorageError
from wordquiz.models import Word
from wordquiz.quiz_engine import DECOY_MARK, QuizEngine, SessionState, build_options


def run(coro):
    return asyncio.run(coro)


def fill(store, pairs, index=0):
    return [run(store.add_word(index, en, de)) for en, de in pairs]


PAIRS = [("dog", "Hund"), ("cat", "Katze"), ("house", "Haus"), ("tree", "Baum"), ("water", "Wasser")]


@pytest.fixture
def engine(store):
    fill(store, PAIRS)
    return QuizEngine(store, rng=random.Random(7)).attach()


@pytest.mark.unit
def test_session_starts_in_progress(engine):
    assert engine.state == SessionState.IN_PROGRESS
    assert engine.has_words
    prompt = engine.current_prompt
    assert (prompt.english, prompt.german) in PAIRS
    assert len(engine.options) == 4
    assert engine.options.count(prompt.german) == 1


class ReversingRandom(random.Random):
    def shuffle(self, x):
        x.reverse()


@pytest.mark.unit
@pytest.mark.parametrize("rng", [random.Random(seed) for seed in (0, 1, 7, 42, 1234)] + [ReversingRandom(), Mock(shuffle=Mock())])
def test_every_word_is_asked_once_before_exhaustion(store, rng):
    fill(store, PAIRS)
    engine = QuizEngine(store, rng=rng).attach()
    asked = []
    while engine.state == SessionState.IN_PROGRESS:
        prompt = engine.current_prompt
        asked.append(prompt.english)
        run(engine.answer(prompt.german))
    assert sorted(asked) == sorted(en for en, _ in PAIRS)
    assert engine.state == SessionState.EXHAUSTED
    assert engine.current_prompt is None
    assert store.progress(0) == (5, 5)


@pytest.mark.unit
def test_wrong_answer_keeps_prompt(engine, store):
    prompt = engine.current_prompt
    wrong = next(o for o in engine.options if o != prompt.german)
    result = run(engine.answer(wrong))
    assert not result.correct
    assert result.expected == prompt.german
    assert engine.current_prompt == prompt
    assert store.progress(0) == (0, 5)


@pytest.mark.unit
def test_exhausted_notification_fires_once(engine):
    listener = Mock()
    engine.on_exhausted(listener)
    while engine.state == SessionState.IN_PROGRESS:
        run(engine.answer(engine.current_prompt.german))
    result = run(engine.answer("Hund"))
    assert result.exhausted and not result.correct
    listener.assert_called_once_with(engine)


@pytest.mark.unit
def test_restart_clears_progress_and_starts_new_cycle(engine, store):
    while engine.state == SessionState.IN_PROGRESS:
        run(engine.answer(engine.current_prompt.german))
    run(engine.restart())
    assert engine.state == SessionState.IN_PROGRESS
    assert engine.remaining == 4
    assert store.progress(0) == (0, 5)


@pytest.mark.unit
def test_decline_stays_exhausted(engine):
    while engine.state == SessionState.IN_PROGRESS:
        run(engine.answer(engine.current_prompt.german))
    engine.decline()
    assert engine.state == SessionState.EXHAUSTED
    assert engine.current_prompt is None
    assert engine.options == []


@pytest.mark.unit
def test_single_word_still_gets_four_options(store):
    fill(store, [("dog", "Hund")])
    engine = QuizEngine(store, rng=random.Random(1)).attach()
    assert sorted(engine.options) == sorted(["Hund", "Hund" + DECOY_MARK, "Hund" + DECOY_MARK * 2, "Hund" + DECOY_MARK * 3])
    run(engine.answer("Hund"))
    assert engine.state == SessionState.EXHAUSTED


@pytest.mark.unit
def test_duplicate_german_forms_are_not_distractors():
    words = [Word(english="big", german="groß"), Word(english="tall", german="groß"), Word(english="small", german="klein")]
    options = build_options(words[0], words, random.Random(3))
    assert len(options) == 4
    assert options.count("groß") == 1
    assert "klein" in options


@pytest.mark.unit
def test_distractors_come_from_other_words():
    words = [Word(english=en, german=de) for en, de in PAIRS]
    options = build_options(words[0], words, random.Random(5))
    assert len(set(options)) == 4
    assert "Hund" in options
    assert set(options) <= {de for _, de in PAIRS}


@pytest.mark.unit
def test_empty_category_is_no_data(store):
    engine = QuizEngine(store).attach()
    assert not engine.has_words
    assert engine.state == SessionState.UNINITIALIZED
    assert engine.current_prompt is None
    assert run(engine.answer("Hund")).correct is False


@pytest.mark.unit
def test_adding_a_word_restarts_session(engine, store):
    run(engine.answer(engine.current_prompt.german))
    assert engine.remaining == 3
    fill(store, [("bird", "Vogel")])
    assert engine.state == SessionState.IN_PROGRESS
    assert engine.remaining == 5
    assert store.progress(0) == (0, 6)


@pytest.mark.unit
def test_switching_category_restarts_session(engine, store):
    run(store.create_category("Food"))
    fill(store, [("bread", "Brot"), ("milk", "Milch")], index=1)
    store.select_category(1)
    assert engine.category_id == store.categories[1].id
    assert engine.current_prompt.english in ("bread", "milk")
    store.select_category(0)
    assert engine.remaining == 4


@pytest.mark.unit
def test_deleting_current_word_restarts_session(engine, store):
    prompt = engine.current_prompt
    position = store.categories[0].word_index(prompt.word_id)
    run(store.delete_word(0, position))
    assert engine.state == SessionState.IN_PROGRESS
    assert engine.remaining == 3
    assert engine.current_prompt.word_id != prompt.word_id


@pytest.mark.unit
def test_failed_progress_write_is_logged_and_quiz_continues(engine, store, kv):
    prompt = engine.current_prompt
    with patch.object(kv, "set", AsyncMock(side_effect=StorageError("disk full"))):
        result = run(engine.answer(prompt.german))
    assert result.correct
    assert engine.current_prompt != prompt
    assert engine.remaining == 3
    assert store.progress(0) == (0, 5)


@pytest.mark.unit
def test_detach_stops_following_store(engine, store):
    engine.detach()
    fill(store, [("bird", "Vogel")])
    assert engine.remaining == 4


@pytest.mark.unit
def test_editing_current_word_rebuilds_prompt(store):
    fill(store, [("dog", "Hund"), ("cat", "Katze"), ("house", "Haus")])
    engine = QuizEngine(store, rng=Mock(shuffle=Mock())).attach()
    assert engine.current_prompt.german == "Hund"
    run(store.update_word(0, 0, german="NEU"))
    assert engine.state == SessionState.IN_PROGRESS
    assert engine.current_prompt.german == "NEU"
    assert "NEU" in engine.options
    assert "Hund" not in engine.options
    assert not run(engine.answer("Hund")).correct
    assert run(engine.answer("NEU")).correct


@pytest.mark.unit
def test_editing_bengali_keeps_session(engine, store):
    prompt = engine.current_prompt
    position = store.categories[0].word_index(prompt.word_id)
    run(store.update_word(0, position, bengali="কুকুর"))
    assert engine.current_prompt == prompt
    assert engine.remaining == 4
