import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .errors import StorageError
from .models import Word
from .monitoring import ascii_safe
from .vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)

OPTION_COUNT = 4
DECOY_MARK = "’"


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    IN_PROGRESS = "in_progress"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class Prompt:
    word_id: str
    english: str
    german: str


@dataclass(frozen=True)
class AnswerResult:
    correct: bool
    chosen: str
    expected: str
    exhausted: bool = False


ExhaustedListener = Callable[["QuizEngine"], None]


def build_options(word: Word, eligible: List[Word], rng: random.Random, count: int = OPTION_COUNT) -> List[str]:
    """Correct German form plus up to count-1 distractors from the other eligible words.

    When the category has too few distinct German forms, the set is padded with
    decoys derived from the answer so it always has `count` entries.
    """
    correct = word.german
    others = []
    for w in eligible:
        if w.id == word.id or w.german == correct or w.german in others:
            continue
        others.append(w.german)
    rng.shuffle(others)
    choices = [correct] + others[:count - 1]
    marks = 1
    while len(choices) < count:
        decoy = correct + DECOY_MARK * marks
        marks += 1
        if decoy not in choices:
            choices.append(decoy)
    rng.shuffle(choices)
    return choices


class QuizEngine:
    """
    One quiz session over the selected category's eligible words.

    Words are drawn without replacement from a shuffled pool. A correct answer
    records progress in the store and moves on; once the pool is empty the
    session is exhausted and listeners are told once. restart() starts a new
    cycle, decline() leaves it exhausted.
    """

    def __init__(self, store: VocabularyStore, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()
        self.state = SessionState.UNINITIALIZED
        self.current_prompt: Optional[Prompt] = None
        self.options: List[str] = []
        self._pool: List[str] = []
        self._words = {}
        self._eligible: List[Word] = []
        self._identity: Optional[Tuple[str, Tuple[Tuple[str, str, str], ...]]] = None
        self._exhausted_notified = False
        self._listeners: List[ExhaustedListener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    # ---- wiring ----
    def attach(self) -> "QuizEngine":
        """Follow store changes and start a session on the current data."""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(lambda _store: self.refresh())
        self.refresh()
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_exhausted(self, listener: ExhaustedListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    # ---- view ----
    @property
    def has_words(self) -> bool:
        return bool(self._eligible)

    @property
    def remaining(self) -> int:
        return len(self._pool)

    @property
    def category_id(self) -> Optional[str]:
        return self._identity[0] if self._identity else None

    # ---- session ----
    def refresh(self) -> None:
        """Re-read the selected category; restart the session if its word list or any quizzed form changed."""
        index = self.store.selected_index
        cat = self.store.selected_category
        eligible = self.store.eligible_words(index)
        identity = (cat.id, tuple((w.id, w.english, w.german) for w in eligible)) if cat else None
        self._eligible = eligible
        self._words = {w.id: w for w in eligible}
        if identity == self._identity and self.state != SessionState.UNINITIALIZED:
            return
        self._identity = identity
        self._reset()
        if eligible:
            self._start_cycle()
        else:
            logger.info("No eligible words in the selected category")

    def _reset(self) -> None:
        self.state = SessionState.UNINITIALIZED
        self.current_prompt = None
        self.options = []
        self._pool = []
        self._exhausted_notified = False

    def _start_cycle(self) -> None:
        pool = [w.id for w in self._eligible]
        self.rng.shuffle(pool)
        self._pool = pool
        self.state = SessionState.IN_PROGRESS
        self._exhausted_notified = False
        self._next_prompt()
        logger.debug(f"Started quiz cycle over {len(pool)} words")

    def _next_prompt(self) -> None:
        word = self._words[self._pool.pop(0)]
        self.current_prompt = Prompt(word_id=word.id, english=word.english, german=word.german)
        self.options = build_options(word, self._eligible, self.rng)

    def _exhaust(self) -> None:
        self.state = SessionState.EXHAUSTED
        self.current_prompt = None
        self.options = []
        if self._exhausted_notified:
            return
        self._exhausted_notified = True
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Exhausted listener failed")

    async def answer(self, choice: str) -> AnswerResult:
        """Check a chosen option against the current prompt."""
        prompt = self.current_prompt
        if self.state != SessionState.IN_PROGRESS or prompt is None:
            return AnswerResult(correct=False, chosen=choice, expected="", exhausted=self.state == SessionState.EXHAUSTED)
        if choice != prompt.german:
            return AnswerResult(correct=False, chosen=choice, expected=prompt.german)

        identity = self._identity
        index = self.store.index_of(self.category_id)
        if index is not None:
            try:
                await self.store.mark_answered(index, prompt.word_id)
            except StorageError as e:
                logger.warning(f"Could not record progress for '{ascii_safe(prompt.english)}': {e}")
        if identity != self._identity or self.current_prompt != prompt:
            # the word list changed while progress was being saved
            return AnswerResult(correct=True, chosen=choice, expected=prompt.german, exhausted=False)
        if self._pool:
            self._next_prompt()
        else:
            self._exhaust()
        return AnswerResult(correct=True, chosen=choice, expected=prompt.german,
                            exhausted=self.state == SessionState.EXHAUSTED)

    async def restart(self) -> None:
        """Accept the restart offer: clear the category's progress and reshuffle."""
        if self.state != SessionState.EXHAUSTED or not self._eligible:
            return
        index = self.store.index_of(self.category_id)
        if index is not None:
            try:
                await self.store.reset_progress(index)
            except StorageError as e:
                logger.warning(f"Could not reset progress: {e}")
        if self.state == SessionState.EXHAUSTED and self._eligible:
            self._start_cycle()

    def decline(self) -> None:
        """Decline the restart offer; the session stays exhausted with no prompt."""
        if self.state == SessionState.EXHAUSTED:
            self.current_prompt = None
            self.options = []
