"""
Vocabulary store: the single source of truth for categories and words.

Categories are addressed by position in the public API, but every category and
word carries a stable id. Selection and quiz progress are kept by id, so
removing an entry never leaves another entry pointing at the wrong row.

Every mutator validates, builds a complete new snapshot, persists it in one
write, and only then publishes it in memory and notifies subscribers. A failed
write raises StorageError and leaves the published snapshot untouched.
"""

import json
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import InvalidIndex, NoCategorySelected, StorageError, ValidationError
from .kv_store import KeyValueStore
from .models import Category, Word, dump_categories
from .monitoring import ascii_safe

logger = logging.getLogger(__name__)

CATEGORIES_KEY = "categories"
DEFAULT_CATEGORY_NAME = "Default"
WORD_FIELDS = ("original", "source_language", "english", "bengali", "german")

Listener = Callable[["VocabularyStore"], None]

_UNCHANGED = object()


class VocabularyStore:
    def __init__(self, kv: KeyValueStore, key: str = CATEGORIES_KEY):
        self.kv = kv
        self.key = key
        self._categories: Tuple[Category, ...] = ()
        self._selected_id: Optional[str] = None
        self._listeners: List[Listener] = []

    @classmethod
    async def open(cls, kv: KeyValueStore, key: str = CATEGORIES_KEY) -> "VocabularyStore":
        store = cls(kv, key)
        await store.load()
        return store

    async def load(self) -> None:
        """Load the collection, seeding one empty default category if there is none."""
        raw = await self.kv.get(self.key)
        categories: List[Category] = []
        persist = False
        if raw is None:
            persist = True
        else:
            try:
                parsed = json.loads(raw)
                if not isinstance(parsed, list):
                    raise ValueError("stored collection is not a list")
                categories = [Category.model_validate(c) for c in parsed]
                persist = not categories
            except ValueError as e:
                # Leave the unreadable blob in place until the next mutation
                logger.error(f"Failed to load categories, starting with a default one: {e}")
        if not categories:
            categories = [Category(name=DEFAULT_CATEGORY_NAME)]
        if persist:
            await self._persist(categories)
        self._categories = tuple(categories)
        self._selected_id = categories[0].id
        logger.info(f"Loaded {len(categories)} categories")

    # ---- read access ----
    @property
    def categories(self) -> Tuple[Category, ...]:
        return self._categories

    @property
    def selected_index(self) -> Optional[int]:
        return self.index_of(self._selected_id) if self._selected_id else None

    @property
    def selected_category(self) -> Optional[Category]:
        return self._category_at(self.selected_index)

    def index_of(self, category_id: Optional[str]) -> Optional[int]:
        for i, c in enumerate(self._categories):
            if c.id == category_id:
                return i
        return None

    def category(self, index: int) -> Category:
        cat = self._category_at(index)
        if cat is None:
            raise InvalidIndex(f"no category at index {index}")
        return cat

    def eligible_words(self, index: Optional[int]) -> List[Word]:
        cat = self._category_at(index)
        return [w for w in cat.words if w.eligible] if cat else []

    def progress(self, index: int) -> Tuple[int, int]:
        """(answered, total words) for a category's progress badge."""
        cat = self._category_at(index)
        if cat is None:
            return 0, 0
        return len(cat.answered), len(cat.words)

    def _category_at(self, index: Optional[int]) -> Optional[Category]:
        if index is None or not 0 <= index < len(self._categories):
            return None
        return self._categories[index]

    # ---- subscription ----
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Store listener failed")

    # ---- persistence ----
    async def _persist(self, categories: Sequence[Category]) -> None:
        payload = json.dumps(dump_categories(list(categories)), ensure_ascii=False)
        try:
            await self.kv.set(self.key, payload)
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(str(e)) from e

    async def _commit(self, categories: List[Category], selected_id=_UNCHANGED) -> None:
        await self._persist(categories)
        self._categories = tuple(categories)
        if selected_id is not _UNCHANGED:
            self._selected_id = selected_id
        self._notify()

    def _replace(self, index: int, category: Category) -> List[Category]:
        cats = list(self._categories)
        cats[index] = category
        return cats

    # ---- selection ----
    def select_category(self, index: int) -> None:
        cat = self.category(index)
        if cat.id != self._selected_id:
            self._selected_id = cat.id
            self._notify()

    # ---- category mutators ----
    async def create_category(self, name: str) -> Category:
        trimmed = (name or "").strip()
        if not trimmed:
            raise ValidationError("category name is required")
        cat = Category(name=trimmed)
        selected = _UNCHANGED if self._selected_id else cat.id
        await self._commit(list(self._categories) + [cat], selected)
        logger.info(f"Created category '{ascii_safe(trimmed)}'")
        return cat

    async def rename_category(self, index: int, name: str) -> None:
        cat = self.category(index)
        trimmed = (name or "").strip()
        if not trimmed:
            raise ValidationError("category name is required")
        await self._commit(self._replace(index, cat.model_copy(update={"name": trimmed})))

    async def delete_category(self, index: int) -> None:
        cat = self._category_at(index)
        if cat is None:
            return
        remaining = [c for c in self._categories if c.id != cat.id]
        selected = _UNCHANGED
        if cat.id == self._selected_id:
            selected = remaining[0].id if remaining else None
        await self._commit(remaining, selected)
        logger.info(f"Deleted category '{ascii_safe(cat.name)}'")

    # ---- word mutators ----
    async def add_word(self, category_index: Optional[int], english: str, german: str) -> Word:
        index = self.selected_index if category_index is None else category_index
        cat = self._category_at(index)
        if cat is None:
            logger.warning(f"add_word: invalid category index {index}")
            raise NoCategorySelected(f"no category at index {index}")
        en = (english or "").strip()
        de = (german or "").strip()
        if not en or not de:
            raise ValidationError("both the English and the German word are required")
        word = Word(original=en, source_language="en", english=en, bengali="", german=de)
        updated = cat.model_copy(update={"words": cat.words + [word], "answered": []})
        await self._commit(self._replace(index, updated))
        return word

    async def update_word(self, category_index: int, word_index: int, **changes) -> None:
        cat = self._category_at(category_index)
        if cat is None or not 0 <= word_index < len(cat.words):
            return
        unknown = set(changes) - set(WORD_FIELDS)
        if unknown:
            raise ValidationError(f"unknown word fields: {sorted(unknown)}")
        cleaned = {k: (v or "").strip() for k, v in changes.items()}
        for required in ("english", "german"):
            if required in cleaned and not cleaned[required]:
                raise ValidationError(f"{required} form is required")
        words = list(cat.words)
        words[word_index] = words[word_index].model_copy(update=cleaned)
        await self._commit(self._replace(category_index, cat.model_copy(update={"words": words})))

    async def delete_word(self, category_index: int, word_index: int) -> None:
        cat = self._category_at(category_index)
        if cat is None or not 0 <= word_index < len(cat.words):
            return
        removed = cat.words[word_index]
        words = [w for w in cat.words if w.id != removed.id]
        answered = [wid for wid in cat.answered if wid != removed.id]
        updated = cat.model_copy(update={"words": words, "answered": answered})
        await self._commit(self._replace(category_index, updated))

    # ---- progress ----
    async def mark_answered(self, category_index: int, word_id: str) -> None:
        cat = self._category_at(category_index)
        if cat is None or cat.word_index(word_id) < 0 or word_id in cat.answered:
            return
        updated = cat.model_copy(update={"answered": cat.answered + [word_id]})
        await self._commit(self._replace(category_index, updated))

    async def reset_progress(self, category_index: int) -> None:
        cat = self._category_at(category_index)
        if cat is None or not cat.answered:
            return
        await self._commit(self._replace(category_index, cat.model_copy(update={"answered": []})))
