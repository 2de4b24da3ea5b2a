import uuid
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

PLACEHOLDER = "–"
MAX_LEXICAL_ITEMS = 3


def new_id() -> str:
    return uuid.uuid4().hex


class Word(BaseModel):
    """A word pair. Stored with the short keys the app has always used (en/bn/de)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    original: str = ""
    source_language: str = Field("en", alias="lang")
    english: str = Field("", alias="en")
    bengali: str = Field("", alias="bn")
    german: str = Field("", alias="de")

    @field_validator("original", "source_language", "english", "bengali", "german", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def eligible(self) -> bool:
        """Quiz-eligible iff both the English and German forms are present."""
        return bool(self.english) and bool(self.german)


class Category(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    name: str
    words: List[Word] = Field(default_factory=list)
    # word ids answered correctly in the current quiz cycle, in answer order
    answered: List[str] = Field(default_factory=list)

    def word_index(self, word_id: str) -> int:
        for i, w in enumerate(self.words):
            if w.id == word_id:
                return i
        return -1


def dump_categories(categories: List[Category]) -> List[Dict[str, Any]]:
    return [c.model_dump(mode="json", by_alias=True) for c in categories]


class LexicalItem(BaseModel):
    en: str = PLACEHOLDER
    de: str = PLACEHOLDER
    bn: str = PLACEHOLDER

    @classmethod
    def merged(cls, raw: Any) -> "LexicalItem":
        """Merge a loosely-shaped model entry over the placeholder item."""
        if isinstance(raw, str):
            raw = {"en": raw}
        if not isinstance(raw, dict):
            return cls()
        fields = {}
        for key in ("en", "de", "bn"):
            value = raw.get(key)
            if isinstance(value, str) and value.strip():
                fields[key] = value.strip()
        return cls(**fields)


def _pick(items: Any) -> List[LexicalItem]:
    if not isinstance(items, list) or not items:
        return [LexicalItem()]
    return [LexicalItem.merged(o) for o in items[:MAX_LEXICAL_ITEMS]]


class Enrichment(BaseModel):
    example: str = PLACEHOLDER
    synonyms: List[LexicalItem] = Field(default_factory=lambda: [LexicalItem()])
    antonyms: List[LexicalItem] = Field(default_factory=lambda: [LexicalItem()])

    @classmethod
    def empty(cls) -> "Enrichment":
        return cls()

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Enrichment":
        """Build from a model response: cap lists at three and fill missing sub-fields."""
        example = data.get("example")
        if not isinstance(example, str) or not example.strip():
            example = PLACEHOLDER
        return cls(
            example=example.strip(),
            synonyms=_pick(data.get("synonyms")),
            antonyms=_pick(data.get("antonyms")),
        )

    @property
    def is_placeholder(self) -> bool:
        return self == Enrichment.empty()
