import asyncio

import pytest

from wordquiz.kv_store import MemoryKeyValueStore
from wordquiz.vocabulary_store import VocabularyStore


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv):
    return asyncio.run(VocabularyStore.open(kv))
