import json

import httpx


def completion(content, status_code=200, headers=None):
    """A chat-completion response whose first choice carries content."""
    body = {"choices": [{"message": {"content": content}}]}
    return httpx.Response(status_code, json=body, headers=headers or {})


def enrichment_json(example="Ich bin froh.", synonyms=None, antonyms=None):
    return json.dumps({
        "example": example,
        "synonyms": synonyms if synonyms is not None else [{"en": "glad", "de": "froh", "bn": "খুশি"}],
        "antonyms": antonyms if antonyms is not None else [{"en": "sad", "de": "traurig", "bn": "দুঃখিত"}],
    }, ensure_ascii=False)
