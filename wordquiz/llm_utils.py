import json
from typing import Any, Dict, Optional

SYNONYM_REQUEST_COUNT = 5


def build_enrichment_prompt(word: str, model: str) -> dict:
    """Chat-completion body asking for synonyms, antonyms and one example sentence."""
    system = (
        "You are a bilingual vocabulary assistant for an English-German learner. "
        "Always return STRICT JSON only (no markdown, no code fences, no prose)."
    )
    user = (
        f'Word: "{word}"\n\n'
        f"1) Give up to {SYNONYM_REQUEST_COUNT} English synonyms and up to {SYNONYM_REQUEST_COUNT} English antonyms.\n"
        "   For every synonym and antonym provide:\n"
        '   - "en": the English word\n'
        '   - "de": a single-word German translation\n'
        '   - "bn": a single-word Bengali translation (Bangla script)\n'
        "2) Give one short German example sentence that uses the German translation of the word.\n"
        "3) Output STRICT JSON OBJECT ONLY with this structure:\n"
        '   {"example": "...", "synonyms": [{"en": "", "de": "", "bn": ""}], '
        '"antonyms": [{"en": "", "de": "", "bn": ""}]}\n'
    )
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        "temperature": 0.3,
        "response_format": {"type": "json_object"},
    }


def _strip_code_fence(text: str) -> str:
    if text.startswith('```'):
        text = text.strip('`').strip()
        if text.lower().startswith('json'):
            text = text[4:].strip()
    return text


def extract_first_json_object(content: Any) -> Optional[Dict[str, Any]]:
    """Return the first well-formed JSON object embedded in content, or None.

    Tolerates code fences and prose before or after the object.
    """
    if not isinstance(content, str):
        return None
    text = _strip_code_fence(content.strip())
    decoder = json.JSONDecoder()
    start = text.find('{')
    while start != -1:
        try:
            obj, _ = decoder.raw_decode(text, start)
        except ValueError:
            start = text.find('{', start + 1)
            continue
        if isinstance(obj, dict):
            return obj
        start = text.find('{', start + 1)
    return None


def completion_content(payload: Any) -> Optional[str]:
    """Pull choices[0].message.content out of a chat-completion payload."""
    try:
        return payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
