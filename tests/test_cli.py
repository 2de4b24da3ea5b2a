import asyncio
import itertools
from unittest.mock import patch

import pytest

from helpers import completion, enrichment_json
from wordquiz import cli
from wordquiz.config import Settings


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path, api_key=None, models=["m1"])


def invoke(argv, settings, kv, ask=input):
    return asyncio.run(cli.run(cli.parse_args(argv), settings, kv=kv, ask=ask))


def quiz_answers(restarts=0):
    """Try option numbers in turn; answer the restart offer `restarts` times with yes."""
    numbers = itertools.cycle(["1", "2", "3", "4"])
    offers = iter(["y"] * restarts)

    def ask(prompt):
        if prompt.startswith("All words"):
            return next(offers, "n")
        return next(numbers)
    return ask


@pytest.mark.unit
def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        cli.parse_args([])


@pytest.mark.unit
def test_category_commands(settings, kv, capsys):
    assert invoke(["add-category", "Food"], settings, kv) == 0
    assert invoke(["rename-category", "1", "Essen"], settings, kv) == 0
    assert invoke(["categories"], settings, kv) == 0
    out = capsys.readouterr().out
    assert "*0: Default (0/0)" in out
    assert " 1: Essen (0/0)" in out

    assert invoke(["delete-category", "0"], settings, kv) == 0
    invoke(["categories"], settings, kv)
    out = capsys.readouterr().out
    assert "Deleted category Default" in out
    assert "*0: Essen" in out


@pytest.mark.unit
def test_word_commands(settings, kv, capsys):
    invoke(["add-word", "0", "dog", "Hund"], settings, kv)
    invoke(["add-word", "0", "cat", "Katze"], settings, kv)
    invoke(["delete-word", "0", "0"], settings, kv)
    invoke(["words", "0"], settings, kv)
    out = capsys.readouterr().out
    assert "Deleted dog" in out
    assert "[ ] 0: cat = Katze" in out
    assert invoke(["delete-word", "0", "5"], settings, kv) == 1


@pytest.mark.unit
def test_edit_word(settings, kv, capsys):
    invoke(["add-word", "0", "water", "Wasr"], settings, kv)
    assert invoke(["edit-word", "0", "0", "--german", "Wasser", "--bengali", "জল"], settings, kv) == 0
    assert "Updated water = Wasser (জল)" in capsys.readouterr().out
    invoke(["words", "0"], settings, kv)
    assert "0: water = Wasser (জল)" in capsys.readouterr().out
    assert invoke(["edit-word", "0", "0"], settings, kv) == 1
    assert invoke(["edit-word", "0", "3", "--english", "x"], settings, kv) == 1


@pytest.mark.unit
def test_quiz_runs_until_exhausted(settings, kv, capsys):
    invoke(["add-word", "0", "dog", "Hund"], settings, kv)
    assert invoke(["quiz", "0"], settings, kv, ask=quiz_answers()) == 0
    out = capsys.readouterr().out
    assert "dog" in out
    assert "1 correct this session; 1/1 words done" in out


@pytest.mark.unit
def test_quiz_restart(settings, kv, capsys):
    invoke(["add-word", "0", "dog", "Hund"], settings, kv)
    invoke(["quiz", "0"], settings, kv, ask=quiz_answers(restarts=1))
    assert "2 correct this session; 1/1 words done" in capsys.readouterr().out


@pytest.mark.unit
def test_quiz_on_empty_category(settings, kv, capsys):
    assert invoke(["quiz", "0"], settings, kv, ask=quiz_answers()) == 0
    assert "No quiz-ready words" in capsys.readouterr().out


@pytest.mark.unit
def test_quiz_can_be_quit(settings, kv, capsys):
    invoke(["add-word", "0", "dog", "Hund"], settings, kv)
    answers = iter(["seven", "q"])
    invoke(["quiz", "0"], settings, kv, ask=lambda prompt: next(answers))
    out = capsys.readouterr().out
    assert "Please enter one of the option numbers." in out
    assert "0 correct this session; 0/1 words done" in out


@pytest.mark.api
def test_enrich_prints_results(settings, kv, capsys):
    invoke(["add-word", "0", "happy", "froh"], settings, kv)
    settings.api_key = "test_key"
    responses = iter([completion(enrichment_json())])

    async def fake_post(self, url, **kwargs):
        return next(responses)

    with patch("httpx.AsyncClient.post", fake_post):
        assert invoke(["enrich", "0"], settings, kv) == 0
    out = capsys.readouterr().out
    assert "example:  Ich bin froh." in out
    assert "glad / froh" in out


@pytest.mark.unit
def test_enrich_without_key_warns(settings, kv, capsys):
    invoke(["add-word", "0", "happy", "froh"], settings, kv)
    invoke(["enrich", "0"], settings, kv)
    out = capsys.readouterr().out
    assert "OPENROUTER_API_KEY is not set" in out
    assert "example:  –" in out


@pytest.mark.integration
def test_main_reports_errors(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("WORDQUIZ_DATA_DIR", str(tmp_path))
    with patch("wordquiz.cli.configure_logging"):
        assert cli.main(["add-category", "Food"]) == 0
        assert cli.main(["add-category", "   "]) == 1
        assert cli.main(["words", "9"]) == 1
        assert cli.main(["categories"]) == 0
    captured = capsys.readouterr()
    assert "Error: category name is required" in captured.err
    assert "Error: no category at index 9" in captured.err
    assert "1: Food (0/0)" in captured.out
