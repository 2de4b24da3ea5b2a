#!/usr/bin/env python3
"""
Command line front-end for the vocabulary trainer.

Manages categories and words in the local store, runs a multiple-choice quiz
on a category and fetches synonyms/antonyms for a category's words.
"""

import sys
import asyncio
import argparse
import logging
from typing import Callable, List, Optional

from .config import Settings
from .enrichment import EnrichmentClient
from .errors import VocabError
from .kv_store import FileKeyValueStore, KeyValueStore
from .models import Enrichment, LexicalItem
from .monitoring import configure_logging
from .quiz_engine import QuizEngine, SessionState
from .vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)

QUIT_ANSWERS = ('q', 'quit', 'exit')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='wordquiz', description='English-German vocabulary trainer')
    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('categories', help='List categories with quiz progress')

    p = sub.add_parser('add-category', help='Create a category')
    p.add_argument('name', help='Category name')

    p = sub.add_parser('rename-category', help='Rename a category')
    p.add_argument('index', type=int, help='Category position')
    p.add_argument('name', help='New name')

    p = sub.add_parser('delete-category', help='Delete a category and its words')
    p.add_argument('index', type=int, help='Category position')

    p = sub.add_parser('words', help='List the words of a category')
    p.add_argument('index', type=int, help='Category position')

    p = sub.add_parser('add-word', help='Add an English/German word pair')
    p.add_argument('index', type=int, help='Category position')
    p.add_argument('english', help='English form')
    p.add_argument('german', help='German form')

    p = sub.add_parser('edit-word', help='Change the forms of a word')
    p.add_argument('index', type=int, help='Category position')
    p.add_argument('word', type=int, help='Word position within the category')
    p.add_argument('--english', help='New English form')
    p.add_argument('--german', help='New German form')
    p.add_argument('--bengali', help='New Bengali form')

    p = sub.add_parser('delete-word', help='Delete a word from a category')
    p.add_argument('index', type=int, help='Category position')
    p.add_argument('word', type=int, help='Word position within the category')

    p = sub.add_parser('enrich', help='Fetch synonyms, antonyms and an example for every word')
    p.add_argument('index', type=int, help='Category position')

    p = sub.add_parser('quiz', help='Run a multiple-choice quiz on a category')
    p.add_argument('index', type=int, help='Category position')
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def _format_items(items: List[LexicalItem]) -> str:
    return ', '.join(f"{i.en} / {i.de} / {i.bn}" for i in items)


def print_enrichment(word: str, result: Enrichment) -> None:
    print(f"{word}")
    print(f"  example:  {result.example}")
    print(f"  synonyms: {_format_items(result.synonyms)}")
    print(f"  antonyms: {_format_items(result.antonyms)}")


async def run_quiz(store: VocabularyStore, index: int, ask: Callable[[str], str] = input) -> int:
    """Interactive loop: pick an option by number, 'q' to stop."""
    store.select_category(index)
    engine = QuizEngine(store).attach()
    try:
        if not engine.has_words:
            print("No quiz-ready words in this category (both English and German are needed).")
            return 0
        correct = 0
        while True:
            if engine.state == SessionState.EXHAUSTED:
                answer = ask("All words answered. Start again? [y/N] ").strip().lower()
                if answer in ('y', 'yes'):
                    await engine.restart()
                    continue
                engine.decline()
                break
            prompt = engine.current_prompt
            print(f"\n{prompt.english}")
            for n, option in enumerate(engine.options, 1):
                print(f"  {n}) {option}")
            answer = ask("> ").strip().lower()
            if answer in QUIT_ANSWERS:
                break
            if not answer.isdigit() or not 1 <= int(answer) <= len(engine.options):
                print("Please enter one of the option numbers.")
                continue
            result = await engine.answer(engine.options[int(answer) - 1])
            if result.correct:
                correct += 1
                print("Correct!")
            else:
                print("Wrong, try again.")
        answered, total = store.progress(index)
        print(f"\n{correct} correct this session; {answered}/{total} words done in this cycle.")
        return 0
    finally:
        engine.detach()


async def run(args: argparse.Namespace, settings: Settings, kv: Optional[KeyValueStore] = None,
              ask: Callable[[str], str] = input) -> int:
    kv = kv or FileKeyValueStore(settings.data_dir, settings.namespace)
    store = await VocabularyStore.open(kv)

    if args.command == 'categories':
        for i, cat in enumerate(store.categories):
            answered, total = store.progress(i)
            marker = '*' if i == store.selected_index else ' '
            print(f"{marker}{i}: {cat.name} ({answered}/{total})")
    elif args.command == 'add-category':
        cat = await store.create_category(args.name)
        print(f"Created category {len(store.categories) - 1}: {cat.name}")
    elif args.command == 'rename-category':
        await store.rename_category(args.index, args.name)
        print(f"Renamed category {args.index} to {store.category(args.index).name}")
    elif args.command == 'delete-category':
        name = store.category(args.index).name
        await store.delete_category(args.index)
        print(f"Deleted category {name}")
    elif args.command == 'words':
        cat = store.category(args.index)
        if not cat.words:
            print("No words yet.")
        for i, w in enumerate(cat.words):
            done = 'x' if w.id in cat.answered else ' '
            print(f"[{done}] {i}: {w.english} = {w.german}" + (f" ({w.bengali})" if w.bengali else ''))
    elif args.command == 'add-word':
        word = await store.add_word(args.index, args.english, args.german)
        print(f"Added {word.english} = {word.german}")
    elif args.command == 'edit-word':
        cat = store.category(args.index)
        if not 0 <= args.word < len(cat.words):
            print(f"No word at position {args.word}", file=sys.stderr)
            return 1
        changes = {k: getattr(args, k) for k in ('english', 'german', 'bengali') if getattr(args, k) is not None}
        if not changes:
            print("Nothing to change; pass --english, --german or --bengali", file=sys.stderr)
            return 1
        await store.update_word(args.index, args.word, **changes)
        w = store.category(args.index).words[args.word]
        print(f"Updated {w.english} = {w.german}" + (f" ({w.bengali})" if w.bengali else ''))
    elif args.command == 'delete-word':
        cat = store.category(args.index)
        if not 0 <= args.word < len(cat.words):
            print(f"No word at position {args.word}", file=sys.stderr)
            return 1
        removed = cat.words[args.word]
        await store.delete_word(args.index, args.word)
        print(f"Deleted {removed.english}")
    elif args.command == 'enrich':
        words = [w.english for w in store.category(args.index).words if w.english]
        client = EnrichmentClient.from_settings(kv, settings)
        if not client.has_credentials:
            print("OPENROUTER_API_KEY is not set; only cached results are shown.")
        async for word, result in client.iter_enrichments(words):
            print_enrichment(word, result)
    elif args.command == 'quiz':
        store.category(args.index)
        return await run_quiz(store, args.index, ask)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = Settings.from_env()
    configure_logging(settings.data_dir, settings.log_level)
    try:
        return asyncio.run(run(args, settings))
    except VocabError as e:
        logger.debug(f"Command '{args.command}' failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


if __name__ == '__main__':
    sys.exit(main())
