"""Synthetic field values for write workloads.

The word pool for an experiment point is generated once from a seed and
shared by every trial and every analysis strategy at that point, so
strategies are compared on identical vocabularies.
"""

from __future__ import annotations

from collections.abc import Sequence
import random
import string


LOWERCASE_ALPHABET = string.ascii_lowercase
SYMBOL_ALPHABET = string.ascii_letters + string.digits + ",.-;:_#'+*"

_PASSAGE = (
    "The Second South Indochina War was over, America had experienced its most profound defeat ever in its "
    'history, and Vietnam became synonymous with "quagmire". Its impact on American culture was immeasurable, '
    "as it taught an entire generation of Americans to fear and mistrust their government, it taught American "
    'leaders to fear any amount of US military casualties, and brought the phrase "clear exit strategy" directly '
    "into the American political lexicon. Not until Ronald Reagan used the American military to \"liberate\" the "
    "small island nation of Grenada would American military intervention be considered a possible tool of "
    "diplomacy by American presidents, and even then only with great sensitivity to domestic concern, as Bill "
    "Clinton would find out during his peacekeeping missions to Somalia and Kosovo. In quantifiable terms, too, "
    "Vietnam's effects clearly fell short of Johnson's goal of a war in \"cold blood\". Final tally: 3 million "
    "Americans served in the war, 150,000 seriously wounded, 58,000 dead, and over 1,000 MIA, not to mention "
    "nearly a million NVA/Viet Cong troop casualties, 250,000 South Vietnamese casualties, and hundreds of "
    "thousands--if not millions, as some historians advocated--of civilian casualties.\n"
)


def _as_random(seed: int | random.Random) -> random.Random:
    if isinstance(seed, random.Random):
        return seed
    return random.Random(seed)


def generate_word(word_length: int, rng: random.Random, alphabet: str = LOWERCASE_ALPHABET) -> str:
    return "".join(alphabet[rng.randrange(len(alphabet))] for _ in range(word_length))


def generate_word_pool(word_length: int, distinct_word_count: int, seed: int | random.Random) -> list[str]:
    """Return ``distinct_word_count`` distinct lowercase words of ``word_length`` characters.

    Duplicates are discarded and drawing continues until enough distinct
    words exist, so this never returns when fewer than
    ``distinct_word_count`` words of that length can be formed.
    """

    rng = _as_random(seed)
    pool: dict[str, None] = {}
    while len(pool) < distinct_word_count:
        pool.setdefault(generate_word(word_length, rng), None)
    return list(pool)


def concat_random_words(pool: Sequence[str], rng: random.Random, count: int) -> str:
    """Join ``count`` words drawn uniformly with replacement, each followed by a space."""

    return "".join(pool[rng.randrange(len(pool))] + " " for _ in range(count))


def words_from_passage(rng: random.Random) -> str:
    """Stitch 4-13 random excerpts of an English passage into one value."""

    parts = rng.randrange(10) + 4
    max_length = len(_PASSAGE) // 20
    pieces: list[str] = []
    for _ in range(parts):
        start = rng.randrange(len(_PASSAGE) - max_length)
        length = rng.randrange(max_length)
        pieces.append(_PASSAGE[start : start + length])
    return "".join(pieces)


def random_symbol_words(rng: random.Random) -> str:
    """Return 4-13 words of 4-8 characters drawn from letters, digits and punctuation."""

    words = rng.randrange(10) + 4
    return "".join(generate_word(rng.randrange(5) + 4, rng, SYMBOL_ALPHABET) + " " for _ in range(words))
