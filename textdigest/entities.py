"""Entity and concept tagging for knowledge graph construction, backed by spaCy.

Named entities come from the loaded pipeline's NER component: PERSON spans are
people, GPE and LOC spans are places, ORG spans are organizations. Concepts are
lemmas of common nouns, most frequent first.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import lru_cache

import spacy
from spacy.language import Language
from spacy.tokens import Doc, Span

log = logging.getLogger(__name__)

ENTITY_KINDS = {
    "PERSON": "person",
    "GPE": "place",
    "LOC": "place",
    "ORG": "organization",
}
MIN_NOUN_LENGTH = 3


class TaggerUnavailableError(RuntimeError):
    """Raised when the configured spaCy pipeline cannot be loaded."""


@dataclass
class TaggedEntities:
    people: list[str] = field(default_factory=list)
    places: list[str] = field(default_factory=list)
    organizations: list[str] = field(default_factory=list)
    nouns: list[str] = field(default_factory=list)


@lru_cache(maxsize=4)
def load_language(model: str) -> Language:
    try:
        nlp = spacy.load(model)
    except OSError as exc:
        raise TaggerUnavailableError(
            f"spaCy pipeline '{model}' is not installed (try: python -m spacy download {model})."
        ) from exc
    log.info("Loaded spaCy pipeline %s (%s).", model, ", ".join(nlp.pipe_names))
    return nlp


def parse(text: str) -> Doc:
    from textdigest import config

    nlp = load_language(config.SPACY_MODEL)
    if len(text) > config.NLP_MAX_CHARS:
        log.debug("Tagging the first %d of %d characters.", config.NLP_MAX_CHARS, len(text))
    return nlp(text[: config.NLP_MAX_CHARS])


def entity_label(span: Span) -> str:
    """Span text without leading determiners, trailing possessives or edge punctuation."""
    tokens = list(span)
    while tokens and (tokens[0].pos_ == "DET" or tokens[0].is_punct):
        tokens.pop(0)
    while tokens and (tokens[-1].tag_ == "POS" or tokens[-1].is_punct):
        tokens.pop()
    if not tokens:
        return ""
    text = span.doc[tokens[0].i : tokens[-1].i + 1].text
    return " ".join(text.split())


def group_entities(labelled: Iterable[tuple[str, str]]) -> TaggedEntities:
    """Bucket ``(kind, label)`` pairs, keeping the first spelling of each label per kind."""
    tagged = TaggedEntities()
    buckets = {"person": tagged.people, "place": tagged.places, "organization": tagged.organizations}
    seen: dict[str, set[str]] = {kind: set() for kind in buckets}
    for kind, label in labelled:
        key = label.strip().lower()
        if not key or key in seen[kind]:
            continue
        seen[kind].add(key)
        buckets[kind].append(label.strip())
    return tagged


def rank_nouns(doc: Doc, limit: int | None = None) -> list[str]:
    counts: Counter[str] = Counter()
    for token in doc:
        if token.pos_ != "NOUN" or token.is_stop or not token.is_alpha:
            continue
        lemma = token.lemma_.lower()
        if len(lemma) >= MIN_NOUN_LENGTH:
            counts[lemma] += 1
    ranked = [noun for noun, _ in counts.most_common()]
    return ranked[:limit] if limit is not None else ranked


def extract_nouns(text: str, limit: int | None = None) -> list[str]:
    return rank_nouns(parse(text), limit)


def tag_entities(text: str) -> TaggedEntities:
    """Tag people, places, organizations and concept nouns in ``text``.

    Each entity list holds distinct labels (case-insensitive) in order of first mention.
    """
    doc = parse(text)
    tagged = group_entities(
        (ENTITY_KINDS[ent.label_], entity_label(ent)) for ent in doc.ents if ent.label_ in ENTITY_KINDS
    )
    tagged.nouns = rank_nouns(doc)
    return tagged
