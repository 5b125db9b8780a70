import math
from datetime import UTC, datetime

import pytest

from textdigest.facts import analyze_facts, format_facts_for_digest, get_fact_statistics, rarity_scores
from textdigest.models import DocumentSummary, ExtractedDocument


def _summary(path: str, facts: list[str]) -> DocumentSummary:
    doc = ExtractedDocument(
        path=path,
        content="",
        size=0,
        modified_at=datetime(2026, 1, 1, tzinfo=UTC),
        doc_type="txt",
    )
    return DocumentSummary(document=doc, summary="", key_facts=facts, insights=[], model="m", confidence=1.0)


UNUSUAL = "Quarterly zeppelin maintenance logs mention seventeen obscure turbine anomalies overnight"


def test_fact_in_three_documents_is_common_with_union_of_sources() -> None:
    summaries = [
        _summary("a.txt", ["Acme ships product X [source: a.txt:4]"]),
        _summary("b.txt", ["Acme ships product X [source: b.txt:9]"]),
        _summary("c.txt", ["Acme ships  product X [source: c.txt:1]"]),
    ]

    result = analyze_facts(summaries)

    assert [f.text for f in result.common] == ["Acme ships product X"]
    assert result.common[0].frequency == 3
    assert result.common[0].sources == ["a.txt", "b.txt", "c.txt"]
    assert result.common[0].category == "common"


def test_frequency_counts_distinct_documents_not_mentions() -> None:
    summaries = [
        _summary("a.txt", ["Acme ships product X [source: a.txt:4]", "Acme ships product X [source: a.txt:8]"]),
        _summary("b.txt", ["Acme ships product X [source: b.txt:2]"]),
    ]
    result = analyze_facts(summaries)
    assert result.common == []
    assert all(f.text != "Acme ships product X" for f in result.all_facts())


def test_sole_single_document_fact_is_unusual() -> None:
    result = analyze_facts([_summary("a.txt", [f"{UNUSUAL} [source: a.txt:7]"])])

    assert [f.text for f in result.unusual] == [UNUSUAL]
    assert result.unusual[0].rarity_score == pytest.approx(1 / (2 + math.log(0.5)))


def test_long_single_document_fact_is_not_automatically_unusual() -> None:
    summaries = [
        _summary("a.txt", ["Acme ships product X [source: a.txt:1]", f"{UNUSUAL} [source: a.txt:7]"]),
        _summary("b.txt", ["Acme ships product X [source: b.txt:1]", "Budget approved [source: b.txt:3]"]),
        _summary("c.txt", ["Acme ships product X [source: c.txt:1]"]),
    ]

    result = analyze_facts(summaries)

    assert result.unusual == []
    assert [f.text for f in result.common] == ["Acme ships product X"]
    assert UNUSUAL not in {f.text for f in result.all_facts()}
    assert "Budget approved" not in {f.text for f in result.all_facts()}


def test_long_facts_exclude_facts_already_placed() -> None:
    shared_long = " ".join(f"shared{i}" for i in range(60))
    unique_long = " ".join(f"unique{i}" for i in range(55))
    summaries = [
        _summary("a.txt", [shared_long, unique_long]),
        _summary("b.txt", [shared_long]),
    ]

    result = analyze_facts(summaries)

    assert [f.text for f in result.long] == [shared_long, unique_long]
    assert result.long[0].word_count == 60
    assert result.unusual == []
    texts = [f.text for f in result.all_facts()]
    assert len(texts) == len(set(texts))


def test_common_list_is_sorted_and_capped(monkeypatch) -> None:
    from textdigest import config

    monkeypatch.setattr(config, "FACT_TOP_N", 2)
    summaries = [
        _summary(f"doc{i}.txt", ["alpha fact", *(["beta fact"] if i < 4 else []), *(["gamma fact"] if i < 3 else [])])
        for i in range(5)
    ]

    result = analyze_facts(summaries)

    assert [(f.text, f.frequency) for f in result.common] == [("alpha fact", 5), ("beta fact", 4)]


def test_thresholds_can_be_overridden() -> None:
    summaries = [_summary("a.txt", ["alpha fact"]), _summary("b.txt", ["alpha fact"])]
    result = analyze_facts(summaries, common_min_frequency=2)
    assert result.common[0].frequency == 2


def test_rarity_of_stopword_only_fact_is_neutral() -> None:
    scores = rarity_scores(["the and of", "turbine anomalies"])
    assert scores[0] == 0.5
    assert 0.0 < scores[1] < 1.0


def test_rarity_does_not_track_fact_length() -> None:
    facts = [
        "alpha beta gamma",
        "delta epsilon zeta eta theta iota",
        " ".join(f"word{i}" for i in range(40)),
    ]
    scores = rarity_scores(facts)

    expected = 1 / (2 + math.log(3 / 2))
    assert scores == pytest.approx([expected, expected, expected])


def test_shared_vocabulary_lowers_the_average_term_weight() -> None:
    scores = rarity_scores(["budget approved", "zeppelin turbine", "budget review"])
    assert scores[0] > scores[1]
    assert all(0.0 < score < 0.7 for score in scores)


def test_statistics_and_formatting() -> None:
    summaries = [_summary(f"d{i}.txt", ["Acme ships product X"]) for i in range(4)]
    result = analyze_facts(summaries)

    stats = get_fact_statistics(result)
    lines = format_facts_for_digest(result.common)

    assert stats["total_unique_facts"] == 1
    assert stats["most_common_fact_count"] == 4
    assert stats["longest_fact_words"] == 0
    assert lines[0].startswith("- Acme ships product X")
    assert "(+1 more)" in lines[0]


def test_empty_summaries_produce_empty_analysis() -> None:
    result = analyze_facts([])
    assert result.all_facts() == []
    assert get_fact_statistics(result)["average_rarity_score"] == pytest.approx(0.0)
