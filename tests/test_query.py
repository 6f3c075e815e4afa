from pathlib import Path
from typing import Optional

import pytest

from catalog.models import MediaItem
from query import QueryEngine, SortSpec, compile_query, parse_token


def make_item(
    name: str,
    size: int = 0,
    duration: Optional[float] = None,
    tags: Optional[list[str]] = None,
    relative_path: Optional[str] = None,
    modified_at: float = 0.0,
) -> MediaItem:
    item = MediaItem(
        name=name,
        relative_path=relative_path or name,
        size_bytes=size,
        modified_at=modified_at,
        mime_type="video/mp4",
        source=Path(name),
        tags=list(tags or []),
    )
    if duration is not None:
        item.record_duration(duration)
    return item


def test_empty_query_returns_everything_in_order() -> None:
    items = [make_item("b.mp4"), make_item("a.mp4"), make_item("c.mp4")]
    engine = QueryEngine()

    assert engine.evaluate(items, "") == items
    assert engine.evaluate(items, "   ") == items


def test_duration_filter_treats_missing_as_zero() -> None:
    short, long, unknown = make_item("s.mp4", duration=30), make_item("l.mp4", duration=90), make_item("u.mp4")

    assert QueryEngine().evaluate([short, long, unknown], "dur:>60") == [long]
    assert QueryEngine().evaluate([short, long, unknown], "dur:<=30") == [short, unknown]
    assert QueryEngine().evaluate([short, long, unknown], "DUR:=90") == [long]


def test_size_filter_uses_binary_units() -> None:
    small = make_item("small.mp4", size=400 * 1024 * 1024)
    large = make_item("large.mp4", size=600 * 1024 * 1024)

    assert QueryEngine().evaluate([small, large], "size:<500mb") == [small]
    assert QueryEngine().evaluate([small, large], "size:>=0.5GB") == [large]
    assert QueryEngine().evaluate([small, large], "size:>1000") == [small, large]
    assert QueryEngine().evaluate([small, large], "size:<1000b") == []


def test_tag_filter_is_case_insensitive_substring() -> None:
    tagged = make_item("a.mp4", tags=["Holiday2023", "beach"])
    plain = make_item("b.mp4")

    assert QueryEngine().evaluate([tagged, plain], "#holiday") == [tagged]
    assert QueryEngine().evaluate([tagged, plain], "#BEA") == [tagged]
    assert QueryEngine().evaluate([tagged, plain], "#mountain") == []


def test_plain_text_matches_name_or_path() -> None:
    in_name = make_item("Birthday.mp4", relative_path="2020/Birthday.mp4")
    in_path = make_item("clip.mp4", relative_path="birthdays/clip.mp4")
    other = make_item("other.mkv", relative_path="misc/other.mkv")

    assert QueryEngine().evaluate([in_name, in_path, other], "birthday") == [in_name, in_path]


def test_tokens_are_and_combined() -> None:
    match = make_item("trip.mp4", size=10, duration=120, tags=["travel"])
    wrong_tag = make_item("trip2.mp4", size=10, duration=120)
    too_short = make_item("trip3.mp4", size=10, duration=20, tags=["travel"])

    result = QueryEngine().evaluate([match, wrong_tag, too_short], "trip #travel dur:>=60")

    assert result == [match]


def test_malformed_filters_fall_back_to_substring() -> None:
    odd = make_item("dur:>>5.mp4")
    sized = make_item("size:<1xb.mkv")
    normal = make_item("video.mp4", size=1, duration=100)

    assert parse_token("dur:>>5")(odd) is True
    assert parse_token("dur:>>5")(normal) is False
    assert parse_token("size:<1xb")(sized) is True
    assert parse_token("dur:~5")(normal) is False


def test_compile_query_empty_matches_all() -> None:
    assert compile_query("")(make_item("x.mp4")) is True


def test_sort_size_descending() -> None:
    items = [make_item("a", size=10), make_item("b", size=500), make_item("c", size=30)]

    result = QueryEngine().evaluate(items, "", "size-desc")

    assert [item.size_bytes for item in result] == [500, 30, 10]


def test_sort_by_duration_and_date() -> None:
    unknown = make_item("u", modified_at=300)
    long = make_item("l", duration=90, modified_at=100)
    short = make_item("s", duration=30, modified_at=200)

    assert SortSpec.parse("dur-asc").apply([long, unknown, short]) == [unknown, short, long]
    assert SortSpec.parse("date-desc").apply([long, unknown, short]) == [unknown, short, long]


def test_sort_by_name_ignores_case() -> None:
    items = [make_item("gamma.mp4"), make_item("Beta.mp4"), make_item("alpha.mp4")]

    result = SortSpec.parse("name").apply(items)

    assert [item.name for item in result] == ["alpha.mp4", "Beta.mp4", "gamma.mp4"]


def test_sort_applies_after_filtering() -> None:
    items = [make_item("keep-b", size=1), make_item("drop", size=99), make_item("keep-a", size=5)]

    result = QueryEngine().evaluate(items, "keep", SortSpec("size", descending=True))

    assert [item.name for item in result] == ["keep-a", "keep-b"]


def test_sort_spec_rejects_unknown_selectors() -> None:
    with pytest.raises(ValueError):
        SortSpec.parse("rating-desc")
    with pytest.raises(ValueError):
        SortSpec.parse("size-sideways")
    assert str(SortSpec.parse("SIZE-DESC")) == "size-desc"
