import pytest

from applypatch.errors import GrammarError
from applypatch.models import Chunk
from applypatch.scanner import peek_next_section


def test_replace_run_between_context_lines():
    lines = [" a", "-b", "+c", " d", "*** End Patch"]
    section = peek_next_section(lines, 0)
    assert section.context == ["a", "b", "d"]
    assert section.chunks == [Chunk(orig_index=1, del_lines=("b",), ins_lines=("c",))]
    assert section.end_index == 4
    assert section.eof is False


def test_pure_insertion_is_anchored_after_context():
    section = peek_next_section([" a", "+x", " b", "*** End Patch"], 0)
    assert section.context == ["a", "b"]
    assert section.chunks == [Chunk(orig_index=1, del_lines=(), ins_lines=("x",))]


def test_interleaved_add_delete_flush_only_on_context():
    section = peek_next_section(["-a", "+b", "-c", " d", "*** End Patch"], 0)
    assert section.context == ["a", "c", "d"]
    assert section.chunks == [
        Chunk(orig_index=0, del_lines=("a", "c"), ins_lines=("b",))
    ]


def test_two_runs_produce_two_chunks():
    lines = [" a", "-b", " c", "+d", " e", "@@", " z"]
    section = peek_next_section(lines, 0)
    assert section.chunks == [
        Chunk(orig_index=1, del_lines=("b",), ins_lines=()),
        Chunk(orig_index=3, del_lines=(), ins_lines=("d",)),
    ]
    assert section.end_index == 5


def test_blank_line_is_empty_context():
    section = peek_next_section([" a", "", "-b", "*** End Patch"], 0)
    assert section.context == ["a", "", "b"]
    assert section.chunks == [Chunk(orig_index=2, del_lines=("b",), ins_lines=())]


def test_end_of_file_marker_is_consumed():
    lines = [" a", "-b", "*** End of File", "*** End Patch"]
    section = peek_next_section(lines, 0)
    assert section.eof is True
    assert section.end_index == 3


def test_stops_at_file_headers():
    for header in (
        "*** Update File: x",
        "*** Delete File: x",
        "*** Add File: x",
        "***",
    ):
        section = peek_next_section([" a", header], 0)
        assert section.end_index == 1


def test_unknown_star_line_is_error():
    with pytest.raises(GrammarError, match=r"Invalid Line: \*\*\* Bogus"):
        peek_next_section([" a", "*** Bogus"], 0)


def test_unknown_prefix_is_error():
    with pytest.raises(GrammarError, match="Invalid Line: xyz"):
        peek_next_section([" a", "xyz"], 0)


def test_empty_section_is_error():
    with pytest.raises(GrammarError, match="Nothing in this section - index=0 @@"):
        peek_next_section(["@@", " a"], 0)
