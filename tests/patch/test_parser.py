import pytest

from applypatch.errors import ContextError, GrammarError
from applypatch.models import ActionType, Chunk
from applypatch.parser import (
    Parser,
    identify_files_added,
    identify_files_needed,
    text_to_patch,
)


def wrap(body: str) -> str:
    return f"*** Begin Patch\n{body}\n*** End Patch"


def test_invalid_envelope():
    with pytest.raises(GrammarError, match="Invalid patch text"):
        text_to_patch("hello", {})
    with pytest.raises(GrammarError, match="Invalid patch text"):
        text_to_patch("*** Begin Patch\n*** Add File: a\n+x", {})


def test_add_file():
    patch, fuzz = text_to_patch(wrap("*** Add File: a.txt\n+hello\n+world"), {})
    assert fuzz == 0
    action = patch.actions["a.txt"]
    assert action.type == ActionType.ADD
    assert action.new_file == "hello\nworld"
    assert action.chunks == []


def test_add_file_rejects_lines_without_plus():
    with pytest.raises(GrammarError, match="Invalid Add File Line: no plus"):
        text_to_patch(wrap("*** Add File: a.txt\n+ok\nno plus"), {})


def test_delete_file():
    patch, _ = text_to_patch(wrap("*** Delete File: gone.txt"), {"gone.txt": "x"})
    assert patch.actions["gone.txt"].type == ActionType.DELETE


def test_delete_missing_file():
    with pytest.raises(GrammarError, match="Delete File Error: Missing File: gone.txt"):
        text_to_patch(wrap("*** Delete File: gone.txt"), {})


def test_update_missing_file():
    with pytest.raises(GrammarError, match="Update File Error: Missing File: b.txt"):
        text_to_patch(wrap("*** Update File: b.txt\n a\n-b"), {})


def test_duplicate_update_is_rejected():
    text = wrap(
        "*** Update File: a.txt\n@@\n x\n-y\n+z\n"
        "*** Update File: a.txt\n@@\n x\n-y\n+w"
    )
    with pytest.raises(GrammarError) as exc_info:
        text_to_patch(text, {"a.txt": "x\ny"})
    assert str(exc_info.value) == "Update File Error: Duplicate Path: a.txt"


def test_duplicate_across_section_types_is_rejected():
    text = wrap("*** Update File: a.txt\n x\n-y\n*** Add File: a.txt\n+new")
    with pytest.raises(GrammarError, match="Add File Error: Duplicate Path: a.txt"):
        text_to_patch(text, {"a.txt": "x\ny"})


def test_unknown_line():
    with pytest.raises(GrammarError, match="Unknown Line: foo"):
        text_to_patch(wrap("foo"), {})


def test_missing_end_patch():
    parser = Parser(["*** Begin Patch", "*** Add File: a", "+x"], {})
    with pytest.raises(GrammarError, match="Missing End Patch"):
        parser.parse(1)


def test_update_chunks_are_absolute():
    text = wrap("*** Update File: f.txt\n@@\n d\n-e\n+E\n f")
    patch, fuzz = text_to_patch(text, {"f.txt": "a\nb\nc\nd\ne\nf"})
    assert fuzz == 0
    assert patch.actions["f.txt"].chunks == [
        Chunk(orig_index=4, del_lines=("e",), ins_lines=("E",))
    ]


def test_multiple_hunks_keep_order():
    text = wrap("*** Update File: f.txt\n a\n-b\n+B\n@@\n d\n-e\n+E")
    patch, _ = text_to_patch(text, {"f.txt": "a\nb\nc\nd\ne"})
    chunks = patch.actions["f.txt"].chunks
    assert [c.orig_index for c in chunks] == [1, 4]


def test_second_hunk_requires_anchor():
    text = wrap("*** Update File: f.txt\n a\n-b\n+B\n***\n c")
    with pytest.raises(GrammarError, match="Invalid Line:\n\\*\\*\\*"):
        text_to_patch(text, {"f.txt": "a\nb\nc"})


def test_anchor_moves_search_past_label():
    original = "def f():\n    return 1\ndef g():\n    return 1"
    text = wrap("*** Update File: m.py\n@@ def g():\n-    return 1\n+    return 2")
    patch, fuzz = text_to_patch(text, {"m.py": original})
    assert fuzz == 0
    assert patch.actions["m.py"].chunks == [
        Chunk(orig_index=3, del_lines=("    return 1",), ins_lines=("    return 2",))
    ]


def test_move_to_is_recorded():
    text = wrap("*** Update File: a.txt\n*** Move to: b.txt\n@@\n x")
    patch, _ = text_to_patch(text, {"a.txt": "x"})
    action = patch.actions["a.txt"]
    assert action.move_path == "b.txt"
    assert action.chunks == []


def test_no_move_path_is_none():
    patch, _ = text_to_patch(wrap("*** Update File: a.txt\n x\n-y"), {"a.txt": "x\ny"})
    assert patch.actions["a.txt"].move_path is None


def test_invalid_context():
    text = wrap("*** Update File: f.txt\n zzz\n-b")
    with pytest.raises(ContextError) as exc_info:
        text_to_patch(text, {"f.txt": "a\nb"})
    assert str(exc_info.value) == "Invalid Context 0:\nzzz\nb"


def test_invalid_eof_context():
    text = wrap("*** Update File: f.txt\n zzz\n-b\n*** End of File")
    with pytest.raises(ContextError) as exc_info:
        text_to_patch(text, {"f.txt": "a\nb"})
    assert str(exc_info.value) == "Invalid EOF Context 0:\nzzz\nb"


def test_end_of_file_marker_picks_last_occurrence():
    text = wrap("*** Update File: f.txt\n x\n-y\n+Y\n*** End of File")
    patch, fuzz = text_to_patch(text, {"f.txt": "x\ny\nmid\nx\ny"})
    assert fuzz == 0
    assert patch.actions["f.txt"].chunks[0].orig_index == 4


def test_fuzz_is_accumulated():
    text = wrap("*** Update File: f.txt\n foo\n-bar\n+baz")
    _patch, fuzz = text_to_patch(text, {"f.txt": "foo  \nbar"})
    assert fuzz == 1


def test_blank_hunk_line_matches_empty_file_line():
    text = wrap("*** Update File: f.txt\n a\n\n-b\n+c")
    patch, _ = text_to_patch(text, {"f.txt": "a\n\nb"})
    assert patch.actions["f.txt"].chunks == [
        Chunk(orig_index=2, del_lines=("b",), ins_lines=("c",))
    ]


def test_sections_keep_text_order():
    text = wrap(
        "*** Delete File: z.txt\n*** Add File: a.txt\n+a\n*** Update File: m.txt\n m\n-n"
    )
    patch, _ = text_to_patch(text, {"z.txt": "z", "m.txt": "m\nn"})
    assert list(patch.actions) == ["z.txt", "a.txt", "m.txt"]


def test_identify_files():
    text = wrap(
        "*** Update File: a.txt\n x\n*** Delete File: b.txt\n"
        "*** Add File: c.txt\n+c\n*** Update File: a.txt\n x"
    )
    assert identify_files_needed(text) == ["a.txt", "b.txt"]
    assert identify_files_added(text) == ["c.txt"]
