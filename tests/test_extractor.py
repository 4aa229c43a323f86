from __future__ import annotations

import pytest
from pydantic import ValidationError

from polymind.services import extractor
from polymind.services.extractor import classify, extract, parse_info, segments


def test_extract_mermaid_fence_keeps_surrounding_prose():
    text = "Intro\n```mermaid\nflowchart TD\nA-->B\n```\nOutro"
    parsed = extract(text)
    assert [a.model_dump() for a in parsed.artifacts] == [
        {"type": "mermaid", "content": "flowchart TD\nA-->B", "language": None, "title": None}
    ]
    assert parsed.remaining_text == "Intro\n\nOutro"


def test_extract_without_fences_returns_input_unchanged():
    text = "  Just prose, with `inline code` and trailing space.  \n"
    parsed = extract(text)
    assert parsed.artifacts == []
    assert parsed.remaining_text == text


def test_extract_empty_text():
    parsed = extract("")
    assert parsed.artifacts == []
    assert parsed.remaining_text == ""


def test_extract_classifies_tags_in_source_order():
    text = (
        "a\n```mermaid\ngraph LR\nX-->Y\n```\n"
        "b\n```python\nprint('hi')\n```\n"
        "c\n```tsx\nconst A = () => <div/>\n```\n"
        "d\n```svg\n<svg></svg>\n```\n"
        "e\n```html\n<p>hi</p>\n```\n"
        "f\n```markdown\n# Title\n```\n"
        "g\n```\nplain\n```\n"
        "h\n```rust\nfn main() {}\n```\n"
    )
    parsed = extract(text)
    assert [(a.type, a.language) for a in parsed.artifacts] == [
        ("mermaid", None),
        ("code", "python"),
        ("react", "tsx"),
        ("svg", None),
        ("html", None),
        ("markdown", None),
        ("code", "plaintext"),
        ("code", "rust"),
    ]
    assert parsed.remaining_text.split() == ["a", "b", "c", "d", "e", "f", "g", "h"]


def test_classify_is_case_insensitive_and_maps_jsx():
    assert classify("Mermaid")[0].value == "mermaid"
    assert classify("JSX") == (classify("jsx")[0], "jsx")
    assert classify("md")[0].value == "markdown"
    assert classify(None)[1] == "plaintext"


def test_extract_reads_bracketed_title():
    parsed = extract("```mermaid [Family Tree]\ngraph TD\nA-->B\n```")
    assert parsed.artifacts[0].title == "Family Tree"
    assert parsed.artifacts[0].content == "graph TD\nA-->B"
    assert parsed.remaining_text == ""


def test_unterminated_fence_is_left_as_prose():
    text = "Before\n```python\nprint(1)\n"
    parsed = extract(text)
    assert parsed.artifacts == []
    assert parsed.remaining_text == text


def test_unterminated_fence_after_complete_one():
    text = "```js\nlet a = 1\n```\nmiddle\n```python\nprint(1)"
    parsed = extract(text)
    assert len(parsed.artifacts) == 1
    assert parsed.artifacts[0].language == "js"
    assert parsed.remaining_text == "middle\n```python\nprint(1)"


def test_second_pass_finds_nothing():
    text = "Look:\n```mermaid\ngraph TD\nA-->B\n```\nDone."
    first = extract(text)
    assert len(first.artifacts) == 1
    second = extract(first.remaining_text)
    assert second.artifacts == []


def test_n_fences_give_n_artifacts_and_no_lost_content():
    bodies = [f"line {i}" for i in range(5)]
    text = "".join(f"para {i}\n```text\n{body}\n```\n" for i, body in enumerate(bodies))
    parsed = extract(text)
    assert [a.content for a in parsed.artifacts] == bodies
    for i in range(5):
        assert f"para {i}" in parsed.remaining_text


def test_inner_opening_marker_closes_outer_fence():
    text = "```markdown\nouter\n```python\ninner\n```\n```"
    parsed = extract(text)
    assert parsed.artifacts[0].type == "markdown"
    assert parsed.artifacts[0].content == "outer"
    assert "inner" in parsed.remaining_text


def test_code_indentation_is_preserved():
    parsed = extract("```python\n    indented = True\n```")
    assert parsed.artifacts[0].content == "    indented = True"


def test_extract_is_deterministic():
    text = "x\n```svg\n<svg/>\n```\ny\n```mermaid\npie\n\"a\": 1\n```"
    assert extract(text) == extract(text)


def test_artifacts_are_immutable():
    artifact = extract("```python\nx\n```").artifacts[0]
    with pytest.raises(ValidationError):
        artifact.content = "changed"  # type: ignore[misc]
    assert artifact.content == "x"


def test_segments_interleave_prose_and_artifacts():
    text = "Intro\n```python\nx = 1\n```\n\n```mermaid\ngraph TD\nA-->B\n```\nOutro"
    parts = segments(text)
    assert [p.kind for p in parts] == ["text", "artifact", "artifact", "text"]
    assert parts[0].text == "Intro"
    assert parts[1].artifact.language == "python"
    assert parts[3].text == "Outro"


def test_segments_match_extract_artifacts():
    text = "a\n```html\n<b>x</b>\n```\nb\n```jsx\n<A/>\n```"
    from_segments = [p.artifact for p in segments(text) if p.kind == "artifact"]
    assert from_segments == extract(text).artifacts


def test_fence_regex_requires_newline_after_tag():
    assert extractor.extract("```python print(1)```").artifacts == []


def test_extra_words_on_opener_line_do_not_break_later_fences():
    text = "```python title=demo\nprint(1)\n```\nSee the map:\n```mermaid\ngraph TD\nA-->B\n```\nDone"
    parsed = extract(text)
    assert [(a.type, a.language, a.content) for a in parsed.artifacts] == [
        ("code", "python", "print(1)"),
        ("mermaid", None, "graph TD\nA-->B"),
    ]
    assert parsed.remaining_text == "See the map:\n\nDone"


def test_parse_info_reads_tag_and_title():
    assert parse_info("mermaid [Family Tree]") == ("mermaid", "Family Tree")
    assert parse_info(" python title=demo ") == ("python", None)
    assert parse_info("[Only a title]") == ("", "Only a title")
    assert parse_info("") == ("", None)
