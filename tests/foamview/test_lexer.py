from __future__ import annotations

from foamview.lexer import TokenKind, find_matching, tokenize


def kinds(text):
    return [t.kind for t in tokenize(text)]


def test_punctuation_and_words():
    toks = tokenize('walls { type wall; name "my patch"; }')
    assert [t.text for t in toks] == [
        "walls", "{", "type", "wall", ";", "name", "my patch", ";", "}",
    ]
    assert toks[6].kind is TokenKind.STRING
    assert toks[1].kind is TokenKind.LBRACE


def test_numbers_and_idents():
    toks = tokenize("1 -2.5 3e-4 .5 1.2.3 abc List<scalar>")
    assert [t.kind for t in toks] == [
        TokenKind.NUMBER,
        TokenKind.NUMBER,
        TokenKind.NUMBER,
        TokenKind.NUMBER,
        TokenKind.IDENT,
        TokenKind.IDENT,
        TokenKind.IDENT,
    ]
    assert toks[0].is_int
    assert not toks[1].is_int
    assert toks[2].as_float() == 3e-4
    assert toks[4].as_float() is None


def test_comments_are_dropped():
    text = "a // line comment ( )\n/* block ( { */ b/*x*/c"
    assert [t.text for t in tokenize(text)] == ["a", "b", "c"]


def test_word_stops_at_comment_marker():
    assert [t.text for t in tokenize("12// count")] == ["12"]


def test_slash_inside_word_is_kept():
    assert [t.text for t in tokenize("a/b")] == ["a/b"]


def test_positions_are_offsets():
    toks = tokenize("  ab (")
    assert toks[0].pos == 2
    assert toks[1].pos == 5


def test_find_matching_nested():
    toks = tokenize("( { ( ) } )")
    assert find_matching(toks, 0) == 5
    assert find_matching(toks, 1) == 4
    assert find_matching(toks, 2) == 3


def test_find_matching_unclosed():
    toks = tokenize("( ( )")
    assert find_matching(toks, 0) == -1


def test_brackets():
    assert kinds("[0 1]") == [
        TokenKind.LBRACKET,
        TokenKind.NUMBER,
        TokenKind.NUMBER,
        TokenKind.RBRACKET,
    ]
