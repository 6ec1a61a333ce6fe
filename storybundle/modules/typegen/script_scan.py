"""Lightweight scanner for `runtime.<method>(...)` call sites in card script text.

The scanner never evaluates anything. One lexing pass turns the script into
tokens, dropping comments and the text of string, template and regex
literals. Template `${...}` interpolations are lexed as code, so calls inside
them are found. Brackets are matched once over the token stream and each call
is reported with the raw source text of its top-level arguments. Unterminated
calls are dropped.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

_PAIRS = {"(": ")", "[": "]", "{": "}", "${": "}"}
_CLOSERS = {")", "]", "}"}

# Words after which a `/` starts a regex literal rather than a division.
_REGEX_PREFIX_WORDS = {
    "return",
    "typeof",
    "instanceof",
    "case",
    "do",
    "else",
    "in",
    "of",
    "new",
    "delete",
    "void",
    "throw",
    "yield",
    "await",
}


@dataclass(frozen=True, slots=True)
class RuntimeCall:
    method: str
    args: tuple[str, ...]
    offset: int


@dataclass(frozen=True, slots=True)
class _Token:
    kind: str  # word | punct | literal
    text: str
    start: int
    end: int


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch in {"_", "$"}


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in {"_", "$"}


def _read_ident(text: str, start: int) -> int:
    pos = start
    while pos < len(text) and _is_ident_char(text[pos]):
        pos += 1
    return pos


def _skip_comment(text: str, start: int) -> int | None:
    if text.startswith("//", start):
        end = text.find("\n", start)
        return len(text) if end < 0 else end
    if text.startswith("/*", start):
        end = text.find("*/", start + 2)
        return len(text) if end < 0 else end + 2
    return None


def _skip_quoted(text: str, start: int) -> int:
    quote = text[start]
    pos = start + 1
    size = len(text)
    while pos < size:
        ch = text[pos]
        if ch == "\\":
            pos += 2
            continue
        if ch == quote:
            return pos + 1
        if ch == "\n":
            return pos
        pos += 1
    return size


def _skip_template_text(text: str, start: int) -> tuple[int, bool]:
    """Skip template text from `start`; True when it stopped on a `${` instead of the closing backtick."""
    pos = start
    size = len(text)
    while pos < size:
        ch = text[pos]
        if ch == "\\":
            pos += 2
            continue
        if ch == "`":
            return pos + 1, False
        if ch == "$" and text.startswith("${", pos):
            return pos, True
        pos += 1
    return size, False


def _skip_regex(text: str, start: int) -> tuple[int, bool]:
    """End of the regex literal at `start`, or the line end it gave up at with False."""
    pos = start + 1
    size = len(text)
    in_class = False
    while pos < size:
        ch = text[pos]
        if ch == "\\":
            pos += 2
            continue
        if ch == "\n":
            return pos, False
        if ch == "[":
            in_class = True
        elif ch == "]":
            in_class = False
        elif ch == "/" and not in_class:
            return _read_ident(text, pos + 1), True
        pos += 1
    return size, False


def _regex_allowed(tokens: list[_Token]) -> bool:
    if not tokens:
        return True
    last = tokens[-1]
    if last.kind == "punct":
        return last.text not in _CLOSERS
    if last.kind == "word":
        return last.text in _REGEX_PREFIX_WORDS
    return False


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    braces: list[str] = []
    size = len(text)
    pos = 0
    # Slashes before this offset already failed to open a regex literal.
    regex_blocked_until = 0

    def template_part(start: int, resume: int) -> int:
        end, interpolated = _skip_template_text(text, resume)
        if end > start:
            tokens.append(_Token("literal", text[start:end], start, end))
        if not interpolated:
            return end
        tokens.append(_Token("punct", "${", end, end + 2))
        braces.append("${")
        return end + 2

    while pos < size:
        ch = text[pos]
        if ch.isspace():
            pos += 1
            continue
        comment_end = _skip_comment(text, pos)
        if comment_end is not None:
            pos = comment_end
            continue
        if ch in {"'", '"'}:
            end = _skip_quoted(text, pos)
            tokens.append(_Token("literal", text[pos:end], pos, end))
            pos = end
            continue
        if ch == "`":
            pos = template_part(pos, pos + 1)
            continue
        if ch == "/" and pos >= regex_blocked_until and _regex_allowed(tokens):
            end, closed = _skip_regex(text, pos)
            if not closed:
                regex_blocked_until = end
            else:
                tokens.append(_Token("literal", text[pos:end], pos, end))
                pos = end
                continue
        if _is_ident_char(ch):
            end = _read_ident(text, pos)
            tokens.append(_Token("word", text[pos:end], pos, end))
            pos = end
            continue

        tokens.append(_Token("punct", ch, pos, pos + 1))
        pos += 1
        if ch == "{":
            braces.append("{")
        elif ch == "}" and braces and braces.pop() == "${":
            pos = template_part(pos, pos)
    return tokens


def _match_brackets(tokens: list[_Token]) -> dict[int, int]:
    """Map each opener's token index to its closer's; mismatched or unclosed openers are left out."""
    matches: dict[int, int] = {}
    stack: list[int] = []
    for index, token in enumerate(tokens):
        if token.kind != "punct":
            continue
        if token.text in _PAIRS:
            stack.append(index)
        elif token.text in _CLOSERS and stack:
            opener = stack.pop()
            if _PAIRS[tokens[opener].text] == token.text:
                matches[opener] = index
    return matches


def _split_args(
    text: str,
    tokens: list[_Token],
    matches: dict[int, int],
    open_index: int,
) -> tuple[str, ...] | None:
    close_index = matches.get(open_index)
    if close_index is None:
        return None
    args: list[str] = []
    arg_start = tokens[open_index].end
    index = open_index + 1
    while index < close_index:
        token = tokens[index]
        if token.kind == "punct":
            if token.text in _PAIRS:
                if index not in matches:
                    return None
                index = matches[index] + 1
                continue
            if token.text == ",":
                args.append(text[arg_start : token.start].strip())
                arg_start = token.end
        index += 1
    args.append(text[arg_start : tokens[close_index].start].strip())
    if args == [""]:
        return ()
    return tuple(args)


def _is_call_at(tokens: list[_Token], index: int, receiver: str) -> bool:
    if index + 3 >= len(tokens):
        return False
    word, dot, method, paren = tokens[index : index + 4]
    return (
        word.kind == "word"
        and word.text == receiver
        and dot.text == "."
        and dot.start == word.end
        and method.kind == "word"
        and method.start == dot.end
        and _is_ident_start(method.text[0])
        and paren.text == "("
    )


def iter_runtime_calls(script: str | None, *, receiver: str = "runtime") -> Iterator[RuntimeCall]:
    """Yield calls shaped `<receiver>.<method>(...)` in source order, nested calls included."""
    text = script or ""
    tokens = _tokenize(text)
    matches = _match_brackets(tokens)
    for index, token in enumerate(tokens):
        if not _is_call_at(tokens, index, receiver):
            continue
        args = _split_args(text, tokens, matches, index + 3)
        if args is not None:
            yield RuntimeCall(method=tokens[index + 2].text, args=args, offset=token.start)
