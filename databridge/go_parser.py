"""Split Go source files into one chunk per top-level declaration."""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class GoChunk:
    """A top-level Go symbol and its source text."""

    symbol: str
    symbol_type: str
    content: str


class GoParseError(ValueError):
    """The Go source has a syntax error."""

    def __init__(self, file_path: str, line: int, message: str) -> None:
        super().__init__(f"{file_path}:{line}: {message}")
        self.file_path = file_path
        self.line = line


_KEYWORDS = frozenset(
    {
        "break", "case", "chan", "const", "continue", "default", "defer",
        "else", "fallthrough", "for", "func", "go", "goto", "if", "import",
        "interface", "map", "package", "range", "return", "select", "struct",
        "switch", "type", "var",
    }
)
_SEMI_KEYWORDS = frozenset({"break", "continue", "fallthrough", "return"})
_SEMI_OPS = frozenset({"++", "--", ")", "]", "}"})
_PAIRS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = frozenset(_PAIRS.values())

_TOKEN_RE = re.compile(
    r"""
     (?P<newline>\n)
    |(?P<space>[ \t\r\f\ufeff]+)
    |(?P<line_comment>//[^\n]*)
    |(?P<block_comment>/\*.*?\*/)
    |(?P<raw_string>`[^`]*`)
    |(?P<string>"(?:[^"\\\n]|\\.)*")
    |(?P<rune>'(?:[^'\\\n]|\\.)+')
    |(?P<number>\.?\d(?:[eEpP][+-]|[\w.])*)
    |(?P<ident>[^\W\d]\w*)
    |(?P<bad>/\*|[`"'])
    |(?P<op><<=|>>=|&\^=|\.\.\.|&&|\|\||<-|\+\+|--|==|!=|<=|>=|:=|<<|>>|&\^
        |\+=|-=|\*=|/=|%=|&=|\|=|\^=|[-+*/%&|^<>=!()\[\]{},;.:~])
    """,
    re.VERBOSE | re.DOTALL,
)


@dataclass(frozen=True)
class _Token:
    kind: str  # "ident", "keyword", "string", "literal" or "op"
    text: str
    line: int
    end_line: int

    def is_op(self, text: str) -> bool:
        return self.kind in ("op", "keyword") and self.text == text


def _tokenize(file_path: str, src: str) -> Iterator[_Token]:
    """Yield tokens, inserting semicolons by Go's line-ending rule."""
    pos, line, need_semi = 0, 1, False
    while pos < len(src):
        match = _TOKEN_RE.match(src, pos)
        if match is None or match.lastgroup == "bad":
            raise GoParseError(file_path, line, "illegal character or unterminated literal")
        kind, text = match.lastgroup, match.group()
        pos = match.end()
        if kind == "newline":
            if need_semi:
                yield _Token("op", ";", line, line)
                need_semi = False
            line += 1
        elif kind in ("space", "line_comment"):
            continue
        elif kind == "block_comment":
            breaks = text.count("\n")
            if breaks and need_semi:
                yield _Token("op", ";", line, line)
                need_semi = False
            line += breaks
        else:
            if kind == "ident":
                kind = "keyword" if text in _KEYWORDS else "ident"
            elif kind in ("raw_string", "string"):
                kind = "string"
            elif kind in ("rune", "number"):
                kind = "literal"
            token = _Token(kind, text, line, line + text.count("\n"))
            yield token
            need_semi = (
                kind in ("ident", "string", "literal")
                or (kind == "keyword" and text in _SEMI_KEYWORDS)
                or (kind == "op" and text in _SEMI_OPS)
            )
            line = token.end_line
    if need_semi:
        yield _Token("op", ";", line, line)


def _receiver_type_name(tokens: list[_Token]) -> str:
    """Name of a receiver's base type for T or *T; empty for other forms."""
    parts = tokens[:-1] if tokens and tokens[-1].is_op(",") else tokens
    if (
        len(parts) > 1
        and parts[0].kind == "ident"
        and (parts[1].kind == "ident" or parts[1].text in ("*", "("))
    ):
        parts = parts[1:]
    if len(parts) == 1 and parts[0].kind == "ident":
        return parts[0].text
    if len(parts) == 2 and parts[0].is_op("*") and parts[1].kind == "ident":
        return parts[1].text
    return ""


class _GoFileParser:
    def __init__(self, file_path: str, src: str) -> None:
        self._file_path = file_path
        self._lines = src.split("\n")
        self._tokens = list(_tokenize(file_path, src))
        self._pos = 0

    # -- token cursor ---------------------------------------------------

    def _peek(self, offset: int = 0) -> _Token | None:
        index = self._pos + offset
        return self._tokens[index] if index < len(self._tokens) else None

    def _at(self, text: str) -> bool:
        token = self._peek()
        return token is not None and token.is_op(text)

    def _error(self, message: str, token: _Token | None = None) -> GoParseError:
        if token is None:
            token = self._tokens[-1] if self._tokens else None
        return GoParseError(self._file_path, token.line if token else 1, message)

    def _next(self) -> _Token:
        token = self._peek()
        if token is None:
            raise self._error("unexpected end of file")
        self._pos += 1
        return token

    def _expect(self, text: str) -> _Token:
        token = self._next()
        if not token.is_op(text):
            raise self._error(f"expected {text!r}, found {token.text!r}", token)
        return token

    def _expect_ident(self) -> _Token:
        token = self._next()
        if token.kind != "ident":
            raise self._error(f"expected identifier, found {token.text!r}", token)
        return token

    def _expect_semicolon(self) -> None:
        token = self._peek()
        if token is None:
            return
        if not token.is_op(";"):
            raise self._error(f"expected ';', found {token.text!r}", token)
        self._pos += 1

    def _group(self) -> tuple[list[_Token], _Token]:
        """Consume a bracketed group; return its inner tokens and the closer."""
        opener = self._next()
        expected = [_PAIRS[opener.text]]
        inner: list[_Token] = []
        while True:
            token = self._peek()
            if token is None:
                raise self._error(f"unclosed {opener.text!r}", opener)
            self._pos += 1
            if token.kind == "op" and token.text in _PAIRS:
                expected.append(_PAIRS[token.text])
            elif token.kind == "op" and token.text in _CLOSERS:
                if token.text != expected[-1]:
                    raise self._error(f"unexpected {token.text!r}", token)
                expected.pop()
                if not expected:
                    return inner, token
            inner.append(token)

    def _source(self, start_line: int, end_line: int) -> str:
        return "\n".join(self._lines[start_line - 1 : min(end_line, len(self._lines))])

    # -- declarations ---------------------------------------------------

    def parse(self) -> list[GoChunk]:
        self._expect("package")
        self._expect_ident()
        self._expect_semicolon()
        chunks: list[GoChunk] = []
        imports_allowed = True
        while (token := self._peek()) is not None:
            if token.kind == "keyword" and token.text == "import":
                if not imports_allowed:
                    raise self._error("imports must appear before other declarations", token)
                self._parse_gen_decl()
            elif token.kind == "keyword" and token.text == "func":
                imports_allowed = False
                chunks.append(self._parse_func())
            elif token.kind == "keyword" and token.text in ("type", "var", "const"):
                imports_allowed = False
                chunks.extend(self._parse_gen_decl())
            else:
                raise self._error(f"expected declaration, found {token.text!r}", token)
        return chunks

    def _parse_func(self) -> GoChunk:
        keyword = self._next()
        receiver: str | None = None
        if self._at("("):
            recv_tokens, closer = self._group()
            if not recv_tokens:
                raise self._error("method has no receiver", closer)
            receiver = _receiver_type_name(recv_tokens)
        name = self._expect_ident()
        if self._at("["):
            self._group()
        if not self._at("("):
            raise self._error("expected '(' after function name", self._peek() or name)

        last = name
        while (token := self._peek()) is not None and not token.is_op(";"):
            following = self._peek(1)
            if (
                token.kind == "keyword"
                and token.text in ("struct", "interface")
                and following is not None
                and following.is_op("{")
            ):
                self._next()
                _, last = self._group()
            elif token.is_op("{"):
                _, last = self._group()
                break
            elif token.kind == "op" and token.text in _PAIRS:
                _, last = self._group()
            elif token.kind == "op" and token.text in _CLOSERS:
                raise self._error(f"unexpected {token.text!r}", token)
            else:
                last = self._next()
        self._expect_semicolon()

        content = self._source(keyword.line, last.end_line)
        if receiver is None:
            return GoChunk(name.text, "func", content)
        symbol = f"{receiver}.{name.text}" if receiver else name.text
        return GoChunk(symbol, "method", content)

    def _collect_spec(self) -> list[_Token]:
        tokens: list[_Token] = []
        while (token := self._peek()) is not None and not (
            token.is_op(";") or token.is_op(")")
        ):
            if token.kind == "op" and token.text in _PAIRS:
                inner, closer = self._group()
                tokens.extend([token, *inner, closer])
            elif token.kind == "op" and token.text in _CLOSERS:
                raise self._error(f"unexpected {token.text!r}", token)
            else:
                tokens.append(self._next())
        return tokens

    def _parse_gen_decl(self) -> list[GoChunk]:
        keyword = self._next()
        specs: list[list[_Token]] = []
        if self._at("("):
            self._next()
            while not self._at(")"):
                specs.append(self._collect_spec())
                if self._at(";"):
                    self._next()
                elif not self._at(")"):
                    raise self._error("expected ';' or ')' in declaration group", self._peek())
            self._expect(")")
        else:
            specs.append(self._collect_spec())
        self._expect_semicolon()

        chunks: list[GoChunk] = []
        for spec in specs:
            chunks.extend(self._spec_chunks(keyword, spec))
        return chunks

    def _spec_chunks(self, keyword: _Token, tokens: list[_Token]) -> list[GoChunk]:
        if not tokens:
            raise self._error(f"empty {keyword.text} specification", keyword)
        if keyword.text == "import":
            if tokens[-1].kind != "string" or len(tokens) > 2:
                raise self._error("invalid import specification", tokens[0])
            return []
        if tokens[0].kind != "ident":
            raise self._error(f"expected identifier, found {tokens[0].text!r}", tokens[0])

        content = self._source(tokens[0].line, tokens[-1].end_line)
        if not content.strip():
            return []
        if keyword.text == "type":
            if len(tokens) < 2:
                raise self._error("missing type in type declaration", tokens[0])
            return [GoChunk(tokens[0].text, "type", content)]

        names = [tokens[0].text]
        rest = tokens[1:]
        while len(rest) >= 2 and rest[0].is_op(",") and rest[1].kind == "ident":
            names.append(rest[1].text)
            rest = rest[2:]
        if rest and rest[0].is_op(","):
            raise self._error("expected identifier after ','", rest[0])
        if keyword.text == "var" and not rest:
            raise self._error("missing variable type or initialization", tokens[-1])
        return [GoChunk(name, keyword.text, content) for name in names]


def parse_go(file_path: str, src: str) -> list[GoChunk]:
    """Return one chunk per top-level func, method, type, var and const.

    Var and const specs with several names yield one chunk per name, all
    sharing the spec's text. file_path is used only in error messages.
    Raises GoParseError on a syntax error.
    """
    return _GoFileParser(file_path, src).parse()