# Path: core/query/parser.py
# Purpose: Parse tag query text into an immutable boolean expression tree.
# Layer: core/query.
# Details: Hand-written tokenizer and recursive-descent parser; PURE, no catalog or SQL access.

"""Tag query parser.

Query Syntax:
    expr    := or
    or      := and ("OR" and)*
    and     := unary (["AND"] unary)*
    unary   := ("NOT" | "-") unary | atom
    atom    := [type symbol]label | #name[:argument] | "(" expr ")"

Groups and negations together nest at most MAX_NESTING_DEPTH levels.

Examples:
    cat dog                  pictures tagged both "cat" and "dog"
    cat OR dog               pictures tagged "cat" or "dog"
    cat -dog                 pictures tagged "cat" but not "dog"
    @alice (beach OR sea)    "alice" of the tag type with symbol "@", at the beach or the sea
    #ext:png                 pictures whose file extension matches "png"
    #name:"IMG_\\d+"s        case-sensitive file name pattern (inside quotes only \\" and \\\\ are escapes)
    \\-rated                 the tag labelled "-rated" (backslash escapes a reserved character)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Collection, List, Mapping, Optional

from .ast import And, Expression, Not, Or, PseudoTagCall, TagRef
from .errors import InvalidPseudoTagError, TagQuerySyntaxError
from .pseudo_tags import PSEUDO_TAG_MARKER, PseudoTag, PseudoTagKind

KEYWORDS = frozenset({"AND", "OR", "NOT"})

# Maximum number of nested groups and negations in a query.
MAX_NESTING_DEPTH = 64

# Characters that cannot appear unescaped inside a label.
RESERVED_CHARACTERS = frozenset('()"\\' + PSEUDO_TAG_MARKER)

# Characters a tag-type symbol may never be.
FORBIDDEN_SYMBOLS = frozenset('()"\\-:' + PSEUDO_TAG_MARKER)

_LPAREN = "LPAREN"
_RPAREN = "RPAREN"
_AND = "AND"
_OR = "OR"
_NOT = "NOT"
_TAG = "TAG"
_PSEUDO = "PSEUDO"
_EOF = "EOF"


def is_label_valid(label: str) -> bool:
    """Return True if ``label`` may be used as a tag label."""

    if not label or label in KEYWORDS or label.startswith("-"):
        return False
    return not any(ch.isspace() or ch in RESERVED_CHARACTERS for ch in label)


def is_symbol_valid(symbol: str) -> bool:
    """Return True if ``symbol`` may be used as a tag-type symbol."""

    return (
        len(symbol) == 1
        and not symbol.isspace()
        and not symbol.isalnum()
        and symbol != "_"
        and symbol not in FORBIDDEN_SYMBOLS
    )


@dataclass(frozen=True)
class Token:
    """A lexical token with its offset in the query text."""

    kind: str
    position: int
    value: Optional[str] = None
    symbol: Optional[str] = None
    argument: Optional[str] = None
    case_flag: Optional[bool] = None


class _Tokenizer:
    """Split query text into tokens in a single left-to-right pass."""

    def __init__(self, text: str, type_symbols: Collection[str]) -> None:
        self.text = text
        self.type_symbols = frozenset(type_symbols)
        self.pos = 0

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        text = self.text
        while True:
            while self.pos < len(text) and text[self.pos].isspace():
                self.pos += 1
            if self.pos >= len(text):
                tokens.append(Token(_EOF, self.pos))
                return tokens

            start = self.pos
            char = text[start]
            if char == "(":
                tokens.append(Token(_LPAREN, start))
                self.pos += 1
            elif char == ")":
                tokens.append(Token(_RPAREN, start))
                self.pos += 1
            elif char == "-":
                tokens.append(Token(_NOT, start))
                self.pos += 1
            elif char == PSEUDO_TAG_MARKER:
                tokens.append(self._read_pseudo_tag())
            elif char == '"':
                raise TagQuerySyntaxError("Unexpected quote outside of a pseudo-tag argument", start)
            else:
                tokens.append(self._read_word())

    def _at_delimiter(self) -> bool:
        return self.pos >= len(self.text) or self.text[self.pos].isspace() or self.text[self.pos] in "()"

    def _read_word(self) -> Token:
        text = self.text
        start = self.pos
        symbol = None
        if text[start] in self.type_symbols:
            symbol = text[start]
            self.pos += 1

        chars: List[str] = []
        escaped = False
        while not self._at_delimiter():
            char = text[self.pos]
            if char == "\\":
                if self.pos + 1 >= len(text):
                    raise TagQuerySyntaxError("Dangling escape character", self.pos)
                chars.append(text[self.pos + 1])
                escaped = True
                self.pos += 2
                continue
            if char == '"' or char == PSEUDO_TAG_MARKER:
                raise TagQuerySyntaxError(f"Invalid character '{char}' in tag label", self.pos)
            chars.append(char)
            self.pos += 1

        label = "".join(chars)
        if not label:
            raise TagQuerySyntaxError("Missing tag label after type symbol", start)
        if symbol is None and not escaped and label in KEYWORDS:
            return Token(label, start)
        return Token(_TAG, start, value=label, symbol=symbol)

    def _read_pseudo_tag(self) -> Token:
        text = self.text
        start = self.pos
        self.pos += 1
        name_start = self.pos
        while self.pos < len(text) and (text[self.pos].isalnum() or text[self.pos] == "_"):
            self.pos += 1
        name = text[name_start : self.pos]
        if not name:
            raise TagQuerySyntaxError("Missing pseudo-tag name", start)

        argument = None
        case_flag = None
        if self.pos < len(text) and text[self.pos] == ":":
            self.pos += 1
            if self.pos < len(text) and text[self.pos] == '"':
                argument = self._read_quoted()
                if self.pos < len(text) and text[self.pos] in "si":
                    case_flag = text[self.pos] == "s"
                    self.pos += 1
            else:
                arg_start = self.pos
                while not self._at_delimiter():
                    if text[self.pos] == '"':
                        raise TagQuerySyntaxError("Unexpected quote in pseudo-tag argument", self.pos)
                    self.pos += 1
                argument = text[arg_start : self.pos]
                if not argument:
                    raise TagQuerySyntaxError(f"Missing argument for pseudo-tag '{name}'", start)

        if not self._at_delimiter():
            raise TagQuerySyntaxError(f"Malformed pseudo-tag '{name}'", start)
        return Token(_PSEUDO, start, value=name, argument=argument, case_flag=case_flag)

    def _read_quoted(self) -> str:
        text = self.text
        start = self.pos
        self.pos += 1
        chars: List[str] = []
        while self.pos < len(text):
            char = text[self.pos]
            # Only quotes and backslashes are escaped so regex escapes like \d pass through.
            if char == "\\" and self.pos + 1 < len(text) and text[self.pos + 1] in '"\\':
                chars.append(text[self.pos + 1])
                self.pos += 2
            elif char == '"':
                self.pos += 1
                return "".join(chars)
            else:
                chars.append(char)
                self.pos += 1
        raise TagQuerySyntaxError("Unterminated quoted argument", start)


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(
        self,
        tokens: List[Token],
        pseudo_tags: Optional[Mapping[str, PseudoTag]],
        case_sensitive_default: bool,
    ) -> None:
        self.tokens = tokens
        self.index = 0
        self.pseudo_tags = pseudo_tags
        self.case_sensitive_default = case_sensitive_default
        self.depth = 0

    def peek(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def parse(self) -> Expression:
        if self.peek().kind == _EOF:
            raise TagQuerySyntaxError("Empty query", 0)
        expression = self.parse_or()
        token = self.peek()
        if token.kind == _RPAREN:
            raise TagQuerySyntaxError("Unbalanced parentheses: closing ')' without opening '('", token.position)
        if token.kind != _EOF:
            raise TagQuerySyntaxError(f"Unexpected token {token.kind}", token.position)
        return expression

    def parse_or(self) -> Expression:
        operands = [self.parse_and()]
        while self.peek().kind == _OR:
            self.advance()
            operands.append(self.parse_and())
        return operands[0] if len(operands) == 1 else Or(tuple(operands))

    def parse_and(self) -> Expression:
        operands = [self.parse_unary()]
        while True:
            kind = self.peek().kind
            if kind == _AND:
                self.advance()
                operands.append(self.parse_unary())
            elif kind in (_NOT, _TAG, _PSEUDO, _LPAREN):
                operands.append(self.parse_unary())
            else:
                break
        return operands[0] if len(operands) == 1 else And(tuple(operands))

    def _descend(self, levels: int, position: int) -> None:
        self.depth += levels
        if self.depth > MAX_NESTING_DEPTH:
            raise TagQuerySyntaxError(f"Query is nested deeper than {MAX_NESTING_DEPTH} levels", position)

    def parse_unary(self) -> Expression:
        position = self.peek().position
        negations = 0
        while self.peek().kind == _NOT:
            self.advance()
            negations += 1
        self._descend(negations, position)
        expression = self.parse_atom()
        self.depth -= negations
        for _ in range(negations):
            expression = Not(expression)
        return expression

    def parse_atom(self) -> Expression:
        token = self.advance()
        if token.kind == _TAG:
            return TagRef(label=token.value or "", type_symbol=token.symbol)
        if token.kind == _PSEUDO:
            return self._pseudo_tag_call(token)
        if token.kind == _LPAREN:
            if self.peek().kind == _RPAREN:
                raise TagQuerySyntaxError("Empty group", token.position)
            self._descend(1, token.position)
            expression = self.parse_or()
            self.depth -= 1
            closing = self.advance()
            if closing.kind != _RPAREN:
                raise TagQuerySyntaxError("Unbalanced parentheses: unclosed '('", token.position)
            return expression
        if token.kind == _EOF:
            raise TagQuerySyntaxError("Unexpected end of query", token.position)
        if token.kind == _RPAREN:
            raise TagQuerySyntaxError("Unbalanced parentheses: closing ')' without opening '('", token.position)
        raise TagQuerySyntaxError(f"Unexpected operator {token.kind}", token.position)

    def _pseudo_tag_call(self, token: Token) -> PseudoTagCall:
        name = token.value or ""
        argument = token.argument
        case_sensitive = token.case_flag
        if argument is not None and case_sensitive is None:
            case_sensitive = self.case_sensitive_default

        if self.pseudo_tags is None:
            return PseudoTagCall(name=name, argument=argument, case_sensitive=case_sensitive)

        pseudo_tag = self.pseudo_tags.get(name)
        if pseudo_tag is None:
            raise InvalidPseudoTagError(name)
        if pseudo_tag.kind is PseudoTagKind.FLAG:
            if argument is not None:
                raise TagQuerySyntaxError(f"Pseudo-tag '{name}' does not take an argument", token.position)
            return PseudoTagCall(name=name)
        elif pseudo_tag.kind is PseudoTagKind.PATTERN:
            if argument is None:
                raise TagQuerySyntaxError(f"Pseudo-tag '{name}' requires an argument", token.position)
            try:
                pseudo_tag.check_argument(argument)
            except re.error as exc:
                raise TagQuerySyntaxError(f"Invalid pattern for pseudo-tag '{name}': {exc}", token.position) from exc
            if not pseudo_tag.uses_flags:
                case_sensitive = None
            return PseudoTagCall(name=name, argument=argument, case_sensitive=case_sensitive)
        raise AssertionError(f"Unhandled pseudo-tag kind: {pseudo_tag.kind}")


def parse(
    text: str,
    type_symbols: Collection[str] = (),
    pseudo_tags: Optional[Mapping[str, PseudoTag]] = None,
    case_sensitive_default: bool = False,
) -> Expression:
    """Parse a tag query into an expression tree.

    Args:
        text: Query text, a single line.
        type_symbols: Tag-type symbols recognised as label prefixes.
        pseudo_tags: Registry used to validate pseudo-tag invocations eagerly.
            When None, pseudo-tag names are not checked.
        case_sensitive_default: Case sensitivity of pattern arguments without
            an explicit ``s``/``i`` flag.

    Raises:
        TagQuerySyntaxError: If the text is malformed.
        InvalidPseudoTagError: If a pseudo-tag is not in ``pseudo_tags``.
    """

    tokens = _Tokenizer(text, type_symbols).tokenize()
    return _Parser(tokens, pseudo_tags, case_sensitive_default).parse()


__all__ = ["parse", "is_label_valid", "is_symbol_valid", "KEYWORDS", "RESERVED_CHARACTERS", "Token"]
