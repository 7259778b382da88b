"""
Small parser for C# type expressions.

Turns a type string such as ``Dictionary<string, List<int?>>[]`` into a typed
tree so the translator can dispatch on shape instead of string prefixes:

  NamedType      int, MyApp.Models.User
  GenericType    List<T>, Dictionary<K, V>
  ArrayType      T[], T[,]   (rank = 1 + commas)
  NullableType   T?
  TupleType      (string Name, int Age)

Commas inside nested generic arguments never split the outer argument list;
that is handled here by the recursive descent, not by the translator.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from cststypegen.errors import TypeGrammarError


# ============================================================
# Tree
# ============================================================

@dataclass(frozen=True)
class NamedType:
    """A simple or dot-qualified type name."""
    name: str

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def qualifier(self) -> str:
        return self.name.rsplit(".", 1)[0] if "." in self.name else ""


@dataclass(frozen=True)
class GenericType:
    """A generic application: Name<Arg1, Arg2, ...>."""
    name: str
    arguments: tuple["TypeNode", ...]

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def qualifier(self) -> str:
        return self.name.rsplit(".", 1)[0] if "." in self.name else ""


@dataclass(frozen=True)
class ArrayType:
    """One bracket pair. rank > 1 means a rectangular (multi-dimensional) array."""
    element: "TypeNode"
    rank: int = 1


@dataclass(frozen=True)
class NullableType:
    """A trailing '?' on any type."""
    inner: "TypeNode"


@dataclass(frozen=True)
class TupleElement:
    """One element of a parenthesized tuple; the label is informational only."""
    type: "TypeNode"
    label: str | None = None


@dataclass(frozen=True)
class TupleType:
    """Parenthesized tuple syntax: (T1, T2) or (T1 a, T2 b)."""
    elements: tuple[TupleElement, ...]


TypeNode = Union[NamedType, GenericType, ArrayType, NullableType, TupleType]


# ============================================================
# Tokenizer
# ============================================================

TOKEN_REGEX = re.compile(
    r"""
    (?P<space>\s+)
    | (?P<ident>@?[A-Za-z_][A-Za-z0-9_]*)
    | (?P<alias>::)
    | (?P<punct>[.<>,()\[\]?])
    """,
    re.VERBOSE,
)


def tokenize_type_expression(type_expression: str) -> list[str]:
    """Split a C# type expression into identifier and punctuation tokens."""
    tokens: list[str] = []
    position = 0
    while position < len(type_expression):
        match = TOKEN_REGEX.match(type_expression, position)
        if match is None:
            raise TypeGrammarError(
                type_expression, f"unexpected character {type_expression[position]!r} at offset {position}"
            )
        position = match.end()
        if match.lastgroup == "space":
            continue
        token_text = match.group()
        if match.lastgroup == "ident":
            # Verbatim identifiers (@class) name the same symbol as the bare word
            token_text = token_text.lstrip("@")
        tokens.append(token_text)
    return tokens


def is_identifier_token(token: str | None) -> bool:
    return token is not None and (token[0].isalpha() or token[0] == "_")


# ============================================================
# Parser
# ============================================================

class TypeExpressionParser:
    """Recursive-descent parser over the token list of one type expression."""

    def __init__(self, type_expression: str) -> None:
        self.type_expression = type_expression
        self.tokens = tokenize_type_expression(type_expression)
        self.position = 0

    def parse(self) -> TypeNode:
        """Parse the whole expression; trailing tokens are an error."""
        if not self.tokens:
            raise TypeGrammarError(self.type_expression, "empty type expression")
        type_node = self.parse_type()
        if self.position != len(self.tokens):
            raise TypeGrammarError(
                self.type_expression, f"unexpected token {self.tokens[self.position]!r}"
            )
        return type_node

    def parse_type(self) -> TypeNode:
        type_node = self.parse_primary()
        while True:
            token = self.peek()
            if token == "?":
                self.advance()
                type_node = NullableType(type_node)
                continue
            if token == "[":
                self.advance()
                rank = 1
                while self.peek() == ",":
                    self.advance()
                    rank += 1
                self.expect("]")
                type_node = ArrayType(type_node, rank)
                continue
            return type_node

    def parse_primary(self) -> TypeNode:
        token = self.peek()
        if token == "(":
            return self.parse_tuple()
        if is_identifier_token(token):
            return self.parse_named()
        raise TypeGrammarError(self.type_expression, f"expected a type but found {token!r}")

    def parse_tuple(self) -> TypeNode:
        self.expect("(")
        elements: list[TupleElement] = [self.parse_tuple_element()]
        while self.peek() == ",":
            self.advance()
            elements.append(self.parse_tuple_element())
        self.expect(")")

        # "(T)" is just a parenthesized type, not a one-element tuple
        if len(elements) == 1 and elements[0].label is None:
            return elements[0].type
        return TupleType(tuple(elements))

    def parse_tuple_element(self) -> TupleElement:
        element_type = self.parse_type()
        label: str | None = None
        if is_identifier_token(self.peek()):
            label = self.advance()
        return TupleElement(element_type, label)

    def parse_named(self) -> TypeNode:
        name_segments = [self.advance()]

        # global::System.String -> System.String
        if name_segments[0] == "global" and self.peek() == "::":
            self.advance()
            name_segments = [self.expect_identifier()]

        while self.peek() == ".":
            self.advance()
            name_segments.append(self.expect_identifier())

        qualified_name = ".".join(name_segments)
        if self.peek() != "<":
            return NamedType(qualified_name)

        self.advance()
        arguments: list[TypeNode] = [self.parse_type()]
        while self.peek() == ",":
            self.advance()
            arguments.append(self.parse_type())
        self.expect(">")
        return GenericType(qualified_name, tuple(arguments))

    # ---- token helpers

    def peek(self) -> str | None:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def advance(self) -> str:
        token = self.peek()
        if token is None:
            raise TypeGrammarError(self.type_expression, "unexpected end of type expression")
        self.position += 1
        return token

    def expect(self, expected_token: str) -> str:
        token = self.peek()
        if token != expected_token:
            raise TypeGrammarError(self.type_expression, f"expected {expected_token!r} but found {token!r}")
        return self.advance()

    def expect_identifier(self) -> str:
        token = self.peek()
        if not is_identifier_token(token):
            raise TypeGrammarError(self.type_expression, f"expected an identifier but found {token!r}")
        return self.advance()


def parse_type_expression(type_expression: str) -> TypeNode:
    """Parse a C# type expression into a TypeNode tree."""
    return TypeExpressionParser(type_expression).parse()
