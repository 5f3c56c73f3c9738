"""
Stutter Parser
==============

Recursive descent parser that turns a token stream into one expression
tree.

Grammar
-------
    program        := expression [';'] EOF
    expression     := 'if' expression 'then' expression 'else' expression
                    | additive
    additive       := multiplicative (('+' | '-') multiplicative)*
    multiplicative := unary (('*' | '/') unary)*
    unary          := '-' unary | primary
    primary        := NUMBER | REAL | 'true' | 'false' | STRING | IDENT
                    | '(' expression ')'

Binary operators are left associative. A minus sign in front of a
number literal folds into a negative literal; in front of anything else
``-x`` becomes ``0 - x``. Integer literals must fit in a signed 64-bit
integer.

Example
-------
>>> from stutter.ast import ASTPrinter
>>> tree = parse_source("1 + 2 * 3")
>>> print(ASTPrinter().print(tree))
Operator Add
  Leaf number 1
  Operator Mul
    Leaf number 2
    Leaf number 3
"""

from typing import Callable, Optional

from stutter.ast import (
    ASTNode,
    LeafNode,
    Operator,
    Value,
    destroy_ast_node,
    make_conditional,
    make_leaf,
    make_operator,
)
from stutter.errors import ParseError, UnexpectedTokenError
from stutter.lexer import Lexer, Token, TokenType

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

ADDITIVE_OPERATORS: dict[TokenType, Operator] = {
    TokenType.PLUS: Operator.ADD,
    TokenType.MINUS: Operator.SUB,
}

MULTIPLICATIVE_OPERATORS: dict[TokenType, Operator] = {
    TokenType.STAR: Operator.MUL,
    TokenType.SLASH: Operator.DIV,
}


class Parser:
    """
    Recursive descent parser for Stutter expressions.

    Nodes built before a syntax error are destroyed before the error
    propagates.

    Attributes:
        tokens: Tokens from the lexer, ending in EOF
        filename: Source filename for error reporting
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        source_lines: Optional[list[str]] = None,
    ):
        if not tokens or tokens[-1].type is not TokenType.EOF:
            raise ValueError("token list must end with an EOF token")
        self.tokens = tokens
        self.filename = filename
        self.source_lines = source_lines or []
        self._pos = 0

    def parse(self) -> ASTNode:
        """
        Parse the whole token stream into one tree.

        Raises:
            ParseError: If the tokens do not form one expression
        """
        if self._check(TokenType.EOF):
            raise self._error(self._peek(), "expression")

        tree = self._parse_expression()
        try:
            self._match(TokenType.SEMICOLON)
            if not self._check(TokenType.EOF):
                raise self._error(self._peek(), "end of input")
        except ParseError:
            destroy_ast_node(tree)
            raise
        return tree

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    def _peek(self) -> Token:
        return self.tokens[min(self._pos, len(self.tokens) - 1)]

    def _advance(self) -> Token:
        token = self._peek()
        if token.type is not TokenType.EOF:
            self._pos += 1
        return token

    def _check(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _match(self, *types: TokenType) -> Optional[Token]:
        if self._check(*types):
            return self._advance()
        return None

    def _expect(self, token_type: TokenType, description: str) -> Token:
        if self._check(token_type):
            return self._advance()
        raise self._error(self._peek(), description)

    def _error(self, token: Token, expected: str) -> UnexpectedTokenError:
        return UnexpectedTokenError(
            token.describe(),
            expected=expected,
            location=token.location,
            source_line=self._get_source_line(token.line),
        )

    def _get_source_line(self, line: int) -> Optional[str]:
        if 0 < line <= len(self.source_lines):
            return self.source_lines[line - 1]
        return None

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def _parse_expression(self) -> ASTNode:
        if self._check(TokenType.IF):
            return self._parse_conditional()
        return self._parse_additive()

    def _parse_conditional(self) -> ASTNode:
        if_token = self._advance()
        parts: list[ASTNode] = []
        try:
            parts.append(self._parse_expression())
            self._expect(TokenType.THEN, "'then'")
            parts.append(self._parse_expression())
            self._expect(TokenType.ELSE, "'else'")
            parts.append(self._parse_expression())
        except ParseError:
            for part in parts:
                destroy_ast_node(part)
            raise
        return make_conditional(*parts, location=if_token.location)

    def _parse_additive(self) -> ASTNode:
        return self._parse_binary(self._parse_multiplicative, ADDITIVE_OPERATORS)

    def _parse_multiplicative(self) -> ASTNode:
        return self._parse_binary(self._parse_unary, MULTIPLICATIVE_OPERATORS)

    def _parse_binary(
        self,
        operand_parser: Callable[[], ASTNode],
        operators: dict[TokenType, Operator],
    ) -> ASTNode:
        """Parse a left-associative chain of ``operators``."""
        left = operand_parser()
        while self._check(*operators):
            op_token = self._advance()
            try:
                right = operand_parser()
            except ParseError:
                destroy_ast_node(left)
                raise
            left = make_operator(
                operators[op_token.type], left, right, location=op_token.location
            )
        return left

    def _parse_unary(self) -> ASTNode:
        if not self._check(TokenType.MINUS):
            return self._parse_primary()

        minus = self._advance()
        if self._check(TokenType.NUMBER):
            token = self._advance()
            return self._number_leaf(-token.value, minus)
        if self._check(TokenType.REAL):
            token = self._advance()
            return make_leaf(Value.real(-token.value), location=minus.location)

        operand = self._parse_unary()
        zero = make_leaf(Value.number(0), location=minus.location)
        return make_operator(Operator.SUB, zero, operand, location=minus.location)

    def _parse_primary(self) -> ASTNode:
        token = self._peek()

        if token.type is TokenType.NUMBER:
            self._advance()
            return self._number_leaf(token.value, token)

        if token.type is TokenType.REAL:
            self._advance()
            return make_leaf(Value.real(token.value), location=token.location)

        if token.type in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return make_leaf(
                Value.boolean(token.type is TokenType.TRUE), location=token.location
            )

        if token.type is TokenType.STRING:
            self._advance()
            return make_leaf(Value.string(token.value), location=token.location)

        if token.type is TokenType.IDENTIFIER:
            self._advance()
            return make_leaf(Value.symbol(token.value), location=token.location)

        if token.type is TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            try:
                self._expect(TokenType.RPAREN, "')'")
            except ParseError:
                destroy_ast_node(expr)
                raise
            return expr

        raise self._error(token, "expression")

    def _number_leaf(self, value: int, token: Token) -> LeafNode:
        if not INT64_MIN <= value <= INT64_MAX:
            raise ParseError(
                f"integer literal {value} does not fit in 64 bits",
                token.location,
                source_line=self._get_source_line(token.line),
            )
        return make_leaf(Value.number(value), location=token.location)


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_source(source: str, filename: str = "<input>") -> ASTNode:
    """
    Lex and parse ``source`` into one expression tree.

    Raises:
        ParseError: If the source is not a single valid expression
    """
    tokens = list(Lexer(source, filename).tokenize())
    return Parser(tokens, filename, source.splitlines()).parse()
