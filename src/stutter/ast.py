"""
Stutter Abstract Syntax Tree (AST) Definitions
==============================================

This module defines the expression tree handed from the parser to the
code generators.

Node Hierarchy
--------------
ASTNode (base)
├── LeafNode - holds one Value
├── OperatorNode - Add / Sub / Mul / Div / NoOp over two children
└── ConditionalNode - condition, then-branch, else-branch

Value (leaf payload) is a tagged union of Number, Real, Boolean,
String and Symbol. Exactly one variant is active; reading any other
variant raises ValueKindError.

Ownership
---------
Every child is owned by exactly one parent. The constructors refuse a
child that already has an owner, which keeps the tree acyclic and
unshared. ``destroy_ast_node`` releases a tree in post order and clears
each child reference after releasing it; it is a no-op on None and on
an already released node.

Usage
-----
>>> from stutter.ast import Value, Operator, make_leaf, make_operator
>>> tree = make_operator(
...     Operator.SUB,
...     make_leaf(Value.number(3)),
...     make_leaf(Value.number(4)),
... )
>>> destroy_ast_node(tree)
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, ClassVar, Iterator, Optional, Union

from stutter.errors import NodeKindError, SourceLocation, ValueKindError


# =============================================================================
# Leaf Values
# =============================================================================

class ValueKind(Enum):
    """Discriminant of a Value."""
    NUMBER = auto()
    REAL = auto()
    BOOLEAN = auto()
    STRING = auto()
    SYMBOL = auto()


# Python types accepted for each kind. bool is rejected for NUMBER and REAL
# separately because it is an int subclass.
_PAYLOAD_TYPES = {
    ValueKind.NUMBER: (int,),
    ValueKind.REAL: (float, int),
    ValueKind.BOOLEAN: (bool,),
    ValueKind.STRING: (str,),
    ValueKind.SYMBOL: (str,),
}


@dataclass(frozen=True)
class Value:
    """
    Leaf payload: a tagged union with exactly one active variant.

    Use the named constructors rather than building a Value directly:

        Value.number(42)
        Value.real(2.5)
        Value.boolean(True)
        Value.string("text")
        Value.symbol("x")

    Attributes:
        kind: The active variant
        payload: The variant's data
    """
    kind: ValueKind
    payload: Union[int, float, bool, str]

    def __post_init__(self):
        if not isinstance(self.kind, ValueKind):
            raise ValueKindError(f"unknown value kind {self.kind!r}")
        expected = _PAYLOAD_TYPES[self.kind]
        is_bool = isinstance(self.payload, bool)
        if not isinstance(self.payload, expected) or (
            is_bool and self.kind is not ValueKind.BOOLEAN
        ):
            raise ValueKindError(
                f"{self.kind.name} value cannot hold {type(self.payload).__name__} "
                f"{self.payload!r}"
            )
        if self.kind is ValueKind.REAL and not isinstance(self.payload, float):
            object.__setattr__(self, "payload", float(self.payload))

    @classmethod
    def number(cls, value: int) -> "Value":
        return cls(ValueKind.NUMBER, value)

    @classmethod
    def real(cls, value: float) -> "Value":
        return cls(ValueKind.REAL, value)

    @classmethod
    def boolean(cls, value: bool) -> "Value":
        return cls(ValueKind.BOOLEAN, value)

    @classmethod
    def string(cls, value: str) -> "Value":
        return cls(ValueKind.STRING, value)

    @classmethod
    def symbol(cls, name: str) -> "Value":
        return cls(ValueKind.SYMBOL, name)

    def _read(self, kind: ValueKind) -> Any:
        if self.kind is not kind:
            raise ValueKindError(f"value is {self.kind.name}, not {kind.name}")
        return self.payload

    def as_number(self) -> int:
        return self._read(ValueKind.NUMBER)

    def as_real(self) -> float:
        return self._read(ValueKind.REAL)

    def as_boolean(self) -> bool:
        return self._read(ValueKind.BOOLEAN)

    def as_string(self) -> str:
        return self._read(ValueKind.STRING)

    def as_symbol(self) -> str:
        return self._read(ValueKind.SYMBOL)

    def text(self) -> str:
        """
        Render the payload as source-like text.

        Numbers render as their verbatim decimal text.
        """
        if self.kind is ValueKind.NUMBER:
            return str(self.payload)
        if self.kind is ValueKind.REAL:
            return repr(self.payload)
        if self.kind is ValueKind.BOOLEAN:
            return "true" if self.payload else "false"
        if self.kind is ValueKind.STRING:
            return '"' + self.payload.replace("\\", "\\\\").replace('"', '\\"') + '"'
        return self.payload


# =============================================================================
# Node Kinds and Operators
# =============================================================================

class ASTKind(Enum):
    """Discriminant of an ASTNode."""
    CONDITIONAL = auto()
    OPERATOR = auto()
    LEAF = auto()


class Operator(Enum):
    """Operator tags carried by OperatorNode."""
    NOOP = auto()
    ADD = auto()
    SUB = auto()
    MUL = auto()
    DIV = auto()


# =============================================================================
# AST Nodes
# =============================================================================

@dataclass
class ASTNode:
    """
    Base class for all tree nodes.

    Attributes:
        location: Source location of the node, when parsed from text
        owned: True once a parent has taken ownership of this node
        released: True once destroy_ast_node has released this node
    """
    location: Optional[SourceLocation] = field(default=None, compare=False)
    owned: bool = field(default=False, init=False, compare=False, repr=False)
    released: bool = field(default=False, init=False, compare=False, repr=False)

    kind: ASTKind = field(default=None, init=False, compare=False, repr=False)

    # Names of the attributes that hold child nodes, in release order
    CHILD_FIELDS: ClassVar[tuple] = ()

    def children(self) -> Iterator["ASTNode"]:
        """Yield the node's non-None children."""
        for name in self.CHILD_FIELDS:
            child = getattr(self, name)
            if child is not None:
                yield child


@dataclass
class LeafNode(ASTNode):
    """
    Leaf node holding a single Value.

    Attributes:
        value: The leaf payload
    """
    value: Optional[Value] = None

    def __post_init__(self):
        self.kind = ASTKind.LEAF


@dataclass
class OperatorNode(ASTNode):
    """
    Binary operator node.

    Attributes:
        op: The operator tag
        left: Left operand
        right: Right operand
    """
    op: Operator = Operator.NOOP
    left: Optional[ASTNode] = None
    right: Optional[ASTNode] = None

    CHILD_FIELDS = ("left", "right")

    def __post_init__(self):
        self.kind = ASTKind.OPERATOR


@dataclass
class ConditionalNode(ASTNode):
    """
    Conditional expression ``if condition then then_branch else else_branch``.

    Attributes:
        condition: The expression to test
        then_branch: Value when the condition is true
        else_branch: Value when the condition is false
    """
    condition: Optional[ASTNode] = None
    then_branch: Optional[ASTNode] = None
    else_branch: Optional[ASTNode] = None

    CHILD_FIELDS = ("condition", "then_branch", "else_branch")

    def __post_init__(self):
        self.kind = ASTKind.CONDITIONAL


# =============================================================================
# Constructors
# =============================================================================

def _check_child(child: Any, role: str) -> ASTNode:
    """Validate a node about to be adopted as ``role``."""
    if not isinstance(child, ASTNode):
        raise NodeKindError(f"{role} must be an ASTNode, got {type(child).__name__}")
    if child.released:
        raise NodeKindError(f"{role} has already been destroyed")
    if child.owned:
        raise NodeKindError(f"{role} is already owned by another node")
    return child


def _adopt(*children: ASTNode) -> None:
    for child in children:
        child.owned = True


def make_ast_node(
    kind: ASTKind,
    value: Optional[Value] = None,
    op: Operator = Operator.NOOP,
    left: Optional[ASTNode] = None,
    condition: Optional[ASTNode] = None,
    right: Optional[ASTNode] = None,
    location: Optional[SourceLocation] = None,
) -> ASTNode:
    """
    Base constructor for every node kind.

    For CONDITIONAL nodes ``left`` is the then-branch and ``right`` the
    else-branch. Fields that do not belong to the requested kind must be
    left at their defaults.

    Raises:
        NodeKindError: On an unknown kind, a field that does not match
            the kind, or a child that is owned or destroyed
    """
    if kind is ASTKind.LEAF:
        if not isinstance(value, Value):
            raise NodeKindError(f"LEAF node needs a Value, got {type(value).__name__}")
        if op is not Operator.NOOP or left is not None or condition is not None or right is not None:
            raise NodeKindError("LEAF node cannot have an operator or children")
        return LeafNode(location=location, value=value)

    if kind is ASTKind.OPERATOR:
        if not isinstance(op, Operator):
            raise NodeKindError(f"unknown operator {op!r}")
        if value is not None or condition is not None:
            raise NodeKindError("OPERATOR node cannot have a value or a condition")
        _check_child(left, "left operand")
        _check_child(right, "right operand")
        if left is right:
            raise NodeKindError("left and right operands must be distinct nodes")
        _adopt(left, right)
        return OperatorNode(location=location, op=op, left=left, right=right)

    if kind is ASTKind.CONDITIONAL:
        if value is not None or op is not Operator.NOOP:
            raise NodeKindError("CONDITIONAL node cannot have a value or an operator")
        _check_child(condition, "condition")
        _check_child(left, "then branch")
        _check_child(right, "else branch")
        if len({id(condition), id(left), id(right)}) != 3:
            raise NodeKindError("conditional branches must be distinct nodes")
        _adopt(condition, left, right)
        return ConditionalNode(
            location=location,
            condition=condition,
            then_branch=left,
            else_branch=right,
        )

    raise NodeKindError(f"invalid ASTKind {kind!r}")


def make_leaf(value: Value, location: Optional[SourceLocation] = None) -> LeafNode:
    """Build a leaf holding ``value``."""
    return make_ast_node(ASTKind.LEAF, value=value, location=location)


def make_operator(
    op: Operator,
    left: ASTNode,
    right: ASTNode,
    location: Optional[SourceLocation] = None,
) -> OperatorNode:
    """Build an operator node that takes ownership of both operands."""
    return make_ast_node(ASTKind.OPERATOR, op=op, left=left, right=right, location=location)


def make_conditional(
    condition: ASTNode,
    then_branch: ASTNode,
    else_branch: ASTNode,
    location: Optional[SourceLocation] = None,
) -> ConditionalNode:
    """Build a conditional node that takes ownership of all three parts."""
    return make_ast_node(
        ASTKind.CONDITIONAL,
        left=then_branch,
        condition=condition,
        right=else_branch,
        location=location,
    )


# =============================================================================
# Destructor
# =============================================================================

def destroy_ast_node(node: Optional[ASTNode]) -> None:
    """
    Release ``node`` and everything below it, children first.

    Each child reference is cleared after the child is released, and the
    leaf value is dropped. Calling this on None or on a node that was
    already released does nothing. The walk uses an explicit stack so
    deep trees do not exhaust the interpreter's recursion limit.
    """
    if node is None or node.released:
        return

    # Post-order: a node is released after all of its children.
    stack: list[tuple[ASTNode, bool]] = [(node, False)]
    while stack:
        current, children_done = stack.pop()
        if current.released:
            continue
        if not children_done:
            stack.append((current, True))
            for child in reversed(list(current.children())):
                stack.append((child, False))
            continue

        for name in current.CHILD_FIELDS:
            setattr(current, name, None)
        if isinstance(current, LeafNode):
            current.value = None
        current.released = True


def count_nodes(node: Optional[ASTNode]) -> int:
    """Count live nodes in a tree."""
    if node is None:
        return 0
    total = 0
    stack = [node]
    while stack:
        current = stack.pop()
        total += 1
        stack.extend(current.children())
    return total


def require_live_node(node: Optional[ASTNode], role: str) -> ASTNode:
    """
    Check that ``node`` is a tree node that has not been destroyed.

    Raises:
        NodeKindError: If ``node`` is None, not a node, or released
    """
    if node is None:
        raise NodeKindError(f"missing {role}")
    if not isinstance(node, ASTNode):
        raise NodeKindError(f"{role} must be an ASTNode, got {type(node).__name__}")
    if node.released:
        raise NodeKindError(f"{role} has been destroyed")
    return node


# =============================================================================
# AST Visitor Pattern
# =============================================================================

class ASTVisitor:
    """
    Base class for AST visitors.

    Subclasses override visit_* methods for the node types they handle.

    Usage:
        class MyVisitor(ASTVisitor):
            def visit_LeafNode(self, node):
                ...

        MyVisitor().visit(tree)
    """

    def visit(self, node: ASTNode) -> Any:
        """Dispatch to ``visit_<ClassName>``."""
        method_name = f"visit_{node.__class__.__name__}"
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node: ASTNode) -> None:
        """Visit all children of the node."""
        for child in node.children():
            self.visit(child)

    def visit_LeafNode(self, node: LeafNode): return self.generic_visit(node)
    def visit_OperatorNode(self, node: OperatorNode): return self.generic_visit(node)
    def visit_ConditionalNode(self, node: ConditionalNode): return self.generic_visit(node)


# =============================================================================
# AST Pretty Printer
# =============================================================================

OPERATOR_NAMES = {
    Operator.NOOP: "NoOp",
    Operator.ADD: "Add",
    Operator.SUB: "Sub",
    Operator.MUL: "Mul",
    Operator.DIV: "Div",
}


class ASTPrinter(ASTVisitor):
    """
    Pretty printer for AST debugging.

    Usage:
        printer = ASTPrinter()
        print(printer.print(tree))
    """

    def __init__(self):
        self.output: list[str] = []
        self.indent_level = 0

    def print(self, node: ASTNode) -> str:
        """Print the tree and return it as a string."""
        self.output = []
        self.indent_level = 0
        self.visit(node)
        return "\n".join(self.output)

    def _emit(self, text: str) -> None:
        indent = "  " * self.indent_level
        self.output.append(f"{indent}{text}")

    def visit_LeafNode(self, node: LeafNode):
        if node.value is None:
            self._emit("Leaf <released>")
        else:
            self._emit(f"Leaf {node.value.kind.name.lower()} {node.value.text()}")

    def visit_OperatorNode(self, node: OperatorNode):
        self._emit(f"Operator {OPERATOR_NAMES[node.op]}")
        self.indent_level += 1
        for child in node.children():
            self.visit(child)
        self.indent_level -= 1

    def visit_ConditionalNode(self, node: ConditionalNode):
        self._emit("Conditional")
        self.indent_level += 1
        for label, child in (
            ("If:", node.condition),
            ("Then:", node.then_branch),
            ("Else:", node.else_branch),
        ):
            self._emit(label)
            if child is not None:
                self.indent_level += 1
                self.visit(child)
                self.indent_level -= 1
        self.indent_level -= 1
