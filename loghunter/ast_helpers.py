"""Tree-sitter helpers shared by the matcher, the semantic model and the detectors."""

import re
from typing import Iterator, List, Optional, Set

import tree_sitter_c_sharp as tscsharp
from tree_sitter import Language, Node, Parser

CSHARP_LANG = Language(tscsharp.language())

STRING_LITERAL_TYPES = {"string_literal", "verbatim_string_literal", "raw_string_literal"}
INTERPOLATED_STRING_TYPE = "interpolated_string_expression"

# Tokens that can sit between arguments without being one
_NON_ARGUMENT_TYPES = {"(", ")", ",", "comment"}

_ESCAPE_RE = re.compile(
    r'\\(u[0-9A-Fa-f]{4}|U[0-9A-Fa-f]{8}|x[0-9A-Fa-f]{1,4}|.)', re.DOTALL
)
_SIMPLE_ESCAPES = {
    "'": "'", '"': '"', "\\": "\\", "0": "\0", "a": "\a", "b": "\b",
    "e": "\x1b", "f": "\f", "n": "\n", "r": "\r", "t": "\t", "v": "\v",
}


def parse_source(source: str):
    """Parse C# source text. A fresh Parser per call keeps threads independent."""
    parser = Parser(CSHARP_LANG)
    return parser.parse(source.encode('utf-8'))


# ============================================================================
# Node Navigation
# ============================================================================

def find_nodes(node: Node, type_name: str) -> List[Node]:
    """Find all descendant nodes (including node itself) of a given type, in source order."""
    return find_nodes_multi(node, {type_name})


def find_nodes_multi(node: Node, type_names: Set[str]) -> List[Node]:
    """Find all descendant nodes matching any of the given types, in source order."""
    return list(iter_nodes(node, type_names))


def iter_nodes(node: Node, type_names: Optional[Set[str]] = None) -> Iterator[Node]:
    # Explicit stack: generated C# files nest deeper than the recursion limit
    stack = [node]
    while stack:
        current = stack.pop()
        if type_names is None or current.type in type_names:
            yield current
        stack.extend(reversed(current.children))


def node_text(node: Optional[Node]) -> str:
    """Get the source text of a node."""
    if node is None or not node.text:
        return ""
    return node.text.decode('utf-8', errors='replace')


def get_node_line(node: Node) -> int:
    """Get 1-based line number."""
    return node.start_point[0] + 1


def get_node_column(node: Node) -> int:
    """Get 1-based column number."""
    return node.start_point[1] + 1


def get_node_end_line(node: Node) -> int:
    return node.end_point[0] + 1


def get_node_end_column(node: Node) -> int:
    return node.end_point[1] + 1


def get_child_by_type(node: Node, type_name: str) -> Optional[Node]:
    """Get first direct child of a given type."""
    for child in node.children:
        if child.type == type_name:
            return child
    return None


def get_children_by_type(node: Node, type_name: str) -> List[Node]:
    """Get all direct children of a given type."""
    return [c for c in node.children if c.type == type_name]


def get_field(node: Node, field_name: str, *fallback_types: str) -> Optional[Node]:
    """Field access with a by-type fallback for grammar versions without the field."""
    child = node.child_by_field_name(field_name)
    if child is not None:
        return child
    for type_name in fallback_types:
        child = get_child_by_type(node, type_name)
        if child is not None:
            return child
    return None


def ancestors(node: Node) -> Iterator[Node]:
    parent = node.parent
    while parent is not None:
        yield parent
        parent = parent.parent


# ============================================================================
# Names & Arguments
# ============================================================================

def simple_name(node: Optional[Node]) -> str:
    """Identifier text of a simple name; drops type arguments of a generic name."""
    if node is None:
        return ""
    if node.type == "generic_name":
        ident = get_child_by_type(node, "identifier")
        return node_text(ident) if ident else node_text(node).split("<", 1)[0]
    return node_text(node)


def get_arguments(args_node: Optional[Node]) -> List[Node]:
    """Get all argument nodes from an argument_list node."""
    if args_node is None:
        return []
    return [c for c in args_node.children
            if c.is_named and c.type not in _NON_ARGUMENT_TYPES]


def argument_expression(argument: Node) -> Optional[Node]:
    """The expression inside an argument node (after any name colon or ref/out/in)."""
    if argument.type != "argument":
        return argument
    expr = None
    for child in argument.named_children:
        if child.type in ("name_colon", "comment"):
            continue
        expr = child
    return expr


def binary_operator(node: Node) -> str:
    op = node.child_by_field_name("operator")
    if op is not None:
        return op.type
    # Fallback: the anonymous token between the operands
    for child in node.children:
        if not child.is_named:
            return child.type
    return ""


# ============================================================================
# String Literals
# ============================================================================

def is_string_literal(node: Optional[Node]) -> bool:
    return node is not None and node.type in STRING_LITERAL_TYPES


def is_interpolated_string(node: Optional[Node]) -> bool:
    return node is not None and node.type == INTERPOLATED_STRING_TYPE


def string_literal_value(node: Node) -> str:
    """Decode a string literal node to the value it denotes."""
    text = node_text(node)
    if text.endswith(("u8", "U8")):
        text = text[:-2]

    if node.type == "raw_string_literal":
        return text.strip('"').strip("\r\n")

    if node.type == "verbatim_string_literal" or text.startswith('@'):
        inner = text[2:-1] if len(text) >= 3 else ""
        return inner.replace('""', '"')

    inner = text[1:-1] if len(text) >= 2 else ""
    return _ESCAPE_RE.sub(_decode_escape, inner)


def _decode_escape(match: "re.Match") -> str:
    seq = match.group(1)
    if seq[0] in ("u", "U", "x") and len(seq) > 1:
        try:
            return chr(int(seq[1:], 16))
        except (ValueError, OverflowError):
            return match.group(0)
    return _SIMPLE_ESCAPES.get(seq, seq)


def literal_text(node: Optional[Node]) -> Optional[str]:
    """Text a detector can classify: decoded literal value, or the interpolated source text.

    Returns None for every other expression kind.
    """
    if is_string_literal(node):
        return string_literal_value(node)
    if is_interpolated_string(node):
        return node_text(node)
    return None
