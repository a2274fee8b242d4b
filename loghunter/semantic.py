"""
Declaration-Based Semantic Model (tree-sitter)
===============================================
Resolves identifiers and expressions of a parsed C# file to types, and walks a
type's base-type chain. It is a deliberately small stand-in for a compiler
semantic model:

- user types come from class/struct/record/interface declarations of every
  file in the scan (TypeIndex);
- framework types come from a fixed table of well-known System types;
- variables are found by walking up the enclosing scopes of a reference
  (catch clauses, parameters, preceding locals, foreach variables, pattern
  variables, fields and properties).

Anything outside that is "unresolved" and callers treat it as unclassifiable.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from tree_sitter import Node

from loghunter.ast_helpers import (
    ancestors,
    find_nodes_multi,
    get_child_by_type,
    get_children_by_type,
    get_field,
    is_interpolated_string,
    is_string_literal,
    node_text,
    simple_name,
)

BASE_EXCEPTION_NAMESPACE = "System"
BASE_EXCEPTION_NAME = "Exception"

# Namespaces imported by SDK-style projects with <ImplicitUsings>enable</ImplicitUsings>
IMPLICIT_USINGS = (
    "System",
    "System.Collections.Generic",
    "System.IO",
    "System.Linq",
    "System.Net.Http",
    "System.Threading",
    "System.Threading.Tasks",
)

TYPE_DECLARATION_TYPES = {
    "class_declaration", "struct_declaration", "record_declaration",
    "record_struct_declaration", "interface_declaration",
}

NAMESPACE_TYPES = {"namespace_declaration", "file_scoped_namespace_declaration"}

FUNCTION_SCOPE_TYPES = {
    "method_declaration", "constructor_declaration", "local_function_statement",
    "lambda_expression", "anonymous_method_expression", "operator_declaration",
    "conversion_operator_declaration", "destructor_declaration",
}

PATTERN_VARIABLE_TYPES = {"declaration_pattern", "declaration_expression"}

THIS_TYPES = {"this_expression", "this"}
BASE_TYPES = {"base_expression", "base"}

PREDEFINED_TYPES = {
    "string": "System.String",
    "object": "System.Object",
}


@dataclass(frozen=True)
class TypeSymbol:
    """A named type: user-declared, or one of the framework types below."""
    name: str
    namespace: str
    kind: str = "class"
    base_name: Optional[str] = None
    usings: Tuple[str, ...] = ()
    framework: bool = False
    # Dotted names of the enclosing type declarations of a nested type, outermost first
    containing_type: str = ""

    @property
    def full_name(self) -> str:
        return ".".join(p for p in (self.namespace, self.containing_type, self.name) if p)

    @property
    def type_path(self) -> Tuple[str, ...]:
        return tuple(self.containing_type.split(".")) if self.containing_type else ()

    def is_named(self, name: str, namespace: str) -> bool:
        return (self.name == name and self.namespace == namespace
                and not self.containing_type)


@dataclass(frozen=True)
class VariableSymbol:
    """A local, parameter, catch variable, field or property."""
    name: str
    type_node: Optional[Node]
    initializer: Optional[Node]
    declaration: Node


def _framework(namespace: str, name: str, base: Optional[str] = "System.Object",
               kind: str = "class") -> TypeSymbol:
    return TypeSymbol(name=name, namespace=namespace, kind=kind, base_name=base, framework=True)


FRAMEWORK_TYPES: Tuple[TypeSymbol, ...] = (
    _framework("System", "Object", base=None),
    _framework("System", "String"),
    _framework("System", "Console"),
    _framework("System", "Exception"),
    _framework("System", "SystemException", "System.Exception"),
    _framework("System", "ApplicationException", "System.Exception"),
    _framework("System", "AggregateException", "System.Exception"),
    _framework("System", "ArgumentException", "System.SystemException"),
    _framework("System", "ArgumentNullException", "System.ArgumentException"),
    _framework("System", "ArgumentOutOfRangeException", "System.ArgumentException"),
    _framework("System", "ArithmeticException", "System.SystemException"),
    _framework("System", "DivideByZeroException", "System.ArithmeticException"),
    _framework("System", "OverflowException", "System.ArithmeticException"),
    _framework("System", "FormatException", "System.SystemException"),
    _framework("System", "IndexOutOfRangeException", "System.SystemException"),
    _framework("System", "InvalidCastException", "System.SystemException"),
    _framework("System", "InvalidOperationException", "System.SystemException"),
    _framework("System", "ObjectDisposedException", "System.InvalidOperationException"),
    _framework("System", "NotImplementedException", "System.SystemException"),
    _framework("System", "NotSupportedException", "System.SystemException"),
    _framework("System", "NullReferenceException", "System.SystemException"),
    _framework("System", "OperationCanceledException", "System.SystemException"),
    _framework("System", "TimeoutException", "System.SystemException"),
    _framework("System", "UnauthorizedAccessException", "System.SystemException"),
    _framework("System.IO", "IOException", "System.SystemException"),
    _framework("System.IO", "FileNotFoundException", "System.IO.IOException"),
    _framework("System.IO", "DirectoryNotFoundException", "System.IO.IOException"),
    _framework("System.Collections.Generic", "KeyNotFoundException", "System.SystemException"),
    _framework("System.Net.Http", "HttpRequestException", "System.Exception"),
    _framework("System.Threading.Tasks", "TaskCanceledException",
               "System.OperationCanceledException"),
)

# (declaring type, member) -> member type, looked up along the receiver's ancestor chain
FRAMEWORK_MEMBER_TYPES: Dict[Tuple[str, str], str] = {
    ("System.Exception", "InnerException"): "System.Exception",
    ("System.Exception", "Message"): "System.String",
    ("System.Exception", "StackTrace"): "System.String",
    ("System.Exception", "Source"): "System.String",
    ("System.Object", "ToString"): "System.String",
    ("System.Exception", "GetBaseException"): "System.Exception",
}


# ============================================================================
# Declarations
# ============================================================================

def file_scoped_namespace(root: Node) -> str:
    ns = get_child_by_type(root, "file_scoped_namespace_declaration")
    return _namespace_name(ns) if ns is not None else ""


def _namespace_name(ns_node: Node) -> str:
    name = get_field(ns_node, "name", "qualified_name", "identifier")
    return node_text(name)


def enclosing_namespace(node: Node, file_namespace: str = "") -> str:
    """Dotted namespace a node is declared in ('' for the global namespace)."""
    parts: List[str] = []
    saw_file_scoped = False
    for anc in ancestors(node):
        if anc.type in NAMESPACE_TYPES:
            parts.append(_namespace_name(anc))
            if anc.type == "file_scoped_namespace_declaration":
                saw_file_scoped = True
    parts.reverse()
    if file_namespace and not saw_file_scoped:
        parts.insert(0, file_namespace)
    return ".".join(p for p in parts if p)


def enclosing_type_path(node: Node) -> Tuple[str, ...]:
    """Names of the type declarations enclosing node, outermost first."""
    names = []
    for anc in ancestors(node):
        if anc.type in TYPE_DECLARATION_TYPES:
            name_node = get_field(anc, "name", "identifier")
            if name_node is not None:
                names.append(node_text(name_node))
    names.reverse()
    return tuple(names)


def enclosing_type_declaration(node: Node) -> Optional[Node]:
    for anc in ancestors(node):
        if anc.type in TYPE_DECLARATION_TYPES:
            return anc
    return None


def collect_usings(root: Node) -> Tuple[str, ...]:
    """Namespaces imported by plain `using X.Y;` directives (static and alias forms skipped)."""
    usings: List[str] = []
    for directive in find_nodes_multi(root, {"using_directive"}):
        tokens = {c.type for c in directive.children if not c.is_named}
        if "static" in tokens or "=" in tokens:
            continue
        names = [c for c in directive.named_children
                 if c.type in ("identifier", "qualified_name", "alias_qualified_name")]
        if names:
            usings.append(_clean_type_name(node_text(names[-1])))
    return tuple(usings)


def _base_type_name(decl: Node) -> Optional[str]:
    base_list = get_child_by_type(decl, "base_list")
    if base_list is None:
        return None
    for child in base_list.named_children:
        if child.type == "comment":
            continue
        if child.type == "primary_constructor_base_type":
            inner = child.named_children[0] if child.named_children else None
            return node_text(inner) if inner is not None else None
        return node_text(child)
    return None


def collect_type_declarations(root: Node) -> List[TypeSymbol]:
    file_namespace = file_scoped_namespace(root)
    usings = collect_usings(root)
    symbols = []
    for decl in find_nodes_multi(root, TYPE_DECLARATION_TYPES):
        name_node = get_field(decl, "name", "identifier")
        if name_node is None:
            continue
        symbols.append(TypeSymbol(
            name=node_text(name_node),
            namespace=enclosing_namespace(decl, file_namespace),
            kind=decl.type.replace("_declaration", ""),
            base_name=_base_type_name(decl),
            usings=usings,
            containing_type=".".join(enclosing_type_path(decl)),
        ))
    return symbols


def _clean_type_name(name: str) -> str:
    name = name.strip()
    if name.startswith("global::"):
        name = name[len("global::"):]
    # Generic arguments, nullable and array suffixes do not change the named type
    name = name.split("<", 1)[0]
    return name.rstrip("?[] ,")


class TypeIndex:
    """All type declarations visible to a scan. Built once, read-only afterwards."""

    def __init__(self, types: Iterable[TypeSymbol] = ()):
        self._by_full_name: Dict[str, TypeSymbol] = {}
        for sym in FRAMEWORK_TYPES:
            self._by_full_name[sym.full_name] = sym
        # User declarations win over framework entries of the same full name
        for sym in types:
            existing = self._by_full_name.get(sym.full_name)
            if existing is None or existing.framework:
                self._by_full_name[sym.full_name] = sym

    @classmethod
    def from_trees(cls, roots: Iterable[Node]) -> "TypeIndex":
        types: List[TypeSymbol] = []
        for root in roots:
            types.extend(collect_type_declarations(root))
        return cls(types)

    def lookup(self, full_name: str) -> Optional[TypeSymbol]:
        return self._by_full_name.get(full_name)

    def lookup_in(self, namespace: str, name: str) -> Optional[TypeSymbol]:
        return self.lookup(f"{namespace}.{name}" if namespace else name)

    def __len__(self):
        return len(self._by_full_name)


def _namespace_chain(namespace: str) -> List[str]:
    """'A.B' -> ['A.B', 'A', ''] (innermost first, global last)."""
    chain = []
    parts = namespace.split(".") if namespace else []
    while parts:
        chain.append(".".join(parts))
        parts.pop()
    chain.append("")
    return chain


# ============================================================================
# SemanticModel
# ============================================================================

class SemanticModel:
    """
    Per-file type resolution. Holds no mutable state after construction, so one
    instance can serve any number of concurrent detector calls.
    """

    def __init__(self, root: Node, type_index: Optional[TypeIndex] = None,
                 implicit_usings: bool = True):
        self.root = root
        self.type_index = type_index if type_index is not None else TypeIndex.from_trees([root])
        self.file_namespace = file_scoped_namespace(root)
        self.implicit_usings = IMPLICIT_USINGS if implicit_usings else ()
        usings = collect_usings(root)
        self.usings = usings + tuple(u for u in self.implicit_usings if u not in usings)

    # ------------------------------------------------------------------
    # Type names
    # ------------------------------------------------------------------

    def resolve_type_name(self, name: str, context: Node) -> Optional[TypeSymbol]:
        """Resolve a type name as written at the position of context."""
        namespace = enclosing_namespace(context, self.file_namespace)
        return self._resolve_in_scope(name, namespace, self.usings, enclosing_type_path(context))

    def _resolve_in_scope(self, name: str, namespace: str, usings: Tuple[str, ...],
                          type_path: Tuple[str, ...] = ()) -> Optional[TypeSymbol]:
        name = _clean_type_name(name)
        if not name:
            return None
        if name in PREDEFINED_TYPES:
            return self.type_index.lookup(PREDEFINED_TYPES[name])

        # Nested types of the enclosing type declarations, innermost first
        for depth in range(len(type_path), 0, -1):
            sym = self.type_index.lookup_in(namespace, ".".join(type_path[:depth] + (name,)))
            if sym is not None:
                return sym

        chain = _namespace_chain(namespace)
        if "." in name:
            for ns in chain:
                sym = self.type_index.lookup_in(ns, name)
                if sym is not None:
                    return sym
            # `Outer.Inner` where Outer is a type of an imported namespace
            for ns in usings:
                sym = self.type_index.lookup_in(ns, name)
                if sym is not None and sym.containing_type:
                    return sym
            return None

        for ns in chain:
            sym = self.type_index.lookup_in(ns, name)
            if sym is not None:
                return sym
        for ns in usings:
            sym = self.type_index.lookup_in(ns, name)
            if sym is not None:
                return sym
        return None

    def resolve_type_node(self, type_node: Optional[Node]) -> Optional[TypeSymbol]:
        if type_node is None or type_node.type == "implicit_type":
            return None
        if type_node.type == "nullable_type" and type_node.named_children:
            type_node = type_node.named_children[0]
        if type_node.type == "predefined_type":
            return self.type_index.lookup(PREDEFINED_TYPES.get(node_text(type_node), ""))
        return self.resolve_type_name(node_text(type_node), type_node)

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def resolve_symbol(self, identifier: Node):
        """Variable the identifier refers to, else the type it names, else None."""
        variable = self.find_variable(identifier)
        if variable is not None:
            return variable
        return self.resolve_type_name(node_text(identifier), identifier)

    def find_variable(self, identifier: Node) -> Optional[VariableSymbol]:
        name = node_text(identifier)
        for scope in ancestors(identifier):
            found = self._declared_in_scope(scope, name, identifier)
            if found is not None:
                return found
        return None

    def _declared_in_scope(self, scope: Node, name: str,
                           reference: Node) -> Optional[VariableSymbol]:
        scope_type = scope.type

        if scope_type == "catch_clause":
            decl = get_child_by_type(scope, "catch_declaration")
            if decl is not None:
                type_node, name_node = _declared_pair(decl)
                if name_node is not None and node_text(name_node) == name:
                    return VariableSymbol(name, type_node, None, decl)
            return None

        if scope_type == "foreach_statement":
            type_node = scope.child_by_field_name("type")
            left = scope.child_by_field_name("left")
            if left is not None and left.type == "identifier" and node_text(left) == name:
                return VariableSymbol(name, type_node, None, scope)
            return None

        if scope_type in ("for_statement", "using_statement", "fixed_statement"):
            for decl in get_children_by_type(scope, "variable_declaration"):
                found = _from_variable_declaration(decl, name, reference)
                if found is not None:
                    return found
            return None

        if scope_type in ("block", "switch_section", "compilation_unit"):
            return self._declared_in_block(scope, name, reference)

        if scope_type in FUNCTION_SCOPE_TYPES:
            found = _pattern_variable(scope, name, reference)
            if found is not None:
                return found
            return _parameter(scope, name)

        if scope_type in TYPE_DECLARATION_TYPES:
            return _member_variable(scope, name)

        return None

    def _declared_in_block(self, block: Node, name: str,
                           reference: Node) -> Optional[VariableSymbol]:
        for statement in reversed(block.named_children):
            if statement.start_byte >= reference.start_byte:
                continue
            if statement.type == "global_statement" and statement.named_children:
                statement = statement.named_children[0]
            if statement.type != "local_declaration_statement":
                continue
            for decl in get_children_by_type(statement, "variable_declaration"):
                found = _from_variable_declaration(decl, name, reference)
                if found is not None:
                    return found
        return None

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def resolve_static_type(self, expression: Optional[Node]) -> Optional[TypeSymbol]:
        """Static type of an expression, or None when it cannot be determined."""
        return self._static_type(expression, set())

    def _static_type(self, expression: Optional[Node], visiting: set) -> Optional[TypeSymbol]:
        if expression is None:
            return None
        kind = expression.type

        if kind == "parenthesized_expression":
            inner = [c for c in expression.named_children if c.type != "comment"]
            return self._static_type(inner[0], visiting) if inner else None

        if is_string_literal(expression) or is_interpolated_string(expression):
            return self.type_index.lookup("System.String")

        if kind == "identifier":
            symbol = self.resolve_symbol(expression)
            if isinstance(symbol, VariableSymbol):
                return self._variable_type(symbol, visiting)
            return None

        if kind == "object_creation_expression":
            return self.resolve_type_node(get_field(expression, "type"))

        if kind == "cast_expression":
            return self.resolve_type_node(get_field(expression, "type"))

        if kind == "as_expression" or (
                kind == "binary_expression" and _has_token(expression, "as")):
            right = expression.child_by_field_name("right")
            if right is None and expression.named_children:
                right = expression.named_children[-1]
            return self.resolve_type_node(right)

        if kind in THIS_TYPES:
            return self.declared_type(enclosing_type_declaration(expression))

        if kind in BASE_TYPES:
            current = self.declared_type(enclosing_type_declaration(expression))
            return self.base_type_of(current) if current is not None else None

        if kind == "member_access_expression":
            receiver_node = expression.child_by_field_name("expression")
            member = simple_name(expression.child_by_field_name("name"))
            if receiver_node is not None and receiver_node.type in THIS_TYPES:
                type_decl = enclosing_type_declaration(receiver_node)
                variable = _member_variable(type_decl, member) if type_decl is not None else None
                if variable is not None:
                    return self._variable_type(variable, visiting)
            receiver = self._static_type(receiver_node, visiting)
            return self._member_type(receiver, member)

        if kind == "invocation_expression":
            function = expression.child_by_field_name("function")
            if function is not None and function.type == "member_access_expression":
                receiver = self._static_type(function.child_by_field_name("expression"), visiting)
                return self._member_type(receiver, simple_name(function.child_by_field_name("name")))
            return None

        return None

    def declared_type(self, type_decl: Optional[Node]) -> Optional[TypeSymbol]:
        """TypeSymbol of a type declaration node."""
        if type_decl is None:
            return None
        name_node = get_field(type_decl, "name", "identifier")
        if name_node is None:
            return None
        path = enclosing_type_path(type_decl) + (node_text(name_node),)
        namespace = enclosing_namespace(type_decl, self.file_namespace)
        return self.type_index.lookup_in(namespace, ".".join(path))

    def _variable_type(self, variable: VariableSymbol, visiting: set) -> Optional[TypeSymbol]:
        if variable.type_node is not None and variable.type_node.type != "implicit_type":
            return self.resolve_type_node(variable.type_node)
        if variable.initializer is None:
            return None
        key = variable.declaration.id
        if key in visiting:
            return None
        visiting.add(key)
        return self._static_type(variable.initializer, visiting)

    def _member_type(self, receiver: Optional[TypeSymbol], member: str) -> Optional[TypeSymbol]:
        if receiver is None or not member:
            return None
        for ancestor in self.ancestors_of(receiver):
            member_type = FRAMEWORK_MEMBER_TYPES.get((ancestor.full_name, member))
            if member_type is not None:
                return self.type_index.lookup(member_type)
        return None

    # ------------------------------------------------------------------
    # Ancestor chain
    # ------------------------------------------------------------------

    def base_type_of(self, symbol: TypeSymbol) -> Optional[TypeSymbol]:
        if not symbol.base_name:
            return None
        if symbol.framework:
            return self.type_index.lookup(symbol.base_name)
        # A nested type's base is looked up from inside its containing types
        return self._resolve_in_scope(symbol.base_name, symbol.namespace,
                                      symbol.usings + self.implicit_usings, symbol.type_path)

    def ancestors_of(self, symbol: TypeSymbol) -> Iterator[TypeSymbol]:
        """The type itself, then each base type until the chain ends."""
        seen = set()
        current = symbol
        while current is not None and current.full_name not in seen:
            yield current
            seen.add(current.full_name)
            current = self.base_type_of(current)


def is_base_exception_type(symbol: TypeSymbol) -> bool:
    return symbol.is_named(BASE_EXCEPTION_NAME, BASE_EXCEPTION_NAMESPACE)


def derives_from_exception(expression: Node, model: SemanticModel) -> bool:
    """True when the expression's static type is System.Exception or inherits from it."""
    static_type = model.resolve_static_type(expression)
    if static_type is None:
        return False
    return any(is_base_exception_type(t) for t in model.ancestors_of(static_type))


# ============================================================================
# Declaration helpers
# ============================================================================

def _has_token(node: Node, token: str) -> bool:
    return any(not c.is_named and c.type == token for c in node.children)


def _declared_pair(decl: Node) -> Tuple[Optional[Node], Optional[Node]]:
    """(type node, name node) of a parameter-like declaration."""
    type_node = decl.child_by_field_name("type")
    name_node = decl.child_by_field_name("name")
    if type_node is not None or name_node is not None:
        return type_node, name_node
    parts = [c for c in decl.named_children
             if c.type not in ("attribute_list", "modifier", "equals_value_clause",
                               "parameter_modifier", "comment")]
    if len(parts) >= 2:
        return parts[0], parts[-1]
    if len(parts) == 1:
        return (None, parts[0]) if decl.type == "parameter" else (parts[0], None)
    return None, None


def _declarator_parts(declarator: Node) -> Tuple[Optional[Node], Optional[Node]]:
    """(name node, initializer expression) of a variable_declarator."""
    name_node = get_field(declarator, "name", "identifier")
    initializer = None
    clause = get_child_by_type(declarator, "equals_value_clause")
    if clause is not None:
        values = [c for c in clause.named_children if c.type != "comment"]
        initializer = values[0] if values else None
    else:
        after_eq = False
        for child in declarator.children:
            if after_eq and child.is_named and child.type != "comment":
                initializer = child
                break
            if not child.is_named and child.type == "=":
                after_eq = True
    return name_node, initializer


def _from_variable_declaration(decl: Node, name: str,
                               reference: Node) -> Optional[VariableSymbol]:
    type_node = get_field(decl, "type")
    if type_node is None and decl.named_children:
        type_node = decl.named_children[0]
    for declarator in get_children_by_type(decl, "variable_declarator"):
        name_node, initializer = _declarator_parts(declarator)
        if name_node is None or node_text(name_node) != name:
            continue
        # `var e = e;` must not resolve the initializer's e to itself
        if declarator.start_byte <= reference.start_byte < declarator.end_byte:
            continue
        return VariableSymbol(name, type_node, initializer, declarator)
    return None


def _parameter(function: Node, name: str) -> Optional[VariableSymbol]:
    params = get_field(function, "parameters", "parameter_list")
    if params is None:
        return None
    if params.type == "identifier":
        # `x => ...`: single implicitly-typed lambda parameter
        return VariableSymbol(name, None, None, params) if node_text(params) == name else None
    for param in get_children_by_type(params, "parameter"):
        type_node, name_node = _declared_pair(param)
        if name_node is not None and node_text(name_node) == name:
            return VariableSymbol(name, type_node, None, param)
    return None


def _pattern_variable(function: Node, name: str,
                      reference: Node) -> Optional[VariableSymbol]:
    """`x is Exception e` and `out Exception e` declared before the reference."""
    body = function.child_by_field_name("body") or function
    found = None
    for decl in find_nodes_multi(body, PATTERN_VARIABLE_TYPES):
        if decl.start_byte >= reference.start_byte:
            break
        type_node = decl.child_by_field_name("type")
        designation = decl.child_by_field_name("name")
        if designation is None and decl.named_children:
            designation = decl.named_children[-1]
        if designation is not None and node_text(designation) == name:
            found = VariableSymbol(name, type_node, None, decl)
    return found


def _member_variable(type_decl: Node, name: str) -> Optional[VariableSymbol]:
    # Primary constructor parameters (C# 12 classes, records)
    params = get_child_by_type(type_decl, "parameter_list")
    if params is not None:
        for param in get_children_by_type(params, "parameter"):
            type_node, name_node = _declared_pair(param)
            if name_node is not None and node_text(name_node) == name:
                return VariableSymbol(name, type_node, None, param)

    body = get_field(type_decl, "body", "declaration_list")
    if body is None:
        return None
    for member in body.named_children:
        if member.type in ("field_declaration", "event_field_declaration"):
            for decl in get_children_by_type(member, "variable_declaration"):
                type_node = get_field(decl, "type")
                for declarator in get_children_by_type(decl, "variable_declarator"):
                    name_node, initializer = _declarator_parts(declarator)
                    if name_node is not None and node_text(name_node) == name:
                        return VariableSymbol(name, type_node, initializer, declarator)
        elif member.type == "property_declaration":
            name_node = member.child_by_field_name("name")
            if name_node is not None and node_text(name_node) == name:
                return VariableSymbol(name, member.child_by_field_name("type"), None, member)
    return None
