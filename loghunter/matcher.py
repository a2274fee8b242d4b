"""Call-site matching: which invocations are logging calls, which are console output."""

from dataclasses import dataclass
from typing import Optional, Tuple

from tree_sitter import Node

from loghunter.ast_helpers import get_arguments, get_field, node_text, simple_name
from loghunter.semantic import SemanticModel, TypeSymbol

LOGGING_METHOD_PREFIX = "Log"
LOGGING_METHOD_ALIASES = frozenset({"Error", "Warning", "Info", "Debug", "Trace"})

OUTPUT_TYPE_NAME = "Console"
OUTPUT_TYPE_NAMESPACE = "System"
DIRECT_OUTPUT_METHODS = frozenset({"WriteLine", "Write"})


@dataclass(frozen=True)
class CallSite:
    """View over an `receiver.Member(args)` invocation_expression."""
    node: Node
    callee_name: str
    name_node: Node
    receiver: Node
    argument_list: Optional[Node]
    arguments: Tuple[Node, ...]


def match_call_site(node: Node) -> Optional[CallSite]:
    """CallSite for an invocation whose callee is a member access, else None."""
    if node.type != "invocation_expression":
        return None
    function = get_field(node, "function")
    if function is None or function.type != "member_access_expression":
        return None
    name_node = function.child_by_field_name("name")
    receiver = function.child_by_field_name("expression")
    if name_node is None or receiver is None:
        return None
    argument_list = get_field(node, "arguments", "argument_list")
    return CallSite(
        node=node,
        callee_name=simple_name(name_node),
        name_node=name_node,
        receiver=receiver,
        argument_list=argument_list,
        arguments=tuple(get_arguments(argument_list)),
    )


def is_logging_method(name: str) -> bool:
    """`Log*` (case-sensitive) or one of the level-named aliases."""
    return name.startswith(LOGGING_METHOD_PREFIX) or name in LOGGING_METHOD_ALIASES


def is_logging_call(call_site: CallSite) -> bool:
    return is_logging_method(call_site.callee_name)


def is_logging_or_output_call(call_site: CallSite) -> bool:
    """Logging call, widened with the two output member names (by name, any receiver)."""
    return (is_logging_method(call_site.callee_name)
            or call_site.callee_name in DIRECT_OUTPUT_METHODS)


def is_direct_output_call(call_site: CallSite, model: SemanticModel) -> bool:
    """`Console.WriteLine(...)` / `Console.Write(...)` where Console is System.Console."""
    if call_site.callee_name not in DIRECT_OUTPUT_METHODS:
        return False
    receiver = call_site.receiver
    if receiver.type != "identifier" or node_text(receiver) != OUTPUT_TYPE_NAME:
        return False
    symbol = model.resolve_symbol(receiver)
    return (isinstance(symbol, TypeSymbol)
            and symbol.is_named(OUTPUT_TYPE_NAME, OUTPUT_TYPE_NAMESPACE))
