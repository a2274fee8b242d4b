"""
Logging Detectors
=================
Five independent classifiers. Each is a pure function of a matched call site and
a read-only AnalysisContext, returning zero or more diagnostics:

- LA0001 direct output usage      (Console.WriteLine / Console.Write)
- LA0002 exception without detail (raw exception object passed to a logging call)
- LA0003 sensitive info logged    (keywords / regexes in literal arguments)
- LA0004 incorrect log level      (message text vs. the level of the called method)
- LA0005 missing structured params (concatenation / string.Format in arguments)
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional, Tuple

from tree_sitter import Node

from loghunter.ast_helpers import (
    argument_expression,
    binary_operator,
    get_field,
    is_interpolated_string,
    is_string_literal,
    literal_text,
    simple_name,
)
from loghunter.matcher import (
    CallSite,
    is_direct_output_call,
    is_logging_call,
    is_logging_or_output_call,
)
from loghunter.patterns import DEFAULT_CATALOG, SensitiveCatalog, detect_sensitive_pattern
from loghunter.rules import (
    DIRECT_OUTPUT_RULE,
    EXCEPTION_LOGGING_RULE,
    INCORRECT_LOG_LEVEL_RULE,
    MISSING_STRUCTURED_PARAMS_RULE,
    SENSITIVE_INFO_RULE,
    Diagnostic,
    make_diagnostic,
)
from loghunter.semantic import SemanticModel, derives_from_exception


@dataclass(frozen=True)
class AnalysisContext:
    """Read-only inputs shared by every classifier call on one file."""
    model: SemanticModel
    catalog: SensitiveCatalog = DEFAULT_CATALOG


# ============================================================================
# LA0001 Direct Output Usage
# ============================================================================

def check_direct_output(call_site: CallSite, context: AnalysisContext) -> List[Diagnostic]:
    if not is_direct_output_call(call_site, context.model):
        return []
    return [make_diagnostic(DIRECT_OUTPUT_RULE, call_site.node, call_site.callee_name)]


# ============================================================================
# LA0002 Exception Logged Without Detail
# ============================================================================

STRINGIFICATION_MEMBERS = frozenset({"ToString", "Message"})
FULL_TEXT_METHOD = "ToString"


def is_exception_logged_properly(expression: Node) -> bool:
    """`ex.Message`, `ex.ToString` or `ex.ToString()`."""
    if expression.type == "member_access_expression":
        return simple_name(expression.child_by_field_name("name")) in STRINGIFICATION_MEMBERS
    if expression.type == "invocation_expression":
        function = get_field(expression, "function")
        if function is not None and function.type == "member_access_expression":
            return simple_name(function.child_by_field_name("name")) == FULL_TEXT_METHOD
    return False


def check_exception_logging(call_site: CallSite, context: AnalysisContext) -> List[Diagnostic]:
    if not is_logging_call(call_site):
        return []

    for argument in call_site.arguments:
        expression = argument_expression(argument)
        if expression is None or not derives_from_exception(expression, context.model):
            continue
        # Only the first exception-typed argument is judged
        if is_exception_logged_properly(expression):
            return []
        return [make_diagnostic(EXCEPTION_LOGGING_RULE, argument)]

    return []


# ============================================================================
# LA0003 Sensitive Information Logged
# ============================================================================

def check_sensitive_info(call_site: CallSite, context: AnalysisContext) -> List[Diagnostic]:
    if not is_logging_or_output_call(call_site):
        return []

    diagnostics = []
    for argument in call_site.arguments:
        text = literal_text(argument_expression(argument))
        if text is None:
            continue
        description = detect_sensitive_pattern(text, context.catalog)
        if description:
            diagnostics.append(make_diagnostic(SENSITIVE_INFO_RULE, argument, description))
    return diagnostics


# ============================================================================
# LA0004 Incorrect Log Level
# ============================================================================

class LogLevel(IntEnum):
    UNKNOWN = 0
    TRACE = 1
    DEBUG = 2
    INFORMATION = 3
    WARNING = 4
    ERROR = 5

    @property
    def label(self) -> str:
        return self.name.capitalize()


DECLARED_LEVELS = {
    "logerror": LogLevel.ERROR,
    "error": LogLevel.ERROR,
    "logwarning": LogLevel.WARNING,
    "warning": LogLevel.WARNING,
    "loginformation": LogLevel.INFORMATION,
    "loginfo": LogLevel.INFORMATION,
    "info": LogLevel.INFORMATION,
    "logdebug": LogLevel.DEBUG,
    "debug": LogLevel.DEBUG,
    "logtrace": LogLevel.TRACE,
    "trace": LogLevel.TRACE,
}

# Evaluated top to bottom, first bucket with a hit wins
LEVEL_KEYWORDS: Tuple[Tuple[LogLevel, Tuple[str, ...]], ...] = (
    (LogLevel.ERROR, ("error", "exception", "failed", "failure", "crash", "fatal", "critical")),
    (LogLevel.WARNING, ("warning", "warn", "deprecated", "obsolete", "retry", "timeout", "slow")),
    (LogLevel.DEBUG, ("debug", "entering", "exiting", "step", "checkpoint", "state")),
    (LogLevel.TRACE, ("trace", "verbose", "detail", "internal", "private")),
)


def declared_level(method_name: str) -> LogLevel:
    return DECLARED_LEVELS.get(method_name.lower(), LogLevel.UNKNOWN)


def infer_level(message: str) -> LogLevel:
    lower_message = message.lower()
    for level, keywords in LEVEL_KEYWORDS:
        if any(keyword in lower_message for keyword in keywords):
            return level
    return LogLevel.INFORMATION


def check_log_level(call_site: CallSite, context: AnalysisContext) -> List[Diagnostic]:
    if not is_logging_call(call_site):
        return []
    current = declared_level(call_site.callee_name)
    if current is LogLevel.UNKNOWN or not call_site.arguments:
        return []

    message = literal_text(argument_expression(call_site.arguments[0]))
    if not message:
        return []

    suggested = infer_level(message)
    if suggested is current:
        return []
    return [make_diagnostic(INCORRECT_LOG_LEVEL_RULE, call_site.name_node,
                            suggested.label, current.label)]


# ============================================================================
# LA0005 Missing Structured Parameters
# ============================================================================

STRING_BUILDING_METHODS = frozenset({"Concat", "Join", "Format"})


def is_string_building(expression: Optional[Node]) -> bool:
    if expression is None:
        return False
    if expression.type == "binary_expression":
        return binary_operator(expression) == "+"
    if is_string_literal(expression) or is_interpolated_string(expression):
        return False
    if expression.type == "invocation_expression":
        function = get_field(expression, "function")
        if function is not None and function.type == "member_access_expression":
            return simple_name(function.child_by_field_name("name")) in STRING_BUILDING_METHODS
    return False


def check_structured_params(call_site: CallSite, context: AnalysisContext) -> List[Diagnostic]:
    if not is_logging_call(call_site):
        return []
    return [make_diagnostic(MISSING_STRUCTURED_PARAMS_RULE, argument)
            for argument in call_site.arguments
            if is_string_building(argument_expression(argument))]
