"""Diagnostic registry: the five logging rules and the diagnostics they produce.

Rule ids are stable. External documentation and inline suppressions
(`// loghunter:ignore LA0003`) refer to them, so an id is never reused or renumbered.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Tuple

from loghunter.ast_helpers import (
    get_node_column,
    get_node_end_column,
    get_node_end_line,
    get_node_line,
)

CATEGORY = "Logging"
TELEMETRY_TAG = "Telemetry"


class Severity(Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


SEVERITY_ORDER = {
    Severity.ERROR: 2,
    Severity.WARNING: 1,
    Severity.INFO: 0,
}


class UnknownRuleError(KeyError):
    """A diagnostic referenced a rule id missing from the registry. Always a defect."""


@dataclass(frozen=True)
class RuleDescriptor:
    id: str
    name: str
    title: str
    category: str
    severity: Severity
    message_template: str
    description: str
    help_reference: str
    tags: FrozenSet[str] = field(default_factory=frozenset)
    fixable: bool = False

    def format_message(self, args: Tuple[str, ...]) -> str:
        return self.message_template.format(*args)


def _rule(rule_id: str, name: str, title: str, severity: Severity, message_template: str,
          description: str, fixable: bool = False) -> RuleDescriptor:
    return RuleDescriptor(
        id=rule_id,
        name=name,
        title=title,
        category=CATEGORY,
        severity=severity,
        message_template=message_template,
        description=description,
        help_reference=f"docs/{rule_id}.md",
        tags=frozenset({TELEMETRY_TAG}),
        fixable=fixable,
    )


DIRECT_OUTPUT_RULE = _rule(
    "LA0001", "direct-output-usage",
    "Use structured logging instead of console output",
    Severity.ERROR,
    "Use structured logging instead of Console.{0} for better observability",
    "Console output should be replaced by structured logging to improve "
    "observability and debugging.",
    fixable=True,
)

EXCEPTION_LOGGING_RULE = _rule(
    "LA0002", "exception-without-detail",
    "Log exception details properly",
    Severity.ERROR,
    "Log the exception details with ex.ToString() or ex.Message for better debugging",
    "When logging exceptions, include their details through ex.ToString() or "
    "ex.Message.",
)

SENSITIVE_INFO_RULE = _rule(
    "LA0003", "sensitive-info-logged",
    "Do not log sensitive information",
    Severity.ERROR,
    "Possible sensitive information detected in log message: '{0}'",
    "Avoid logging sensitive information such as passwords, tokens, API keys or "
    "personal data.",
)

INCORRECT_LOG_LEVEL_RULE = _rule(
    "LA0004", "incorrect-log-level",
    "Use the appropriate log level",
    Severity.ERROR,
    "Consider using {0} instead of {1} for this kind of message",
    "Pick the log level that matches the content and context of the message.",
)

MISSING_STRUCTURED_PARAMS_RULE = _rule(
    "LA0005", "missing-structured-params",
    "Use structured logging parameters",
    Severity.WARNING,
    "Consider using structured parameters instead of string concatenation",
    "Message templates with placeholders keep log events queryable and avoid "
    "formatting cost when the level is disabled.",
)

RULES: Mapping[str, RuleDescriptor] = MappingProxyType({
    rule.id: rule for rule in (
        DIRECT_OUTPUT_RULE,
        EXCEPTION_LOGGING_RULE,
        SENSITIVE_INFO_RULE,
        INCORRECT_LOG_LEVEL_RULE,
        MISSING_STRUCTURED_PARAMS_RULE,
    )
})

RULES_BY_NAME: Mapping[str, RuleDescriptor] = MappingProxyType(
    {rule.name: rule for rule in RULES.values()}
)


def get_rule(rule_id: str) -> RuleDescriptor:
    """Look up a rule by id (``LA0003``) or by name (``sensitive-info-logged``)."""
    rule = RULES.get(rule_id) or RULES_BY_NAME.get(rule_id)
    if rule is None:
        raise UnknownRuleError(rule_id)
    return rule


# ============================================================================
# Diagnostics
# ============================================================================

@dataclass(frozen=True)
class Location:
    """Source span. Lines and columns are 1-based, bytes index the UTF-8 source."""
    start_line: int
    start_column: int
    end_line: int
    end_column: int
    start_byte: int
    end_byte: int

    @classmethod
    def of(cls, node) -> "Location":
        return cls(
            start_line=get_node_line(node),
            start_column=get_node_column(node),
            end_line=get_node_end_line(node),
            end_column=get_node_end_column(node),
            start_byte=node.start_byte,
            end_byte=node.end_byte,
        )


@dataclass(frozen=True)
class Diagnostic:
    rule_id: str
    location: Location
    message_args: Tuple[str, ...] = ()

    def __post_init__(self):
        # Fails loudly: a diagnostic for an unregistered rule is an engine bug
        if self.rule_id not in RULES:
            raise UnknownRuleError(self.rule_id)

    @property
    def rule(self) -> RuleDescriptor:
        return RULES[self.rule_id]

    @property
    def message(self) -> str:
        return self.rule.format_message(self.message_args)


def make_diagnostic(rule: RuleDescriptor, node, *message_args: str) -> Diagnostic:
    return Diagnostic(rule.id, Location.of(node), tuple(message_args))


# ============================================================================
# Inline suppression
# ============================================================================

IGNORE_MARKER = re.compile(r'loghunter:ignore\b(?P<rules>(?:[\s,]+LA\d{4})*)')


def is_suppressed_line(line: str, rule_id: str, suppression_keyword: str = "nosec") -> bool:
    """`// nosec`, `// loghunter:ignore` or `// loghunter:ignore LA0003, LA0005` on the line."""
    if suppression_keyword and re.search(
            r'(?://|/\*)\s*' + re.escape(suppression_keyword) + r'\b', line):
        return True
    match = IGNORE_MARKER.search(line)
    if not match:
        return False
    listed = re.findall(r'LA\d{4}', match.group('rules'))
    return not listed or rule_id in listed
