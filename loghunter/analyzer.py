"""
C# Logging Analyzer (tree-sitter)
==================================
Parses C# source, builds the semantic model, and runs the logging classifiers
over every invocation expression in one walk of the tree.
"""

from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, NamedTuple, Optional, Set, Tuple

from tree_sitter import Node

from loghunter.ast_helpers import get_node_column, get_node_line, iter_nodes, parse_source
from loghunter.detectors import (
    AnalysisContext,
    check_direct_output,
    check_exception_logging,
    check_log_level,
    check_sensitive_info,
    check_structured_params,
)
from loghunter.fixer import DEFAULT_LOGGER_REFERENCE, Replacement, apply_replacements, generate_fix
from loghunter.matcher import CallSite, match_call_site
from loghunter.patterns import DEFAULT_CATALOG, SensitiveCatalog
from loghunter.rules import (
    DIRECT_OUTPUT_RULE,
    EXCEPTION_LOGGING_RULE,
    INCORRECT_LOG_LEVEL_RULE,
    MISSING_STRUCTURED_PARAMS_RULE,
    RULES,
    SENSITIVE_INFO_RULE,
    Diagnostic,
    UnknownRuleError,
    is_suppressed_line,
)
from loghunter.semantic import SemanticModel, TypeIndex

Classifier = Callable[[CallSite, AnalysisContext], List[Diagnostic]]


class Detector(NamedTuple):
    rule_id: str
    node_types: FrozenSet[str]
    check: Classifier


INVOCATION = frozenset({"invocation_expression"})

DETECTORS: Tuple[Detector, ...] = (
    Detector(DIRECT_OUTPUT_RULE.id, INVOCATION, check_direct_output),
    Detector(EXCEPTION_LOGGING_RULE.id, INVOCATION, check_exception_logging),
    Detector(SENSITIVE_INFO_RULE.id, INVOCATION, check_sensitive_info),
    Detector(INCORRECT_LOG_LEVEL_RULE.id, INVOCATION, check_log_level),
    Detector(MISSING_STRUCTURED_PARAMS_RULE.id, INVOCATION, check_structured_params),
)


@dataclass
class AnalysisFailure:
    """A classifier raised on one node; the rest of the file was still analyzed."""
    rule_id: str
    line: int
    column: int
    error: str


@dataclass
class AnalysisResult:
    diagnostics: List[Diagnostic] = field(default_factory=list)
    failures: List[AnalysisFailure] = field(default_factory=list)
    # (start_byte, end_byte) of a reported invocation -> its call site
    call_sites: dict = field(default_factory=dict)


def enabled_detectors(disabled_rules: Optional[Set[str]] = None) -> Tuple[Detector, ...]:
    if not disabled_rules:
        return DETECTORS
    unknown = set(disabled_rules) - set(RULES)
    if unknown:
        raise UnknownRuleError(", ".join(sorted(unknown)))
    return tuple(d for d in DETECTORS if d.rule_id not in disabled_rules)


def analyze_tree(root: Node, context: AnalysisContext,
                 detectors: Tuple[Detector, ...] = DETECTORS) -> AnalysisResult:
    result = AnalysisResult()
    node_types = set()
    for detector in detectors:
        node_types |= detector.node_types

    for node in iter_nodes(root, node_types):
        call_site = match_call_site(node)
        if call_site is None:
            continue
        for detector in detectors:
            if node.type not in detector.node_types:
                continue
            try:
                found = detector.check(call_site, context)
            except UnknownRuleError:
                raise
            except Exception as exc:
                result.failures.append(AnalysisFailure(
                    rule_id=detector.rule_id,
                    line=get_node_line(node),
                    column=get_node_column(node),
                    error=f"{type(exc).__name__}: {exc}",
                ))
                continue
            if found:
                result.diagnostics.extend(found)
                result.call_sites[(node.start_byte, node.end_byte)] = call_site

    return result


class CSharpLogAnalyzer:
    """
    Analyzes one C# source file.

    The TypeIndex is shared by all files of a scan so base types declared in
    other files resolve; it defaults to the declarations of this file alone.
    """

    def __init__(self, source_code: str, file_path: str = "<source>",
                 type_index: Optional[TypeIndex] = None,
                 catalog: SensitiveCatalog = DEFAULT_CATALOG,
                 implicit_usings: bool = True,
                 disabled_rules: Optional[Set[str]] = None,
                 tree=None):
        self.source_code = source_code
        self.source_lines = source_code.split('\n')
        self.file_path = file_path

        self.tree = tree if tree is not None else parse_source(source_code)
        self.root = self.tree.root_node

        self.model = SemanticModel(self.root, type_index, implicit_usings=implicit_usings)
        self.context = AnalysisContext(model=self.model, catalog=catalog)
        self.detectors = enabled_detectors(disabled_rules)
        self.result: Optional[AnalysisResult] = None

    def analyze(self) -> List[Diagnostic]:
        self.result = analyze_tree(self.root, self.context, self.detectors)
        return self.result.diagnostics

    @property
    def failures(self) -> List[AnalysisFailure]:
        return self.result.failures if self.result else []

    def get_line_content(self, line_num: int) -> str:
        """Get source line content (1-based)."""
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1].strip()
        return ""

    def fixes(self, logger_reference: str = DEFAULT_LOGGER_REFERENCE,
              suppression_keyword: Optional[str] = None) -> List[Replacement]:
        """Replacements for every fixable diagnostic of the last analyze() run.

        With a suppression_keyword, diagnostics on suppressed lines are left alone.
        """
        if self.result is None:
            self.analyze()
        replacements = []
        seen = set()
        for diagnostic in self.result.diagnostics:
            if not diagnostic.rule.fixable:
                continue
            start = diagnostic.location.start_byte
            if start in seen:
                continue
            if suppression_keyword is not None and is_suppressed_line(
                    self.source_lines[diagnostic.location.start_line - 1],
                    diagnostic.rule_id, suppression_keyword):
                continue
            call_site = self.result.call_sites.get((start, diagnostic.location.end_byte))
            if call_site is not None:
                replacements.append(generate_fix(call_site, logger_reference))
                seen.add(start)
        return replacements


def analyze_source(source_code: str, **kwargs) -> List[Diagnostic]:
    """Convenience: diagnostics for a C# source string."""
    return CSharpLogAnalyzer(source_code, **kwargs).analyze()


def fix_source(source_code: str, logger_reference: str = DEFAULT_LOGGER_REFERENCE,
               suppression_keyword: Optional[str] = None, **kwargs) -> Tuple[str, int]:
    """Rewrite every Console output call. Returns (new source, call sites rewritten).

    A Console call nested in the arguments of another one is rewritten on a
    later pass; the loop ends when a pass finds nothing left to fix.
    """
    disabled = set(kwargs.pop("disabled_rules", None) or ()) | _ALL_BUT_FIXABLE
    total = 0
    while True:
        analyzer = CSharpLogAnalyzer(source_code, disabled_rules=disabled, **kwargs)
        analyzer.analyze()
        replacements = analyzer.fixes(logger_reference, suppression_keyword)
        if not replacements:
            return source_code, total
        source_code, applied = apply_replacements(source_code, replacements)
        total += applied


_ALL_BUT_FIXABLE = frozenset(rule_id for rule_id, rule in RULES.items() if not rule.fixable)
