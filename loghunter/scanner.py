"""File and directory scanning: reads .cs files, builds the project-wide type
index, runs the analyzer per file and turns diagnostics into findings."""

import codecs
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn

from loghunter.analyzer import AnalysisFailure, CSharpLogAnalyzer, fix_source
from loghunter.ast_helpers import parse_source
from loghunter.config import LoghunterConfig
from loghunter.rules import SEVERITY_ORDER, Diagnostic, Severity, is_suppressed_line
from loghunter.semantic import TypeIndex

console = Console()

SUPPORTED_EXTENSIONS = {'.cs'}

# Build output and tool directories never hold hand-written sources
DEFAULT_EXCLUDES = {'bin', 'obj', '.git', '.vs', '.idea', 'node_modules', 'packages'}


@dataclass
class Finding:
    """A diagnostic placed in a file, with its effective severity."""
    file_path: str
    line_number: int
    col_offset: int
    end_line: int
    end_column: int
    line_content: str
    rule_id: str
    rule_name: str
    title: str
    message: str
    severity: Severity
    category: str
    fixable: bool = False
    help_reference: str = ""

    def to_dict(self) -> dict:
        return {
            "file": self.file_path,
            "line": self.line_number,
            "column": self.col_offset,
            "end_line": self.end_line,
            "end_column": self.end_column,
            "code": self.line_content.strip(),
            "rule": self.rule_id,
            "name": self.rule_name,
            "title": self.title,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category,
            "fixable": self.fixable,
            "help": self.help_reference,
        }


def make_finding(diagnostic: Diagnostic, file_path: str, line_content: str,
                 config: Optional[LoghunterConfig] = None) -> Finding:
    rule = diagnostic.rule
    loc = diagnostic.location
    return Finding(
        file_path=file_path,
        line_number=loc.start_line,
        col_offset=loc.start_column,
        end_line=loc.end_line,
        end_column=loc.end_column,
        line_content=line_content,
        rule_id=rule.id,
        rule_name=rule.name,
        title=rule.title,
        message=diagnostic.message,
        severity=config.effective_severity(rule) if config else rule.severity,
        category=rule.category,
        fixable=rule.fixable,
        help_reference=rule.help_reference,
    )


def is_suppressed(finding: Finding, suppression_keyword: str = "nosec") -> bool:
    return is_suppressed_line(finding.line_content, finding.rule_id, suppression_keyword)


def filter_findings(findings: List[Finding], min_severity: Severity = Severity.INFO,
                    suppression_keyword: str = "nosec") -> List[Finding]:
    """Drop suppressed findings and those below min_severity."""
    threshold = SEVERITY_ORDER[min_severity]
    return [f for f in findings
            if SEVERITY_ORDER[f.severity] >= threshold
            and not is_suppressed(f, suppression_keyword)]


@dataclass
class SourceFile:
    path: str
    source_code: str
    tree: object = None
    # Written back byte for byte: BOM kept, line endings untouched
    bom: bool = False
    lossless: bool = True


@dataclass
class FileResult:
    findings: List[Finding] = field(default_factory=list)
    failures: List[AnalysisFailure] = field(default_factory=list)


class LogScanner:
    """Scans a C# file or project tree for logging anti-patterns."""

    def __init__(self, verbose: bool = False, config: LoghunterConfig = None, jobs: int = 1):
        self.verbose = verbose
        self.config = config or LoghunterConfig()
        self.jobs = max(1, jobs)
        self.catalog = self.config.build_catalog()
        self.type_index: Optional[TypeIndex] = None
        self.all_findings: List[Finding] = []
        self.failures: List[Tuple[str, AnalysisFailure]] = []
        self.files_scanned = 0
        self.read_errors = 0
        self.scan_elapsed = 0.0

    def log(self, message: str):
        """Print verbose logging."""
        if self.verbose:
            console.print(f"[dim][*] {message}[/dim]")

    def should_scan_file(self, file_path: Path) -> bool:
        """Check if file should be scanned. file_path is relative to the scan root."""
        if file_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            return False
        if any(part in DEFAULT_EXCLUDES for part in file_path.parts[:-1]):
            return False
        if self.config.should_exclude(str(file_path)):
            self.log(f"Excluded by config: {file_path}")
            return False
        return True

    def collect_files(self, target: Path) -> List[Path]:
        """All scannable files under target (or target itself), in a stable order."""
        if target.is_file():
            # An explicitly named file is scanned even when it sits in bin/ or obj/
            if target.suffix.lower() in SUPPORTED_EXTENSIONS and \
                    not self.config.should_exclude(str(target)):
                return [target]
            return []
        scannable = []
        for root, dirs, files in os.walk(target):
            dirs[:] = sorted(d for d in dirs if d not in DEFAULT_EXCLUDES)
            for file in sorted(files):
                file_path = Path(root) / file
                if self.should_scan_file(file_path.relative_to(target)):
                    scannable.append(file_path)
        return scannable

    def read_file(self, file_path: Path) -> Optional[SourceFile]:
        try:
            with open(file_path, 'rb') as f:
                raw = f.read()
        except (IOError, OSError) as e:
            print(f"Error reading {file_path}: {e}", file=sys.stderr)
            self.read_errors += 1
            return None
        bom = raw.startswith(codecs.BOM_UTF8)
        if bom:
            raw = raw[len(codecs.BOM_UTF8):]
        try:
            source_code = raw.decode('utf-8')
            lossless = True
        except UnicodeDecodeError:
            source_code = raw.decode('utf-8', errors='replace')
            lossless = False
        return SourceFile(path=str(file_path), source_code=source_code, bom=bom, lossless=lossless)

    def load_sources(self, files: List[Path]) -> List[SourceFile]:
        """Read and parse every file, then index the type declarations of all of them."""
        sources = []
        for file_path in files:
            source = self.read_file(file_path)
            if source is None:
                continue
            source.tree = parse_source(source.source_code)
            sources.append(source)
        self.type_index = TypeIndex.from_trees(s.tree.root_node for s in sources)
        self.log(f"Indexed {len(self.type_index)} types from {len(sources)} files")
        return sources

    def analyze_source(self, source: SourceFile) -> FileResult:
        self.log(f"Analyzing {source.path}")
        analyzer = CSharpLogAnalyzer(
            source.source_code,
            file_path=source.path,
            type_index=self.type_index,
            catalog=self.catalog,
            implicit_usings=self.config.implicit_usings,
            disabled_rules=self.config.disabled_rules,
            tree=source.tree,
        )
        diagnostics = analyzer.analyze()
        findings = [make_finding(d, source.path,
                                 analyzer.get_line_content(d.location.start_line), self.config)
                    for d in diagnostics]
        return FileResult(findings=findings, failures=analyzer.failures)

    def _record(self, source: SourceFile, result: FileResult) -> List[Finding]:
        self.files_scanned += 1
        for failure in result.failures:
            self.failures.append((source.path, failure))
            self.log(f"{source.path}:{failure.line}:{failure.column} "
                     f"{failure.rule_id} analysis failed: {failure.error}")
        return result.findings

    def scan_sources(self, sources: List[SourceFile]) -> List[Finding]:
        findings: List[Finding] = []
        with Progress(
            SpinnerColumn("moon"),
            TextColumn("[bold cyan]{task.description}"),
            BarColumn(bar_width=30, style="cyan", complete_style="green"),
            MofNCompleteColumn(),
            TextColumn("[dim]{task.fields[current_file]}[/dim]"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Scanning", total=len(sources), current_file="")
            if self.jobs > 1:
                with ThreadPoolExecutor(max_workers=self.jobs) as pool:
                    # map() yields in submission order, so output stays deterministic
                    for source, result in zip(sources, pool.map(self.analyze_source, sources)):
                        progress.update(task, current_file=Path(source.path).name)
                        findings.extend(self._record(source, result))
                        progress.advance(task)
            else:
                for source in sources:
                    progress.update(task, current_file=Path(source.path).name)
                    findings.extend(self._record(source, self.analyze_source(source)))
                    progress.advance(task)
        return findings

    def scan(self, target: str) -> List[Finding]:
        """Scan a file or directory."""
        target_path = Path(target)
        if not target_path.exists():
            raise FileNotFoundError(target)

        start = time.time()
        sources = self.load_sources(self.collect_files(target_path))
        findings = self.scan_sources(sources)
        self.scan_elapsed = time.time() - start

        self.all_findings = filter_findings(
            findings,
            min_severity=Severity(self.config.min_severity),
            suppression_keyword=self.config.suppression_keyword,
        )
        return self.all_findings

    def fix(self, target: str) -> Dict[str, int]:
        """Rewrite Console output calls in place. Returns {file: call sites rewritten}."""
        target_path = Path(target)
        if not target_path.exists():
            raise FileNotFoundError(target)
        fixed: Dict[str, int] = {}
        if not self.config.is_rule_enabled("LA0001"):
            return fixed

        for source in self.load_sources(self.collect_files(target_path)):
            if not source.lossless:
                self.log(f"Skipping fix for {source.path}: not valid UTF-8")
                continue
            new_source, count = fix_source(
                source.source_code,
                logger_reference=self.config.logger_reference,
                suppression_keyword=self.config.suppression_keyword,
                type_index=self.type_index,
                catalog=self.catalog,
                implicit_usings=self.config.implicit_usings,
            )
            if not count:
                continue
            encoding = 'utf-8-sig' if source.bom else 'utf-8'
            with open(source.path, 'w', encoding=encoding, newline='') as f:
                f.write(new_source)
            fixed[source.path] = count
            self.log(f"Rewrote {count} call site(s) in {source.path}")
        return fixed
