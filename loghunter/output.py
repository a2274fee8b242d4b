"""Report rendering: rich dashboard, plain-text report and JSON."""

import json
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from rich import box
from rich.align import Align
from rich.columns import Columns
from rich.console import Group
from rich.panel import Panel
from rich.rule import Rule
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from loghunter import __version__
from loghunter.fixer import FIX_TITLE
from loghunter.scanner import Finding, LogScanner, console

SEVERITY_NAMES = ['ERROR', 'WARNING', 'INFO']

SEVERITY_STYLES = {'ERROR': 'bold red', 'WARNING': 'yellow', 'INFO': 'dim'}
BORDER_STYLES = {'ERROR': 'red', 'WARNING': 'yellow', 'INFO': 'dim white'}
BADGE_STYLES = {'ERROR': 'bold white on red', 'WARNING': 'bold yellow', 'INFO': 'dim'}


def get_summary(findings: List[Finding]) -> dict:
    """Get findings summary."""
    summary = {
        'by_severity': defaultdict(int),
        'by_rule': defaultdict(int),
    }
    for f in findings:
        summary['by_severity'][f.severity.value] += 1
        summary['by_rule'][f.rule_id] += 1
    return {key: dict(value) for key, value in summary.items()}


def format_json_report(scanner: LogScanner) -> str:
    report = {
        'scan_date': datetime.now().isoformat(),
        'files_scanned': scanner.files_scanned,
        'read_errors': scanner.read_errors,
        'analysis_failures': len(scanner.failures),
        'total_findings': len(scanner.all_findings),
        'findings': [f.to_dict() for f in scanner.all_findings],
        'summary': get_summary(scanner.all_findings),
    }
    return json.dumps(report, indent=2)


def format_text_report(scanner: LogScanner) -> str:
    """Format findings as text report."""
    findings = scanner.all_findings
    lines = []

    lines.append("=" * 80)
    lines.append("C# LOGGING ANALYSIS REPORT")
    lines.append("=" * 80)
    lines.append(f"Scan Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append(f"Files Scanned: {scanner.files_scanned}")
    lines.append(f"Read Errors: {scanner.read_errors}")
    lines.append(f"Total Findings: {len(findings)}")
    lines.append("")

    summary = get_summary(findings)
    lines.append("Summary by Severity:")
    for sev in SEVERITY_NAMES:
        count = summary['by_severity'].get(sev, 0)
        if count > 0:
            lines.append(f"  {sev:10}: {count}")
    lines.append("")

    lines.append("Summary by Rule:")
    for rule_id, count in sorted(summary['by_rule'].items()):
        lines.append(f"  {rule_id:10}: {count}")
    lines.append("")

    lines.append("=" * 80)
    lines.append("")

    findings_by_file = defaultdict(list)
    for f in findings:
        findings_by_file[f.file_path].append(f)

    for file_path, file_findings in sorted(findings_by_file.items()):
        lines.append(f"FILE: {file_path}")
        lines.append("-" * 80)
        for f in sorted(file_findings, key=lambda x: (x.line_number, x.col_offset)):
            lines.append(f"[{f.severity.value}] {f.rule_id} {f.title}")
            lines.append(f"  Line {f.line_number}, Col {f.col_offset}: {f.line_content.strip()[:100]}")
            lines.append(f"  -> {f.message}")
            if f.fixable:
                lines.append(f"  Fix: {FIX_TITLE} (--fix)")
            lines.append("")
        lines.append("")

    if not findings:
        lines.append("No logging issues found.")
        lines.append("")

    return '\n'.join(lines)


def write_report(output: str, output_file: Optional[str] = None):
    if output_file:
        with open(output_file, 'w', encoding='utf-8') as f:
            f.write(output)
        console.print(f"\n[bold green]Report saved to {output_file}[/bold green]")
    else:
        print(output)


def print_banner():
    """Print the loghunter banner using Rich."""
    banner_lines = [
        "   __                __                __",
        "  / /___  ___ _ ___ / /  __ __ ___  / /_ ___  ____",
        " / // _ \\/ _ `// _ \\/ _ \\/ // // _ \\/ __// -_)/ __/",
        "/_/ \\___/\\_, / \\___/_//_/\\_,_//_//_/\\__/ \\__//_/",
        "        /___/",
    ]
    title_content = Text()
    title_content.append('\n'.join(banner_lines), style="bold cyan")
    title_content.append("\n\n")
    title_content.append(f"C# Logging Analyzer v{__version__}\n", style="bold white")
    title_content.append("Console Output | Exceptions | Sensitive Data | Levels | Templates",
                         style="dim")

    console.print()
    console.print(Panel(
        Align.center(title_content),
        border_style="cyan",
        box=box.DOUBLE,
        padding=(1, 2),
    ))
    console.print()


def build_stats_sidebar(scanner: LogScanner, findings: List[Finding]) -> Panel:
    """Build the sidebar panel with scan statistics."""
    stats = Table(show_header=False, box=None, padding=(0, 1), expand=True)
    stats.add_column("key", style="bold cyan", no_wrap=True, ratio=3)
    stats.add_column("value", style="white", ratio=1)

    stats.add_row("Files Scanned", str(scanner.files_scanned))
    stats.add_row("Read Errors", str(scanner.read_errors))
    stats.add_row("Analysis Failures", str(len(scanner.failures)))
    stats.add_row("Total Findings", str(len(findings)))
    stats.add_row("Scan Time", f"{scanner.scan_elapsed:.2f}s")
    stats.add_row("", "")

    summary = get_summary(findings)
    for sev in SEVERITY_NAMES:
        count = summary['by_severity'].get(sev, 0)
        if count > 0:
            stats.add_row(Text(sev, style=SEVERITY_STYLES[sev]), str(count))

    stats.add_row("", "")
    for rule_id, count in sorted(summary['by_rule'].items(), key=lambda x: -x[1]):
        stats.add_row(Text(rule_id, style="cyan"), str(count))

    return Panel(
        stats,
        title="[bold white]Scan Statistics[/bold white]",
        border_style="cyan",
        box=box.ROUNDED,
        padding=(1, 1),
    )


def build_finding_panel(f: Finding, source_code: Optional[str] = None) -> Panel:
    """Build a Rich Panel for a single finding."""
    sev = f.severity.value

    title = Text()
    title.append(f" {sev} ", style=BADGE_STYLES.get(sev, "white"))
    title.append(f" {f.rule_id} {f.title} ", style="bold white")
    if f.fixable:
        title.append(" fixable ", style="dim green")

    location = Text()
    location.append("Location: ", style="bold cyan")
    location.append(f"Line {f.line_number}", style="white")
    location.append(f", Col {f.col_offset}", style="dim")

    rule = Text()
    rule.append("Rule: ", style="bold magenta")
    rule.append(f"{f.rule_name} ({f.help_reference})", style="white")

    content_parts = [Columns([location, rule], padding=(0, 4))]

    message = Text()
    message.append(f"\n{f.message}", style="italic white")
    content_parts.append(message)
    if f.fixable:
        content_parts.append(Text(f"Fix: {FIX_TITLE} (--fix)", style="green"))

    code_line = f.line_content.strip()
    if code_line:
        # Small code window around the finding line
        if source_code:
            src_lines = source_code.split('\n')
            start = max(0, f.line_number - 3)
            end = min(len(src_lines), f.line_number + 2)
            syntax = Syntax(
                '\n'.join(src_lines[start:end]), "csharp", theme="monokai",
                line_numbers=True, start_line=start + 1,
                highlight_lines={f.line_number},
            )
        else:
            syntax = Syntax(
                code_line, "csharp", theme="monokai",
                line_numbers=True, start_line=f.line_number,
            )
        content_parts.append(Text(""))
        content_parts.append(syntax)

    return Panel(
        Group(*content_parts),
        title=title,
        border_style=BORDER_STYLES.get(sev, 'white'),
        box=box.ROUNDED,
        padding=(1, 2),
    )


def _read_source(file_path: str) -> Optional[str]:
    try:
        return Path(file_path).read_text(encoding='utf-8-sig', errors='replace')
    except OSError:
        return None


def print_dashboard(scanner: LogScanner, target: str, min_severity: str):
    findings = scanner.all_findings

    scan_date = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    header_text = Text()
    header_text.append("Target: ", style="bold cyan")
    header_text.append(f"{target}  ", style="white")
    header_text.append("Date: ", style="bold cyan")
    header_text.append(f"{scan_date}  ", style="white")
    header_text.append("Severity: ", style="bold cyan")
    header_text.append(f">= {min_severity}", style="white")

    console.print(Panel(
        Align.center(header_text),
        title="[bold white]Scan Info[/bold white]",
        border_style="blue",
        box=box.ROUNDED,
    ))
    console.print()

    console.print(build_stats_sidebar(scanner, findings))
    console.print()

    if not findings:
        console.print(Panel(
            Align.center(Text("No logging issues found.", style="bold green")),
            border_style="green",
            box=box.ROUNDED,
            padding=(1, 4),
        ))
        return

    console.print(Rule("[bold white]Logging Findings[/bold white]", style="cyan"))
    console.print()

    findings_by_file: Dict[str, List[Finding]] = defaultdict(list)
    for f in findings:
        findings_by_file[f.file_path].append(f)

    for file_path, file_findings in sorted(findings_by_file.items()):
        console.print(Text(f"FILE: {file_path}", style="bold underline cyan"))
        console.print()
        src = _read_source(file_path)
        for f in sorted(file_findings, key=lambda x: (x.line_number, x.col_offset)):
            console.print(build_finding_panel(f, source_code=src))
            console.print()
