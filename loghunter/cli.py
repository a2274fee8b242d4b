"""Command line entry point."""

import argparse
import sys
import textwrap

from loghunter.config import ConfigError, load_config
from loghunter.output import (
    format_json_report,
    format_text_report,
    print_banner,
    print_dashboard,
    write_report,
)
from loghunter.rules import Severity
from loghunter.scanner import LogScanner, console


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='loghunter',
        description='loghunter - C# logging anti-pattern analyzer',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              loghunter /path/to/solution
              loghunter Program.cs --verbose
              loghunter /path/to/solution --output json -o report.json
              loghunter /path/to/solution --min-severity ERROR
              loghunter /path/to/solution --fix
        ''')
    )

    parser.add_argument('target', help='File or directory to scan')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose output')
    parser.add_argument('--output', choices=['text', 'json'], default='text',
                        help='Output format (default: text)')
    parser.add_argument('-o', '--output-file', help='Save report to file')
    parser.add_argument('--min-severity', choices=[s.value for s in Severity],
                        help='Minimum severity to report (default: INFO, or the config value)')
    parser.add_argument('--config', help='Path to .loghunter.yml config file')
    parser.add_argument('--fix', action='store_true',
                        help='Rewrite Console.WriteLine/Write calls to structured logging in place')
    parser.add_argument('-j', '--jobs', type=int, default=1,
                        help='Number of files analyzed in parallel (default: 1)')
    parser.add_argument('--no-banner', action='store_true', help='Do not print the banner')
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.target, args.config)
    except ConfigError as e:
        parser.error(str(e))
    for warning in config.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    if args.min_severity:
        config.min_severity = args.min_severity
    if args.jobs < 1:
        parser.error("--jobs must be at least 1")

    if not args.no_banner and args.output != 'json':
        print_banner()

    scanner = LogScanner(verbose=args.verbose, config=config, jobs=args.jobs)
    if config.source_path:
        scanner.log(f"Using config {config.source_path}")

    try:
        if args.fix:
            fixed = scanner.fix(args.target)
            total = sum(fixed.values())
            message = f"Rewrote {total} call site(s) in {len(fixed)} file(s)"
            if args.output == 'json':
                # Keep stdout parseable
                scanner.log(message)
            else:
                console.print(f"[bold green]{message}[/bold green]")
        findings = scanner.scan(args.target)
    except FileNotFoundError:
        console.print(f"[bold red]Error:[/bold red] {args.target} does not exist")
        return 2

    if args.output == 'json':
        write_report(format_json_report(scanner), args.output_file)
    else:
        print_dashboard(scanner, args.target, config.min_severity)
        if args.output_file:
            write_report(format_text_report(scanner), args.output_file)

    # Exit with error code if any ERROR finding remains
    errors = sum(1 for f in findings if f.severity is Severity.ERROR)
    return 1 if errors > 0 else 0


if __name__ == '__main__':
    sys.exit(main())
