"""Rewrite of Console output calls into structured logging calls (fix for LA0001)."""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from loghunter.ast_helpers import node_text
from loghunter.matcher import CallSite

DEFAULT_LOGGER_REFERENCE = "_logger"
FIX_LOG_METHOD = "LogInformation"
FIX_TITLE = "Replace with structured logging"


@dataclass(frozen=True)
class Replacement:
    """Replace source bytes [start_byte, end_byte) with text."""
    start_byte: int
    end_byte: int
    text: str


def generate_fix(call_site: CallSite,
                 logger_reference: str = DEFAULT_LOGGER_REFERENCE) -> Replacement:
    """`Console.WriteLine(args)` -> `_logger.LogInformation(args)`.

    The argument list is copied verbatim, so argument count, order and
    expressions (including comments and line breaks inside the parentheses)
    are unchanged; only the callee is replaced.
    """
    arguments = node_text(call_site.argument_list) if call_site.argument_list else "()"
    return Replacement(
        start_byte=call_site.node.start_byte,
        end_byte=call_site.node.end_byte,
        text=f"{logger_reference}.{FIX_LOG_METHOD}{arguments}",
    )


def apply_replacements(source: str, replacements: Iterable[Replacement]) -> Tuple[str, int]:
    """Apply a batch of replacements. Returns (new source, number applied).

    When replacements overlap the outermost one is kept and the ones inside it
    are dropped; a later pass over the rewritten source picks those up again.
    """
    accepted: List[Replacement] = []
    last_end: Optional[int] = None
    ordered = sorted(replacements, key=lambda r: (r.start_byte, -r.end_byte))
    for replacement in ordered:
        if last_end is not None and replacement.start_byte < last_end:
            continue
        accepted.append(replacement)
        last_end = replacement.end_byte

    data = source.encode('utf-8')
    for replacement in reversed(accepted):
        data = (data[:replacement.start_byte]
                + replacement.text.encode('utf-8')
                + data[replacement.end_byte:])
    return data.decode('utf-8'), len(accepted)
