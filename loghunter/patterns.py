"""Sensitive-data pattern database: keywords and regular expressions.

The default catalog is built once at import time. A configured catalog (extra
keywords/patterns from .loghunter.yml) is built once at startup. Neither is
mutated afterwards, so concurrent detector calls share them without locking.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

SENSITIVE_KEYWORDS: Tuple[str, ...] = (
    "password",
    "passwd",
    "pwd",
    "secret",
    "token",
    "key",
    "api_key",
    "apikey",
    "auth",
    "authorization",
    "credential",
    "private",
    "sensitive",
    "ssn",
    "social",
    "credit",
    "card",
    "cvv",
    "pin",
    "ssn",
    "social_security",
    "socialsecurity",
    "credit_card",
    "creditcard",
    "bank_account",
    "bankaccount",
    "account_number",
    "accountnumber",
    "routing",
    "swift",
    "iban",
    "cvv2",
    "cvc",
    "cid",
    "cvv_code",
    "cvvcode",
)

SENSITIVE_PATTERNS: Tuple[str, ...] = (
    r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b',     # email
    r'\b\d{3}-\d{2}-\d{4}\b',                                   # SSN
    r'\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b',               # credit card
    r'\b\d{3}-\d{3}-\d{4}\b',                                   # phone number
    r'\b[A-Za-z0-9+/]{20,}={0,2}\b',                            # base64
    r'\b[A-Fa-f0-9]{32}\b',                                     # MD5
    r'\b[A-Fa-f0-9]{40}\b',                                     # SHA1
    r'\b[A-Fa-f0-9]{64}\b',                                     # SHA256
    r'\b[A-Fa-f0-9]{128}\b',                                    # SHA512
)


@dataclass(frozen=True)
class SensitiveCatalog:
    keywords: Tuple[str, ...]
    patterns: Tuple[str, ...]

    @classmethod
    def build(cls, extra_keywords: Iterable[str] = (),
              extra_patterns: Iterable[str] = ()) -> "SensitiveCatalog":
        """Defaults first, configured extras appended in the order given."""
        keywords = SENSITIVE_KEYWORDS + tuple(k.lower() for k in extra_keywords if k)
        patterns = SENSITIVE_PATTERNS + tuple(p for p in extra_patterns if p)
        return cls(keywords=keywords, patterns=patterns)


DEFAULT_CATALOG = SensitiveCatalog(keywords=SENSITIVE_KEYWORDS, patterns=SENSITIVE_PATTERNS)


def detect_sensitive_pattern(text: str,
                             catalog: SensitiveCatalog = DEFAULT_CATALOG) -> Optional[str]:
    """Describe the first sensitive keyword or pattern found in text, or None.

    Keywords are substring-matched against the lower-cased text in catalog order.
    Only when no keyword hits are the regexes tried, against the unmodified text.
    """
    lower_text = text.lower()
    for keyword in catalog.keywords:
        if keyword in lower_text:
            return f"Contains sensitive keyword: '{keyword}'"

    for pattern in catalog.patterns:
        try:
            matched = re.search(pattern, text, re.IGNORECASE)
        except (re.error, RecursionError):
            # Malformed pattern: skip it, keep scanning with the rest
            continue
        if matched:
            return f"Matches sensitive pattern: {pattern}"

    return None
