import textwrap

import pytest

from loghunter.analyzer import analyze_source


class Analysis:
    """Diagnostics of one C# snippet, with helpers to look at what they cover."""

    def __init__(self, source, **kwargs):
        self.source = textwrap.dedent(source)
        self.diagnostics = analyze_source(self.source, **kwargs)

    def of(self, rule_id):
        return [d for d in self.diagnostics if d.rule_id == rule_id]

    def span(self, diagnostic):
        data = self.source.encode('utf-8')
        return data[diagnostic.location.start_byte:diagnostic.location.end_byte].decode('utf-8')

    def spans(self, rule_id):
        return [self.span(d) for d in self.of(rule_id)]


@pytest.fixture
def analyze():
    return Analysis
