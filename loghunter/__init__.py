"""loghunter: static analysis of C# logging anti-patterns."""

__version__ = "1.0.0"
