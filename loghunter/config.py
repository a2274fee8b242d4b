"""Configuration file support for loghunter.

Loads .loghunter.yml from the project root (or specified path) and provides
rule selection, severity overrides, path exclusions, suppression settings and
extra sensitive-data keywords/patterns.

Config format example:

    exclude_paths:
      - "Migrations/"
      - "**/*.Designer.cs"

    suppression_keyword: "nosec"
    min_severity: "WARNING"

    disabled_rules:
      - "LA0005"

    severity_overrides:
      LA0004: "WARNING"

    implicit_usings: true
    logger_reference: "_logger"

    sensitive_keywords:
      - "tenant_secret"
    sensitive_patterns:
      - "\\bAKIA[0-9A-Z]{16}\\b"
"""

import fnmatch
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import yaml

from loghunter.patterns import DEFAULT_CATALOG, SensitiveCatalog
from loghunter.rules import RuleDescriptor, Severity, UnknownRuleError, get_rule

CONFIG_FILE_NAMES = ('.loghunter.yml', '.loghunter.yaml')
SEVERITY_NAMES = tuple(s.value for s in Severity)


class ConfigError(ValueError):
    """The configuration file is malformed or names unknown rules/severities."""


@dataclass
class LoghunterConfig:
    """Parsed configuration from .loghunter.yml."""
    exclude_paths: List[str] = field(default_factory=list)
    suppression_keyword: str = "nosec"
    min_severity: str = "INFO"
    disabled_rules: Set[str] = field(default_factory=set)
    severity_overrides: Dict[str, str] = field(default_factory=dict)
    implicit_usings: bool = True
    logger_reference: str = "_logger"
    sensitive_keywords: List[str] = field(default_factory=list)
    sensitive_patterns: List[str] = field(default_factory=list)
    source_path: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def should_exclude(self, file_path: str) -> bool:
        """Check if a file path matches any exclusion pattern."""
        normalized = file_path.replace(os.sep, '/')
        for pattern in self.exclude_paths:
            if fnmatch.fnmatch(normalized, pattern):
                return True
            # Directory patterns match any path component
            if pattern.endswith('/') and pattern.rstrip('/') in normalized.split('/'):
                return True
        return False

    def is_rule_enabled(self, rule_id: str) -> bool:
        return rule_id not in self.disabled_rules

    def effective_severity(self, rule: RuleDescriptor) -> Severity:
        override = self.severity_overrides.get(rule.id)
        return Severity(override) if override else rule.severity

    def build_catalog(self) -> SensitiveCatalog:
        if not self.sensitive_keywords and not self.sensitive_patterns:
            return DEFAULT_CATALOG
        return SensitiveCatalog.build(self.sensitive_keywords, self.sensitive_patterns)


def load_config(target_path: str, config_path: str = None) -> LoghunterConfig:
    """Load loghunter configuration.

    Args:
        target_path: The scan target path (used to find .loghunter.yml)
        config_path: Explicit config path (overrides auto-discovery)

    Returns:
        The parsed LoghunterConfig, or the defaults when no file is found.

    Raises:
        ConfigError: explicit config path missing, or the file is malformed.
    """
    if config_path:
        if not os.path.isfile(config_path):
            raise ConfigError(f"config file not found: {config_path}")
        return _parse_config(config_path)

    # Walk up from target_path to find .loghunter.yml
    search_dir = os.path.abspath(target_path)
    if os.path.isfile(search_dir):
        search_dir = os.path.dirname(search_dir)

    while True:
        for name in CONFIG_FILE_NAMES:
            candidate = os.path.join(search_dir, name)
            if os.path.isfile(candidate):
                return _parse_config(candidate)
        parent = os.path.dirname(search_dir)
        if parent == search_dir:
            break  # Reached filesystem root
        search_dir = parent

    return LoghunterConfig()


def _string_list(data: dict, key: str) -> List[str]:
    value = data.get(key, [])
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list")
    return [str(item) for item in value]


def _severity_name(value, where: str) -> str:
    name = str(value).upper()
    if name not in SEVERITY_NAMES:
        raise ConfigError(f"{where}: unknown severity '{value}' "
                          f"(expected one of {', '.join(SEVERITY_NAMES)})")
    return name


def _rule_id(value, where: str) -> str:
    try:
        return get_rule(str(value)).id
    except UnknownRuleError:
        raise ConfigError(f"{where}: unknown rule '{value}'") from None


def parse_config_data(data, source_path: Optional[str] = None) -> LoghunterConfig:
    """Validate a loaded YAML document into a LoghunterConfig."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("top level of the config must be a mapping")

    config = LoghunterConfig(source_path=source_path)

    config.exclude_paths = _string_list(data, 'exclude_paths')
    config.suppression_keyword = str(data.get('suppression_keyword', 'nosec'))
    config.min_severity = _severity_name(data.get('min_severity', 'INFO'), 'min_severity')

    config.disabled_rules = {_rule_id(r, 'disabled_rules')
                             for r in _string_list(data, 'disabled_rules')}

    overrides = data.get('severity_overrides', {}) or {}
    if not isinstance(overrides, dict):
        raise ConfigError("'severity_overrides' must be a mapping")
    for rule, severity in overrides.items():
        rule_id = _rule_id(rule, 'severity_overrides')
        config.severity_overrides[rule_id] = _severity_name(
            severity, f"severity_overrides.{rule_id}")

    implicit = data.get('implicit_usings', True)
    if not isinstance(implicit, bool):
        raise ConfigError("'implicit_usings' must be true or false")
    config.implicit_usings = implicit

    logger_reference = str(data.get('logger_reference', '_logger')).strip()
    if not logger_reference:
        raise ConfigError("'logger_reference' must not be empty")
    config.logger_reference = logger_reference

    config.sensitive_keywords = _string_list(data, 'sensitive_keywords')
    for pattern in _string_list(data, 'sensitive_patterns'):
        try:
            re.compile(pattern)
        except re.error as e:
            # An unusable pattern is dropped, the rest of the catalog still applies
            config.warnings.append(f"sensitive_patterns: skipping invalid regex {pattern!r}: {e}")
            continue
        config.sensitive_patterns.append(pattern)

    return config


def _parse_config(config_path: str) -> LoghunterConfig:
    """Parse a .loghunter.yml file into a LoghunterConfig."""
    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"{config_path}: {e}") from None
    return parse_config_data(data, source_path=config_path)
