import pytest

from loghunter.config import ConfigError, LoghunterConfig, load_config, parse_config_data
from loghunter.patterns import DEFAULT_CATALOG, detect_sensitive_pattern
from loghunter.rules import RULES, Severity


def write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_when_no_file(tmp_path):
    config = load_config(str(tmp_path))
    assert config == LoghunterConfig()
    assert config.implicit_usings is True
    assert config.logger_reference == "_logger"
    assert config.build_catalog() is DEFAULT_CATALOG


def test_discovered_by_walking_up(tmp_path):
    write(tmp_path / ".loghunter.yml", "min_severity: ERROR\n")
    nested = tmp_path / "src" / "App"
    nested.mkdir(parents=True)

    config = load_config(str(nested))

    assert config.min_severity == "ERROR"
    assert config.source_path == str(tmp_path / ".loghunter.yml")


def test_yaml_extension(tmp_path):
    write(tmp_path / ".loghunter.yaml", "suppression_keyword: skipcheck\n")
    assert load_config(str(tmp_path)).suppression_keyword == "skipcheck"


def test_full_document(tmp_path):
    path = write(tmp_path / "custom.yml", '''
exclude_paths:
  - "Migrations/"
  - "*.Designer.cs"
disabled_rules: ["LA0005", "incorrect-log-level"]
severity_overrides:
  LA0003: warning
implicit_usings: false
logger_reference: "Log"
sensitive_keywords: ["tenant"]
sensitive_patterns: ['\\bTKT-\\d{4}\\b']
''')

    config = load_config(str(tmp_path), str(path))

    assert config.disabled_rules == {"LA0005", "LA0004"}
    assert config.is_rule_enabled("LA0001")
    assert not config.is_rule_enabled("LA0004")
    assert config.effective_severity(RULES["LA0003"]) is Severity.WARNING
    assert config.effective_severity(RULES["LA0002"]) is Severity.ERROR
    assert config.implicit_usings is False
    assert config.logger_reference == "Log"
    catalog = config.build_catalog()
    assert detect_sensitive_pattern("tenant loaded", catalog) == "Contains sensitive keyword: 'tenant'"
    assert detect_sensitive_pattern("TKT-1234", catalog).startswith("Matches sensitive pattern:")


@pytest.mark.parametrize("path, excluded", [
    ("src/Migrations/Init.cs", True),
    ("src/Forms/Main.Designer.cs", True),
    ("src/Forms/Main.cs", False),
])
def test_should_exclude(path, excluded):
    config = LoghunterConfig(exclude_paths=["Migrations/", "*.Designer.cs"])
    assert config.should_exclude(path) is excluded


def test_missing_explicit_config(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path), str(tmp_path / "nope.yml"))


def test_malformed_yaml(tmp_path):
    path = write(tmp_path / ".loghunter.yml", "exclude_paths: [unclosed\n")
    with pytest.raises(ConfigError):
        load_config(str(tmp_path))


@pytest.mark.parametrize("data", [
    ["not", "a", "mapping"],
    {"min_severity": "CRITICAL"},
    {"disabled_rules": ["LA0099"]},
    {"disabled_rules": "LA0001"},
    {"severity_overrides": {"LA0001": "LOUD"}},
    {"implicit_usings": "yes"},
    {"logger_reference": "  "},
])
def test_invalid_documents(data):
    with pytest.raises(ConfigError):
        parse_config_data(data)


def test_empty_document_is_defaults():
    assert parse_config_data(None) == LoghunterConfig()


def test_invalid_sensitive_pattern_is_skipped():
    config = parse_config_data({"sensitive_patterns": ["(unclosed", r"\bTKT-\d{4}\b"]})

    assert config.sensitive_patterns == [r"\bTKT-\d{4}\b"]
    assert len(config.warnings) == 1
    assert "(unclosed" in config.warnings[0]
    catalog = config.build_catalog()
    assert detect_sensitive_pattern("ticket TKT-1234 opened", catalog) is not None
    assert detect_sensitive_pattern("user@example.com", catalog) is not None
