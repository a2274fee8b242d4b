import pytest

from loghunter.detectors import LogLevel, declared_level, infer_level


def wrap(statement):
    return f'''
        class Service
        {{
            void Run()
            {{
                {statement}
            }}
        }}
    '''


def test_error_text_at_information_level(analyze):
    result = analyze(wrap('_logger.LogInformation("Payment failed");'))

    found = result.of("LA0004")
    assert len(found) == 1
    assert found[0].message == "Consider using Error instead of Information for this kind of message"
    # Reported on the method name
    assert result.span(found[0]) == "LogInformation"


def test_matching_level_not_reported(analyze):
    result = analyze(wrap('_logger.LogError("Payment failed");'))
    assert result.of("LA0004") == []


def test_plain_message_at_warning_level(analyze):
    result = analyze(wrap('_logger.LogWarning("Order shipped");'))
    assert [d.message for d in result.of("LA0004")] == [
        "Consider using Information instead of Warning for this kind of message"]


def test_empty_message_skipped(analyze):
    result = analyze(wrap('_logger.LogError("");'))
    assert result.of("LA0004") == []


def test_non_literal_first_argument_skipped(analyze):
    result = analyze(wrap('_logger.LogInformation(message);'))
    assert result.of("LA0004") == []


def test_unknown_level_method_skipped(analyze):
    result = analyze(wrap('_logger.LogCritical("Order shipped");'))
    assert result.of("LA0004") == []


def test_alias_method(analyze):
    result = analyze(wrap('Log.Info("Retry scheduled");'))
    assert [d.message for d in result.of("LA0004")] == [
        "Consider using Warning instead of Information for this kind of message"]


def test_only_first_argument_classified(analyze):
    result = analyze(wrap('_logger.LogInformation("Order {Id} shipped", "failed");'))
    assert result.of("LA0004") == []


@pytest.mark.parametrize("message, level", [
    ("Unhandled exception in worker", LogLevel.ERROR),
    ("FATAL: disk full", LogLevel.ERROR),
    ("Request timeout, will retry", LogLevel.WARNING),
    ("API is deprecated", LogLevel.WARNING),
    ("Entering ProcessOrder", LogLevel.DEBUG),
    ("Verbose dump follows", LogLevel.TRACE),
    ("User signed in", LogLevel.INFORMATION),
    # Error bucket is checked before Warning
    ("Retry failed", LogLevel.ERROR),
])
def test_infer_level(message, level):
    assert infer_level(message) is level


@pytest.mark.parametrize("name, level", [
    ("LogError", LogLevel.ERROR),
    ("logerror", LogLevel.ERROR),
    ("Warning", LogLevel.WARNING),
    ("LogInfo", LogLevel.INFORMATION),
    ("Debug", LogLevel.DEBUG),
    ("LogTrace", LogLevel.TRACE),
    ("LogCritical", LogLevel.UNKNOWN),
    ("Log", LogLevel.UNKNOWN),
])
def test_declared_level(name, level):
    assert declared_level(name) is level
