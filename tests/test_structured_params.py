def wrap(statement):
    return f'''
        class Service
        {{
            void Run(int userId, string[] names)
            {{
                {statement}
            }}
        }}
    '''


def test_concatenation_reported(analyze):
    result = analyze(wrap('_logger.LogInformation("User " + userId + " logged in");'))

    found = result.of("LA0005")
    assert len(found) == 1
    assert found[0].rule.severity.value == "WARNING"
    assert found[0].message == "Consider using structured parameters instead of string concatenation"
    assert result.span(found[0]) == '"User " + userId + " logged in"'


def test_string_format_reported(analyze):
    result = analyze(wrap('_logger.LogInformation(string.Format("User {0}", userId));'))
    assert result.spans("LA0005") == ['string.Format("User {0}", userId)']


def test_concat_and_join_reported(analyze):
    result = analyze(wrap(
        '_logger.LogDebug(String.Concat("a", userId), string.Join(", ", names));'))
    assert len(result.of("LA0005")) == 2


def test_message_template_not_reported(analyze):
    result = analyze(wrap('_logger.LogInformation("User {UserId} logged in", userId);'))
    assert result.of("LA0005") == []


def test_interpolated_string_not_reported(analyze):
    result = analyze(wrap('_logger.LogInformation($"User {userId} logged in");'))
    assert result.of("LA0005") == []


def test_arithmetic_on_non_strings_still_binary_plus(analyze):
    # Any `+` in an argument is string building as far as the rule is concerned
    result = analyze(wrap('_logger.LogInformation("Total {Total}", userId + 1);'))
    assert len(result.of("LA0005")) == 1


def test_other_operators_not_reported(analyze):
    result = analyze(wrap('_logger.LogInformation("Flag {Flag}", userId > 1);'))
    assert result.of("LA0005") == []


def test_non_logging_call_not_reported(analyze):
    result = analyze(wrap('builder.Append("User " + userId);'))
    assert result.of("LA0005") == []
