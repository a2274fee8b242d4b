import textwrap

from loghunter.analyzer import CSharpLogAnalyzer, fix_source
from loghunter.fixer import Replacement, apply_replacements


def dedent(source):
    return textwrap.dedent(source)


def test_rewrites_console_writeline():
    source = dedent('''
        using System;

        class Program
        {
            void Run(int id)
            {
                Console.WriteLine("Order {0} shipped", id);
            }
        }
    ''')

    fixed, count = fix_source(source)

    assert count == 1
    assert '_logger.LogInformation("Order {0} shipped", id);' in fixed
    assert "Console" not in fixed.split("using System;", 1)[1]


def test_keeps_arguments_verbatim():
    source = dedent('''
        using System;

        class Program
        {
            void Run()
            {
                Console.Write(
                    "a", /* keep */ b);
            }
        }
    ''')

    fixed, _ = fix_source(source)

    assert '_logger.LogInformation(\n            "a", /* keep */ b);' in fixed


def test_custom_logger_reference():
    source = dedent('''
        using System;
        Console.WriteLine("hi");
    ''')
    fixed, count = fix_source(source, logger_reference="Log")
    assert count == 1
    assert 'Log.LogInformation("hi");' in fixed


def test_nested_console_calls_fixed_in_later_pass():
    source = dedent('''
        using System;

        class Program
        {
            void Run()
            {
                Console.WriteLine(Describe(Console.Write("x")));
            }
        }
    ''')

    fixed, count = fix_source(source)

    assert count == 2
    assert '_logger.LogInformation(Describe(_logger.LogInformation("x")));' in fixed


def test_source_without_console_calls_unchanged():
    source = dedent('''
        class Program
        {
            void Run() { _logger.LogInformation("ok"); }
        }
    ''')
    assert fix_source(source) == (source, 0)


def test_non_ascii_source_offsets():
    source = 'using System;\n// héllo wörld\nConsole.WriteLine("ünïcode");\n'
    fixed, count = fix_source(source)
    assert count == 1
    assert fixed == 'using System;\n// héllo wörld\n_logger.LogInformation("ünïcode");\n'


def test_generate_fix_targets_invocation_span():
    source = 'using System;\nConsole.WriteLine("x");\n'
    analyzer = CSharpLogAnalyzer(source)
    analyzer.analyze()
    replacements = analyzer.fixes()

    assert len(replacements) == 1
    replacement = replacements[0]
    data = source.encode('utf-8')
    assert data[replacement.start_byte:replacement.end_byte] == b'Console.WriteLine("x")'
    assert replacement.text == '_logger.LogInformation("x")'


def test_apply_replacements_keeps_outermost():
    source = "0123456789"
    replacements = [
        Replacement(2, 4, "in"),
        Replacement(1, 8, "OUT"),
        Replacement(8, 10, "end"),
    ]
    assert apply_replacements(source, replacements) == ("0OUTend", 2)


def test_only_direct_output_is_fixable():
    source = 'class C { void M() { _logger.LogInformation("Payment failed"); } }\n'
    analyzer = CSharpLogAnalyzer(source)
    assert [d.rule_id for d in analyzer.analyze()] == ["LA0004"]
    assert analyzer.fixes() == []
