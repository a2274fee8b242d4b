def test_console_writeline_reported(analyze):
    result = analyze('''
        using System;

        class Program
        {
            static void Main()
            {
                Console.WriteLine("Hello");
            }
        }
    ''')

    found = result.of("LA0001")
    assert len(found) == 1
    assert found[0].location.start_line == 8
    assert found[0].message == (
        "Use structured logging instead of Console.WriteLine for better observability")
    assert result.span(found[0]) == 'Console.WriteLine("Hello")'


def test_console_write_reported(analyze):
    result = analyze('''
        using System;

        class Program
        {
            void Run(int count)
            {
                Console.Write(count);
            }
        }
    ''')

    found = result.of("LA0001")
    assert len(found) == 1
    assert "Console.Write " in found[0].message


def test_implicit_usings_resolve_console(analyze):
    source = '''
        class Program
        {
            void Run()
            {
                Console.WriteLine("no using directive");
            }
        }
    '''
    assert len(analyze(source).of("LA0001")) == 1
    assert analyze(source, implicit_usings=False).of("LA0001") == []


def test_fully_qualified_receiver_not_reported(analyze):
    # Only the bare `Console` identifier is matched
    result = analyze('''
        class Program
        {
            void Run()
            {
                System.Console.WriteLine("qualified");
            }
        }
    ''')
    assert result.of("LA0001") == []


def test_user_console_type_not_reported(analyze):
    result = analyze('''
        namespace MyApp
        {
            class Console
            {
                public static void WriteLine(string s) { }
            }

            class Program
            {
                void Run()
                {
                    Console.WriteLine("mine");
                }
            }
        }
    ''')
    assert result.of("LA0001") == []


def test_local_named_console_not_reported(analyze):
    result = analyze('''
        using System.IO;

        class Program
        {
            void Run(TextWriter Console)
            {
                Console.WriteLine("writer");
            }
        }
    ''')
    assert result.of("LA0001") == []


def test_other_console_members_not_reported(analyze):
    result = analyze('''
        using System;

        class Program
        {
            void Run()
            {
                var line = Console.ReadLine();
                Console.Clear();
            }
        }
    ''')
    assert result.of("LA0001") == []


def test_top_level_statements(analyze):
    result = analyze('''
        using System;

        Console.WriteLine("top level");
    ''')
    assert len(result.of("LA0001")) == 1


def test_every_call_reported_separately(analyze):
    result = analyze('''
        using System;

        class Program
        {
            void Run()
            {
                Console.WriteLine("one");
                Console.WriteLine("two");
                Console.Write("three");
            }
        }
    ''')
    assert [d.location.start_line for d in result.of("LA0001")] == [8, 9, 10]
