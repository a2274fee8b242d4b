import textwrap

import pytest

from loghunter.config import LoghunterConfig
from loghunter.rules import Severity
from loghunter.scanner import LogScanner, filter_findings


def write(path, source):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source), encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path):
    write(tmp_path / "Errors.cs", '''
        namespace Shop
        {
            public class ShopException : System.Exception { }
        }
    ''')
    write(tmp_path / "Orders" / "OrderService.cs", '''
        using System;
        using Shop;

        namespace Shop.Orders
        {
            class OrderService
            {
                void Place()
                {
                    try { Save(); }
                    catch (ShopException ex)
                    {
                        _logger.LogError(ex);
                    }
                    Console.WriteLine("placed");  // nosec
                    _logger.LogInformation("Order " + id);
                }
            }
        }
    ''')
    write(tmp_path / "bin" / "Debug" / "Generated.cs", '''
        Console.WriteLine("build output");
    ''')
    return tmp_path


def rules_of(findings):
    return sorted(f.rule_id for f in findings)


def test_scan_project(project):
    scanner = LogScanner()
    findings = scanner.scan(str(project))

    # The exception type declared in another file resolves; bin/ is skipped
    assert rules_of(findings) == ["LA0002", "LA0005"]
    assert scanner.files_scanned == 2
    la0002 = [f for f in findings if f.rule_id == "LA0002"][0]
    assert la0002.file_path.endswith("OrderService.cs")
    assert la0002.line_number == 14
    assert la0002.line_content.strip() == "_logger.LogError(ex);"
    assert la0002.severity is Severity.ERROR
    assert la0002.to_dict()["rule"] == "LA0002"


def test_parallel_scan_matches_serial(project):
    serial = LogScanner().scan(str(project))
    parallel = LogScanner(jobs=4).scan(str(project))
    assert [f.to_dict() for f in parallel] == [f.to_dict() for f in serial]


def test_single_file_scan_uses_its_own_types(project):
    findings = LogScanner().scan(str(project / "Orders" / "OrderService.cs"))
    # ShopException is declared elsewhere, so it cannot be classified
    assert rules_of(findings) == ["LA0005"]


def test_config_applied(project):
    config = LoghunterConfig(
        disabled_rules={"LA0005"},
        severity_overrides={"LA0002": "WARNING"},
        min_severity="WARNING",
    )
    findings = LogScanner(config=config).scan(str(project))
    assert rules_of(findings) == ["LA0002"]
    assert findings[0].severity is Severity.WARNING


def test_excluded_paths(project):
    config = LoghunterConfig(exclude_paths=["Orders/"])
    scanner = LogScanner(config=config)
    assert scanner.scan(str(project)) == []
    assert scanner.files_scanned == 1


def test_missing_target(tmp_path):
    with pytest.raises(FileNotFoundError):
        LogScanner().scan(str(tmp_path / "missing"))


def test_fix_rewrites_files(project):
    program = write(project / "Program.cs", '''
        using System;
        Console.WriteLine("started");
        Console.WriteLine("kept"); // loghunter:ignore LA0001
    ''')

    fixed = LogScanner().fix(str(project))

    # OrderService.cs only has a suppressed call; bin/ is never touched
    assert fixed == {str(program): 1}
    text = program.read_text()
    assert '_logger.LogInformation("started");' in text
    assert 'Console.WriteLine("kept");' in text
    assert 'Console.WriteLine("placed");' in (project / "Orders" / "OrderService.cs").read_text()
    assert "Console.WriteLine" in (project / "bin" / "Debug" / "Generated.cs").read_text()


def test_inline_suppression(tmp_path):
    write(tmp_path / "App.cs", '''
        using System;
        Console.WriteLine("a");
        Console.WriteLine("b"); // loghunter:ignore
        Console.WriteLine("password"); // loghunter:ignore LA0001
        Console.WriteLine("c"); // loghunter:ignore LA0003
    ''')
    findings = LogScanner().scan(str(tmp_path))
    assert [(f.line_number, f.rule_id) for f in sorted(findings, key=lambda f: f.line_number)] == [
        (3, "LA0001"),
        (5, "LA0003"),
        (6, "LA0001"),
    ]


def test_filter_findings_by_severity(project):
    findings = LogScanner().scan(str(project))
    assert rules_of(filter_findings(findings, min_severity=Severity.ERROR)) == ["LA0002"]


def test_fix_keeps_bom_and_line_endings(tmp_path):
    program = tmp_path / "Program.cs"
    program.write_bytes(
        b'\xef\xbb\xbfusing System;\r\n'
        b'class P\r\n'
        b'{\r\n'
        b'    void M() { Console.WriteLine("hi"); }\r\n'
        b'}\r\n'
    )

    assert LogScanner().fix(str(tmp_path)) == {str(program): 1}

    # Only the call changes; BOM and CRLF line endings survive
    assert program.read_bytes() == (
        b'\xef\xbb\xbfusing System;\r\n'
        b'class P\r\n'
        b'{\r\n'
        b'    void M() { _logger.LogInformation("hi"); }\r\n'
        b'}\r\n'
    )


def test_fix_skips_file_that_is_not_utf8(tmp_path):
    program = tmp_path / "Legacy.cs"
    original = (
        b'using System;\n'
        b'// caf\xe9\n'
        b'Console.WriteLine("hi");\n'
    )
    program.write_bytes(original)

    scanner = LogScanner()
    assert scanner.fix(str(tmp_path)) == {}
    assert program.read_bytes() == original
    # Still reported by a scan
    assert rules_of(scanner.scan(str(tmp_path))) == ["LA0001"]


def test_crlf_file_locations(tmp_path):
    (tmp_path / "App.cs").write_bytes(
        b'using System;\r\n'
        b'Console.WriteLine("a");\r\n'
        b'Console.WriteLine("b"); // nosec\r\n'
    )
    findings = LogScanner().scan(str(tmp_path))
    assert [(f.line_number, f.line_content) for f in findings] == [
        (2, 'Console.WriteLine("a");'),
    ]
