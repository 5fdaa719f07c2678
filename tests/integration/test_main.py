"""
Tests for CLI entry point (erdxml.main).
"""
from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from erdxml.io.dispatcher import DiagramFormat, detect_format, parse, serialize
from erdxml.main import main


def test_main_success_writes_standard(sample_legacy_path: Path, tmp_path: Path) -> None:
    """Running main with valid input writes a standard document by default."""
    out_xml = tmp_path / "out.xml"
    argv = ["erdxml", str(sample_legacy_path), str(out_xml)]

    with patch("sys.argv", argv):
        main()  # success path does not call sys.exit()

    text = out_xml.read_text(encoding="utf-8")
    assert detect_format(text) is DiagramFormat.STANDARD
    assert len(parse(text).entities) == 3


def test_main_to_legacy(sample_standard_path: Path, tmp_path: Path, capsys) -> None:
    out_xml = tmp_path / "out.xml"
    main([str(sample_standard_path), str(out_xml), "--to", "legacy"])

    assert detect_format(out_xml.read_text(encoding="utf-8")) is DiagramFormat.LEGACY
    captured = capsys.readouterr().out
    assert "Saved" in captured
    # line and arrow shapes cannot be written to the legacy dialect
    assert "Warnings (" in captured


def test_main_missing_input_exits_with_error(tmp_path: Path) -> None:
    """Main exits with code 1 when input file does not exist."""
    out_xml = tmp_path / "out.xml"
    argv = ["erdxml", str(tmp_path / "nonexistent.xml"), str(out_xml)]

    with patch("sys.argv", argv):
        with pytest.raises(SystemExit) as exc_info:
            main()

    assert exc_info.value.code == 1
    assert not out_xml.exists()


def test_main_missing_merge_file_exits(sample_standard_path: Path, tmp_path: Path) -> None:
    out_xml = tmp_path / "out.xml"
    with pytest.raises(SystemExit) as exc_info:
        main([str(sample_standard_path), str(out_xml), "--merge", str(tmp_path / "nope.xml")])

    assert exc_info.value.code == 1
    assert not out_xml.exists()


def test_main_malformed_input_exits(tmp_path: Path, capsys) -> None:
    """Malformed XML is reported and nothing is written."""
    bad = tmp_path / "bad.xml"
    bad.write_text("<ERDiagram><entity></ERDiagram>", encoding="utf-8")
    out_xml = tmp_path / "out.xml"

    with pytest.raises(SystemExit) as exc_info:
        main([str(bad), str(out_xml)])

    assert exc_info.value.code == 1
    assert not out_xml.exists()
    assert "Error: Invalid XML format" in capsys.readouterr().out


def test_main_strict_fails_on_dangling_reference(tmp_path: Path) -> None:
    doc = tmp_path / "dangling.xml"
    doc.write_text(
        '<ERDiagram version="1.0"><connection id="c1" fromId="ghost" toId="ghost2"/></ERDiagram>',
        encoding="utf-8",
    )
    out_xml = tmp_path / "out.xml"

    main([str(doc), str(out_xml)])
    assert out_xml.exists()

    out_strict = tmp_path / "strict.xml"
    with pytest.raises(SystemExit) as exc_info:
        main([str(doc), str(out_strict), "--strict"])
    assert exc_info.value.code == 1
    assert not out_strict.exists()


def test_main_merge(sample_standard_path: Path, sample_legacy_path: Path, tmp_path: Path) -> None:
    out_xml = tmp_path / "merged.xml"
    main([str(sample_standard_path), str(out_xml), "--merge", str(sample_legacy_path)])

    merged = parse(out_xml.read_text(encoding="utf-8"))
    assert [e.name for e in merged.entities] == [
        "Student", "Course", "GradStudent", "Book", "Copy", "Member",
    ]


def test_main_validate(binary_diagram, tmp_path: Path, capsys) -> None:
    doc = tmp_path / "clean.xml"
    doc.write_text(serialize(binary_diagram), encoding="utf-8")
    main([str(doc), str(tmp_path / "out.xml"), "--validate"])
    assert "No validation issues" in capsys.readouterr().out


def test_main_validate_reports_issues(sample_legacy_path: Path, tmp_path: Path, capsys) -> None:
    main([str(sample_legacy_path), str(tmp_path / "out.xml"), "--validate"])

    captured = capsys.readouterr().out
    # the weak entity "Copy" is identified through its owner and has no key of its own
    assert "Validation issues (1):" in captured
    assert "[entity-5] Entity must have at least one key attribute" in captured
