from profile_scorer.services.report_service import load_report, replace_section, save_report

START = "<!-- DEVELOPER_SCORE:start -->"
END = "<!-- DEVELOPER_SCORE:end -->"


def test_replace_section_swaps_the_marked_body() -> None:
    content = f"# Me\n\n{START}\nold score\n{END}\n\nfooter\n"
    assert replace_section(content, START, END, "new score") == f"# Me\n\n{START}\nnew score\n{END}\n\nfooter\n"


def test_replace_section_keeps_backslashes_literal() -> None:
    content = f"{START}\nold\n{END}\n"
    assert replace_section(content, START, END, r"path C:\new\1") == f"{START}\npath C:\\new\\1\n{END}\n"


def test_replace_section_appends_when_markers_are_missing(capsys) -> None:
    assert replace_section("# Me\n", START, END, "body") == f"# Me\n\n{START}\nbody\n{END}\n"
    assert replace_section("", START, END, "body") == f"{START}\nbody\n{END}\n"
    assert "marker pair not found" in capsys.readouterr().err


def test_replace_section_collapses_duplicate_blocks(capsys) -> None:
    content = f"{START}\none\n{END}\nmiddle\n{START}\ntwo\n{END}\n"
    result = replace_section(content, START, END, "fresh")
    assert result == f"{START}\nfresh\n{END}\nmiddle\n\n"
    assert result.count(START) == 1
    assert "duplicate marker pairs" in capsys.readouterr().err


def test_load_missing_report_is_empty(tmp_path) -> None:
    assert load_report(str(tmp_path / "absent.md")) == ""


def test_save_report_creates_parent_directories(tmp_path) -> None:
    path = str(tmp_path / "out" / "report.md")
    save_report(path, "hello\n")
    assert load_report(path) == "hello\n"
