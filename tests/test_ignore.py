import logging

import pytest

from filemonitor.ignore import (
    NOT_IGNORED,
    IgnoreRules,
    base_name,
    extension,
    match_path,
    should_ignore,
)


@pytest.fixture
def rules():
    return IgnoreRules(
        files=("*.log", "~*", "data?.bin", "[Tt]humbs.db"),
        extensions=frozenset({".tmp", ".part"}),
        directories=("*/node_modules/*", "/var/cache/*"),
    )


@pytest.mark.parametrize("path, expected", [
    ("/data/file.tmp", ".tmp"),
    ("/data/archive.tar.gz", ".gz"),
    ("/data/.bashrc", ".bashrc"),
    ("/data/Makefile", ""),
    ("/some.dir/Makefile", ""),
    ("C:\\data\\report.docx", ".docx"),
])
def test_extension(path, expected):
    assert extension(path) == expected


def test_base_name_handles_both_separators():
    assert base_name("/a/b/c.txt") == "c.txt"
    assert base_name("C:\\a\\b\\c.txt") == "c.txt"


def test_extension_match(rules):
    verdict = should_ignore("/data/file.tmp", rules)
    assert verdict.ignored
    assert "extension" in verdict.reason
    assert verdict.reason == "extension match: .tmp"


def test_filename_match(rules):
    verdict = should_ignore("/var/log/app.log", rules)
    assert verdict.ignored
    assert verdict.reason == "filename match: *.log"


@pytest.mark.parametrize("path", ["/x/~lock", "/x/data1.bin", "/x/thumbs.db", "/x/Thumbs.db"])
def test_filename_glob_semantics(rules, path):
    assert should_ignore(path, rules).ignored


@pytest.mark.parametrize("path", ["/x/data12.bin", "/x/THUMBS.DB", "/x/app.LOG"])
def test_filename_match_is_case_sensitive_and_exact(rules, path):
    assert should_ignore(path, rules) == NOT_IGNORED


def test_directory_match(rules):
    verdict = should_ignore("/proj/node_modules/x.js", rules)
    assert verdict.ignored
    assert verdict.reason == "directory match: */node_modules/*"


def test_directory_match_on_windows_paths(rules):
    assert should_ignore("C:\\proj\\node_modules\\x.js", rules).ignored


def test_absolute_directory_pattern_matches_whole_path(rules):
    assert should_ignore("/var/cache/pkg", rules).ignored
    assert not should_ignore("/var/cache/deep/pkg", rules).ignored
    assert not should_ignore("/srv/var/cache/pkg", rules).ignored


def test_star_does_not_cross_separators():
    assert match_path("/a/b/c", "/a/*") is False
    assert match_path("/a/b", "/a/*") is True


def test_no_match_has_no_reason(rules):
    verdict = should_ignore("/data/file.txt", rules)
    assert verdict.ignored is False
    assert verdict.reason is None
    assert not verdict


def test_extension_wins_over_later_categories():
    rules = IgnoreRules(
        files=("*.tmp",),
        extensions=frozenset({".tmp"}),
        directories=("*/build/*",),
    )
    verdict = should_ignore("/proj/build/x.tmp", rules)
    assert verdict.reason.startswith("extension match")


def test_filename_wins_over_directory():
    rules = IgnoreRules(files=("x.*",), directories=("*/build/*",))
    verdict = should_ignore("/proj/build/x.js", rules)
    assert verdict.reason == "filename match: x.*"


def test_malformed_pattern_is_skipped(caplog):
    rules = IgnoreRules(directories=("", "*/build/*"))
    with caplog.at_level(logging.WARNING, logger="filemonitor.ignore"):
        verdict = should_ignore("/proj/build/x.js", rules)
    assert verdict.reason == "directory match: */build/*"
    assert "malformed directory pattern" in caplog.text


def test_unclosed_bracket_does_not_abort_matching():
    rules = IgnoreRules(files=("[abc",), extensions=frozenset({".tmp"}))
    assert not should_ignore("/x/file.txt", rules).ignored
    assert should_ignore("/x/[abc", rules).ignored
