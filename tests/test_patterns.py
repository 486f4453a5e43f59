import pytest

from unifier.constants import DEFAULT_IGNORE_PATTERNS
from unifier.patterns import compile_glob, is_ignored, parse_patterns


@pytest.mark.parametrize("path", ["a.py", "src/app.py", ".git/config", "x/y/z"])
def test_no_patterns_ignore_nothing(path):
    assert not is_ignored(path, [])


def test_blank_patterns_are_skipped():
    assert not is_ignored("app.py", ["", "   ", "\t"])


def test_basename_match_at_any_depth():
    assert is_ignored("logs/app.log", ["*.log"])
    assert is_ignored("a/b/c/app.log", ["*.log"])
    assert is_ignored("app.log", ["*.log"])
    assert not is_ignored("app.log.txt", ["*.log"])


@pytest.mark.parametrize("path", ["x", "x/y", "x/y/z", "x/"])
def test_directory_pattern_covers_descendants(path):
    assert is_ignored(path, ["x/"])


def test_directory_pattern_is_anchored_to_root():
    assert not is_ignored("ax/y", ["x/"])
    assert not is_ignored("src/build", ["build/"])


def test_directory_pattern_with_glob_body():
    assert is_ignored("pkg.egg-info/PKG-INFO", ["*.egg-info/"])


def test_star_stays_within_segment():
    assert is_ignored("src/a.py", ["src/*.py"])
    assert not is_ignored("src/sub/a.py", ["src/*.py"])


def test_globstar_crosses_segments():
    assert is_ignored("a.py", ["**/*.py"])
    assert is_ignored("a/b/c.py", ["**/*.py"])
    assert is_ignored("src/x/y/test_a.py", ["src/**/test_*.py"])
    assert is_ignored("src/test_a.py", ["src/**/test_*.py"])


def test_trailing_globstar_matches_directory_itself():
    assert is_ignored("build", ["build/**"])
    assert is_ignored("build/out/a.o", ["build/**"])


def test_question_mark_matches_one_non_separator():
    assert is_ignored("ab.txt", ["a?.txt"])
    assert not is_ignored("abc.txt", ["a?.txt"])
    assert not compile_glob("a?b").fullmatch("a/b")


def test_star_matches_leading_dot():
    assert is_ignored(".hidden", ["*"])
    assert is_ignored("src/.env", ["*"])


def test_matching_is_case_sensitive():
    assert not is_ignored("app.log", ["*.LOG"])
    assert not is_ignored("Build", ["build"])


def test_backslashes_are_normalized():
    assert is_ignored("logs\\app.txt", ["logs/*"])


def test_trailing_slash_on_path_marks_directory():
    assert is_ignored("node_modules/", ["node_modules"])
    assert is_ignored("a/node_modules/", ["*/node_modules"])


def test_character_classes():
    assert is_ignored("a.txt", ["[ab].txt"])
    assert not is_ignored("c.txt", ["[ab].txt"])
    assert is_ignored("c.txt", ["[!ab].txt"])


def test_regex_metacharacters_are_literal():
    assert is_ignored("a+b (1).txt", ["a+b (1).txt"])
    assert not is_ignored("aab (1).txt", ["a+b (1).txt"])


def test_default_patterns():
    assert is_ignored(".git", DEFAULT_IGNORE_PATTERNS)
    assert is_ignored("src/.github", DEFAULT_IGNORE_PATTERNS)
    assert is_ignored("web/node_modules", DEFAULT_IGNORE_PATTERNS)
    assert is_ignored("demo_unified_2024-01-01.md", DEFAULT_IGNORE_PATTERNS)
    assert not is_ignored("src/app.py", DEFAULT_IGNORE_PATTERNS)


def test_parse_patterns_drops_blank_lines():
    assert parse_patterns("*.log\n\n   \n  dist/ \n") == ["*.log", "dist/"]
