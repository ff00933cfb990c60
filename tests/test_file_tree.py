"""Tests for the file browser tree."""

import pytest

from complior_tui.io.file_tree import build_file_tree, fuzzy_match_files, toggle_expand


@pytest.fixture
def project(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.py").write_text("")
    (tmp_path / "src" / "util.py").write_text("")
    (tmp_path / "Readme.md").write_text("")
    (tmp_path / "app.py").write_text("")
    (tmp_path / ".git").mkdir()
    (tmp_path / "node_modules").mkdir()
    return tmp_path


def names(tree):
    return [e.name for e in tree]


def test_directories_first_hidden_skipped(project):
    assert names(build_file_tree(project)) == ["src", "app.py", "Readme.md"]


def test_missing_root_is_empty(tmp_path):
    assert build_file_tree(tmp_path / "nope") == []


def test_expand_and_collapse(project):
    tree = build_file_tree(project)
    toggle_expand(tree, 0)
    assert names(tree) == ["src", "main.py", "util.py", "app.py", "Readme.md"]
    assert tree[1].depth == 1
    toggle_expand(tree, 0)
    assert names(tree) == ["src", "app.py", "Readme.md"]


def test_expand_ignores_files_and_bad_index(project):
    tree = build_file_tree(project)
    toggle_expand(tree, 1)
    toggle_expand(tree, 99)
    assert len(tree) == 3


def test_fuzzy_match_skips_directories(project):
    tree = build_file_tree(project)
    toggle_expand(tree, 0)
    assert names(fuzzy_match_files(tree, "MAIN")) == ["main.py"]
    assert names(fuzzy_match_files(tree, "src")) == ["main.py", "util.py"]
    assert len(fuzzy_match_files(tree, "")) == 4
