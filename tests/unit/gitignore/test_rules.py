"""Tests for gitignore rule parsing and stack precedence."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from pathspec.patterns.gitwildmatch import GitWildMatchPattern, GitWildMatchPatternError

from srcpack.gitignore import (
    IgnoreStack,
    compile_rule,
    default_exclude_rules,
    is_vcs_directory,
    load_directory_rules,
    load_ignore_file,
    parse_ignore_lines,
)


def stack_of(*lines: str, base: str = "", depth: int = 0) -> IgnoreStack:
    return IgnoreStack().extended(parse_ignore_lines(lines, base=base, depth=depth))


class CompileRuleTests(unittest.TestCase):
    def test_blank_and_comment_lines_yield_no_rule(self) -> None:
        self.assertIsNone(compile_rule(""))
        self.assertIsNone(compile_rule("   "))
        self.assertIsNone(compile_rule("# comment"))

    def test_escaped_hash_is_a_pattern(self) -> None:
        rule = compile_rule("\\#notes.txt")
        self.assertIsNotNone(rule)
        self.assertTrue(rule.matches("#notes.txt", is_dir=False))

    def test_negation_and_directory_flags(self) -> None:
        negated = compile_rule("!keep.log")
        dir_only = compile_rule("cache/")

        self.assertTrue(negated.negated)
        self.assertEqual(negated.pattern, "keep.log")
        self.assertFalse(negated.dir_only)
        self.assertFalse(dir_only.negated)
        self.assertTrue(dir_only.dir_only)

    def test_trailing_whitespace_is_ignored(self) -> None:
        rule = compile_rule("notes.txt   \n")
        self.assertTrue(rule.matches("notes.txt", is_dir=False))

    def test_trailing_tab_is_part_of_the_pattern(self) -> None:
        rule = compile_rule("x.txt\t\n")
        self.assertTrue(rule.matches("x.txt\t", is_dir=False))
        self.assertFalse(rule.matches("x.txt", is_dir=False))

    def test_escaped_trailing_space_is_kept(self) -> None:
        rule = compile_rule("x\\ ")
        self.assertTrue(rule.matches("x ", is_dir=False))
        self.assertFalse(rule.matches("x", is_dir=False))

    def test_malformed_line_is_skipped(self) -> None:
        def fake_pattern(text):
            if text == "bad[":
                raise GitWildMatchPatternError("bad pattern")
            return GitWildMatchPattern(text)

        with mock.patch("srcpack.gitignore.GitWildMatchPattern", side_effect=fake_pattern):
            rules = parse_ignore_lines(["*.log", "bad[", "tmp/"])

        self.assertEqual([rule.pattern for rule in rules], ["*.log", "tmp/"])
        self.assertEqual([rule.line_number for rule in rules], [1, 3])


class RuleMatchingTests(unittest.TestCase):
    def test_unanchored_pattern_matches_at_any_depth(self) -> None:
        stack = stack_of("*.log")
        self.assertTrue(stack.is_excluded("app.log", False))
        self.assertTrue(stack.is_excluded("a/b/app.log", False))
        self.assertFalse(stack.is_excluded("app.txt", False))

    def test_leading_slash_anchors_to_base(self) -> None:
        stack = stack_of("/notes.txt")
        self.assertTrue(stack.is_excluded("notes.txt", False))
        self.assertFalse(stack.is_excluded("docs/notes.txt", False))

    def test_inner_slash_anchors_to_base(self) -> None:
        stack = stack_of("doc/*.txt")
        self.assertTrue(stack.is_excluded("doc/a.txt", False))
        self.assertFalse(stack.is_excluded("src/doc/a.txt", False))
        self.assertFalse(stack.is_excluded("doc/sub/a.txt", False))

    def test_double_star_spans_directories(self) -> None:
        stack = stack_of("a/**/z.txt")
        self.assertTrue(stack.is_excluded("a/z.txt", False))
        self.assertTrue(stack.is_excluded("a/b/c/z.txt", False))
        self.assertFalse(stack.is_excluded("b/z.txt", False))

    def test_directory_only_pattern_ignores_plain_files(self) -> None:
        stack = stack_of("build/")
        self.assertTrue(stack.is_excluded("build", True))
        self.assertTrue(stack.is_excluded("src/build", True))
        self.assertFalse(stack.is_excluded("build", False))

    def test_later_negation_reincludes(self) -> None:
        stack = stack_of("*.log", "!keep.log")
        self.assertTrue(stack.is_excluded("drop.log", False))
        self.assertFalse(stack.is_excluded("keep.log", False))

    def test_last_matching_rule_wins(self) -> None:
        stack = stack_of("!keep.log", "*.log")
        self.assertTrue(stack.is_excluded("keep.log", False))

    def test_nested_rules_only_apply_below_their_directory(self) -> None:
        stack = stack_of("*.tmp", base="sub", depth=1)
        self.assertTrue(stack.is_excluded("sub/a.tmp", False))
        self.assertTrue(stack.is_excluded("sub/deeper/a.tmp", False))
        self.assertFalse(stack.is_excluded("a.tmp", False))
        self.assertFalse(stack.is_excluded("subway/a.tmp", False))

    def test_anchored_nested_rule_is_relative_to_its_directory(self) -> None:
        stack = stack_of("/only.txt", base="sub", depth=1)
        self.assertTrue(stack.is_excluded("sub/only.txt", False))
        self.assertFalse(stack.is_excluded("sub/x/only.txt", False))
        self.assertFalse(stack.is_excluded("only.txt", False))

    def test_child_rules_override_parent_rules(self) -> None:
        stack = stack_of("*.txt").extended(parse_ignore_lines(["!keep.txt"], base="sub", depth=1))
        self.assertTrue(stack.is_excluded("keep.txt", False))
        self.assertFalse(stack.is_excluded("sub/keep.txt", False))
        self.assertTrue(stack.is_excluded("sub/other.txt", False))

    def test_overrides_are_consulted_after_ignore_file_rules(self) -> None:
        stack = stack_of("!important.log").with_overrides(parse_ignore_lines(["*.log"]))
        self.assertTrue(stack.is_excluded("important.log", False))

    def test_directory_rule_does_not_decide_for_its_contents(self) -> None:
        stack = stack_of("*", "!*/", "!*.c")
        self.assertFalse(stack.is_excluded("a", True))
        self.assertFalse(stack.is_excluded("a/b.c", False))
        self.assertTrue(stack.is_excluded("a/b.h", False))
        self.assertTrue(stack.is_excluded("c.h", False))

    def test_trailing_double_star_does_not_match_the_directory_itself(self) -> None:
        stack = stack_of("foo/**", "!foo/keep.txt")
        self.assertFalse(stack.is_excluded("foo", True))
        self.assertFalse(stack.is_excluded("foo/keep.txt", False))
        self.assertTrue(stack.is_excluded("foo/other.txt", False))
        self.assertTrue(stack.is_excluded("foo/sub", True))
        self.assertTrue(stack.is_excluded("foo/sub/deep.txt", False))

    def test_directory_pattern_matches_only_the_directory(self) -> None:
        rule = compile_rule("build/")
        self.assertTrue(rule.matches("build", is_dir=True))
        self.assertFalse(rule.matches("build/out.o", is_dir=False))
        self.assertFalse(rule.matches("build/sub", is_dir=True))

    def test_extended_returns_new_stack(self) -> None:
        base = stack_of("*.log")
        child = base.extended(parse_ignore_lines(["!a.log"]))
        self.assertTrue(base.is_excluded("a.log", False))
        self.assertFalse(child.is_excluded("a.log", False))


class DefaultRulesTests(unittest.TestCase):
    def test_default_excludes_skip_build_artifacts(self) -> None:
        stack = IgnoreStack().extended(default_exclude_rules())
        self.assertTrue(stack.is_excluded("node_modules", True))
        self.assertTrue(stack.is_excluded("web/node_modules", True))
        self.assertTrue(stack.is_excluded("target", True))
        self.assertFalse(stack.is_excluded("src", True))

    def test_ignore_files_can_reinclude_default_excludes(self) -> None:
        stack = IgnoreStack().extended(default_exclude_rules()).extended(parse_ignore_lines(["!build/"]))
        self.assertFalse(stack.is_excluded("build", True))

    def test_vcs_directories(self) -> None:
        self.assertTrue(is_vcs_directory(".git"))
        self.assertTrue(is_vcs_directory(".hg"))
        self.assertFalse(is_vcs_directory("git"))


class IgnoreFileLoadingTests(unittest.TestCase):
    def test_missing_file_yields_no_rules(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(load_ignore_file(Path(tmp) / ".gitignore"), ())

    def test_load_ignore_file_records_source_and_base(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / ".gitignore"
            path.write_text("# header\n*.pyc\n\n!keep.pyc\n", encoding="utf-8")

            rules = load_ignore_file(path, base="pkg", depth=1)

            self.assertEqual([rule.pattern for rule in rules], ["*.pyc", "keep.pyc"])
            self.assertEqual([rule.line_number for rule in rules], [2, 4])
            self.assertTrue(all(rule.source == path and rule.base == "pkg" and rule.depth == 1 for rule in rules))

    def test_dot_ignore_takes_precedence_over_gitignore(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / ".gitignore").write_text("*.log\n", encoding="utf-8")
            (root / ".ignore").write_text("!keep.log\n", encoding="utf-8")

            stack = IgnoreStack().extended(load_directory_rules(root, "", 0))

            self.assertFalse(stack.is_excluded("keep.log", False))
            self.assertTrue(stack.is_excluded("other.log", False))


if __name__ == "__main__":
    unittest.main()
