"""Gitignore-style rule parsing and matching.

Ignore files are parsed line by line into ``IgnoreRule`` values compiled with
``pathspec``'s gitwildmatch patterns. The walker threads an immutable
``IgnoreStack`` down the directory recursion: ancestor rules first, deeper
rules later, so the last matching rule always decides.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from pathspec.patterns.gitwildmatch import GitWildMatchPattern, GitWildMatchPatternError

logger = logging.getLogger(__name__)

IGNORE_FILENAMES = (".gitignore", ".ignore")
VCS_DIRECTORY_NAMES = frozenset({".git", ".hg", ".svn"})
DEFAULT_EXCLUDE_PATTERNS = (
    "node_modules/",
    "target/",
    "build/",
    "dist/",
    ".idea/",
    ".vscode/",
)
DEFAULTS_DEPTH = -1

# regex group pathspec uses to mark where a directory match starts covering descendants
_DESCENDANT_GROUP = "ps_d"


def is_vcs_directory(name: str) -> bool:
    """Return whether ``name`` is a version-control metadata directory."""
    return name in VCS_DIRECTORY_NAMES


def _relative_to_base(rel_path: str, base: str) -> str | None:
    """Return ``rel_path`` relative to ``base`` or ``None`` when outside it."""
    if not base:
        return rel_path
    prefix = base + "/"
    if not rel_path.startswith(prefix):
        return None
    return rel_path[len(prefix):]


def _strip_trailing_whitespace(line: str) -> str:
    """Drop trailing spaces unless the last one is backslash-escaped.

    Git keeps any other trailing whitespace (tabs included) as part of the
    pattern. pathspec strips it, so it is spelled as one-character bracket
    expressions instead.
    """
    stripped = line.rstrip(" ")
    if stripped != line and stripped.endswith("\\"):
        return stripped + " "
    body = stripped.rstrip()
    if body == stripped:
        return stripped
    return body + "".join(f"[{char}]" for char in stripped[len(body):])


def _descendants_only(text: str) -> str:
    """Rewrite a trailing ``/**`` so it cannot match the directory itself.

    ``foo/**`` means everything inside ``foo``; pathspec also lets it match
    ``foo/``, which would prune ``foo`` before its contents can be re-included.
    """
    dir_suffix = "/" if text.endswith("/") else ""
    core = text[: len(text) - len(dir_suffix)]
    if core.endswith("/**") and not core.endswith("\\/**"):
        return core + "/*" + dir_suffix
    return text


@dataclass(frozen=True)
class IgnoreRule:
    """One compiled ignore-file line.

    ``base`` is the directory (relative to the scan root, POSIX form) holding
    the ignore file; the rule only applies below it. ``depth`` is that
    directory's depth, ``-1`` for built-in defaults.
    """

    pattern: str
    negated: bool
    dir_only: bool
    depth: int
    compiled: GitWildMatchPattern = field(repr=False, compare=False)
    base: str = ""
    source: Path | None = None
    line_number: int = 0

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        """Return whether this rule matches ``rel_path`` (relative to scan root)."""
        local = _relative_to_base(rel_path, self.base)
        if not local:
            return False
        candidate = local + "/" if is_dir else local
        match = self.compiled.regex.match(candidate)
        if match is None:
            return False
        # pathspec extends a match on a directory to everything below it; the
        # walker asks about each path on its own, so only a match ending at
        # the candidate counts.
        if _DESCENDANT_GROUP not in match.re.groupindex:
            return True
        end = match.end(_DESCENDANT_GROUP)
        return end == -1 or end == len(candidate)


def compile_rule(
    line: str,
    *,
    base: str = "",
    depth: int = 0,
    source: Path | None = None,
    line_number: int = 0,
) -> IgnoreRule | None:
    """Compile one ignore-file line, returning ``None`` for blanks, comments and bad lines."""
    text = _strip_trailing_whitespace(line.rstrip("\r\n"))
    if not text or text.startswith("#"):
        return None
    try:
        compiled = GitWildMatchPattern(_descendants_only(text))
    except GitWildMatchPatternError:
        logger.debug("skipping malformed ignore pattern %r (%s:%d)", text, source or "<lines>", line_number)
        return None
    if compiled.include is None:
        return None

    negated = compiled.include is False
    pattern = text[1:] if negated else text
    return IgnoreRule(
        pattern=pattern,
        negated=negated,
        dir_only=pattern.endswith("/"),
        depth=depth,
        compiled=compiled,
        base=base,
        source=source,
        line_number=line_number,
    )


def parse_ignore_lines(
    lines: Iterable[str],
    base: str = "",
    depth: int = 0,
    source: Path | None = None,
) -> tuple[IgnoreRule, ...]:
    """Parse gitignore-format lines into rules, keeping file order."""
    rules: list[IgnoreRule] = []
    for line_number, line in enumerate(lines, start=1):
        rule = compile_rule(line, base=base, depth=depth, source=source, line_number=line_number)
        if rule is not None:
            rules.append(rule)
    return tuple(rules)


def load_ignore_file(path: Path, base: str = "", depth: int = 0) -> tuple[IgnoreRule, ...]:
    """Load rules from one ignore file.

    Missing files yield no rules. Unreadable files yield no rules and a
    warning; they never abort the walk.
    """
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return ()
    except OSError as exc:
        logger.warning("cannot read ignore file %s: %s", path, exc)
        return ()
    return parse_ignore_lines(text.splitlines(), base=base, depth=depth, source=path)


def load_directory_rules(
    directory: Path,
    rel_dir: str,
    depth: int,
    filenames: Iterable[str] = IGNORE_FILENAMES,
) -> tuple[IgnoreRule, ...]:
    """Load every configured ignore file of ``directory`` in precedence order."""
    rules: list[IgnoreRule] = []
    for name in filenames:
        candidate = directory / name
        if not candidate.is_file():
            continue
        rules.extend(load_ignore_file(candidate, base=rel_dir, depth=depth))
    return tuple(rules)


def load_repository_excludes(root: Path) -> tuple[IgnoreRule, ...]:
    """Load ``.git/info/exclude`` rules for a repository rooted at ``root``."""
    return load_ignore_file(root / ".git" / "info" / "exclude", base="", depth=0)


def default_exclude_rules() -> tuple[IgnoreRule, ...]:
    """Built-in build-artifact excludes, lowest precedence."""
    return parse_ignore_lines(DEFAULT_EXCLUDE_PATTERNS, base="", depth=DEFAULTS_DEPTH)


@dataclass(frozen=True)
class IgnoreStack:
    """Ordered rules applicable at one point of the directory descent.

    ``overrides`` hold command-line/config excludes and are consulted after
    every ignore-file rule.
    """

    rules: tuple[IgnoreRule, ...] = ()
    overrides: tuple[IgnoreRule, ...] = ()

    def extended(self, rules: Iterable[IgnoreRule]) -> IgnoreStack:
        """Return a stack with ``rules`` appended after the current ones."""
        added = tuple(rules)
        if not added:
            return self
        return IgnoreStack(rules=self.rules + added, overrides=self.overrides)

    def with_overrides(self, rules: Iterable[IgnoreRule]) -> IgnoreStack:
        """Return a stack with extra override rules appended."""
        added = tuple(rules)
        if not added:
            return self
        return IgnoreStack(rules=self.rules, overrides=self.overrides + added)

    def is_excluded(self, rel_path: str, is_dir: bool) -> bool:
        """Return whether ``rel_path`` is excluded; the last matching rule wins."""
        for rule in reversed(self.rules + self.overrides):
            if rule.matches(rel_path, is_dir):
                return not rule.negated
        return False


__all__ = [
    "IGNORE_FILENAMES",
    "VCS_DIRECTORY_NAMES",
    "DEFAULT_EXCLUDE_PATTERNS",
    "IgnoreRule",
    "IgnoreStack",
    "compile_rule",
    "parse_ignore_lines",
    "load_ignore_file",
    "load_directory_rules",
    "load_repository_excludes",
    "default_exclude_rules",
    "is_vcs_directory",
]
