"""Script tokenizer and recursive-descent parser.

The parser only builds a tree of statements; it does not resolve names or
interpret operator strings.  ``engine`` compiles that tree into a grammar.
"""

from __future__ import annotations

import itertools
import re
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import Union

from .errors import ScriptError

NAME = r"[A-Za-z_][A-Za-z0-9_]*"

_COMMENT_RE = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)
_SPACE_RE = re.compile(r"\s+")

# Tried in order at each scan position.
_TOKEN_RE = re.compile(
    rf"""
    (?P<define>(?:\#define\b|\$)\s*(?P<def_name>{NAME})[\s=]*(?P<def_value>[^\s{{}}()|]+))
    |(?P<setting>(?:\bset\b|@)\s*(?P<set_key>[a-z:]*)\s*
        (?P<set_value>\[[^\]]*\]|\#[0-9a-fA-F]+|[A-Za-z][\w:,.\#-]*|-?[\d.]+))
    |(?P<bad_setting>\bset\b|@)
    |(?P<rule>(?:\brule\b|\#)\s*(?P<rule_name>{NAME})(?P<rule_options>[^{{}}]*?)\{{)
    |(?P<bad_rule>\brule\b|\#)
    |(?P<transform>(?:(?P<repeat>\d+)[\s*]*)?\{{(?P<ops>[^{{}}]*)\}})
    |(?P<reference>(?P<ref_name>{NAME})(?::(?P<ref_option>[\w.:-]+))?(?:\[(?P<ref_param>[^\]]*)\])?)
    |(?P<open>\()
    |(?P<bar>\|)
    |(?P<close>\))
    |(?P<end>\}})
    """,
    re.VERBOSE,
)

_WEIGHT_RE = re.compile(r"(?:@w|\bweight|\bw)\s*(?P<weight>\d*\.?\d+)(?![\w.])")

_OPTION_RE = re.compile(rf"([a-z@]+)\s*(-?\d*\.?\d+)|>\s*({NAME})")

_OPTION_KEYS = {
    "weight": "weight",
    "w": "weight",
    "@w": "weight",
    "maxdepth": "maxdepth",
    "md": "maxdepth",
    "@": "maxdepth",
}


def strip_comments(script: str) -> str:
    """Blank out comments, keeping every newline so offsets stay valid."""
    return _COMMENT_RE.sub(lambda m: re.sub(r"[^\n]", " ", m.group()), script)


# -------------------------
# Tokens
# -------------------------


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int
    groups: dict[str, str | None] = field(default_factory=dict, compare=False)


def tokenize(source: str) -> Iterator[Token]:
    """Yield tokens of an already comment-stripped script.

    Weight markers (``w 2``) are only tokens inside ``( ... )`` groups.
    """
    pos = 0
    depth = 0
    while True:
        ws = _SPACE_RE.match(source, pos)
        if ws is not None:
            pos = ws.end()
        if pos >= len(source):
            return

        m = _WEIGHT_RE.match(source, pos) if depth > 0 else None
        if m is not None:
            kind = "weight"
        else:
            m = _TOKEN_RE.match(source, pos)
            if m is None:
                snippet = source[pos:].split(None, 1)[0]
                raise ScriptError(
                    f"syntax error at {snippet!r}",
                    text=snippet,
                    position=pos,
                    source=source,
                )
            kind = next(name for name in _TOP_LEVEL if m.group(name) is not None)

        if kind == "bad_setting":
            raise ScriptError(
                "malformed set command", text=source[pos:pos + 20].strip(),
                position=pos, source=source,
            )
        if kind == "bad_rule":
            raise ScriptError(
                "malformed rule definition", text=source[pos:pos + 20].strip(),
                position=pos, source=source,
            )
        if kind == "open":
            depth += 1
        elif kind == "close":
            depth = max(depth - 1, 0)

        yield Token(kind, m.group(0), pos, m.groupdict())
        pos = m.end()


_TOP_LEVEL = (
    "define", "setting", "bad_setting", "rule", "bad_rule", "transform",
    "reference", "open", "bar", "close", "end",
)


# -------------------------
# Syntax tree
# -------------------------


@dataclass(frozen=True)
class Define:
    name: str
    value: str


@dataclass(frozen=True)
class Setting:
    key: str
    value: str


@dataclass(frozen=True)
class Transform:
    repeat: int
    ops: str
    position: int = 0


@dataclass(frozen=True)
class Reference:
    name: str
    option: str | None = None
    param: str | None = None


@dataclass(frozen=True)
class Branch:
    weight: float
    body: tuple[Transform | Reference, ...]


@dataclass(frozen=True)
class Alternatives:
    branches: tuple[Branch, ...]


@dataclass(frozen=True)
class RuleOptions:
    weight: float = 1.0
    maxdepth: int | None = None
    fallback: str | None = None


@dataclass(frozen=True)
class RuleDef:
    name: str
    options: RuleOptions
    body: tuple[Statement, ...]


Statement = Union[Define, Setting, RuleDef, Transform, Reference, Alternatives]


def parse_rule_options(text: str) -> RuleOptions:
    """Parse the text between a rule's name and its ``{``."""
    weight = 1.0
    maxdepth: int | None = None
    fallback: str | None = None
    pos = 0
    for m in _OPTION_RE.finditer(text):
        gap = text[pos:m.start()]
        if gap.strip():
            raise ScriptError(f"unrecognised rule option {gap.strip()!r}", text=gap.strip())
        pos = m.end()
        if m.group(3) is not None:
            fallback = m.group(3)
            continue
        key = _OPTION_KEYS.get(m.group(1))
        if key is None:
            raise ScriptError(f"unknown rule option {m.group(1)!r}", text=m.group(0))
        if key == "weight":
            weight = float(m.group(2))
        else:
            maxdepth = int(float(m.group(2)))
    rest = text[pos:].strip()
    if rest:
        raise ScriptError(f"unrecognised rule option {rest!r}", text=rest)
    return RuleOptions(weight=weight, maxdepth=maxdepth, fallback=fallback)


# -------------------------
# Parser
# -------------------------


class _Parser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens = tokenize(source)

    def next(self) -> Token | None:
        return next(self.tokens, None)

    def error(self, msg: str, tok: Token | None) -> ScriptError:
        if tok is None:
            return ScriptError(msg, position=len(self.source), source=self.source)
        return ScriptError(msg, text=tok.text, position=tok.position, source=self.source)

    def body(self, rule: Token | None) -> tuple[Statement, ...]:
        """Statements up to the closing ``}`` of ``rule`` (or end of input at top level)."""
        out: list[Statement] = []
        while True:
            tok = self.next()
            if tok is None:
                if rule is not None:
                    raise self.error(
                        f"missing '}}' for rule {rule.groups['rule_name']!r}", rule
                    )
                return tuple(out)
            g = tok.groups
            if tok.kind == "end":
                if rule is None:
                    raise self.error("unexpected '}'", tok)
                return tuple(out)
            if tok.kind == "define":
                out.append(Define(g["def_name"], g["def_value"]))  # type: ignore[arg-type]
            elif tok.kind == "setting":
                out.append(Setting(g["set_key"] or "", g["set_value"]))  # type: ignore[arg-type]
            elif tok.kind == "rule":
                try:
                    options = parse_rule_options(g["rule_options"] or "")
                except ScriptError as e:
                    raise self.error(str(e), tok) from e
                out.append(RuleDef(g["rule_name"], options, self.body(tok)))  # type: ignore[arg-type]
            elif tok.kind == "open":
                if rule is None:
                    raise self.error("alternatives are only allowed inside a rule", tok)
                out.append(self.alternatives(tok))
            elif tok.kind in ("transform", "reference"):
                out.append(self.term(tok))
            else:
                raise self.error(f"unexpected {tok.text!r}", tok)

    def term(self, tok: Token) -> Transform | Reference:
        g = tok.groups
        if tok.kind == "transform":
            return Transform(int(g["repeat"] or 1), g["ops"] or "", tok.position)
        return Reference(g["ref_name"], g["ref_option"], g["ref_param"])  # type: ignore[arg-type]

    def alternatives(self, opening: Token) -> Alternatives:
        branches: list[Branch] = []
        weight = 1.0
        items: list[Transform | Reference] = []
        while True:
            tok = self.next()
            if tok is None or tok.kind == "end":
                raise self.error("missing ')'", opening)
            if tok.kind in ("bar", "close"):
                branches.append(Branch(weight, tuple(items)))
                if tok.kind == "close":
                    return Alternatives(tuple(branches))
                weight, items = 1.0, []
            elif tok.kind == "weight":
                weight = float(tok.groups["weight"])  # type: ignore[arg-type]
            elif tok.kind in ("transform", "reference"):
                items.append(self.term(tok))
            else:
                raise self.error(f"{tok.text!r} is not allowed inside ( ... )", tok)


def parse_script(script: str) -> tuple[Statement, ...]:
    """Parse a whole script (comments allowed) into top-level statements."""
    return _Parser(strip_comments(script)).body(None)


def expand_alternatives(rule: RuleDef) -> list[RuleDef]:
    """Split a rule containing ``( a | b )`` groups into one rule per combination.

    Each resulting rule keeps the name; its weight is the rule weight times
    the weights of the branches it took.
    """
    groups = [s for s in rule.body if isinstance(s, Alternatives)]
    if not groups:
        return [rule]
    out: list[RuleDef] = []
    for choice in itertools.product(*(g.branches for g in groups)):
        picks = iter(choice)
        body: list[Statement] = []
        weight = rule.options.weight
        for stmt in rule.body:
            if isinstance(stmt, Alternatives):
                branch = next(picks)
                weight *= branch.weight
                body.extend(branch.body)
            else:
                body.append(stmt)
        out.append(replace(rule, options=replace(rule.options, weight=weight), body=tuple(body)))
    return out
