"""Compile scripts into a rule grammar and build structures from it.

A build walks the grammar depth first.  Each sequence node's ``_build`` is a
generator that yields the generator of the node it descends into and
receives that node's result; ``_drive`` runs the whole walk on an explicit
stack, so recursion depth is bounded by ``maxdepth`` and not by Python's
call stack.
"""

from __future__ import annotations

import enum
import logging
from collections import defaultdict
from collections.abc import Callable, Generator, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from . import parser
from .color import RGBA, Color
from .criteria import Criteria
from .errors import BuildError
from .matrix import AffineMatrix
from .operators import OperatorDelta, parse_operator
from .random_mt import RandomGenerator, time_seed

logger = logging.getLogger(__name__)

ROOT_NAME = "$root"


class Flow(enum.Enum):
    CONTINUE = "continue"
    # a terminal failed the size filter: drop the rest of the rule body
    BREAK = "break"
    # cancelled by the callback or the object limit: end the build
    STOP = "stop"


Node = Union["Operator", "Reference"]
Step = tuple[Flow, Union["Operator", "Reference", None]]
BuildCallback = Callable[["BuildStatus"], Any]
_Walk = Generator[Any, Any, Any]


def _drive(walk: _Walk) -> Any:
    """Run a generator walk to completion without Python recursion."""
    stack = [walk]
    value: Any = None
    while stack:
        try:
            child = stack[-1].send(value)
        except StopIteration as stop:
            stack.pop()
            value = stop.value
            continue
        stack.append(child)
        value = None
    return value


# -------------------------
# Sequence nodes
# -------------------------


class Operator:
    """``N * { ops }``: applies its delta to the following term N times."""

    def __init__(self, repeat: int, source: str, delta: OperatorDelta) -> None:
        self.repeat = max(repeat, 1)
        self.source = source
        self.delta = delta
        self.next: Node | None = None

    def _current_delta(self, status: BuildStatus) -> OperatorDelta:
        if self.delta.uses_variables:
            return parse_operator(self.source, status.variables, status.criteria.pool)
        return self.delta

    def _build(self, status: BuildStatus) -> Generator[_Walk, Step, Step]:
        delta = self._current_delta(status)
        status.push()
        step: Step = (Flow.CONTINUE, None)
        for _ in range(self.repeat):
            delta.apply(status.matrix, status.color)
            if self.next is None:
                continue
            step = yield self.next._build(status)
            if step[0] is Flow.STOP:
                break
        status.pop()
        return step

    def __repr__(self) -> str:
        return f"Operator({self.repeat} * {{{self.source}}})"


class Reference:
    """A rule invocation, or a terminal object when no rule has the label."""

    def __init__(
        self, label: str, param: str | None = None, option: str | None = None
    ) -> None:
        self.label = label
        self.param = param
        self.option = option
        self.next: Node | None = None

    def _build(self, status: BuildStatus) -> Generator[_Walk, Flow, Step]:
        grammar = status.grammar
        rule = grammar.find(status.rule.index, self.label, status.rng)
        if rule is None:
            flow = status.new_object(self.label, self.param, self.option)
            if flow is Flow.CONTINUE:
                return flow, self.next
            return flow, None

        scope = grammar.rules[rule.parent]  # type: ignore[index]
        status.depth[scope.name] += 1
        flow = Flow.CONTINUE
        if status.depth[scope.name] <= status.maxdepth_of(scope):
            flow = yield rule._build(status)
        status.depth[scope.name] -= 1
        if flow is Flow.STOP:
            return flow, None
        return Flow.CONTINUE, self.next

    def __repr__(self) -> str:
        return f"Reference({self.label!r})"


class Rule:
    def __init__(
        self,
        index: int,
        name: str,
        parent: int | None,
        weight: float = 1.0,
        maxdepth: int | None = None,
        fallback: str | None = None,
    ) -> None:
        self.index = index
        self.name = name
        self.parent = parent
        self.weight = weight
        self.maxdepth = maxdepth
        self.fallback = fallback
        self.children: dict[str, list[int]] = {}
        self.head: Node | None = None

    def set_sequence(self, nodes: Iterable[Node]) -> None:
        prev: Node | None = None
        for node in nodes:
            if prev is None:
                self.head = node
            else:
                prev.next = node
            prev = node

    def _build(
        self, status: BuildStatus, fallback: bool = True
    ) -> Generator[_Walk, Any, Flow]:
        """Build the body, or the fallback target once when too deep.

        A fallback target that is itself too deep builds nothing, so
        fallback cycles end.
        """
        if self.head is None:
            return Flow.CONTINUE
        flow = Flow.CONTINUE
        if status.push_rule(self):
            node: Node | None = self.head
            while node is not None:
                flow, node = yield node._build(status)
                if flow is not Flow.CONTINUE:
                    break
            if flow is Flow.BREAK:
                flow = Flow.CONTINUE
        elif fallback and self.fallback is not None:
            target = status.grammar.find(self.index, self.fallback, status.rng)
            if target is None:
                raise BuildError(
                    f"label [{self.fallback}] not found in rule {self.name}"
                )
            logger.debug("rule %s too deep, continuing with %s", self.name, self.fallback)
            flow = yield target._build(status, fallback=False)
        status.pop_rule()
        return flow

    def __repr__(self) -> str:
        return f"Rule({self.name!r}, weight={self.weight:g}, maxdepth={self.maxdepth})"


# -------------------------
# Grammar
# -------------------------


class Grammar:
    """Arena of compiled rules; index 0 is the root scope."""

    def __init__(self) -> None:
        self.rules: list[Rule] = [Rule(0, ROOT_NAME, None)]

    @property
    def root(self) -> Rule:
        return self.rules[0]

    def add_rule(self, parent: int, options: parser.RuleOptions, name: str) -> Rule:
        rule = Rule(
            len(self.rules),
            name,
            parent,
            weight=options.weight,
            maxdepth=options.maxdepth,
            fallback=options.fallback,
        )
        self.rules.append(rule)
        self.rules[parent].children.setdefault(name, []).append(rule.index)
        return rule

    def find(self, scope: int | None, label: str, rng: RandomGenerator) -> Rule | None:
        """Resolve ``label`` from ``scope`` outward, choosing among same-named rules by weight."""
        while scope is not None:
            rule = self.rules[scope]
            found = rule.children.get(label)
            if found:
                if len(found) == 1:
                    return self.rules[found[0]]
                candidates = [self.rules[i] for i in found]
                total = sum(r.weight for r in candidates)
                draw = rng.next() * total
                acc = 0.0
                for candidate in candidates:
                    acc += candidate.weight
                    if draw < acc:
                        return candidate
                return candidates[-1]
            scope = rule.parent
        return None

    def __len__(self) -> int:
        return len(self.rules)


class _Compiler:
    def __init__(
        self, grammar: Grammar, criteria: Criteria, variables: dict[str, str]
    ) -> None:
        self.grammar = grammar
        self.criteria = criteria
        self.variables = variables

    def collect_defines(self, body: Iterable[parser.Statement]) -> None:
        for stmt in body:
            if isinstance(stmt, parser.Define):
                self.variables[stmt.name] = stmt.value
            elif isinstance(stmt, parser.RuleDef):
                self.collect_defines(stmt.body)

    def compile_body(self, rule: Rule, body: Iterable[parser.Statement]) -> None:
        nodes: list[Node] = []
        for stmt in body:
            if isinstance(stmt, parser.Setting):
                self.criteria.set(stmt.key, stmt.value)
            elif isinstance(stmt, parser.RuleDef):
                for variant in parser.expand_alternatives(stmt):
                    child = self.grammar.add_rule(rule.index, variant.options, variant.name)
                    self.compile_body(child, variant.body)
            elif isinstance(stmt, parser.Transform):
                delta = parse_operator(stmt.ops, self.variables, self.criteria.pool)
                nodes.append(Operator(stmt.repeat, stmt.ops, delta))
            elif isinstance(stmt, parser.Reference):
                nodes.append(Reference(stmt.name, stmt.param, stmt.option))
        rule.set_sequence(nodes)


# -------------------------
# Build state
# -------------------------


@dataclass(frozen=True)
class BuildEvent:
    """One emitted object, detached from the running build."""

    matrix: AffineMatrix
    color: RGBA
    label: str
    param: str | None = None
    option: str | None = None

    @property
    def position(self) -> tuple[float, float, float]:
        return self.matrix.translation_part

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "option": self.option,
            "param": self.param,
            "color": list(self.color),
            "matrix": self.matrix.to_list(),
        }


@dataclass
class _Frame:
    matrix: AffineMatrix | None
    color: Color | None
    rule: Rule


class BuildStatus:
    """Traversal state handed to the build callback.

    ``matrix``, ``color``, ``label``, ``param`` and ``option`` describe the
    object being emitted; they are reused, so use ``snapshot()`` to keep one.
    """

    def __init__(
        self,
        grammar: Grammar,
        criteria: Criteria,
        rng: RandomGenerator,
        callback: BuildCallback,
        variables: Mapping[str, str] | None = None,
    ) -> None:
        self.grammar = grammar
        self.criteria = criteria
        self.rng = rng
        self.variables: Mapping[str, str] = variables or {}
        self.matrix = AffineMatrix()
        self.color = Color(0, 1, 1, 1)
        self.label: str | None = None
        self.param: str | None = None
        self.option: str | None = None
        self.object_count = 0
        self.rule = grammar.root
        self.result: Any = None
        self.depth: defaultdict[str, int] = defaultdict(int)
        self._frames: list[_Frame] = []
        self._callback = callback
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop_building(self) -> None:
        """Ask the build to end after the current callback returns."""
        self._stopped = True

    def maxdepth_of(self, rule: Rule) -> int:
        if rule.maxdepth is None:
            return self.criteria.maxdepth
        return rule.maxdepth

    def push(self) -> None:
        self._frames.append(_Frame(self.matrix.copy(), self.color.copy(), self.rule))

    def pop(self) -> None:
        frame = self._frames.pop()
        if frame.matrix is not None:
            self.matrix.copy_from(frame.matrix)
        if frame.color is not None:
            self.color.copy_from(frame.color)
        self.rule = frame.rule

    def push_rule(self, rule: Rule) -> bool:
        """Enter ``rule``; False when that rule name is already at its depth limit."""
        self._frames.append(_Frame(None, None, self.rule))
        self.rule = rule
        self.depth[rule.name] += 1
        return self.depth[rule.name] <= self.maxdepth_of(rule)

    def pop_rule(self) -> None:
        self.depth[self.rule.name] -= 1
        self.pop()

    def accepts(self) -> bool:
        det = self.matrix.det3()
        return self.criteria.min3 < det < self.criteria.max3

    def new_object(self, label: str, param: str | None, option: str | None) -> Flow:
        if self.object_count >= self.criteria.maxobjects:
            return Flow.STOP
        if not self.accepts():
            return Flow.BREAK
        self.label = label
        self.param = param
        self.option = option
        self.object_count += 1
        ret = self._callback(self)
        if ret is not None:
            self.result = ret
        if self._stopped:
            return Flow.STOP
        if self.object_count >= self.criteria.maxobjects:
            logger.debug("object limit %d reached", self.criteria.maxobjects)
            return Flow.STOP
        return Flow.CONTINUE

    def rgba(self) -> RGBA:
        """Current colour as RGBA; draws from the colour pool if one is bound."""
        return self.color.to_rgba(self.rng)

    def skip_color(self) -> None:
        """Consume the random draws ``rgba()`` would, without making a colour."""
        self.color.skip(self.rng)

    def snapshot(self) -> BuildEvent:
        return BuildEvent(
            matrix=self.matrix.copy(),
            color=self.rgba(),
            label=self.label or "",
            param=self.param,
            option=self.option,
        )


def _collect(status: BuildStatus) -> None:
    if status.result is None:
        status.result = []
    status.result.append(status.snapshot())


# -------------------------
# Structure
# -------------------------


class Structure:
    """A compiled script.

    Compile once, then call ``build()`` as often as needed; each build
    reseeds the generator so repeated builds emit identical objects.
    Builds share ``rng`` and must not overlap.
    """

    def __init__(
        self,
        script: str | None = None,
        criteria: Mapping[str, Any] | None = None,
        seed: int | None = None,
    ) -> None:
        self._overrides = dict(criteria or {})
        self.criteria = Criteria.from_mapping(self._overrides)
        self.variables: dict[str, str] = {}
        self.grammar: Grammar | None = None
        self.rng = RandomGenerator(0)
        self.seed = 0
        if script is not None:
            self.compile(script, seed)

    @property
    def rule_count(self) -> int:
        """Number of named rules (the root scope is not counted)."""
        return 0 if self.grammar is None else len(self.grammar) - 1

    def compile(self, script: str, seed: int | None = None) -> Structure:
        statements = parser.parse_script(script)
        self.criteria = Criteria.from_mapping(self._overrides)
        self.variables = {}
        grammar = Grammar()
        compiler = _Compiler(grammar, self.criteria, self.variables)
        compiler.collect_defines(statements)
        compiler.compile_body(grammar.root, statements)
        self.grammar = grammar
        self.seed = time_seed() if seed is None else seed
        logger.debug("compiled %d rules", self.rule_count)
        return self

    def build(self, callback: BuildCallback | None = None) -> Any:
        """Walk the grammar, calling ``callback`` for every emitted object.

        Returns the status ``result``: the last non-None value the callback
        returned, or with no callback the list of ``BuildEvent``s.
        """
        if self.grammar is None:
            raise BuildError("compile() must be called before build()")
        seed = self.criteria.seed if self.criteria.seed is not None else self.seed
        self.rng.seed(seed)
        logger.debug("building with seed %d", seed)
        status = BuildStatus(
            self.grammar,
            self.criteria,
            self.rng,
            callback or _collect,
            self.variables,
        )
        _drive(self.grammar.root._build(status))
        logger.debug("built %d objects", status.object_count)
        if callback is None and status.result is None:
            return []
        return status.result


def compile(
    script: str,
    seed: int | None = None,
    criteria: Mapping[str, Any] | None = None,
) -> Structure:
    """Compile ``script`` into a ``Structure`` ready to build."""
    return Structure(script, criteria=criteria, seed=seed)
