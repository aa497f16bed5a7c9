"""
Patterns: the vocabulary syncs are written in.

A sync names concept methods symbolically (`Sessioning._get_user`) and
describes the records it expects with patterns whose fields are literals,
pattern variables, or the `ANY` wildcard. Every field is classified once,
when the pattern is compiled, so matching never inspects raw values to decide
what a field means.

Example:
    Requesting = concept("Requesting")
    request, path = Var("request"), Var("path")

    when = actions(
        (Requesting.request, {"path": "/logout"}, {"request": request}),
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from .errors import SyncDefinitionError, UnboundVariableError
from .schema import MethodKind

if TYPE_CHECKING:
    from .frames import Frame
    from .schema import CompletionEvent


class Var:
    """A pattern variable. Compared by identity, never by name."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"?{self.name}"


class _Any:
    _instance: Optional["_Any"] = None

    def __new__(cls) -> "_Any":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ANY"


ANY = _Any()


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Variable:
    var: Var


@dataclass(frozen=True)
class Wildcard:
    pass


Term = Union[Literal, Variable, Wildcard]

WILDCARD = Wildcard()


def compile_term(value: Any) -> Term:
    if isinstance(value, Var):
        return Variable(value)
    if value is ANY:
        return WILDCARD
    return Literal(value)


class Pattern:
    """A compiled record pattern: field name -> term."""

    __slots__ = ("_fields",)

    def __init__(self, fields: Optional[Mapping[str, Any]] = None) -> None:
        self._fields: Tuple[Tuple[str, Term], ...] = tuple(
            (name, compile_term(value)) for name, value in (fields or {}).items()
        )

    def __iter__(self) -> Iterator[Tuple[str, Term]]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}={_term_repr(term)}" for name, term in self._fields)
        return "{" + inner + "}"

    def mentions(self, field: str) -> bool:
        return any(name == field for name, _ in self._fields)

    def variables(self) -> List[Var]:
        return [term.var for _, term in self._fields if isinstance(term, Variable)]

    def match(self, record: Mapping[str, Any], frame: "Frame") -> Optional["Frame"]:
        """Unify this pattern with a concrete record, extending `frame`.

        Returns None when a literal differs, a required field is missing, or a
        variable is already bound to a different value.
        """
        for name, term in self._fields:
            if isinstance(term, Wildcard):
                continue
            if name not in record:
                return None
            value = record[name]
            if isinstance(term, Literal):
                if value != term.value:
                    return None
                continue
            frame = frame.bind(term.var, value)
            if frame is None:
                return None
        return frame

    def substitute(self, frame: "Frame") -> Dict[str, Any]:
        """Build a concrete record from this pattern and the frame's bindings."""
        record: Dict[str, Any] = {}
        for name, term in self._fields:
            if isinstance(term, Literal):
                record[name] = term.value
            elif isinstance(term, Variable):
                if term.var not in frame:
                    raise UnboundVariableError(term.var.name, name)
                record[name] = frame[term.var]
        return record


def _term_repr(term: Term) -> str:
    if isinstance(term, Literal):
        return repr(term.value)
    if isinstance(term, Variable):
        return repr(term.var)
    return "ANY"


@dataclass(frozen=True)
class MethodRef:
    """Symbolic reference to a concept method, resolved by the registry."""

    concept: str
    method: str

    @property
    def kind(self) -> MethodKind:
        # Queries are named with a leading underscore: Sessioning._get_user
        if self.method.startswith("_"):
            return MethodKind.QUERY
        return MethodKind.ACTION

    def __str__(self) -> str:
        return f"{self.concept}.{self.method}"


class ConceptHandle:
    """Attribute access yields method references: `Sessioning.create`."""

    def __init__(self, name: str) -> None:
        self._name = name

    def __getattr__(self, method: str) -> MethodRef:
        if method.startswith("__"):
            raise AttributeError(method)
        return MethodRef(self._name, method)

    def __repr__(self) -> str:
        return f"<concept {self._name}>"


def concept(name: str) -> ConceptHandle:
    return ConceptHandle(name)


@dataclass(frozen=True)
class ActionPattern:
    """One (method, input pattern, output pattern) triple."""

    method: MethodRef
    input: Pattern
    output: Optional[Pattern] = None

    def match_event(self, event: "CompletionEvent", frame: "Frame") -> List["Frame"]:
        """Frames that extend `frame` by matching this triple against `event`."""
        if event.concept != self.method.concept or event.method != self.method.method:
            return []
        output = self.output if self.output is not None else Pattern()
        # Error completions only match patterns that ask for the error.
        if event.is_error and not output.mentions("error"):
            return []
        matched = self.input.match(event.input, frame)
        if matched is None:
            return []
        results = []
        for record in event.output_records():
            extended = output.match(record, matched)
            if extended is not None:
                results.append(extended)
        return results

    def __repr__(self) -> str:
        if self.output is None:
            return f"[{self.method} {self.input!r}]"
        return f"[{self.method} {self.input!r} -> {self.output!r}]"


PatternTriple = Union[
    Tuple[MethodRef, Mapping[str, Any]],
    Tuple[MethodRef, Mapping[str, Any], Optional[Mapping[str, Any]]],
]


def actions(*triples: PatternTriple) -> Tuple[ActionPattern, ...]:
    """Compile `(method, input[, output])` triples for a when or then clause."""
    compiled = []
    for triple in triples:
        if not isinstance(triple, (tuple, list)) or len(triple) not in (2, 3):
            raise SyncDefinitionError(
                f"Expected (method, input[, output]) triple, got {triple!r}"
            )
        method = triple[0]
        if not isinstance(method, MethodRef):
            raise SyncDefinitionError(f"Expected a concept method reference, got {method!r}")
        output = triple[2] if len(triple) == 3 else None
        compiled.append(
            ActionPattern(
                method=method,
                input=Pattern(triple[1]),
                output=Pattern(output) if output is not None else None,
            )
        )
    return tuple(compiled)
