from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional

from .errors import ContractViolation, SyncDefinitionError, UnknownMethodError
from .patterns import MethodRef
from .schema import MethodKind


ConceptFn = Callable[..., Any]

_KIND_ATTR = "__concept_kind__"


def action(fn: ConceptFn) -> ConceptFn:
    """Mark a concept method as an action: one record in, one record out."""
    setattr(fn, _KIND_ATTR, MethodKind.ACTION)
    return fn


def query(fn: ConceptFn) -> ConceptFn:
    """Mark a concept method as a query: one record in, a list of records out."""
    setattr(fn, _KIND_ATTR, MethodKind.QUERY)
    return fn


@dataclass
class ConceptMethod:
    ref: MethodRef
    kind: MethodKind
    handler: ConceptFn
    # None when the handler takes **kwargs and should see the whole record
    accepts: Optional[FrozenSet[str]]
    required: FrozenSet[str]

    @classmethod
    def wrap(cls, ref: MethodRef, kind: MethodKind, handler: ConceptFn) -> "ConceptMethod":
        sig = inspect.signature(handler)
        accepts: Optional[set] = set()
        required = set()
        for param in sig.parameters.values():
            if param.kind == inspect.Parameter.VAR_KEYWORD:
                accepts = None
            elif param.kind in (
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
                inspect.Parameter.KEYWORD_ONLY,
            ):
                if accepts is not None:
                    accepts.add(param.name)
                if param.default is inspect.Parameter.empty:
                    required.add(param.name)
        return cls(
            ref=ref,
            kind=kind,
            handler=handler,
            accepts=frozenset(accepts) if accepts is not None else None,
            required=frozenset(required),
        )

    async def __call__(self, record: Mapping[str, Any]) -> Any:
        missing = self.required.difference(record)
        if missing:
            raise ContractViolation(f"{self.ref} missing inputs: {', '.join(sorted(missing))}")

        if self.accepts is None:
            kwargs = dict(record)
        else:
            kwargs = {key: value for key, value in record.items() if key in self.accepts}

        result = self.handler(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        return self._normalize(result)

    def _normalize(self, result: Any) -> Any:
        if self.kind == MethodKind.ACTION:
            if result is None:
                return {}
            if not isinstance(result, dict):
                raise ContractViolation(
                    f"Action {self.ref} returned {type(result).__name__}, expected a record"
                )
            return result

        if not isinstance(result, (list, tuple)):
            raise ContractViolation(
                f"Query {self.ref} returned {type(result).__name__}, expected a list of records"
            )
        rows = list(result)
        for row in rows:
            if not isinstance(row, dict):
                raise ContractViolation(f"Query {self.ref} returned a non-record row: {row!r}")
            if "error" in row:
                raise ContractViolation(f"Query {self.ref} returned an error row; queries cannot fail")
        return rows


class ConceptRegistry:
    """Concept instances and their actions and queries, by name."""

    def __init__(self) -> None:
        self._concepts: Dict[str, Any] = {}
        self._methods: Dict[MethodRef, ConceptMethod] = {}
        self._frozen = False

    @classmethod
    def from_concepts(cls, concepts: Mapping[str, Any]) -> "ConceptRegistry":
        registry = cls()
        for name, instance in concepts.items():
            registry.register(name, instance)
        return registry

    def register(self, name: str, instance: Any) -> None:
        """Register every @action and @query method of a concept instance."""
        if self._frozen:
            raise RuntimeError("Registry is frozen; build a new one to add concepts")
        if name in self._concepts:
            raise SyncDefinitionError(f"Concept already registered: {name}")

        self._concepts[name] = instance
        for attr in dir(type(instance)):
            member = getattr(type(instance), attr, None)
            kind = getattr(member, _KIND_ATTR, None)
            if kind is None:
                continue

            is_query_name = attr.startswith("_")
            if kind == MethodKind.QUERY and not is_query_name:
                raise SyncDefinitionError(
                    f"Query {name}.{attr} must be named with a leading underscore"
                )
            if kind == MethodKind.ACTION and is_query_name:
                raise SyncDefinitionError(
                    f"Action {name}.{attr} must not start with an underscore"
                )

            ref = MethodRef(name, attr)
            self._methods[ref] = ConceptMethod.wrap(ref, kind, getattr(instance, attr))

    def freeze(self) -> "ConceptRegistry":
        self._frozen = True
        return self

    def resolve(self, ref: MethodRef) -> ConceptMethod:
        try:
            return self._methods[ref]
        except KeyError:
            raise UnknownMethodError(f"No concept method registered as {ref}") from None

    def get(self, name: str) -> Any:
        try:
            return self._concepts[name]
        except KeyError:
            raise UnknownMethodError(f"No concept registered as {name}") from None

    def __contains__(self, ref: object) -> bool:
        return ref in self._methods

    def concepts(self) -> List[str]:
        return list(self._concepts)

    def methods(self, concept: Optional[str] = None) -> List[ConceptMethod]:
        return [
            method
            for ref, method in self._methods.items()
            if concept is None or ref.concept == concept
        ]

    def refs(self) -> Iterable[MethodRef]:
        return self._methods.keys()
