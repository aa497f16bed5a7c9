"""
Frames: the candidate binding environments of one sync evaluation.

A Frame maps pattern variables to values and never changes; binding produces
a new Frame. Frames is the ordered collection of surviving candidates. An
empty Frames is a normal outcome meaning "nothing to do": every operation
passes it through silently, and the then clause fires zero times.

The where clause of a sync refines Frames by querying concepts:

    frames = await frames.query(Sessioning._get_user, {"session": session}, {"user": user})
    frames = await frames.query(Wishlist._get_places, {"user": user}, {"place": place})
    return frames.collect_as([place], results)

Each query fans a parent frame out into one child per matching output record,
so joins and existence checks fall out of plain unification.
"""

from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Union,
    overload,
)

from .errors import WhereClauseError
from .patterns import MethodRef, Pattern, Var
from .schema import MethodKind

if TYPE_CHECKING:
    from .registry import ConceptRegistry


_UNBOUND = object()


class Frame(Mapping[Var, Any]):
    """An immutable set of variable bindings."""

    __slots__ = ("_bindings",)

    def __init__(self, bindings: Optional[Mapping[Var, Any]] = None) -> None:
        self._bindings: Dict[Var, Any] = dict(bindings or {})

    def __getitem__(self, var: Var) -> Any:
        return self._bindings[var]

    def __iter__(self) -> Iterator[Var]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        inner = ", ".join(f"{var!r}: {value!r}" for var, value in self._bindings.items())
        return f"Frame({{{inner}}})"

    def bind(self, var: Var, value: Any) -> Optional["Frame"]:
        """Bind `var`, or check it against its existing binding.

        Returns None when `var` is already bound to a different value.
        """
        current = self._bindings.get(var, _UNBOUND)
        if current is _UNBOUND:
            bindings = dict(self._bindings)
            bindings[var] = value
            return Frame(bindings)
        if current == value:
            return self
        return None

    def names(self) -> Dict[str, Any]:
        """Bindings keyed by variable name, for logging."""
        return {var.name: value for var, value in self._bindings.items()}


class Frames(Sequence[Frame]):
    """Ordered, immutable collection of candidate frames."""

    __slots__ = ("_frames", "_registry")

    def __init__(
        self,
        *frames: Mapping[Var, Any],
        registry: Optional["ConceptRegistry"] = None,
    ) -> None:
        self._frames: List[Frame] = [
            frame if isinstance(frame, Frame) else Frame(frame) for frame in frames
        ]
        self._registry = registry

    @classmethod
    def from_iterable(
        cls,
        frames: Iterable[Mapping[Var, Any]],
        registry: Optional["ConceptRegistry"] = None,
    ) -> "Frames":
        return cls(*frames, registry=registry)

    def _derive(self, frames: Iterable[Frame]) -> "Frames":
        return Frames.from_iterable(frames, registry=self._registry)

    @overload
    def __getitem__(self, index: int) -> Frame: ...
    @overload
    def __getitem__(self, index: slice) -> "Frames": ...

    def __getitem__(self, index: Union[int, slice]) -> Union[Frame, "Frames"]:
        if isinstance(index, slice):
            return self._derive(self._frames[index])
        return self._frames[index]

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self._frames)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Frames):
            return self._frames == other._frames
        if isinstance(other, list):
            return self._frames == other
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Frames({', '.join(repr(frame) for frame in self._frames)})"

    @property
    def registry(self) -> Optional["ConceptRegistry"]:
        return self._registry

    async def query(
        self,
        method: MethodRef,
        input: Mapping[str, Any],
        output: Mapping[str, Any],
    ) -> "Frames":
        """Join every frame with the records a concept query returns.

        Parents whose query returns nothing that unifies with `output`
        disappear; parents with several matches fan out in place.
        """
        if method.kind != MethodKind.QUERY:
            raise WhereClauseError(f"{method} is an action; where clauses may only query")
        if not self._frames:
            return self._derive([])
        if self._registry is None:
            raise WhereClauseError(f"Cannot query {method}: frames are not bound to a registry")

        resolved = self._registry.resolve(method)
        if resolved.kind != MethodKind.QUERY:
            raise WhereClauseError(f"{method} is registered as an action")

        input_pattern = Pattern(input)
        output_pattern = Pattern(output)
        results: List[Frame] = []
        for frame in self._frames:
            rows = await resolved(input_pattern.substitute(frame))
            for row in rows:
                extended = output_pattern.match(row, frame)
                if extended is not None:
                    results.append(extended)
        return self._derive(results)

    def filter(self, predicate: Callable[[Frame], Any]) -> "Frames":
        return self._derive(frame for frame in self._frames if predicate(frame))

    def collect_as(self, variables: Sequence[Var], result: Var) -> "Frames":
        """Collapse all frames into one, gathering `variables` into `result`.

        The surviving frame keeps only the bindings every frame agrees on;
        `result` holds one `{name: value}` record per input frame, in order.
        """
        if not self._frames:
            return self._derive([])

        collected = set(variables)
        collected.add(result)
        first = self._frames[0]
        common = {var: value for var, value in first.items() if var not in collected}
        for frame in self._frames[1:]:
            for var in list(common):
                if var not in frame or frame[var] != common[var]:
                    del common[var]

        rows = [
            {var.name: frame[var] for var in variables if var in frame}
            for frame in self._frames
        ]
        common[result] = rows
        return self._derive([Frame(common)])
