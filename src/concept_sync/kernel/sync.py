"""
Sync declarations.

A sync is a plain function whose parameters name the pattern variables it
uses. The engine calls it with fresh `Var` tokens and gets back a SyncSpec:

    @sync
    def logout_request(request, session, user):
        return SyncSpec(
            when=actions((Requesting.request, {"path": "/logout", "session": session}, {"request": request})),
            where=lambda frames: frames.query(Sessioning._get_user, {"session": session}, {"user": user}),
            then=actions((Sessioning.delete, {"session": session})),
        )

Because the tokens are created per instantiation, two syncs that both call
a parameter `user` can never see each other's bindings.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Union, overload

from .errors import SyncDefinitionError
from .frames import Frames
from .patterns import ActionPattern, MethodRef, Var
from .schema import SyncSummary


WhereFn = Callable[[Frames], Union[Frames, Awaitable[Frames]]]


@dataclass(frozen=True)
class SyncSpec:
    when: Tuple[ActionPattern, ...]
    then: Tuple[ActionPattern, ...]
    where: Optional[WhereFn] = None


SyncFn = Callable[..., SyncSpec]


class SyncDefinition:
    """A registered sync: a name plus the function that builds its spec."""

    def __init__(self, fn: SyncFn, name: Optional[str] = None) -> None:
        self.fn = fn
        self.name = name or fn.__name__
        self._params: List[str] = []
        for param in inspect.signature(fn).parameters.values():
            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                raise SyncDefinitionError(
                    f"Sync {self.name} must name its variables explicitly, not *{param.name}"
                )
            self._params.append(param.name)

        sample = self.instantiate()
        self._when: Tuple[MethodRef, ...] = tuple(p.method for p in sample.when)
        self._then: Tuple[MethodRef, ...] = tuple(p.method for p in sample.then)
        self._has_where = sample.where is not None

    def __repr__(self) -> str:
        return f"<sync {self.name}>"

    @property
    def variable_names(self) -> List[str]:
        return list(self._params)

    def instantiate(self) -> SyncSpec:
        """Build the spec with a fresh set of pattern variables."""
        spec = self.fn(*(Var(name) for name in self._params))
        if not isinstance(spec, SyncSpec):
            raise SyncDefinitionError(
                f"Sync {self.name} returned {type(spec).__name__}, expected SyncSpec"
            )
        if not spec.when:
            raise SyncDefinitionError(f"Sync {self.name} has an empty when clause")
        if not spec.then:
            raise SyncDefinitionError(f"Sync {self.name} has an empty then clause")
        for pattern in (*spec.when, *spec.then):
            if not isinstance(pattern, ActionPattern):
                raise SyncDefinitionError(
                    f"Sync {self.name} clauses must be built with actions(...)"
                )
        if spec.where is not None and not callable(spec.where):
            raise SyncDefinitionError(f"Sync {self.name} where clause is not callable")
        return spec

    def when_methods(self) -> Tuple[MethodRef, ...]:
        return self._when

    def then_methods(self) -> Tuple[MethodRef, ...]:
        return self._then

    def methods(self) -> Tuple[MethodRef, ...]:
        return self._when + self._then

    def listens_to(self, ref: MethodRef) -> bool:
        return ref in self._when

    def summary(self) -> SyncSummary:
        return SyncSummary(
            name=self.name,
            when=[str(ref) for ref in self._when],
            then=[str(ref) for ref in self._then],
            has_where=self._has_where,
        )


@overload
def sync(fn: SyncFn) -> SyncDefinition: ...
@overload
def sync(*, name: str) -> Callable[[SyncFn], SyncDefinition]: ...


def sync(fn: Optional[SyncFn] = None, *, name: Optional[str] = None) -> Any:
    """Declare a sync. Usable bare (`@sync`) or with a name (`@sync(name=...)`)."""
    if fn is not None:
        return SyncDefinition(fn, name=name)

    def decorator(inner: SyncFn) -> SyncDefinition:
        return SyncDefinition(inner, name=name)

    return decorator
