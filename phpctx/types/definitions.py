from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from phpctx import Fqn
from phpctx.types.frame import BracketFrame


@dataclass(frozen=True)
class TypeRef:
    """A class type as written at its point of use plus its resolved name."""
    written: str
    fqn: Optional[Fqn]


@dataclass
class ClassDefinition:
    name: str
    namespace: Optional[str] = None
    extends: Optional[Fqn] = None
    implements: List[Fqn] = field(default_factory=list)
    properties: Dict[str, Optional[TypeRef]] = field(default_factory=dict)
    body: Optional[BracketFrame] = field(default=None, repr=False)

    @property
    def fqn(self) -> Fqn:
        if self.namespace:
            return f"{self.namespace}\\{self.name}"
        return self.name


@dataclass
class FunctionDefinition:
    name: Optional[str]  # None for closures and arrow functions
    body: Optional[BracketFrame] = field(default=None, repr=False)


@dataclass
class Scope:
    """Variable bindings of one function body, closure or arrow function.

    A None value records that the nearest assignment could not be typed, which
    hides any earlier binding of the same name.
    """

    bindings: Dict[str, Optional[TypeRef]] = field(default_factory=dict)
    frame: Optional[BracketFrame] = field(default=None, repr=False)
    # the scope to restore when this one ends; never read through
    parent: Optional[Scope] = field(default=None, repr=False)
    # arrow functions end at a separator or closer of this frame
    arrow_container: Optional[BracketFrame] = field(default=None, repr=False)
    is_arrow: bool = False

    def lookup(self, name: str) -> Optional[TypeRef]:
        return self.bindings.get(name)

    def bind(self, name: str, ref: Optional[TypeRef]) -> None:
        self.bindings[name] = ref
