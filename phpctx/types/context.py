from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from phpctx import Fqn


@dataclass
class ParamContext:
    index: int = 0
    is_array: bool = False
    is_key: bool = False
    key: Optional[str] = None
    keys: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "isArray": self.is_array,
            "isKey": self.is_key,
            "key": self.key,
            "keys": list(self.keys),
        }


@dataclass
class CompletionContext:
    """What the user is invoking at the cursor.

    The class_definition/class_extends/class_implements/function_definition
    fields describe the code *around* the cursor and are independent of the
    call being completed.
    """

    function: str
    class_name: Optional[str] = None
    fqn: Optional[Fqn] = None
    class_definition: Optional[Fqn] = None
    class_extends: Optional[Fqn] = None
    class_implements: List[Fqn] = field(default_factory=list)
    function_definition: Optional[str] = None
    additional_info: Optional[Dict[str, Any]] = None
    param: ParamContext = field(default_factory=ParamContext)
    parameters: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class": self.class_name,
            "fqn": self.fqn,
            "function": self.function,
            "classDefinition": self.class_definition,
            "classExtends": self.class_extends,
            "classImplements": list(self.class_implements),
            "functionDefinition": self.function_definition,
            "additionalInfo": self.additional_info,
            "param": self.param.to_dict(),
            "parameters": list(self.parameters),
        }
