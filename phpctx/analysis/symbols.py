"""
Scope & Symbol Table Builder

A single forward pass over the token list that records what is statically
visible at the end of the buffer:

- use imports (alias -> fully-qualified name), including group imports
- the current namespace
- the innermost class-like definition whose body is still open
- the innermost named function/method whose body is still open
- variable bindings of the innermost scope, and typed properties of the class

Bindings live in Scope objects. A closure, ``function`` or ``fn``, starts with
an empty scope (plus whatever a ``use (...)`` clause captures) and its scope is
dropped when its body or expression ends, so nothing leaks in or out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from phpctx import Fqn, TokenIndex
from phpctx.reader.brackets import BracketTracker
from phpctx.types.definitions import ClassDefinition, FunctionDefinition, Scope, TypeRef
from phpctx.types.frame import BracketFrame
from phpctx.types.token import Token

logger = logging.getLogger(__name__)


SCALAR_TYPES = frozenset({
    "int", "integer", "float", "double", "string", "bool", "boolean", "array",
    "callable", "iterable", "object", "mixed", "void", "null", "false",
    "true", "never", "resource",
})

MODIFIERS = frozenset({
    "public", "protected", "private", "var", "static", "readonly", "final",
    "abstract",
})

CLASS_LIKE = ("class", "interface", "trait", "enum")


def resolve_class_name(
    name: str,
    uses: Dict[str, Fqn],
    current: Optional[ClassDefinition] = None,
) -> Optional[Fqn]:
    """Resolve a class name as written against the buffer's imports.

    Unknown names are returned as written; scalar and pseudo types resolve
    to None.
    """
    if name.startswith("\\"):
        return name.strip("\\") or None
    lowered = name.lower()
    if lowered in ("self", "static"):
        return current.fqn if current else None
    if lowered == "parent":
        return current.extends if current else None
    if lowered in SCALAR_TYPES:
        return None
    head, sep, rest = name.rstrip("\\").partition("\\")
    if head in uses:
        return uses[head] + sep + rest
    return name.rstrip("\\") or None


def type_ref(
    name: str,
    uses: Dict[str, Fqn],
    current: Optional[ClassDefinition] = None,
) -> Optional[TypeRef]:
    fqn = resolve_class_name(name, uses, current)
    if fqn is None:
        return None
    return TypeRef(written=name, fqn=fqn)


@dataclass
class SymbolTable:
    uses: Dict[str, Fqn] = field(default_factory=dict)
    namespace: Optional[str] = None
    class_definition: Optional[ClassDefinition] = None
    function_definition: Optional[str] = None
    scope: Scope = field(default_factory=Scope)
    classes: List[ClassDefinition] = field(default_factory=list)

    def resolve(self, name: str) -> Optional[TypeRef]:
        return type_ref(name, self.uses, self.class_definition)

    def variable_type(self, variable: str) -> Optional[TypeRef]:
        return self.scope.lookup(variable)

    def property_type(self, prop: str) -> Optional[TypeRef]:
        if self.class_definition is None:
            return None
        return self.class_definition.properties.get(prop)


class SymbolTableBuilder:
    def __init__(self, tokens: Sequence[Token], tracker: BracketTracker):
        self.tokens = tokens
        self.tracker = tracker
        self.uses: Dict[str, Fqn] = {}
        self.namespace: Optional[str] = None
        self.classes: List[ClassDefinition] = []
        self.class_stack: List[ClassDefinition] = []
        self.function_stack: List[FunctionDefinition] = []
        self.scope = Scope()
        self._pending_classes: Dict[TokenIndex, ClassDefinition] = {}
        self._pending_bodies: Dict[TokenIndex, Tuple[FunctionDefinition, Scope]] = {}

    @property
    def current_class(self) -> Optional[ClassDefinition]:
        return self.class_stack[-1] if self.class_stack else None

    def _ref(self, name: str) -> Optional[TypeRef]:
        return type_ref(name, self.uses, self.current_class)

    def _in_class_body(self, index: TokenIndex) -> bool:
        cls = self.current_class
        return cls is not None and self.tracker.enclosing(index) is cls.body

    def _is(self, index: TokenIndex, kind: str, text: Optional[str] = None) -> bool:
        if index >= len(self.tokens):
            return False
        tok = self.tokens[index]
        return tok.kind == kind and (text is None or tok.text == text)

    # --- main pass ---

    def build(self) -> SymbolTable:
        tokens = self.tokens
        i = 0
        while i < len(tokens):
            self._close_scopes(i)
            tok = tokens[i]
            frame = self.tracker.frame_opened_at(i)
            if frame is not None:
                self._enter_frame(i, frame)
            elif tok.kind == "keyword":
                i = self._keyword(i)
                continue
            elif tok.kind == "identifier" and tok.text.lower() == "catch":
                self._catch(i)
            elif tok.kind == "variable":
                self._variable(i)
            i += 1

        cls = self.current_class
        func = self.function_stack[-1] if self.function_stack else None
        return SymbolTable(
            uses=dict(self.uses),
            namespace=self.namespace,
            class_definition=cls,
            function_definition=func.name if func else None,
            scope=self.scope,
            classes=self.classes,
        )

    def _close_scopes(self, i: TokenIndex) -> None:
        tok = self.tokens[i]
        while True:
            scope = self.scope
            if scope.is_arrow:
                container = scope.arrow_container
                ends = (container is not None and container.close_index == i) or (
                    tok.is_op(",", ";") and self.tracker.enclosing(i) is container
                )
            else:
                ends = scope.frame is not None and scope.frame.close_index == i
            if not ends or scope.parent is None:
                break
            self.scope = scope.parent
        while self.class_stack and self.class_stack[-1].body.close_index == i:
            self.class_stack.pop()
        while self.function_stack and self.function_stack[-1].body.close_index == i:
            self.function_stack.pop()

    def _enter_frame(self, i: TokenIndex, frame: BracketFrame) -> None:
        cls = self._pending_classes.pop(i, None)
        if cls is not None:
            cls.body = frame
            self.class_stack.append(cls)
            return
        pending = self._pending_bodies.pop(i, None)
        if pending is not None:
            func, scope = pending
            func.body = frame
            scope.frame = frame
            scope.parent = self.scope
            self.scope = scope
            if func.name is not None:
                self.function_stack.append(func)

    def _keyword(self, i: TokenIndex) -> TokenIndex:
        tok = self.tokens[i]
        word = tok.text.lower()
        if word == "namespace":
            return self._namespace(i)
        if word == "use":
            return self._use(i)
        if word in CLASS_LIKE:
            return self._class_header(i)
        if word in ("function", "fn"):
            return self._function_header(i)
        return i + 1

    # --- declarations ---

    def _namespace(self, i: TokenIndex) -> TokenIndex:
        if self._is(i + 1, "identifier"):
            self.namespace = self.tokens[i + 1].text.strip("\\") or None
            self.uses = {}
            return i + 2
        if self._is(i + 1, "bracket_open", "{"):
            self.namespace = None
            self.uses = {}
        return i + 1

    def _use(self, i: TokenIndex) -> TokenIndex:
        # Trait imports and closure captures are not class imports
        if self._in_class_body(i) or self._is(i + 1, "bracket_open", "("):
            return i + 1
        if self.scope.frame is not None:
            return i + 1
        tokens = self.tokens
        j = i + 1
        if j < len(tokens) and (tokens[j].is_keyword("function") or tokens[j].text.lower() == "const"):
            while j < len(tokens) and not tokens[j].is_op(";"):
                j += 1
            return j
        while j < len(tokens):
            tok = tokens[j]
            if tok.is_op(";"):
                return j + 1
            if tok.kind == "identifier":
                group = self.tracker.frame_opened_at(j + 1)
                if group is not None and group.kind == "{":
                    j = self._use_group(tok.text, group)
                    continue
                alias = None
                if j + 2 < len(tokens) and tokens[j + 1].is_keyword("as"):
                    alias = tokens[j + 2].text
                    j += 2
                self._import(tok.text, alias)
            elif not tok.is_op(","):
                return j
            j += 1
        return j

    def _use_group(self, prefix: str, group: BracketFrame) -> TokenIndex:
        tokens = self.tokens
        end = group.close_index if group.close_index is not None else len(tokens)
        prefix = prefix.strip("\\")
        j = group.open_index + 1
        while j < end:
            tok = tokens[j]
            if tok.kind == "identifier":
                alias = None
                if j + 2 < end and tokens[j + 1].is_keyword("as"):
                    alias = tokens[j + 2].text
                skip = j > 0 and (tokens[j - 1].is_keyword("function") or tokens[j - 1].text.lower() == "const")
                if not skip:
                    self._import(prefix + "\\" + tok.text.strip("\\"), alias)
                if alias is not None:
                    j += 2
            j += 1
        return end + 1

    def _import(self, name: str, alias: Optional[str]) -> None:
        fqn = name.strip("\\")
        if not fqn:
            return
        alias = alias or fqn.rsplit("\\", 1)[-1]
        # last declaration wins
        self.uses[alias] = fqn

    def _class_header(self, i: TokenIndex) -> TokenIndex:
        tokens = self.tokens
        if i > 0 and tokens[i - 1].is_keyword("new"):
            return i + 1  # anonymous class
        if not self._is(i + 1, "identifier"):
            return i + 1
        cls = ClassDefinition(name=tokens[i + 1].text, namespace=self.namespace)
        extends: List[Fqn] = []
        implements: List[Fqn] = []
        target: Optional[List[Fqn]] = None
        j = i + 2
        while j < len(tokens):
            tok = tokens[j]
            if tok.kind == "bracket_open" and tok.text == "{":
                self._pending_classes[j] = cls
                break
            if tok.is_op(";") or tok.kind in ("bracket_open", "bracket_close", "variable"):
                break
            if tok.is_keyword("extends"):
                target = extends
            elif tok.is_keyword("implements"):
                target = implements
            elif tok.kind == "identifier" and target is not None:
                fqn = resolve_class_name(tok.text, self.uses)
                if fqn is not None:
                    target.append(fqn)
            j += 1
        cls.extends = extends[0] if extends else None
        cls.implements = implements
        self.classes.append(cls)
        logger.debug("class %s extends %s implements %s", cls.fqn, cls.extends, cls.implements)
        return j

    def _function_header(self, i: TokenIndex) -> TokenIndex:
        tokens = self.tokens
        is_arrow = tokens[i].is_keyword("fn")
        j = i + 1
        if j < len(tokens) and tokens[j].is_op("&"):
            j += 1
        name = None
        if not is_arrow and j < len(tokens) and tokens[j].kind in ("identifier", "keyword"):
            name = tokens[j].text
            j += 1
        params_frame = self.tracker.frame_opened_at(j)
        if params_frame is None or params_frame.kind != "(":
            return j
        params = self._parameters(params_frame)
        if params_frame.close_index is None:
            return j + 1  # cursor inside the parameter list
        j = params_frame.close_index + 1

        captured: List[str] = []
        if j < len(tokens) and tokens[j].is_keyword("use"):
            use_frame = self.tracker.frame_opened_at(j + 1)
            if use_frame is None:
                return j + 1
            captured = [t.text for t in self._frame_tokens(use_frame) if t.kind == "variable"]
            if use_frame.close_index is None:
                return j + 2
            j = use_frame.close_index + 1

        # return type
        while j < len(tokens) and (
            tokens[j].kind in ("identifier", "keyword") or tokens[j].is_op(":", "?", "|", "&")
        ):
            j += 1
        if j >= len(tokens):
            return j

        scope = Scope()
        for var, ref, promoted in params:
            scope.bind(var, ref)
            if promoted and name == "__construct" and self.current_class is not None:
                self.current_class.properties[var[1:]] = ref
        for var in captured:
            scope.bind(var, self.scope.lookup(var))

        tok = tokens[j]
        if is_arrow and tok.is_op("=>"):
            scope.is_arrow = True
            scope.arrow_container = self.tracker.enclosing(j)
            scope.parent = self.scope
            self.scope = scope
            return j + 1
        if tok.kind == "bracket_open" and tok.text == "{":
            self._pending_bodies[j] = (FunctionDefinition(name=name), scope)
        return j

    def _frame_tokens(self, frame: BracketFrame) -> List[Token]:
        end = frame.close_index if frame.close_index is not None else len(self.tokens)
        return [
            self.tokens[k]
            for k in range(frame.open_index + 1, end)
            if self.tracker.enclosing(k) is frame
        ]

    def _parameters(self, frame: BracketFrame) -> List[Tuple[str, Optional[TypeRef], bool]]:
        """(variable, type, promoted) for each parameter of a declaration."""
        params: List[Tuple[str, Optional[TypeRef], bool]] = []
        types: List[str] = []
        promoted = variadic = seen_var = False
        for tok in self._frame_tokens(frame):
            if tok.is_op(","):
                types, promoted, variadic, seen_var = [], False, False, False
            elif seen_var:
                continue  # default value
            elif tok.kind in ("identifier", "keyword"):
                if tok.text.lower() in MODIFIERS:
                    promoted = True
                else:
                    types.append(tok.text)
            elif tok.is_op("..."):
                variadic = True
            elif tok.kind == "variable":
                ref = None if variadic else self._single_type(types)
                params.append((tok.text, ref, promoted))
                seen_var = True
        return params

    def _single_type(self, names: List[str]) -> Optional[TypeRef]:
        refs = [ref for ref in (self._ref(n) for n in names) if ref is not None]
        # unions of several classes are ambiguous
        return refs[0] if len(refs) == 1 else None

    # --- statements ---

    def _catch(self, i: TokenIndex) -> None:
        frame = self.tracker.frame_opened_at(i + 1)
        if frame is None:
            return
        types: List[str] = []
        for tok in self._frame_tokens(frame):
            if tok.kind == "identifier":
                types.append(tok.text)
            elif tok.kind == "variable":
                self.scope.bind(tok.text, self._single_type(types[:1]))
                return

    def _variable(self, i: TokenIndex) -> None:
        tokens = self.tokens
        tok = tokens[i]
        if i > 0 and tokens[i - 1].is_op("->", "?->", "::"):
            return

        if self._in_class_body(i):
            self._property_declaration(i)
            return

        if tok.text == "$this" and self._is(i + 1, "operator", "->") and self._is(i + 2, "identifier") \
                and self._is(i + 3, "operator", "="):
            if self.current_class is not None:
                self.current_class.properties[tokens[i + 2].text] = self._assigned_type(i + 4)
            return

        if self._is(i + 1, "operator", "="):
            ref = self._assigned_type(i + 2)
            logger.debug("binding %s -> %s", tok.text, ref)
            self.scope.bind(tok.text, ref)
        elif i > 0 and tokens[i - 1].is_keyword("as"):
            # foreach (... as $item) rebinds to an unknown value
            self.scope.bind(tok.text, None)

    def _property_declaration(self, i: TokenIndex) -> None:
        tokens = self.tokens
        types: List[str] = []
        has_modifier = False
        k = i - 1
        while k >= 0 and (tokens[k].kind in ("identifier", "keyword") or tokens[k].is_op("?", "|", "&")):
            if tokens[k].kind in ("identifier", "keyword"):
                if tokens[k].text.lower() in MODIFIERS:
                    has_modifier = True
                else:
                    types.append(tokens[k].text)
            k -= 1
        if has_modifier and self.current_class is not None:
            self.current_class.properties[tokens[i].text[1:]] = self._single_type(types[::-1])

    def _assigned_type(self, k: TokenIndex) -> Optional[TypeRef]:
        """Type of an assignment's right-hand side: `new X(...)` or `X::make(...)`."""
        tokens = self.tokens
        if k >= len(tokens):
            return None
        tok = tokens[k]
        if tok.kind == "bracket_open" and tok.text == "(" and self._is(k + 1, "keyword", "new"):
            return self._assigned_type(k + 1)
        if tok.is_keyword("new"):
            if self._is(k + 1, "identifier"):
                return self._ref(tokens[k + 1].text)
            return None
        if tok.kind == "identifier" and self._is(k + 1, "operator", "::") and self._is(k + 2, "identifier") \
                and self._is(k + 3, "bracket_open", "("):
            return self._ref(tok.text)
        return None


def build_symbol_table(tokens: Sequence[Token], tracker: BracketTracker) -> SymbolTable:
    return SymbolTableBuilder(tokens, tracker).build()
