"""A small GraphQL document and schema model used by the gateway."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union


class GraphQLError(Exception):
    """An error reported against a GraphQL operation."""

    def __init__(self, message: str, path: Optional[list] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GraphQLError):
            return NotImplemented
        return self.message == other.message and self.path == other.path

    def __hash__(self) -> int:
        return hash(self.message)


class ValueKind(enum.Enum):
    VARIABLE = "variable"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BLOCK = "block"
    BOOLEAN = "boolean"
    NULL = "null"
    ENUM = "enum"
    LIST = "list"
    OBJECT = "object"


@dataclass
class Value:
    """A literal or variable value in a GraphQL document."""

    kind: ValueKind
    raw: str = ""
    children: list = field(default_factory=list)

    def value(self, variables: Optional[dict] = None) -> Any:
        """Evaluate the value, substituting variables."""
        variables = variables or {}
        kind = self.kind
        if kind is ValueKind.VARIABLE:
            if self.raw not in variables:
                raise GraphQLError(f"undefined variable {self.raw}")
            return variables[self.raw]
        if kind is ValueKind.INT:
            return int(self.raw)
        if kind is ValueKind.FLOAT:
            return float(self.raw)
        if kind in (ValueKind.STRING, ValueKind.BLOCK, ValueKind.ENUM):
            return self.raw
        if kind is ValueKind.BOOLEAN:
            return self.raw == "true"
        if kind is ValueKind.NULL:
            return None
        if kind is ValueKind.LIST:
            return [child.value(variables) for child in self.children]
        return {name: child.value(variables) for name, child in self.children}

    def __str__(self) -> str:
        kind = self.kind
        if kind is ValueKind.VARIABLE:
            return "$" + self.raw
        if kind in (ValueKind.STRING, ValueKind.BLOCK):
            return json.dumps(self.raw)
        if kind is ValueKind.NULL:
            return "null"
        if kind is ValueKind.LIST:
            return "[" + ", ".join(str(c) for c in self.children) + "]"
        if kind is ValueKind.OBJECT:
            return "{" + ", ".join(f"{n}: {c}" for n, c in self.children) + "}"
        return self.raw


@dataclass
class Argument:
    name: str
    value: Value


@dataclass
class Directive:
    name: str
    arguments: list[Argument] = field(default_factory=list)


@dataclass
class TypeRef:
    """A type reference: a named type, or a list of another type, maybe non-null."""

    named_type: str = ""
    elem: Optional["TypeRef"] = None
    non_null: bool = False

    def name(self) -> str:
        """The innermost named type."""
        if self.elem is not None:
            return self.elem.name()
        return self.named_type

    def __str__(self) -> str:
        text = f"[{self.elem}]" if self.elem is not None else self.named_type
        return text + ("!" if self.non_null else "")


@dataclass
class ArgumentDefinition:
    name: str
    type: TypeRef
    description: str = ""
    default_value: Optional[Value] = None
    directives: list[Directive] = field(default_factory=list)


@dataclass
class FieldDefinition:
    name: str
    type: TypeRef
    arguments: list[ArgumentDefinition] = field(default_factory=list)
    description: str = ""
    default_value: Optional[Value] = None
    directives: list[Directive] = field(default_factory=list)


@dataclass
class EnumValueDefinition:
    name: str
    description: str = ""
    directives: list[Directive] = field(default_factory=list)


@dataclass
class DirectiveDefinition:
    name: str
    description: str = ""
    arguments: list[ArgumentDefinition] = field(default_factory=list)
    locations: list[str] = field(default_factory=list)


class DefinitionKind(str, enum.Enum):
    SCALAR = "SCALAR"
    OBJECT = "OBJECT"
    INTERFACE = "INTERFACE"
    UNION = "UNION"
    ENUM = "ENUM"
    INPUT_OBJECT = "INPUT_OBJECT"


@dataclass
class Definition:
    """A named type definition of a schema."""

    kind: DefinitionKind
    name: str
    description: str = ""
    fields: list[FieldDefinition] = field(default_factory=list)
    interfaces: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    enum_values: list[EnumValueDefinition] = field(default_factory=list)
    directives: list[Directive] = field(default_factory=list)

    def is_abstract_type(self) -> bool:
        return self.kind in (DefinitionKind.INTERFACE, DefinitionKind.UNION)

    def field(self, name: str) -> Optional[FieldDefinition]:
        return find_by_name(self.fields, name)


class Operation(str, enum.Enum):
    QUERY = "query"
    MUTATION = "mutation"
    SUBSCRIPTION = "subscription"


@dataclass
class Field:
    name: str
    alias: str = ""
    arguments: list[Argument] = field(default_factory=list)
    directives: list[Directive] = field(default_factory=list)
    selection_set: list["Selection"] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.alias:
            self.alias = self.name


@dataclass
class FragmentDefinition:
    name: str
    type_condition: str
    selection_set: list["Selection"] = field(default_factory=list)
    directives: list[Directive] = field(default_factory=list)
    variable_definitions: list = field(default_factory=list)


@dataclass
class FragmentSpread:
    name: str
    definition: FragmentDefinition
    directives: list[Directive] = field(default_factory=list)


@dataclass
class InlineFragment:
    type_condition: str = ""
    selection_set: list["Selection"] = field(default_factory=list)
    directives: list[Directive] = field(default_factory=list)


Selection = Union[Field, FragmentSpread, InlineFragment]


@dataclass
class OperationDefinition:
    operation: Operation
    name: str = ""
    selection_set: list[Selection] = field(default_factory=list)
    variable_definitions: list = field(default_factory=list)
    directives: list[Directive] = field(default_factory=list)


@dataclass
class Schema:
    """A GraphQL schema: its types, root types and possible types of abstract types."""

    types: dict[str, Definition] = field(default_factory=dict)
    query: Optional[Definition] = None
    mutation: Optional[Definition] = None
    subscription: Optional[Definition] = None
    possible_types: dict[str, list[Definition]] = field(default_factory=dict)
    directives: dict[str, DirectiveDefinition] = field(default_factory=dict)


def find_by_name(items: Iterable[Any], name: str) -> Any:
    """Return the first item whose name matches, or None."""
    return next((item for item in items if item.name == name), None)