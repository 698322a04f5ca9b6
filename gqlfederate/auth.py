"""Field level permissions for operations and schemas."""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .schema_ast import (
    Definition,
    Field,
    FragmentSpread,
    GraphQLError,
    InlineFragment,
    Operation,
    OperationDefinition,
    Schema,
)

logger = logging.getLogger(__name__)


@dataclass
class AllowedFields:
    """A recursive set of allowed fields."""

    allow_all: bool = False
    allowed_subfields: Optional[dict[str, "AllowedFields"]] = None

    def is_allowed(self, field_name: str) -> tuple[bool, "AllowedFields"]:
        """Whether the subfield is allowed, and the permissions for its subfields."""
        if field_name in ("__schema", "__type"):
            return True, AllowedFields(allow_all=True)
        if field_name == "__typename":
            return True, AllowedFields()
        if self.allowed_subfields and field_name in self.allowed_subfields:
            return True, self.allowed_subfields[field_name]
        return False, AllowedFields()

    def _is_set(self) -> bool:
        return self.allow_all or self.allowed_subfields is not None

    def to_json(self) -> Any:
        if self.allow_all:
            return "*"
        subfields = self.allowed_subfields or {}
        if any(not sub.allow_all for sub in subfields.values()):
            return {name: sub.to_json() for name, sub in subfields.items()}
        return sorted(subfields)

    @classmethod
    def from_json(cls, data: Any) -> "AllowedFields":
        if data == "*":
            return cls(allow_all=True)
        if data is None:
            return cls(allowed_subfields={})
        if isinstance(data, list) and all(isinstance(f, str) for f in data):
            return cls(allowed_subfields={f: cls(allow_all=True) for f in data})
        if isinstance(data, dict):
            return cls(allowed_subfields={k: cls.from_json(v) for k, v in data.items()})
        raise ValueError(f"invalid allowed fields: {data!r}")

    def __str__(self) -> str:
        return json.dumps(self.to_json())


_ROOTS = ("query", "mutation", "subscription")


@dataclass
class OperationPermissions:
    """Top level permissions for every operation type."""

    query: AllowedFields = field(default_factory=AllowedFields)
    mutation: AllowedFields = field(default_factory=AllowedFields)
    subscription: AllowedFields = field(default_factory=AllowedFields)

    def to_json(self) -> dict:
        return {name: getattr(self, name).to_json() for name in _ROOTS if getattr(self, name)._is_set()}

    @classmethod
    def from_json(cls, data: dict) -> "OperationPermissions":
        return cls(**{name: AllowedFields.from_json(data[name]) for name in _ROOTS if name in data})

    def filter_authorized_fields(self, operation: OperationDefinition) -> list[GraphQLError]:
        """Remove unauthorized fields from the operation; return one error per field."""
        try:
            op = Operation(operation.operation)
        except ValueError:
            raise ValueError(f"invalid operation {operation.operation!r} in operation filtering") from None
        allowed = getattr(self, op.value)
        operation.selection_set, errors = _filter_fields([op.value], operation.selection_set, allowed)
        return errors

    def filter_schema(self, schema: Schema) -> Schema:
        """Return a copy of the schema stripped of unauthorized fields and types."""
        types: dict[str, Definition] = {}
        roots = {}
        for attr, type_name in (("query", "Query"), ("mutation", "Mutation"), ("subscription", "Subscription")):
            definition = _filter_definition(schema, None, types, getattr(schema, attr), getattr(self, attr))
            if definition is not None:
                types[type_name] = definition
            roots[attr] = definition
        return dataclasses.replace(schema, types=types, **roots)


def _filter_definition(
    source: Schema,
    visited: Optional[set],
    types: dict[str, Definition],
    definition: Optional[Definition],
    allowed: AllowedFields,
) -> Optional[Definition]:
    if definition is None:
        return None

    result = dataclasses.replace(definition, fields=[])
    all_fields = AllowedFields(allow_all=True)

    def add_arguments(field_def) -> None:
        for arg in field_def.arguments:
            arg_type = source.types.get(arg.type.name())
            if arg_type is not None:
                types[arg.type.name()] = arg_type
            _filter_definition(source, visited, types, arg_type, all_fields)

    if allowed.allow_all:
        if visited is None:
            visited = set()
        result.fields = list(definition.fields)
        for f in definition.fields:
            key = definition.name + f.name
            if key in visited:
                continue
            visited.add(key)
            type_name = f.type.name()
            typ = source.types.get(type_name)
            if typ is None:
                continue
            if typ.is_abstract_type():
                for pt in source.possible_types.get(typ.name, []):
                    types[pt.name] = pt
                    _filter_definition(source, visited, types, pt, all_fields)
            types[type_name] = typ
            add_arguments(f)
            _filter_definition(source, visited, types, typ, all_fields)
        return result

    subfields = allowed.allowed_subfields or {}
    for f in definition.fields:
        if f.name not in subfields:
            continue
        allowed_sub = subfields[f.name]
        result.fields.append(f)
        type_name = f.type.name()
        typ = source.types.get(type_name)
        if typ is None:
            continue
        if typ.is_abstract_type():
            for pt in source.possible_types.get(typ.name, []):
                _store(types, pt.name, _filter_definition(source, visited, types, pt, allowed_sub))
        _store(types, type_name, _filter_definition(source, visited, types, typ, allowed_sub))
        add_arguments(f)
    return result


def _store(types: dict[str, Definition], name: str, new_def: Definition) -> None:
    existing = types.get(name)
    if existing is None:
        types[name] = new_def
        return
    # a type reached through several paths gets the union of the fields
    for f in new_def.fields:
        if existing.field(f.name) is None:
            existing.fields.append(f)


def _filter_fields(path: list[str], selection_set: list, allowed: AllowedFields) -> tuple[list, list[GraphQLError]]:
    if allowed.allow_all:
        return selection_set, []
    result: list = []
    errors: list[GraphQLError] = []
    for selection in selection_set:
        if isinstance(selection, Field):
            ok, perms = allowed.is_allowed(selection.name)
            if not ok:
                field_path = ".".join([*path, selection.name])
                logger.debug("field access disallowed: field=%s permissions=%s", field_path, allowed)
                errors.append(GraphQLError(f"{field_path} access disallowed"))
                continue
            if not perms.allow_all:
                selection.selection_set, sub_errors = _filter_fields(
                    [*path, selection.name], selection.selection_set, perms
                )
                errors.extend(sub_errors)
            result.append(selection)
        elif isinstance(selection, FragmentSpread):
            selection.definition.selection_set, sub_errors = _filter_fields(
                path, selection.definition.selection_set, allowed
            )
            result.append(selection)
            errors.extend(sub_errors)
        elif isinstance(selection, InlineFragment):
            selection.selection_set, sub_errors = _filter_fields(path, selection.selection_set, allowed)
            result.append(selection)
            errors.extend(sub_errors)
    return result, errors


def merge_permissions(*args: OperationPermissions) -> OperationPermissions:
    """Union of the given permissions."""
    return OperationPermissions(
        query=merge_allowed_fields(*(p.query for p in args)),
        mutation=merge_allowed_fields(*(p.mutation for p in args)),
        subscription=merge_allowed_fields(*(p.subscription for p in args)),
    )


def merge_allowed_fields(*args: AllowedFields) -> AllowedFields:
    """Union of the given allowed fields."""
    merged: dict[str, AllowedFields] = {}
    for allowed in args:
        if allowed.allow_all:
            return AllowedFields(allow_all=True)
        for name, sub in (allowed.allowed_subfields or {}).items():
            merged[name] = merge_allowed_fields(sub, merged[name]) if name in merged else sub
    return AllowedFields(allowed_subfields=merged)