"""Resolution of the introspection fields (__schema, __type) against a schema."""

from __future__ import annotations

from typing import Any, Iterable, Optional

from .schema_ast import (
    ArgumentDefinition,
    DefinitionKind,
    Directive,
    DirectiveDefinition,
    EnumValueDefinition,
    Field,
    FieldDefinition,
    FragmentSpread,
    GraphQLError,
    InlineFragment,
    Schema,
    TypeRef,
    find_by_name,
)

Result = dict[str, Any]


def selection_set_to_fields(selection_set: Optional[Iterable[Any]]) -> list[Field]:
    """Flatten a selection set into its fields, expanding fragments."""
    fields: list[Field] = []
    for selection in selection_set or []:
        if isinstance(selection, Field):
            fields.append(selection)
        elif isinstance(selection, FragmentSpread):
            fields.extend(selection_set_to_fields(selection.definition.selection_set))
        elif isinstance(selection, InlineFragment):
            fields.extend(selection_set_to_fields(selection.selection_set))
    return fields


def has_deprecated_directive(directives: Iterable[Directive]) -> tuple[bool, Optional[str]]:
    """Whether a @deprecated directive is present, and its reason."""
    for directive in directives:
        if directive.name == "deprecated":
            reason_arg = find_by_name(directive.arguments, "reason")
            return True, reason_arg.value.raw if reason_arg is not None else ""
    return False, None


def _is_builtin_name(name: str) -> bool:
    return name.startswith("__")


def _include_deprecated(field: Field, variables: Optional[dict]) -> bool:
    arg = find_by_name(field.arguments, "includeDeprecated")
    if arg is None:
        return False
    try:
        value = arg.value.value(variables)
    except (GraphQLError, ValueError):
        return False
    return value if isinstance(value, bool) else False


def resolve_introspection_fields(selection_set: Iterable[Any], schema: Schema, variables: Optional[dict] = None) -> Result:
    """Resolve the __type and __schema fields of a root selection set."""
    result: Result = {}
    for f in selection_set_to_fields(selection_set):
        if f.name == "__type":
            name = find_by_name(f.arguments, "name").value.raw
            result[f.alias] = resolve_type(schema, TypeRef(named_type=name), f.selection_set, variables)
        elif f.name == "__schema":
            result[f.alias] = resolve_schema(schema, f.selection_set, variables)
    return result


def resolve_schema(schema: Schema, selection_set: Iterable[Any], variables: Optional[dict] = None) -> Result:
    """Resolve the fields of __schema."""
    result: Result = {}
    roots = {"queryType": "Query", "mutationType": "Mutation", "subscriptionType": "Subscription"}
    for f in selection_set_to_fields(selection_set):
        if f.name == "types":
            result[f.alias] = [
                resolve_type(schema, TypeRef(named_type=t.name), f.selection_set, variables)
                for t in schema.types.values()
            ]
        elif f.name in roots:
            result[f.alias] = resolve_type(schema, TypeRef(named_type=roots[f.name]), f.selection_set, variables)
        elif f.name == "directives":
            result[f.alias] = [
                resolve_directive(schema, d, f.selection_set, variables) for d in schema.directives.values()
            ]
    return result


def resolve_type(
    schema: Schema, typ: Optional[TypeRef], selection_set: Iterable[Any], variables: Optional[dict] = None
) -> Optional[Result]:
    """Resolve the fields of a __Type, unwrapping non-null and list types first."""
    if typ is None:
        return None

    fields = selection_set_to_fields(selection_set)
    result: Result = {}

    if typ.non_null:
        for f in fields:
            if f.name == "kind":
                result[f.alias] = "NON_NULL"
            elif f.name == "ofType":
                inner = TypeRef(named_type=typ.named_type, elem=typ.elem, non_null=False)
                result[f.alias] = resolve_type(schema, inner, f.selection_set, variables)
            else:
                result[f.alias] = None
        return result

    if typ.elem is not None:
        for f in fields:
            if f.name == "kind":
                result[f.alias] = "LIST"
            elif f.name == "ofType":
                result[f.alias] = resolve_type(schema, typ.elem, f.selection_set, variables)
            else:
                result[f.alias] = None
        return result

    named = schema.types.get(typ.named_type)
    if named is None:
        return None

    for f in fields:
        name = f.name
        if name == "kind":
            result[f.alias] = DefinitionKind(named.kind).value
        elif name == "name":
            result[f.alias] = named.name
        elif name == "description":
            result[f.alias] = named.description
        elif name == "fields":
            include_deprecated = _include_deprecated(f, variables)
            result[f.alias] = [
                resolve_field(schema, fi, f.selection_set, variables)
                for fi in named.fields
                if not _is_builtin_name(fi.name)
                and (include_deprecated or not has_deprecated_directive(fi.directives)[0])
            ]
        elif name == "interfaces":
            result[f.alias] = [
                resolve_type(schema, TypeRef(named_type=i), f.selection_set, variables) for i in named.interfaces
            ]
        elif name == "possibleTypes":
            if named.is_abstract_type():
                result[f.alias] = [
                    resolve_type(schema, TypeRef(named_type=t.name), f.selection_set, variables)
                    for t in schema.possible_types.get(named.name, [])
                ]
            else:
                result[f.alias] = None
        elif name == "enumValues":
            include_deprecated = _include_deprecated(f, variables)
            result[f.alias] = [
                resolve_enum_value(e, f.selection_set)
                for e in named.enum_values
                if include_deprecated or not has_deprecated_directive(e.directives)[0]
            ]
        elif name == "inputFields":
            if named.kind == DefinitionKind.INPUT_OBJECT:
                # field definitions carry everything an input value needs
                result[f.alias] = [resolve_field(schema, fi, f.selection_set, variables) for fi in named.fields]
            else:
                result[f.alias] = None
        else:
            result[f.alias] = None
    return result


def resolve_field(
    schema: Schema, field: FieldDefinition, selection_set: Iterable[Any], variables: Optional[dict] = None
) -> Result:
    """Resolve the fields of a __Field."""
    result: Result = {}
    deprecated, reason = has_deprecated_directive(field.directives)
    for f in selection_set_to_fields(selection_set):
        if f.name == "name":
            result[f.alias] = field.name
        elif f.name == "description":
            result[f.alias] = field.description
        elif f.name == "args":
            result[f.alias] = [
                resolve_input_value(schema, arg, f.selection_set, variables) for arg in field.arguments
            ]
        elif f.name == "type":
            result[f.alias] = resolve_type(schema, field.type, f.selection_set, variables)
        elif f.name == "isDeprecated":
            result[f.alias] = deprecated
        elif f.name == "deprecationReason":
            result[f.alias] = reason
        elif f.name == "defaultValue":
            result[f.alias] = str(field.default_value) if field.default_value is not None else None
    return result


def resolve_input_value(
    schema: Schema, arg: ArgumentDefinition, selection_set: Iterable[Any], variables: Optional[dict] = None
) -> Result:
    """Resolve the fields of an __InputValue."""
    result: Result = {}
    for f in selection_set_to_fields(selection_set):
        if f.name == "name":
            result[f.alias] = arg.name
        elif f.name == "description":
            result[f.alias] = arg.description
        elif f.name == "type":
            result[f.alias] = resolve_type(schema, arg.type, f.selection_set, variables)
        elif f.name == "defaultValue":
            result[f.alias] = str(arg.default_value) if arg.default_value is not None else None
    return result


def resolve_enum_value(enum: EnumValueDefinition, selection_set: Iterable[Any]) -> Result:
    """Resolve the fields of an __EnumValue."""
    result: Result = {}
    deprecated, reason = has_deprecated_directive(enum.directives)
    for f in selection_set_to_fields(selection_set):
        if f.name == "name":
            result[f.alias] = enum.name
        elif f.name == "description":
            result[f.alias] = enum.description
        elif f.name == "isDeprecated":
            result[f.alias] = deprecated
        elif f.name == "deprecationReason":
            result[f.alias] = reason
    return result


def resolve_directive(
    schema: Schema, directive: DirectiveDefinition, selection_set: Iterable[Any], variables: Optional[dict] = None
) -> Result:
    """Resolve the fields of a __Directive."""
    result: Result = {}
    for f in selection_set_to_fields(selection_set):
        if f.name == "name":
            result[f.alias] = directive.name
        elif f.name == "description":
            result[f.alias] = directive.description
        elif f.name == "locations":
            result[f.alias] = list(directive.locations)
        elif f.name == "args":
            result[f.alias] = [
                resolve_input_value(schema, arg, f.selection_set, variables) for arg in directive.arguments
            ]
    return result