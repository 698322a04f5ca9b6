import pytest

from gqlfederate.introspection import (
    has_deprecated_directive,
    resolve_directive,
    resolve_enum_value,
    resolve_field,
    resolve_input_value,
    resolve_introspection_fields,
    resolve_schema,
    resolve_type,
    selection_set_to_fields,
)
from gqlfederate.schema_ast import (
    Argument,
    ArgumentDefinition,
    Definition,
    DefinitionKind,
    Directive,
    DirectiveDefinition,
    EnumValueDefinition,
    Field,
    FieldDefinition,
    FragmentDefinition,
    FragmentSpread,
    InlineFragment,
    Schema,
    TypeRef,
    Value,
    ValueKind,
)


def sel(name, *sub, alias="", args=None):
    return Field(name=name, alias=alias, arguments=args or [], selection_set=list(sub))


def deprecated(reason=None):
    args = [] if reason is None else [Argument("reason", Value(ValueKind.STRING, reason))]
    return Directive("deprecated", args)


@pytest.fixture
def schema():
    movie = Definition(
        kind=DefinitionKind.OBJECT,
        name="Movie",
        description="A film",
        interfaces=["Node"],
        fields=[
            FieldDefinition("__typename", TypeRef("String", non_null=True)),
            FieldDefinition("id", TypeRef("ID", non_null=True)),
            FieldDefinition("title", TypeRef("String")),
            FieldDefinition("oldTitle", TypeRef("String"), directives=[deprecated("use title")]),
        ],
    )
    node = Definition(
        kind=DefinitionKind.INTERFACE, name="Node", fields=[FieldDefinition("id", TypeRef("ID", non_null=True))]
    )
    genre = Definition(
        kind=DefinitionKind.ENUM,
        name="Genre",
        enum_values=[
            EnumValueDefinition("DRAMA"),
            EnumValueDefinition("SILENT", directives=[deprecated("gone")]),
        ],
    )
    search = Definition(
        kind=DefinitionKind.INPUT_OBJECT,
        name="MovieSearch",
        fields=[FieldDefinition("title", TypeRef("String"), default_value=Value(ValueKind.STRING, "x"))],
    )
    query = Definition(
        kind=DefinitionKind.OBJECT,
        name="Query",
        fields=[
            FieldDefinition(
                "movie",
                TypeRef("Movie"),
                arguments=[ArgumentDefinition("id", TypeRef("ID", non_null=True), description="the id")],
            ),
            FieldDefinition("search", TypeRef(elem=TypeRef("Movie", non_null=True))),
        ],
    )
    types = {d.name: d for d in (movie, node, genre, search, query)}
    return Schema(
        types=types,
        query=query,
        possible_types={"Node": [movie]},
        directives={
            "boundary": DirectiveDefinition(
                "boundary",
                description="marks boundaries",
                locations=["OBJECT", "FIELD_DEFINITION"],
                arguments=[ArgumentDefinition("n", TypeRef("Int"), default_value=Value(ValueKind.INT, "3"))],
            )
        },
    )


def test_selection_set_to_fields_expands_fragments():
    fragment = FragmentDefinition("F", "Movie", selection_set=[sel("c")])
    selection = [sel("a"), InlineFragment("Movie", [sel("b")]), FragmentSpread("F", fragment)]
    assert [f.name for f in selection_set_to_fields(selection)] == ["a", "b", "c"]


def test_selection_set_to_fields_empty():
    assert selection_set_to_fields(None) == []


def test_has_deprecated_directive():
    assert has_deprecated_directive([deprecated("old")]) == (True, "old")
    assert has_deprecated_directive([Directive("other"), deprecated()]) == (True, "")
    assert has_deprecated_directive([Directive("other")]) == (False, None)


def test_resolve_named_type(schema):
    result = resolve_type(schema, TypeRef("Movie"), [sel("kind"), sel("name"), sel("description"), sel("other")])
    assert result == {
        "kind": DefinitionKind.OBJECT.value,
        "name": "Movie",
        "description": "A film",
        "other": None,
    }


def test_resolve_unknown_type_is_none(schema):
    assert resolve_type(schema, TypeRef("Missing"), [sel("name")]) is None
    assert resolve_type(schema, None, [sel("name")]) is None


def test_resolve_wrapped_types(schema):
    typ = TypeRef(elem=TypeRef("Movie", non_null=True), non_null=True)
    of = sel("ofType", sel("kind"), sel("ofType", sel("kind"), sel("ofType", sel("name"))))
    result = resolve_type(schema, typ, [sel("kind"), sel("name"), of])
    assert result["kind"] == "NON_NULL"
    assert result["name"] is None
    assert result["ofType"]["kind"] == "LIST"
    assert result["ofType"]["ofType"]["kind"] == "NON_NULL"
    assert result["ofType"]["ofType"]["ofType"] == {"name": "Movie"}


def test_fields_skip_builtins_and_deprecated(schema):
    result = resolve_type(schema, TypeRef("Movie"), [sel("fields", sel("name"))])
    assert [f["name"] for f in result["fields"]] == ["id", "title"]


def test_fields_include_deprecated_literal_and_variable(schema):
    literal = sel("fields", sel("name"), args=[Argument("includeDeprecated", Value(ValueKind.BOOLEAN, "true"))])
    result = resolve_type(schema, TypeRef("Movie"), [literal])
    assert [f["name"] for f in result["fields"]] == ["id", "title", "oldTitle"]

    variable = sel("fields", sel("name"), args=[Argument("includeDeprecated", Value(ValueKind.VARIABLE, "dep"))])
    with_var = resolve_type(schema, TypeRef("Movie"), [variable], {"dep": True})
    assert [f["name"] for f in with_var["fields"]] == ["id", "title", "oldTitle"]
    missing_var = resolve_type(schema, TypeRef("Movie"), [variable], {})
    assert [f["name"] for f in missing_var["fields"]] == ["id", "title"]


def test_deprecated_field_details(schema):
    field_sel = sel(
        "fields",
        sel("name"),
        sel("isDeprecated"),
        sel("deprecationReason"),
        args=[Argument("includeDeprecated", Value(ValueKind.BOOLEAN, "true"))],
    )
    result = resolve_type(schema, TypeRef("Movie"), [field_sel])
    old = result["fields"][-1]
    assert old == {"name": "oldTitle", "isDeprecated": True, "deprecationReason": "use title"}
    assert result["fields"][0]["isDeprecated"] is False
    assert result["fields"][0]["deprecationReason"] is None


def test_interfaces_and_possible_types(schema):
    movie = resolve_type(schema, TypeRef("Movie"), [sel("interfaces", sel("name")), sel("possibleTypes")])
    assert movie == {"interfaces": [{"name": "Node"}], "possibleTypes": None}
    node = resolve_type(schema, TypeRef("Node"), [sel("possibleTypes", sel("name"))])
    assert node == {"possibleTypes": [{"name": "Movie"}]}


def test_enum_values(schema):
    result = resolve_type(schema, TypeRef("Genre"), [sel("enumValues", sel("name"))])
    assert result == {"enumValues": [{"name": "DRAMA"}]}
    all_values = sel(
        "enumValues", sel("name"), args=[Argument("includeDeprecated", Value(ValueKind.BOOLEAN, "true"))]
    )
    full = resolve_type(schema, TypeRef("Genre"), [all_values])
    assert [e["name"] for e in full["enumValues"]] == ["DRAMA", "SILENT"]


def test_resolve_enum_value():
    enum = EnumValueDefinition("SILENT", description="no sound", directives=[deprecated("gone")])
    result = resolve_enum_value(
        enum, [sel("name"), sel("description"), sel("isDeprecated"), sel("deprecationReason")]
    )
    assert result == {"name": "SILENT", "description": "no sound", "isDeprecated": True, "deprecationReason": "gone"}


def test_input_fields(schema):
    search = resolve_type(schema, TypeRef("MovieSearch"), [sel("inputFields", sel("name"), sel("defaultValue"))])
    assert search == {"inputFields": [{"name": "title", "defaultValue": '"x"'}]}
    movie = resolve_type(schema, TypeRef("Movie"), [sel("inputFields", sel("name"))])
    assert movie == {"inputFields": None}


def test_resolve_field_with_args(schema):
    movie_field = schema.query.field("movie")
    result = resolve_field(
        schema,
        movie_field,
        [sel("name"), sel("type", sel("name")), sel("defaultValue"), sel("args", sel("name"), sel("description"))],
    )
    assert result == {
        "name": "movie",
        "type": {"name": "Movie"},
        "defaultValue": None,
        "args": [{"name": "id", "description": "the id"}],
    }


def test_resolve_input_value(schema):
    arg = ArgumentDefinition("n", TypeRef("Int", non_null=True), default_value=Value(ValueKind.INT, "3"))
    result = resolve_input_value(schema, arg, [sel("name"), sel("type", sel("kind")), sel("defaultValue")])
    assert result == {"name": "n", "type": {"kind": "NON_NULL"}, "defaultValue": "3"}


def test_resolve_directive(schema):
    directive = schema.directives["boundary"]
    result = resolve_directive(
        schema, directive, [sel("name"), sel("description"), sel("locations"), sel("args", sel("name"))]
    )
    assert result == {
        "name": "boundary",
        "description": "marks boundaries",
        "locations": ["OBJECT", "FIELD_DEFINITION"],
        "args": [{"name": "n"}],
    }


def test_resolve_schema(schema):
    result = resolve_schema(
        schema,
        [
            sel("queryType", sel("name")),
            sel("mutationType", sel("name")),
            sel("types", sel("name")),
            sel("directives", sel("name")),
        ],
    )
    assert result["queryType"] == {"name": "Query"}
    assert result["mutationType"] is None
    assert sorted(t["name"] for t in result["types"]) == sorted(schema.types)
    assert result["directives"] == [{"name": "boundary"}]


def test_resolve_introspection_fields_uses_aliases(schema):
    type_field = sel(
        "__type", sel("name"), alias="movieType", args=[Argument("name", Value(ValueKind.STRING, "Movie"))]
    )
    selection = [sel("movie", sel("id")), type_field, sel("__schema", sel("queryType", sel("name")))]
    result = resolve_introspection_fields(selection, schema)
    assert result == {"movieType": {"name": "Movie"}, "__schema": {"queryType": {"name": "Query"}}}


def test_resolve_introspection_fields_without_introspection(schema):
    assert resolve_introspection_fields([sel("movie", sel("id"))], schema) == {}