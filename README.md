# gqlfederate

Building blocks for a gateway that federates several GraphQL services behind a
single endpoint.

## Modules

- **`gqlfederate.schema_ast`** – a small in-memory model of GraphQL schemas and
  operations: `Schema`, `Definition` (with `DefinitionKind`), `FieldDefinition`,
  `ArgumentDefinition`, `EnumValueDefinition`, `DirectiveDefinition`,
  `TypeRef`, `Value`, `Directive`, `Argument`, `OperationDefinition`
  (with `Operation`), `Field`, `FragmentSpread`, `FragmentDefinition`,
  `InlineFragment`, plus `GraphQLError` and the helper `find_by_name`.
- **`gqlfederate.auth`** – field-level permissions. `AllowedFields` describes a
  recursive set of allowed fields, and `OperationPermissions` groups them per
  operation type (`query`, `mutation`, `subscription`).
  `filter_authorized_fields` strips unauthorized fields from an operation and
  `filter_schema` returns a schema restricted to what a caller may see.
  `merge_permissions` and `merge_allowed_fields` compute the union of several
  permission sets.
- **`gqlfederate.context`** – stores permissions and outgoing request headers in
  a plain dict context (`add_permissions_to_context`,
  `get_permissions_from_context`, `add_outgoing_requests_header_to_context`,
  `get_outgoing_request_headers_from_context`). Header names are put in
  canonical form, and repeated headers keep every value.
- **`gqlfederate.config`** – gateway configuration read from one or more JSON
  files (`Config`, `TimeoutConfig`, `PluginConfig`, `get_config`), with Go-style
  duration parsing (`parse_duration`). Invalid configuration raises
  `ConfigError`.
- **`gqlfederate.client`** – a GraphQL-over-HTTP client (`GraphQLClient`,
  `Request`) with a response-size limit and a configurable user agent
  (`generate_user_agent`).
- **`gqlfederate.introspection`** – answers `__schema` and `__type` selections
  from a schema (`resolve_introspection_fields`, `resolve_schema`,
  `resolve_type` and the other `resolve_*` functions).
- **`gqlfederate.operations`** – applies `@skip`/`@include` to a copy of an
  operation (`evaluate_skip_and_include`) and merges partial results that may
  hold raw JSON (`merge_maps`).

## Installation

```
pip install gqlfederate
```

## Permissions

Permissions are written in JSON. `"*"` allows everything below a field, a list
allows the named fields entirely, and an object nests further rules:

```python
from gqlfederate.auth import OperationPermissions, merge_permissions

reader = OperationPermissions.from_json({"query": {"movie": ["title"]}})
editor = OperationPermissions.from_json(
    {"query": {"movie": ["releaseDate"]}, "mutation": {"movie": ["updateTitle"]}}
)

combined = merge_permissions(reader, editor)
print(combined.to_json())
```

`filter_authorized_fields(operation)` removes every field the permissions do
not allow from an `OperationDefinition` and returns one `GraphQLError` per
removed field, such as `query.movies.compTitles access disallowed`. The
introspection fields `__schema` and `__type` are always allowed, as is
`__typename`.

## Querying a service

```python
from gqlfederate.client import GraphQLClient, Request, generate_user_agent

client = GraphQLClient(user_agent=generate_user_agent("query"))
data = client.request("http://localhost:8080/query", Request(query="{ service { name } }"))
```

`request` returns the response's `data`. Responses larger than
`max_response_size` bytes (1 MiB by default; `0` means no limit) are rejected
with a `ClientError`, as are non-200 responses and undecodable bodies. Errors
reported by the service are raised as `GraphqlErrors`, whose message joins the
individual messages with commas. Timeouts are raised unchanged as
`requests.Timeout` so callers can retry. Pass `keep_alive=False` to send
`Connection: close`, or `session=` to use your own `requests.Session`.

## Configuration

```python
from gqlfederate.config import get_config

config = get_config(["config.json"])
print(config.gateway_address(), config.private_address(), config.metric_address())
```

Defaults: gateway port 8082, private port 8083, metrics port 9009, poll
interval `10s`, default timeouts of `5s` (read), `10s` (write) and `120s`
(idle). Gateway and private timeouts fall back to the defaults when unset.
Durations such as `"5s"`, `"1m30s"` or `"250ms"` are read with
`parse_duration`. Services can also be listed, separated by whitespace, in the
`GQLFEDERATE_SERVICE_LIST` environment variable, and the log level can be
overridden with `GQLFEDERATE_LOG_LEVEL`. Loading fails with `ConfigError` when
no service is configured.

## What this package does not do

It provides the pieces, not a running gateway: there is no HTTP server, no
command-line program, no query planner or executor that sends parts of a query
to several services, no schema merging, no plugin system and no watching of
configuration files for changes. Plugin entries in the configuration are read
and kept, but nothing acts on them.

## Running the tests

```
pip install -e ".[test]"
pytest
```