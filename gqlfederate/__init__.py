"""Building blocks for a federated GraphQL gateway: schema model, permissions, context, configuration, client, introspection and operation rewriting."""

__version__ = "0.1.0"

__all__ = [
    "auth",
    "client",
    "config",
    "context",
    "introspection",
    "operations",
    "schema_ast",
]