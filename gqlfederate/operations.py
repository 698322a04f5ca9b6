"""Operation rewriting before planning: @skip/@include evaluation and result merging."""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Iterable, Optional

from .schema_ast import (
    Directive,
    Field,
    FragmentSpread,
    GraphQLError,
    InlineFragment,
    OperationDefinition,
    find_by_name,
)

_CONDITIONAL_DIRECTIVES = ("skip", "include")


def remove_skip_and_include(directives: Optional[Iterable[Directive]]) -> list[Directive]:
    """Return the directives without any @skip or @include."""
    return [d for d in directives or [] if d.name not in _CONDITIONAL_DIRECTIVES]


def resolve_if_argument(directive: Directive, variables: Optional[dict]) -> bool:
    """Evaluate the boolean "if" argument of a @skip or @include directive."""
    arg = find_by_name(directive.arguments, "if")
    if arg is None:
        raise GraphQLError(f"{directive.name}: argument 'if' not defined")
    value = arg.value.value(variables)
    if not isinstance(value, bool):
        raise GraphQLError(f"{directive.name}: argument 'if' is not a boolean")
    return value


def _is_selected(directives: Iterable[Directive], variables: Optional[dict]) -> bool:
    skip_directive = find_by_name(directives, "skip")
    include_directive = find_by_name(directives, "include")
    skip = resolve_if_argument(skip_directive, variables) if skip_directive is not None else False
    include = resolve_if_argument(include_directive, variables) if include_directive is not None else True
    return not skip and include


def _evaluate_selection_set(variables: Optional[dict], selection_set: Optional[list]) -> list:
    result: list = []
    for selection in selection_set or []:
        if not _is_selected(selection.directives, variables):
            continue
        if isinstance(selection, Field):
            result.append(
                dataclasses.replace(
                    selection,
                    directives=remove_skip_and_include(selection.directives),
                    selection_set=_evaluate_selection_set(variables, selection.selection_set),
                )
            )
        elif isinstance(selection, InlineFragment):
            result.append(
                dataclasses.replace(
                    selection,
                    directives=remove_skip_and_include(selection.directives),
                    selection_set=_evaluate_selection_set(variables, selection.selection_set),
                )
            )
        elif isinstance(selection, FragmentSpread):
            definition = selection.definition
            result.append(
                dataclasses.replace(
                    selection,
                    directives=remove_skip_and_include(selection.directives),
                    definition=dataclasses.replace(
                        definition,
                        directives=remove_skip_and_include(definition.directives),
                        selection_set=_evaluate_selection_set(variables, definition.selection_set),
                    ),
                )
            )
    return result


def evaluate_skip_and_include(variables: Optional[dict], operation: OperationDefinition) -> OperationDefinition:
    """Return a copy of the operation with @skip/@include applied and removed.

    The given operation is left untouched, as it may be shared between requests.
    """
    return dataclasses.replace(
        operation,
        selection_set=_evaluate_selection_set(variables, operation.selection_set),
    )


def _as_map(value: Any, side: str) -> dict:
    if isinstance(value, dict):
        return value
    if isinstance(value, (bytes, bytearray, str)):
        # decode only one level; nested values stay as raw JSON
        try:
            decoded = json.loads(value)
        except ValueError:
            decoded = None
        if not isinstance(decoded, dict):
            return {}
        return {k: json.dumps(v).encode("utf-8") for k, v in decoded.items()}
    raise TypeError(f"merge_maps: {side} value is {type(value).__name__} not a dict or raw JSON")


def merge_maps(dst: dict, src: dict) -> None:
    """Merge src into dst in place, decoding raw JSON values (bytes or str) where needed."""
    for key, value in list(dst.items()):
        if key not in src:
            continue
        dst_value = _as_map(value, "dst")
        if dst_value is not value:
            dst[key] = dst_value
        src_value = _as_map(src[key], "src")
        merge_maps(dst_value, src_value)

    for key, value in src.items():
        if key not in dst:
            dst[key] = value