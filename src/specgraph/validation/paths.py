"""Paths, operations, callbacks and webhooks.

Path items are checked in two passes.  :func:`check_path_templates` looks
at every path key first (leading ``/``, brace balance, repeated variables,
``additionalOperations`` method names, ambiguous hierarchies), so a
document is rejected for an ambiguous hierarchy before any per-operation
rule runs.  :func:`check_path_operations` then walks each operation and
its parameters.

Parameters can be Reference Objects.  Rules that need a parameter's
``name`` and ``in`` go through a :data:`ParameterLookup`, which returns the
referenced Parameter Object or ``None`` when it cannot be found.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional

from specgraph.exceptions import SpecValidationError
from specgraph.models import OPERATION_KEYS
from specgraph.parser.uris import pointer_join
from specgraph.tree import has_reference_key
from specgraph.validation.formats import (
    TOKEN_RE,
    check_runtime_expression_template,
    check_template_braces,
    path_signature,
    template_variables,
)
from specgraph.validation.objects import (
    check_reference_object,
    check_request_body,
    check_responses,
    check_servers,
)
from specgraph.validation.parameters import (
    check_parameter_fields,
    check_path_parameter,
    check_unique_parameters,
    is_reserved_header,
)
from specgraph.validation.schemas import check_external_docs

ParameterLookup = Callable[[Any], Optional[dict]]
"""Maps a parameter entry (inline or Reference Object) to its Parameter Object, or ``None``."""


def _inline_only(param: Any) -> Optional[dict]:
    return param if isinstance(param, dict) and not has_reference_key(param) else None


def iter_operations(path_item: Any, location: str) -> Iterator[tuple[str, dict, str]]:
    """Yield ``(method label, operation, location)`` for fixed methods, then ``additionalOperations``.

    Fixed methods are labelled upper-case (``GET``); additional methods keep
    their declared spelling.
    """
    if not isinstance(path_item, dict):
        return
    for method in OPERATION_KEYS:
        operation = path_item.get(method)
        if isinstance(operation, dict):
            yield method.upper(), operation, pointer_join(location, method)
    additional = path_item.get("additionalOperations")
    if isinstance(additional, dict):
        for method, operation in additional.items():
            if isinstance(operation, dict):
                yield method, operation, pointer_join(location, "additionalOperations", method)


def _has_operations(path_item: dict[str, Any]) -> bool:
    if any(path_item.get(method) for method in OPERATION_KEYS):
        return True
    additional = path_item.get("additionalOperations")
    return isinstance(additional, dict) and bool(additional)


# --- Pass A: path keys ---


def check_path_templates(paths: Any, openapi3: bool, location: str = "/paths") -> None:
    """Structural checks over every path key, before any operation is inspected."""
    if not isinstance(paths, dict):
        return

    signatures: dict[str, str] = {}
    for path, path_item in paths.items():
        here = pointer_join(location, path)
        if not path.startswith("/"):
            raise SpecValidationError(f"Path key \"{path}\" must start with \"/\".", here)

        check_template_braces(path, here, "Path template")

        variables = template_variables(path)
        repeated = sorted({name for name in variables if variables.count(name) > 1}, key=variables.index)
        if repeated:
            raise SpecValidationError(
                f"Path template \"{path}\" repeats template variable(s): {', '.join(repeated)}", here
            )

        if openapi3 and isinstance(path_item, dict) and isinstance(path_item.get("additionalOperations"), dict):
            for method in path_item["additionalOperations"]:
                if not TOKEN_RE.match(method):
                    raise SpecValidationError(
                        f"Path '{path}' defines additionalOperations method \"{method}\" "
                        "which is not a valid HTTP method token.",
                        pointer_join(here, "additionalOperations", method),
                    )
                if method.lower() in OPERATION_KEYS:
                    raise SpecValidationError(
                        f"Path '{path}' defines additionalOperations method \"{method}\" which conflicts with "
                        f"a fixed HTTP method. Use the corresponding fixed field (e.g. \"{method.lower()}\") instead.",
                        pointer_join(here, "additionalOperations", method),
                    )

        signature = path_signature(path)
        if "{}" in signature:
            if signature in signatures:
                raise SpecValidationError(
                    "Ambiguous path definition detected. OAS 3.2 forbids identical path hierarchies "
                    "with different parameter names.\n"
                    f"Path 1: \"{signatures[signature]}\"\n"
                    f"Path 2: \"{path}\"",
                    here,
                )
            signatures[signature] = path


# --- Pass B: operations and parameters ---


def check_path_operations(
    paths: Any,
    openapi3: bool,
    lookup: Optional[ParameterLookup] = None,
    location: str = "/paths",
) -> None:
    """Per-operation rules: responses, parameters, template/parameter agreement, bodies."""
    if not isinstance(paths, dict):
        return
    lookup = lookup or _inline_only

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        here = pointer_join(location, path)
        variables = list(dict.fromkeys(template_variables(path)))
        has_path_params = isinstance(path_item.get("parameters"), list) and bool(path_item["parameters"])
        skip_template = "$ref" in path_item or (not _has_operations(path_item) and not has_path_params)

        path_params = _located(path_item.get("parameters"), pointer_join(here, "parameters"))
        check_unique_parameters([lookup(p) for p, _ in path_params], path, pointer_join(here, "parameters"))

        for method, operation, op_location in iter_operations(path_item, here):
            label = f"{method} {path}"
            if openapi3 and "responses" not in operation:
                raise SpecValidationError(
                    f"Operation Object at '{op_location}' must define 'responses'.", op_location
                )
            if operation.get("externalDocs"):
                check_external_docs(operation["externalDocs"], pointer_join(op_location, "externalDocs"))

            op_params = _located(operation.get("parameters"), pointer_join(op_location, "parameters"))
            check_unique_parameters(
                [lookup(p) for p, _ in op_params], label, pointer_join(op_location, "parameters")
            )

            located = path_params + op_params
            resolved = [lookup(param) for param, _ in located]
            if variables and not skip_template:
                _check_template_coverage(variables, resolved, label, op_location)
            _check_query_exclusivity(resolved, label, op_location)

            for (param, param_location), target in zip(located, resolved):
                _check_parameter(param, target, label, path, param_location, openapi3, skip_template)

            if openapi3:
                check_request_body(operation.get("requestBody"), pointer_join(op_location, "requestBody"))
                check_responses(operation.get("responses"), pointer_join(op_location, "responses"), openapi3)


def _located(params: Any, location: str) -> list[tuple[Any, str]]:
    if not isinstance(params, list):
        return []
    return [(param, pointer_join(location, position)) for position, param in enumerate(params)]


def _check_template_coverage(
    variables: list[str], resolved: list[Optional[dict]], label: str, location: str
) -> None:
    # An unresolvable parameter might be the path parameter; nothing can be concluded.
    if any(param is None for param in resolved):
        return
    declared = {param.get("name") for param in resolved if param.get("in") == "path"}
    for name in variables:
        if name not in declared:
            raise SpecValidationError(
                f"Path template '{{{name}}}' in '{label}' is missing a corresponding 'in: path' parameter definition.",
                location,
            )


def _check_query_exclusivity(resolved: list[Optional[dict]], label: str, location: str) -> None:
    kinds = [param.get("in") for param in resolved if param is not None]
    if "query" in kinds and "querystring" in kinds:
        raise SpecValidationError(
            f"Operation '{label}' contains both 'query' and 'querystring' parameters. These are mutually exclusive.",
            location,
        )
    if kinds.count("querystring") > 1:
        raise SpecValidationError(
            f"Operation '{label}' defines more than one 'querystring' parameter. Only one is allowed.", location
        )


def _check_parameter(
    param: Any,
    target: Optional[dict],
    label: str,
    path: str,
    location: str,
    openapi3: bool,
    skip_template: bool,
) -> None:
    if not isinstance(param, dict):
        raise SpecValidationError(f"Parameter in '{label}' must be an object or Reference Object.", location)
    if has_reference_key(param):
        check_reference_object(param, location)
        if target is not None and target.get("in") == "path" and not skip_template:
            check_path_parameter(target, label, path, location)
        return

    name = param.get("name")
    if not isinstance(name, str) or not name.strip():
        raise SpecValidationError(f"Parameter in '{label}' must define a non-empty string 'name'.", location)
    where = param.get("in")
    if not isinstance(where, str) or not where.strip():
        raise SpecValidationError(f"Parameter '{name}' in '{label}' must define a non-empty string 'in'.", location)
    if is_reserved_header(param):
        return

    if where == "path" and not skip_template:
        check_path_parameter(param, label, path, location)
    check_parameter_fields(param, f"Parameter '{name}' in '{label}'", location, openapi3)


# --- Callbacks, webhooks and reusable path items ---


def check_path_item_operations(path_item: Any, location: str, openapi3: bool) -> None:
    """Responses, external docs and bodies of every operation in one path item."""
    if not isinstance(path_item, dict):
        return
    if has_reference_key(path_item):
        check_reference_object(path_item, location)
        return
    for _, operation, op_location in iter_operations(path_item, location):
        if "responses" not in operation:
            raise SpecValidationError(f"Operation Object at '{op_location}' must define 'responses'.", op_location)
        if operation.get("externalDocs"):
            check_external_docs(operation["externalDocs"], pointer_join(op_location, "externalDocs"))
        check_request_body(operation.get("requestBody"), pointer_join(op_location, "requestBody"))
        check_responses(operation.get("responses"), pointer_join(op_location, "responses"), openapi3)


def check_operations_content(path_items: Any, location: str, openapi3: bool) -> None:
    if not isinstance(path_items, dict):
        return
    for key, path_item in path_items.items():
        check_path_item_operations(path_item, pointer_join(location, key), openapi3)


def check_callback(callback: Any, location: str, openapi3: bool) -> None:
    """A Callback Object maps runtime-expression keys to path items."""
    if not isinstance(callback, dict):
        return
    if has_reference_key(callback):
        check_reference_object(callback, location)
        return
    for expression, path_item in callback.items():
        if not isinstance(path_item, dict):
            continue
        here = pointer_join(location, expression)
        check_runtime_expression_template(expression, here, required=True, label="Callback expression")
        check_path_item_operations(path_item, here, openapi3)


def iter_operation_callbacks(paths: Any, location: str) -> Iterator[tuple[Any, str]]:
    """Yield ``(callback object, location)`` for every callback declared by an operation in *paths*."""
    if not isinstance(paths, dict):
        return
    for path, path_item in paths.items():
        for _, operation, op_location in iter_operations(path_item, pointer_join(location, path)):
            callbacks = operation.get("callbacks")
            if isinstance(callbacks, dict):
                for name, callback in callbacks.items():
                    yield callback, pointer_join(op_location, "callbacks", name)


def callback_path_items(paths: Any, location: str) -> dict[str, Any]:
    """Collect inline callback path items of *paths*, keyed by their location."""
    items: dict[str, Any] = {}
    for callback, callback_location in iter_operation_callbacks(paths, location):
        if not isinstance(callback, dict) or has_reference_key(callback):
            continue
        for expression, path_item in callback.items():
            if isinstance(path_item, dict):
                items[pointer_join(callback_location, expression)] = path_item
    return items


def check_path_item_servers(path_item: Any, location: str) -> None:
    """Servers declared on one path item and on its operations."""
    if not isinstance(path_item, dict):
        return
    if path_item.get("servers"):
        check_servers(path_item["servers"], pointer_join(location, "servers"))
    for _, operation, op_location in iter_operations(path_item, location):
        if operation.get("servers"):
            check_servers(operation["servers"], pointer_join(op_location, "servers"))


def check_server_locations(path_items: Any, location: str) -> None:
    if isinstance(path_items, dict):
        for key, path_item in path_items.items():
            check_path_item_servers(path_item, pointer_join(location, key))
