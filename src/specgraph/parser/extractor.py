"""Build the :class:`~specgraph.models.ResolvedView` of a loaded document graph.

This module walks the entry document of a populated
:class:`~specgraph.cache.DocumentCache` and flattens it into the
version-independent view downstream collaborators consume: operations,
webhooks, servers, named schemas, security schemes and links.

The single public entry point is :func:`build_view`.  Internally it
delegates to private helpers that each handle one section of the document:

* ``_extract_servers`` -- the ``servers`` array, or the Swagger 2.0
  ``schemes``/``host``/``basePath`` triple.
* ``_Extractor.operations`` -- ``paths`` and ``webhooks``, one entry per path
  template + method, including ``additionalOperations``.
* ``_extract_schemas`` -- ``components.schemas``/``definitions`` of every
  cached document plus standalone schema documents.
* ``_extract_security_schemes`` -- ``components.securitySchemes``,
  ``securityDefinitions`` and URI-keyed security requirements.
* ``_extract_links`` -- ``components.links``.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they
share the same ``name`` and ``in`` values.

Swagger 2.0 documents are normalized on the way: ``body`` and ``formData``
parameters become a request body, ``collectionFormat`` becomes
``style``/``explode``, and response ``schema`` becomes a ``content`` map
keyed by the operation's ``produces`` types.

Path items, parameters, request bodies and responses are resolved because
the view cannot be flattened without them; a dangling reference there
raises :class:`~specgraph.exceptions.ResolutionFailure`.  Security
requirement keys and component links are resolved best-effort: failures
are recorded on the diagnostics collector and the entry is skipped.
Everything placed on the view is a deep copy of the cached value.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Any, Optional

from specgraph.cache import DocumentCache
from specgraph.diagnostics import Diagnostics
from specgraph.exceptions import ResolutionFailure
from specgraph.models import (
    OPERATION_KEYS,
    Document,
    RequestBodyInfo,
    ResolvedOperation,
    ResolvedParameter,
    ResolvedView,
    ResponseInfo,
    SchemaEntry,
    SecurityScheme,
    ServerInfo,
    SourceLocation,
)
from specgraph.parser.resolver import ReferenceResolver
from specgraph.parser.uris import join_uri, pointer_join
from specgraph.tree import REFERENCE_KEYS, has_reference_key

logger = logging.getLogger(__name__)

_DEFAULT_MEDIA_TYPE = "application/json"
_FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"
_MULTIPART_MEDIA_TYPE = "multipart/form-data"

# Swagger 2.0 collectionFormat -> (style, explode)
_COLLECTION_FORMATS: dict[str, tuple[str, bool]] = {
    "csv": ("form", False),
    "ssv": ("spaceDelimited", False),
    "pipes": ("pipeDelimited", False),
    "multi": ("form", True),
}

# Swagger 2.0 non-body parameter fields that describe the value's schema
_SWAGGER2_SCHEMA_FIELDS = (
    "type",
    "format",
    "items",
    "enum",
    "default",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "minLength",
    "maxLength",
    "pattern",
    "minItems",
    "maxItems",
    "uniqueItems",
    "multipleOf",
)

_SCHEMA_DOCUMENT_KEYS = (
    "$id",
    "$schema",
    "type",
    "properties",
    "items",
    "allOf",
    "anyOf",
    "oneOf",
    "enum",
    "const",
    "additionalProperties",
    "patternProperties",
    "prefixItems",
    "contentMediaType",
    "contentSchema",
)


def build_view(
    cache: DocumentCache,
    entry_identity: Optional[str] = None,
    resolver: Optional[ReferenceResolver] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> ResolvedView:
    """Flatten the entry document of *cache* into a :class:`~specgraph.models.ResolvedView`.

    Args:
        cache: The populated, frozen document cache.
        entry_identity: Identity of the entry document.  Defaults to the
            resolver's entry document, or the first cached document.
        resolver: Resolver over *cache*; one is created when omitted.
        diagnostics: Collector for best-effort failures (security
            requirement keys, links, schema name conflicts).

    Returns:
        The resolved view of the entry document.

    Raises:
        ResolutionFailure: If a path item, parameter, request body or
            response reference cannot be resolved.

    Example::

        cache = discover("openapi.yaml")
        view = build_view(cache)
        for op in view.operations:
            print(op.method, op.path, op.operation_id)
    """
    if resolver is None:
        resolver = ReferenceResolver(cache, entry_identity)
    if diagnostics is None:
        diagnostics = Diagnostics()

    index = resolver.entry_index if entry_identity is None else resolver.context_index(entry_identity)
    document = cache.document_at(index)
    tree = document.tree if isinstance(document.tree, dict) else {}
    swagger2 = "swagger" in tree

    extractor = _Extractor(resolver, diagnostics, swagger2, tree)
    view = ResolvedView(
        spec_type="swagger" if swagger2 else "openapi",
        version=str(tree.get("swagger") or tree.get("openapi") or ""),
        entry_document=document.identity,
        info=copy.deepcopy(tree.get("info") or {}),
        json_schema_dialect=tree.get("jsonSchemaDialect"),
        servers=_extract_servers(tree, document),
        operations=extractor.operations(tree.get("paths"), index, "/paths"),
        webhooks=extractor.operations(tree.get("webhooks"), index, "/webhooks"),
        security_schemes=_extract_security_schemes(tree, document, index, resolver, diagnostics),
        schemas=_extract_schemas(cache, index, diagnostics),
        links=_extract_links(tree, index, resolver, diagnostics),
    )
    logger.debug(
        "Built view of %s: %d operations, %d webhooks, %d schemas",
        document.identity,
        len(view.operations),
        len(view.webhooks),
        len(view.schemas),
    )
    return view


# --- Servers ---


def _extract_servers(tree: dict[str, Any], document: Document) -> list[ServerInfo]:
    """Extract the root server list.

    OpenAPI 3.x documents without servers get a single ``/`` server.
    Relative server URLs are resolved against the document's retrieval URI
    when it was fetched over HTTP(S).
    """
    if "swagger" in tree:
        return _swagger2_servers(tree, document)

    servers = tree.get("servers")
    if not isinstance(servers, list) or not servers:
        servers = [{"url": "/"}]
    return _server_infos(servers, document.identity)


def _server_infos(servers: list[Any], retrieval_uri: str) -> list[ServerInfo]:
    result: list[ServerInfo] = []
    for server in servers:
        if not isinstance(server, dict):
            continue
        result.append(
            ServerInfo(
                url=_absolute_server_url(server.get("url") or "/", retrieval_uri),
                description=server.get("description"),
                name=server.get("name"),
                variables=copy.deepcopy(server.get("variables") or {}),
            )
        )
    return result


def _absolute_server_url(url: str, retrieval_uri: str) -> str:
    url = url.strip()
    if url.startswith("{") or not retrieval_uri.startswith(("http://", "https://")):
        return url
    try:
        return join_uri(retrieval_uri, url)
    except ValueError:
        return url


def _swagger2_servers(tree: dict[str, Any], document: Document) -> list[ServerInfo]:
    """Derive servers from Swagger 2.0 ``schemes``, ``host`` and ``basePath``.

    Missing ``host`` and ``schemes`` fall back to the retrieval URL when the
    document was fetched over HTTP(S).
    """
    retrieval = re.match(r"^(https?)://([^/]+)", document.identity)

    host = tree.get("host") or (retrieval.group(2) if retrieval else None)
    base_path = tree.get("basePath") or "/"
    if not base_path.startswith("/"):
        base_path = f"/{base_path}"

    schemes = tree.get("schemes")
    if not isinstance(schemes, list) or not schemes:
        schemes = [retrieval.group(1)] if retrieval else ["http"]

    if not host:
        return [ServerInfo(url=base_path)] if base_path != "/" else []
    return [ServerInfo(url=f"{scheme}://{host}{base_path}") for scheme in dict.fromkeys(schemes)]


# --- Operations ---


class _Extractor:
    """Operation flattening for one entry document."""

    def __init__(self, resolver: ReferenceResolver, diagnostics: Diagnostics, swagger2: bool, tree: dict[str, Any]):
        self._resolver = resolver
        self._diagnostics = diagnostics
        self._swagger2 = swagger2
        self._global_security = tree.get("security")
        self._consumes = tree.get("consumes") if swagger2 else None
        self._produces = tree.get("produces") if swagger2 else None

    def operations(self, path_items: Any, index: int, location: str) -> list[ResolvedOperation]:
        """Extract every operation of a ``paths`` or ``webhooks`` map.

        Args:
            path_items: The raw map of path template (or webhook name) to
                Path Item Object.
            index: Cache index of the document holding *path_items*.
            location: JSON Pointer of *path_items* in that document.

        Returns:
            One :class:`~specgraph.models.ResolvedOperation` per path +
            method, fixed methods first, then ``additionalOperations``.
        """
        if not isinstance(path_items, dict):
            return []

        operations: list[ResolvedOperation] = []
        for path, raw_item in path_items.items():
            if not isinstance(raw_item, dict):
                continue
            path_item, context, item_pointer = self._path_item(raw_item, index, pointer_join(location, path))
            identity = self._resolver.cache.document_at(context).identity
            path_params = path_item.get("parameters") or []

            for method, operation, op_pointer in _iter_operations(path_item, item_pointer):
                merged = _merge_parameters(
                    self._resolve_all(path_params, context),
                    self._resolve_all(operation.get("parameters") or [], context),
                )
                operations.append(
                    self._operation(path, method, path_item, operation, merged, context, identity, op_pointer)
                )
        return operations

    def _path_item(self, raw_item: dict[str, Any], index: int, pointer: str) -> tuple[dict[str, Any], int, str]:
        """Resolve a ``$ref`` path item and merge local sibling fields over the target."""
        if not has_reference_key(raw_item):
            return raw_item, index, pointer
        resolved, context, target_pointer = self._resolver.resolve_with_context(raw_item, index)
        local = {key: value for key, value in raw_item.items() if key not in REFERENCE_KEYS}
        merged = {**resolved, **local} if isinstance(resolved, dict) else local
        return merged, context, target_pointer

    def _resolve_all(self, params: Any, context: int) -> list[dict[str, Any]]:
        if not isinstance(params, list):
            return []
        resolved = [self._resolver.resolve(param, context) for param in params]
        return [param for param in resolved if isinstance(param, dict)]

    def _operation(
        self,
        path: str,
        method: str,
        path_item: dict[str, Any],
        operation: dict[str, Any],
        params: list[dict[str, Any]],
        context: int,
        identity: str,
        pointer: str,
    ) -> ResolvedOperation:
        body_params = [p for p in params if p.get("in") == "body"]
        form_params = [p for p in params if p.get("in") == "formData"]
        plain_params = [p for p in params if p.get("in") not in ("body", "formData")]

        consumes = operation.get("consumes") or self._consumes
        produces = operation.get("produces") or self._produces

        request_body = self._request_body(operation.get("requestBody"), context)
        if request_body is None and self._swagger2:
            request_body = _swagger2_request_body(body_params, form_params, consumes)

        # Operation-level security overrides global; an empty list means no auth.
        security = operation.get("security")
        if security is None:
            security = self._global_security

        servers = operation.get("servers") or path_item.get("servers")

        return ResolvedOperation(
            path=path,
            method=method,
            source=SourceLocation(document=identity, pointer=pointer),
            operation_id=operation.get("operationId"),
            summary=operation.get("summary") or path_item.get("summary"),
            description=operation.get("description") or path_item.get("description"),
            tags=list(operation.get("tags") or []),
            parameters=[_build_parameter(p, self._swagger2) for p in plain_params],
            request_body=request_body,
            responses=self._responses(operation.get("responses"), context, produces),
            security=copy.deepcopy(security) if isinstance(security, list) else None,
            servers=_server_infos(servers, identity) if isinstance(servers, list) else None,
            callbacks=copy.deepcopy(operation.get("callbacks") or {}),
            consumes=list(consumes) if consumes else None,
            produces=list(produces) if produces else None,
            deprecated=bool(operation.get("deprecated", False)),
            external_docs=copy.deepcopy(operation.get("externalDocs")),
            extensions=_extensions(operation),
        )

    def _request_body(self, body: Any, context: int) -> Optional[RequestBodyInfo]:
        if body is None:
            return None
        body = self._resolver.resolve(body, context)
        if not isinstance(body, dict):
            return None
        return RequestBodyInfo(
            required=bool(body.get("required", False)),
            description=body.get("description"),
            content=copy.deepcopy(body.get("content") or {}),
        )

    def _responses(self, responses: Any, context: int, produces: Optional[list[str]]) -> list[ResponseInfo]:
        """Extract response metadata for all declared status codes.

        Swagger 2.0 responses carrying a ``schema`` get a ``content`` entry
        per ``produces`` type (``application/json`` by default).
        """
        if not isinstance(responses, dict):
            return []

        result: list[ResponseInfo] = []
        for status_code, raw in responses.items():
            response = self._resolver.resolve(raw, context)
            if not isinstance(response, dict):
                continue

            content = response.get("content") or {}
            if self._swagger2 and "schema" in response:
                media_types = produces or [_DEFAULT_MEDIA_TYPE]
                content = {media_type: {"schema": response["schema"]} for media_type in media_types}

            result.append(
                ResponseInfo(
                    status_code=str(status_code),
                    description=response.get("description"),
                    headers=copy.deepcopy(response.get("headers") or {}),
                    content=copy.deepcopy(content),
                    links=copy.deepcopy(response.get("links") or {}),
                )
            )
        return result


def _iter_operations(path_item: dict[str, Any], pointer: str):
    for method in OPERATION_KEYS:
        operation = path_item.get(method)
        if isinstance(operation, dict):
            yield method.upper(), operation, pointer_join(pointer, method)
    additional = path_item.get("additionalOperations")
    if isinstance(additional, dict):
        for method, operation in additional.items():
            if isinstance(operation, dict):
                yield method, operation, pointer_join(pointer, "additionalOperations", method)


def _merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field), per the OpenAPI spec.

    Args:
        path_params: Resolved parameters defined at the path level.
        op_params: Resolved parameters defined at the operation level.

    Returns:
        Path-level parameters that are not overridden, followed by every
        operation-level parameter.
    """
    overridden = {(param.get("name", ""), param.get("in", "")) for param in op_params}
    merged = [param for param in path_params if (param.get("name", ""), param.get("in", "")) not in overridden]
    merged.extend(op_params)
    return merged


def _build_parameter(param: dict[str, Any], swagger2: bool) -> ResolvedParameter:
    """Convert a resolved Parameter Object into a :class:`~specgraph.models.ResolvedParameter`.

    When only ``content`` is given, the schema of its single media type is
    exposed as the parameter schema.  Swagger 2.0 parameters get a schema
    assembled from their inline ``type``/``format``/``items``... fields and
    ``collectionFormat`` mapped to ``style``/``explode``.  Path parameters
    are always required.
    """
    schema = param.get("schema")
    content = param.get("content")
    if schema is None and isinstance(content, dict) and content:
        first = next(iter(content.values()))
        if isinstance(first, dict):
            schema = first.get("schema")
    if schema is None and swagger2:
        schema = {field: param[field] for field in _SWAGGER2_SCHEMA_FIELDS if field in param} or None

    style, explode = param.get("style"), param.get("explode")
    if swagger2 and param.get("collectionFormat") in _COLLECTION_FORMATS:
        style, explode = _COLLECTION_FORMATS[param["collectionFormat"]]

    location = param.get("in", "query")
    return ResolvedParameter(
        name=param.get("name", ""),
        location=location,
        required=True if location == "path" else bool(param.get("required", False)),
        description=param.get("description"),
        schema=copy.deepcopy(schema),
        content=copy.deepcopy(content) if isinstance(content, dict) else None,
        style=style,
        explode=explode,
        allow_reserved=param.get("allowReserved"),
        allow_empty_value=param.get("allowEmptyValue"),
        deprecated=bool(param.get("deprecated", False)),
        extensions=_extensions(param),
    )


def _swagger2_request_body(
    body_params: list[dict[str, Any]],
    form_params: list[dict[str, Any]],
    consumes: Optional[list[str]],
) -> Optional[RequestBodyInfo]:
    """Turn a Swagger 2.0 ``in: body`` parameter, or ``in: formData`` parameters, into a request body."""
    if body_params:
        body = body_params[0]
        media_types = consumes or [_DEFAULT_MEDIA_TYPE]
        return RequestBodyInfo(
            required=bool(body.get("required", False)),
            description=body.get("description"),
            content={media_type: {"schema": copy.deepcopy(body.get("schema"))} for media_type in media_types},
        )

    if not form_params:
        return None

    properties: dict[str, Any] = {}
    required: list[str] = []
    for param in form_params:
        name = param.get("name", "")
        properties[name] = {field: copy.deepcopy(param[field]) for field in _SWAGGER2_SCHEMA_FIELDS if field in param}
        if param.get("type") == "file":
            properties[name] = {"type": "string", "format": "binary"}
        if param.get("required"):
            required.append(name)

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required

    has_file = any(param.get("type") == "file" for param in form_params)
    media_type = _MULTIPART_MEDIA_TYPE if has_file or _MULTIPART_MEDIA_TYPE in (consumes or []) else _FORM_MEDIA_TYPE
    return RequestBodyInfo(required=bool(required), content={media_type: {"schema": schema}})


def _extensions(node: dict[str, Any]) -> dict[str, Any]:
    return {key: copy.deepcopy(value) for key, value in node.items() if key.startswith("x-")}


# --- Schemas ---


def _extract_schemas(cache: DocumentCache, entry_index: int, diagnostics: Diagnostics) -> list[SchemaEntry]:
    """Collect named schemas from every cached document, entry document first.

    OpenAPI/Swagger documents contribute ``components.schemas`` or
    ``definitions``.  Standalone schema documents contribute themselves,
    named after the last segment of their ``$id`` or retrieval URI.  The
    first occurrence of a name wins; a different definition under the same
    name is reported and skipped.
    """
    order = [entry_index] + [i for i in range(len(cache)) if i != entry_index]
    entries: dict[str, SchemaEntry] = {}
    originals: dict[str, Any] = {}

    def add(name: str, definition: Any, source: SourceLocation) -> None:
        if name not in entries:
            entries[name] = SchemaEntry(name=name, definition=copy.deepcopy(definition), source=source)
            originals[name] = definition
        elif originals[name] is not definition and originals[name] != definition:
            diagnostics.warn(
                f"Duplicate schema name '{name}' encountered in {source.document}; keeping first occurrence",
                location=str(source),
                logger=logger,
            )

    for synthetic, index in enumerate(order, start=1):
        document = cache.document_at(index)
        tree = document.tree
        if not isinstance(tree, dict):
            continue

        table, location = _schema_table(tree)
        if table is not None:
            for name, definition in table.items():
                add(name, definition, SourceLocation(document=document.identity, pointer=pointer_join(location, name)))
        elif _is_schema_document(tree):
            add(_schema_document_name(document, tree, synthetic), tree, SourceLocation(document=document.identity))

    return list(entries.values())


def _schema_table(tree: dict[str, Any]) -> tuple[Optional[dict[str, Any]], str]:
    if isinstance(tree.get("definitions"), dict):
        return tree["definitions"], "/definitions"
    components = tree.get("components")
    if isinstance(components, dict) and isinstance(components.get("schemas"), dict):
        return components["schemas"], "/components/schemas"
    return None, ""


def _is_schema_document(tree: dict[str, Any]) -> bool:
    if any(key in tree for key in ("openapi", "swagger", "info", "paths")):
        return False
    return any(key in tree for key in _SCHEMA_DOCUMENT_KEYS)


def _schema_document_name(document: Document, tree: dict[str, Any], fallback: int) -> str:
    source = tree["$id"] if isinstance(tree.get("$id"), str) else document.identity
    segments = [segment for segment in source.split("#", 1)[0].split("?", 1)[0].split("/") if segment]
    if not segments:
        return f"Schema{fallback}"
    stem = re.sub(r"\.[^/.]+$", "", segments[-1])
    return stem or f"Schema{fallback}"


# --- Security schemes and links ---


def _extract_security_schemes(
    tree: dict[str, Any],
    document: Document,
    index: int,
    resolver: ReferenceResolver,
    diagnostics: Diagnostics,
) -> dict[str, SecurityScheme]:
    """Extract security schemes declared by the entry document.

    ``components.securitySchemes`` (OpenAPI 3.x) and ``securityDefinitions``
    (Swagger 2.0) are merged.  Security requirement keys that name no
    declared scheme are then resolved as references (OAS 3.2 allows a URI
    to a Security Scheme Object), best-effort.

    Returns:
        A dict mapping scheme name (or requirement key) to
        :class:`~specgraph.models.SecurityScheme`.
    """
    declared: dict[str, tuple[Any, str]] = {}
    components = tree.get("components")
    if isinstance(components, dict) and isinstance(components.get("securitySchemes"), dict):
        for name, scheme in components["securitySchemes"].items():
            declared[name] = (scheme, pointer_join("/components/securitySchemes", name))
    if isinstance(tree.get("securityDefinitions"), dict):
        for name, scheme in tree["securityDefinitions"].items():
            declared[name] = (scheme, pointer_join("/securityDefinitions", name))

    schemes: dict[str, SecurityScheme] = {}
    for name, (raw, pointer) in declared.items():
        try:
            scheme, context, target = resolver.resolve_with_context(raw, index)
        except ResolutionFailure as exc:
            diagnostics.warn(
                f"Skipping security scheme '{name}': {exc.message}",
                reference=exc.reference,
                location=pointer,
                logger=logger,
            )
            continue
        if isinstance(scheme, dict):
            source = SourceLocation(document=resolver.cache.document_at(context).identity, pointer=target or pointer)
            schemes[name] = _security_scheme(name, scheme, source)

    for key in _requirement_keys(tree):
        if key in schemes:
            continue
        location = f"{document.identity}#/security"
        resolved = resolver.try_resolve_reference(key, index, diagnostics=diagnostics, location=location)
        if isinstance(resolved, dict) and isinstance(resolved.get("type"), str):
            schemes[key] = _security_scheme(key, resolved, SourceLocation(document=document.identity))
    return schemes


def _requirement_keys(tree: dict[str, Any]) -> list[str]:
    """Every key of every security requirement, root first, in declaration order."""
    requirements: list[Any] = list(tree.get("security") or [])
    for section in ("paths", "webhooks"):
        path_items = tree.get(section)
        if not isinstance(path_items, dict):
            continue
        for path_item in path_items.values():
            if isinstance(path_item, dict):
                for _, operation, _ in _iter_operations(path_item, ""):
                    requirements.extend(operation.get("security") or [])

    keys: list[str] = []
    for requirement in requirements:
        if isinstance(requirement, dict):
            keys.extend(key for key in requirement if key not in keys)
    return keys


def _security_scheme(name: str, scheme: dict[str, Any], source: SourceLocation) -> SecurityScheme:
    return SecurityScheme(
        name=name,
        type=str(scheme.get("type", "")),
        source=source,
        description=scheme.get("description"),
        param_name=scheme.get("name"),
        location=scheme.get("in"),
        scheme=scheme.get("scheme"),
        bearer_format=scheme.get("bearerFormat"),
        flows=copy.deepcopy(scheme.get("flows")),
        openid_connect_url=scheme.get("openIdConnectUrl"),
        oauth2_metadata_url=scheme.get("oauth2MetadataUrl"),
        flow=scheme.get("flow"),
        authorization_url=scheme.get("authorizationUrl"),
        token_url=scheme.get("tokenUrl"),
        scopes=copy.deepcopy(scheme.get("scopes")),
    )


def _extract_links(
    tree: dict[str, Any],
    index: int,
    resolver: ReferenceResolver,
    diagnostics: Diagnostics,
) -> dict[str, Any]:
    components = tree.get("components")
    if not isinstance(components, dict) or not isinstance(components.get("links"), dict):
        return {}

    links: dict[str, Any] = {}
    for name, link in components["links"].items():
        location = pointer_join("/components/links", name)
        if has_reference_key(link):
            resolved = _try_resolve(link, index, resolver, diagnostics, location)
            if resolved is None:
                continue
            link = resolved
        links[name] = copy.deepcopy(link)
    return links


def _try_resolve(
    obj: Any,
    index: int,
    resolver: ReferenceResolver,
    diagnostics: Diagnostics,
    location: str,
) -> Optional[Any]:
    try:
        return resolver.resolve(obj, index)
    except ResolutionFailure as exc:
        diagnostics.warn(exc.message, reference=exc.reference, location=location, logger=logger)
        return None
