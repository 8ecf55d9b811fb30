"""Canonical Pydantic models shared across all specgraph modules.

This is the single source of truth for data shapes in the project.  The
models fall into three groups:

**Settings** -- consumed by the loader and walker:
    :class:`LoaderSettings`.

**Graph models** -- produced during discovery:
    :class:`Document`, :class:`SourceLocation`, :class:`Diagnostic`.

**Resolved View models** -- produced by
:func:`~specgraph.parser.extractor.build_view` and consumed by downstream
collaborators:
    :class:`HTTPMethod`, :class:`ParameterLocation`,
    :class:`ResolvedParameter`, :class:`RequestBodyInfo`,
    :class:`ResponseInfo`, :class:`ResolvedOperation`,
    :class:`SecurityScheme`, :class:`SchemaEntry`, :class:`ServerInfo`,
    :class:`PolymorphicOption`, and :class:`ResolvedView`.

Resolved View entries hold raw tree values (``dict``/``list``) that may still
contain Reference Objects.  They are snapshots: mutating them never touches
the shared :class:`~specgraph.cache.DocumentCache`, because every value
placed on a view model is copied at construction time.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Settings ---


class LoaderSettings(BaseModel):
    """Transport settings for fetching documents.

    Resolved by :func:`~specgraph.config.resolve_settings` from explicit
    overrides, ``SPECGRAPH_*`` environment variables, and ``./specgraph.json``.
    """

    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    follow_redirects: bool = Field(default=True, description="Follow HTTP redirects")
    max_concurrency: int = Field(
        default=8, ge=1, description="Maximum parallel fetches during async discovery"
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra HTTP headers sent with every fetch"
    )


# --- Graph models ---


class Document(BaseModel):
    """One loaded document: its generic tree plus its identities.

    ``identity`` is the absolute URI the document was fetched from and is its
    cache key.  ``logical_base`` is the absolute form of a self-declared
    ``$self``, when present and different; relative references inside the
    document resolve against :attr:`base`.
    """

    model_config = ConfigDict(frozen=True)

    identity: str
    tree: Any = None
    logical_base: Optional[str] = None
    format: str = Field(default="json", description="Serialization the content was decoded from")

    @property
    def base(self) -> str:
        """The URI relative references in this document resolve against."""
        return self.logical_base or self.identity

    @property
    def is_api_description(self) -> bool:
        """``True`` for OpenAPI/Swagger documents, ``False`` for schema-only documents."""
        if not isinstance(self.tree, dict):
            return False
        return isinstance(self.tree.get("openapi"), str) or isinstance(self.tree.get("swagger"), str)


class SourceLocation(BaseModel):
    """Where a Resolved View entry came from: a document identity plus a JSON Pointer."""

    model_config = ConfigDict(frozen=True)

    document: str
    pointer: str = ""

    def __str__(self) -> str:
        return f"{self.document}#{self.pointer}"


class DiagnosticLevel(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"


class Diagnostic(BaseModel):
    """A non-fatal finding recorded by a best-effort consumer."""

    level: DiagnosticLevel = DiagnosticLevel.WARNING
    message: str
    reference: Optional[str] = None
    location: Optional[str] = None


# --- Resolved View models ---


class HTTPMethod(str, enum.Enum):
    """Fixed HTTP method fields of a Path Item Object.

    ``QUERY`` is the OAS 3.2 addition.  Methods declared under
    ``additionalOperations`` are kept as plain strings on
    :class:`ResolvedOperation`.
    """

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"
    TRACE = "trace"
    QUERY = "query"


OPERATION_KEYS: tuple[str, ...] = tuple(m.value for m in HTTPMethod)


class ParameterLocation(str, enum.Enum):
    """Locations where a parameter can appear, per the ``in`` field."""

    QUERY = "query"
    QUERYSTRING = "querystring"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"
    # Swagger 2.0 only
    FORM_DATA = "formData"
    BODY = "body"


class ResolvedParameter(BaseModel):
    """A parameter after path/operation merging and Swagger 2.0 normalization."""

    name: str
    location: str
    required: bool = False
    description: Optional[str] = None
    schema_: Optional[Any] = Field(default=None, alias="schema")
    content: Optional[dict[str, Any]] = None
    style: Optional[str] = None
    explode: Optional[bool] = None
    allow_reserved: Optional[bool] = None
    allow_empty_value: Optional[bool] = None
    deprecated: bool = False
    extensions: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


class RequestBodyInfo(BaseModel):
    required: bool = False
    description: Optional[str] = None
    content: dict[str, Any] = Field(default_factory=dict)

    @property
    def content_types(self) -> list[str]:
        return list(self.content)


class ResponseInfo(BaseModel):
    status_code: str
    description: Optional[str] = None
    headers: dict[str, Any] = Field(default_factory=dict)
    content: dict[str, Any] = Field(default_factory=dict)
    links: dict[str, Any] = Field(default_factory=dict)


class ServerInfo(BaseModel):
    url: str
    description: Optional[str] = None
    name: Optional[str] = None
    variables: dict[str, Any] = Field(default_factory=dict)


class ResolvedOperation(BaseModel):
    """One flattened operation (path template + method).

    ``method`` is upper-case, e.g. ``"GET"``, or the verbatim token of an
    ``additionalOperations`` entry.  ``source`` points at the Operation
    Object inside the document that declared it.
    """

    path: str
    method: str
    source: SourceLocation
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    parameters: list[ResolvedParameter] = Field(default_factory=list)
    request_body: Optional[RequestBodyInfo] = None
    responses: list[ResponseInfo] = Field(default_factory=list)
    security: Optional[list[dict[str, list[str]]]] = None
    servers: Optional[list[ServerInfo]] = None
    callbacks: dict[str, Any] = Field(default_factory=dict)
    consumes: Optional[list[str]] = None
    produces: Optional[list[str]] = None
    deprecated: bool = False
    external_docs: Optional[dict[str, Any]] = None
    extensions: dict[str, Any] = Field(default_factory=dict)


class SecurityScheme(BaseModel):
    """A normalized Security Scheme Object (OAS 3 ``securitySchemes`` or Swagger 2 ``securityDefinitions``)."""

    name: str
    type: str
    source: SourceLocation
    description: Optional[str] = None
    param_name: Optional[str] = None
    location: Optional[str] = None
    scheme: Optional[str] = None
    bearer_format: Optional[str] = None
    flows: Optional[dict[str, Any]] = None
    openid_connect_url: Optional[str] = None
    oauth2_metadata_url: Optional[str] = None
    # Swagger 2.0 oauth2 shape
    flow: Optional[str] = None
    authorization_url: Optional[str] = None
    token_url: Optional[str] = None
    scopes: Optional[dict[str, Any]] = None


class SchemaEntry(BaseModel):
    """A named top-level schema, wherever the format version stores it."""

    name: str
    definition: Any
    source: SourceLocation


class PolymorphicOption(BaseModel):
    """One member of a discriminated union: the discriminator value and its concrete schema."""

    name: str
    schema_: Any = Field(alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class ResolvedView(BaseModel):
    """Everything downstream collaborators read from a loaded document graph."""

    spec_type: str = Field(description="'openapi' or 'swagger'")
    version: str
    entry_document: str
    info: dict[str, Any] = Field(default_factory=dict)
    json_schema_dialect: Optional[str] = None
    servers: list[ServerInfo] = Field(default_factory=list)
    operations: list[ResolvedOperation] = Field(default_factory=list)
    webhooks: list[ResolvedOperation] = Field(default_factory=list)
    security_schemes: dict[str, SecurityScheme] = Field(default_factory=dict)
    schemas: list[SchemaEntry] = Field(default_factory=list)
    links: dict[str, Any] = Field(default_factory=dict)

    def schema_named(self, name: str) -> Optional[SchemaEntry]:
        for entry in self.schemas:
            if entry.name == name:
                return entry
        return None

    def operation_by_id(self, operation_id: str) -> Optional[ResolvedOperation]:
        for op in [*self.operations, *self.webhooks]:
            if op.operation_id == operation_id:
                return op
        return None
