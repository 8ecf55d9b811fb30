"""Security Scheme and OAuth flow rules (OpenAPI 3.x)."""

from __future__ import annotations

from typing import Any

from specgraph.exceptions import SpecValidationError
from specgraph.parser.uris import pointer_join
from specgraph.tree import has_reference_key
from specgraph.validation.formats import check_https_url
from specgraph.validation.objects import check_reference_object

API_KEY_LOCATIONS = ("query", "header", "cookie")

_AUTHORIZATION_URL_FLOWS = frozenset({"implicit", "authorizationCode"})
_TOKEN_URL_FLOWS = frozenset({"password", "clientCredentials", "authorizationCode", "deviceAuthorization"})


def check_oauth_flow(flow: Any, flow_name: str, location: str) -> None:
    if not isinstance(flow, dict):
        raise SpecValidationError(f"OAuth2 flow \"{flow_name}\" must be an object at '{location}'.", location)

    here = pointer_join(location, flow_name)
    if flow_name in _AUTHORIZATION_URL_FLOWS:
        check_https_url(flow.get("authorizationUrl"), here, "authorizationUrl")
    if flow_name in _TOKEN_URL_FLOWS:
        check_https_url(flow.get("tokenUrl"), here, "tokenUrl")
    if flow_name == "deviceAuthorization":
        check_https_url(flow.get("deviceAuthorizationUrl"), here, "deviceAuthorizationUrl")
    if "refreshUrl" in flow:
        check_https_url(flow["refreshUrl"], here, "refreshUrl")

    if not isinstance(flow.get("scopes"), dict):
        raise SpecValidationError(
            f"OAuth2 flow \"{flow_name}\" must define 'scopes' as an object at '{location}'.", here
        )


def check_security_schemes(schemes: Any, location: str = "/components/securitySchemes") -> None:
    """Validate ``components.securitySchemes``.

    Supported types are ``apiKey``, ``http``, ``oauth2``, ``openIdConnect``
    and ``mutualTLS``.  Every OAuth and OpenID Connect endpoint must be an
    ``https`` URL.
    """
    if not isinstance(schemes, dict):
        return

    for name, scheme in schemes.items():
        here = pointer_join(location, name)
        if not isinstance(scheme, dict):
            continue
        if has_reference_key(scheme):
            check_reference_object(scheme, here)
            continue

        kind = scheme.get("type")
        if not isinstance(kind, str):
            raise SpecValidationError(f"Security scheme \"{name}\" must define a string 'type' at '{location}'.", here)

        if kind == "apiKey":
            key_name = scheme.get("name")
            if not isinstance(key_name, str) or not key_name:
                raise SpecValidationError(
                    f"apiKey security scheme \"{name}\" must define non-empty 'name' at '{location}'.", here
                )
            if scheme.get("in") not in API_KEY_LOCATIONS:
                raise SpecValidationError(
                    f"apiKey security scheme \"{name}\" must define 'in' as 'query', 'header', or 'cookie' "
                    f"at '{location}'.",
                    here,
                )
        elif kind == "http":
            http_scheme = scheme.get("scheme")
            if not isinstance(http_scheme, str) or not http_scheme:
                raise SpecValidationError(
                    f"http security scheme \"{name}\" must define non-empty 'scheme' at '{location}'.", here
                )
        elif kind == "oauth2":
            flows = scheme.get("flows")
            if not isinstance(flows, dict):
                raise SpecValidationError(
                    f"oauth2 security scheme \"{name}\" must define 'flows' at '{location}'.", here
                )
            if "oauth2MetadataUrl" in scheme:
                check_https_url(scheme["oauth2MetadataUrl"], here, "oauth2MetadataUrl")
            if not flows:
                raise SpecValidationError(
                    f"oauth2 security scheme \"{name}\" must define at least one flow at '{location}'.", here
                )
            for flow_name, flow in flows.items():
                check_oauth_flow(flow, flow_name, pointer_join(here, "flows"))
        elif kind == "openIdConnect":
            check_https_url(scheme.get("openIdConnectUrl"), here, "openIdConnectUrl")
        elif kind != "mutualTLS":
            raise SpecValidationError(
                f"Security scheme \"{name}\" has unsupported type \"{kind}\" at '{location}'.", here
            )
