from __future__ import annotations

from typing import Mapping, Optional

from fastapi import Request

from .errors import ServerMisconfigured, Unauthorized

BEARER_PREFIX = "Bearer "


def _authorization_header(headers: Mapping[str, str]) -> Optional[str]:
    value = headers.get("authorization")
    if value is not None:
        return value
    # Plain dicts are case-sensitive; starlette Headers are not
    for name, header_value in headers.items():
        if name.lower() == "authorization":
            return header_value
    return None


# PUBLIC_INTERFACE
def check(headers: Mapping[str, str], secret: Optional[str]) -> None:
    """
    Validate a bearer credential against the configured shared secret.

    Raises:
        ServerMisconfigured if no secret is configured (operators must set ADMIN_TOKEN).
        Unauthorized if the Authorization header is missing, does not use the
        'Bearer ' scheme, or carries a token different from the secret.
    """
    if not secret:
        raise ServerMisconfigured("Server misconfiguration: missing ADMIN_TOKEN")

    header = _authorization_header(headers)
    if header is None or not header.startswith(BEARER_PREFIX):
        raise Unauthorized("Unauthorized")

    token = header[len(BEARER_PREFIX):].strip()
    if token != secret:
        raise Unauthorized("Unauthorized")


# PUBLIC_INTERFACE
def require_admin(request: Request) -> None:
    """
    FastAPI dependency guarding the admin routes.

    Usage:
        router = APIRouter(dependencies=[Depends(require_admin)])

    The secret comes from the settings injected on ``app.state.settings``;
    failures propagate as domain errors and are mapped to 401/500 by the
    exception handlers registered in ``main.create_app``.
    """
    check(request.headers, request.app.state.settings.admin_token)
