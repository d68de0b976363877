"""FastAPI dependencies for the services published on ``app.state``.

Each returns 503 when the lifespan that publishes the service did not run
or the service was not configured for this deployment.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request

from kinship.foundation.domain.ports import ExternalIdentityVerifierPort, PasswordHasherPort
from kinship.infra.auth.correlation import CorrelationStore
from kinship.infra.auth.token_codec import SessionTokenCodec


def _state(request: Request, name: str, what: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=503, detail=f"{what} not configured")
    return value


def get_token_codec(request: Request) -> SessionTokenCodec:
    return _state(request, "token_codec", "Session token codec")  # type: ignore[no-any-return]


def get_password_hasher(request: Request) -> PasswordHasherPort:
    return _state(request, "password_hasher", "Password hasher")  # type: ignore[no-any-return]


def get_correlation_store(request: Request) -> CorrelationStore:
    return _state(request, "correlation_store", "Correlation store")  # type: ignore[no-any-return]


def get_external_identity_verifier(request: Request) -> ExternalIdentityVerifierPort:
    return _state(  # type: ignore[no-any-return]
        request,
        "external_identity_verifier",
        "External identity provider",
    )


TokenCodec = Annotated[SessionTokenCodec, Depends(get_token_codec)]
PasswordHasher = Annotated[PasswordHasherPort, Depends(get_password_hasher)]
Correlations = Annotated[CorrelationStore, Depends(get_correlation_store)]
ExternalVerifier = Annotated[ExternalIdentityVerifierPort, Depends(get_external_identity_verifier)]
