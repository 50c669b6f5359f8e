from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from core.authentication.firebase.client import FirebaseAuthClient, get_firebase_client
from core.authentication.firebase.models import VerifiedCaller
from core.exceptions.authentication import UnauthorizedException

bearer_scheme = HTTPBearer(auto_error=False, description="Firebase ID token")

FirebaseClientDependency = Annotated[FirebaseAuthClient, Depends(get_firebase_client)]


async def verified_caller(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    firebase_client: FirebaseClientDependency,
) -> VerifiedCaller:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("Missing bearer token")

    check = firebase_client.verify_token(credentials.credentials)
    if not check.ok:
        raise UnauthorizedException(
            check.reason or "Invalid authentication token",
            error_code="INVALID_CREDENTIAL",
        )
    return check.caller


CallerDependency = Annotated[VerifiedCaller, Depends(verified_caller)]
