import json
import logging
import os
from functools import lru_cache
from typing import Optional, Dict

import firebase_admin
from firebase_admin import credentials, auth, exceptions as firebase_exceptions
from pydantic import ValidationError

from apps.settings import settings
from core.exceptions import AppException, InvalidRequestException

from .models import NewStaffAccount, StaffAccount, TokenCheck, VerifiedCaller

logger = logging.getLogger(__name__)


def _load_credentials(
    service_account_path: Optional[str], service_account_info: Optional[Dict]
) -> credentials.Base:
    if service_account_path and os.path.exists(service_account_path):
        logger.info(f"Using Firebase service account file {service_account_path}")
        return credentials.Certificate(service_account_path)
    if service_account_info:
        logger.info("Using Firebase service account from settings")
        return credentials.Certificate(service_account_info)
    if os.getenv("GOOGLE_APPLICATION_CREDENTIALS"):
        logger.info("Using Google application default credentials")
        return credentials.ApplicationDefault()
    raise ValueError("No Firebase credentials configured")


class FirebaseAuthClient:
    """Verifies staff bearer tokens and provisions staff accounts.

    Staff sign in against Firebase Authentication; this side only checks the
    resulting ID tokens and creates email/password accounts when an admin
    onboards someone.
    """

    def __init__(
        self,
        service_account_path: Optional[str] = None,
        service_account_info: Optional[Dict] = None,
        check_revoked: bool = False,
    ):
        self.check_revoked = check_revoked
        try:
            if firebase_admin._apps:
                self.app = firebase_admin.get_app()
            else:
                self.app = firebase_admin.initialize_app(
                    _load_credentials(service_account_path, service_account_info)
                )
                logger.info("Firebase app initialized")
        except (ValueError, OSError) as e:
            logger.error(f"Firebase initialization failed: {str(e)}")
            raise AppException(
                "Identity provider is not configured",
                error_code="IDENTITY_PROVIDER_UNAVAILABLE",
            ) from e

    def verify_token(self, token: str) -> TokenCheck:
        if token.startswith("Bearer "):
            token = token[7:]
        try:
            claims = auth.verify_id_token(
                token, app=self.app, check_revoked=self.check_revoked
            )
        except auth.ExpiredIdTokenError:
            return TokenCheck(reason="Authentication token has expired")
        except auth.RevokedIdTokenError:
            return TokenCheck(reason="Authentication token has been revoked")
        except auth.UserDisabledError:
            return TokenCheck(reason="Account is disabled")
        except auth.InvalidIdTokenError:
            return TokenCheck(reason="Invalid authentication token")
        except (ValueError, auth.CertificateFetchError) as e:
            logger.warning(f"Token verification failed: {str(e)}")
            return TokenCheck(reason="Authentication failed")

        return TokenCheck(caller=VerifiedCaller(**claims))

    def create_user(
        self, email: str, password: str, display_name: Optional[str] = None
    ) -> StaffAccount:
        """
        Create an email/password account for a new staff member.

        Raises:
            InvalidRequestException: If the details are malformed or the
                provider rejects them (duplicate email, weak password).
        """
        try:
            account = NewStaffAccount(
                email=email, password=password, display_name=display_name
            )
        except ValidationError as e:
            raise InvalidRequestException(
                "Invalid account details", error_code="INVALID_ACCOUNT"
            ) from e

        try:
            record = auth.create_user(
                email=account.email,
                password=account.password,
                display_name=account.display_name,
                app=self.app,
            )
        except auth.EmailAlreadyExistsError as e:
            raise InvalidRequestException(
                "An account with this email already exists",
                error_code="EMAIL_EXISTS",
            ) from e
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            logger.error(f"Failed to create account for {email}: {str(e)}")
            raise InvalidRequestException(
                str(e) or "Failed to create account", error_code="CREATE_USER_FAILED"
            ) from e

        logger.info(f"Created staff account {record.uid}")
        return StaffAccount(
            uid=record.uid,
            email=record.email,
            display_name=record.display_name,
            disabled=record.disabled,
        )


@lru_cache
def get_firebase_client() -> FirebaseAuthClient:
    """Process-wide client; overridden in tests via ``app.dependency_overrides``."""
    service_account_info = None
    if settings.FIREBASE_SERVICE_ACCOUNT_KEY:
        service_account_info = json.loads(settings.FIREBASE_SERVICE_ACCOUNT_KEY)
    return FirebaseAuthClient(
        service_account_path=settings.FIREBASE_SERVICE_ACCOUNT_PATH,
        service_account_info=service_account_info,
        check_revoked=settings.FIREBASE_CHECK_REVOKED,
    )
