"""
Authentication module: certificate-based app-only auth.
Uses MSAL for token acquisition against Microsoft Identity Platform,
one token per resource scope (Graph, Exchange Online).
"""

from __future__ import annotations

import base64
import logging
import os
from typing import Optional

from cryptography.hazmat.primitives.serialization import pkcs12, Encoding, PrivateFormat, NoEncryption
from cryptography.hazmat.primitives.hashes import SHA1
import msal

from ..config import AuthConfig

logger = logging.getLogger("m365_standards.auth")


class AuthenticationError(Exception):
    """Raised when authentication fails."""
    pass


class Authenticator:
    """
    Handles MSAL-based client-credential authentication.
    The certificate is loaded once. Tokens are cached by MSAL per tenant
    authority and scope, so one app registration can serve many tenants.
    """

    def __init__(self, config: AuthConfig):
        self.config = config
        self._apps: dict[str, msal.ConfidentialClientApplication] = {}
        self._private_key_pem: Optional[str] = None
        self.thumbprint: str = ""

    def _load_certificate(self) -> tuple[str, str]:
        """Return (private_key_pem, thumbprint) from the base64 PFX file."""
        cert_config = self.config.certificate
        if not cert_config:
            raise AuthenticationError("Certificate auth config not provided.")

        cert_path = cert_config.certificate_path
        password = cert_config.certificate_password or os.environ.get("M365_CERT_PASSWORD", "")

        try:
            with open(cert_path, "r") as f:
                cert_base64 = f.read().strip()

            cert_bytes = base64.b64decode(cert_base64)
            password_bytes = password.encode("utf-8") if password else None

            private_key, certificate, _ = pkcs12.load_key_and_certificates(
                cert_bytes, password_bytes
            )
            if private_key is None or certificate is None:
                raise AuthenticationError("PFX does not contain a key and certificate")

            private_key_pem = private_key.private_bytes(
                Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()
            ).decode("utf-8")
            thumbprint = cert_config.thumbprint or certificate.fingerprint(SHA1()).hex()

        except FileNotFoundError:
            raise AuthenticationError(f"Certificate file not found: {cert_path}")
        except AuthenticationError:
            raise
        except Exception as e:
            raise AuthenticationError(f"Failed to load certificate: {e}")

        logger.info(f"Certificate loaded. Thumbprint: {thumbprint}")
        return private_key_pem, thumbprint

    def _get_app(self, tenant: Optional[str] = None) -> msal.ConfidentialClientApplication:
        """One confidential client per authority, sharing the loaded certificate."""
        if self._private_key_pem is None:
            self._private_key_pem, self.thumbprint = self._load_certificate()
        cert_config = self.config.certificate
        authority_tenant = tenant or cert_config.tenant_id
        app = self._apps.get(authority_tenant)
        if app is None:
            app = msal.ConfidentialClientApplication(
                client_id=cert_config.client_id,
                authority=f"https://login.microsoftonline.com/{authority_tenant}",
                client_credential={
                    "thumbprint": self.thumbprint,
                    "private_key": self._private_key_pem,
                },
            )
            self._apps[authority_tenant] = app
        return app

    def acquire_token(self, scope: str, tenant: Optional[str] = None) -> str:
        """
        Acquire an app-only access token for one resource scope, issued by
        the given tenant (the configured home tenant when omitted).
        """
        app = self._get_app(tenant)
        result = app.acquire_token_for_client(scopes=[scope])

        if "access_token" in result:
            logger.debug(f"Token acquired for {scope} in {tenant or 'home tenant'}")
            return result["access_token"]
        error = result.get("error_description", result.get("error", "Unknown"))
        raise AuthenticationError(
            f"Certificate auth failed for {scope} in {tenant or 'home tenant'}: {error}"
        )
