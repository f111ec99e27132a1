# blog_posts/auth.py
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from cryptography.hazmat.primitives import serialization
from fastapi import Request

from blog_posts import config
from blog_posts.errors import Unauthorized

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """The authenticated identity behind one request."""
    subject: str
    role: Optional[str] = None


class TokenVerifier:
    """Verifies bearer JWTs and turns their claims into an Actor.

    HS* algorithms use a base64-encoded shared secret; RS*/ES* algorithms use a
    PEM public key.
    """

    def __init__(
        self,
        secret: str = '',
        algorithm: str = 'HS256',
        public_key: str = '',
        role_claim: str = 'auth',
    ):
        self.algorithm = algorithm
        self.role_claim = role_claim
        if algorithm.startswith('HS'):
            self._key = self._decode_secret(secret)
            if not self._key:
                raise ValueError(
                    f"JWT_SECRET environment variable is required for {algorithm} token verification"
                )
        else:
            if not public_key:
                raise ValueError(f"JWT_PUBLIC_KEY is required for {algorithm} token verification")
            self._key = serialization.load_pem_public_key(public_key.encode())

    @staticmethod
    def _decode_secret(secret: str) -> bytes:
        try:
            return base64.b64decode(secret, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("JWT_SECRET is not valid base64; using the raw value as the HMAC key")
            return secret.encode()

    def verify(self, token: str) -> Actor:
        try:
            payload = jwt.decode(token, self._key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("Token verification failed: Token has expired.")
            raise Unauthorized('Token has expired', error='TOKEN_EXPIRED')
        except jwt.InvalidTokenError as e:
            logger.warning(f"Token verification failed: Invalid token. Reason: {e}")
            raise Unauthorized('Invalid token', error='INVALID_TOKEN')

        subject = payload.get('sub')
        if not subject:
            raise Unauthorized('Token has no subject', error='AUTH_FAILED')
        return Actor(subject=subject, role=payload.get(self.role_claim))

    def authenticate(self, authorization: Optional[str]) -> Actor:
        """Validate an Authorization header value and return the actor behind it."""
        if not authorization:
            raise Unauthorized('Authorization header missing', error='NO_AUTH_HEADER')
        parts = authorization.split(' ')
        if len(parts) != 2 or parts[0] != 'Bearer' or not parts[1]:
            raise Unauthorized('Invalid token format. Bearer scheme required', error='INVALID_TOKEN_FORMAT')
        return self.verify(parts[1])


_verifier: Optional[TokenVerifier] = None


def get_token_verifier() -> TokenVerifier:
    """Build the process-wide verifier from configuration on first use."""
    global _verifier
    if _verifier is None:
        _verifier = TokenVerifier(
            secret=config.JWT_SECRET,
            algorithm=config.JWT_ALGORITHM,
            public_key=config.JWT_PUBLIC_KEY,
            role_claim=config.JWT_ROLE_CLAIM,
        )
    return _verifier


async def require_actor(request: Request) -> Actor:
    """FastAPI dependency: authenticate the request's bearer token."""
    return get_token_verifier().authenticate(request.headers.get('Authorization'))
