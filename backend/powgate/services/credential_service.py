import calendar
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from jose import jws, jwt
from jose.exceptions import JOSEError

from powgate.models.credential import Credential
from powgate.services.errors import (
    BadSignatureError,
    CredentialExpiredError,
    MalformedCredentialError,
)

SECRET_KEY_BYTES = 32

# exp is read here and compared with the injected clock. jose turns verify_exp
# back on for any required claim, so exp must not be listed as required.
DECODE_OPTIONS = {
    "verify_exp": False,
    "require_iat": True,
    "require_sub": True,
}


def utcnow() -> datetime:
    """Current UTC time as naive datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def generate_secret() -> bytes:
    """Generate a 256-bit HMAC key for the lifetime of the process."""
    return secrets.token_bytes(SECRET_KEY_BYTES)


def _timestamp(dt: datetime) -> int:
    return calendar.timegm(dt.utctimetuple())


class CredentialService:
    """
    Issues and validates signed access credentials.

    Credentials are self-contained JWTs (sub, iat, exp). Nothing is stored
    server side, so a credential cannot be revoked before it expires.
    """

    def __init__(
        self,
        secret_key: bytes,
        ttl_seconds: int,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._secret_key = secret_key
        self.ttl = timedelta(seconds=ttl_seconds)
        self.algorithm = algorithm
        self._clock = clock

    def issue(self, subject: str) -> Credential:
        """Sign a credential for ``subject`` valid for the configured TTL."""
        issued_at = self._clock().replace(microsecond=0)
        expires_at = issued_at + self.ttl
        token = jwt.encode(
            {
                "sub": subject,
                "iat": _timestamp(issued_at),
                "exp": _timestamp(expires_at),
            },
            self._secret_key,
            algorithm=self.algorithm,
        )
        return Credential(
            token=token,
            subject=subject,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def validate(self, token: str) -> str:
        """
        Validate a credential and return its subject.

        The signature is verified before any claim is read. Raises
        BadSignatureError, MalformedCredentialError or CredentialExpiredError.
        """
        if not isinstance(token, str) or not token:
            raise MalformedCredentialError()

        try:
            jws.verify(token, self._secret_key, algorithms=[self.algorithm])
        except JOSEError as e:
            raise self._classify_rejection(token) from e

        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options=DECODE_OPTIONS,
            )
        except JOSEError as e:
            raise MalformedCredentialError() from e

        exp = claims.get("exp")
        if not isinstance(exp, int):
            raise MalformedCredentialError()
        if _timestamp(self._clock()) >= exp:
            raise CredentialExpiredError()

        return claims["sub"]

    @staticmethod
    def _classify_rejection(token: str) -> BadSignatureError | MalformedCredentialError:
        """Tokens that cannot even be parsed are malformed; the rest failed signature."""
        try:
            jwt.get_unverified_claims(token)
        except JOSEError:
            return MalformedCredentialError()
        return BadSignatureError()
