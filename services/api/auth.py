"""HTTP Basic authentication against an htpasswd-style file of argon2 hashes.

Each non-empty line of the file is ``<email>:<argon2 PHC hash>``. The
authenticated owner is identified by the hex SHA-256 of the email, never by
the raw credential.
"""

from __future__ import annotations

import hashlib
from functools import lru_cache
from pathlib import Path

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from fastapi import Depends
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from loguru import logger

from fragments.exceptions import AuthenticationError, ConfigurationError
from fragments.settings import get_settings

basic_auth = HTTPBasic(auto_error=False)
_hasher = PasswordHasher()


def hash_owner(email: str) -> str:
    return hashlib.sha256(email.encode("utf-8")).hexdigest()


@lru_cache(maxsize=4)
def load_credentials(path: Path) -> dict[str, str]:
    """Read ``email:hash`` lines; blank lines and ``#`` comments are ignored."""
    credentials: dict[str, str] = {}
    with path.open("r", encoding="utf-8") as fp:
        for number, line in enumerate(fp, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            email, sep, phc = line.partition(":")
            if not sep or not email or not phc:
                raise ConfigurationError(f"Malformed credentials line {number} in {path}")
            credentials[email] = phc
    return credentials


def verify_credentials(credentials: dict[str, str], email: str, password: str) -> bool:
    phc = credentials.get(email)
    if phc is None:
        return False
    try:
        return _hasher.verify(phc, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def get_owner_id(credentials: HTTPBasicCredentials | None = Depends(basic_auth)) -> str:
    """FastAPI dependency resolving the request's owner id."""
    if credentials is None:
        raise AuthenticationError("Unauthorized")
    path = get_settings().auth.htpasswd_file
    if path is None:
        logger.error("No credentials file configured ({env} is unset)", env=get_settings().auth.htpasswd_file_env)
        raise ConfigurationError("missing credentials file configuration")
    if not path.exists():
        raise ConfigurationError(f"Credentials file not found: {path}")
    if not verify_credentials(load_credentials(path), credentials.username, credentials.password):
        logger.warning("Rejected credentials for a Basic auth request")
        raise AuthenticationError("Unauthorized")
    return hash_owner(credentials.username)


__all__ = ["basic_auth", "hash_owner", "load_credentials", "verify_credentials", "get_owner_id"]
