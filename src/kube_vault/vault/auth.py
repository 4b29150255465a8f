"""Vault authentication backends.

Each backend knows how to obtain a client token: either it already has one
(static token), or it exchanges some other credential for one at a login
endpoint (GitHub token, app-role id/secret pair).
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from kube_vault.exceptions import ConfigurationError


@dataclass(frozen=True, slots=True)
class Credentials:
    """A client token and, for renewable logins, its expiry."""

    client_token: str
    expires: datetime | None = None

    @classmethod
    def from_auth_info(cls, auth: dict[str, Any]) -> "Credentials":
        """Build credentials from the ``auth`` block of a login response."""
        lease = auth.get("lease_duration") or 0
        expires = datetime.now(timezone.utc) + timedelta(seconds=lease) if lease > 0 else None
        return cls(client_token=auth["client_token"], expires=expires)


class AuthBackend:
    """Base class for the ways kube-vault can log in to Vault."""

    login_url: str = ""
    can_expire: bool = True

    def __init__(self) -> None:
        self.credentials: Credentials | None = None

    def login_payload(self) -> dict[str, str]:
        """Return the JSON body posted to ``login_url``."""
        raise NotImplementedError

    @property
    def client_token(self) -> str | None:
        return self.credentials.client_token if self.credentials else None

    def is_expired(self) -> bool:
        """Check whether a (re-)login is needed before the next request."""
        if self.credentials is None:
            return True
        if not self.can_expire:
            return False
        expires = self.credentials.expires
        return expires is None or expires < datetime.now(timezone.utc)


class TokenAuth(AuthBackend):
    """An already-issued client token; never logs in."""

    can_expire = False

    def __init__(self, token: str) -> None:
        super().__init__()
        self.credentials = Credentials(client_token=token)

    def login_payload(self) -> dict[str, str]:
        raise ConfigurationError("Can't log in with a client token")

    def __repr__(self) -> str:
        return "TokenAuth()"


class GitHubAuth(AuthBackend):
    """Exchanges a GitHub personal token for a Vault client token."""

    login_url = "/v1/auth/github/login"

    def __init__(self, token: str) -> None:
        super().__init__()
        self._token = token

    def login_payload(self) -> dict[str, str]:
        return {"token": self._token}

    def __repr__(self) -> str:
        return "GitHubAuth()"


class AppRoleAuth(AuthBackend):
    """Exchanges an app-role id/secret pair for a Vault client token."""

    login_url = "/v1/auth/approle/login"

    def __init__(self, role_id: str, secret_id: str) -> None:
        super().__init__()
        self._role_id = role_id
        self._secret_id = secret_id

    def login_payload(self) -> dict[str, str]:
        return {"role_id": self._role_id, "secret_id": self._secret_id}

    def __repr__(self) -> str:
        return f"AppRoleAuth(role_id={self._role_id!r})"


def backend_from_env(environ: Mapping[str, str]) -> AuthBackend:
    """Pick an auth backend from environment variables.

    Checked in order:
    * ``VAULT_TOKEN`` - static client token
    * ``VAULT_GITHUB_TOKEN`` - GitHub token login
    * ``VAULT_ROLE_TOKEN`` and ``VAULT_SECRET_TOKEN`` - app-role login

    Args:
        environ: The environment mapping (usually ``os.environ``).

    Returns:
        The first backend whose variables are set.

    Raises:
        ConfigurationError: If no known credential is present.

    """
    if environ.get("VAULT_TOKEN"):
        return TokenAuth(environ["VAULT_TOKEN"])
    if environ.get("VAULT_GITHUB_TOKEN"):
        return GitHubAuth(environ["VAULT_GITHUB_TOKEN"])
    if environ.get("VAULT_ROLE_TOKEN") and environ.get("VAULT_SECRET_TOKEN"):
        return AppRoleAuth(environ["VAULT_ROLE_TOKEN"], environ["VAULT_SECRET_TOKEN"])
    raise ConfigurationError(
        "Could not find a token of a known type in environment "
        "(set VAULT_TOKEN, VAULT_GITHUB_TOKEN, or VAULT_ROLE_TOKEN and VAULT_SECRET_TOKEN)"
    )
