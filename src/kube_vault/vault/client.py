"""HTTP client for the Vault KV v2 API.

This module provides the VaultClient class, which reads and lists KV v2
secrets over HTTP and logs in through its authentication backend on first
use and again whenever a renewable token has expired.
"""

import json
import os
import threading
from collections.abc import Mapping
from typing import Any, Protocol

import requests
from icecream import ic
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from kube_vault.exceptions import ConfigurationError, SecretNotFoundError, StoreAccessError
from kube_vault.models import VaultPath
from kube_vault.vault.auth import AuthBackend, Credentials, backend_from_env

_DEFAULT_TIMEOUT = 30

# Transient faults are retried by the transport; everything else surfaces immediately
_RETRY = Retry(
    total=3,
    backoff_factor=0.5,
    status_forcelist=(502, 503, 504),
    allowed_methods=frozenset({"GET", "LIST", "POST"}),
    raise_on_status=False,
)


class SecretStore(Protocol):
    """What kube-vault needs from a secret store."""

    def exists(self, path: VaultPath, key: str | None = None) -> bool: ...

    def fetch(self, path: VaultPath) -> dict[str, bytes]: ...

    def list_keys(self, path: VaultPath) -> list[str]: ...


def _encode(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode()
    return json.dumps(value).encode()


class VaultClient:
    """Reads KV v2 secrets from a Vault server.

    Attributes:
        vault_addr: Base URL of the Vault server.
        auth: Authentication backend providing the client token.
        timeout: Per-request timeout in seconds.

    """

    def __init__(
        self,
        vault_addr: str,
        auth: AuthBackend,
        *,
        verify: bool | str = True,
        timeout: float = _DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize VaultClient.

        Args:
            vault_addr: Base URL of the Vault server (e.g. https://vault:8200).
            auth: Authentication backend to log in with.
            verify: TLS verification flag or path to a CA bundle.
            timeout: Per-request timeout in seconds.
            session: Optional pre-configured requests session.

        """
        self.vault_addr: str = vault_addr.rstrip("/")
        self.auth: AuthBackend = auth
        self.timeout: float = timeout
        self._session: requests.Session = session or requests.Session()
        self._session.verify = verify
        adapter = HTTPAdapter(max_retries=_RETRY)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)
        self._lock = threading.Lock()
        self._cache: dict[VaultPath, dict[str, Any] | None] = {}

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "VaultClient":
        """Create a VaultClient from environment variables.

        ``VAULT_ADDR`` is required; credentials are picked by
        :func:`backend_from_env`; ``VAULT_CACERT`` optionally points at a
        CA bundle used for TLS verification.

        Args:
            environ: Environment mapping, defaults to ``os.environ``.

        Returns:
            A configured VaultClient.

        Raises:
            ConfigurationError: If the address or credentials are missing.

        """
        environ = os.environ if environ is None else environ
        vault_addr = environ.get("VAULT_ADDR", "")
        if not vault_addr:
            raise ConfigurationError("VAULT_ADDR is not set")
        if not vault_addr.startswith(("http://", "https://")):
            raise ConfigurationError(f"VAULT_ADDR must be an http(s) URL, got '{vault_addr}'")
        auth = backend_from_env(environ)
        verify: bool | str = environ.get("VAULT_CACERT") or True
        return cls(vault_addr, auth, verify=verify)

    def __enter__(self) -> "VaultClient":
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.close()

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"VaultClient(vault_addr={self.vault_addr!r}, auth={self.auth!r})"

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def _refresh_credentials(self) -> None:
        """Log in if the backend has no valid token.

        Raises:
            StoreAccessError: If the login request fails.

        """
        with self._lock:
            if not self.auth.is_expired():
                return
            url = f"{self.vault_addr}{self.auth.login_url}"
            ic(url)
            try:
                resp = self._session.post(url, json=self.auth.login_payload(), timeout=self.timeout)
                resp.raise_for_status()
                self.auth.credentials = Credentials.from_auth_info(resp.json()["auth"])
            except (requests.RequestException, ValueError, KeyError, TypeError) as err:
                raise StoreAccessError(self.auth.login_url, f"login failed: {err}") from err

    def _request(self, method: str, url: str, path: VaultPath) -> dict[str, Any] | None:
        """Perform an authenticated request.

        Returns:
            The decoded JSON body, or None when Vault answers 404.

        Raises:
            StoreAccessError: On authorization, HTTP, network or payload errors.

        """
        self._refresh_credentials()
        headers = {"X-Vault-Token": self.auth.client_token or ""}
        try:
            resp = self._session.request(method, url, headers=headers, timeout=self.timeout)
        except requests.RequestException as err:
            raise StoreAccessError(str(path), f"request failed: {err}") from err

        if resp.status_code == 404:
            return None
        if resp.status_code in (401, 403):
            raise StoreAccessError(str(path), f"not authorized (HTTP {resp.status_code})")
        try:
            resp.raise_for_status()
            return resp.json()
        except requests.HTTPError as err:
            raise StoreAccessError(str(path), f"unexpected response: {err}") from err
        except ValueError as err:
            raise StoreAccessError(str(path), f"invalid JSON payload: {err}") from err

    def _url(self, path: VaultPath, api: str) -> str:
        return f"{self.vault_addr}/v1/{path.engine}/{api}/{path.path.strip('/')}"

    def _read(self, path: VaultPath) -> dict[str, Any] | None:
        """Read (and cache) the key/value data of a secret."""
        with self._lock:
            if path in self._cache:
                return self._cache[path]
        body = self._request("GET", self._url(path, "data"), path)
        data = None
        if body is not None:
            payload = body.get("data") or {}
            data = payload.get("data")
            if data is not None and not isinstance(data, dict):
                raise StoreAccessError(str(path), "secret payload is not a key/value mapping")
        ic(path, data is not None)
        with self._lock:
            self._cache[path] = data
        return data

    def exists(self, path: VaultPath, key: str | None = None) -> bool:
        """Check whether a secret (or one of its keys) exists.

        Args:
            path: Location of the secret.
            key: Optional key that must be present in the secret.

        Returns:
            True if the secret, and the key when given, exist.

        """
        data = self._read(path)
        if data is None:
            return False
        return key is None or key in data

    def fetch(self, path: VaultPath) -> dict[str, bytes]:
        """Fetch every key/value pair of a secret.

        Non-string values are serialized as JSON.

        Raises:
            SecretNotFoundError: If no live secret is stored at the path.
            StoreAccessError: If Vault can't be read.

        """
        data = self._read(path)
        if data is None:
            raise SecretNotFoundError(str(path))
        return {key: _encode(value) for key, value in data.items()}

    def list_keys(self, path: VaultPath) -> list[str]:
        """List the names stored directly below a path.

        Folder names keep their trailing ``/``.

        Raises:
            StoreAccessError: If Vault can't be read.

        """
        body = self._request("LIST", self._url(path, "metadata"), path)
        if body is None:
            return []
        keys = (body.get("data") or {}).get("keys") or []
        return [str(key) for key in keys]
