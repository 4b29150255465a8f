"""Custom exceptions for kube-vault.

This module defines the exception hierarchy used throughout the application
to provide meaningful error messages and proper error handling.
"""


class KubeVaultError(Exception):
    """Base exception for all kube-vault errors.

    All custom exceptions in this package inherit from this class,
    allowing callers to catch all kube-vault errors with a single
    except clause if desired.
    """

    pass


class ManifestDecodeError(KubeVaultError):
    """Raised when a single document in the input stream cannot be decoded.

    Only the offending document is dropped; the rest of the stream
    is still scanned.
    """

    def __init__(self, index: int, reason: str) -> None:
        self.index = index
        self.reason = reason
        super().__init__(f"Document #{index} could not be decoded: {reason}")


class ExtractionWarning(KubeVaultError):
    """Raised when a resource references a secret in a shape we can't use.

    This can occur when:
    - The secret name is empty or not a string
    - A secretKeyRef has no key
    - The reference block is not a mapping
    """

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class ConfigurationError(KubeVaultError):
    """Raised when the command-line or environment configuration is invalid.

    This can occur when:
    - Both -m and -p are given, or neither is
    - A -m mapping is malformed
    - VAULT_ADDR or Vault credentials are missing
    """

    pass


class UnresolvedMappingError(KubeVaultError):
    """Raised when a required secret has no entry in the explicit mapping."""

    def __init__(self, secret_name: str) -> None:
        self.secret_name = secret_name
        super().__init__(f"Couldn't find a vault mapping for kubernetes secret '{secret_name}'")


class StoreAccessError(KubeVaultError):
    """Raised when talking to Vault fails.

    This can occur when:
    - Vault is unreachable
    - Authentication or login fails
    - The token lacks permission to read the path
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Vault error for {path}: {reason}")


class SecretNotFoundError(KubeVaultError):
    """Raised by the Vault client when a path holds no (live) secret."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"No secret stored at {path}")


class MissingSecretError(KubeVaultError):
    """Raised when a resolved Vault path holds no secret."""

    def __init__(self, secret_name: str, path: str) -> None:
        self.secret_name = secret_name
        self.path = path
        super().__init__(f"Secret '{secret_name}' not found in {path}")


class MissingKeyError(KubeVaultError):
    """Raised when a secret exists in Vault but lacks a required key."""

    def __init__(self, secret_name: str, key: str, path: str) -> None:
        self.secret_name = secret_name
        self.key = key
        self.path = path
        super().__init__(f"Key '{key}' for secret '{secret_name}' not found in {path} ({secret_name}/{key})")
