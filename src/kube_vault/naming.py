"""Kubernetes object name validation."""

import re

# Kubernetes DNS subdomain name validation (RFC 1123)
_DNS_SUBDOMAIN_MAX_LENGTH = 253
_DNS_SUBDOMAIN_PATTERN = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"


def validate_k8s_name(name: str) -> bool | str:
    """Validate a Kubernetes resource name (DNS subdomain).

    Args:
        name: The name to validate.

    Returns:
        True if valid, or an error message string if invalid.

    """
    if not name:
        return "Name cannot be empty"
    if len(name) > _DNS_SUBDOMAIN_MAX_LENGTH:
        return f"Name must be {_DNS_SUBDOMAIN_MAX_LENGTH} characters or less"
    if not re.match(_DNS_SUBDOMAIN_PATTERN, name):
        return (
            "Name must consist of lowercase alphanumeric characters, '-' or '.', "
            "and must start and end with an alphanumeric character"
        )
    return True
