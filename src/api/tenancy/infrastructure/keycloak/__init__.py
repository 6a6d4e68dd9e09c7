"""Keycloak adapter for the identity provider gateway."""

from tenancy.infrastructure.keycloak.gateway import KeycloakIdentityGateway
from tenancy.infrastructure.keycloak.retry import MembershipRetryPolicy

__all__ = [
    "KeycloakIdentityGateway",
    "MembershipRetryPolicy",
]
