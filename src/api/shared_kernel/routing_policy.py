"""Operation-kind routing policy.

Every data access declares what kind of operation it performs. The
policy table maps that kind to a routing mode, so adding a new endpoint
means adding (or reusing) a kind here rather than matching URL prefixes.
"""

from __future__ import annotations

from enum import StrEnum
from types import MappingProxyType
from typing import Mapping


class RoutingMode(StrEnum):
    """How a unit of work selects its database."""

    CONTROL_PLANE = "control_plane"
    """Always the control-plane database, ignoring any tenant context."""

    TENANT_OR_CONTROL_PLANE = "tenant_or_control_plane"
    """Tenant database when resolvable, control plane otherwise."""

    TENANT_REQUIRED = "tenant_required"
    """Tenant database only; missing or unresolvable tenants are errors."""


class OperationKind(StrEnum):
    """Categories of data access used to pick a routing mode."""

    TENANT_MANAGEMENT = "tenant_management"
    SUBSCRIPTION_MANAGEMENT = "subscription_management"
    AUDIT_LOG = "audit_log"
    AUTHENTICATION = "authentication"
    HEALTH_CHECK = "health_check"
    TENANT_DATA = "tenant_data"
    TENANT_SCOPED_DATA = "tenant_scoped_data"


ROUTING_POLICY: Mapping[OperationKind, RoutingMode] = MappingProxyType(
    {
        OperationKind.TENANT_MANAGEMENT: RoutingMode.CONTROL_PLANE,
        OperationKind.SUBSCRIPTION_MANAGEMENT: RoutingMode.CONTROL_PLANE,
        OperationKind.AUDIT_LOG: RoutingMode.CONTROL_PLANE,
        OperationKind.AUTHENTICATION: RoutingMode.CONTROL_PLANE,
        OperationKind.HEALTH_CHECK: RoutingMode.CONTROL_PLANE,
        OperationKind.TENANT_DATA: RoutingMode.TENANT_OR_CONTROL_PLANE,
        OperationKind.TENANT_SCOPED_DATA: RoutingMode.TENANT_REQUIRED,
    }
)


def routing_mode_for(kind: OperationKind) -> RoutingMode:
    """Look up the routing mode for an operation kind.

    Raises:
        KeyError: If the kind has no policy entry
    """
    return ROUTING_POLICY[kind]
