"""Tenancy bounded context.

Provisions isolated per-tenant environments (identity-provider
organization, administrator account, physical database) and routes
data access to the database of the tenant bound to the current request.
"""
