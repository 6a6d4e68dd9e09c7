"""Infrastructure adapters for the tenancy bounded context.

Implements the tenancy ports against PostgreSQL (catalog, database
provisioning, routing) and Keycloak (identity).
"""
