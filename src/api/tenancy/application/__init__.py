"""Application layer for the tenancy context.

Use cases for onboarding tenants, resolving tenant identifiers, and
administering provisioned tenants.
"""
