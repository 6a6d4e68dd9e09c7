"""Shared Kernel module.

Components shared by every bounded context that touches tenant data: the
request-scoped tenant context, the operation-kind routing policy, and the
middleware binding the tenant claim to a request. Changes here affect every
context and should be coordinated.
"""
