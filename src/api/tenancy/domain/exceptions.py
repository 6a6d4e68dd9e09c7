"""Domain exceptions for the tenancy context."""


class InvalidSlugError(ValueError):
    """Raised when a tenant slug does not match the allowed format.

    Slugs are lowercase ASCII letters, digits, and hyphens only.
    """

    pass


class InvalidStatusTransitionError(Exception):
    """Raised when a tenant status change is not allowed.

    Deleted tenants are terminal and cannot be reactivated or suspended.
    """

    pass
