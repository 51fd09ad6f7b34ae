"""Shared exception definitions used across the social backend."""


class SocialError(Exception):
    """Base class for every error the service layer raises."""


class ValidationError(SocialError):
    """Raised for malformed or missing input (empty content, page size out of range, ...)."""


class NotFoundError(SocialError):
    """Raised when an entity does not exist or is not owned by the caller."""


class SelfReferenceError(SocialError):
    """Raised when a user tries to act on themselves where that is forbidden (self-follow)."""


class DuplicateRelationshipError(SocialError):
    """Raised when a follow edge already exists."""


class StoreError(SocialError):
    """Raised when the backing database fails in a way the service cannot classify."""
