"""
Catalog Matching Errors

Every failure the matching core reports carries an HTTP status so the API
layer can translate it without guessing.
"""

from typing import Optional


class CatalogMatchingError(Exception):
    """Base class for matching/linking failures"""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class Unauthorized(CatalogMatchingError):
    """No valid session"""
    status_code = 401


class Forbidden(CatalogMatchingError):
    """Valid session, wrong role"""
    status_code = 403


class ValidationError(CatalogMatchingError):
    """Missing or malformed required field"""
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFound(CatalogMatchingError):
    """Referenced catalog entry or category does not exist"""
    status_code = 404


class Conflict(CatalogMatchingError):
    status_code = 409


class PersistenceError(CatalogMatchingError):
    """A datastore write failed"""
    status_code = 500

    def __init__(self, message: str, step: str):
        self.step = step
        super().__init__(f"{message} (step: {step})")


class PartialFailure(PersistenceError):
    """Catalog entry was committed but offer creation failed afterwards"""

    def __init__(self, message: str, step: str, orphan_catalog_id: str):
        self.orphan_catalog_id = orphan_catalog_id
        super().__init__(f"{message}; orphaned catalog entry {orphan_catalog_id}", step)
