"""
Request identity.

Resolves the caller from a bearer token to {user_id, role, vendor}. Issuing
tokens and managing sessions is left to the surrounding application.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header

from matching.errors import Forbidden, Unauthorized
from services.database.db import Database
from services.database.models import UserRole
from .deps import get_database


@dataclass
class Identity:
    user_id: str
    role: UserRole
    vendor_id: Optional[str] = None
    vendor_status: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_approved_vendor(self) -> bool:
        return self.role == UserRole.VENDOR and self.vendor_status == 'approved'


def get_identity(authorization: Optional[str] = Header(None),
                 db: Database = Depends(get_database)) -> Identity:
    """Authenticated caller, or Unauthorized."""
    if not authorization or not authorization.lower().startswith('bearer '):
        raise Unauthorized("Unauthorized")

    user = db.get_user_by_token(authorization[7:].strip())
    if user is None:
        raise Unauthorized("Unauthorized")

    identity = Identity(user_id=user['id'], role=UserRole(user['role']))
    if identity.role == UserRole.VENDOR:
        vendor = db.get_vendor_for_user(identity.user_id)
        if vendor:
            identity.vendor_id = vendor['id']
            identity.vendor_status = vendor['status']
    return identity


def require_seller(identity: Identity = Depends(get_identity)) -> Identity:
    """Admins and approved vendors may list products."""
    if not (identity.is_admin or identity.is_approved_vendor):
        raise Forbidden("Forbidden: Must be admin or approved vendor")
    return identity


def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_admin:
        raise Forbidden("Forbidden: Admin access required")
    return identity
