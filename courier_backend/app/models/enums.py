"""
User roles enumeration.

Defines the role types for the courier platform.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        USER: Default role for anyone who signs in
        ADMIN: Manages riders, users and parcel assignment
        RIDER: Granted when a rider application is activated
    """
    USER = "user"
    ADMIN = "admin"
    RIDER = "rider"


# Roles an admin may set directly; RIDER only comes from rider activation.
ASSIGNABLE_ROLES = {UserRole.ADMIN, UserRole.USER}
