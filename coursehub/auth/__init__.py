"""Identity module.

Registration with e-mail verification codes, login, bearer tokens and the
role/ownership capability checks shared by every other module.

Note: Service and router are not exported here to avoid circular imports.
"""

from coursehub.auth.models import AUTH_TABLES_CQL, OtpRecord, User
from coursehub.auth.permissions import InstructorStatus, UserRole, UserStatus


__all__ = [
    "AUTH_TABLES_CQL",
    "InstructorStatus",
    "OtpRecord",
    "User",
    "UserRole",
    "UserStatus",
]
