"""
Principals module - Authenticated actors and their fixed roles.
"""

from certvault.modules.principals.models import Principal, Role
from certvault.modules.principals.repository import PrincipalRepository

__all__ = ["Principal", "Role", "PrincipalRepository"]
