"""Authentication module."""

from certvault.modules.auth.schemas import AuthResponse, LoginRequest, RegisterRequest

__all__ = ["AuthResponse", "LoginRequest", "RegisterRequest"]
