"""
Shared model building blocks.
"""

from certvault.modules.shared.models import BaseModel

__all__ = ["BaseModel"]
