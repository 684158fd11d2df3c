"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .node import NodeCreate, NodeIn, NodeOut
from .post import IdResponse, PostCreate, PostOut, PostSelector, PostUpdate
from .user import AuthorOut

__all__ = [
    "NodeCreate", "NodeIn", "NodeOut",
    "IdResponse", "PostCreate", "PostOut", "PostSelector", "PostUpdate",
    "AuthorOut",
]
