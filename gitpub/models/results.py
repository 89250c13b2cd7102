"""
Result models returned by the publisher.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class PublishResult(BaseModel):
    """
    The outcome of a create, update, delete or media request.
    
    Exactly one of `reference_id` and `error` is set.
    """
    
    reference_id: Optional[str] = Field(
        default=None,
        description="Reference id (or repository path for media) of the affected post"
    )
    
    location: Optional[str] = Field(
        default=None,
        description="Public URL of a created post or upload"
    )
    
    error: Optional[str] = Field(
        default=None,
        description="A short description of why nothing was published"
    )
    
    body: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Response payload for queries"
    )
    
    @property
    def ok(self) -> bool:
        """True when the request succeeded."""
        return self.error is None
