"""
Update instruction model for gitpub.

Micropub updates carry exactly one of `replace`, `add` or `delete`. A
`delete` is either a list of property names to remove outright or a
properties fragment naming individual values to remove.
"""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field


class UpdateInstruction(BaseModel):
    """
    A partial update to an existing post.
    """
    
    replace: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Properties whose values replace the existing values"
    )
    
    add: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Properties whose values are appended to the existing values"
    )
    
    delete: Optional[Union[List[str], Dict[str, Any]]] = Field(
        default=None,
        description="Property names to remove, or values to remove from properties"
    )
    
    @property
    def deletes_properties(self) -> bool:
        """True when `delete` names whole properties rather than values."""
        return isinstance(self.delete, list)
    
    def fragment(self) -> Optional[Dict[str, Any]]:
        """Return the properties fragment this instruction carries, if any."""
        if self.replace is not None:
            return self.replace
        if self.add is not None:
            return self.add
        if isinstance(self.delete, dict):
            return self.delete
        return None
    
    @classmethod
    def from_request(cls, body: Optional[Dict[str, Any]]) -> "UpdateInstruction":
        """
        Build an instruction from a Micropub update request body.
        
        Unknown keys (`action`, `url`, `access_token`) are ignored.
        
        Args:
            body: The decoded request body
            
        Returns:
            The update instruction (empty when the body carries nothing)
        """
        if not isinstance(body, dict):
            return cls()
        return cls(
            replace=body.get("replace") if isinstance(body.get("replace"), dict) else None,
            add=body.get("add") if isinstance(body.get("add"), dict) else None,
            delete=body.get("delete") if isinstance(body.get("delete"), (list, dict)) else None,
        )
