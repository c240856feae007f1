"""Interaction domain schemas - Pydantic models for validation"""

from pydantic import BaseModel, field_validator


class InteractionRequest(BaseModel):
    """Like or pass on a model; sending the same action again undoes it"""

    modelId: str
    action: str

    @field_validator("action")
    @classmethod
    def validate_action(cls, v):
        v = v.upper()
        if v not in ("LIKE", "PASS"):
            raise ValueError("Action must be LIKE or PASS")
        return v


class FriendRequest(BaseModel):
    modelId: str
