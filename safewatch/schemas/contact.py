"""Emergency contact schemas."""

from pydantic import BaseModel, Field


class EmergencyContactCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    phone: str = Field(min_length=3, max_length=32)
    relationship: str | None = Field(default=None, max_length=64)
    is_primary: bool = False


class EmergencyContactOut(BaseModel):
    id: int
    name: str
    phone: str
    relationship: str | None
    is_primary: bool

    model_config = {"from_attributes": True}


class EmergencyCallPlan(BaseModel):
    """Who the client should offer to dial. Dialing itself happens on the device."""

    emergency_number: str
    primary_contact: EmergencyContactOut | None = None
