from __future__ import annotations
from datetime import date as dt_date
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from models import Priority

# ---------- Mechanics ----------
class MechanicIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

class MechanicOut(BaseModel):
    id: int
    name: str
    order: int

class ReorderIn(BaseModel):
    ids: List[int] = Field(min_length=1)

    @field_validator("ids")
    @classmethod
    def no_duplicates(cls, v: List[int]) -> List[int]:
        if len(v) != len(set(v)):
            raise ValueError("ids cannot contain duplicates")
        return v

# ---------- Appointments ----------
class RangeIn(BaseModel):
    date: dt_date
    start_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    end_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    mechanic_id: int
    client_name: str = Field("", max_length=255)
    service_description: str = Field("", max_length=500)
    priority: Priority = Priority.ZERO
    additional_mechanics: List[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def default_end(self):
        # the editor starts with a one-slot range
        if self.end_time is None:
            self.end_time = self.start_time
        return self

class SlotQuery(BaseModel):
    date: dt_date
    time: str = Field(pattern=r"^\d{1,2}:\d{2}$")
    mechanic_id: int
