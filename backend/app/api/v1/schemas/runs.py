import uuid
from datetime import date, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

class RunCreate(BaseModel):
    run_number: int = Field(..., ge=0)
    source: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    departure_date: date
    departure_time: time
    arrival_time: time
    capacity: int = Field(..., gt=0)


class RunUpdate(BaseModel):
    run_number: Optional[int] = Field(None, ge=0)
    source: Optional[str] = Field(None, min_length=1)
    destination: Optional[str] = Field(None, min_length=1)
    departure_date: Optional[date] = None
    departure_time: Optional[time] = None
    arrival_time: Optional[time] = None
    capacity: Optional[int] = Field(None, gt=0)


class RunOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    run_number: int
    source: str
    destination: str
    departure_date: date
    departure_time: time
    arrival_time: time
    capacity: int
