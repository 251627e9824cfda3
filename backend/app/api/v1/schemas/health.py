from typing import Literal

from pydantic import BaseModel, Field

class Health(BaseModel):
    status: Literal["ok"]
    maintenance: Literal["idle", "running", "disabled"] = Field(..., description="Maintenance scheduler state")
