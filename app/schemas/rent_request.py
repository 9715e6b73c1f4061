from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.db.models import RentRequestStatus


class RentRequestCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    property_id: int = Field(alias="propertyId")
    builder_id: int = Field(alias="builderId")
    user_id: Optional[str] = Field(default=None, alias="userId")
    move_in_date: Optional[date] = Field(default=None, alias="moveInDate")
    message: Optional[str] = None
    rent_amount: Optional[str] = Field(default=None, alias="rentAmount")


class RentRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    property_id: int
    builder_id: int
    user_id: Optional[str] = None
    move_in_date: Optional[date] = None
    message: Optional[str] = None
    rent_amount: Optional[str] = None
    status: RentRequestStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
