from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CustomerDetails(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None


class InquiryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to: Optional[str] = None  # builder email; defaults to our own mailbox
    subject: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    customer_details: CustomerDetails = Field(alias="customerDetails")
