from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProxyImageRequest(BaseModel):
    url: Optional[str] = None  # checked in the handler so a missing url is a 400


class ProxyImageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    local_url: str = Field(alias="localUrl")
