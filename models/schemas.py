from pydantic import BaseModel, Field
from typing import List, Optional


class RegisterDeviceRequest(BaseModel):
    token: Optional[str] = None
    device: Optional[str] = None
    app_version: Optional[str] = None
    topics: Optional[List[str]] = Field(None, description="Defaults to every known topic")
