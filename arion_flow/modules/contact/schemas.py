from pydantic import BaseModel
from typing import Optional, Any


class ContactRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None


class ContactResponse(BaseModel):
    ok: bool = True
    success: bool = True
    data: Optional[Any] = None
