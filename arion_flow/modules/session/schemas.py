from pydantic import BaseModel, Field


class SessionTimeoutConfig(BaseModel):
    ok: bool = True
    idle_timeout_seconds: int = Field(alias="idleTimeoutSeconds")
    countdown_seconds: int = Field(alias="countdownSeconds")

    class Config:
        populate_by_name = True
