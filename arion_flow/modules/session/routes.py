from fastapi import APIRouter, Depends
from arion_flow.config import Settings
from arion_flow.core.dependencies import get_app_settings
from arion_flow.modules.session.schemas import SessionTimeoutConfig

router = APIRouter(prefix="/session", tags=["session"])


@router.get("/timeout", response_model=SessionTimeoutConfig, response_model_by_alias=True)
async def get_session_timeout(settings: Settings = Depends(get_app_settings)):
    """Timer values clients feed into their SessionTimeoutController"""
    return SessionTimeoutConfig(
        idle_timeout_seconds=settings.idle_timeout_seconds,
        countdown_seconds=settings.idle_countdown_seconds,
    )
