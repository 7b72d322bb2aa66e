from __future__ import annotations

from fastapi import APIRouter, Depends

from ...domain.schemas.otp import OkOut, OtpSendIn, OtpVerifyIn
from ...services.otp import OtpManager, validate_identity
from ..deps import get_otp_manager

router = APIRouter(prefix="/api/otp", tags=["otp"])


@router.post("/send", response_model=OkOut)
async def send_otp(payload: OtpSendIn, otp: OtpManager = Depends(get_otp_manager)) -> OkOut:
    email = validate_identity(payload.email)
    await otp.issue(email)
    return OkOut()


@router.post("/verify", response_model=OkOut)
async def verify_otp(payload: OtpVerifyIn, otp: OtpManager = Depends(get_otp_manager)) -> OkOut:
    email = str(payload.email or "").strip().lower()
    otp.verify(email, payload.otp)
    return OkOut()
