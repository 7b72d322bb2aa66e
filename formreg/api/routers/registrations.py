from __future__ import annotations

from fastapi import APIRouter, Depends

from ...domain.schemas.otp import OkOut
from ...domain.schemas.registration import RegistrationIn
from ...services.submissions import SubmissionRecorder
from ..deps import get_recorder

router = APIRouter(prefix="/api", tags=["registrations"])


@router.post("/register", response_model=OkOut)
async def register(payload: RegistrationIn, recorder: SubmissionRecorder = Depends(get_recorder)) -> OkOut:
    await recorder.record(payload.to_payload())
    return OkOut()
