from fastapi import Request

from ..services.otp import OtpManager
from ..services.submissions import SubmissionRecorder


def get_otp_manager(request: Request) -> OtpManager:
    return request.app.state.otp_manager


def get_recorder(request: Request) -> SubmissionRecorder:
    return request.app.state.recorder
