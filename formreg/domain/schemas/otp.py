from typing import Any, Optional

from pydantic import BaseModel


# Fields stay loose here; the OTP service owns the validation errors.
class OtpSendIn(BaseModel):
    email: Any = None


class OtpVerifyIn(BaseModel):
    email: Optional[str] = None
    otp: Optional[str] = None


class OkOut(BaseModel):
    ok: bool = True
