import json
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class RegistrationIn(BaseModel):
    """Registration form. Any JSON value is accepted; unknown fields are kept too."""

    model_config = ConfigDict(extra="allow")

    email: Any = None
    fullName: Any = None
    secondaryEmail: Any = None
    phone: Any = None
    organization: Any = None
    city: Any = None
    startupName: Any = None
    website: Any = None
    industry: Any = None
    socialImpact: Any = None
    iitkgpAffiliation: Any = None
    aiMlCore: Any = None
    tis: Any = None
    problem: Any = None
    solution: Any = None
    market: Any = None
    traction: Any = None
    revenue: Any = None
    extra: Any = None

    def to_payload(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for key, value in self.model_dump(exclude_none=True).items():
            out[key] = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
        return out
