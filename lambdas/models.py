"""Score record type and request schemas.

Request bodies are validated here, at the HTTP boundary, so the ledger and
the identity adapter only ever see well-formed values.
"""

from decimal import Decimal
from typing import Annotated, Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StringConstraints
from pydantic import ValidationError as SchemaError

from .errors import ValidationError

M = TypeVar("M", bound=BaseModel)


def _coerce(v):
    if isinstance(v, Decimal) and v.is_finite() and v == v.to_integral_value():
        # the resource API hands numbers back as Decimal; ours are integers
        return int(v)
    # a fractional or non-finite Decimal is left for the schema to reject
    return v


class ScoreRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    user_name: str
    score: int
    timestamp: int  # ms since epoch

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "ScoreRecord":
        return cls.model_validate({k: _coerce(v) for k, v in item.items()})

    def to_item(self) -> Dict[str, Any]:
        return self.model_dump()


class _Request(BaseModel):
    model_config = ConfigDict(extra="ignore")


NonEmpty = Annotated[str, StringConstraints(min_length=1)]


class SubmitScoreRequest(_Request):
    score: StrictInt


class FetchScoresQuery(_Request):
    limit: Optional[int] = Field(default=None, ge=0)


class SignupRequest(_Request):
    name: NonEmpty
    username: NonEmpty
    email: NonEmpty
    password: NonEmpty


class ConfirmRequest(_Request):
    email: NonEmpty
    confirmationCode: NonEmpty


class ResendCodeRequest(_Request):
    username: NonEmpty


class LoginRequest(_Request):
    email: NonEmpty
    password: NonEmpty


class RefreshRequest(_Request):
    refreshToken: NonEmpty
    email: Optional[str] = None


class ForgotPasswordRequest(_Request):
    email: NonEmpty


class ResetPasswordRequest(_Request):
    email: NonEmpty
    code: NonEmpty
    newPassword: NonEmpty


class ChangePasswordRequest(_Request):
    oldPassword: NonEmpty
    newPassword: NonEmpty


class UpdateProfileRequest(_Request):
    preferred_username: NonEmpty
    name: NonEmpty


def _describe(exc: SchemaError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "body"
        if err.get("type") == "missing":
            parts.append(f"Missing {field}")
        else:
            parts.append(f"Invalid {field}: {err.get('msg')}")
    return "; ".join(parts)


def parse_request(model: Type[M], data: Dict[str, Any]) -> M:
    try:
        return model.model_validate(data)
    except SchemaError as e:
        raise ValidationError(_describe(e))
