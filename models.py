from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class UserRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int = Field(..., ge=1)
    length: int = Field(..., ge=1, le=3)


class UserRecordUpdate(BaseModel):
    """Partial UserRecord for merge writes; same bounds, unknown fields rejected."""

    model_config = ConfigDict(extra="forbid")

    count: int | None = Field(None, ge=1)
    length: int | None = Field(None, ge=1, le=3)


class WeatherReport(BaseModel):
    location: str
    description: str
    temperature: float
    temp_min: float
    temp_max: float
    units: str = "imperial"


# ── Inbound envelope (voice platform wire format) ────────────────────────────

class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class UserModel(_WireModel):
    user_id: str = Field(..., alias="userId", min_length=1)


class SessionModel(_WireModel):
    session_id: str | None = Field(None, alias="sessionId")
    new: bool = False
    user: UserModel | None = None


class SystemModel(_WireModel):
    user: UserModel


class ContextModel(_WireModel):
    system: SystemModel = Field(..., alias="System")


class IntentModel(_WireModel):
    name: str


class RequestModel(_WireModel):
    type: str
    request_id: str | None = Field(None, alias="requestId")
    locale: str | None = None
    reason: str | None = None
    intent: IntentModel | None = None


class RequestEnvelope(_WireModel):
    version: str = "1.0"
    session: SessionModel | None = None
    context: ContextModel | None = None
    request: RequestModel

    @property
    def request_type(self) -> str:
        return self.request.type

    @property
    def intent_name(self) -> str | None:
        return self.request.intent.name if self.request.intent else None

    @property
    def user_id(self) -> str | None:
        if self.context is not None:
            return self.context.system.user.user_id
        if self.session is not None and self.session.user is not None:
            return self.session.user.user_id
        return None


# ── Outbound envelope ────────────────────────────────────────────────────────

class OutputSpeech(_WireModel):
    type: Literal["PlainText"] = "PlainText"
    text: str


class Reprompt(_WireModel):
    output_speech: OutputSpeech = Field(..., alias="outputSpeech")


class ResponseBody(_WireModel):
    output_speech: OutputSpeech | None = Field(None, alias="outputSpeech")
    reprompt: Reprompt | None = None
    should_end_session: bool | None = Field(None, alias="shouldEndSession")


class ResponseEnvelope(_WireModel):
    version: str = "1.0"
    response: ResponseBody = Field(default_factory=ResponseBody)

    @property
    def speech(self) -> str | None:
        speech = self.response.output_speech
        return speech.text if speech else None

    @property
    def reprompt_text(self) -> str | None:
        reprompt = self.response.reprompt
        return reprompt.output_speech.text if reprompt else None


class SkillHealthResponse(BaseModel):
    status: str
    weather_api_key_configured: bool
    user_store: str
