from pydantic import BaseModel, ConfigDict, Field


# ── Request bodies ────────────────────────────────────────────────────────────
class VerifyTokenRequest(BaseModel):
    token: str | None = None


class StartSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str | None = None
    user_name: str | None = Field(default=None, alias="userName")


class FinishSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str | None = None
    folder: str = ""
    questions_count: int | None = Field(default=None, alias="questionsCount")


# ── Responses ─────────────────────────────────────────────────────────────────
class OkResponse(BaseModel):
    ok: bool = True


class StartSessionResponse(OkResponse):
    folder: str


class UploadResponse(OkResponse):
    model_config = ConfigDict(populate_by_name=True)

    saved_as: str = Field(alias="savedAs")
