from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class EvaluationRequest(BaseModel):
    """Body of POST /best-move.

    `fen` and `level` are accepted as aliases of `position` and `effort`.
    Effort may be an integer or a string of digits ("5"); floats, booleans and
    other strings are rejected. Missing or blank positions are rejected by the
    evaluation handler, not here, so the error reads the same for every caller.
    """

    model_config = ConfigDict(extra="ignore")

    position: str | None = Field(
        default=None,
        max_length=128,
        validation_alias=AliasChoices("position", "fen"),
    )
    effort: int | None = Field(
        default=None,
        strict=True,
        validation_alias=AliasChoices("effort", "level"),
    )

    @field_validator("effort", mode="before")
    @classmethod
    def _digits_to_int(cls, v: Any) -> Any:  # noqa: ANN401
        if isinstance(v, str) and v.strip().isdecimal():
            return int(v.strip())
        return v


class BestMoveResponse(BaseModel):
    move: str
