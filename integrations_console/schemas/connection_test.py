"""Response contract of the zapier-test connection diagnostic.

Version 1 is ``{version, success, results: {database, authentication,
data_access?}, message?}``. Two older envelopes are still produced by
deployed functions and are normalised here, and only here:

* ``{success, data: {results: {...}}}``
* ``{success, database: {...}, authentication: ...}``
"""

from typing import Any, Dict, Optional
from pydantic import AliasChoices, BaseModel, Field, model_validator

CONTRACT_VERSION = 1


class DatabaseResult(BaseModel):
    status: Optional[str] = None
    response_time: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("response_time", "responseTime"),
    )


class AuthenticationResult(BaseModel):
    valid: bool = False
    user_id: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _coerce_scalar(cls, value: Any) -> Any:
        # Older functions report authentication as a bare bool or string.
        if isinstance(value, bool):
            return {"valid": value}
        if isinstance(value, str):
            return {"valid": value != "failed"}
        return value


class DataAccessResult(BaseModel):
    record_count: int = 0


class ConnectionTestResults(BaseModel):
    database: DatabaseResult = Field(default_factory=DatabaseResult)
    authentication: AuthenticationResult = Field(default_factory=AuthenticationResult)
    data_access: Optional[DataAccessResult] = None


class ConnectionTestResponse(BaseModel):
    version: int = CONTRACT_VERSION
    success: bool = True
    results: Optional[ConnectionTestResults] = None
    message: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _normalise_envelope(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        payload: Dict[str, Any] = dict(value)

        inner = payload.get("data")
        if isinstance(inner, dict) and "results" not in payload:
            merged = dict(inner)
            merged["success"] = bool(payload.get("success") or inner.get("success"))
            if payload.get("message") and not merged.get("message"):
                merged["message"] = payload["message"]
            payload = merged

        if "results" not in payload and ("database" in payload or "authentication" in payload):
            payload["results"] = {
                key: payload.pop(key)
                for key in ("database", "authentication", "data_access")
                if key in payload
            }

        return payload

    @model_validator(mode="after")
    def _require_results_on_success(self) -> "ConnectionTestResponse":
        if self.success and self.results is None:
            raise ValueError("successful response carries no results")
        return self
