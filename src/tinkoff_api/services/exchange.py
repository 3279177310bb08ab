"""
Call descriptors for both API surfaces.

A descriptor is a pydantic model holding the request parameters, plus
class-level metadata the engine needs to execute it:

    class AccountsLightIbIn(CommonExchange):
        path = "/common/v1/accounts_light_ib"
        out = list[Account]
        auth = Auth.FORCE

CommonExchange goes over the form-encoded POST surface and is decoded from
the resultCode envelope. InvestExchange goes over the invest gateway GET
surface and is decoded from the bare response body.
"""

import json
from enum import Enum
from functools import lru_cache
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic.alias_generators import to_camel


class Auth(str, Enum):
    """Session requirement of a call."""

    NONE = "none"  # no session, no lock
    CHECK = "check"  # cached session required, fail fast otherwise
    FORCE = "force"  # log in when no session is cached


@lru_cache(maxsize=None)
def _adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


def _encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, dict | list):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


class Exchange(BaseModel):
    """Base call descriptor."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    path: ClassVar[str]
    out: ClassVar[Any] = Any
    auth: ClassVar[Auth] = Auth.FORCE

    def params(self) -> dict[str, str]:
        """Flat string parameters; unset (None) fields are omitted."""
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return {key: _encode_value(value) for key, value in data.items()}

    @classmethod
    def adapter(cls) -> TypeAdapter:
        return _adapter(cls.out)


class CommonResponse(BaseModel):
    """Envelope of the primary surface."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    result_code: str
    error_message: str = ""
    payload: Any = None
    operation_ticket: str = ""


class CommonExchange(Exchange):
    expected_result_code: ClassVar[str] = "OK"

    def decode(self, envelope: CommonResponse) -> Any:
        return self.adapter().validate_python(envelope.payload)


class InvestErrorBody(BaseModel):
    """Error body of the invest gateway."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    error_message: str = ""
    error_code: str = ""


class InvestExchange(Exchange):
    # The invest gateway has no anonymous calls
    auth: ClassVar[Auth] = Auth.FORCE

    def decode(self, body: bytes | str) -> Any:
        return self.adapter().validate_json(body)
