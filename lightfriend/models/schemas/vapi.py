"""Voice assistant webhook envelope.

The provider posts ``{"message": {...}}`` objects whose shape depends on the
``type`` field. Only the fields the dispatcher reads are modelled; everything
else is accepted and ignored.
"""
from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ToolFunction(_Lenient):
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)

    @field_validator("arguments", mode="before")
    @classmethod
    def _decode_arguments(cls, value: Any) -> Any:
        # Some providers send the arguments as a JSON encoded string
        if isinstance(value, str):
            try:
                decoded = json.loads(value) if value else {}
            except json.JSONDecodeError:
                return {"raw": value}
            return decoded if isinstance(decoded, dict) else {"value": decoded}
        return value if value is not None else {}


class ToolCall(_Lenient):
    id: str
    type: str = "function"
    function: ToolFunction


class Customer(_Lenient):
    number: str | None = None


class Call(_Lenient):
    id: str | None = None
    customer: Customer | None = None


class VapiMessage(_Lenient):
    type: str
    call: Call | None = None
    status: str | None = None
    tool_calls: list[ToolCall] | None = Field(default=None, alias="toolCalls")
    tool_call_list: list[ToolCall] | None = Field(default=None, alias="toolCallList")


class VapiEnvelope(_Lenient):
    message: VapiMessage

    @property
    def request_type(self) -> str:
        return self.message.type

    @property
    def phone_number(self) -> str | None:
        call = self.message.call
        if call is None or call.customer is None:
            return None
        return call.customer.number

    @property
    def tool_calls(self) -> list[ToolCall]:
        return self.message.tool_calls or self.message.tool_call_list or []
