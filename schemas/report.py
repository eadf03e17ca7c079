"""
Outbound Report Schemas

Payloads POSTed to the collector. Field aliases are the collector's
wire names; always serialize with `to_json()`.
"""

import base64
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> bytes:
        """Serialize using wire aliases, dropping unset optional fields."""
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


class PanicReport(_WireModel):
    """
    One captured failure.

    span_id stays None (and is omitted on the wire) unless the failure
    happened inside a traced request.
    """
    error_name: str = Field(..., alias="ErrorName")
    body: str = Field(..., alias="Body")
    span_id: Optional[int] = Field(default=None, alias="SpanId")


class ProfileUpload(_WireModel):
    """Result of a remotely-requested capture command."""
    command_id: int = Field(..., alias="CommandId")
    out: bytes = Field(default=b"", alias="Out")
    pkg: bytes = Field(default=b"", alias="Pkg")
    ignored: bool = Field(default=False, alias="Ignored")

    @field_serializer("out", "pkg")
    def _encode_bytes(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")


class StatsReport(_WireModel):
    """Periodic upload of recorded request outcomes and status counts."""
    https: List[Dict[str, Any]] = Field(default_factory=list, alias="HTTPs")
    rpms: Dict[str, int] = Field(default_factory=dict, alias="RPMs")
    threads: int = Field(default=0, alias="Threads")
    created_at: datetime = Field(default_factory=datetime.now, alias="CreatedAt")
