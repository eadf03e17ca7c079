import socket
from enum import Enum
from typing import List
from pydantic import BaseModel, ConfigDict, Field


# --- Remote Command Schemas ---

class CommandType(str, Enum):
    """Diagnostic capture actions the collector can request."""
    TRACE = "trace"
    CPU_PROFILE = "cpu-profile"
    MEM_PROFILE = "mem-profile"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire(cls, value: str) -> "CommandType":
        """Map a wire value to a member, anything unrecognized to UNKNOWN."""
        try:
            member = cls(value)
        except ValueError:
            return cls.UNKNOWN
        return member


class Command(BaseModel):
    """A single remotely-requested diagnostic action."""
    id: int
    type: str = ""
    requested: bool = False
    executed: bool = False

    @property
    def kind(self) -> CommandType:
        return CommandType.from_wire(self.type)


class AgentRecord(BaseModel):
    """
    Identity of this agent as known by the collector.

    The collector echoes the record back in every reply and may attach
    fields of its own, which are kept untouched.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str = Field(default="", alias="Name")

    @classmethod
    def for_host(cls) -> "AgentRecord":
        return cls(name=socket.gethostname())


class CollectorResponse(BaseModel):
    """
    Reply body returned by the collector when response analysis is requested.
    """
    model_config = ConfigDict(populate_by_name=True)

    agent: AgentRecord = Field(default_factory=AgentRecord, alias="AgentID")
    commands: List[Command] = Field(default_factory=list, alias="Commands")
