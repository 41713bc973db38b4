"""Pydantic schemas for API request/response models.

Field aliases accept the editor's camelCase JSON (``dataType``, ``nodeId``,
``from``/``to``) as well as the snake_case names.
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PortSchema(_Model):
    id: str
    name: str = ""
    direction: str = "in"
    data_type: str = Field("any", alias="dataType")
    multi: bool = False
    default: Any = None


class PortRefSchema(_Model):
    node_id: str = Field(alias="nodeId")
    port_id: str = Field(alias="portId")


class WireSchema(_Model):
    id: str
    kind: str = "data"
    source: PortRefSchema = Field(alias="from")
    target: PortRefSchema = Field(alias="to")


class NodeSchema(_Model):
    id: str
    type: str
    title: str = ""
    inputs: list[PortSchema] = []
    outputs: list[PortSchema] = []
    state: dict[str, Any] = {}


class GraphSchema(_Model):
    nodes: list[NodeSchema]
    wires: list[WireSchema] = []
    name: str = "Untitled"


class ExecuteRequest(_Model):
    graph: GraphSchema
    session_id: str | None = None


class ExecuteResponse(BaseModel):
    execution_id: str
    session_id: str
    status: str


class ValidateResponse(BaseModel):
    valid: bool
    errors: list[str] = []


class WireCheckRequest(_Model):
    graph: GraphSchema
    source: PortRefSchema = Field(alias="from")
    target: PortRefSchema = Field(alias="to")
    kind: str | None = None


class WireCheckResponse(BaseModel):
    ok: bool
    kind: str | None = None
    errors: list[str] = []


class ManifestNodeSchema(_Model):
    """One node entry of an external pack manifest."""
    type: str
    title: str = ""
    category: str = "Custom"
    description: str = ""
    inputs: list[PortSchema] = []
    outputs: list[PortSchema] = []
    on_error: str | None = Field(None, alias="onError")


class NodePack(BaseModel):
    slug: str
    name: str
    version: str = "0.0.0"
    runner: str | None = None
    has_requirements: bool = False
    requirements_hash: str | None = None
    nodes: list[ManifestNodeSchema] = []


class RunnerRequest(_Model):
    slug: str
    payload: dict[str, Any] = {}


class RunnerResponse(BaseModel):
    outputs: dict[str, Any] | None = None
    state: dict[str, Any] | None = None
    logs: list[Any] | None = None
    error: str | None = None
