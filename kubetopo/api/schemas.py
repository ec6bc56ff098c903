"""Pydantic response models for the kubetopo REST API.

These are the external shapes renderers consume; they are built from the
internal dataclasses via ``from_model`` classmethods.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from kubetopo.models.layout import Application, ConfigBadge, LayoutEdge, LayoutNode
from kubetopo.models.resources import ResourceIdentity
from kubetopo.service import TopologyResult


class ErrorResponse(BaseModel):
    """Error envelope returned for every non-2xx response."""

    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str


class ResourceIdentityModel(BaseModel):
    """Detail-lookup tuple for one resource."""

    kind: str
    name: str
    namespace: str | None = None
    api_version: str = ""
    uid: str

    @classmethod
    def from_model(cls, identity: ResourceIdentity) -> ResourceIdentityModel:
        return cls(
            kind=identity.kind,
            name=identity.name,
            namespace=identity.namespace,
            api_version=identity.api_version,
            uid=identity.uid,
        )


class BadgeModel(BaseModel):
    kind: str
    name: str
    namespace: str | None = None
    uid: str | None = None
    shared: bool = False
    x: float
    y: float
    size: float

    @classmethod
    def from_model(cls, badge: ConfigBadge) -> BadgeModel:
        return cls(
            kind=badge.kind,
            name=badge.name,
            namespace=badge.namespace,
            uid=badge.uid,
            shared=badge.shared,
            x=badge.x,
            y=badge.y,
            size=badge.size,
        )


class NodeModel(BaseModel):
    """A positioned resource; children and badges are host-relative."""

    uid: str
    kind: str
    name: str
    namespace: str | None = None
    api_version: str = ""
    shape: str
    x: float
    y: float
    width: float
    height: float
    children: list[NodeModel] = Field(default_factory=list)
    badges: list[BadgeModel] = Field(default_factory=list)

    @classmethod
    def from_model(cls, node: LayoutNode) -> NodeModel:
        return cls(
            uid=node.uid,
            kind=node.resource.kind,
            name=node.resource.name,
            namespace=node.resource.namespace,
            api_version=node.resource.api_version,
            shape=str(node.shape),
            x=node.x,
            y=node.y,
            width=node.width,
            height=node.height,
            children=[cls.from_model(child) for child in node.children],
            badges=[BadgeModel.from_model(badge) for badge in node.badges],
        )


class EdgeModel(BaseModel):
    source: str
    target: str
    kind: str

    @classmethod
    def from_model(cls, edge: LayoutEdge) -> EdgeModel:
        return cls(source=edge.source, target=edge.target, kind=str(edge.kind))


class ApplicationModel(BaseModel):
    id: str
    name: str
    namespace: str | None = None
    x: float
    y: float
    width: float
    height: float
    nodes: list[NodeModel] = Field(default_factory=list)
    edges: list[EdgeModel] = Field(default_factory=list)

    @classmethod
    def from_model(cls, app: Application) -> ApplicationModel:
        return cls(
            id=app.id,
            name=app.name,
            namespace=app.namespace,
            x=app.x,
            y=app.y,
            width=app.width,
            height=app.height,
            nodes=[NodeModel.from_model(node) for node in app.nodes],
            edges=[EdgeModel.from_model(edge) for edge in app.edges],
        )


class SceneResponse(BaseModel):
    """Every application of one namespace scope, packed onto one canvas."""

    namespace: str | None = None
    generation: int
    generated_at: str
    width: float
    height: float
    resource_count: int
    failed_kinds: list[str] = Field(default_factory=list)
    applications: list[ApplicationModel] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: TopologyResult) -> SceneResponse:
        return cls(
            namespace=result.namespace,
            generation=result.generation,
            generated_at=result.generated_at.isoformat(),
            width=result.width,
            height=result.height,
            resource_count=result.resource_count,
            failed_kinds=list(result.failed_kinds),
            applications=[ApplicationModel.from_model(app) for app in result.applications],
        )
