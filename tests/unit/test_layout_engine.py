"""Tests for lane assignment, node sizing and edge projection."""

from __future__ import annotations

from kubetopo.graph.builder import build_graph
from kubetopo.graph.grouping import group_components
from kubetopo.graph.models import EdgeKind, RelationshipGraph
from kubetopo.graph.references import resolve_shared_references
from kubetopo.layout.engine import LayoutEngine
from kubetopo.models.config import LayoutConfig
from kubetopo.models.layout import Application, NodeShape
from tests.conftest import (
    make_deployment,
    make_ingress,
    make_network_policy,
    make_record,
    make_service,
    make_web_app,
    pod_spec,
)


def _layout(records, config: LayoutConfig | None = None) -> tuple[RelationshipGraph, list[Application]]:
    graph = build_graph(records)
    resolve_shared_references(graph)
    engine = LayoutEngine(config)
    return graph, [engine.layout_group(graph, group) for group in group_components(graph)]


# ---------------------------------------------------------------------------
# Web example geometry
# ---------------------------------------------------------------------------


class TestWebExampleGeometry:
    def test_service_and_controller_positions(self, web_snapshot) -> None:
        _, (app,) = _layout(web_snapshot)
        service = next(n for n in app.nodes if n.resource.kind == "Service")
        deployment = next(n for n in app.nodes if n.resource.kind == "Deployment")

        assert service.shape == NodeShape.COMPACT
        assert (service.x, service.y, service.width, service.height) == (12, 48, 48, 48)

        assert deployment.shape == NodeShape.CONTROLLER
        assert (deployment.x, deployment.y) == (92, 48)
        assert (deployment.width, deployment.height) == (136, 110)

        assert (app.width, app.height) == (240, 170)

    def test_pods_nested_in_name_order(self, web_snapshot) -> None:
        _, (app,) = _layout(web_snapshot)
        deployment = next(n for n in app.nodes if n.resource.kind == "Deployment")
        assert [c.resource.name for c in deployment.children] == ["web-7d9f8-0", "web-7d9f8-1"]
        assert [(c.x, c.y, c.width, c.height) for c in deployment.children] == [
            (8, 32, 120, 32),
            (8, 70, 120, 32),
        ]

    def test_single_projected_service_edge(self, web_snapshot) -> None:
        _, (app,) = _layout(web_snapshot)
        service_uid = next(r.uid for r in web_snapshot if r.kind == "Service")
        deployment_uid = next(r.uid for r in web_snapshot if r.kind == "Deployment")
        assert [(e.source, e.target, e.kind) for e in app.edges] == [
            (service_uid, deployment_uid, EdgeKind.SERVICE)
        ]


# ---------------------------------------------------------------------------
# Lanes and shapes
# ---------------------------------------------------------------------------


class TestLanes:
    def test_lane_order_left_to_right(self) -> None:
        deployment, replicaset, pod_a, pod_b = make_web_app("web")
        records = [
            deployment,
            replicaset,
            pod_a,
            pod_b,
            make_service("web", {"app": "web"}),
            make_ingress("web", paths=("web",)),
            make_network_policy("web", {"app": "web"}),
        ]
        _, (app,) = _layout(records)
        xs = {n.resource.kind: n.x for n in app.nodes}
        assert xs["Ingress"] < xs["Service"] < xs["Deployment"] < xs["NetworkPolicy"]

    def test_lane_nodes_stack_and_centre(self) -> None:
        # Two services in one lane; a wider ingress lane sits to the left.
        records = [
            make_ingress("entry", paths=("a", "b")),
            make_service("a"),
            make_service("b"),
        ]
        _, (app,) = _layout(records)
        services = sorted((n for n in app.nodes if n.resource.kind == "Service"), key=lambda n: n.y)
        assert [s.resource.name for s in services] == ["a", "b"]
        assert services[1].y == services[0].y + 48 + 10
        ingress = next(n for n in app.nodes if n.resource.kind == "Ingress")
        assert ingress.shape == NodeShape.INGRESS
        assert (ingress.width, ingress.height) == (160, 60)
        assert services[0].x == 12 + 160 + 32

    def test_lane_centres_narrow_nodes(self) -> None:
        gateway = make_record("Gateway", "gw")
        ingress = make_ingress("ing", paths=("svc",))
        route = make_record(
            "HTTPRoute", "r", spec={"parentRefs": [{"name": "gw"}], "rules": [{"backendRefs": [{"name": "svc"}]}]}
        )
        _, (app,) = _layout([gateway, ingress, route, make_service("svc")])
        gw = next(n for n in app.nodes if n.resource.kind == "Gateway")
        ing = next(n for n in app.nodes if n.resource.kind == "Ingress")
        # Lane 0 is as wide as the ingress; the compact gateway is centred in it.
        assert ing.x == 12
        assert gw.x == 12 + (160 - 48) / 2

    def test_unknown_kind_uses_compute_lane_and_standard_shape(self) -> None:
        _, (app,) = _layout([make_record("Widget", "w")])
        (node,) = app.nodes
        assert node.shape == NodeShape.STANDARD
        assert (node.x, node.y) == (12, 48)

    def test_controller_without_pods_is_standard(self) -> None:
        _, (app,) = _layout([make_deployment("scaled-to-zero")])
        assert app.nodes[0].shape == NodeShape.STANDARD


# ---------------------------------------------------------------------------
# Config badges
# ---------------------------------------------------------------------------


class TestBadges:
    def test_badges_wrap_after_per_row(self) -> None:
        names = tuple(f"cm{i}" for i in range(6))
        records = make_web_app("web", replicas=1, spec=pod_spec(config_maps=names))
        _, (app,) = _layout(records)
        (node,) = app.nodes
        assert len(node.badges) == 6
        assert (node.badges[4].x, node.badges[4].y) == (8 + 4 * 24, 68)
        assert (node.badges[5].x, node.badges[5].y) == (8, 92)
        assert node.height == 64 + 8 + 2 * 24 + 4

    def test_icon_row_can_widen_controller(self) -> None:
        names = tuple(f"cm{i}" for i in range(7))
        records = make_web_app("web", replicas=1, spec=pod_spec(config_maps=names))
        _, (app,) = _layout(records, LayoutConfig(config_icons_per_row=7))
        assert app.nodes[0].width == 7 * 24 - 4 + 16

    def test_config_objects_never_top_level(self) -> None:
        records = [
            *make_web_app("web", spec=pod_spec(config_maps=("cfg",))),
            make_record("ConfigMap", "cfg"),
        ]
        _, (app,) = _layout(records)
        assert {n.resource.kind for n in app.nodes} == {"Deployment"}
        assert [b.name for b in app.nodes[0].badges] == ["cfg"]
        assert app.edges == []


# ---------------------------------------------------------------------------
# Merged groups
# ---------------------------------------------------------------------------


class TestMergedGroups:
    def test_components_placed_side_by_side(self) -> None:
        a = make_deployment("api", labels={"app.kubernetes.io/instance": "shop"})
        b = make_deployment("worker", labels={"app.kubernetes.io/instance": "shop"})
        _, (app,) = _layout([a, b])
        first, second = sorted(app.nodes, key=lambda n: n.x)
        assert first.resource.name == "api"
        single_width = 12 + 160 + 12
        assert second.x == first.x + single_width + 20
        assert app.width == single_width * 2 + 20
        assert app.height == 12 + 36 + 60 + 12
