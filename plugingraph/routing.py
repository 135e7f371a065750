"""Connector routing between placed nodes and mediators."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .layout import PlacementId
from .models import Mode

if TYPE_CHECKING:
    from .layout import LayoutResult
    from .models import GraphData

logger = logging.getLogger(__name__)

Point = tuple[float, float]

# Control points sit this far from each endpoint toward the midpoint
CURVE_RATIO = 0.6

HIGHLIGHT_OPACITY = 1.0
DIMMED_OPACITY = 0.3


class ConnectorFamily(Enum):
    PROVIDER_TO_GROUP = "provider_to_group"
    PROVIDER_TO_COMPONENT = "provider_to_component"
    COMPONENT_TO_CONSUMER = "component_to_consumer"


class ConnectorShape(Enum):
    CURVE = "curve"
    LINE = "line"


@dataclass(frozen=True)
class Selection:
    """The selected mediator, if any."""

    selected_id: str | None = None

    def toggle(self, entity_id: str) -> Selection:
        """Select ``entity_id``, or clear the selection if it is already selected."""
        if self.selected_id == entity_id:
            return Selection()
        return Selection(entity_id)

    def is_active(self) -> bool:
        return self.selected_id is not None


@dataclass(frozen=True)
class Connector:
    """A routed connector ready for drawing."""

    key: str
    family: ConnectorFamily
    shape: ConnectorShape
    source_id: str
    target_id: str
    start: Point
    end: Point
    control_points: tuple[Point, Point] | None
    member_ids: tuple[str, ...]
    highlighted: bool = False
    opacity: float = HIGHLIGHT_OPACITY
    stroke_width: float = 2

    def path_data(self) -> str:
        """SVG path ``d`` attribute."""
        sx, sy = self.start
        ex, ey = self.end
        if self.control_points is None:
            return f"M {sx},{sy} L {ex},{ey}"
        (c1x, c1y), (c2x, c2y) = self.control_points
        return f"M {sx},{sy} C {c1x},{c1y} {c2x},{c2y} {ex},{ey}"

    @property
    def end_angle(self) -> float:
        """Direction of travel at the end point, in radians."""
        fx, fy = self.start if self.control_points is None else self.control_points[1]
        ex, ey = self.end
        if (fx, fy) == (ex, ey):
            fx, fy = self.start
        return math.atan2(ey - fy, ex - fx)


def curve_control_points(start: Point, end: Point, ratio: float = CURVE_RATIO) -> tuple[Point, Point]:
    """Control points for a horizontal S-curve.

    Each control point lies ``ratio`` of the way from its endpoint toward
    the horizontal midpoint, at the endpoint's own height.
    """
    sx, sy = start
    ex, ey = end
    mid_x = (sx + ex) / 2
    return (sx + (mid_x - sx) * ratio, sy), (ex - (ex - mid_x) * ratio, ey)


def _style(selection: Selection, highlighted: bool, strokes: tuple[float, float]) -> dict:
    heavy, normal = strokes
    dimmed = selection.is_active() and not highlighted
    return {
        "highlighted": highlighted,
        "opacity": DIMMED_OPACITY if dimmed else HIGHLIGHT_OPACITY,
        "stroke_width": heavy if highlighted else normal,
    }


def _route_add(graph: GraphData, layout: LayoutResult, selection: Selection) -> list[Connector]:
    owner_of = {ep.id: ep.defining_plugin for ep in graph.extension_points}

    # (source, definer) -> extension point ids, first-seen order
    bundles: dict[tuple[str, str], list[str]] = {}
    for dep in graph.dependencies:
        owner = owner_of.get(dep.target)
        if owner is None:
            continue
        members = bundles.setdefault((dep.source, owner), [])
        if dep.target not in members:
            members.append(dep.target)

    m = layout.metrics
    connectors = []
    for (source, owner), members in bundles.items():
        provider = layout.node_positions.get(PlacementId(source))
        first = layout.mediator_positions.get(members[0])
        if provider is None or first is None:
            logger.debug("No position for connector %s -> %s", source, owner)
            continue

        start = (provider.x + m.node_width / 2, provider.y)
        end = (first.x - m.group_inset, first.group_y + first.group_height / 2)
        highlighted = selection.selected_id in members
        connectors.append(Connector(
            key=f"{source}->{owner}",
            family=ConnectorFamily.PROVIDER_TO_GROUP,
            shape=ConnectorShape.CURVE,
            source_id=source,
            target_id=owner,
            start=start,
            end=end,
            control_points=curve_control_points(start, end),
            member_ids=tuple(members),
            **_style(selection, highlighted, (4, 3)),
        ))
    return connectors


def _route_expose(graph: GraphData, layout: LayoutResult, selection: Selection) -> list[Connector]:
    m = layout.metrics
    connectors = []
    for comp in graph.exposed_components:
        pos = layout.mediator_positions.get(comp.id)
        if pos is None:
            continue
        highlighted = selection.selected_id == comp.id
        style = _style(selection, highlighted, (3, 2))

        provider = layout.node_positions.get(PlacementId(comp.providing_plugin))
        if provider is not None:
            connectors.append(Connector(
                key=f"{comp.providing_plugin}->{comp.id}",
                family=ConnectorFamily.PROVIDER_TO_COMPONENT,
                shape=ConnectorShape.LINE,
                source_id=comp.providing_plugin,
                target_id=comp.id,
                start=(provider.x + m.node_width / 2, provider.y),
                end=(pos.x, pos.y),
                control_points=None,
                member_ids=(comp.id,),
                **style,
            ))

        for consumer in comp.consumers:
            # Only the instance drawn in this component's provider group
            instance = layout.node_positions.get(PlacementId(consumer, comp.providing_plugin))
            if instance is None:
                continue
            connectors.append(Connector(
                key=f"{comp.id}->{instance.composite_id}",
                family=ConnectorFamily.COMPONENT_TO_CONSUMER,
                shape=ConnectorShape.LINE,
                source_id=comp.id,
                target_id=instance.composite_id,
                start=(pos.x + layout.mediator_width, pos.y),
                end=(instance.x - m.node_width / 2, instance.y),
                control_points=None,
                member_ids=(comp.id,),
                **style,
            ))
    return connectors


def route_links(
    graph: GraphData,
    layout: LayoutResult,
    selection: Selection | None = None,
) -> list[Connector]:
    """Compute connectors for a laid out graph.

    Add mode emits one curve per (provider, defining plugin) pair. Expose
    mode emits a provider -> component line per component and a
    component -> consumer line per consumer instance in that provider's
    group. Selection only changes styling, never geometry.
    """
    selection = selection or Selection()
    if layout.mode is Mode.EXPOSE:
        connectors = _route_expose(graph, layout, selection)
    else:
        connectors = _route_add(graph, layout, selection)

    logger.debug("Routed %d connectors", len(connectors))
    return connectors
