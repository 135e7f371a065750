"""Column layout for plugin dependency diagrams."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .models import GraphData, Mode

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .config import GraphOptions
    from .models import Mediator

logger = logging.getLogger(__name__)


@dataclass
class LayoutConfig:
    """Configuration for layout calculations.

    Responsive values are ``max(floor, dimension * fraction)``; widths scale
    with the canvas width, vertical spacing with the canvas height.
    """

    margin_floor: float = 20
    margin_fraction: float = 0.04
    top_margin_floor: float = 60
    top_margin_fraction: float = 0.1
    node_width_floor: float = 120
    node_width_fraction: float = 0.16
    node_height_floor: float = 36
    node_height_fraction: float = 0.06
    extension_width_floor: float = 200
    extension_width_fraction: float = 0.3
    component_width_floor: float = 160
    component_width_fraction: float = 0.25
    item_spacing_floor: float = 65
    item_spacing_fraction: float = 0.09
    group_spacing_floor: float = 20
    group_spacing_fraction: float = 0.05
    min_node_spacing_floor: float = 44
    min_node_spacing_fraction: float = 0.08

    # Fixed values
    group_padding: float = 70  # Room for the group header
    header_offset: float = 60  # Group top to first item
    group_inset: float = 20  # Group box margin around mediator boxes
    description_spacing: float = 20  # Extra item room when descriptions are shown
    typed_box_height: float = 50  # Mediator box with the type badge line
    compact_box_height: float = 34
    min_width: float = 480  # Fits the floored columns side by side

    def metrics(
        self,
        width: float,
        height: float,
        options: GraphOptions | None = None,
    ) -> LayoutMetrics:
        """Derive concrete spacing values for a canvas size.

        The width is clamped to ``min_width`` so the columns never overlap.
        Negative heights are clamped to zero; the floors then apply.
        """
        width = max(width, self.min_width)
        height = max(height, 0)

        show_types = options.show_dependency_types if options is not None else True
        show_descriptions = options.show_descriptions if options is not None else False
        extra = self.description_spacing if show_descriptions else 0

        return LayoutMetrics(
            width=width,
            height=height,
            margin=max(self.margin_floor, width * self.margin_fraction),
            top_margin=max(self.top_margin_floor, height * self.top_margin_fraction),
            node_width=max(self.node_width_floor, width * self.node_width_fraction),
            node_height=max(self.node_height_floor, height * self.node_height_fraction),
            extension_width=max(self.extension_width_floor, width * self.extension_width_fraction),
            component_width=max(self.component_width_floor, width * self.component_width_fraction),
            item_spacing=max(self.item_spacing_floor, height * self.item_spacing_fraction) + extra,
            group_spacing=max(self.group_spacing_floor, height * self.group_spacing_fraction),
            min_node_spacing=max(self.min_node_spacing_floor, height * self.min_node_spacing_fraction),
            mediator_box_height=(
                self.typed_box_height if show_types else self.compact_box_height
            ) + extra,
            group_padding=self.group_padding,
            header_offset=self.header_offset,
            group_inset=self.group_inset,
        )


@dataclass(frozen=True)
class LayoutMetrics:
    """Spacing values resolved for one canvas size."""

    width: float
    height: float
    margin: float
    top_margin: float
    node_width: float
    node_height: float
    extension_width: float
    component_width: float
    item_spacing: float
    group_spacing: float
    min_node_spacing: float
    mediator_box_height: float
    group_padding: float
    header_offset: float
    group_inset: float


class NodeRole(Enum):
    PROVIDER = "provider"
    CONSUMER = "consumer"


@dataclass(frozen=True)
class PlacementId:
    """Identity of one drawn instance of a plugin.

    A consumer shared by several provider groups is drawn once per group;
    ``context_plugin_id`` names that group's provider.
    """

    logical_id: str
    context_plugin_id: str | None = None

    def __str__(self) -> str:
        if self.context_plugin_id is None:
            return self.logical_id
        return f"{self.logical_id}-at-{self.context_plugin_id}"


@dataclass(frozen=True)
class NodePlacement:
    """Centre position of a node instance."""

    placement: PlacementId
    x: float
    y: float
    role: NodeRole = NodeRole.PROVIDER

    @property
    def original_id(self) -> str:
        return self.placement.logical_id

    @property
    def composite_id(self) -> str:
        return str(self.placement)


@dataclass(frozen=True)
class MediatorPosition:
    """Left edge and vertical centre of a mediator box, plus its group extent."""

    x: float
    y: float
    group_y: float
    group_height: float


@dataclass
class MediatorGroup:
    """Mediators sharing an owning plugin, in first-seen order."""

    owner_id: str
    item_ids: list[str] = field(default_factory=list)
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


@dataclass
class LayoutResult:
    """Positions for every node instance and mediator."""

    mode: Mode
    metrics: LayoutMetrics
    content_height: float
    node_positions: dict[PlacementId, NodePlacement] = field(default_factory=dict)
    mediator_positions: dict[str, MediatorPosition] = field(default_factory=dict)
    groups: list[MediatorGroup] = field(default_factory=list)
    # logical id -> placements, in placement order
    placements: dict[str, list[PlacementId]] = field(default_factory=dict)

    def add_placement(self, placement: NodePlacement) -> None:
        self.node_positions[placement.placement] = placement
        self.placements.setdefault(placement.original_id, []).append(placement.placement)

    def placements_of(self, logical_id: str) -> list[NodePlacement]:
        """All drawn instances of a plugin."""
        return [self.node_positions[p] for p in self.placements.get(logical_id, [])]

    def group_of(self, owner_id: str) -> MediatorGroup | None:
        for group in self.groups:
            if group.owner_id == owner_id:
                return group
        return None

    @property
    def mediator_width(self) -> float:
        if self.mode is Mode.EXPOSE:
            return self.metrics.component_width
        return self.metrics.extension_width


def group_mediators(mediators: Sequence[Mediator]) -> list[MediatorGroup]:
    """Group mediators by owning plugin, keeping first-seen order."""
    groups: list[MediatorGroup] = []
    index: dict[str, MediatorGroup] = {}
    for mediator in mediators:
        group = index.get(mediator.owner)
        if group is None:
            group = MediatorGroup(owner_id=mediator.owner)
            index[mediator.owner] = group
            groups.append(group)
        group.item_ids.append(mediator.id)
    return groups


def spread_positions(count: int, center: float, usable: float, min_spacing: float) -> list[float]:
    """Vertical centres for ``count`` nodes sharing one group.

    A single node is centred. Several nodes use ``min_spacing`` steps
    centred on ``center`` when that fits in ``usable``, otherwise they are
    compressed evenly to ``usable``.
    """
    if count <= 0:
        return []
    if count == 1:
        return [center]

    step = min_spacing
    if (count - 1) * min_spacing > usable:
        step = max(usable, 0) / (count - 1)
    top = center - step * (count - 1) / 2
    return [top + i * step for i in range(count)]


def _stack_groups(result: LayoutResult, groups: list[MediatorGroup], mediator_x: float) -> float:
    """Assign group extents and mediator positions. Returns the final cursor."""
    m = result.metrics
    cursor = m.top_margin
    for group in groups:
        group.y = cursor
        group.height = len(group.item_ids) * m.item_spacing + m.group_padding
        group.x = mediator_x - m.group_inset
        group.width = result.mediator_width + 2 * m.group_inset
        for index, item_id in enumerate(group.item_ids):
            result.mediator_positions[item_id] = MediatorPosition(
                x=mediator_x,
                y=group.y + m.header_offset + index * m.item_spacing,
                group_y=group.y,
                group_height=group.height,
            )
        cursor += group.height + m.group_spacing
    result.groups = groups
    return cursor


def _place_spread(
    result: LayoutResult,
    group: MediatorGroup,
    members: list[PlacementId],
    x: float,
    role: NodeRole,
) -> None:
    m = result.metrics
    ys = spread_positions(len(members), group.center_y, group.height - m.node_height, m.min_node_spacing)
    for placement, y in zip(members, ys):
        result.add_placement(NodePlacement(placement=placement, x=x, y=y, role=role))


def _layout_add(graph: GraphData, result: LayoutResult) -> float:
    m = result.metrics
    mediator_x = m.width - m.margin - result.mediator_width
    cursor = _stack_groups(result, group_mediators(graph.extension_points), mediator_x)

    owner_of = {ep.id: ep.defining_plugin for ep in graph.extension_points}
    node_ids = graph.node_ids()

    # Anchor each provider to the first group it feeds
    anchored: dict[str, list[PlacementId]] = {}
    seen: set[str] = set()
    for dep in graph.dependencies:
        owner = owner_of.get(dep.target)
        if owner is None or dep.source in seen or dep.source not in node_ids:
            continue
        seen.add(dep.source)
        anchored.setdefault(owner, []).append(PlacementId(dep.source))

    provider_x = m.margin + m.node_width / 2
    for group in result.groups:
        _place_spread(result, group, anchored.get(group.owner_id, []), provider_x, NodeRole.PROVIDER)
    return cursor


def _layout_expose(graph: GraphData, result: LayoutResult) -> float:
    m = result.metrics
    mediator_x = m.width / 2 - result.mediator_width / 2
    groups = group_mediators(graph.exposed_components)
    cursor = _stack_groups(result, groups, mediator_x)

    components = {c.id: c for c in graph.exposed_components}
    node_ids = graph.node_ids()
    provider_x = m.margin + m.node_width / 2
    consumer_x = m.width - m.margin - m.node_width / 2

    for group in groups:
        if group.owner_id in node_ids:
            result.add_placement(NodePlacement(
                placement=PlacementId(group.owner_id),
                x=provider_x,
                y=group.center_y,
                role=NodeRole.PROVIDER,
            ))

        consumers: list[PlacementId] = []
        for item_id in group.item_ids:
            for consumer in components[item_id].consumers:
                placement = PlacementId(consumer, group.owner_id)
                if consumer in node_ids and placement not in consumers:
                    consumers.append(placement)
        _place_spread(result, group, consumers, consumer_x, NodeRole.CONSUMER)
    return cursor


def layout_graph(
    graph: GraphData,
    options: GraphOptions | None = None,
    width: float = 800,
    height: float = 600,
    mode: Mode | str | None = None,
    config: LayoutConfig | None = None,
) -> LayoutResult:
    """Compute positions for a filtered graph.

    Mediators are grouped by owning plugin and stacked top to bottom.
    Providers sit in the left column at their group's centre. In Expose
    mode consumers sit in the right column, once per provider group.

    Args:
        graph: Graph to lay out
        options: Display options (affect spacing only)
        width: Canvas width
        height: Canvas height
        mode: Overrides ``graph.mode``
        config: Layout constants

    Returns:
        LayoutResult. Its ``content_height`` is never below ``height``.
    """
    config = config or LayoutConfig()
    mode = graph.mode if mode is None else Mode.parse(mode)
    metrics = config.metrics(width, height, options)
    result = LayoutResult(mode=mode, metrics=metrics, content_height=metrics.height)

    if graph.is_empty():
        return result

    if mode is Mode.EXPOSE:
        cursor = _layout_expose(graph, result)
    else:
        cursor = _layout_add(graph, result)

    result.content_height = max(cursor, metrics.height)
    logger.debug(
        "Layout: %d groups, %d node instances, content height %.1f",
        len(result.groups), len(result.node_positions), result.content_height,
    )
    return result
