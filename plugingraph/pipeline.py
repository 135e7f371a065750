"""Build -> filter -> layout -> route in one call."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .builder import build_graph
from .config import GraphOptions
from .filters import filter_graph
from .layout import LayoutConfig, LayoutResult, layout_graph
from .models import GraphData
from .routing import Connector, Selection, route_links


@dataclass
class Diagram:
    """Everything a renderer needs to draw one diagram."""

    graph: GraphData
    layout: LayoutResult
    connectors: list[Connector] = field(default_factory=list)
    options: GraphOptions = field(default_factory=GraphOptions)
    selection: Selection = field(default_factory=Selection)

    def is_empty(self) -> bool:
        return self.graph.is_empty()


def resolve_options(options: GraphOptions | Mapping[str, Any] | None) -> GraphOptions:
    if isinstance(options, GraphOptions):
        return options
    return GraphOptions.from_mapping(options)


def build_diagram(
    raw: Any,
    options: GraphOptions | Mapping[str, Any] | None = None,
    width: float = 800,
    height: float = 600,
    selection: Selection | None = None,
    config: LayoutConfig | None = None,
) -> Diagram:
    """Run the full pipeline over raw rows or a manifest map.

    Args:
        raw: Relationship rows, or a plugin id -> manifest mapping
        options: GraphOptions or a panel options record
        width: Canvas width
        height: Canvas height
        selection: Highlighted mediator
        config: Layout constants

    Returns:
        Diagram with the filtered graph, its layout and connectors
    """
    options = resolve_options(options)
    selection = selection or Selection()

    graph = build_graph(raw, options.mode, options.columns)
    graph = filter_graph(
        graph,
        options.selected_content_providers,
        options.selected_content_consumers,
    )
    layout = layout_graph(graph, options, width, height, config=config)
    connectors = route_links(graph, layout, selection)

    return Diagram(
        graph=graph,
        layout=layout,
        connectors=connectors,
        options=options,
        selection=selection,
    )
