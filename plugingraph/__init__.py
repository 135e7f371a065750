"""plugingraph - Plugin dependency diagrams.

Example usage:
    from plugingraph import GraphOptions, build_diagram, render_to_svg

    rows = [
        {"from_app": "grafana-lokiexplore-app", "to_app": "grafana",
         "relation": "extends", "extension_id": "grafana/dashboard/panel/menu",
         "extension_type": "link"},
    ]

    diagram = build_diagram(rows, GraphOptions(mode="add"), width=1200, height=800)
    svg = render_to_svg(rows, {"visualizationMode": "add"}, filename="plugins")
"""

import logging

from .builder import (
    GraphBuilder,
    available_content_consumers,
    available_content_providers,
    build_from_manifests,
    build_from_rows,
    build_graph,
    display_name,
    infer_defining_plugin,
    infer_plugin_type,
)
from .config import (
    ColumnMapping,
    GraphOptions,
)
from .filters import (
    filter_graph,
    find_orphans,
)
from .layout import (
    LayoutConfig,
    LayoutMetrics,
    LayoutResult,
    MediatorGroup,
    MediatorPosition,
    NodePlacement,
    PlacementId,
    layout_graph,
)
from .models import (
    CORE_PLUGIN_ID,
    DependencyKind,
    ExposedComponent,
    ExtensionPoint,
    ExtensionType,
    GraphData,
    Mode,
    PluginDependency,
    PluginNode,
    PluginType,
)
from .pipeline import (
    Diagram,
    build_diagram,
)
from .renderer import (
    DEFAULT_THEME,
    DiagramRenderer,
    Theme,
    render_to_svg,
)
from .routing import (
    Connector,
    ConnectorFamily,
    ConnectorShape,
    Selection,
    route_links,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Models
    "CORE_PLUGIN_ID",
    "Mode",
    "PluginType",
    "DependencyKind",
    "ExtensionType",
    "PluginNode",
    "PluginDependency",
    "ExtensionPoint",
    "ExposedComponent",
    "GraphData",
    # Options
    "ColumnMapping",
    "GraphOptions",
    # Building
    "GraphBuilder",
    "build_graph",
    "build_from_rows",
    "build_from_manifests",
    "display_name",
    "infer_plugin_type",
    "infer_defining_plugin",
    "available_content_providers",
    "available_content_consumers",
    # Filtering
    "filter_graph",
    "find_orphans",
    # Layout
    "LayoutConfig",
    "LayoutMetrics",
    "LayoutResult",
    "MediatorGroup",
    "MediatorPosition",
    "NodePlacement",
    "PlacementId",
    "layout_graph",
    # Routing
    "Connector",
    "ConnectorFamily",
    "ConnectorShape",
    "Selection",
    "route_links",
    # Pipeline
    "Diagram",
    "build_diagram",
    # Rendering
    "render_to_svg",
    "DiagramRenderer",
    "Theme",
    "DEFAULT_THEME",
    # Version
    "__version__",
]
