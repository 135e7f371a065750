"""SVG renderer using drawsvg."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

import drawsvg as draw

from .builder import display_name
from .layout import NodeRole
from .models import ExtensionPoint, ExtensionType, Mode
from .pipeline import build_diagram

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .config import GraphOptions
    from .layout import MediatorGroup, NodePlacement
    from .models import Mediator
    from .pipeline import Diagram
    from .routing import Connector, Selection

FONT_FAMILY = "Inter, system-ui, sans-serif"
CHAR_WIDTH = 7.2  # Average character width at 13px


class Theme:
    """Color theme for diagrams."""

    def __init__(
        self,
        background: str = "#ffffff",
        node_fill: str = "#f8fafc",
        node_stroke: str = "#cbd5e1",
        group_fill: str = "#f1f5f9",
        group_stroke: str = "#94a3b8",
        text_color: str = "#1e293b",
        text_secondary: str = "#64748b",
        text_on_fill: str = "#ffffff",
        edge_color: str = "#64748b",
        accent_color: str = "#3b82f6",
        link_color: str = "#16a34a",
        component_color: str = "#d97706",
        function_color: str = "#dc2626",
        exposed_color: str = "#7c3aed",
    ):
        self.background = background
        self.node_fill = node_fill
        self.node_stroke = node_stroke
        self.group_fill = group_fill
        self.group_stroke = group_stroke
        self.text_color = text_color
        self.text_secondary = text_secondary
        self.text_on_fill = text_on_fill
        self.edge_color = edge_color
        self.accent_color = accent_color
        self.link_color = link_color
        self.component_color = component_color
        self.function_color = function_color
        self.exposed_color = exposed_color


DEFAULT_THEME = Theme()


def truncate_text(text: str, max_chars: int) -> str:
    """Truncate text to max characters with ellipsis."""
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 1] + "…"


def _max_chars(width: float) -> int:
    return max(4, int((width - 16) / CHAR_WIDTH))


class DiagramRenderer:
    """Renders pipeline output to SVG."""

    def __init__(self, theme: Theme | None = None):
        self.theme = theme or DEFAULT_THEME

    def extension_color(self, extension_type: ExtensionType, options: GraphOptions) -> str:
        """Fill for an extension point, honouring per-type overrides."""
        if extension_type is ExtensionType.COMPONENT:
            return options.component_extension_color or self.theme.component_color
        if extension_type is ExtensionType.FUNCTION:
            return options.function_extension_color or self.theme.function_color
        return options.link_extension_color or self.theme.link_color

    def render(self, diagram: Diagram) -> draw.Drawing:
        """Render a diagram to an SVG Drawing object."""
        metrics = diagram.layout.metrics
        width = metrics.width
        height = diagram.layout.content_height

        d = draw.Drawing(width, height)
        d.append(draw.Rectangle(0, 0, width, height, fill=self.theme.background))

        if diagram.is_empty():
            d.append(draw.Text(
                "No plugin relationships to display",
                14,
                width / 2, height / 2,
                fill=self.theme.text_secondary,
                font_family=FONT_FAMILY,
                text_anchor="middle",
                dominant_baseline="middle",
            ))
            return d

        self._render_headers(d, diagram)

        mediators = {m.id: m for m in diagram.graph.mediators}
        for group in diagram.layout.groups:
            self._render_group(d, diagram, group, mediators)

        # Connectors under nodes so line ends tuck behind boxes
        for connector in diagram.connectors:
            self._render_connector(d, connector)

        for placement in diagram.layout.node_positions.values():
            self._render_node(d, diagram, placement)

        return d

    def _render_headers(self, d: draw.Drawing, diagram: Diagram) -> None:
        m = diagram.layout.metrics
        y = m.top_margin / 2
        headers = [("Content Provider", m.margin, m.margin + m.node_width)]
        if diagram.layout.mode is Mode.EXPOSE:
            center = m.width / 2
            headers.append((
                "Exposed Components",
                center - m.component_width / 2,
                center + m.component_width / 2,
            ))
            headers.append(("Content Consumer", m.width - m.margin - m.node_width, m.width - m.margin))
        else:
            headers.append((
                "Content Consumer",
                m.width - m.margin - m.extension_width - m.group_inset,
                m.width - m.margin + m.group_inset,
            ))

        for label, x1, x2 in headers:
            d.append(draw.Text(
                label,
                15,
                (x1 + x2) / 2, y,
                fill=self.theme.text_color,
                font_family=FONT_FAMILY,
                font_weight="600",
                text_anchor="middle",
            ))
            d.append(draw.Line(x1, y + 10, x2, y + 10, stroke=self.theme.group_stroke, stroke_width=1))

    def _render_group(
        self,
        d: draw.Drawing,
        diagram: Diagram,
        group: MediatorGroup,
        mediators: dict[str, Mediator],
    ) -> None:
        d.append(draw.Rectangle(
            group.x, group.y, group.width, group.height,
            rx=12, ry=12,
            fill=self.theme.group_fill,
            stroke=self.theme.group_stroke,
            stroke_width=2,
        ))

        owner = diagram.graph.get_node(group.owner_id)
        label = owner.name if owner is not None else display_name(group.owner_id)
        d.append(draw.Text(
            truncate_text(label, _max_chars(group.width)),
            14,
            group.x + diagram.layout.metrics.group_inset, group.y + 24,
            fill=self.theme.text_color,
            font_family=FONT_FAMILY,
            font_weight="600",
        ))

        for item_id in group.item_ids:
            mediator = mediators.get(item_id)
            if mediator is not None:
                self._render_mediator(d, diagram, mediator)

    def _render_mediator(self, d: draw.Drawing, diagram: Diagram, mediator: Mediator) -> None:
        pos = diagram.layout.mediator_positions[mediator.id]
        m = diagram.layout.metrics
        options = diagram.options
        w = diagram.layout.mediator_width
        h = m.mediator_box_height
        selected = diagram.selection.selected_id == mediator.id

        if isinstance(mediator, ExtensionPoint):
            fill = self.extension_color(mediator.extension_type, options)
            title = mediator.id
            badge = f"({mediator.extension_type.value} extension)"
        else:
            fill = self.theme.exposed_color
            title = mediator.title or mediator.id
            badge = mediator.id if mediator.title else "(exposed component)"

        d.append(draw.Rectangle(
            pos.x, pos.y - h / 2, w, h,
            rx=6, ry=6,
            fill=fill,
            stroke=self.theme.accent_color if selected else self.theme.node_stroke,
            stroke_width=3 if selected else 2,
        ))

        lines = [(title, 13, "600")]
        if options.show_dependency_types:
            lines.append((badge, 11, "400"))
        if options.show_descriptions and mediator.description:
            lines.append((mediator.description, 11, "400"))

        line_height = 16
        top = pos.y - line_height * (len(lines) - 1) / 2
        for index, (text, size, weight) in enumerate(lines):
            d.append(draw.Text(
                truncate_text(text, _max_chars(w)),
                size,
                pos.x + w / 2, top + index * line_height,
                fill=self.theme.text_on_fill,
                font_family=FONT_FAMILY,
                font_weight=weight,
                text_anchor="middle",
                dominant_baseline="middle",
            ))

    def _render_node(self, d: draw.Drawing, diagram: Diagram, placement: NodePlacement) -> None:
        m = diagram.layout.metrics
        w, h = m.node_width, m.node_height
        node = diagram.graph.get_node(placement.original_id)
        label = node.name if node is not None else display_name(placement.original_id)

        d.append(draw.Rectangle(
            placement.x - w / 2, placement.y - h / 2, w, h,
            rx=8, ry=8,
            fill=self.theme.node_fill,
            stroke=self.theme.accent_color if placement.role is NodeRole.PROVIDER else self.theme.node_stroke,
            stroke_width=2,
        ))
        d.append(draw.Text(
            truncate_text(label, _max_chars(w)),
            13,
            placement.x, placement.y,
            fill=self.theme.text_color,
            font_family=FONT_FAMILY,
            text_anchor="middle",
            dominant_baseline="middle",
        ))

    def _render_connector(self, d: draw.Drawing, connector: Connector) -> None:
        color = self.theme.accent_color if connector.highlighted else self.theme.edge_color
        d.append(draw.Path(
            d=connector.path_data(),
            stroke=color,
            stroke_width=connector.stroke_width,
            fill="none",
            opacity=connector.opacity,
        ))
        ex, ey = connector.end
        self._draw_arrowhead(d, ex, ey, connector.end_angle, 3 * connector.stroke_width, color, connector.opacity)

    def _draw_arrowhead(
        self,
        d: draw.Drawing,
        x: float,
        y: float,
        angle: float,
        size: float,
        color: str,
        opacity: float = 1.0,
    ) -> None:
        """Draw an arrowhead at the given position and angle."""
        p1_x = x - size * math.cos(angle - math.pi / 6)
        p1_y = y - size * math.sin(angle - math.pi / 6)
        p2_x = x - size * math.cos(angle + math.pi / 6)
        p2_y = y - size * math.sin(angle + math.pi / 6)

        d.append(
            draw.Lines(
                x, y,
                p1_x, p1_y,
                p2_x, p2_y,
                x, y,
                close=True,
                fill=color,
                stroke="none",
                opacity=opacity,
            )
        )


def render_to_svg(
    raw: Any,
    options: GraphOptions | Mapping[str, Any] | None = None,
    width: float = 800,
    height: float = 600,
    filename: str | None = None,
    selection: Selection | None = None,
    theme: Theme | None = None,
) -> str:
    """Run the pipeline and render the result to SVG.

    Args:
        raw: Relationship rows or a plugin id -> manifest mapping
        options: GraphOptions or a panel options record
        width: Canvas width
        height: Canvas height
        filename: Optional filename to save to (without extension)
        selection: Highlighted mediator
        theme: Colors

    Returns:
        SVG content as string
    """
    diagram = build_diagram(raw, options, width, height, selection=selection)
    drawing = DiagramRenderer(theme).render(diagram)

    if filename:
        drawing.save_svg(f"{filename}.svg")

    return drawing.as_svg()
