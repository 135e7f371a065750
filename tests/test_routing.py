import unittest

from plugingraph.builder import build_from_rows
from plugingraph.layout import PlacementId, layout_graph
from plugingraph.models import Mode
from plugingraph.routing import (
    DIMMED_OPACITY,
    ConnectorFamily,
    ConnectorShape,
    Selection,
    curve_control_points,
    route_links,
)


def extends(source, target, point):
    return {"from_app": source, "to_app": target, "relation": "extends", "extension_id": point}


def depends(consumer, provider, component):
    return {"from_app": consumer, "to_app": provider, "relation": "depends", "extension_id": component}


def routed(rows, mode=Mode.ADD, selection=None):
    graph = build_from_rows(rows, mode)
    layout = layout_graph(graph, width=800, height=600)
    return graph, layout, route_links(graph, layout, selection)


class SelectionTests(unittest.TestCase):
    def test_toggle(self):
        selection = Selection().toggle("Y/a")
        self.assertEqual(selection.selected_id, "Y/a")
        self.assertEqual(selection.toggle("Y/b").selected_id, "Y/b")
        self.assertIsNone(selection.toggle("Y/a").selected_id)
        self.assertFalse(Selection().is_active())


class CurveTests(unittest.TestCase):
    def test_control_points(self):
        c1, c2 = curve_control_points((0, 0), (100, 50))
        self.assertEqual(c1, (30, 0))
        self.assertEqual(c2, (70, 50))


class AddRoutingTests(unittest.TestCase):
    ROWS = [
        extends("P1", "Y", "Y/a"),
        extends("P1", "Y", "Y/b"),
        extends("P1", "Z", "Z/a"),
        extends("P1", "Y", "Y/a"),
    ]

    def test_connectors_consolidate_per_definer(self):
        _, layout, connectors = routed(self.ROWS)
        self.assertEqual([c.key for c in connectors], ["P1->Y", "P1->Z"])
        self.assertEqual(connectors[0].member_ids, ("Y/a", "Y/b"))
        self.assertEqual(connectors[1].member_ids, ("Z/a",))
        for connector in connectors:
            self.assertEqual(connector.family, ConnectorFamily.PROVIDER_TO_GROUP)
            self.assertEqual(connector.shape, ConnectorShape.CURVE)

    def test_anchor_points(self):
        _, layout, connectors = routed(self.ROWS)
        m = layout.metrics
        provider = layout.node_positions[PlacementId("P1")]
        group = layout.group_of("Y")
        first = layout.mediator_positions["Y/a"]

        start, end = connectors[0].start, connectors[0].end
        self.assertAlmostEqual(start[0], provider.x + m.node_width / 2)
        self.assertAlmostEqual(start[1], provider.y)
        self.assertAlmostEqual(end[0], first.x - 20)
        self.assertAlmostEqual(end[1], group.center_y)

    def test_control_points_at_sixty_percent(self):
        _, _, connectors = routed(self.ROWS)
        for connector in connectors:
            (sx, sy), (ex, ey) = connector.start, connector.end
            (c1x, c1y), (c2x, c2y) = connector.control_points
            mid = (sx + ex) / 2
            self.assertAlmostEqual(c1x, sx + (mid - sx) * 0.6)
            self.assertAlmostEqual(c2x, ex - (ex - mid) * 0.6)
            self.assertEqual(c1y, sy)
            self.assertEqual(c2y, ey)
            self.assertTrue(connector.path_data().startswith(f"M {sx},{sy} C "))

    def test_unselected_styling(self):
        _, _, connectors = routed(self.ROWS)
        for connector in connectors:
            self.assertFalse(connector.highlighted)
            self.assertEqual(connector.opacity, 1.0)
            self.assertEqual(connector.stroke_width, 3)

    def test_selection_highlights_group_connector(self):
        _, _, plain = routed(self.ROWS)
        _, _, selected = routed(self.ROWS, selection=Selection("Y/b"))

        by_key = {c.key: c for c in selected}
        self.assertTrue(by_key["P1->Y"].highlighted)
        self.assertEqual(by_key["P1->Y"].stroke_width, 4)
        self.assertEqual(by_key["P1->Y"].opacity, 1.0)
        self.assertFalse(by_key["P1->Z"].highlighted)
        self.assertEqual(by_key["P1->Z"].opacity, DIMMED_OPACITY)
        self.assertEqual(by_key["P1->Z"].stroke_width, 3)

        for before, after in zip(plain, selected):
            self.assertEqual(
                (before.start, before.end, before.control_points),
                (after.start, after.end, after.control_points),
            )

    def test_empty_graph_has_no_connectors(self):
        _, _, connectors = routed([])
        self.assertEqual(connectors, [])


class ExposeRoutingTests(unittest.TestCase):
    ROWS = [
        depends("B", "A", "c1"),
        depends("B", "D", "d1"),
        depends("C", "A", "c1"),
    ]

    def test_families(self):
        _, _, connectors = routed(self.ROWS, Mode.EXPOSE)
        to_component = [c for c in connectors if c.family is ConnectorFamily.PROVIDER_TO_COMPONENT]
        to_consumer = [c for c in connectors if c.family is ConnectorFamily.COMPONENT_TO_CONSUMER]
        self.assertEqual([c.key for c in to_component], ["A->c1", "D->d1"])
        self.assertEqual([c.target_id for c in to_consumer], ["B-at-A", "C-at-A", "B-at-D"])
        for connector in connectors:
            self.assertEqual(connector.shape, ConnectorShape.LINE)
            self.assertIsNone(connector.control_points)
            self.assertIn(" L ", connector.path_data())

    def test_consumer_lines_use_matching_instance(self):
        _, layout, connectors = routed(self.ROWS, Mode.EXPOSE)
        m = layout.metrics
        component = layout.mediator_positions["c1"]
        instance = layout.node_positions[PlacementId("B", "A")]

        line = next(c for c in connectors if c.key == "c1->B-at-A")
        self.assertAlmostEqual(line.start[0], component.x + m.component_width)
        self.assertAlmostEqual(line.start[1], component.y)
        self.assertAlmostEqual(line.end[0], instance.x - m.node_width / 2)
        self.assertAlmostEqual(line.end[1], instance.y)
        self.assertFalse(any(c.key == "c1->B-at-D" for c in connectors))

    def test_provider_line(self):
        _, layout, connectors = routed(self.ROWS, Mode.EXPOSE)
        provider = layout.node_positions[PlacementId("A")]
        component = layout.mediator_positions["c1"]
        line = next(c for c in connectors if c.key == "A->c1")
        self.assertAlmostEqual(line.start[0], provider.x + layout.metrics.node_width / 2)
        self.assertEqual(line.end, (component.x, component.y))

    def test_selection_styling(self):
        _, _, connectors = routed(self.ROWS, Mode.EXPOSE, Selection("c1"))
        for connector in connectors:
            if "c1" in connector.member_ids:
                self.assertTrue(connector.highlighted)
                self.assertEqual(connector.stroke_width, 3)
                self.assertEqual(connector.opacity, 1.0)
            else:
                self.assertFalse(connector.highlighted)
                self.assertEqual(connector.stroke_width, 2)
                self.assertEqual(connector.opacity, DIMMED_OPACITY)


if __name__ == "__main__":
    unittest.main()
