import unittest

from plugingraph.builder import (
    available_content_consumers,
    available_content_providers,
    build_from_manifests,
    build_from_rows,
    build_graph,
    display_name,
    infer_defining_plugin,
    infer_plugin_type,
)
from plugingraph.config import ColumnMapping
from plugingraph.models import (
    CORE_PLUGIN_ID,
    DependencyKind,
    ExtensionType,
    Mode,
    PluginType,
)


def extends(source, target, point, ext_type="link"):
    return {
        "from_app": source,
        "to_app": target,
        "relation": "extends",
        "extension_id": point,
        "extension_type": ext_type,
    }


class NamingTests(unittest.TestCase):
    def test_display_name(self):
        self.assertEqual(display_name("grafana-lokiexplore-app"), "Lokiexplore")
        self.assertEqual(display_name("grafana-k8s-app"), "K8s")
        self.assertEqual(display_name("my-cool-panel"), "My Cool Panel")
        self.assertEqual(display_name(CORE_PLUGIN_ID), "Grafana Core")

    def test_infer_plugin_type(self):
        self.assertEqual(infer_plugin_type("grafana-clock-panel"), PluginType.PANEL)
        self.assertEqual(infer_plugin_type("grafana-postgres-datasource"), PluginType.DATASOURCE)
        self.assertEqual(infer_plugin_type("foo-app"), PluginType.APP)
        self.assertEqual(infer_plugin_type(CORE_PLUGIN_ID), PluginType.APP)

    def test_infer_defining_plugin(self):
        known = ["grafana-lokiexplore-app", "myplugin-app"]
        self.assertEqual(infer_defining_plugin("grafana/dashboard/panel/menu", known), CORE_PLUGIN_ID)
        self.assertEqual(
            infer_defining_plugin("grafana-lokiexplore-app/toolbar/v1", known),
            "grafana-lokiexplore-app",
        )
        self.assertEqual(infer_defining_plugin("myplugin/actions", known), "myplugin-app")
        self.assertEqual(infer_defining_plugin("unknown/actions", known), CORE_PLUGIN_ID)
        self.assertEqual(infer_defining_plugin("", known), CORE_PLUGIN_ID)


class RowBuilderTests(unittest.TestCase):
    def test_single_extends_row(self):
        graph = build_from_rows([extends("X", "Y", "Y/point1")], Mode.ADD)

        self.assertEqual([n.id for n in graph.nodes], ["X", "Y"])
        self.assertEqual(len(graph.dependencies), 1)
        dep = graph.dependencies[0]
        self.assertEqual((dep.source, dep.target, dep.kind), ("X", "Y/point1", DependencyKind.EXTENDS))
        self.assertEqual(len(graph.extension_points), 1)
        ep = graph.extension_points[0]
        self.assertEqual(ep.id, "Y/point1")
        self.assertEqual(ep.defining_plugin, "Y")
        self.assertEqual(ep.providers, ["X"])
        self.assertEqual(graph.exposed_components, [])

    def test_grafana_target_maps_to_core(self):
        graph = build_from_rows([extends("grafana-lokiexplore-app", "grafana", "grafana/dashboard/panel/menu")])
        core = graph.get_node(CORE_PLUGIN_ID)
        self.assertIsNotNone(core)
        self.assertEqual(core.name, "Grafana Core")
        self.assertEqual(graph.extension_points[0].defining_plugin, CORE_PLUGIN_ID)

    def test_bad_rows_are_skipped(self):
        rows = [
            {"from_app": "X", "to_app": "Y", "relation": "extends"},
            extends("  ", "Y", "Y/a"),
            {**extends("X", "Y", "Y/b"), "relation": "depends"},
            "not a row",
            extends("X", "Y", "Y/c"),
        ]
        graph = build_from_rows(rows)
        self.assertEqual([ep.id for ep in graph.extension_points], ["Y/c"])
        self.assertEqual(len(graph.dependencies), 1)

    def test_duplicate_rows_keep_one_provider(self):
        graph = build_from_rows([extends("X", "Y", "Y/a"), extends("X", "Y", "Y/a")])
        self.assertEqual(graph.extension_points[0].providers, ["X"])
        self.assertEqual(len(graph.dependencies), 2)

    def test_extension_types(self):
        graph = build_from_rows([
            extends("X", "Y", "Y/a", "Function"),
            extends("X", "Y", "Y/b", "widget"),
            extends("X", "Y", "Y/c", "component"),
        ])
        types = {ep.id: ep.extension_type for ep in graph.extension_points}
        self.assertEqual(types["Y/a"], ExtensionType.FUNCTION)
        self.assertEqual(types["Y/b"], ExtensionType.LINK)
        self.assertEqual(types["Y/c"], ExtensionType.COMPONENT)

    def test_custom_columns(self):
        columns = ColumnMapping(source="src", target="dst", relation="kind", extension_id="point")
        rows = [{"src": "X", "dst": "Y", "kind": "extends", "point": "Y/a"}]
        graph = build_from_rows(rows, Mode.ADD, columns)
        self.assertEqual(graph.extension_points[0].id, "Y/a")

        self.assertTrue(build_from_rows(rows, Mode.ADD).is_empty())

    def test_expose_rows(self):
        rows = [
            {"from_app": "B", "to_app": "A", "relation": "depends", "extension_id": "c1", "title": "Widget"},
            {"from_app": "C", "to_app": "A", "relation": "depends", "extension_id": "c1"},
            extends("X", "Y", "Y/a"),
        ]
        graph = build_from_rows(rows, Mode.EXPOSE)
        self.assertEqual(graph.mode, Mode.EXPOSE)
        self.assertEqual(len(graph.exposed_components), 1)
        comp = graph.exposed_components[0]
        self.assertEqual(comp.providing_plugin, "A")
        self.assertEqual(comp.title, "Widget")
        self.assertEqual(comp.consumers, ["B", "C"])
        self.assertEqual(
            [(d.source, d.target) for d in graph.dependencies], [("A", "B"), ("A", "C")]
        )
        self.assertEqual(graph.node_ids(), {"A", "B", "C"})
        self.assertEqual(graph.extension_points, [])

    def test_expose_relation_is_configurable(self):
        rows = [
            {"from_app": "B", "to_app": "A", "relation": "uses", "extension_id": "c1"},
            {"from_app": "C", "to_app": "A", "relation": "depends", "extension_id": "c1"},
        ]
        graph = build_from_rows(rows, Mode.EXPOSE, ColumnMapping(expose_relation="uses"))
        self.assertEqual(graph.exposed_components[0].consumers, ["B"])

        default = build_from_rows(rows, Mode.EXPOSE)
        self.assertEqual(default.exposed_components[0].consumers, ["C"])

    def test_empty_input(self):
        self.assertTrue(build_from_rows([]).is_empty())
        self.assertTrue(build_graph(None).is_empty())
        self.assertEqual(build_graph(None, "expose").mode, Mode.EXPOSE)


class ManifestBuilderTests(unittest.TestCase):
    def test_added_links_and_declared_points(self):
        manifests = {
            "a-app": {
                "extensions": {
                    "addedLinks": [
                        {"targets": ["grafana/dashboard/panel/menu", "b-app/actions"], "title": "Open"}
                    ],
                    "addedComponents": [{"targets": "b-app/sidebar"}],
                }
            },
            "b-app": {
                "version": "1.2.0",
                "extensions": {
                    "extensionPoints": [{"id": "b-app/actions", "title": "Actions"}],
                },
            },
            "lonely-app": {},
        }
        graph = build_from_manifests(manifests, Mode.ADD)

        self.assertEqual([n.id for n in graph.nodes], ["a-app", CORE_PLUGIN_ID, "b-app"])
        eps = {ep.id: ep for ep in graph.extension_points}
        self.assertEqual(eps["grafana/dashboard/panel/menu"].defining_plugin, CORE_PLUGIN_ID)
        self.assertEqual(eps["b-app/actions"].defining_plugin, "b-app")
        self.assertEqual(eps["b-app/actions"].title, "Actions")
        self.assertEqual(eps["b-app/sidebar"].extension_type, ExtensionType.COMPONENT)
        self.assertEqual(graph.get_node("b-app").version, "1.2.0")
        self.assertIsNone(graph.get_node("lonely-app"))

    def test_declaration_beats_inference(self):
        manifests = {
            "a-app": {"addedLinks": [{"targets": ["b-app/actions"]}]},
            "b-app": {"addedFunctions": [{"targets": ["grafana/search"]}]},
            "c-app": {"extensionPoints": [{"id": "b-app/actions", "description": "Row actions"}]},
        }
        graph = build_from_manifests(manifests)
        ep = next(ep for ep in graph.extension_points if ep.id == "b-app/actions")
        self.assertEqual(ep.defining_plugin, "c-app")
        self.assertEqual(ep.description, "Row actions")
        self.assertIn("c-app", graph.node_ids())

    def test_manifest_attributes_override(self):
        manifests = {
            "x-panel": {"type": "app", "name": "Fancy X", "addedLinks": [{"targets": ["grafana/a"]}]},
        }
        node = build_from_manifests(manifests).get_node("x-panel")
        self.assertEqual(node.type, PluginType.APP)
        self.assertEqual(node.name, "Fancy X")

    def test_exposed_components(self):
        manifests = {
            # Consumer listed before the provider
            "B": {"dependencies": {"extensions": {"exposedComponents": ["c1"]}}},
            "A": {"extensions": {"exposedComponents": [{"id": "c1", "title": "Comp"}, {"id": "  "}]}},
            "C": {"dependencies": {"exposedComponents": ["c1", "c1", "missing"]}},
        }
        graph = build_from_manifests(manifests, Mode.EXPOSE)

        self.assertEqual(len(graph.exposed_components), 1)
        comp = graph.exposed_components[0]
        self.assertEqual(comp.id, "c1")
        self.assertEqual(comp.consumers, ["B", "C"])
        self.assertEqual(
            [(d.source, d.target, d.kind) for d in graph.dependencies],
            [("A", "B", DependencyKind.DEPENDS), ("A", "C", DependencyKind.DEPENDS)],
        )
        self.assertEqual([n.id for n in graph.nodes], ["A", "B", "C"])

    def test_build_graph_dispatches_on_shape(self):
        manifests = {"a-app": {"addedLinks": [{"targets": ["grafana/a"]}]}}
        self.assertEqual(len(build_graph(manifests).extension_points), 1)
        self.assertEqual(len(build_graph([extends("X", "Y", "Y/a")]).extension_points), 1)


class PickerTests(unittest.TestCase):
    def test_available_providers_and_consumers(self):
        rows = [
            extends("w-app", "grafana", "grafana/a"),
            extends("b-app", "y-app", "y-app/x"),
            extends("w-app", "y-app", "y-app/x"),
        ]
        self.assertEqual(available_content_providers(rows), ["b-app", "w-app"])
        self.assertEqual(available_content_consumers(rows), [CORE_PLUGIN_ID, "y-app"])

    def test_expose_pickers(self):
        rows = [
            {"from_app": "B", "to_app": "A", "relation": "depends", "extension_id": "c1"},
            {"from_app": "C", "to_app": "D", "relation": "depends", "extension_id": "d1"},
        ]
        self.assertEqual(available_content_providers(rows, Mode.EXPOSE), ["A", "D"])
        self.assertEqual(available_content_consumers(rows, Mode.EXPOSE), ["B", "C"])


if __name__ == "__main__":
    unittest.main()
