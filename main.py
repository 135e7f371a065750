"""Example usage of plugingraph."""

import csv
import os
import sys

from plugingraph import GraphOptions, Selection, build_diagram, render_to_svg

ROWS = [
    {"from_app": "grafana-lokiexplore-app", "to_app": "grafana", "relation": "extends",
     "extension_id": "grafana/dashboard/panel/menu", "extension_type": "link"},
    {"from_app": "grafana-lokiexplore-app", "to_app": "grafana", "relation": "extends",
     "extension_id": "grafana/explore/toolbar/action", "extension_type": "link"},
    {"from_app": "grafana-lokiexplore-app", "to_app": "grafana-metricsdrilldown-app", "relation": "extends",
     "extension_id": "grafana-metricsdrilldown-app/open-in-logs/v1", "extension_type": "component"},
    {"from_app": "grafana-k8s-app", "to_app": "grafana", "relation": "extends",
     "extension_id": "grafana/alerting/rule/action", "extension_type": "function"},
    {"from_app": "grafana-asserts-app", "to_app": "grafana-metricsdrilldown-app", "relation": "extends",
     "extension_id": "grafana-metricsdrilldown-app/open-in-logs/v1", "extension_type": "component"},
    {"from_app": "grafana-k8s-app", "to_app": "grafana-lokiexplore-app", "relation": "depends",
     "extension_id": "grafana-lokiexplore-app/embedded-logs/v1"},
    {"from_app": "grafana-asserts-app", "to_app": "grafana-lokiexplore-app", "relation": "depends",
     "extension_id": "grafana-lokiexplore-app/embedded-logs/v1"},
    {"from_app": "grafana-asserts-app", "to_app": "grafana-pyroscope-app", "relation": "depends",
     "extension_id": "grafana-pyroscope-app/flame-graph/v1"},
]

MANIFESTS = {
    "grafana-lokiexplore-app": {
        "extensions": {
            "addedLinks": [{"targets": ["grafana/dashboard/panel/menu"], "title": "Open in Logs"}],
            "exposedComponents": [
                {"id": "grafana-lokiexplore-app/embedded-logs/v1", "title": "Embedded logs"},
            ],
            "extensionPoints": [{"id": "grafana-lokiexplore-app/investigation/v1", "title": "Investigation"}],
        },
    },
    "grafana-k8s-app": {
        "extensions": {
            "addedComponents": [{"targets": "grafana-lokiexplore-app/investigation/v1"}],
        },
        "dependencies": {"extensions": {"exposedComponents": ["grafana-lokiexplore-app/embedded-logs/v1"]}},
    },
}


def add_mode_example():
    """Extension points grouped by the plugin that defines them."""
    render_to_svg(ROWS, {"visualizationMode": "add"}, width=1200, height=800,
                  filename="output/add_mode")
    print("Add mode diagram saved to output/add_mode.svg")


def expose_mode_example():
    """Exposed components with consumers drawn once per provider."""
    options = GraphOptions(mode="expose", show_descriptions=True)
    diagram = build_diagram(ROWS, options, width=1200, height=800)
    for placement in diagram.layout.placements_of("grafana-asserts-app"):
        print(f"  {placement.composite_id}: ({placement.x:.0f}, {placement.y:.0f})")

    render_to_svg(ROWS, options, width=1200, height=800, filename="output/expose_mode",
                  selection=Selection("grafana-lokiexplore-app/embedded-logs/v1"))
    print("Expose mode diagram saved to output/expose_mode.svg")


def manifest_example():
    """Build straight from plugin.json style manifests."""
    render_to_svg(MANIFESTS, GraphOptions(), width=1000, height=600, filename="output/manifests")
    print("Manifest diagram saved to output/manifests.svg")


def csv_example(path: str, mode: str = "add"):
    """Render a CSV export with from_app,to_app,relation,extension_id,extension_type columns."""
    with open(path, newline="") as f:
        rows = list(csv.DictReader(f))

    name = os.path.splitext(os.path.basename(path))[0]
    render_to_svg(rows, {"visualizationMode": mode}, width=1400, height=900,
                  filename=f"output/{name}_{mode}")
    print(f"{len(rows)} rows rendered to output/{name}_{mode}.svg")


if __name__ == "__main__":
    os.makedirs("output", exist_ok=True)
    if len(sys.argv) > 1:
        csv_example(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else "add")
    else:
        add_mode_example()
        expose_mode_example()
        manifest_example()
