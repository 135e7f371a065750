"""Provider/consumer filtering with orphan pruning."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

import networkx as nx

from .models import GraphData, Mode

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


def _reachable_definers(graph: GraphData) -> set[str]:
    """Plugins reachable from any dependency source in the Add projection.

    Plugin nodes are only entered through an extension point -> definer
    edge, so this is the set of defining plugins that still have at least
    one dependency targeting one of their extension points.
    """
    g = graph.to_networkx()
    reached: set[tuple[str, str]] = set()
    for dep in graph.dependencies:
        start = ("plugin", dep.source)
        if start in g and start not in reached:
            reached |= nx.descendants(g, start)
    definers = {ep.defining_plugin for ep in graph.extension_points}
    return {plugin_id for kind, plugin_id in reached if kind == "plugin"} & definers


def _filter_add(graph: GraphData, providers: set[str], consumers: set[str]) -> GraphData:
    nodes = list(graph.nodes)
    deps = list(graph.dependencies)
    eps = list(graph.extension_points)

    # 1. provider selection
    if providers:
        deps = [d for d in deps if d.source in providers]
        eps = [
            replace(ep, providers=[p for p in ep.providers if p in providers])
            for ep in eps
        ]
        eps = [ep for ep in eps if ep.providers]
        definers = {ep.defining_plugin for ep in eps}
        nodes = [n for n in nodes if n.id in providers or n.id in definers]

    # 2. consumer set
    if consumers:
        consumer_set = set(consumers)
    else:
        consumer_set = _reachable_definers(
            GraphData(mode=Mode.ADD, nodes=nodes, dependencies=deps, extension_points=eps)
        )

    # 3. extension points owned by a consumer
    eps = [ep for ep in eps if ep.defining_plugin in consumer_set]

    # 4. dependencies into surviving extension points
    ep_ids = {ep.id for ep in eps}
    deps = [d for d in deps if d.target in ep_ids]

    # 5. nodes
    active_providers = {d.source for d in deps}
    nodes = [n for n in nodes if n.id in consumer_set or n.id in active_providers]

    # 6. provider lists
    eps = [
        replace(ep, providers=[p for p in ep.providers if p in active_providers])
        for ep in eps
    ]
    eps = [ep for ep in eps if ep.providers]

    return GraphData(
        mode=Mode.ADD,
        nodes=[replace(n) for n in nodes],
        dependencies=[replace(d) for d in deps],
        extension_points=eps,
    )


def _filter_expose(graph: GraphData, providers: set[str], consumers: set[str]) -> GraphData:
    nodes = list(graph.nodes)
    deps = list(graph.dependencies)
    comps = list(graph.exposed_components)

    # 1. provider selection
    if providers:
        deps = [d for d in deps if d.source in providers]
        comps = [c for c in comps if c.providing_plugin in providers]
        involved = {c.providing_plugin for c in comps}
        involved.update(p for c in comps for p in c.consumers)
        nodes = [n for n in nodes if n.id in providers or n.id in involved]

    # 2. consumer set
    consumer_set = set(consumers) if consumers else {d.target for d in deps}

    # 3. components with a consumer in the set
    comps = [
        replace(c, consumers=[p for p in c.consumers if p in consumer_set])
        for c in comps
    ]
    comps = [c for c in comps if c.consumers]

    # 4. dependencies backed by a surviving component
    links = {(c.providing_plugin, p) for c in comps for p in c.consumers}
    deps = [d for d in deps if (d.source, d.target) in links]

    # 5. nodes
    active_providers = {d.source for d in deps}
    nodes = [n for n in nodes if n.id in consumer_set or n.id in active_providers]

    # 6. consumer lists
    active_consumers = {d.target for d in deps} & {n.id for n in nodes}
    comps = [
        replace(c, consumers=[p for p in c.consumers if p in active_consumers])
        for c in comps
    ]
    comps = [c for c in comps if c.consumers and c.providing_plugin in active_providers]

    return GraphData(
        mode=Mode.EXPOSE,
        nodes=[replace(n) for n in nodes],
        dependencies=[replace(d) for d in deps],
        exposed_components=comps,
    )


def filter_graph(
    graph: GraphData,
    selected_providers: Iterable[str] = (),
    selected_consumers: Iterable[str] = (),
) -> GraphData:
    """Apply provider and consumer selections, pruning orphans.

    An empty provider selection keeps every provider. An empty consumer
    selection keeps only consumers reachable from a surviving dependency.
    The input graph is not modified.
    """
    providers = set(selected_providers or ())
    consumers = set(selected_consumers or ())

    if graph.mode is Mode.EXPOSE:
        result = _filter_expose(graph, providers, consumers)
    else:
        result = _filter_add(graph, providers, consumers)

    logger.debug(
        "Filtered graph: %d -> %d nodes, %d -> %d dependencies, %d -> %d mediators",
        len(graph.nodes), len(result.nodes),
        len(graph.dependencies), len(result.dependencies),
        len(graph.mediators), len(result.mediators),
    )
    orphans = find_orphans(result)
    if orphans:
        logger.debug("Orphans after filtering: %s", orphans)
    return result


def find_orphans(graph: GraphData) -> list[str]:
    """Describe every dangling reference in ``graph``.

    An empty list means every dependency endpoint exists and every
    mediating entity has a surviving owner and at least one member.
    """
    node_ids = graph.node_ids()
    problems: list[str] = []

    if graph.mode is Mode.EXPOSE:
        links = {
            (c.providing_plugin, p) for c in graph.exposed_components for p in c.consumers
        }
        for dep in graph.dependencies:
            if dep.source not in node_ids:
                problems.append(f"dependency source {dep.source} is not a node")
            if dep.target not in node_ids:
                problems.append(f"dependency target {dep.target} is not a node")
            if (dep.source, dep.target) not in links:
                problems.append(f"dependency {dep.source} -> {dep.target} has no component")
        for comp in graph.exposed_components:
            if comp.providing_plugin not in node_ids:
                problems.append(f"component {comp.id} provider {comp.providing_plugin} is not a node")
            if not comp.consumers:
                problems.append(f"component {comp.id} has no consumers")
            for consumer in comp.consumers:
                if consumer not in node_ids:
                    problems.append(f"component {comp.id} consumer {consumer} is not a node")
    else:
        ep_ids = {ep.id for ep in graph.extension_points}
        for dep in graph.dependencies:
            if dep.source not in node_ids:
                problems.append(f"dependency source {dep.source} is not a node")
            if dep.target not in ep_ids:
                problems.append(f"dependency target {dep.target} is not an extension point")
        for ep in graph.extension_points:
            if ep.defining_plugin not in node_ids:
                problems.append(f"extension point {ep.id} owner {ep.defining_plugin} is not a node")
            if not ep.providers:
                problems.append(f"extension point {ep.id} has no providers")
            for provider in ep.providers:
                if provider not in node_ids:
                    problems.append(f"extension point {ep.id} provider {provider} is not a node")

    return problems
