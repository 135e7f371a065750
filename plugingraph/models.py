"""Data models for plugin dependency graphs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import networkx as nx

CORE_PLUGIN_ID = "grafana-core"
CORE_PLUGIN_NAME = "Grafana Core"


class Mode(Enum):
    """Which kind of mediating entity sits in the middle of the diagram."""

    ADD = "add"
    EXPOSE = "expose"

    @classmethod
    def parse(cls, value: Mode | str) -> Mode:
        """Convert a mode string ("add" / "expose") to the enum."""
        if isinstance(value, Mode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid visualization mode '{value}', must be 'add' or 'expose'"
            ) from None


class PluginType(Enum):
    """Plugin kinds."""

    APP = "app"
    PANEL = "panel"
    DATASOURCE = "datasource"


class DependencyKind(Enum):
    """Relationship kinds between plugins."""

    EXTENDS = "extends"
    DEPENDS = "depends"
    INTEGRATES = "integrates"


class ExtensionType(Enum):
    """Content types a plugin can add to an extension point."""

    LINK = "link"
    COMPONENT = "component"
    FUNCTION = "function"


@dataclass
class PluginNode:
    """A plugin in the graph."""

    id: str
    name: str
    type: PluginType = PluginType.APP
    version: str | None = None
    description: str | None = None


@dataclass
class PluginDependency:
    """A dependency edge.

    In Add mode ``source`` is the content provider and ``target`` the
    extension point id. In Expose mode ``source`` is the providing plugin and
    ``target`` the consuming plugin.
    """

    source: str
    target: str
    kind: DependencyKind = DependencyKind.EXTENDS
    description: str | None = None


@dataclass
class ExtensionPoint:
    """An integration slot declared by a plugin (Add mode mediator)."""

    id: str
    defining_plugin: str
    providers: list[str] = field(default_factory=list)
    extension_type: ExtensionType = ExtensionType.LINK
    title: str | None = None
    description: str | None = None

    @property
    def owner(self) -> str:
        return self.defining_plugin

    def add_provider(self, plugin_id: str) -> bool:
        """Append a provider once. Returns True if it was new."""
        if plugin_id in self.providers:
            return False
        self.providers.append(plugin_id)
        return True


@dataclass
class ExposedComponent:
    """A component a plugin exposes for others to use (Expose mode mediator)."""

    id: str
    providing_plugin: str
    title: str | None = None
    description: str | None = None
    consumers: list[str] = field(default_factory=list)

    @property
    def owner(self) -> str:
        return self.providing_plugin

    def add_consumer(self, plugin_id: str) -> bool:
        """Append a consumer once. Returns True if it was new."""
        if plugin_id in self.consumers:
            return False
        self.consumers.append(plugin_id)
        return True


Mediator = ExtensionPoint | ExposedComponent


@dataclass
class GraphData:
    """The plugin graph.

    Exactly one of ``extension_points`` / ``exposed_components`` is
    populated, according to ``mode``.
    """

    mode: Mode = Mode.ADD
    nodes: list[PluginNode] = field(default_factory=list)
    dependencies: list[PluginDependency] = field(default_factory=list)
    extension_points: list[ExtensionPoint] = field(default_factory=list)
    exposed_components: list[ExposedComponent] = field(default_factory=list)

    @property
    def mediators(self) -> list[Mediator]:
        """The mediating entities for this graph's mode."""
        if self.mode is Mode.EXPOSE:
            return list(self.exposed_components)
        return list(self.extension_points)

    def is_empty(self) -> bool:
        return not self.nodes

    def get_node(self, node_id: str) -> PluginNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}

    def to_networkx(self) -> nx.DiGraph:
        """Project the extension-point structure onto a networkx DiGraph.

        Graph nodes are ``("plugin", id)`` and ``("entity", id)`` tuples so a
        plugin id can never collide with an extension point id. Edges run
        provider -> extension point (one per dependency) and extension
        point -> defining plugin. Expose-mode graphs project to their plugin
        nodes only.
        """
        g = nx.DiGraph()
        for node in self.nodes:
            g.add_node(("plugin", node.id), role="plugin", label=node.name)
        if self.mode is Mode.EXPOSE:
            return g

        for ep in self.extension_points:
            entity = ("entity", ep.id)
            g.add_node(entity, role="entity")
            g.add_edge(entity, ("plugin", ep.defining_plugin))
        for dep in self.dependencies:
            g.add_edge(("plugin", dep.source), ("entity", dep.target))
        return g
