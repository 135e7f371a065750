"""Build plugin graphs from relationship rows or plugin manifests."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .config import ColumnMapping
from .models import (
    CORE_PLUGIN_ID,
    CORE_PLUGIN_NAME,
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

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

_WORD_START_RE = re.compile(r"\b\w")

# Manifest keys for content added to extension points
_ADDED_KEYS = (
    ("addedLinks", ExtensionType.LINK),
    ("addedComponents", ExtensionType.COMPONENT),
    ("addedFunctions", ExtensionType.FUNCTION),
)

PROVIDER_ROLE = "Provides content to extension points"
DEFINER_ROLE = "Defines extension points"
EXPOSER_ROLE = "Exposes components to other plugins"
CONSUMER_ROLE = "Consumes exposed components"


def display_name(plugin_id: str) -> str:
    """Human readable plugin name.

    Strips a leading "grafana-" and a trailing "-app", turns hyphens into
    spaces and capitalizes each word. The core plugin has a fixed label.
    """
    if plugin_id == CORE_PLUGIN_ID:
        return CORE_PLUGIN_NAME
    name = re.sub(r"^grafana-", "", plugin_id)
    name = re.sub(r"-app$", "", name)
    name = name.replace("-", " ")
    return _WORD_START_RE.sub(lambda m: m.group(0).upper(), name)


def infer_plugin_type(plugin_id: str) -> PluginType:
    """Guess the plugin type from its id."""
    if plugin_id == CORE_PLUGIN_ID:
        return PluginType.APP
    if "-panel" in plugin_id:
        return PluginType.PANEL
    if "-datasource" in plugin_id:
        return PluginType.DATASOURCE
    return PluginType.APP


def infer_defining_plugin(extension_point_id: str, known_plugins: Iterable[str] = ()) -> str:
    """Guess which plugin defines an extension point nobody declared.

    "grafana/..." ids belong to core. Otherwise the first path segment is
    matched against known plugin ids, with and without an "-app" suffix.
    Anything else falls back to core.
    """
    if extension_point_id.startswith("grafana/"):
        return CORE_PLUGIN_ID

    known = set(known_plugins)
    segment = extension_point_id.split("/", 1)[0].strip()
    if segment:
        if segment in known:
            return segment
        if f"{segment}-app" in known:
            return f"{segment}-app"
    return CORE_PLUGIN_ID


def normalize_plugin_id(plugin_id: str) -> str:
    """Map the bare "grafana" target used in relation data to the core plugin."""
    return CORE_PLUGIN_ID if plugin_id == "grafana" else plugin_id


def _text(value: Any) -> str | None:
    """Stripped string value, or None when missing or blank."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_extension_type(value: str | None) -> ExtensionType:
    if not value:
        return ExtensionType.LINK
    try:
        return ExtensionType(value.lower())
    except ValueError:
        logger.debug("Unknown extension type %r, using 'link'", value)
        return ExtensionType.LINK


def _parse_plugin_type(value: Any) -> PluginType | None:
    text = _text(value)
    if text is None:
        return None
    try:
        return PluginType(text.lower())
    except ValueError:
        return None


class GraphBuilder:
    """Accumulates relationships and materializes a GraphData.

    Nodes are only created for plugins referenced by a qualifying
    relationship, in the order they were first referenced.
    """

    def __init__(self, mode: Mode | str = Mode.ADD, known_plugins: Iterable[str] = ()):
        self.mode = Mode.parse(mode)
        self.known_plugins = set(known_plugins)
        self._dependencies: list[PluginDependency] = []
        self._extension_points: dict[str, ExtensionPoint] = {}
        self._components: dict[str, ExposedComponent] = {}
        self._declared: dict[str, tuple[str, str | None, str | None]] = {}
        self._attributes: dict[str, dict[str, Any]] = {}
        # plugin id -> role description, in first-reference order
        self._touched: dict[str, str] = {}

    def _touch(self, plugin_id: str, role: str) -> None:
        if plugin_id not in self._touched:
            self._touched[plugin_id] = role

    def set_plugin_attributes(self, plugin_id: str, **attributes: Any) -> None:
        """Record explicit metadata (name, type, version, description)."""
        values = {k: v for k, v in attributes.items() if v is not None}
        if values:
            self._attributes.setdefault(plugin_id, {}).update(values)

    # ------------------------------------------------------------------
    # Add mode
    # ------------------------------------------------------------------

    def declare_extension_point(
        self,
        plugin_id: str,
        extension_point_id: str,
        title: str | None = None,
        description: str | None = None,
    ) -> None:
        """Register ``plugin_id`` as the explicit definer of an extension point.

        Declarations override inferred owners and inferred titles.
        """
        self._declared[extension_point_id] = (plugin_id, title, description)
        ep = self._extension_points.get(extension_point_id)
        if ep is not None:
            ep.defining_plugin = plugin_id
            ep.title = title or ep.title
            ep.description = description or ep.description
            self._touch(plugin_id, DEFINER_ROLE)

    def add_extension(
        self,
        provider: str,
        extension_point_id: str,
        extension_type: ExtensionType = ExtensionType.LINK,
        defining_plugin: str | None = None,
        title: str | None = None,
        description: str | None = None,
    ) -> ExtensionPoint:
        """Record that ``provider`` adds content to an extension point."""
        ep = self._extension_points.get(extension_point_id)
        if ep is None:
            declared = self._declared.get(extension_point_id)
            if declared is not None:
                owner, declared_title, declared_description = declared
                title = declared_title or title
                description = declared_description or description
            else:
                owner = defining_plugin or infer_defining_plugin(
                    extension_point_id, self.known_plugins
                )
            ep = ExtensionPoint(
                id=extension_point_id,
                defining_plugin=owner,
                extension_type=extension_type,
                title=title,
                description=description,
            )
            self._extension_points[extension_point_id] = ep

        ep.add_provider(provider)
        self._touch(provider, PROVIDER_ROLE)
        self._touch(ep.defining_plugin, DEFINER_ROLE)

        self._dependencies.append(PluginDependency(
            source=provider,
            target=extension_point_id,
            kind=DependencyKind.EXTENDS,
            description=(
                f"{display_name(provider)} provides {extension_type.value} "
                f"to {extension_point_id}"
            ),
        ))
        return ep

    # ------------------------------------------------------------------
    # Expose mode
    # ------------------------------------------------------------------

    def add_exposed_component(
        self,
        plugin_id: str,
        component_id: str | None,
        title: str | None = None,
        description: str | None = None,
    ) -> ExposedComponent | None:
        """Register a component exposed by ``plugin_id``. Blank ids are skipped."""
        component_id = _text(component_id)
        if component_id is None:
            logger.debug("Skipping exposed component with empty id from %s", plugin_id)
            return None

        comp = self._components.get(component_id)
        if comp is None:
            comp = ExposedComponent(
                id=component_id,
                providing_plugin=plugin_id,
                title=title,
                description=description,
            )
            self._components[component_id] = comp
        elif comp.providing_plugin != plugin_id:
            logger.debug(
                "Component %s already exposed by %s, ignoring %s",
                component_id, comp.providing_plugin, plugin_id,
            )
        return comp

    def add_consumer(self, plugin_id: str, component_id: str) -> bool:
        """Record that ``plugin_id`` depends on an exposed component.

        Returns False when the component is unknown.
        """
        comp = self._components.get(component_id)
        if comp is None:
            logger.debug("%s depends on unknown component %s", plugin_id, component_id)
            return False

        if comp.add_consumer(plugin_id):
            self._touch(comp.providing_plugin, EXPOSER_ROLE)
            self._touch(plugin_id, CONSUMER_ROLE)
            self._dependencies.append(PluginDependency(
                source=comp.providing_plugin,
                target=plugin_id,
                kind=DependencyKind.DEPENDS,
                description=f"{display_name(plugin_id)} uses {comp.title or comp.id}",
            ))
        return True

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _make_node(self, plugin_id: str, role: str) -> PluginNode:
        attrs = self._attributes.get(plugin_id, {})
        return PluginNode(
            id=plugin_id,
            name=_text(attrs.get("name")) or display_name(plugin_id),
            type=_parse_plugin_type(attrs.get("type")) or infer_plugin_type(plugin_id),
            version=_text(attrs.get("version")),
            description=_text(attrs.get("description")) or role,
        )

    def build(self) -> GraphData:
        """Materialize the accumulated relationships as a new GraphData."""
        if self.mode is Mode.EXPOSE:
            components = [c for c in self._components.values() if c.consumers]
            dropped = len(self._components) - len(components)
            if dropped:
                logger.debug("Dropping %d exposed components without consumers", dropped)
            referenced = {c.providing_plugin for c in components}
            referenced.update(p for c in components for p in c.consumers)
            extension_points: list[ExtensionPoint] = []
        else:
            components = []
            extension_points = list(self._extension_points.values())
            referenced = {ep.defining_plugin for ep in extension_points}
            referenced.update(dep.source for dep in self._dependencies)

        nodes = [
            self._make_node(plugin_id, role)
            for plugin_id, role in self._touched.items()
            if plugin_id in referenced
        ]

        graph = GraphData(
            mode=self.mode,
            nodes=nodes,
            dependencies=list(self._dependencies),
            extension_points=extension_points,
            exposed_components=components,
        )

        if graph.is_empty():
            logger.info("No qualifying plugin relationships found (%s mode)", self.mode.value)
        else:
            logger.debug(
                "Built graph: %d nodes, %d dependencies, %d mediators",
                len(graph.nodes), len(graph.dependencies), len(graph.mediators),
            )
        return graph


def _handle_add_row(builder: GraphBuilder, row: Mapping[str, Any], columns: ColumnMapping,
                    relation: str, source: str, target: str, entity_id: str) -> None:
    if relation != columns.add_relation:
        return
    builder.add_extension(
        provider=source,
        extension_point_id=entity_id,
        extension_type=_parse_extension_type(_text(row.get(columns.extension_type))),
        defining_plugin=normalize_plugin_id(target),
        title=_text(row.get(columns.title)),
        description=_text(row.get(columns.description)),
    )


def _handle_expose_row(builder: GraphBuilder, row: Mapping[str, Any], columns: ColumnMapping,
                       relation: str, source: str, target: str, entity_id: str) -> None:
    if relation != columns.expose_relation:
        return
    comp = builder.add_exposed_component(
        normalize_plugin_id(target),
        entity_id,
        title=_text(row.get(columns.title)),
        description=_text(row.get(columns.description)),
    )
    if comp is not None:
        builder.add_consumer(source, comp.id)


def build_from_rows(
    rows: Iterable[Mapping[str, Any]],
    mode: Mode | str = Mode.ADD,
    columns: ColumnMapping | None = None,
) -> GraphData:
    """Build a graph from tabular relationship rows.

    Add mode: ``source`` adds content to extension point ``extension_id``
    defined by ``target``. Expose mode: ``source`` consumes component
    ``extension_id`` exposed by ``target``. Rows with a blank required field
    or a non-qualifying relation are skipped.

    Add-mode rows qualify on ``columns.add_relation`` ("extends"),
    Expose-mode rows on ``columns.expose_relation`` ("depends").
    """
    columns = columns or ColumnMapping()
    builder = GraphBuilder(mode)
    handle_row = _handle_expose_row if builder.mode is Mode.EXPOSE else _handle_add_row

    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            logger.debug("Skipping row %d: not a mapping", index)
            continue

        relation = _text(row.get(columns.relation))
        source = _text(row.get(columns.source))
        target = _text(row.get(columns.target))
        entity_id = _text(row.get(columns.extension_id))

        if not (relation and source and target and entity_id):
            logger.debug("Skipping row %d: missing required field", index)
            continue

        handle_row(builder, row, columns, relation, source, target, entity_id)

    return builder.build()


def _extension_block(manifest: Mapping[str, Any]) -> Mapping[str, Any]:
    """The extension declarations, top level or nested under "extensions"."""
    block = manifest.get("extensions")
    return block if isinstance(block, Mapping) else manifest


def _mappings(value: Any) -> list[Mapping[str, Any]]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, Mapping)]


def _consumed_component_ids(manifest: Mapping[str, Any]) -> list[str]:
    deps = manifest.get("dependencies")
    if not isinstance(deps, Mapping):
        return []
    extensions = deps.get("extensions")
    ids = extensions.get("exposedComponents") if isinstance(extensions, Mapping) else None
    if ids is None:
        ids = deps.get("exposedComponents")
    if not isinstance(ids, (list, tuple)):
        return []
    return [text for text in (_text(i) for i in ids) if text]


def _collect_added(builder: GraphBuilder, manifests: list[tuple[str, Mapping[str, Any]]]) -> None:
    # Declarations first so they win over inference regardless of plugin order
    for plugin_id, manifest in manifests:
        for decl in _mappings(_extension_block(manifest).get("extensionPoints")):
            ep_id = _text(decl.get("id"))
            if ep_id:
                builder.declare_extension_point(
                    plugin_id, ep_id, _text(decl.get("title")), _text(decl.get("description"))
                )

    for plugin_id, manifest in manifests:
        block = _extension_block(manifest)
        for key, extension_type in _ADDED_KEYS:
            for item in _mappings(block.get(key)):
                targets = item.get("targets")
                if isinstance(targets, str):
                    targets = [targets]
                if not isinstance(targets, (list, tuple)):
                    logger.debug("Skipping %s entry of %s without targets", key, plugin_id)
                    continue
                for target in targets:
                    ep_id = _text(target)
                    if ep_id:
                        builder.add_extension(plugin_id, ep_id, extension_type)


def _collect_exposed(builder: GraphBuilder, manifests: list[tuple[str, Mapping[str, Any]]]) -> None:
    for plugin_id, manifest in manifests:
        for decl in _mappings(_extension_block(manifest).get("exposedComponents")):
            builder.add_exposed_component(
                plugin_id,
                decl.get("id"),
                title=_text(decl.get("title")),
                description=_text(decl.get("description")),
            )

    for plugin_id, manifest in manifests:
        for component_id in _consumed_component_ids(manifest):
            builder.add_consumer(plugin_id, component_id)


def build_from_manifests(
    manifests: Mapping[str, Mapping[str, Any]],
    mode: Mode | str = Mode.ADD,
) -> GraphData:
    """Build a graph from a plugin id -> extension manifest map."""
    entries: list[tuple[str, Mapping[str, Any]]] = []
    for raw_id, manifest in manifests.items():
        plugin_id = _text(raw_id)
        if plugin_id is None or not isinstance(manifest, Mapping):
            logger.debug("Skipping manifest entry %r", raw_id)
            continue
        entries.append((plugin_id, manifest))

    builder = GraphBuilder(mode, known_plugins=[plugin_id for plugin_id, _ in entries])
    for plugin_id, manifest in entries:
        builder.set_plugin_attributes(
            plugin_id,
            name=manifest.get("name"),
            type=manifest.get("type"),
            version=manifest.get("version"),
            description=manifest.get("description"),
        )

    if builder.mode is Mode.EXPOSE:
        _collect_exposed(builder, entries)
    else:
        _collect_added(builder, entries)
    return builder.build()


def build_graph(
    raw: Any,
    mode: Mode | str = Mode.ADD,
    columns: ColumnMapping | None = None,
) -> GraphData:
    """Build a graph from either a manifest map or tabular rows."""
    if raw is None:
        return GraphData(mode=Mode.parse(mode))
    if isinstance(raw, Mapping):
        return build_from_manifests(raw, mode)
    return build_from_rows(raw, mode, columns)


def available_content_providers(
    raw: Any,
    mode: Mode | str = Mode.ADD,
    columns: ColumnMapping | None = None,
) -> list[str]:
    """Sorted provider ids, for the provider picker."""
    graph = build_graph(raw, mode, columns)
    if graph.mode is Mode.EXPOSE:
        return sorted({c.providing_plugin for c in graph.exposed_components})
    return sorted({dep.source for dep in graph.dependencies})


def available_content_consumers(
    raw: Any,
    mode: Mode | str = Mode.ADD,
    columns: ColumnMapping | None = None,
) -> list[str]:
    """Sorted consumer ids, for the consumer picker."""
    graph = build_graph(raw, mode, columns)
    if graph.mode is Mode.EXPOSE:
        return sorted({p for c in graph.exposed_components for p in c.consumers})
    return sorted({ep.defining_plugin for ep in graph.extension_points})
