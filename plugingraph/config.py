"""Resolved options for the dependency graph pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any

from .models import Mode

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


@dataclass(frozen=True)
class ColumnMapping:
    """Column names for tabular relationship rows."""

    source: str = "from_app"
    target: str = "to_app"
    relation: str = "relation"
    extension_id: str = "extension_id"
    extension_type: str = "extension_type"
    title: str = "title"
    description: str = "description"
    # Relation values that qualify a row in each mode
    add_relation: str = "extends"
    expose_relation: str = "depends"


# Panel option keys (as stored by the host) -> GraphOptions field names
_OPTION_ALIASES = {
    "visualizationMode": "mode",
    "showDependencyTypes": "show_dependency_types",
    "showDescriptions": "show_descriptions",
    "selectedContentProviders": "selected_content_providers",
    "selectedContentConsumers": "selected_content_consumers",
    "linkExtensionColor": "link_extension_color",
    "componentExtensionColor": "component_extension_color",
    "functionExtensionColor": "function_extension_color",
}

_COLUMN_ALIASES = {
    "sourceColumn": "source",
    "targetColumn": "target",
    "typeColumn": "relation",
    "extensionIdColumn": "extension_id",
    "extensionTypeColumn": "extension_type",
    "titleColumn": "title",
    "descriptionColumn": "description",
}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _as_selection(value: Any) -> tuple[str, ...]:
    """Normalize a multi-select value to a tuple of ids.

    Accepts a list of strings, a comma separated string, or None.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    else:
        items = value
    return tuple(s for s in (str(v).strip() for v in items) if s)


@dataclass(frozen=True)
class GraphOptions:
    """The subset of panel options the pipeline reads.

    An empty selection means "no filter". For consumers the default is the
    set reachable from surviving dependencies, not every consumer.
    """

    mode: Mode = Mode.ADD
    show_dependency_types: bool = True
    show_descriptions: bool = False
    selected_content_providers: tuple[str, ...] = ()
    selected_content_consumers: tuple[str, ...] = ()
    columns: ColumnMapping = field(default_factory=ColumnMapping)

    # Color overrides (None = theme default)
    link_extension_color: str | None = None
    component_extension_color: str | None = None
    function_extension_color: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", Mode.parse(self.mode))
        object.__setattr__(
            self, "selected_content_providers", _as_selection(self.selected_content_providers)
        )
        object.__setattr__(
            self, "selected_content_consumers", _as_selection(self.selected_content_consumers)
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> GraphOptions:
        """Build options from a panel options record.

        Both the host's camelCase keys and this class's field names are
        accepted. Unknown keys are ignored.

        Raises:
            ValueError: if the visualization mode is not "add" or "expose"
        """
        if not raw:
            return cls()

        option_names = {f.name for f in fields(cls)}
        column_names = {f.name for f in fields(ColumnMapping)}

        kwargs: dict[str, Any] = {}
        column_kwargs: dict[str, str] = {}

        for key, value in raw.items():
            if key in _COLUMN_ALIASES:
                if value:
                    column_kwargs[_COLUMN_ALIASES[key]] = str(value)
                continue
            name = _OPTION_ALIASES.get(key, key)
            if name == "columns" and isinstance(value, ColumnMapping):
                kwargs["columns"] = value
            elif name == "columns" and value:
                column_kwargs.update(
                    {k: str(v) for k, v in dict(value).items() if k in column_names and v}
                )
            elif name in option_names and name != "columns":
                kwargs[name] = value

        for flag in ("show_dependency_types", "show_descriptions"):
            if flag in kwargs:
                kwargs[flag] = _as_bool(kwargs[flag])

        if column_kwargs:
            base = kwargs.get("columns", ColumnMapping())
            kwargs["columns"] = ColumnMapping(
                **{**{f.name: getattr(base, f.name) for f in fields(ColumnMapping)}, **column_kwargs}
            )

        return cls(**kwargs)
