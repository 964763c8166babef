"""
Plugin Manifest Module

Declares which plugins get installed, grouped into categories, and which
marketplaces get registered first. Loaded from config/plugins.yaml.

Plugin names are opaque to this project; they are handed to the external
tool as-is. Order matters and duplicates are kept.
"""

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from returns.pipeline import flow
from returns.pointfree import bind
from returns.result import Failure, Result, Success

from fp_utils import ConfigError, ValidationError, load_config
from logger import get_logger

logger = get_logger(__name__)

DEFAULT_MANIFEST_PATH = Path("config") / "plugins.yaml"


@dataclass(frozen=True)
class Plugin:
    """A plugin identifier and the category it was declared under."""
    name: str
    category: str


@dataclass(frozen=True)
class Category:
    """An ordered group of plugin names."""
    name: str
    plugins: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.plugins)


@dataclass(frozen=True)
class Marketplace:
    """A plugin source passed verbatim to `/plugin marketplace add`."""
    source: str


@dataclass(frozen=True)
class PluginManifest:
    """Categories of plugins plus the marketplaces they come from."""
    categories: tuple[Category, ...]
    marketplaces: tuple[Marketplace, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        """Sum of the declared category counts."""
        return sum(len(c) for c in self.categories)

    def plugins(self) -> list[Plugin]:
        """All plugins, categories in declaration order, names in list order."""
        return [
            Plugin(name=name, category=category.name)
            for category in self.categories
            for name in category.plugins
        ]

    def category_counts(self) -> dict[str, int]:
        return {c.name: len(c) for c in self.categories}

    def duplicates(self) -> list[str]:
        """Names declared more than once, in first-seen order."""
        counts = Counter(p.name for p in self.plugins())
        seen: list[str] = []
        for plugin in self.plugins():
            if counts[plugin.name] > 1 and plugin.name not in seen:
                seen.append(plugin.name)
        return seen

    def select(self, names: Iterable[str]) -> 'PluginManifest':
        """
        Narrow the manifest to the given categories.

        Declaration order is preserved regardless of the order of `names`.

        Raises:
            ValidationError: If a requested category is not declared
        """
        wanted = list(dict.fromkeys(names))
        known = {c.name for c in self.categories}
        unknown = [n for n in wanted if n not in known]
        if unknown:
            raise ValidationError(
                check_name="category",
                reason=f"Unknown categories: {', '.join(unknown)}. "
                       f"Available: {', '.join(c.name for c in self.categories)}"
            )
        return PluginManifest(
            categories=tuple(c for c in self.categories if c.name in wanted),
            marketplaces=self.marketplaces
        )


def _parse_marketplaces(raw: Any) -> Result[tuple[Marketplace, ...], ValidationError]:
    if raw is None:
        return Success(())
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return Failure(ValidationError(
            check_name="marketplaces",
            reason=f"Expected a string or list of strings, got {type(raw).__name__}"
        ))

    sources = []
    for entry in raw:
        if not isinstance(entry, str) or not entry.strip():
            return Failure(ValidationError(
                check_name="marketplaces",
                reason=f"Marketplace source must be a non-empty string, got {entry!r}"
            ))
        sources.append(Marketplace(source=entry.strip()))
    return Success(tuple(sources))


def _parse_categories(raw: Any) -> Result[tuple[Category, ...], ValidationError]:
    if not isinstance(raw, dict) or not raw:
        return Failure(ValidationError(
            check_name="categories",
            reason="'categories' must be a non-empty mapping of category -> plugin list"
        ))

    categories = []
    for category_name, names in raw.items():
        if names is None:
            names = []
        if not isinstance(names, list):
            return Failure(ValidationError(
                check_name="categories",
                reason=f"Category '{category_name}' must be a list of plugin names"
            ))
        for name in names:
            if not isinstance(name, str) or not name.strip():
                return Failure(ValidationError(
                    check_name="plugin_name",
                    reason=f"Invalid plugin name {name!r} in category '{category_name}'"
                ))
        if not names:
            logger.info(f"Category '{category_name}' declares no plugins", category=str(category_name))
        categories.append(Category(
            name=str(category_name),
            plugins=tuple(names)
        ))
    return Success(tuple(categories))


def parse_manifest(data: dict[str, Any]) -> Result[PluginManifest, ValidationError]:
    """
    Build a PluginManifest from an already-loaded mapping.

    Args:
        data: Mapping with 'categories' and optional 'marketplaces'

    Returns:
        Success[PluginManifest] or Failure[ValidationError]
    """
    categories = _parse_categories(data.get('categories'))
    if isinstance(categories, Failure):
        return categories

    marketplaces = _parse_marketplaces(data.get('marketplaces'))
    if isinstance(marketplaces, Failure):
        return marketplaces

    manifest = PluginManifest(
        categories=categories.unwrap(),
        marketplaces=marketplaces.unwrap()
    )

    duplicates = manifest.duplicates()
    if duplicates:
        logger.warning(
            f"Plugins declared more than once: {', '.join(duplicates)}",
            duplicates=duplicates
        )

    logger.debug(
        f"Parsed manifest with {manifest.total} plugins in {len(manifest.categories)} categories",
        total=manifest.total,
        category_count=len(manifest.categories)
    )
    return Success(manifest)


def load_manifest(
    config_path: Path
) -> Result[PluginManifest, ConfigError | ValidationError]:
    """Load and validate a plugin manifest YAML file."""
    return flow(
        load_config(config_path),
        bind(parse_manifest),
    )
