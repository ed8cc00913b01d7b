"""
Templating Registries

Centralized registries for loading and caching configuration files. Cached
values are read-only and safe to share between renders.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from dotenv import load_dotenv
from omegaconf import OmegaConf

load_dotenv()
CONFIG_PATH = Path(os.getenv("VELLUM_CONFIG_PATH", Path(__file__).parent / "config"))

DEFAULT_FALLBACK_CATEGORY = "Other Skills"


def _keyword_pattern(keywords: Iterable[str]) -> "re.Pattern":
    """
    Whole-word, case-insensitive alternation of literal keywords.

    Keywords like "C++" or "CI/CD" end in non-word characters, so word
    boundaries are expressed as "no letter or digit on either side".
    """
    alternatives = "|".join(re.escape(keyword) for keyword in keywords)
    return re.compile(rf'(?<![A-Za-z0-9])(?:{alternatives})(?![A-Za-z0-9])', re.IGNORECASE)


@dataclass(frozen=True)
class SkillTaxonomy:
    """
    Ordered category -> keyword table for grouping skills.

    Attributes:
        name: Taxonomy identifier (file stem)
        categories: (category, keywords) pairs in priority order
        fallback_category: Category for skills no keyword matches
    """

    name: str
    categories: Tuple[Tuple[str, Tuple[str, ...]], ...]
    fallback_category: str = DEFAULT_FALLBACK_CATEGORY

    def __post_init__(self):
        patterns = tuple(
            (category, _keyword_pattern(keywords))
            for category, keywords in self.categories
            if keywords
        )
        object.__setattr__(self, "_patterns", patterns)

    def category_of(self, skill: str) -> str:
        """First category with a keyword in the skill, else the fallback."""
        for category, pattern in self._patterns:
            if pattern.search(skill):
                return category
        return self.fallback_category

    def categorize(self, skills: Iterable[str]) -> Dict[str, List[str]]:
        """
        Group skills by category.

        Returns:
            Category -> skills, in taxonomy order with the fallback last.
            Categories without skills are omitted.

        Example:
            taxonomy.categorize(["Python", "Docker", "Public speaking"])
            # {"Programming Languages": ["Python"],
            #  "Cloud & DevOps": ["Docker"],
            #  "Other Skills": ["Public speaking"]}
        """
        grouped: Dict[str, List[str]] = {category: [] for category, _ in self.categories}
        grouped.setdefault(self.fallback_category, [])
        for skill in skills:
            grouped[self.category_of(skill)].append(skill)

        ordered = {category: grouped[category] for category, _ in self.categories}
        ordered[self.fallback_category] = grouped[self.fallback_category]
        return {category: items for category, items in ordered.items() if items}


class SkillTaxonomyRegistry:
    """
    Registry for loading and caching skill taxonomies.

    Taxonomies are stored in {config}/taxonomies/{name}.yaml with a
    `categories` mapping (category -> keyword list) and an optional
    `fallback_category`.
    """

    def __init__(self, config_base_path: Path = None):
        """
        Initialize the taxonomy registry.

        Args:
            config_base_path: Base config directory. Defaults to
                           VELLUM_CONFIG_PATH from environment
        """
        if config_base_path is None:
            config_base_path = CONFIG_PATH

        self.config_base_path = Path(config_base_path)
        self._cache: Dict[str, SkillTaxonomy] = {}

    def get_taxonomy(self, name: str = "default") -> SkillTaxonomy:
        """
        Get a taxonomy by name, loading and caching it if necessary.

        Args:
            name: Taxonomy name (e.g., 'default')

        Returns:
            SkillTaxonomy

        Raises:
            FileNotFoundError: If the taxonomy file doesn't exist
            ValueError: If the file has no categories mapping
        """
        if self.is_cached(name):
            return self._cache[name]

        taxonomy_path = self.get_taxonomy_path(name)

        if not taxonomy_path.exists():
            raise FileNotFoundError(f"Skill taxonomy '{name}' not found at {taxonomy_path}")

        config = OmegaConf.to_container(OmegaConf.load(taxonomy_path), resolve=True)
        categories = (config or {}).get("categories")
        if not isinstance(categories, dict):
            raise ValueError(f"Skill taxonomy '{name}' has no 'categories' mapping: {taxonomy_path}")

        taxonomy = SkillTaxonomy(
            name=name,
            categories=tuple(
                (str(category), tuple(str(keyword) for keyword in (keywords or [])))
                for category, keywords in categories.items()
            ),
            fallback_category=str(config.get("fallback_category", DEFAULT_FALLBACK_CATEGORY)),
        )

        self._cache[name] = taxonomy
        return taxonomy

    def get_taxonomy_path(self, name: str) -> Path:
        return self.config_base_path / "taxonomies" / f"{name}.yaml"

    def list_taxonomies(self) -> List[str]:
        """Names of the taxonomy files available."""
        directory = self.config_base_path / "taxonomies"
        if not directory.exists():
            return []
        return sorted(path.stem for path in directory.glob("*.yaml"))

    def clear_cache(self):
        """Clear the taxonomy cache."""
        self._cache.clear()

    def is_cached(self, name: str) -> bool:
        """
        Check if a taxonomy is in the cache.

        Args:
            name: Taxonomy name

        Returns:
            True if cached, False otherwise
        """
        return name in self._cache


# Shared registry used when callers do not supply their own
taxonomy_registry = SkillTaxonomyRegistry()
