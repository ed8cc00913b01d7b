"""Unit tests for SkillTaxonomyRegistry and SkillTaxonomy."""

from pathlib import Path

import pytest

from vellum.contexts.templating.registries import SkillTaxonomy, SkillTaxonomyRegistry


@pytest.mark.unit
def test_registry_init():
    """Test SkillTaxonomyRegistry initialization."""
    registry = SkillTaxonomyRegistry()
    assert registry.config_base_path.exists()
    assert registry._cache == {}


@pytest.mark.unit
def test_get_default_taxonomy():
    """Test loading the packaged default taxonomy."""
    registry = SkillTaxonomyRegistry()
    taxonomy = registry.get_taxonomy("default")

    assert taxonomy.name == "default"
    assert taxonomy.fallback_category == "Other Skills"
    assert "Programming Languages" in [category for category, _ in taxonomy.categories]
    assert registry.is_cached("default")


@pytest.mark.unit
def test_taxonomy_caching():
    """Test that taxonomies are cached after first load."""
    registry = SkillTaxonomyRegistry()

    first = registry.get_taxonomy("default")
    second = registry.get_taxonomy("default")

    assert first is second


@pytest.mark.unit
def test_get_taxonomy_not_found():
    """Test error handling for a missing taxonomy."""
    registry = SkillTaxonomyRegistry()

    with pytest.raises(FileNotFoundError):
        registry.get_taxonomy("nonexistent_taxonomy")


@pytest.mark.unit
def test_get_taxonomy_path():
    registry = SkillTaxonomyRegistry()
    path = registry.get_taxonomy_path("default")

    assert isinstance(path, Path)
    assert path.name == "default.yaml"
    assert path.parent.name == "taxonomies"


@pytest.mark.unit
def test_clear_cache():
    registry = SkillTaxonomyRegistry()

    registry.get_taxonomy("default")
    assert len(registry._cache) == 1

    registry.clear_cache()
    assert len(registry._cache) == 0


@pytest.mark.unit
def test_list_taxonomies():
    assert "default" in SkillTaxonomyRegistry().list_taxonomies()


@pytest.mark.unit
def test_custom_config_directory(tmp_path):
    """Test loading a taxonomy from another config directory."""
    taxonomies = tmp_path / "taxonomies"
    taxonomies.mkdir()
    (taxonomies / "research.yaml").write_text(
        "fallback_category: Misc\n"
        "categories:\n"
        "  Statistics:\n"
        "    - R\n"
        "    - Stan\n"
    )
    (taxonomies / "broken.yaml").write_text("name: no categories here\n")

    registry = SkillTaxonomyRegistry(tmp_path)
    taxonomy = registry.get_taxonomy("research")

    assert taxonomy.categorize(["Stan", "Writing"]) == {"Statistics": ["Stan"], "Misc": ["Writing"]}
    with pytest.raises(ValueError):
        registry.get_taxonomy("broken")


@pytest.mark.unit
@pytest.mark.parametrize(
    "skill,category",
    [
        ("Python", "Programming Languages"),
        ("C++", "Programming Languages"),
        ("PostgreSQL", "Databases"),
        ("Docker", "Cloud & DevOps"),
        ("Django", "Frameworks"),
        ("Public speaking", "Other Skills"),
    ],
)
def test_default_taxonomy_categories(skill, category):
    taxonomy = SkillTaxonomyRegistry().get_taxonomy("default")

    assert taxonomy.category_of(skill) == category


@pytest.mark.unit
def test_keywords_match_whole_words_only():
    """Test that "Go" does not claim "Google" and "Java" does not claim "JavaScript"."""
    taxonomy = SkillTaxonomy(
        name="test",
        categories=(("Languages", ("Go", "Java")), ("Cloud", ("Google Cloud",))),
    )

    assert taxonomy.category_of("Google Cloud") == "Cloud"
    assert taxonomy.category_of("JavaScript") == "Other Skills"
    assert taxonomy.category_of("go") == "Languages"
