"""Tests for dependency graph construction and cycle detection."""

import pytest

from tenant_sync.exceptions import ConfigurationError, DependencyCycleError
from tenant_sync.sync.dependency_graph import (
    build_dependency_graph,
    find_cycle,
    resolve_dependency,
    validate_acyclic,
)
from tests.factories import make_script


class TestBuildDependencyGraph:
    """Tests for build_dependency_graph."""

    def test_every_script_has_an_entry(self):
        scripts = [make_script("repository"), make_script("commit")]

        graph = build_dependency_graph(scripts)

        assert graph == {"test:repository": [], "test:commit": []}

    def test_resolves_resource_names(self):
        scripts = [
            make_script("repository"),
            make_script("commit", depends_on=["repository"]),
        ]

        graph = build_dependency_graph(scripts)

        assert graph["test:commit"] == ["test:repository"]

    def test_resolves_identities(self):
        scripts = [
            make_script("repository"),
            make_script("commit", depends_on=["test:repository"]),
        ]

        assert build_dependency_graph(scripts)["test:commit"] == ["test:repository"]

    def test_unknown_dependency_is_dropped(self):
        scripts = [make_script("commit", depends_on=["repository", "contributor"])]

        assert build_dependency_graph(scripts) == {"test:commit": []}

    def test_self_dependency_is_dropped(self):
        scripts = [make_script("commit", depends_on=["commit"])]

        assert build_dependency_graph(scripts) == {"test:commit": []}

    def test_duplicate_dependencies_collapse(self):
        scripts = [
            make_script("repository"),
            make_script("commit", depends_on=["repository", "test:repository"]),
        ]

        assert build_dependency_graph(scripts)["test:commit"] == ["test:repository"]

    def test_first_producer_wins(self):
        first = make_script("repository", name="first-repos")
        second = make_script("repository", name="second-repos")
        consumer = make_script("commit", depends_on=["repository"])

        graph = build_dependency_graph([first, second, consumer])

        assert graph["test:commit"] == ["first-repos"]

    def test_resolve_dependency_returns_none_when_missing(self):
        assert resolve_dependency("issue", [make_script("commit")]) is None


class TestCycleDetection:
    """Tests for find_cycle and validate_acyclic."""

    def test_acyclic_graph(self):
        graph = {"a": [], "b": ["a"], "c": ["a", "b"]}

        assert find_cycle(graph) is None
        validate_acyclic(graph)

    def test_two_node_cycle(self):
        graph = {"a": ["b"], "b": ["a"]}

        assert find_cycle(graph) == ["a", "b", "a"]

    def test_cycle_not_reachable_from_first_node(self):
        graph = {"root": [], "x": ["y"], "y": ["z"], "z": ["x"]}

        assert find_cycle(graph) == ["x", "y", "z", "x"]

    def test_validate_raises_with_path(self):
        with pytest.raises(DependencyCycleError) as exc_info:
            validate_acyclic({"a": ["b"], "b": ["a"]})

        assert exc_info.value.cycle == ["a", "b", "a"]
        assert "a -> b -> a" in str(exc_info.value)
        assert isinstance(exc_info.value, ConfigurationError)

    def test_cycle_from_script_declarations(self):
        scripts = [
            make_script("repository", depends_on=["commit"]),
            make_script("commit", depends_on=["repository"]),
        ]

        with pytest.raises(DependencyCycleError):
            validate_acyclic(build_dependency_graph(scripts))
