"""Tests for graph query functions used by the CLI."""

import pytest

from fimbul import Fimbul, FimbulAsync, UndefinedNodeError
from fimbul._cli.graph_query import TreeNode, get_dependency_tree, get_evaluation_plan, list_nodes

# --- Fixtures ---


@pytest.fixture
def diamond() -> Fimbul:
    """Create the parent/child/root example graph."""
    fimbul = Fimbul()

    @fimbul.node()
    def parent_value(params, deps):
        """Product of the first two parameters."""
        return params["param1"] * params["param2"]

    fimbul.define("child1", lambda p, d: d["parent_value"] * 2, ["parent_value"])
    fimbul.define("child2", lambda p, d: d["parent_value"] / 2, ["parent_value"])
    fimbul.define("root", lambda p, d: d["child1"] * d["child2"], ["child1", "child2"])
    return fimbul


def _keys(tree: TreeNode) -> list:
    return [child.key for child in tree.children]


# --- list_nodes tests ---


class TestListNodes:
    def test_definition_order(self, diamond: Fimbul) -> None:
        assert [info.key for info in list_nodes(diamond)] == ["parent_value", "child1", "child2", "root"]

    def test_dependencies_and_dependents(self, diamond: Fimbul) -> None:
        infos = {info.key: info for info in list_nodes(diamond)}
        assert infos["parent_value"].dependencies == ()
        assert infos["parent_value"].dependents == ("child1", "child2")
        assert infos["root"].dependencies == ("child1", "child2")
        assert infos["root"].dependents == ()

    def test_description_from_docstring(self, diamond: Fimbul) -> None:
        infos = {info.key: info for info in list_nodes(diamond)}
        assert infos["parent_value"].description == "Product of the first two parameters."
        assert infos["child1"].description is None

    def test_leaves_only(self, diamond: Fimbul) -> None:
        assert [info.key for info in list_nodes(diamond, leaves_only=True)] == ["root"]

    def test_empty_manager(self) -> None:
        assert list_nodes(Fimbul()) == []

    def test_async_flag(self) -> None:
        fimbul = FimbulAsync()

        @fimbul.node()
        async def fetched(params, deps):
            return 1

        fimbul.define("plain", lambda p, d: d["fetched"], ["fetched"])

        assert [info.is_async for info in list_nodes(fimbul)] == [True, False]


# --- get_dependency_tree tests ---


class TestGetDependencyTree:
    def test_dependencies(self, diamond: Fimbul) -> None:
        tree = get_dependency_tree(diamond, "root")
        assert tree.key == "root"
        assert _keys(tree) == ["child1", "child2"]
        assert [_keys(child) for child in tree.children] == [["parent_value"], ["parent_value"]]

    def test_inverted(self, diamond: Fimbul) -> None:
        tree = get_dependency_tree(diamond, "parent_value", invert=True)
        assert _keys(tree) == ["child1", "child2"]
        assert _keys(tree.children[0]) == ["root"]

    def test_max_depth(self, diamond: Fimbul) -> None:
        tree = get_dependency_tree(diamond, "root", max_depth=1)
        assert _keys(tree) == ["child1", "child2"]
        assert all(child.children == [] for child in tree.children)

    def test_leaf_without_children(self, diamond: Fimbul) -> None:
        assert get_dependency_tree(diamond, "parent_value").children == []

    def test_undefined_node(self, diamond: Fimbul) -> None:
        with pytest.raises(UndefinedNodeError):
            get_dependency_tree(diamond, "missing")


# --- get_evaluation_plan tests ---


class TestGetEvaluationPlan:
    def test_dependencies_first(self, diamond: Fimbul) -> None:
        assert get_evaluation_plan(diamond, ["root"]) == ["parent_value", "child1", "child2", "root"]

    def test_each_node_once(self, diamond: Fimbul) -> None:
        assert get_evaluation_plan(diamond, ["child2", "child1", "child2"]) == ["parent_value", "child2", "child1"]

    def test_undefined_node(self, diamond: Fimbul) -> None:
        with pytest.raises(UndefinedNodeError):
            get_evaluation_plan(diamond, ["root", "missing"])
