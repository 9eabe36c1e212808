"""Unit tests for the tree arena and tidy tree layout."""
import pytest

from polyviz.layouts import TreeArena, diagonal, tree_layout


@pytest.fixture
def arena(tree_data):
    return TreeArena.from_hierarchy(tree_data)


def test_arena_numbers_nodes_in_pre_order(arena):
    assert [node.name for node in arena.nodes] == ["root", "A", "B", "C", "D"]
    assert arena.root.children == [1, 4]
    assert arena[1].children == [2, 3]
    assert arena[3].parent == 1
    assert arena[3].depth == 2
    assert arena[3].value == 2
    assert "children" not in arena[1].data
    assert arena.find("D").id == 4
    assert arena.find("Z") is None
    assert len(arena) == 5

    with pytest.raises(KeyError, match="Unknown tree node"):
        arena[5]
    with pytest.raises(KeyError):
        arena["A"]


def test_toggle(arena):
    assert arena.toggle(1) is True
    assert [node.name for node in arena.visible()] == ["root", "A", "D"]
    assert arena.toggle(1) is False
    assert len(arena.visible()) == 5
    # leaves cannot collapse
    assert arena.toggle(2) is False


def test_layout_spreads_leaves_and_centres_parents(arena):
    geometry = tree_layout(arena, height=300)
    positions = geometry.positions
    assert positions[2] == (50, 360)
    assert positions[3] == (150, 360)
    assert positions[4] == (250, 180)
    assert positions[1] == (100, 180)
    assert positions[0] == (175, 0)
    assert geometry.links == [(0, 1), (1, 2), (1, 3), (0, 4)]


def test_layout_after_collapse(arena):
    arena.toggle(1)
    geometry = tree_layout(arena, height=300, depth_spacing=100)
    assert geometry.positions == {0: (150, 0), 1: (75, 100), 4: (225, 100)}
    assert geometry.links == [(0, 1), (0, 4)]


def test_empty_arena():
    geometry = tree_layout(TreeArena(), 100)
    assert geometry.positions == {}
    assert geometry.links == []


def test_diagonal():
    assert diagonal((10, 0), (20, 180)) == "M0,10C90,10 90,20 180,20"
    assert diagonal((12.5, 0), (40, 90)) == "M0,12.5C45,12.5 45,40 90,40"
