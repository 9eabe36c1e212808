"""Unit tests for the squarified treemap layout."""
import pytest
import squarify

from polyviz.layouts import treemap_layout

TWO_LEAVES = {"name": "root", "children": [{"name": "small", "value": 1},
                                            {"name": "big", "value": 3}]}


def test_areas_are_proportional_to_values():
    cells = treemap_layout(TWO_LEAVES, 400, 100, padding=0, rounding=False)
    root, big, small = cells
    assert (root.name, root.value, root.leaf) == ("root", 4, False)
    assert big.name == "big" and small.name == "small"
    assert big.width * big.height == pytest.approx(30000)
    assert small.width * small.height == pytest.approx(10000)
    assert (big.x0, big.x1, small.x0, small.x1) == (0, 300, 300, 400)
    assert big.parent == "root"


def test_cells_stay_inside_parent_with_padding(tree_data):
    cells = treemap_layout(tree_data, 500, 400)
    by_name = {cell.name: cell for cell in cells}
    assert [cell.name for cell in cells] == ["root", "A", "C", "B", "D"]
    assert by_name["A"].value == 3
    for cell in cells:
        if cell.parent is None:
            continue
        parent = by_name[cell.parent]
        assert parent.x0 < cell.x0 and cell.x1 < parent.x1
        assert parent.y0 < cell.y0 and cell.y1 < parent.y1
        # rounding snaps every edge to whole pixels
        assert float(cell.x0).is_integer() and float(cell.y1).is_integer()

    leaves = [cell for cell in cells if cell.leaf]
    assert {cell.name for cell in leaves} == {"B", "C", "D"}


def test_zero_values_collapse():
    cells = treemap_layout({"name": "r", "children": [{"name": "a", "value": 0},
                                                      {"name": "b", "value": 0}]},
                           100, 100, padding=0, rounding=False)
    assert all(cell.width == 0 and cell.height == 0 for cell in cells[1:])


def test_tiles_match_squarify():
    values = [6, 6, 4, 3, 2, 2, 1]
    root = {"name": "root", "children": [{"name": f"n{i}", "value": v} for i, v in enumerate(values)]}
    cells = treemap_layout(root, 600, 400, padding=0, rounding=False)[1:]

    expected = squarify.squarify(squarify.normalize_sizes(values, 600, 400), 0, 0, 600, 400)
    for cell, rect in zip(cells, expected):
        assert cell.x0 == pytest.approx(rect["x"])
        assert cell.y0 == pytest.approx(rect["y"])
        assert cell.width == pytest.approx(rect["dx"])
        assert cell.height == pytest.approx(rect["dy"])
    assert sum(cell.width * cell.height for cell in cells) == pytest.approx(600 * 400)
