"""Unit tests for the Page container lookup and event listeners."""
from unittest.mock import MagicMock

import pytest

from polyviz import ContainerNotFoundError, Page


def test_query_resolves_exactly_one_element(page):
    assert page.query("#chart")["id"] == "chart"

    with pytest.raises(ContainerNotFoundError, match="not found"):
        page.query("#missing")
    with pytest.raises(ContainerNotFoundError, match="ambiguous"):
        page.query(".multi")
    with pytest.raises(ContainerNotFoundError, match="Invalid container selector"):
        page.query("#chart[")
    with pytest.raises(ContainerNotFoundError):
        page.query("  ")
    with pytest.raises(ContainerNotFoundError):
        page.query(None)


def test_add_container_and_client_size():
    page = Page()
    element = page.add_container("viz", width=320, height=200)
    assert page.query("#viz") is element
    assert Page.client_size(element, 800, 600) == (320, 200)

    bare = page.add_container("bare")
    assert Page.client_size(bare, 800, 600) == (800, 600)

    sized = page.new_tag("canvas", width=100, data_height="50.5")
    assert sized["data-height"] == "50.5"
    assert Page.client_size(sized, 1, 1) == (100, 50)


def test_event_listeners(page):
    listener = MagicMock()
    page.add_event_listener("resize", listener)
    assert page.listener_count("resize") == 1

    page.resize("#chart", 900, 450)
    listener.assert_called_once_with({"target": "#chart", "width": 900, "height": 450})
    assert page.query("#chart")["data-width"] == "900"

    assert page.remove_event_listener("resize", listener) is True
    assert page.remove_event_listener("resize", listener) is False
    assert page.dispatch_event("resize") == 0
