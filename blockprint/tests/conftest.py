"""
Pytest fixtures for Blockprint tests.
"""

import pytest

from ..api.service import BlueprintService
from ..engine_core.catalog import CatalogStore
from ..engine_core.interpreter import ExpansionLimits


SMALL_CATALOG = [
    "minecraft:stone",
    "minecraft:oak_planks",
    "minecraft:glass",
    "minecraft:oak_log",
    "minecraft:cobblestone",
]


@pytest.fixture
def catalog() -> CatalogStore:
    """A catalog store with a small known palette."""
    store = CatalogStore()
    store.set_catalog(SMALL_CATALOG, version="test", source="fixture")
    return store


@pytest.fixture
def limits() -> ExpansionLimits:
    return ExpansionLimits()


@pytest.fixture
def service(catalog: CatalogStore) -> BlueprintService:
    """Create a fresh service over the small catalog."""
    return BlueprintService(catalog=catalog)


@pytest.fixture
def hut_program() -> dict:
    """A compact program using a def, loops and block-type arguments."""
    return {
        "defs": [
            {
                "name": "wall",
                "params": ["len", "h", "mat"],
                "steps": [
                    {
                        "op": "for", "var": "i", "from": 0, "to": "len-1",
                        "steps": [
                            {
                                "op": "for", "var": "j", "from": 0, "to": "h-1",
                                "steps": [
                                    {"op": "place", "x": "i", "y": "j", "z": 0, "blockType": "mat"},
                                ],
                            },
                        ],
                    },
                ],
            },
        ],
        "steps": [
            {"op": "call", "name": "wall", "args": {"len": 3, "h": "1+1", "mat": "oak_planks"}},
            {"op": "place", "x": 1, "y": 2, "z": 0, "blockType": "glass"},
        ],
    }
