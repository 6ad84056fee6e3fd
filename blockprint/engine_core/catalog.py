"""
Block Catalog - The set of block types the target runtime can place.

The catalog store:
- Holds an immutable snapshot (frozenset of ids + version/source labels)
- Normalizes raw block types from model output against the snapshot
- Substitutes a fallback for unknown types, warning once per identifier
- Is replaced wholesale, never merged; a swap also resets the warned memo

Readers capture the snapshot reference once, so an expansion running during
a swap sees either the old catalog or the new one, never a mix.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping
import json
import logging
import re

from ..errors import CatalogError
from .expression import Scope, is_identifier, value_text


logger = logging.getLogger(__name__)

NAMESPACE = "minecraft:"
DEFAULT_BLOCK = "minecraft:stone"

# Used until a real catalog is loaded.
FALLBACK_PALETTE = (
    "minecraft:stone",
    "minecraft:cobblestone",
    "minecraft:stone_bricks",
    "minecraft:bricks",
    "minecraft:oak_planks",
    "minecraft:spruce_planks",
    "minecraft:birch_planks",
    "minecraft:oak_log",
    "minecraft:spruce_log",
    "minecraft:glass",
    "minecraft:glass_pane",
    "minecraft:dirt",
    "minecraft:grass_block",
    "minecraft:sand",
    "minecraft:sandstone",
    "minecraft:gravel",
    "minecraft:oak_stairs",
    "minecraft:stone_stairs",
    "minecraft:oak_slab",
    "minecraft:oak_fence",
    "minecraft:oak_door",
    "minecraft:oak_leaves",
    "minecraft:torch",
    "minecraft:lantern",
    "minecraft:white_wool",
    "minecraft:quartz_block",
    "minecraft:water",
    "minecraft:air",
)

_WHITESPACE = re.compile(r"\s+")


def normalize_block_id(raw: object) -> str:
    """
    Canonicalize a block identifier without checking the catalog.

    " Oak Planks" -> "minecraft:oak_planks", "stone-bricks" -> "minecraft:stone_bricks"
    """
    text = "" if raw is None else value_text(raw)
    text = _WHITESPACE.sub("_", text.strip().lower()).replace("-", "_")
    if not text.startswith(NAMESPACE):
        text = NAMESPACE + text
    return text


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    An immutable catalog generation.

    The warned memo belongs to the generation, so swapping the snapshot
    resets it.
    """
    block_ids: frozenset[str]
    ordered_ids: tuple[str, ...]
    version: str = "builtin"
    source: str = "fallback"
    warned: set[str] = field(default_factory=set, compare=False, repr=False)

    @property
    def fallback(self) -> str:
        if DEFAULT_BLOCK in self.block_ids:
            return DEFAULT_BLOCK
        if self.ordered_ids:
            return self.ordered_ids[0]
        return DEFAULT_BLOCK

    def __contains__(self, block_id: str) -> bool:
        return block_id in self.block_ids

    def __len__(self) -> int:
        return len(self.block_ids)

    @classmethod
    def build(
        cls,
        ids: Iterable[str],
        version: str = "builtin",
        source: str = "fallback",
    ) -> CatalogSnapshot:
        ordered: list[str] = []
        seen: set[str] = set()
        for raw in ids:
            if raw is None or not str(raw).strip():
                continue
            block_id = normalize_block_id(raw)
            if block_id == NAMESPACE or block_id in seen:
                continue
            seen.add(block_id)
            ordered.append(block_id)
        return cls(
            block_ids=frozenset(ordered),
            ordered_ids=tuple(ordered),
            version=version,
            source=source,
        )


@dataclass
class CatalogStore:
    """
    Owner of the current catalog snapshot and the warned-identifier memo.

    Usage:
        store = CatalogStore()
        store.set_catalog(ids, version="1.21.50", source="minecraft-data")
        block_type = store.normalize("Oak Planks", scope={})
    """
    snapshot: CatalogSnapshot = field(
        default_factory=lambda: CatalogSnapshot.build(FALLBACK_PALETTE)
    )

    def set_catalog(
        self,
        ids: Iterable[str],
        version: str | None = None,
        source: str | None = None,
    ) -> CatalogSnapshot:
        """
        Replace the catalog wholesale and reset the warned memo.

        Raises CatalogError when no usable id remains after normalization.
        """
        snapshot = CatalogSnapshot.build(
            ids,
            version=version or "unknown",
            source=source or "runtime",
        )
        if not snapshot.block_ids:
            raise CatalogError("block catalog is empty")

        self.snapshot = snapshot
        logger.info(
            "Loaded block catalog version=%s source=%s blockTypes=%d",
            snapshot.version, snapshot.source, len(snapshot),
        )
        return snapshot

    def reset(self):
        """Return to the built-in fallback palette."""
        self.snapshot = CatalogSnapshot.build(FALLBACK_PALETTE)

    def is_supported(self, block_id: str) -> bool:
        return block_id in self.snapshot

    def normalize(
        self,
        raw: object,
        scope: Scope | None = None,
        snapshot: CatalogSnapshot | None = None,
    ) -> str:
        """
        Resolve, canonicalize and validate a block type. Never raises.

        A bare identifier bound in scope is replaced by its binding first,
        so block types can be passed into defs as call arguments.
        """
        if snapshot is None:
            snapshot = self.snapshot
        warned = snapshot.warned

        if isinstance(raw, str) and scope:
            name = raw.strip()
            if is_identifier(name) and name in scope:
                raw = scope[name]

        block_id = normalize_block_id(raw)
        if block_id in snapshot.block_ids:
            return block_id

        fallback = snapshot.fallback
        if block_id not in warned:
            warned.add(block_id)
            logger.warning(
                "Unsupported block type %s (catalog %s/%s); using %s",
                block_id, snapshot.source, snapshot.version, fallback,
            )
        return fallback

    def describe(self) -> dict[str, Any]:
        snapshot = self.snapshot
        return {
            "version": snapshot.version,
            "source": snapshot.source,
            "block_count": len(snapshot),
            "fallback": snapshot.fallback,
        }


def load_catalog_file(path: str | Path) -> tuple[list[str], dict[str, str]]:
    """
    Read block ids from a JSON catalog file.

    Accepted layouts:
    - ["minecraft:stone", "oak_planks", ...]
    - [{"name": "stone", ...}, ...]            (minecraft-data blocks.json)
    - {"version": "1.21.50", "blocks": [...]}  (either of the above inside)

    Returns (ids, meta) where meta has "version" and "source".
    Raises CatalogError when the file has no usable ids.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Cannot read catalog file {path}: {e}") from e

    meta = {"version": "unknown", "source": path.name}
    entries: Any = data
    if isinstance(data, Mapping):
        if data.get("version") is not None:
            meta["version"] = str(data["version"])
        if data.get("source"):
            meta["source"] = str(data["source"])
        entries = data.get("blocks")

    if not isinstance(entries, list):
        raise CatalogError(f"Catalog file {path} has no block list")

    ids: list[str] = []
    for entry in entries:
        if isinstance(entry, Mapping):
            entry = entry.get("name")
        name = str(entry or "").strip()
        if not name:
            continue
        ids.append(name if name.startswith(NAMESPACE) else NAMESPACE + name)

    if not ids:
        raise CatalogError(f"Catalog file {path} contains no block ids")
    return ids, meta
