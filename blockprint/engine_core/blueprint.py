"""
Blueprint - The bounded list of concrete blocks produced by expansion.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Iterator


@dataclass(frozen=True)
class Block:
    """A single block placement, relative to the build origin."""
    x: int
    y: int
    z: int
    block_type: str

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y, "z": self.z, "blockType": self.block_type}


@dataclass
class Blueprint:
    """
    The final expansion result.

    `truncated_from` records the pre-cap block count when assembly had to
    cut the output down to the maximum. `source_format` is set by the
    expander to the layout that actually produced the blocks.
    """
    blocks: list[Block] = field(default_factory=list)
    truncated_from: int | None = None
    source_format: str | None = None  # "compact" or "legacy"

    def __len__(self) -> int:
        return len(self.blocks)

    def to_dict(self) -> dict[str, Any]:
        return {"blocks": [b.to_dict() for b in self.blocks]}

    def chunks(self, size: int) -> Iterator[dict[str, Any]]:
        """
        Split the blueprint into build payloads of at most `size` blocks.

        Each payload is {"blocks": [...], "chunk": index, "totalChunks": n}.
        """
        if size < 1:
            raise ValueError("chunk size must be >= 1")
        total = (len(self.blocks) + size - 1) // size
        for index in range(total):
            chunk = self.blocks[index * size:(index + 1) * size]
            yield {
                "blocks": [b.to_dict() for b in chunk],
                "chunk": index,
                "totalChunks": total,
            }


def assemble_blueprint(blocks: list[Block], max_blocks: int) -> Blueprint:
    """
    Cap the output at max_blocks and wrap it as a Blueprint.

    Truncates, never raises. The interpreter already stops at the cap;
    this is the final enforcement point.
    """
    limit = max(0, max_blocks)
    if len(blocks) > limit:
        return Blueprint(blocks=list(blocks[:limit]), truncated_from=len(blocks))
    return Blueprint(blocks=list(blocks))
