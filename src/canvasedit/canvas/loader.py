"""Load a canvas and enrich it for transcript building.

Loading inlines content into every node (note text for file nodes, the card
text for text nodes, empty for links and groups) and appends the synthetic
"contains" edges derived from group geometry after the persisted edges.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Collection

from canvasedit.canvas.containment import derive_containment_edges, random_edge_id
from canvasedit.canvas.store import CanvasStore
from canvasedit.canvas.transcript import build_transcript
from canvasedit.models.canvas import CanvasDocument, CanvasNode, CanvasView, EnrichedNode, FileNode, TextNode

logger = logging.getLogger(__name__)


class CanvasLoader:
    """Build enriched canvas views from a store."""

    def __init__(self, store: CanvasStore, id_factory: Callable[[], str] = random_edge_id) -> None:
        self.store = store
        self._id_factory = id_factory

    async def load(self, canvas_path: str) -> CanvasView:
        """Load and enrich a canvas.

        Raises CanvasStoreError subclasses when the canvas cannot be read.
        """
        snapshot = await self.store.read(canvas_path)
        return await self.enrich(snapshot.document)

    async def enrich(self, document: CanvasDocument) -> CanvasView:
        """Inline content and derive containment edges for a document."""
        nodes = list(document.nodes.values())
        enriched = await asyncio.gather(*(self._enrich_node(n) for n in nodes))

        edges = list(document.edges.values())
        edges.extend(derive_containment_edges(nodes, id_factory=self._id_factory))

        logger.debug(f"Enriched canvas: {len(nodes)} nodes, {len(edges)} edges")
        return CanvasView(nodes=list(enriched), edges=edges)

    async def _enrich_node(self, node: CanvasNode) -> EnrichedNode:
        if isinstance(node, FileNode) and node.file:
            content = await self.store.read_note(node.file)
            return EnrichedNode(node=node, content=content or "")
        if isinstance(node, TextNode):
            return EnrichedNode(node=node, content=node.text)
        return EnrichedNode(node=node)

    async def transcript(self, canvas_path: str, selected_ids: Collection[str] | None = None) -> str:
        """Load a canvas and flatten it into a transcript."""
        view = await self.load(canvas_path)
        return build_transcript(view, selected_ids=selected_ids)
