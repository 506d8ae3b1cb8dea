"""
Tapestry: the similarity-linked collection of all frames.

Frames are keyed by identity and never removed. New frames are linked to
every existing frame whose qualia signature lies within the similarity
threshold; the link is recorded on the new frame only. The attentional
focus is the top-k frames by salience.
"""

from typing import Dict, Iterator, List, Optional, Set

import networkx as nx

from cosmicmind.memory.signature import is_similar
from cosmicmind.models import Frame

DEFAULT_SIMILARITY_THRESHOLD = 0.45


class Tapestry:
    """
    Identity-keyed frame store with a similarity-linking rule.

    Attributes:
        frames_by_id (Dict[str, Frame]): Frames in first-insertion order
        similarity_threshold (float): Maximum signature distance for a link
    """

    def __init__(self, similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD):
        self.frames_by_id: Dict[str, Frame] = {}
        self.similarity_threshold = similarity_threshold

    def upsert(self, frame: Frame) -> None:
        """
        Insert or replace a frame by identity (last write wins).

        A replaced frame keeps its original insertion position.
        """
        self.frames_by_id[frame.id] = frame

    def get(self, frame_id: str) -> Optional[Frame]:
        return self.frames_by_id.get(frame_id)

    def frames(self) -> List[Frame]:
        """All frames in insertion order."""
        return list(self.frames_by_id.values())

    def link(self, frame: Frame, threshold: Optional[float] = None) -> Set[str]:
        """
        Find existing frames similar to ``frame``.

        Args:
            frame: Candidate frame (not necessarily inserted yet)
            threshold: Override for the similarity threshold

        Returns:
            Set of ids of existing frames within threshold, excluding itself
        """
        limit = self.similarity_threshold if threshold is None else threshold
        return {
            other.id
            for other in self.frames_by_id.values()
            if other.id != frame.id and is_similar(frame.signature, other.signature, limit)
        }

    def focus(self, k: int) -> List[Frame]:
        """
        Select the attentional focus.

        Sorting is stable, so frames with equal salience keep insertion order.

        Args:
            k: Maximum number of frames

        Returns:
            Up to k frames ordered by salience, highest first
        """
        ranked = sorted(self.frames_by_id.values(), key=lambda f: f.salience, reverse=True)
        return ranked[:max(k, 0)]

    def to_graph(self) -> nx.Graph:
        """
        Export the tapestry as an undirected networkx graph.

        Nodes carry salience and raw text; an edge exists wherever either
        endpoint recorded a connection to the other.
        """
        graph = nx.Graph()
        for frame in self.frames_by_id.values():
            graph.add_node(frame.id, salience=frame.salience, raw_input=frame.raw_input)
        for frame in self.frames_by_id.values():
            for other_id in frame.connections:
                if other_id in self.frames_by_id:
                    graph.add_edge(frame.id, other_id)
        return graph

    def clusters(self) -> List[Set[str]]:
        """Connected groups of linked frames, largest first."""
        components = nx.connected_components(self.to_graph())
        return sorted((set(c) for c in components), key=len, reverse=True)

    def __len__(self):
        return len(self.frames_by_id)

    def __contains__(self, frame_id):
        return frame_id in self.frames_by_id

    def __iter__(self) -> Iterator[Frame]:
        return iter(self.frames())

    def __repr__(self):
        return f"Tapestry(frames={len(self)}, threshold={self.similarity_threshold})"
