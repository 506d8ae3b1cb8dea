"""
Tapestry visualization.

Draws the similarity graph of frames (matplotlib + networkx), sizing nodes
by salience and colouring them by the truth that cites them.
"""

import numpy as np
import matplotlib.pyplot as plt
import networkx as nx
from typing import Dict, List, Optional

from cosmicmind.engine import CosmicMind

UNCITED_COLOR = '#B8B8B8'
TRUTH_PALETTE = ['#2E86AB', '#6A994E', '#C73E1D', '#F18F01', '#7B2D8E']


def truth_colors(mind: CosmicMind) -> Dict[str, str]:
    """
    Map frame id -> colour of the first truth citing it.

    Args:
        mind: Engine to read truths from

    Returns:
        dict: Frame id to hex colour (uncited frames are absent)
    """
    colors = {}
    truths = sorted(mind.list_truths(), key=lambda t: t.concept)
    for i, truth in enumerate(truths):
        color = TRUTH_PALETTE[i % len(TRUTH_PALETTE)]
        for frame_id in truth.supporting_frames:
            colors.setdefault(frame_id, color)
    return colors


def plot_tapestry(mind: CosmicMind,
                  title: str = "Tapestry",
                  figsize: tuple = (12, 10),
                  label_length: int = 18,
                  save_path: Optional[str] = None):
    """
    Plot the frame similarity graph.

    Args:
        mind: Engine whose tapestry is drawn
        title: Plot title
        figsize: Figure size
        label_length: Characters of raw text shown per node (0 hides labels)
        save_path: Optional path to save figure

    Returns:
        matplotlib Figure
    """
    G = mind.tapestry_graph()
    N = G.number_of_nodes()

    fig, ax = plt.subplots(figsize=figsize)

    if N == 0:
        ax.text(0.5, 0.5, "No frames yet", ha='center', va='center', fontsize=14)
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.axis('off')
        return fig

    pos = nx.spring_layout(G, k=2 / np.sqrt(N), iterations=50, seed=42)

    colors = truth_colors(mind)
    node_list: List[str] = list(G.nodes())
    node_sizes = [200 + 800 * G.nodes[n]['salience'] for n in node_list]
    node_colors = [colors.get(n, UNCITED_COLOR) for n in node_list]
    nx.draw_networkx_nodes(G, pos, nodelist=node_list, node_size=node_sizes,
                           node_color=node_colors, alpha=0.8, ax=ax)
    nx.draw_networkx_edges(G, pos, width=1.5, alpha=0.5, edge_color='#555555', ax=ax)

    if label_length and N <= 50:
        labels = {n: G.nodes[n]['raw_input'][:label_length] for n in node_list}
        nx.draw_networkx_labels(G, pos, labels=labels, font_size=8, ax=ax)

    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.axis('off')

    max_edges = N * (N - 1) / 2
    density = G.number_of_edges() / max_edges if max_edges > 0 else 0.0
    stats_text = (f"Frames: {N}\nLinks: {G.number_of_edges()}\n"
                  f"Clusters: {nx.number_connected_components(G)}\nDensity: {density:.3f}")
    ax.text(0.02, 0.98, stats_text, transform=ax.transAxes,
            fontsize=10, verticalalignment='top',
            bbox=dict(boxstyle='round', facecolor='white', alpha=0.8))

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')

    return fig


def plot_emotional_state(mind: CosmicMind,
                         title: str = "Emotional State",
                         figsize: tuple = (10, 5),
                         save_path: Optional[str] = None):
    """
    Bar chart of the emotional matrix.

    Args:
        mind: Engine to read emotions from
        title: Plot title
        figsize: Figure size
        save_path: Optional path to save figure

    Returns:
        matplotlib Figure
    """
    state = mind.snapshot().emotions
    labels = [e.value for e in state]
    values = [state[e] for e in state]

    fig, ax = plt.subplots(figsize=figsize)
    ax.bar(labels, values, color='#2E86AB', alpha=0.8)
    ax.axhline(0.5, color='#C73E1D', linestyle='--', linewidth=1, label='Neutral')
    ax.set_ylim(0, 1)
    ax.set_ylabel('Intensity')
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.legend(loc='upper right')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')

    return fig
