# simulation/visualize.py
import os

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import networkx as nx

from simulation.metrics import copies_frame


def plot_copies_over_time(world, outdir, filename="copies_distribution"):
    """
    Trace l'évolution du nombre de copies détenues par chaque nœud.

    Args:
        world: Simulation terminée
        outdir: Dossier de sortie
        filename: Nom du fichier (sans extension)

    Returns:
        str: chemin de la figure, None s'il n'y a rien à tracer
    """
    df = copies_frame(world)
    if df.empty:
        print("Pas d'historique de copies à tracer")
        return None

    os.makedirs(outdir, exist_ok=True)
    fig, ax = plt.subplots(figsize=(10, 5))
    for node in df.columns:
        if df[node].any():
            ax.plot(df.index, df[node], label=f"Nœud {node}")
    ax.plot(df.index, df.sum(axis=1), color='black', linestyle='--', label='Total')

    ax.set_title("Distribution des copies dans le temps")
    ax.set_xlabel("Temps (t)")
    ax.set_ylabel("Nombre de copies")
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize='small', ncol=2)

    path = os.path.join(outdir, f"{filename}.png")
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close(fig)
    return path


def plot_contact_graph(G, outdir, filename="contact_graph"):
    """
    Dessine le graphe des contacts, l'épaisseur des arêtes suivant la durée cumulée des contacts.

    Args:
        G: Graphe NetworkX (voir simulation.metrics.contact_graph)
        outdir: Dossier de sortie
        filename: Nom du fichier (sans extension)
    """
    os.makedirs(outdir, exist_ok=True)
    pos = nx.spring_layout(G, seed=1)
    deg = dict(G.degree())
    sizes = [50 + deg.get(i, 0) * 30 for i in G.nodes()]
    weights = [G[u][v].get('weight', 0) for u, v in G.edges()]
    max_w = max(weights) if weights else 1
    widths = [0.5 + 3 * w / max_w for w in weights]

    fig = plt.figure(figsize=(8, 8))
    nx.draw_networkx_nodes(G, pos, node_size=sizes, node_color='royalblue', alpha=0.8)
    nx.draw_networkx_edges(G, pos, width=widths, alpha=0.5)
    nx.draw_networkx_labels(G, pos, font_size=8)
    plt.title("Graphe des contacts (épaisseur = durée cumulée)")
    plt.axis('off')

    path = os.path.join(outdir, f"{filename}.png")
    plt.savefig(path, bbox_inches='tight')
    plt.close(fig)
    return path
