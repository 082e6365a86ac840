# simulation/metrics.py
import os
from dataclasses import dataclass

import networkx as nx
import numpy as np
import pandas as pd


@dataclass
class Metric:
    """Métriques de performance d'une simulation Spray-and-Wait.

    Attributes:
        DeliveryRatio: Part des messages créés qui ont été livrés
        DeliveryDelay: Délai moyen de livraison (inf si aucune livraison)
        OverheadRatio: (relais - livraisons) / livraisons
        MeanHops: Nombre moyen de sauts des messages livrés
        Aborted: Nombre de transferts interrompus
    """
    DeliveryRatio: float
    DeliveryDelay: float
    OverheadRatio: float
    MeanHops: float
    Aborted: int


def delivery_ratio(world):
    """
    Calcule le ratio de livraison.

    Returns:
        float: Ratio entre 0.0 et 1.0
    """
    if not world.created_at:
        return 0.0
    return len(world.delivered_at) / len(world.created_at)


def delivery_delay(world):
    """
    Calcule le délai moyen de livraison.

    Returns:
        float: Délai moyen, ou inf si aucune livraison
    """
    if not world.delivered_at:
        return float('inf')
    return float(np.mean([t - world.created_at[m] for m, t in world.delivered_at.items()]))


def overhead_ratio(world):
    """
    Calcule le ratio d'overhead (surcharge réseau).

    Returns:
        float: Nombre de relais supplémentaires par message livré, inf si aucune livraison
    """
    delivered = len(world.delivered_at)
    if delivered == 0:
        return float('inf')
    relayed = len(world.copy_transmissions)
    return (relayed - delivered) / delivered


def analyze_world(world):
    """Calcule toutes les métriques d'une simulation.

    Returns:
        Metric: Objet contenant les métriques calculées
    """
    hops = [log['num_hops'] for log in world.packet_logs]
    return Metric(
        delivery_ratio(world),
        delivery_delay(world),
        overhead_ratio(world),
        float(np.mean(hops)) if hops else 0.0,
        world.aborted_transfers
    )


def transfers_frame(world):
    """Transferts terminés sous forme de DataFrame."""
    return pd.DataFrame(world.copy_transmissions,
                        columns=['time', 'message_id', 'from', 'to', 'sender_copies',
                                 'received_copies', 'delivered'])


def copies_frame(world):
    """
    Copies détenues par chaque nœud à chaque pas de temps.

    Returns:
        DataFrame: une ligne par pas de temps (index t), une colonne par nœud
    """
    if not world.copies_history:
        return pd.DataFrame()
    df = pd.DataFrame([h['copies'] for h in world.copies_history],
                      index=[h['t'] for h in world.copies_history])
    df.index.name = 't'
    return df


def utility_frame(world):
    """Instantané de l'utilité TUON de chaque nœud."""
    rows = []
    for node_id, node in sorted(world.nodes.items()):
        snap = node.router.utility_snapshot()
        rows.append({'node': node_id, 'peer': snap.peer, 't1': snap.t1, 't2': snap.t2,
                     't3': snap.t3, 'mu': snap.mu, 'U_time': snap.time_utility,
                     'U_space': snap.space_utility, 'U': snap.combined_utility})
    return pd.DataFrame(rows)


def contact_graph(world):
    """Construit le graphe des contacts à partir des historiques des nœuds.

    Chaque arête porte la durée cumulée des contacts terminés entre les deux nœuds
    (attribut 'weight') et le nombre de contacts ('contacts').

    Returns:
        Un graphe NetworkX
    """
    G = nx.Graph()
    G.add_nodes_from(world.nodes)
    for node_id, node in world.nodes.items():
        tracker = node.router.tracker
        for peer in tracker.peers():
            if peer <= node_id:
                continue
            history = tracker.contact_history(peer)
            if history:
                G.add_edge(node_id, peer, weight=sum(d.duration for d in history),
                           contacts=len(history))
    return G


def contact_graph_summary(G):
    """Calcule les métriques principales du graphe des contacts.

    Args:
        G: Graphe NetworkX

    Returns:
        dict: degré moyen, clustering moyen, nombre de composantes, durée moyenne des contacts
    """
    n = G.number_of_nodes()
    weights = [d['weight'] / d['contacts'] for _, _, d in G.edges(data=True)]
    return {
        'mean_degree': sum(d for _, d in G.degree()) / n if n > 0 else 0,
        'mean_clustering': nx.average_clustering(G) if n > 0 else 0,
        'components': nx.number_connected_components(G) if n > 0 else 0,
        'mean_contact_duration': float(np.mean(weights)) if weights else 0.0
    }


def export_logs(world, outdir, prefix="spray_and_wait"):
    """
    Exporte les journaux de la simulation en CSV.

    Args:
        world: Simulation terminée
        outdir: Dossier de sortie
        prefix: Préfixe des fichiers

    Returns:
        list: Chemins des fichiers écrits
    """
    os.makedirs(outdir, exist_ok=True)
    paths = []
    frames = {
        'packet_logs': pd.DataFrame(world.packet_logs),
        'transfers': transfers_frame(world),
        'copies': copies_frame(world),
        'utility': utility_frame(world)
    }
    for name, df in frames.items():
        path = os.path.join(outdir, f"{prefix}_{name}.csv")
        df.to_csv(path, index=(name == 'copies'))
        paths.append(path)
    return paths
