# data/loader.py
import random

import pandas as pd

TRACE_COLUMNS = ['time', 'node_a', 'node_b', 'event']


def load_contact_trace(path):
    """
    Charge une trace de contacts au format CSV.

    Chaque ligne décrit un événement de connexion : time,node_a,node_b,event
    où event vaut 'up' (ouverture du lien) ou 'down' (fermeture).

    Args:
        path: Chemin du fichier CSV

    Returns:
        DataFrame: événements triés par instant
    """
    print("### Importation de la trace de contacts ###")
    df = pd.read_csv(path, header=0)

    missing = [c for c in TRACE_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Colonnes manquantes dans la trace {path}: {missing}")

    df['event'] = df['event'].str.strip().str.lower()
    invalid = df[~df['event'].isin(['up', 'down'])]
    if len(invalid) > 0:
        raise ValueError(f"{len(invalid)} événements invalides dans {path} (attendu: up/down)")

    return df.sort_values('time', kind='stable').reset_index(drop=True)


def trace_to_adjacency(df, num_nodes, max_temps):
    """
    Convertit une trace d'événements en matrices d'adjacence par pas de temps.

    Args:
        df: Trace chargée par load_contact_trace
        num_nodes: Nombre de nœuds
        max_temps: Nombre de pas de temps

    Returns:
        dict: {t: {id_nœud: {id_voisin, ...}}} pour t dans [0, max_temps)
    """
    links = set()
    events = df.itertuples(index=False)
    pending = next(events, None)
    adjacency = {}
    for t in range(max_temps):
        while pending is not None and pending.time <= t:
            key = tuple(sorted((int(pending.node_a), int(pending.node_b))))
            if pending.event == 'up':
                links.add(key)
            else:
                links.discard(key)
            pending = next(events, None)
        adjacency[t] = {i: set() for i in range(num_nodes)}
        for a, b in links:
            adjacency[t][a].add(b)
            adjacency[t][b].add(a)
    return adjacency


def create_random_network(num_nodes, max_temps, contact_prob, break_prob, seed=None):
    """
    Génère une mobilité synthétique : chaque lien apparaît et disparaît selon une
    chaîne de Markov à deux états.

    Args:
        num_nodes (int): Nombre de nœuds dans le réseau
        max_temps (int): Nombre de pas de temps
        contact_prob (float): Probabilité qu'un lien absent apparaisse à chaque pas
        break_prob (float): Probabilité qu'un lien présent disparaisse à chaque pas
        seed (int): Graine aléatoire

    Returns:
        dict: {t: {id_nœud: {id_voisin, ...}}}
    """
    rng = random.Random(seed)
    links = set()
    adjacency = {}
    for t in range(max_temps):
        for i in range(num_nodes):
            for j in range(i + 1, num_nodes):
                if (i, j) in links:
                    if rng.random() < break_prob:
                        links.discard((i, j))
                elif rng.random() < contact_prob:
                    links.add((i, j))
        adjacency[t] = {i: set() for i in range(num_nodes)}
        for i, j in links:
            adjacency[t][i].add(j)
            adjacency[t][j].add(i)
    return adjacency
