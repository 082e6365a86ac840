# main.py
import argparse
import logging
import os
import random

from tabulate import tabulate

from config import CONFIG, MAXTEMPS, NUM_NODES, OUTDIR, TRACE_PATH
from data.loader import load_contact_trace, trace_to_adjacency, create_random_network
from protocols.spray_and_wait import SprayAndWaitSettings, RouterFactory
from simulation.metrics import analyze_world, contact_graph, contact_graph_summary, export_logs
from simulation.visualize import plot_copies_over_time, plot_contact_graph
from simulation.world import World

logger = logging.getLogger(__name__)

MODES = {
    'binary': {'split_mode': 'binary', 'binary_mode': True},
    'standard': {'split_mode': 'standard', 'binary_mode': False},
    'tuon': {'split_mode': 'utility', 'binary_mode': True},
}


def parse_arguments():
    """Parse les arguments de ligne de commande."""
    parser = argparse.ArgumentParser(description="Simulation Spray-and-Wait / TUON sur un réseau DTN")
    parser.add_argument('--mode', type=str, choices=list(MODES) + ['all'], default='all',
                        help='Variante de Spray-and-Wait à simuler')
    parser.add_argument('--copies', type=int, default=CONFIG['spray_and_wait']['initial_copies'],
                        help='Nombre initial de copies L')
    parser.add_argument('--nodes', type=int, default=NUM_NODES, help='Nombre de nœuds')
    parser.add_argument('--steps', type=int, default=MAXTEMPS, help='Nombre de pas de simulation')
    parser.add_argument('--trace', type=str, default=TRACE_PATH,
                        help='Trace de contacts CSV (time,node_a,node_b,event)')
    parser.add_argument('--seed', type=int, default=42, help='Graine aléatoire')
    parser.add_argument('--outdir', type=str, default=OUTDIR, help='Dossier de sortie')
    parser.add_argument('--plot', action='store_true', help='Générer les figures')
    parser.add_argument('--verbose', action='store_true', help='Journalisation détaillée')

    args = parser.parse_args()
    if args.copies < 1:
        parser.error("Le nombre de copies doit être >= 1")
    if args.nodes < 2:
        parser.error("Il faut au moins 2 nœuds")
    return args


def run_simulation(settings, adjacency, num_nodes, max_temps, host=None, traffic=None, seed=None):
    """
    Exécute une simulation complète.

    Args:
        settings (SprayAndWaitSettings): Paramètres des routeurs
        adjacency (dict): {t: {id_nœud: {id_voisin, ...}}}
        num_nodes (int): Nombre de nœuds
        max_temps (int): Nombre de pas de temps
        host (dict): Paramètres des nœuds (défaut: CONFIG['host'])
        traffic (dict): Génération des messages (défaut: CONFIG['traffic'])
        seed (int): Graine aléatoire

    Returns:
        World: la simulation terminée
    """
    host = host or CONFIG['host']
    traffic = traffic or CONFIG['traffic']
    rng = random.Random(seed)

    world = World(num_nodes, RouterFactory(settings, seed), host['buffer_size'], host['transmit_speed'])
    created = 0
    for t in range(max_temps):
        if created < traffic['messages'] and t % traffic['interval'] == 0:
            src, dst = rng.sample(range(num_nodes), 2)
            if world.create_message(src, dst, host['message_size']) is not None:
                created += 1
        world.step(t, adjacency.get(t))
    return world


def main():
    """Point d'entrée principal du programme."""
    args = parse_arguments()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if args.trace:
        adjacency = trace_to_adjacency(load_contact_trace(args.trace), args.nodes, args.steps)
    else:
        print("### Génération d'une mobilité synthétique ###")
        mob = CONFIG['mobility']
        adjacency = create_random_network(args.nodes, args.steps, mob['contact_prob'],
                                          mob['break_prob'], args.seed)

    modes = list(MODES) if args.mode == 'all' else [args.mode]
    rows = []
    for mode in modes:
        cfg = dict(CONFIG['spray_and_wait'], initial_copies=args.copies, **MODES[mode])
        settings = SprayAndWaitSettings.from_config(cfg)
        print(f"### Simulation {settings.mode_name} Spray and Wait (L={settings.initial_copies}) ###")
        world = run_simulation(settings, adjacency, args.nodes, args.steps, seed=args.seed)

        m = analyze_world(world)
        rows.append([settings.mode_name, m.DeliveryRatio, m.DeliveryDelay, m.OverheadRatio,
                     m.MeanHops, m.Aborted])

        outdir = os.path.join(args.outdir, mode)
        for path in export_logs(world, outdir, prefix=mode):
            logger.info("Journal exporté vers %s", path)

        G = contact_graph(world)
        summary = contact_graph_summary(G)
        print(f"  - Graphe des contacts: degré moyen {summary['mean_degree']:.2f}, "
              f"{summary['components']} composante(s), "
              f"durée moyenne de contact {summary['mean_contact_duration']:.1f}")

        if args.plot:
            plot_copies_over_time(world, outdir, filename=f"copies_{mode}")
            plot_contact_graph(G, outdir, filename=f"contacts_{mode}")

    print("\n### Comparaison des variantes ###")
    print(tabulate(rows, headers=['Variante', 'Delivery Ratio', 'Delivery Delay', 'Overhead',
                                  'Sauts moyens', 'Interrompus'], floatfmt='.3f'))
    print("\n### Analyse terminée ###")


if __name__ == "__main__":
    main()
