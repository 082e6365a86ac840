# config.py

# Configuration centralisée pour tout le projet
CONFIG = {
    'trace_path': None,   # Trace de contacts CSV (None = mobilité synthétique)
    'max_temps': 200,     # Nombre de pas de simulation
    'num_nodes': 20,
    'outdir': '../data_logs',
    'spray_and_wait': {
        'initial_copies': 6,        # L : nombre initial de copies
        'binary_mode': True,        # Décompte binaire (n/2) ou standard (n-1) côté émetteur
        'split_mode': 'binary',     # 'binary', 'standard' ou 'utility' (TUON) côté récepteur
        'smoothing_factor': 0.5,    # R dans U_time = exp(R * mu)
        'copies_threshold': 1,      # Un message est répliqué si copies > seuil
        'history_window': None,     # None = historique illimité, K = K derniers intervalles
        'clone_history': False,     # Copier l'historique lors de replicate()
        'utility_floor': 0.0,       # Plancher de l'utilité combinée
        'queue_mode': 'fifo',       # 'fifo' ou 'random'
        'msg_ttl': None             # Durée de vie des messages (None = infinie)
    },
    'host': {
        'buffer_size': 5000,        # Capacité du buffer de chaque nœud (octets)
        'transmit_speed': 250,      # Débit des liens (octets par pas de temps)
        'message_size': 500         # Taille des messages générés
    },
    'traffic': {
        'messages': 10,             # Nombre de messages générés
        'interval': 5               # Un message tous les N pas
    },
    'mobility': {
        'contact_prob': 0.08,       # Probabilité qu'un lien absent apparaisse
        'break_prob': 0.3           # Probabilité qu'un lien existant disparaisse
    }
}

# Chemins et constantes
TRACE_PATH = CONFIG['trace_path']
MAXTEMPS   = CONFIG['max_temps']
NUM_NODES  = CONFIG['num_nodes']
OUTDIR     = CONFIG['outdir']
