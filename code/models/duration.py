# models/duration.py
from dataclasses import dataclass


@dataclass(frozen=True)
class Duration:
    """Intervalle de temps immuable [start, end] entre deux événements de connexion.

    Attributes:
        start: Instant de début de l'intervalle
        end: Instant de fin de l'intervalle (end >= start)
    """
    start: float
    end: float

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Intervalle invalide: fin {self.end} avant début {self.start}")

    @property
    def duration(self) -> float:
        """Longueur de l'intervalle (end - start)."""
        return self.end - self.start

    def __str__(self):
        return f"[{self.start}, {self.end}] ({self.duration})"
