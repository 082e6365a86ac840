# simulation/clock.py


class SimClock:
    """
    Horloge de simulation injectée dans chaque composant.

    Le temps n'avance que lorsque le pilote de simulation le décide, ce qui
    rend les scénarios de test entièrement déterministes.
    """

    def __init__(self, start: float = 0.0):
        self._time = float(start)

    @property
    def time(self) -> float:
        """Instant courant de la simulation."""
        return self._time

    def set_time(self, t: float):
        """
        Positionne l'horloge à l'instant `t`.

        Args:
            t (float): Nouvel instant, jamais antérieur à l'instant courant
        """
        if t < self._time:
            raise ValueError(f"L'horloge ne peut pas reculer ({t} < {self._time})")
        self._time = float(t)

    def advance(self, dt: float):
        self.set_time(self._time + dt)

    def __call__(self) -> float:
        return self._time

    def __str__(self):
        return f"SimClock(t={self._time})"
