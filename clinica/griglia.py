from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from .dominio import FasciaOraria, tronca_orario


def genera_orari(apertura: str, chiusura: str, passo_minuti: int = 30) -> list[str]:
    """Genera orari HH:MM ogni X minuti tra apertura e chiusura (apertura inclusa, chiusura esclusa)."""
    if passo_minuti < 1:
        raise ValueError("passo_minuti deve essere >= 1")

    cur = datetime.strptime(apertura, "%H:%M")
    fine = datetime.strptime(chiusura, "%H:%M")

    out: list[str] = []
    while cur < fine:
        out.append(cur.strftime("%H:%M"))
        cur += timedelta(minutes=passo_minuti)
    return out


@dataclass(frozen=True)
class GrigliaOrari:
    """
    Universo fisso degli orari prenotabili in una giornata.
    Immutabile, senza data: la data viene assegnata da disponibilita.unisci_agenda.
    """

    fasce: tuple[FasciaOraria, ...] = ()

    @classmethod
    def da_orari(cls, orari: Iterable[str]) -> GrigliaOrari:
        # ordinamento lessicografico valido perché HH:MM è zero-padded
        unici = sorted({tronca_orario(o) for o in orari if o})
        return cls(tuple(FasciaOraria(ora=o) for o in unici))

    def tutte(self) -> tuple[FasciaOraria, ...]:
        return self.fasce

    def orari(self) -> list[str]:
        return [f.ora for f in self.fasce]

    def __len__(self) -> int:
        return len(self.fasce)
