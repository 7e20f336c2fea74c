"""
Riempimento di serie sparse su domini fissi.

Le query ritornano solo le chiavi presenti nei dati (es. i mesi con almeno un
incasso); i report invece devono mostrare sempre tutte le chiavi del dominio,
nell'ordine del dominio, con 0 dove manca l'osservazione.
"""
from __future__ import annotations

import math
from typing import Hashable, Iterable, Mapping, Sequence, TypeVar

K = TypeVar("K", bound=Hashable)

MESI: tuple[int, ...] = tuple(range(1, 13))
TRIMESTRI: tuple[int, ...] = (1, 2, 3, 4)
GIORNI: tuple[int, ...] = tuple(range(1, 32))
FASCE_ETA: tuple[str, ...] = ("0-1", "1-4", "5-14", "15-120")


def riempi(dominio: Iterable[K], osservazioni: Mapping[K, float], default: float = 0) -> list[tuple[K, float]]:
    """Una coppia (chiave, valore) per ogni chiave del dominio, nell'ordine del dominio."""
    return [(k, osservazioni.get(k, default)) for k in dominio]


def somma(serie: Sequence[tuple[K, float]]) -> float:
    return sum(v for _, v in serie)


def trimestre(mese: int) -> int:
    return (mese - 1) // 3 + 1


def arrotonda(valore: float) -> int:
    """Arrotondamento all'intero più vicino, .5 per eccesso."""
    return math.floor(valore + 0.5)


def formatta_importo(valore: float) -> str:
    """
    Solo per la visualizzazione, dopo l'aggregazione:
    1234567.5 -> '1,234,568'
    """
    n = arrotonda(valore)
    segno = "-" if n < 0 else ""
    cifre = str(abs(n))

    gruppi: list[str] = []
    while len(cifre) > 3:
        gruppi.insert(0, cifre[-3:])
        cifre = cifre[:-3]
    gruppi.insert(0, cifre)
    return segno + ",".join(gruppi)
