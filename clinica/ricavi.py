from __future__ import annotations

import asyncio
import logging
import warnings
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .bucket import GIORNI, MESI, formatta_importo, riempi, somma
from .dominio import Categoria, IncoerenzaDati

if TYPE_CHECKING:
    from .archivio import Archivio

logger = logging.getLogger(__name__)

TOLLERANZA = 0.005

Serie = list[tuple[int, float]]


@dataclass(frozen=True)
class RiepilogoRicavi:
    anno: int
    categoria: Categoria
    # (valore categoria, totale anno) dal più alto al più basso
    totali_categoria: list[tuple[str, float]]
    # stesso ordine di totali_categoria, 12 mesi ciascuno
    mensili_per_categoria: dict[str, Serie]
    totali_mensili: Serie
    totale_annuo: float
    incoerenze: list[str] = field(default_factory=list)

    def as_dict(self, formatta: bool = False) -> dict:
        fmt = formatta_importo if formatta else (lambda v: v)
        return {
            "anno": self.anno,
            "categoria": self.categoria.value,
            "totali_categoria": [{"valore": v, "totale": fmt(t)} for v, t in self.totali_categoria],
            "mensili_per_categoria": {
                v: [{"mese": m, "totale": fmt(t)} for m, t in serie]
                for v, serie in self.mensili_per_categoria.items()
            },
            "totali_mensili": [{"mese": m, "totale": fmt(t)} for m, t in self.totali_mensili],
            "totale_annuo": fmt(self.totale_annuo),
        }


def ordina_totali(totali: dict[str, float]) -> list[tuple[str, float]]:
    """Totale decrescente; a parità, valore di categoria crescente (ordine deterministico)."""
    return sorted(totali.items(), key=lambda kv: (-kv[1], kv[0]))


def verifica_coerenza(
    mensili_per_categoria: dict[str, Serie],
    totali_mensili: Serie,
    totale_annuo: float,
) -> list[str]:
    """Ritorna la descrizione delle incoerenze trovate (lista vuota se tutto torna)."""
    problemi: list[str] = []

    for mese, totale in totali_mensili:
        parziale = sum(dict(serie).get(mese, 0) for serie in mensili_per_categoria.values())
        if abs(parziale - totale) > TOLLERANZA:
            problemi.append(f"mese {mese}: somma categorie {parziale} != totale {totale}")
        if totale < 0:
            problemi.append(f"mese {mese}: totale negativo {totale}")

    if abs(somma(totali_mensili) - totale_annuo) > TOLLERANZA:
        problemi.append(f"somma mesi {somma(totali_mensili)} != totale annuo {totale_annuo}")

    return problemi


async def aggrega_ricavi(archivio: Archivio, anno: int, categoria: Categoria) -> RiepilogoRicavi:
    """
    Incassi dell'anno raggruppati per categoria:
    1) totale per valore di categoria (decrescente)
    2) per ogni valore, 12 mesi densi
    3) 12 mesi densi del totale
    4) totale annuo

    1, 3 e 4 sono letture indipendenti e partono insieme; le letture di 2
    dipendono dai valori trovati in 1 e partono dopo, in parallelo tra loro.
    """
    totali, mensili, totale_annuo = await asyncio.gather(
        archivio.totali_annui_per_categoria(anno, categoria),
        archivio.totali_mensili(anno),
        archivio.totale_annuo(anno),
    )

    totali_categoria = ordina_totali(totali)

    sparse = await asyncio.gather(
        *(archivio.somme_mensili_per_valore(anno, categoria, valore) for valore, _ in totali_categoria)
    )
    mensili_per_categoria = {
        valore: riempi(MESI, oss) for (valore, _), oss in zip(totali_categoria, sparse)
    }
    totali_mensili = riempi(MESI, mensili)

    incoerenze = verifica_coerenza(mensili_per_categoria, totali_mensili, totale_annuo)
    for problema in incoerenze:
        logger.warning("Incassi %s per %s incoerenti: %s", anno, categoria.value, problema)
        warnings.warn(problema, IncoerenzaDati, stacklevel=2)

    return RiepilogoRicavi(
        anno=anno,
        categoria=categoria,
        totali_categoria=totali_categoria,
        mensili_per_categoria=mensili_per_categoria,
        totali_mensili=totali_mensili,
        totale_annuo=totale_annuo,
        incoerenze=incoerenze,
    )


async def incassi_giornalieri(archivio: Archivio, anno: int, mese: int) -> Serie:
    """Incassi giorno per giorno (1..31, 0 dove non ci sono appuntamenti)."""
    return riempi(GIORNI, await archivio.totali_giornalieri(anno, mese))
