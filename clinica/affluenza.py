from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Iterable

from .bucket import FASCE_ETA, MESI, TRIMESTRI, riempi, trimestre
from .dominio import RigaAppuntamento

if TYPE_CHECKING:
    from .archivio import Archivio

logger = logging.getLogger(__name__)

GIORNI_ANNO = 365  # approssimazione voluta: niente correzione per gli anni bisestili

# Fascia -> [min, max) età in giorni
LIMITI_FASCE_ETA: dict[str, tuple[int, int]] = {
    "0-1": (0, GIORNI_ANNO),
    "1-4": (GIORNI_ANNO, GIORNI_ANNO * 5),
    "5-14": (GIORNI_ANNO * 5, GIORNI_ANNO * 15),
    "15-120": (GIORNI_ANNO * 15, GIORNI_ANNO * 121),
}


@dataclass(frozen=True)
class RiepilogoAffluenza:
    anno: int
    pagamento: str | None
    per_mese: list[tuple[int, int]]
    per_trimestre: list[tuple[int, int]]
    totale: int

    def as_dict(self) -> dict:
        return {
            "anno": self.anno,
            "pagamento": self.pagamento,
            "per_mese": [{"mese": m, "appuntamenti": n} for m, n in self.per_mese],
            "per_trimestre": [{"trimestre": t, "appuntamenti": n} for t, n in self.per_trimestre],
            "totale": self.totale,
        }


def e_segnaposto(riga: RigaAppuntamento, segnaposto: str = "x") -> bool:
    """Slot bloccato/amministrativo: nome o cognome uguale al segnaposto (case-insensitive)."""
    token = segnaposto.lower()
    return any((v or "").strip().lower() == token for v in (riga.nome, riga.cognome))


def e_valido(riga: RigaAppuntamento, segnaposto: str = "x", pagamento: str | None = None) -> bool:
    if riga.no_show or e_segnaposto(riga, segnaposto):
        return False
    return pagamento is None or riga.pagamento == pagamento


def fascia_eta(giorni: int) -> str | None:
    """Fascia d'età per età in giorni; None fuori da tutte le fasce (es. data sentinella)."""
    for fascia in FASCE_ETA:
        minimo, massimo = LIMITI_FASCE_ETA[fascia]
        if minimo <= giorni < massimo:
            return fascia
    return None


def eta_in_anni(nascita: date, oggi: date) -> int:
    anni = oggi.year - nascita.year
    if (oggi.month, oggi.day) < (nascita.month, nascita.day):
        anni -= 1
    return anni


def conta_per_mese(righe: Iterable[RigaAppuntamento], segnaposto: str = "x", pagamento: str | None = None) -> Counter[int]:
    return Counter(r.data.month for r in righe if e_valido(r, segnaposto, pagamento))


async def aggrega_affluenza(
    archivio: Archivio,
    anno: int,
    pagamento: str | None = None,
    segnaposto: str = "x",
) -> RiepilogoAffluenza:
    """
    Appuntamenti effettivi dell'anno (esclusi no-show e segnaposto),
    eventualmente solo per un tipo di pagamento.
    """
    righe = await archivio.appuntamenti_dell_anno(anno)
    per_mese = conta_per_mese(righe, segnaposto, pagamento)

    per_trimestre: Counter[int] = Counter()
    for mese, n in per_mese.items():
        per_trimestre[trimestre(mese)] += n

    return RiepilogoAffluenza(
        anno=anno,
        pagamento=pagamento,
        per_mese=riempi(MESI, per_mese),
        per_trimestre=riempi(TRIMESTRI, per_trimestre),
        totale=sum(per_mese.values()),
    )


async def conta_trattamenti_per_fascia_eta(
    archivio: Archivio,
    anno: int,
    mese: int,
    oggi: date | None = None,
    segnaposto: str = "x",
) -> list[dict]:
    """
    Griglia densa (trattamento x fascia d'età) -> numero di appuntamenti del mese.

    I trattamenti sono quelli presenti nel mese; per ogni trattamento compaiono
    sempre tutte e quattro le fasce, con 0 dove non ci sono appuntamenti.
    Ordine: trattamento, poi fascia nell'ordine di FASCE_ETA.
    """
    oggi = oggi or date.today()

    trattamenti, righe, *file_per_fascia = await asyncio.gather(
        archivio.trattamenti_distinti(anno, mese),
        archivio.appuntamenti_dell_anno(anno, mese),
        *(archivio.pazienti_per_eta(*LIMITI_FASCE_ETA[f], oggi) for f in FASCE_ETA),
    )
    fascia_del_file: dict[str, str] = {}
    for fascia, files in zip(FASCE_ETA, file_per_fascia):
        for f in files:
            fascia_del_file[f] = fascia

    conteggi: dict[str, Counter[str]] = {t: Counter() for t in trattamenti}
    for r in righe:
        if not r.trattamento or not r.file_paziente or not e_valido(r, segnaposto):
            continue
        fascia = fascia_del_file.get(r.file_paziente)
        if fascia is None or r.trattamento not in conteggi:
            continue
        conteggi[r.trattamento][fascia] += 1

    out: list[dict] = []
    for trattamento in sorted(conteggi):
        for fascia, n in riempi(FASCE_ETA, conteggi[trattamento]):
            out.append({"fascia_eta": fascia, "trattamento": trattamento, "conteggio": n})

    logger.debug("Trattamenti %s-%02d: %s trattamenti, %s righe", anno, mese, len(conteggi), len(righe))
    return out


async def conta_pazienti(
    archivio: Archivio,
    anno: int,
    eta_min: int,
    eta_max: int,
    oggi: date | None = None,
) -> int:
    """Pazienti distinti visti nell'anno con età (anni compiuti) in [eta_min, eta_max)."""
    oggi = oggi or date.today()
    visitati = await archivio.pazienti_visitati(anno)
    return sum(1 for _, nascita in visitati if eta_min <= eta_in_anni(nascita, oggi) < eta_max)
