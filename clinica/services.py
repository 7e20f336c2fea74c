from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Any

from . import affluenza, ricavi
from .affluenza import RiepilogoAffluenza
from .archivio import Archivio
from .config import Settings
from .disponibilita import VoceAgenda, unisci_agenda
from .dominio import Categoria, ErroreInput, SchedaPaziente, VoceAppuntamento
from .ricavi import RiepilogoRicavi

logger = logging.getLogger(__name__)

ANNO_MIN = 1900
ANNO_MAX = 9999


# =========================
# Validazione input
# =========================
def valida_data(valore: Any) -> date:
    if isinstance(valore, datetime):
        return valore.date()
    if isinstance(valore, date):
        return valore
    try:
        return date.fromisoformat(str(valore).strip())
    except ValueError as e:
        raise ErroreInput(f"Data non valida: {valore!r} (atteso YYYY-MM-DD).") from e


def valida_anno(valore: Any) -> int:
    try:
        anno = int(str(valore).strip())
    except ValueError as e:
        raise ErroreInput(f"Anno non valido: {valore!r}.") from e
    if not ANNO_MIN <= anno <= ANNO_MAX:
        raise ErroreInput(f"Anno fuori intervallo: {anno} ({ANNO_MIN}-{ANNO_MAX}).")
    return anno


def valida_mese(valore: Any) -> int:
    try:
        mese = int(str(valore).strip())
    except ValueError as e:
        raise ErroreInput(f"Mese non valido: {valore!r}.") from e
    if not 1 <= mese <= 12:
        raise ErroreInput(f"Mese fuori intervallo: {mese} (1-12).")
    return mese


def valida_categoria(valore: Any) -> Categoria:
    if isinstance(valore, Categoria):
        return valore
    try:
        return Categoria(str(valore).strip().lower())
    except ValueError as e:
        ammesse = ", ".join(c.value for c in Categoria)
        raise ErroreInput(f"Categoria non valida: {valore!r} (ammesse: {ammesse}).") from e


def valida_intervallo_eta(eta_min: Any, eta_max: Any) -> tuple[int, int]:
    try:
        minimo, massimo = int(eta_min), int(eta_max)
    except (TypeError, ValueError) as e:
        raise ErroreInput(f"Età non valide: {eta_min!r}-{eta_max!r}.") from e
    if minimo < 0 or massimo <= minimo:
        raise ErroreInput(f"Intervallo età non valido: {minimo}-{massimo}.")
    return minimo, massimo


# =========================
# Agenda
# =========================
async def risolvi_disponibilita(archivio: Archivio, giorno: Any) -> list[VoceAgenda]:
    """Agenda del giorno: appuntamenti + orari liberi, ordinati per orario."""
    giorno = valida_data(giorno)
    griglia, appuntamenti = await asyncio.gather(
        archivio.griglia(),
        archivio.appuntamenti_del_giorno(giorno),
    )
    agenda = unisci_agenda(appuntamenti, griglia, giorno)
    logger.info("Agenda %s: %s appuntamenti, %s orari liberi", giorno, len(appuntamenti), len(agenda) - len(appuntamenti))
    return agenda


async def orari_occupati(archivio: Archivio, giorno: Any) -> list[str]:
    return await archivio.orari_occupati(valida_data(giorno))


async def cerca_appuntamenti(archivio: Archivio, testo: str) -> list[VoceAppuntamento]:
    tokens = (testo or "").split()
    if not tokens:
        raise ErroreInput("Testo di ricerca vuoto.")
    return await archivio.cerca_appuntamenti(tokens)


async def cerca_pazienti(archivio: Archivio, testo: str) -> list[SchedaPaziente]:
    tokens = (testo or "").split()
    if not tokens:
        raise ErroreInput("Testo di ricerca vuoto.")
    return await archivio.cerca_pazienti(tokens)


async def appuntamenti_del_paziente(archivio: Archivio, file_paziente: str) -> list[VoceAppuntamento]:
    file_paziente = (file_paziente or "").strip()
    if not file_paziente:
        raise ErroreInput("File paziente obbligatorio.")
    return await archivio.appuntamenti_del_paziente(file_paziente)


# =========================
# Analytics
# =========================
async def aggrega_ricavi(archivio: Archivio, anno: Any, categoria: Any) -> RiepilogoRicavi:
    return await ricavi.aggrega_ricavi(archivio, valida_anno(anno), valida_categoria(categoria))


async def incassi_giornalieri(archivio: Archivio, anno: Any, mese: Any) -> list[tuple[int, float]]:
    return await ricavi.incassi_giornalieri(archivio, valida_anno(anno), valida_mese(mese))


async def aggrega_affluenza(
    archivio: Archivio,
    anno: Any,
    pagamento: str | None = None,
    settings: Settings | None = None,
) -> RiepilogoAffluenza:
    settings = settings or Settings()
    pagamento = (pagamento or "").strip() or None
    return await affluenza.aggrega_affluenza(archivio, valida_anno(anno), pagamento, settings.segnaposto)


async def conta_trattamenti_per_fascia_eta(
    archivio: Archivio,
    anno: Any,
    mese: Any,
    oggi: date | None = None,
    settings: Settings | None = None,
) -> list[dict]:
    settings = settings or Settings()
    return await affluenza.conta_trattamenti_per_fascia_eta(
        archivio, valida_anno(anno), valida_mese(mese), oggi=oggi, segnaposto=settings.segnaposto
    )


async def conta_pazienti(
    archivio: Archivio,
    anno: Any,
    eta_min: Any,
    eta_max: Any,
    oggi: date | None = None,
) -> int:
    minimo, massimo = valida_intervallo_eta(eta_min, eta_max)
    return await affluenza.conta_pazienti(archivio, valida_anno(anno), minimo, massimo, oggi=oggi)


# =========================
# Versioni 'flat' (dict serializzabili)
# =========================
async def agenda_giornaliera_flat(archivio: Archivio, giorno: Any) -> list[dict]:
    return [v.as_dict() for v in await risolvi_disponibilita(archivio, giorno)]


async def incassi_giornalieri_flat(archivio: Archivio, anno: Any, mese: Any) -> list[dict]:
    return [{"giorno": g, "totale": t} for g, t in await incassi_giornalieri(archivio, anno, mese)]
