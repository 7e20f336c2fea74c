"""
Accesso al DB per agenda e analytics.

Ogni metodo pubblico è una coroutine: la query (SQLAlchemy sincrono) gira in un
thread con la propria sessione, così letture indipendenti possono essere
lanciate in parallelo con asyncio.gather. Le eccezioni SQLAlchemy diventano
ErroreArchivio.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date, timedelta
from typing import Any, Callable, TypeVar

from sqlalchemy import Engine, String, and_, cast, extract, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import Settings
from .db import crea_engine, crea_session_factory, db_session, init_db
from .dominio import Categoria, ErroreArchivio, RigaAppuntamento, SchedaPaziente, VoceAppuntamento, tronca_orario
from .griglia import GrigliaOrari, genera_orari
from .models import (
    Appuntamento,
    FasciaOrariaDef,
    Medico,
    Paziente,
    TipoPagamento,
    Trattamento,
    normalizza_data_nascita,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Colonne ammesse per Categoria: il valore scelto dal chiamante non finisce mai nel testo SQL
_COLONNE_CATEGORIA = {
    Categoria.MEDICO: Appuntamento.medico,
    Categoria.TRATTAMENTO: Appuntamento.trattamento,
    Categoria.PAGAMENTO: Appuntamento.pagamento,
}

# Colonne su cui lavora la ricerca testuale degli appuntamenti
_COLONNE_RICERCA = (
    Appuntamento.nome,
    Appuntamento.cognome,
    Appuntamento.file_paziente,
    Appuntamento.medico,
    Appuntamento.trattamento,
    Appuntamento.telefono,
    cast(Appuntamento.costo, String),
    cast(Appuntamento.data, String),
)

_COLONNE_RICERCA_PAZIENTI = (
    Paziente.nome,
    Paziente.cognome,
    Paziente.file,
    Paziente.nrc,
    Paziente.telefono,
    Paziente.pagamento,
    Paziente.id_assicurazione,
)


def _intervallo_anno(anno: int, mese: int | None = None) -> tuple[date, date]:
    """[inizio, fine) dell'anno o del mese."""
    if mese is None:
        return date(anno, 1, 1), date(anno + 1, 1, 1)
    inizio = date(anno, mese, 1)
    fine = date(anno + 1, 1, 1) if mese == 12 else date(anno, mese + 1, 1)
    return inizio, fine


def _nel_periodo(anno: int, mese: int | None = None):
    inizio, fine = _intervallo_anno(anno, mese)
    return and_(Appuntamento.data >= inizio, Appuntamento.data < fine)


def _valore_categoria(categoria: Categoria):
    # NULL raggruppato come stringa vuota, così il valore resta interrogabile
    return func.coalesce(_COLONNE_CATEGORIA[categoria], "")


def _scheda(p: Paziente) -> SchedaPaziente:
    return SchedaPaziente(
        id=p.id,
        file=p.file,
        nome=p.nome,
        cognome=p.cognome,
        nrc=p.nrc,
        id_assicurazione=p.id_assicurazione,
        telefono=p.telefono,
        pagamento=p.pagamento,
        data_nascita=normalizza_data_nascita(p.data_nascita),
        sesso=p.sesso,
    )


def _voce(a: Appuntamento) -> VoceAppuntamento:
    return VoceAppuntamento(
        id=a.id,
        data=a.data,
        ora=tronca_orario(a.ora),
        nome=a.nome,
        cognome=a.cognome,
        file_paziente=a.file_paziente,
        medico=a.medico,
        trattamento=a.trattamento,
        pagamento=a.pagamento,
        costo=float(a.costo or 0),
        telefono=a.telefono,
        commenti=a.commenti,
        no_show=bool(a.no_show),
    )


class Archivio:
    """Handle del DB passato esplicitamente a resolver e aggregatori."""

    def __init__(self, engine: Engine, settings: Settings | None = None):
        self.engine = engine
        self.settings = settings or Settings()
        self.session_factory = crea_session_factory(engine)
        self._griglia: GrigliaOrari | None = None

    @classmethod
    def da_settings(cls, settings: Settings) -> Archivio:
        return cls(crea_engine(settings.database_url), settings)

    def init_db(self) -> None:
        init_db(self.engine)

    def chiudi(self) -> None:
        self.engine.dispose()

    # =========================
    # Esecuzione
    # =========================
    def _in_sessione(self, query: Callable[[Session], T]) -> T:
        with db_session(self.session_factory) as s:
            return query(s)

    async def _leggi(self, descrizione: str, query: Callable[[Session], T]) -> T:
        try:
            return await asyncio.to_thread(self._in_sessione, query)
        except SQLAlchemyError as e:
            logger.error("Lettura fallita: %s", descrizione, exc_info=True)
            raise ErroreArchivio(f"Lettura fallita: {descrizione}") from e

    # =========================
    # Agenda
    # =========================
    async def griglia(self) -> GrigliaOrari:
        """
        Griglia orari, caricata una sola volta.
        Con tabella fasce_orarie vuota (DB non ancora popolato) la griglia
        viene generata da apertura/chiusura/passo della configurazione.
        """
        if self._griglia is None:
            orari = await self._leggi(
                "fasce orarie",
                lambda s: list(s.scalars(select(FasciaOrariaDef.ora).order_by(FasciaOrariaDef.ora))),
            )
            if not orari:
                cfg = self.settings
                orari = genera_orari(cfg.apertura, cfg.chiusura, cfg.passo_minuti)
                logger.warning("Nessuna fascia oraria nel DB: griglia da configurazione %s-%s", cfg.apertura, cfg.chiusura)
            self._griglia = GrigliaOrari.da_orari(orari)
            logger.info("Griglia orari caricata: %s fasce", len(self._griglia))
        return self._griglia

    def invalida_griglia(self) -> None:
        self._griglia = None

    async def appuntamenti_del_giorno(self, giorno: date) -> list[VoceAppuntamento]:
        def query(s: Session) -> list[VoceAppuntamento]:
            q = select(Appuntamento).where(Appuntamento.data == giorno).order_by(Appuntamento.ora.asc())
            return [_voce(a) for a in s.scalars(q)]

        return await self._leggi(f"appuntamenti del {giorno.isoformat()}", query)

    async def orari_occupati(self, giorno: date) -> list[str]:
        def query(s: Session) -> list[str]:
            q = select(Appuntamento.ora).where(Appuntamento.data == giorno).order_by(Appuntamento.ora.asc())
            return [tronca_orario(o) for o in s.scalars(q)]

        return await self._leggi(f"orari occupati del {giorno.isoformat()}", query)

    async def appuntamenti_del_paziente(self, file_paziente: str) -> list[VoceAppuntamento]:
        def query(s: Session) -> list[VoceAppuntamento]:
            q = (
                select(Appuntamento)
                .where(Appuntamento.file_paziente == file_paziente)
                .order_by(Appuntamento.data.asc(), Appuntamento.ora.asc())
            )
            return [_voce(a) for a in s.scalars(q)]

        return await self._leggi(f"appuntamenti paziente {file_paziente}", query)

    async def cerca_appuntamenti(self, tokens: list[str]) -> list[VoceAppuntamento]:
        """Ogni token deve comparire in almeno una colonna (AND tra token, OR tra colonne)."""
        def query(s: Session) -> list[VoceAppuntamento]:
            condizioni = [
                or_(*(col.icontains(t, autoescape=True) for col in _COLONNE_RICERCA))
                for t in tokens
            ]
            q = (
                select(Appuntamento)
                .where(and_(*condizioni))
                .order_by(Appuntamento.data.asc(), Appuntamento.ora.asc())
            )
            return [_voce(a) for a in s.scalars(q)]

        return await self._leggi("ricerca appuntamenti", query)

    async def cerca_pazienti(self, tokens: list[str]) -> list[SchedaPaziente]:
        def query(s: Session) -> list[SchedaPaziente]:
            condizioni = [
                or_(*(col.icontains(t, autoescape=True) for col in _COLONNE_RICERCA_PAZIENTI))
                for t in tokens
            ]
            q = (
                select(Paziente)
                .where(and_(*condizioni))
                .order_by(Paziente.cognome.asc(), Paziente.nome.asc(), Paziente.file.asc())
            )
            return [_scheda(p) for p in s.scalars(q)]

        return await self._leggi("ricerca pazienti", query)

    # =========================
    # Incassi
    # =========================
    async def totali_annui_per_categoria(self, anno: int, categoria: Categoria) -> dict[str, float]:
        valore = _valore_categoria(categoria)

        def query(s: Session) -> dict[str, float]:
            q = (
                select(valore.label("valore"), func.coalesce(func.sum(Appuntamento.costo), 0).label("totale"))
                .where(_nel_periodo(anno))
                .group_by(valore)
            )
            return {r.valore: float(r.totale) for r in s.execute(q)}

        return await self._leggi(f"totali {anno} per {categoria.value}", query)

    async def somme_mensili_per_valore(self, anno: int, categoria: Categoria, valore: str) -> dict[int, float]:
        colonna = _valore_categoria(categoria)
        mese = extract("month", Appuntamento.data)

        def query(s: Session) -> dict[int, float]:
            q = (
                select(mese.label("mese"), func.coalesce(func.sum(Appuntamento.costo), 0).label("totale"))
                .where(_nel_periodo(anno), colonna == valore)
                .group_by(mese)
            )
            return {int(r.mese): float(r.totale) for r in s.execute(q)}

        return await self._leggi(f"mensili {anno} {categoria.value}={valore!r}", query)

    async def totali_mensili(self, anno: int) -> dict[int, float]:
        mese = extract("month", Appuntamento.data)

        def query(s: Session) -> dict[int, float]:
            q = (
                select(mese.label("mese"), func.coalesce(func.sum(Appuntamento.costo), 0).label("totale"))
                .where(_nel_periodo(anno))
                .group_by(mese)
            )
            return {int(r.mese): float(r.totale) for r in s.execute(q)}

        return await self._leggi(f"totali mensili {anno}", query)

    async def totali_giornalieri(self, anno: int, mese: int) -> dict[int, float]:
        giorno = extract("day", Appuntamento.data)

        def query(s: Session) -> dict[int, float]:
            q = (
                select(giorno.label("giorno"), func.coalesce(func.sum(Appuntamento.costo), 0).label("totale"))
                .where(_nel_periodo(anno, mese))
                .group_by(giorno)
            )
            return {int(r.giorno): float(r.totale) for r in s.execute(q)}

        return await self._leggi(f"totali giornalieri {anno}-{mese:02d}", query)

    async def totale_annuo(self, anno: int) -> float:
        def query(s: Session) -> float:
            q = select(func.coalesce(func.sum(Appuntamento.costo), 0)).where(_nel_periodo(anno))
            return float(s.execute(q).scalar_one())

        return await self._leggi(f"totale {anno}", query)

    # =========================
    # Affluenza / report
    # =========================
    async def appuntamenti_dell_anno(self, anno: int, mese: int | None = None) -> list[RigaAppuntamento]:
        def query(s: Session) -> list[RigaAppuntamento]:
            q = (
                select(
                    Appuntamento.data,
                    Appuntamento.costo,
                    Appuntamento.medico,
                    Appuntamento.trattamento,
                    Appuntamento.pagamento,
                    Appuntamento.no_show,
                    Appuntamento.nome,
                    Appuntamento.cognome,
                    Appuntamento.file_paziente,
                )
                .where(_nel_periodo(anno, mese))
                .order_by(Appuntamento.data.asc(), Appuntamento.ora.asc())
            )
            return [
                RigaAppuntamento(
                    data=r.data,
                    costo=float(r.costo or 0),
                    medico=r.medico,
                    trattamento=r.trattamento,
                    pagamento=r.pagamento,
                    no_show=bool(r.no_show),
                    nome=r.nome,
                    cognome=r.cognome,
                    file_paziente=r.file_paziente,
                )
                for r in s.execute(q)
            ]

        periodo = f"{anno}" if mese is None else f"{anno}-{mese:02d}"
        return await self._leggi(f"appuntamenti {periodo}", query)

    async def trattamenti_distinti(self, anno: int, mese: int) -> set[str]:
        def query(s: Session) -> set[str]:
            q = (
                select(Appuntamento.trattamento)
                .where(_nel_periodo(anno, mese), Appuntamento.trattamento.is_not(None), Appuntamento.trattamento != "")
                .distinct()
            )
            return set(s.scalars(q))

        return await self._leggi(f"trattamenti {anno}-{mese:02d}", query)

    async def pazienti_per_eta(self, min_giorni: int, max_giorni: int, oggi: date) -> set[str]:
        """File dei pazienti con età in giorni in [min_giorni, max_giorni)."""
        # eta >= min  <=>  nascita <= oggi - min ; eta < max  <=>  nascita > oggi - max
        nato_entro = oggi - timedelta(days=min_giorni)
        nato_dopo = oggi - timedelta(days=max_giorni)

        def query(s: Session) -> set[str]:
            q = select(Paziente.file).where(
                Paziente.data_nascita <= nato_entro,
                Paziente.data_nascita > nato_dopo,
            )
            return set(s.scalars(q))

        return await self._leggi(f"pazienti con età {min_giorni}-{max_giorni} giorni", query)

    async def pazienti_visitati(self, anno: int) -> list[tuple[str, date]]:
        """(file, data_nascita) dei pazienti con almeno un appuntamento nell'anno."""
        def query(s: Session) -> list[tuple[str, date]]:
            q = (
                select(Paziente.file, Paziente.data_nascita)
                .join(Appuntamento, Appuntamento.file_paziente == Paziente.file)
                .where(_nel_periodo(anno))
                .distinct()
                .order_by(Paziente.file)
            )
            return [(r.file, normalizza_data_nascita(r.data_nascita)) for r in s.execute(q)]

        return await self._leggi(f"pazienti visitati {anno}", query)

    # =========================
    # Anagrafiche
    # =========================
    async def _elenco(self, model: Any, descrizione: str) -> list[str]:
        return await self._leggi(descrizione, lambda s: list(s.scalars(select(model.nome).order_by(model.nome))))

    async def elenco_medici(self) -> list[str]:
        return await self._elenco(Medico, "medici")

    async def elenco_trattamenti(self) -> list[str]:
        return await self._elenco(Trattamento, "trattamenti")

    async def elenco_pagamenti(self) -> list[str]:
        return await self._elenco(TipoPagamento, "tipi pagamento")
