from __future__ import annotations

from sqlalchemy import select

from .archivio import Archivio
from .config import Settings
from .db import db_session
from .griglia import genera_orari
from .models import FasciaOrariaDef, Medico, TipoPagamento, Trattamento

MEDICI = ["Dr. Watson", "Dr. Banda", "Dr. Mwale"]
TRATTAMENTI = ["Visita", "Pulizia", "Otturazione", "Estrazione", "Devitalizzazione", "Radiografia"]
PAGAMENTI = ["Contanti", "Carta", "Nhima", "Assicurazione privata"]


def seed_base(archivio: Archivio, settings: Settings) -> None:
    """
    Popola dati minimi (idempotente):
    - griglia orari da apertura/chiusura/passo
    - medici
    - trattamenti
    - tipi di pagamento
    """
    with db_session(archivio.session_factory) as s:
        for ora in genera_orari(settings.apertura, settings.chiusura, settings.passo_minuti):
            if s.execute(select(FasciaOrariaDef).where(FasciaOrariaDef.ora == ora)).scalar_one_or_none() is None:
                s.add(FasciaOrariaDef(ora=ora))

        for model, nomi in ((Medico, MEDICI), (Trattamento, TRATTAMENTI), (TipoPagamento, PAGAMENTI)):
            for nome in nomi:
                if s.execute(select(model).where(model.nome == nome)).scalar_one_or_none() is None:
                    s.add(model(nome=nome))

    # la griglia in cache potrebbe essere stata letta prima del seed
    archivio.invalida_griglia()
