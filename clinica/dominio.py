from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, replace
from datetime import date, time


class Categoria(enum.Enum):
    """Dimensioni ammesse per raggruppare gli incassi (insieme chiuso)."""
    MEDICO = "medico"
    TRATTAMENTO = "trattamento"
    PAGAMENTO = "pagamento"


def tronca_orario(valore: time | str) -> str:
    """'09:30:00' (o time(9, 30)) -> '09:30'."""
    if isinstance(valore, time):
        return valore.strftime("%H:%M")
    return str(valore).strip()[:5]


@dataclass(frozen=True)
class FasciaOraria:
    """Orario libero della griglia; la data si assegna solo in fase di risoluzione."""

    ora: str  # HH:MM
    data: date | None = None
    libera: bool = True

    @property
    def prenotata(self) -> bool:
        return not self.libera

    def con_data(self, giorno: date) -> FasciaOraria:
        return replace(self, data=giorno)

    def as_dict(self) -> dict:
        return {
            "ora": self.ora,
            "data": self.data.isoformat() if self.data else None,
            "prenotata": self.prenotata,
        }


@dataclass(frozen=True)
class VoceAppuntamento:
    """Appuntamento così come appare in agenda."""

    id: int
    data: date
    ora: str  # HH:MM
    nome: str | None = None
    cognome: str | None = None
    file_paziente: str | None = None
    medico: str | None = None
    trattamento: str | None = None
    pagamento: str | None = None
    costo: float = 0.0
    telefono: str | None = None
    commenti: str | None = None
    no_show: bool = False

    @property
    def prenotata(self) -> bool:
        return True

    def con_data(self, giorno: date) -> VoceAppuntamento:
        return replace(self, data=giorno)

    def as_dict(self) -> dict:
        d = asdict(self)
        d["data"] = self.data.isoformat()
        d["prenotata"] = True
        return d


@dataclass(frozen=True)
class RigaAppuntamento:
    """Riga minima per le analytics annuali."""

    data: date
    costo: float = 0.0
    medico: str | None = None
    trattamento: str | None = None
    pagamento: str | None = None
    no_show: bool = False
    nome: str | None = None
    cognome: str | None = None
    file_paziente: str | None = None


@dataclass(frozen=True)
class SchedaPaziente:
    """Anagrafica paziente come risultato di ricerca."""

    id: int
    file: str
    nome: str | None = None
    cognome: str | None = None
    nrc: str | None = None
    id_assicurazione: str | None = None
    telefono: str | None = None
    pagamento: str | None = None
    data_nascita: date | None = None
    sesso: str | None = None

    def as_dict(self) -> dict:
        d = asdict(self)
        d["data_nascita"] = self.data_nascita.isoformat() if self.data_nascita else None
        return d


class ErroreInput(ValueError):
    """Argomento non valido (data, anno, mese, categoria): rifiutato prima di qualsiasi query."""


class ErroreArchivio(RuntimeError):
    """Errore del database durante una lettura: si propaga, niente aggregati parziali."""


class IncoerenzaDati(RuntimeWarning):
    """
    Aggregati che non tornano (es. somma per categoria != totale mensile).
    Viene solo loggata: dati modificati durante l'aggregazione possono
    legittimamente produrla.
    """
