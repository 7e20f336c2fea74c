from __future__ import annotations

from datetime import date, datetime, time

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Time
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


# Data usata al posto di date di nascita mancanti o non valide (import storici)
DATA_NASCITA_SENTINELLA = date(1000, 1, 1)


def normalizza_data_nascita(valore: date | str | None) -> date:
    """Ritorna una data valida o la sentinella, mai None."""
    if isinstance(valore, datetime):
        return valore.date()
    if isinstance(valore, date):
        return valore
    if not valore or not str(valore).strip():
        return DATA_NASCITA_SENTINELLA
    try:
        return date.fromisoformat(str(valore).strip()[:10])
    except ValueError:
        return DATA_NASCITA_SENTINELLA


class Paziente(Base):
    __tablename__ = "pazienti"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # riferimento alla cartella cartacea: chiave di ricerca principale
    file: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    nome: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cognome: Mapped[str | None] = mapped_column(String(255), nullable=True)
    nrc: Mapped[str | None] = mapped_column(String(255), nullable=True)
    id_assicurazione: Mapped[str | None] = mapped_column(String(255), nullable=True)
    telefono: Mapped[str | None] = mapped_column(String(255), nullable=True)
    pagamento: Mapped[str | None] = mapped_column(String(255), nullable=True)
    data_nascita: Mapped[date] = mapped_column(Date, nullable=False, default=DATA_NASCITA_SENTINELLA)
    sesso: Mapped[str | None] = mapped_column(String(1), nullable=True)
    marketing: Mapped[str | None] = mapped_column(String(255), nullable=True)
    aggiunto_il: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"Paziente({self.file}: {self.nome} {self.cognome})"


class Appuntamento(Base):
    __tablename__ = "appuntamenti"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    data: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    ora: Mapped[time] = mapped_column(Time, nullable=False)

    # dati paziente copiati al momento della prenotazione
    nome: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cognome: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_paziente: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    telefono: Mapped[str | None] = mapped_column(String(255), nullable=True)

    medico: Mapped[str | None] = mapped_column(String(255), nullable=True)
    trattamento: Mapped[str | None] = mapped_column(String(255), nullable=True)
    pagamento: Mapped[str | None] = mapped_column(String(255), nullable=True)
    costo: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)

    commenti: Mapped[str | None] = mapped_column(String(255), nullable=True)
    no_show: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    aggiunto_il: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"Appuntamento({self.data} {self.ora}, {self.cognome} {self.nome})"


class FasciaOrariaDef(Base):
    """Orario prenotabile della griglia giornaliera (indipendente dalla data)."""
    __tablename__ = "fasce_orarie"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ora: Mapped[str] = mapped_column(String(5), nullable=False, unique=True)  # HH:MM


class Medico(Base):
    __tablename__ = "medici"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    nome: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


class Trattamento(Base):
    __tablename__ = "trattamenti"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    nome: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


class TipoPagamento(Base):
    __tablename__ = "tipi_pagamento"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    nome: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
