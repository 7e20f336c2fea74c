from __future__ import annotations

from datetime import date, time
from typing import Callable

import pytest

from clinica.archivio import Archivio
from clinica.db import crea_engine, db_session
from clinica.models import Appuntamento, Paziente


@pytest.fixture
def archivio(tmp_path) -> Archivio:
    # DB su file temporaneo: le query girano in thread diversi
    a = Archivio(crea_engine(f"sqlite:///{tmp_path / 'test.sqlite'}"))
    a.init_db()
    yield a
    a.chiudi()


@pytest.fixture
def inserisci(archivio: Archivio) -> Callable[..., None]:
    def _inserisci(*oggetti) -> None:
        with db_session(archivio.session_factory) as s:
            s.add_all(oggetti)

    return _inserisci


def appuntamento(giorno: date, ora: str = "09:00", **campi) -> Appuntamento:
    campi.setdefault("nome", "Mario")
    campi.setdefault("cognome", "Rossi")
    campi.setdefault("costo", 0)
    return Appuntamento(data=giorno, ora=time.fromisoformat(ora), **campi)


def paziente(file: str, nascita: date, **campi) -> Paziente:
    return Paziente(file=file, data_nascita=nascita, **campi)


@pytest.fixture
def nuovo_appuntamento() -> Callable[..., Appuntamento]:
    return appuntamento


@pytest.fixture
def nuovo_paziente() -> Callable[..., Paziente]:
    return paziente
