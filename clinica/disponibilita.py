from __future__ import annotations

from datetime import date
from typing import Iterable, Union

from .dominio import FasciaOraria, VoceAppuntamento
from .griglia import GrigliaOrari

VoceAgenda = Union[FasciaOraria, VoceAppuntamento]


def unisci_agenda(
    appuntamenti: Iterable[VoceAppuntamento],
    griglia: GrigliaOrari,
    giorno: date,
) -> list[VoceAgenda]:
    """
    Agenda del giorno: tutti gli appuntamenti + gli orari della griglia rimasti liberi,
    tutti con data = giorno, ordinati per orario.

    - l'indice ora -> fascia viene costruito una sola volta
    - un orario occupato da un appuntamento non compare mai come fascia libera
    - a parità di orario restano prima gli appuntamenti (sort stabile)
    - senza appuntamenti ritorna l'intera griglia, non una lista vuota
    """
    libere: dict[str, FasciaOraria] = {f.ora: f for f in griglia.tutte()}

    prenotati: list[VoceAgenda] = []
    for app in appuntamenti:
        libere.pop(app.ora, None)
        prenotati.append(app.con_data(giorno))

    restanti = [f.con_data(giorno) for f in libere.values()]

    agenda = prenotati + restanti
    agenda.sort(key=lambda v: v.ora)
    return agenda
