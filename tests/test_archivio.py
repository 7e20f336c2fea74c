from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy.exc import SAWarning

from clinica import services
from clinica.archivio import Archivio
from clinica.config import Settings
from clinica.db import crea_engine, db_session
from clinica.dominio import ErroreArchivio
from clinica.models import DATA_NASCITA_SENTINELLA, FasciaOrariaDef
from clinica.seed import MEDICI, PAGAMENTI, TRATTAMENTI, seed_base


@pytest.mark.asyncio
async def test_seed_is_idempotent_and_builds_default_grid(archivio) -> None:
    seed_base(archivio, Settings())
    seed_base(archivio, Settings())

    griglia = await archivio.griglia()
    assert len(griglia) == 18
    assert griglia.orari()[0] == "08:00"
    assert griglia.orari()[-1] == "16:30"
    assert await archivio.elenco_medici() == sorted(MEDICI)
    assert await archivio.elenco_trattamenti() == sorted(TRATTAMENTI)
    assert await archivio.elenco_pagamenti() == sorted(PAGAMENTI)


@pytest.mark.asyncio
async def test_grid_is_cached_until_invalidated(archivio, inserisci) -> None:
    inserisci(FasciaOrariaDef(ora="09:00"))
    prima = await archivio.griglia()

    inserisci(FasciaOrariaDef(ora="08:00"))
    assert await archivio.griglia() is prima

    archivio.invalida_griglia()
    assert (await archivio.griglia()).orari() == ["08:00", "09:00"]


@pytest.mark.asyncio
async def test_orari_occupati_truncated_to_minutes(archivio, inserisci, nuovo_appuntamento) -> None:
    inserisci(
        nuovo_appuntamento(date(2024, 6, 1), "10:30:00"),
        nuovo_appuntamento(date(2024, 6, 1), "08:00"),
        nuovo_appuntamento(date(2024, 6, 2), "09:00"),
    )

    assert await archivio.orari_occupati(date(2024, 6, 1)) == ["08:00", "10:30"]
    assert await archivio.orari_occupati(date(2024, 6, 3)) == []


@pytest.mark.asyncio
async def test_appuntamenti_del_giorno_maps_rows(archivio, inserisci, nuovo_appuntamento) -> None:
    inserisci(nuovo_appuntamento(date(2024, 6, 1), "09:30", medico="Dr. Banda", costo=45.5, no_show=True))

    [voce] = await archivio.appuntamenti_del_giorno(date(2024, 6, 1))

    assert voce.ora == "09:30"
    assert voce.medico == "Dr. Banda"
    assert voce.costo == 45.5
    assert voce.no_show is True
    assert voce.prenotata


@pytest.mark.asyncio
async def test_search_requires_every_token(archivio, inserisci, nuovo_appuntamento) -> None:
    inserisci(
        nuovo_appuntamento(date(2024, 6, 1), "09:00", nome="Anna", cognome="Phiri", medico="Dr. Banda"),
        nuovo_appuntamento(date(2024, 6, 1), "09:30", nome="Anna", cognome="Zulu", medico="Dr. Watson"),
        nuovo_appuntamento(date(2024, 6, 1), "10:00", nome="Peter", cognome="Phiri", medico="Dr. Watson"),
    )

    trovati = await archivio.cerca_appuntamenti(["anna", "phiri"])
    assert [(v.nome, v.cognome) for v in trovati] == [("Anna", "Phiri")]

    trovati = await archivio.cerca_appuntamenti(["watson"])
    assert len(trovati) == 2


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(archivio, inserisci, nuovo_appuntamento) -> None:
    inserisci(
        nuovo_appuntamento(date(2024, 6, 1), "09:00", commenti=None, file_paziente="F_10"),
        nuovo_appuntamento(date(2024, 6, 1), "09:30", file_paziente="F910"),
    )

    assert await archivio.cerca_appuntamenti(["%"]) == []
    assert [v.file_paziente for v in await archivio.cerca_appuntamenti(["F_1"])] == ["F_10"]


@pytest.mark.asyncio
async def test_search_matches_date_text(archivio, inserisci, nuovo_appuntamento) -> None:
    inserisci(
        nuovo_appuntamento(date(2024, 6, 1), "09:00"),
        nuovo_appuntamento(date(2024, 7, 1), "09:00"),
    )

    assert [v.data for v in await archivio.cerca_appuntamenti(["2024-07"])] == [date(2024, 7, 1)]


@pytest.mark.asyncio
async def test_appuntamenti_del_paziente_in_date_order(archivio, inserisci, nuovo_appuntamento) -> None:
    inserisci(
        nuovo_appuntamento(date(2024, 6, 2), "09:00", file_paziente="F-1"),
        nuovo_appuntamento(date(2024, 6, 1), "11:00", file_paziente="F-1"),
        nuovo_appuntamento(date(2024, 6, 1), "10:00", file_paziente="F-2"),
    )

    voci = await archivio.appuntamenti_del_paziente("F-1")
    assert [(v.data, v.ora) for v in voci] == [(date(2024, 6, 1), "11:00"), (date(2024, 6, 2), "09:00")]


@pytest.mark.asyncio
async def test_pazienti_per_eta_half_open_bounds(archivio, inserisci, nuovo_paziente) -> None:
    oggi = date(2024, 7, 15)
    inserisci(
        nuovo_paziente("NATO-OGGI", oggi),
        nuovo_paziente("364", date(2023, 7, 17)),
        nuovo_paziente("365", date(2023, 7, 16)),
    )

    assert await archivio.pazienti_per_eta(0, 365, oggi) == {"NATO-OGGI", "364"}
    assert await archivio.pazienti_per_eta(365, 365 * 5, oggi) == {"365"}


@pytest.mark.asyncio
async def test_trattamenti_distinti_skip_empty(archivio, inserisci, nuovo_appuntamento, recwarn) -> None:
    inserisci(
        nuovo_appuntamento(date(2024, 6, 1), "09:00", trattamento="Visita"),
        nuovo_appuntamento(date(2024, 6, 2), "09:00", trattamento="Visita"),
        nuovo_appuntamento(date(2024, 6, 3), "09:00", trattamento=""),
        nuovo_appuntamento(date(2024, 6, 4), "09:00", trattamento=None),
        nuovo_appuntamento(date(2024, 7, 1), "09:00", trattamento="Pulizia"),
    )

    assert await archivio.trattamenti_distinti(2024, 6) == {"Visita"}
    assert not [w for w in recwarn if issubclass(w.category, SAWarning)]


@pytest.mark.asyncio
async def test_december_range_ends_at_new_year(archivio, inserisci, nuovo_appuntamento) -> None:
    inserisci(
        nuovo_appuntamento(date(2024, 12, 31), "09:00"),
        nuovo_appuntamento(date(2025, 1, 1), "09:00"),
    )

    righe = await archivio.appuntamenti_dell_anno(2024, 12)
    assert [r.data for r in righe] == [date(2024, 12, 31)]


@pytest.mark.asyncio
async def test_missing_tables_raise_storage_error(tmp_path) -> None:
    archivio = Archivio(crea_engine(f"sqlite:///{tmp_path / 'vuoto.sqlite'}"))
    try:
        with pytest.raises(ErroreArchivio):
            await archivio.totali_mensili(2024)
        with pytest.raises(ErroreArchivio):
            await archivio.griglia()
    finally:
        archivio.chiudi()


def test_db_session_rolls_back_on_error(archivio) -> None:
    with pytest.raises(RuntimeError):
        with db_session(archivio.session_factory) as s:
            s.add(FasciaOrariaDef(ora="12:00"))
            s.flush()
            raise RuntimeError("stop")

    with db_session(archivio.session_factory) as s:
        assert s.query(FasciaOrariaDef).count() == 0


@pytest.mark.asyncio
async def test_unseeded_db_uses_configured_grid(archivio) -> None:
    griglia = await archivio.griglia()

    assert len(griglia) == 18
    assert griglia.orari()[:2] == ["08:00", "08:30"]

    agenda = await services.risolvi_disponibilita(archivio, date(2024, 6, 3))
    assert len(agenda) == 18
    assert not any(v.prenotata for v in agenda)


@pytest.mark.asyncio
async def test_unseeded_grid_follows_settings(tmp_path) -> None:
    settings = Settings(apertura="09:00", chiusura="11:00", passo_minuti=60)
    archivio = Archivio(crea_engine(f"sqlite:///{tmp_path / 'cfg.sqlite'}"), settings)
    archivio.init_db()
    try:
        assert (await archivio.griglia()).orari() == ["09:00", "10:00"]
    finally:
        archivio.chiudi()


@pytest.mark.asyncio
async def test_stored_grid_wins_over_configuration(archivio, inserisci) -> None:
    inserisci(FasciaOrariaDef(ora="10:15"))

    assert (await archivio.griglia()).orari() == ["10:15"]


@pytest.mark.asyncio
async def test_patient_search_every_token_any_column(archivio, inserisci, nuovo_paziente) -> None:
    inserisci(
        nuovo_paziente("F-1", date(1990, 1, 1), nome="Anna", cognome="Phiri", nrc="123/45/1"),
        nuovo_paziente("F-2", date(1985, 5, 5), nome="Anna", cognome="Banda", pagamento="Nhima"),
        nuovo_paziente("F-3", DATA_NASCITA_SENTINELLA, nome="Peter", cognome="Phiri", telefono="0977"),
    )

    trovati = await archivio.cerca_pazienti(["anna", "phiri"])
    assert [p.file for p in trovati] == ["F-1"]

    assert [p.file for p in await archivio.cerca_pazienti(["phiri"])] == ["F-1", "F-3"]
    assert [p.file for p in await archivio.cerca_pazienti(["nhima"])] == ["F-2"]
    assert [p.file for p in await archivio.cerca_pazienti(["123/45"])] == ["F-1"]
    assert await archivio.cerca_pazienti(["%"]) == []


@pytest.mark.asyncio
async def test_patient_search_maps_record(archivio, inserisci, nuovo_paziente) -> None:
    inserisci(nuovo_paziente("F-9", date(2001, 2, 3), nome="Luca", cognome="Mwale", sesso="M"))

    [scheda] = await archivio.cerca_pazienti(["mwale"])

    assert scheda.as_dict()["data_nascita"] == "2001-02-03"
    assert scheda.as_dict()["sesso"] == "M"
    assert scheda.as_dict()["file"] == "F-9"
