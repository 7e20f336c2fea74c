from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from clinica import services
from clinica.archivio import Archivio
from clinica.config import Settings, load_settings
from clinica.dominio import ErroreArchivio, ErroreInput
from clinica.log import setup_logging
from clinica.seed import seed_base

app = FastAPI(title="Clinica API", version="1.0.0")



# Startup / shutdown

@app.on_event("startup")
def startup() -> None:
    # Un solo Archivio (pool di connessioni) per processo, passato agli endpoint via Depends
    settings = load_settings()
    setup_logging(settings)

    archivio = Archivio.da_settings(settings)
    archivio.init_db()
    seed_base(archivio, settings)

    app.state.settings = settings
    app.state.archivio = archivio


@app.on_event("shutdown")
def shutdown() -> None:
    archivio = getattr(app.state, "archivio", None)
    if archivio is not None:
        archivio.chiudi()



# Dipendenze

def get_archivio(request: Request) -> Archivio:
    return request.app.state.archivio


def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or Settings()



# Errori

@app.exception_handler(ErroreInput)
def errore_input(request: Request, exc: ErroreInput) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(ErroreArchivio)
def errore_archivio(request: Request, exc: ErroreArchivio) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": "Database non disponibile, riprova più tardi."})



# Schemi

class ImportoOut(BaseModel):
    valore: str
    totale: float


class MeseOut(BaseModel):
    mese: int
    totale: float


class RicaviOut(BaseModel):
    anno: int
    categoria: str
    totali_categoria: list[ImportoOut]
    mensili_per_categoria: dict[str, list[MeseOut]]
    totali_mensili: list[MeseOut]
    totale_annuo: float


class ConteggioMeseOut(BaseModel):
    mese: int
    appuntamenti: int


class ConteggioTrimestreOut(BaseModel):
    trimestre: int
    appuntamenti: int


class AffluenzaOut(BaseModel):
    anno: int
    pagamento: str | None = None
    per_mese: list[ConteggioMeseOut]
    per_trimestre: list[ConteggioTrimestreOut]
    totale: int


class TrattamentoFasciaOut(BaseModel):
    fascia_eta: str
    trattamento: str
    conteggio: int



# Agenda

@app.get("/api/agenda")
async def api_agenda(
    giorno: str = Query(..., description="YYYY-MM-DD"),
    archivio: Archivio = Depends(get_archivio),
) -> list[dict]:
    return await services.agenda_giornaliera_flat(archivio, giorno)


@app.get("/api/orari-occupati")
async def api_orari_occupati(
    giorno: str = Query(..., description="YYYY-MM-DD"),
    archivio: Archivio = Depends(get_archivio),
) -> list[str]:
    return await services.orari_occupati(archivio, giorno)


@app.get("/api/appuntamenti/cerca")
async def api_cerca_appuntamenti(
    q: str = Query(..., description="Uno o più termini separati da spazio"),
    archivio: Archivio = Depends(get_archivio),
) -> list[dict]:
    return [a.as_dict() for a in await services.cerca_appuntamenti(archivio, q)]


@app.get("/api/pazienti/cerca")
async def api_cerca_pazienti(
    q: str = Query(..., description="Nome, cognome, file, NRC, telefono..."),
    archivio: Archivio = Depends(get_archivio),
) -> list[dict]:
    return [p.as_dict() for p in await services.cerca_pazienti(archivio, q)]


@app.get("/api/pazienti/{file_paziente}/appuntamenti")
async def api_appuntamenti_paziente(file_paziente: str, archivio: Archivio = Depends(get_archivio)) -> list[dict]:
    return [a.as_dict() for a in await services.appuntamenti_del_paziente(archivio, file_paziente)]



# Analytics / report

@app.get("/api/analytics/ricavi", response_model=RicaviOut)
async def api_ricavi(
    anno: str = Query(...),
    categoria: str = Query("medico"),
    archivio: Archivio = Depends(get_archivio),
) -> dict[str, Any]:
    riepilogo = await services.aggrega_ricavi(archivio, anno, categoria)
    return riepilogo.as_dict()


@app.get("/api/analytics/incassi-giornalieri")
async def api_incassi_giornalieri(
    anno: str = Query(...),
    mese: str = Query(...),
    archivio: Archivio = Depends(get_archivio),
) -> list[dict]:
    return await services.incassi_giornalieri_flat(archivio, anno, mese)


@app.get("/api/reports/affluenza", response_model=AffluenzaOut)
async def api_affluenza(
    anno: str = Query(...),
    pagamento: str | None = Query(None),
    archivio: Archivio = Depends(get_archivio),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    riepilogo = await services.aggrega_affluenza(archivio, anno, pagamento, settings=settings)
    return riepilogo.as_dict()


@app.get("/api/reports/trattamenti", response_model=list[TrattamentoFasciaOut])
async def api_trattamenti(
    anno: str = Query(...),
    mese: str = Query(...),
    oggi: date | None = Query(None, description="Data di riferimento per l'età (default: oggi)"),
    archivio: Archivio = Depends(get_archivio),
    settings: Settings = Depends(get_settings),
) -> list[dict]:
    return await services.conta_trattamenti_per_fascia_eta(archivio, anno, mese, oggi=oggi, settings=settings)


@app.get("/api/reports/pazienti")
async def api_pazienti(
    anno: str = Query(...),
    eta_min: int = Query(0),
    eta_max: int = Query(121),
    archivio: Archivio = Depends(get_archivio),
) -> dict[str, Any]:
    n = await services.conta_pazienti(archivio, anno, eta_min, eta_max)
    return {"anno": int(anno), "eta_min": eta_min, "eta_max": eta_max, "pazienti": n}



# Anagrafiche

@app.get("/api/medici")
async def api_medici(archivio: Archivio = Depends(get_archivio)) -> list[str]:
    return await archivio.elenco_medici()


@app.get("/api/trattamenti")
async def api_trattamenti_elenco(archivio: Archivio = Depends(get_archivio)) -> list[str]:
    return await archivio.elenco_trattamenti()


@app.get("/api/pagamenti")
async def api_pagamenti(archivio: Archivio = Depends(get_archivio)) -> list[str]:
    return await archivio.elenco_pagamenti()
