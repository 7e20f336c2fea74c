from __future__ import annotations

import argparse
import asyncio
import logging

from . import services
from .archivio import Archivio
from .bucket import formatta_importo
from .config import Settings, load_settings
from .dominio import Categoria, ErroreArchivio, ErroreInput
from .log import setup_logging
from .seed import seed_base

logger = logging.getLogger(__name__)


async def cmd_init(archivio: Archivio, settings: Settings, args: argparse.Namespace) -> None:
    seed_base(archivio, settings)
    print("DB inizializzato e seed completato.")


async def cmd_agenda(archivio: Archivio, settings: Settings, args: argparse.Namespace) -> None:
    for v in await services.risolvi_disponibilita(archivio, args.giorno):
        if v.prenotata:
            print(f"{v.ora} | {v.cognome or ''} {v.nome or ''} | {v.medico or '-'} | {v.trattamento or '-'}")
        else:
            print(f"{v.ora} | libero")


async def cmd_ricavi(archivio: Archivio, settings: Settings, args: argparse.Namespace) -> None:
    r = await services.aggrega_ricavi(archivio, args.anno, args.categoria)

    print(f"Incassi {r.anno} per {r.categoria.value}: {formatta_importo(r.totale_annuo)}")
    for valore, totale in r.totali_categoria:
        print(f"  {valore or '(nessuno)'}: {formatta_importo(totale)}")
        mesi = " ".join(f"{m:02d}={formatta_importo(t)}" for m, t in r.mensili_per_categoria[valore])
        print(f"    {mesi}")
    print("Totali mensili: " + " ".join(f"{m:02d}={formatta_importo(t)}" for m, t in r.totali_mensili))


async def cmd_incassi(archivio: Archivio, settings: Settings, args: argparse.Namespace) -> None:
    for giorno, totale in await services.incassi_giornalieri(archivio, args.anno, args.mese):
        print(f"{giorno:02d} | {formatta_importo(totale)}")


async def cmd_affluenza(archivio: Archivio, settings: Settings, args: argparse.Namespace) -> None:
    pagamento = settings.pagamento_convenzionato if args.convenzione else args.pagamento
    r = await services.aggrega_affluenza(archivio, args.anno, pagamento, settings=settings)

    print(f"Appuntamenti {r.anno}{' (' + r.pagamento + ')' if r.pagamento else ''}: {r.totale}")
    for mese, n in r.per_mese:
        print(f"  mese {mese:02d}: {n}")
    for t, n in r.per_trimestre:
        print(f"  trimestre {t}: {n}")


async def cmd_trattamenti(archivio: Archivio, settings: Settings, args: argparse.Namespace) -> None:
    righe = await services.conta_trattamenti_per_fascia_eta(archivio, args.anno, args.mese, settings=settings)
    if not righe:
        print("Nessun trattamento nel periodo.")
        return
    for r in righe:
        print(f"{r['trattamento']} | {r['fascia_eta']} | {r['conteggio']}")


async def cmd_pazienti(archivio: Archivio, settings: Settings, args: argparse.Namespace) -> None:
    n = await services.conta_pazienti(archivio, args.anno, args.eta_min, args.eta_max)
    print(f"Pazienti {args.anno} con età {args.eta_min}-{args.eta_max}: {n}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="clinica_cli", description="CLI Clinica (agenda e report)")
    sub = p.add_subparsers(required=True)

    p_init = sub.add_parser("init", help="Crea DB e carica seed")
    p_init.set_defaults(func=cmd_init)

    p_agenda = sub.add_parser("agenda", help="Agenda del giorno con orari liberi")
    p_agenda.add_argument("--giorno", required=True, help="YYYY-MM-DD")
    p_agenda.set_defaults(func=cmd_agenda)

    p_ricavi = sub.add_parser("ricavi", help="Incassi annuali per categoria")
    p_ricavi.add_argument("--anno", required=True)
    p_ricavi.add_argument("--categoria", default=Categoria.MEDICO.value, choices=[c.value for c in Categoria])
    p_ricavi.set_defaults(func=cmd_ricavi)

    p_incassi = sub.add_parser("incassi", help="Incassi giornalieri di un mese")
    p_incassi.add_argument("--anno", required=True)
    p_incassi.add_argument("--mese", required=True)
    p_incassi.set_defaults(func=cmd_incassi)

    p_aff = sub.add_parser("affluenza", help="Appuntamenti per mese e trimestre")
    p_aff.add_argument("--anno", required=True)
    p_aff.add_argument("--pagamento", default=None)
    p_aff.add_argument("--convenzione", action="store_true", help="Solo il pagamento convenzionato (CLINICA_PAGAMENTO_CONVENZIONATO)")
    p_aff.set_defaults(func=cmd_affluenza)

    p_tr = sub.add_parser("trattamenti", help="Trattamenti per fascia d'età")
    p_tr.add_argument("--anno", required=True)
    p_tr.add_argument("--mese", required=True)
    p_tr.set_defaults(func=cmd_trattamenti)

    p_paz = sub.add_parser("pazienti", help="Pazienti distinti per fascia d'età (anni)")
    p_paz.add_argument("--anno", required=True)
    p_paz.add_argument("--eta-min", type=int, default=0)
    p_paz.add_argument("--eta-max", type=int, default=121)
    p_paz.set_defaults(func=cmd_pazienti)

    return p


async def _run(args: argparse.Namespace, settings: Settings) -> None:
    archivio = Archivio.da_settings(settings)
    try:
        archivio.init_db()  # garantisce tabelle
        await args.func(archivio, settings, args)
    finally:
        archivio.chiudi()


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    settings = load_settings()
    setup_logging(settings)

    try:
        asyncio.run(_run(args, settings))
    except ErroreInput as e:
        print(f"Errore: {e}")
        return 2
    except ErroreArchivio as e:
        logger.error("Report non disponibile: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
