from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# DB SQLite su file nella root del progetto
DEFAULT_DB_PATH = Path(__file__).resolve().parents[1] / "clinica.sqlite"
DEFAULT_DATABASE_URL = f"sqlite:///{DEFAULT_DB_PATH}"

_ORARIO_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL

    # Griglia orari: apertura inclusa, chiusura esclusa
    apertura: str = "08:00"
    chiusura: str = "17:00"
    passo_minuti: int = 30

    # Nome usato per gli slot bloccati/amministrativi (es. "x x")
    segnaposto: str = "x"

    # Convenzione assicurativa con report dedicato
    pagamento_convenzionato: str = "Nhima"

    log_level: str = "INFO"
    # Vuoto = solo console
    log_dir: str = ""


def _orario(name: str, default: str) -> str:
    value = os.getenv(name, default).strip()
    if not _ORARIO_RE.match(value):
        raise RuntimeError(f"Invalid {name} value: {value!r}. Expected HH:MM.")
    return value


def _intero_positivo(name: str, default: str) -> int:
    raw = os.getenv(name, default).strip()
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected integer.") from e
    if value < 1:
        raise RuntimeError(f"{name} must be >= 1")
    return value


def load_settings(dotenv_path: str | None = None) -> Settings:
    # .env nella root del progetto; dotenv_path permette override nei test.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    apertura = _orario("CLINICA_APERTURA", "08:00")
    chiusura = _orario("CLINICA_CHIUSURA", "17:00")
    if chiusura <= apertura:
        raise RuntimeError("CLINICA_CHIUSURA must be later than CLINICA_APERTURA")

    segnaposto = os.getenv("CLINICA_SEGNAPOSTO", "x").strip()
    if not segnaposto:
        raise RuntimeError("CLINICA_SEGNAPOSTO must not be empty")

    return Settings(
        database_url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
        apertura=apertura,
        chiusura=chiusura,
        passo_minuti=_intero_positivo("CLINICA_PASSO_MINUTI", "30"),
        segnaposto=segnaposto,
        pagamento_convenzionato=os.getenv("CLINICA_PAGAMENTO_CONVENZIONATO", "Nhima").strip(),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        log_dir=os.getenv("LOG_DIR", "").strip(),
    )
