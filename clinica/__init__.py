"""
Backend applicativo Clinica: agenda giornaliera e analytics.

Struttura:
- config.py       : impostazioni da variabili d'ambiente (.env)
- log.py          : configurazione logging
- db.py           : engine e sessioni SQLAlchemy
- models.py       : modelli ORM
- dominio.py      : tipi di dominio ed eccezioni
- archivio.py     : accesso ai dati (query asincrone sul DB)
- griglia.py      : griglia fissa degli orari prenotabili
- disponibilita.py: unione griglia + appuntamenti del giorno
- bucket.py       : riempimento serie sparse (mesi, trimestri, giorni, fasce d'età)
- ricavi.py       : analytics incassi per categoria/mese/anno
- affluenza.py    : conteggi appuntamenti (mese, trimestre, fasce d'età)
- services.py     : validazione input e operazioni esposte
- seed.py         : dati iniziali (orari, medici, trattamenti, pagamenti)
- cli.py          : report da riga di comando
- api_main.py     : API HTTP in sola lettura
"""
