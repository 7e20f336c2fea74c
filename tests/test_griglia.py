from __future__ import annotations

from datetime import time

import pytest

from clinica.griglia import GrigliaOrari, genera_orari


def test_genera_orari_start_included_end_excluded() -> None:
    assert genera_orari("08:00", "10:00", 30) == ["08:00", "08:30", "09:00", "09:30"]


def test_genera_orari_step_not_dividing_window() -> None:
    assert genera_orari("08:00", "09:00", 25) == ["08:00", "08:25", "08:50"]


def test_genera_orari_rejects_zero_step() -> None:
    with pytest.raises(ValueError):
        genera_orari("08:00", "09:00", 0)


def test_griglia_from_storage_rows_is_sorted_deduplicated_and_truncated() -> None:
    griglia = GrigliaOrari.da_orari(["10:00:00", "08:30", "09:00", "08:30:00", ""])

    assert griglia.orari() == ["08:30", "09:00", "10:00"]


def test_griglia_slots_are_free_and_undated() -> None:
    griglia = GrigliaOrari.da_orari(genera_orari("08:00", "12:00", 15))

    assert len(griglia) == 16
    assert all(f.libera and not f.prenotata and f.data is None for f in griglia.tutte())


def test_empty_griglia_is_valid() -> None:
    griglia = GrigliaOrari.da_orari([])

    assert griglia.tutte() == ()
    assert len(griglia) == 0


def test_griglia_accepts_time_objects() -> None:
    griglia = GrigliaOrari.da_orari([time(9, 0), time(8, 45)])

    assert griglia.orari() == ["08:45", "09:00"]
