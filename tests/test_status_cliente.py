from datetime import date, datetime

import pytest

from status_cliente import (
    STATUS_KEYS, STATUS_MAP, classificar_status, listar_status,
    obter_status, status_por_diferenca, validar_status_keys,
)

HOJE = date(2025, 6, 10)


@pytest.mark.parametrize("diff, esperado", [
    (30, 'active'),
    (4, 'active'),
    (3, 'pre3'),
    (2, 'pre2'),
    (1, 'pre1'),
    (0, 'today'),
    (-1, 'post1'),
    (-2, 'post2'),
    (-3, 'expired'),
    (-400, 'expired'),
])
def test_status_por_diferenca(diff, esperado):
    assert status_por_diferenca(diff) == esperado


def test_classificar_status_por_data():
    assert classificar_status(date(2025, 6, 13), HOJE) == 'pre3'
    assert classificar_status(date(2025, 6, 10), HOJE) == 'today'
    assert classificar_status(date(2025, 6, 7), HOJE) == 'expired'


def test_classificar_status_ignora_hora_do_dia():
    # vencimento hoje às 23:59 continua 'today' para uma referência às 00:01
    assert classificar_status(datetime(2025, 6, 10, 23, 59), datetime(2025, 6, 10, 0, 1)) == 'today'
    assert classificar_status(datetime(2025, 6, 11, 0, 0), datetime(2025, 6, 10, 23, 59)) == 'pre1'


def test_classificar_status_aceita_texto():
    assert classificar_status('2025-06-12', HOJE) == 'pre2'
    assert classificar_status('09/06/2025', HOJE) == 'post1'


def test_classificar_status_cruza_virada_de_mes():
    assert classificar_status(date(2025, 7, 1), date(2025, 6, 30)) == 'pre1'


def test_obter_status_traz_label():
    status = obter_status(date(2025, 6, 11), HOJE)
    assert status.key == 'pre1'
    assert status.label == 'Vence amanhã'


def test_listar_status_na_ordem_canonica():
    assert [s.key for s in listar_status()] == list(STATUS_KEYS)
    assert set(STATUS_MAP) == set(STATUS_KEYS)


def test_validar_status_keys():
    assert validar_status_keys(['today', 'post1']) == frozenset({'today', 'post1'})
    assert validar_status_keys(None) == frozenset()
    assert validar_status_keys('today') == frozenset({'today'})


def test_validar_status_keys_rejeita_desconhecido():
    with pytest.raises(ValueError, match="overdue"):
        validar_status_keys(['today', 'overdue'])
