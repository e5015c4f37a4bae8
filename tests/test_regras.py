from datetime import date

from models import Cliente, RegraCobranca
from regras import (
    cliente_elegivel, dentro_do_periodo, descrever_filtros,
    filtrar_clientes, gerar_preview,
)

HOJE = date(2025, 6, 10)


def cliente(id, vencimento, telefone='5511999990000', nome=None):
    return Cliente(id=id, user_id=1, nome=nome or f'Cliente {id}', telefone=telefone, vencimento=vencimento)


def test_filtro_de_status_hoje_e_amanha():
    regra = RegraCobranca(filtro_status=['today', 'pre1'])
    clientes = [
        cliente(1, date(2025, 6, 10)),
        cliente(2, date(2025, 6, 11)),
        cliente(3, date(2025, 6, 12)),
        cliente(4, date(2025, 6, 9)),
    ]
    assert [c.id for c in filtrar_clientes(regra, clientes, HOJE)] == [1, 2]


def test_janela_depois_do_vencimento():
    regra = RegraCobranca(tipo_periodo='dias', valor_periodo=2, direcao_periodo='after')
    clientes = [
        cliente(1, date(2025, 6, 10)),
        cliente(2, date(2025, 6, 9)),
        cliente(3, date(2025, 6, 8)),
        cliente(4, date(2025, 6, 7)),
        cliente(5, date(2025, 6, 11)),
    ]
    assert [c.id for c in filtrar_clientes(regra, clientes, HOJE)] == [1, 2, 3]


def test_janela_antes_do_vencimento():
    regra = RegraCobranca(tipo_periodo='dias', valor_periodo=3, direcao_periodo='before')
    assert dentro_do_periodo(regra, date(2025, 6, 13), HOJE)
    assert dentro_do_periodo(regra, date(2025, 6, 10), HOJE)
    assert not dentro_do_periodo(regra, date(2025, 6, 14), HOJE)
    assert not dentro_do_periodo(regra, date(2025, 6, 9), HOJE)


def test_janela_em_semanas():
    regra = RegraCobranca(tipo_periodo='semanas', valor_periodo=1, direcao_periodo='before')
    assert dentro_do_periodo(regra, date(2025, 6, 17), HOJE)
    assert not dentro_do_periodo(regra, date(2025, 6, 18), HOJE)


def test_janela_em_horas_so_aceita_o_proprio_dia():
    regra = RegraCobranca(tipo_periodo='horas', valor_periodo=12, direcao_periodo='before')
    assert dentro_do_periodo(regra, date(2025, 6, 10), HOJE)
    assert not dentro_do_periodo(regra, date(2025, 6, 11), HOJE)


def test_sem_periodo_nao_filtra():
    regra = RegraCobranca(valor_periodo=0)
    assert dentro_do_periodo(regra, date(2030, 1, 1), HOJE)
    assert dentro_do_periodo(regra, date(2020, 1, 1), HOJE)


def test_sem_filtros_seleciona_todos_com_telefone():
    regra = RegraCobranca()
    clientes = [
        cliente(1, date(2025, 6, 1)),
        cliente(2, date(2025, 7, 1), telefone=None),
        cliente(3, date(2025, 8, 1), telefone='   '),
        cliente(4, date(2025, 9, 1)),
    ]
    assert [c.id for c in filtrar_clientes(regra, clientes, HOJE)] == [1, 4]


def test_cliente_sem_telefone_nunca_e_selecionado():
    regra = RegraCobranca(filtro_status=['today'])
    assert not cliente_elegivel(regra, cliente(1, date(2025, 6, 10), telefone=None), HOJE)
    assert not cliente_elegivel(regra, cliente(2, date(2025, 6, 10), telefone=''), HOJE)


def test_cliente_sem_vencimento_e_ignorado():
    assert not cliente_elegivel(RegraCobranca(), cliente(1, None), HOJE)


def test_status_e_periodo_combinados():
    regra = RegraCobranca(filtro_status=['expired'], tipo_periodo='dias',
                          valor_periodo=5, direcao_periodo='after')
    clientes = [
        cliente(1, date(2025, 6, 8)),
        cliente(2, date(2025, 6, 5)),
        cliente(3, date(2025, 6, 4)),
    ]
    assert [c.id for c in filtrar_clientes(regra, clientes, HOJE)] == [2]


def test_gerar_preview_traz_status():
    regra = RegraCobranca(filtro_status=['today', 'pre1'])
    preview = gerar_preview(regra, [cliente(1, date(2025, 6, 11)), cliente(2, date(2025, 6, 10))], HOJE)
    assert [(c.id, status.key) for c, status in preview] == [(1, 'pre1'), (2, 'today')]
    assert preview[0][1].label == 'Vence amanhã'


def test_descrever_filtros():
    assert descrever_filtros(RegraCobranca()) == "Sem filtros"
    regra = RegraCobranca(filtro_status=['pre1', 'today'], valor_periodo=3, direcao_periodo='before')
    assert descrever_filtros(regra) == "Status: pre1, today • 3 dias antes do vencimento"
    regra = RegraCobranca(valor_periodo=2, tipo_periodo='semanas', direcao_periodo='after')
    assert descrever_filtros(regra) == "2 semanas depois do vencimento"


def test_janela_de_tres_dias_antes_e_depois():
    antes = RegraCobranca(tipo_periodo='dias', valor_periodo=3, direcao_periodo='before')
    depois = RegraCobranca(tipo_periodo='dias', valor_periodo=3, direcao_periodo='after')
    assert cliente_elegivel(antes, cliente(1, date(2025, 6, 12)), HOJE)
    assert not cliente_elegivel(depois, cliente(2, date(2025, 6, 5)), HOJE)


def test_filtro_hoje_e_ontem_em_carteira_de_dez():
    vencimentos = [
        date(2025, 6, 10), date(2025, 6, 10), date(2025, 6, 9),
        date(2025, 6, 30), date(2025, 6, 13), date(2025, 6, 12), date(2025, 6, 11),
        date(2025, 6, 8), date(2025, 6, 1), date(2025, 7, 15),
    ]
    clientes = [cliente(i, v) for i, v in enumerate(vencimentos, start=1)]
    regra = RegraCobranca(filtro_status=['today', 'post1'])
    assert [c.id for c in filtrar_clientes(regra, clientes, HOJE)] == [1, 2, 3]
