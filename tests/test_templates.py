from datetime import date

from models import Cliente
from templates import PLANO_PADRAO, TemplateManager


def ana(**campos):
    dados = dict(id=1, nome='Ana', telefone='5511988887777', plano='Premium',
                 vencimento=date(2025, 6, 12), valor=35.0, usuario='ana01', senha='x9')
    dados.update(campos)
    return Cliente(**dados)


def test_substitui_variaveis_do_envio_automatico():
    texto = TemplateManager().processar_template(
        "Oi {nome}, o plano {plano} vence em {vencimento}.", ana())
    assert texto == "Oi Ana, o plano Premium vence em 12/06/2025."


def test_plano_ausente_usa_padrao():
    texto = TemplateManager().processar_template("Plano: {plano}", ana(plano=None))
    assert texto == f"Plano: {PLANO_PADRAO}"


def test_variavel_repetida_e_toda_substituida():
    texto = TemplateManager().processar_template("{nome}! {nome}!", ana())
    assert texto == "Ana! Ana!"


def test_variaveis_extras_ficam_literais_no_envio_automatico():
    texto = TemplateManager().processar_template("{nome} {valor} {usuario}", ana())
    assert texto == "Ana {valor} {usuario}"


def test_modo_completo_substitui_extras():
    manager = TemplateManager({'pix_chave': 'pix@revenda.com'})
    texto = manager.processar_template("{valor} {usuario}/{senha} PIX {pix}", ana(), completo=True)
    assert texto == "R$ 35,00 ana01/x9 PIX pix@revenda.com"


def test_validar_template():
    manager = TemplateManager()
    assert manager.validar_template("Olá {nome}, vence {vencimento}") == []
    erros = manager.validar_template("Olá {cliente} {nome")
    assert "Variável desconhecida: {cliente}" in erros
    assert "Chaves desbalanceadas no template" in erros
