import run


def test_gunicorn_com_um_worker():
    cmd = run.comando_gunicorn('8080')
    assert cmd[0] == 'gunicorn'
    assert cmd[cmd.index('--bind') + 1] == '0.0.0.0:8080'
    assert cmd[cmd.index('--workers') + 1] == '1'
    assert cmd[-1] == 'wsgi:app'


def test_deteccao_de_producao(monkeypatch):
    monkeypatch.delenv('PORT', raising=False)
    monkeypatch.delenv('ENVIRONMENT', raising=False)
    assert not run.em_producao()
    monkeypatch.setenv('PORT', '8080')
    assert run.em_producao()


def test_environment_production_sem_port(monkeypatch):
    monkeypatch.delenv('PORT', raising=False)
    monkeypatch.setenv('ENVIRONMENT', 'Production')
    assert run.em_producao()
    monkeypatch.setenv('ENVIRONMENT', 'staging')
    assert not run.em_producao()
