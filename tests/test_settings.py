"""
Testes da configuração (variáveis de ambiente sobrescrevem os padrões).
"""

import pytest
from pydantic import ValidationError

from cold_chain_monitor.config.settings import Settings


def test_valores_padrao(monkeypatch):
    for nome in ("DB_URL", "BATCH_SIZE", "LOG_LEVEL", "SEED_BREACH_PROBABILITY"):
        monkeypatch.delenv(nome, raising=False)

    s = Settings(_env_file=None)

    assert s.DB_URL == "sqlite:///cold_chain.db"
    assert s.BATCH_SIZE == 100
    assert s.SEED_HISTORY_HOURS == 168
    assert s.SEED_BREACH_PROBABILITY == 0.05
    assert s.SEED_ACK_PROBABILITY == 0.3
    assert s.LOG_LEVEL == "INFO"


def test_variaveis_de_ambiente_sobrescrevem(monkeypatch):
    monkeypatch.setenv("DB_URL", "sqlite:///:memory:")
    monkeypatch.setenv("BATCH_SIZE", "25")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_JSON", "true")

    s = Settings(_env_file=None)

    assert s.DB_URL == "sqlite:///:memory:"
    assert s.BATCH_SIZE == 25
    assert s.LOG_LEVEL == "DEBUG"
    assert s.LOG_JSON is True


def test_log_level_invalido_cai_para_info(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "barulhento")

    assert Settings(_env_file=None).LOG_LEVEL == "INFO"


@pytest.mark.parametrize(
    "nome, valor",
    [("BATCH_SIZE", "0"), ("SEED_ACK_PROBABILITY", "1.5"), ("SEED_BREACH_PROBABILITY", "-0.1")],
)
def test_valores_invalidos(monkeypatch, nome, valor):
    monkeypatch.setenv(nome, valor)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
