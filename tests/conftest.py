"""
conftest.py

Configuração de testes para o projeto cold-chain-monitor.

Aqui:
- Criamos um banco SQLite em memória novo para cada teste.
- Montamos a fábrica de sessões e os repositórios sobre esse banco.
- Nada depende de engine global: tudo é passado explicitamente.
"""

from datetime import datetime, timedelta, timezone

import pytest

from cold_chain_monitor.core.acknowledgment import AcknowledgmentWorkflow
from cold_chain_monitor.core.ingestion import ReadingIngestor
from cold_chain_monitor.database.modelagem_banco import (
    TemperatureLog,
    criar_engine,
    criar_fabrica_sessao,
    inicializar_banco,
)
from cold_chain_monitor.database.repositorio import DeviceRegistry, TemperatureLogStore

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    """
    Engine SQLite em memória (StaticPool), com as tabelas criadas.
    """
    engine = criar_engine("sqlite:///:memory:")
    inicializar_banco(engine)

    yield engine

    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return criar_fabrica_sessao(engine)


@pytest.fixture
def registry(session_factory):
    return DeviceRegistry(session_factory)


@pytest.fixture
def store(session_factory):
    return TemperatureLogStore(session_factory)


@pytest.fixture
def ingestor(registry, store):
    return ReadingIngestor(registry, store)


@pytest.fixture
def workflow(store):
    return AcknowledgmentWorkflow(store)


@pytest.fixture
def fridge(registry):
    return registry.register_device("Vaccine Fridge A", "Hospital Main Building - Floor 2", "owner-1")


@pytest.fixture
def transport(registry):
    return registry.register_device("Transport Cooler 1", "Mobile Unit - Route A", "owner-2")


@pytest.fixture
def freezer(registry):
    return registry.register_device("Storage Freezer X", "Warehouse - Cold Storage", "owner-1")


def _make_log(device, temperature, hours_ago=0, breach=False, acknowledged=False):
    """
    Cria um TemperatureLog não gravado, `hours_ago` horas antes de BASE_TIME.
    """
    return TemperatureLog(
        device_id=device.id,
        temperature=temperature,
        timestamp=BASE_TIME - timedelta(hours=hours_ago),
        breach=breach,
        acknowledged=acknowledged,
    )


@pytest.fixture
def make_log():
    return _make_log
