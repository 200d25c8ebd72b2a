"""
test_repositorio.py

Testes do DeviceRegistry e do TemperatureLogStore.

Objetivos:
- Cadastro e consulta de dispositivos (categoria gravada, NotFound).
- append + query_logs: junção com o dispositivo e ordem decrescente de timestamp.
- append_batch em lotes, com relatório de lotes gravados e com falha.
- set_acknowledged idempotente e sem volta.
- Falhas do banco viram StoreUnavailable (nunca lista vazia).
"""

import pytest

from cold_chain_monitor.core.classifier import DeviceCategory
from cold_chain_monitor.core.errors import NotFound, StoreUnavailable, ValidationError
from cold_chain_monitor.database.modelagem_banco import Base, TemperatureLog
from cold_chain_monitor.database.repositorio import DeviceRegistry, TemperatureLogStore

# ---------------- DISPOSITIVOS ---------------- #


def test_register_device_deduz_categoria_do_nome(registry):
    device = registry.register_device("Transport Cooler 1", "Mobile Unit - Route A")

    assert device.id
    assert device.category is DeviceCategory.TRANSPORT

    salvo = registry.get_device(device.id)
    assert salvo.name == "Transport Cooler 1"
    assert salvo.location == "Mobile Unit - Route A"
    assert salvo.category is DeviceCategory.TRANSPORT


def test_register_device_categoria_explicita_prevalece(registry):
    device = registry.register_device(
        "Cold Box 7",
        "Route B",
        owner_id="owner-9",
        category=DeviceCategory.TRANSPORT,
    )

    salvo = registry.get_device(device.id)
    assert salvo.category is DeviceCategory.TRANSPORT
    assert salvo.owner_id == "owner-9"


def test_register_device_sem_nome(registry):
    with pytest.raises(ValidationError):
        registry.register_device("   ", "lugar nenhum")


def test_get_device_inexistente(registry):
    with pytest.raises(NotFound) as exc_info:
        registry.get_device("nao-existe")

    assert exc_info.value.entity == "Device"
    assert exc_info.value.key == "nao-existe"


def test_list_devices(registry, fridge, transport, freezer):
    nomes = {d.name for d in registry.list_devices()}

    assert nomes == {"Vaccine Fridge A", "Transport Cooler 1", "Storage Freezer X"}


# ---------------- GRAVAÇÃO E LEITURA ---------------- #


def test_append_e_query_logs_com_juncao(store, fridge, transport, make_log):
    log = make_log(fridge, 5.0)
    store.append(log)

    linhas = store.query_logs()

    assert len(linhas) == 1
    registro, device = linhas[0]
    assert registro.id == log.id
    assert registro.temperature == 5.0
    assert registro.acknowledged is False
    assert device.id == fridge.id
    assert device.name == "Vaccine Fridge A"


def test_query_logs_ordena_do_mais_recente(store, fridge, transport, make_log):
    # gravados fora de ordem de propósito
    horas = [5, 0, 12, 3, 7]
    logs = [make_log(fridge if h % 2 else transport, 4.0, hours_ago=h) for h in horas]
    for log in logs:
        store.append(log)

    linhas = store.query_logs()
    timestamps = [registro.timestamp for registro, _ in linhas]

    assert len(linhas) == len(horas)
    assert all(a > b for a, b in zip(timestamps, timestamps[1:]))
    # cada registro junto com o seu próprio dispositivo
    for registro, device in linhas:
        assert registro.device_id == device.id


def test_query_logs_empate_de_timestamp_e_deterministico(store, fridge, make_log):
    for _ in range(4):
        store.append(make_log(fridge, 4.0, hours_ago=1))

    primeira = [registro.id for registro, _ in store.query_logs()]
    segunda = [registro.id for registro, _ in store.query_logs()]

    assert primeira == segunda
    assert primeira == sorted(primeira, reverse=True)


def test_query_logs_by_device(store, fridge, transport, make_log):
    for h in range(3):
        store.append(make_log(fridge, 4.0, hours_ago=h))
    store.append(make_log(transport, 9.0, hours_ago=1, breach=True))

    linhas = store.query_logs_by_device(fridge.id)
    assert len(linhas) == 3
    assert {device.id for _, device in linhas} == {fridge.id}

    limitadas = store.query_logs_by_device(fridge.id, limit=2)
    assert [r.id for r, _ in limitadas] == [r.id for r, _ in linhas[:2]]


def test_get_log_inexistente(store):
    with pytest.raises(NotFound):
        store.get_log("nao-existe")


def test_append_de_dispositivo_inexistente_e_rejeitado(store, fridge, make_log):
    orfao = make_log(fridge, 4.0)
    orfao.device_id = "dispositivo-fantasma"

    with pytest.raises(ValidationError):
        store.append(orfao)

    assert store.query_logs() == []


# ---------------- BATCH ---------------- #


def test_append_batch_em_lotes(store, fridge, make_log):
    logs = [make_log(fridge, 4.0, hours_ago=h) for h in range(25)]

    relatorio = store.append_batch(logs, batch_size=10)

    assert relatorio.ok
    assert relatorio.succeeded == [0, 1, 2]
    assert relatorio.saved == 25
    assert len(store.query_logs()) == 25


def test_append_batch_lista_vazia(store):
    relatorio = store.append_batch([], batch_size=10)

    assert relatorio.ok
    assert relatorio.total_chunks == 0
    assert relatorio.saved == 0


def test_append_batch_reporta_lote_com_falha(store, fridge, make_log):
    logs = [make_log(fridge, 4.0, hours_ago=h) for h in range(6)]
    # um registro inválido no segundo lote derruba só aquele lote
    logs[4].device_id = "dispositivo-fantasma"

    relatorio = store.append_batch(logs, batch_size=3)

    assert not relatorio.ok
    assert relatorio.succeeded == [0]
    assert [f.index for f in relatorio.failed] == [1]
    assert relatorio.failed[0].size == 3
    assert relatorio.saved == 3
    assert len(relatorio.failed_logs()) == 3
    # o lote com falha não foi gravado pela metade
    assert len(store.query_logs()) == 3


def test_append_batch_tamanho_invalido(store):
    with pytest.raises(ValidationError):
        store.append_batch([], batch_size=-1)


def test_append_batch_tamanho_zero_e_rejeitado(store, fridge, make_log):
    with pytest.raises(ValidationError):
        store.append_batch([make_log(fridge, 4.0)], batch_size=0)

    assert store.query_logs() == []


# ---------------- RECONHECIMENTO ---------------- #


def test_set_acknowledged_idempotente(store, fridge, make_log):
    log = make_log(fridge, 9.5, breach=True)
    store.append(log)

    store.set_acknowledged(log.id)
    store.set_acknowledged(log.id)

    assert store.get_log(log.id).acknowledged is True


def test_set_acknowledged_nao_volta_para_false(store, fridge, make_log):
    log = make_log(fridge, 9.5, breach=True)
    store.append(log)
    store.set_acknowledged(log.id)

    with pytest.raises(ValidationError):
        store.set_acknowledged(log.id, value=False)

    assert store.get_log(log.id).acknowledged is True


def test_set_acknowledged_inexistente(store):
    with pytest.raises(NotFound):
        store.set_acknowledged("nao-existe")


# ---------------- FALHAS DO BANCO ---------------- #


def test_banco_indisponivel_vira_store_unavailable(engine, session_factory, fridge, make_log):
    store = TemperatureLogStore(session_factory)
    registry = DeviceRegistry(session_factory)
    log = make_log(fridge, 4.0)

    Base.metadata.drop_all(engine)

    with pytest.raises(StoreUnavailable) as exc_info:
        store.query_logs()
    assert exc_info.value.operation == "query_logs"

    with pytest.raises(StoreUnavailable):
        store.append(log)

    with pytest.raises(StoreUnavailable):
        registry.list_devices()


def test_append_batch_com_banco_indisponivel_reporta_todos_os_lotes(
    engine, store, fridge, make_log
):
    logs = [make_log(fridge, 4.0, hours_ago=h) for h in range(4)]
    Base.metadata.drop_all(engine)

    relatorio = store.append_batch(logs, batch_size=2)

    assert relatorio.succeeded == []
    assert [f.index for f in relatorio.failed] == [0, 1]
    assert isinstance(relatorio.failed_logs()[0], TemperatureLog)


def test_append_batch_distingue_lote_rejeitado_de_banco_indisponivel(store, fridge, make_log):
    orfao = TemperatureLog(
        device_id="nao-existe",
        temperature=4.0,
        timestamp=make_log(fridge, 4.0).timestamp,
        breach=False,
        acknowledged=False,
    )

    relatorio = store.append_batch([orfao, make_log(fridge, 4.0, hours_ago=1)], batch_size=1)

    assert relatorio.succeeded == [1]
    assert [f.retryable for f in relatorio.failed] == [False]
    assert relatorio.retryable_logs() == []
    assert [f.index for f in relatorio.rejected()] == [0]
