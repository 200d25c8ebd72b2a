"""
seed.py

Gerador de dados simulados do cold-chain-monitor.

Responsável por:
- Cadastrar os dispositivos de exemplo.
- Gerar uma leitura por hora, para trás a partir de agora, usando as faixas
  nominais de cada categoria.
- Injetar violações aleatórias (chance fixa de forçar a leitura para 8-13 °C)
  e marcar parte das violações como já reconhecidas.
- Gravar tudo em lotes de settings.BATCH_SIZE.

Serve só para popular bancos de desenvolvimento e testes. A aleatoriedade
fica toda aqui; o classificador continua determinístico.

Uso:

    python -m cold_chain_monitor.seeding.seed
"""

import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from cold_chain_monitor.config.settings import settings
from cold_chain_monitor.core.classifier import NOMINAL_BANDS, DeviceCategory, classify
from cold_chain_monitor.core.dashboard import summarize
from cold_chain_monitor.database.modelagem_banco import (
    Device,
    TemperatureLog,
    criar_engine,
    criar_fabrica_sessao,
    inicializar_banco,
)
from cold_chain_monitor.database.repositorio import DeviceRegistry, TemperatureLogStore
from cold_chain_monitor.utils.logger import get_logger

logger = get_logger(__name__)

SAMPLE_DEVICES = [
    {"name": "Vaccine Fridge A", "location": "Hospital Main Building - Floor 2"},
    {"name": "Vaccine Fridge B", "location": "Hospital Main Building - Floor 3"},
    {"name": "Transport Cooler 1", "location": "Mobile Unit - Route A"},
    {"name": "Storage Freezer X", "location": "Warehouse - Cold Storage"},
    {"name": "Backup Fridge C", "location": "Emergency Storage - Basement"},
]

# Faixa para onde uma violação injetada é empurrada
INJECTED_BREACH_BAND = (8.0, 13.0)


@dataclass
class SeedReport:
    devices: int = 0
    logs: int = 0
    breaches: int = 0
    acknowledged: int = 0
    failed_chunks: int = 0

    @property
    def unacknowledged(self) -> int:
        return self.breaches - self.acknowledged


def generate_temperature_logs(
    device: Device,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    hours: Optional[int] = None,
    breach_probability: Optional[float] = None,
    ack_probability: Optional[float] = None,
) -> List[TemperatureLog]:
    """
    Gera `hours` leituras (uma por hora, da mais recente para a mais antiga).

    Para cada hora:
    - temperatura uniforme na faixa nominal da categoria, com uma casa decimal;
    - breach definido pelo classificador sobre o valor arredondado;
    - com `breach_probability`, a leitura é forçada para 8-13 °C e marcada
      como violação, independentemente da categoria;
    - violações ficam reconhecidas com `ack_probability`.
    """
    rng = rng or random.Random()
    now = now or datetime.now(tz=timezone.utc)
    hours = settings.SEED_HISTORY_HOURS if hours is None else hours
    breach_probability = (
        settings.SEED_BREACH_PROBABILITY if breach_probability is None else breach_probability
    )
    ack_probability = settings.SEED_ACK_PROBABILITY if ack_probability is None else ack_probability

    baixo, alto = NOMINAL_BANDS[DeviceCategory(device.category)]
    logs = []

    for i in range(hours):
        timestamp = now - timedelta(hours=i)

        temperature = round(rng.uniform(baixo, alto), 1)
        breach = classify(device, temperature)

        # Violações aleatórias para teste
        if rng.random() < breach_probability:
            temperature = round(rng.uniform(*INJECTED_BREACH_BAND), 1)
            breach = True

        logs.append(
            TemperatureLog(
                device_id=device.id,
                temperature=temperature,
                timestamp=timestamp,
                breach=breach,
                acknowledged=breach and rng.random() < ack_probability,
            )
        )

    return logs


def seed_data(
    registry: DeviceRegistry,
    store: TemperatureLogStore,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
    hours: Optional[int] = None,
) -> SeedReport:
    """
    Cadastra os dispositivos de exemplo e grava o histórico simulado.

    Lotes que falharem são contados no relatório e registrados no log;
    os demais lotes seguem sendo gravados.
    """
    rng = rng or random.Random()
    now = now or datetime.now(tz=timezone.utc)
    relatorio = SeedReport()

    logger.info("Cadastrando dispositivos...")
    devices = [registry.register_device(**dados) for dados in SAMPLE_DEVICES]
    relatorio.devices = len(devices)

    logger.info("Gerando registros de temperatura...")
    todos: List[TemperatureLog] = []
    for device in devices:
        todos.extend(generate_temperature_logs(device, now=now, rng=rng, hours=hours))

    gravacao = store.append_batch(todos, batch_size=settings.BATCH_SIZE)
    for falha in gravacao.failed:
        logger.error(
            "Lote %s não foi gravado: %s",
            falha.index + 1,
            falha.error,
            extra={"chunk": falha.index, "row_count": falha.size},
        )
    logger.info(
        "Lotes gravados: %s/%s",
        len(gravacao.succeeded),
        gravacao.total_chunks,
    )

    falhos = {id(log) for log in gravacao.failed_logs()}
    resumo = summarize(log for log in todos if id(log) not in falhos)
    relatorio.logs = resumo.total_logs
    relatorio.breaches = resumo.breaches
    relatorio.acknowledged = resumo.acknowledged_breaches
    relatorio.failed_chunks = len(gravacao.failed)

    logger.info(
        "Seed concluído: %s registros, %s violações (%s reconhecidas, %s pendentes).",
        relatorio.logs,
        relatorio.breaches,
        relatorio.acknowledged,
        relatorio.unacknowledged,
    )
    return relatorio


def run_seed():
    engine = criar_engine(settings.DB_URL)
    inicializar_banco(engine)
    fabrica = criar_fabrica_sessao(engine)

    seed_data(DeviceRegistry(fabrica), TemperatureLogStore(fabrica))


if __name__ == "__main__":
    run_seed()
