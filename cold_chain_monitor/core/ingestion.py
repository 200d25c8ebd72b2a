"""
ingestion.py

Ingestão de leituras de temperatura.

Fluxo: leitura bruta -> validação -> busca do dispositivo -> classificador
-> registro gravado no TemperatureLogStore.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from numbers import Real
from typing import Iterable, List, Optional

from cold_chain_monitor.core.classifier import classify
from cold_chain_monitor.core.errors import ValidationError
from cold_chain_monitor.database.modelagem_banco import TemperatureLog, para_utc
from cold_chain_monitor.database.repositorio import (
    BatchReport,
    DeviceRegistry,
    TemperatureLogStore,
)
from cold_chain_monitor.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Reading:
    """Uma leitura bruta, ainda não classificada."""

    device_id: str
    temperature: float
    timestamp: Optional[datetime] = None


class ReadingIngestor:
    def __init__(self, registry: DeviceRegistry, store: TemperatureLogStore):
        self.registry = registry
        self.store = store

    def build_log(
        self,
        device_id: str,
        temperature: float,
        timestamp: Optional[datetime] = None,
    ) -> TemperatureLog:
        """
        Valida e classifica uma leitura, devolvendo um TemperatureLog
        ainda não gravado.

        Levanta:
            ValidationError: device_id vazio, temperatura não numérica ou
                não finita, timestamp que não é datetime.

        O timestamp devolvido está sempre em UTC; datetime sem fuso é
        interpretado como UTC.
            NotFound: dispositivo inexistente.
        """
        if not device_id:
            raise ValidationError("device_id é obrigatório")

        if isinstance(temperature, bool) or not isinstance(temperature, Real):
            raise ValidationError(f"temperatura inválida: {temperature!r}")
        if not math.isfinite(temperature):
            raise ValidationError(f"temperatura não finita: {temperature!r}")

        if timestamp is None:
            timestamp = datetime.now(tz=timezone.utc)
        elif not isinstance(timestamp, datetime):
            raise ValidationError(f"timestamp inválido: {timestamp!r}")
        else:
            # Offsets viram UTC; sem fuso é tratado como UTC
            timestamp = para_utc(timestamp)

        device = self.registry.get_device(device_id)
        breach = classify(device, float(temperature))

        if breach:
            logger.info(
                "Violação detectada: %.1f °C em %s",
                temperature,
                device.name,
                extra={"device_id": device_id},
            )

        return TemperatureLog(
            device_id=device.id,
            temperature=float(temperature),
            timestamp=timestamp,
            breach=breach,
            acknowledged=False,
        )

    def ingest(
        self,
        device_id: str,
        temperature: float,
        timestamp: Optional[datetime] = None,
    ) -> TemperatureLog:
        log = self.build_log(device_id, temperature, timestamp)
        self.store.append(log)
        return log

    def ingest_batch(
        self,
        readings: Iterable[Reading],
        batch_size: Optional[int] = None,
    ) -> BatchReport:
        """
        Ingestão em massa (ex.: carga de histórico).

        Todas as leituras são validadas antes da primeira gravação; a primeira
        inválida interrompe a carga. A gravação é feita em lotes e o relatório
        indica quais lotes foram gravados e quais falharam.
        """
        logs: List[TemperatureLog] = [
            self.build_log(r.device_id, r.temperature, r.timestamp) for r in readings
        ]
        relatorio = self.store.append_batch(logs, batch_size=batch_size)
        logger.info(
            "Ingestão em lote: %s registros gravados em %s/%s lotes.",
            relatorio.saved,
            len(relatorio.succeeded),
            relatorio.total_chunks,
        )
        return relatorio
