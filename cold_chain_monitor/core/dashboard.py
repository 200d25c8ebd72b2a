"""
dashboard.py

Modelo de leitura do painel: junta registros e dispositivos em uma única
visão, ordenada do registro mais recente para o mais antigo.

Cada entrada leva os dados do dispositivo embutidos (desnormalizados
para quem consome a visão, não para armazenamento).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from cold_chain_monitor.core.classifier import DeviceCategory
from cold_chain_monitor.database.modelagem_banco import Device, TemperatureLog
from cold_chain_monitor.database.repositorio import TemperatureLogStore


@dataclass(frozen=True)
class DeviceView:
    id: str
    name: str
    location: str
    owner_id: Optional[str]
    category: DeviceCategory

    @classmethod
    def from_device(cls, device: Device) -> "DeviceView":
        return cls(
            id=device.id,
            name=device.name,
            location=device.location,
            owner_id=device.owner_id,
            category=DeviceCategory(device.category),
        )


@dataclass(frozen=True)
class DashboardEntry:
    id: str
    device_id: str
    temperature: float
    timestamp: datetime
    breach: bool
    acknowledged: bool
    device: DeviceView

    @classmethod
    def from_row(cls, log: TemperatureLog, device: Device) -> "DashboardEntry":
        return cls(
            id=log.id,
            device_id=log.device_id,
            temperature=log.temperature,
            timestamp=log.timestamp,
            breach=log.breach,
            acknowledged=log.acknowledged,
            device=DeviceView.from_device(device),
        )


@dataclass(frozen=True)
class DashboardSummary:
    total_logs: int
    breaches: int
    acknowledged_breaches: int
    unacknowledged_breaches: int


class DashboardReadModel:
    def __init__(self, store: TemperatureLogStore):
        self.store = store

    def snapshot(self) -> List[DashboardEntry]:
        """Visão completa e atual, sem paginação."""
        return [DashboardEntry.from_row(log, device) for log, device in self.store.query_logs()]

    def summary(self) -> DashboardSummary:
        return summarize(self.snapshot())


def summarize(entries) -> DashboardSummary:
    """Contagens de violações; aceita qualquer iterável com `.breach`/`.acknowledged`."""
    total = breaches = acknowledged = 0
    for entry in entries:
        total += 1
        if entry.breach:
            breaches += 1
            if entry.acknowledged:
                acknowledged += 1
    return DashboardSummary(
        total_logs=total,
        breaches=breaches,
        acknowledged_breaches=acknowledged,
        unacknowledged_breaches=breaches - acknowledged,
    )
