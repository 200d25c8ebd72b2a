"""
schemas.py

Modelos Pydantic usados nas requisições e respostas da API.
São independentes dos modelos ORM e das dataclasses do painel,
mas compatíveis para conversão via from_attributes.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from cold_chain_monitor.core.classifier import DeviceCategory


class DispositivoOut(BaseModel):
    """
    Representa um dispositivo retornado pela API.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    location: str
    owner_id: Optional[str] = None
    category: DeviceCategory


class RegistroOut(BaseModel):
    """
    Registro de temperatura sem o dispositivo embutido.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    device_id: str
    temperature: float
    timestamp: datetime
    breach: bool
    acknowledged: bool


class PainelEntradaOut(RegistroOut):
    """
    Entrada do painel: registro + dispositivo embutido.
    """

    device: DispositivoOut


class ResumoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_logs: int
    breaches: int
    acknowledged_breaches: int
    unacknowledged_breaches: int


class LeituraIn(BaseModel):
    """
    Leitura enviada para ingestão via HTTP.
    Sem timestamp, vale o instante do recebimento.
    """

    device_id: str = Field(..., min_length=1)
    temperature: float = Field(..., allow_inf_nan=False)
    timestamp: Optional[datetime] = None
