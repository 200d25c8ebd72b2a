"""
schemas.py

Schemas Pydantic para validação do payload MQTT de leituras.
Compatível com Pydantic v2.
"""

import math
from datetime import datetime, timezone

from pydantic import BaseModel, field_validator


class ReadingMessage(BaseModel):
    """
    Representa uma única leitura de temperatura recebida via MQTT.

    Compatível com o payload:

        {
          "timestamp": 1746085310003,
          "deviceId": "6f1c2a9e-0b7d-4d3e-9a51-2f4d8c7b1e00",
          "temperature": 5.4
        }
    """

    timestamp: int
    deviceId: str
    temperature: float

    @field_validator("temperature")
    def temperatura_finita(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("temperatura deve ser finita")
        return v

    def timestamp_utc(self) -> datetime:
        # epoch ms -> datetime UTC
        return datetime.fromtimestamp(self.timestamp / 1000.0, tz=timezone.utc)
