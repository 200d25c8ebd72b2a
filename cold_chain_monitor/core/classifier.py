"""
classifier.py

Classificador de violações (breach) de temperatura.

Única regra de negócio "de verdade" do sistema: dado um dispositivo
(categoria) e uma leitura em °C, decide se a leitura é uma violação.

Regras por categoria:

    TRANSPORT  -> violação se temperatura > 8
    FRIDGE     -> violação se temperatura > 8
    FREEZER    -> nunca viola

Funções puras: sem I/O, sem aleatoriedade, sem mutação.
"""

import enum
from typing import Dict, Tuple

# Limite superior (°C) acima do qual geladeiras e caixas de transporte violam.
BREACH_UPPER_LIMIT = 8.0


class DeviceCategory(str, enum.Enum):
    TRANSPORT = "TRANSPORT"
    FREEZER = "FREEZER"
    FRIDGE = "FRIDGE"


# Faixas nominais usadas apenas pelo gerador de dados simulados.
NOMINAL_BANDS: Dict[DeviceCategory, Tuple[float, float]] = {
    DeviceCategory.TRANSPORT: (2.0, 10.0),
    DeviceCategory.FREEZER: (-20.0, -15.0),
    DeviceCategory.FRIDGE: (2.0, 6.0),
}


def infer_category(name: str) -> DeviceCategory:
    """
    Deduz a categoria a partir do nome do dispositivo.

    Busca por substring, sensível a maiúsculas, primeira regra que casar:
    "Transport" -> TRANSPORT, "Freezer" -> FREEZER, senão FRIDGE.

    Usada só no cadastro/importação de um dispositivo sem categoria
    explícita; a classificação em tempo de execução lê a categoria gravada.
    """
    if "Transport" in name:
        return DeviceCategory.TRANSPORT
    if "Freezer" in name:
        return DeviceCategory.FREEZER
    return DeviceCategory.FRIDGE


def is_breach(category: DeviceCategory, temperature: float) -> bool:
    # FREEZER não tem predicado de violação (comportamento observado, em aberto)
    if category == DeviceCategory.FREEZER:
        return False
    return temperature > BREACH_UPPER_LIMIT


def classify(device, temperature: float) -> bool:
    """
    Classifica uma leitura para `device` (qualquer objeto com `.category`).
    """
    return is_breach(DeviceCategory(device.category), temperature)
