"""
acknowledgment.py

Fluxo de reconhecimento (acknowledgment) de violações.

Máquina de estados por registro:

    UNACKNOWLEDGED --acknowledge(log_id)--> ACKNOWLEDGED (terminal)

Política para registros sem violação: o reconhecimento é rejeitado
com ValidationError (não há o que reconhecer).
"""

import enum

from cold_chain_monitor.core.errors import ValidationError
from cold_chain_monitor.database.modelagem_banco import TemperatureLog
from cold_chain_monitor.database.repositorio import TemperatureLogStore
from cold_chain_monitor.utils.logger import get_logger

logger = get_logger(__name__)


class AckState(str, enum.Enum):
    UNACKNOWLEDGED = "UNACKNOWLEDGED"
    ACKNOWLEDGED = "ACKNOWLEDGED"


def state_of(log: TemperatureLog) -> AckState:
    return AckState.ACKNOWLEDGED if log.acknowledged else AckState.UNACKNOWLEDGED


class AcknowledgmentWorkflow:
    def __init__(self, store: TemperatureLogStore):
        self.store = store

    def acknowledge(self, log_id: str) -> TemperatureLog:
        """
        Marca a violação `log_id` como tratada e devolve o registro atualizado.

        - Registro inexistente: NotFound.
        - Registro sem violação: ValidationError.
        - Já reconhecido: nada muda, devolve o registro (idempotente).
        """
        log = self.store.get_log(log_id)

        if not log.breach:
            logger.warning(
                "Reconhecimento recusado: registro não é violação.",
                extra={"log_id": log_id, "reason": "not_a_breach"},
            )
            raise ValidationError(f"registro {log_id} não é uma violação")

        if state_of(log) is AckState.ACKNOWLEDGED:
            logger.debug("Registro já reconhecido.", extra={"log_id": log_id})
            return log

        self.store.set_acknowledged(log_id)
        logger.info("Violação reconhecida.", extra={"log_id": log_id})
        return self.store.get_log(log_id)
