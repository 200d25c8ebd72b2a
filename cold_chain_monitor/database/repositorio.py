"""
repositorio.py

Camada de acesso a dados (Repository) para Device e TemperatureLog.

Objetivos:
- Isolar a lógica de persistência (inserts, batch, tratamento de erro).
- Receber a fábrica de sessões explicitamente (sem conexão global),
  o que facilita testes com banco em memória.
- Traduzir falhas do SQLAlchemy para as exceções do domínio
  (StoreUnavailable, ValidationError, NotFound).
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from cold_chain_monitor.config.settings import settings
from cold_chain_monitor.core.classifier import DeviceCategory, infer_category
from cold_chain_monitor.core.errors import NotFound, StoreUnavailable, ValidationError
from cold_chain_monitor.database.modelagem_banco import Device, TemperatureLog
from cold_chain_monitor.utils.logger import get_logger

logger = get_logger(__name__)


# --------------------------------------------------------------------
# Registro de dispositivos
# --------------------------------------------------------------------


class DeviceRegistry:
    """
    Repositório de dispositivos: consulta por id e listagem.

    O cadastro (`register_device`) é operação administrativa/seed;
    depois de criado, o dispositivo é somente leitura neste núcleo.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_device(self, device_id: str) -> Device:
        sessao = self._session_factory()
        try:
            device = sessao.get(Device, device_id)
        except SQLAlchemyError as exc:
            logger.error(
                "Erro ao buscar dispositivo",
                exc_info=True,
                extra={"device_id": device_id, "operation": "get_device"},
            )
            raise StoreUnavailable("get_device", str(exc)) from exc
        finally:
            sessao.close()

        if device is None:
            raise NotFound("Device", device_id)
        return device

    def list_devices(self) -> List[Device]:
        sessao = self._session_factory()
        try:
            stmt = select(Device).order_by(Device.name)
            return list(sessao.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            logger.error(
                "Erro ao listar dispositivos",
                exc_info=True,
                extra={"operation": "list_devices"},
            )
            raise StoreUnavailable("list_devices", str(exc)) from exc
        finally:
            sessao.close()

    def register_device(
        self,
        name: str,
        location: str = "",
        owner_id: Optional[str] = None,
        category: Optional[DeviceCategory] = None,
    ) -> Device:
        """
        Cadastra um dispositivo.

        Sem `category` explícita, a categoria é deduzida do nome uma única
        vez (heurística de importação) e fica gravada.
        """
        if not name or not name.strip():
            raise ValidationError("nome do dispositivo é obrigatório")

        device = Device(
            name=name,
            location=location,
            owner_id=owner_id,
            category=category if category is not None else infer_category(name),
        )

        sessao = self._session_factory()
        try:
            sessao.add(device)
            sessao.commit()
        except SQLAlchemyError as exc:
            sessao.rollback()
            logger.error(
                "Erro ao cadastrar dispositivo",
                exc_info=True,
                extra={"operation": "register_device"},
            )
            raise StoreUnavailable("register_device", str(exc)) from exc
        finally:
            sessao.close()

        logger.info(
            "Dispositivo cadastrado: %s (%s)",
            device.name,
            device.category.value,
            extra={"device_id": device.id},
        )
        return device


# --------------------------------------------------------------------
# Registros de temperatura
# --------------------------------------------------------------------


@dataclass
class ChunkFailure:
    """
    Lote que não foi gravado.

    `retryable` é True para falha do banco (StoreUnavailable) e False para
    dados rejeitados (ValidationError, ex.: device_id inexistente), que
    falhariam de novo em qualquer nova tentativa.
    """

    index: int
    size: int
    error: str
    retryable: bool = True
    logs: List[TemperatureLog] = field(default_factory=list, repr=False)


@dataclass
class BatchReport:
    """
    Resultado de uma gravação em lotes.

    Cada lote é gravado inteiro ou não é gravado; o relatório diz quais
    passaram e quais falharam (com os registros, para nova tentativa).
    """

    succeeded: List[int] = field(default_factory=list)
    failed: List[ChunkFailure] = field(default_factory=list)
    saved: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def total_chunks(self) -> int:
        return len(self.succeeded) + len(self.failed)

    def failed_logs(self) -> List[TemperatureLog]:
        return [log for falha in self.failed for log in falha.logs]

    def retryable_logs(self) -> List[TemperatureLog]:
        return [log for falha in self.failed if falha.retryable for log in falha.logs]

    def rejected(self) -> List[ChunkFailure]:
        return [falha for falha in self.failed if not falha.retryable]


class TemperatureLogStore:
    """
    Repositório dos registros de temperatura já classificados.

    Somente inclusão: nenhum registro é apagado, e o único campo
    alterável depois da criação é `acknowledged`.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    # ---------------- GRAVAÇÃO ---------------- #

    def append(self, log: TemperatureLog) -> None:
        self._gravar([log], operation="append")

    def append_batch(
        self,
        logs: Iterable[TemperatureLog],
        batch_size: Optional[int] = None,
    ) -> BatchReport:
        """
        Grava os registros em lotes de no máximo `batch_size`.

        Parâmetros:
            logs: coleção (lista, tupla, gerador) de TemperatureLog.
            batch_size: tamanho do lote; padrão settings.BATCH_SIZE.

        Retorna:
            BatchReport com os lotes gravados e os que falharam.

        Comportamento:
            - Uma transação por lote (commit ou rollback do lote inteiro).
            - Falha em um lote não interrompe os seguintes.
            - Nada é descartado em silêncio: os lotes com falha ficam no relatório.
        """
        tamanho = settings.BATCH_SIZE if batch_size is None else batch_size
        if tamanho <= 0:
            raise ValidationError("batch_size deve ser maior que zero")

        logs = list(logs)  # garante que podemos fatiar
        relatorio = BatchReport()

        for indice, inicio in enumerate(range(0, len(logs), tamanho)):
            lote = logs[inicio:inicio + tamanho]
            try:
                self._gravar(lote, operation="append_batch")
            except (StoreUnavailable, ValidationError) as exc:
                relatorio.failed.append(
                    ChunkFailure(
                        index=indice,
                        size=len(lote),
                        error=str(exc),
                        retryable=isinstance(exc, StoreUnavailable),
                        logs=lote,
                    )
                )
                continue
            relatorio.succeeded.append(indice)
            relatorio.saved += len(lote)
            logger.debug(
                "Lote gravado",
                extra={"chunk": indice, "row_count": len(lote)},
            )

        if relatorio.failed:
            logger.warning(
                "%s de %s lotes falharam ao gravar registros de temperatura.",
                len(relatorio.failed),
                relatorio.total_chunks,
            )
        return relatorio

    def _gravar(self, logs: List[TemperatureLog], operation: str) -> None:
        if not logs:
            return

        sessao = self._session_factory()
        try:
            sessao.add_all(logs)
            sessao.commit()
        except IntegrityError as exc:
            sessao.rollback()
            logger.warning(
                "Registro rejeitado pelo banco (dispositivo inexistente?)",
                extra={"operation": operation, "row_count": len(logs)},
            )
            raise ValidationError(f"registro inválido: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            sessao.rollback()
            logger.error(
                "Erro ao gravar registros de temperatura",
                exc_info=True,
                extra={"operation": operation, "row_count": len(logs)},
            )
            raise StoreUnavailable(operation, str(exc)) from exc
        finally:
            sessao.close()

    # ---------------- LEITURA ---------------- #

    def query_logs(self) -> List[Tuple[TemperatureLog, Device]]:
        """
        Todos os registros com o dispositivo correspondente, do mais recente
        para o mais antigo. Empates de timestamp são desfeitos pelo id.
        """
        stmt = (
            select(TemperatureLog, Device)
            .join(Device, TemperatureLog.device_id == Device.id)
            .order_by(TemperatureLog.timestamp.desc(), TemperatureLog.id.desc())
        )
        return self._consultar(stmt, operation="query_logs")

    def query_logs_by_device(
        self,
        device_id: str,
        limit: Optional[int] = None,
    ) -> List[Tuple[TemperatureLog, Device]]:
        """
        Registros de um dispositivo específico, mesma ordenação de query_logs.
        """
        stmt = (
            select(TemperatureLog, Device)
            .join(Device, TemperatureLog.device_id == Device.id)
            .where(TemperatureLog.device_id == device_id)
            .order_by(TemperatureLog.timestamp.desc(), TemperatureLog.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return self._consultar(stmt, operation="query_logs_by_device")

    def _consultar(self, stmt, operation: str) -> List[Tuple[TemperatureLog, Device]]:
        sessao = self._session_factory()
        try:
            return [tuple(row) for row in sessao.execute(stmt).all()]
        except SQLAlchemyError as exc:
            logger.error(
                "Erro ao consultar registros de temperatura",
                exc_info=True,
                extra={"operation": operation},
            )
            raise StoreUnavailable(operation, str(exc)) from exc
        finally:
            sessao.close()

    def get_log(self, log_id: str) -> TemperatureLog:
        sessao = self._session_factory()
        try:
            log = sessao.get(TemperatureLog, log_id)
        except SQLAlchemyError as exc:
            logger.error(
                "Erro ao buscar registro de temperatura",
                exc_info=True,
                extra={"log_id": log_id, "operation": "get_log"},
            )
            raise StoreUnavailable("get_log", str(exc)) from exc
        finally:
            sessao.close()

        if log is None:
            raise NotFound("TemperatureLog", log_id)
        return log

    # ---------------- RECONHECIMENTO ---------------- #

    def set_acknowledged(self, log_id: str, value: bool = True) -> None:
        """
        Marca o registro como reconhecido.

        Idempotente: reconhecer de novo não é erro. A escrita é sempre
        `acknowledged = true`, então tentativas concorrentes convergem.
        Não existe caminho para voltar a False.
        """
        if value is not True:
            raise ValidationError("reconhecimento não pode ser desfeito")

        sessao = self._session_factory()
        try:
            existe = sessao.execute(
                select(TemperatureLog.id).where(TemperatureLog.id == log_id)
            ).first()
            if existe is None:
                raise NotFound("TemperatureLog", log_id)

            sessao.execute(
                update(TemperatureLog)
                .where(TemperatureLog.id == log_id)
                .values(acknowledged=True)
            )
            sessao.commit()
        except SQLAlchemyError as exc:
            sessao.rollback()
            logger.error(
                "Erro ao reconhecer registro",
                exc_info=True,
                extra={"log_id": log_id, "operation": "set_acknowledged"},
            )
            raise StoreUnavailable("set_acknowledged", str(exc)) from exc
        finally:
            sessao.close()
