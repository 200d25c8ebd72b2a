"""
consumer.py

Consumer MQTT de leituras de temperatura.

Responsável por:
- Conectar ao broker MQTT e assinar settings.MQTT_TOPIC_ROOT.
- Receber mensagens com payload JSON (lista de leituras).
- Validar cada leitura (Pydantic), classificar via ReadingIngestor
  e acumular os registros em um buffer.
- Gravar o buffer em lotes; lotes com falha do banco são regravados com
  backoff exponencial e, se ainda falharem, ficam no buffer.

Cada leitura é classificada no momento em que chega; este consumer
não dispara alertas nem notificações.
"""

import json
import time
from typing import List

from paho.mqtt import client as mqtt
from pydantic import ValidationError as PydanticValidationError

from cold_chain_monitor.config.settings import settings
from cold_chain_monitor.core.errors import NotFound, ValidationError
from cold_chain_monitor.core.ingestion import ReadingIngestor
from cold_chain_monitor.core.schemas import ReadingMessage
from cold_chain_monitor.database.modelagem_banco import (
    TemperatureLog,
    criar_engine,
    criar_fabrica_sessao,
)
from cold_chain_monitor.database.repositorio import DeviceRegistry, TemperatureLogStore
from cold_chain_monitor.utils.logger import get_logger

logger = get_logger(__name__)


class TemperatureLogBuffer:
    """
    Buffer simples para acumular registros antes de gravar no banco.

    - Acumula objetos TemperatureLog já classificados.
    - Quando atinge batch_size, quem usa dispara flush.
    """

    def __init__(self, batch_size: int, store: TemperatureLogStore):
        self.batch_size = batch_size
        self._buffer: List[TemperatureLog] = []
        self.store = store

    def adicionar(self, log: TemperatureLog):
        self._buffer.append(log)

    def tamanho(self) -> int:
        return len(self._buffer)

    def flush(self):
        """
        Envia o conteúdo do buffer para o banco, em lotes.

        Lotes gravados saem do buffer. Lotes rejeitados por dados inválidos
        (ValidationError) são descartados com log de erro, pois falhariam de
        novo. Só lotes com falha do banco (StoreUnavailable) são tentados de
        novo; esgotadas as tentativas, permanecem no buffer.
        """
        if not self._buffer:
            return

        delay = settings.DB_FLUSH_BACKOFF_BASE
        max_retries = settings.DB_FLUSH_MAX_RETRIES

        for attempt in range(1, max_retries + 1):
            relatorio = self.store.append_batch(self._buffer, batch_size=self.batch_size)
            self._buffer = relatorio.retryable_logs()

            if relatorio.saved:
                logger.info("Gravados %s registros de temperatura.", relatorio.saved)

            for falha in relatorio.rejected():
                logger.error(
                    "Lote com %s registros rejeitado e descartado: %s",
                    falha.size,
                    falha.error,
                    extra={"chunk": falha.index, "row_count": falha.size},
                )

            if not self._buffer:
                return

            if attempt >= max_retries:
                logger.error(
                    "Falha ao salvar %s registros após %s tentativas; buffer será mantido.",
                    len(self._buffer),
                    attempt,
                )
                return

            logger.warning(
                "Erro ao salvar %s registros (tentativa %s/%s). Retentando em %.2fs.",
                len(self._buffer),
                attempt,
                max_retries,
                delay,
            )
            time.sleep(delay)
            delay *= 2  # backoff exponencial


def converter_payload_para_registros(
    raw_payload: str,
    ingestor: ReadingIngestor,
) -> List[TemperatureLog]:
    """
    Converte a string JSON recebida via MQTT em registros classificados.

    Regras:
    - Espera um JSON representando uma lista de objetos.
    - Cada objeto deve seguir o schema ReadingMessage (Pydantic).
    - Itens inválidos ou de dispositivos desconhecidos geram log e são
      ignorados, não derrubam o consumer.
    - Em caso de JSON inválido ou formato não-lista, retorna lista vazia.
    """

    try:
        dados = json.loads(raw_payload)
    except json.JSONDecodeError as exc:
        logger.warning("Erro ao decodificar JSON: %s", exc)
        return []

    if not isinstance(dados, list):
        logger.warning("Payload inválido: esperado uma lista de leituras.")
        return []

    registros: List[TemperatureLog] = []

    for item in dados:
        try:
            msg = ReadingMessage.model_validate(item)
        except PydanticValidationError as exc:
            logger.warning("Payload inválido para ReadingMessage: %s", exc)
            continue

        try:
            registro = ingestor.build_log(
                msg.deviceId,
                msg.temperature,
                msg.timestamp_utc(),
            )
        except NotFound:
            logger.warning(
                "Leitura descartada: dispositivo desconhecido.",
                extra={"device_id": msg.deviceId, "reason": "unknown_device"},
            )
            continue
        except ValidationError as exc:
            logger.warning(
                "Leitura descartada: %s",
                exc,
                extra={"device_id": msg.deviceId, "reason": "invalid"},
            )
            continue

        registros.append(registro)

    return registros


def on_message(client: mqtt.Client, userdata, msg: mqtt.MQTTMessage):
    """
    Callback chamada toda vez que uma mensagem é recebida.

    - Decodifica o payload.
    - Converte para registros classificados.
    - Adiciona ao buffer.
    - Faz flush se o tamanho do buffer atingir o batch_size.
    """
    buffer: TemperatureLogBuffer = userdata["buffer"]
    ingestor: ReadingIngestor = userdata["ingestor"]

    try:
        payload_str = msg.payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        logger.warning("Erro ao decodificar payload como UTF-8: %s", exc)
        return

    logger.debug("Mensagem recebida em %s: %s", msg.topic, payload_str)

    for registro in converter_payload_para_registros(payload_str, ingestor):
        buffer.adicionar(registro)

    if buffer.tamanho() >= buffer.batch_size:
        buffer.flush()


def _conectar_com_retries(client: mqtt.Client):
    """
    Tenta conectar ao broker com retries e backoff exponencial.
    """
    delay = settings.MQTT_CONNECT_BACKOFF_BASE
    max_retries = settings.MQTT_CONNECT_MAX_RETRIES

    for attempt in range(1, max_retries + 1):
        try:
            client.connect(
                settings.MQTT_BROKER_HOST,
                settings.MQTT_BROKER_PORT,
                keepalive=60,
            )
            return
        except OSError:
            if attempt >= max_retries:
                logger.exception(
                    "Falha ao conectar ao broker MQTT após %s tentativas.",
                    attempt,
                )
                raise

            logger.warning(
                "Erro ao conectar ao broker MQTT (tentativa %s/%s). Retentando em %.2fs.",
                attempt,
                max_retries,
                delay,
                exc_info=True,
            )
            time.sleep(delay)
            delay *= 2


def criar_cliente_mqtt(buffer: TemperatureLogBuffer, ingestor: ReadingIngestor) -> mqtt.Client:
    """
    Cria e configura o cliente MQTT para o consumer.

    - Define callbacks de conexão, desconexão e mensagem.
    - Configura userdata com o buffer e o ingestor.
    - Conecta ao broker com os parâmetros de settings.
    """

    client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)

    def on_connect(client, userdata, flags, reason_code, properties):
        logger.info("Conectado ao broker MQTT. RC=%s", reason_code)
        # Ao conectar (ou reconectar), assinamos o filtro configurado
        topic_root = settings.MQTT_TOPIC_ROOT
        client.subscribe(topic_root)
        logger.info("Assinado tópico: %s", topic_root)

    def on_disconnect(client, userdata, flags, reason_code, properties):
        logger.warning("Desconectado do broker MQTT. RC=%s", reason_code)

    client.on_connect = on_connect
    client.on_disconnect = on_disconnect
    client.on_message = on_message

    client.user_data_set({"buffer": buffer, "ingestor": ingestor})

    _conectar_com_retries(client)

    return client


def run_consumer():
    """
    Função principal do consumer MQTT.

    - cria engine, registro de dispositivos e repositório de registros;
    - cria o ingestor e o buffer vinculado ao repositório;
    - cria o cliente MQTT e entra no loop;
    - ao encerrar, grava o que sobrou no buffer.
    """

    fabrica = criar_fabrica_sessao(criar_engine(settings.DB_URL))
    store = TemperatureLogStore(fabrica)
    ingestor = ReadingIngestor(DeviceRegistry(fabrica), store)
    buffer = TemperatureLogBuffer(batch_size=settings.BATCH_SIZE, store=store)
    client = criar_cliente_mqtt(buffer, ingestor)

    logger.info(
        "Iniciando consumer. Broker=%s:%s, Tópico=%s, Batch size=%s",
        settings.MQTT_BROKER_HOST,
        settings.MQTT_BROKER_PORT,
        settings.MQTT_TOPIC_ROOT,
        settings.BATCH_SIZE,
    )

    try:
        client.loop_forever()
    except KeyboardInterrupt:
        logger.info("Encerrando consumer (Ctrl+C).")
    finally:
        buffer.flush()
        client.disconnect()


if __name__ == "__main__":
    run_consumer()
