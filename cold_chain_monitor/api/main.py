"""
main.py

API do cold-chain-monitor usando FastAPI.

Rotas principais:
- GET  /ping
- GET  /dashboard
- GET  /dashboard/summary
- GET  /devices
- GET  /devices/{device_id}
- GET  /devices/{device_id}/logs
- POST /logs
- POST /logs/{log_id}/acknowledge

Falhas do domínio viram respostas HTTP:
NotFound -> 404, ValidationError -> 422, StoreUnavailable -> 503.
"""

from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from cold_chain_monitor.api.schemas import (
    DispositivoOut,
    LeituraIn,
    PainelEntradaOut,
    RegistroOut,
    ResumoOut,
)
from cold_chain_monitor.config.settings import settings
from cold_chain_monitor.core.acknowledgment import AcknowledgmentWorkflow
from cold_chain_monitor.core.dashboard import DashboardReadModel
from cold_chain_monitor.core.errors import NotFound, StoreUnavailable, ValidationError
from cold_chain_monitor.core.ingestion import ReadingIngestor
from cold_chain_monitor.database.modelagem_banco import criar_engine, criar_fabrica_sessao
from cold_chain_monitor.database.repositorio import DeviceRegistry, TemperatureLogStore
from cold_chain_monitor.utils.logger import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="cold-chain-monitor API",
    version="0.1.0",
    description="Painel de temperatura e reconhecimento de violações da cadeia fria.",
)


# ------------------- DEPENDÊNCIAS ------------------- #


@lru_cache()
def get_session_factory() -> sessionmaker:
    """
    Fábrica de sessões do processo, criada na primeira requisição.

    Nos testes é substituída via `app.dependency_overrides`.
    """
    return criar_fabrica_sessao(criar_engine(settings.DB_URL))


def get_registry(fabrica: sessionmaker = Depends(get_session_factory)) -> DeviceRegistry:
    return DeviceRegistry(fabrica)


def get_store(fabrica: sessionmaker = Depends(get_session_factory)) -> TemperatureLogStore:
    return TemperatureLogStore(fabrica)


# ------------------- ERROS ------------------- #


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc)},
    )


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error("Requisição %s falhou: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc), "operation": exc.operation},
    )


# ------------------- HEALTHCHECK ------------------- #


@app.get("/ping")
def ping():
    """
    Endpoint simples para healthcheck.
    """
    return {"status": "ok"}


# ------------------- PAINEL ------------------- #


@app.get(
    "/dashboard",
    response_model=List[PainelEntradaOut],
    summary="Visão completa dos registros, do mais recente ao mais antigo",
)
def painel(store: TemperatureLogStore = Depends(get_store)):
    return DashboardReadModel(store).snapshot()


@app.get(
    "/dashboard/summary",
    response_model=ResumoOut,
    summary="Contagem de violações reconhecidas e pendentes",
)
def resumo_painel(store: TemperatureLogStore = Depends(get_store)):
    return DashboardReadModel(store).summary()


# ------------------- DISPOSITIVOS ------------------- #


@app.get(
    "/devices",
    response_model=List[DispositivoOut],
    summary="Lista dispositivos cadastrados",
)
def listar_dispositivos(registry: DeviceRegistry = Depends(get_registry)):
    return registry.list_devices()


@app.get(
    "/devices/{device_id}",
    response_model=DispositivoOut,
    summary="Detalhe de um dispositivo",
)
def obter_dispositivo(device_id: str, registry: DeviceRegistry = Depends(get_registry)):
    return registry.get_device(device_id)


@app.get(
    "/devices/{device_id}/logs",
    response_model=List[RegistroOut],
    summary="Registros de um dispositivo, do mais recente ao mais antigo",
)
def listar_registros_dispositivo(
    device_id: str,
    limite: Optional[int] = Query(None, ge=1, le=5000, alias="limit"),
    registry: DeviceRegistry = Depends(get_registry),
    store: TemperatureLogStore = Depends(get_store),
):
    # 404 para dispositivo inexistente, em vez de lista vazia
    registry.get_device(device_id)
    linhas = store.query_logs_by_device(device_id, limit=limite)
    return [log for log, _ in linhas]


# ------------------- REGISTROS ------------------- #


@app.post(
    "/logs",
    response_model=RegistroOut,
    status_code=status.HTTP_201_CREATED,
    summary="Ingere e classifica uma leitura",
)
def ingerir_leitura(
    leitura: LeituraIn,
    registry: DeviceRegistry = Depends(get_registry),
    store: TemperatureLogStore = Depends(get_store),
):
    ingestor = ReadingIngestor(registry, store)
    return ingestor.ingest(leitura.device_id, leitura.temperature, leitura.timestamp)


@app.post(
    "/logs/{log_id}/acknowledge",
    response_model=RegistroOut,
    summary="Reconhece uma violação",
)
def reconhecer_violacao(log_id: str, store: TemperatureLogStore = Depends(get_store)):
    return AcknowledgmentWorkflow(store).acknowledge(log_id)
