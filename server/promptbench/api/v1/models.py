from fastapi import APIRouter
from typing import List

from promptbench.providers.router import router as provider_router
from promptbench.schemas.chat import ModelListResult, ProbeAllRequest, ProbeResult, ProviderRequest

router = APIRouter()


@router.post("/models", response_model=ModelListResult)
async def list_models(request: ProviderRequest) -> ModelListResult:
    """Ask the provider which model ids it serves, sorted."""
    return await provider_router.get_provider(request.config).list_models()


@router.post("/providers/test", response_model=ProbeResult)
async def test_provider(request: ProviderRequest) -> ProbeResult:
    return await provider_router.get_provider(request.config).test_connection()


@router.post("/providers/test-all", response_model=List[ProbeResult])
async def test_all_providers(request: ProbeAllRequest) -> List[ProbeResult]:
    return await provider_router.probe_all(request.configs)
