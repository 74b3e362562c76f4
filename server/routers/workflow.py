"""Workflow routes proxied to the simulation API."""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from core.container import container
from core.exceptions import ValidationError
from core.logging import get_logger
from services.workflows import MicrostructureInput, SofcInput, WorkflowService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/workflows", tags=["workflows"])


class RdfLoadRequest(BaseModel):
    data: str = ""
    format: str = "turtle"


def get_workflow_service() -> WorkflowService:
    return container.workflow_service()


@router.post("/microstructure")
async def ingest_microstructure(
    params: MicrostructureInput,
    request: Request,
    workflows: WorkflowService = Depends(get_workflow_service)
):
    return await workflows.ingest_microstructure(
        params,
        user_id=request.state.user_id,
        token=request.state.token,
        session_id=request.state.session_id
    )


@router.post("/sofc/run")
async def run_sofc(
    request: Request,
    params: SofcInput = SofcInput(),
    workflows: WorkflowService = Depends(get_workflow_service)
):
    """Run the SOFC workflow. Omitted parameters take their defaults."""
    return await workflows.run_sofc(
        params,
        user_id=request.state.user_id,
        token=request.state.token,
        session_id=request.state.session_id
    )


@router.post("/rdf/load")
async def load_rdf(
    body: RdfLoadRequest,
    workflows: WorkflowService = Depends(get_workflow_service)
):
    if not body.data.strip():
        raise ValidationError("RDF data is required")
    return await workflows.load_rdf(body.data, body.format)


@router.get("/fuseki/ping")
async def fuseki_ping(workflows: WorkflowService = Depends(get_workflow_service)):
    return await workflows.fuseki_ping()


@router.get("/run")
async def get_run(
    run: str = "",
    refresh: bool = False,
    workflows: WorkflowService = Depends(get_workflow_service)
):
    """Triples describing a workflow run."""
    if not run:
        raise ValidationError("Run ID is required")
    return await workflows.get_run(run, use_cache=not refresh)
