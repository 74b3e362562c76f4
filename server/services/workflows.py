"""Simulation workflows: SOFC runs, microstructure ingest and run lookup."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from constants import CACHE_TYPE_WORKFLOW_RESULT
from core.cache import CacheStore
from core.logging import get_logger
from services.dashboard import DashboardService
from services.sessions import SessionService
from services.simulation_client import SimulationClient

logger = get_logger(__name__)


class SofcInput(BaseModel):
    """SOFC workflow parameters. Every field has the simulation's default."""

    volume_fraction: float = 0.003
    rmin: float = 4.0
    rmax: float = 4.0
    use_real: bool = False
    L_channel: float = 0.01
    H_channel: float = 0.0005
    W_channel: float = 0.0005
    W_rib: float = 0.0005
    H_Electrolyte: float = 0.0001
    H_GDE: float = 0.0001
    Sigma_cathode: float = 1000
    Sigma_anode: float = 1000
    VF_cathode: float = 0.4
    VF_anode: float = 0.4
    Prs_GDE: float = 0.9
    Prd_anode: float = 1.0
    Prd_cathode: float = 4.5
    Tmp_GDE: float = 800
    Per_anode: float = 100
    Per_cathode: float = 100
    Thc_anode: float = 0.5
    Thc_cathode: float = 0.5
    Tor_anode: float = 4.5
    Tor_cathode: float = 4.5
    Spa_anode: float = 1.0
    Spa_cathode: float = 1.0


class MicrostructureInput(BaseModel):
    id: str = Field(min_length=1)
    porosity: float = 0.3
    tortuosity: float = 2.5
    conductivity_S_per_m: float = 100
    temperature_K: float = 298.15
    rmin: float = 0
    rmax: float = 0
    L_channel: float = 0.01
    H_channel: float = 0.0005
    H_Electrolyte: float = 0.0001
    H_GDE: float = 0.0001


def workflow_run_cache_key(run: str) -> str:
    return f"workflow_run_{run}"


class WorkflowService:
    """Proxies workflow calls upstream and records what the user did."""

    def __init__(
        self,
        simulation: SimulationClient,
        cache_store: CacheStore,
        dashboard: DashboardService,
        sessions: SessionService,
    ):
        self.simulation = simulation
        self.cache_store = cache_store
        self.dashboard = dashboard
        self.sessions = sessions

    async def run_sofc(self, params: SofcInput, user_id: int, token: Optional[str],
                       session_id: Optional[str] = None) -> Dict[str, Any]:
        result = await self.simulation.run_sofc_workflow(params.model_dump())
        run = result.get("run")
        logger.info("SOFC workflow completed", user_id=user_id, run=run)

        await self._record(user_id, token, session_id, {
            "simulationCount": 1,
            "lastActivity": f"SOFC simulation completed - Run ID: {run}",
        }, {"workflow": "sofc", "run": run})
        return result

    async def ingest_microstructure(self, params: MicrostructureInput, user_id: int,
                                    token: Optional[str],
                                    session_id: Optional[str] = None) -> Dict[str, Any]:
        result = await self.simulation.ingest_microstructure(params.model_dump())
        logger.info("Microstructure ingested", user_id=user_id, microstructure_id=params.id)

        await self._record(user_id, token, session_id, {
            "projectCount": 1,
            "lastActivity": f"Microstructure data ingested - ID: {params.id}",
        }, {"workflow": "microstructure", "id": params.id})
        return result

    async def load_rdf(self, data: str, format: str = "turtle") -> Dict[str, Any]:
        return await self.simulation.load_rdf(data, format)

    async def fuseki_ping(self) -> Dict[str, Any]:
        return await self.simulation.fuseki_ping()

    async def get_run(self, run: str, use_cache: bool = True) -> Dict[str, Any]:
        """Triples for a finished run. Finished runs do not change, so they are cached."""
        key = workflow_run_cache_key(run)
        if use_cache:
            entry = await self.cache_store.get(key)
            if entry is not None:
                return entry.data

        result = await self.simulation.get_workflow_run(run)
        await self.cache_store.put(key, result, CACHE_TYPE_WORKFLOW_RESULT,
                                   metadata={"run": run})
        return result

    async def _record(self, user_id: int, token: Optional[str], session_id: Optional[str],
                      changes: Dict[str, Any], details: Dict[str, Any]) -> None:
        await self.dashboard.record_activity(user_id, changes, token)
        if session_id:
            await self.sessions.record_activity(session_id, user_id, "workflow_run", details)
