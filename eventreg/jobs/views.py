from fastapi import APIRouter, Depends

from eventreg.utils.security import require_jobs_runner
from eventreg.jobs import service as jobs_service

router = APIRouter(prefix="/api/v1/jobs", tags=["Jobs"])

# module eventreg.jobs.views
@router.post("/run", dependencies=[Depends(require_jobs_runner)])
def run_jobs():
    """Déclenché par un planificateur externe (cron): {processed, failed, total}."""
    return jobs_service.run_due_jobs()
