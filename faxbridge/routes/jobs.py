from __future__ import annotations

from fastapi import APIRouter, HTTPException

from faxbridge.application import get_bridge_service

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("")
async def list_jobs() -> dict:
    service = get_bridge_service()
    jobs = sorted(service.registry.snapshot(), key=lambda job: job.submitted_at)
    return {
        "items": [job.to_dict() for job in jobs],
        "unpaired": [
            {
                "kind": artifact.kind.value,
                "document": artifact.logical_key,
                "path": artifact.local_path.name,
            }
            for artifact in service.cache.pending()
        ],
    }


@router.get("/{legacy_job_id}")
async def get_job(legacy_job_id: str) -> dict:
    """Return the in-flight record, or what the sentinels on disk say."""
    service = get_bridge_service()
    job = service.registry.get_by_legacy(legacy_job_id)
    if job is not None:
        return {"source": "registry", **job.to_dict()}
    view = service.spool.sentinel_view(legacy_job_id)
    if view is None:
        raise HTTPException(status_code=404, detail="job not found")
    return {"source": "spool", **view}
