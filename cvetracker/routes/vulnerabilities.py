import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response

from cvetracker.errors import CveTrackerError, ValidationError
from cvetracker.services.store import VulnerabilityStore
from cvetracker.services.validator import strip_creation_fields, validate_vulnerability

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vulnerabilities", tags=["vulnerabilities"])


def get_store(request: Request) -> VulnerabilityStore:
    return request.app.state.store


def _raise_http(e: CveTrackerError):
    raise HTTPException(status_code=e.status_code, detail=e.message) from e


def _validated(payload: Any) -> dict:
    record = validate_vulnerability(payload) if isinstance(payload, dict) else None
    if record is None:
        raise HTTPException(status_code=400, detail=ValidationError.default_message)
    return record


@router.get("")
def list_vulnerabilities(store: VulnerabilityStore = Depends(get_store)):
    """Return all vulnerabilities, most recently logged first."""
    try:
        return store.list_all()
    except CveTrackerError as e:
        _raise_http(e)


@router.get("/{vuln_id}")
def get_vulnerability(vuln_id: str, store: VulnerabilityStore = Depends(get_store)):
    try:
        return store.get(vuln_id)
    except CveTrackerError as e:
        _raise_http(e)


@router.post("", status_code=201)
def create_vulnerability(payload: Any = Body(None), store: VulnerabilityStore = Depends(get_store)):
    record = _validated(payload)
    try:
        created = store.insert(record)
    except CveTrackerError as e:
        _raise_http(e)
    logger.info("created vulnerability %s (%s)", created["_id"], created["name"])
    return created


@router.put("/{vuln_id}")
def update_vulnerability(
    vuln_id: str,
    payload: Any = Body(None),
    store: VulnerabilityStore = Depends(get_store),
):
    # dateLogged is fixed at creation, so it is neither checked nor applied here
    if isinstance(payload, dict):
        payload = strip_creation_fields(payload)
    changes = strip_creation_fields(_validated(payload))
    try:
        store.update(vuln_id, changes)
    except CveTrackerError as e:
        _raise_http(e)
    return {"message": "Vulnerability updated successfully."}


@router.delete("/{vuln_id}", status_code=204)
def delete_vulnerability(vuln_id: str, store: VulnerabilityStore = Depends(get_store)):
    try:
        store.delete(vuln_id)
    except CveTrackerError as e:
        _raise_http(e)
    return Response(status_code=204)
