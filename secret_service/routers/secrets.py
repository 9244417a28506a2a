"""
Secret routes - per-domain credential records
"""

import json
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from secret_service.dependencies import get_storage
from secret_service.models import ErrorInfo, Secret
from secret_service.storage import Storage, StorageError

router = APIRouter(
    prefix="/secrets",
    tags=["Secrets"],
    responses={500: {"model": ErrorInfo}},
)
logger = logging.getLogger(__name__)


def _storage_failure(e: StorageError) -> HTTPException:
    logger.error("Storage operation failed: %s", e.detail)
    return HTTPException(status_code=500, detail=f"storage error: {e.detail}")


def _bad_request(detail: str) -> HTTPException:
    logger.info("Rejected secret body: %s", detail)
    return HTTPException(status_code=400, detail=detail)


def parse_secret(body: bytes) -> Secret:
    """
    Decode a request body into a ``Secret``.

    Each stage has its own 400 message: bytes to UTF-8 text, text to JSON,
    JSON to a secret.
    """
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise _bad_request(f"invalid data: {e}")

    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        raise _bad_request(f"invalid json: {e}")

    try:
        return Secret.model_validate(data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        )
        raise _bad_request(f"invalid secret: {errors}")


@router.get("", response_model=List[Secret])
def list_secrets(storage: Storage = Depends(get_storage)) -> List[Secret]:
    """Return every stored secret."""
    try:
        return storage.get_all()
    except StorageError as e:
        raise _storage_failure(e)


@router.get(
    "/{domain}",
    response_model=Secret,
    responses={404: {"model": ErrorInfo}},
)
def get_secret(domain: str, storage: Storage = Depends(get_storage)) -> Secret:
    """Return the secret stored for ``domain``."""
    try:
        secret = storage.get(domain)
    except StorageError as e:
        raise _storage_failure(e)

    if secret is None:
        raise HTTPException(status_code=404, detail="Domain not found")
    return secret


@router.api_route(
    "/{domain}",
    methods=["PUT", "POST"],
    status_code=204,
    response_class=Response,
    responses={400: {"model": ErrorInfo}},
)
async def put_secret(
    domain: str,
    request: Request,
    storage: Storage = Depends(get_storage),
) -> Response:
    """
    Store a secret, replacing any existing one for the same domain.

    The ``domain`` field of the body is the key that gets written; the
    path segment only routes the request.
    """
    secret = parse_secret(await request.body())
    if secret.domain != domain:
        logger.debug(
            "Path domain '%s' differs from body domain '%s', using body",
            domain,
            secret.domain,
        )

    try:
        await run_in_threadpool(storage.set, secret)
    except StorageError as e:
        raise _storage_failure(e)

    return Response(status_code=204)


@router.delete(
    "/{domain}",
    status_code=204,
    response_class=Response,
    responses={404: {"model": ErrorInfo}},
)
def delete_secret(domain: str, storage: Storage = Depends(get_storage)) -> Response:
    """Delete the secret stored for ``domain``."""
    try:
        deleted = storage.delete(domain)
    except StorageError as e:
        raise _storage_failure(e)

    if not deleted:
        raise HTTPException(status_code=404, detail="Domain not found")
    return Response(status_code=204)
