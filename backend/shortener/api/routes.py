from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from loguru import logger
from pydantic import BaseModel

from shortener.core.errors import UrlError
from shortener.models.db import SessionLocal
from shortener.services.links import resolve, shorten
from shortener.services.store import MappingStore, SqlMappingStore
from shortener.utils.policies import list_policies

router = APIRouter()
redirect_router = APIRouter()


class ShortenRequest(BaseModel):
    url: str
    policy: Optional[str] = None


def get_store() -> MappingStore:
    return SqlMappingStore(SessionLocal)


def _raise(error: UrlError):
    if error.is_validation:
        logger.info(f"Rejected request: {error.kind.value}: {error.message}")
    elif error.http_status >= 500:
        logger.error(f"{error.kind.value}: {error.message}")
    else:
        logger.debug(f"{error.kind.value}: {error.message}")
    raise HTTPException(status_code=error.http_status, detail=error.as_dict())


@router.post("/shorten")
def shorten_url(payload: ShortenRequest, store: MappingStore = Depends(get_store)) -> dict:
    result = shorten(store, payload.url, payload.policy)
    if isinstance(result, UrlError):
        _raise(result)
    return {
        "short_code": result.short_code,
        "short_url": result.short_url,
        "canonical_url": result.canonical_url,
        "created": result.created,
    }


@router.get("/policies")
def get_policies() -> dict:
    return {
        "policies": [
            {"name": p.name.value, "description": p.description}
            for p in list_policies()
        ]
    }


@router.get("/{short_code}")
def get_url(short_code: str, store: MappingStore = Depends(get_store)) -> dict:
    original = resolve(store, short_code)
    if isinstance(original, UrlError):
        _raise(original)
    return {"short_code": short_code, "original_url": original}


@redirect_router.get("/r/{short_code}")
def redirect(short_code: str, store: MappingStore = Depends(get_store)):
    original = resolve(store, short_code)
    if isinstance(original, UrlError):
        _raise(original)
    return RedirectResponse(original, status_code=307)
