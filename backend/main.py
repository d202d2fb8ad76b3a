"""Looking Glass API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Optional

import httpx
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from address_info import AddressInfoOrchestrator
from command_grammar import parse_command_line
from dispatcher import CommandDispatcher
from dns_client import DnsClient
from dns_transport import DnsOverHttpsTransport
from errors import InputInvalidError, LookingGlassError, UnknownRouterError
from router_api import RouterApiClient
from router_catalog import RouterCatalog, fetch_catalog, load_catalog
from settings import APP_NAME, APP_VERSION, DOH_URL, HTTP_TIMEOUT, ROUTER_CATALOG, ROUTER_URL_TEMPLATE
from token_classifier import classify_token
from zone_resolver import ZoneResolver

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


catalog = RouterCatalog() if _is_url(ROUTER_CATALOG) else load_catalog(ROUTER_CATALOG)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if _is_url(ROUTER_CATALOG):
        try:
            fetched = await fetch_catalog(ROUTER_CATALOG, HTTP_TIMEOUT)
            catalog.routers.update(fetched.routers)
            logger.info("Fetched %d routers from %s", len(fetched.routers), ROUTER_CATALOG)
        except (LookingGlassError, httpx.HTTPError, ValueError) as e:
            logger.warning("Could not fetch router catalog %s: %s", ROUTER_CATALOG, e)
    yield


app = FastAPI(title="Looking Glass", description="DNS, BGP and whois lookups via router APIs",
              version=APP_VERSION, lifespan=lifespan)

dns_client = DnsClient(DnsOverHttpsTransport(DOH_URL, timeout=HTTP_TIMEOUT))
router_api = RouterApiClient(ROUTER_URL_TEMPLATE, timeout=HTTP_TIMEOUT)
zone_resolver = ZoneResolver(dns_client)
orchestrator = AddressInfoOrchestrator(dns_client, zone_resolver, router_api)
dispatcher = CommandDispatcher(catalog, router_api, dns_client, orchestrator)


class ExecRequest(BaseModel):
    text: str
    router: Optional[str] = None
    command: Optional[str] = None


def _raise_input_error(e: InputInvalidError):
    if isinstance(e, UnknownRouterError):
        raise HTTPException(404, str(e))
    raise HTTPException(400, str(e))


@app.get("/api/health")
async def health():
    return {"status": "ok", "app": APP_NAME, "version": APP_VERSION, "routers": len(catalog.routers)}


@app.get("/api/routers")
async def list_routers():
    return {"routers": [asdict(r) for r in catalog.routers.values()]}


@app.get("/api/classify")
async def classify(token: str):
    return asdict(classify_token(token))


@app.get("/api/parse")
async def parse(text: str):
    return asdict(parse_command_line(text))


@app.post("/api/exec")
async def execute(request: ExecRequest):
    try:
        return await dispatcher.execute(request.text, request.router, request.command)
    except InputInvalidError as e:
        _raise_input_error(e)


@app.get("/api/whois")
async def whois(token: str, router: Optional[str] = None):
    try:
        return await orchestrator.resolve_address_info(catalog.select(router), token)
    except InputInvalidError as e:
        _raise_input_error(e)
    except LookingGlassError as e:
        logger.error("Whois %s failed: %s", token, e)
        raise HTTPException(502, f"Whois failed: {e}")


@app.get("/api/routes")
async def routes(token: str, router: Optional[str] = None):
    try:
        return {"tables": await router_api.resolve_routes(catalog.select(router), token)}
    except InputInvalidError as e:
        _raise_input_error(e)
    except LookingGlassError as e:
        logger.error("Route lookup %s failed: %s", token, e)
        raise HTTPException(502, f"Route lookup failed: {e}")


@app.get("/api/history")
async def history():
    return {"entries": dispatcher.history()}


@app.delete("/api/history")
async def clear_history():
    dispatcher.clear()
    return {"status": "cleared"}
