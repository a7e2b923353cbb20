"""HTTP API for opportunity checks and manual trades."""

from typing import Optional
from aiohttp import web
from loguru import logger

from .config import Config
from .core.errors import ValidationError
from .core.orchestrator import ArbitrageOrchestrator

ORCHESTRATOR = web.AppKey("orchestrator", ArbitrageOrchestrator)


def _error_status(kind: Optional[str]) -> int:
    return 400 if kind == ValidationError.kind else 500


@web.middleware
async def json_errors(request: web.Request, handler):
    """Every response is JSON, including unexpected failures."""
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return web.json_response({"error": e.reason}, status=e.status)
    except Exception as e:
        logger.error(f"Unhandled error on {request.method} {request.path}: {e}")
        return web.json_response({"error": "Internal server error"}, status=500)


async def get_opportunity(request: web.Request) -> web.Response:
    """GET /opportunity?tokenSymbol=eth"""
    orchestrator = request.app[ORCHESTRATOR]
    token = request.query.get("tokenSymbol", "eth")
    outcome = await orchestrator.find_opportunity(token)

    if outcome.error:
        return web.json_response({"error": outcome.error}, status=_error_status(outcome.error_kind))

    spread = outcome.spread.to_dict() if outcome.spread else None
    return web.json_response({
        "opportunity": spread if outcome.opportunity_found else None,
        "spread": spread,
        "currentPrices": outcome.current_prices,
        "tokenSymbol": outcome.token_symbol,
        "message": outcome.message,
    })


async def post_trade(request: web.Request) -> web.Response:
    """POST /trade {tokenSymbol, side, tradeSizeUSDT}"""
    orchestrator = request.app[ORCHESTRATOR]
    try:
        body = await request.json()
    except ValueError:
        return web.json_response({"success": False, "error": "Request body must be valid JSON"}, status=400)

    if not isinstance(body, dict) or not body.get("tokenSymbol"):
        return web.json_response({"success": False, "error": "Missing tokenSymbol in request body"}, status=400)

    outcome = await orchestrator.execute_manual(
        body["tokenSymbol"],
        body.get("side", "buy"),
        body.get("tradeSizeUSDT"),
    )

    if outcome.error:
        return web.json_response(
            {"success": False, "error": outcome.error},
            status=_error_status(outcome.error_kind),
        )

    return web.json_response({
        "success": True,
        "orderId": outcome.order.order_id,
        "clientOid": outcome.order.client_order_id,
        "message": outcome.message,
    })


async def get_market(request: web.Request) -> web.Response:
    """GET /market?tokenSymbol=eth"""
    orchestrator = request.app[ORCHESTRATOR]
    outcome = await orchestrator.market_snapshot(request.query.get("tokenSymbol", "eth"))
    if outcome.error:
        return web.json_response({"error": outcome.error}, status=_error_status(outcome.error_kind))
    return web.json_response(outcome.to_dict())


async def get_scan(request: web.Request) -> web.Response:
    """GET /scan?coinId=ethereum"""
    orchestrator = request.app[ORCHESTRATOR]
    scan = await orchestrator.scan_venues(request.query.get("coinId", "ethereum"))
    if scan.error:
        return web.json_response({"error": scan.error}, status=_error_status(scan.error_kind))
    return web.json_response(scan.to_dict())


async def get_health(request: web.Request) -> web.Response:
    orchestrator = request.app[ORCHESTRATOR]
    return web.json_response({
        "status": "ok",
        "primary": orchestrator.primary.name,
        "secondary": orchestrator.secondary.name if orchestrator.secondary else None,
        "credentials": orchestrator.primary.has_credentials,
    })


async def _close_orchestrator(app: web.Application) -> None:
    await app[ORCHESTRATOR].close()


def create_app(config: Optional[Config] = None,
               orchestrator: Optional[ArbitrageOrchestrator] = None) -> web.Application:
    """Build the aiohttp application around an orchestrator."""
    if orchestrator is None:
        orchestrator = ArbitrageOrchestrator.from_config(config or Config())

    app = web.Application(middlewares=[json_errors])
    app[ORCHESTRATOR] = orchestrator
    app.router.add_get("/opportunity", get_opportunity)
    app.router.add_post("/trade", post_trade)
    app.router.add_get("/market", get_market)
    app.router.add_get("/scan", get_scan)
    app.router.add_get("/health", get_health)
    app.on_cleanup.append(_close_orchestrator)
    return app


def run_server(config: Config) -> None:
    """Serve the API until interrupted."""
    app = create_app(config)
    logger.info(f"Serving on http://{config.server.host}:{config.server.port}")
    web.run_app(app, host=config.server.host, port=config.server.port, print=None)
