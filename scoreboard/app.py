"""HTTP entrypoint for the high score API.

This server intentionally does NOT serve the game client. Host it separately.
"""

from __future__ import annotations

import asyncio
import fnmatch

from aiohttp import web

from scoreboard.config import ServerConfig
from scoreboard.log import get_logger, setup_logging
from scoreboard.protocol import ValidationError
from scoreboard.service import LeaderboardService, NotImproved
from scoreboard.storage.base import StoreError

log = get_logger(__name__)


def _origin_allowed(config: ServerConfig, origin: str) -> bool:
    # Patterns like https://*.itch.io match any subdomain.
    return any(fnmatch.fnmatchcase(origin, pat) for pat in config.cors_allowed_origins)


def _cors_headers(config: ServerConfig, origin: str | None) -> dict[str, str]:
    if not origin:
        return {}
    if config.cors_allow_all or _origin_allowed(config, origin):
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
            "Vary": "Origin",
        }
    log.debug("CORS request from unlisted origin %s", origin)
    return {}


@web.middleware
async def cors_middleware(request: web.Request, handler):
    if request.method == "OPTIONS":
        origin = request.headers.get("Origin")
        headers = {
            **_cors_headers(request.app["config"], origin),
            "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type,Authorization",
            "Access-Control-Max-Age": "86400",
        }
        return web.Response(status=204, headers=headers)

    cors = _cors_headers(request.app["config"], request.headers.get("Origin"))
    try:
        resp = await handler(request)
    except web.HTTPException as e:
        e.headers.update(cors)
        raise
    resp.headers.update(cors)
    return resp


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ValidationError as e:
        return web.json_response({"success": False, "error": str(e)}, status=400)
    except NotImproved as e:
        return web.json_response(
            {
                "success": False,
                "madeTopTen": False,
                "error": "Score not improved",
                "message": str(e),
                "existingScore": e.existing_score,
            },
            status=400,
        )
    except StoreError as e:
        log.error("store failure on %s %s: %s", request.method, request.path, e)
        return web.json_response({"success": False, "error": "Storage unavailable"}, status=500)
    except Exception:
        log.exception("unhandled error on %s %s", request.method, request.path)
        return web.json_response({"success": False, "error": "Internal server error"}, status=500)


def create_app(config: ServerConfig, store=None) -> web.Application:
    app = web.Application(middlewares=[cors_middleware, error_middleware])
    svc = LeaderboardService(config, store=store)

    app["config"] = config
    app["svc"] = svc

    async def on_startup(_: web.Application):
        await asyncio.to_thread(svc.start)

    async def on_cleanup(_: web.Application):
        await asyncio.to_thread(svc.stop)

    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)

    async def root(_: web.Request):
        return web.json_response(
            {
                "ok": True,
                "service": "scoreboard-server",
                "serverVersion": config.server_version,
                "storageMode": svc.storage_mode,
                "endpoints": {
                    "health": "/api/health",
                    "highScores": "/api/high-scores",
                    "top": "/api/high-scores/top/{limit}",
                    "submit": "/api/submit-score",
                },
            }
        )

    async def health(_: web.Request):
        return web.json_response(svc.health())

    # Store calls can block on the network; keep them off the event loop.
    async def high_scores(_: web.Request):
        return web.json_response(await asyncio.to_thread(svc.high_scores))

    async def top(request: web.Request):
        return web.json_response(await asyncio.to_thread(svc.top, request.match_info["limit"]))

    async def submit(request: web.Request):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("body must be valid JSON")
        return web.json_response(await asyncio.to_thread(svc.submit, body))

    async def preflight(_: web.Request):
        # cors_middleware answers OPTIONS first; this only keeps the route resolvable.
        return web.Response(status=204)

    app.router.add_get("/", root)
    app.router.add_get("/api/health", health)
    app.router.add_get("/api/high-scores", high_scores)
    app.router.add_get("/api/highscores", high_scores)
    app.router.add_get("/api/high-scores/top/{limit}", top)
    app.router.add_post("/api/submit-score", submit)
    app.router.add_post("/api/highscores", submit)
    app.router.add_post("/api/high-scores", submit)
    app.router.add_route("OPTIONS", "/{tail:.*}", preflight)

    return app


def main() -> None:
    config = ServerConfig.from_env()
    setup_logging(config.log_level)
    log.info("starting scoreboard-server on %s:%d (storage=%s)", config.host, config.port, config.storage)
    app = create_app(config)
    web.run_app(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
