import logging
from contextlib import asynccontextmanager

from fastapi import Depends, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from apkit.client import WebfingerLink, WebfingerResource, WebfingerResult
from apkit.server.app import ActivityPubServer
from apkit.server.responses import ActivityResponse
from apkit.models import (
    Nodeinfo, NodeinfoSoftware,
    NodeinfoServices, NodeinfoUsage, NodeinfoUsageUsers,
)

from broadcast_bot.config import settings
from broadcast_bot.database import create_engine, create_session_factory, init_db
from broadcast_bot.activitypub.actor import build_actor
from broadcast_bot.activitypub.federation import (
    Federation,
    build_federation,
    create_http_client,
)
from broadcast_bot.activitypub.handlers import dispatch, parse_activity
from broadcast_bot.errors import MalformedInput, RegistryUnavailable

logging.basicConfig(level=logging.INFO)
log = logging.getLogger(__name__)

ACTIVITY_JSON = "application/activity+json"
NO_CACHE = {"Cache-Control": "max-age=0, private, must-revalidate"}


@asynccontextmanager
async def lifespan(app):
    engine = create_engine(settings.database_url)
    try:
        await init_db(engine)
        async with create_http_client(float(settings.delivery_timeout)) as client:
            app.state.federation = build_federation(
                settings, client, create_session_factory(engine)
            )
            yield
    finally:
        await engine.dispose()


api = ActivityPubServer(lifespan=lifespan)

# webfinger e /.well-known/nodeinfo do apkit são substituídos pelas rotas abaixo
_BUILTIN_ROUTES = {"__ap_webfinger", "__apkit_wellknown_nodeinfo"}
api.router.routes[:] = [
    route for route in api.router.routes
    if getattr(route, "name", None) not in _BUILTIN_ROUTES
]


def get_federation(request: Request) -> Federation:
    return request.app.state.federation


@api.get("/actor")
async def get_actor(fed: Federation = Depends(get_federation)):
    return ActivityResponse(build_actor(fed.identity))


@api.post("/inbox")
async def post_inbox(request: Request, fed: Federation = Depends(get_federation)):
    try:
        activity = parse_activity(await request.body())
        result = await dispatch(fed, activity)
    except MalformedInput as e:
        log.warning(f"Atividade rejeitada: {e}")
        return PlainTextResponse("Invalid JSON", status_code=400)
    except RegistryUnavailable as e:
        log.error(f"Registro de followers indisponível: {e}")
        return PlainTextResponse("Internal Server Error", status_code=500)
    except Exception as e:
        log.error(f"Erro ao processar atividade: {e}", exc_info=True)
        return PlainTextResponse("Internal Server Error", status_code=500)

    if result is None:
        return PlainTextResponse("OK")
    return ActivityResponse(result)


@api.get("/.well-known/webfinger")
async def webfinger(
    resource: str | None = None, fed: Federation = Depends(get_federation)
) -> Response:
    if not resource or not resource.startswith("acct:"):
        return PlainTextResponse("Bad Request", status_code=400)

    acct = WebfingerResource.parse(resource.replace("acct:@", "acct:", 1))
    if acct.url is not None:
        # sem user@host
        return PlainTextResponse("Bad Request", status_code=400)

    identity = fed.identity
    if acct.host != identity.domain or acct.username != identity.username:
        return JSONResponse({"error": "Not found"}, status_code=404)

    link = WebfingerLink(rel="self", type=ACTIVITY_JSON, href=identity.id)
    result = WebfingerResult(subject=acct, links=[link])
    return JSONResponse(
        result.to_json(), media_type="application/jrd+json", headers=NO_CACHE
    )


@api.get("/.well-known/nodeinfo")
async def nodeinfo_links(fed: Federation = Depends(get_federation)):
    return JSONResponse(
        {
            "links": [
                {
                    "rel": "http://nodeinfo.diaspora.software/ns/schema/2.0",
                    "href": f"{fed.identity.base_url}/nodeinfo/2.0",
                }
            ]
        },
        headers=NO_CACHE,
    )


@api.nodeinfo("/nodeinfo/2.0", "2.0")
async def nodeinfo():
    return ActivityResponse(
        Nodeinfo(
            version="2.0",
            software=NodeinfoSoftware(name="broadcast-bot", version="1.0.0"),
            protocols=["activitypub"],
            services=NodeinfoServices(inbound=[], outbound=[]),
            openRegistrations=False,
            usage=NodeinfoUsage(users=NodeinfoUsageUsers(total=1)),
            metadata={
                "nodeName": "Broadcast Bot",
                "nodeDescription": "A bot that broadcasts messages to all followers",
            },
        )
    )


@api.get("/health")
async def health():
    return {"status": "ok"}
