"""
Labor REST API - thin HAL/JSON layer over the Labor use cases.

Versions are exchanged as entity tags: GET responses carry ETag "<version>",
PUT and PATCH require If-Match with the last version seen by the client.
"""
import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from labor import views
from labor.adapters import orm
from labor.adapters.file_store import FileStoreError
from labor.domain.model import Adresse, CustomUser, Gesundheitsamt, Labor, PatchOperation, TestTyp
from labor.domain.results import (
    AccessForbidden,
    ConstraintViolations,
    InvalidAccount,
    NotFound,
    Success,
    Timeout,
    UsernameExists,
    VersionInvalid,
    VersionOutdated,
)
from labor.entrypoints.dependencies import get_file_service, get_labor_service, get_uow_factory
from labor.entrypoints.security import get_current_user, require_admin
from labor.service_layer.file_service import LaborFileService
from labor.service_layer.services import LaborService
from labor.service_layer.unit_of_work import default_session_factory

log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
logging.basicConfig(
    level=getattr(logging, log_level),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

HAL_JSON = "application/hal+json"
EVENT_STREAM = "text/event-stream"

UPLOAD_MEDIA_TYPES = frozenset({
    "image/png",
    "image/jpeg",
    "image/gif",
    "video/mp4",
    "video/mpv",
    "video/ogg",
    "video/quicktime",
    "video/x-msvideo",
    "video/x-ms-wmv",
})

app = FastAPI(
    title="Labor API",
    description="Laboratories with their test types and responsible health authority",
    version="1.0.0"
)


@app.on_event("startup")
async def startup_event():
    orm.create_tables(default_session_factory().kw["bind"])
    logger.info("Labor database initialized")


@app.exception_handler(FileStoreError)
async def file_store_error_handler(request: Request, exc: FileStoreError):
    logger.error(f"File store error on {request.url.path}: {exc}")
    return PlainTextResponse("File store unavailable", status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


# ---------- Request/Response models ----------

class AdresseModel(BaseModel):
    strasse: str
    hausnummer: int
    plz: str
    ort: str


class GesundheitsamtModel(BaseModel):
    bundesland: str
    landkreis: str
    adresse: AdresseModel


class UserModel(BaseModel):
    username: str
    password: str


class LaborModel(BaseModel):
    """Wire representation of a labor. user is only read on create."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    adresse: AdresseModel
    telefonnummer: str
    fax: Optional[str] = None
    labor_tests: List[str] = Field(default_factory=list, alias="laborTests")
    testet_auf_corona: bool = Field(False, alias="testetAufCorona")
    zustaendiges_gesundheitsamt: GesundheitsamtModel = Field(alias="zustaendigesGesundheitsamt")
    user: Optional[UserModel] = None

    @field_validator("labor_tests")
    @classmethod
    def known_test_types(cls, codes):
        unknown = [code for code in codes if TestTyp.build(code) is None]
        if unknown:
            raise ValueError(f"Unknown test types: {unknown}")
        return codes


class PatchOperationModel(BaseModel):
    op: str
    path: str
    value: str = ""


def _adresse(model: AdresseModel) -> Adresse:
    return Adresse(strasse=model.strasse, hausnummer=model.hausnummer, plz=model.plz, ort=model.ort)


def to_domain(model: LaborModel) -> Labor:
    user = None
    if model.user is not None:
        user = CustomUser(id=None, username=model.user.username, password=model.user.password)
    amt = model.zustaendiges_gesundheitsamt
    return Labor(
        id=None,
        name=model.name,
        adresse=_adresse(model.adresse),
        telefonnummer=model.telefonnummer,
        fax=model.fax,
        labor_tests=tuple(TestTyp.build(code) for code in model.labor_tests),
        testet_auf_corona=model.testet_auf_corona,
        zustaendiges_gesundheitsamt=Gesundheitsamt(
            bundesland=amt.bundesland,
            landkreis=amt.landkreis,
            adresse=_adresse(amt.adresse),
        ),
        user=user,
    )


def to_representation(labor: Labor) -> Dict:
    amt = labor.zustaendiges_gesundheitsamt
    return {
        "name": labor.name,
        "adresse": orm.adresse_to_document(labor.adresse),
        "telefonnummer": labor.telefonnummer,
        "fax": labor.fax,
        "laborTests": [str(test_typ) for test_typ in labor.labor_tests],
        "testetAufCorona": labor.testet_auf_corona,
        "zustaendigesGesundheitsamt": {
            "bundesland": amt.bundesland,
            "landkreis": amt.landkreis,
            "adresse": orm.adresse_to_document(amt.adresse),
        },
        "username": labor.username,
    }


def base_uri(request: Request) -> str:
    return f"{str(request.base_url).rstrip('/')}/api"


def to_model(labor: Labor, request: Request) -> Dict:
    base = base_uri(request)
    id_uri = f"{base}/{labor.id}"
    body = to_representation(labor)
    body["_links"] = {
        "self": {"href": id_uri},
        "list": {"href": base},
        "add": {"href": base},
        "update": {"href": id_uri},
        "remove": {"href": id_uri},
    }
    return body


def to_collection_model(labore, request: Request) -> Dict:
    base = base_uri(request)
    items = []
    for labor in labore:
        item = to_representation(labor)
        item["_links"] = {"self": {"href": f"{base}/{labor.id}"}}
        items.append(item)
    return {"_embedded": {"labore": items}, "_links": {"self": {"href": base}}}


def etag(version: int) -> str:
    return f'"{version}"'


def timeout_response(result: Timeout) -> Response:
    return PlainTextResponse(
        f"Timeout in {result.operation}", status_code=status.HTTP_504_GATEWAY_TIMEOUT
    )


def violations_response(result: ConstraintViolations) -> Response:
    body = {violation.key: violation.message for violation in result.violations}
    logger.debug(f"Constraint violations: {body}")
    return JSONResponse(body, status_code=status.HTTP_400_BAD_REQUEST)


def version_from_if_match(if_match: Optional[str]):
    """Version string without quotes, or the error response for a missing or malformed header."""
    if if_match is None:
        return None, PlainTextResponse(
            "Version number missing", status_code=status.HTTP_428_PRECONDITION_REQUIRED
        )
    if len(if_match) < 3:
        return None, PlainTextResponse(
            f"Invalid version number {if_match}", status_code=status.HTTP_412_PRECONDITION_FAILED
        )
    return if_match[1:-1], None


def format_event(data: str, event: Optional[str] = None) -> str:
    lines = [f"event: {event}"] if event else []
    lines.append(f"data: {data}")
    return "\n".join(lines) + "\n\n"


async def event_stream(service: LaborService, request: Request):
    """Every labor as one server-sent event carrying its HAL model."""
    try:
        async for labor in service.find_all_stream():
            yield format_event(json.dumps(to_model(labor, request)))
    except asyncio.TimeoutError:
        logger.warning("Event stream of all labore timed out")
        yield format_event("find_all_stream", event="timeout")


def update_response(result) -> Response:
    if isinstance(result, Success):
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers={"ETag": etag(result.labor.version)})
    if isinstance(result, NotFound):
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    if isinstance(result, AccessForbidden):
        return Response(status_code=status.HTTP_403_FORBIDDEN)
    if isinstance(result, ConstraintViolations):
        return violations_response(result)
    if isinstance(result, (VersionInvalid, VersionOutdated)):
        return PlainTextResponse(
            f"Invalid version number {result.version}", status_code=status.HTTP_412_PRECONDITION_FAILED
        )
    return timeout_response(result)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "labor-api",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


# ---------- Value queries and roles ----------

@app.get("/api/name/{prefix}")
def find_names_by_prefix(
    prefix: str,
    user: CustomUser = Depends(get_current_user),
    uow_factory=Depends(get_uow_factory),
):
    names = views.find_names_by_prefix(prefix, uow_factory())
    if not names:
        raise HTTPException(status_code=404, detail=f"No labor name starts with {prefix}")
    return names


@app.get("/api/version/{labor_id}")
def find_version_by_id(
    labor_id: str,
    user: CustomUser = Depends(get_current_user),
    uow_factory=Depends(get_uow_factory),
):
    version = views.find_version_by_id(labor_id, uow_factory())
    if version is None:
        raise HTTPException(status_code=404, detail=f"Labor {labor_id} not found")
    return PlainTextResponse(str(version))


@app.get("/api/auth/rollen")
def find_eigene_rollen(user: CustomUser = Depends(get_current_user)):
    return list(user.authorities)


# ---------- Labor resources ----------

@app.get("/api")
async def find(
    request: Request,
    user: CustomUser = Depends(require_admin),
    service: LaborService = Depends(get_labor_service),
):
    if EVENT_STREAM in request.headers.get("accept", ""):
        return StreamingResponse(
            event_stream(service, request),
            media_type=EVENT_STREAM,
            headers={"Cache-Control": "no-cache"},
        )

    query_params = {key: request.query_params.getlist(key) for key in dict.fromkeys(request.query_params.keys())}
    result = await service.find(query_params)
    if isinstance(result, Timeout):
        return timeout_response(result)
    if not result.labore:
        logger.debug("find: no labore found")
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return JSONResponse(to_collection_model(result.labore, request), media_type=HAL_JSON)


@app.get("/api/{labor_id}")
async def find_by_id(
    labor_id: str,
    request: Request,
    if_none_match: Optional[str] = Header(None),
    user: CustomUser = Depends(get_current_user),
    service: LaborService = Depends(get_labor_service),
):
    result = await service.find_by_id(labor_id, user.username)
    if isinstance(result, NotFound):
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    if isinstance(result, AccessForbidden):
        return Response(status_code=status.HTTP_403_FORBIDDEN)
    if isinstance(result, Timeout):
        return timeout_response(result)

    labor = result.labor
    version = etag(labor.version)
    if if_none_match == version:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED)
    return JSONResponse(to_model(labor, request), media_type=HAL_JSON, headers={"ETag": version})


@app.post("/api", status_code=201)
async def create(
    body: LaborModel,
    request: Request,
    service: LaborService = Depends(get_labor_service),
):
    result = await service.create(to_domain(body))
    if isinstance(result, Success):
        logger.info(f"Labor created: {result.labor.id}")
        return Response(
            status_code=status.HTTP_201_CREATED,
            headers={"Location": f"{base_uri(request)}/{result.labor.id}"},
        )
    if isinstance(result, ConstraintViolations):
        return violations_response(result)
    if isinstance(result, InvalidAccount):
        return PlainTextResponse("Invalid account", status_code=status.HTTP_400_BAD_REQUEST)
    if isinstance(result, UsernameExists):
        return PlainTextResponse(
            f"The username {result.username} already exists", status_code=status.HTTP_400_BAD_REQUEST
        )
    return timeout_response(result)


@app.put("/api/{labor_id}")
async def update(
    labor_id: str,
    body: LaborModel,
    if_match: Optional[str] = Header(None),
    user: CustomUser = Depends(require_admin),
    service: LaborService = Depends(get_labor_service),
):
    version, error = version_from_if_match(if_match)
    if error is not None:
        return error
    result = await service.update(to_domain(body), labor_id, version)
    return update_response(result)


@app.patch("/api/{labor_id}")
async def patch(
    labor_id: str,
    operations: List[PatchOperationModel],
    if_match: Optional[str] = Header(None),
    user: CustomUser = Depends(require_admin),
    service: LaborService = Depends(get_labor_service),
):
    version, error = version_from_if_match(if_match)
    if error is not None:
        return error
    patch_ops = [PatchOperation(op=o.op, path=o.path, value=o.value) for o in operations]
    result = await service.patch(labor_id, patch_ops, version, user.username)
    return update_response(result)


@app.delete("/api/{labor_id}", status_code=204)
async def delete_by_id(
    labor_id: str,
    user: CustomUser = Depends(require_admin),
    service: LaborService = Depends(get_labor_service),
):
    result = await service.delete_by_id(labor_id)
    logger.debug(f"delete_by_id: {result}")
    if isinstance(result, Timeout):
        return timeout_response(result)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- Files ----------

@app.put("/api/{labor_id}/file", status_code=204)
async def upload(
    labor_id: str,
    request: Request,
    user: CustomUser = Depends(require_admin),
    file_service: LaborFileService = Depends(get_file_service),
):
    content_type = request.headers.get("content-type")
    if not content_type:
        return Response(status_code=status.HTTP_400_BAD_REQUEST)
    media_type = content_type.split(";")[0].strip().lower()
    if media_type not in UPLOAD_MEDIA_TYPES:
        return Response(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE)

    data = await request.body()
    try:
        reference = await file_service.save(data, labor_id, media_type)
    except asyncio.TimeoutError:
        return timeout_response(Timeout("upload"))
    if reference is None:
        return Response(status_code=status.HTTP_400_BAD_REQUEST)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/api/{labor_id}/file")
async def download(
    labor_id: str,
    user: CustomUser = Depends(get_current_user),
    file_service: LaborFileService = Depends(get_file_service),
):
    try:
        stored = await file_service.find_file(labor_id)
    except asyncio.TimeoutError:
        return timeout_response(Timeout("download"))
    if stored is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return Response(content=stored.data, media_type=stored.content_type)
