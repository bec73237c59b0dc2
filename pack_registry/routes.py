"""
Flask application and package registry endpoints.

Implements the Maven repository layout under ``/<project>/~maven/`` and a
JSON listing of published packs.
"""

import logging
from typing import Optional

from flask import Blueprint, Flask, Response, current_app, jsonify, make_response, request, send_file

from .access import AccessPolicy, FeatureGate, gate_from_config, policy_from_config
from .blobs import BlobStore
from .config import Config, config
from .errors import BadRequest, RegistryError
from .events import ListenerRegistry
from .index import PackIndex
from .locks import LockRegistry
from .resolver import is_read
from .service import MavenService, PackResponse

logger = logging.getLogger(__name__)

EXTENSION_KEY = "pack_registry"

bp = Blueprint("pack_registry", __name__)


def _service() -> MavenService:
    return current_app.extensions[EXTENSION_KEY]


def _request_user() -> Optional[str]:
    auth = request.authorization
    if auth is not None and auth.username:
        return auth.username
    return None


def _request_build_id() -> Optional[int]:
    value = request.headers.get("X-Build-Id")
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise BadRequest(f"Invalid build id: {value}")


def _to_response(result: PackResponse) -> Response:
    if result.blob_path is not None:
        resp = send_file(
            result.blob_path,
            mimetype=result.content_type,
            conditional=False,
            etag=False,
            last_modified=result.last_modified,
        )
        resp.headers["Content-Length"] = result.content_length
    elif result.body is not None:
        resp = make_response(result.body)
        resp.headers["Content-Type"] = result.content_type
        resp.headers["Content-Length"] = result.content_length
    else:
        resp = Response()
    resp.status_code = result.status
    if result.last_modified is not None:
        resp.last_modified = result.last_modified
    return resp


# -------------------------------
# Registry Endpoints
# -------------------------------


@bp.route("/<project>/~maven/", methods=["GET"])
def maven_version_check(project):
    """
    Repository root requested by Maven clients before they deploy.

    Returns:
        200 with an empty body once the project name is valid and the
        registry is licensed
    """
    _service().check_version(project)
    return Response(status=200)


@bp.route("/<project>/~maven/<path:pack_path>", methods=["GET", "HEAD", "PUT", "POST"])
def maven(project, pack_path):
    """
    Maven repository endpoint.

    Args:
        project: Project owning the repository (validated)
        pack_path: Maven layout path, e.g. ``org/acme/demo/1.0/demo-1.0.jar``

    Methods:
        GET: Returns the file, its checksum, or synthesized maven-metadata.xml
        HEAD: Returns status and Last-Modified only
        PUT/POST: Uploads a file, or verifies a checksum file

    Request Headers:
        Authorization: Optional basic auth; the user name is recorded as publisher
        X-Build-Id: Optional id of the build publishing the file

    Response Headers:
        Content-Type: application/xml, application/java-archive, text/plain
            for checksums, application/octet-stream otherwise
        Last-Modified: Publish time of the pack (or latest version for metadata)

    Returns:
        200 on success, 201 when new content was stored

    Raises:
        400: Malformed path, unknown GAV on write, checksum mismatch
        401/403: Missing permission
        404: Unknown GAV or file, or stored file found corrupted
        406: Package management not enabled
        413: Checksum body too large
    """
    result = _service().service(
        request.method,
        project,
        pack_path,
        stream=request.stream,
        user=_request_user(),
        build_id=None if is_read(request.method) else _request_build_id(),
    )
    logger.info(f"Maven response: project='{project}', path='{pack_path}', status={result.status}")
    return _to_response(result)


@bp.route("/<project>/~packs", methods=["GET"])
def list_packs(project):
    """
    List published packs of a project as JSON.

    Query Parameters:
        type: Optional pack type filter, e.g. "Maven"
    """
    service = _service()
    packs = service.list_packs(project, user=_request_user(), pack_type=request.args.get("type"))
    return jsonify({"project": project, "types": service.list_pack_types(), "packs": packs})


def handle_registry_error(error: RegistryError):
    logger.info(f"Registry error {error.code}: {error.description}")
    return Response(error.description, status=error.code, mimetype="text/plain")


def create_app(
    cfg: Optional[Config] = None,
    access: Optional[AccessPolicy] = None,
    gate: Optional[FeatureGate] = None,
    listeners: Optional[ListenerRegistry] = None,
) -> Flask:
    """
    Create the Flask application with its storage and collaborators wired in.

    Args:
        cfg: Configuration; defaults to the environment-driven global config
        access: Capability checks; defaults to one built from cfg
        gate: Feature gating; defaults to one built from cfg
        listeners: Receivers of PackPublished events
    """
    cfg = cfg or config
    app = Flask(__name__)

    service = MavenService(
        store=BlobStore(cfg.blobs_dir, cfg.UPLOAD_CHUNK_SIZE),
        index=PackIndex(cfg.index_path),
        locks=LockRegistry(),
        cfg=cfg,
        access=access or policy_from_config(cfg),
        gate=gate or gate_from_config(cfg),
        listeners=listeners or ListenerRegistry(),
    )
    app.extensions[EXTENSION_KEY] = service
    app.register_blueprint(bp)
    app.register_error_handler(RegistryError, handle_registry_error)

    logger.info(f"Package registry created: {cfg}")
    return app
