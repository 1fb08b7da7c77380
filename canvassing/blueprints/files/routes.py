"""
Stored file download route.

Public URLs produced by canvassing.storage point here:
    /files/<bucket>/<object path>

SECURITY NOTE:
- Only configured buckets are served; send_from_directory rejects paths
  escaping the bucket directory.
"""

from __future__ import annotations

from flask import Blueprint, abort, current_app, send_from_directory
from flask_login import login_required

from ...storage import bucket_root

files_bp = Blueprint("files", __name__, url_prefix="/files")


@files_bp.route("/<bucket>/<path:object_path>", methods=["GET"])
@login_required
def serve_file(bucket: str, object_path: str):
    if bucket not in (current_app.config["CANVASS_BUCKET"], current_app.config["AVATAR_BUCKET"]):
        abort(404)
    return send_from_directory(bucket_root(bucket), object_path)
