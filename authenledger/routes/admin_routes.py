from flask import Blueprint, jsonify

from authenledger.routes.auth import roles_required
from authenledger.services import kv_store, stats_service

admin_bp = Blueprint("admin", __name__)


@admin_bp.route("/stats", methods=["GET"])
@roles_required("administrator")
def get_stats():
    """Platform-wide counters for the admin panel."""
    validations = kv_store.get_by_prefix("validation:")
    stats = stats_service.compute_stats(validations)
    stats.update({
        "registeredUsers": len(kv_store.get_by_prefix("user_email:")),
        "uploadedFiles": len(kv_store.get_by_prefix("file:")),
        "systemHealth": "operational",
    })
    return jsonify(stats)
