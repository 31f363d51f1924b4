# authenledger/routes/validate.py

import io
import time

from flask import Blueprint, request, jsonify, current_app, send_file
from flask_jwt_extended import jwt_required, get_jwt_identity
from werkzeug.utils import secure_filename

from authenledger.services import hash_service, kv_store, pdf_service, stats_service
from authenledger.services.certificate_service import (
    CertificateGenerationError,
    build_certificate_qr,
    build_verification_file,
    certificate_filename,
    generate_secure_certificate,
)
from authenledger.services.metadata_service import iso_timestamp
from authenledger.services.status_service import classify_status

ALLOWED_EXTENSIONS = {'pdf', 'doc', 'docx', 'jpg', 'jpeg', 'png', 'txt'}

validate_bp = Blueprint("validate", __name__)


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def _unique_key(prefix):
    """Returns '<prefix><ms>' for the first millisecond value not already taken."""
    ms = int(time.time() * 1000)
    while kv_store.get(f"{prefix}{ms}") is not None:
        ms += 1
    return f"{prefix}{ms}"


def _get_owned_file(file_id, user_id):
    """Only upload records qualify; other keys the user owns (validations) do not."""
    if not isinstance(file_id, str) or not file_id.startswith(f"file:{user_id}:"):
        return None
    file_data = kv_store.get(file_id)
    if not file_data or file_data.get("userId") != user_id:
        return None
    return file_data


def _get_owned_validation(validation_id, user_id):
    if not validation_id.startswith(f"validation:{user_id}:"):
        return None
    return kv_store.get(validation_id)


def _store_file(file_storage, user_id):
    """Records an uploaded file's metadata. File contents are not retained."""
    original_name = file_storage.filename
    content = file_storage.read()
    if len(content) > current_app.config["MAX_FILE_SIZE"]:
        return {"fileName": original_name, "error": "File size exceeds 10MB limit"}
    if not allowed_file(original_name):
        return {"fileName": original_name, "error": "File type not supported"}

    file_id = _unique_key(f"file:{user_id}:")
    uploaded_at = iso_timestamp()
    record = {
        "id": file_id,
        "userId": user_id,
        "fileName": original_name,
        "originalName": original_name,
        "fileSize": len(content),
        "fileType": file_storage.mimetype,
        "fileHash": hash_service.sha256_of_bytes(content),
        "uploadedAt": uploaded_at,
        "status": "uploaded",
    }
    if original_name.lower().endswith(".pdf"):
        record["pageCount"] = pdf_service.count_pages(content)
    kv_store.set(file_id, record)
    return {
        "fileName": original_name,
        "fileId": file_id,
        "fileSize": len(content),
        "uploadedAt": uploaded_at,
        "success": True,
    }


@validate_bp.route("/upload", methods=["POST"])
@jwt_required()
def upload():
    files = [f for f in request.files.getlist('files') if f and f.filename]
    if not files:
        return jsonify(error="No files provided"), 400

    user_id = get_jwt_identity()
    results = []
    for file_storage in files:
        try:
            results.append(_store_file(file_storage, user_id))
        except Exception as e:
            current_app.logger.exception(f"Upload error for {file_storage.filename}: {e}")
            results.append({"fileName": file_storage.filename, "error": "Upload failed"})

    return jsonify(message="Upload completed", results=results)


@validate_bp.route("/validate", methods=["POST"])
@jwt_required()
def validate():
    data = request.get_json(silent=True) or {}
    file_ids = data.get("fileIds")
    if not isinstance(file_ids, list):
        return jsonify(error="File IDs array required"), 400

    user_id = get_jwt_identity()
    scorer = current_app.extensions["scorer"]
    results = []
    for file_id in file_ids:
        try:
            file_data = _get_owned_file(file_id, user_id)
            if not file_data:
                results.append({"fileId": file_id, "error": "File not found or access denied"})
                continue

            verdict = scorer.score(file_data)
            validation_id = _unique_key(f"validation:{user_id}:")
            validated_at = iso_timestamp()
            validation = {
                "id": validation_id,
                "fileId": file_id,
                "userId": user_id,
                "fileName": file_data["fileName"],
                "fileSize": file_data["fileSize"],
                "validatedAt": validated_at,
                **verdict,
            }
            kv_store.set(validation_id, validation)

            file_data.update({"status": "validated", "validationId": validation_id, "validatedAt": validated_at})
            kv_store.set(file_id, file_data)

            badge = classify_status(validation["authenticity"], validation["confidenceScore"])
            current_app.logger.info(f"Validated {file_id}: {badge.label} ({validation['confidenceScore']})")
            results.append(validation)
        except Exception as e:
            current_app.logger.exception(f"Validation error for {file_id}: {e}")
            results.append({"fileId": file_id, "error": "Validation failed"})

    return jsonify(message="Validation completed", results=results)


@validate_bp.route("/validations", methods=["GET"])
@jwt_required()
def list_validations():
    user_id = get_jwt_identity()
    validations = kv_store.get_by_prefix(f"validation:{user_id}:")
    limit = current_app.config["VALIDATIONS_PAGE_LIMIT"]
    return jsonify(validations=stats_service.newest_first(validations, limit))


@validate_bp.route("/validations/<validation_id>/certificate.pdf", methods=["GET"])
@jwt_required()
def download_certificate(validation_id):
    validation = _get_owned_validation(validation_id, get_jwt_identity())
    if not validation:
        return jsonify(error="Validation not found"), 404
    try:
        pdf_bytes, _ = generate_secure_certificate(
            validation,
            verify_url_template=current_app.config["VERIFY_URL_TEMPLATE"],
            platform=current_app.config["PLATFORM_NAME"],
        )
    except CertificateGenerationError as e:
        return jsonify(error=str(e)), 500
    return send_file(
        io.BytesIO(pdf_bytes),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=secure_filename(certificate_filename(validation, "pdf")),
    )


@validate_bp.route("/validations/<validation_id>/verification.json", methods=["GET"])
@jwt_required()
def download_verification_file(validation_id):
    validation = _get_owned_validation(validation_id, get_jwt_identity())
    if not validation:
        return jsonify(error="Validation not found"), 404
    response = jsonify(build_verification_file(validation))
    filename = secure_filename(certificate_filename(validation, "json"))
    response.headers["Content-Disposition"] = f"attachment; filename={filename}"
    return response


@validate_bp.route("/validations/<validation_id>/qr", methods=["GET"])
@jwt_required()
def certificate_qr(validation_id):
    validation = _get_owned_validation(validation_id, get_jwt_identity())
    if not validation:
        return jsonify(error="Validation not found"), 404
    payload, data_uri = build_certificate_qr(
        validation,
        verify_url_template=current_app.config["VERIFY_URL_TEMPLATE"],
        platform=current_app.config["PLATFORM_NAME"],
    )
    return jsonify(payload=payload, qrCode=data_uri or None)
