# authenledger/routes/verify.py

from flask import Blueprint, request, jsonify, current_app

from authenledger.services import qr_service

verify_bp = Blueprint("verify", __name__)

# Payload fields echoed back so a verifier can see what the QR claims.
ECHOED_FIELDS = (
    "studentName", "institution", "graduationDate", "validationDate",
    "confidenceScore", "authenticity", "hash", "verifyUrl", "timestamp",
)


@verify_bp.route("/verify-qr", methods=["POST"])
def verify_qr():
    """
    Structurally checks a QR payload. Accepts the payload object itself or
    {"data": "<raw QR text>"}. This does not prove the certificate is
    untampered; see qr_service.
    """
    body = request.get_json(silent=True)
    if body is None:
        return jsonify(error="Request body must be JSON"), 400

    payload = body
    if isinstance(body, dict) and isinstance(body.get("data"), str):
        try:
            payload = qr_service.parse_qr_text(body["data"])
        except qr_service.QRFormatError as e:
            return jsonify(isValid=False, certificateId="Unknown", error=str(e))
    if not isinstance(payload, dict):
        return jsonify(isValid=False, certificateId="Unknown", error=qr_service.INVALID_FORMAT)

    check = qr_service.verify_qr_data(payload)
    response = check.to_dict()
    response["certificateId"] = payload.get("certificateId") or "Unknown"
    response.update({field: payload.get(field) for field in ECHOED_FIELDS if field in payload})
    current_app.logger.info(f"QR check for '{response['certificateId']}': {'valid' if check.is_valid else check.error}")
    return jsonify(response)
