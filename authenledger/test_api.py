# test_api.py
# End-to-end tests of the HTTP API using the Flask test client and the in-memory store.

import io
import time
import unittest

from flask_jwt_extended import decode_token

from authenledger.app import create_app
from authenledger.models import db
from authenledger.services import kv_store, qr_service
from authenledger.services.metadata_service import build_verification_metadata
from authenledger.test_services import SAMPLE_RESULT


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.app = create_app('testing')
        self.client = self.app.test_client()

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()

    def signup(self, email="alice@example.com", password="secret123", role="user"):
        return self.client.post("/signup", json={
            "name": "Alice", "email": email, "password": password,
            "institution": "North University", "role": role, "department": "Physics",
        })

    def signin(self, email="alice@example.com", password="secret123"):
        return self.client.post("/signin", json={"email": email, "password": password})

    def auth_headers(self, email="alice@example.com", password="secret123", role="user"):
        self.signup(email, password, role)
        token = self.signin(email, password).get_json()["session"]["access_token"]
        return {"Authorization": f"Bearer {token}"}

    def upload(self, headers, *files):
        data = {"files": [(io.BytesIO(content), name) for name, content in files]}
        return self.client.post("/upload", data=data, headers=headers, content_type="multipart/form-data")

    def upload_and_validate(self, headers, name="cert.pdf"):
        file_id = self.upload(headers, (name, b"%PDF-1.4 sample")).get_json()["results"][0]["fileId"]
        return self.client.post("/validate", json={"fileIds": [file_id]}, headers=headers).get_json()["results"][0]


class TestSystemAndAuth(ApiTestCase):

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"status": "ok"})

    def test_init_creates_demo_user_once(self):
        self.assertEqual(self.client.get("/init").status_code, 200)
        self.assertEqual(self.client.get("/init").status_code, 200)
        response = self.signin("demo@test.com", "password123")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["user"]["name"], "Demo User")

    def test_signup_requires_fields(self):
        response = self.client.post("/signup", json={"email": "x@example.com"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json(), {"error": "Missing required fields"})

    def test_duplicate_signup_is_rejected(self):
        self.assertEqual(self.signup().status_code, 200)
        response = self.signup()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "User with this email already exists")

    def test_signin_returns_session_shape(self):
        self.signup()
        before = int(time.time())
        data = self.signin().get_json()
        session = data["session"]
        self.assertEqual(session["user"]["email"], "alice@example.com")
        self.assertEqual(session["user"]["user_metadata"], {"name": "Alice", "role": "user"})
        self.assertGreaterEqual(session["expires_at"], before + 24 * 60 * 60)
        self.assertNotIn("password_hash", data["user"])

    def test_signin_with_wrong_password(self):
        self.signup()
        response = self.signin(password="wrong-password")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json(), {"error": "Invalid email or password"})

    def test_signin_requires_fields(self):
        self.assertEqual(self.client.post("/signin", json={}).status_code, 400)

    def test_non_string_fields_are_rejected(self):
        response = self.client.post("/signup", json={"name": 123, "email": "x@example.com", "password": "secret123"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json(), {"error": "Missing required fields"})
        response = self.client.post("/signin", json={"email": ["a@example.com"], "password": {"x": 1}})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json(), {"error": "Email and password are required"})
        self.assertEqual(self.client.post("/signup", json=["not", "an", "object"]).status_code, 400)

    def test_missing_and_invalid_tokens(self):
        response = self.client.get("/validations")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json(), {"error": "Authorization token required"})
        response = self.client.get("/validations", headers={"Authorization": "Bearer nonsense"})
        self.assertEqual(response.status_code, 401)
        self.assertIn("error", response.get_json())

    def test_logout_revokes_session(self):
        headers = self.auth_headers()
        self.assertEqual(self.client.get("/profile", headers=headers).status_code, 200)
        self.assertEqual(self.client.post("/logout", headers=headers).status_code, 200)
        self.assertEqual(self.client.get("/profile", headers=headers).status_code, 401)

    def test_expired_session_record_is_rejected_and_removed(self):
        headers = self.auth_headers()
        token = headers["Authorization"].split(" ")[1]
        with self.app.app_context():
            jti = decode_token(token)["jti"]
            session = kv_store.get(f"session:{jti}")
            session["expires_at"] = int(time.time()) - 1
            kv_store.set(f"session:{jti}", session)
        self.assertEqual(self.client.get("/profile", headers=headers).status_code, 401)
        with self.app.app_context():
            self.assertIsNone(kv_store.get(f"session:{jti}"))

    def test_profile(self):
        data = self.client.get("/profile", headers=self.auth_headers()).get_json()
        self.assertEqual(data["institution"], "North University")
        self.assertEqual(data["department"], "Physics")

    def test_unknown_route_returns_json_error(self):
        response = self.client.get("/no-such-route")
        self.assertEqual(response.status_code, 404)
        self.assertIn("error", response.get_json())


class TestUploadAndValidate(ApiTestCase):

    def test_upload_requires_files(self):
        response = self.client.post("/upload", data={}, headers=self.auth_headers(), content_type="multipart/form-data")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json(), {"error": "No files provided"})

    def test_upload_records_each_file(self):
        response = self.upload(self.auth_headers(), ("a.pdf", b"%PDF-1.4 a"), ("b.png", b"png-bytes"))
        results = response.get_json()["results"]
        self.assertEqual(len(results), 2)
        self.assertTrue(all(r["success"] for r in results))
        self.assertNotEqual(results[0]["fileId"], results[1]["fileId"])
        self.assertEqual(results[1]["fileSize"], len(b"png-bytes"))

    def test_upload_rejects_oversized_and_unsupported_files_per_item(self):
        self.app.config["MAX_FILE_SIZE"] = 8
        results = self.upload(
            self.auth_headers(), ("big.pdf", b"0123456789"), ("notes.exe", b"x"), ("ok.txt", b"ok"),
        ).get_json()["results"]
        self.assertEqual(results[0]["error"], "File size exceeds 10MB limit")
        self.assertEqual(results[1]["error"], "File type not supported")
        self.assertTrue(results[2]["success"])

    def test_validate_requires_file_id_list(self):
        response = self.client.post("/validate", json={"fileIds": "nope"}, headers=self.auth_headers())
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json(), {"error": "File IDs array required"})

    def test_validate_stores_results(self):
        headers = self.auth_headers()
        validation = self.upload_and_validate(headers)
        self.assertIn(validation["authenticity"], ("authentic", "suspicious"))
        self.assertTrue(70 <= validation["confidenceScore"] <= 99)
        self.assertEqual(validation["fileName"], "cert.pdf")
        self.assertTrue(validation["id"].startswith("validation:"))
        listed = self.client.get("/validations", headers=headers).get_json()["validations"]
        self.assertEqual([v["id"] for v in listed], [validation["id"]])

    def test_stored_validation_cannot_be_revalidated(self):
        headers = self.auth_headers()
        validation = self.upload_and_validate(headers)
        results = self.client.post("/validate", json={"fileIds": [validation["id"]]},
                                   headers=headers).get_json()["results"]
        self.assertEqual(results, [{"fileId": validation["id"], "error": "File not found or access denied"}])
        listed = self.client.get("/validations", headers=headers).get_json()["validations"]
        self.assertEqual(listed, [validation])

    def test_validate_other_users_file_is_denied_per_item(self):
        owner = self.auth_headers()
        file_id = self.upload(owner, ("a.pdf", b"x")).get_json()["results"][0]["fileId"]
        intruder = self.auth_headers(email="mallory@example.com")
        results = self.client.post("/validate", json={"fileIds": [file_id, "file:missing:1"]},
                                   headers=intruder).get_json()["results"]
        self.assertEqual(results, [
            {"fileId": file_id, "error": "File not found or access denied"},
            {"fileId": "file:missing:1", "error": "File not found or access denied"},
        ])

    def test_validations_are_newest_first_and_limited(self):
        self.app.config["VALIDATIONS_PAGE_LIMIT"] = 2
        headers = self.auth_headers()
        for i in range(3):
            self.upload_and_validate(headers, f"c{i}.pdf")
        listed = self.client.get("/validations", headers=headers).get_json()["validations"]
        self.assertEqual(len(listed), 2)
        self.assertGreaterEqual(listed[0]["validatedAt"], listed[1]["validatedAt"])


class TestArtifactsAndVerification(ApiTestCase):

    def test_certificate_pdf_download(self):
        headers = self.auth_headers()
        validation = self.upload_and_validate(headers)
        response = self.client.get(f"/validations/{validation['id']}/certificate.pdf", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, "application/pdf")
        self.assertTrue(response.data.startswith(b"%PDF"))
        self.assertIn("verified-certificate-", response.headers["Content-Disposition"])

    def test_verification_file_download(self):
        headers = self.auth_headers()
        validation = self.upload_and_validate(headers)
        data = self.client.get(f"/validations/{validation['id']}/verification.json", headers=headers).get_json()
        self.assertEqual(data["certificateId"], validation["metadata"]["certificateId"])
        self.assertEqual(data["validationTimestamp"], validation["validatedAt"])
        self.assertEqual(len(data["cryptographicHash"]), 64)
        self.assertEqual(data["version"], "1.0")

    def test_qr_endpoint_returns_payload_and_image(self):
        headers = self.auth_headers()
        validation = self.upload_and_validate(headers)
        data = self.client.get(f"/validations/{validation['id']}/qr", headers=headers).get_json()
        self.assertEqual(data["payload"]["platform"], "AuthenLedger")
        self.assertTrue(data["qrCode"].startswith("data:image/png;base64,"))

    def test_artifacts_are_owner_only(self):
        validation = self.upload_and_validate(self.auth_headers())
        intruder = self.auth_headers(email="mallory@example.com")
        response = self.client.get(f"/validations/{validation['id']}/certificate.pdf", headers=intruder)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {"error": "Validation not found"})

    def test_verify_qr_valid_payload(self):
        metadata = build_verification_metadata(SAMPLE_RESULT)
        payload = qr_service.build_qr_payload(metadata, metadata["certificateId"])
        data = self.client.post("/verify-qr", json=payload).get_json()
        self.assertTrue(data["isValid"])
        self.assertEqual(data["certificateId"], "CERT-2024-7891")
        self.assertEqual(data["studentName"], "Sarah Johnson")

    def test_verify_qr_missing_certificate_id(self):
        data = self.client.post("/verify-qr", json={"hash": "a" * 64}).get_json()
        self.assertEqual(data, {"isValid": False, "error": "Missing certificate ID",
                                "certificateId": "Unknown", "hash": "a" * 64})

    def test_verify_qr_raw_text(self):
        data = self.client.post("/verify-qr", json={"data": "{not json"}).get_json()
        self.assertFalse(data["isValid"])
        self.assertEqual(data["error"], "Failed to parse QR code data - invalid format")

    def test_verify_qr_requires_json(self):
        response = self.client.post("/verify-qr", data="plain", content_type="text/plain")
        self.assertEqual(response.status_code, 400)


class TestAdmin(ApiTestCase):

    def test_stats_require_administrator(self):
        response = self.client.get("/admin/stats", headers=self.auth_headers())
        self.assertEqual(response.status_code, 403)
        self.assertIn("error", response.get_json())

    def test_stats_for_administrator(self):
        user_headers = self.auth_headers()
        self.upload_and_validate(user_headers)
        admin_headers = self.auth_headers(email="root@example.com", role="administrator")
        stats = self.client.get("/admin/stats", headers=admin_headers).get_json()
        self.assertEqual(stats["totalValidations"], 1)
        self.assertEqual(stats["registeredUsers"], 2)
        self.assertEqual(stats["uploadedFiles"], 1)


if __name__ == "__main__":
    unittest.main()
