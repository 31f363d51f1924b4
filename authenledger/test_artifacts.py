# test_artifacts.py
# Tests for QR image rendering, the PDF report and the downloadable verification file.

import io
import unittest
from unittest import mock

from PIL import Image
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from authenledger.services import certificate_service, hash_service, pdf_service, qr_service
from authenledger.test_services import SAMPLE_RESULT


class TestQRImage(unittest.TestCase):

    def test_empty_text_still_produces_an_image(self):
        data_uri = qr_service.generate_qr_data_uri("")
        self.assertTrue(data_uri.startswith("data:image/png;base64,"))

    def test_image_is_200px_and_two_tone(self):
        data_uri = qr_service.generate_qr_data_uri('{"certificateId":"CERT-1"}')
        with Image.open(io.BytesIO(qr_service.decode_data_uri(data_uri))) as img:
            self.assertEqual(img.size, (200, 200))
            colors = {color for _, color in img.convert("RGB").getcolors()}
        self.assertEqual(colors, {(0x1e, 0x40, 0xaf), (0xff, 0xff, 0xff)})

    def test_oversized_payload_returns_empty_string(self):
        self.assertEqual(qr_service.generate_qr_data_uri("x" * 5000), "")


class TestPdfReport(unittest.TestCase):

    def setUp(self):
        self.watermark = pdf_service.default_watermark("University of Technology", 2026)
        self.qr = qr_service.generate_qr_data_uri('{"certificateId":"CERT-2024-7891"}')

    def test_default_watermark_text(self):
        self.assertEqual(self.watermark.text, "VERIFIED • UNIVERSITY OF TECHNOLOGY • 2026")
        self.assertEqual(self.watermark.opacity, 0.1)
        self.assertEqual(self.watermark.angle, -30)

    def test_report_is_a_single_page_pdf(self):
        pdf_bytes = pdf_service.render_certificate_pdf(SAMPLE_RESULT, self.qr, self.watermark)
        self.assertTrue(pdf_bytes.startswith(b"%PDF"))
        self.assertEqual(pdf_service.count_pages(pdf_bytes), 1)

    def test_report_contents(self):
        text = pdf_service.extract_text(pdf_service.render_certificate_pdf(SAMPLE_RESULT, self.qr, self.watermark))
        self.assertIn("CERTIFICATE VALIDATION REPORT", text)
        self.assertIn("VERIFIED AUTHENTIC", text)
        self.assertIn("Sarah Johnson", text)
        self.assertIn("92%", text)
        self.assertIn("Security Features:", text)
        self.assertIn("Generated on", text)

    def test_qr_block_only_when_qr_supplied(self):
        with_qr = pdf_service.extract_text(pdf_service.render_certificate_pdf(SAMPLE_RESULT, self.qr, self.watermark))
        without_qr = pdf_service.extract_text(pdf_service.render_certificate_pdf(SAMPLE_RESULT, "", self.watermark))
        self.assertIn(pdf_service.QR_CAPTION, with_qr)
        self.assertNotIn(pdf_service.QR_CAPTION, without_qr)

    def test_badge_follows_status_ladder(self):
        result = dict(SAMPLE_RESULT, authenticity="suspicious", confidenceScore=60)
        text = pdf_service.extract_text(pdf_service.render_certificate_pdf(result, "", self.watermark))
        self.assertIn("POTENTIALLY FORGED", text)

    def test_report_uses_embedded_truetype_font(self):
        regular, bold = pdf_service.register_fonts()
        self.assertIsInstance(pdfmetrics.getFont(regular), TTFont)
        self.assertIsInstance(pdfmetrics.getFont(bold), TTFont)
        result = dict(SAMPLE_RESULT, metadata=dict(SAMPLE_RESULT["metadata"], studentName="José Müller"))
        text = pdf_service.extract_text(pdf_service.render_certificate_pdf(result, "", self.watermark))
        self.assertIn("José Müller", text)

    def test_names_beyond_latin1_render_when_the_font_covers_them(self):
        name = "Łukasz Żółć"
        face = pdfmetrics.getFont(pdf_service.register_fonts()[0]).face
        if not all(ord(ch) in face.charToGlyph for ch in name if ch != " "):
            self.skipTest("no installed TrueType font covers Latin Extended-A")
        result = dict(SAMPLE_RESULT, metadata=dict(SAMPLE_RESULT["metadata"], studentName=name))
        text = pdf_service.extract_text(pdf_service.render_certificate_pdf(result, "", self.watermark))
        self.assertIn(name, text)

    def test_count_pages_of_garbage_is_none(self):
        self.assertIsNone(pdf_service.count_pages(b"definitely not a pdf"))


class TestCertificateService(unittest.TestCase):

    def test_generate_secure_certificate(self):
        pdf_bytes, qr_data_uri = certificate_service.generate_secure_certificate(SAMPLE_RESULT)
        self.assertTrue(pdf_bytes.startswith(b"%PDF"))
        self.assertTrue(qr_data_uri.startswith("data:image/png;base64,"))

    def test_missing_qr_degrades_gracefully(self):
        with mock.patch.object(qr_service, "generate_qr_data_uri", return_value=""):
            pdf_bytes, qr_data_uri = certificate_service.generate_secure_certificate(SAMPLE_RESULT)
        self.assertEqual(qr_data_uri, "")
        self.assertNotIn(pdf_service.QR_CAPTION, pdf_service.extract_text(pdf_bytes))

    def test_render_failure_raises_generation_error(self):
        with mock.patch.object(pdf_service, "render_certificate_pdf", side_effect=RuntimeError("boom")):
            with self.assertRaises(certificate_service.CertificateGenerationError):
                certificate_service.generate_secure_certificate(SAMPLE_RESULT)

    def test_qr_payload_matches_its_metadata_hash(self):
        payload, _ = certificate_service.build_certificate_qr(SAMPLE_RESULT)
        metadata = {key: payload[key] for key in (
            "certificateId", "studentName", "institution", "graduationDate", "validationDate",
            "confidenceScore", "authenticity", "timestamp", "version")}
        self.assertEqual(payload["hash"], hash_service.sha256_of_data(metadata))

    def test_verification_file_shape(self):
        verification = certificate_service.build_verification_file(SAMPLE_RESULT)
        self.assertEqual(list(verification.keys()), [
            "certificateId", "validationTimestamp", "authenticity", "confidenceScore",
            "metadata", "issues", "cryptographicHash", "generatedAt", "version",
        ])
        self.assertEqual(verification["certificateId"], "CERT-2024-7891")
        self.assertEqual(verification["validationTimestamp"], "2026-01-10T09:00:00.000Z")
        self.assertEqual(verification["cryptographicHash"], hash_service.sha256_of_data(SAMPLE_RESULT))
        self.assertEqual(verification["version"], "1.0")

    def test_filenames(self):
        self.assertEqual(certificate_service.certificate_filename(SAMPLE_RESULT),
                         "verified-certificate-CERT-2024-7891.pdf")
        self.assertEqual(certificate_service.certificate_filename(SAMPLE_RESULT, "json"),
                         "verification-CERT-2024-7891.json")


if __name__ == "__main__":
    unittest.main()
