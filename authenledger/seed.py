# seed.py
# Command to reset the key-value store and seed it with demo data.

import os
from flask import current_app
from flask.cli import with_appcontext
import click

from authenledger.models import db
from authenledger.routes.auth import DEMO_USER_ID, ensure_demo_user
from authenledger.services import kv_store
from authenledger.services.certificate_service import certificate_filename, generate_secure_certificate
from authenledger.services.metadata_service import iso_timestamp

DEMO_FILES = ["bsc_transcript.pdf", "degree_certificate.png", "diploma_scan.jpg"]


def seed_demo_validations():
    """Stores one uploaded file and one validation per demo file name."""
    scorer = current_app.extensions["scorer"]
    validations = []
    for index, file_name in enumerate(DEMO_FILES):
        stamp = 1_700_000_000_000 + index
        file_id = f"file:{DEMO_USER_ID}:{stamp}"
        file_record = {
            "id": file_id,
            "userId": DEMO_USER_ID,
            "fileName": file_name,
            "originalName": file_name,
            "fileSize": 250_000 + index * 1024,
            "uploadedAt": iso_timestamp(),
            "status": "validated",
        }
        validation_id = f"validation:{DEMO_USER_ID}:{stamp}"
        validation = {
            "id": validation_id,
            "fileId": file_id,
            "userId": DEMO_USER_ID,
            "fileName": file_name,
            "fileSize": file_record["fileSize"],
            "validatedAt": iso_timestamp(),
            **scorer.score(file_record),
        }
        file_record["validationId"] = validation_id
        kv_store.set(file_id, file_record)
        kv_store.set(validation_id, validation)
        validations.append(validation)
    print(f"✅ {len(validations)} demo validations seeded.")
    return validations


@click.command('seed-db')
@click.option('--samples-dir', default=None, help='Also write a sample certificate PDF into this directory.')
@with_appcontext
def seed_command(samples_dir):
    """Main command to reset the store and seed demo data."""
    db.drop_all()
    db.create_all()
    print("Key-value store dropped and recreated.")

    ensure_demo_user()
    print("✅ Demo user seeded.")
    validations = seed_demo_validations()

    if samples_dir:
        os.makedirs(samples_dir, exist_ok=True)
        pdf_bytes, _ = generate_secure_certificate(
            validations[0],
            verify_url_template=current_app.config["VERIFY_URL_TEMPLATE"],
            platform=current_app.config["PLATFORM_NAME"],
        )
        path = os.path.join(samples_dir, certificate_filename(validations[0]))
        with open(path, "wb") as f:
            f.write(pdf_bytes)
        print(f"Sample certificate written to {path}")

    print("🎉 Seeding completed successfully! 🎉")
