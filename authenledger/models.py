# authenledger/models.py
from datetime import datetime
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.dialects.sqlite import JSON as SQLITE_JSON
from sqlalchemy.dialects.postgresql import JSONB as POSTGRESQL_JSONB

db = SQLAlchemy()


class KVEntry(db.Model):
    """A single key-value record. Keys are namespaced strings such as
    'user:<id>' or 'validation:<user_id>:<ms>'; values are JSON documents."""
    __tablename__ = "kv_store"
    key = db.Column(db.String(255), primary_key=True)
    value = db.Column(db.JSON().with_variant(POSTGRESQL_JSONB, "postgresql").with_variant(SQLITE_JSON, "sqlite"), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<KVEntry {self.key}>"
