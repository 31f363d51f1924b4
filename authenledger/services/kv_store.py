# services/kv_store.py
"""
Key-value persistence on top of the `kv_store` table.

Users, sessions, uploaded file records and validation results are all kept
here as JSON documents under namespaced keys. There is no relational
integrity beyond the key conventions used by the routes.
"""
from typing import Any, List, Optional
from flask import current_app
from sqlalchemy.orm.attributes import flag_modified

from authenledger.models import db, KVEntry


def get(key: str) -> Optional[Any]:
    entry = db.session.get(KVEntry, key)
    return entry.value if entry else None


def set(key: str, value: Any) -> None:
    """Inserts or replaces the value stored under `key`."""
    entry = db.session.get(KVEntry, key)
    if entry is None:
        db.session.add(KVEntry(key=key, value=value))
    else:
        entry.value = value
        # Values may be the same dict that was read and mutated in place.
        flag_modified(entry, "value")
    db.session.commit()


def delete(key: str) -> bool:
    entry = db.session.get(KVEntry, key)
    if entry is None:
        return False
    db.session.delete(entry)
    db.session.commit()
    return True


def get_by_prefix(prefix: str) -> List[Any]:
    """Returns every value whose key starts with `prefix`, in key order."""
    # Escape LIKE wildcards so user ids can't widen the match.
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    entries = (
        KVEntry.query
        .filter(KVEntry.key.like(f"{escaped}%", escape="\\"))
        .order_by(KVEntry.key)
        .all()
    )
    current_app.logger.debug(f"Prefix lookup '{prefix}' matched {len(entries)} entries")
    return [entry.value for entry in entries]
