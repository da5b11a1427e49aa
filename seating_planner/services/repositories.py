"""
Repository layer abstracting layout storage (SQLAlchemy vs Firebase Firestore).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from seating_planner.core.config import settings
from seating_planner.models import Layout
from seating_planner.schemas.layout import LayoutType
from seating_planner.services.firebase_client import get_firestore_client

SNAPSHOT_FIELDS = ("room", "tables", "fixtures", "guests", "groups")


def use_firestore() -> bool:
    return settings.USE_FIREBASE is True


def scope_key(event_id: str, layout_type: LayoutType | str) -> str:
    return f"{event_id}:{LayoutType(layout_type).value}"


class LayoutRepo:
    @staticmethod
    def get_sql(db: Session, key: str) -> Optional[Layout]:
        return db.query(Layout).filter(Layout.scope_key == key).first()

    @staticmethod
    def upsert_sql(db: Session, key: str, data: Dict[str, Any]) -> Layout:
        layout = LayoutRepo.get_sql(db, key)
        if layout is None:
            layout = Layout(scope_key=key)
            db.add(layout)
        for field in SNAPSHOT_FIELDS:
            setattr(layout, field, data.get(field))
        layout.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(layout)
        return layout

    # Firestore shape: collection "layouts/{scope_key}" document with snapshot fields
    @staticmethod
    def get_fs(key: str) -> Optional[Dict[str, Any]]:
        fs = get_firestore_client()
        if not fs:
            return None
        doc = fs.collection("layouts").document(key).get()
        if not doc.exists:
            return None
        data = doc.to_dict()
        return {field: data.get(field) for field in SNAPSHOT_FIELDS if data.get(field) is not None}

    @staticmethod
    def set_fs(key: str, data: Dict[str, Any]) -> None:
        fs = get_firestore_client()
        payload = {field: data.get(field) for field in SNAPSHOT_FIELDS}
        payload["updated_at"] = datetime.utcnow().isoformat()
        fs.collection("layouts").document(key).set(payload)
