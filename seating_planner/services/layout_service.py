"""
Loading and saving seating models through the configured layout store
"""

import logging
from typing import Optional

from google.api_core.exceptions import GoogleAPIError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from seating_planner.core.config import settings
from seating_planner.schemas.layout import LayoutSnapshot, RoomSettings
from seating_planner.services.repositories import LayoutRepo, use_firestore
from seating_planner.services.seating_service import SeatingModel

logger = logging.getLogger(__name__)


class LayoutStore:
    """Persistence collaborator: ``load``/``save`` whole layout snapshots by scope key"""

    def __init__(self, db: Optional[Session] = None, retries: Optional[int] = None):
        self.db = db
        self.retries = settings.SAVE_RETRY_ATTEMPTS if retries is None else retries

    def load(self, key: str) -> Optional[LayoutSnapshot]:
        if use_firestore():
            data = LayoutRepo.get_fs(key)
        else:
            layout = LayoutRepo.get_sql(self.db, key)
            data = layout.to_snapshot_dict() if layout is not None else None
        if data is None:
            return None
        return LayoutSnapshot.model_validate(data)

    def save(self, key: str, snapshot: LayoutSnapshot) -> bool:
        """Persist a snapshot; failures are retried, logged and reported as False"""
        data = snapshot.model_dump(mode="json")
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                if use_firestore():
                    LayoutRepo.set_fs(key, data)
                else:
                    LayoutRepo.upsert_sql(self.db, key, data)
                return True
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.warning(f"Saving layout {key} failed (attempt {attempt}/{attempts}): {e}")
            except GoogleAPIError as e:
                logger.warning(f"Saving layout {key} to Firestore failed (attempt {attempt}/{attempts}): {e}")
        logger.error(f"Giving up on saving layout {key}; in-memory state kept")
        return False


class LayoutService:
    """Opens and commits seating models for a layout scope"""

    @staticmethod
    def default_room() -> RoomSettings:
        return RoomSettings(
            width=settings.ROOM_WIDTH,
            height=settings.ROOM_HEIGHT,
            background=settings.ROOM_BACKGROUND,
            grid_size=settings.GRID_SIZE,
            snap_to_grid=settings.SNAP_TO_GRID,
        )

    @staticmethod
    def open(store: LayoutStore, key: str) -> SeatingModel:
        """Load the layout for ``key``; a missing layout is created with defaults and saved once"""
        snapshot = store.load(key)
        if snapshot is None:
            logger.info(f"No layout stored for {key}; initialising defaults")
            model = SeatingModel(room=LayoutService.default_room())
            store.save(key, model.to_snapshot())
            return model

        model = SeatingModel.from_snapshot(snapshot)
        problems = model.check_consistency()
        if problems:
            logger.warning(f"Layout {key} still inconsistent after load: {problems}")
        return model

    @staticmethod
    def commit(store: LayoutStore, key: str, model: SeatingModel) -> bool:
        """Save the model's current state; the model is never rolled back on failure"""
        saved = store.save(key, model.to_snapshot())
        if not saved:
            logger.warning(f"Layout {key} changed in memory but not persisted")
        return saved
