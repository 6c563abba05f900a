"""Activity lookups needed by the loan lifecycle."""

from datetime import datetime

from ..db.store import SERVER_TIMESTAMP, DocumentStore
from ..exceptions import NotFoundError
from ..settings.schemas import as_utc
from .schemas import ACTIVITIES_COLLECTION, Activity, ActivityCreate, ActivityStatus


class ActivityManager:
    """Reads and updates activity documents."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def create_activity(self, data: ActivityCreate) -> Activity:
        doc_id = self.store.insert(ACTIVITIES_COLLECTION, {**data.model_dump(), "created_at": SERVER_TIMESTAMP})
        return self.get_activity(doc_id)

    def get_activity(self, activity_id: str) -> Activity:
        """Get an activity by ID.

        Raises:
            NotFoundError: Activity does not exist
        """
        doc = self.store.get_by_id(ACTIVITIES_COLLECTION, activity_id)
        if doc is None:
            raise NotFoundError(ACTIVITIES_COLLECTION, activity_id)
        return Activity.model_validate(doc)

    def set_status(self, activity_id: str, status: ActivityStatus) -> None:
        self.store.update_by_id(ACTIVITIES_COLLECTION, activity_id, {"status": status})

    def list_finished_before(self, cutoff: datetime) -> list[Activity]:
        """Finished activities whose end date is strictly before ``cutoff``."""
        docs = self.store.query_by_field(
            ACTIVITIES_COLLECTION,
            "status",
            ActivityStatus.FINISHED,
            order_by="end_date",
        )
        activities = [Activity.model_validate(d) for d in docs]
        return [a for a in activities if as_utc(a.end_date) < as_utc(cutoff)]

    def list_by_responsible(self, user_id: str) -> list[Activity]:
        docs = self.store.query_by_field(ACTIVITIES_COLLECTION, "responsible_id", user_id)
        return [Activity.model_validate(d) for d in docs]
