from typing import Any, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cloudpipe.db.models.cluster import ClusterRecord
from cloudpipe.exceptions import ClusterNotFoundError, DatabaseError


class ClusterRepository:
    """Read access to persisted cluster records. Soft deleted rows are never returned."""

    def __init__(self, session: Session):
        self.session = session

    def _active(self):
        return select(ClusterRecord).where(ClusterRecord.deleted_at.is_(None))

    def _all(self, query, **context) -> List[ClusterRecord]:
        try:
            return list(self.session.scalars(query.order_by(ClusterRecord.id)))
        except SQLAlchemyError as e:
            raise DatabaseError("Could not fetch clusters", **context) from e

    def all(self) -> List[ClusterRecord]:
        return self._all(self._active())

    def find_by_organisation(self, organisation_id: int) -> List[ClusterRecord]:
        return self._all(
            self._active().where(ClusterRecord.organisation_id == organisation_id),
            organisation_id=organisation_id
        )

    def find_by_secret(self, organisation_id: int, secret_id: str) -> List[ClusterRecord]:
        return self._all(
            self._active().where(
                ClusterRecord.organisation_id == organisation_id,
                ClusterRecord.secret_id == secret_id
            ),
            organisation_id=organisation_id,
            secret_id=secret_id
        )

    def find_one_by_id(self, organisation_id: int, cluster_id: int) -> ClusterRecord:
        return self._find_one_by(organisation_id, 'id', cluster_id)

    def find_one_by_name(self, organisation_id: int, name: str) -> ClusterRecord:
        return self._find_one_by(organisation_id, 'name', name)

    def _find_one_by(self, organisation_id: int, field: str, criteria: Any) -> ClusterRecord:
        query = self._active().where(
            getattr(ClusterRecord, field) == criteria,
            ClusterRecord.organisation_id == organisation_id
        )
        try:
            cluster = self.session.scalars(query).first()
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Could not get cluster by {field}",
                organisation_id=organisation_id,
                cluster=criteria
            ) from e

        if cluster is None:
            raise ClusterNotFoundError(organisation_id, criteria)

        return cluster
