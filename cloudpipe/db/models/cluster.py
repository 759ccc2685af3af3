from cloudpipe.db import db
from datetime import datetime, timezone
from enum import Enum

class ClusterStatus(Enum):
    CREATING = "CREATING"
    RUNNING = "RUNNING"
    UPDATING = "UPDATING"
    DELETING = "DELETING"
    ERROR = "ERROR"
    UNKNOWN = "UNKNOWN"

def _utcnow():
    return datetime.now(timezone.utc)

class ClusterRecord(db.Model):
    __tablename__ = 'clusters'
    __table_args__ = (
        # a name can be reused once the previous cluster is soft deleted
        db.Index(
            'ix_clusters_organisation_name_active',
            'organisation_id',
            'name',
            unique=True,
            sqlite_where=db.text('deleted_at IS NULL'),
            postgresql_where=db.text('deleted_at IS NULL'),
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    organisation_id = db.Column(db.Integer, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    cloud = db.Column(db.String(32), nullable=False)  # provider discriminator
    config = db.Column(db.Text, nullable=False, default='{}')  # provider specific JSON
    secret_id = db.Column(db.String(64), nullable=True, index=True)
    status = db.Column(db.String(32), nullable=False, default=ClusterStatus.UNKNOWN.value)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True, index=True)

    def __repr__(self):
        return f'<ClusterRecord {self.organisation_id}/{self.name}>'
