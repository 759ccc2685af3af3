from cloudpipe.db import db
from datetime import datetime, timezone

def _utcnow():
    return datetime.now(timezone.utc)

class Secret(db.Model):
    __tablename__ = 'secrets'
    __table_args__ = (
        db.UniqueConstraint('organisation_id', 'name', name='uq_secrets_organisation_name'),
    )

    id = db.Column(db.Integer, primary_key=True)
    organisation_id = db.Column(db.Integer, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    type = db.Column(db.String(64), nullable=False)
    values = db.Column(db.JSON, nullable=False, default=dict)
    tags = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f'<Secret {self.name}>'
