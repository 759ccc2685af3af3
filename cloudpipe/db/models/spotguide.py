from cloudpipe.db import db
from cloudpipe.services.manifest import SpotguideManifest, decode_manifest
from datetime import datetime, timezone

SPOTGUIDE_RAW_MAX_SIZE = 10240

def _utcnow():
    return datetime.now(timezone.utc)

class SpotguideRepo(db.Model):
    __tablename__ = 'spotguide_repos'

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False, index=True)  # "owner/repository"
    icon = db.Column(db.String(512), nullable=True)
    spotguide_raw = db.Column(db.LargeBinary(SPOTGUIDE_RAW_MAX_SIZE), nullable=False)

    @property
    def spotguide(self) -> SpotguideManifest:
        """Decoded manifest, rebuilt from the raw bytes on every access."""
        return decode_manifest(self.spotguide_raw)

    def __repr__(self):
        return f'<SpotguideRepo {self.name}>'
